import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict

import yaml

log = logging.getLogger("mkdocs.plugins.versioned_docs")

FM_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


@dataclass
class ParsedDocument:
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    body: str = ""


def parse_document(text: str) -> ParsedDocument:
    """
    Split a markdown document into front matter and body.

    Without a front matter block the whole text is the body. A block that is
    not valid YAML, or not a mapping, gives empty front matter.
    """
    m = FM_PATTERN.match(text)
    if not m:
        return ParsedDocument({}, text)
    try:
        fm = yaml.safe_load(m.group(1)) or {}
    except yaml.YAMLError as exc:
        log.warning(f"[versioned_docs] unable to parse front matter: {exc}")
        fm = {}
    if not isinstance(fm, dict):
        fm = {}
    return ParsedDocument(fm, text[m.end() :])
