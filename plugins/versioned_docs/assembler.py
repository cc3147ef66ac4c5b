"""
Walk a sidebar specification against the tree of one tagged revision.

Each sidebar item becomes a DocRecord (a markdown document read at the tag),
an AnchorRecord (a plain ``{title, href}`` link that never becomes a page) or
nothing at all when the item is a symlink whose target is missing.
"""

import asyncio
import posixpath
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from plugins.versioned_docs.document import parse_document
from plugins.versioned_docs.exceptions import DocNotFoundError
from plugins.versioned_docs.repository import RepositoryAccess
from plugins.versioned_docs.tree import TreeObject, docs_under, markdown_objects
from plugins.versioned_docs.versions import ResolvedVersion

INDEX_SUFFIX = re.compile(r"(^|/)index$")

# Returned for symlinks whose target is not a known markdown path. Reading a
# blob that does not exist fails, so such items are dropped before any read.
UNRESOLVED = None


@dataclass
class DocRecord:
    frontmatter: Dict[str, Any]
    content: str
    path: str
    file_path: str
    anchor = False

    @property
    def title(self) -> Optional[str]:
        return self.frontmatter.get("title")

    @property
    def description(self) -> Optional[str]:
        return self.frontmatter.get("description")


@dataclass
class AnchorRecord:
    path: Optional[str]
    title: Optional[str]
    anchor = True


PageRecord = Union[DocRecord, AnchorRecord]


@dataclass
class Category:
    title: Optional[str]
    pages: List[PageRecord] = field(default_factory=list)


@dataclass
class VersionBuild:
    id: str
    base_path: str
    contents: List[Category]
    tag: str
    semver_match: Optional[str] = None
    is_current: bool = False
    owner: str = ""
    repo: str = ""
    docs: List[TreeObject] = field(default_factory=list)


def base_path_for(version: ResolvedVersion) -> str:
    return "/" if version.is_current else f"/v{version.id}/"


def page_path(base_path: str, name: str) -> str:
    """Site path for a sidebar name; ``index`` maps to its directory."""
    return base_path + INDEX_SUFFIX.sub(r"\1", name)


def canonical_category(name: Any) -> Optional[str]:
    """Untitled categories come through YAML as ``None`` or as the key ``"null"``."""
    if name is None or name == "null":
        return None
    return str(name)


class ContentAssembler:
    def __init__(
        self,
        repository: RepositoryAccess,
        tag: str,
        version_id: str,
        objects: Sequence[TreeObject],
        content_dir: str,
        base_path: str,
    ):
        self.repository = repository
        self.tag = tag
        self.version_id = version_id
        self.content_dir = content_dir
        self.base_path = base_path
        self.markdown_paths = {obj.path for obj in markdown_objects(objects)}
        self.docs = docs_under(objects, content_dir)
        self._docs_by_path = {doc.path: doc for doc in self.docs}

    async def resolve_item(self, item: Any) -> Optional[PageRecord]:
        if isinstance(item, Mapping):
            # sidebar items can be a {title, href} mapping rendered as a link
            return AnchorRecord(path=item.get("href"), title=item.get("title"))
        if isinstance(item, (int, float)) and not isinstance(item, bool):
            # YAML reads doc names such as `- 404` as numbers
            item = str(item)
        if not isinstance(item, str):
            return AnchorRecord(path=None, title=None)

        file_path = f"{self.content_dir}/{item}.md"
        doc = self._docs_by_path.get(file_path)
        if doc is None:
            raise DocNotFoundError(f"Doc not found: {file_path}@{self.version_id}")

        text = await self.repository.read_file(self.tag, file_path)
        if doc.is_symlink:
            directory = posixpath.dirname(doc.path)
            target = posixpath.normpath(posixpath.join("/", directory, text.strip()))[1:]
            if target not in self.markdown_paths:
                return UNRESOLVED
            text = await self.repository.read_file(self.tag, target)

        parsed = parse_document(text)
        return DocRecord(
            frontmatter=parsed.frontmatter,
            content=parsed.body,
            path=page_path(self.base_path, item),
            file_path=file_path,
        )

    async def assemble_category(self, name: Any, items: Sequence[Any]) -> Category:
        resolved = await asyncio.gather(*(self.resolve_item(item) for item in items))
        return Category(
            title=canonical_category(name),
            pages=[record for record in resolved if record is not UNRESOLVED],
        )

    async def assemble(self, sidebar_categories: Dict[Any, Sequence[Any]]) -> List[Category]:
        contents = []
        for name, items in sidebar_categories.items():
            contents.append(await self.assemble_category(name, items or []))
        return contents
