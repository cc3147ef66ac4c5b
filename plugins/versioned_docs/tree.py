import re
from dataclasses import dataclass
from typing import Iterable, List

SYMLINK_MODE = "120000"
MARKDOWN_PATTERN = re.compile(r"\.mdx?$")


@dataclass(frozen=True)
class TreeObject:
    """One entry of an ``ls-tree`` listing at a given revision."""

    mode: str
    path: str

    @property
    def is_symlink(self) -> bool:
        return self.mode == SYMLINK_MODE

    @property
    def is_markdown(self) -> bool:
        return bool(MARKDOWN_PATTERN.search(self.path))


def index_tree(raw: str) -> List[TreeObject]:
    """
    Turn raw ``git ls-tree`` output into TreeObjects.

    Each line looks like ``<mode> <type> <sha>\\t<path>``. The mode is the text
    before the first space and the path is the text after the last tab.
    Empty input gives a single record with an empty path, so callers check
    for an empty listing before indexing.
    """
    objects = []
    for line in raw.split("\n"):
        space = line.find(" ")
        mode = line[:space] if space != -1 else ""
        path = line[line.rfind("\t") + 1 :]
        objects.append(TreeObject(mode=mode, path=path))
    return objects


def markdown_objects(objects: Iterable[TreeObject]) -> List[TreeObject]:
    return [obj for obj in objects if obj.is_markdown]


def docs_under(objects: Iterable[TreeObject], content_dir: str) -> List[TreeObject]:
    """Markdown objects whose path starts with ``content_dir``."""
    return [obj for obj in markdown_objects(objects) if obj.path.startswith(content_dir)]
