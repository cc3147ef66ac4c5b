import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Protocol, Sequence

from plugins.versioned_docs.assembler import VersionBuild
from plugins.versioned_docs.tree import TreeObject

log = logging.getLogger("mkdocs.plugins.versioned_docs")


@dataclass
class PageContext:
    content: str
    title: Optional[str]
    description: Optional[str]
    version: VersionBuild
    file_path: str
    docs: List[TreeObject] = field(default_factory=list)
    versions: List[VersionBuild] = field(default_factory=list)


@dataclass
class PageRequest:
    path: str
    component: Optional[str]
    context: PageContext


class PageSink(Protocol):
    def create_page(self, request: PageRequest) -> None:
        ...


class PageCollector:
    """PageSink that keeps every request in memory, in emission order."""

    def __init__(self):
        self.pages: List[PageRequest] = []

    def create_page(self, request: PageRequest) -> None:
        self.pages.append(request)


def iter_page_requests(
    builds: Sequence[VersionBuild], component: Optional[str] = None
) -> Iterator[PageRequest]:
    """
    One request per document page across all builds.

    Anchor entries are links only and never get a page. Every request carries
    the complete list of builds so templates can link across versions.
    """
    versions = list(builds)
    for version in versions:
        for category in version.contents:
            for page in category.pages:
                if page.anchor:
                    continue
                yield PageRequest(
                    path=page.path,
                    component=component,
                    context=PageContext(
                        content=page.content,
                        title=page.title,
                        description=page.description,
                        version=version,
                        file_path=page.file_path,
                        docs=version.docs,
                        versions=versions,
                    ),
                )


def emit_pages(
    builds: Sequence[VersionBuild], sink: PageSink, component: Optional[str] = None
) -> int:
    count = 0
    for request in iter_page_requests(builds, component):
        sink.create_page(request)
        count += 1
    log.info(f"[versioned_docs] created {count} pages across {len(builds)} versions")
    return count
