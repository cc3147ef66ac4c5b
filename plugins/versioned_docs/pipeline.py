"""
Build every requested documentation version and emit its pages.

Versions are built concurrently and independently: a version whose sidebar
or documents cannot be found is logged and left out, while any other error
(an unreadable config, a failing fetch) aborts the whole run.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from plugins.versioned_docs.assembler import ContentAssembler, VersionBuild, base_path_for
from plugins.versioned_docs.emitter import PageSink, emit_pages
from plugins.versioned_docs.exceptions import RevisionNotFoundError, VersionBuildError
from plugins.versioned_docs.repository import RepositoryAccess
from plugins.versioned_docs.sidebar import resolve_sidebar
from plugins.versioned_docs.tree import index_tree
from plugins.versioned_docs.versions import ResolvedVersion, resolve_versions

log = logging.getLogger("mkdocs.plugins.versioned_docs")

REMOTE_NAME = "origin"


@dataclass
class SiteOptions:
    content_dir: str = "content"
    github_repo: str = ""
    sidebar_categories: Optional[Dict[Any, List[Any]]] = None
    versions: List[str] = field(default_factory=list)
    base_dir: str = ""
    component: Optional[str] = None
    fetch: bool = True

    @property
    def owner(self) -> str:
        return self.github_repo.split("/")[0] if "/" in self.github_repo else ""

    @property
    def repo(self) -> str:
        return self.github_repo.split("/", 1)[1] if "/" in self.github_repo else ""

    @property
    def remote_url(self) -> str:
        return f"https://github.com/{self.github_repo}.git"


async def _build_version(
    repository: RepositoryAccess, version: ResolvedVersion, options: SiteOptions
) -> VersionBuild:
    tree = await repository.list_tree(version.tag)
    if not tree:
        raise RevisionNotFoundError(f"Nothing to build at {version.tag}")

    objects = index_tree(tree)
    sidebar_categories = await resolve_sidebar(
        repository, version, options.sidebar_categories, options.base_dir, objects
    )
    base_path = base_path_for(version)
    assembler = ContentAssembler(
        repository,
        tag=version.tag,
        version_id=version.id,
        objects=objects,
        content_dir=options.content_dir,
        base_path=base_path,
    )
    contents = await assembler.assemble(sidebar_categories)
    return VersionBuild(
        id=version.id,
        base_path=base_path,
        contents=contents,
        tag=version.tag,
        semver_match=version.semver_match,
        is_current=version.is_current,
        owner=options.owner,
        repo=options.repo,
        docs=assembler.docs,
    )


async def build_version(
    repository: RepositoryAccess, version: ResolvedVersion, options: SiteOptions
) -> Optional[VersionBuild]:
    """Build one version, or return None when it cannot be built."""
    try:
        build = await _build_version(repository, version, options)
    except VersionBuildError as e:
        log.error(f"[versioned_docs] skipping version {version.id} ({version.tag}): {e}")
        return None
    log.info(
        f"[versioned_docs] built version {build.id} from {build.tag} at {build.base_path}"
    )
    return build


async def build_versions(repository: RepositoryAccess, options: SiteOptions) -> List[VersionBuild]:
    if options.github_repo:
        await repository.ensure_remote(REMOTE_NAME, options.remote_url)
    if options.fetch:
        await repository.fetch()

    tags: List[str] = []
    if options.versions:
        tags = await repository.list_tags()
    resolved = resolve_versions(options.versions, tags, options.repo)
    log.info(
        f"[versioned_docs] building {len(resolved)} versions: "
        + ", ".join(f"{v.id} -> {v.tag}" for v in resolved)
    )

    builds = await asyncio.gather(
        *(build_version(repository, version, options) for version in resolved)
    )
    return [build for build in builds if build is not None]


async def create_pages(
    repository: RepositoryAccess, options: SiteOptions, sink: PageSink
) -> List[VersionBuild]:
    builds = await build_versions(repository, options)
    emit_pages(builds, sink, options.component)
    return builds
