"""
An MkDocs plugin that builds documentation for several released versions of
a project from its git history.

Each requested version is resolved to a release tag, its sidebar and markdown
documents are read at that tag, and every document is added to the build as a
generated page under ``/v<version>/`` (the current version lives at ``/``).

Configuration options:
- root (str): Repository root, relative to mkdocs.yml. Defaults to its directory.
- github_repo (str): ``owner/name``. Adds the ``origin`` remote when missing,
  recognises ``<name>@X.Y.Z`` tags and selects the repository for ``source: github``.
- content_dir (str): Repository-relative directory holding the docs.
- base_dir (str): Directory holding the per-version config files.
- sidebar_categories (dict): Sidebar of the current version; without it the
  current version is not built.
- versions (list): Version identifiers or ranges to build; empty builds HEAD only.
- template (str): Theme template used for generated pages.
- source (str): ``git`` for a local clone, ``github`` for the REST API.
- github_token_env (str): Environment variable holding the API token.
- max_concurrency (int): Upper bound on concurrent git/API reads.
- fetch (bool): Fetch tags before resolving versions.
- manifest (bool): Write ``versions.json`` into the site directory.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from mkdocs.config import config_options as c
from mkdocs.config.defaults import MkDocsConfig
from mkdocs.exceptions import PluginError
from mkdocs.plugins import BasePlugin
from mkdocs.structure.files import File, Files
from mkdocs.structure.pages import Page

from plugins.versioned_docs.assembler import VersionBuild
from plugins.versioned_docs.emitter import PageCollector, PageRequest
from plugins.versioned_docs.github import GitHubClient, GitHubRepository
from plugins.versioned_docs.pipeline import SiteOptions, create_pages
from plugins.versioned_docs.repository import GitRepository

log = logging.getLogger("mkdocs.plugins.versioned_docs")


def page_src_uri(path: str) -> str:
    """Source URI of the generated markdown file for a site path."""
    route = path.strip("/")
    if not route:
        return "index.md"
    if path.endswith("/"):
        return f"{route}/index.md"
    return f"{route}.md"


def render_page_markdown(request: PageRequest) -> str:
    """Markdown for a generated page: title/description/template front matter, then the body."""
    meta = {}
    if request.context.title is not None:
        meta["title"] = request.context.title
    if request.context.description is not None:
        meta["description"] = request.context.description
    if request.component:
        meta["template"] = request.component
    if not meta:
        return request.context.content
    fm = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
    return f"---\n{fm}---\n\n{request.context.content}"


class VersionedDocsPlugin(BasePlugin):
    config_scheme = (
        ("enabled", c.Type(bool, default=True)),
        ("root", c.Type(str, default="")),
        ("github_repo", c.Type(str, default="")),
        ("content_dir", c.Type(str, default="content")),
        ("base_dir", c.Type(str, default="")),
        ("sidebar_categories", c.Optional(c.Type(dict))),
        ("versions", c.Type(list, default=[])),
        ("template", c.Type(str, default="")),
        ("source", c.Choice(("git", "github"), default="git")),
        ("github_token_env", c.Type(str, default="GITHUB_TOKEN")),
        ("max_concurrency", c.Type(int, default=8)),
        ("fetch", c.Type(bool, default=True)),
        ("manifest", c.Type(bool, default=True)),
    )

    def __init__(self):
        super().__init__()
        self.options: Optional[SiteOptions] = None
        self.root: Optional[Path] = None
        self.builds: List[VersionBuild] = []
        # src_uri -> request, for pages this plugin generated
        self.pages: Dict[str, PageRequest] = {}
        self._token: Optional[str] = None

    def on_config(self, config: MkDocsConfig) -> MkDocsConfig:
        if not self.config["enabled"]:
            return config

        config_file_path = config["config_file_path"]
        project_root = Path(config_file_path).resolve().parent if config_file_path else Path.cwd()
        root = self.config["root"]
        self.root = (project_root / root).resolve() if root else project_root

        self.options = SiteOptions(
            content_dir=self.config["content_dir"].strip("/"),
            github_repo=self.config["github_repo"],
            sidebar_categories=self.config["sidebar_categories"],
            versions=[str(v) for v in self.config["versions"]],
            base_dir=self.config["base_dir"].strip("/"),
            component=self.config["template"] or None,
            fetch=self.config["fetch"],
        )
        # read once; the API client gets the token explicitly
        self._token = os.environ.get(self.config["github_token_env"]) or None

        if self.config["source"] == "github" and not self.options.owner:
            raise PluginError(
                "[versioned_docs] 'github_repo' must be 'owner/name' when source is 'github'"
            )
        return config

    async def build_pages(self) -> PageCollector:
        collector = PageCollector()
        if self.config["source"] == "github":
            async with GitHubClient(
                token=self._token, max_concurrency=self.config["max_concurrency"]
            ) as client:
                repository = GitHubRepository(client, self.options.owner, self.options.repo)
                self.builds = await create_pages(repository, self.options, collector)
        else:
            repository = GitRepository(self.root, self.config["max_concurrency"])
            self.builds = await create_pages(repository, self.options, collector)
        return collector

    def on_files(self, files: Files, config: MkDocsConfig) -> Files:
        if not self.config["enabled"]:
            return files

        collector = asyncio.run(self.build_pages())
        self.pages = {}
        for request in collector.pages:
            src_uri = page_src_uri(request.path)
            existing = files.get_file_from_path(src_uri)
            if existing is not None:
                log.debug(f"[versioned_docs] replacing {src_uri} with the generated page")
                files.remove(existing)
            files.append(
                File.generated(config, src_uri, content=render_page_markdown(request))
            )
            self.pages[src_uri] = request
        log.info(f"[versioned_docs] added {len(self.pages)} generated pages")
        return files

    def on_page_context(self, context, page: Page, config: MkDocsConfig, nav):
        request = self.pages.get(page.file.src_uri)
        if request is None:
            return context
        context["versioned_docs"] = {
            "version": request.context.version,
            "versions": request.context.versions,
            "docs": request.context.docs,
            "file_path": request.context.file_path,
        }
        return context

    def build_manifest(self) -> List[dict]:
        return [
            {
                "id": build.id,
                "tag": build.tag,
                "base_path": build.base_path,
                "semver_match": build.semver_match,
                "current": build.is_current,
            }
            for build in self.builds
        ]

    def on_post_build(self, config: MkDocsConfig) -> None:
        if not self.config["enabled"] or not self.config["manifest"]:
            return
        site_dir = Path(config["site_dir"])
        site_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = site_dir / "versions.json"
        manifest_path.write_text(
            json.dumps(self.build_manifest(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        log.info(f"[versioned_docs] wrote {manifest_path}")
