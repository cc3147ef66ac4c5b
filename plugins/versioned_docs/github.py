"""
Read tags, trees and files straight from the GitHub REST API.

This is the alternative to a local clone: ``GitHubRepository`` implements the
same RepositoryAccess interface as ``GitRepository``. The API client is an
explicit object created once per build and handed to the repository, so the
token it uses comes from the caller, never from ambient process state.
"""

import asyncio
import base64
import logging
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote

import httpx
from packaging.version import Version

from plugins.versioned_docs.exceptions import FileNotInRevisionError, GitHubAPIError, NotFoundError
from plugins.versioned_docs.versions import coerce_version

log = logging.getLogger("mkdocs.plugins.versioned_docs")

API_URL = "https://api.github.com"
USER_AGENT = "mkdocs-versioned-docs"
RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
PAGE_SIZE = 100


class GitHubClient:
    """Small async GitHub REST client with retries and pagination."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = API_URL,
        max_retries: int = 3,
        backoff: float = 0.5,
        max_concurrency: int = 8,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/vnd.github+json", "User-Agent": USER_AGENT}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.max_retries = max_retries
        self.backoff = backoff
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        GET with retries on transient failures.

        Raises:
            NotFoundError: on 404.
            GitHubAPIError: on any other error status, or once retries run out.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                async with self._semaphore:
                    response = await self._client.get(url, params=params)
            except httpx.RequestError as exc:
                last_exc = exc
            else:
                if response.status_code == 404:
                    raise NotFoundError(f"Not found: {response.request.url}")
                if response.status_code not in RETRY_STATUS_CODES:
                    try:
                        response.raise_for_status()
                    except httpx.HTTPStatusError as exc:
                        raise GitHubAPIError(str(exc)) from exc
                    return response
                last_exc = GitHubAPIError(f"HTTP {response.status_code} from {url}")

            if attempt < self.max_retries:
                delay = self.backoff * (2**attempt)
                log.debug(f"[versioned_docs] retrying {url} in {delay}s: {last_exc}")
                await asyncio.sleep(delay)

        raise GitHubAPIError(f"Failed to fetch {url}: {last_exc}")

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.get(url, params)
        return response.json()

    async def paginate(
        self, url: str, params: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[Any]:
        """Yield items from every page, following ``Link: rel="next"`` headers."""
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, Any]] = {"per_page": PAGE_SIZE, **(params or {})}
        while next_url:
            response = await self.get(next_url, next_params)
            for item in response.json():
                yield item
            next_url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            next_params = None


def _tag_sort_key(tag: str):
    version = coerce_version(tag)
    return (1, Version(version)) if version else (0, Version("0"))


class GitHubRepository:
    """RepositoryAccess backed by the GitHub REST API."""

    def __init__(self, client: GitHubClient, owner: str, repo: str):
        self.client = client
        self.owner = owner
        self.repo = repo
        # revision -> {path: blob sha}
        self._blobs: Dict[str, Dict[str, str]] = {}

    @property
    def _prefix(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def list_tags(self) -> List[str]:
        names = [tag["name"] async for tag in self.client.paginate(f"{self._prefix}/tags")]
        return sorted(names, key=_tag_sort_key, reverse=True)

    async def _tree_entries(self, revision: str) -> List[Dict[str, Any]]:
        data = await self.client.get_json(
            f"{self._prefix}/git/trees/{quote(revision, safe='')}", {"recursive": "1"}
        )
        if data.get("truncated"):
            log.warning(f"[versioned_docs] tree listing for {revision} was truncated by GitHub")
        entries = [entry for entry in data.get("tree", []) if entry.get("type") != "tree"]
        self._blobs[revision] = {entry["path"]: entry["sha"] for entry in entries}
        return entries

    async def list_tree(self, revision: str) -> str:
        try:
            entries = await self._tree_entries(revision)
        except NotFoundError:
            log.debug(f"[versioned_docs] no tree at {revision} in {self.owner}/{self.repo}")
            return ""
        return "\n".join(
            f"{entry['mode']} {entry['type']} {entry['sha']}\t{entry['path']}"
            for entry in entries
        )

    async def read_file(self, revision: str, path: str) -> str:
        """
        Raw blob text, like ``git show``.

        Blobs are read by sha rather than through the contents endpoint,
        which would follow symlinks instead of returning the link target.
        """
        if revision not in self._blobs:
            try:
                await self._tree_entries(revision)
            except NotFoundError as exc:
                raise FileNotInRevisionError(f"{path} not found at {revision}") from exc
        sha = self._blobs[revision].get(path)
        if sha is None:
            raise FileNotInRevisionError(f"{path} not found at {revision}")

        blob = await self.client.get_json(f"{self._prefix}/git/blobs/{sha}")
        if blob.get("encoding") == "base64":
            return base64.b64decode(blob["content"]).decode("utf-8")
        return blob.get("content", "")

    async def ensure_remote(self, name: str, url: str) -> None:
        log.debug(f"[versioned_docs] remote {name} not needed for the GitHub API backend")

    async def fetch(self) -> None:
        log.debug("[versioned_docs] nothing to fetch for the GitHub API backend")
