import base64

import httpx
import pytest

from plugins.versioned_docs.exceptions import FileNotInRevisionError, GitHubAPIError, NotFoundError
from plugins.versioned_docs.github import GitHubClient, GitHubRepository

PREFIX = "/repos/acme/widgets"

TREE = {
    "sha": "t1",
    "truncated": False,
    "tree": [
        {"path": "docs", "mode": "040000", "type": "tree", "sha": "d1"},
        {"path": "docs/intro.md", "mode": "100644", "type": "blob", "sha": "b1"},
        {"path": "docs/link.md", "mode": "120000", "type": "blob", "sha": "b2"},
    ],
}

BLOBS = {
    "b1": "---\ntitle: Intro\n---\nHello",
    "b2": "intro.md",
}


def encode(text):
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def api_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == f"{PREFIX}/tags":
        page = request.url.params.get("page", "1")
        if page == "1":
            return httpx.Response(
                200,
                json=[{"name": "v1.2.0"}, {"name": "main-snapshot"}],
                headers={"Link": f'<https://api.github.com{PREFIX}/tags?per_page=100&page=2>; rel="next"'},
            )
        return httpx.Response(200, json=[{"name": "v2.0.0"}, {"name": "v1.10.0"}])
    if path == f"{PREFIX}/git/trees/v1.0.0":
        assert request.url.params["recursive"] == "1"
        return httpx.Response(200, json=TREE)
    if path.startswith(f"{PREFIX}/git/blobs/"):
        sha = path.rsplit("/", 1)[1]
        return httpx.Response(200, json={"sha": sha, "encoding": "base64", "content": encode(BLOBS[sha])})
    return httpx.Response(404, json={"message": "Not Found"})


def make_client(handler=api_handler, **kwargs):
    return GitHubClient(token="secret", transport=httpx.MockTransport(handler), backoff=0, **kwargs)


class TestGitHubClient:
    @pytest.mark.asyncio
    async def test_sends_token_and_accept_headers(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, json={"ok": True})

        async with make_client(handler) as client:
            assert await client.get_json("/rate_limit") == {"ok": True}
        assert seen["authorization"] == "Bearer secret"
        assert seen["accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_no_authorization_without_token(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, json={})

        async with GitHubClient(transport=httpx.MockTransport(handler)) as client:
            await client.get_json("/rate_limit")
        assert "authorization" not in seen

    @pytest.mark.asyncio
    async def test_paginates_following_link_headers(self):
        async with make_client() as client:
            names = [tag["name"] async for tag in client.paginate(f"{PREFIX}/tags")]
        assert names == ["v1.2.0", "main-snapshot", "v2.0.0", "v1.10.0"]

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"ok": True})

        async with make_client(handler) as client:
            assert await client.get_json("/flaky") == {"ok": True}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(502)

        async with make_client(handler, max_retries=2) as client:
            with pytest.raises(GitHubAPIError, match="Failed to fetch"):
                await client.get("/down")
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with make_client(handler) as client:
            with pytest.raises(NotFoundError):
                await client.get("/missing")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_client_errors_raise_immediately(self):
        async with make_client(lambda request: httpx.Response(401)) as client:
            with pytest.raises(GitHubAPIError):
                await client.get("/private")


class TestGitHubRepository:
    @pytest.mark.asyncio
    async def test_tags_sorted_by_version_descending(self):
        async with make_client() as client:
            tags = await GitHubRepository(client, "acme", "widgets").list_tags()
        assert tags == ["v2.0.0", "v1.10.0", "v1.2.0", "main-snapshot"]

    @pytest.mark.asyncio
    async def test_tree_rendered_as_ls_tree_text(self):
        async with make_client() as client:
            raw = await GitHubRepository(client, "acme", "widgets").list_tree("v1.0.0")
        assert raw == (
            "100644 blob b1\tdocs/intro.md\n"
            "120000 blob b2\tdocs/link.md"
        )

    @pytest.mark.asyncio
    async def test_unknown_revision_gives_empty_tree(self):
        async with make_client() as client:
            assert await GitHubRepository(client, "acme", "widgets").list_tree("nope") == ""

    @pytest.mark.asyncio
    async def test_read_file_returns_blob_text(self):
        async with make_client() as client:
            repo = GitHubRepository(client, "acme", "widgets")
            assert await repo.read_file("v1.0.0", "docs/intro.md") == BLOBS["b1"]
            # symlinks return their target, like `git show`
            assert await repo.read_file("v1.0.0", "docs/link.md") == "intro.md"

    @pytest.mark.asyncio
    async def test_read_missing_file(self):
        async with make_client() as client:
            repo = GitHubRepository(client, "acme", "widgets")
            with pytest.raises(FileNotInRevisionError):
                await repo.read_file("v1.0.0", "docs/missing.md")
            with pytest.raises(FileNotInRevisionError):
                await repo.read_file("nope", "docs/intro.md")

    @pytest.mark.asyncio
    async def test_remote_and_fetch_are_no_ops(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            repo = GitHubRepository(client, "acme", "widgets")
            await repo.ensure_remote("origin", "https://github.com/acme/widgets.git")
            await repo.fetch()
        assert calls == []
