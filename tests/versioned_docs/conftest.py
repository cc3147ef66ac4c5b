"""Shared fixtures for the versioned_docs tests."""

import pytest

from plugins.versioned_docs.exceptions import FileNotInRevisionError


class FakeRepository:
    """
    In-memory RepositoryAccess.

    ``trees`` maps a revision to ``{path: text}``; a ``(mode, text)`` tuple
    marks a non-regular entry, e.g. ``("120000", "../other.md")`` for a symlink.
    """

    def __init__(self, trees=None, tags=None):
        self.trees = trees or {}
        self.tags = tags or []
        self.reads = []
        self.listed = []
        self.remotes = {}
        self.fetched = 0

    def _entry(self, value):
        if isinstance(value, tuple):
            return value
        return "100644", value

    async def list_tags(self):
        return list(self.tags)

    async def list_tree(self, revision):
        self.listed.append(revision)
        files = self.trees.get(revision)
        if not files:
            return ""
        lines = []
        for index, (path, value) in enumerate(files.items()):
            mode, _ = self._entry(value)
            lines.append(f"{mode} blob {index:040x}\t{path}")
        return "\n".join(lines)

    async def read_file(self, revision, path):
        self.reads.append((revision, path))
        files = self.trees.get(revision, {})
        if path not in files:
            raise FileNotInRevisionError(f"{path} not found at {revision}")
        return self._entry(files[path])[1]

    async def ensure_remote(self, name, url):
        self.remotes.setdefault(name, url)

    async def fetch(self):
        self.fetched += 1


@pytest.fixture
def make_repo():
    return FakeRepository
