"""
Repository access used by the versioned docs pipeline.

The pipeline only reads immutable history (tags, trees and blobs at tagged
revisions), so every backend method is a pure read apart from
``ensure_remote`` and ``fetch``, which run once before resolution starts.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Protocol, Tuple, Union

from plugins.versioned_docs.exceptions import FileNotInRevisionError, GitCommandError

log = logging.getLogger("mkdocs.plugins.versioned_docs")

DEFAULT_MAX_CONCURRENCY = 8


class RepositoryAccess(Protocol):
    async def list_tags(self) -> List[str]:
        """Tag names, most recent version first."""
        ...

    async def list_tree(self, revision: str) -> str:
        """Raw ``ls-tree`` style listing, or an empty string for an unknown revision."""
        ...

    async def read_file(self, revision: str, path: str) -> str:
        """Text of ``path`` at ``revision``. Raises FileNotInRevisionError."""
        ...

    async def ensure_remote(self, name: str, url: str) -> None:
        ...

    async def fetch(self) -> None:
        ...


class GitRepository:
    """RepositoryAccess backed by the local ``git`` executable."""

    def __init__(self, root: Union[str, Path], max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        self.root = Path(root)
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _run_git(self, *args: str, check: bool = True) -> Tuple[int, str, str]:
        """
        Run a git command in the repository root.

        Returns (exit_code, stdout, stderr). Stdout is returned untouched so
        file contents keep their trailing newlines.
        """
        log.debug(f"[versioned_docs] git {' '.join(args)}")
        async with self._semaphore:
            proc = await asyncio.create_subprocess_exec(
                "git",
                *args,
                cwd=self.root,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, stderr_bytes = await proc.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
        exit_code = proc.returncode or 0

        if check and exit_code != 0:
            raise GitCommandError(f"Git command failed: git {' '.join(args)}\n{stderr[:500]}")
        return exit_code, stdout, stderr

    async def list_tags(self) -> List[str]:
        _, stdout, _ = await self._run_git("tag", "--sort=-v:refname")
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    async def list_tree(self, revision: str) -> str:
        exit_code, stdout, stderr = await self._run_git(
            "ls-tree", "-r", "--full-tree", revision, check=False
        )
        if exit_code != 0:
            log.debug(f"[versioned_docs] cannot list tree at {revision}: {stderr}")
            return ""
        return stdout.rstrip("\n")

    async def read_file(self, revision: str, path: str) -> str:
        exit_code, stdout, stderr = await self._run_git(
            "show", f"{revision}:{path}", check=False
        )
        if exit_code != 0:
            raise FileNotInRevisionError(f"{path} not found at {revision}: {stderr}")
        return stdout

    async def ensure_remote(self, name: str, url: str) -> None:
        _, stdout, _ = await self._run_git("remote")
        if name in stdout.split():
            return
        log.info(f"[versioned_docs] adding remote {name} -> {url}")
        await self._run_git("remote", "add", name, url)

    async def fetch(self) -> None:
        log.info(f"[versioned_docs] fetching tags into {self.root}")
        await self._run_git("fetch", "--tags")
