"""Custom exceptions for the versioned_docs plugin."""


class VersionedDocsError(Exception):
    """Base exception for versioned_docs operations."""


class VersionBuildError(VersionedDocsError):
    """A single version cannot be built. Other versions are unaffected."""


class SidebarNotFoundError(VersionBuildError):
    """No usable sidebar configuration exists for a tagged revision."""


class DocNotFoundError(VersionBuildError):
    """A sidebar item references a document missing from the tree."""


class RevisionNotFoundError(VersionBuildError):
    """The tree listing for a revision is empty or the revision is unknown."""


class RepositoryError(VersionedDocsError):
    """Error while reading from a repository backend."""


class GitCommandError(RepositoryError):
    """A git subprocess exited with a non-zero status."""


class FileNotInRevisionError(RepositoryError):
    """The requested path does not exist at the requested revision."""


class GitHubAPIError(RepositoryError):
    """The GitHub API returned an error or could not be reached."""


class NotFoundError(GitHubAPIError):
    """The GitHub API returned 404."""


class InvalidRangeError(VersionedDocsError, ValueError):
    """A version identifier is not a valid semantic-version range."""
