from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RepoDigestError(Exception):
    """Base exception for errors in the repo_digest module."""


@dataclass(frozen=True)
class RootPathError(RepoDigestError):
    """Raised when the directory to analyze is missing or is not a directory."""

    path: Path
    message: str = "The specified path does not exist or is not a directory."


@dataclass(frozen=True)
class NoFilesFoundError(RepoDigestError):
    """Raised when every file under the root was filtered out."""

    path: Path
    message: str = "No files found or directory is empty after scanning."


@dataclass(frozen=True)
class TokenLimitExceededError(RepoDigestError):
    """Raised when the gathered content exceeds the estimated token ceiling.

    The whole gather operation is aborted; no partial file list is returned.
    """

    estimated: int
    limit: int
    message: str = "Project exceeds the estimated token limit."
