from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class DirscribeError(Exception):
    """Base exception for errors in the dirscribe package."""

    message: str = "dirscribe failed."

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigError(DirscribeError):
    """Raised when the resolved configuration is invalid."""


@dataclass
class TemplateError(ConfigError):
    """Raised when a prompt template cannot be used."""

    template: Path | None = None


@dataclass
class WalkError(DirscribeError):
    """Raised when the directory walk cannot start."""

    root: Path | None = None


@dataclass
class GitCommandError(DirscribeError):
    """Raised when a git command fails."""

    command: str = ""
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        detail = self.stderr.strip() or self.stdout.strip()
        return f"{self.message} ({self.command}, exit {self.returncode}): {detail}"


@dataclass
class RevisionError(DirscribeError):
    """Raised when a revision cannot be resolved to a commit or tree."""

    revision: str = ""


@dataclass
class NotAGitRepositoryError(RevisionError):
    """Raised when the specified directory is not inside a Git work tree."""

    folder: Path | None = None


@dataclass
class DiffError(DirscribeError):
    """Raised when git cannot compute a diff."""


@dataclass
class ReadError(DirscribeError):
    """Raised when a file selected for the bundle cannot be read."""

    path: Path | None = None


@dataclass
class HistoricalReadError(ReadError):
    """Raised when a path does not exist at the requested revision."""

    revision: str = ""


@dataclass
class EncodingError(DirscribeError):
    """Raised when content that must be UTF-8 is not."""

    path: Path | None = None


@dataclass
class OutputError(DirscribeError):
    """Raised when the bundle cannot be delivered to its sink."""
