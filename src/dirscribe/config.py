from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ = Path()

WILDCARD = "*"

# Marker replaced by the bundle when a prompt template is used.
CONTENT_PLACEHOLDER = "${${CONTENT}$}$"

DEFAULT_CONFIG_FILENAME = ".dirscribe.yaml"

SNIFF_BYTES = 1024

MAX_SUFFIX_LENGTH = 10
MAX_KEYWORD_LENGTH = 100
MAX_TEMPLATE_BYTES = 100_000_000

# Compared against the lower-cased extension, without the dot.
TEXT_EXTENSIONS: frozenset[str] = frozenset(
    {
        # Programming languages
        "rs",
        "py",
        "js",
        "ts",
        "java",
        "c",
        "cpp",
        "h",
        "hpp",
        "cs",
        "go",
        "rb",
        "php",
        "swift",
        "kt",
        "scala",
        "sh",
        "bash",
        "pl",
        "r",
        "sql",
        "m",
        "mm",
        # Web
        "html",
        "htm",
        "css",
        "scss",
        "sass",
        "less",
        "xml",
        "svg",
        # Data formats
        "json",
        "yaml",
        "yml",
        "toml",
        "ini",
        "conf",
        "config",
        # Documentation
        "md",
        "markdown",
        "txt",
        "rtf",
        "rst",
        "asciidoc",
        "adoc",
        # Config files
        "gitignore",
        "env",
        "dockerignore",
        "editorconfig",
        # Build files
        "cmake",
        "make",
        "mak",
        "gradle",
    },
)

EXTENSIONLESS_TEXT_FILES: frozenset[str] = frozenset(
    {
        "Dockerfile",
        "Makefile",
        "README",
        "LICENSE",
        "Cargo.lock",
        "package.json",
        ".gitignore",
        ".env",
        ".dockerignore",
        ".editorconfig",
    },
)


class GitignorePolicy(StrEnum):
    """Whether the walker honours `.gitignore` rules."""

    RESPECT = auto()
    IGNORE = auto()


class SelectionCriteria(BaseModel):
    """Admission rules applied to every walked file.

    Attributes:
        suffixes: Extension or exact filename tokens, or the single wildcard ``"*"``.
        gitignore: Whether ignored paths are pruned from the walk.
        exclude_paths: Relative path prefixes that reject a file.
        include_paths: Relative path prefixes a file must start with, when any are given.
        or_keywords: At least one must appear in the content, when any are given.
        and_keywords: All must appear in the content.
        exclude_keywords: None may appear in the content.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    suffixes: tuple[str, ...] = Field(..., description="Extension/name tokens or ('*',)")
    gitignore: GitignorePolicy = Field(default=GitignorePolicy.RESPECT)
    exclude_paths: tuple[str, ...] = Field(default=())
    include_paths: tuple[str, ...] = Field(default=())
    or_keywords: tuple[str, ...] = Field(default=())
    and_keywords: tuple[str, ...] = Field(default=())
    exclude_keywords: tuple[str, ...] = Field(default=())

    @field_validator("suffixes")
    @classmethod
    def _check_wildcard(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            msg = "At least one suffix is required"
            raise ValueError(msg)
        if WILDCARD in value and value != (WILDCARD,):
            msg = f"The wildcard {WILDCARD!r} cannot be combined with other suffixes"
            raise ValueError(msg)
        return value

    @property
    def is_wildcard(self) -> bool:
        """True when every text-like file qualifies."""
        return self.suffixes == (WILDCARD,)

    @property
    def respects_gitignore(self) -> bool:
        return self.gitignore is GitignorePolicy.RESPECT


class DiffRange(BaseModel):
    """A pair of optional revisions bounding a diff.

    ``(None, None)`` compares HEAD with the working tree, ``(start, None)``
    compares ``start`` with the working tree, ``(start, end)`` compares two
    commits and ``(None, end)`` compares HEAD with ``end``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    start: str | None = Field(default=None, description="Older revision")
    end: str | None = Field(default=None, description="Newer revision")


class CandidateFile(BaseModel):
    """A file produced by the walker, not yet judged."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute file path")
    rel: str = Field(..., description="POSIX path relative to the traversal root")


class AdmittedFile(CandidateFile):
    """A candidate that passed every admission rule."""
