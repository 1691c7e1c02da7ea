from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dirscribe.config import DEFAULT_CONFIG_FILENAME, DiffRange, GitignorePolicy, SelectionCriteria
from dirscribe.exceptions import ConfigError

ENV_FILE = find_dotenv(usecwd=True)

ENV_LOG_FILE = "DIRSCRIBE_LOG_FILE"
ENV_CONFIG = "DIRSCRIBE_CONFIG"


def env_value(key: str) -> str | None:
    """Look ``key`` up in the process environment, then in the nearest `.env` file."""
    if key in os.environ:
        return os.environ[key]
    if ENV_FILE:
        return dotenv_values(ENV_FILE).get(key)
    return None


def split_csv(value: Any) -> Any:  # noqa: ANN401
    """Split a comma-separated string; lists and None pass through.

    Empty items are kept so validation can report them.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return value.split(",") if value else []
    return value


class Settings(BaseModel):
    """Resolved configuration for one dirscribe run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    repo: Path = Field(default_factory=Path.cwd, description="Directory to process.")
    suffixes: str = Field(default="", description="Comma list of extensions/names, or '*'.")
    output_path: Path | None = Field(default=None, description="Write to this file instead of the clipboard.")
    prompt_template_path: Path | None = Field(default=None, description="Template with a content placeholder.")
    dont_use_gitignore: bool = Field(default=False, description="Include files ignored by .gitignore.")

    exclude_paths: list[str] = Field(default_factory=list, description="Exclude path prefixes.")
    include_paths: list[str] = Field(default_factory=list, description="Include path prefixes.")
    or_keywords: list[str] = Field(default_factory=list, description="Any of these must appear.")
    and_keywords: list[str] = Field(default_factory=list, description="All of these must appear.")
    exclude_keywords: list[str] = Field(default_factory=list, description="None of these may appear.")

    diff_only: bool = Field(default=False, description="Only files changed in the commit range.")
    start_commit_id: str | None = Field(default=None, description="Start of the commit range.")
    end_commit_id: str | None = Field(default=None, description="End of the commit range.")

    log_file: str = Field(default_factory=lambda: env_value(ENV_LOG_FILE) or "", description="Log file path.")
    config: Path | None = Field(default=None, description="YAML configuration file.")

    @field_validator("suffixes", mode="before")
    @classmethod
    def _join_suffixes(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, list | tuple):
            return ",".join(str(v) for v in value)
        return value

    @field_validator(
        "exclude_paths",
        "include_paths",
        "or_keywords",
        "and_keywords",
        "exclude_keywords",
        mode="before",
    )
    @classmethod
    def _split_lists(cls, value: Any) -> Any:  # noqa: ANN401
        return split_csv(value)

    def suffix_tokens(self) -> tuple[str, ...]:
        return tuple(self.suffixes.split(",")) if self.suffixes else ()

    def criteria(self) -> SelectionCriteria:
        """Build the admission rules.

        Raises:
            ConfigError: if the rules break a SelectionCriteria invariant.
        """
        try:
            return SelectionCriteria(
                suffixes=self.suffix_tokens(),
                gitignore=GitignorePolicy.IGNORE if self.dont_use_gitignore else GitignorePolicy.RESPECT,
                exclude_paths=tuple(self.exclude_paths),
                include_paths=tuple(self.include_paths),
                or_keywords=tuple(self.or_keywords),
                and_keywords=tuple(self.and_keywords),
                exclude_keywords=tuple(self.exclude_keywords),
            )
        except ValidationError as e:
            msg = f"Invalid selection criteria: {e.errors()[0]['msg']}"
            raise ConfigError(msg) from e

    def diff_range(self) -> DiffRange | None:
        """Return the commit range in diff mode, None otherwise."""
        if not self.diff_only:
            return None
        return DiffRange(start=self.start_commit_id, end=self.end_commit_id)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping of Settings fields.

    Args:
        path (Path): the YAML file

    Raises:
        ConfigError: if the file cannot be read, is not YAML, or is not a mapping.

    Returns:
        dict[str, Any]: the values found (empty for an empty document)
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Cannot read config file {path}: {e.strerror or e}"
        raise ConfigError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Config file {path} is not valid YAML: {e}"
        raise ConfigError(msg) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config file {path} must contain a mapping, got {type(data).__name__}"
        raise ConfigError(msg)
    return data


def find_config_file(repo: Path, explicit: str | Path | None) -> Path | None:
    """Pick the config file: explicit path, then `DIRSCRIBE_CONFIG`, then `.dirscribe.yaml` in ``repo``.

    Raises:
        ConfigError: if an explicitly requested file does not exist.
    """
    requested = explicit or env_value(ENV_CONFIG)
    if requested:
        path = Path(requested)
        if not path.is_file():
            msg = f"Config file does not exist: {path}"
            raise ConfigError(msg)
        return path
    default = repo / DEFAULT_CONFIG_FILENAME
    return default if default.is_file() else None


def resolve_settings(cli_values: dict[str, Any]) -> Settings:
    """Merge command line values over config file values.

    Values that are None on the command line were not given and fall back to
    the config file, then to the Settings defaults.

    Raises:
        ConfigError: if the config file or the merged values are invalid.
    """
    given = {key: value for key, value in cli_values.items() if value is not None}
    repo = Path(given.get("repo") or Path.cwd())
    config_path = find_config_file(repo, given.get("config"))
    file_values = load_config_file(config_path) if config_path else {}
    merged = {**file_values, **given}
    if config_path:
        merged["config"] = config_path
    try:
        return Settings(**merged)
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigError(msg) from e
