"""Checks run on the resolved settings before anything is walked."""

from __future__ import annotations

import stat
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from dirscribe.config import MAX_KEYWORD_LENGTH, MAX_SUFFIX_LENGTH, MAX_TEMPLATE_BYTES, WILDCARD
from dirscribe.exceptions import ConfigError, RevisionError
from dirscribe.git import ensure_work_tree, is_ancestor, resolve_commit

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dirscribe.settings import Settings


def validate_suffixes(suffixes: str) -> None:
    if not suffixes:
        msg = "Suffixes cannot be empty"
        raise ConfigError(msg)
    if suffixes == WILDCARD:
        return
    for suffix in suffixes.split(","):
        if not suffix:
            msg = "Empty suffix found after splitting"
            raise ConfigError(msg)
        if not suffix.isalnum():
            msg = f"Invalid suffix '{suffix}': must be alphanumeric"
            raise ConfigError(msg)
        if len(suffix) > MAX_SUFFIX_LENGTH:
            msg = f"Suffix '{suffix}' exceeds maximum length of {MAX_SUFFIX_LENGTH}"
            raise ConfigError(msg)


def validate_keywords(keywords: Sequence[str], field_name: str) -> None:
    for keyword in keywords:
        if not keyword:
            msg = f"Empty keyword found in {field_name}"
            raise ConfigError(msg)
        if len(keyword) > MAX_KEYWORD_LENGTH:
            msg = f"Keyword in {field_name} exceeds maximum length of {MAX_KEYWORD_LENGTH}"
            raise ConfigError(msg)
        if not keyword.isascii():
            msg = f"Non-ASCII characters found in {field_name} keyword: {keyword}"
            raise ConfigError(msg)


def _check_prefix(prefix: str, kind: str) -> None:
    path = PurePosixPath(prefix)
    if not prefix or path.is_absolute() or ".." in path.parts:
        msg = f"{kind} path must be relative to the processed directory: {prefix!r}"
        raise ConfigError(msg)


def validate_path_filters(exclude_paths: Sequence[str], include_paths: Sequence[str]) -> None:
    """Check path prefixes.

    Prefixes must stay inside the processed directory, and an include prefix
    may not sit inside an exclude prefix (it could never match).

    Raises:
        ConfigError: on the first offending prefix.
    """
    for prefix in exclude_paths:
        _check_prefix(prefix, "Exclude")
    for prefix in include_paths:
        _check_prefix(prefix, "Include")
        if any(prefix.startswith(excluded) for excluded in exclude_paths):
            msg = f"Include path conflicts with exclude path: {prefix}"
            raise ConfigError(msg)


def validate_template_path(path: Path) -> None:
    try:
        st = path.stat()
    except FileNotFoundError as e:
        msg = f"Template file does not exist: {path}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot access template file {path}: {e.strerror or e}"
        raise ConfigError(msg) from e
    if not stat.S_ISREG(st.st_mode):
        msg = f"Template path is not a file: {path}"
        raise ConfigError(msg)
    if st.st_size > MAX_TEMPLATE_BYTES:
        msg = "Template file is too large (max 100MB)"
        raise ConfigError(msg)


def validate_output_path(path: Path) -> None:
    if path.is_dir():
        msg = f"Output path is a directory: {path}"
        raise ConfigError(msg)


def validate_git_args(
    repo: Path,
    *,
    diff_only: bool,
    start_commit: str | None,
    end_commit: str | None,
) -> None:
    """Check the commit range flags and, in diff mode, the revisions themselves.

    Raises:
        ConfigError: if the flag combination is illegal, the directory is not
            a git work tree, a revision does not name a commit, or the start is
            not an ancestor of the end.
    """
    if diff_only and start_commit is None:
        msg = "--start-commit-id must be provided when using --diff-only"
        raise ConfigError(msg)
    if start_commit is not None and not diff_only:
        msg = "--diff-only must be set when using --start-commit-id"
        raise ConfigError(msg)
    if end_commit is not None and not diff_only:
        msg = "--diff-only must be set when using --end-commit-id"
        raise ConfigError(msg)
    if end_commit is not None and start_commit is None:
        msg = "--start-commit-id must be set when using --end-commit-id"
        raise ConfigError(msg)
    if not diff_only:
        return

    try:
        ensure_work_tree(repo)
        for name, ref in (("start_commit_id", start_commit), ("end_commit_id", end_commit)):
            if ref is not None:
                try:
                    resolve_commit(repo, ref)
                except RevisionError as e:
                    msg = f"Invalid {name}: {ref}"
                    raise ConfigError(msg) from e
        if start_commit is not None and end_commit is not None and not is_ancestor(repo, start_commit, end_commit):
            msg = "start_commit_id must be an ancestor of end_commit_id"
            raise ConfigError(msg)
    except RevisionError as e:
        raise ConfigError(str(e)) from e


def validate_settings(settings: Settings) -> None:
    """Validate everything that can be checked before the walk starts.

    Raises:
        ConfigError: on the first problem found.
    """
    repo = Path(settings.repo)
    if not repo.is_dir():
        msg = f"Directory not found: {repo}"
        raise ConfigError(msg)
    validate_suffixes(settings.suffixes)
    if settings.prompt_template_path is not None:
        validate_template_path(settings.prompt_template_path)
    if settings.output_path is not None:
        validate_output_path(settings.output_path)
    validate_git_args(
        repo,
        diff_only=settings.diff_only,
        start_commit=settings.start_commit_id,
        end_commit=settings.end_commit_id,
    )
    validate_keywords(settings.or_keywords, "or_keywords")
    validate_keywords(settings.and_keywords, "and_keywords")
    validate_keywords(settings.exclude_keywords, "exclude_keywords")
    validate_path_filters(settings.exclude_paths, settings.include_paths)
