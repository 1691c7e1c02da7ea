"""Admission predicates: name/extension rules, path prefixes and keywords."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dirscribe.config import EXTENSIONLESS_TEXT_FILES, TEXT_EXTENSIONS
from dirscribe.file_manipulation import is_regular_file, read_text, sniff_text_utf8

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from dirscribe.config import SelectionCriteria


def file_extension(path: Path) -> str:
    """Return the extension of ``path`` without the leading dot ("" if none)."""
    return path.suffix[1:]


def is_likely_text_file(path: Path) -> bool:
    """Heuristic check used when every text-like file is requested.

    Well-known text extensions and extension-less names are accepted
    outright; anything else is accepted only if its first 1024 bytes
    decode as UTF-8.

    Args:
        path (Path): the file to judge

    Returns:
        bool: True if the file looks like text
    """
    if path.name in EXTENSIONLESS_TEXT_FILES:
        return True
    if file_extension(path).lower() in TEXT_EXTENSIONS:
        return True
    return sniff_text_utf8(path)


def matches(path: Path, criteria: SelectionCriteria) -> bool:
    """Decide whether a file qualifies by extension, filename or wildcard.

    Args:
        path (Path): the file to judge
        criteria (SelectionCriteria): holds the suffix rule set

    Returns:
        bool: True if the file is admitted by the rule set
    """
    if not is_regular_file(path):
        return False
    if criteria.is_wildcard:
        return is_likely_text_file(path)
    ext = file_extension(path)
    if ext:
        return ext in criteria.suffixes
    return path.name in criteria.suffixes


def is_excluded(rel: str, exclude_paths: Sequence[str]) -> bool:
    """Check ``rel`` against exclude prefixes (plain string prefixes)."""
    return any(rel.startswith(prefix) for prefix in exclude_paths)


def is_included(rel: str, include_paths: Sequence[str]) -> bool:
    """Check ``rel`` against include prefixes; no prefixes means everything is included."""
    if not include_paths:
        return True
    return any(rel.startswith(prefix) for prefix in include_paths)


def admits(
    content: str,
    or_keywords: Sequence[str],
    and_keywords: Sequence[str],
    exclude_keywords: Sequence[str],
) -> bool:
    """Apply keyword admission rules to file content.

    Matching is literal, case-sensitive substring containment. Exclusion is
    checked first and always wins.

    Args:
        content (str): the file content
        or_keywords (Sequence[str]): at least one must be present, when non-empty
        and_keywords (Sequence[str]): all must be present, when non-empty
        exclude_keywords (Sequence[str]): none may be present

    Returns:
        bool: True if the content passes every keyword rule
    """
    if any(keyword in content for keyword in exclude_keywords):
        return False
    if or_keywords and not any(keyword in content for keyword in or_keywords):
        return False
    return not (and_keywords and not all(keyword in content for keyword in and_keywords))


def passes_keyword_filters(path: Path, criteria: SelectionCriteria) -> bool:
    """Read ``path`` and apply the keyword rules of ``criteria``.

    The file is always read, even without keywords, so unreadable or
    non-UTF-8 files surface as errors instead of slipping into the bundle.

    Raises:
        ReadError: if the file cannot be read.
        EncodingError: if the file is not valid UTF-8.
    """
    content = read_text(path)
    return admits(
        content,
        criteria.or_keywords,
        criteria.and_keywords,
        criteria.exclude_keywords,
    )
