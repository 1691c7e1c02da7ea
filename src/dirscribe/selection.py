from __future__ import annotations

from typing import TYPE_CHECKING

from dirscribe.config import AdmittedFile, DiffRange
from dirscribe.file_manipulation import walk_candidates
from dirscribe.filters import is_excluded, is_included, matches, passes_keyword_filters
from dirscribe.git import DiffScope
from dirscribe.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from dirscribe.config import CandidateFile, SelectionCriteria


def judge(
    candidate: CandidateFile,
    criteria: SelectionCriteria,
    changed: frozenset[str] | None,
) -> bool:
    """Apply every admission rule to one candidate, cheapest first.

    The order is fixed: diff membership, name/extension rule, exclude
    prefixes, include prefixes, then keywords (the only rule that reads the
    file). The first failing rule rejects the candidate.

    Args:
        candidate (CandidateFile): the walked file
        criteria (SelectionCriteria): the admission rules
        changed (frozenset[str] | None): paths changed in the commit range,
            or None when selection is not diff-scoped

    Raises:
        ReadError: if the file cannot be read for keyword matching.
        EncodingError: if the file is not valid UTF-8.

    Returns:
        bool: True if the candidate is admitted
    """
    if changed is not None and candidate.rel not in changed:
        return False
    if not matches(candidate.path, criteria):
        return False
    if is_excluded(candidate.rel, criteria.exclude_paths):
        return False
    if not is_included(candidate.rel, criteria.include_paths):
        return False
    return passes_keyword_filters(candidate.path, criteria)


def select(
    root: Path,
    criteria: SelectionCriteria,
    diff_range: DiffRange | None = None,
    *,
    diff_only: bool = False,
    diff_scope: DiffScope | None = None,
) -> list[AdmittedFile]:
    """Walk ``root`` and return the admitted files in walk order.

    Args:
        root (Path): the traversal root
        criteria (SelectionCriteria): the admission rules
        diff_range (DiffRange | None, optional): commit range for diff-scoped selection. Defaults to None.
        diff_only (bool, optional): keep only files changed in ``diff_range``. Defaults to False.
        diff_scope (DiffScope | None, optional): an existing scope to reuse (its
            changed paths are computed once). Defaults to None.

    Raises:
        WalkError: if ``root`` is missing.
        RevisionError: if the commit range cannot be resolved.
        DiffError: if git cannot compute the diff.
        ReadError: if a candidate cannot be read for keyword matching.
        EncodingError: if a candidate is not valid UTF-8.

    Returns:
        list[AdmittedFile]: admitted files, never re-sorted or de-duplicated
    """
    changed: frozenset[str] | None = None
    if diff_only:
        scope = diff_scope or DiffScope(root, diff_range or DiffRange())
        changed = scope.resolve_changed_paths()

    admitted: list[AdmittedFile] = []
    seen = 0
    for candidate in walk_candidates(root, respect_gitignore=criteria.respects_gitignore):
        seen += 1
        if judge(candidate, criteria, changed):
            admitted.append(AdmittedFile(path=candidate.path, rel=candidate.rel))
    logger.info("selection_done", root=str(root), candidates=seen, admitted=len(admitted))
    return admitted
