"""Commit range resolution and diffs, backed by the ``git`` command line."""

from __future__ import annotations

import os
import subprocess  # noqa: S404
from dataclasses import dataclass
from enum import StrEnum, auto
from functools import cached_property
from typing import TYPE_CHECKING

from dirscribe.diff_fragments import fragment
from dirscribe.exceptions import (
    DiffError,
    GitCommandError,
    HistoricalReadError,
    NotAGitRepositoryError,
    RevisionError,
)
from dirscribe.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from dirscribe.config import DiffRange

HEAD = "HEAD"

# Every diff is computed the same way so paths and patches agree.
_DIFF_OPTIONS = ("--no-color", "--no-ext-diff", "--no-renames", "--relative")


def run_git(args: Sequence[str], cwd: Path, *, ok_codes: Sequence[int] = (0,)) -> subprocess.CompletedProcess[bytes]:
    """Run a git command in ``cwd`` and return the completed process.

    Args:
        args (Sequence[str]): arguments passed after ``git``
        cwd (Path): working directory of the command
        ok_codes (Sequence[int], optional): exit codes treated as success. Defaults to (0,).

    Raises:
        GitCommandError: if git is missing or exits with another code.

    Returns:
        subprocess.CompletedProcess[bytes]: the finished process, stdout as bytes
    """
    cmd = ["git", "-c", "core.quotepath=off", *args]
    try:
        proc = subprocess.run(  # noqa: S603
            cmd,
            cwd=str(cwd),
            capture_output=True,
            check=False,
        )
    except FileNotFoundError as e:
        msg = "git is not installed or not in PATH"
        raise GitCommandError(msg, command=" ".join(cmd), returncode=-1) from e
    if proc.returncode not in ok_codes:
        raise GitCommandError(
            "git command failed",
            command=" ".join(cmd),
            returncode=proc.returncode,
            stdout=os.fsdecode(proc.stdout),
            stderr=os.fsdecode(proc.stderr),
        )
    return proc


def ensure_work_tree(root: Path) -> None:
    """Raise NotAGitRepositoryError unless ``root`` is inside a git work tree."""
    try:
        out = run_git(["rev-parse", "--is-inside-work-tree"], root).stdout
    except (GitCommandError, OSError) as e:
        msg = f"Not a git repository: {root}"
        raise NotAGitRepositoryError(msg, folder=root) from e
    if out.strip() != b"true":
        msg = f"Not a git work tree: {root}"
        raise NotAGitRepositoryError(msg, folder=root)


def _rev_parse(root: Path, expr: str, ref: str) -> str:
    if not ref or ref.startswith("-"):
        msg = f"Invalid revision: {ref!r}"
        raise RevisionError(msg, revision=ref)
    try:
        out = run_git(["rev-parse", "--verify", "--quiet", expr], root).stdout
    except GitCommandError as e:
        msg = f"Cannot resolve revision {ref!r}"
        raise RevisionError(msg, revision=ref) from e
    return out.decode("ascii").strip()


def resolve_commit(root: Path, ref: str) -> str:
    """Peel ``ref`` to a commit id.

    Raises:
        RevisionError: if ``ref`` does not name a commit.
    """
    return _rev_parse(root, f"{ref}^{{commit}}", ref)


def resolve_tree(root: Path, ref: str) -> str:
    """Resolve ``ref`` to the id of its commit's tree.

    Args:
        root (Path): any directory inside the work tree
        ref (str): a revision (sha, branch, tag, ``HEAD~2``, ...)

    Raises:
        RevisionError: if ``ref`` is unknown or does not name a commit.

    Returns:
        str: the tree object id
    """
    commit = resolve_commit(root, ref)
    return _rev_parse(root, f"{commit}^{{tree}}", ref)


def is_ancestor(root: Path, ancestor: str, descendant: str) -> bool:
    """Check whether commit ``ancestor`` is reachable from ``descendant``.

    Raises:
        RevisionError: if either revision cannot be resolved.
    """
    old = resolve_commit(root, ancestor)
    new = resolve_commit(root, descendant)
    try:
        proc = run_git(["merge-base", "--is-ancestor", old, new], root, ok_codes=(0, 1))
    except GitCommandError as e:
        msg = f"Cannot compare {ancestor!r} and {descendant!r}"
        raise RevisionError(msg, revision=ancestor) from e
    return proc.returncode == 0


class DiffKind(StrEnum):
    """Which two snapshots a diff compares."""

    TREE_TO_WORKDIR = auto()
    TREE_TO_TREE = auto()


@dataclass(frozen=True)
class DiffHandle:
    """A resolved diff: the old tree and, for tree-to-tree diffs, the new one."""

    kind: DiffKind
    old_tree: str
    new_tree: str | None = None

    @property
    def revisions(self) -> list[str]:
        if self.kind is DiffKind.TREE_TO_WORKDIR:
            return [self.old_tree]
        return [self.old_tree, str(self.new_tree)]


def resolve_diff(root: Path, diff_range: DiffRange) -> DiffHandle:
    """Turn a commit range into the pair of snapshots to compare.

    ============  ==========  ===========================
    start         end         compares
    ============  ==========  ===========================
    None          None        HEAD -> working tree
    start         None        start -> working tree
    start         end         start -> end
    None          end         HEAD -> end
    ============  ==========  ===========================

    Raises:
        RevisionError: if a revision (including HEAD) cannot be resolved.
    """
    old_tree = resolve_tree(root, diff_range.start or HEAD)
    if diff_range.end is None:
        return DiffHandle(kind=DiffKind.TREE_TO_WORKDIR, old_tree=old_tree)
    return DiffHandle(kind=DiffKind.TREE_TO_TREE, old_tree=old_tree, new_tree=resolve_tree(root, diff_range.end))


def _run_diff(root: Path, handle: DiffHandle, *extra: str) -> bytes:
    try:
        return run_git(["diff", *_DIFF_OPTIONS, *extra, *handle.revisions, "--"], root).stdout
    except GitCommandError as e:
        msg = f"git diff failed for {' '.join(handle.revisions)}"
        raise DiffError(msg) from e


def changed_paths(root: Path, handle: DiffHandle) -> frozenset[str]:
    """Collect the post-change path of every delta, relative to ``root``.

    Deleted files have no post-change path and are skipped.

    Raises:
        DiffError: if git cannot compute the diff.
    """
    out = _run_diff(root, handle, "--name-only", "-z", "--diff-filter=d")
    return frozenset(os.fsdecode(name) for name in out.split(b"\0") if name)


def unified_diff(root: Path, handle: DiffHandle) -> str:
    """Render the diff as patch text, files in git's natural order.

    Lines that are not valid UTF-8 are dropped.

    Raises:
        DiffError: if git cannot compute the diff.
    """
    out = _run_diff(root, handle)
    lines: list[str] = []
    dropped = 0
    for raw in out.split(b"\n"):
        try:
            lines.append(raw.decode("utf-8"))
        except UnicodeDecodeError:
            dropped += 1
    if dropped:
        logger.warning("diff_lines_dropped", count=dropped, reason="not valid UTF-8")
    return "\n".join(lines)


def read_blob(root: Path, revision: str, rel: str) -> bytes:
    """Read the bytes of ``rel`` as of ``revision``.

    Args:
        root (Path): the traversal root, inside the work tree
        revision (str): the revision to read from
        rel (str): POSIX path relative to ``root``

    Raises:
        HistoricalReadError: if the path does not exist in that revision.

    Returns:
        bytes: the blob content
    """
    try:
        return run_git(["cat-file", "blob", f"{revision}:./{rel}"], root).stdout
    except GitCommandError as e:
        msg = f"{rel} does not exist at revision {revision!r}"
        raise HistoricalReadError(msg, path=root / rel, revision=revision) from e


class DiffScope:
    """Changed paths and patch text for one commit range, computed once each."""

    def __init__(self, root: Path, diff_range: DiffRange) -> None:
        self.root = root
        self.diff_range = diff_range

    @cached_property
    def handle(self) -> DiffHandle:
        return resolve_diff(self.root, self.diff_range)

    @cached_property
    def _changed_paths(self) -> frozenset[str]:
        paths = changed_paths(self.root, self.handle)
        logger.info("diff_scope_resolved", root=str(self.root), kind=str(self.handle.kind), changed=len(paths))
        return paths

    @cached_property
    def _unified_diff(self) -> str:
        return unified_diff(self.root, self.handle)

    def resolve_changed_paths(self) -> frozenset[str]:
        return self._changed_paths

    def unified_diff(self) -> str:
        return self._unified_diff

    def fragment_for(self, rel: str) -> str:
        """Return the part of the range's diff attributed to ``rel``."""
        return fragment(self._unified_diff, rel)
