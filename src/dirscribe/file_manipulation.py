from __future__ import annotations

import codecs
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from pathspec import GitIgnoreSpec

from dirscribe.config import SNIFF_BYTES, CandidateFile
from dirscribe.exceptions import EncodingError, ReadError, WalkError
from dirscribe.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterator

GIT_DIR = ".git"
GITIGNORE = ".gitignore"


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise.
    """
    try:
        st = path.stat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode)


def sniff_text_utf8(path: Path, nbytes: int = SNIFF_BYTES) -> bool:
    """Check if path points to a UTF-8 encoded text file.

    Only the first ``nbytes`` are inspected. A multi-byte sequence cut by the
    window boundary does not count as invalid.

    Args:
        path (Path): path to test.
        nbytes (int, optional): number of bytes to read for testing. Defaults to 1024.

    Returns:
        bool: True if the sample decodes as UTF-8, False otherwise (including unreadable files).
    """
    try:
        with path.open("rb") as f:
            chunk = f.read(nbytes)
    except OSError:
        return False
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(chunk, final=len(chunk) < nbytes)
    except UnicodeDecodeError:
        return False
    return True


def decode_utf8(data: bytes, path: Path) -> str:
    """Decode file bytes as strict UTF-8.

    Args:
        data (bytes): raw content
        path (Path): where the bytes came from, for the error message

    Raises:
        EncodingError: if the bytes are not valid UTF-8.

    Returns:
        str: the decoded text
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        msg = f"{path} is not valid UTF-8: {e.reason} at byte {e.start}"
        raise EncodingError(msg, path=path) from e


def read_text(path: Path) -> str:
    """Read a live file as UTF-8 text.

    Args:
        path (Path): the file to read

    Raises:
        ReadError: if the file cannot be read.
        EncodingError: if the file is not valid UTF-8.

    Returns:
        str: the file content
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        msg = f"Cannot read {path}: {e.strerror or e}"
        raise ReadError(msg, path=path) from e
    return decode_utf8(data, path)


def load_ignore_spec(path: Path) -> GitIgnoreSpec | None:
    """Compile an ignore file with gitignore semantics.

    Args:
        path (Path): a `.gitignore` (or `info/exclude`) file

    Returns:
        GitIgnoreSpec | None: the compiled rules, or None when the file is
            missing or unreadable (unreadable files are logged).
    """
    if not path.is_file():
        return None
    try:
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        logger.warning("ignore_file_unreadable", path=str(path), error=str(e))
        return None
    return GitIgnoreSpec.from_lines(lines)


class IgnoreRules:
    """Stack of gitignore specs, each anchored at the directory that holds it."""

    def __init__(self) -> None:
        self._specs: list[tuple[str, str, GitIgnoreSpec]] = []

    def add(self, base: str, spec: GitIgnoreSpec | None, *, prefix: str = "") -> None:
        """Register ``spec``.

        Args:
            base (str): directory holding the ignore file, relative to the walk
                root ("" for the root itself or any directory above it)
            spec (GitIgnoreSpec | None): the compiled rules; None is skipped
            prefix (str, optional): for ignore files above the walk root, the
                walk root's path relative to the file's directory, with a
                trailing "/". Defaults to "".
        """
        if spec is not None:
            self._specs.append((base, prefix, spec))

    def is_ignored(self, rel: str, *, is_dir: bool) -> bool:
        """Decide whether ``rel`` (relative to the walk root) is ignored.

        Deeper ignore files take precedence over shallower ones; within one
        file the last matching pattern wins, negations included.

        Args:
            rel (str): POSIX path relative to the walk root
            is_dir (bool): whether the entry is a directory

        Returns:
            bool: True if the entry should be skipped
        """
        for base, prefix, spec in reversed(self._specs):
            if base and not rel.startswith(base + "/"):
                continue
            local = prefix + (rel[len(base) + 1 :] if base else rel)
            if is_dir:
                local += "/"
            result = spec.check_file(local)
            if result.include is not None:
                return bool(result.include)
        return False


def find_work_tree_top(path: Path) -> Path | None:
    """Return the nearest directory at or above ``path`` holding a `.git` entry."""
    for candidate in (path, *path.parents):
        if (candidate / GIT_DIR).exists():
            return candidate
    return None


def git_dir_of(top: Path) -> Path | None:
    """Locate the git directory of the work tree at ``top``.

    `.git` is usually a directory; linked work trees and submodules have a
    `.git` file pointing elsewhere (``gitdir: <path>``).
    """
    dot_git = top / GIT_DIR
    if dot_git.is_dir():
        return dot_git
    try:
        lines = dot_git.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning("git_dir_unreadable", path=str(dot_git), error=str(e))
        return None
    for line in lines:
        if line.startswith("gitdir:"):
            target = Path(line.removeprefix("gitdir:").strip())
            return target if target.is_absolute() else (top / target).resolve()
    return None


def enclosing_ignore_rules(root: Path) -> IgnoreRules:
    """Collect the ignore rules that apply to ``root`` from above it.

    When ``root`` sits inside a git work tree, this loads the repository's
    `info/exclude` and every `.gitignore` from the work tree top down to the
    parent of ``root``, each anchored at its own directory. Outside a work
    tree nothing is loaded.

    Args:
        root (Path): the resolved walk root

    Returns:
        IgnoreRules: rules to extend with the `.gitignore` files found while walking
    """
    rules = IgnoreRules()
    top = find_work_tree_top(root)
    if top is None:
        return rules

    git_dir = git_dir_of(top)
    if git_dir is not None:
        prefix = "" if root == top else f"{relpath(root, top)}/"
        rules.add("", load_ignore_spec(git_dir / "info" / "exclude"), prefix=prefix)

    for directory in reversed(root.parents):
        if directory != top and top not in directory.parents:
            continue
        rules.add("", load_ignore_spec(directory / GITIGNORE), prefix=f"{relpath(root, directory)}/")
    return rules


def walk_candidates(
    root: Path,
    *,
    respect_gitignore: bool,
    include_hidden: bool = True,
) -> Iterator[CandidateFile]:
    """Lazily enumerate the files under ``root`` in a stable order.

    Names are sorted at every level: the files of a directory are yielded
    first, then each sub-directory is visited in turn. A `.git` entry (the
    directory, or the file of a linked work tree) is never entered nor
    yielded. Per-entry errors are logged and the walk continues.

    Args:
        root (Path): the directory to walk
        respect_gitignore (bool): prune entries matched by `.gitignore` files
            (those under ``root`` and, inside a work tree, those between the
            work tree top and ``root``) and by the repository's `info/exclude`
        include_hidden (bool, optional): include dot-files and dot-directories. Defaults to True.

    Raises:
        WalkError: if ``root`` does not exist or is not a directory.

    Yields:
        Iterator[CandidateFile]: one entry per file
    """
    root = root.resolve()
    if not root.is_dir():
        msg = f"Directory not found: {root}"
        raise WalkError(msg, root=root)

    rules = enclosing_ignore_rules(root) if respect_gitignore else IgnoreRules()

    def on_error(err: OSError) -> None:
        logger.warning("walk_entry_error", path=str(err.filename), error=err.strerror or str(err))

    for current, dirs, files in os.walk(root, onerror=on_error):
        here = Path(current)
        base = relpath(here, root) if here != root else ""
        if respect_gitignore:
            rules.add(base, load_ignore_spec(here / GITIGNORE))

        kept_dirs: list[str] = []
        for d in sorted(dirs):
            rel = f"{base}/{d}" if base else d
            if d == GIT_DIR or (not include_hidden and d.startswith(".")):
                continue
            if respect_gitignore and rules.is_ignored(rel, is_dir=True):
                continue
            kept_dirs.append(d)
        dirs[:] = kept_dirs

        for f in sorted(files):
            rel = f"{base}/{f}" if base else f
            if f == GIT_DIR or (not include_hidden and f.startswith(".")):
                continue
            if respect_gitignore and rules.is_ignored(rel, is_dir=False):
                continue
            yield CandidateFile(path=here / f, rel=rel)
