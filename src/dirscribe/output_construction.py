from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pyperclip

from dirscribe.config import CONTENT_PLACEHOLDER, DiffRange
from dirscribe.exceptions import OutputError, TemplateError
from dirscribe.file_manipulation import decode_utf8, read_text
from dirscribe.git import DiffScope, read_blob
from dirscribe.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from dirscribe.config import AdmittedFile


def newline_terminated(text: str) -> str:
    """Append a newline to non-empty text that lacks one."""
    if not text or text.endswith("\n"):
        return text
    return text + "\n"


def read_content(file: AdmittedFile, *, root: Path, diff_range: DiffRange | None) -> str:
    """Read the content of an admitted file for the bundle.

    When the commit range has an end, the file is read as of that revision;
    otherwise the live file is read.

    Args:
        file (AdmittedFile): the file to read
        root (Path): the traversal root
        diff_range (DiffRange | None): the commit range, if any

    Raises:
        HistoricalReadError: if the file does not exist at the end revision.
        ReadError: if the live file cannot be read.
        EncodingError: if the content is not valid UTF-8.

    Returns:
        str: the file content
    """
    if diff_range is not None and diff_range.end:
        return decode_utf8(read_blob(root, diff_range.end, file.rel), file.path)
    return read_text(file.path)


def assemble(
    admitted: Sequence[AdmittedFile],
    *,
    root: Path,
    diff_only: bool = False,
    diff_range: DiffRange | None = None,
    diff_scope: DiffScope | None = None,
) -> str:
    """Build the bundle text for the admitted files.

    The bundle starts with a ``File Paths:`` block listing every path, then a
    ``File Contents:`` block with one ``File: <path>`` section per file, in
    the same order. In diff mode each section also carries a ``Diff:`` part
    with the file's fragment of the range's unified diff (computed once).
    Every section ends with a single blank line.

    Args:
        admitted (Sequence[AdmittedFile]): files in selection order
        root (Path): the traversal root
        diff_only (bool, optional): append per-file diff fragments. Defaults to False.
        diff_range (DiffRange | None, optional): the commit range. Defaults to None.
        diff_scope (DiffScope | None, optional): an existing scope to reuse. Defaults to None.

    Raises:
        ReadError: if a file cannot be read (HistoricalReadError for missing blobs).
        EncodingError: if a file is not valid UTF-8.
        RevisionError: if the commit range cannot be resolved.
        DiffError: if git cannot compute the diff.

    Returns:
        str: the bundle; nothing is returned if any file fails
    """
    out = io.StringIO()
    out.write("File Paths:\n")
    for file in admitted:
        out.write(f"{file.rel}\n")
    out.write("\nFile Contents:\n\n")

    scope: DiffScope | None = None
    if diff_only:
        scope = diff_scope or DiffScope(root, diff_range or DiffRange())

    for file in admitted:
        content = read_content(file, root=root, diff_range=diff_range)
        out.write(f"File: {file.rel}\n")
        out.write(newline_terminated(content))
        if scope is not None:
            out.write("\nDiff:\n")
            out.write(newline_terminated(scope.fragment_for(file.rel)))
        out.write("\n")

    return out.getvalue()


def apply_template(content: str, template_path: Path) -> str:
    """Substitute the bundle into a prompt template.

    Args:
        content (str): the bundle
        template_path (Path): a UTF-8 template containing ``${${CONTENT}$}$``

    Raises:
        TemplateError: if the template cannot be read or lacks the placeholder.

    Returns:
        str: the template with every placeholder replaced by ``content``
    """
    try:
        template = template_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read template file {template_path}: {e}"
        raise TemplateError(msg, template=template_path) from e
    if CONTENT_PLACEHOLDER not in template:
        msg = f"Template file must contain the placeholder '{CONTENT_PLACEHOLDER}'"
        raise TemplateError(msg, template=template_path)
    return template.replace(CONTENT_PLACEHOLDER, content)


def write_output(content: str, path: Path) -> None:
    """Write the bundle to ``path`` as UTF-8.

    Raises:
        OutputError: if the file cannot be written.
    """
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        msg = f"Failed to write {path}: {e.strerror or e}"
        raise OutputError(msg) from e
    logger.info("bundle_written", path=str(path), chars=len(content))


def copy_to_clipboard(content: str) -> None:
    """Put the bundle on the system clipboard.

    Raises:
        OutputError: if no clipboard mechanism is available.
    """
    try:
        pyperclip.copy(content)
    except pyperclip.PyperclipException as e:
        msg = f"Failed to set clipboard contents: {e}"
        raise OutputError(msg) from e
    logger.info("bundle_copied", chars=len(content))
