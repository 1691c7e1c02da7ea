from __future__ import annotations

from pathlib import PurePosixPath

FILE_HEADER = "diff --git"


def fragment(diff_text: str, target: str) -> str:
    """Extract the sections of a multi-file unified diff that belong to ``target``.

    A ``diff --git`` header line opens a new section, kept when the base
    filename of ``target`` occurs in that header. Only the base filename is
    compared, so files sharing a name in different directories receive each
    other's sections as well.

    Args:
        diff_text (str): the whole unified diff
        target (str): path of the file, only its last component is used

    Returns:
        str: the kept lines joined by newlines, "" when nothing matches
    """
    name = PurePosixPath(target).name
    if not name:
        return ""
    kept: list[str] = []
    in_section = False
    for line in diff_text.splitlines():
        if line.startswith(FILE_HEADER):
            in_section = name in line
        if in_section:
            kept.append(line)
    return "\n".join(kept)
