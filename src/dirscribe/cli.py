# /// script
# requires-python = ">=3.13"
# dependencies = [
#     "pathspec",
#     "pydantic",
#     "pyperclip",
#     "python-dotenv",
#     "pyyaml",
#     "structlog",
# ]
# ///
"""
dirscribe: bundle a directory's files (and their diffs) into one text.

Overview
--------
Walks a directory, keeps the files that match the requested extensions or
names, path prefixes and keywords, and writes a single text document:

1) a ``File Paths:`` block listing every selected file,
2) a ``File Contents:`` block with each file's content,
3) with ``--diff-only``, only the files changed in a commit range, each
   followed by its part of the range's unified diff.

The result goes to ``--output-path`` or, by default, to the clipboard. A
``--prompt-template-path`` file containing ``${${CONTENT}$}$`` can wrap it.
Defaults may come from ``.dirscribe.yaml`` in the processed directory.

Usage
-----
Run ``dirscribe --help`` for full options. Common examples:
    - Rust and Markdown files, respecting .gitignore, to a file:
        dirscribe rs,md --exclude-paths tests --output-path bundle.txt

    - Every text-like file mentioning both keywords:
        dirscribe '*' --and-keywords parse,token

    - Files changed since a commit, with their diffs:
        dirscribe py --diff-only --start-commit-id HEAD~3
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dirscribe import __version__
from dirscribe.exceptions import DirscribeError
from dirscribe.git import DiffScope
from dirscribe.logging import logger, setup_logging
from dirscribe.output_construction import apply_template, assemble, copy_to_clipboard, write_output
from dirscribe.selection import select
from dirscribe.settings import Settings, resolve_settings
from dirscribe.validation import validate_settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dirscribe",
        description="Combine the contents of selected files from a directory into one text.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "suffixes",
        nargs="?",
        default=None,
        help="Comma-separated extensions or file names (e.g. 'rs,md,Dockerfile'), or '*' for all text files.",
    )
    p.add_argument("--repo", type=str, default=None, help="Directory to process (default: current directory).")
    p.add_argument("--output-path", type=str, default=None, help="Write output here instead of the clipboard.")
    p.add_argument(
        "--prompt-template-path",
        type=str,
        default=None,
        help="Template file containing the ${${CONTENT}$}$ placeholder.",
    )
    p.add_argument(
        "--dont-use-gitignore",
        action="store_true",
        default=None,
        help="Include files that are ignored by .gitignore rules.",
    )
    p.add_argument("--exclude-paths", type=str, default=None, help="Comma-separated path prefixes to exclude.")
    p.add_argument("--include-paths", type=str, default=None, help="Comma-separated path prefixes to include.")
    p.add_argument(
        "--or-keywords",
        type=str,
        default=None,
        help="Comma-separated keywords; keep files containing at least one.",
    )
    p.add_argument(
        "--and-keywords",
        type=str,
        default=None,
        help="Comma-separated keywords; keep files containing all of them.",
    )
    p.add_argument(
        "--exclude-keywords",
        type=str,
        default=None,
        help="Comma-separated keywords; drop files containing any of them.",
    )
    p.add_argument(
        "--diff-only",
        action="store_true",
        default=None,
        help="Only files changed in the commit range, with their diffs.",
    )
    p.add_argument("--start-commit-id", type=str, default=None, help="Start of the commit range.")
    p.add_argument("--end-commit-id", type=str, default=None, help="End of the commit range.")
    p.add_argument("--config", type=str, default=None, help="YAML config file (default: <repo>/.dirscribe.yaml).")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments and merge them with the config file.

    Raises:
        ConfigError: if the config file or the merged values are invalid.
    """
    args = build_parser().parse_args(argv)
    return resolve_settings(vars(args))


def build_bundle(settings: Settings) -> str:
    """Validate ``settings``, select files and assemble the final text.

    Raises:
        DirscribeError: on any validation, walk, git or read failure.
    """
    validate_settings(settings)
    root = Path(settings.repo).resolve()
    criteria = settings.criteria()
    diff_range = settings.diff_range()
    scope = DiffScope(root, diff_range) if diff_range is not None else None

    admitted = select(root, criteria, diff_range, diff_only=settings.diff_only, diff_scope=scope)
    content = assemble(
        admitted,
        root=root,
        diff_only=settings.diff_only,
        diff_range=diff_range,
        diff_scope=scope,
    )
    if settings.prompt_template_path is not None:
        content = apply_template(content, settings.prompt_template_path)
    return content


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = parse_args(argv)
        if settings.log_file:
            setup_logging(settings.log_file)
        content = build_bundle(settings)
        if settings.output_path is not None:
            write_output(content, settings.output_path)
            message = f"Successfully processed directory and written output to {settings.output_path}"
        else:
            copy_to_clipboard(content)
            message = "Successfully processed directory and copied output to clipboard"
    except DirscribeError as e:
        logger.error("run_failed", error=str(e), kind=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(message)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
