from pathlib import Path

import pyperclip
import pytest
from pytest_mock import MockerFixture

from dirscribe.config import AdmittedFile, DiffRange
from dirscribe.exceptions import EncodingError, OutputError, TemplateError
from dirscribe.output_construction import (
    apply_template,
    assemble,
    copy_to_clipboard,
    newline_terminated,
    write_output,
)


def _admit(root: Path, rel: str, data: str | bytes) -> AdmittedFile:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, bytes):
        path.write_bytes(data)
    else:
        path.write_text(data, encoding="utf-8")
    return AdmittedFile(path=path, rel=rel)


@pytest.mark.unit
def test_newline_terminated() -> None:
    assert newline_terminated("") == ""
    assert newline_terminated("a") == "a\n"
    assert newline_terminated("a\n") == "a\n"


@pytest.mark.unit
def test_assemble_without_files(tmp_path: Path) -> None:
    assert assemble([], root=tmp_path) == "File Paths:\n\nFile Contents:\n\n"


@pytest.mark.unit
def test_assemble_exact_layout(tmp_path: Path) -> None:
    files = [
        _admit(tmp_path, "src/main.rs", "fn main() {}"),
        _admit(tmp_path, "README.md", "# Title\n"),
    ]

    out = assemble(files, root=tmp_path)

    assert out == (
        "File Paths:\n"
        "src/main.rs\n"
        "README.md\n"
        "\n"
        "File Contents:\n"
        "\n"
        "File: src/main.rs\n"
        "fn main() {}\n"
        "\n"
        "File: README.md\n"
        "# Title\n"
        "\n"
    )


@pytest.mark.unit
def test_assemble_empty_file_section(tmp_path: Path) -> None:
    files = [_admit(tmp_path, "empty.txt", "")]

    assert assemble(files, root=tmp_path).endswith("File: empty.txt\n\n")


@pytest.mark.unit
def test_assemble_is_deterministic(tmp_path: Path) -> None:
    files = [_admit(tmp_path, "a.txt", "one"), _admit(tmp_path, "b.txt", "two\n")]

    assert assemble(files, root=tmp_path) == assemble(files, root=tmp_path)


@pytest.mark.unit
def test_assemble_fails_whole_bundle_on_bad_utf8(tmp_path: Path) -> None:
    files = [_admit(tmp_path, "a.txt", "fine"), _admit(tmp_path, "b.txt", b"\xff")]

    with pytest.raises(EncodingError):
        assemble(files, root=tmp_path)


@pytest.mark.unit
def test_assemble_diff_mode_appends_fragments(tmp_path: Path, mocker: MockerFixture) -> None:
    files = [_admit(tmp_path, "a.py", "x = 1\n"), _admit(tmp_path, "b.py", "y = 2")]
    scope = mocker.Mock()
    scope.fragment_for.side_effect = lambda rel: "diff --git a/a.py b/a.py\n+x = 1" if rel == "a.py" else ""

    out = assemble(files, root=tmp_path, diff_only=True, diff_range=DiffRange(start="HEAD"), diff_scope=scope)

    assert "File: a.py\nx = 1\n\nDiff:\ndiff --git a/a.py b/a.py\n+x = 1\n\n" in out
    assert out.endswith("File: b.py\ny = 2\n\nDiff:\n\n")


@pytest.mark.unit
def test_assemble_reads_end_revision(tmp_path: Path, mocker: MockerFixture) -> None:
    files = [_admit(tmp_path, "a.py", "live\n")]
    scope = mocker.Mock()
    scope.fragment_for.return_value = ""
    read_blob = mocker.patch("dirscribe.output_construction.read_blob", return_value=b"historical\n")

    out = assemble(
        files,
        root=tmp_path,
        diff_only=True,
        diff_range=DiffRange(start="abc", end="def"),
        diff_scope=scope,
    )

    read_blob.assert_called_once_with(tmp_path, "def", "a.py")
    assert "File: a.py\nhistorical\n" in out
    assert "live" not in out


@pytest.mark.unit
def test_apply_template_replaces_every_placeholder(tmp_path: Path) -> None:
    template = tmp_path / "prompt.txt"
    template.write_text("Review:\n${${CONTENT}$}$\nAgain: ${${CONTENT}$}$", encoding="utf-8")

    assert apply_template("BODY", template) == "Review:\nBODY\nAgain: BODY"


@pytest.mark.unit
def test_apply_template_requires_placeholder(tmp_path: Path) -> None:
    template = tmp_path / "prompt.txt"
    template.write_text("no marker", encoding="utf-8")

    with pytest.raises(TemplateError) as exc:
        apply_template("BODY", template)
    assert exc.value.template == template


@pytest.mark.unit
def test_apply_template_unreadable(tmp_path: Path) -> None:
    with pytest.raises(TemplateError):
        apply_template("BODY", tmp_path / "missing.txt")


@pytest.mark.unit
def test_write_output(tmp_path: Path) -> None:
    target = tmp_path / "bundle.txt"

    write_output("héllo\n", target)

    assert target.read_text(encoding="utf-8") == "héllo\n"


@pytest.mark.unit
def test_write_output_into_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(OutputError):
        write_output("x", tmp_path / "missing" / "bundle.txt")


@pytest.mark.unit
def test_copy_to_clipboard(mocker: MockerFixture) -> None:
    copy = mocker.patch("pyperclip.copy")

    copy_to_clipboard("bundle")

    copy.assert_called_once_with("bundle")


@pytest.mark.unit
def test_copy_to_clipboard_unavailable(mocker: MockerFixture) -> None:
    mocker.patch("pyperclip.copy", side_effect=pyperclip.PyperclipException("no clipboard"))

    with pytest.raises(OutputError) as exc:
        copy_to_clipboard("bundle")
    assert "no clipboard" in str(exc.value)
