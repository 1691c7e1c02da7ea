from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from dirscribe import __version__, cli
from dirscribe.settings import ENV_CONFIG

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_CONFIG, raising=False)
    monkeypatch.setattr("dirscribe.settings.ENV_FILE", "")


def _project(root: Path) -> None:
    (root / "src").mkdir(parents=True, exist_ok=True)
    (root / "src" / "main.rs").write_text("fn main() {}\n", encoding="utf-8")
    (root / "README.md").write_text("# demo\n", encoding="utf-8")
    (root / "notes.txt").write_text("scratch\n", encoding="utf-8")


@pytest.mark.unit
def test_parse_args_parses_filters(tmp_path: Path) -> None:
    settings = cli.parse_args(
        [
            "rs,md",
            "--repo",
            str(tmp_path),
            "--exclude-paths",
            "target,docs",
            "--and-keywords",
            "fn,impl",
            "--dont-use-gitignore",
        ],
    )

    assert settings.suffixes == "rs,md"
    assert settings.exclude_paths == ["target", "docs"]
    assert settings.and_keywords == ["fn", "impl"]
    assert settings.dont_use_gitignore is True
    assert settings.diff_only is False


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    captured = capsys.readouterr()
    assert __version__ in captured.out


@pytest.mark.unit
def test_main_writes_output_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = tmp_path / "repo"
    _project(repo)
    output = tmp_path / "bundle.txt"

    exit_code = cli.main(["rs,md", "--repo", str(repo), "--output-path", str(output)])

    assert exit_code == 0
    text = output.read_text(encoding="utf-8")
    assert text.startswith("File Paths:\nREADME.md\nsrc/main.rs\n\nFile Contents:\n\n")
    assert "File: src/main.rs\nfn main() {}\n\n" in text
    assert "notes.txt" not in text
    assert f"written output to {output}" in capsys.readouterr().out


@pytest.mark.unit
def test_main_copies_to_clipboard_by_default(
    tmp_path: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _project(tmp_path)
    copy = mocker.patch.object(cli, "copy_to_clipboard")

    exit_code = cli.main(["md", "--repo", str(tmp_path)])

    assert exit_code == 0
    (content,) = copy.call_args.args
    assert content.startswith("File Paths:\nREADME.md\n")
    assert "copied output to clipboard" in capsys.readouterr().out


@pytest.mark.unit
def test_main_applies_prompt_template(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _project(repo)
    template = tmp_path / "prompt.txt"
    template.write_text("Please review:\n${${CONTENT}$}$END\n", encoding="utf-8")
    output = tmp_path / "bundle.txt"

    exit_code = cli.main(
        [
            "md",
            "--repo",
            str(repo),
            "--prompt-template-path",
            str(template),
            "--output-path",
            str(output),
        ],
    )

    assert exit_code == 0
    text = output.read_text(encoding="utf-8")
    assert text.startswith("Please review:\nFile Paths:\nREADME.md\n")
    assert text.endswith("# demo\n\nEND\n")


@pytest.mark.unit
def test_main_reports_invalid_suffix(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "bundle.txt"

    exit_code = cli.main(["r.s", "--repo", str(tmp_path), "--output-path", str(output)])

    assert exit_code == 1
    assert "Error: Invalid suffix 'r.s'" in capsys.readouterr().err
    assert not output.exists()


@pytest.mark.unit
def test_main_reports_non_utf8_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "bad.txt").write_bytes(b"\xff\xfe")
    output = tmp_path / "bundle.out"

    exit_code = cli.main(["txt", "--repo", str(tmp_path), "--output-path", str(output)])

    assert exit_code == 1
    assert "not valid UTF-8" in capsys.readouterr().err
    assert not output.exists()


@pytest.mark.unit
def test_main_reads_defaults_from_config_file(tmp_path: Path) -> None:
    _project(tmp_path)
    output = tmp_path / "bundle.out"
    (tmp_path / ".dirscribe.yaml").write_text(
        f"suffixes: txt\noutput_path: {output.as_posix()}\n",
        encoding="utf-8",
    )

    exit_code = cli.main(["--repo", str(tmp_path)])

    assert exit_code == 0
    text = output.read_text(encoding="utf-8")
    assert "File: notes.txt\nscratch\n" in text
    assert "README.md" not in text
