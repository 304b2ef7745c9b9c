from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from repo_digest import cli

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    WriteFiles = Callable[[Path, dict[str, str | bytes]], Path]


def test_end_to_end_markdown_export(tmp_path: Path, write_files: WriteFiles) -> None:
    repo = write_files(
        tmp_path / "repo",
        {
            "README.md": "# Demo\n",
            "src/app.py": "print('app')\n",
            "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00",
            "dist/bundle.js": "compiled",
        },
    )
    output = tmp_path / "export.md"

    exit_code = cli.main(["--path", str(repo), "--output", str(output), "--name", "Demo Export"])

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert content.startswith("# Demo Export\n")
    assert "### src/app.py" in content
    assert "print('app')" in content
    assert "bundle.js" not in content
    assert "logo.png" not in content


def test_end_to_end_xml_export_lists_binary(tmp_path: Path, write_files: WriteFiles) -> None:
    repo = write_files(
        tmp_path / "repo",
        {
            "notes.txt": "a < b\n",
            "blob.dat": b"\x00\x01\x02",
        },
    )
    output = tmp_path / "export.xml"

    exit_code = cli.main(["--path", str(repo), "--output", str(output)])

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert "blob.dat (excluded - binary)" in content
    assert '<file path="notes.txt">' in content
    assert '<file path="blob.dat">' not in content


def test_end_to_end_token_limit(tmp_path: Path, write_files: WriteFiles, capsys: pytest.CaptureFixture[str]) -> None:
    repo = write_files(tmp_path / "repo", {"large.txt": "a" * 4000, "small.txt": "abc"})

    assert cli.main(["--path", str(repo), "--max-tokens", "100"]) == 1
    assert "Project exceeds the estimated token limit." in capsys.readouterr().err

    assert cli.main(["--path", str(repo), "--max-tokens", "100", "--allow-large", "--format", "xml"]) == 0
    out = capsys.readouterr().out
    assert "<directoryTree>" in out
    assert "large.txt" in out
