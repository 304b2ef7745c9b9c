from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from repo_digest.exceptions import RootPathError, TokenLimitExceededError
from repo_digest.ingest import ingest_directory_sync
from repo_digest.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Callable

    WriteFiles = Callable[[Path, dict[str, str | bytes]], Path]


@pytest.mark.integration
def test_ingest_skips_artifacts_and_user_excludes(tmp_path: Path, write_files: WriteFiles) -> None:
    write_files(
        tmp_path,
        {
            "a.ts": "export const a = 1;\n",
            "a.test.ts": "it('works', () => {});\n",
            "node_modules/x.js": "module.exports = {};\n",
        },
    )

    digest = ingest_directory_sync(tmp_path, Settings(skip_artifacts=True, exclude=["*.test.ts"]))

    assert [f.rel for f in digest.files] == ["a.ts"]
    assert "node_modules" not in digest.tree
    assert digest.file_count == 1


@pytest.mark.integration
def test_ingest_lists_svg_but_gathers_only_text(tmp_path: Path, write_files: WriteFiles) -> None:
    write_files(tmp_path, {"icon.svg": "<svg/>", "readme.md": "# Readme\n"})

    digest = ingest_directory_sync(tmp_path, Settings(svg=False))

    assert digest.tree == f"└── {tmp_path.name}/\n    ├── readme.md\n    └── icon.svg (excluded - svg)\n"
    assert [f.rel for f in digest.files] == ["readme.md"]
    assert digest.files[0].content == "# Readme\n"


@pytest.mark.integration
def test_ingest_token_limit_is_all_or_nothing(tmp_path: Path, write_files: WriteFiles) -> None:
    write_files(tmp_path, {"big.txt": "a" * 400, "small.txt": "abc"})

    with pytest.raises(TokenLimitExceededError):
        ingest_directory_sync(tmp_path, Settings(max_tokens=50))

    digest = ingest_directory_sync(tmp_path, Settings(max_tokens=50, allow_large=True))
    assert [f.rel for f in digest.files] == ["big.txt", "small.txt"]
    assert digest.estimated_tokens == 101  # noqa: PLR2004


@pytest.mark.integration
def test_ingest_rejects_file_as_root(tmp_path: Path, write_files: WriteFiles) -> None:
    write_files(tmp_path, {"a.txt": "a"})

    with pytest.raises(RootPathError):
        ingest_directory_sync(tmp_path / "a.txt", Settings())


@pytest.mark.integration
def test_ingest_is_idempotent(tmp_path: Path, write_files: WriteFiles) -> None:
    write_files(tmp_path, {"README.md": "r", "src/a.py": "a", "src/b.py": "b", ".gitignore": "*.tmp\n", "x.tmp": "t"})

    first = ingest_directory_sync(tmp_path, Settings())
    second = ingest_directory_sync(tmp_path, Settings())

    assert first.tree == second.tree
    assert [f.rel for f in first.files] == [f.rel for f in second.files]
    assert "x.tmp" not in first.tree
