from __future__ import annotations

from pathlib import Path

import pytest

from repo_digest.config import Digest, FileContent
from repo_digest.output_construction import build_markdown, build_xml, fence_language, wrap_cdata


def make_digest() -> Digest:
    return Digest(
        source=Path("/proj"),
        summary="Analyzing: /proj\nFiles analyzed: 2",
        tree="└── proj/\n    ├── app.py\n    └── page.html\n",
        files=[
            FileContent(path=Path("/proj/app.py"), rel="app.py", content="print('ok')\n", size=12, tokens=3),
            FileContent(path=Path("/proj/page.html"), rel="page.html", content="<p>a & b</p>", size=12, tokens=3),
        ],
        file_count=2,
        total_size=24,
    )


@pytest.mark.unit
def test_fence_language_by_suffix() -> None:
    assert fence_language("src/app.py") == "python"
    assert fence_language("web/App.TSX") == "typescript"
    assert fence_language("Makefile") == ""
    assert fence_language("dir.d/noext") == ""


@pytest.mark.unit
def test_build_markdown_renders_sections_in_order() -> None:
    output = build_markdown(make_digest(), name="Demo", timestamp="2026-01-01T00:00:00+00:00")

    assert output.startswith("# Demo\n")
    assert "**Source**: `/proj`" in output
    assert "**Timestamp**: 2026-01-01T00:00:00+00:00" in output
    assert "## Directory Structure\n\n```\n└── proj/\n" in output
    assert "### app.py\n\n```python\nprint('ok')\n```" in output
    assert output.index("## Summary") < output.index("## Directory Structure") < output.index("## Files Content")
    assert output.index("### app.py") < output.index("### page.html")


@pytest.mark.unit
def test_build_markdown_default_title() -> None:
    assert build_markdown(make_digest()).startswith("# Repo Digest Analysis\n")


@pytest.mark.unit
def test_wrap_cdata_only_when_needed() -> None:
    assert wrap_cdata("plain") == "plain"
    assert wrap_cdata("a < b") == "<![CDATA[a < b]]>"
    assert wrap_cdata("x]]>y<") == "<![CDATA[x]]]]><![CDATA[>y<]]>"


@pytest.mark.unit
def test_build_xml_escapes_attributes_and_wraps_content() -> None:
    digest = make_digest()

    output = build_xml(digest, name='My "Project"', timestamp="now")

    assert output.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
    assert "<analysis name='My \"Project\"' generated=\"now\">" in output
    assert "<source>/proj</source>" in output
    assert '<file path="app.py">\nprint(\'ok\')\n' in output
    assert "<![CDATA[<p>a & b</p>]]>" in output
    assert output.rstrip().endswith("</analysis>")
