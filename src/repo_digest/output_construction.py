from __future__ import annotations

import io
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from xml.sax.saxutils import quoteattr

if TYPE_CHECKING:
    from repo_digest.config import Digest

DEFAULT_TITLE = "Repo Digest Analysis"

_FENCE_LANGUAGE: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cpp": "cpp",
    ".css": "css",
    ".go": "go",
    ".h": "c",
    ".html": "html",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "javascript",
    ".md": "markdown",
    ".php": "php",
    ".py": "python",
    ".rs": "rust",
    ".sh": "bash",
    ".sql": "sql",
    ".svg": "xml",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def fence_language(rel: str) -> str:
    """Code fence language for a file, empty when unknown."""
    dot = rel.rfind(".")
    return _FENCE_LANGUAGE.get(rel[dot:].lower(), "") if dot > rel.rfind("/") else ""


def build_markdown(digest: Digest, *, name: str = "", timestamp: str | None = None) -> str:
    """Build a markdown document from a digest.

    The document holds a header, the summary, the directory tree and one
    fenced section per gathered file, in tree order.

    Args:
        digest (Digest): the digest to render
        name (str): document title, defaults to `Repo Digest Analysis`
        timestamp (str | None): generation time, defaults to now

    Returns:
        str: the markdown document
    """
    out = io.StringIO()
    out.write(f"# {name or DEFAULT_TITLE}\n\n")
    out.write(f"**Source**: `{digest.source}`\n\n")
    out.write(f"**Timestamp**: {timestamp or now_iso()}\n\n")
    out.write("## Summary\n\n")
    out.write(f"{digest.summary}\n\n")
    out.write("## Directory Structure\n\n")
    out.write(f"```\n{digest.tree.rstrip()}\n```\n\n")
    out.write("## Files Content\n\n")
    for f in digest.files:
        out.write(f"### {f.rel}\n\n")
        out.write(f"```{fence_language(f.rel)}\n{f.content.rstrip()}\n```\n\n")
    return out.getvalue().rstrip() + "\n"


def wrap_cdata(text: str) -> str:
    """Wrap text in CDATA when it holds markup characters.

    A literal `]]>` inside the text is split across two CDATA sections.
    """
    if not any(c in text for c in "<>&"):
        return text
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def build_xml(digest: Digest, *, name: str = "", timestamp: str | None = None) -> str:
    """Build an XML document from a digest.

    Args:
        digest (Digest): the digest to render
        name (str): value of the root `name` attribute
        timestamp (str | None): generation time, defaults to now

    Returns:
        str: the XML document
    """
    generated = timestamp or now_iso()
    out = io.StringIO()
    out.write('<?xml version="1.0" encoding="UTF-8"?>\n')
    out.write(f"<analysis name={quoteattr(name or DEFAULT_TITLE)} generated={quoteattr(generated)}>\n")
    out.write("  <project>\n")
    out.write(f"    <source>{wrap_cdata(str(digest.source))}</source>\n")
    out.write(f"    <timestamp>{wrap_cdata(generated)}</timestamp>\n")
    out.write("  </project>\n")
    out.write(f"  <summary>\n{wrap_cdata(digest.summary)}\n  </summary>\n")
    out.write(f"  <directoryTree>\n{wrap_cdata(digest.tree.rstrip())}\n  </directoryTree>\n")
    out.write("  <files>\n")
    for f in digest.files:
        out.write(f"    <file path={quoteattr(f.rel)}>\n{wrap_cdata(f.content)}\n    </file>\n")
    out.write("  </files>\n")
    out.write("</analysis>\n")
    return out.getvalue()
