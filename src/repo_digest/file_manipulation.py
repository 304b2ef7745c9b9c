from __future__ import annotations

import math
from pathlib import Path
from typing import TYPE_CHECKING

from repo_digest.config import (
    APPROX_CHARS_PER_TOKEN,
    BINARY_RATIO_THRESHOLD,
    BINARY_SNIFF_BYTES,
)
from repo_digest.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

GLOB_CHARS = frozenset("*?[")


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


def has_glob(pattern: str) -> bool:
    """Check whether a pattern holds a glob metacharacter."""
    return any(c in GLOB_CHARS for c in pattern)


def normalize_globs(globs: Sequence[str], *, keep_escapes: bool = False) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Normalize a sequence of glob patterns by stripping whitespace,
    replacing backslashes with forward slashes and dropping a leading `./`.
    With `keep_escapes`, backslashes are left alone so gitwildmatch escapes
    (a backslash before `#` or `!`) survive. Exclude patterns use it.

    Args:
        globs (Sequence[str]): the glob patterns to normalize
        keep_escapes (bool): leave backslashes untouched

    Returns:
        list[str]: the normalized glob patterns
    """
    out: list[str] = []
    for g in globs:
        g2 = (g or "").strip()
        if not keep_escapes:
            g2 = g2.replace("\\", "/")
        g2 = g2.removeprefix("./")
        if not g2:
            continue
        out.append(g2)
    return out


def normalize_gitignore(lines: Iterable[str]) -> list[str]:
    """Turn raw `.gitignore` lines into glob patterns for the matcher.

    Comments and blank lines are dropped. Negations pass through untouched
    and are resolved by the matcher. A leading `/` is removed since the
    matcher is always rooted at the directory holding the ignore file.
    Directory-only patterns (`name/`) gain `**` so they cover the directory
    contents. Anything else is passed through as a literal pattern.

    Args:
        lines (Iterable[str]): the lines of a `.gitignore` file

    Returns:
        list[str]: the normalized patterns, in file order
    """
    out: list[str] = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("!"):
            out.append(line)
            continue
        line = line.removeprefix("/")
        if line.endswith("/"):
            line = f"{line}**"
        if line:
            out.append(line)
    return out


def read_gitignore(directory: Path) -> list[str]:
    """Read and normalize the `.gitignore` held by a directory.

    Args:
        directory (Path): the directory to look into

    Returns:
        list[str]: normalized patterns, empty when the file is missing or unreadable
    """
    path = directory / ".gitignore"
    if not path.is_file():
        return []
    try:
        return normalize_gitignore(read_text_lines(path))
    except OSError as e:
        logger.debug("gitignore_unreadable", path=str(path), error=str(e))
        return []


def resolve_include_patterns(base: Path, patterns: Sequence[str]) -> list[str]:
    """Resolve user include patterns against the filesystem.

    - an existing file becomes an exact, root-anchored path;
    - an existing directory `d` becomes `d/**`;
    - a pattern holding a glob metacharacter passes through unchanged;
    - a bare name that does not exist is read as a directory (`name/**`).

    Args:
        base (Path): the directory the patterns are relative to
        patterns (Sequence[str]): raw include patterns

    Returns:
        list[str]: patterns usable by the matcher
    """
    out: list[str] = []
    for pattern in normalize_globs(patterns):
        stripped = pattern.strip("/")
        candidate = base / stripped
        if not has_glob(pattern) and candidate.is_file():
            out.append(f"/{stripped}")
        elif not has_glob(pattern) and candidate.is_dir():
            out.append(f"{stripped}/**")
        elif has_glob(pattern):
            out.append(pattern)
        elif "/" not in stripped:
            out.append(f"{stripped}/**")
        else:
            out.append(pattern)
    return out


def normalize_extensions(extensions: Iterable[str]) -> set[str]:
    """Return extensions with a single leading dot, case preserved."""
    return {f".{ext.strip().lstrip('.')}" for ext in extensions if ext.strip().lstrip(".")}


def is_binary(buffer: bytes, path: Path | None = None) -> bool:
    """Classify the head of a file as binary or text.

    Any NUL byte marks the buffer binary. Otherwise the buffer is binary
    when at least 30% of the sniffed window are control bytes below TAB or
    bytes in the 0x80-0xBF range. An empty buffer is treated as text.

    Args:
        buffer (bytes): leading bytes of the file
        path (Path | None): the file the bytes come from, for logging

    Returns:
        bool: True if the buffer looks binary
    """
    window = buffer[:BINARY_SNIFF_BYTES]
    if not window:
        return False
    if b"\x00" in window:
        logger.debug("binary_detected", path=str(path), reason="nul_byte")
        return True
    flagged = sum(1 for b in window if b < 9 or 128 <= b <= 191)  # noqa: PLR2004
    if flagged / len(window) >= BINARY_RATIO_THRESHOLD:
        logger.debug("binary_detected", path=str(path), reason="control_ratio")
        return True
    return False


def read_head(path: Path, nbytes: int = BINARY_SNIFF_BYTES) -> bytes:
    """Read at most `nbytes` leading bytes of a file."""
    with path.open("rb") as f:
        return f.read(nbytes)


def read_text(path: Path) -> str:
    """Read a whole file as UTF-8, dropping undecodable bytes."""
    return path.read_text(encoding="utf-8", errors="ignore")


def read_text_lines(path: Path) -> list[str]:
    """Read a text file and return its lines.

    Args:
        path (Path): the file path to read

    Returns:
        list[str]: the lines of the file
    """
    return read_text(path).splitlines()


def estimate_tokens(text: str) -> int:
    """Approximate a token count from the character length."""
    return math.ceil(len(text) / APPROX_CHARS_PER_TOKEN)


def format_size_mb(size: int) -> str:
    """Format a byte count as megabytes with two decimals, e.g. `1.50 MB`."""
    return f"{size / 1024 / 1024:.2f} MB"


def size_message(size: int) -> str:
    """Tree annotation for a file over the size limit."""
    return f" [{format_size_mb(size)} - too large]"


def too_large_placeholder(size: int) -> str:
    """Content stand-in for a file over the size limit."""
    return f"[Content ignored: {format_size_mb(size)} - too large]"
