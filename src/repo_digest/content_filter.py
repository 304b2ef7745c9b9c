from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from repo_digest.file_manipulation import read_text
from repo_digest.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


def split_terms(terms: Sequence[str]) -> list[str]:
    """Comma-split, strip and lowercase search terms, dropping blanks.

    Args:
        terms (Sequence[str]): raw terms, e.g. `["a,b", " c "]`

    Returns:
        list[str]: `["a", "b", "c"]`
    """
    out: list[str] = []
    for term in terms:
        out.extend(t.strip().lower() for t in term.split(",") if t.strip())
    return out


async def _matches(path: Path, or_terms: list[str], and_terms: list[str]) -> bool:
    name = path.name.lower()
    if any(term in name for term in or_terms):
        return True
    content = (await asyncio.to_thread(read_text, path)).lower()
    if or_terms and any(term in content for term in or_terms):
        return True
    return bool(and_terms) and all(term in content for term in and_terms)


async def filter_by_content(
    files: Sequence[Path],
    or_terms: Sequence[str],
    and_terms: Sequence[str],
) -> list[Path]:
    """Keep the files whose name or content matches the search terms.

    A file is kept when its base name contains any OR term, when its content
    contains any OR term, or when its content contains every AND term.
    Matching is case-insensitive. All files are checked concurrently;
    a file that cannot be read counts as a non-match.

    Args:
        files (Sequence[Path]): candidate files
        or_terms (Sequence[str]): terms of which any must match
        and_terms (Sequence[str]): terms of which all must match

    Returns:
        list[Path]: matching files, de-duplicated, in no contractual order
    """
    ors = split_terms(or_terms)
    ands = split_terms(and_terms)
    if not ors and not ands:
        return list(files)

    logger.debug("content_filter_started", files=len(files), find=ors, require=ands)
    unique = list(dict.fromkeys(files))
    results = await asyncio.gather(
        *(_matches(f, ors, ands) for f in unique),
        return_exceptions=True,
    )
    matched: list[Path] = []
    for path, result in zip(unique, results, strict=True):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.debug("content_filter_unreadable", path=str(path), error=str(result))
            continue
        if result:
            matched.append(path)
    logger.debug("content_filter_done", matched=len(matched))
    return matched
