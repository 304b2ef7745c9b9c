from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from repo_digest.config import Digest, ScanStats
from repo_digest.exceptions import NoFilesFoundError, RootPathError
from repo_digest.file_manipulation import format_size_mb
from repo_digest.gatherer import ContentGatherer
from repo_digest.logging import logger
from repo_digest.tree_walker import TreeWalker, render_tree, sort_tree

if TYPE_CHECKING:
    from repo_digest.config import TreeNode
    from repo_digest.settings import Settings


def build_summary(base_path: Path, root: TreeNode, settings: Settings) -> str:
    """Build the summary block shown above the tree.

    Args:
        base_path (Path): the analyzed directory
        root (TreeNode): the root of the scanned tree
        settings (Settings): the options in effect

    Returns:
        str: a few `key: value` lines
    """
    lines = [
        f"Analyzing: {base_path}",
        f"Max file size: {format_size_mb(settings.max_size)}",
    ]
    if settings.skip_artifacts and settings.ignore:
        lines.append("Skipping build artifacts and generated files")
    lines.extend(
        [
            f"Files analyzed: {root.file_count}",
            f"Total size: {format_size_mb(root.size)}",
        ],
    )
    return "\n".join(lines)


async def ingest_directory(base_path: Path, settings: Settings) -> Digest:
    """Scan a directory, gather its files and build the digest.

    Args:
        base_path (Path): the directory to analyze
        settings (Settings): filters and limits

    Raises:
        RootPathError: if `base_path` is missing or not a directory
        NoFilesFoundError: if nothing survived the filters
        TokenLimitExceededError: if the content is over the token budget

    Returns:
        Digest: summary, rendered tree and gathered files
    """
    base = Path(base_path).expanduser().resolve()
    if not base.is_dir():
        raise RootPathError(path=base)

    stats = ScanStats()
    root = await TreeWalker(settings).scan(base, stats=stats)
    if root is None:
        raise NoFilesFoundError(path=base)
    sort_tree(root)
    logger.debug("scan_done", files=stats.total_files, size=stats.total_size)

    files = await ContentGatherer(settings).gather(root)
    tree = render_tree(root)
    return Digest(
        source=base,
        summary=build_summary(base, root, settings),
        tree=tree,
        files=files,
        file_count=root.file_count,
        total_size=root.size,
    )


def ingest_directory_sync(base_path: Path, settings: Settings) -> Digest:
    """Run `ingest_directory` on a fresh event loop."""
    return asyncio.run(ingest_directory(base_path, settings))
