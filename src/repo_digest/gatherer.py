from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from repo_digest.config import SVG_SUFFIX, FileContent
from repo_digest.exceptions import TokenLimitExceededError
from repo_digest.file_manipulation import (
    estimate_tokens,
    is_binary,
    read_head,
    read_text,
    relpath,
    too_large_placeholder,
)
from repo_digest.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from repo_digest.config import TreeNode
    from repo_digest.settings import Settings


class ContentGatherer:
    """Read the files of a sorted tree under a global token budget.

    Files are visited depth-first in tree order and classified on the way:
    binary files and skipped SVGs are only flagged, files over `max_size` get
    a placeholder, everything else is read and charged against the token
    budget. Exceeding the budget aborts the whole gather unless
    `allow_large` is set. Unreadable files are left out and the gather goes on.

    Attributes:
        settings: The options in effect.
        total_tokens: Running token estimate of the gathered content.
        ignored: Files left out because they could not be read.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.total_tokens = 0
        self.ignored: list[Path] = []

    async def gather(self, root: TreeNode) -> list[FileContent]:
        """Gather the content of every eligible file below `root`.

        Args:
            root (TreeNode): the sorted tree built by the walker

        Raises:
            TokenLimitExceededError: if the estimated tokens exceed `max_tokens`
                and `allow_large` is not set. No partial result is returned.

        Returns:
            list[FileContent]: gathered files in tree order
        """
        self.total_tokens = 0
        self.ignored = []
        files: list[FileContent] = []
        seen: set[Path] = set()
        for node in root.iter_files():
            if node.path in seen:
                continue
            seen.add(node.path)
            try:
                record = await self._visit(node, root.path)
            except OSError as e:
                logger.debug("file_ignored", path=str(node.path), error=str(e))
                self.ignored.append(node.path)
                continue
            if record is not None:
                files.append(record)
        logger.debug(
            "gather_done",
            gathered=len(files),
            ignored=[str(p) for p in self.ignored],
            tokens=self.total_tokens,
        )
        return files

    async def _visit(self, node: TreeNode, root: Path) -> FileContent | None:
        rel = relpath(node.path, root)
        too_large = node.size > self.settings.max_size

        head = await asyncio.to_thread(read_head, node.path)
        node.is_binary = is_binary(head, node.path)
        node.too_large = too_large
        if node.is_binary:
            return None

        if too_large:
            return FileContent(path=node.path, rel=rel, content=too_large_placeholder(node.size), size=node.size)

        if node.name.lower().endswith(SVG_SUFFIX):
            node.is_svg_included = self.settings.svg
            if not self.settings.svg:
                return None

        content = await asyncio.to_thread(read_text, node.path)
        tokens = estimate_tokens(content)
        self.total_tokens += tokens
        if self.total_tokens > self.settings.max_tokens and not self.settings.allow_large:
            logger.debug("token_limit_exceeded", estimated=self.total_tokens, limit=self.settings.max_tokens)
            raise TokenLimitExceededError(estimated=self.total_tokens, limit=self.settings.max_tokens)
        return FileContent(path=node.path, rel=rel, content=content, size=node.size, tokens=tokens)
