from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pathspec import GitIgnoreSpec

from repo_digest.config import (
    ARTIFACT_FILES,
    DEFAULT_IGNORE,
    MAX_DEPTH,
    PERMANENT_IGNORE_DIRS,
    README_NAME,
    SVG_PATTERN,
    SVG_SUFFIX,
    NodeType,
    ScanStats,
    TreeNode,
)
from repo_digest.content_filter import filter_by_content
from repo_digest.file_manipulation import (
    normalize_extensions,
    normalize_globs,
    read_gitignore,
    relpath,
    resolve_include_patterns,
    size_message,
)
from repo_digest.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_digest.settings import Settings


@dataclass(frozen=True)
class IgnoreLayer:
    """Patterns of one `.gitignore`, matched relative to the directory holding it."""

    base: Path
    spec: GitIgnoreSpec

    def matches(self, path: Path, *, is_dir: bool = False) -> bool:
        rel = relpath(path, self.base)
        return self.spec.match_file(f"{rel}/" if is_dir else rel)


@dataclass(frozen=True)
class _Entry:
    path: Path
    is_dir: bool
    is_file: bool
    size: int


def _list_dir(directory: Path) -> list[_Entry]:
    entries: list[_Entry] = []
    with os.scandir(directory) as it:
        for e in it:
            if e.is_symlink():
                continue
            is_dir = e.is_dir(follow_symlinks=False)
            is_file = e.is_file(follow_symlinks=False)
            size = e.stat(follow_symlinks=False).st_size if is_file else 0
            entries.append(_Entry(Path(e.path), is_dir, is_file, size))
    return sorted(entries, key=lambda en: en.path.name)


def _is_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def compile_gitignore(patterns: Sequence[str]) -> GitIgnoreSpec:
    """Compile gitignore patterns, dropping the lines the matcher rejects."""
    try:
        return GitIgnoreSpec.from_lines(patterns)
    except (ValueError, re.error):
        valid: list[str] = []
        for pattern in patterns:
            try:
                GitIgnoreSpec.from_lines([pattern])
            except (ValueError, re.error):
                logger.debug("gitignore_pattern_skipped", pattern=pattern)
                continue
            valid.append(pattern)
        return GitIgnoreSpec.from_lines(valid)


class TreeWalker:
    """Walk a directory and build the filtered tree of files to digest.

    A file is excluded when it matches any active layer:

    1. the permanent ignore directories (always);
    2. the default-ignore and artifact lists (`skip_artifacts`);
    3. the `.gitignore` of any directory on its path (`ignore`);
    4. the user exclude globs (always).

    When `ignore` is disabled only layers 1 and 4 stay active. SVG files are
    kept in the tree even when the artifact list excludes them, so they can be
    listed without their content. Include patterns, the extension allow-list
    and the content search then narrow what survived.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._root = Path()
        self._exclude = GitIgnoreSpec.from_lines([])
        self._svg_exclude = GitIgnoreSpec.from_lines([])
        self._include: GitIgnoreSpec | None = None
        self._extensions: set[str] = set()

    def exclude_patterns(self, *, keep_svg: bool) -> list[str]:
        """Build the root-relative exclusion patterns.

        Args:
            keep_svg (bool): drop the artifact `*.svg` entry

        Returns:
            list[str]: patterns for the matcher, permanent dirs first
        """
        patterns = [f"**/{d}/**" for d in PERMANENT_IGNORE_DIRS]
        if self.settings.ignore and self.settings.skip_artifacts:
            patterns.extend(DEFAULT_IGNORE)
            patterns.extend(p for p in ARTIFACT_FILES if not (keep_svg and p == SVG_PATTERN))
        patterns.extend(normalize_globs(self.settings.exclude, keep_escapes=True))
        return patterns

    def _prepare(self, root: Path) -> None:
        self._root = root
        self._svg_exclude = compile_gitignore(self.exclude_patterns(keep_svg=True))
        self._exclude = (
            self._svg_exclude
            if self.settings.svg
            else compile_gitignore(self.exclude_patterns(keep_svg=False))
        )
        self._include = None
        if self.settings.include:
            resolved = resolve_include_patterns(root, self.settings.include)
            self._include = compile_gitignore(resolved)
            logger.debug("include_patterns", raw=self.settings.include, resolved=resolved)
        self._extensions = normalize_extensions(self.settings.extension)
        logger.debug("exclude_patterns", patterns=self.exclude_patterns(keep_svg=self.settings.svg))

    def _dir_excluded(self, path: Path, layers: Sequence[IgnoreLayer]) -> bool:
        rel = relpath(path, self._root)
        return self._exclude.match_file(f"{rel}/") or any(layer.matches(path, is_dir=True) for layer in layers)

    def keep_file(self, path: Path, layers: Sequence[IgnoreLayer] = ()) -> bool:
        """Decide whether a file survives the exclude and include layers.

        Args:
            path (Path): absolute path of the file, under the walked root
            layers (Sequence[IgnoreLayer]): `.gitignore` layers on the file's path

        Returns:
            bool: True when the file belongs in the tree
        """
        rel = relpath(path, self._root)
        if any(layer.matches(path) for layer in layers):
            return False
        if self._exclude.match_file(rel):
            listed_svg = path.name.lower().endswith(SVG_SUFFIX) and not self._svg_exclude.match_file(rel)
            if not listed_svg:
                return False
        if self._include is not None and not self._include.match_file(rel):
            return False
        return not self._extensions or path.suffix in self._extensions

    async def scan(
        self,
        directory: Path,
        depth: int = 0,
        stats: ScanStats | None = None,
        layers: Sequence[IgnoreLayer] = (),
    ) -> TreeNode | None:
        """Recursively scan a directory into a tree of surviving files.

        Ceilings (depth, file count, total size) end the walk silently with
        whatever was gathered so far. A directory left without children is
        pruned, which is reported as None.

        Args:
            directory (Path): directory to scan
            depth (int): recursion depth, 0 for the root
            stats (ScanStats | None): counters shared by the whole walk
            layers (Sequence[IgnoreLayer]): `.gitignore` layers of the ancestors

        Returns:
            TreeNode | None: the directory node, or None when nothing survived
        """
        stats = stats if stats is not None else ScanStats()
        if depth > MAX_DEPTH:
            logger.debug("max_depth_reached", path=str(directory))
            return None
        if not await asyncio.to_thread(_is_dir, directory):
            return None
        if stats.ceiling_reached():
            logger.debug("max_files_or_size_reached", files=stats.total_files, size=stats.total_size)
            return None
        if depth == 0:
            self._prepare(directory)

        if self.settings.ignore:
            gitignore = await asyncio.to_thread(read_gitignore, directory)
            if gitignore:
                layers = [*layers, IgnoreLayer(directory, compile_gitignore(gitignore))]

        try:
            entries = await asyncio.to_thread(_list_dir, directory)
        except OSError as e:
            logger.debug("directory_unreadable", path=str(directory), error=str(e))
            return None

        node = TreeNode(name=directory.name, path=directory, type=NodeType.DIRECTORY)
        files: list[_Entry] = []
        for entry in entries:
            if entry.is_file and self.keep_file(entry.path, layers):
                if stats.ceiling_reached():
                    logger.debug("max_files_or_size_reached", files=stats.total_files, size=stats.total_size)
                    break
                stats.total_files += 1
                stats.total_size += entry.size
                files.append(entry)

        if files and (self.settings.find or self.settings.require):
            matched = set(
                await filter_by_content(
                    [f.path for f in files],
                    self.settings.find,
                    self.settings.require,
                ),
            )
            files = [f for f in files if f.path in matched]

        kept = {f.path for f in files}
        for entry in entries:
            if entry.is_dir and not self._dir_excluded(entry.path, layers):
                child = await self.scan(entry.path, depth + 1, stats, layers)
                if child is not None:
                    node.attach_directory(child)
            elif entry.path in kept:
                node.add_file(entry.path.name, entry.path, entry.size)

        return node if node.children else None


def _sort_key(node: TreeNode) -> tuple[int, str, str]:
    dot = node.name.startswith(".")
    if node.is_dir:
        group = 4 if dot else 3
    elif node.name.lower() == README_NAME:
        group = 0
    else:
        group = 2 if dot else 1
    return (group, node.name.lower(), node.name)


def sort_tree(node: TreeNode) -> None:
    """Recursively order children for presentation.

    Groups, in order: `README.md` (any case), regular files, dotfiles,
    regular directories, dot-directories. Names sort case-insensitively
    within each group.

    Args:
        node (TreeNode): the node to sort in place
    """
    node.children.sort(key=_sort_key)
    for child in node.children:
        if child.is_dir:
            sort_tree(child)


def annotation(node: TreeNode) -> str:
    """Build the trailing annotation of a file line in the tree.

    Annotations concatenate: size limit, binary, skipped SVG.
    """
    out = ""
    if node.too_large:
        out += size_message(node.size)
    if node.is_binary is True:
        out += " (excluded - binary)"
    if node.name.lower().endswith(SVG_SUFFIX) and node.is_svg_included is False:
        out += " (excluded - svg)"
    return out


def render_tree(node: TreeNode, prefix: str = "", *, is_last: bool = True) -> str:
    """Render a node and its descendants as an ASCII tree.

    Args:
        node (TreeNode): the node to render
        prefix (str): indentation inherited from the ancestors
        is_last (bool): whether the node is the last child of its parent

    Returns:
        str: one line per node, newline terminated
    """
    branch = "└── " if is_last else "├── "
    suffix = "/" if node.is_dir else annotation(node)
    out = f"{prefix}{branch}{node.name}{suffix}\n"
    if node.is_dir and node.children:
        child_prefix = prefix + ("    " if is_last else "│   ")
        last = len(node.children) - 1
        out += "".join(render_tree(child, child_prefix, is_last=i == last) for i, child in enumerate(node.children))
    return out

