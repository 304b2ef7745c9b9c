from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

MAX_DEPTH = 20
MAX_FILES = 10_000
MAX_TOTAL_SIZE = 500 * 1024 * 1024

DEFAULT_MAX_SIZE = 10 * 1024 * 1024
APPROX_CHARS_PER_TOKEN = 4
DEFAULT_MAX_TOKEN_ESTIMATE = 200_000

BINARY_SNIFF_BYTES = 1024
BINARY_RATIO_THRESHOLD = 0.3

README_NAME = "readme.md"
SVG_SUFFIX = ".svg"
SVG_PATTERN = "*.svg"

# Always excluded, whatever the ignore flags say.
PERMANENT_IGNORE_DIRS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "__pycache__",
    ".cache",
    "coverage",
    ".next",
    ".nuxt",
    "bower_components",
)

DEFAULT_IGNORE = (
    "*.pyc",
    "*.pyo",
    "*.pyd",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".coverage",
    ".tox",
    "node_modules",
    "bower_components",
    "dist",
    "build",
    "venv",
    ".venv",
    ".git",
    ".svn",
    ".hg",
    ".idea",
    ".DS_Store",
)

ARTIFACT_FILES = (
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
    "poetry.lock",
    "uv.lock",
    "Cargo.lock",
    "*.min.js",
    "*.min.css",
    "*.bundle.js",
    "*.chunk.js",
    "*.map",
    SVG_PATTERN,
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.ico",
    "*.webp",
    "*.bmp",
    "*.woff",
    "*.woff2",
    "*.ttf",
    "*.eot",
    "*.otf",
    "*.mp3",
    "*.wav",
    "*.mp4",
    "*.mov",
    "*.avi",
    "*.mkv",
    "*.iso",
    "*.tar",
    "*.tar.gz",
    "*.tgz",
    "*.zip",
    "*.rar",
    "*.7z",
    "*.jar",
    "*.so",
    "*.dll",
    "*.dylib",
    "*.exe",
    "*.o",
    "*.a",
    "*.class",
    "*.sqlite",
    "*.sqlite3",
    "*.db",
    "*.pdf",
    "*.docx",
    "*.xlsx",
    "*.pptx",
)


class NodeType(StrEnum):
    """Kind of filesystem entry held by a TreeNode."""

    FILE = auto()
    DIRECTORY = auto()


@dataclass(eq=False)
class TreeNode:
    """One filesystem entry discovered during the walk.

    Directories own their children; `parent` is only a navigation link used
    to propagate sizes and counts upward. The classification flags stay at
    their defaults until the gatherer visits the node.

    Attributes:
        name: Base name of the entry.
        path: Absolute path, stable identity within a run.
        type: File or directory.
        size: File size, or recursive sum of descendant file sizes.
        children: Ordered children (directories only).
        file_count: Number of descendant files.
        dir_count: Number of descendant directories.
        is_binary: None until sniffed, then True/False.
        too_large: Whether the file exceeds the configured maximum size.
        is_svg_included: None until visited; False marks an SVG whose content was skipped.
        parent: Enclosing directory node, None for the root.
    """

    name: str
    path: Path
    type: NodeType
    size: int = 0
    children: list[TreeNode] = field(default_factory=list)
    file_count: int = 0
    dir_count: int = 0
    is_binary: bool | None = None
    too_large: bool = False
    is_svg_included: bool | None = None
    parent: TreeNode | None = field(default=None, repr=False)

    @property
    def is_dir(self) -> bool:
        return self.type is NodeType.DIRECTORY

    def ancestors(self) -> list[TreeNode]:
        """Return the chain of enclosing directories, nearest first."""
        out: list[TreeNode] = []
        node = self.parent
        while node is not None:
            out.append(node)
            node = node.parent
        return out

    def attach_directory(self, child: TreeNode) -> None:
        """Attach a built subtree, adding its size and counts to every ancestor."""
        child.parent = self
        self.children.append(child)
        for node in [self, *self.ancestors()]:
            node.dir_count += child.dir_count + 1
            node.file_count += child.file_count
            node.size += child.size

    def add_file(self, name: str, path: Path, size: int) -> TreeNode:
        """Create and attach a child file, propagating its size and count upward."""
        child = TreeNode(name=name, path=path, type=NodeType.FILE, size=size, parent=self)
        self.children.append(child)
        for node in [self, *self.ancestors()]:
            node.file_count += 1
            node.size += size
        return child

    def iter_files(self) -> list[TreeNode]:
        """Return all descendant file nodes in depth-first child order."""
        if not self.is_dir:
            return [self]
        out: list[TreeNode] = []
        for child in self.children:
            out.extend(child.iter_files())
        return out


@dataclass
class ScanStats:
    """Counters for one walk, shared by reference through recursive calls."""

    total_files: int = 0
    total_size: int = 0

    def ceiling_reached(self) -> bool:
        return self.total_files >= MAX_FILES or self.total_size >= MAX_TOTAL_SIZE


class FileContent(BaseModel):
    """A gathered file ready for rendering.

    Attributes:
        path: Absolute path to the file on disk.
        rel: Path relative to the analyzed root, with POSIX separators.
        content: File text, or a placeholder when the file is too large.
        size: Original size in bytes.
        tokens: Estimated token count charged against the budget.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="Absolute file path")
    rel: str = Field(..., description="File path relative to the analyzed root")
    content: str = Field(..., description="Rendered content or placeholder")
    size: int = Field(..., ge=0, description="File size in bytes")
    tokens: int = Field(default=0, ge=0, description="Estimated tokens")


class Digest(BaseModel):
    """Everything the output renderers need for one analyzed directory."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    source: Path = Field(..., description="Analyzed directory")
    summary: str = Field(..., description="Human readable summary")
    tree: str = Field(..., description="Rendered directory tree")
    files: list[FileContent] = Field(default_factory=list, description="Gathered files, in tree order")
    file_count: int = Field(default=0, ge=0, description="Files in the tree")
    total_size: int = Field(default=0, ge=0, description="Bytes of all files in the tree")

    @computed_field
    @property
    def estimated_tokens(self) -> int:
        """Sum of the per-file token estimates."""
        return sum(f.tokens for f in self.files)
