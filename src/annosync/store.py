"""File store and front matter index over a local vault directory.

The merge engine and the resolver only talk to the Protocols below, so a
host with its own storage (an editor plugin API, an in-memory fake in tests)
can stand in for LocalFileStore.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import frontmatter

from .paths import join_path

log = logging.getLogger(__name__)


class NodeKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"
    MISSING = "missing"


@dataclass(frozen=True)
class Node:
    """Result of a path lookup: a file, a folder, or nothing."""

    kind: NodeKind
    path: str


class FileStore(Protocol):
    async def exists(self, path: str) -> bool: ...

    async def get_node(self, path: str) -> Node: ...

    async def read(self, path: str) -> str: ...

    async def modify(self, path: str, content: str) -> None: ...

    async def create(self, path: str, content: str) -> str: ...

    async def create_folder(self, path: str) -> None: ...

    def markdown_files(self) -> list[str]: ...


class MetadataIndex(Protocol):
    def get_cached_front_matter(self, path: str) -> dict[str, Any] | None: ...


class LocalFileStore:
    """FileStore over a directory on disk. Paths are vault-relative POSIX strings."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def absolute(self, path: str) -> Path:
        """Resolve a vault path, refusing paths that escape the vault."""
        normalized = join_path(path)
        if ".." in normalized.split("/"):
            raise ValueError(f"Invalid path: {path}")
        return self.root / normalized

    async def exists(self, path: str) -> bool:
        return self.absolute(path).exists()

    async def get_node(self, path: str) -> Node:
        target = self.absolute(path)
        if target.is_file():
            return Node(NodeKind.FILE, join_path(path))
        if target.is_dir():
            return Node(NodeKind.FOLDER, join_path(path))
        return Node(NodeKind.MISSING, join_path(path))

    async def read(self, path: str) -> str:
        # newline="" keeps CRLF documents byte-for-byte on a round trip
        with self.absolute(path).open(encoding="utf-8", newline="") as f:
            return f.read()

    async def modify(self, path: str, content: str) -> None:
        target = self.absolute(path)
        if not target.is_file():
            raise FileNotFoundError(f"Cannot modify missing file: {path}")
        target.write_text(content, encoding="utf-8", newline="")

    async def create(self, path: str, content: str) -> str:
        """Create a new file. Fails with FileExistsError if path is taken."""
        target = self.absolute(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("x", encoding="utf-8", newline="") as f:
            f.write(content)
        return join_path(path)

    async def create_folder(self, path: str) -> None:
        # Another writer may have created it since the caller's exists() check
        self.absolute(path).mkdir(parents=True, exist_ok=True)

    def markdown_files(self) -> list[str]:
        """All Markdown files in the vault, skipping hidden directories."""
        files = []
        for md_file in self.root.rglob("*.md"):
            rel = md_file.relative_to(self.root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            files.append(rel.as_posix())
        return sorted(files)


class FrontmatterIndex:
    """Cached YAML front matter lookup, refreshed when a file's mtime changes."""

    def __init__(self, store: LocalFileStore) -> None:
        self.store = store
        self._cache: dict[str, tuple[int, dict[str, Any] | None]] = {}

    def get_cached_front_matter(self, path: str) -> dict[str, Any] | None:
        target = self.store.absolute(path)
        try:
            mtime = target.stat().st_mtime_ns
        except FileNotFoundError:
            log.debug("No front matter for %s: file not found", path)
            self._cache.pop(path, None)
            return None

        cached = self._cache.get(path)
        if cached is not None and cached[0] == mtime:
            return cached[1]

        try:
            post = frontmatter.loads(target.read_text(encoding="utf-8"))
        except Exception as e:
            # Undecodable bytes or broken YAML: treat as an unmanaged file
            log.debug("Skipping unparsable front matter in %s: %s", path, e)
            metadata = None
        else:
            metadata = dict(post.metadata) if post.metadata else None

        self._cache[path] = (mtime, metadata)
        return metadata

    def clear(self) -> None:
        self._cache.clear()


async def get_file_by_path(store: FileStore, path: str) -> str | None:
    """Return path if it names a file, else log the miss and return None."""
    node = await store.get_node(path)
    if node.kind is NodeKind.FILE:
        return node.path
    if node.kind is NodeKind.FOLDER:
        log.error("%s found but it's a folder", path)
        return None
    log.error("%s not found", path)
    return None
