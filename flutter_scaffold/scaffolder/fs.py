"""Filesystem collaborator.

The checker and writer only talk to the target project through the
:class:`FileSystem` protocol.  Paths are POSIX-style and relative to the
project root.  :class:`LocalFileSystem` is the production implementation;
tests substitute an in-memory fake.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable


@runtime_checkable
class FileSystem(Protocol):
    """Query and write interface for a scaffolding target."""

    def exists(self, path: str) -> bool: ...

    def is_file(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def write_text(self, path: str, content: str) -> None: ...

    def append_text(self, path: str, content: str) -> None: ...


class LocalFileSystem:
    """:class:`FileSystem` backed by a directory on disk."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Path:
        """Map a project-relative path to an absolute one inside the root.

        Raises:
            ValueError: If *path* is absolute or escapes the project root.
        """
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Path escapes the project root: {path}")
        return self.root.joinpath(*rel.parts)

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_file(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def is_dir(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def read_text(self, path: str) -> str:
        return self.resolve(path).read_text(encoding="utf-8")

    def write_text(self, path: str, content: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def append_text(self, path: str, content: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(content)
