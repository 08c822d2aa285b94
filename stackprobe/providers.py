"""Storage providers: where the scanner reads directories and files from."""

from __future__ import annotations

import os
import posixpath
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set

from .models import FileEntry


class StorageProvider(ABC):
    """Read-only view of a tree rooted at ``base_path``."""

    base_path: str

    @abstractmethod
    def list_directory(self, path: str) -> List[FileEntry]:
        """Return the entries of ``path``; raises ``OSError`` when unlistable."""

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """Return file contents; raises ``OSError`` when unreadable."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def is_directory(self, path: str) -> bool:
        ...

    def join(self, *parts: str) -> str:
        return os.path.join(*parts)

    def relative(self, path: str) -> str:
        """Path of ``path`` relative to the base, with ``/`` separators."""
        relative = os.path.relpath(path, self.base_path)
        if relative == ".":
            return ""
        return relative.replace(os.sep, "/")

    def read_text(self, path: str) -> str:
        return self.read_file(path).decode("utf-8", errors="replace")


class FileSystemProvider(StorageProvider):
    """Provider backed by the local filesystem. Symlinks are never followed."""

    def __init__(self, base_path: str | os.PathLike[str]) -> None:
        self.base_path = os.path.abspath(os.fspath(base_path))

    def list_directory(self, path: str) -> List[FileEntry]:
        entries: List[FileEntry] = []
        with os.scandir(path) as iterator:
            for entry in iterator:
                if entry.is_symlink():
                    kind = "symlink"
                elif entry.is_dir(follow_symlinks=False):
                    kind = "dir"
                else:
                    kind = "file"
                try:
                    stat = entry.stat(follow_symlinks=False)
                    size, mod_time = stat.st_size, stat.st_mtime
                except OSError:
                    size, mod_time = 0, 0.0
                entries.append(FileEntry(entry.name, kind, size if kind == "file" else 0, mod_time))
        return entries

    def read_file(self, path: str) -> bytes:
        with open(path, "rb") as handle:
            return handle.read()

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path)


class InMemoryProvider(StorageProvider):
    """Provider over a ``relative path -> contents`` mapping, for tests and fixtures.

    ``unreadable`` lists relative directories or files that raise
    ``PermissionError``; ``order`` lets tests permute listings.
    """

    def __init__(
        self,
        files: Mapping[str, str | bytes],
        base_path: str = "/workspace",
        *,
        directories: Iterable[str] = (),
        unreadable: Iterable[str] = (),
        order: Optional[Callable[[List[FileEntry]], List[FileEntry]]] = None,
    ) -> None:
        self.base_path = posixpath.normpath(base_path)
        self._files: Dict[str, bytes] = {}
        self._dirs: Set[str] = {self.base_path}
        for relative, content in files.items():
            full = self._absolute(relative)
            self._files[full] = content.encode("utf-8") if isinstance(content, str) else content
            self._add_parents(full)
        for relative in directories:
            full = self._absolute(relative)
            self._dirs.add(full)
            self._add_parents(full)
        self._unreadable = {self._absolute(relative) for relative in unreadable}
        self._order = order

    def join(self, *parts: str) -> str:
        return posixpath.join(*parts)

    def relative(self, path: str) -> str:
        relative = posixpath.relpath(path, self.base_path)
        return "" if relative == "." else relative

    def list_directory(self, path: str) -> List[FileEntry]:
        path = posixpath.normpath(path)
        if path not in self._dirs:
            raise FileNotFoundError(path)
        if path in self._unreadable:
            raise PermissionError(path)
        entries: List[FileEntry] = []
        for directory in self._dirs:
            if directory != path and posixpath.dirname(directory) == path:
                entries.append(FileEntry(posixpath.basename(directory), "dir"))
        for file_path, content in self._files.items():
            if posixpath.dirname(file_path) == path:
                entries.append(FileEntry(posixpath.basename(file_path), "file", len(content)))
        entries.sort(key=lambda entry: entry.name)
        return self._order(entries) if self._order else entries

    def read_file(self, path: str) -> bytes:
        path = posixpath.normpath(path)
        if path in self._unreadable:
            raise PermissionError(path)
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def exists(self, path: str) -> bool:
        path = posixpath.normpath(path)
        return path in self._files or path in self._dirs

    def is_directory(self, path: str) -> bool:
        return posixpath.normpath(path) in self._dirs

    def _absolute(self, relative: str) -> str:
        return posixpath.normpath(posixpath.join(self.base_path, relative.strip("/")))

    def _add_parents(self, path: str) -> None:
        parent = posixpath.dirname(path)
        while parent.startswith(self.base_path) and parent not in self._dirs:
            self._dirs.add(parent)
            parent = posixpath.dirname(parent)


__all__ = ["FileSystemProvider", "InMemoryProvider", "StorageProvider"]
