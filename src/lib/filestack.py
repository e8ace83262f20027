"""
File cache and traversal stack for the import walk

FileCache guarantees every path is read and processed at most once per
compile session; FileStack mirrors the chain of imports currently being
processed, the main file at the bottom.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import appsettings
from ..models.source import SourceFile
from .errors import SourceReadError
from .log import LOG


class FileCache:
    """Canonical path -> SourceFile for every file seen this session"""

    def __init__(self, encoding: Optional[str] = None) -> None:
        self.files: Dict[Path, SourceFile] = {}
        self.encoding = encoding or appsettings.source_encoding

    def __contains__(self, path: Path) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)

    def get(self, path: Path) -> Optional[SourceFile]:
        return self.files.get(path)

    def resolve(self, path: Path) -> Tuple[SourceFile, bool]:
        """
        Cached SourceFile for a path, reading it on first reference

        Args:
            path: Canonical absolute path

        Returns:
            (file, fresh) where fresh is True if the file was just read and
            still has to be processed

        Raises:
            SourceReadError: If the file cannot be read
        """
        cached = self.files.get(path)
        if cached is not None:
            LOG(f"cache hit: {path}", level=2)
            return cached, False

        try:
            source = SourceFile.file_read(path, encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(f"cannot read source file {path}: {e}") from e

        self.files[path] = source
        LOG(f"read {path} ({len(source.rawText)} characters)", level=2)
        return source, True


class FileStack:
    """LIFO of the files whose processing is in progress"""

    def __init__(self) -> None:
        self.stack: List[SourceFile] = []

    def __len__(self) -> int:
        return len(self.stack)

    def __iter__(self) -> Iterator[SourceFile]:
        """Bottom (main file) to top"""
        return iter(self.stack)

    def __contains__(self, path: Path) -> bool:
        return any(source.path == path for source in self.stack)

    def push(self, source: SourceFile) -> None:
        self.stack.append(source)

    def pop(self) -> SourceFile:
        return self.stack.pop()

    def peek(self) -> SourceFile:
        """File currently being scanned; the stack must not be empty"""
        if not self.stack:
            raise IndexError("peek on empty FileStack")
        return self.stack[-1]

    def paths_get(self) -> List[Path]:
        return [source.path for source in self.stack]
