"""
Source file data models

Type-safe structures for the files visited during a compile session and for
the parsed form of an import line.
"""

import re
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import List, Set


_LINE_BREAK = re.compile(r"\r?\n")


@dataclass
class ImportData:
    """
    Result of parsing one import line

    Attributes:
        symbols: Names requested from the target file (empty for bare imports)
        relativePath: Path of the target relative to the project root,
                      including the language extension

    Example:
        For MoonScript `import Vec, Rect from require "geom/shapes"`:
        ImportData(symbols=["Vec", "Rect"], relativePath="geom/shapes.moon")
    """
    symbols: List[str]
    relativePath: str


@dataclass
class SourceFile:
    """
    One file of the project, as read at the start of the compile session

    The text is never modified after construction. The two symbol
    collections are filled in while the file's own lines are processed.

    Attributes:
        path: Canonical absolute path, also the FileCache key
        rawText: Full file contents
        exportedSymbols: Top-level names the file declares
        importedSymbols: Names the file requested from its imports, in order
    """
    path: Path
    rawText: str
    exportedSymbols: Set[str] = field(default_factory=set)
    importedSymbols: List[str] = field(default_factory=list)

    @cached_property
    def lines(self) -> List[str]:
        """Physical lines of the file, line breaks removed"""
        return _LINE_BREAK.split(self.rawText)

    @classmethod
    def file_read(cls, path: Path, encoding: str = "utf-8") -> "SourceFile":
        """Read a file from disk; OSError propagates to the caller"""
        return cls(path=path, rawText=path.read_text(encoding=encoding))
