"""
Exception hierarchy for ticc

Every failure raised by the library derives from TiccError. Configuration
problems are raised before a compile session starts; everything else is a
CompileError, which aborts the whole session and collects one (path, line)
frame for every file it propagates out of.

Example output:
    symbol 'bar' is not exported by /game/util.moon
      in /game/util_user.moon:3
      in /game/main.moon:7
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple


class TiccError(Exception):
    """Base class for all ticc errors"""
    pass


class ConfigurationError(TiccError):
    """Raised when the project directory, language or output settings are invalid"""
    pass


class CompileError(TiccError):
    """
    Session-aborting error with an import-chain trace

    Attributes:
        message: Human-readable description of the failure itself
        frames: (path, 1-based line) pairs, innermost file first
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.frames: List[Tuple[Path, int]] = []

    def frame_add(self, path: Path, line_number: int) -> "CompileError":
        """Record the file and line this error is propagating out of"""
        self.frames.append((path, line_number))
        return self

    @property
    def location(self) -> Optional[Tuple[Path, int]]:
        """Innermost (path, line) where the error was raised, if known"""
        return self.frames[0] if self.frames else None

    def __str__(self) -> str:
        trace = "".join(f"\n  in {path}:{line}" for path, line in self.frames)
        return f"{self.message}{trace}"


class SourceReadError(CompileError):
    """Raised when the main file or an imported file cannot be read"""
    pass


class MacroError(CompileError):
    """Base class for preprocessor directive errors"""
    pass


class MacroArgumentError(MacroError):
    """Malformed #define or #string arguments"""
    pass


class ConditionSyntaxError(MacroError):
    """Condition of an #if/#elseif is not `X` or `A == B` / `A != B`"""
    pass


class UnknownMacroError(MacroError):
    """Directive name is not one ticc understands"""
    pass


class DanglingElseError(MacroError):
    """#else with no open #if"""
    pass


class DanglingElseIfError(MacroError):
    """#elseif with no open #if"""
    pass


class DanglingEndIfError(MacroError):
    """#endif with no open #if"""
    pass


class UnterminatedIfError(MacroError):
    """Session ended with #if blocks still open"""
    pass


class OutputWriteError(CompileError):
    """The bundle could not be written to the output path"""
    pass


class MalformedImportError(CompileError):
    """Import line does not match any grammar the language adapter supports"""
    pass


class UnexportedSymbolError(CompileError):
    """An import requests a name the target file does not export"""

    def __init__(self, symbol: str, path: Path) -> None:
        super().__init__(f"symbol '{symbol}' is not exported by {path}")
        self.symbol = symbol
        self.path = path


class CircularImportError(CompileError):
    """An import targets a file that is still being processed"""

    def __init__(self, chain: Sequence[Path]) -> None:
        rendered = " -> ".join(str(path) for path in chain)
        super().__init__(f"circular import: {rendered}")
        self.chain = list(chain)
