"""
Language adapters for ticc

Each adapter holds the lexical rules of one target scripting language: how
comments, imports, exports, macros and the prelude look. The compiler only
ever talks to the LanguageAdapter interface, so adding a language means
writing one subclass and registering it.

Rules are declared as class-level regular expressions, RegexLexer style;
the base class implements the contract on top of them.
"""

import re
from typing import Dict, List, Optional, Tuple, Type

from ..models.macros import MacroType
from ..models.source import ImportData
from .errors import MacroArgumentError, MalformedImportError
from .lexer import CommentStripper


_MACRO_KEYWORDS: Dict[str, MacroType] = {
    "DEFINE": MacroType.DEFINE,
    "STRING": MacroType.STRING,
    "IF": MacroType.IF,
    "ELSEIF": MacroType.ELSEIF,
    "ELSE": MacroType.ELSE,
    "ENDIF": MacroType.ENDIF,
}

_IDENTIFIER = re.compile(r"\w+")
_ARGUMENT = re.compile(r"\S+")


class LanguageAdapter:
    """
    Lexical rule set for one scripting language

    Subclasses fill in the class attributes below. Two import grammars are
    tried in order: `re_importSymbols` (groups: symbols, path, or the order
    given by `importSymbolsFirst`) and `re_importBare` (group: path).

    Attributes:
        name: Language name, also the output/file extension
        aliases: Alternative names accepted on the command line
        pygments_alias: Lexer name used for comment stripping
        macro_prefix: Literal text opening a directive line (e.g. "--#")
        re_import: Detects a line that attempts an import
        re_importSymbols: Import that requests named symbols
        importSymbolsFirst: Whether the symbols group precedes the path group
        re_importBare: Import that requests nothing
        re_exports: Zero-indentation declarations; group 1 holds the name(s)
        re_prelude: A metadata comment line of the prelude
    """

    name: str = ""
    aliases: Tuple[str, ...] = ()
    description: str = ""
    pygments_alias: str = ""
    macro_prefix: str = ""

    re_import: re.Pattern[str]
    re_importSymbols: re.Pattern[str]
    importSymbolsFirst: bool = True
    re_importBare: re.Pattern[str]
    re_exports: Tuple[re.Pattern[str], ...] = ()
    re_prelude: re.Pattern[str]

    def __init__(self) -> None:
        prefix = re.escape(self.macro_prefix)
        self.re_macroLine = re.compile(rf"^\s*{prefix}")
        self.re_macroType = re.compile(rf"{prefix}\s*(\w+)")
        self.re_macroArgs = re.compile(rf"{prefix}\s*\w+\s+(.*)$")
        self.re_macroString = re.compile(rf"{prefix}\s*\w+\s+(\w+)\s+(.*)$")
        self.stripper = CommentStripper(self.pygments_alias)

    @property
    def extension(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}')"

    # -- ordinary lines -------------------------------------------------

    def unimportant_strip(self, line: str) -> str:
        """Remove comments and trailing whitespace; indentation is kept"""
        return self.stripper.strip(line)

    def defines_substitute(self, line: str, defines: Dict[str, str]) -> str:
        """Replace every identifier token that names a define, in one pass"""
        if not defines:
            return line
        return _IDENTIFIER.sub(lambda m: defines.get(m.group(0), m.group(0)), line)

    def prelude_extract(self, text: str) -> str:
        """Leading run of metadata comment lines, each kept with its line break"""
        prelude = []
        for line in re.split(r"\r?\n", text):
            if not self.re_prelude.match(line):
                break
            prelude.append(line + "\n")
        return "".join(prelude)

    # -- imports --------------------------------------------------------

    def line_isImport(self, line: str) -> bool:
        """Whether the import keyword appears as code, not inside a string"""
        return bool(self.re_import.search(self.stripper.code_get(line)))

    def importData_get(self, line: str) -> ImportData:
        """
        Parse an import line

        Raises:
            MalformedImportError: If the line matches neither import grammar
        """
        match = self.re_importSymbols.search(line)
        if match:
            symbols, path = match.group(1, 2) if self.importSymbolsFirst else match.group(2, 1)
            return ImportData(
                symbols=_IDENTIFIER.findall(symbols),
                relativePath=self.path_complete(path),
            )

        match = self.re_importBare.search(line)
        if match:
            return ImportData(symbols=[], relativePath=self.path_complete(match.group(1)))

        raise MalformedImportError(
            f"import line does not match the {self.name} import templates: {line.strip()!r}"
        )

    def path_complete(self, path: str) -> str:
        return f"{path}.{self.extension}"

    # -- exports --------------------------------------------------------

    def line_isExportDeclaration(self, line: str) -> bool:
        return any(pattern.match(line) for pattern in self.re_exports)

    def exportDeclarations_get(self, line: str) -> List[str]:
        """Names declared by a top-level export line, empty if none"""
        for pattern in self.re_exports:
            match = pattern.match(line)
            if match:
                return _IDENTIFIER.findall(match.group(1))
        return []

    # -- macros ---------------------------------------------------------

    def line_isMacro(self, line: str) -> bool:
        return bool(self.re_macroLine.match(line))

    def macroType_get(self, line: str) -> MacroType:
        match = self.re_macroType.search(line)
        if not match:
            return MacroType.UNKNOWN
        return _MACRO_KEYWORDS.get(match.group(1).upper(), MacroType.UNKNOWN)

    def macroArgs_get(self, line: str) -> List[str]:
        """Whitespace-delimited tokens after the directive name"""
        match = self.re_macroArgs.search(line)
        if not match:
            return []
        return _ARGUMENT.findall(self.unimportant_strip(match.group(1)))

    def macroStringDeclaration_get(self, line: str) -> Tuple[str, str]:
        """
        Name and untouched remainder of a #string directive

        Raises:
            MacroArgumentError: If the name or the contents are missing
        """
        match = self.re_macroString.search(line)
        if not match:
            raise MacroArgumentError(
                f"invalid string macro, expected: {self.macro_prefix}string NAME contents"
            )
        return match.group(1), match.group(2)


class MoonScriptAdapter(LanguageAdapter):
    """MoonScript: `import a, b from require "path"` and `require "path"`"""

    name = "moon"
    aliases = ("moonscript",)
    description = "MoonScript"
    pygments_alias = "moonscript"
    macro_prefix = "--#"

    re_import = re.compile(r"\brequire\b")
    re_importSymbols = re.compile(r'import\s+(.+?)\s+from\s+require\s*"([\w/]+)"')
    re_importBare = re.compile(r'require\s*"([\w/]+)"')
    re_exports = (
        re.compile(r"^(\w+(?:\s*,\s*\w+)*)\s*=(?!=)"),
        re.compile(r"^class\s+(\w+)"),
    )
    re_prelude = re.compile(r"^--\s*\w+\s*:")


class WrenAdapter(LanguageAdapter):
    """Wren: `import "path" for A, B` and `import "path"`"""

    name = "wren"
    description = "Wren"
    pygments_alias = "wren"
    macro_prefix = "//#"

    re_import = re.compile(r"\bimport\b")
    re_importSymbols = re.compile(r'import\s+"([\w/]+)"\s+for\s+(.+)')
    importSymbolsFirst = False
    re_importBare = re.compile(r'import\s+"([\w/]+)"\s*$')
    # Wren cannot tell top-level declarations apart lexically; a capitalised
    # name at zero indentation is treated as an export.
    re_exports = (
        re.compile(r"^(?:foreign\s+)?class\s+([A-Z]\w*)"),
        re.compile(r"^var\s+([A-Z]\w*)"),
    )
    re_prelude = re.compile(r"^//\s*\w+\s*:")


class LuaAdapter(LanguageAdapter):
    """Lua: `local a, b = require "path"` and `require "path"` / `require("path")`"""

    name = "lua"
    description = "Lua"
    pygments_alias = "lua"
    macro_prefix = "--#"

    re_import = re.compile(r"\brequire\b")
    re_importSymbols = re.compile(
        r"""^\s*local\s+(\w+(?:\s*,\s*\w+)*)\s*=\s*require\s*\(?\s*["']([\w/]+)["']\s*\)?"""
    )
    re_importBare = re.compile(r"""require\s*\(?\s*["']([\w/]+)["']\s*\)?""")
    re_exports = (
        re.compile(r"^function\s+([A-Za-z_]\w*)\s*\("),
        re.compile(r"^(?!local\b)([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s*=(?!=)"),
    )
    re_prelude = re.compile(r"^--\s*\w+\s*:")


class LanguageRegistry:
    """
    Registry of supported languages

    Maps language names and aliases to adapter classes. Adapters are
    instantiated on lookup so no lexer state is shared between sessions.
    """

    def __init__(self) -> None:
        self.adapters: Dict[str, Type[LanguageAdapter]] = {}
        for adapter in (MoonScriptAdapter, WrenAdapter, LuaAdapter):
            self.register(adapter)

    def register(self, adapter: Type[LanguageAdapter]) -> None:
        """Register an adapter class under its name and aliases"""
        self.adapters[adapter.name] = adapter
        for alias in adapter.aliases:
            self.adapters[alias] = adapter

    def get(self, name: str) -> Optional[LanguageAdapter]:
        """Fresh adapter for a language name or alias, None if unsupported"""
        adapter = self.adapters.get(name.lower())
        return adapter() if adapter else None

    def canonical_get(self, name: str) -> Optional[str]:
        """Canonical language name for a name or alias"""
        adapter = self.adapters.get(name.lower())
        return adapter.name if adapter else None

    def names_list(self) -> List[str]:
        return sorted({adapter.name for adapter in self.adapters.values()})


languages = LanguageRegistry()
