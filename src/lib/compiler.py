"""
Compiler for multi-file scripting projects

Bundles a project rooted at main.<ext> into one source file: imports are
resolved depth-first and inlined where they appear, every file is emitted at
most once, import/export symbol contracts are checked, and the preprocessor
(#define/#string/#if...) runs on every line before it is written.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import appsettings
from ..models.source import SourceFile
from .errors import CircularImportError, CompileError, OutputWriteError, UnexportedSymbolError
from .filestack import FileCache, FileStack
from .languages import LanguageAdapter
from .log import LOG
from .macros import MacroEngine


class Compiler:
    """
    One compile session: main file in, bundled file out

    Responsibilities:
    - Write the main file's prelude verbatim
    - Walk the import graph depth-first, inlining each file once
    - Feed directive lines to the macro engine
    - Strip, substitute and gate ordinary lines
    - Validate requested symbols against the target's exports
    - Commit the output only if the whole session succeeds

    A Compiler instance is single use; build a new one for every rebuild so
    that no cache, define or conditional state leaks between sessions.
    """

    def __init__(
        self,
        language: LanguageAdapter,
        main_file: Union[str, Path],
        output_file: Union[str, Path],
        directory: Union[str, Path],
        defines: Optional[Dict[str, str]] = None,
        atomic: Optional[bool] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            language: Adapter for the project's scripting language
            main_file: Entry file of the project
            output_file: Path of the bundled file to produce
            directory: Project root; import paths are relative to it
            defines: Seed defines, visible from the first line of main
            atomic: Commit through a temporary file and rename
                    (default: appsettings.atomic_output)
        """
        self.language = language
        self.main_file = Path(main_file)
        self.output_file = Path(output_file)
        self.directory = Path(directory).resolve()
        self.atomic = appsettings.atomic_output if atomic is None else atomic

        self.cache = FileCache()
        self.files = FileStack()
        self.macros = MacroEngine(language, defines)
        self.output: List[str] = []

    def start(self) -> Dict[str, Any]:
        """
        Run the session and write the bundle

        Returns:
            dict with the output path and session statistics

        Raises:
            CompileError: On the first error anywhere in the import graph;
                          the output file is then left untouched
        """
        main_path = self.path_canonical(self.main_file)
        LOG(f"Compiling {main_path.name} ({self.language.name})...", level=1)

        main, _ = self.cache.resolve(main_path)

        prelude = self.language.prelude_extract(main.rawText)
        if prelude:
            self.output.append(prelude)

        self.files.push(main)
        self.file_process(main)
        self.files.pop()

        try:
            self.macros.finish_check()
        except CompileError as e:
            if not e.frames:
                e.frame_add(main.path, len(main.rawText.splitlines()))
            raise

        self.output_commit()
        LOG(f"Wrote {self.output_file}", level=1)

        return {
            'status': True,
            'output_file': str(self.output_file),
            'file_count': len(self.cache),
            'line_count': self.lines_count(),
            'define_count': len(self.macros.defines),
        }

    def file_process(self, source: SourceFile) -> None:
        """
        Process every line of a file, in order

        Errors leaving this method carry this file and the line number of
        the failing line (for imports: the import line).
        """
        LOG(f"processing {source.path} (depth {len(self.files)})", level=2)
        for line_number, line in enumerate(source.lines, start=1):
            try:
                self.line_process(source, line, line_number)
            except CompileError as e:
                e.frame_add(source.path, line_number)
                raise

    def line_process(self, source: SourceFile, line: str, line_number: int) -> None:
        """
        Handle one physical line

        Directives go to the macro engine and are never written. Everything
        else is stripped, then define-substituted, then either resolved as an
        import or written, if the conditional state allows it.
        """
        language = self.language

        if language.line_isMacro(line):
            self.macros.macro_handle(language.macroType_get(line), line, (source.path, line_number))
            return

        # strip first: #string values must not be touched by stripping
        code = language.defines_substitute(language.unimportant_strip(line), self.macros.defines)
        if not code.strip():
            return

        if not self.macros.emit_allowed():
            return

        if language.line_isImport(code):
            self.import_resolve(code)
            return

        if language.line_isExportDeclaration(code):
            source.exportedSymbols.update(language.exportDeclarations_get(code))

        self.output.append(code + "\n")

    def import_resolve(self, line: str) -> None:
        """
        Inline the target of an import line and check requested symbols

        A target seen earlier in the session is not processed or emitted
        again; only its exports are checked.

        Raises:
            MalformedImportError: Line does not match the import grammar
            SourceReadError: Target cannot be read
            CircularImportError: Target is still being processed
            UnexportedSymbolError: Target does not export a requested name
        """
        data = self.language.importData_get(line)
        path = self.path_canonical(self.directory / data.relativePath)

        if path in self.files:
            raise CircularImportError(self.files.paths_get() + [path])

        target, fresh = self.cache.resolve(path)
        if fresh:
            self.files.push(target)
            try:
                self.file_process(target)
            finally:
                self.files.pop()

        self.symbols_validate(target, data.symbols)
        self.files.peek().importedSymbols.extend(data.symbols)

    def symbols_validate(self, target: SourceFile, symbols: List[str]) -> None:
        for symbol in symbols:
            if symbol not in target.exportedSymbols:
                raise UnexportedSymbolError(symbol, target.path)

    def output_commit(self) -> None:
        """
        Write the buffered output to the output file

        With atomic output the text goes to a temporary file next to the
        destination, which then replaces it; a failed write removes the
        temporary file and leaves any previous bundle intact.

        Raises:
            OutputWriteError: If the destination cannot be created or written
        """
        try:
            self.bundle_write("".join(self.output), appsettings.source_encoding)
        except OSError as e:
            raise OutputWriteError(f"cannot write {self.output_file}: {e}") from e

    def bundle_write(self, text: str, encoding: str) -> None:
        self.output_file.parent.mkdir(parents=True, exist_ok=True)

        if not self.atomic:
            self.output_file.write_text(text, encoding=encoding)
            return

        handle = tempfile.NamedTemporaryFile(
            mode="w",
            encoding=encoding,
            newline="",
            dir=self.output_file.parent,
            prefix=f".{self.output_file.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                handle.write(text)
            os.replace(handle.name, self.output_file)
        except BaseException:
            Path(handle.name).unlink(missing_ok=True)
            raise

    def lines_count(self) -> int:
        return sum(chunk.count("\n") for chunk in self.output)

    @staticmethod
    def path_canonical(path: Union[str, Path]) -> Path:
        return Path(path).resolve()
