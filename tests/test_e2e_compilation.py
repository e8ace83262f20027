"""
End-to-end compilation tests

Tests the full session: project directory -> Compiler -> bundled file.

Each test writes a small project into a temporary directory, compiles it
and checks the exact bundle text (or the error and the absence of output).
"""

import tempfile
from pathlib import Path
from typing import Dict, Optional

import pytest

from ticc.lib.compiler import Compiler
from ticc.lib.errors import (
    CircularImportError,
    MalformedImportError,
    OutputWriteError,
    SourceReadError,
    UnexportedSymbolError,
    UnterminatedIfError,
    DanglingEndIfError,
)
from ticc.lib.languages import languages


def project_write(root: Path, files: Dict[str, str]) -> None:
    for name, text in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def compiler_make(
    root: Path,
    language: str = "moon",
    defines: Optional[Dict[str, str]] = None,
    output: str = "out",
) -> Compiler:
    return Compiler(
        language=languages.get(language),
        main_file=root / f"main.{language}",
        output_file=root / "build" / f"{output}.{language}",
        directory=root,
        defines=defines,
    )


def bundle(files: Dict[str, str], language: str = "moon", defines=None) -> str:
    """Compile a project given as {relative path: text} and return the bundle"""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        project_write(root, files)
        result = compiler_make(root, language, defines).start()
        assert result['status'] is True
        return Path(result['output_file']).read_text(encoding="utf-8")


class TestBasicBundling:
    """Imports inlined, import lines elided, defines substituted"""

    def test_require_define_and_substitution(self):
        output = bundle({
            "main.moon": '--#define VERSION 2\nrequire "util"\nprint(VERSION)\n',
            "util.moon": "util = 1\n",
        })
        assert output == "util = 1\nprint(2)\n"

    def test_single_file(self):
        assert bundle({"main.moon": "x = 1\n\n\nprint x\n"}) == "x = 1\nprint x\n"

    def test_comments_and_trailing_space_stripped(self):
        output = bundle({"main.moon": "x = 1   -- answer\n-- note\n  y = 2\n"})
        assert output == "x = 1\n  y = 2\n"

    def test_prelude_written_first_and_once(self):
        output = bundle({
            "main.moon": '-- title: demo\n-- script: moon\nrequire "a"\nprint A\n',
            "a.moon": "-- title: not a prelude\nA = 1\n",
        })
        assert output == "-- title: demo\n-- script: moon\nA = 1\nprint A\n"

    def test_nested_import_path(self):
        output = bundle({
            "main.moon": 'import Vec from require "geom/vec"\nprint Vec\n',
            "geom/vec.moon": "class Vec\n  new: => nil\n",
        })
        assert output == "class Vec\n  new: => nil\nprint Vec\n"

    def test_keywords_inside_strings_are_plain_code(self):
        output = bundle({"main.moon": 'print "you require a key"\nprint "import it"\n'})
        assert output == 'print "you require a key"\nprint "import it"\n'

    def test_session_statistics(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": '--#define A 1\nrequire "u"\nprint A\n',
                "u.moon": "u = 1\n",
            })
            result = compiler_make(root).start()
            assert result['file_count'] == 2
            assert result['line_count'] == 2
            assert result['define_count'] == 1


class TestDiamondImports:
    """A file reachable through several imports is emitted once"""

    FILES = {
        "main.moon": 'import A from require "a"\nimport B from require "b"\nprint A, B\n',
        "a.moon": 'import C1 from require "c"\nA = C1\n',
        "b.moon": 'import C2 from require "c"\nB = C2\n',
        "c.moon": "C1 = 1\nC2 = 2\n",
    }

    def test_shared_file_appears_once_at_first_import(self):
        output = bundle(self.FILES)
        assert output == "C1 = 1\nC2 = 2\nA = C1\nB = C2\nprint A, B\n"

    def test_bookkeeping_of_symbols(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, self.FILES)
            compiler = compiler_make(root)
            compiler.start()

            c = compiler.cache.get((root / "c.moon").resolve())
            main = compiler.cache.get((root / "main.moon").resolve())
            assert c.exportedSymbols == {"C1", "C2"}
            assert main.importedSymbols == ["A", "B"]


class TestSymbolContract:
    """Requested names must be exported by the target"""

    def test_unexported_symbol_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": 'import bar from require "util"\n',
                "util.moon": "foo = 1\n",
            })
            compiler = compiler_make(root)

            with pytest.raises(UnexportedSymbolError) as excinfo:
                compiler.start()

            assert excinfo.value.symbol == "bar"
            assert excinfo.value.path == (root / "util.moon").resolve()
            assert not compiler.output_file.exists()

    def test_indented_declaration_is_not_exported(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": 'import inner from require "util"\n',
                "util.moon": "if true\n  inner = 1\n",
            })
            with pytest.raises(UnexportedSymbolError):
                compiler_make(root).start()

    def test_cached_target_is_still_validated(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": 'require "util"\nimport nope from require "util"\n',
                "util.moon": "yes = 1\n",
            })
            with pytest.raises(UnexportedSymbolError, match="nope"):
                compiler_make(root).start()

    def test_malformed_import(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {"main.moon": "x = require util\n"})
            with pytest.raises(MalformedImportError):
                compiler_make(root).start()


class TestConditionalCompilation:
    """Emission gated by #if blocks"""

    def test_equality_branch(self):
        output = bundle({
            "main.moon": (
                "--#define FOO 1\n"
                "--#if FOO == 1\n"
                'print "A"\n'
                "--#else\n"
                'print "B"\n'
                "--#endif\n"
            ),
        })
        assert output == 'print "A"\n'

    def test_undefined_name_is_false(self):
        assert bundle({"main.moon": '--#if BAR\nprint "C"\n--#endif\n'}) == ""

    def test_nested_suppressed_block_is_opaque(self):
        output = bundle({
            "main.moon": (
                "--#if X\n"
                "--#if Y\n"
                'print "D"\n'
                "--#endif\n"
                "--#endif\n"
                'print "after"\n'
            ),
        })
        assert output == 'print "after"\n'

    def test_elseif_chain(self):
        main = (
            "--#if LEVEL == 1\n"
            "print 1\n"
            "--#elseif LEVEL == 2\n"
            "print 2\n"
            "--#else\n"
            "print 3\n"
            "--#endif\n"
        )
        assert bundle({"main.moon": main}, defines={"LEVEL": "2"}) == "print 2\n"
        assert bundle({"main.moon": main}, defines={"LEVEL": "9"}) == "print 3\n"

    def test_seeded_defines_visible_from_first_line(self):
        output = bundle({"main.moon": '--#if DEBUG\nprint "dbg"\n--#endif\n'}, defines={"DEBUG": "false"})
        assert output == ""

    def test_suppressed_import_is_never_visited(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {"main.moon": '--#if NOPE\nrequire "missing"\n--#endif\nx = 1\n'})
            result = compiler_make(root).start()
            assert result['file_count'] == 1
            assert Path(result['output_file']).read_text() == "x = 1\n"

    def test_block_spanning_import(self):
        output = bundle({
            "main.moon": '--#if X\nrequire "a"\n--#else\nrequire "b"\n--#endif\n',
            "a.moon": "a = 1\n",
            "b.moon": "b = 1\n",
        })
        assert output == "b = 1\n"

    def test_unterminated_if(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {"main.moon": "--#if true\nx = 1\n"})
            with pytest.raises(UnterminatedIfError) as excinfo:
                compiler_make(root).start()
            assert excinfo.value.frames == [((root / "main.moon").resolve(), 1)]

    def test_unterminated_if_points_at_opening_line(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": 'require "util"\nx = 1\n',
                "util.moon": "u = 1\n--#if DEBUG\nv = 2\n",
            })
            with pytest.raises(UnterminatedIfError) as excinfo:
                compiler_make(root).start()
            assert excinfo.value.location == ((root / "util.moon").resolve(), 2)

    def test_directive_with_trailing_comment(self):
        output = bundle({
            "main.moon": "--#if DEBUG -- dev only\nx = 1\n--#else -- release\nx = 2\n--#endif\n",
        }, defines={"DEBUG": "true"})
        assert output == "x = 1\n"


class TestDefinePropagation:
    """Defines are global and applied in visitation order"""

    def test_define_from_import_affects_later_lines_only(self):
        output = bundle({
            "main.moon": 'print LEVEL\nrequire "config"\nprint LEVEL\n',
            "config.moon": "--#define LEVEL 5\n",
        })
        assert output == "print LEVEL\nprint 5\n"

    def test_string_define_preserves_spacing(self):
        output = bundle({
            "main.moon": '--#string GREETING Hello,   World!\nprint "GREETING"   \n',
        })
        assert output == 'print "Hello,   World!"\n'

    def test_string_define_is_substituted_once(self):
        output = bundle({
            "main.moon": "--#define NAME Bob\n--#string MSG Hi NAME\nprint MSG\n",
        })
        assert output == "print Hi NAME\n"


class TestSessionProperties:
    """Idempotence, atomic output, fresh state per session"""

    FILES = {
        "main.moon": '-- title: t\n--#define N 3\nimport f from require "lib"\nprint f N\n',
        "lib.moon": "f = (n) -> n * 2\n",
    }

    def test_compiling_twice_is_byte_identical(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, self.FILES)
            first = Path(compiler_make(root).start()['output_file']).read_bytes()
            second = Path(compiler_make(root).start()['output_file']).read_bytes()
            assert first == second

    def test_failed_session_keeps_previous_output(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, self.FILES)
            output_file = Path(compiler_make(root).start()['output_file'])
            previous = output_file.read_text()

            project_write(root, {"lib.moon": "g = 1\n"})
            with pytest.raises(UnexportedSymbolError):
                compiler_make(root).start()

            assert output_file.read_text() == previous
            assert [p.name for p in output_file.parent.iterdir()] == [output_file.name]

    def test_non_atomic_output(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {"main.moon": "x = 1\n"})
            compiler = compiler_make(root)
            compiler.atomic = False
            compiler.start()
            assert compiler.output_file.read_text() == "x = 1\n"

    def test_unwritable_output_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {"main.moon": "x = 1\n", "blocker": ""})
            compiler = compiler_make(root)
            compiler.output_file = root / "blocker" / "out.moon"

            with pytest.raises(OutputWriteError, match="cannot write"):
                compiler.start()
            assert (root / "blocker").is_file()


class TestErrorContext:
    """Errors carry the chain of files and lines they crossed"""

    def test_macro_error_in_imported_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": 'x = 1\nrequire "broken"\n',
                "broken.moon": "a = 1\nb = 2\n--#endif\n",
            })
            with pytest.raises(DanglingEndIfError) as excinfo:
                compiler_make(root).start()

            error = excinfo.value
            assert error.frames == [
                ((root / "broken.moon").resolve(), 3),
                ((root / "main.moon").resolve(), 2),
            ]
            assert error.location == ((root / "broken.moon").resolve(), 3)
            assert "broken.moon:3" in str(error)
            assert "main.moon:2" in str(error)

    def test_missing_import(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {"main.moon": 'require "missing"\n'})
            with pytest.raises(SourceReadError) as excinfo:
                compiler_make(root).start()
            assert excinfo.value.frames == [((root / "main.moon").resolve(), 1)]

    def test_missing_main_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(SourceReadError):
                compiler_make(Path(tmpdir)).start()

    def test_circular_import(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.moon": 'require "a"\n',
                "a.moon": 'require "b"\n',
                "b.moon": 'require "a"\n',
            })
            with pytest.raises(CircularImportError) as excinfo:
                compiler_make(root).start()
            assert [p.name for p in excinfo.value.chain] == ["main.moon", "a.moon", "b.moon", "a.moon"]


class TestOtherLanguages:
    """Wren and Lua projects go through the same engine"""

    def test_wren_project(self):
        output = bundle({
            "main.wren": '// title: demo\n//#define SPEED 4\nimport "math/vec" for Vec\nSystem.print(Vec.zero + SPEED)\n',
            "math/vec.wren": "class Vec {\n  static zero { 0 }\n}\n",
        }, language="wren")
        assert output == (
            "// title: demo\n"
            "class Vec {\n"
            "  static zero { 0 }\n"
            "}\n"
            "System.print(Vec.zero + 4)\n"
        )

    def test_wren_keyword_inside_string(self):
        output = bundle({"main.wren": 'System.print("import done")\n'}, language="wren")
        assert output == 'System.print("import done")\n'

    def test_lua_project(self):
        output = bundle({
            "main.lua": '-- title: demo\nlocal clamp = require "util"\nprint(clamp(5))\n',
            "util.lua": "function clamp(x)\n  return x\nend\n",
        }, language="lua")
        assert output == "-- title: demo\nfunction clamp(x)\n  return x\nend\nprint(clamp(5))\n"

    def test_lua_unexported_local(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            project_write(root, {
                "main.lua": 'local helper = require "util"\n',
                "util.lua": "local function helper() end\n",
            })
            with pytest.raises(UnexportedSymbolError):
                compiler_make(root, language="lua").start()
