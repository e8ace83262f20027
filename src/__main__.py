#!/usr/bin/env python3
"""
ticc - multi-file bundler and preprocessor for single-file script runtimes

Fantasy consoles such as TIC-80 load a game as one script. ticc lets that
script be written as many files: it follows the import statements from
main.<ext>, inlines every imported file once, checks that imported names are
really exported, and runs a small preprocessor over the result.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Preprocessor (MoonScript/Lua spelling, Wren uses //# instead of --#):
    --#define DEBUG
    --#define LEVEL 3
    --#string GREETING Hello,   World!
    --#if LEVEL == 3
    ...
    --#elseif DEBUG
    ...
    --#else
    ...
    --#endif

Usage:
    ticc projectdir/ outputdir/ [--language moon] [--output cart] [-D "DEBUG;LEVEL=3"] [--watch]

Examples:
    # Detect the language from main.*, write outputdir/out.<ext>
    ticc game/ build/

    # Seed defines and rebuild on every change
    ticc game/ build/ --output cart -D "DEBUG=false;LEVEL=2" --watch -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter
from typing import Any, Dict, Optional

from chris_plugin import chris_plugin

from . import __version__
from .config import appsettings
from .lib import Compiler, languages, LOG, state_connectToLogger
from .lib.errors import ConfigurationError, TiccError
from .lib.project import (
    defines_parse,
    directory_check,
    language_detect,
    mainFile_find,
    outputFile_derive,
    projectConfig_load,
)
from .lib.watcher import ProjectWatcher
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
  _   _
 | |_(_) ___ ___
 | __| |/ __/ __|
 | |_| | (_| (__
  \__|_|\___\___|

  Single-file script bundler
"""

# Define CLI arguments
parser = ArgumentParser(
    description="ticc - bundle a multi-file script project into one preprocessed file",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "-l",
    "--language",
    default=appsettings.default_language,
    type=str,
    help=f"Language of the project: auto | {' | '.join(languages.names_list())}",
)

parser.add_argument(
    "-o",
    "--output",
    default=appsettings.output_basename,
    type=str,
    help="Output file name within outputdir, extension optional",
)

parser.add_argument(
    "-D",
    "--define",
    default="",
    type=str,
    help='Defines seeded before compiling, e.g. -D "var1=value;var2;var3=value"',
)

parser.add_argument(
    "-w",
    "--watch",
    action="store_true",
    help="Recompile whenever a source file in the project directory changes",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the project and resolve language, paths and defines.

    Merges the optional ticc.yaml with the CLI options (CLI wins), detects the
    language, locates main.<ext> and derives the output path.

    Returns:
        ProgramState with added fields:
            - languageName, mainFile, outputFile, defines, envOK

    Exits:
        1 on any configuration error; nothing has been compiled yet
    """
    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    try:
        directory = directory_check(Path(state.inputdir))
        project = projectConfig_load(directory)

        requested = state.language
        if requested == appsettings.default_language and "language" in project:
            requested = project["language"]
        output = state.output
        if output == appsettings.output_basename and "output" in project:
            output = project["output"]

        state.languageName = language_detect(requested, directory)
        state.mainFile = mainFile_find(directory, state.languageName)
        state.outputFile = outputFile_derive(output, state.languageName, Path(state.outputdir))
        state.defines = {**project.get("defines", {}), **defines_parse(state.define)}
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.inputdir = directory
    LOG(f"language: {state.languageName}", level=1)
    LOG(f"main: {state.mainFile}", level=1)
    LOG(f"out: {state.outputFile}", level=1)
    for name, value in state.defines.items():
        LOG(f"define: {name} = {value}", level=1)

    state.envOK = True
    return state


def session_run(state: ProgramState) -> Optional[Dict[str, Any]]:
    """
    Run one fresh compile session and report its failure, if any.

    Returns:
        The session result, or None when the session aborted
    """
    adapter = languages.get(state.languageName)
    if adapter is None:
        raise ConfigurationError(f"language not yet implemented: {state.languageName}")

    compiler = Compiler(
        language=adapter,
        main_file=state.mainFile,
        output_file=state.outputFile,
        directory=state.inputdir,
        defines=state.defines,
    )
    try:
        result = compiler.start()
    except TiccError as e:
        print(f"Compilation error: {e}", file=sys.stderr)
        if state.verbosity >= 3:
            import traceback

            traceback.print_exc()
        return None

    LOG("OK", level=1)
    return result


def source_compile(inputstate: ProgramState) -> ProgramState:
    """
    Bundle the project once.

    Returns:
        ProgramState with added field:
            - compileResult: Dict containing status, output_file,
              file_count, line_count, define_count

    Exits:
        1 if compilation fails and watch mode is off
    """
    state = inputstate.copy()

    if not state.envOK:
        print("Error: environment not validated", file=sys.stderr)
        sys.exit(1)

    state.compileResult = session_run(state)
    if state.compileResult is None and not state.watch:
        sys.exit(1)
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display compilation results to user.

    Returns:
        ProgramState unchanged
    """
    state: ProgramState = inputstate.copy()
    if not state.compileResult:
        return state

    LOG("\n✓ Compilation successful!", level=1)
    LOG(f"  Output: {state.compileResult['output_file']}", level=1)
    LOG(f"  Files:  {state.compileResult['file_count']}", level=1)
    LOG(f"  Lines:  {state.compileResult['line_count']}", level=1)
    return state


def project_watch(inputstate: ProgramState) -> ProgramState:
    """
    Keep rebuilding on changes when --watch is set (terminal stage).

    Every rebuild is a brand new compile session; failures are reported
    and watching continues.
    """
    state: ProgramState = inputstate.copy()
    if not state.watch:
        return state

    watcher = ProjectWatcher(
        directory=state.inputdir,
        extension=state.languageName,
        output_file=state.outputFile,
    )
    watcher.watch(lambda: session_run(state))
    return state


@chris_plugin(
    parser=parser,
    title="ticc - single-file script bundler",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - bundle the project in inputdir into outputdir.

    Orchestrates the pipeline:
        1. env_check: Validate project, language, output path and defines
        2. source_compile: Run one compile session
        3. results_report: Display results to user
        4. project_watch: Rebuild on change when --watch is set

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, source_compile, results_report, project_watch)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
