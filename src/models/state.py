"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the bundling pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the run progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, language, output, define, watch
        - env_check: languageName, mainFile, outputFile, defines, envOK
        - source_compile: compileResult
        - results_report: (no additions)
        - project_watch: (no additions, terminal stage)

    Attributes:
        inputdir: Project directory holding main.<ext> and its imports
        outputdir: Directory receiving the bundled file
        verbosity: Logging verbosity level (1-3)
        language: Requested language name, or "auto"
        output: Requested output basename, with or without extension
        define: Raw "key=value;key" define seed string from the CLI
        watch: Rebuild on every change after the first build
        envOK: Environment validation passed
        languageName: Resolved language name
        mainFile: Resolved path to the main source file
        outputFile: Resolved path of the bundled output file
        defines: Parsed define seeds (project file merged with CLI)
        compileResult: Result mapping of the most recent compile session
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    language: str = field(default="auto")
    output: str = field(default="out")
    define: str = field(default="")
    watch: bool = field(default=False)

    # Pipeline state
    envOK: bool = field(default=False)
    languageName: str = field(default="")
    mainFile: Path = field(default=Path("/"))
    outputFile: Path = field(default=Path("/"))
    defines: Dict[str, str] = field(default_factory=dict)
    compileResult: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments (language, output, define, etc.)
            inputdir: Project directory
            outputdir: Destination directory

        Returns:
            ProgramState instance with all known CLI options as attributes
        """
        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Namespace may carry chris_plugin's own options; keep ours only
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            source_compile,
            results_report,
            project_watch,
        )

    This is equivalent to:
        project_watch(results_report(source_compile(env_check(initial_state))))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
