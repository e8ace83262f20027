"""
Centralized logging using Loguru with context-aware verbosity.

LOG() respects the verbosity of the ProgramState connected to the current
context, so library code (compiler, macro engine, watcher) can log without
having the state passed down to it.

Usage:
    from ticc.lib.log import LOG, state_connectToLogger

    # At start of a pipeline stage:
    state_connectToLogger(state)

    # Anywhere in that context:
    LOG("Compiling main.moon", level=1)
    LOG("cache hit: util.moon", level=2)
    LOG("#if DEBUG -> execute", level=3)

Without a connected state (e.g. the library used directly from tests),
nothing is logged.
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

# Context variable to hold current ProgramState
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()  # Remove default handler
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Connect a ProgramState to the logging context.

    Args:
        state: Object with a `verbosity` attribute, normally a ProgramState
    """
    _program_state.set(state)


def verbosity_get() -> int:
    """Verbosity of the connected state, 0 when none is connected"""
    state = _program_state.get()
    return getattr(state, 'verbosity', 0) if state is not None else 0


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=trace)
        **kwargs: Additional loguru metadata

    The record is attributed to the caller of LOG, not to LOG itself.
    """
    if verbosity_get() >= level:
        logger.opt(depth=1).debug(message, **kwargs)


def LOG_error(message: str, **kwargs: Any) -> None:
    """Log a failure regardless of verbosity (used by watch mode)"""
    logger.opt(depth=1).error(message, **kwargs)
