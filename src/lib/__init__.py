"""
ticc - multi-file bundler and preprocessor for single-file script runtimes

Core library: compiler, macro engine, language adapters, logging.
"""

from .compiler import Compiler
from .languages import LanguageAdapter, LanguageRegistry, languages
from .macros import MacroEngine
from .log import LOG, state_connectToLogger

__all__ = [
    "Compiler",
    "LanguageAdapter",
    "LanguageRegistry",
    "languages",
    "MacroEngine",
    "LOG",
    "state_connectToLogger",
]
