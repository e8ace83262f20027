"""
ticc - multi-file bundler and preprocessor for single-file script runtimes

Flattens a project of imported script files into one macro-expanded source
file, as needed by fantasy consoles that load a single cartridge script.
"""

__version__ = "1.0.0"

from .lib import Compiler, LanguageAdapter, languages, LOG, state_connectToLogger

__all__ = ["Compiler", "LanguageAdapter", "languages", "LOG", "state_connectToLogger", "__version__"]
