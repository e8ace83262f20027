"""
Models package for ticc

Contains data structures and type definitions for the bundling pipeline.
"""

from .state import ProgramState, pipeline
from .macros import MacroType, ConditionalMode, BranchAction, BRANCH_TRANSITIONS
from .source import SourceFile, ImportData

__all__ = [
    "ProgramState",
    "pipeline",
    "MacroType",
    "ConditionalMode",
    "BranchAction",
    "BRANCH_TRANSITIONS",
    "SourceFile",
    "ImportData",
]
