"""
Macro directive and conditional-compilation models

Defines the closed set of preprocessor directives understood by ticc and the
modes of the conditional stack that gates emission of ordinary lines.
"""

from enum import Enum
from typing import Dict, FrozenSet


class MacroType(Enum):
    """
    Kinds of preprocessor directive

    The language adapter classifies every macro line into exactly one of these.
    """
    DEFINE = "define"    # #define NAME [value]
    STRING = "string"    # #string NAME raw text kept verbatim
    IF = "if"            # #if COND  /  #if A == B
    ELSEIF = "elseif"
    ELSE = "else"
    ENDIF = "endif"
    UNKNOWN = "unknown"  # any other directive name, always an error when reached


class ConditionalMode(Enum):
    """
    State of the innermost open #if block

    NORMAL_EXECUTION is never pushed; it is what an empty stack reports.
    """
    NORMAL_EXECUTION = "normal"
    EXECUTE_BLOCK = "execute"        # current branch is live
    WAIT_FOR_ELSEIF = "wait_elseif"  # no branch has run yet
    WAIT_FOR_END = "wait_end"        # a branch already ran


class BranchAction(Enum):
    """What an #elseif/#else does to the block it continues"""
    SEAL = "seal"          # pop, push WAIT_FOR_END
    ENTER = "enter"        # pop, then evaluate (#elseif) or run unconditionally (#else)
    IGNORE = "ignore"      # leave the block untouched


# Transition table for #elseif/#else on the enclosing block.
BRANCH_TRANSITIONS: Dict[ConditionalMode, BranchAction] = {
    ConditionalMode.EXECUTE_BLOCK: BranchAction.SEAL,
    ConditionalMode.WAIT_FOR_ELSEIF: BranchAction.ENTER,
    ConditionalMode.WAIT_FOR_END: BranchAction.IGNORE,
}

# Modes in which ordinary lines are dropped and nested #if blocks are opaque.
SUPPRESSED_MODES: FrozenSet[ConditionalMode] = frozenset({
    ConditionalMode.WAIT_FOR_ELSEIF,
    ConditionalMode.WAIT_FOR_END,
})

FALSY_TOKENS: FrozenSet[str] = frozenset({"false", "0"})

CONDITION_OPERATORS: FrozenSet[str] = frozenset({"==", "!="})
