"""
Macro and conditional-compilation engine

Interprets preprocessor directives for one compile session. Owns the define
table, the conditional stack and the count of #if blocks opened inside a
suppressed branch. All three are shared by every file of the session, in
visitation order.

Directive summary:
    #define NAME          NAME -> "true"
    #define NAME VALUE    NAME -> VALUE
    #string NAME text     NAME -> text, spacing and punctuation untouched
    #if COND / #elseif COND / #else / #endif
        COND is a single token (truthy unless "false", "0", undefined, or a
        define holding "false"/"0") or `A == B` / `A != B` where each side is
        replaced by its define value when it names one.

Inside a suppressed branch nested #if blocks are opaque: they are counted,
never evaluated, and their #elseif/#else/#endif are consumed by the count.
"""

import re
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..config import appsettings
from ..models.macros import (
    BRANCH_TRANSITIONS,
    CONDITION_OPERATORS,
    FALSY_TOKENS,
    SUPPRESSED_MODES,
    BranchAction,
    ConditionalMode,
    MacroType,
)
from .errors import (
    ConditionSyntaxError,
    DanglingElseError,
    DanglingElseIfError,
    DanglingEndIfError,
    MacroArgumentError,
    UnknownMacroError,
    UnterminatedIfError,
)
from .languages import LanguageAdapter
from .log import LOG


_BARE_NAME = re.compile(r"^[A-Za-z_]\w*$")


class MacroEngine:
    """
    State machine behind #define/#string/#if/#elseif/#else/#endif

    Attributes:
        language: Adapter used to pull arguments out of directive lines
        defines: Define table, name -> replacement text
        conditions: Conditional stack, innermost block last
        openings: Where each block on the conditional stack was opened
        disabledNestedIfCount: #if blocks opened inside the suppressed branch
    """

    def __init__(self, language: LanguageAdapter, defines: Optional[Dict[str, str]] = None) -> None:
        self.language = language
        self.defines: Dict[str, str] = dict(defines or {})
        self.conditions: List[ConditionalMode] = []
        self.openings: List[Optional[Tuple[Path, int]]] = []
        self.origin: Optional[Tuple[Path, int]] = None
        self.disabledNestedIfCount = 0
        self.handlers: Dict[MacroType, Callable[[str], None]] = {
            MacroType.DEFINE: self.define_handle,
            MacroType.STRING: self.string_handle,
            MacroType.IF: self.if_handle,
            MacroType.ELSEIF: self.elseif_handle,
            MacroType.ELSE: self.else_handle,
            MacroType.ENDIF: self.endif_handle,
            MacroType.UNKNOWN: self.unknown_handle,
        }

    # -- state queries --------------------------------------------------

    def mode_get(self) -> ConditionalMode:
        if not self.conditions:
            return ConditionalMode.NORMAL_EXECUTION
        return self.conditions[-1]

    def emit_allowed(self) -> bool:
        """Whether an ordinary line at this point may be written"""
        return self.mode_get() not in SUPPRESSED_MODES

    def finish_check(self) -> None:
        """
        Raises:
            UnterminatedIfError: If any #if block is still open
        """
        if self.conditions:
            error = UnterminatedIfError(f"{len(self.conditions)} #if block(s) not closed by #endif")
            if self.openings[-1] is not None:
                error.frame_add(*self.openings[-1])
            raise error

    # -- dispatch -------------------------------------------------------

    def macro_handle(
        self,
        macro_type: MacroType,
        line: str,
        origin: Optional[Tuple[Path, int]] = None,
    ) -> None:
        """
        Apply one directive line

        Args:
            macro_type: Classification from the language adapter
            line: Raw directive line, arguments are extracted lazily
            origin: File and line number of the directive, if known

        Raises:
            MacroError: Subclass describing the malformed or misplaced directive
        """
        if not self.macro_shouldHandle(macro_type):
            LOG(f"suppressed {macro_type.value} (nested={self.disabledNestedIfCount})", level=3)
            return
        self.origin = origin
        self.handlers[macro_type](line)

    def macro_shouldHandle(self, macro_type: MacroType) -> bool:
        """
        Decide whether a directive acts, updating the nested-#if count

        Only conditional directives can act while the enclosing branch is
        suppressed, and only when they belong to that enclosing block.
        """
        if self.mode_get() not in SUPPRESSED_MODES:
            return True

        if macro_type is MacroType.IF:
            self.disabledNestedIfCount += 1
            return False

        if macro_type is MacroType.ENDIF:
            if self.disabledNestedIfCount > 0:
                self.disabledNestedIfCount -= 1
                return False
            return True

        if macro_type in (MacroType.ELSEIF, MacroType.ELSE):
            return self.disabledNestedIfCount == 0

        return False

    # -- handlers -------------------------------------------------------

    def define_handle(self, line: str) -> None:
        args = self.language.macroArgs_get(line)
        if len(args) == 1:
            self.define_set(args[0], appsettings.flag_define_value)
        elif len(args) == 2:
            self.define_set(args[0], args[1])
        elif not args:
            raise MacroArgumentError("define macro must have at least 1 argument")
        else:
            raise MacroArgumentError(
                "too many arguments to define macro. did you mean to use a string macro?"
            )

    def string_handle(self, line: str) -> None:
        name, contents = self.language.macroStringDeclaration_get(line)
        self.define_set(name, contents)

    def if_handle(self, line: str) -> None:
        self.block_open(self.language.macroArgs_get(line))
        self.openings.append(self.origin)

    def elseif_handle(self, line: str) -> None:
        if not self.conditions:
            raise DanglingElseIfError("#elseif without a matching #if")
        action = BRANCH_TRANSITIONS[self.conditions[-1]]
        if action is BranchAction.SEAL:
            self.block_replace(ConditionalMode.WAIT_FOR_END)
        elif action is BranchAction.ENTER:
            self.conditions.pop()
            self.block_open(self.language.macroArgs_get(line))

    def else_handle(self, line: str) -> None:
        if not self.conditions:
            raise DanglingElseError("#else without a matching #if")
        action = BRANCH_TRANSITIONS[self.conditions[-1]]
        if action is BranchAction.SEAL:
            self.block_replace(ConditionalMode.WAIT_FOR_END)
        elif action is BranchAction.ENTER:
            self.block_replace(ConditionalMode.EXECUTE_BLOCK)

    def endif_handle(self, line: str) -> None:
        if not self.conditions:
            raise DanglingEndIfError("#endif without a matching #if")
        closed = self.conditions.pop()
        self.openings.pop()
        self.disabledNestedIfCount = 0
        LOG(f"#endif closes {closed.value}, depth {len(self.conditions)}", level=3)

    def unknown_handle(self, line: str) -> None:
        raise UnknownMacroError(f"unknown macro: {line.strip()}")

    # -- helpers --------------------------------------------------------

    def define_set(self, name: str, value: str) -> None:
        self.defines[name] = value
        LOG(f"define {name} = {value!r}", level=3)

    def block_open(self, args: List[str]) -> None:
        mode = (
            ConditionalMode.EXECUTE_BLOCK
            if self.condition_evaluate(args)
            else ConditionalMode.WAIT_FOR_ELSEIF
        )
        self.conditions.append(mode)
        self.disabledNestedIfCount = 0
        LOG(f"#if {' '.join(args)} -> {mode.value}, depth {len(self.conditions)}", level=3)

    def block_replace(self, mode: ConditionalMode) -> None:
        self.conditions[-1] = mode
        self.disabledNestedIfCount = 0

    def condition_evaluate(self, args: List[str]) -> bool:
        """
        Truth value of an #if/#elseif condition

        Raises:
            ConditionSyntaxError: Unless the condition is 1 token or `A op B`
        """
        if len(args) == 1:
            return self.token_isTruthy(args[0])

        if len(args) == 3 and args[1] in CONDITION_OPERATORS:
            lhs, op, rhs = args
            equal = self.defines.get(lhs, lhs) == self.defines.get(rhs, rhs)
            return equal if op == "==" else not equal

        raise ConditionSyntaxError(
            f"invalid condition {' '.join(args)!r}, expected NAME or A == B / A != B"
        )

    def token_isTruthy(self, token: str) -> bool:
        if token in FALSY_TOKENS:
            return False
        if token in self.defines:
            return self.defines[token] not in FALSY_TOKENS
        # An identifier that is not defined counts as false
        if _BARE_NAME.match(token) and token != "true":
            return False
        return True
