"""
Pygments-backed comment stripping for target scripting languages

Ordinary source lines are reduced to their significant text before they are
emitted: comments and trailing whitespace go, indentation stays. Pygments'
lexers know each language's string literal rules, so a comment marker inside
a string ("a -- b") is not mistaken for a comment.

Example:
    >>> stripper = CommentStripper("moonscript")
    >>> stripper.strip('  print "a -- b" -- say hi')
    '  print "a -- b"'
"""

from typing import Iterator, Tuple

from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.token import Comment, String, _TokenType


class CommentStripper:
    """
    Removes comment tokens from single lines of one language

    The underlying lexer is created once and reused for every line.
    """

    def __init__(self, pygments_alias: str) -> None:
        """
        Args:
            pygments_alias: Name Pygments knows the language by (e.g., "moonscript", "wren")

        Raises:
            pygments.util.ClassNotFound: If Pygments has no lexer for the alias
        """
        self.alias = pygments_alias
        # stripnl/ensurenl off: token values must concatenate back to the input
        self.lexer: Lexer = get_lexer_by_name(pygments_alias, stripnl=False, ensurenl=False)

    def tokens_get(self, line: str) -> Iterator[Tuple[_TokenType, str]]:
        """Token stream for one line"""
        return self.lexer.get_tokens(line)

    def strip(self, line: str) -> str:
        """
        Return the line without comments and trailing whitespace

        Args:
            line: One physical source line (no line break)

        Returns:
            Significant text of the line, possibly empty
        """
        kept = [value for ttype, value in self.tokens_get(line) if ttype not in Comment]
        return "".join(kept).rstrip()

    def code_get(self, line: str) -> str:
        """Text of the line outside comments and string literals"""
        kept = [
            value for ttype, value in self.tokens_get(line)
            if ttype not in Comment and ttype not in String
        ]
        return "".join(kept)
