"""
Tokenizer
=========

Character-driven state machine turning streamed text into
:class:`~m4_stream.models.Token` objects.

States (see :data:`~m4_stream.models.LEXER_STATES`):

* ``SCANNING_DELIMITER`` – a letter or ``_`` starts a name, a left quote
  starts a quoted string (the quote itself is dropped), anything else is
  emitted at once as a one-character ``LITERAL``.
* ``SCANNING_NAME`` – letters and ``_`` accumulate; the first other
  character ends the ``NAME`` token without being consumed.
* ``SCANNING_QUOTED_STRING`` – left quotes raise the depth, right quotes
  lower it; at depth zero the closing quote is dropped and a ``STRING``
  token is produced.  Nested quote pairs are kept verbatim.

Input arrives through :meth:`Tokenizer.push`.  Expansion results are put
back in front of the unconsumed input with :meth:`Tokenizer.reinject`, which
is how nested and recursive expansion is rescanned without any recursion in
the caller.  :meth:`Tokenizer.next_token` returns
:data:`~m4_stream.models.NEED_MORE_INPUT` when the buffer runs out before a
token is complete, and only produces the ``END`` token after
:meth:`Tokenizer.mark_end`.
"""
from __future__ import annotations

import logging
import string
from typing import List, Optional, Union

from ..errors import UnterminatedQuoteError
from ..models import (
    END,
    END_OF_INPUT,
    LITERAL,
    NAME,
    NEED_MORE_INPUT,
    SCANNING_DELIMITER,
    SCANNING_NAME,
    SCANNING_QUOTED_STRING,
    STRING,
    StreamSignal,
    Token,
)

logger = logging.getLogger(__name__)

DEFAULT_LEFT_QUOTE = "`"
DEFAULT_RIGHT_QUOTE = "'"

_NAME_CHARS = frozenset(string.ascii_letters + "_")


def is_name_char(c: str) -> bool:
    """Return True if *c* may appear in a macro name."""
    return c in _NAME_CHARS


class Tokenizer:
    """
    Incremental tokenizer over a growable input buffer.

    Parameters
    ----------
    left_quote, right_quote:
        Single-character quote delimiters.  They must differ, otherwise
        depth counting could never close a string.
    """

    def __init__(
        self,
        left_quote: str = DEFAULT_LEFT_QUOTE,
        right_quote: str = DEFAULT_RIGHT_QUOTE,
    ) -> None:
        if len(left_quote) != 1 or len(right_quote) != 1:
            raise ValueError("quote delimiters must be single characters")
        if left_quote == right_quote:
            raise ValueError("left and right quote delimiters must differ")
        self.left_quote = left_quote
        self.right_quote = right_quote
        self.state = SCANNING_DELIMITER
        self._source = ""
        self._pos = 0
        self._buffer: List[str] = []
        self._quote_depth = 0
        self._end = False

    # ------------------------------------------------------------------
    # Input management
    # ------------------------------------------------------------------

    def push(self, text: str) -> None:
        """Append *text* after the unconsumed input."""
        self._compact()
        self._source += text

    def reinject(self, text: str) -> None:
        """Insert *text* before the unconsumed input so it is read next."""
        self._compact()
        self._source = text + self._source
        logger.debug("Reinjected %d chars: %r", len(text), text)

    def mark_end(self) -> None:
        """Signal that no more input will be pushed."""
        self._end = True

    def discard(self) -> None:
        """Drop all unconsumed input and any partially scanned token."""
        self._source = ""
        self._pos = 0
        self._buffer = []
        self._quote_depth = 0
        self._end = False
        self.state = SCANNING_DELIMITER

    @property
    def pending_text(self) -> str:
        """Unconsumed input (excludes a partially scanned token)."""
        return self._source[self._pos:]

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def peek_char(self) -> Union[str, StreamSignal]:
        """
        Return the next unconsumed character without advancing.

        Returns :data:`END_OF_INPUT` once the input is finished and
        exhausted, :data:`NEED_MORE_INPUT` when it is merely exhausted.
        """
        if self._pos < len(self._source):
            return self._source[self._pos]
        return END_OF_INPUT if self._end else NEED_MORE_INPUT

    def next_token(self) -> Union[Token, StreamSignal]:
        """
        Return the next complete token or :data:`NEED_MORE_INPUT`.

        Raises
        ------
        UnterminatedQuoteError
            The input was finished while a quoted string was still open.
        """
        while self._pos < len(self._source):
            token = self._step(self._source[self._pos])
            if token is not None:
                return token

        if not self._end:
            return NEED_MORE_INPUT

        return self._step(None)  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # State handlers – each advances ``_pos`` past what it consumes
    # ------------------------------------------------------------------

    def _step(self, c: Optional[str]) -> Optional[Token]:
        if self.state == SCANNING_NAME:
            return self._scan_name(c)
        if self.state == SCANNING_QUOTED_STRING:
            return self._scan_quoted_string(c)
        return self._scan_delimiter(c)

    def _scan_delimiter(self, c: Optional[str]) -> Optional[Token]:
        if c is None:
            # END is produced once per finish(); further input may follow
            self._end = False
            return Token(END)

        self._pos += 1

        if is_name_char(c):
            self._buffer.append(c)
            self.state = SCANNING_NAME
            return None

        if c == self.left_quote:
            self._quote_depth = 1
            self.state = SCANNING_QUOTED_STRING
            return None

        return Token(LITERAL, c)

    def _scan_name(self, c: Optional[str]) -> Optional[Token]:
        if c is None or not is_name_char(c):
            return self._take(NAME)

        self._pos += 1
        self._buffer.append(c)
        return None

    def _scan_quoted_string(self, c: Optional[str]) -> Optional[Token]:
        if c is None:
            error = UnterminatedQuoteError(self._quote_depth, "".join(self._buffer))
            logger.warning("%s", error)
            raise error

        self._pos += 1

        if c == self.left_quote:
            self._quote_depth += 1
        elif c == self.right_quote:
            self._quote_depth -= 1
            if self._quote_depth == 0:
                return self._take(STRING)

        self._buffer.append(c)
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _take(self, token_type: str) -> Token:
        token = Token(token_type, "".join(self._buffer))
        self._buffer = []
        self.state = SCANNING_DELIMITER
        return token

    def _compact(self) -> None:
        if self._pos:
            self._source = self._source[self._pos:]
            self._pos = 0
