"""
M4Engine
========

Caller-facing facade over the streaming expansion pipeline.

Combines :class:`~m4_stream.lexer.tokenizer.Tokenizer` (lexing),
:class:`~m4_stream.expansion.controller.ExpansionController` (macro calls)
and :class:`~m4_stream.pipeline.macro_table.MacroTable` (definitions).

Input may be supplied in arbitrarily small chunks through :meth:`ingest`;
tokens that straddle a chunk boundary are completed once the rest arrives.
:meth:`finish` flushes the final token and reports unterminated quotes or
calls.  Each engine owns its own table, so independent engines never see
each other's definitions.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from ..expansion.controller import ExpansionController
from ..lexer.tokenizer import DEFAULT_LEFT_QUOTE, DEFAULT_RIGHT_QUOTE, Tokenizer
from .macro_table import MacroTable

logger = logging.getLogger(__name__)


class M4Engine:
    """
    Streaming ``define`` / quote / positional-argument macro expander.

    Parameters
    ----------
    left_quote, right_quote:
        Quote delimiters (single, distinct characters).
    max_expansions:
        Maximum number of completed macro calls over the engine's lifetime.
        ``None`` (the default) means unbounded, in which case a
        self-referential macro never terminates.
    definitions:
        Macros to predefine, name -> template.

    Example
    -------
    >>> engine = M4Engine()
    >>> engine.expand_text("define(`greet', `Hello $1.')greet(world)")
    'Hello world.'
    """

    def __init__(
        self,
        left_quote: str = DEFAULT_LEFT_QUOTE,
        right_quote: str = DEFAULT_RIGHT_QUOTE,
        max_expansions: Optional[int] = None,
        definitions: Optional[Dict[str, str]] = None,
    ) -> None:
        self.macros = MacroTable()
        self._tokenizer = Tokenizer(left_quote, right_quote)
        self._controller = ExpansionController(
            self.macros, self._tokenizer, max_expansions=max_expansions
        )
        for name, template in (definitions or {}).items():
            self.define(name, template)

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    def ingest(self, chunk: str) -> None:
        """Feed one chunk of source text and expand what it completes."""
        self._controller.feed(chunk)

    def finish(self) -> None:
        """
        Signal end of input.

        Raises
        ------
        UnterminatedQuoteError, UnterminatedCallError
            The input ended inside a quoted string or an argument list.
        """
        self._controller.finish()

    def take_output(self) -> str:
        """Return and clear the expanded text produced so far."""
        return self._controller.take_output()

    def expand_text(self, source: str) -> str:
        """
        Expand a complete *source* string in one go.

        Definitions made by *source* stay in effect for later calls.
        """
        self.ingest(source)
        self.finish()
        return self.take_output()

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def define(self, name: str, template: str) -> None:
        """Define *name* as if ``define(name, template)`` had been read."""
        self.macros.define(name, template)

    def is_defined(self, name: str) -> bool:
        return name in self.macros

    # ------------------------------------------------------------------
    # Recovery / introspection
    # ------------------------------------------------------------------

    def recover(self) -> None:
        """
        Make the engine usable again after a failure.

        Unconsumed input, open calls, the pending match and any partial
        token are discarded.  Definitions and produced output are kept.
        """
        logger.info(
            "Recovering: dropping %d unconsumed chars",
            len(self._tokenizer.pending_text),
        )
        self._tokenizer.discard()
        self._controller.reset()

    @property
    def state(self) -> str:
        """``IDLE``, ``PENDING`` or ``COLLECTING``."""
        return self._controller.state

    @property
    def expansions(self) -> int:
        return self._controller.expansions
