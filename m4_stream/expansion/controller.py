"""
ExpansionController
===================

Drives the :class:`~m4_stream.lexer.tokenizer.Tokenizer` and turns its
tokens into expanded output.

States
------
``IDLE``
    No pending match, empty invocation stack.  Tokens go straight to the
    output.
``PENDING``
    A ``NAME`` token matched a known macro.  The next raw character decides
    what happens: ``(`` opens an argument list (a new frame is pushed), any
    other character or end of input expands the macro with zero arguments.
``COLLECTING``
    At least one frame is open.  Tokens are appended to the current
    argument of the innermost frame; ``(`` / ``)`` track nesting, ``,`` at
    depth zero starts a new argument and ``)`` at depth zero completes the
    call.

Completed calls never recurse: the expansion text is reinjected in front
of the unconsumed input and rescanned by the same loop.  A macro name found
inside an argument therefore becomes PENDING, is expanded to completion,
and its result flows back as plain tokens into the paused outer argument.

Leading whitespace after ``(`` and after an argument-separating ``,`` is
dropped; trailing whitespace is kept as part of the argument.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from ..errors import BuiltinArgumentError, ExpansionLimitError, UnterminatedCallError
from ..lexer.tokenizer import Tokenizer
from ..models import (
    BUILTIN_DEFINE,
    END,
    LITERAL,
    NAME,
    NEED_MORE_INPUT,
    InvocationFrame,
    MacroDefinition,
    Token,
)
from ..passes.substitution import PlaceholderSubstitutionPass
from ..pipeline.macro_table import MacroTable

logger = logging.getLogger(__name__)

IDLE = "IDLE"
PENDING = "PENDING"
COLLECTING = "COLLECTING"


class ExpansionController:
    """
    Macro-invocation state machine.

    Parameters
    ----------
    table:
        The macro definitions, shared with (and mutated on behalf of) the
        caller.  ``define`` calls found in the input write into it.
    tokenizer:
        Token source; the controller pushes input into it and reinjects
        expansion results.
    max_expansions:
        Upper bound on completed calls, ``None`` for no limit.
    """

    def __init__(
        self,
        table: MacroTable,
        tokenizer: Tokenizer,
        max_expansions: Optional[int] = None,
    ) -> None:
        self.table = table
        self.tokenizer = tokenizer
        self.max_expansions = max_expansions
        self.expansions = 0
        self._substitution = PlaceholderSubstitutionPass()
        self._stack: List[InvocationFrame] = []
        self._pending: Optional[MacroDefinition] = None
        self._skip_whitespace = False
        self._output: List[str] = []
        self._builtins: Dict[str, Callable[[InvocationFrame], None]] = {
            BUILTIN_DEFINE: self._define,
        }

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        if self._pending is not None:
            return PENDING
        if self._stack:
            return COLLECTING
        return IDLE

    @property
    def stack(self) -> List[InvocationFrame]:
        """Open frames, innermost last (a copy)."""
        return list(self._stack)

    def feed(self, text: str) -> None:
        """Push *text* and process every token it completes."""
        self.tokenizer.push(text)
        self._drain()

    def finish(self) -> None:
        """
        Mark end of input and process what remains.

        Raises
        ------
        UnterminatedQuoteError
            A quoted string is still open.
        UnterminatedCallError
            A call's argument list was never closed.
        """
        self.tokenizer.mark_end()
        self._drain()

    def take_output(self) -> str:
        """Return and clear the accumulated output."""
        text = "".join(self._output)
        self._output = []
        return text

    def reset(self) -> None:
        """Forget in-progress calls and the pending match; keep output."""
        if self._stack or self._pending is not None:
            logger.debug(
                "Discarding %d open call(s) and pending %r",
                len(self._stack),
                self._pending.name if self._pending else None,
            )
        self._stack = []
        self._pending = None
        self._skip_whitespace = False

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def _drain(self) -> None:
        while True:
            if self._pending is not None:
                if not self._resolve_pending(self._pending):
                    return
                continue

            token = self.tokenizer.next_token()
            if token is NEED_MORE_INPUT:
                return

            if token.type == END:
                if self._stack:
                    error = UnterminatedCallError(self._stack[-1].name, len(self._stack))
                    logger.warning("%s", error)
                    raise error
                return

            self._process_token(token)

    def _resolve_pending(self, definition: MacroDefinition) -> bool:
        """Decide a pending match; False when more input is needed first."""
        ch = self.tokenizer.peek_char()
        if ch is NEED_MORE_INPUT:
            return False

        self._pending = None

        if ch == "(":
            self.tokenizer.next_token()  # the "(" itself
            frame = InvocationFrame(definition)
            frame.start_argument()
            self._stack.append(frame)
            self._skip_whitespace = True
            logger.debug("Opened call %r (depth %d)", definition.name, len(self._stack))
        else:
            self._call(InvocationFrame(definition))
        return True

    def _process_token(self, token: Token) -> None:
        if self._skip_whitespace and token.is_whitespace():
            return
        self._skip_whitespace = False

        if token.type == NAME:
            definition = self.table.lookup(token.value)
            if definition is not None:
                self._pending = definition
                return

        if not self._stack:
            self._output.append(token.value)
            return

        if token.type == LITERAL and self._process_literal_in_call(token.value):
            return

        self._stack[-1].append(token.value)

    def _process_literal_in_call(self, ch: str) -> bool:
        """Handle call punctuation; True when *ch* was consumed."""
        frame = self._stack[-1]

        if ch == "(":
            frame.paren_depth += 1
        elif ch == ")":
            if frame.paren_depth == 0:
                self._stack.pop()
                self._call(frame)
                return True
            frame.paren_depth -= 1
        elif ch == "," and frame.paren_depth == 0:
            frame.start_argument()
            self._skip_whitespace = True
            return True
        return False

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _call(self, frame: InvocationFrame) -> None:
        self.expansions += 1
        if self.max_expansions is not None and self.expansions > self.max_expansions:
            error = ExpansionLimitError(frame.name, self.max_expansions)
            logger.warning("%s", error)
            raise error

        if frame.definition.is_builtin:
            self._builtins[frame.name](frame)
            return

        text = self._substitution.run(frame.template, frame.args, frame.name)
        logger.debug("Expanded %r -> %r", frame.name, text)
        self.tokenizer.reinject(text)

    def _define(self, frame: InvocationFrame) -> None:
        # A bare "define" is ordinary text
        if frame.argument_count == 0:
            self._emit(frame.name)
            return

        if frame.argument_count != 2:
            error = BuiltinArgumentError(
                frame.name,
                f"expected 2 arguments (name, template), got {frame.argument_count}",
            )
            logger.warning("%s", error)
            raise error

        name, template = frame.args[1], frame.args[2]
        self.table.define(name, template)
        if self.table.is_recursive(name):
            logger.warning(
                "Macro %r can expand to itself; expansion may not terminate", name
            )

    def _emit(self, text: str) -> None:
        if self._stack:
            self._stack[-1].append(text)
        else:
            self._output.append(text)
