"""
Core data models for the streaming macro engine.

Tokens, lexer states, stream signals, macro definitions and invocation
frames.  Plain string constants are used for the various "type" fields so
that values stay readable in logs and ``to_dict`` output.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

NAME = "NAME"          # Run of letters / underscores
STRING = "STRING"      # Quoted text, outermost delimiters stripped
LITERAL = "LITERAL"    # Any other single character
END = "END"            # End of input (after finish())

TOKEN_TYPES = {NAME, STRING, LITERAL, END}


@dataclass(frozen=True)
class Token:
    """A single lexical token produced by the tokenizer."""

    type: str
    value: str = ""

    def is_whitespace(self) -> bool:
        return self.type == LITERAL and not self.value.strip()

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r})"


class StreamSignal:
    """Non-token result of a tokenizer read or peek."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


#: Buffered text is not enough to complete the current token / character.
NEED_MORE_INPUT = StreamSignal("NEED_MORE_INPUT")

#: ``peek_char`` result once the input has been finished and fully consumed.
END_OF_INPUT = StreamSignal("END_OF_INPUT")


# ---------------------------------------------------------------------------
# Lexer states
# ---------------------------------------------------------------------------

SCANNING_DELIMITER = "SCANNING_DELIMITER"
SCANNING_NAME = "SCANNING_NAME"
SCANNING_QUOTED_STRING = "SCANNING_QUOTED_STRING"

LEXER_STATES = {SCANNING_DELIMITER, SCANNING_NAME, SCANNING_QUOTED_STRING}


# ---------------------------------------------------------------------------
# Macro definitions
# ---------------------------------------------------------------------------

BUILTIN = "BUILTIN"
USER = "USER"

BUILTIN_DEFINE = "define"


@dataclass(frozen=True)
class MacroDefinition:
    """
    A macro the engine knows about.

    ``kind`` is :data:`BUILTIN` (behaviour implemented by the controller,
    ``template`` unused) or :data:`USER` (a ``define``-registered template).
    """

    name: str
    kind: str
    template: str = ""

    @classmethod
    def builtin(cls, name: str) -> MacroDefinition:
        return cls(name=name, kind=BUILTIN)

    @classmethod
    def user(cls, name: str, template: str) -> MacroDefinition:
        return cls(name=name, kind=USER, template=template)

    @property
    def is_builtin(self) -> bool:
        return self.kind == BUILTIN

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "kind": self.kind, "template": self.template}


# ---------------------------------------------------------------------------
# Invocation frame
# ---------------------------------------------------------------------------


@dataclass
class InvocationFrame:
    """
    One in-progress macro call.

    ``args[0]`` holds the macro's own name; real arguments start at index 1.
    ``paren_depth`` counts the unmatched ``(`` seen inside the argument list.
    """

    definition: MacroDefinition
    args: List[str] = field(default_factory=list)
    paren_depth: int = 0

    def __post_init__(self) -> None:
        if not self.args:
            self.args.append(self.definition.name)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def template(self) -> str:
        return self.definition.template

    @property
    def argument_count(self) -> int:
        """Number of real arguments (``args[0]`` excluded)."""
        return len(self.args) - 1

    def start_argument(self) -> None:
        self.args.append("")

    def append(self, text: str) -> None:
        self.args[-1] += text

    def __repr__(self) -> str:
        return (
            f"InvocationFrame(name={self.name!r}, args={self.args[1:]!r}, "
            f"paren_depth={self.paren_depth})"
        )
