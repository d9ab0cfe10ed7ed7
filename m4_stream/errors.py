"""
Exception classes for the macro engine.

Every failure carries a ``kind`` plus the offending macro ``name`` and, where
it applies, a placeholder ``index``, so callers can report it without
parsing the message.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class M4Error(Exception):
    """Base exception for all engine failures."""

    kind = "ERROR"

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        self.message = message
        self.name = name
        self.index = index
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "index": self.index,
            "message": self.message,
        }


class UnterminatedQuoteError(M4Error):
    """End of input reached inside a quoted string."""

    kind = "UNTERMINATED_QUOTE"

    def __init__(self, depth: int, text: str = "") -> None:
        self.depth = depth
        self.text = text
        super().__init__(
            f"end of input inside quoted string (depth {depth})"
        )


class UnterminatedCallError(M4Error):
    """End of input reached while a macro call is still collecting arguments."""

    kind = "UNTERMINATED_CALL"

    def __init__(self, name: str, open_calls: int = 1) -> None:
        self.open_calls = open_calls
        super().__init__(
            f"end of input in argument list of {name!r} "
            f"({open_calls} open call{'s' if open_calls != 1 else ''})",
            name=name,
        )


class PlaceholderIndexError(M4Error):
    """A template references ``$N`` beyond the supplied arguments."""

    kind = "UNDEFINED_PLACEHOLDER"

    def __init__(self, name: Optional[str], index: int, available: int) -> None:
        self.available = available
        who = f"macro {name!r}" if name else "template"
        super().__init__(
            f"{who} references ${index} but only {available} "
            f"argument{'s were' if available != 1 else ' was'} supplied",
            name=name,
            index=index,
        )


class BuiltinArgumentError(M4Error):
    """A builtin was invoked with arguments it cannot accept."""

    kind = "BUILTIN_ARGUMENTS"

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{name}: {message}", name=name)


class ExpansionLimitError(M4Error):
    """The configured maximum number of expansions was exceeded."""

    kind = "EXPANSION_LIMIT"

    def __init__(self, name: str, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"expansion limit of {limit} exceeded while calling {name!r}",
            name=name,
        )
