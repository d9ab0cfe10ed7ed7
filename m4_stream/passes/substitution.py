"""
PlaceholderSubstitutionPass
===========================

Expands a macro template by replacing positional placeholders with the
call's arguments.

Placeholder syntax: ``$`` followed by one or more digits.  ``$0`` is the
macro's own name, ``$1`` … ``$N`` are the actual arguments in call order.

The template is scanned once, so replacement text is never rescanned: an
argument that itself contains ``$2`` is copied verbatim, and ``$10`` is
always index ten (never ``$1`` followed by ``0``).  Rescanning for further
*macro names* happens later, when the controller reinjects the result into
the tokenizer.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Set

from ..errors import PlaceholderIndexError

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\$([0-9]+)")


def placeholder_indices(template: str) -> Set[int]:
    """Return the distinct placeholder indices referenced by *template*."""
    return {int(m.group(1)) for m in _PLACEHOLDER_RE.finditer(template)}


class PlaceholderSubstitutionPass:
    """Replaces ``$N`` placeholders in a template with call arguments."""

    def run(
        self,
        template: str,
        args: List[str],
        macro_name: Optional[str] = None,
    ) -> str:
        """
        Substitute *args* into *template*.

        Parameters
        ----------
        template:
            The macro body as stored by ``define``.
        args:
            ``args[0]`` is the macro name, ``args[1:]`` the actual arguments.
        macro_name:
            Used only for error reporting; defaults to ``args[0]``.

        Returns
        -------
        str
            The expanded text.

        Raises
        ------
        PlaceholderIndexError
            A placeholder refers to an argument that was not supplied.
        """
        name = macro_name if macro_name is not None else (args[0] if args else None)

        # Validate first so a failing template produces no partial result
        for index in sorted(placeholder_indices(template)):
            if index >= len(args):
                error = PlaceholderIndexError(name, index, max(len(args) - 1, 0))
                logger.warning("%s", error)
                raise error

        result = _PLACEHOLDER_RE.sub(lambda m: args[int(m.group(1))], template)
        logger.debug("Substituted %s%r -> %r", name or "", args[1:], result)
        return result


def substitute(template: str, args: List[str]) -> str:
    """Module-level shorthand for :meth:`PlaceholderSubstitutionPass.run`."""
    return PlaceholderSubstitutionPass().run(template, args)
