"""
m4_stream
=========

A streaming text macro expander implementing the core of the classic
``define`` / quoting / positional-parameter model.

Text is fed incrementally; macro invocations are recognised and rewritten
in place, and expansion results are rescanned for further macro names.

Quick start
-----------
>>> from m4_stream import M4Engine
>>> engine = M4Engine()
>>> engine.ingest("define(`exch', `$2, $1')\\n")
>>> engine.ingest("exch(arg1, arg2)\\n")
>>> engine.finish()
>>> engine.take_output()
'\\narg2, arg1\\n'
"""

from .errors import (
    BuiltinArgumentError,
    ExpansionLimitError,
    M4Error,
    PlaceholderIndexError,
    UnterminatedCallError,
    UnterminatedQuoteError,
)
from .expansion.controller import ExpansionController
from .lexer.tokenizer import Tokenizer
from .models import InvocationFrame, MacroDefinition, Token
from .passes.substitution import PlaceholderSubstitutionPass, substitute
from .pipeline.m4_engine import M4Engine
from .pipeline.macro_table import MacroTable

__version__ = "0.1.0"
__all__ = [
    "BuiltinArgumentError",
    "ExpansionController",
    "ExpansionLimitError",
    "InvocationFrame",
    "M4Engine",
    "M4Error",
    "MacroDefinition",
    "MacroTable",
    "PlaceholderIndexError",
    "PlaceholderSubstitutionPass",
    "Token",
    "Tokenizer",
    "UnterminatedCallError",
    "UnterminatedQuoteError",
    "substitute",
]
