"""
Tests for ExpansionController – the macro-invocation state machine.
"""
from __future__ import annotations

import pytest

from m4_stream.errors import (
    BuiltinArgumentError,
    ExpansionLimitError,
    PlaceholderIndexError,
    UnterminatedCallError,
)
from m4_stream.expansion.controller import (
    COLLECTING,
    IDLE,
    PENDING,
    ExpansionController,
)
from m4_stream.lexer.tokenizer import Tokenizer
from m4_stream.models import NAME, Token
from m4_stream.pipeline.macro_table import BUILTIN_NAMES, MacroTable


@pytest.fixture
def table():
    return MacroTable()


@pytest.fixture
def controller(table):
    return ExpansionController(table, Tokenizer())


def _expand(controller, text):
    controller.feed(text)
    controller.finish()
    return controller.take_output()


# ─────────────────────────────────────────────────────────────────────────────
# Zero-argument and argument calls
# ─────────────────────────────────────────────────────────────────────────────


class TestCalls:
    def test_plain_text_passes_through(self, controller):
        assert _expand(controller, "just (text), here\n") == "just (text), here\n"

    def test_define_then_use(self, controller, table):
        out = _expand(controller, "define(`foo', `Hello world.')\nfoo\n")
        assert out == "\nHello world.\n"
        assert table.template("foo") == "Hello world."

    def test_positional_swap(self, controller):
        out = _expand(controller, "define(`exch', `$2, $1')\nexch(arg1, arg2)\n")
        assert out == "\narg2, arg1\n"

    def test_nested_call_as_argument(self, controller, table):
        table.define("inner", "X")
        table.define("outer", "[$1]")
        assert _expand(controller, "outer(inner)") == "[X]"

    def test_nested_call_with_arguments(self, controller, table):
        table.define("exch", "$2, $1")
        table.define("outer", "[$1]")
        # The rescanned "b, a" splits into two arguments of outer
        assert _expand(controller, "outer(exch(a,b))") == "[b]"

    def test_expansion_rescanned(self, controller, table):
        table.define("a", "b")
        table.define("b", "done")
        assert _expand(controller, "a") == "done"

    def test_balanced_parens_kept_in_argument(self, controller, table):
        table.define("m", "<$1>")
        assert _expand(controller, "m((a,b))") == "<(a,b)>"

    def test_empty_argument_list(self, controller, table):
        table.define("m", "<$1>")
        assert _expand(controller, "m()") == "<>"

    def test_undefined_name_inside_argument(self, controller, table):
        table.define("m", "<$1>")
        assert _expand(controller, "m(plain words)") == "<plain words>"

    def test_quoting_suppresses_expansion(self, controller, table):
        table.define("foo", "Hello")
        assert _expand(controller, "`foo' foo") == "foo Hello"

    def test_quoted_argument_protects_separators(self, controller, table):
        table.define("m", "<$1>")
        assert _expand(controller, "m(`a,b')") == "<a,b>"

    def test_name_followed_by_digit(self, controller, table):
        table.define("x", "Y")
        assert _expand(controller, "x1") == "Y1"

    def test_dollar_zero_quoted_gives_name(self, controller):
        out = _expand(controller, "define(`self', `<`$0'>')self")
        assert out == "<self>"


# ─────────────────────────────────────────────────────────────────────────────
# Whitespace handling
# ─────────────────────────────────────────────────────────────────────────────


class TestWhitespace:
    @pytest.fixture(autouse=True)
    def _macro(self, table):
        table.define("m", "$1|$2")

    def test_no_whitespace(self, controller):
        assert _expand(controller, "m(a,b)") == "a|b"

    def test_leading_whitespace_dropped(self, controller):
        assert _expand(controller, "m( a,\n\t b)") == "a|b"

    def test_trailing_whitespace_kept(self, controller):
        # Only whitespace directly after "(" or "," is dropped
        assert _expand(controller, "m( a , b )") == "a |b "

    def test_inner_whitespace_kept(self, controller):
        assert _expand(controller, "m(a  b,c)") == "a  b|c"

    def test_whitespace_outside_calls_kept(self, controller):
        assert _expand(controller, "  m(a,b)  ") == "  a|b  "


# ─────────────────────────────────────────────────────────────────────────────
# State machine
# ─────────────────────────────────────────────────────────────────────────────


class TestStates:
    def test_name_waits_for_more_input(self, controller, table):
        table.define("foo", "F")
        controller.feed("foo")
        # Name not yet terminated
        assert controller.state == IDLE
        controller.feed(" ")
        assert controller.state == IDLE
        assert controller.take_output() == "F "

    def test_pending_at_chunk_boundary(self, controller, table):
        table.define("m", "<$1>")
        controller.feed("m")
        controller.feed("(")
        # NAME completed by "(", lookahead available
        assert controller.state == COLLECTING
        controller.feed("x)")
        assert controller.state == IDLE
        assert controller.take_output() == "<x>"

    def test_known_name_becomes_pending(self, controller, table):
        # Quoted so the rescanned name is not matched again
        table.define("m", "[`$0']")
        controller._process_token(Token(NAME, "m"))
        assert controller.state == PENDING
        controller.finish()
        assert controller.state == IDLE
        assert controller.take_output() == "[m]"

    def test_unknown_name_is_output(self, controller):
        controller._process_token(Token(NAME, "zzz"))
        assert controller.state == IDLE
        assert controller.take_output() == "zzz"

    def test_nested_name_resolved_into_open_argument(self, controller, table):
        table.define("outer", "[$1]")
        table.define("inner", "X")
        controller.feed("outer(inner")
        # "inner" is still an unterminated name
        assert controller.state == COLLECTING
        assert len(controller.stack) == 1
        controller.feed(" ")
        assert controller.state == COLLECTING
        assert controller.stack[-1].args == ["outer", "X "]

    def test_pending_zero_arg_at_finish(self, controller, table):
        table.define("foo", "F")
        controller.feed("a foo")
        controller.finish()
        assert controller.state == IDLE
        assert controller.take_output() == "a F"


# ─────────────────────────────────────────────────────────────────────────────
# Builtin define
# ─────────────────────────────────────────────────────────────────────────────


class TestDefine:
    def test_redefinition_overwrites(self, controller, table):
        out = _expand(controller, "define(`x', `1')x define(`x', `2')x")
        assert out == "1 2"
        assert table.template("x") == "2"

    def test_in_flight_expansion_unaffected(self, controller, table):
        # The open call to x keeps the template it was matched with
        out = _expand(controller, "define(`x', `old')x(define(`x', `new')) x")
        assert out == "old new"

    def test_unquoted_name_is_expanded_first(self, controller, table):
        table.define("alias", "target")
        _expand(controller, "define(alias, `T')")
        assert table.template("target") == "T"

    def test_every_builtin_has_handler(self, controller):
        assert set(controller._builtins) == set(BUILTIN_NAMES)

    def test_bare_define_is_text(self, controller):
        assert _expand(controller, "define is a word") == "define is a word"

    def test_define_produces_no_output(self, controller):
        assert _expand(controller, "define(`a', `b')") == ""

    @pytest.mark.parametrize(
        "source",
        ["define(`only')", "define(`a', `b', `c')", "define()"],
    )
    def test_wrong_argument_count(self, controller, table, source):
        with pytest.raises(BuiltinArgumentError) as info:
            _expand(controller, source)
        assert info.value.name == "define"
        assert info.value.kind == "BUILTIN_ARGUMENTS"
        assert table.user_macros() == {}

    def test_empty_name_rejected(self, controller):
        with pytest.raises(BuiltinArgumentError):
            _expand(controller, "define(`', `x')")

    def test_cannot_redefine_builtin(self, controller, table):
        with pytest.raises(BuiltinArgumentError):
            _expand(controller, "define(`define', `x')")
        assert table.lookup("define").is_builtin


# ─────────────────────────────────────────────────────────────────────────────
# Failures
# ─────────────────────────────────────────────────────────────────────────────


class TestFailures:
    def test_unterminated_call(self, controller, table):
        table.define("m", "<$1>")
        controller.feed("m(a, b")
        with pytest.raises(UnterminatedCallError) as info:
            controller.finish()
        assert info.value.name == "m"
        assert info.value.open_calls == 1

    def test_unterminated_nested_call_reports_innermost(self, controller, table):
        table.define("m", "<$1>")
        table.define("n", "($1)")
        controller.feed("m(n(x")
        with pytest.raises(UnterminatedCallError) as info:
            controller.finish()
        assert info.value.name == "n"
        assert info.value.open_calls == 2

    def test_placeholder_out_of_range_reinjects_nothing(self, controller, table):
        table.define("m", "<$2>")
        with pytest.raises(PlaceholderIndexError) as info:
            controller.feed("m(a)rest")
        assert info.value.index == 2
        assert controller.state == IDLE
        assert controller.tokenizer.pending_text == "rest"

    def test_usable_after_failure(self, controller, table):
        table.define("m", "<$2>")
        with pytest.raises(PlaceholderIndexError):
            controller.feed("m(a)")
        table.define("ok", "fine")
        assert _expand(controller, " ok") == " fine"

    def test_expansion_limit(self, table):
        controller = ExpansionController(table, Tokenizer(), max_expansions=50)
        table.define("loop", "loop")
        with pytest.raises(ExpansionLimitError) as info:
            controller.feed("loop ")
        assert info.value.name == "loop"
        assert info.value.limit == 50

    def test_expansions_counted(self, controller, table):
        table.define("a", "A")
        _expand(controller, "a a define(`b', `B')b")
        assert controller.expansions == 4

    def test_reset_clears_calls(self, controller, table):
        table.define("m", "<$1>")
        controller.feed("m(abc")
        controller.reset()
        controller.tokenizer.discard()
        assert controller.state == IDLE
        assert _expand(controller, "x") == "x"
