"""
Unit tests for exhaustive-return and reachability analysis.

Tests cover:
- Conditionals with and without default branches
- Constant-condition loops, break and continue
- panic as a terminator
- Unreachable statement warnings
"""

import pytest

from typecore import check, CheckerConfig, ErrorKind
from typecore.builders import (
    binop, call, ret, panic, brk, cont, pass_, var, assign, expr_stmt,
    if_, elif_, match, case, while_, for_, func, module, lit,
)
from typecore.errors import NonExhaustiveReturnError
from typecore.symbols import FunctionSignature
from typecore.types import INT
from typecore.verifier import Flow, FunctionVerifier


def int_function(*body, name="f"):
    """A function f(n: int): int with the given body."""
    return func(name, {"n": "int"}, "int", list(body), span=1)


def verify(*body, warn_unreachable=False):
    """Classify an int function body directly, without inference."""
    fn = int_function(*body)
    verifier = FunctionVerifier(warn_unreachable=warn_unreachable)
    return verifier.verify(fn, FunctionSignature("f", [("n", INT)], INT)), verifier


class TestConditionals:
    """Test if/elif/else and match."""

    def test_if_without_else_falls_through(self):
        """invalid(n) returns only when n < 100, so it is rejected."""
        result = check(module(
            func("invalid", {"n": "int"}, "int", [
                if_(binop("n", "<", 100), [ret(binop("n", "*", 2))]),
            ], span=3),
        ))
        assert not result.accepted
        error = result.errors[0]
        assert error.kind == ErrorKind.NON_EXHAUSTIVE_RETURN
        assert error.code == "E230"
        assert error.span.start.line == 3
        assert "'invalid'" in error.message

    def test_if_else_both_return(self):
        """Every branch returning makes the statement return."""
        flow, _ = verify(if_(binop("n", "<", 0), [ret(0)], else_=[ret("n")]))
        assert flow == Flow.RETURNS

    def test_elif_branch_falls_through(self):
        """One falling-through branch is enough to fall through."""
        with pytest.raises(NonExhaustiveReturnError):
            verify(if_(binop("n", "<", 0), [ret(0)],
                       elifs=[elif_(binop("n", "==", 0), pass_())],
                       else_=[ret("n")]))

    def test_match_with_default(self):
        """A match returns when every case and the default return."""
        flow, _ = verify(match("n", [case([1], ret(10)), case([2, 3], ret(20))], default=[ret(0)]))
        assert flow == Flow.RETURNS

    def test_match_without_default(self):
        """Without a default, a match may fall through even if every case returns."""
        with pytest.raises(NonExhaustiveReturnError):
            verify(match("n", [case([1], ret(10)), case([2], ret(20))]))

    def test_statement_after_conditional(self):
        """A trailing return covers a conditional that falls through."""
        flow, _ = verify(if_(binop("n", ">", 0), [ret("n")]), ret(0))
        assert flow == Flow.RETURNS


class TestLoops:
    """Test loop classification."""

    def test_while_true_without_break_never_falls_through(self):
        """An infinite loop with no break terminates the body."""
        flow, _ = verify(while_(True, assign("n", binop("n", "+", 1))))
        assert flow == Flow.DIVERGES
        assert flow.terminates

    def test_while_true_returning(self):
        """An infinite loop whose only exit is a return returns."""
        flow, _ = verify(while_(True, if_(binop("n", ">", 10), [ret("n")]),
                                assign("n", binop("n", "+", 1))))
        assert flow == Flow.RETURNS

    def test_while_true_with_break(self):
        """A reachable break lets the loop fall through."""
        with pytest.raises(NonExhaustiveReturnError):
            verify(while_(True, if_(binop("n", ">", 10), [brk()]), assign("n", binop("n", "+", 1))))

    def test_break_in_nested_loop(self):
        """A break leaves only its own loop."""
        flow, _ = verify(while_(True, while_(True, brk())))
        assert flow == Flow.DIVERGES

    def test_while_false_body_ignored(self):
        """A return inside while false never runs."""
        with pytest.raises(NonExhaustiveReturnError):
            verify(while_(False, ret(1)))

    def test_conditional_loops_may_not_run(self):
        """A loop with a runtime condition may run zero times."""
        with pytest.raises(NonExhaustiveReturnError):
            verify(while_(binop("n", "<", 10), ret("n")))

    def test_for_loop_may_not_run(self):
        """A for loop falls through even when its body returns."""
        with pytest.raises(NonExhaustiveReturnError):
            verify(for_("x", "xs", ret("x")))

    def test_continue_keeps_looping(self):
        """continue does not leave an infinite loop."""
        flow, _ = verify(while_(True, cont()))
        assert flow == Flow.DIVERGES


class TestTerminators:
    """Test return, panic and procedures."""

    def test_panic_diverges(self):
        """A panic needs no return after it."""
        flow, _ = verify(if_(binop("n", "<", 0), [panic(lit("negative"))]), ret("n"))
        assert flow == Flow.RETURNS
        flow, _ = verify(panic())
        assert flow == Flow.DIVERGES

    def test_empty_procedure(self):
        """do_nothing() with an empty body is accepted."""
        result = check(module(func("do_nothing", {}, None, [])))
        assert result.accepted

    def test_procedure_may_fall_through(self):
        """Procedures are not required to return."""
        result = check(module(func("p", {"n": "int"}, None, [
            if_(binop("n", ">", 0), [ret()]),
        ])))
        assert result.accepted

    def test_empty_function_rejected(self):
        """A function with an empty body falls through."""
        result = check(module(func("f", {}, "int", [])))
        assert [d.kind for d in result.errors] == [ErrorKind.NON_EXHAUSTIVE_RETURN]


class TestUnreachable:
    """Test unreachable statement handling."""

    def test_unreachable_is_silent_by_default(self):
        """Code after a return is ignored, not reported."""
        flow, verifier = verify(ret(1), assign("n", 2))
        assert flow == Flow.RETURNS
        assert verifier.warnings == []

    def test_unreachable_warning(self):
        """With warnings on, the first unreachable statement is reported once."""
        flow, verifier = verify(ret(1), assign("n", 2, span=7), assign("n", 3, span=8),
                                warn_unreachable=True)
        assert flow == Flow.RETURNS
        assert [w.code for w in verifier.warnings] == ["W301"]
        assert verifier.warnings[0].span.start.line == 7

    def test_code_after_break(self):
        """Statements after break in a loop body are unreachable."""
        _, verifier = verify(while_(True, brk(), assign("n", 1, span=4)), ret("n"),
                             warn_unreachable=True)
        assert [w.span.start.line for w in verifier.warnings] == [4]

    def test_while_false_body_warning(self):
        """The body of while false is unreachable."""
        _, verifier = verify(while_(False, assign("n", 1, span=5)), ret("n"),
                             warn_unreachable=True)
        assert [w.span.start.line for w in verifier.warnings] == [5]

    def test_warnings_do_not_reject(self):
        """A module with only warnings is accepted."""
        config = CheckerConfig(warn_unreachable=True)
        result = check(module(int_function(ret("n"), ret(0, span=2))), config)
        assert result.accepted
        assert result.has_warnings
        assert result.warnings[0].code == "W301"

    def test_unreachable_code_is_still_type_checked(self):
        """Unreachable statements still go through inference."""
        result = check(module(int_function(ret("n"), var("s", "string", 1))))
        assert result.of_kind(ErrorKind.TYPE_MISMATCH)
