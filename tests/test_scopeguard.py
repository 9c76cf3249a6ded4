from contextlib import ExitStack

import pytest

from cgroupkit.scopeguard import ScopeGuard, scope_exit


def test_inner_scope():
    x = [5]

    def bump():
        x[0] += 1

    guard = scope_exit(bump)
    with guard as entered:
        assert entered is guard
        assert x[0] == 5
    assert x[0] == 6


def test_function_return():
    x = [5]

    def body():
        with scope_exit(lambda: x.__setitem__(0, x[0] + 1)):
            x[0] += 1
            return x[0]

    assert body() == 6
    assert x[0] == 7


def test_exception_context():
    x = [5]
    seen = []
    guard = scope_exit(lambda: x.__setitem__(0, x[0] + 1))

    def body():
        with guard as entered:
            seen.append(entered)
            raise RuntimeError("exception")

    with pytest.raises(RuntimeError):
        body()
    assert seen == [guard]
    assert x[0] == 6


def test_exit_does_not_suppress_exception():
    y = [0]
    guard = scope_exit(lambda: y.__setitem__(0, y[0] + 1))
    err = RuntimeError("exception")
    assert guard.__exit__(RuntimeError, err, None) is False
    assert y[0] == 1


def test_multiple_guards_run_in_reverse_order():
    order = []
    with ExitStack() as stack:
        stack.enter_context(scope_exit(lambda: order.append("first")))
        stack.enter_context(scope_exit(lambda: order.append("second")))
    assert order == ["second", "first"]


def test_guard_without_callback_is_noop():
    with ScopeGuard(None) as guard:
        pass
    assert isinstance(guard, ScopeGuard)
    assert guard.__exit__(None, None, None) is False