"""Run a callback when a block is left, however it is left."""

from __future__ import annotations

from typing import Callable, Optional


class ScopeGuard:
    """Context manager that calls fn on exit, on return or on exception."""

    def __init__(self, fn: Optional[Callable[[], None]]) -> None:
        self._fn = fn

    def __enter__(self) -> "ScopeGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._fn is not None:
            self._fn()
        return False


def scope_exit(fn: Callable[[], None]) -> ScopeGuard:
    """Return a guard that runs fn when its with-block ends."""
    return ScopeGuard(fn)