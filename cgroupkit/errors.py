"""An OSError carrying an errno code and a composed message."""

from __future__ import annotations

import os


def _concat(args: tuple[object, ...]) -> str:
    return "".join(str(arg) for arg in args)


class SystemFailure(OSError):
    """A system error: an errno code plus a descriptive message."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(code, os.strerror(code))
        self.message = message

    @property
    def code(self) -> int:
        return self.errno

    def __str__(self) -> str:
        reason = os.strerror(self.errno)
        return f"{self.message}: {reason}" if self.message else reason


def system_error(code: int, *args: object) -> SystemFailure:
    """Build a SystemFailure whose message is the concatenation of args."""
    return SystemFailure(code, _concat(args))


def chain_error(error: OSError, *args: object) -> SystemFailure:
    """Return a new error with the same code and extra context appended."""
    code = error.errno if error.errno is not None else 0
    return SystemFailure(code, f"{error} -- {_concat(args)}")