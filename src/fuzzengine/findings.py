"""Bug detector findings.

Bug detectors report a Finding from inside hooked calls. Only the first
finding of an input counts: it is stored and raised, and later reports for
the same input are ignored so a target that catches the exception cannot
mask the original problem with a follow-up error. The tracker is cleared
before every input.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import os
import traceback

from fuzzengine.errors import FuzzEngineError

__all__ = ["Finding", "FindingTracker", "format_finding"]


class Finding(FuzzEngineError):
    """Problem reported by a bug detector."""


class FindingTracker:
    """Holds the first finding reported for the current input."""

    __slots__ = ("_first",)

    def __init__(self) -> None:
        self._first: Finding | None = None

    @property
    def first(self) -> Finding | None:
        return self._first

    def report(self, message: str) -> None:
        """Store and raise the first finding; ignore every later report.

        Raises:
            Finding: On the first report since the last clear().
        """
        if self._first is not None:
            return
        self._first = Finding(message)
        raise self._first

    def clear(self) -> None:
        self._first = None


def format_finding(
    error: BaseException | str | object, pid: int | None = None, *, with_traceback: bool = False
) -> str:
    """Render a finding or uncaught error as a fuzzer report.

    Args:
        error: Finding, other exception, message string or unknown object
        pid: Process ID for the ``==pid==`` prefix (default: current process)
        with_traceback: Append the exception's traceback frames

    Returns:
        Report text; errors other than Finding are marked as uncaught.

    Example:
        >>> format_finding(Finding("Command Injection"), pid=42)
        '==42== Command Injection'
        >>> format_finding(ValueError("boom"), pid=42)
        '==42== Uncaught Exception: boom'
    """
    prefix = f"=={os.getpid() if pid is None else pid}== "
    if not isinstance(error, Finding):
        prefix += "Uncaught Exception: "
    if isinstance(error, BaseException):
        report = prefix + str(error)
        if with_traceback and error.__traceback__ is not None:
            report += "\n" + "".join(traceback.format_tb(error.__traceback__)).rstrip("\n")
        return report
    if isinstance(error, str):
        return prefix + error
    return prefix + "unknown"
