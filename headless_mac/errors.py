"""Exceptions raised by components and backends.

The CLI maps these onto exit codes: ``Cancelled`` is a clean exit (0),
everything else derived from ``HeadlessMacError`` is a failure (1).
"""


class HeadlessMacError(Exception):
    """Base class. ``step`` names the operation that failed, if known."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.step = step


class EnvironmentMismatch(HeadlessMacError):
    """Wrong operating system or CPU architecture."""


class SetupError(HeadlessMacError):
    """An external command failed or a verification did not pass."""


class Cancelled(HeadlessMacError):
    """The operator answered "no" at a confirmation prompt."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)
