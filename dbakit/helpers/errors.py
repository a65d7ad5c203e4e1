"""Error types and the stop-and-report helper shared by every command.

Commands never retry. A failure is either printed as a categorized error and
the caller moves on to the next target or object, or, when the caller asked
for exceptions, raised as ``DbaCommandError``.

Example:
    >>> for instance in targets:
    ...     try:
    ...         server = connect_instance(instance)
    ...     except InstanceConnectionError as e:
    ...         stop_function("Failure", category=ErrorCategory.CONNECTION,
    ...                       target=instance, error=e)
    ...         continue
"""

from __future__ import annotations

from enum import Enum

from dbakit.helpers.helpers_logging import print_error


class ErrorCategory(str, Enum):
    """Error categories reported alongside failure messages."""

    CONNECTION = "ConnectionError"
    INVALID_ARGUMENT = "InvalidArgument"
    OBJECT_NOT_FOUND = "ObjectNotFound"
    INVALID_OPERATION = "InvalidOperation"
    NOT_SUPPORTED = "NotSupported"
    WRITE_ERROR = "WriteError"


class DbaCommandError(Exception):
    """Terminating error raised when exception mode is enabled."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INVALID_OPERATION,
        target: str | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.target = target


class InstanceConnectionError(DbaCommandError):
    """Raised when a SQL Server instance cannot be reached or is too old."""

    def __init__(self, message: str, target: str | None = None) -> None:
        super().__init__(message, ErrorCategory.CONNECTION, target)


class ConfigError(Exception):
    """Raised when instances.yaml is malformed or references unset variables."""


def format_failure(
    message: str,
    category: ErrorCategory,
    target: str | None = None,
    error: BaseException | None = None,
) -> str:
    """Build the single-line failure text printed by ``stop_function``."""
    text = f"[{category.value}] {message}"
    if target:
        text += f" | Target: {target}"
    if error is not None:
        text += f" | {error}"
    return text


def stop_function(
    message: str,
    *,
    category: ErrorCategory = ErrorCategory.INVALID_OPERATION,
    target: str | None = None,
    error: BaseException | None = None,
    enable_exception: bool = False,
) -> None:
    """Report a failure, raising instead when ``enable_exception`` is set.

    Args:
        message: Human readable description of what failed.
        category: Failure category.
        target: Instance or object the failure is tied to.
        error: Underlying exception, chained when raising.
        enable_exception: Raise ``DbaCommandError`` instead of printing.

    Raises:
        DbaCommandError: Only when ``enable_exception`` is True.
    """
    if enable_exception:
        text = message if error is None else f"{message}: {error}"
        raise DbaCommandError(text, category, target) from error

    print_error(format_failure(message, category, target, error))
