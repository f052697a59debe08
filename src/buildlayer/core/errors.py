"""
Unified error handling for BuildLayer.

Every failure raised by the engine derives from BuildLayerError and names
the offending file, key or value in its details so the input can be
located without re-running the build.

Exit Codes:
- 0: Success
- 10: Input error (missing/malformed source files, configuration)
- 11: Action error (action provider invocation failure)
- 12: Validation error
- 13: Resolution error (DML/credential lookup, hash mismatch)
- 14: Template error (unresolved placeholder, malformed stage document)
- 15: Allocation error (unknown network, exhausted address pool)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, TypeVar

import structlog

if TYPE_CHECKING:
    from buildlayer.validation.metadata import ValidationResult

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    INPUT_ERROR = 10
    ACTION_ERROR = 11
    VALIDATION_ERROR = 12
    RESOLUTION_ERROR = 13
    TEMPLATE_ERROR = 14
    ALLOCATION_ERROR = 15
    UNKNOWN_ERROR = 127


class BuildLayerError(Exception):
    """Base exception for BuildLayer errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InputError(BuildLayerError):
    """Raised for missing or malformed source files and configuration."""

    exit_code = ExitCode.INPUT_ERROR


class UnsupportedTypeError(InputError):
    """Raised when a value declares a dataType the validator does not know."""


class ResolutionError(BuildLayerError):
    """Raised when an indirect value (DML item, credential) cannot be resolved."""

    exit_code = ExitCode.RESOLUTION_ERROR


class ValidationError(BuildLayerError):
    """Raised once for all metadata items that fail their type rules."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        failures: list[ValidationResult] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.failures = list(failures or [])


class TemplateError(BuildLayerError):
    """Raised when a stage document cannot be rendered or parsed."""

    exit_code = ExitCode.TEMPLATE_ERROR


class PlaceholderUnresolvedError(TemplateError):
    """Raised when a placeholder names a key missing from the value table."""

    def __init__(self, filename: str, key: str, line: int | None = None):
        super().__init__(
            f"Placeholder '{key}' in {filename} has no matching value",
            details={"file": filename, "key": key, "line": line},
        )
        self.filename = filename
        self.key = key
        self.line = line


class MalformedStageError(TemplateError):
    """Raised when a rendered stage document is not a list of parameter objects."""


class AllocationError(BuildLayerError):
    """Raised when the network allocator cannot serve a request."""

    exit_code = ExitCode.ALLOCATION_ERROR


class NetworkNotFoundError(AllocationError):
    """Raised when a network name is absent from the ledger."""


class AddressPoolExhaustedError(AllocationError):
    """Raised when every address in a network range is allocated."""


class ActionError(BuildLayerError):
    """Raised when an action provider invocation fails."""

    exit_code = ExitCode.ACTION_ERROR


class WorkflowError(ActionError):
    """Aggregate failure for a whole run, pointing at the run log."""

    def __init__(self, message: str, log_path: Path | None = None, details: dict[str, Any] | None = None):
        merged = dict(details or {})
        if log_path is not None:
            merged.setdefault("log", str(log_path))
        super().__init__(message, merged)
        self.log_path = log_path


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - BuildLayerError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except BuildLayerError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: BuildLayerError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items() if v is not None)
        if detail_str:
            msg = f"{msg} ({detail_str})"
    return msg


def exit_with_error(error: BuildLayerError) -> None:
    """Print error and exit with appropriate code."""
    from buildlayer.cli.ux import error as print_error

    print_error(format_error_message(error))
    sys.exit(error.exit_code)
