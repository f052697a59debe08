"""Core modules for BuildLayer - centralized definitions and utilities."""

from buildlayer.core.errors import (
    ActionError,
    AddressPoolExhaustedError,
    AllocationError,
    BuildLayerError,
    ExitCode,
    InputError,
    MalformedStageError,
    NetworkNotFoundError,
    PlaceholderUnresolvedError,
    ResolutionError,
    TemplateError,
    UnsupportedTypeError,
    ValidationError,
    WorkflowError,
    exit_with_error,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "BuildLayerError",
    "InputError",
    "UnsupportedTypeError",
    "ResolutionError",
    "ValidationError",
    "TemplateError",
    "PlaceholderUnresolvedError",
    "MalformedStageError",
    "AllocationError",
    "NetworkNotFoundError",
    "AddressPoolExhaustedError",
    "ActionError",
    "WorkflowError",
    "exit_with_error",
    "format_error_message",
    "main_with_error_handling",
]
