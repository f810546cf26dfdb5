"""Error types and formatting utilities for consistent error messages.

This module provides the exception hierarchy used across the toolkit and
helper functions for formatting user-facing error messages. All user-facing
errors should use these utilities.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Use present tense: 'must be', 'is required'
- Include actionable hints where helpful
- Be concise but informative
"""


class BootstrapError(Exception):
    """Base class for all toolkit errors."""


class PreconditionError(BootstrapError):
    """Raised when a required external tool or path is missing.

    Always fatal: the current command stops with a clear message.
    """


class UnsupportedPlatformError(BootstrapError):
    """Raised when the host OS has no installer or catalog section."""


class InstallError(BootstrapError):
    """Raised when a load-bearing install step fails."""


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Args:
        message: The error message to format

    Returns:
        Formatted error message with 'Error: ' prefix

    Examples:
        >>> format_error("stow not found")
        'Error: stow not found'
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Examples:
        >>> format_field_error("Entry fedora[3]", "channel", "must be an object")
        "Entry fedora[3] field 'channel' must be an object"
    """
    return f"{entity} field '{field}' {issue}"


__all__ = [
    "BootstrapError",
    "PreconditionError",
    "UnsupportedPlatformError",
    "InstallError",
    "format_error",
    "format_field_error",
]
