"""Standardized errors for ZoneSmith.

Provides the exception taxonomy shared by the geometry and table engines,
plus helpers that build consistent error messages.
"""

from typing import Any, Optional


class ZoneSmithError(Exception):
    """Base exception for ZoneSmith errors."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize ZoneSmith error.

        Args:
            message: Primary error message.
            suggestion: Optional suggestion for fixing the error.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with suggestion if available."""
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class DataValidationError(ZoneSmithError):
    """Error raised when data validation fails."""

    pass


class ParameterError(ZoneSmithError):
    """Error raised when parameters are invalid."""

    pass


class DependencyError(ZoneSmithError):
    """Error raised when required dependencies are missing."""

    pass


class ConfigurationError(ZoneSmithError):
    """Error raised for mismatched coordinate reference systems or missing options."""

    pass


class GeometryError(ZoneSmithError):
    """Error raised when a ring is degenerate or self-intersecting."""

    pass


class KeyMismatchError(ZoneSmithError):
    """Error raised when join keys have no counterpart in the other relation.

    The unmatched labels are available as ``details["unmatched"]``.
    """

    @property
    def unmatched(self) -> list:
        return list(self.details.get("unmatched", []))


class AmbiguousJoinError(ZoneSmithError):
    """Error raised when a key (or point) matches more than one target row."""

    pass


class AggregationTypeError(ZoneSmithError, TypeError):
    """Error raised when a numeric reduction is applied to a non-numeric column."""

    pass


def raise_validation_error(
    message: str,
    expected: Optional[str] = None,
    received: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise DataValidationError with optional expected/received lines."""
    lines = [message]
    if expected:
        lines.append(f"Expected: {expected}")
    if received:
        lines.append(f"Received: {received}")
    raise DataValidationError(
        "\n".join(lines),
        suggestion=suggestion,
        details={"expected": expected, "received": received},
    )


def raise_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise ParameterError naming the parameter and its allowed values.

    Args:
        parameter_name: Name of the invalid parameter.
        value: Value that was passed.
        valid_values: Accepted values, listed in the message.
        constraint: Free-text rule the value broke.
        suggestion: How to fix the call.
    """
    lines = [f"Invalid value for parameter '{parameter_name}': {value!r}"]
    if valid_values:
        lines.append(f"Valid values: {', '.join(map(str, valid_values))}")
    if constraint:
        lines.append(f"Constraint: {constraint}")
    raise ParameterError(
        "\n".join(lines),
        suggestion=suggestion,
        details={"parameter": parameter_name, "value": value},
    )


def raise_dependency_error(
    dependency_name: str,
    optional_group: Optional[str] = None,
) -> None:
    """Raise DependencyError with an install hint.

    Dependencies that belong to an extra point at ``zonesmith[<group>]``.
    """
    install = (
        f"pip install zonesmith[{optional_group}]"
        if optional_group
        else f"pip install {dependency_name}"
    )
    raise DependencyError(
        f"Missing required dependency: {dependency_name}",
        suggestion=f"Install with: {install}",
        details={"dependency": dependency_name},
    )
