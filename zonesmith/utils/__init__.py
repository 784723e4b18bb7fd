"""Utility modules for ZoneSmith."""

from zonesmith.utils.errors import (
    AggregationTypeError,
    AmbiguousJoinError,
    ConfigurationError,
    DataValidationError,
    DependencyError,
    GeometryError,
    KeyMismatchError,
    ParameterError,
    ZoneSmithError,
    raise_dependency_error,
    raise_parameter_error,
    raise_validation_error,
)
from zonesmith.utils.optional_imports import optional_import, require

__all__ = [
    "optional_import",
    "require",
    "ZoneSmithError",
    "DataValidationError",
    "ParameterError",
    "DependencyError",
    "ConfigurationError",
    "GeometryError",
    "KeyMismatchError",
    "AmbiguousJoinError",
    "AggregationTypeError",
    "raise_validation_error",
    "raise_parameter_error",
    "raise_dependency_error",
]
