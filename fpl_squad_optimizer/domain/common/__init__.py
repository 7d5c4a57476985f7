"""Common domain types and utilities."""

from .exceptions import (
    ComputationFault,
    DataError,
    InputError,
    OptimizationCanceled,
    OptimizerError,
)
from .result import DomainError, ErrorType, Result

__all__ = [
    "Result",
    "DomainError",
    "ErrorType",
    "OptimizerError",
    "InputError",
    "DataError",
    "ComputationFault",
    "OptimizationCanceled",
]
