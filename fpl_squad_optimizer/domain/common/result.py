"""Result type returned by the data adapters instead of raising."""

from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorType(str, Enum):
    """Why loading player data failed."""

    VALIDATION_ERROR = "validation_error"
    DATA_ACCESS_ERROR = "data_access_error"


class DomainError(BaseModel):
    """Load failure with an optional per-field breakdown."""

    error_type: ErrorType
    message: str = Field(..., min_length=1)
    details: Optional[Dict] = Field(None, description="e.g. the offending path")
    field_errors: Optional[Dict[str, str]] = Field(
        None, description="'{record index}.{field}' -> message"
    )

    @classmethod
    def validation_error(
        cls, message: str, field_errors: Optional[Dict[str, str]] = None
    ) -> "DomainError":
        return cls(
            error_type=ErrorType.VALIDATION_ERROR,
            message=message,
            field_errors=field_errors,
        )

    @classmethod
    def data_access_error(cls, message: str, details: Optional[Dict] = None) -> "DomainError":
        return cls(error_type=ErrorType.DATA_ACCESS_ERROR, message=message, details=details)


class Result(Generic[T]):
    """Either a loaded value or a ``DomainError``, never both.

    Accessing ``value`` on a failure (or ``error`` on a success) raises
    ``ValueError`` so callers must branch on ``is_success`` first.
    """

    __slots__ = ("_value", "_error")

    def __init__(self, value: Optional[T], error: Optional[DomainError]):
        if error is not None and value is not None:
            raise ValueError("Result holds either a value or an error")
        self._value = value
        self._error = error

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value, None)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        if error is None:
            raise ValueError("failure() requires an error")
        return cls(None, error)

    @property
    def is_success(self) -> bool:
        return self._error is None

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    @property
    def value(self) -> T:
        if self._error is not None:
            raise ValueError(f"Result is a failure: {self._error.message}")
        return self._value

    @property
    def error(self) -> DomainError:
        if self._error is None:
            raise ValueError("Result is a success")
        return self._error


def field_errors_from(errors: List[Dict]) -> Dict[str, str]:
    """Flatten pydantic error dicts into {"loc.path": "message"}."""
    flat = {}
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()))
        flat[loc or "__root__"] = err.get("msg", "")
    return flat
