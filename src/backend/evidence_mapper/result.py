"""Result type returned by every external-service adapter."""

from collections.abc import Callable
from typing import Any, Generic, TypeVar, Union

from attrs import field, frozen

from .errors import EvidenceMapperError

T = TypeVar("T")
U = TypeVar("U")


@frozen
class Ok(Generic[T]):
    """Successful result container."""

    value: T = field()

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, func: Callable[[T], U]) -> "Ok[U]":
        """Transform the success value."""
        return Ok(func(self.value))


@frozen
class Err:
    """Failed result carrying the taxonomy error that describes it."""

    error: EvidenceMapperError = field()

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Re-raise the carried error."""
        raise self.error

    def unwrap_or(self, default: Any) -> Any:
        return default

    def map(self, func: Callable[[Any], Any]) -> "Err":
        return self


Result = Union[Ok[T], Err]
