"""Result values passed between the stores, the services and the page.

A store lookup gives back ``Some(row)`` or ``Nothing()``; a save or the
allocation gate gives back ``Right(value)`` or ``Left(error)``. Callers
branch on ``is_some``/``is_left`` instead of catching exceptions.
"""
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True)
class Some(Generic[T]):
    value: T

    def map(self, f: Callable[[T], U]) -> "Some[U]":
        return Some(f(self.value))

    def get_or_else(self, default: Any) -> T:
        return self.value

    def is_some(self) -> bool:
        return True

    def is_none(self) -> bool:
        return False


@dataclass(frozen=True)
class Nothing:
    def map(self, f: Callable[[Any], Any]) -> "Nothing":
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def is_none(self) -> bool:
        return True


Maybe = Union[Some[T], Nothing]


@dataclass(frozen=True)
class Right(Generic[T]):
    value: T

    def get_or_else(self, default: Any) -> T:
        return self.value

    def is_right(self) -> bool:
        return True

    def is_left(self) -> bool:
        return False

    def get_error(self):
        raise ValueError("Right carries no error")


@dataclass(frozen=True)
class Left(Generic[E]):
    error: E

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def is_left(self) -> bool:
        return True

    def get_error(self) -> E:
        return self.error


# error type first, success type second
Either = Union[Left[E], Right[T]]


def maybe(value: Optional[T]) -> Maybe[T]:
    """Wrap a lookup that may come back empty."""
    return Some(value) if value is not None else Nothing()
