"""Common utility types and functions for the thicket multimap library.

This module provides the fundamental types, the natural comparison helper and
the error taxonomy shared by the trees, stores, views and containers.
"""

from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List

__all__ = [
    "Entry",
    "IncomparableError",
    "InvariantViolation",
    "IteratorStateError",
    "Iterating",
    "NullNotPermittedError",
    "Ordering",
    "Sized",
    "ThicketError",
    "Unit",
    "compare",
    "fail_invariant",
]


class ThicketError(Exception):
    """Base class for every error raised by this library."""

    pass


class InvariantViolation(ThicketError):
    """Exception raised when internal structures disagree with each other.

    Indicates a defect in the library rather than in the caller's usage, and
    is never expected under correct single-threaded use.
    """

    pass


class IncomparableError(ThicketError, TypeError):
    """Natural ordering was requested but two elements could not be compared."""

    pass


class NullNotPermittedError(ThicketError, ValueError):
    """A None key or value was supplied where natural ordering is in use."""

    pass


class IteratorStateError(ThicketError, RuntimeError):
    """remove() was called on an iterator with no current element."""

    pass


def fail_invariant(message: str, *args: Any) -> InvariantViolation:
    """Log an invariant violation and build the exception to raise.

    Args:
        message: A %-style format string describing the disagreement.
        args: Arguments for the format string.

    Returns:
        The exception, for the caller to raise.
    """
    logging.error("invariant violation: " + message, *args)
    return InvariantViolation(message % args if args else message)


@dataclass(frozen=True)
class Unit:
    """Singleton unit type representing no meaningful value.

    Used as the payload of trees that act as sets.
    """

    @staticmethod
    def instance() -> Unit:
        """Get the singleton Unit instance.

        Returns:
            The global Unit instance.
        """
        return _UNIT


_UNIT = Unit()


class Sized(metaclass=ABCMeta):
    @abstractmethod
    def size(self) -> int: ...

    def null(self) -> bool:
        return self.size() == 0

    def __bool__(self) -> bool:
        return not self.null()

    def __len__(self) -> int:
        return self.size()


class Iterating[U](metaclass=ABCMeta):
    @abstractmethod
    def iter(self) -> Iterator[U]: ...

    def list(self) -> List[U]:
        return list(self.iter())

    def __iter__(self) -> Iterator[U]:
        return self.iter()


class Ordering(Enum):
    """Enumeration representing the result of a comparison operation."""

    Lt = -1
    Eq = 0
    Gt = 1

    @staticmethod
    def of_int(result: int) -> Ordering:
        """Convert a negative/zero/positive comparator result to an Ordering."""
        if result < 0:
            return Ordering.Lt
        elif result > 0:
            return Ordering.Gt
        else:
            return Ordering.Eq


@dataclass(frozen=True)
class Entry[K, V]:
    """An immutable key-value pair with structural equality.

    Unpacks like a 2-tuple, so ``key, value = entry`` works.
    """

    key: K
    value: V

    def __iter__(self) -> Iterator[Any]:
        yield self.key
        yield self.value

    def __repr__(self) -> str:
        return f"({self.key!r}, {self.value!r})"


def compare[T](a: T, b: T) -> Ordering:
    """Compare two values by their natural ordering.

    Uses the objects' __eq__ and __lt__ methods to determine the comparison result.

    Args:
        a: First value to compare.
        b: Second value to compare.

    Returns:
        Ordering indicating the relationship between a and b.

    Raises:
        NullNotPermittedError: If either value is None.
        IncomparableError: If the values do not support ordering against each other.
    """
    if a is None or b is None:
        raise NullNotPermittedError("natural ordering does not permit None")
    try:
        if a == b:
            return Ordering.Eq
        elif a < b:  # type: ignore[operator]
            return Ordering.Lt
        else:
            return Ordering.Gt
    except TypeError as e:
        raise IncomparableError(
            f"cannot compare {type(a).__name__} with {type(b).__name__}"
        ) from e
