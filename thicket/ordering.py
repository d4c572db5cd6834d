"""Ordering policies for the sorted multimap.

A policy is resolved once per container, independently for keys and values:
either the natural ordering of the elements or a caller-supplied comparator.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union, override

from thicket.common import (
    IncomparableError,
    NullNotPermittedError,
    Ordering,
    compare,
)

__all__ = ["Comparator", "Custom", "Natural", "OrderingPolicy", "resolve"]

type Comparator[T] = Callable[[T, T], Union[int, Ordering]]


# sealed
class OrderingPolicy[T](metaclass=ABCMeta):
    @abstractmethod
    def compare(self, a: T, b: T) -> Ordering:
        """Compare two elements under this policy."""
        ...

    @abstractmethod
    def check(self, value: T) -> None:
        """Validate an element about to be inserted.

        Raises:
            NullNotPermittedError, IncomparableError: If the element can never
                take part in this ordering.
        """
        ...


@dataclass(frozen=True)
class Natural[T](OrderingPolicy[T]):
    """The elements' own ordering, via __eq__ and __lt__."""

    @override
    def compare(self, a: T, b: T) -> Ordering:
        return compare(a, b)

    @override
    def check(self, value: T) -> None:
        if value is None:
            raise NullNotPermittedError("natural ordering does not permit None")
        try:
            _ = value < value  # type: ignore[operator]
        except TypeError as e:
            raise IncomparableError(
                f"{type(value).__name__} has no natural ordering"
            ) from e


@dataclass(frozen=True)
class Custom[T](OrderingPolicy[T]):
    """Ordering given by a comparator returning an int or an Ordering.

    None tolerance is entirely up to the comparator.
    """

    comparator: Comparator[T]

    @override
    def compare(self, a: T, b: T) -> Ordering:
        result = self.comparator(a, b)
        if isinstance(result, Ordering):
            return result
        return Ordering.of_int(result)

    @override
    def check(self, value: T) -> None:
        pass


_NATURAL: Natural[Any] = Natural()


def resolve[T](
    ordering: Optional[Union[OrderingPolicy[T], Comparator[T]]],
) -> OrderingPolicy[T]:
    """Resolve a construction argument into a policy.

    None selects natural ordering, a policy is used as given, and a bare
    callable is wrapped as a custom comparator.
    """
    if ordering is None:
        return _NATURAL
    elif isinstance(ordering, OrderingPolicy):
        return ordering
    elif callable(ordering):
        return Custom(ordering)
    else:
        raise TypeError(f"not an ordering: {ordering!r}")
