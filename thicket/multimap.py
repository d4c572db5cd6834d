"""Multimaps: containers mapping each key to a set of distinct values.

Three variants differ only in ordering:

- HashMultimap: no guaranteed key or value order.
- LinkedMultimap: keys in the order they (last) became present, values and
  entries in the order they were added.
- SortedMultimap: keys and values ordered by independent ordering policies.

Every mutation, whether made on the multimap itself, on one of its views, or
through a view's iterator, goes through the multimap's store, which keeps all
internal structures consistent.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union, override

from thicket.common import Entry, Iterating, Sized
from thicket.ordering import Comparator, OrderingPolicy, resolve
from thicket.store import HashStore, LinkedStore, SortedStore, Store
from thicket.views import (
    AsMapView,
    EntriesView,
    KeyMultisetView,
    KeySetView,
    SortedKeySetView,
    SortedValueSetView,
    ValuesView,
    ValueSetView,
)

__all__ = ["HashMultimap", "LinkedMultimap", "Multimap", "SortedMultimap"]


class Multimap[K, V](Sized, Iterating[Entry[K, V]]):
    """Shared behavior of every multimap; iterating yields entries in entry order."""

    _store: Store[K, V]

    def __init__(self, store: Store[K, V]) -> None:
        self._store = store

    @classmethod
    def from_multimap(cls, source: Multimap[Any, Any]) -> Multimap[K, V]:
        """Create a multimap holding every entry of source, added in its entry order."""
        result = cls()  # type: ignore[call-arg]
        result.merge(source)
        return result

    @classmethod
    def mk(cls, pairs: Iterable[Tuple[K, V]]) -> Multimap[K, V]:
        """Create a multimap from an iterable of (key, value) pairs.

        Repeated pairs are kept once.
        """
        result = cls()  # type: ignore[call-arg]
        for key, value in pairs:
            result.put(key, value)
        return result

    def copy(self) -> Multimap[K, V]:
        return type(self).from_multimap(self)

    @override
    def size(self) -> int:
        """Total number of key-value pairs."""
        return self._store.size()

    def is_empty(self) -> bool:
        return self.null()

    @override
    def iter(self) -> Iterator[Entry[K, V]]:
        return self._store.entries()

    def put(self, key: K, value: V) -> bool:
        """Associate value with key.

        Returns:
            True if the pair was new, False if it was already present.
        """
        return self._store.insert(key, value)

    def put_all(self, key: K, values: Iterable[V]) -> bool:
        """Associate every value with key.

        Returns:
            True if any pair was new.
        """
        changed = False
        for value in list(values):
            if self._store.insert(key, value):
                changed = True
        return changed

    def merge(self, other: Multimap[K, V]) -> bool:
        """Put every entry of another multimap, in its entry order.

        Returns:
            True if any pair was new.
        """
        changed = False
        for entry in list(other.entries()):
            if self._store.insert(entry.key, entry.value):
                changed = True
        return changed

    def remove(self, key: K, value: V) -> bool:
        """Remove one key-value pair.

        Returns:
            True if the pair was present.
        """
        return self._store.delete(key, value)

    def remove_all(self, key: K) -> List[V]:
        """Remove a key and all its values.

        Returns:
            The removed values, in the key's value order.
        """
        return self._store.delete_key(key)

    def replace_values(self, key: K, values: Iterable[V]) -> List[V]:
        """Replace all values of key.

        Returns:
            The previous values, in the key's value order.
        """
        return self._store.replace(key, list(values))

    def get(self, key: K) -> ValueSetView[K, V]:
        """Live view of the values of key, usable even if key is absent."""
        return ValueSetView(self, key)

    def contains_key(self, key: K) -> bool:
        return self._store.contains_key(key)

    def contains_value(self, value: V) -> bool:
        return self._store.contains_value(value)

    def contains_entry(self, key: K, value: V) -> bool:
        return self._store.contains(key, value)

    def clear(self) -> None:
        if not self._store.null():
            logging.debug(
                "clearing %s of %d entries", type(self).__name__, self._store.size()
            )
        self._store.clear()

    def key_set(self) -> KeySetView[K, V]:
        return KeySetView(self)

    def keys(self) -> KeyMultisetView[K, V]:
        """Live view of the keys, each repeated once per value."""
        return KeyMultisetView(self)

    def values(self) -> ValuesView[K, V]:
        return ValuesView(self)

    def entries(self) -> EntriesView[K, V]:
        return EntriesView(self)

    def as_map(self) -> AsMapView[K, V]:
        return AsMapView(self)

    def verify(self) -> None:
        """Check internal consistency.

        Raises:
            InvariantViolation: If internal structures disagree.
        """
        self._store.verify()

    def __contains__(self, key: object) -> bool:
        return self._store.contains_key(key)  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        """Equal iff both map the same keys to the same value sets, in any order."""
        if not isinstance(other, Multimap):
            return NotImplemented
        return self.as_map() == other.as_map()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_map()!r})"


class HashMultimap[K, V](Multimap[K, V]):
    """A multimap with no guaranteed ordering. Keys and values may be None."""

    def __init__(self) -> None:
        super().__init__(HashStore())


class LinkedMultimap[K, V](Multimap[K, V]):
    """A multimap that remembers insertion order. Keys and values may be None.

    key_set() iterates keys in the order each became present; a key whose
    values are all removed and later re-added comes last. get(key) iterates
    values in the order they were added, and entries() and values() iterate
    pairs in the order they were added to the multimap.

    replace_values() on a present key with a non-empty replacement keeps the
    key's position, but the new pairs come last in entries().
    """

    def __init__(self) -> None:
        super().__init__(LinkedStore())


type _OrderingArg[T] = Optional[Union[OrderingPolicy[T], Comparator[T]]]


class SortedMultimap[K, V](Multimap[K, V]):
    """A multimap ordered by a key policy and, within each key, a value policy.

    Each policy defaults to natural ordering, which rejects None and fails on
    the first comparison between incomparable elements. A bare comparator
    function is accepted in place of a policy. Elements the policy considers
    equal are the same element.
    """

    _store: SortedStore[K, V]

    def __init__(
        self,
        key_ordering: _OrderingArg[K] = None,
        value_ordering: _OrderingArg[V] = None,
    ) -> None:
        super().__init__(SortedStore(resolve(key_ordering), resolve(value_ordering)))

    @classmethod
    @override
    def from_multimap(
        cls,
        source: Multimap[Any, Any],
        key_ordering: _OrderingArg[K] = None,
        value_ordering: _OrderingArg[V] = None,
    ) -> SortedMultimap[K, V]:
        """Create a sorted multimap holding every entry of source.

        Orderings given here win. Any ordering not given is copied from a
        sorted source, and is natural ordering for any other source.
        """
        if isinstance(source, SortedMultimap):
            if key_ordering is None:
                key_ordering = source.key_ordering
            if value_ordering is None:
                value_ordering = source.value_ordering
        elif key_ordering is None or value_ordering is None:
            logging.debug(
                "%s source has no orderings to copy, using natural ordering",
                type(source).__name__,
            )
        result = cls(key_ordering, value_ordering)
        result.merge(source)
        return result

    @classmethod
    @override
    def mk(
        cls,
        pairs: Iterable[Tuple[K, V]],
        key_ordering: _OrderingArg[K] = None,
        value_ordering: _OrderingArg[V] = None,
    ) -> SortedMultimap[K, V]:
        result = cls(key_ordering, value_ordering)
        for key, value in pairs:
            result.put(key, value)
        return result

    @override
    def get(self, key: K) -> SortedValueSetView[K, V]:
        """Live view of the values of key in value order, with ranges."""
        return SortedValueSetView(self, key)

    @override
    def key_set(self) -> SortedKeySetView[K, V]:
        """Live view of the keys in key order, with ranges."""
        return SortedKeySetView(self)

    @property
    def key_ordering(self) -> OrderingPolicy[K]:
        return self._store.key_ordering

    @property
    def value_ordering(self) -> OrderingPolicy[V]:
        return self._store.value_ordering
