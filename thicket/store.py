"""Internal storage for multimaps.

A store owns every structure of one container: the key map, the per-key value
collections and, for the insertion-ordered variant, the global entry index.
All mutation goes through four primitives (insert, delete, delete_key, clear),
each of which updates every structure before returning, so the structures can
never be observed out of step with each other.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Iterator, List, Set, override

from thicket.common import (
    Entry,
    IncomparableError,
    NullNotPermittedError,
    Ordering,
    Sized,
    Unit,
    fail_invariant,
)
from thicket.ordering import OrderingPolicy
from thicket.tree import PTree

__all__ = ["HashStore", "LinkedStore", "SortedStore", "Store"]


class Store[K, V](Sized):
    @abstractmethod
    def contains_key(self, key: K) -> bool: ...

    @abstractmethod
    def contains(self, key: K, value: V) -> bool: ...

    @abstractmethod
    def count(self, key: K) -> int:
        """Number of values currently associated with key."""
        ...

    @abstractmethod
    def key_count(self) -> int:
        """Number of present keys."""
        ...

    @abstractmethod
    def keys(self) -> Iterator[K]:
        """Iterate present keys in key order."""
        ...

    @abstractmethod
    def values_of(self, key: K) -> Iterator[V]:
        """Iterate the values of one key in per-key order."""
        ...

    @abstractmethod
    def entries(self) -> Iterator[Entry[K, V]]:
        """Iterate every pair in entry order."""
        ...

    @abstractmethod
    def insert(self, key: K, value: V) -> bool:
        """Add a pair, creating the key's collection if needed.

        Returns:
            True if the pair was not already present.
        """
        ...

    @abstractmethod
    def delete(self, key: K, value: V) -> bool:
        """Remove a pair, dropping the key if its collection empties.

        Returns:
            True if the pair was present.
        """
        ...

    @abstractmethod
    def delete_key(self, key: K) -> List[V]:
        """Remove a key with all its values.

        Returns:
            The removed values in per-key order.
        """
        ...

    @abstractmethod
    def clear(self) -> None: ...

    def stable[T](self, items: Iterator[T]) -> Iterator[T]:
        """Detach a traversal from later mutation of this store."""
        return iter(list(items))

    def values_equal(self, a: V, b: V) -> bool:
        return a == b

    def contains_value(self, value: V) -> bool:
        """Whether any key holds value."""
        return any(self.contains(key, value) for key in self.keys())

    def replace(self, key: K, values: List[V]) -> List[V]:
        """Swap the values of a key for new ones.

        Returns:
            The previous values in per-key order.
        """
        # Hashing every new value first means a bad value fails before any change
        fresh = list(dict.fromkeys(values))
        previous = self.delete_key(key)
        for value in fresh:
            self.insert(key, value)
        return previous

    def verify(self) -> None:
        """Check the structural invariants, raising InvariantViolation on failure."""
        total = 0
        for key in self.keys():
            count = self.count(key)
            if count == 0:
                raise fail_invariant("key %r is present with no values", key)
            total += count
        if total != self.size():
            raise fail_invariant("size %d but key collections hold %d", self.size(), total)


class HashStore[K, V](Store[K, V]):
    """Hash key map with per-key hash sets; iteration order is unspecified."""

    def __init__(self) -> None:
        self._map: Dict[K, Set[V]] = {}
        self._size = 0

    @override
    def size(self) -> int:
        return self._size

    @override
    def contains_key(self, key: K) -> bool:
        return key in self._map

    @override
    def contains(self, key: K, value: V) -> bool:
        values = self._map.get(key)
        return values is not None and value in values

    @override
    def count(self, key: K) -> int:
        values = self._map.get(key)
        return 0 if values is None else len(values)

    @override
    def key_count(self) -> int:
        return len(self._map)

    @override
    def keys(self) -> Iterator[K]:
        return iter(self._map)

    @override
    def values_of(self, key: K) -> Iterator[V]:
        return iter(self._map.get(key, ()))

    @override
    def entries(self) -> Iterator[Entry[K, V]]:
        for key, values in self._map.items():
            for value in values:
                yield Entry(key, value)

    @override
    def insert(self, key: K, value: V) -> bool:
        values = self._map.get(key)
        if values is None:
            self._map[key] = {value}
        elif value in values:
            return False
        else:
            values.add(value)
        self._size += 1
        return True

    @override
    def delete(self, key: K, value: V) -> bool:
        values = self._map.get(key)
        if values is None or value not in values:
            return False
        values.remove(value)
        if not values:
            del self._map[key]
        self._size -= 1
        return True

    @override
    def delete_key(self, key: K) -> List[V]:
        values = self._map.pop(key, None)
        if values is None:
            return []
        self._size -= len(values)
        return list(values)

    @override
    def clear(self) -> None:
        self._map = {}
        self._size = 0


class LinkedStore[K, V](Store[K, V]):
    """Insertion-ordered key map, per-key sets and global entry index.

    Dicts preserve insertion order and append re-inserted keys at the end,
    which gives exactly the required ordering: a key emptied and later
    re-added moves to the end of key order, and a re-added pair moves to the
    end of entry order.
    """

    def __init__(self) -> None:
        self._map: Dict[K, Dict[V, None]] = {}
        self._index: Dict[Entry[K, V], None] = {}

    @override
    def size(self) -> int:
        return len(self._index)

    @override
    def contains_key(self, key: K) -> bool:
        return key in self._map

    @override
    def contains(self, key: K, value: V) -> bool:
        values = self._map.get(key)
        return values is not None and value in values

    @override
    def count(self, key: K) -> int:
        values = self._map.get(key)
        return 0 if values is None else len(values)

    @override
    def key_count(self) -> int:
        return len(self._map)

    @override
    def keys(self) -> Iterator[K]:
        return iter(self._map)

    @override
    def values_of(self, key: K) -> Iterator[V]:
        return iter(self._map.get(key, ()))

    @override
    def entries(self) -> Iterator[Entry[K, V]]:
        return iter(self._index)

    @override
    def insert(self, key: K, value: V) -> bool:
        values = self._map.get(key)
        if values is not None and value in values:
            return False
        entry = Entry(key, value)
        if entry in self._index:
            raise fail_invariant("entry %r indexed but missing from its key", entry)
        if values is None:
            values = {}
            self._map[key] = values
        values[value] = None
        self._index[entry] = None
        return True

    def _unindex(self, entry: Entry[K, V]) -> None:
        if self._index.pop(entry, _ABSENT) is _ABSENT:
            raise fail_invariant("entry %r present under its key but not indexed", entry)

    @override
    def delete(self, key: K, value: V) -> bool:
        values = self._map.get(key)
        if values is None or value not in values:
            return False
        self._unindex(Entry(key, value))
        del values[value]
        if not values:
            del self._map[key]
        return True

    @override
    def delete_key(self, key: K) -> List[V]:
        values = self._map.get(key)
        if values is None:
            return []
        # The key's values are the only record of which index entries to drop
        removed = list(values)
        for value in removed:
            self._unindex(Entry(key, value))
        del self._map[key]
        return removed

    @override
    def replace(self, key: K, values: List[V]) -> List[V]:
        fresh = dict.fromkeys(values)
        current = self._map.get(key)
        if current is None or not fresh:
            return super().replace(key, values)
        # Refill in place so the key keeps its position in key order
        previous = list(current)
        for value in previous:
            self._unindex(Entry(key, value))
        current.clear()
        current.update(fresh)
        for value in fresh:
            self._index[Entry(key, value)] = None
        return previous

    @override
    def clear(self) -> None:
        self._map = {}
        self._index = {}

    @override
    def verify(self) -> None:
        super().verify()
        for entry in self._index:
            values = self._map.get(entry.key)
            if values is None or entry.value not in values:
                raise fail_invariant("indexed entry %r missing from its key", entry)
        for key, values in self._map.items():
            for value in values:
                if Entry(key, value) not in self._index:
                    raise fail_invariant("entry (%r, %r) is not indexed", key, value)


type _Values[V] = PTree[V, Unit]


class SortedStore[K, V](Store[K, V]):
    """Persistent trees ordered by the key and value policies.

    Each mutation swaps in a new root, so a traversal started from an old root
    is already a snapshot and needs no copy.
    """

    def __init__(
        self, key_ordering: OrderingPolicy[K], value_ordering: OrderingPolicy[V]
    ) -> None:
        self._key_ordering = key_ordering
        self._value_ordering = value_ordering
        self._root: PTree[K, _Values[V]] = PTree.empty()
        self._size = 0

    @property
    def key_ordering(self) -> OrderingPolicy[K]:
        return self._key_ordering

    @property
    def value_ordering(self) -> OrderingPolicy[V]:
        return self._value_ordering

    def _values(self, key: K) -> _Values[V]:
        return self._root.get(self._key_ordering, key, _EMPTY_VALUES)

    @override
    def size(self) -> int:
        return self._size

    @override
    def contains_key(self, key: K) -> bool:
        return self._root.contains(self._key_ordering, key)

    @override
    def contains(self, key: K, value: V) -> bool:
        return self._values(key).contains(self._value_ordering, value)

    @override
    def count(self, key: K) -> int:
        return self._values(key).size()

    @override
    def key_count(self) -> int:
        return self._root.size()

    @override
    def keys(self) -> Iterator[K]:
        return self._root.keys()

    @override
    def values_of(self, key: K) -> Iterator[V]:
        return self._values(key).keys()

    def keys_desc(self) -> Iterator[K]:
        return self._root.keys(reverse=True)

    def values_desc(self, key: K) -> Iterator[V]:
        return self._values(key).keys(reverse=True)

    @override
    def entries(self) -> Iterator[Entry[K, V]]:
        return _tree_entries(self._root)

    @override
    def stable[T](self, items: Iterator[T]) -> Iterator[T]:
        return items

    @override
    def values_equal(self, a: V, b: V) -> bool:
        try:
            return self._value_ordering.compare(a, b) == Ordering.Eq
        except (IncomparableError, NullNotPermittedError):
            # Values under different keys need not be mutually comparable
            return False

    @override
    def contains_value(self, value: V) -> bool:
        for _, values in self._root.iter():
            try:
                if values.contains(self._value_ordering, value):
                    return True
            except (IncomparableError, NullNotPermittedError):
                continue
        return False

    @override
    def replace(self, key: K, values: List[V]) -> List[V]:
        self._key_ordering.check(key)
        new_values: _Values[V] = PTree.empty()
        for value in values:
            self._value_ordering.check(value)
            new_values = new_values.put(self._value_ordering, value, Unit.instance())
        previous = self.delete_key(key)
        if not new_values.null():
            self._root = self._root.put(self._key_ordering, key, new_values)
            self._size += new_values.size()
        return previous

    @override
    def insert(self, key: K, value: V) -> bool:
        self._key_ordering.check(key)
        self._value_ordering.check(value)
        values = self._values(key)
        new_values = values.put(self._value_ordering, value, Unit.instance())
        if new_values.size() == values.size():
            return False
        self._root = self._root.put(self._key_ordering, key, new_values)
        self._size += 1
        return True

    @override
    def delete(self, key: K, value: V) -> bool:
        values = self._root.lookup(self._key_ordering, key)
        if values is None:
            return False
        new_values = values.remove(self._value_ordering, value)
        if new_values is values:
            return False
        if new_values.null():
            self._root = self._root.remove(self._key_ordering, key)
        else:
            self._root = self._root.put(self._key_ordering, key, new_values)
        self._size -= 1
        return True

    @override
    def delete_key(self, key: K) -> List[V]:
        values = self._root.lookup(self._key_ordering, key)
        if values is None:
            return []
        self._root = self._root.remove(self._key_ordering, key)
        self._size -= values.size()
        return list(values.keys())

    @override
    def clear(self) -> None:
        self._root = PTree.empty()
        self._size = 0


_EMPTY_VALUES: PTree[Any, Unit] = PTree.empty()
_ABSENT = object()


def _tree_entries[K, V](root: PTree[K, _Values[V]]) -> Iterator[Entry[K, V]]:
    for key, values in root.iter():
        for value in values.keys():
            yield Entry(key, value)
