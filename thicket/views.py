"""Live views over a multimap.

Views never own data: each holds a reference to its multimap and reads from or
writes through the multimap's store, so a change made through any view is
immediately visible through the multimap and every other view.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, MutableSet, Set
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Iterable,
    Iterator,
    Optional,
    Tuple,
    Union,
    override,
)

from thicket.common import (
    Entry,
    IncomparableError,
    IteratorStateError,
    NullNotPermittedError,
    Ordering,
)
from thicket.ordering import OrderingPolicy

if TYPE_CHECKING:
    from thicket.multimap import Multimap, SortedMultimap

__all__ = [
    "AsMapView",
    "EntriesView",
    "KeyMultisetView",
    "KeySetView",
    "SortedKeySetView",
    "SortedValueSetView",
    "ValueSetView",
    "ValuesView",
    "ViewIterator",
]


class ViewIterator[E, T]:
    """An iterator whose remove() deletes the element last returned by next().

    Traverses a snapshot taken at creation and skips elements that have since
    left the multimap, so removing through it never disturbs the traversal.
    """

    def __init__(
        self,
        source: Iterator[E],
        present: Callable[[E], bool],
        remover: Callable[[E], Any],
        project: Optional[Callable[[E], T]] = None,
    ) -> None:
        self._source = source
        self._present = present
        self._remover = remover
        self._project = project
        self._current: Optional[E] = None
        self._removable = False

    def __iter__(self) -> ViewIterator[E, T]:
        return self

    def __next__(self) -> T:
        self._removable = False
        for item in self._source:
            if self._present(item):
                self._current = item
                self._removable = True
                return item if self._project is None else self._project(item)  # type: ignore[return-value]
        raise StopIteration

    def remove(self) -> None:
        """Remove the element most recently returned by next().

        Raises:
            IteratorStateError: If next() has not returned an element since
                the last remove().
        """
        if not self._removable:
            raise IteratorStateError("no current element to remove")
        self._removable = False
        self._remover(self._current)


def _retained[T](items: Iterable[T]) -> Collection[T]:
    return items if isinstance(items, Collection) else list(items)


class ValueSetView[K, V](MutableSet[V]):
    """The live set of values of one key, as returned by get(key).

    The key need not be present: writing the first value through the view
    materializes it, and removing the last value drops it again.
    """

    def __init__(self, multimap: Multimap[K, V], key: K) -> None:
        self._multimap = multimap
        self._key = key

    @property
    def key(self) -> K:
        return self._key

    @classmethod
    def _from_iterable(cls, it: Iterable[V]) -> frozenset[V]:
        return frozenset(it)

    @override
    def __contains__(self, value: object) -> bool:
        return self._multimap._store.contains(self._key, value)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[V]:
        return self._multimap._store.values_of(self._key)

    @override
    def __len__(self) -> int:
        return self._multimap._store.count(self._key)

    @override
    def add(self, value: V) -> bool:  # type: ignore[override]
        """Add a value to this key, returning True if it was not present."""
        return self._multimap._store.insert(self._key, value)

    @override
    def discard(self, value: V) -> bool:  # type: ignore[override]
        """Remove a value from this key, returning True if it was present."""
        return self._multimap._store.delete(self._key, value)

    @override
    def remove(self, value: V) -> None:
        if not self.discard(value):
            raise KeyError(value)

    @override
    def clear(self) -> None:
        self._multimap._store.delete_key(self._key)

    def update(self, values: Iterable[V]) -> bool:
        """Add every value, returning True if any was new."""
        changed = False
        for value in list(values):
            if self.add(value):
                changed = True
        return changed

    def remove_all(self, values: Iterable[V]) -> bool:
        """Remove every given value of this key, returning True if any was present."""
        changed = False
        for value in list(values):
            if self.discard(value):
                changed = True
        return changed

    def retain_all(self, values: Iterable[V]) -> bool:
        """Keep only the given values of this key.

        Only pairs under this key are touched, even where other keys hold
        equal values.
        """
        keep = _retained(values)
        store = self._multimap._store
        changed = False
        for value in store.stable(iter(self)):
            if value not in keep:
                store.delete(self._key, value)
                changed = True
        return changed

    def iterator(self) -> ViewIterator[V, V]:
        store = self._multimap._store
        key = self._key
        return ViewIterator(
            store.stable(iter(self)),
            lambda value: store.contains(key, value),
            lambda value: store.delete(key, value),
        )

    def __iand__(self, it: Iterable[Any]) -> ValueSetView[K, V]:  # type: ignore[override]
        self.retain_all(it)
        return self

    def __isub__(self, it: Iterable[Any]) -> ValueSetView[K, V]:  # type: ignore[override]
        self.remove_all(it)
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._key!r}, {list(self)!r})"


class KeySetView[K, V](Set[K]):
    """The live set of present keys, in key order.

    Removing a key removes all of its values. Keys cannot be added here.
    """

    def __init__(self, multimap: Multimap[K, V]) -> None:
        self._multimap = multimap

    @classmethod
    def _from_iterable(cls, it: Iterable[K]) -> frozenset[K]:
        return frozenset(it)

    @override
    def __contains__(self, key: object) -> bool:
        return self._multimap._store.contains_key(key)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[K]:
        return self._multimap._store.keys()

    @override
    def __len__(self) -> int:
        return self._multimap._store.key_count()

    def add(self, key: K) -> bool:
        raise NotImplementedError("keys are added by putting values")

    def discard(self, key: K) -> bool:
        return bool(self._multimap._store.delete_key(key))

    def remove(self, key: K) -> None:
        if not self.discard(key):
            raise KeyError(key)

    def clear(self) -> None:
        self._multimap.clear()

    def retain_all(self, keys: Iterable[K]) -> bool:
        keep = _retained(keys)
        store = self._multimap._store
        changed = False
        for key in store.stable(iter(self)):
            if key not in keep:
                store.delete_key(key)
                changed = True
        return changed

    def iterator(self) -> ViewIterator[K, K]:
        store = self._multimap._store
        return ViewIterator(store.stable(iter(self)), store.contains_key, store.delete_key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


# An endpoint and whether it is included
type _Bound[T] = Optional[Tuple[T, bool]]


class _Range[T]:
    """Optional lower and upper bounds under an ordering policy."""

    def __init__(
        self, policy: OrderingPolicy[T], lower: _Bound[T] = None, upper: _Bound[T] = None
    ) -> None:
        self.policy = policy
        self.lower = lower
        self.upper = upper

    def bounded(self) -> bool:
        return self.lower is not None or self.upper is not None

    def above_lower(self, item: T) -> bool:
        if self.lower is None:
            return True
        bound, inclusive = self.lower
        cmp = self.policy.compare(item, bound)
        return cmp == Ordering.Gt or (inclusive and cmp == Ordering.Eq)

    def below_upper(self, item: T) -> bool:
        if self.upper is None:
            return True
        bound, inclusive = self.upper
        cmp = self.policy.compare(item, bound)
        return cmp == Ordering.Lt or (inclusive and cmp == Ordering.Eq)

    def admits(self, item: T) -> bool:
        return self.above_lower(item) and self.below_upper(item)

    def scan(self, items: Iterator[T], reverse: bool = False) -> Iterator[T]:
        """Yield the admitted run of an ordered traversal.

        Stops at the first item past the far bound instead of visiting the rest.
        """
        if reverse:
            near, far = self.below_upper, self.above_lower
        else:
            near, far = self.above_lower, self.below_upper
        for item in items:
            if not near(item):
                continue
            if not far(item):
                return
            yield item

    def narrow(self, lower: _Bound[T] = None, upper: _Bound[T] = None) -> _Range[T]:
        """The intersection of this range with new bounds."""
        return _Range(
            self.policy,
            self._tighter(self.lower, lower, Ordering.Gt),
            self._tighter(self.upper, upper, Ordering.Lt),
        )

    def _tighter(self, current: _Bound[T], new: _Bound[T], inward: Ordering) -> _Bound[T]:
        if new is None:
            return current
        if current is None:
            return new
        cmp = self.policy.compare(new[0], current[0])
        if cmp == inward:
            return new
        elif cmp == Ordering.Eq:
            return (current[0], current[1] and new[1])
        else:
            return current

    def between(self, lower: T, upper: T) -> None:
        if self.policy.compare(lower, upper) == Ordering.Gt:
            raise ValueError(f"lower bound {lower!r} is above upper bound {upper!r}")


class SortedKeySetView[K, V](KeySetView[K, V]):
    """The key set of a sorted multimap, with ordered access and live ranges.

    head(), tail() and sub() return views restricted to a range of keys. A
    range view sees later changes to the multimap, and removing through it
    never touches keys outside its range.
    """

    _multimap: SortedMultimap[K, V]

    def __init__(
        self, multimap: SortedMultimap[K, V], key_range: Optional[_Range[K]] = None
    ) -> None:
        super().__init__(multimap)
        self._range = _Range(multimap.key_ordering) if key_range is None else key_range

    @property
    def ordering(self) -> OrderingPolicy[K]:
        return self._range.policy

    @override
    def __contains__(self, key: object) -> bool:
        return self._range.admits(key) and super().__contains__(key)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[K]:
        return self._range.scan(self._multimap._store.keys())

    def __reversed__(self) -> Iterator[K]:
        return self._range.scan(self._multimap._store.keys_desc(), reverse=True)

    @override
    def __len__(self) -> int:
        if not self._range.bounded():
            return super().__len__()
        return sum(1 for _ in self)

    @override
    def discard(self, key: K) -> bool:
        return self._range.admits(key) and super().discard(key)

    @override
    def clear(self) -> None:
        if not self._range.bounded():
            super().clear()
            return
        store = self._multimap._store
        for key in self:
            store.delete_key(key)

    def first(self) -> K:
        """The lowest key.

        Raises:
            KeyError: If the view is empty.
        """
        for key in self:
            return key
        raise KeyError("first() of an empty key set")

    def last(self) -> K:
        """The highest key.

        Raises:
            KeyError: If the view is empty.
        """
        for key in reversed(self):
            return key
        raise KeyError("last() of an empty key set")

    def head(self, upper: K, inclusive: bool = False) -> SortedKeySetView[K, V]:
        """Keys below upper."""
        return SortedKeySetView(self._multimap, self._range.narrow(upper=(upper, inclusive)))

    def tail(self, lower: K, inclusive: bool = True) -> SortedKeySetView[K, V]:
        """Keys from lower upward."""
        return SortedKeySetView(self._multimap, self._range.narrow(lower=(lower, inclusive)))

    def sub(
        self,
        lower: K,
        upper: K,
        lower_inclusive: bool = True,
        upper_inclusive: bool = False,
    ) -> SortedKeySetView[K, V]:
        """Keys from lower up to upper.

        Raises:
            ValueError: If lower is above upper.
        """
        self._range.between(lower, upper)
        narrowed = self._range.narrow((lower, lower_inclusive), (upper, upper_inclusive))
        return SortedKeySetView(self._multimap, narrowed)


class SortedValueSetView[K, V](ValueSetView[K, V]):
    """The values of one key of a sorted multimap, in value order.

    Range views work as for SortedKeySetView. Adding a value outside a range
    view's bounds raises ValueError.
    """

    _multimap: SortedMultimap[K, V]

    def __init__(
        self,
        multimap: SortedMultimap[K, V],
        key: K,
        value_range: Optional[_Range[V]] = None,
    ) -> None:
        super().__init__(multimap, key)
        self._range = (
            _Range(multimap.value_ordering) if value_range is None else value_range
        )

    @property
    def ordering(self) -> OrderingPolicy[V]:
        return self._range.policy

    @override
    def __contains__(self, value: object) -> bool:
        return self._range.admits(value) and super().__contains__(value)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[V]:
        return self._range.scan(self._multimap._store.values_of(self._key))

    def __reversed__(self) -> Iterator[V]:
        store = self._multimap._store
        return self._range.scan(store.values_desc(self._key), reverse=True)

    @override
    def __len__(self) -> int:
        if not self._range.bounded():
            return super().__len__()
        return sum(1 for _ in self)

    @override
    def add(self, value: V) -> bool:
        if not self._range.admits(value):
            raise ValueError(f"value {value!r} is outside this view's range")
        return super().add(value)

    @override
    def discard(self, value: V) -> bool:
        return self._range.admits(value) and super().discard(value)

    @override
    def clear(self) -> None:
        if not self._range.bounded():
            super().clear()
            return
        store = self._multimap._store
        for value in self:
            store.delete(self._key, value)

    def first(self) -> V:
        """The lowest value.

        Raises:
            KeyError: If the view is empty.
        """
        for value in self:
            return value
        raise KeyError(f"first() of {self._key!r} with no values")

    def last(self) -> V:
        """The highest value.

        Raises:
            KeyError: If the view is empty.
        """
        for value in reversed(self):
            return value
        raise KeyError(f"last() of {self._key!r} with no values")

    def head(self, upper: V, inclusive: bool = False) -> SortedValueSetView[K, V]:
        narrowed = self._range.narrow(upper=(upper, inclusive))
        return SortedValueSetView(self._multimap, self._key, narrowed)

    def tail(self, lower: V, inclusive: bool = True) -> SortedValueSetView[K, V]:
        narrowed = self._range.narrow(lower=(lower, inclusive))
        return SortedValueSetView(self._multimap, self._key, narrowed)

    def sub(
        self,
        lower: V,
        upper: V,
        lower_inclusive: bool = True,
        upper_inclusive: bool = False,
    ) -> SortedValueSetView[K, V]:
        self._range.between(lower, upper)
        narrowed = self._range.narrow((lower, lower_inclusive), (upper, upper_inclusive))
        return SortedValueSetView(self._multimap, self._key, narrowed)


class KeyMultisetView[K, V](Collection[K]):
    """Every key repeated once per value, grouped by key in key order."""

    def __init__(self, multimap: Multimap[K, V]) -> None:
        self._multimap = multimap

    def _grouped(self) -> Iterator[Entry[K, V]]:
        store = self._multimap._store
        for key in store.keys():
            for value in store.values_of(key):
                yield Entry(key, value)

    @override
    def __contains__(self, key: object) -> bool:
        return self._multimap._store.contains_key(key)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[K]:
        for entry in self._grouped():
            yield entry.key

    @override
    def __len__(self) -> int:
        return self._multimap._store.size()

    def count(self, key: K) -> int:
        """Number of occurrences of key, which is its number of values."""
        return self._multimap._store.count(key)

    def element_set(self) -> KeySetView[K, V]:
        return self._multimap.key_set()

    def remove(self, key: K, occurrences: int = 1) -> int:
        """Remove up to some occurrences of key, oldest values first.

        Returns:
            The count of key before the removal.
        """
        if occurrences < 0:
            raise ValueError(f"negative occurrences: {occurrences}")
        store = self._multimap._store
        previous = store.count(key)
        for value in list(store.values_of(key))[:occurrences]:
            store.delete(key, value)
        return previous

    def iterator(self) -> ViewIterator[Entry[K, V], K]:
        store = self._multimap._store
        return ViewIterator(
            store.stable(self._grouped()),
            lambda entry: store.contains(entry.key, entry.value),
            lambda entry: store.delete(entry.key, entry.value),
            lambda entry: entry.key,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyMultisetView):
            return NotImplemented
        if len(self) != len(other):
            return False
        return all(other.count(key) == self.count(key) for key in self.element_set())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


class ValuesView[K, V](Collection[V]):
    """Every value of the multimap, in entry order."""

    def __init__(self, multimap: Multimap[K, V]) -> None:
        self._multimap = multimap

    @override
    def __contains__(self, value: object) -> bool:
        return self._multimap.contains_value(value)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[V]:
        for entry in self._multimap._store.entries():
            yield entry.value

    @override
    def __len__(self) -> int:
        return self._multimap._store.size()

    def remove(self, value: V) -> bool:
        """Remove the first entry holding value, returning True if one existed."""
        store = self._multimap._store
        for entry in store.stable(store.entries()):
            if store.values_equal(entry.value, value):
                return store.delete(entry.key, entry.value)
        return False

    def clear(self) -> None:
        self._multimap.clear()

    def iterator(self) -> ViewIterator[Entry[K, V], V]:
        store = self._multimap._store
        return ViewIterator(
            store.stable(store.entries()),
            lambda entry: store.contains(entry.key, entry.value),
            lambda entry: store.delete(entry.key, entry.value),
            lambda entry: entry.value,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


class EntriesView[K, V](Set[Entry[K, V]]):
    """Every key-value pair of the multimap, in entry order.

    Membership accepts an Entry or a 2-tuple. Entries cannot be added here.
    """

    def __init__(self, multimap: Multimap[K, V]) -> None:
        self._multimap = multimap

    @classmethod
    def _from_iterable(cls, it: Iterable[Entry[K, V]]) -> frozenset[Entry[K, V]]:
        return frozenset(it)

    @override
    def __contains__(self, item: object) -> bool:
        match item:
            case Entry(key, value) | (key, value):
                return self._multimap._store.contains(key, value)
            case _:
                return False

    @override
    def __iter__(self) -> Iterator[Entry[K, V]]:
        return self._multimap._store.entries()

    @override
    def __len__(self) -> int:
        return self._multimap._store.size()

    def add(self, entry: Entry[K, V]) -> bool:
        raise NotImplementedError("entries are added with put")

    def discard(self, entry: Union[Entry[K, V], tuple]) -> bool:
        key, value = entry
        return self._multimap._store.delete(key, value)

    def remove(self, entry: Union[Entry[K, V], tuple]) -> None:
        if not self.discard(entry):
            raise KeyError(entry)

    def clear(self) -> None:
        self._multimap.clear()

    def iterator(self) -> ViewIterator[Entry[K, V], Entry[K, V]]:
        store = self._multimap._store
        return ViewIterator(
            store.stable(store.entries()),
            lambda entry: store.contains(entry.key, entry.value),
            lambda entry: store.delete(entry.key, entry.value),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self)!r})"


_MISSING: Any = object()


class AsMapView[K, V](Mapping[K, ValueSetView[K, V]]):
    """The multimap as a mapping from each present key to its live value set."""

    def __init__(self, multimap: Multimap[K, V]) -> None:
        self._multimap = multimap

    @override
    def __getitem__(self, key: K) -> ValueSetView[K, V]:
        if not self._multimap._store.contains_key(key):
            raise KeyError(key)
        return self._multimap.get(key)

    @override
    def __contains__(self, key: object) -> bool:
        return self._multimap._store.contains_key(key)  # type: ignore[arg-type]

    @override
    def __iter__(self) -> Iterator[K]:
        return self._multimap._store.keys()

    @override
    def __len__(self) -> int:
        return self._multimap._store.key_count()

    def __delitem__(self, key: K) -> None:
        if not self._multimap._store.delete_key(key):
            raise KeyError(key)

    def pop(self, key: K, default: Any = _MISSING) -> Any:
        """Remove a key, returning its values as a list."""
        removed = self._multimap._store.delete_key(key)
        if removed:
            return removed
        if default is _MISSING:
            raise KeyError(key)
        return default

    def clear(self) -> None:
        self._multimap.clear()

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        if len(self) != len(other):
            return False
        try:
            for key in self:
                if key not in other:
                    return False
                if self._multimap.get(key) != other[key]:
                    return False
        except (IncomparableError, NullNotPermittedError):
            # An element the other side cannot order is one it does not hold
            return False
        return True

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(f"{key!r}: {list(self[key])!r}" for key in self)
        return f"{{{items}}}"
