"""Behavior shared by every multimap, run once per flavor.

A flavor records what its multimap supports so that tests can select or adapt
to capabilities without inspecting the class.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

import pytest

from thicket import (
    Entry,
    HashMultimap,
    IteratorStateError,
    LinkedMultimap,
    Multimap,
    NullNotPermittedError,
    SortedMultimap,
)


class Order(Enum):
    Unspecified = "unspecified"
    Insertion = "insertion"
    Sorted = "sorted"


@dataclass(frozen=True)
class Flavor:
    name: str
    factory: Callable[[], Multimap]
    supports_null: bool
    key_order: Order
    value_order: Order

    def __str__(self) -> str:
        return self.name


FLAVORS: List[Flavor] = [
    Flavor("hash", HashMultimap, True, Order.Unspecified, Order.Unspecified),
    Flavor("linked", LinkedMultimap, True, Order.Insertion, Order.Insertion),
    Flavor("sorted", SortedMultimap, False, Order.Sorted, Order.Sorted),
]

all_flavors = pytest.mark.parametrize("flavor", FLAVORS, ids=str)

# Samples chosen so insertion order differs from sorted order
SAMPLES = [(3, "c"), (1, "b"), (3, "a"), (2, "b"), (1, "a")]


def _filled(flavor: Flavor) -> Multimap:
    mm = flavor.factory()
    for key, value in SAMPLES:
        mm.put(key, value)
    return mm


def _expected_keys(flavor: Flavor) -> List[int]:
    match flavor.key_order:
        case Order.Insertion:
            return [3, 1, 2]
        case Order.Sorted:
            return [1, 2, 3]
        case _:
            return sorted({key for key, _ in SAMPLES})


@all_flavors
def test_empty(flavor: Flavor):
    mm = flavor.factory()
    assert mm.is_empty()
    assert mm.size() == 0
    assert len(mm) == 0
    assert not mm
    assert list(mm.entries()) == []
    assert list(mm.key_set()) == []
    assert len(mm.get(1)) == 0
    assert mm.as_map() == {}
    mm.verify()


@all_flavors
def test_put_and_size(flavor: Flavor):
    mm = _filled(flavor)
    assert mm.size() == len(SAMPLES)
    assert not mm.put(3, "c")
    assert mm.size() == len(SAMPLES)
    assert len(mm.key_set()) == 3
    assert len(mm.keys()) == len(SAMPLES)
    assert len(mm.values()) == len(SAMPLES)
    mm.verify()


@all_flavors
def test_key_order(flavor: Flavor):
    mm = _filled(flavor)
    keys = list(mm.key_set())
    if flavor.key_order == Order.Unspecified:
        keys = sorted(keys)
    assert keys == _expected_keys(flavor)


@all_flavors
def test_value_order(flavor: Flavor):
    mm = _filled(flavor)
    values = list(mm.get(3))
    match flavor.value_order:
        case Order.Insertion:
            assert values == ["c", "a"]
        case Order.Sorted:
            assert values == ["a", "c"]
        case _:
            assert sorted(values) == ["a", "c"]


@all_flavors
def test_contains(flavor: Flavor):
    mm = _filled(flavor)
    assert mm.contains_key(1)
    assert 1 in mm
    assert not mm.contains_key(4)
    assert mm.contains_value("b")
    assert not mm.contains_value("z")
    assert mm.contains_entry(2, "b")
    assert not mm.contains_entry(2, "a")
    assert "b" in mm.values()
    assert Entry(1, "a") in mm.entries()
    assert 3 in mm.key_set()
    assert 3 in mm.keys()
    assert "a" in mm.get(3)


@all_flavors
def test_remove_last_value_drops_key(flavor: Flavor):
    mm = _filled(flavor)
    assert mm.remove(2, "b")
    assert not mm.remove(2, "b")
    assert not mm.contains_key(2)
    assert 2 not in mm.key_set()
    assert mm.size() == len(SAMPLES) - 1
    mm.verify()


@all_flavors
def test_remove_all(flavor: Flavor):
    mm = _filled(flavor)
    removed = mm.remove_all(3)
    assert sorted(removed) == ["a", "c"]
    assert not mm.contains_key(3)
    assert mm.remove_all(3) == []
    mm.verify()


@all_flavors
def test_replace_values(flavor: Flavor):
    mm = _filled(flavor)
    previous = mm.replace_values(1, ["x", "y"])
    assert sorted(previous) == ["a", "b"]
    assert sorted(mm.get(1)) == ["x", "y"]
    assert mm.size() == len(SAMPLES)
    mm.verify()


@all_flavors
def test_views_are_live(flavor: Flavor):
    mm = flavor.factory()
    view = mm.get(1)
    keys = mm.key_set()
    entries = mm.entries()
    as_map = mm.as_map()
    mm.put(1, "a")
    assert list(view) == ["a"]
    assert list(keys) == [1]
    assert list(entries) == [Entry(1, "a")]
    assert list(as_map[1]) == ["a"]
    view.add("b")
    assert mm.contains_entry(1, "b")
    keys.discard(1)
    assert mm.is_empty()
    assert len(view) == 0


@all_flavors
def test_key_set_cannot_add(flavor: Flavor):
    mm = _filled(flavor)
    with pytest.raises(NotImplementedError):
        mm.key_set().add(9)
    with pytest.raises(NotImplementedError):
        mm.entries().add(Entry(9, "z"))


@all_flavors
def test_key_set_retain_all(flavor: Flavor):
    mm = _filled(flavor)
    assert mm.key_set().retain_all([1])
    assert list(mm.key_set()) == [1]
    assert mm.size() == 2
    mm.verify()


@all_flavors
def test_iterators_remove_everything(flavor: Flavor):
    for make_view in (
        lambda mm: mm.entries(),
        lambda mm: mm.values(),
        lambda mm: mm.key_set(),
        lambda mm: mm.keys(),
    ):
        mm = _filled(flavor)
        it = make_view(mm).iterator()
        with pytest.raises(IteratorStateError):
            it.remove()
        for _ in it:
            it.remove()
        assert mm.is_empty()
        mm.verify()


@all_flavors
def test_clear(flavor: Flavor):
    mm = _filled(flavor)
    mm.clear()
    assert mm.is_empty()
    assert list(mm.key_set()) == []
    mm.put(5, "e")
    assert mm.size() == 1
    mm.verify()


@all_flavors
def test_equality_and_copy(flavor: Flavor):
    mm = _filled(flavor)
    copied = mm.copy()
    assert type(copied) is type(mm)
    assert copied == mm
    assert copied is not mm
    copied.put(9, "z")
    assert copied != mm
    assert mm != "not a multimap"


@all_flavors
def test_unhashable(flavor: Flavor):
    with pytest.raises(TypeError):
        hash(flavor.factory())


@all_flavors
def test_null_support(flavor: Flavor):
    mm = flavor.factory()
    if flavor.supports_null:
        assert mm.put(None, None)
        assert mm.contains_entry(None, None)
        assert mm.remove(None, None)
    else:
        with pytest.raises(NullNotPermittedError):
            mm.put(None, "a")
        with pytest.raises(NullNotPermittedError):
            mm.put(1, None)
    assert mm.is_empty()


@all_flavors
def test_iteration_yields_entries(flavor: Flavor):
    mm = _filled(flavor)
    assert sorted((key, value) for key, value in mm) == sorted(SAMPLES)
    assert mm.list() == list(mm.entries())


@all_flavors
def test_as_map_delete(flavor: Flavor):
    mm = _filled(flavor)
    as_map = mm.as_map()
    del as_map[3]
    assert 3 not in as_map
    assert as_map.get(3) is None
    assert sorted(as_map.pop(1)) == ["a", "b"]
    assert as_map.pop(1, None) is None
    assert len(as_map) == 1
    mm.verify()


@all_flavors
def test_failed_replace_values_changes_nothing(flavor: Flavor):
    mm = _filled(flavor)
    before = list(mm.entries())
    # An unhashable value for dict stores, an incomparable one for sorted
    with pytest.raises(TypeError):
        mm.replace_values(3, ["x", []])
    assert list(mm.entries()) == before
    assert sorted(mm.get(3)) == ["a", "c"]
    mm.verify()
