"""Property-based tests for PTree using Hypothesis."""

from typing import List, Tuple

from hypothesis import given
from hypothesis import strategies as st

from tests.thicket.hypo import configure_hypo
from thicket.ordering import Custom, Natural
from thicket.tree import PTree

configure_hypo()

NATURAL = Natural()
REVERSED = Custom(lambda a, b: b - a)


@st.composite
def tree_strategy(draw, policy=NATURAL) -> PTree[int, int]:
    pairs = draw(st.lists(st.tuples(st.integers(), st.integers()), max_size=30))
    tree: PTree[int, int] = PTree.empty()
    for key, value in pairs:
        tree = tree.put(policy, key, value)
    return tree


@given(st.lists(st.tuples(st.integers(), st.integers()), max_size=50))
def test_put_matches_dict(pairs: List[Tuple[int, int]]):
    """Putting pairs should behave like a dict with sorted iteration."""
    tree: PTree[int, int] = PTree.empty()
    expected = {}
    for key, value in pairs:
        tree = tree.put(NATURAL, key, value)
        expected[key] = value

    assert tree.list() == sorted(expected.items())
    assert tree.size() == len(expected)


@given(st.lists(st.integers(), max_size=50))
def test_reversed_policy_sorts_descending(keys: List[int]):
    tree: PTree[int, None] = PTree.empty()
    for key in keys:
        tree = tree.put(REVERSED, key, None)
    assert list(tree.keys()) == sorted(set(keys), reverse=True)


@given(tree_strategy(), st.integers())
def test_remove_then_absent(tree, key):
    removed = tree.remove(NATURAL, key)
    assert not removed.contains(NATURAL, key)
    expected_size = tree.size() - 1 if tree.contains(NATURAL, key) else tree.size()
    assert removed.size() == expected_size
    assert list(removed.keys()) == [k for k in tree.keys() if k != key]


@given(tree_strategy(), st.integers(), st.integers())
def test_put_is_persistent(tree, key, value):
    """Putting never changes the tree it was called on."""
    before = tree.list()
    updated = tree.put(NATURAL, key, value)
    assert tree.list() == before
    assert updated.get(NATURAL, key) == value
