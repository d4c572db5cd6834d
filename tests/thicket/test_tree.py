import pytest

from thicket.common import IncomparableError, NullNotPermittedError, Ordering
from thicket.ordering import Custom, Natural
from thicket.tree import PTree, PTreeBranch

NATURAL = Natural()
REVERSED = Custom(lambda a, b: b - a)


def _mk(policy, keys):
    tree = PTree.empty()
    for key in keys:
        tree = tree.put(policy, key, str(key))
    return tree


def _balanced(tree) -> bool:
    if not isinstance(tree, PTreeBranch):
        return True
    left, right = tree._left.size(), tree._right.size()
    if left + right >= 2 and (left > 3 * right or right > 3 * left):
        return False
    if tree._size != left + 1 + right:
        return False
    return _balanced(tree._left) and _balanced(tree._right)


def test_empty_tree():
    """Test creating an empty tree and asserting it is empty"""
    tree = PTree.empty(int, str)
    assert tree.null()
    assert tree.size() == 0
    assert tree.list() == []
    assert list(tree.keys()) == []
    assert not tree.contains(NATURAL, 1)
    assert tree.lookup(NATURAL, 1) is None


def test_put_orders_keys():
    """Test that keys come out in policy order regardless of insertion order"""
    tree = _mk(NATURAL, [5, 2, 8, 1, 9, 3])
    assert list(tree.keys()) == [1, 2, 3, 5, 8, 9]
    assert [value for _, value in tree.iter()] == ["1", "2", "3", "5", "8", "9"]
    assert tree.size() == 6


def test_custom_policy_orders_keys():
    tree = _mk(REVERSED, [5, 2, 8, 1, 9, 3])
    assert list(tree.keys()) == [9, 8, 5, 3, 2, 1]
    assert tree.contains(REVERSED, 8)
    assert not tree.contains(REVERSED, 7)


def test_put_existing_key_keeps_size():
    tree = _mk(NATURAL, [1, 2, 3])
    updated = tree.put(NATURAL, 2, "two")
    assert updated.size() == 3
    assert updated.get(NATURAL, 2) == "two"
    # The original is untouched
    assert tree.get(NATURAL, 2) == "2"


def test_put_equal_key_keeps_stored_key():
    """Keys equal under the policy are the same key; the first one stays"""
    by_length = Custom(lambda a, b: len(a) - len(b))
    tree = PTree.empty().put(by_length, "ab", 1).put(by_length, "cd", 2)
    assert tree.list() == [("ab", 2)]


def test_get_missing_raises():
    tree = _mk(NATURAL, [1, 2])
    with pytest.raises(KeyError):
        tree.get(NATURAL, 3)
    assert tree.get(NATURAL, 3, "default") == "default"


def test_remove():
    tree = _mk(NATURAL, range(10))
    removed = tree.remove(NATURAL, 4)
    assert list(removed.keys()) == [0, 1, 2, 3, 5, 6, 7, 8, 9]
    assert removed.size() == 9
    assert tree.size() == 10


def test_remove_absent_returns_same_tree():
    tree = _mk(NATURAL, range(10))
    assert tree.remove(NATURAL, 42) is tree
    assert PTree.empty().remove(NATURAL, 1).null()


def test_descending_iteration():
    tree = _mk(NATURAL, [4, 2, 6, 1])
    assert list(tree.iter_desc()) == [(6, "6"), (4, "4"), (2, "2"), (1, "1")]
    assert list(tree.keys(reverse=True)) == [6, 4, 2, 1]
    assert list(PTree.empty().keys(reverse=True)) == []


def test_remove_smallest_keeps_rest():
    tree = _mk(NATURAL, [4, 2, 6])
    rest = tree.remove(NATURAL, 2)
    assert rest.list() == [(4, "4"), (6, "6")]


def test_balanced_after_ascending_puts_and_removes():
    tree = _mk(NATURAL, range(200))
    assert _balanced(tree)
    for key in range(0, 200, 3):
        tree = tree.remove(NATURAL, key)
    assert _balanced(tree)
    assert list(tree.keys()) == [k for k in range(200) if k % 3 != 0]


def test_natural_rejects_none():
    tree = _mk(NATURAL, [1])
    with pytest.raises(NullNotPermittedError):
        tree.put(NATURAL, None, "none")
    with pytest.raises(NullNotPermittedError):
        NATURAL.check(None)


def test_natural_rejects_incomparable():
    tree = _mk(NATURAL, [1])
    with pytest.raises(IncomparableError):
        tree.put(NATURAL, "one", "1")
    with pytest.raises(IncomparableError):
        NATURAL.check(object())
    # Still a TypeError for callers that expect one
    with pytest.raises(TypeError):
        tree.contains(NATURAL, "one")


def test_custom_may_accept_none():
    none_first = Custom(
        lambda a, b: 0 if a is b else (-1 if a is None else (1 if b is None else a - b))
    )
    tree = _mk(none_first, [3, None, 1])
    assert list(tree.keys()) == [None, 1, 3]


def test_custom_comparator_may_return_ordering():
    policy = Custom(lambda a, b: Ordering.Gt if a < b else Ordering.Lt if a > b else Ordering.Eq)
    tree = _mk(policy, [1, 3, 2])
    assert list(tree.keys()) == [3, 2, 1]
