"""Persistent search tree based on weight-balanced trees.

Unlike a plain sorted map, the tree does not assume its elements are naturally
ordered: every operation that compares takes the ordering policy to compare
with. A tree must always be used with the same policy it was built with.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Type, Union, override

from thicket.common import (
    Iterating,
    Ordering,
    Sized,
    fail_invariant,
)
from thicket.ordering import OrderingPolicy

__all__ = ["PTree"]


@dataclass(frozen=True)
class Missing:
    pass


_MISSING = Missing()


# sealed
class PTree[K, V](Sized, Iterating[Tuple[K, V]]):
    @staticmethod
    def empty(
        _kty: Optional[Type[K]] = None, _vty: Optional[Type[V]] = None
    ) -> PTree[K, V]:
        """Create an empty tree.

        Time Complexity: O(1)
        Space Complexity: O(1)

        Returns:
            An empty tree instance.
        """
        return _PTREE_EMPTY

    @override
    def null(self) -> bool:
        match self:
            case PTreeEmpty():
                return True
            case PTreeBranch():
                return False
            case _:
                raise fail_invariant("unknown tree node %r", self)

    @override
    def size(self) -> int:
        match self:
            case PTreeEmpty():
                return 0
            case PTreeBranch(_size, _, _, _, _):
                return _size
            case _:
                raise fail_invariant("unknown tree node %r", self)

    @override
    def iter(self) -> Iterator[Tuple[K, V]]:
        """Iterate over all key-value pairs in key order.

        Time Complexity: O(n) for complete iteration
        Space Complexity: O(log n) for recursion stack
        """
        match self:
            case PTreeEmpty():
                return
            case PTreeBranch(_, left, key, value, right):
                yield from left.iter()
                yield (key, value)
                yield from right.iter()

    def iter_desc(self) -> Iterator[Tuple[K, V]]:
        """Iterate over all key-value pairs in reverse key order."""
        match self:
            case PTreeEmpty():
                return
            case PTreeBranch(_, left, key, value, right):
                yield from right.iter_desc()
                yield (key, value)
                yield from left.iter_desc()

    def keys(self, reverse: bool = False) -> Iterator[K]:
        for key, _ in self.iter_desc() if reverse else self.iter():
            yield key

    def get(
        self, policy: OrderingPolicy[K], key: K, default: Union[V, Missing] = _MISSING
    ) -> V:
        """Get the value associated with a key.

        Time Complexity: O(log n)

        Args:
            policy: The ordering the tree was built with.
            key: The key to look up.
            default: Value to return if key is not found.

        Returns:
            The value associated with the key, or default if given.

        Raises:
            KeyError: If key is not found and no default is provided.
        """
        node: PTree[K, V] = self
        while isinstance(node, PTreeBranch):
            cmp = policy.compare(key, node._key)
            if cmp == Ordering.Eq:
                return node._value
            node = node._left if cmp == Ordering.Lt else node._right
        if isinstance(default, Missing):
            raise KeyError(key)
        return default

    def lookup(self, policy: OrderingPolicy[K], key: K) -> Optional[V]:
        """Get the value associated with a key, returning None if not found."""
        try:
            return self.get(policy, key)
        except KeyError:
            return None

    def contains(self, policy: OrderingPolicy[K], key: K) -> bool:
        """Check if the tree contains the given key.

        Time Complexity: O(log n)
        """
        node: PTree[K, V] = self
        while isinstance(node, PTreeBranch):
            cmp = policy.compare(key, node._key)
            if cmp == Ordering.Eq:
                return True
            node = node._left if cmp == Ordering.Lt else node._right
        return False

    def put(self, policy: OrderingPolicy[K], key: K, value: V) -> PTree[K, V]:
        """Insert or update a key-value pair.

        Time Complexity: O(log n)
        Space Complexity: O(log n) for path copying

        Returns:
            A new tree with the key-value pair inserted or updated.
        """
        return _ptree_put(policy, self, key, value)

    def remove(self, policy: OrderingPolicy[K], key: K) -> PTree[K, V]:
        """Remove a key and its value.

        Time Complexity: O(log n)
        Space Complexity: O(log n) for path copying

        Returns:
            A new tree without the key, or this tree if the key was absent.
        """
        return _ptree_remove(policy, self, key)


@dataclass(frozen=True, eq=False)
class PTreeEmpty[K, V](PTree[K, V]):
    pass


_PTREE_EMPTY: PTree[Any, Any] = PTreeEmpty()


@dataclass(frozen=True, eq=False)
class PTreeBranch[K, V](PTree[K, V]):
    _size: int
    _left: PTree[K, V]
    _key: K
    _value: V
    _right: PTree[K, V]


def _ptree_put[K, V](
    policy: OrderingPolicy[K], ptree: PTree[K, V], key: K, value: V
) -> PTree[K, V]:
    match ptree:
        case PTreeEmpty():
            return PTreeBranch(1, _PTREE_EMPTY, key, value, _PTREE_EMPTY)
        case PTreeBranch(size, left, branch_key, branch_value, right):
            cmp = policy.compare(key, branch_key)
            if cmp == Ordering.Lt:
                new_left = _ptree_put(policy, left, key, value)
                return _ptree_balance(new_left, branch_key, branch_value, right)
            elif cmp == Ordering.Gt:
                new_right = _ptree_put(policy, right, key, value)
                return _ptree_balance(left, branch_key, branch_value, new_right)
            else:
                # Key exists: keep the stored key, update value
                return PTreeBranch(size, left, branch_key, value, right)
        case _:
            raise fail_invariant("unknown tree node %r", ptree)


def _ptree_remove[K, V](
    policy: OrderingPolicy[K], ptree: PTree[K, V], key: K
) -> PTree[K, V]:
    match ptree:
        case PTreeEmpty():
            return ptree
        case PTreeBranch(_, left, branch_key, branch_value, right):
            cmp = policy.compare(key, branch_key)
            if cmp == Ordering.Lt:
                new_left = _ptree_remove(policy, left, key)
                if new_left is left:
                    return ptree
                return _ptree_balance(new_left, branch_key, branch_value, right)
            elif cmp == Ordering.Gt:
                new_right = _ptree_remove(policy, right, key)
                if new_right is right:
                    return ptree
                return _ptree_balance(left, branch_key, branch_value, new_right)
            else:
                return _ptree_join(left, right)
        case _:
            raise fail_invariant("unknown tree node %r", ptree)


def _ptree_join[K, V](left: PTree[K, V], right: PTree[K, V]) -> PTree[K, V]:
    """Join two trees where all keys in left are smaller than all keys in right."""
    match (left, right):
        case (PTreeEmpty(), _):
            return right
        case (_, PTreeEmpty()):
            return left
        case (PTreeBranch(), PTreeBranch()):
            min_result = _ptree_find_min(right)
            if min_result is None:
                raise fail_invariant("non-empty tree has no minimum")
            min_key, min_value, new_right = min_result
            return _ptree_balance(left, min_key, min_value, new_right)
        case _:
            raise fail_invariant("unknown tree nodes %r, %r", left, right)


def _ptree_find_min[K, V](ptree: PTree[K, V]) -> Optional[Tuple[K, V, PTree[K, V]]]:
    match ptree:
        case PTreeEmpty():
            return None
        case PTreeBranch(_, left, key, value, right):
            if left.null():
                return (key, value, right)
            else:
                min_result = _ptree_find_min(left)
                if min_result is None:
                    raise fail_invariant("non-empty tree has no minimum")
                min_key, min_value, new_left = min_result
                return (min_key, min_value, _ptree_balance(new_left, key, value, right))
        case _:
            raise fail_invariant("unknown tree node %r", ptree)


def _ptree_branch[K, V](left: PTree[K, V], key: K, value: V, right: PTree[K, V]):
    return PTreeBranch(left.size() + 1 + right.size(), left, key, value, right)


def _ptree_balance[K, V](
    left: PTree[K, V], key: K, value: V, right: PTree[K, V]
) -> PTree[K, V]:
    left_size = left.size()
    right_size = right.size()

    # Weight-balanced tree invariant: neither subtree should be more than
    # 3 times larger than the other
    if left_size + right_size >= 2:
        if right_size > 3 * left_size:
            match right:
                case PTreeBranch(_, right_left, right_key, right_value, right_right):
                    if right_left.size() < 2 * right_right.size():
                        # Single rotation left
                        return _ptree_branch(
                            _ptree_branch(left, key, value, right_left),
                            right_key,
                            right_value,
                            right_right,
                        )
                    match right_left:
                        case PTreeBranch(_, rll, rl_key, rl_value, rlr):
                            # Double rotation right-left
                            return _ptree_branch(
                                _ptree_branch(left, key, value, rll),
                                rl_key,
                                rl_value,
                                _ptree_branch(rlr, right_key, right_value, right_right),
                            )
        elif left_size > 3 * right_size:
            match left:
                case PTreeBranch(_, left_left, left_key, left_value, left_right):
                    if left_right.size() < 2 * left_left.size():
                        # Single rotation right
                        return _ptree_branch(
                            left_left,
                            left_key,
                            left_value,
                            _ptree_branch(left_right, key, value, right),
                        )
                    match left_right:
                        case PTreeBranch(_, lrl, lr_key, lr_value, lrr):
                            # Double rotation left-right
                            return _ptree_branch(
                                _ptree_branch(left_left, left_key, left_value, lrl),
                                lr_key,
                                lr_value,
                                _ptree_branch(lrr, key, value, right),
                            )

    # Tree is balanced or no rotation needed
    return _ptree_branch(left, key, value, right)
