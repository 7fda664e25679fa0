"""
hybridfg/discrete/decision_tree.py

Decision-diagram valued map: discrete assignment -> payload.

Each tree owns an arena of nodes addressed by integer index. A node is
either a Leaf (payload) or a Choice (label = discrete key, one branch index
per value). Labels are ordered with the largest key nearest the root, so two
trees can be combined by a single simultaneous descent (apply).

Canonicalization (when merging is on):
  - leaves with the same structural key share one arena slot
  - a Choice whose branches all point at the same node is replaced by it
  - identical Choice nodes are shared

Because of sharing the arena is a DAG, not a tree; evaluation is the same
either way. Structural keys:
  - numbers: their float value (numerically equal leaves merge)
  - objects exposing structural_key(): that key
  - anything else: object identity
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, List, Mapping, Optional, Sequence, Tuple, TypeVar

import numpy as np

from hybridfg.core.keys import key_name
from hybridfg.discrete.assignment import (
    Assignment,
    DiscreteKey,
    assignment_index,
    cartesian_product,
    merge_discrete_keys,
)

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Leaf:
    value: Any


@dataclass(frozen=True)
class Choice:
    label: int
    branches: Tuple[int, ...]


def leaf_key(value: Any) -> Hashable:
    """Structural hash key used to canonicalize leaves."""
    if isinstance(value, (bool, int, float, np.integer, np.floating)):
        return ("scalar", float(value))
    key_fn = getattr(value, "structural_key", None)
    if key_fn is not None:
        return ("struct", key_fn())
    return ("object", id(value))


class _ArenaBuilder:
    """Append-only node arena with optional hash-consing."""

    def __init__(self, merge: bool = True):
        self.merge = merge
        self.nodes: List[Any] = []
        self._index: Dict[Hashable, int] = {}

    def _intern(self, key: Hashable, node: Any) -> int:
        if self.merge:
            idx = self._index.get(key)
            if idx is not None:
                return idx
        idx = len(self.nodes)
        self.nodes.append(node)
        if self.merge:
            self._index[key] = idx
        return idx

    def leaf(self, value: Any) -> int:
        return self._intern(("leaf", leaf_key(value)), Leaf(value))

    def choice(self, label: int, branches: Sequence[int]) -> int:
        branches = tuple(branches)
        if self.merge and all(b == branches[0] for b in branches):
            return branches[0]
        return self._intern(("choice", label, branches), Choice(label, branches))


class DecisionTree(Generic[T]):
    """
    Immutable map from assignments of `discrete_keys` to payloads of type T.

    The declared keys are kept even when merging removes them from every
    path; evaluation then simply ignores their value.
    """

    def __init__(self, discrete_keys: Sequence[DiscreteKey], nodes: Sequence[Any], root: int):
        self._keys: Tuple[DiscreteKey, ...] = merge_discrete_keys(discrete_keys)
        self._nodes: Tuple[Any, ...] = tuple(nodes)
        self._root = root

    # --- Construction ---

    @classmethod
    def constant(cls, value: T) -> "DecisionTree[T]":
        return cls((), (Leaf(value),), 0)

    @classmethod
    def from_function(
        cls,
        discrete_keys: Sequence[DiscreteKey],
        fn: Callable[[Assignment], T],
        merge: bool = True,
    ) -> "DecisionTree[T]":
        """Build by calling fn once per full assignment of discrete_keys."""
        keys = merge_discrete_keys(discrete_keys)
        builder = _ArenaBuilder(merge)

        def build(i: int, partial: Tuple[Tuple[int, int], ...]) -> int:
            if i == len(keys):
                return builder.leaf(fn(dict(partial)))
            dk = keys[i]
            branches = [build(i + 1, partial + ((dk.key, v),)) for v in range(dk.cardinality)]
            return builder.choice(dk.key, branches)

        root = build(0, ())
        return cls(keys, builder.nodes, root)

    @classmethod
    def from_values(
        cls,
        discrete_keys: Sequence[DiscreteKey],
        values: Sequence[T],
        merge: bool = True,
    ) -> "DecisionTree[T]":
        """
        Build from payloads listed in cartesian_product(discrete_keys) order,
        in the key order given by the caller.
        """
        discrete_keys = tuple(discrete_keys)
        expected = 1
        for dk in discrete_keys:
            expected *= dk.cardinality
        if len(values) != expected:
            raise ValueError(f"expected {expected} leaf values for {discrete_keys}, got {len(values)}")
        return cls.from_function(
            discrete_keys, lambda a: values[assignment_index(discrete_keys, a)], merge=merge
        )

    # --- Queries ---

    @property
    def discrete_keys(self) -> Tuple[DiscreteKey, ...]:
        return self._keys

    def keys(self) -> Tuple[int, ...]:
        return tuple(dk.key for dk in self._keys)

    def is_leaf(self) -> bool:
        return isinstance(self._nodes[self._root], Leaf)

    def __call__(self, assignment: Mapping[int, int]) -> T:
        node = self._nodes[self._root]
        while isinstance(node, Choice):
            try:
                value = assignment[node.label]
            except KeyError:
                raise KeyError(f"assignment is missing discrete key {key_name(node.label)}") from None
            if not 0 <= value < len(node.branches):
                raise ValueError(f"value {value} out of range for {key_name(node.label)}")
            node = self._nodes[node.branches[value]]
        return node.value

    def _reachable(self) -> List[int]:
        order: List[int] = []
        seen = set()
        stack = [self._root]
        while stack:
            idx = stack.pop()
            if idx in seen:
                continue
            seen.add(idx)
            order.append(idx)
            node = self._nodes[idx]
            if isinstance(node, Choice):
                stack.extend(reversed(node.branches))
        return order

    def leaves(self) -> List[T]:
        """Distinct reachable leaf payloads, depth-first from the root."""
        return [self._nodes[i].value for i in self._reachable() if isinstance(self._nodes[i], Leaf)]

    def nr_leaves(self) -> int:
        return len(self.leaves())

    def nr_nodes(self) -> int:
        return len(self._reachable())

    def items(self) -> List[Tuple[Assignment, T]]:
        """(assignment, payload) for every assignment of the declared keys."""
        return [(a, self(a)) for a in cartesian_product(self._keys)]

    # --- Transformations ---

    def map(self, fn: Callable[[T], U], merge: bool = True) -> "DecisionTree[U]":
        """Apply fn to every distinct leaf; fn is called once per arena leaf."""
        builder = _ArenaBuilder(merge)
        memo: Dict[int, int] = {}

        def rec(idx: int) -> int:
            if idx in memo:
                return memo[idx]
            node = self._nodes[idx]
            if isinstance(node, Leaf):
                out = builder.leaf(fn(node.value))
            else:
                out = builder.choice(node.label, [rec(b) for b in node.branches])
            memo[idx] = out
            return out

        root = rec(self._root)
        return DecisionTree(self._keys, builder.nodes, root)

    def apply(
        self,
        other: "DecisionTree[U]",
        fn: Callable[[T, U], Any],
        merge: bool = True,
    ) -> "DecisionTree[Any]":
        """Pointwise combination on the union of both key sets."""
        keys = merge_discrete_keys(self._keys, other._keys)
        card = {dk.key: dk.cardinality for dk in keys}
        builder = _ArenaBuilder(merge)
        memo: Dict[Tuple[int, int], int] = {}

        def rec(ia: int, ib: int) -> int:
            if (ia, ib) in memo:
                return memo[(ia, ib)]
            a = self._nodes[ia]
            b = other._nodes[ib]
            if isinstance(a, Leaf) and isinstance(b, Leaf):
                out = builder.leaf(fn(a.value, b.value))
            else:
                label = max(n.label for n in (a, b) if isinstance(n, Choice))
                branches = []
                for v in range(card[label]):
                    ca = a.branches[v] if isinstance(a, Choice) and a.label == label else ia
                    cb = b.branches[v] if isinstance(b, Choice) and b.label == label else ib
                    branches.append(rec(ca, cb))
                out = builder.choice(label, branches)
            memo[(ia, ib)] = out
            return out

        root = rec(self._root, other._root)
        return DecisionTree(keys, builder.nodes, root)

    def restrict(self, assignment: Mapping[int, int], merge: bool = True) -> "DecisionTree[T]":
        """Fix the keys present in assignment; the result no longer depends on them."""
        builder = _ArenaBuilder(merge)
        memo: Dict[int, int] = {}

        def rec(idx: int) -> int:
            if idx in memo:
                return memo[idx]
            node = self._nodes[idx]
            if isinstance(node, Leaf):
                out = builder.leaf(node.value)
            elif node.label in assignment:
                out = rec(node.branches[assignment[node.label]])
            else:
                out = builder.choice(node.label, [rec(b) for b in node.branches])
            memo[idx] = out
            return out

        root = rec(self._root)
        keys = tuple(dk for dk in self._keys if dk.key not in assignment)
        return DecisionTree(keys, builder.nodes, root)

    def equals(
        self,
        other: "DecisionTree[Any]",
        leaf_equal: Optional[Callable[[Any, Any], bool]] = None,
    ) -> bool:
        """Semantic equality over the union of both key sets."""
        if leaf_equal is None:
            leaf_equal = lambda a, b: a == b
        keys = merge_discrete_keys(self._keys, other._keys)
        return all(leaf_equal(self(a), other(a)) for a in cartesian_product(keys))

    def __repr__(self) -> str:
        labels = ", ".join(key_name(k) for k in self.keys())
        return f"DecisionTree(keys=[{labels}], leaves={self.nr_leaves()})"
