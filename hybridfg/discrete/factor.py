"""
hybridfg/discrete/factor.py

Discrete factors backed by decision trees.

DecisionTreeFactor: non-negative potential over mode keys.
DiscreteConditional: P(frontals | parents), a DecisionTreeFactor whose rows
    sum to one for every parent assignment.
DiscretePrior: DiscreteConditional without parents.

Tables are stored as DecisionTree[float]; dense work (products over many
keys, marginalization) goes through Section, whose domain uses the same
descending key order as the tree labels.
"""

from __future__ import annotations

import operator
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from hybridfg.algebra.section import Section
from hybridfg.algebra.semiring import prob_semiring
from hybridfg.core.keys import key_name
from hybridfg.discrete.assignment import (
    Assignment,
    DiscreteKey,
    cartesian_product,
    format_assignment,
    merge_discrete_keys,
)
from hybridfg.discrete.decision_tree import DecisionTree


class DecisionTreeFactor:
    """
    Potential over discrete keys.

    Args:
        discrete_keys: Keys the table is defined on
        table: Either a DecisionTree[float] or a flat sequence of values in
            cartesian_product(discrete_keys) order (first key slowest)
    """

    def __init__(
        self,
        discrete_keys: Sequence[DiscreteKey],
        table: Union[DecisionTree, Sequence[float], np.ndarray],
        merge: bool = True,
    ):
        discrete_keys = tuple(discrete_keys)
        if isinstance(table, DecisionTree):
            tree = table
        else:
            values = [float(v) for v in np.asarray(table, dtype=np.float64).ravel()]
            if any(v < 0.0 for v in values):
                raise ValueError("DecisionTreeFactor values must be non-negative")
            tree = DecisionTree.from_values(discrete_keys, values, merge=merge)
        self._discrete_keys = merge_discrete_keys(discrete_keys, tree.discrete_keys)
        self._tree = tree

    # --- Construction ---

    @classmethod
    def from_section(cls, section: Section, merge: bool = True) -> "DecisionTreeFactor":
        """Build from a probability-semiring Section (axes follow section.domain)."""
        dkeys = tuple(DiscreteKey(k, section.data.shape[i]) for i, k in enumerate(section.domain))
        return cls(dkeys, section.data.ravel(), merge=merge)

    @classmethod
    def constant(cls, value: float) -> "DecisionTreeFactor":
        return cls((), DecisionTree.constant(float(value)))

    # --- Queries ---

    @property
    def discrete_keys(self) -> Tuple[DiscreteKey, ...]:
        return self._discrete_keys

    @property
    def tree(self) -> DecisionTree:
        return self._tree

    def keys(self) -> Tuple[int, ...]:
        return tuple(dk.key for dk in self._discrete_keys)

    def cardinalities(self) -> Dict[int, int]:
        return {dk.key: dk.cardinality for dk in self._discrete_keys}

    def __call__(self, assignment: Mapping[int, int]) -> float:
        return float(self._tree(assignment))

    def error(self, assignment: Mapping[int, int]) -> float:
        value = self(assignment)
        return float("inf") if value == 0.0 else -float(np.log(value))

    def to_section(self, semiring=prob_semiring) -> Section:
        """Dense table with domain = keys() (descending)."""
        shape = tuple(dk.cardinality for dk in self._discrete_keys)
        values = [self(a) for a in cartesian_product(self._discrete_keys)]
        data = np.asarray(values, dtype=np.float64).reshape(shape)
        return Section(self.keys(), data, semiring)

    def values(self) -> np.ndarray:
        """Flat table in cartesian_product(discrete_keys) order."""
        return np.asarray([self(a) for a in cartesian_product(self._discrete_keys)], dtype=np.float64)

    # --- Algebra ---

    def __mul__(self, other: "DecisionTreeFactor") -> "DecisionTreeFactor":
        if not isinstance(other, DecisionTreeFactor):
            return NotImplemented
        tree = self._tree.apply(other._tree, operator.mul)
        return DecisionTreeFactor(merge_discrete_keys(self._discrete_keys, other._discrete_keys), tree)

    def sum_out(self, keys: Iterable[int]) -> "DecisionTreeFactor":
        """Marginalize the given keys with the probability semiring."""
        drop = set(keys)
        section = self.to_section()
        kept = tuple(k for k in section.domain if k not in drop)
        return DecisionTreeFactor.from_section(section.restrict(kept))

    def normalize(self) -> "DecisionTreeFactor":
        section = self.to_section().normalize()
        return DecisionTreeFactor.from_section(section)

    def equals(self, other: "DecisionTreeFactor", tol: float = 1e-9) -> bool:
        if set(self.keys()) != set(other.keys()):
            return False
        return self._tree.equals(other._tree, lambda a, b: abs(a - b) <= tol)

    def __repr__(self) -> str:
        labels = ", ".join(key_name(k) for k in self.keys())
        return f"{type(self).__name__}([{labels}], leaves={self._tree.nr_leaves()})"


def _parse_rows(spec: str) -> List[List[float]]:
    rows = []
    for token in spec.split():
        try:
            weights = [float(w) for w in token.split("/")]
        except ValueError:
            raise ValueError(f"malformed probability row {token!r} in {spec!r}") from None
        if any(w < 0.0 for w in weights) or sum(weights) <= 0.0:
            raise ValueError(f"row {token!r} must have non-negative weights with positive sum")
        rows.append(weights)
    return rows


class DiscreteConditional(DecisionTreeFactor):
    """
    P(frontals | parents).

    Stored as a DecisionTreeFactor over frontals ∪ parents whose entries
    sum to one over the frontal assignments for every parent assignment.
    """

    def __init__(
        self,
        frontals: Sequence[DiscreteKey],
        parents: Sequence[DiscreteKey],
        table: Union[DecisionTree, Sequence[float], np.ndarray],
        merge: bool = True,
    ):
        self._frontals = tuple(frontals)
        self._parents = tuple(parents)
        overlap = {dk.key for dk in self._frontals} & {dk.key for dk in self._parents}
        if overlap:
            raise ValueError(f"keys {[key_name(k) for k in overlap]} are both frontal and parent")
        if not isinstance(table, DecisionTree):
            table = DecisionTree.from_values(self._parents + self._frontals, list(np.ravel(table)), merge=merge)
        super().__init__(self._parents + self._frontals, table, merge=merge)

    @classmethod
    def from_spec(
        cls,
        frontal: DiscreteKey,
        parents: Sequence[DiscreteKey],
        spec: str,
    ) -> "DiscreteConditional":
        """
        Parse a row specification such as "1/2 3/2".

        One whitespace-separated row per parent assignment (in
        cartesian_product(parents) order), each row listing '/'-separated
        unnormalized weights for the frontal values.
        """
        parents = tuple(parents)
        rows = _parse_rows(spec)
        n_rows = 1
        for dk in parents:
            n_rows *= dk.cardinality
        if len(rows) != n_rows:
            raise ValueError(f"expected {n_rows} rows for parents {parents}, got {len(rows)} in {spec!r}")
        table: List[float] = []
        for weights in rows:
            if len(weights) != frontal.cardinality:
                raise ValueError(f"row {weights} does not match cardinality of {frontal!r}")
            total = sum(weights)
            table.extend(w / total for w in weights)
        return cls((frontal,), parents, table)

    @classmethod
    def from_joint_section(cls, section: Section, frontals: Sequence[int]) -> "DiscreteConditional":
        """Wrap a normalized joint/marginal quotient as a conditional."""
        cards = {k: section.data.shape[i] for i, k in enumerate(section.domain)}
        fset = set(frontals)
        fkeys = tuple(DiscreteKey(k, cards[k]) for k in section.domain if k in fset)
        pkeys = tuple(DiscreteKey(k, cards[k]) for k in section.domain if k not in fset)
        tree = DecisionTree.from_values(
            tuple(DiscreteKey(k, cards[k]) for k in section.domain), list(section.data.ravel())
        )
        return cls(fkeys, pkeys, tree)

    @property
    def frontals(self) -> Tuple[DiscreteKey, ...]:
        return self._frontals

    @property
    def parents(self) -> Tuple[DiscreteKey, ...]:
        return self._parents

    def frontal_keys(self) -> Tuple[int, ...]:
        return tuple(dk.key for dk in self._frontals)

    def parent_keys(self) -> Tuple[int, ...]:
        return tuple(dk.key for dk in self._parents)

    def argmax(self, parent_assignment: Optional[Mapping[int, int]] = None) -> Assignment:
        """Most probable frontal assignment given the parents."""
        base = dict(parent_assignment or {})
        missing = [dk.key for dk in self._parents if dk.key not in base]
        if missing:
            raise KeyError(f"parent assignment is missing {[key_name(k) for k in missing]}")
        best: Optional[Assignment] = None
        best_value = -1.0
        for frontal in cartesian_product(self._frontals):
            value = self({**base, **frontal})
            if value > best_value:
                best, best_value = frontal, value
        return dict(best)

    def as_factor(self) -> "DiscreteConditional":
        return self

    def __repr__(self) -> str:
        f = ", ".join(key_name(k) for k in self.frontal_keys())
        p = ", ".join(key_name(k) for k in self.parent_keys())
        return f"{type(self).__name__}(P({f} | {p}))" if p else f"{type(self).__name__}(P({f}))"


class DiscretePrior(DiscreteConditional):
    """Marginal P(key) from a single row such as "1/1"."""

    def __init__(self, key: DiscreteKey, spec: Union[str, Sequence[float]]):
        if isinstance(spec, str):
            rows = _parse_rows(spec)
            if len(rows) != 1:
                raise ValueError(f"prior spec must have exactly one row, got {spec!r}")
            weights = rows[0]
        else:
            weights = [float(w) for w in spec]
        if len(weights) != key.cardinality:
            raise ValueError(f"prior {weights} does not match cardinality of {key!r}")
        total = sum(weights)
        super().__init__((key,), (), [w / total for w in weights])

    def __repr__(self) -> str:
        return f"DiscretePrior(P({key_name(self.frontal_keys()[0])}))"


def describe_table(factor: DecisionTreeFactor) -> List[str]:
    """One line per assignment, used by the CLI printout."""
    return [f"{format_assignment(a)}: {factor(a):.6g}" for a in cartesian_product(factor.discrete_keys)]
