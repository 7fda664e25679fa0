"""
hybridfg/hybrid/gaussian_mixture.py

Linear hybrid factors and conditionals.

GaussianMixtureFactor: one JacobianFactor per discrete assignment, stored in
    a DecisionTree, all over the same continuous keys.
GaussianMixture: one GaussianConditional per discrete assignment with shared
    frontals and continuous parents; discrete keys act as parents.
"""

from __future__ import annotations

from typing import Hashable, Mapping, Sequence, Tuple, Union

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values
from hybridfg.discrete.assignment import DiscreteKey, merge_discrete_keys
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.jacobian import JacobianFactor


def _as_tree(discrete_keys: Sequence[DiscreteKey], items) -> DecisionTree:
    if isinstance(items, DecisionTree):
        return items
    return DecisionTree.from_values(tuple(discrete_keys), list(items))


class GaussianMixtureFactor:
    """
    Args:
        keys: Continuous keys shared by every component
        discrete_keys: Mode keys selecting the component
        factors: DecisionTree[JacobianFactor] or a list in
            cartesian_product(discrete_keys) order
    """

    def __init__(
        self,
        keys: Sequence[int],
        discrete_keys: Sequence[DiscreteKey],
        factors: Union[DecisionTree, Sequence[JacobianFactor]],
    ):
        self._keys = tuple(keys)
        self._discrete_keys = merge_discrete_keys(discrete_keys)
        self._factors = _as_tree(discrete_keys, factors)
        for f in self._factors.leaves():
            if not set(f.keys()) <= set(self._keys):
                raise ValueError(
                    f"component keys {[key_name(k) for k in f.keys()]} not within {[key_name(k) for k in self._keys]}"
                )

    @property
    def discrete_keys(self) -> Tuple[DiscreteKey, ...]:
        return self._discrete_keys

    @property
    def factors(self) -> DecisionTree:
        return self._factors

    def continuous_keys(self) -> Tuple[int, ...]:
        return self._keys

    def mode_keys(self) -> Tuple[int, ...]:
        return tuple(dk.key for dk in self._discrete_keys)

    def keys(self) -> Tuple[int, ...]:
        return self._keys + self.mode_keys()

    def __call__(self, assignment: Mapping[int, int]) -> JacobianFactor:
        return self._factors(assignment)

    def error(self, values: Values, assignment: Mapping[int, int]) -> float:
        return self(assignment).error(values)

    def structural_key(self) -> Hashable:
        return ("mixture_factor", self._keys, tuple(f.structural_key() for _, f in self._factors.items()))

    def __repr__(self) -> str:
        cont = ", ".join(key_name(k) for k in self._keys)
        modes = ", ".join(key_name(k) for k in self.mode_keys())
        return f"GaussianMixtureFactor([{cont}; {modes}], components={self._factors.nr_leaves()})"


class GaussianMixture:
    """
    p(x_F | x_P, m) as a decision tree of GaussianConditionals.

    parents = continuous parents followed by the discrete parent keys
    (largest key first).
    """

    def __init__(
        self,
        frontals: Sequence[int],
        continuous_parents: Sequence[int],
        discrete_parents: Sequence[DiscreteKey],
        conditionals: Union[DecisionTree, Sequence[GaussianConditional]],
    ):
        self._frontals = tuple(frontals)
        self._continuous_parents = tuple(continuous_parents)
        self._discrete_parents = merge_discrete_keys(discrete_parents)
        self._conditionals = _as_tree(discrete_parents, conditionals)
        for c in self._conditionals.leaves():
            if c.frontals != self._frontals:
                raise ValueError(f"component {c!r} does not have frontals {[key_name(k) for k in self._frontals]}")

    @property
    def frontals(self) -> Tuple[int, ...]:
        return self._frontals

    @property
    def continuous_parents(self) -> Tuple[int, ...]:
        return self._continuous_parents

    @property
    def discrete_parents(self) -> Tuple[DiscreteKey, ...]:
        return self._discrete_parents

    @property
    def discrete_keys(self) -> Tuple[DiscreteKey, ...]:
        return self._discrete_parents

    @property
    def parents(self) -> Tuple[int, ...]:
        return self._continuous_parents + tuple(dk.key for dk in self._discrete_parents)

    @property
    def conditionals(self) -> DecisionTree:
        return self._conditionals

    def frontal_keys(self) -> Tuple[int, ...]:
        return self._frontals

    def parent_keys(self) -> Tuple[int, ...]:
        return self.parents

    def keys(self) -> Tuple[int, ...]:
        return self._frontals + self.parents

    def nr_frontals(self) -> int:
        return len(self._frontals)

    def nr_parents(self) -> int:
        return len(self.parents)

    def __call__(self, assignment: Mapping[int, int]) -> GaussianConditional:
        return self._conditionals(assignment)

    def as_factor(self) -> GaussianMixtureFactor:
        """Every component through GaussianConditional.as_factor()."""
        return GaussianMixtureFactor(
            self._frontals + self._continuous_parents,
            self._discrete_parents,
            self._conditionals.map(lambda c: c.as_factor()),
        )

    def equals(self, other: "GaussianMixture", tol: float = 1e-9) -> bool:
        if self.frontals != other.frontals or self.parents != other.parents:
            return False
        return self._conditionals.equals(other._conditionals, lambda a, b: a.equals(b, tol))

    def __repr__(self) -> str:
        f = ", ".join(key_name(k) for k in self._frontals)
        p = ", ".join(key_name(k) for k in self.parents)
        return f"GaussianMixture(p({f} | {p}))"
