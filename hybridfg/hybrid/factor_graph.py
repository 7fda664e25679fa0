"""
hybridfg/hybrid/factor_graph.py

HybridFactorGraph: a container routing each factor into one of four
sub-collections by kind (nonlinear, discrete, gaussian, hybrid).

Conditionals are stored through their factor adapters:
  GaussianConditional -> JacobianFactor
  GaussianMixture     -> GaussianMixtureFactor
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values
from hybridfg.discrete.assignment import Assignment, DiscreteKey
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.discrete.factor import DecisionTreeFactor
from hybridfg.errors import UnsupportedFactorKindError
from hybridfg.hybrid.gaussian_mixture import GaussianMixture, GaussianMixtureFactor
from hybridfg.hybrid.kinds import FactorKind, continuous_keys_of, discrete_keys_of, factor_kind
from hybridfg.hybrid.mixture import MixtureFactor
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.graph import GaussianFactorGraph
from hybridfg.topology.structure import FactorGraphStructure


class HybridFactorGraph:
    """Factors of all four kinds, kept in insertion order per kind."""

    def __init__(self, factors: Optional[Iterable[Any]] = None):
        self._nonlinear: List[Any] = []
        self._discrete: List[Any] = []
        self._gaussian: List[Any] = []
        self._hybrid: List[Any] = []
        if factors is not None:
            self.push_back(factors)

    def _bucket(self, kind: FactorKind) -> List[Any]:
        if kind is FactorKind.NONLINEAR:
            return self._nonlinear
        if kind is FactorKind.DISCRETE:
            return self._discrete
        if kind is FactorKind.GAUSSIAN:
            return self._gaussian
        return self._hybrid

    # --- Insertion ---

    def push_back(self, factor: Any) -> None:
        """Append one factor, or every factor of an iterable / graph."""
        if isinstance(factor, (HybridFactorGraph, GaussianFactorGraph, list, tuple)):
            for f in factor:
                self.push_back(f)
            return
        kind = factor_kind(factor)
        if isinstance(factor, (GaussianConditional, GaussianMixture)):
            factor = factor.as_factor()
        self._bucket(kind).append(factor)

    def _push_typed(self, factor: Any, expected: FactorKind) -> None:
        kind = factor_kind(factor)
        if kind is not expected:
            raise UnsupportedFactorKindError(
                f"expected a {expected.value} factor, got {kind.value} {type(factor).__name__}"
            )
        self.push_back(factor)

    def push_nonlinear(self, factor: Any) -> None:
        self._push_typed(factor, FactorKind.NONLINEAR)

    def push_discrete(self, factor: Any) -> None:
        self._push_typed(factor, FactorKind.DISCRETE)

    def push_gaussian(self, factor: Any) -> None:
        self._push_typed(factor, FactorKind.GAUSSIAN)

    def push_hybrid(self, factor: Any) -> None:
        self._push_typed(factor, FactorKind.HYBRID)

    # --- Views ---

    @property
    def nonlinear_graph(self) -> Tuple[Any, ...]:
        return tuple(self._nonlinear)

    @property
    def discrete_graph(self) -> Tuple[Any, ...]:
        return tuple(self._discrete)

    @property
    def gaussian_graph(self) -> Tuple[Any, ...]:
        return tuple(self._gaussian)

    @property
    def hybrid_graph(self) -> Tuple[Any, ...]:
        return tuple(self._hybrid)

    def size(self) -> int:
        return len(self._nonlinear) + len(self._discrete) + len(self._gaussian) + len(self._hybrid)

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[Any]:
        yield from self._nonlinear
        yield from self._discrete
        yield from self._gaussian
        yield from self._hybrid

    def empty(self) -> bool:
        return self.size() == 0

    def clear(self) -> None:
        self._nonlinear.clear()
        self._discrete.clear()
        self._gaussian.clear()
        self._hybrid.clear()

    def copy(self) -> "HybridFactorGraph":
        """Shallow copy; factors are immutable and shared."""
        return HybridFactorGraph(self)

    def keys(self) -> Tuple[int, ...]:
        """All keys, ascending."""
        return tuple(sorted({k for f in self for k in f.keys()}))

    def continuous_keys(self) -> Tuple[int, ...]:
        return tuple(sorted({k for f in self for k in continuous_keys_of(f)}))

    def discrete_keys(self) -> Tuple[DiscreteKey, ...]:
        """Mode keys of the discrete and hybrid factors, ascending by key."""
        seen: Dict[int, DiscreteKey] = {}
        for f in self:
            for dk in discrete_keys_of(f):
                prev = seen.setdefault(dk.key, dk)
                if prev.cardinality != dk.cardinality:
                    raise ValueError(f"conflicting cardinalities for {key_name(dk.key)}")
        return tuple(seen[k] for k in sorted(seen))

    def connected_components(self) -> List[Tuple[int, ...]]:
        """Groups of keys (continuous and discrete) linked through factors."""
        return FactorGraphStructure.from_factors(self).key_components()

    # --- Linearization ---

    def linearize(self, values: Values) -> "HybridFactorGraph":
        """
        New graph with nonlinear factors and MixtureFactors linearized at
        `values`; every other factor is shared unchanged.
        """
        out = HybridFactorGraph()
        for f in self._nonlinear:
            out._gaussian.append(f.linearize(values))
        out._discrete.extend(self._discrete)
        out._gaussian.extend(self._gaussian)
        for f in self._hybrid:
            out._hybrid.append(f.linearize(values) if isinstance(f, MixtureFactor) else f)
        return out

    # --- Discrete-branch views ---

    def _check_linear(self, operation: str, allow_discrete: bool = False) -> None:
        if self._nonlinear:
            raise UnsupportedFactorKindError(f"{operation} requires a linearized graph (found nonlinear factors)")
        if any(isinstance(f, MixtureFactor) for f in self._hybrid):
            raise UnsupportedFactorKindError(f"{operation} requires linearized mixtures (found MixtureFactor)")
        if self._discrete and not allow_discrete:
            raise UnsupportedFactorKindError(f"{operation} cannot handle discrete factors")

    def sum(self) -> Callable[[Mapping[int, int]], GaussianFactorGraph]:
        """
        Returns assignment -> GaussianFactorGraph holding every linear factor
        followed by the selected component of every hybrid factor.
        """
        self._check_linear("sum()")
        gaussian = tuple(self._gaussian)
        hybrid: Tuple[GaussianMixtureFactor, ...] = tuple(self._hybrid)

        def select(assignment: Mapping[int, int]) -> GaussianFactorGraph:
            graph = GaussianFactorGraph(gaussian)
            for h in hybrid:
                graph.push_back(h(assignment))
            return graph

        return select

    def to_decision_tree_factor(self) -> DecisionTreeFactor:
        """
        Factor over the hybrid mode keys whose value at m is exp(−error(x*))
        of the selected linear graph at its own optimum x*.
        """
        select = self.sum()
        dkeys = self.discrete_keys()

        def prob_at_optimum(assignment: Assignment) -> float:
            graph = select(assignment)
            return graph.prob_prime(graph.optimize())

        return DecisionTreeFactor(dkeys, DecisionTree.from_function(dkeys, prob_at_optimum))

    # --- Evaluation ---

    def error(self, values: Values, assignment: Mapping[int, int]) -> float:
        """Total error of a linear hybrid graph, including discrete −log terms."""
        self._check_linear("error()", allow_discrete=True)
        total = sum(f.error(values) for f in self._gaussian)
        total += sum(f.error(values, assignment) for f in self._hybrid)
        total += sum(f.error(assignment) for f in self._discrete)
        return float(total)

    def prob_prime(self, values: Values, assignment: Mapping[int, int]) -> float:
        return float(np.exp(-self.error(values, assignment)))

    # --- Elimination ---

    def eliminate_partial_sequential(self, ordering, config=None):
        from hybridfg.hybrid.elimination import eliminate_partial_sequential
        return eliminate_partial_sequential(self, ordering, config)

    def eliminate_sequential(self, ordering=None, config=None):
        from hybridfg.hybrid.elimination import eliminate_sequential
        return eliminate_sequential(self, ordering, config)

    def __repr__(self) -> str:
        return (
            f"HybridFactorGraph(nonlinear={len(self._nonlinear)}, discrete={len(self._discrete)}, "
            f"gaussian={len(self._gaussian)}, hybrid={len(self._hybrid)})"
        )
