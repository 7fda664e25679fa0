"""
hybridfg/linear/graph.py

GaussianFactorGraph: a list of JacobianFactors (one discrete branch).
GaussianBayesNet: conditionals in elimination order, solved by back substitution.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from hybridfg.core.values import Values
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.elimination import eliminate_gaussian
from hybridfg.linear.jacobian import JacobianFactor, collect_dims
from hybridfg.utils.logging import get_logger

logger = get_logger(__name__)


class GaussianBayesNet:
    """Gaussian conditionals; parents of the i-th are frontals of later ones."""

    def __init__(self, conditionals: Optional[Iterable[GaussianConditional]] = None):
        self._conditionals: List[GaussianConditional] = list(conditionals or [])

    def push_back(self, conditional: GaussianConditional) -> None:
        self._conditionals.append(conditional)

    def at(self, i: int) -> GaussianConditional:
        return self._conditionals[i]

    def __iter__(self) -> Iterator[GaussianConditional]:
        return iter(self._conditionals)

    def __len__(self) -> int:
        return len(self._conditionals)

    def size(self) -> int:
        return len(self._conditionals)

    def optimize(self) -> Values:
        """Back substitution from the last conditional to the first."""
        solution = Values()
        for conditional in reversed(self._conditionals):
            for k, v in conditional.solve(solution).items():
                solution.insert(k, v)
        return solution

    def error(self, values: Values) -> float:
        return sum(c.error(values) for c in self._conditionals)

    def log_density(self, values: Values) -> float:
        return sum(c.log_density(values) for c in self._conditionals)

    def __repr__(self) -> str:
        return f"GaussianBayesNet({self._conditionals})"


class GaussianFactorGraph:
    """Linear factor graph for a single discrete assignment."""

    def __init__(self, factors: Optional[Iterable[JacobianFactor]] = None):
        self._factors: List[JacobianFactor] = []
        if factors is not None:
            for f in factors:
                self.push_back(f)

    def push_back(self, factor: Union[JacobianFactor, GaussianConditional]) -> None:
        if isinstance(factor, GaussianConditional):
            factor = factor.as_factor()
        if not isinstance(factor, JacobianFactor):
            raise TypeError(f"GaussianFactorGraph only holds JacobianFactors, got {type(factor).__name__}")
        self._factors.append(factor)

    def __iter__(self) -> Iterator[JacobianFactor]:
        return iter(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __getitem__(self, i: int) -> JacobianFactor:
        return self._factors[i]

    def size(self) -> int:
        return len(self._factors)

    def keys(self) -> Tuple[int, ...]:
        """Continuous keys, ascending."""
        return tuple(sorted({k for f in self._factors for k in f.keys()}))

    def error(self, values: Values) -> float:
        return float(sum(f.error(values) for f in self._factors))

    def prob_prime(self, values: Values) -> float:
        """Unnormalized probability exp(−error)."""
        return float(np.exp(-self.error(values)))

    def eliminate_sequential(
        self,
        ordering: Optional[Sequence[int]] = None,
        rank_tolerance: float = 1e-10,
    ) -> GaussianBayesNet:
        """
        Eliminate one key at a time (default: ascending key order).

        Constant factors left over at the end are dropped; they do not
        affect the solution.
        """
        if ordering is None:
            ordering = self.keys()
        collect_dims(self._factors)
        remaining = list(self._factors)
        bayes_net = GaussianBayesNet()
        for key in ordering:
            involved = [f for f in remaining if key in f.keys()]
            remaining = [f for f in remaining if key not in f.keys()]
            conditional, factor = eliminate_gaussian(involved, (key,), rank_tolerance)
            bayes_net.push_back(conditional)
            if not factor.is_constant():
                remaining.append(factor)
        logger.debug("eliminated %d keys, %d factors left", len(bayes_net), len(remaining))
        return bayes_net

    def optimize(self, ordering: Optional[Sequence[int]] = None) -> Values:
        """Least-squares solution x* = argmin error(x)."""
        return self.eliminate_sequential(ordering).optimize()

    def __repr__(self) -> str:
        return f"GaussianFactorGraph({self._factors})"
