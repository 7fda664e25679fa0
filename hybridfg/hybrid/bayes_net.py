"""
hybridfg/hybrid/bayes_net.py

HybridBayesNet: conditionals produced by elimination, in elimination order.

Holds GaussianMixture, GaussianConditional and DiscreteConditional. On
insertion a conditional's frontals and parents must not be frontals of an
earlier conditional, so the net is always a valid back-substitution order
read from the end.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values
from hybridfg.discrete.factor import DiscreteConditional
from hybridfg.hybrid.gaussian_mixture import GaussianMixture
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.graph import GaussianBayesNet

Conditional = Any  # GaussianMixture | GaussianConditional | DiscreteConditional


def frontal_keys_of(conditional: Conditional) -> Tuple[int, ...]:
    if isinstance(conditional, GaussianConditional):
        return conditional.frontals
    return conditional.frontal_keys()


def parent_keys_of(conditional: Conditional) -> Tuple[int, ...]:
    if isinstance(conditional, GaussianConditional):
        return conditional.parents
    return conditional.parent_keys()


class HybridBayesNet:
    """Ordered hybrid conditionals."""

    def __init__(self, conditionals: Optional[Iterable[Conditional]] = None):
        self._conditionals: List[Conditional] = []
        self._frontals: Set[int] = set()
        for c in conditionals or ():
            self.push_back(c)

    def push_back(self, conditional: Conditional) -> None:
        if not isinstance(conditional, (GaussianMixture, GaussianConditional, DiscreteConditional)):
            raise TypeError(f"not a conditional: {type(conditional).__name__}")
        frontals = frontal_keys_of(conditional)
        clash = [k for k in frontals + parent_keys_of(conditional) if k in self._frontals]
        if clash:
            raise ValueError(
                f"{conditional!r} refers to {[key_name(k) for k in clash]}, "
                f"already frontal in an earlier conditional"
            )
        self._conditionals.append(conditional)
        self._frontals.update(frontals)

    def at(self, i: int) -> Conditional:
        return self._conditionals[i]

    def __getitem__(self, i: int) -> Conditional:
        return self._conditionals[i]

    def __iter__(self) -> Iterator[Conditional]:
        return iter(self._conditionals)

    def __len__(self) -> int:
        return len(self._conditionals)

    def size(self) -> int:
        return len(self._conditionals)

    def frontal_keys(self) -> Tuple[int, ...]:
        return tuple(k for c in self._conditionals for k in frontal_keys_of(c))

    def discrete_conditionals(self) -> List[DiscreteConditional]:
        return [c for c in self._conditionals if isinstance(c, DiscreteConditional)]

    def choose(self, assignment: Mapping[int, int]) -> GaussianBayesNet:
        """The continuous part of the net for one discrete assignment."""
        chosen = GaussianBayesNet()
        for c in self._conditionals:
            if isinstance(c, GaussianMixture):
                chosen.push_back(c(assignment))
            elif isinstance(c, GaussianConditional):
                chosen.push_back(c)
        return chosen

    def optimize(self, assignment: Mapping[int, int]) -> Values:
        """Continuous MAP given the modes, by back substitution."""
        return self.choose(assignment).optimize()

    def __repr__(self) -> str:
        return "HybridBayesNet([\n" + "".join(f"  {c!r}\n" for c in self._conditionals) + "])"
