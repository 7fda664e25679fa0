"""
hybridfg/hybrid/mixture.py

MixtureFactor: a nonlinear factor whose measurement model is selected by
discrete modes. Linearizing every component at the same point yields a
GaussianMixtureFactor.
"""

from __future__ import annotations

from typing import Mapping, Sequence, Tuple, Union

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values
from hybridfg.discrete.assignment import DiscreteKey, merge_discrete_keys
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.hybrid.gaussian_mixture import GaussianMixtureFactor
from hybridfg.linear.jacobian import JacobianFactor
from hybridfg.nonlinear.factors import NonlinearFactor


class MixtureFactor:
    """
    Args:
        keys: Continuous keys shared by every component
        discrete_keys: Mode keys
        components: NonlinearFactors in cartesian_product(discrete_keys)
            order, or a DecisionTree of them
        normalized: When True each linearized component also carries its
            noise model's log-normalization constant, so components with
            different noise are compared as densities.
    """

    def __init__(
        self,
        keys: Sequence[int],
        discrete_keys: Sequence[DiscreteKey],
        components: Union[DecisionTree, Sequence[NonlinearFactor]],
        normalized: bool = False,
    ):
        self._keys = tuple(keys)
        self._discrete_keys = merge_discrete_keys(discrete_keys)
        if isinstance(components, DecisionTree):
            self._components = components
        else:
            self._components = DecisionTree.from_values(tuple(discrete_keys), list(components))
        for c in self._components.leaves():
            if tuple(c.keys()) != self._keys:
                raise ValueError(
                    f"component {c!r} keys differ from mixture keys {[key_name(k) for k in self._keys]}"
                )
        self.normalized = normalized

    @property
    def discrete_keys(self) -> Tuple[DiscreteKey, ...]:
        return self._discrete_keys

    @property
    def components(self) -> DecisionTree:
        return self._components

    def continuous_keys(self) -> Tuple[int, ...]:
        return self._keys

    def mode_keys(self) -> Tuple[int, ...]:
        return tuple(dk.key for dk in self._discrete_keys)

    def keys(self) -> Tuple[int, ...]:
        return self._keys + self.mode_keys()

    def component_at(self, assignment: Mapping[int, int]) -> NonlinearFactor:
        return self._components(assignment)

    def error(self, values: Values, assignment: Mapping[int, int]) -> float:
        component = self.component_at(assignment)
        err = component.error(values)
        if self.normalized:
            err -= component.noise_model.log_normalization_constant()
        return err

    def _linearize_component(self, component: NonlinearFactor, values: Values) -> JacobianFactor:
        factor = component.linearize(values)
        if self.normalized:
            factor = factor.with_constant(-component.noise_model.log_normalization_constant())
        return factor

    def linearize(self, values: Values) -> GaussianMixtureFactor:
        tree = self._components.map(lambda c: self._linearize_component(c, values))
        return GaussianMixtureFactor(self._keys, self._discrete_keys, tree)

    def __repr__(self) -> str:
        cont = ", ".join(key_name(k) for k in self._keys)
        modes = ", ".join(key_name(k) for k in self.mode_keys())
        return f"MixtureFactor([{cont}; {modes}], normalized={self.normalized})"
