"""
hybridfg/hybrid/kinds.py

Closed classification of factors into the four kinds a hybrid graph stores.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Tuple

from hybridfg.discrete.assignment import DiscreteKey
from hybridfg.discrete.factor import DecisionTreeFactor
from hybridfg.errors import UnsupportedFactorKindError
from hybridfg.hybrid.gaussian_mixture import GaussianMixture, GaussianMixtureFactor
from hybridfg.hybrid.mixture import MixtureFactor
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.jacobian import JacobianFactor
from hybridfg.nonlinear.factors import NonlinearFactor


class FactorKind(Enum):
    NONLINEAR = "nonlinear"
    GAUSSIAN = "gaussian"
    DISCRETE = "discrete"
    HYBRID = "hybrid"


def factor_kind(factor: Any) -> FactorKind:
    """Kind of a factor; raises UnsupportedFactorKindError for anything else."""
    if isinstance(factor, NonlinearFactor):
        return FactorKind.NONLINEAR
    if isinstance(factor, (JacobianFactor, GaussianConditional)):
        return FactorKind.GAUSSIAN
    if isinstance(factor, DecisionTreeFactor):
        return FactorKind.DISCRETE
    if isinstance(factor, (MixtureFactor, GaussianMixtureFactor, GaussianMixture)):
        return FactorKind.HYBRID
    raise UnsupportedFactorKindError(f"unsupported factor type {type(factor).__name__}")


def continuous_keys_of(factor: Any) -> Tuple[int, ...]:
    kind = factor_kind(factor)
    if kind is FactorKind.DISCRETE:
        return ()
    if kind is FactorKind.HYBRID:
        if isinstance(factor, GaussianMixture):
            return factor.frontals + factor.continuous_parents
        return factor.continuous_keys()
    return tuple(factor.keys())


def discrete_keys_of(factor: Any) -> Tuple[DiscreteKey, ...]:
    kind = factor_kind(factor)
    if kind in (FactorKind.DISCRETE, FactorKind.HYBRID):
        return tuple(factor.discrete_keys)
    return ()
