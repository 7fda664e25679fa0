"""
hybridfg/api/marginals.py

Mode queries on the discrete factors left after eliminating the continuous
variables.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from hybridfg.algebra.section import Section
from hybridfg.algebra.semiring import max_product_semiring, prob_semiring
from hybridfg.core.values import Values
from hybridfg.discrete.assignment import Assignment
from hybridfg.discrete.factor import DecisionTreeFactor
from hybridfg.errors import UnsupportedFactorKindError
from hybridfg.hybrid.bayes_net import HybridBayesNet


def _discrete_factors(factors: Iterable[Any]) -> List[DecisionTreeFactor]:
    out = []
    for f in factors:
        if not isinstance(f, DecisionTreeFactor):
            raise UnsupportedFactorKindError(
                f"mode queries need discrete factors only, got {type(f).__name__}"
            )
        out.append(f)
    return out


def _joint(factors: Sequence[DecisionTreeFactor], semiring) -> Section:
    joint = Section((), np.array(semiring.one), semiring)
    for f in factors:
        joint = joint.star(f.to_section(semiring))
    return joint


def discrete_posterior(graph: Iterable[Any]) -> Section:
    """
    Normalized joint table over every discrete key of a discrete-only graph.

    Args:
        graph: HybridFactorGraph or iterable of DecisionTreeFactors

    Returns:
        Section with axes in descending key order
    """
    joint = _joint(_discrete_factors(graph), prob_semiring)
    if joint.data.ndim == 0:
        return joint
    return joint.normalize(axis=tuple(range(joint.data.ndim)))


def mode_marginals(graph: Iterable[Any], keys: Optional[Sequence[int]] = None) -> Dict[int, np.ndarray]:
    """Per-mode marginal probabilities (sum-product)."""
    posterior = discrete_posterior(graph)
    if keys is None:
        keys = sorted(posterior.domain)
    return {k: np.asarray(posterior.restrict((k,)).data) for k in keys}


def most_probable_modes(graph: Iterable[Any]) -> Assignment:
    """Jointly most probable assignment (max-product)."""
    joint = _joint(_discrete_factors(graph), max_product_semiring)
    if joint.data.ndim == 0:
        return {}
    index = np.unravel_index(int(np.argmax(joint.data)), joint.data.shape)
    return {k: int(v) for k, v in zip(joint.domain, index)}


def max_probability(graph: Iterable[Any]) -> float:
    """Value of the best assignment, ⊕ = max over the joint."""
    joint = _joint(_discrete_factors(graph), max_product_semiring)
    return float(joint.restrict(()).data)


def hybrid_map_estimate(
    bayes_net: HybridBayesNet,
    residual_graph: Iterable[Any],
) -> Tuple[Assignment, Values]:
    """
    MAP modes from the discrete conditionals of the net and the residual
    factors, then the continuous estimate for those modes.
    """
    factors = list(bayes_net.discrete_conditionals()) + list(residual_graph)
    modes = most_probable_modes(factors)
    return modes, bayes_net.optimize(modes)
