"""
hybridfg/models/switching.py

K-step switching system: a 1-D state chain whose motion model between
x_k and x_{k+1} is chosen by a binary mode m_k (0 = still, 1 = moving).

    prior        x1 ~ N(0, prior_sigma²)
    motion       x_{k+1} − x_k ~ N(m_k, between_sigma²),   k = 1..K−1
    measurement  x_k ~ N(k − 1, 0.1²),                    k = 1..K
    mode chain   P(m1) = 1/1,  P(m_{k+1} | m_k) = "1/2 3/2"
"""

from __future__ import annotations

from typing import List

from hybridfg.core.keys import M, X
from hybridfg.core.values import Values
from hybridfg.discrete.assignment import DiscreteKey
from hybridfg.discrete.factor import DiscreteConditional, DiscretePrior
from hybridfg.hybrid.factor_graph import HybridFactorGraph
from hybridfg.hybrid.mixture import MixtureFactor
from hybridfg.linear.noise import Isotropic
from hybridfg.nonlinear.factors import BetweenFactor, PriorFactor

MEASUREMENT_SIGMA = 0.1


def motion_models(k: int, sigma: float = 1.0) -> List[BetweenFactor]:
    """[still, moving] motion models between x_k and x_{k+1}."""
    noise = Isotropic.sigma(1, sigma)
    still = BetweenFactor(X(k), X(k + 1), 0.0, noise)
    moving = BetweenFactor(X(k), X(k + 1), 1.0, noise)
    return [still, moving]


class Switching:
    """
    Builds the nonlinear hybrid graph, its linearization point and the
    linearized graph for K time steps.

    Attributes:
        K: Number of time steps
        modes: DiscreteKey per step; modes[0] is unused so modes[k] is m_k
        nonlinear_factor_graph: Factors before linearization
        linearization_point: x_k = k
        linearized_factor_graph: nonlinear_factor_graph linearized at that point
    """

    def __init__(self, K: int, between_sigma: float = 1.0, prior_sigma: float = 0.1):
        if K < 1:
            raise ValueError(f"K must be >= 1, got {K}")
        self.K = K
        self.modes = [DiscreteKey(M(k), 2) for k in range(K + 1)]

        graph = HybridFactorGraph()
        graph.push_nonlinear(PriorFactor(X(1), 0.0, Isotropic.sigma(1, prior_sigma)))

        for k in range(1, K):
            graph.push_hybrid(
                MixtureFactor((X(k), X(k + 1)), (self.modes[k],), motion_models(k, between_sigma))
            )

        measurement_noise = Isotropic.sigma(1, MEASUREMENT_SIGMA)
        for k in range(1, K + 1):
            graph.push_nonlinear(PriorFactor(X(k), float(k - 1), measurement_noise))

        self.add_mode_chain(graph)
        self.nonlinear_factor_graph = graph

        self.linearization_point = Values()
        for k in range(1, K + 1):
            self.linearization_point.insert(X(k), float(k))

        self.linearized_factor_graph = graph.linearize(self.linearization_point)

    def add_mode_chain(self, graph: HybridFactorGraph) -> None:
        """P(m1) and P(m_{k+1} | m_k) for the modes used by motion models."""
        if self.K < 2:
            return
        graph.push_discrete(DiscretePrior(self.modes[1], "1/1"))
        for k in range(1, self.K - 1):
            graph.push_discrete(DiscreteConditional.from_spec(self.modes[k + 1], (self.modes[k],), "1/2 3/2"))
