"""
Hybrid module: mixture factors, the typed factor container, hybrid
elimination, Bayes nets and incremental updates.
"""

from hybridfg.hybrid.gaussian_mixture import GaussianMixture, GaussianMixtureFactor
from hybridfg.hybrid.mixture import MixtureFactor
from hybridfg.hybrid.kinds import FactorKind, continuous_keys_of, discrete_keys_of, factor_kind
from hybridfg.hybrid.factor_graph import HybridFactorGraph
from hybridfg.hybrid.bayes_net import HybridBayesNet
from hybridfg.hybrid.elimination import (
    default_ordering,
    eliminate_hybrid,
    eliminate_partial_sequential,
    eliminate_sequential,
)
from hybridfg.hybrid.incremental import InferenceState, incremental_update

__all__ = [
    "GaussianMixture",
    "GaussianMixtureFactor",
    "MixtureFactor",
    "FactorKind",
    "continuous_keys_of",
    "discrete_keys_of",
    "factor_kind",
    "HybridFactorGraph",
    "HybridBayesNet",
    "default_ordering",
    "eliminate_hybrid",
    "eliminate_partial_sequential",
    "eliminate_sequential",
    "InferenceState",
    "incremental_update",
]
