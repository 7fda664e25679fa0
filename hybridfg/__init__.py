"""
HybridFG: exact elimination for hybrid factor graphs

Inference on factor graphs mixing continuous states with discrete modes:
linearize, eliminate variables in a given order into a hybrid Bayes net, and
query the resulting mode distribution, in batch or incrementally.

Key components:
- core: symbol keys and vector values
- algebra: semirings and dense discrete sections
- discrete: assignments, decision trees, discrete factors
- linear: noise models, Jacobian factors, Gaussian conditionals
- nonlinear: prior / between / custom measurement factors
- hybrid: mixtures, the hybrid factor graph, elimination, incremental updates
- topology: orderings and elimination trees
- api: mode marginals and MAP queries
- models: the switching-system example
"""

__version__ = "1.0.0"
__author__ = "HybridFG Team"

from hybridfg.config import DEFAULT_CONFIG, EliminationConfig
from hybridfg.errors import (
    DisconnectedVariableError,
    HybridFGError,
    LinearizationError,
    SingularSystemError,
    UnsupportedFactorKindError,
)
from hybridfg.core.keys import M, X, key_name, symbol
from hybridfg.core.values import Values
from hybridfg.algebra.semiring import max_product_semiring, prob_semiring
from hybridfg.algebra.section import Section
from hybridfg.discrete.assignment import DiscreteKey, cartesian_product
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.discrete.factor import DecisionTreeFactor, DiscreteConditional, DiscretePrior
from hybridfg.linear.noise import Diagonal, Isotropic, Unit
from hybridfg.linear.jacobian import JacobianFactor
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.graph import GaussianBayesNet, GaussianFactorGraph
from hybridfg.nonlinear.factors import BetweenFactor, CustomFactor, PriorFactor
from hybridfg.hybrid import (
    GaussianMixture,
    GaussianMixtureFactor,
    HybridBayesNet,
    HybridFactorGraph,
    InferenceState,
    MixtureFactor,
    eliminate_hybrid,
    eliminate_partial_sequential,
    eliminate_sequential,
    incremental_update,
)
from hybridfg.topology.elimination_tree import EliminationTree, Ordering
from hybridfg.api.marginals import hybrid_map_estimate, mode_marginals, most_probable_modes

__all__ = [
    # Configuration and errors
    "DEFAULT_CONFIG",
    "EliminationConfig",
    "DisconnectedVariableError",
    "HybridFGError",
    "LinearizationError",
    "SingularSystemError",
    "UnsupportedFactorKindError",
    # Keys and values
    "M",
    "X",
    "key_name",
    "symbol",
    "Values",
    # Discrete
    "max_product_semiring",
    "prob_semiring",
    "Section",
    "DiscreteKey",
    "cartesian_product",
    "DecisionTree",
    "DecisionTreeFactor",
    "DiscreteConditional",
    "DiscretePrior",
    # Linear and nonlinear
    "Diagonal",
    "Isotropic",
    "Unit",
    "JacobianFactor",
    "GaussianConditional",
    "GaussianBayesNet",
    "GaussianFactorGraph",
    "BetweenFactor",
    "CustomFactor",
    "PriorFactor",
    # Hybrid
    "GaussianMixture",
    "GaussianMixtureFactor",
    "HybridBayesNet",
    "HybridFactorGraph",
    "InferenceState",
    "MixtureFactor",
    "eliminate_hybrid",
    "eliminate_partial_sequential",
    "eliminate_sequential",
    "incremental_update",
    "EliminationTree",
    "Ordering",
    # Queries
    "hybrid_map_estimate",
    "mode_marginals",
    "most_probable_modes",
]
