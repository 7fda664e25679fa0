"""
Discrete module: assignments, decision trees, discrete factors and their elimination.
"""

from hybridfg.discrete.assignment import (
    Assignment,
    DiscreteKey,
    assignment_index,
    cartesian_product,
    format_assignment,
    iter_assignments,
    merge_discrete_keys,
    restrict_assignment,
)
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.discrete.factor import DecisionTreeFactor, DiscreteConditional, DiscretePrior
from hybridfg.discrete.elimination import eliminate_discrete

__all__ = [
    "Assignment",
    "DiscreteKey",
    "assignment_index",
    "cartesian_product",
    "format_assignment",
    "iter_assignments",
    "merge_discrete_keys",
    "restrict_assignment",
    "DecisionTree",
    "DecisionTreeFactor",
    "DiscreteConditional",
    "DiscretePrior",
    "eliminate_discrete",
]
