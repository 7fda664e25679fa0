"""
hybridfg/hybrid/elimination.py

Hybrid elimination.

eliminate_hybrid: eliminate continuous frontals from linear + hybrid factors,
    one Gaussian elimination per assignment of the involved mode keys,
    assembled into a GaussianMixture and a residual (GaussianMixtureFactor
    while continuous keys remain, DecisionTreeFactor once only modes remain).

eliminate_partial_sequential: run eliminate_hybrid / eliminate_discrete
    group by group along an ordering, collecting a HybridBayesNet and the
    factors left over.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from hybridfg.config import DEFAULT_CONFIG, EliminationConfig
from hybridfg.core.keys import key_names
from hybridfg.discrete.assignment import Assignment, assignment_index, cartesian_product, format_assignment
from hybridfg.discrete.decision_tree import DecisionTree
from hybridfg.discrete.elimination import eliminate_discrete
from hybridfg.discrete.factor import DecisionTreeFactor
from hybridfg.errors import DisconnectedVariableError, SingularSystemError, UnsupportedFactorKindError
from hybridfg.hybrid.bayes_net import HybridBayesNet
from hybridfg.hybrid.factor_graph import HybridFactorGraph
from hybridfg.hybrid.gaussian_mixture import GaussianMixture, GaussianMixtureFactor
from hybridfg.hybrid.kinds import FactorKind, factor_kind
from hybridfg.linear.conditional import GaussianConditional
from hybridfg.linear.elimination import eliminate_gaussian
from hybridfg.linear.jacobian import JacobianFactor
from hybridfg.topology.elimination_tree import EliminationTree, Ordering
from hybridfg.utils.logging import get_logger

logger = get_logger(__name__)

HybridConditional = Union[GaussianMixture, GaussianConditional]
Residual = Optional[Union[GaussianMixtureFactor, DecisionTreeFactor, JacobianFactor]]


def eliminate_hybrid(
    factors: HybridFactorGraph,
    frontals: Sequence[int],
    config: Optional[EliminationConfig] = None,
) -> Tuple[HybridConditional, Residual]:
    """
    Eliminate continuous `frontals` jointly from a linear hybrid graph.

    Returns:
        (GaussianMixture, GaussianMixtureFactor | DecisionTreeFactor), or
        (GaussianConditional, JacobianFactor | None) when no mode keys are
        involved.

    Raises:
        UnsupportedFactorKindError: nonlinear or discrete factors present,
            or a frontal is a mode key
        DisconnectedVariableError: a frontal key is in no factor
        SingularSystemError: a branch is rank deficient; .assignment names it
    """
    config = config or DEFAULT_CONFIG
    frontals = tuple(frontals)
    select = factors.sum()

    mode_keys = factors.discrete_keys()
    mode_set = {dk.key for dk in mode_keys}
    if any(k in mode_set for k in frontals):
        raise UnsupportedFactorKindError(f"cannot eliminate mode keys {key_names(frontals)} as continuous")
    continuous = set(factors.continuous_keys())
    missing = [k for k in frontals if k not in continuous]
    if missing:
        raise DisconnectedVariableError(
            f"frontal keys {key_names(missing)} do not appear in any factor", key=missing[0]
        )
    fset = set(frontals)
    separator = tuple(sorted(k for k in continuous if k not in fset))

    def branch(assignment: Assignment) -> Tuple[GaussianConditional, JacobianFactor]:
        graph = select(assignment)
        try:
            return eliminate_gaussian(list(graph), frontals, config.rank_tolerance)
        except SingularSystemError as exc:
            raise SingularSystemError(
                f"{exc} for assignment {format_assignment(assignment)}", assignment=assignment
            ) from exc

    assignments = cartesian_product(mode_keys)
    if config.max_workers > 1 and len(assignments) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            results = list(pool.map(branch, assignments))
    else:
        results = [branch(a) for a in assignments]

    logger.debug(
        "eliminated %s over %d branches, separator=%s, modes=%s",
        key_names(frontals), len(results), key_names(separator), key_names(dk.key for dk in mode_keys),
    )

    if not mode_keys:
        conditional, remaining = results[0]
        return conditional, (None if remaining.is_constant() else remaining)

    def result_at(assignment: Assignment) -> Tuple[GaussianConditional, JacobianFactor]:
        return results[assignment_index(mode_keys, assignment)]

    merge = config.merge_leaves
    conditionals = DecisionTree.from_function(mode_keys, lambda a: result_at(a)[0], merge=merge)
    mixture = GaussianMixture(frontals, separator, mode_keys, conditionals)

    if separator:
        remaining = DecisionTree.from_function(mode_keys, lambda a: result_at(a)[1], merge=merge)
        return mixture, GaussianMixtureFactor(separator, mode_keys, remaining)

    probabilities = DecisionTree.from_function(
        mode_keys, lambda a: float(np.exp(-result_at(a)[1].constant)), merge=merge
    )
    return mixture, DecisionTreeFactor(mode_keys, probabilities)


def _touches(factor: Any, keys: set) -> bool:
    return any(k in keys for k in factor.keys())


def eliminate_partial_sequential(
    graph: HybridFactorGraph,
    ordering: Union[Ordering, Iterable],
    config: Optional[EliminationConfig] = None,
) -> Tuple[HybridBayesNet, HybridFactorGraph]:
    """
    Eliminate the groups of `ordering` one after another.

    Returns:
        (HybridBayesNet in elimination order, graph of the remaining factors)
    """
    config = config or DEFAULT_CONFIG
    ordering = Ordering.coerce(ordering)
    etree = EliminationTree(graph, ordering)
    logger.debug("elimination tree: %s, %d roots", ordering, len(etree.roots()))

    mode_set = {dk.key for dk in graph.discrete_keys()}
    remaining = graph.copy()
    bayes_net = HybridBayesNet()

    for group in ordering:
        gset = set(group)
        involved = [f for f in remaining if _touches(f, gset)]
        rest = [f for f in remaining if not _touches(f, gset)]
        if not involved:
            raise DisconnectedVariableError(
                f"keys {key_names(group)} are not in any remaining factor", key=group[0]
            )

        discrete = [k in mode_set for k in group]
        if all(discrete):
            kinds = {factor_kind(f) for f in involved}
            if kinds != {FactorKind.DISCRETE}:
                raise UnsupportedFactorKindError(
                    f"discrete keys {key_names(group)} are still attached to "
                    f"{sorted(k.value for k in kinds - {FactorKind.DISCRETE})} factors"
                )
            conditional, residual = eliminate_discrete(involved, group)
        elif any(discrete):
            raise UnsupportedFactorKindError(f"group {key_names(group)} mixes discrete and continuous keys")
        else:
            conditional, residual = eliminate_hybrid(HybridFactorGraph(involved), group, config)

        bayes_net.push_back(conditional)
        remaining = HybridFactorGraph(rest)
        if residual is not None:
            remaining.push_back(residual)
        logger.debug("eliminated %s: %r, %d factors remain", key_names(group), conditional, remaining.size())

    return bayes_net, remaining


def default_ordering(graph: HybridFactorGraph) -> Ordering:
    """Continuous keys ascending, then discrete keys ascending."""
    return Ordering(list(graph.continuous_keys()) + [dk.key for dk in graph.discrete_keys()])


def eliminate_sequential(
    graph: HybridFactorGraph,
    ordering: Optional[Union[Ordering, Iterable]] = None,
    config: Optional[EliminationConfig] = None,
) -> HybridBayesNet:
    """Eliminate every variable; only constant leftovers are dropped."""
    if ordering is None:
        ordering = default_ordering(graph)
    bayes_net, remaining = eliminate_partial_sequential(graph, ordering, config)
    leftover = [f for f in remaining if f.keys()]
    if leftover:
        raise ValueError(f"ordering does not cover keys {key_names(remaining.keys())}")
    return bayes_net
