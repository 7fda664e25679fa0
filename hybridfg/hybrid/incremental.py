"""
hybridfg/hybrid/incremental.py

Incremental hybrid inference.

The state after each update is an immutable (bayes_net, residual_graph)
pair. An update re-opens only the part of the previous result that the new
factors and the new ordering touch:

  1. affected = keys of the new factors ∪ ordering keys
  2. re-inject previous conditionals whose frontals meet `affected`, then
     every conditional whose frontal is a parent of a re-injected one
  3. pull previous residual factors whose continuous keys meet the ordering
  4. eliminate new ∪ re-injected ∪ pulled along the ordering
  5. keep the untouched conditionals (in order) followed by the new ones;
     keep the untouched residual factors followed by the new residual

Re-injected conditionals enter as factors through as_factor(), whose
constant makes a normalized conditional integrate to exactly 1, so the
product of the discrete residuals of successive updates equals the
discrete residual of batch elimination.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Union

from hybridfg.config import EliminationConfig
from hybridfg.core.keys import key_names
from hybridfg.core.values import Values
from hybridfg.hybrid.bayes_net import HybridBayesNet, frontal_keys_of, parent_keys_of
from hybridfg.hybrid.elimination import eliminate_partial_sequential
from hybridfg.hybrid.factor_graph import HybridFactorGraph
from hybridfg.hybrid.kinds import continuous_keys_of
from hybridfg.topology.elimination_tree import Ordering
from hybridfg.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class InferenceState:
    """Result of the updates so far."""
    bayes_net: HybridBayesNet = field(default_factory=HybridBayesNet)
    residual_graph: HybridFactorGraph = field(default_factory=HybridFactorGraph)

    @classmethod
    def empty(cls) -> "InferenceState":
        return cls()


def _reinjected_indices(bayes_net: HybridBayesNet, affected: Set[int]) -> List[int]:
    frontal_owner = {}
    for i, c in enumerate(bayes_net):
        for k in frontal_keys_of(c):
            frontal_owner[k] = i

    selected: Set[int] = {i for i, c in enumerate(bayes_net) if affected & set(frontal_keys_of(c))}
    stack = list(selected)
    while stack:
        i = stack.pop()
        for k in parent_keys_of(bayes_net.at(i)):
            owner = frontal_owner.get(k)
            if owner is not None and owner not in selected:
                selected.add(owner)
                stack.append(owner)
    return sorted(selected)


def incremental_update(
    state: Optional[InferenceState],
    new_factors: Union[HybridFactorGraph, Iterable],
    ordering: Union[Ordering, Iterable],
    config: Optional[EliminationConfig] = None,
    linearization_point: Optional[Values] = None,
) -> InferenceState:
    """
    Fold `new_factors` into `state` and eliminate the keys of `ordering`.

    Nonlinear new factors are linearized at `linearization_point` first.
    The input state is never modified.
    """
    state = state or InferenceState.empty()
    ordering = Ordering.coerce(ordering)
    graph = HybridFactorGraph(new_factors)
    if linearization_point is not None:
        graph = graph.linearize(linearization_point)

    ordered = set(ordering.keys())
    affected = set(graph.continuous_keys()) | ordered
    affected |= {dk.key for dk in graph.discrete_keys()}

    previous = state.bayes_net
    reinjected = _reinjected_indices(previous, affected)
    for i in reinjected:
        graph.push_back(previous.at(i))

    kept_residual = []
    pulled = 0
    for f in state.residual_graph:
        if ordered & set(continuous_keys_of(f)):
            graph.push_back(f)
            pulled += 1
        else:
            kept_residual.append(f)

    logger.debug(
        "incremental update: affected=%s, re-injected %d conditionals, pulled %d residual factors",
        key_names(sorted(affected)), len(reinjected), pulled,
    )

    new_net, new_residual = eliminate_partial_sequential(graph, ordering, config)

    skip = set(reinjected)
    bayes_net = HybridBayesNet(c for i, c in enumerate(previous) if i not in skip)
    for c in new_net:
        bayes_net.push_back(c)

    residual_graph = HybridFactorGraph(kept_residual)
    residual_graph.push_back(new_residual)
    return InferenceState(bayes_net, residual_graph)
