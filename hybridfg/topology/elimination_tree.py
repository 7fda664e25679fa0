"""
hybridfg/topology/elimination_tree.py

Elimination ordering and the symbolic elimination tree.

An Ordering is a sequence of groups; each group of keys is eliminated
jointly. The elimination tree has one node per group:

  - every factor is assigned to the group of its earliest-ordered key
    (factors touching no ordered key stay unassigned)
  - the symbolic separator of a group is the union of the scopes of its
    factors and of its children's separators, minus the keys eliminated
    so far
  - the parent of a group is the group of the earliest-ordered key in its
    separator; groups without one are roots

Edges point parent -> child. No numeric work happens here.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

import networkx as nx

from hybridfg.core.keys import key_name
from hybridfg.errors import DisconnectedVariableError
from hybridfg.topology.structure import FactorGraphStructure

Group = Tuple[int, ...]


class Ordering:
    """
    Immutable sequence of key groups.

    Ordering([x1, x2, (x3, x4)]) eliminates x1, then x2, then x3 and x4
    jointly.
    """

    def __init__(self, items: Iterable[Union[int, Sequence[int]]] = ()):
        groups: List[Group] = []
        seen: Set[int] = set()
        for item in items:
            group = (item,) if isinstance(item, int) else tuple(item)
            if not group:
                raise ValueError("ordering groups must not be empty")
            for k in group:
                if k in seen:
                    raise ValueError(f"key {key_name(k)} appears twice in the ordering")
                seen.add(k)
            groups.append(group)
        self._groups: Tuple[Group, ...] = tuple(groups)
        self._position: Dict[int, int] = {k: i for i, g in enumerate(self._groups) for k in g}
        self._rank: Dict[int, int] = {k: i for i, k in enumerate(self.keys())}

    @classmethod
    def coerce(cls, ordering: Union["Ordering", Iterable[Union[int, Sequence[int]]]]) -> "Ordering":
        return ordering if isinstance(ordering, Ordering) else cls(ordering)

    @property
    def groups(self) -> Tuple[Group, ...]:
        return self._groups

    def keys(self) -> Tuple[int, ...]:
        return tuple(k for g in self._groups for k in g)

    def position(self, key: int) -> int:
        """Index of the group containing key."""
        return self._position[key]

    def rank(self, key: int) -> int:
        """Index of key in the flattened ordering."""
        return self._rank[key]

    def __contains__(self, key: int) -> bool:
        return key in self._position

    def __iter__(self) -> Iterator[Group]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __repr__(self) -> str:
        parts = []
        for g in self._groups:
            names = [key_name(k) for k in g]
            parts.append(names[0] if len(names) == 1 else "(" + ", ".join(names) + ")")
        return "Ordering([" + ", ".join(parts) + "])"


class EliminationTree:
    """
    Symbolic elimination tree over a collection of factors.

    Args:
        factors: Any iterable of objects exposing keys()
        ordering: Ordering (or anything Ordering accepts)

    Raises:
        DisconnectedVariableError: an ordered key is touched by no factor
    """

    def __init__(self, factors: Iterable[Any], ordering: Union[Ordering, Iterable]):
        self.ordering = Ordering.coerce(ordering)
        self._factors = list(factors)
        self.struct = FactorGraphStructure.from_factors(self._factors)
        self.g = nx.DiGraph()
        self.remaining_factors: List[Any] = []
        self._build()

    def _build(self) -> None:
        ordering = self.ordering
        for k in ordering.keys():
            if not self.struct.factors_containing(k):
                raise DisconnectedVariableError(f"ordered key {key_name(k)} is not in any factor", key=k)

        assigned: Dict[int, List[int]] = {i: [] for i in range(len(ordering))}
        for idx in self.struct.all_factors():
            ordered = [k for k in self.struct.get_scope(idx) if k in ordering]
            if not ordered:
                self.remaining_factors.append(self._factors[idx])
                continue
            first = min(ordered, key=ordering.rank)
            assigned[ordering.position(first)].append(idx)

        for i, group in enumerate(ordering.groups):
            self.g.add_node(i, group=group, factors=[self._factors[j] for j in assigned[i]], separator=())

        eliminated: Set[int] = set()
        child_separators: Dict[int, Set[int]] = {i: set() for i in range(len(ordering))}
        for i, group in enumerate(ordering.groups):
            scope: Set[int] = set(child_separators[i])
            for idx in assigned[i]:
                scope.update(self.struct.get_scope(idx))
            eliminated.update(group)
            separator = tuple(sorted(scope - eliminated))
            self.g.nodes[i]["separator"] = separator

            ordered_sep = [k for k in separator if k in ordering]
            if ordered_sep:
                parent = ordering.position(min(ordered_sep, key=ordering.rank))
                self.g.add_edge(parent, i)
                child_separators[parent].update(separator)

    # --- Queries ---

    def _node(self, group: Union[int, Group]) -> int:
        if isinstance(group, int):
            return group
        return self.ordering.position(group[0])

    def group(self, node: int) -> Group:
        return self.g.nodes[node]["group"]

    def roots(self) -> List[Group]:
        return [self.group(n) for n in sorted(self.g.nodes) if self.g.in_degree(n) == 0]

    def parent(self, group: Union[int, Group]) -> Optional[Group]:
        preds = list(self.g.predecessors(self._node(group)))
        return self.group(preds[0]) if preds else None

    def children(self, group: Union[int, Group]) -> List[Group]:
        return [self.group(n) for n in sorted(self.g.successors(self._node(group)))]

    def factors(self, group: Union[int, Group]) -> List[Any]:
        return list(self.g.nodes[self._node(group)]["factors"])

    def separator(self, group: Union[int, Group]) -> Tuple[int, ...]:
        return self.g.nodes[self._node(group)]["separator"]

    def postorder(self) -> List[Group]:
        """Children before parents, roots last."""
        order: List[Group] = []
        for root in sorted(n for n in self.g.nodes if self.g.in_degree(n) == 0):
            order.extend(self.group(n) for n in nx.dfs_postorder_nodes(self.g, root))
        return order

    def __repr__(self) -> str:
        return f"EliminationTree(groups={self.g.number_of_nodes()}, roots={len(self.roots())})"
