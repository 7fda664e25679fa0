"""
hybridfg/topology/structure.py

Factor graph structure with canonical scopes.

Topology only: which keys each factor touches, the key -> factor incidence,
and connected components of the bipartite key/factor graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components


@dataclass(frozen=True)
class FactorDef:
    """A factor position in its graph and the keys it touches."""
    index: int
    scope: Tuple[int, ...]  # Canonical sorted keys

    def __post_init__(self):
        if self.scope != tuple(sorted(self.scope)):
            object.__setattr__(self, 'scope', tuple(sorted(self.scope)))


class FactorGraphStructure:
    """
    Structure of a factor graph (no values).

    Maintains:
    - Factor definitions with scopes
    - Key-to-factor incidence
    """

    def __init__(self):
        self.factors: Dict[int, FactorDef] = {}
        self.key_to_factors: Dict[int, List[int]] = {}

    @classmethod
    def from_factors(cls, factors: Iterable[Any]) -> "FactorGraphStructure":
        """Index any factors exposing keys(), numbered in iteration order."""
        struct = cls()
        for i, f in enumerate(factors):
            struct.add_factor(i, f.keys())
        return struct

    def add_factor(self, index: int, scope: Sequence[int]) -> None:
        scope_c = tuple(sorted(set(scope)))
        self.factors[index] = FactorDef(index, scope_c)
        for k in scope_c:
            self.key_to_factors.setdefault(k, []).append(index)

    def get_scope(self, index: int) -> Tuple[int, ...]:
        return self.factors[index].scope

    def all_keys(self) -> List[int]:
        return sorted(self.key_to_factors)

    def all_factors(self) -> List[int]:
        return list(self.factors.keys())

    def factors_containing(self, key: int) -> List[int]:
        return self.key_to_factors.get(key, [])

    def key_components(self) -> List[Tuple[int, ...]]:
        """
        Groups of keys linked through shared factors, each sorted, ordered by
        their smallest key.
        """
        keys = self.all_keys()
        if not keys:
            return []
        pos = {k: i for i, k in enumerate(keys)}
        n_keys = len(keys)
        n = n_keys + len(self.factors)
        rows: List[int] = []
        cols: List[int] = []
        for j, idx in enumerate(self.factors):
            for k in self.factors[idx].scope:
                rows.append(pos[k])
                cols.append(n_keys + j)
        data = np.ones(len(rows), dtype=np.int8)
        adj = sp.csr_matrix((data, (rows, cols)), shape=(n, n))
        _, labels = connected_components(adj, directed=False)

        groups: Dict[int, List[int]] = {}
        for k in keys:
            groups.setdefault(int(labels[pos[k]]), []).append(k)
        return sorted((tuple(g) for g in groups.values()), key=lambda g: g[0])

    def __repr__(self) -> str:
        return f"FactorGraphStructure(keys={len(self.key_to_factors)}, factors={len(self.factors)})"
