"""
hybridfg/algebra/section.py

A Section is a semiring-valued table over a *named* discrete domain
(an ordered tuple of mode keys). It is the dense workhorse behind discrete
elimination and mode queries: decision-tree factors are expanded into
Sections, multiplied, and summed (or maxed) out.

Key operations:
  - star:     (f ⋆ g) on U∪W  (aligned pointwise multiplication)
  - restrict: ρ_{U->T}        (semiring-sum marginalization onto T)
  - divide:   f / g for g on a subset of U (conditioning)
  - unit:     identity section (all-ones table)
  - normalize

Design constraints:
  - Domain ordering is *semantic*: axes correspond 1-1 to domain entries.
  - Determinism: star() uses descending key order for the union by default,
    the same order decision trees use for their labels.
  - restrict(target) outputs axes in exactly target order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Section:
    """
    A semiring table over an ordered domain of discrete keys.

    Attributes:
        domain: Ordered keys (axis labels).
        data: ndarray shaped by the key cardinalities in the *same order*.
        semiring: Semiring implementing add/mul/add_reduce/normalize.
    """
    domain: Tuple[int, ...]
    data: np.ndarray
    semiring: Any

    def __post_init__(self):
        if len(self.domain) != self.data.ndim:
            raise ValueError(
                f"Section domain rank mismatch: |domain|={len(self.domain)} "
                f"but data.ndim={self.data.ndim}"
            )
        if len(set(self.domain)) != len(self.domain):
            raise ValueError(f"Section domain has duplicates: {self.domain}")

    @staticmethod
    def unit(domain: Sequence[int], shape: Sequence[int], semiring: Any) -> "Section":
        """
        Unit section 1_U: constant one on D_U.
        """
        data = np.full(tuple(shape), semiring.one, dtype=np.float64)
        return Section(tuple(domain), data, semiring)

    def axis_of(self, v: int) -> int:
        """Returns the axis index of key v in self.domain."""
        return self.domain.index(v)

    def dim_of(self, v: int) -> int:
        """Returns the cardinality of key v, inferred from data shape."""
        return self.data.shape[self.axis_of(v)]

    def cardinalities(self) -> dict:
        return {v: self.data.shape[i] for i, v in enumerate(self.domain)}

    def _aligned_view(self, target_domain: Tuple[int, ...], target_shape: Tuple[int, ...]) -> np.ndarray:
        """
        Returns an ndarray aligned and broadcast to target_domain.

        - Existing axes are permuted into target order.
        - Missing axes become singleton dimensions, then broadcast.
        """
        src_pos = {v: i for i, v in enumerate(self.domain)}
        perm = [src_pos[v] for v in target_domain if v in src_pos]

        data = self.data
        if perm and perm != list(range(data.ndim)):
            data = np.transpose(data, axes=perm)

        shape = []
        j = 0
        for v in target_domain:
            if v in src_pos:
                shape.append(data.shape[j])
                j += 1
            else:
                shape.append(1)

        data = data.reshape(shape)
        return np.broadcast_to(data, target_shape)

    def _union(self, other: "Section", union_domain: Optional[Sequence[int]]) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        U = set(self.domain)
        W = set(other.domain)
        if union_domain is None:
            union = tuple(sorted(U | W, reverse=True))
        else:
            union = tuple(union_domain)

        target_shape = []
        for v in union:
            if v in U:
                target_shape.append(self.dim_of(v))
            elif v in W:
                target_shape.append(other.dim_of(v))
            else:
                raise ValueError(f"Key {v} not in either domain")
        return union, tuple(target_shape)

    def star(self, other: "Section", union_domain: Optional[Sequence[int]] = None) -> "Section":
        """
        Join-product (⋆) on the union domain.

        (f ⋆ g)(x_{U∪W}) = f(x_U) ⊗ g(x_W)
        """
        if type(self.semiring) is not type(other.semiring):
            raise ValueError("Cannot star sections from different semirings")

        union, target_shape = self._union(other, union_domain)
        for v in set(self.domain) & set(other.domain):
            if self.dim_of(v) != other.dim_of(v):
                raise ValueError(f"Cardinality mismatch for key {v}")

        a = self._aligned_view(union, target_shape)
        b = other._aligned_view(union, target_shape)
        return Section(union, self.semiring.mul(a, b), self.semiring)

    def divide(self, other: "Section") -> "Section":
        """
        Pointwise f / g where dom(g) ⊆ dom(f); 0/0 is defined as 0.

        Used to turn a joint table into a conditional: P(F, S) / P(S).
        """
        missing = [v for v in other.domain if v not in self.domain]
        if missing:
            raise ValueError(f"divide: keys {missing} not in section domain {self.domain}")
        b = other._aligned_view(self.domain, self.data.shape)
        with np.errstate(divide="ignore", invalid="ignore"):
            out = np.where(b == 0.0, 0.0, self.data / np.where(b == 0.0, 1.0, b))
        return Section(self.domain, out, self.semiring)

    def restrict(self, target_domain: Sequence[int]) -> "Section":
        """
        Marginalize (ρ_{U->T}) to exactly the keys in target_domain *in that order*.

        (ρ f)(x_T) = ⊕_{x_{U\\T}} f(x_T, x_{U\\T})

        Important:
          - target_domain must be a subset of self.domain.
          - Output axes order == target_domain order (do not auto-sort here).
        """
        T = tuple(target_domain)
        U = self.domain

        Uset = set(U)
        for v in T:
            if v not in Uset:
                raise ValueError(f"restrict target key {v} not in section domain {U}")

        if T == U:
            return self

        if not T:
            result = self.semiring.add_reduce(self.data, axis=tuple(range(self.data.ndim)))
            return Section((), np.asarray(result, dtype=np.float64).reshape(()), self.semiring)

        # Kept axes first in requested order, eliminated axes trailing
        kept_axes = [U.index(v) for v in T]
        Tset = set(T)
        elim_axes = [i for i, v in enumerate(U) if v not in Tset]
        perm = kept_axes + elim_axes

        data = np.transpose(self.data, axes=perm) if perm != list(range(len(U))) else self.data
        if elim_axes:
            data = self.semiring.add_reduce(data, axis=tuple(range(len(kept_axes), len(U))))

        return Section(T, np.asarray(data), self.semiring)

    def value_at(self, assignment: Mapping[int, int]) -> float:
        """Table entry for an assignment covering the domain."""
        idx = tuple(assignment[v] for v in self.domain)
        return float(self.data[idx])

    def normalize(self, axis: Optional[int] = None) -> "Section":
        return Section(self.domain, self.semiring.normalize(self.data, axis=axis), self.semiring)

    def __repr__(self) -> str:
        return f"Section(domain={self.domain}, shape={self.data.shape}, semiring={self.semiring.name})"
