"""
hybridfg/algebra/semiring.py

Semirings over non-negative potentials for discrete queries.

A commutative semiring (S, ⊕, ⊗, 0, 1) provides:
- add (⊕): combines alternatives when a variable is summed out
- mul (⊗): combines factors
- zero (0) / one (1): identities

Two instances are needed on mode tables:
- ProbSemiring (sum-product): exact marginals and partition functions
- MaxProductSemiring (max-product): most probable mode assignment

All operations are vectorized over numpy arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple, Union

import numpy as np

Axis = Optional[Union[int, Tuple[int, ...]]]


class Semiring(Protocol):
    """Protocol for vectorized semiring operations."""
    name: str
    zero: float
    one: float

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray: ...
    def mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray: ...
    def is_zero(self, a: Any) -> bool: ...
    def add_reduce(self, x: np.ndarray, axis: Axis = None) -> np.ndarray: ...
    def normalize(self, x: np.ndarray, axis: Axis = None) -> np.ndarray: ...


def _normalize_sum(x: np.ndarray, axis: Axis = None) -> np.ndarray:
    s = np.sum(x, axis=axis, keepdims=True)
    s = np.where(s == 0.0, 1.0, s)
    return x / s


@dataclass(frozen=True)
class ProbSemiring:
    """Nonnegative reals: add=+, mul=*."""
    name: str = "PROB"
    zero: float = 0.0
    one: float = 1.0

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.add(a, b)

    def mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.multiply(a, b)

    def is_zero(self, a: Any) -> bool:
        return float(a) == 0.0

    def add_reduce(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return np.sum(x, axis=axis)

    def normalize(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return _normalize_sum(x, axis)


@dataclass(frozen=True)
class MaxProductSemiring:
    """Nonnegative reals: add=max, mul=*."""
    name: str = "MAXPROD"
    zero: float = 0.0
    one: float = 1.0

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.maximum(a, b)

    def mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.multiply(a, b)

    def is_zero(self, a: Any) -> bool:
        return float(a) == 0.0

    def add_reduce(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return np.max(x, axis=axis)

    def normalize(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return _normalize_sum(x, axis)


prob_semiring = ProbSemiring()
max_product_semiring = MaxProductSemiring()
