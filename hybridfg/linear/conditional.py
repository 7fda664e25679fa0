"""
hybridfg/linear/conditional.py

Gaussian conditional density in square-root information form:

    R x_F + S x_P = d,   unit noise

    p(x_F | x_P) = |det R| (2π)^{-n/2} exp(−½‖R x_F + S x_P − d‖²)

R is upper triangular with a positive diagonal.
"""

from __future__ import annotations

from typing import Dict, Hashable, Sequence, Tuple

import numpy as np
from scipy.linalg import solve_triangular

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values
from hybridfg.linear.jacobian import JacobianFactor, array_key


class GaussianConditional:
    """
    Args:
        frontals: Frontal keys (block columns of R, in order)
        frontal_dims: Dimension of each frontal key
        R: Upper-triangular (n_F x n_F)
        parents: Continuous parent keys
        S: One (n_F x dim) block per parent
        d: Right-hand side
    """

    def __init__(
        self,
        frontals: Sequence[int],
        frontal_dims: Sequence[int],
        R: np.ndarray,
        parents: Sequence[int],
        S: Sequence[np.ndarray],
        d: Sequence[float],
    ):
        self._frontals = tuple(frontals)
        self._frontal_dims = tuple(int(n) for n in frontal_dims)
        self._parents = tuple(parents)
        R = np.array(R, dtype=np.float64)
        d = np.array(d, dtype=np.float64).reshape(-1)
        n = sum(self._frontal_dims)
        if R.shape != (n, n) or d.shape != (n,):
            raise ValueError(f"R must be {n}x{n} and d length {n}, got {R.shape} and {d.shape}")
        if len(self._parents) != len(S):
            raise ValueError(f"got {len(self._parents)} parents but {len(S)} S blocks")
        blocks = []
        for k, block in zip(self._parents, S):
            block = np.array(block, dtype=np.float64)
            if block.ndim != 2 or block.shape[0] != n:
                raise ValueError(f"S block for {key_name(k)} has shape {block.shape}, expected ({n}, m)")
            block.setflags(write=False)
            blocks.append(block)
        R.setflags(write=False)
        d.setflags(write=False)
        self._R = R
        self._S = tuple(blocks)
        self._d = d

    # --- Accessors ---

    @property
    def frontals(self) -> Tuple[int, ...]:
        return self._frontals

    @property
    def parents(self) -> Tuple[int, ...]:
        return self._parents

    def keys(self) -> Tuple[int, ...]:
        return self._frontals + self._parents

    @property
    def R(self) -> np.ndarray:
        return self._R

    @property
    def S(self) -> Tuple[np.ndarray, ...]:
        return self._S

    @property
    def d(self) -> np.ndarray:
        return self._d

    @property
    def dim(self) -> int:
        return self._R.shape[0]

    def frontal_dims(self) -> Dict[int, int]:
        return dict(zip(self._frontals, self._frontal_dims))

    # --- Density ---

    def log_determinant(self) -> float:
        return float(np.sum(np.log(np.abs(np.diag(self._R)))))

    def log_normalization_constant(self) -> float:
        return self.log_determinant() - 0.5 * self.dim * np.log(2.0 * np.pi)

    def _rhs(self, parent_values: Values) -> np.ndarray:
        rhs = self._d.copy()
        for k, block in zip(self._parents, self._S):
            rhs = rhs - block @ parent_values[k]
        return rhs

    def residual(self, values: Values) -> np.ndarray:
        x = np.concatenate([values[k] for k in self._frontals])
        return self._R @ x - self._rhs(values)

    def error(self, values: Values) -> float:
        r = self.residual(values)
        return float(0.5 * r @ r)

    def log_density(self, values: Values) -> float:
        return self.log_normalization_constant() - self.error(values)

    def evaluate(self, values: Values) -> float:
        return float(np.exp(self.log_density(values)))

    def solve(self, parent_values: Values) -> Values:
        """Mean of x_F given the parents: R^{-1}(d − S x_P)."""
        x = solve_triangular(self._R, self._rhs(parent_values), lower=False)
        out = Values()
        offset = 0
        for k, n in zip(self._frontals, self._frontal_dims):
            out.insert(k, x[offset:offset + n])
            offset += n
        return out

    # --- Adapters ---

    def as_factor(self) -> JacobianFactor:
        """
        The conditional as a factor whose exp(−error) equals the density,
        i.e. constant = −log|det R| + (n/2) log 2π.
        """
        blocks = []
        offset = 0
        for n in self._frontal_dims:
            blocks.append(self._R[:, offset:offset + n])
            offset += n
        blocks.extend(self._S)
        return JacobianFactor(self.keys(), blocks, self._d, -self.log_normalization_constant())

    def structural_key(self) -> Hashable:
        return (
            "conditional",
            self._frontals,
            self._parents,
            array_key(self._R),
            tuple(array_key(s) for s in self._S),
            array_key(self._d),
        )

    def equals(self, other: "GaussianConditional", tol: float = 1e-9) -> bool:
        if self._frontals != other._frontals or self._parents != other._parents:
            return False
        if self._R.shape != other._R.shape:
            return False
        return (
            np.allclose(self._R, other._R, atol=tol)
            and all(a.shape == b.shape and np.allclose(a, b, atol=tol) for a, b in zip(self._S, other._S))
            and np.allclose(self._d, other._d, atol=tol)
        )

    def __repr__(self) -> str:
        f = ", ".join(key_name(k) for k in self._frontals)
        p = ", ".join(key_name(k) for k in self._parents)
        return f"GaussianConditional(p({f} | {p}))" if p else f"GaussianConditional(p({f}))"
