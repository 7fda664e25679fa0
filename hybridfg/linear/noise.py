"""
hybridfg/linear/noise.py

Gaussian noise models with diagonal covariance.

Whitening divides residual rows (and Jacobian rows) by sigma so the factor
error becomes ½‖whitened residual‖².
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


class NoiseModel:
    """Diagonal Gaussian noise, parameterized by per-row standard deviations."""

    def __init__(self, sigmas: Sequence[float]):
        sigmas = np.array(sigmas, dtype=np.float64).reshape(-1)
        if sigmas.size == 0:
            raise ValueError("noise model needs at least one row")
        if np.any(sigmas <= 0.0):
            raise ValueError(f"sigmas must be positive, got {sigmas}")
        sigmas.setflags(write=False)
        self._sigmas = sigmas

    @property
    def sigmas(self) -> np.ndarray:
        return self._sigmas

    @property
    def dim(self) -> int:
        return self._sigmas.shape[0]

    def whiten(self, v: np.ndarray) -> np.ndarray:
        """Whiten a residual vector (rows / sigma)."""
        return np.asarray(v, dtype=np.float64) / self._sigmas

    def whiten_matrix(self, A: np.ndarray) -> np.ndarray:
        """Whiten a Jacobian block row-wise."""
        return np.asarray(A, dtype=np.float64) / self._sigmas[:, None]

    def log_normalization_constant(self) -> float:
        """log of (2π)^{-n/2} |Σ|^{-1/2}."""
        return float(-0.5 * self.dim * np.log(2.0 * np.pi) - np.sum(np.log(self._sigmas)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sigmas={self._sigmas.tolist()})"


class Diagonal(NoiseModel):

    @classmethod
    def from_sigmas(cls, sigmas: Sequence[float]) -> "Diagonal":
        return cls(sigmas)


class Isotropic(NoiseModel):

    @classmethod
    def sigma(cls, dim: int, sigma: float) -> "Isotropic":
        return cls([float(sigma)] * int(dim))


class Unit(NoiseModel):

    @classmethod
    def create(cls, dim: int) -> "Unit":
        return cls([1.0] * int(dim))
