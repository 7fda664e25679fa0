"""
hybridfg/nonlinear/factors.py

Nonlinear measurement factors on vector-valued variables.

A factor computes an unwhitened residual r(x) and its Jacobians J_k = ∂r/∂x_k.
Linearization at x0 gives the whitened JacobianFactor on deltas δ:

    ½‖W (r(x0) + Σ J_k δ_k)‖²   ->   A_k = W J_k,  b = −W r(x0)
"""

from __future__ import annotations

from typing import Callable, List, Sequence, Tuple

import numpy as np

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values, VectorLike, as_vector
from hybridfg.errors import LinearizationError
from hybridfg.linear.jacobian import JacobianFactor
from hybridfg.linear.noise import NoiseModel

Evaluation = Tuple[np.ndarray, List[np.ndarray]]


def as_jacobian(J) -> np.ndarray:
    """2-D Jacobian block; a 1-D J of length m is one column (m x 1)."""
    J = np.asarray(J, dtype=np.float64)
    if J.ndim == 0:
        return J.reshape(1, 1)
    if J.ndim == 1:
        return J.reshape(-1, 1)
    return J


class NonlinearFactor:
    """Base class: keys + noise model; subclasses implement evaluate()."""

    def __init__(self, keys: Sequence[int], noise_model: NoiseModel):
        self._keys = tuple(keys)
        self.noise_model = noise_model

    def keys(self) -> Tuple[int, ...]:
        return self._keys

    @property
    def dim(self) -> int:
        return self.noise_model.dim

    def evaluate(self, values: Values) -> Evaluation:
        raise NotImplementedError

    def _check_values(self, values: Values) -> None:
        for k in self._keys:
            if k not in values:
                raise LinearizationError(
                    f"{type(self).__name__} needs {key_name(k)} but the linearization point lacks it", key=k
                )

    def error(self, values: Values) -> float:
        self._check_values(values)
        r, _ = self.evaluate(values)
        w = self.noise_model.whiten(r)
        return float(0.5 * w @ w)

    def linearize(self, values: Values) -> JacobianFactor:
        self._check_values(values)
        r, jacobians = self.evaluate(values)
        r = np.asarray(r, dtype=np.float64).reshape(-1)
        if r.shape[0] != self.dim:
            raise ValueError(f"residual has {r.shape[0]} rows but noise model has {self.dim}")
        blocks = [self.noise_model.whiten_matrix(as_jacobian(J)) for J in jacobians]
        return JacobianFactor(self._keys, blocks, -self.noise_model.whiten(r))

    def __repr__(self) -> str:
        labels = ", ".join(key_name(k) for k in self._keys)
        return f"{type(self).__name__}([{labels}])"


class PriorFactor(NonlinearFactor):
    """r = x − prior."""

    def __init__(self, key: int, prior: VectorLike, noise_model: NoiseModel):
        super().__init__((key,), noise_model)
        self.prior = as_vector(prior)
        if self.prior.shape[0] != noise_model.dim:
            raise ValueError(f"prior has dimension {self.prior.shape[0]}, noise model {noise_model.dim}")

    def evaluate(self, values: Values) -> Evaluation:
        x = values[self._keys[0]]
        return x - self.prior, [np.eye(x.shape[0])]


class BetweenFactor(NonlinearFactor):
    """r = (x2 − x1) − measured, on vector spaces."""

    def __init__(self, key1: int, key2: int, measured: VectorLike, noise_model: NoiseModel):
        super().__init__((key1, key2), noise_model)
        self.measured = as_vector(measured)
        if self.measured.shape[0] != noise_model.dim:
            raise ValueError(f"measurement has dimension {self.measured.shape[0]}, noise model {noise_model.dim}")

    def evaluate(self, values: Values) -> Evaluation:
        x1 = values[self._keys[0]]
        x2 = values[self._keys[1]]
        eye = np.eye(x1.shape[0])
        return (x2 - x1) - self.measured, [-eye, eye]


class CustomFactor(NonlinearFactor):
    """
    Residual and Jacobians supplied by a callback:

        fn(values) -> (residual, [J_k for k in keys])
    """

    def __init__(self, keys: Sequence[int], noise_model: NoiseModel, fn: Callable[[Values], Evaluation]):
        super().__init__(keys, noise_model)
        self._fn = fn

    def evaluate(self, values: Values) -> Evaluation:
        r, jacobians = self._fn(values)
        jacobians = list(jacobians)
        if len(jacobians) != len(self._keys):
            raise ValueError(f"callback returned {len(jacobians)} Jacobians for {len(self._keys)} keys")
        return as_vector(r), [as_jacobian(J) for J in jacobians]
