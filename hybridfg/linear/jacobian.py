"""
hybridfg/linear/jacobian.py

Whitened linear factor over delta coordinates:

    error(x) = ½‖Σ_k A_k x_k − b‖² + c

The scalar constant c is 0 for factors produced by linearization and carries
the log-normalizers that elimination moves from conditionals into the
remaining factor.
"""

from __future__ import annotations

from typing import Dict, Hashable, Mapping, Optional, Sequence, Tuple

import numpy as np

from hybridfg.core.keys import key_name
from hybridfg.core.values import Values


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=np.float64)
    arr.setflags(write=False)
    return arr


def array_key(arr: np.ndarray, decimals: int = 12) -> Hashable:
    """Hashable fingerprint of an array (shape + rounded contents)."""
    return (arr.shape, np.round(arr, decimals).tobytes())


class JacobianFactor:
    """
    Linear least-squares factor.

    Args:
        keys: Continuous keys, one per block
        blocks: Matrices A_k, each with len(b) rows
        b: Right-hand side
        constant: Additive scalar in the error
    """

    def __init__(
        self,
        keys: Sequence[int],
        blocks: Sequence[np.ndarray],
        b: Sequence[float],
        constant: float = 0.0,
    ):
        keys = tuple(keys)
        b = _frozen(np.asarray(b, dtype=np.float64).reshape(-1))
        if len(keys) != len(blocks):
            raise ValueError(f"got {len(keys)} keys but {len(blocks)} blocks")
        if len(set(keys)) != len(keys):
            raise ValueError(f"duplicate keys in JacobianFactor: {[key_name(k) for k in keys]}")
        frozen_blocks = []
        for k, A in zip(keys, blocks):
            A = np.asarray(A, dtype=np.float64)
            if A.ndim == 1:
                A = A.reshape(-1, 1)
            if A.ndim != 2 or A.shape[0] != b.shape[0]:
                raise ValueError(
                    f"block for {key_name(k)} has shape {A.shape}, expected ({b.shape[0]}, n)"
                )
            frozen_blocks.append(_frozen(A))
        self._keys = keys
        self._blocks = tuple(frozen_blocks)
        self._b = b
        self._constant = float(constant)

    @classmethod
    def constant_factor(cls, constant: float) -> "JacobianFactor":
        """Keyless factor with error == constant."""
        return cls((), (), np.zeros(0), constant)

    # --- Accessors ---

    def keys(self) -> Tuple[int, ...]:
        return self._keys

    @property
    def blocks(self) -> Tuple[np.ndarray, ...]:
        return self._blocks

    @property
    def b(self) -> np.ndarray:
        return self._b

    @property
    def constant(self) -> float:
        return self._constant

    @property
    def rows(self) -> int:
        return self._b.shape[0]

    def block(self, key: int) -> np.ndarray:
        try:
            return self._blocks[self._keys.index(key)]
        except ValueError:
            raise KeyError(f"{key_name(key)} not in factor") from None

    def dims(self) -> Dict[int, int]:
        return {k: A.shape[1] for k, A in zip(self._keys, self._blocks)}

    def is_constant(self) -> bool:
        return not self._keys

    # --- Evaluation ---

    def residual(self, values: Mapping[int, np.ndarray]) -> np.ndarray:
        r = -self._b.copy()
        for k, A in zip(self._keys, self._blocks):
            r = r + A @ values[k]
        return r

    def error(self, values: Values) -> float:
        r = self.residual(values)
        return float(0.5 * r @ r + self._constant)

    def with_constant(self, constant: float) -> "JacobianFactor":
        return JacobianFactor(self._keys, self._blocks, self._b, constant)

    def structural_key(self) -> Hashable:
        return (
            "jacobian",
            self._keys,
            tuple(array_key(A) for A in self._blocks),
            array_key(self._b),
            round(self._constant, 12),
        )

    def equals(self, other: "JacobianFactor", tol: float = 1e-9) -> bool:
        if self._keys != other._keys or self.rows != other.rows:
            return False
        if abs(self._constant - other._constant) > tol:
            return False
        same_blocks = all(
            a.shape == o.shape and np.allclose(a, o, atol=tol) for a, o in zip(self._blocks, other._blocks)
        )
        return same_blocks and np.allclose(self._b, other._b, atol=tol)

    def __repr__(self) -> str:
        labels = ", ".join(key_name(k) for k in self._keys)
        return f"JacobianFactor([{labels}], rows={self.rows}, constant={self._constant:.6g})"


def stack_augmented(
    factors: Sequence[JacobianFactor],
    order: Sequence[int],
    dims: Optional[Mapping[int, int]] = None,
) -> Tuple[np.ndarray, Dict[int, int]]:
    """
    Stack factors into one augmented matrix [A | b] with column blocks laid
    out in `order`. Returns the matrix and key -> column offset.
    """
    if dims is None:
        dims = collect_dims(factors)
    offsets: Dict[int, int] = {}
    n = 0
    for k in order:
        offsets[k] = n
        n += dims[k]
    m = sum(f.rows for f in factors)
    Ab = np.zeros((m, n + 1), dtype=np.float64)
    row = 0
    for f in factors:
        for k, A in zip(f.keys(), f.blocks):
            col = offsets[k]
            Ab[row:row + f.rows, col:col + A.shape[1]] = A
        Ab[row:row + f.rows, n] = f.b
        row += f.rows
    return Ab, offsets


def collect_dims(factors: Sequence[JacobianFactor]) -> Dict[int, int]:
    """key -> dimension over all factors; raises ValueError on a mismatch."""
    dims: Dict[int, int] = {}
    for f in factors:
        for k, d in f.dims().items():
            prev = dims.setdefault(k, d)
            if prev != d:
                raise ValueError(f"dimension mismatch for {key_name(k)}: {prev} vs {d}")
    return dims
