"""
hybridfg/core/values.py

Values: key -> 1-D vector, used both as a linearization point and as the
solution of a linear system (delta vectors).
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

import numpy as np

from hybridfg.core.keys import key_name

VectorLike = Union[float, int, np.ndarray, list, tuple]


def as_vector(value: VectorLike) -> np.ndarray:
    """Coerce a scalar or sequence into a float 1-D array (copy)."""
    arr = np.array(value, dtype=np.float64)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1:
        raise ValueError(f"expected a scalar or 1-D vector, got shape {arr.shape}")
    return arr


class Values:
    """
    Ordered mapping from key to vector value.

    Stored vectors are read-only; a Values handed to linearize() is shared,
    not copied.
    """

    def __init__(self, values: Optional[Mapping[int, VectorLike]] = None):
        self._values: Dict[int, np.ndarray] = {}
        if values is not None:
            for k, v in values.items():
                self.insert(k, v)

    def insert(self, key: int, value: VectorLike) -> None:
        if key in self._values:
            raise ValueError(f"key {key_name(key)} already present in Values")
        self._set(key, value)

    def update(self, key: int, value: VectorLike) -> None:
        if key not in self._values:
            raise KeyError(f"key {key_name(key)} not present in Values")
        self._set(key, value)

    def _set(self, key: int, value: VectorLike) -> None:
        vec = as_vector(value)
        vec.setflags(write=False)
        self._values[key] = vec

    def at(self, key: int) -> np.ndarray:
        try:
            return self._values[key]
        except KeyError:
            raise KeyError(f"key {key_name(key)} not present in Values") from None

    def __getitem__(self, key: int) -> np.ndarray:
        return self.at(key)

    def __contains__(self, key: int) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[int]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def keys(self) -> Tuple[int, ...]:
        return tuple(self._values.keys())

    def items(self):
        return self._values.items()

    def dim(self, key: int) -> int:
        return self.at(key).shape[0]

    def retract(self, delta: "Values") -> "Values":
        """x ⊕ δ for vector spaces: keys missing from delta are left unchanged."""
        out = Values()
        for k, v in self._values.items():
            if k in delta:
                out.insert(k, v + delta.at(k))
            else:
                out.insert(k, v)
        return out

    def allclose(self, other: "Values", atol: float = 1e-9) -> bool:
        if set(self.keys()) != set(other.keys()):
            return False
        return all(np.allclose(v, other.at(k), atol=atol) for k, v in self._values.items())

    def __repr__(self) -> str:
        body = ", ".join(f"{key_name(k)}: {v.tolist()}" for k, v in self._values.items())
        return f"Values({{{body}}})"
