"""
hybridfg/discrete/assignment.py

Discrete assignment space.

A DiscreteKey pairs a variable key with its cardinality. An assignment is a
plain dict key -> value. The Cartesian product of a key sequence is
enumerated lexicographically with the *first* key varying slowest, which
fixes the deterministic order used for indexing and tree construction.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

from hybridfg.core.keys import key_name

Assignment = Dict[int, int]


@dataclass(frozen=True, order=True)
class DiscreteKey:
    """A discrete variable: key and domain size."""
    key: int
    cardinality: int

    def __post_init__(self):
        if self.cardinality < 1:
            raise ValueError(f"cardinality of {key_name(self.key)} must be >= 1, got {self.cardinality}")

    def __repr__(self) -> str:
        return f"DiscreteKey({key_name(self.key)}, {self.cardinality})"


def merge_discrete_keys(*groups: Iterable[DiscreteKey]) -> Tuple[DiscreteKey, ...]:
    """
    Union of discrete keys, sorted by descending key.

    Raises ValueError if a key appears with two different cardinalities.
    """
    seen: Dict[int, DiscreteKey] = {}
    for group in groups:
        for dk in group:
            prev = seen.get(dk.key)
            if prev is not None and prev.cardinality != dk.cardinality:
                raise ValueError(
                    f"conflicting cardinalities for {key_name(dk.key)}: "
                    f"{prev.cardinality} vs {dk.cardinality}"
                )
            seen[dk.key] = dk
    return tuple(sorted(seen.values(), key=lambda dk: dk.key, reverse=True))


def iter_assignments(discrete_keys: Sequence[DiscreteKey]) -> Iterator[Assignment]:
    """Lazily enumerate all assignments, first key slowest."""
    keys = [dk.key for dk in discrete_keys]
    for values in itertools.product(*(range(dk.cardinality) for dk in discrete_keys)):
        yield dict(zip(keys, values))


def cartesian_product(discrete_keys: Sequence[DiscreteKey]) -> List[Assignment]:
    """
    All assignments of discrete_keys in lexicographic order.

    An empty key sequence yields a single empty assignment.
    """
    return list(iter_assignments(discrete_keys))


def assignment_index(discrete_keys: Sequence[DiscreteKey], assignment: Mapping[int, int]) -> int:
    """Position of an assignment in cartesian_product(discrete_keys)."""
    index = 0
    for dk in discrete_keys:
        value = assignment[dk.key]
        if not 0 <= value < dk.cardinality:
            raise ValueError(f"value {value} out of range for {dk!r}")
        index = index * dk.cardinality + value
    return index


def restrict_assignment(assignment: Mapping[int, int], keys: Iterable[int]) -> Assignment:
    """Sub-assignment on the given keys (all must be present)."""
    return {k: assignment[k] for k in keys}


def format_assignment(assignment: Mapping[int, int]) -> str:
    return "{" + ", ".join(f"{key_name(k)}={v}" for k, v in sorted(assignment.items())) + "}"
