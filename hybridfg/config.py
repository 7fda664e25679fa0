"""
hybridfg/config.py

Elimination configuration.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EliminationConfig:
    """
    Knobs for a single elimination pass.

    Attributes:
        max_workers: Threads used for per-assignment branch eliminations
            (1 = sequential, the reference behaviour)
        rank_tolerance: Relative threshold on |diag(R)| below which a frontal
            block is declared singular
        merge_leaves: Canonicalize decision-tree leaves with equal payloads
    """
    max_workers: int = 1
    rank_tolerance: float = 1e-10
    merge_leaves: bool = True

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.rank_tolerance < 0.0:
            raise ValueError(f"rank_tolerance must be >= 0, got {self.rank_tolerance}")


DEFAULT_CONFIG = EliminationConfig()
