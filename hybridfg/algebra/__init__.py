"""
Algebra module: semirings and dense discrete sections.
"""

from hybridfg.algebra.semiring import (
    MaxProductSemiring,
    ProbSemiring,
    max_product_semiring,
    prob_semiring,
)
from hybridfg.algebra.section import Section

__all__ = [
    "MaxProductSemiring",
    "ProbSemiring",
    "max_product_semiring",
    "prob_semiring",
    "Section",
]
