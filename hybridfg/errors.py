"""
hybridfg/errors.py

Error taxonomy for hybrid elimination.

Every error derives from HybridFGError and from the builtin exception a
caller would naturally expect, so both `except HybridFGError` and
`except KeyError` / `except ValueError` keep working.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np


class HybridFGError(Exception):
    """Base class for all hybridfg errors."""


class LinearizationError(HybridFGError, KeyError):
    """The linearization point does not cover a factor's keys."""

    def __init__(self, message: str, key: Optional[int] = None):
        super().__init__(message)
        self.key = key

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead.
        return str(self.args[0]) if self.args else ""


class DisconnectedVariableError(HybridFGError, ValueError):
    """An ordered or frontal variable is not touched by any factor."""

    def __init__(self, message: str, key: Optional[int] = None):
        super().__init__(message)
        self.key = key


class SingularSystemError(HybridFGError, np.linalg.LinAlgError):
    """
    The information matrix of a frontal block is rank deficient.

    Attributes:
        assignment: Discrete branch that failed (None outside hybrid elimination)
    """

    def __init__(self, message: str, assignment: Optional[Dict[int, int]] = None):
        super().__init__(message)
        self.assignment = dict(assignment) if assignment is not None else None


class UnsupportedFactorKindError(HybridFGError, TypeError):
    """An operation received a factor kind it cannot process."""


__all__ = [
    "HybridFGError",
    "LinearizationError",
    "DisconnectedVariableError",
    "SingularSystemError",
    "UnsupportedFactorKindError",
]
