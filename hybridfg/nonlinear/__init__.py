"""
Nonlinear module: measurement factors linearized into Jacobian factors.
"""

from hybridfg.nonlinear.factors import BetweenFactor, CustomFactor, NonlinearFactor, PriorFactor

__all__ = [
    "BetweenFactor",
    "CustomFactor",
    "NonlinearFactor",
    "PriorFactor",
]
