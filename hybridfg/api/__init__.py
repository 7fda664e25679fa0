"""
API module: high-level mode queries.
"""

from hybridfg.api.marginals import (
    discrete_posterior,
    hybrid_map_estimate,
    max_probability,
    mode_marginals,
    most_probable_modes,
)

__all__ = [
    "discrete_posterior",
    "hybrid_map_estimate",
    "max_probability",
    "mode_marginals",
    "most_probable_modes",
]
