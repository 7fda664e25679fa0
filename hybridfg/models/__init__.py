"""
Models module: ready-made hybrid graphs.
"""

from hybridfg.models.switching import Switching, motion_models

__all__ = ["Switching", "motion_models"]
