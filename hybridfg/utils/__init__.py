"""
Utility helpers: logging setup.
"""

from hybridfg.utils.logging import get_logger, log_level, setup_logging

__all__ = ["get_logger", "log_level", "setup_logging"]
