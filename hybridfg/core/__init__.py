"""
Core module: symbol keys and vector values.
"""

from hybridfg.core.keys import M, X, key_name, key_names, shorthand, symbol, symbol_chr, symbol_index
from hybridfg.core.values import Values, as_vector

__all__ = [
    "M",
    "X",
    "key_name",
    "key_names",
    "shorthand",
    "symbol",
    "symbol_chr",
    "symbol_index",
    "Values",
    "as_vector",
]
