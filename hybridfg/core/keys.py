"""
hybridfg/core/keys.py

Symbol keys for variables.

A key is a plain int. Symbol keys pack a character tag and an index into
disjoint integer spaces so continuous states (x) and modes (m) never collide:

    key = (ord(chr) << 56) | index
"""

from __future__ import annotations

from typing import Callable, Iterable, List

_CHR_BITS = 8
_INDEX_BITS = 64 - _CHR_BITS
_INDEX_MASK = (1 << _INDEX_BITS) - 1


def symbol(c: str, index: int) -> int:
    """Build the key for character tag c and index."""
    if len(c) != 1:
        raise ValueError(f"symbol tag must be a single character, got {c!r}")
    if index < 0 or index > _INDEX_MASK:
        raise ValueError(f"symbol index out of range: {index}")
    return (ord(c) << _INDEX_BITS) | index


def symbol_chr(key: int) -> str:
    """Character tag of a symbol key ('' for small plain integer keys)."""
    c = key >> _INDEX_BITS
    return chr(c) if c else ""


def symbol_index(key: int) -> int:
    """Index part of a symbol key."""
    return key & _INDEX_MASK


def key_name(key: int) -> str:
    """Readable name: 'x3' for symbol keys, the decimal value otherwise."""
    c = symbol_chr(key)
    if c:
        return f"{c}{symbol_index(key)}"
    return str(key)


def key_names(keys: Iterable[int]) -> List[str]:
    return [key_name(k) for k in keys]


def shorthand(c: str) -> Callable[[int], int]:
    """Return a constructor j -> symbol(c, j)."""
    def make(index: int) -> int:
        return symbol(c, index)
    make.__name__ = c.upper()
    return make


X = shorthand("x")
M = shorthand("m")
