"""
Deterministic bag-of-words embedding used when the provider is unavailable.

The token hash is the classic 32-bit "times 31" rolling hash
(h = (h << 5) - h + code, wrapped to signed 32 bits each step). Vectors
must stay bit-compatible with fallback vectors already stored by other
deployments of the knowledge base, so the word-character class is ASCII
([A-Za-z0-9_]) and whitespace is the ECMAScript set: Unicode space
separators plus tab, line terminators and BOM, but not the C0 information
separators U+001C-U+001F or NEL (U+0085) that Python's str.split() also accepts.
"""

from __future__ import annotations

import re

import numpy as np

_SPACE_CLASS = (
    "\t\n\x0b\x0c\r \xa0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)
_NON_WORD = re.compile(f"[^A-Za-z0-9_{_SPACE_CLASS}]")
_WHITESPACE = re.compile(f"[{_SPACE_CLASS}]+")

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def hash_method_name(dimensions: int) -> str:
    """Method tag stored next to fallback vectors."""
    return f"hash-{dimensions}"


def string_hash(token: str) -> int:
    """Signed 32-bit rolling hash over the token's UTF-16 code units."""
    data = token.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + code) & _INT32_MASK
    return h - (1 << 32) if h & _INT32_SIGN else h


def split_whitespace(text: str) -> list[str]:
    """Split on whitespace runs, dropping empty pieces."""
    return [piece for piece in _WHITESPACE.split(text) if piece]


def tokenize(text: str) -> list[str]:
    """Lower-case, drop non-word characters, split on whitespace."""
    return split_whitespace(_NON_WORD.sub("", text.lower()))


def hash_embedding(text: str, dimensions: int = 100) -> np.ndarray:
    """
    Hashed term-frequency vector, L2-normalized.

    Returns the all-zero vector when the text has no tokens.
    """
    vector = np.zeros(dimensions, dtype=np.float64)
    for token in tokenize(text):
        vector[abs(string_hash(token)) % dimensions] += 1.0

    norm = np.linalg.norm(vector)
    if norm > 0:
        vector /= norm
    return vector.astype(np.float32)
