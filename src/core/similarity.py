# src/core/similarity.py - v3
"""String similarity primitives used by term matching.

- edit_distance: Levenshtein distance over code points (unit costs)
- similarity: 1 - distance / max(len)
- jaccard: character-set overlap
- combined: 0.7 * similarity + 0.3 * jaccard

The edit distance keeps a single DP row as a numpy array; the insertion
dependency inside a row is resolved with a running minimum, so each row is
computed without a Python-level inner loop.
"""

from __future__ import annotations

import numpy as np

EDIT_WEIGHT = 0.7
JACCARD_WEIGHT = 0.3


def _codes(text: str) -> np.ndarray:
    return np.fromiter((ord(ch) for ch in text), dtype=np.int64, count=len(text))


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between a and b.

    Returns:
        Minimum number of single code point insertions, deletions and
        substitutions turning a into b.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Iterate over the longer string so the row stays short.
    if len(b) > len(a):
        a, b = b, a

    b_codes = _codes(b)
    offsets = np.arange(len(b) + 1, dtype=np.int64)
    prev = offsets.copy()

    for i, ch in enumerate(a, start=1):
        substitution = prev[:-1] + (b_codes != ord(ch))
        row = np.empty_like(prev)
        row[0] = i
        row[1:] = np.minimum(prev[1:] + 1, substitution)
        # row[j] = min(row[j], row[j-1] + 1) for all j, in one pass
        prev = np.minimum.accumulate(row - offsets) + offsets

    return int(prev[-1])


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity in [0, 1]. Two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


def jaccard(a: str, b: str) -> float:
    """Character-set Jaccard coefficient."""
    set_a, set_b = set(a), set(b)
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def combined(a: str, b: str) -> float:
    """Weighted blend favouring edit similarity; set overlap breaks ties for
    reordered character sequences."""
    return EDIT_WEIGHT * similarity(a, b) + JACCARD_WEIGHT * jaccard(a, b)
