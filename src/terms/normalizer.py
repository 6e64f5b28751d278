# src/terms/normalizer.py - v1
"""Canonical comparison form for dictionary terms.

The normalized form is used only to compare terms, never for display.
normalize() is pure and idempotent.
"""

from __future__ import annotations

import re

CANONICAL_DASH = "-"

# Hyphen/dash/minus/wave variants folded onto CANONICAL_DASH.
# The katakana prolonged sound mark (U+30FC) is a letter, not a dash.
_DASH_VARIANTS = (
    "‐"  # hyphen
    "‑"  # non-breaking hyphen
    "‒"  # figure dash
    "–"  # en dash
    "—"  # em dash
    "―"  # horizontal bar
    "−"  # minus sign
    "⸺"  # two-em dash
    "⸻"  # three-em dash
    "〜"  # wave dash
    "﹘"  # small em dash
    "﹣"  # small hyphen-minus
    "－"  # full-width hyphen-minus
    "～"  # full-width tilde
)
_DASH_TABLE = str.maketrans({ch: CANONICAL_DASH for ch in _DASH_VARIANTS})

# Full-width digits and Latin letters -> ASCII (fixed offset 0xFEE0).
_FULLWIDTH_TABLE = str.maketrans(
    {
        code: code - 0xFEE0
        for start, end in ((0xFF10, 0xFF19), (0xFF21, 0xFF3A), (0xFF41, 0xFF5A))
        for code in range(start, end + 1)
    }
)

_DISALLOWED = re.compile(
    r"[^\w\s"
    r"぀-ゟ"  # hiragana
    r"゠-ヿ"  # katakana
    r"㐀-䶿一-鿿"  # CJK ideographs
    r"０-９Ａ-Ｚａ-ｚ"  # full-width digits/letters
    r"\-]"
)
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Return the canonical comparison form of text.

    Steps: trim, fold full-width alphanumerics, unify dashes, lowercase,
    strip symbols, collapse whitespace, trim.
    """
    value = text.strip()
    value = value.translate(_FULLWIDTH_TABLE)
    value = value.translate(_DASH_TABLE)
    value = value.lower()
    value = _DISALLOWED.sub("", value)
    value = _WHITESPACE.sub(" ", value)
    return value.strip()
