from __future__ import annotations

from typing import Dict

# Turkish letters -> closest ASCII letter
TRANSLITERATION: Dict[str, str] = {
    "ş": "s", "Ş": "S",
    "ı": "i", "İ": "I",
    "ğ": "g", "Ğ": "G",
    "ü": "u", "Ü": "U",
    "ö": "o", "Ö": "O",
    "ç": "c", "Ç": "C",
}

# str.lower() turns "İ" into "i" + U+0307 (combining dot); pin the dotted/dotless
# pair explicitly so the result never depends on the casing implementation.
_CASE_FOLD: Dict[str, str] = {"İ": "i", "I": "i"}

_TRANSLATE = str.maketrans(TRANSLITERATION)


def fold_case(value: str) -> str:
    return "".join(_CASE_FOLD.get(ch) or ch.lower() for ch in value)


def sanitize(raw: str) -> str:
    """
    Normalize a free-text value before it becomes a tag parameter:
    spaces -> underscores, lowercase, Turkish letters -> ASCII.
    Total and idempotent.
    """
    value = raw.replace(" ", "_")
    value = fold_case(value)
    return value.translate(_TRANSLATE)
