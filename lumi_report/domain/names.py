"""Staff name normalization used as the reconciliation join key."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any

TRAILING_NUMBER_RE = re.compile(r"(?:\s+\d+)+$")


def fold_text(value: Any) -> str:
    """Lowercase, strip diacritics and collapse whitespace."""
    text = str(value or "").strip().lower()
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = stripped.replace("đ", "d")
    return " ".join(stripped.split())


@dataclass(frozen=True)
class NameNormalizer:
    """Fuzzy staff-name key.

    With ``strip_numeric_suffix`` on, "Trần Thị B 2" and "Trần Thị B" share a
    key: a trailing standalone number is read as a duplicate-entry marker.
    """

    strip_numeric_suffix: bool = True

    def __call__(self, raw: Any) -> str:
        if raw is None:
            return ""
        folded = fold_text(raw)
        if self.strip_numeric_suffix:
            folded = TRAILING_NUMBER_RE.sub("", folded)
        return folded


DEFAULT_NORMALIZER = NameNormalizer()


def normalize_name(raw: Any) -> str:
    return DEFAULT_NORMALIZER(raw)
