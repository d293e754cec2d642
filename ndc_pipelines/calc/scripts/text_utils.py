#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Shared text normalization helpers used by the catalog, parsers and matcher."""

import re
import unicodedata
from typing import List, Optional


def normalize_text(s: Optional[str]) -> str:
    """Fold accents, lowercase and collapse whitespace; punctuation is kept."""
    if not isinstance(s, str):
        return ""
    s = unicodedata.normalize("NFKD", s)
    s = "".join(c for c in s if not unicodedata.combining(c))
    s = s.lower()
    return re.sub(r"\s+", " ", s).strip()


def create_tokens(value: Optional[str]) -> List[str]:
    """Lowercase alphanumeric tokens; every other character acts as a separator."""
    if not isinstance(value, str) or not value:
        return []
    return [tok for tok in re.split(r"\s+", re.sub(r"[^a-z0-9\s]", " ", value.lower())) if tok]


def split_loose(value: Optional[str]) -> List[str]:
    """Lowercase split on whitespace and commas, punctuation preserved inside tokens."""
    if not isinstance(value, str) or not value:
        return []
    return [tok for tok in re.split(r"[\s,]+", value.lower()) if tok]


def safe_to_float(x) -> Optional[float]:
    """Convert to float when possible, returning None on failures."""
    if x is None or isinstance(x, bool):
        return None
    try:
        if isinstance(x, str):
            x = x.replace(",", ".").strip()
        return float(x)
    except (TypeError, ValueError):
        return None


__all__ = [
    "create_tokens",
    "normalize_text",
    "safe_to_float",
    "split_loose",
]
