#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Parse package sizes ("100 TABLET in 1 BOTTLE") into a (size, canonical unit) pair."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Union

from .text_utils import safe_to_float

# Closed set of units a package or dose may be expressed in.
CANONICAL_UNITS: FrozenSet[str] = frozenset({
    "tablet", "capsule", "ml", "vial", "patch", "unit", "each", "dose",
    "syringe", "kit", "puff", "inhalation", "inhaler", "g", "mg", "mcg",
    "liter", "drop",
})

UNIT_ALIASES: Dict[str, str] = {
    "tablet": "tablet", "tablets": "tablet", "tab": "tablet", "tabs": "tablet",
    "capsule": "capsule", "capsules": "capsule", "cap": "capsule", "caps": "capsule",
    "ml": "ml", "milliliter": "ml", "milliliters": "ml",
    "millilitre": "ml", "millilitres": "ml", "cc": "ml",
    "vial": "vial", "vials": "vial",
    "patch": "patch", "patches": "patch",
    "unit": "unit", "units": "unit",
    "each": "each",
    "dose": "dose", "doses": "dose",
    "syringe": "syringe", "syringes": "syringe",
    "kit": "kit", "kits": "kit",
    "puff": "puff", "puffs": "puff",
    "actuation": "puff", "actuations": "puff",
    "spray": "puff", "sprays": "puff",
    "aerosol": "puff", "aerosols": "puff", "metered": "puff",
    "inhalation": "inhalation", "inhalations": "inhalation",
    "inhaler": "inhaler", "inhalers": "inhaler",
    "g": "g", "gram": "g", "grams": "g",
    "mg": "mg", "milligram": "mg", "milligrams": "mg",
    "mcg": "mcg", "microgram": "mcg", "micrograms": "mcg",
    "l": "liter", "liter": "liter", "liters": "liter", "litre": "liter", "litres": "liter",
    "drop": "drop", "drops": "drop",
}

SIZE_UNIT_RX = re.compile(r"(\d+(?:\.\d+)?)\s*([A-Za-z\[\]\-]+)", re.I)


@dataclass(frozen=True)
class ParsedPackageSize:
    size: float
    unit: str


def normalize_unit(raw: Optional[str]) -> Optional[str]:
    """Map a raw unit token to its canonical unit, or None when unsupported."""
    if not raw:
        return None
    return UNIT_ALIASES.get(raw.strip().lower())


def parse_package_description(
    description: Optional[str],
    count: Union[int, float, str, None] = None,
) -> Optional[ParsedPackageSize]:
    """
    Return the first <number><unit> pair whose unit resolves through UNIT_ALIASES.

    When nothing resolves, an explicit package count (numeric or numeric string)
    is used with unit "unit". Otherwise None: the package is unsupported.
    """
    for m in SIZE_UNIT_RX.finditer(description or ""):
        size = safe_to_float(m.group(1))
        unit = normalize_unit(m.group(2))
        if size is not None and unit:
            return ParsedPackageSize(size=size, unit=unit)

    if isinstance(count, bool):
        return None
    if isinstance(count, (int, float)):
        return ParsedPackageSize(size=float(count), unit="unit")
    if isinstance(count, str) and count.strip():
        value = safe_to_float(count)
        if value is not None:
            return ParsedPackageSize(size=value, unit="unit")
    return None


def extract_raw_unit(description: Optional[str]) -> Optional[str]:
    """First raw unit token in a description, used when reporting unsupported units."""
    m = SIZE_UNIT_RX.search(description or "")
    return m.group(2) if m else None


__all__ = [
    "CANONICAL_UNITS",
    "ParsedPackageSize",
    "UNIT_ALIASES",
    "extract_raw_unit",
    "normalize_unit",
    "parse_package_description",
]
