#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""NDC normalization/formatting helpers plus overfill arithmetic and FDA overage guidance."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import InvalidFormatError

_NON_DIGIT_RX = re.compile(r"\D")
_SEGMENT_RX = re.compile(r"^(\d{1,5})[-\s]?(\d{1,4})[-\s]?(\d{1,2})$")
_LOOKS_LIKE_RX = re.compile(r"^[\d\- ]{10,14}$")


def digits_only(value: Optional[str]) -> str:
    """Strip everything but ASCII digits."""
    if not value:
        return ""
    return _NON_DIGIT_RX.sub("", str(value))


def normalize_ndc(value: str) -> str:
    """
    Normalize a 10- or 11-digit NDC in any common layout to the 11-digit plain form.

    10-digit inputs are re-segmented from their hyphen/space layout (an
    undelimited run reads as 5-4-1) and zero-padded by segment signature:

    - 4-4-2 -> pad labeler
    - 5-3-2 -> pad product
    - 5-4-1 -> pad package

    Raises InvalidFormatError for anything else.
    """
    if not value:
        raise InvalidFormatError("NDC input is empty")

    trimmed = str(value).strip()
    digits = digits_only(trimmed)
    if not digits:
        raise InvalidFormatError("NDC must contain digits")

    if len(digits) == 11:
        return digits
    if len(digits) != 10:
        raise InvalidFormatError("NDC must be 10 or 11 digits")

    m = _SEGMENT_RX.match(trimmed)
    if m:
        labeler, product, package = m.group(1), m.group(2), m.group(3)
    else:
        labeler, product, package = digits[:4], digits[4:8], digits[8:]

    signature = (len(labeler), len(product), len(package))
    if signature == (4, 4, 2):
        return f"0{labeler}{product}{package}"
    if signature == (5, 3, 2):
        return f"{labeler}0{product}{package}"
    if signature == (5, 4, 1):
        return f"{labeler}{product}0{package}"
    # fallback: assume labeler needs padding
    if len(labeler) == 4:
        return f"0{labeler}{product}{package}"
    raise InvalidFormatError("Unable to normalize NDC format")


def format_ndc11(ndc11: str) -> str:
    """Render an 11-digit NDC as 5-4-2 with hyphens."""
    plain = digits_only(ndc11)
    if len(plain) != 11:
        raise InvalidFormatError("NDC must be 11 digits to format")
    return f"{plain[:5]}-{plain[5:9]}-{plain[9:]}"


def looks_like_ndc(value: str) -> bool:
    """Heuristic: 10-14 chars of digits, hyphens and spaces."""
    if not isinstance(value, str):
        return False
    return bool(_LOOKS_LIKE_RX.match(value.strip()))


def calculate_overfill(total_needed: float, dispensed: float) -> float:
    """Fraction by which dispensed exceeds what is needed (0 when nothing is needed)."""
    if total_needed <= 0:
        return 0.0
    return (dispensed - total_needed) / total_needed


@dataclass(frozen=True)
class OverageGuidance:
    """One band of the FDA 2011 overage allowance table."""

    min_qty: float
    max_qty: float
    notes: str
    allowance_units: Optional[int] = None
    allowance_percent: Optional[float] = None


FDA_OVERAGE_GUIDANCE: List[OverageGuidance] = [
    OverageGuidance(0, 30, "<=30 units -> +1 unit (~2-3%)", allowance_units=1),
    OverageGuidance(31, 100, "31-100 units -> +1 unit (~1%)", allowance_units=1),
    OverageGuidance(101, 500, "101-500 units -> +1-2 units (0.5-1%)", allowance_units=2),
    OverageGuidance(501, float("inf"), ">500 units -> +0.25-0.5%", allowance_percent=0.5),
]


def guidance_for_quantity(qty: float) -> Optional[OverageGuidance]:
    """Return the guidance band for qty; fractional quantities between bands go to the next band."""
    if qty < 0:
        return None
    for band in FDA_OVERAGE_GUIDANCE:
        if qty <= band.max_qty:
            return band
    return None


__all__ = [
    "FDA_OVERAGE_GUIDANCE",
    "OverageGuidance",
    "calculate_overfill",
    "digits_only",
    "format_ndc11",
    "guidance_for_quantity",
    "looks_like_ndc",
    "normalize_ndc",
]
