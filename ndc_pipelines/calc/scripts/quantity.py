#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Package selection and quantity arithmetic.

total = round(dose * frequency_per_day * days, 2). Every package with a
positive size is costed as ceil(total / size) packs (at least one), then
ranked: active before inactive, lower overfill first, smaller dispensed
quantity first. The top five are returned.

FDA overage guidance warnings are a policy knob (OverfillPolicy), off by
default.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .errors import InvalidQuantityError
from .ndc_utils import calculate_overfill, guidance_for_quantity
from .packages import PackageRecord
from .sig_parser import ParsedSig

MAX_SELECTIONS = 5
NO_PACKAGES_WARNING = "No FDA NDC packages match this drug. Verify the drug name or input NDC directly."


@dataclass(frozen=True)
class OverfillPolicy:
    enabled: bool = False
    tolerance: float = 0.12


@dataclass(frozen=True)
class SelectedPackage:
    package: PackageRecord
    packs: int
    dispensed_qty: float
    overfill_pct: float

    @property
    def ndc(self) -> str:
        return self.package.ndc

    @property
    def formatted_ndc(self) -> str:
        return self.package.formatted_ndc

    @property
    def inactive(self) -> bool:
        return self.package.inactive


@dataclass
class CalcResult:
    selections: List[SelectedPackage] = field(default_factory=list)
    total_qty: float = 0.0
    dispensed_qty: float = 0.0
    overfill_pct: float = 0.0
    warnings: List[str] = field(default_factory=list)


def total_quantity(parsed_sig: ParsedSig, days: float) -> float:
    total = round(parsed_sig.dose * parsed_sig.frequency_per_day * days, 2)
    if not math.isfinite(total) or total <= 0:
        raise InvalidQuantityError("Calculated quantity must be greater than zero.")
    return total


def cost_package(package: PackageRecord, total_qty: float) -> SelectedPackage:
    # Fractional sizes (0.3 mL syringes) leave float noise in both the ratio and the product.
    packs = max(1, math.ceil(round(total_qty / package.size, 9)))
    dispensed = round(packs * package.size, 4)
    if dispensed < total_qty:
        packs += 1
        dispensed = round(packs * package.size, 4)
    return SelectedPackage(
        package=package,
        packs=packs,
        dispensed_qty=dispensed,
        overfill_pct=calculate_overfill(total_qty, dispensed),
    )


def _overfill_warnings(primary: SelectedPackage, total_qty: float, policy: OverfillPolicy) -> List[str]:
    if not policy.enabled:
        return []
    guidance = guidance_for_quantity(total_qty)
    if primary.overfill_pct > policy.tolerance:
        pct = round(primary.overfill_pct * 100, 2)
        tolerance = round(policy.tolerance * 100, 2)
        notes = guidance.notes if guidance else "2011 allowance"
        return [
            f"Overfill {pct:g}% exceeds {tolerance:g}% tolerance. FDA guidance ({notes}) "
            "recommends limiting excess fill. Consider alternative packaging or manual adjustment."
        ]
    if guidance:
        return [f"FDA 2011 overage guidance: {guidance.notes}"]
    return []


def build_calc_result(
    parsed_sig: ParsedSig,
    days: float,
    packages: Iterable[PackageRecord],
    policy: Optional[OverfillPolicy] = None,
) -> CalcResult:
    """Cost every usable package against the prescription and rank them."""
    policy = policy or OverfillPolicy()
    total = total_quantity(parsed_sig, days)

    # sorted() is stable, so equal keys keep the caller's package order.
    selections = sorted(
        (cost_package(pkg, total) for pkg in packages if pkg.size > 0),
        key=lambda s: (s.inactive, s.overfill_pct, s.dispensed_qty),
    )

    if not selections:
        return CalcResult(total_qty=total, warnings=[NO_PACKAGES_WARNING])

    top = selections[:MAX_SELECTIONS]
    primary = top[0]
    warnings: List[str] = []
    if primary.inactive:
        warnings.append(f"Recommended NDC {primary.formatted_ndc} is inactive. Select an alternate package.")
    else:
        for alt in top[1:]:
            if alt.inactive:
                warnings.append(f"Alternate NDC {alt.formatted_ndc} is inactive and listed for reference only.")
    warnings.extend(_overfill_warnings(primary, total, policy))

    return CalcResult(
        selections=top,
        total_qty=total,
        dispensed_qty=primary.dispensed_qty,
        overfill_pct=round(primary.overfill_pct, 4),
        warnings=warnings,
    )


__all__ = [
    "CalcResult",
    "MAX_SELECTIONS",
    "NO_PACKAGES_WARNING",
    "OverfillPolicy",
    "SelectedPackage",
    "build_calc_result",
    "cost_package",
    "total_quantity",
]
