#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Convert catalog packages into dispensable PackageRecords and report the ones that do not parse."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from .catalog import CatalogProduct
from .errors import InvalidFormatError
from .ndc_utils import format_ndc11, normalize_ndc
from .package_parser import extract_raw_unit, parse_package_description

ISSUE_INACTIVE = "inactive"
ISSUE_UNSUPPORTED_UNIT = "unsupported_unit"
ISSUE_NO_PACKAGES = "no_packages"

ISSUE_PRIORITY: Dict[str, int] = {
    ISSUE_INACTIVE: 0,
    ISSUE_UNSUPPORTED_UNIT: 1,
    ISSUE_NO_PACKAGES: 2,
}


@dataclass(frozen=True)
class PackageRecord:
    ndc: str
    formatted_ndc: str
    size: float
    unit: str
    inactive: bool = False
    description: str = ""
    labeler_name: Optional[str] = None
    product_name: Optional[str] = None
    marketing_end_date: Optional[str] = None


@dataclass(frozen=True)
class UnparsedPackage:
    ndc: str
    description: str
    labeler_name: Optional[str] = None
    product_name: Optional[str] = None


@dataclass(frozen=True)
class PackageIssue:
    kind: str
    ndc: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None


@dataclass
class PackageConversion:
    packages: List[PackageRecord] = field(default_factory=list)
    unparsed: List[UnparsedPackage] = field(default_factory=list)
    issues: List[PackageIssue] = field(default_factory=list)


def parse_marketing_date(value: Optional[str]) -> Optional[date]:
    """Accept YYYY-MM-DD and openFDA's compact YYYYMMDD; anything else is unknown."""
    if not value:
        return None
    text = value.strip()
    for fmt in ("%Y-%m-%d", "%Y%m%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def is_before(value: Optional[str], today: date) -> bool:
    parsed = parse_marketing_date(value)
    return parsed is not None and parsed < today


def is_inactive(product_end: Optional[str], package_end: Optional[str], today: date) -> bool:
    return is_before(product_end, today) or is_before(package_end, today)


def convert_product_packages(product: CatalogProduct, today: Optional[date] = None) -> PackageConversion:
    """
    Normalize, parse and deduplicate a product's packages.

    Packages with codes that cannot be normalized are skipped. Packages whose
    description yields no supported unit become unsupported_unit issues and
    UnparsedPackage entries. Duplicated codes keep their first occurrence, so a
    repeated unsupported package is reported once.
    """
    today = today or date.today()
    out = PackageConversion()
    seen: set[str] = set()
    product_name = product.display_name

    for pkg in product.packages:
        try:
            normalized = normalize_ndc(pkg.ndc)
        except InvalidFormatError:
            continue
        if normalized in seen:
            continue
        seen.add(normalized)
        formatted = format_ndc11(normalized)
        description = pkg.description or ""
        size_info = parse_package_description(description)

        if size_info is None:
            out.issues.append(
                PackageIssue(
                    kind=ISSUE_UNSUPPORTED_UNIT,
                    ndc=formatted,
                    description=description,
                    unit=extract_raw_unit(description),
                )
            )
            out.unparsed.append(
                UnparsedPackage(
                    ndc=formatted,
                    description=description,
                    labeler_name=product.labeler_name,
                    product_name=product_name,
                )
            )
            continue

        if size_info.size <= 0:
            continue

        inactive = is_inactive(product.marketing_end_date, pkg.marketing_end_date, today)
        if inactive:
            out.issues.append(
                PackageIssue(
                    kind=ISSUE_INACTIVE,
                    ndc=formatted,
                    description=pkg.marketing_end_date or product.marketing_end_date,
                )
            )
        out.packages.append(
            PackageRecord(
                ndc=normalized,
                formatted_ndc=formatted,
                size=size_info.size,
                unit=size_info.unit,
                inactive=inactive,
                description=description,
                labeler_name=product.labeler_name,
                product_name=product_name,
                marketing_end_date=pkg.marketing_end_date or product.marketing_end_date,
            )
        )

    if not product.packages:
        out.issues.append(PackageIssue(kind=ISSUE_NO_PACKAGES, ndc=product.product_ndc))
    return out


def issue_messages(issues: Iterable[PackageIssue]) -> List[str]:
    """Render issues as warnings, most severe first; no_packages stays silent."""
    messages: List[str] = []
    for issue in sorted(issues, key=lambda i: ISSUE_PRIORITY.get(i.kind, 99)):
        if issue.kind == ISSUE_INACTIVE:
            expiry = f" (expired {issue.description})" if issue.description else ""
            messages.append(f"{issue.ndc or 'NDC'} is inactive{expiry}. Select an active package before dispensing.")
        elif issue.kind == ISSUE_UNSUPPORTED_UNIT:
            unit = issue.unit or "unknown unit"
            messages.append(
                f'Catalog returned a package ({issue.ndc or "NDC"}) using unsupported unit "{unit}". '
                "Try searching by drug name or selecting a different NDC."
            )
    return messages


__all__ = [
    "ISSUE_INACTIVE",
    "ISSUE_NO_PACKAGES",
    "ISSUE_UNSUPPORTED_UNIT",
    "PackageConversion",
    "PackageIssue",
    "PackageRecord",
    "UnparsedPackage",
    "convert_product_packages",
    "is_inactive",
    "issue_messages",
    "parse_marketing_date",
]
