#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Single-prescription orchestration: resolve the drug to catalog packages, parse
the SIG, and cost the packages into a CalcResponse.

Lookup order:
1. NDC-looking input -> package lookup (lookup_type "ndc")
2. exact generic/brand name -> product lookup (lookup_type "product")
3. nothing usable yet -> suggest_product over the whole catalog (lookup_type "match")

Malformed input comes back as success=False with an error message; expected
misses (no match, unparseable packages) are warnings.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .assistant import TextAssistant
from .catalog import Catalog, CatalogProduct
from .errors import InvalidFormatError, InvalidQuantityError
from .form_route_mapping import canonical_dosage_form, canonical_routes
from .matching import MatchCache, ProductSuggestion, suggest_product
from .ndc_utils import looks_like_ndc, normalize_ndc
from .packages import (
    ISSUE_INACTIVE,
    PackageConversion,
    PackageIssue,
    PackageRecord,
    UnparsedPackage,
    convert_product_packages,
    issue_messages,
)
from .quantity import CalcResult, OverfillPolicy, build_calc_result
from .sig_parser import ParsedSig, parse_sig, select_sig_strategy
from .text_utils import safe_to_float

INVALID_REQUEST_ERROR = "Provide drug (or NDC), SIG, and days supply (>0)."
SIG_PARSE_ERROR = "Unable to parse SIG. Please provide clearer instructions."

LOOKUP_NDC = "ndc"
LOOKUP_PRODUCT = "product"
LOOKUP_MATCH = "match"


@dataclass
class CalcResponse:
    success: bool
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    calc: Optional[CalcResult] = None
    parsed_sig: Optional[ParsedSig] = None
    drug: str = ""
    sig: str = ""
    days: Optional[float] = None
    drug_name: Optional[str] = None
    lookup_type: Optional[str] = None
    unparsed_packages: List[UnparsedPackage] = field(default_factory=list)
    inactive_ndcs: List[Dict[str, Optional[str]]] = field(default_factory=list)
    suggestion: Optional[ProductSuggestion] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None
    requested_dosage_form: Optional[str] = None
    requested_route: Optional[str] = None

    @property
    def primary(self) -> Optional[PackageRecord]:
        if self.calc is None or not self.calc.selections:
            return None
        return self.calc.selections[0].package

    def suggestion_payload(self) -> Optional[Dict[str, Any]]:
        if self.suggestion is None:
            return None
        return {
            "productNdc": self.suggestion.product.product_ndc,
            "rationale": self.suggestion.rationale,
            "confidence": self.suggestion.confidence,
        }

    def to_dict(self) -> Dict[str, Any]:
        calc = self.calc or CalcResult()
        return {
            "input": {"drug": self.drug, "sig": self.sig, "days": self.days, "lookupType": self.lookup_type},
            "drugName": self.drug_name,
            "totalQuantity": calc.total_qty,
            "dispensedQuantity": calc.dispensed_qty,
            "overfillPercent": round(calc.overfill_pct * 100, 2),
            "ndcs": [
                {
                    "ndc11": sel.package.ndc,
                    "formatted": sel.package.formatted_ndc,
                    "packageSize": sel.package.size,
                    "unit": sel.package.unit,
                    "packs": sel.packs,
                    "dispensedQty": sel.dispensed_qty,
                    "inactive": sel.package.inactive,
                }
                for sel in calc.selections
            ],
            "unparsedPackages": [
                {
                    "ndc": pkg.ndc,
                    "description": pkg.description,
                    "labelerName": pkg.labeler_name,
                    "productName": pkg.product_name,
                }
                for pkg in self.unparsed_packages
            ],
            "inactiveNdcs": list(self.inactive_ndcs),
            "aiSuggestion": self.suggestion_payload(),
            "dosageForm": self.dosage_form,
            "route": self.route,
            "requestedDosageForm": self.requested_dosage_form,
            "requestedRoute": self.requested_route,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def _valid_days(days: Any) -> Optional[float]:
    value = safe_to_float(days)
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return value


def _product_name(product: CatalogProduct) -> str:
    return product.generic_name or product.brand_name or product.product_ndc


def _lookup_name(conversion: PackageConversion) -> Optional[str]:
    for pkg in conversion.packages:
        if pkg.product_name:
            return pkg.product_name
    if conversion.packages:
        return conversion.packages[0].labeler_name
    return None


def calculate_prescription(
    drug: str,
    sig: str,
    days: Any,
    catalog: Catalog,
    assistant: Optional[TextAssistant] = None,
    policy: Optional[OverfillPolicy] = None,
    cache: Optional[MatchCache] = None,
    today: Optional[date] = None,
    verbose: bool = False,
) -> CalcResponse:
    """Resolve, parse and cost one prescription."""
    drug = (drug or "").strip() if isinstance(drug, str) else ""
    sig = (sig or "").strip() if isinstance(sig, str) else ""
    days_value = _valid_days(days)
    if not drug or not sig or days_value is None:
        return CalcResponse(success=False, error=INVALID_REQUEST_ERROR, drug=drug, sig=sig)

    response = CalcResponse(success=False, drug=drug, sig=sig, days=days_value)
    packages: List[PackageRecord] = []
    issues: List[PackageIssue] = []
    product: Optional[CatalogProduct] = None

    if looks_like_ndc(drug):
        try:
            ndc11 = normalize_ndc(drug)
        except InvalidFormatError as exc:
            response.error = str(exc)
            return response
        response.lookup_type = LOOKUP_NDC
        hit = catalog.find_package(ndc11)
        product = hit[0] if hit else catalog.find_product(drug)
        if product is not None:
            conversion = convert_product_packages(product, today=today)
            packages = conversion.packages
            issues.extend(conversion.issues)
            response.unparsed_packages.extend(conversion.unparsed)
            response.drug_name = _lookup_name(conversion)
    else:
        product = catalog.find_by_name(drug)
        if product is not None:
            response.lookup_type = LOOKUP_PRODUCT
            conversion = convert_product_packages(product, today=today)
            packages = conversion.packages
            issues.extend(conversion.issues)
            response.unparsed_packages.extend(conversion.unparsed)
            response.drug_name = _product_name(product)

    if not packages:
        if verbose:
            print(f"[calculate_prescription] no packages for {drug!r}; matching against catalog")
        suggestion = suggest_product(
            catalog, drug, sig, days_value, assistant=assistant, cache=cache, verbose=verbose
        )
        if suggestion is not None:
            response.suggestion = suggestion
            conversion = convert_product_packages(suggestion.product, today=today)
            if conversion.packages:
                product = suggestion.product
                packages = conversion.packages
                response.lookup_type = LOOKUP_MATCH
                response.drug_name = response.drug_name or _product_name(suggestion.product)
                issues.extend(conversion.issues)
                response.unparsed_packages.extend(conversion.unparsed)

    if product is not None:
        response.dosage_form = canonical_dosage_form(product.dosage_form)
        routes = canonical_routes(product.routes)
        response.route = routes[0] if routes else None
    if response.suggestion is not None:
        response.requested_dosage_form = response.suggestion.requested_dosage_form
        response.requested_route = response.suggestion.requested_route

    sig_result = parse_sig(sig, select_sig_strategy(assistant, verbose=verbose))
    response.warnings.extend(sig_result.warnings)
    if sig_result.parsed is None:
        response.error = SIG_PARSE_ERROR
        return response
    response.parsed_sig = sig_result.parsed

    try:
        calc = build_calc_result(sig_result.parsed, days_value, packages, policy=policy)
    except InvalidQuantityError as exc:
        response.error = str(exc)
        return response

    response.inactive_ndcs = [
        {"ndc": issue.ndc or drug, "expiry": issue.description}
        for issue in issues
        if issue.kind == ISSUE_INACTIVE
    ]
    response.warnings.extend(issue_messages(issues))
    response.warnings.extend(calc.warnings)
    response.calc = calc
    response.drug_name = response.drug_name or drug
    response.success = True
    return response


__all__ = [
    "CalcResponse",
    "INVALID_REQUEST_ERROR",
    "LOOKUP_MATCH",
    "LOOKUP_NDC",
    "LOOKUP_PRODUCT",
    "SIG_PARSE_ERROR",
    "calculate_prescription",
]
