"""
Dosage-form and route canonicalization.

Free text (catalog fields, parsed prescriptions, SIG wording) is mapped onto a
closed vocabulary by ordered substring checks. Text that matches nothing is
kept as its lowercased first comma-delimited segment (forms) or lowercased
whole (routes).
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

# Ordered: first containment hit wins ("caplet" before the generic fallback, etc.).
FORM_KEYWORDS: List[Tuple[Tuple[str, ...], str]] = [
    (("tablet",), "tablet"),
    (("capsule",), "capsule"),
    (("caplet",), "capsule"),
    (("solution",), "solution"),
    (("suspension",), "suspension"),
    (("inhaler", "aerosol", "inhalant"), "inhaler"),
    (("injection", "injectable"), "injection"),
    (("patch",), "patch"),
    (("cream",), "cream"),
    (("ointment",), "ointment"),
    (("gel",), "gel"),
    (("spray",), "spray"),
    (("powder",), "powder"),
    (("granule",), "granule"),
    (("pen",), "pen"),
    (("kit",), "kit"),
]

# Whole-value pharmacy abbreviations; substring checks would miss "tab" and "cap".
FORM_ABBREVIATIONS: Dict[str, str] = {
    "tab": "tablet",
    "tabs": "tablet",
    "cap": "capsule",
    "caps": "capsule",
    "susp": "suspension",
    "soln": "solution",
    "inj": "injection",
}

# (substrings, exact tokens, canonical route)
ROUTE_KEYWORDS: List[Tuple[Tuple[str, ...], Tuple[str, ...], str]] = [
    (("oral",), ("po",), "oral"),
    (("intravenous",), ("iv",), "intravenous"),
    (("injection", "intramuscular"), ("im",), "injection"),
    (("subcutaneous",), ("sc", "sq"), "subcutaneous"),
    (("topical",), (), "topical"),
    (("transdermal",), (), "transdermal"),
    (("ophthalmic",), (), "ophthalmic"),
    (("otic",), (), "otic"),
    (("nasal",), (), "nasal"),
    (("inhalation",), (), "inhalation"),
]

# Route cues found in SIG wording, checked in order.
SIG_ROUTE_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\b(?:po|by mouth|orally|oral)\b"), "oral"),
    (re.compile(r"\bintravenous\b|\biv\b"), "intravenous"),
    (re.compile(r"\bintramuscular\b|\bim\b"), "injection"),
    (re.compile(r"\bsubcutaneous\b|\bsc\b|\bsq\b"), "subcutaneous"),
    (re.compile(r"\btopical\b|\bapply\b"), "topical"),
    (re.compile(r"\binhale\b|\binhalation\b"), "inhalation"),
    (re.compile(r"\bophthalmic\b|\beye\b"), "ophthalmic"),
    (re.compile(r"\botic\b|\bear\b"), "otic"),
    (re.compile(r"\bnasal\b"), "nasal"),
]

# Tokens recognised as a dosage form when guessing from free text.
FORM_TOKENS: Tuple[str, ...] = (
    "tablet", "tab", "tabs", "tablets", "capsule", "cap", "caps", "capsules", "solution",
    "suspension", "inhaler", "aerosol", "patch", "cream", "ointment", "gel",
    "spray", "injection", "syringe", "pen", "lozenge", "powder", "granules",
)


def canonical_dosage_form(form: Optional[str]) -> Optional[str]:
    if not form:
        return None
    normalized = form.lower()
    abbreviated = FORM_ABBREVIATIONS.get(normalized.strip(" ."))
    if abbreviated:
        return abbreviated
    for needles, canonical in FORM_KEYWORDS:
        if any(needle in normalized for needle in needles):
            return canonical
    return normalized.split(",")[0].strip() or None


def canonical_route(route: Optional[str]) -> Optional[str]:
    if not route:
        return None
    normalized = route.lower().strip()
    for needles, exact, canonical in ROUTE_KEYWORDS:
        if normalized in exact or any(needle in normalized for needle in needles):
            return canonical
    return normalized or None


def canonical_routes(routes: Iterable[Optional[str]]) -> List[str]:
    """Canonicalize a product's declared routes, dropping blanks."""
    out: List[str] = []
    for route in routes:
        canonical = canonical_route(route)
        if canonical:
            out.append(canonical)
    return out


def derive_route(sig: Optional[str]) -> Optional[str]:
    """Infer the administration route from SIG wording ("by mouth", "inhale", ...)."""
    if not sig:
        return None
    text = sig.lower()
    for rx, route in SIG_ROUTE_PATTERNS:
        if rx.search(text):
            return route
    return None


def guess_dosage_form(tokens: Sequence[str]) -> Optional[str]:
    """First token that names a dosage form."""
    for token in tokens:
        if token in FORM_TOKENS:
            return token
    return None


def guess_dosage_form_from_text(drug: Optional[str], sig: Optional[str] = None) -> Optional[str]:
    combined = f"{drug or ''} {sig or ''}".lower()
    if not combined.strip():
        return None
    return guess_dosage_form([tok for tok in re.split(r"[\s,]+", combined) if tok])


__all__ = [
    "FORM_ABBREVIATIONS",
    "FORM_KEYWORDS",
    "FORM_TOKENS",
    "ROUTE_KEYWORDS",
    "canonical_dosage_form",
    "canonical_route",
    "canonical_routes",
    "derive_route",
    "guess_dosage_form",
    "guess_dosage_form_from_text",
]
