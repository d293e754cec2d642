"""
Prescription parsing and token context for catalog matching.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Optional, Set, Tuple

from ..form_route_mapping import (
    canonical_dosage_form,
    canonical_route,
    derive_route,
    guess_dosage_form,
    guess_dosage_form_from_text,
)
from ..text_utils import create_tokens, split_loose


# Tokens too common in drug/SIG text to discriminate between products
BASE_TOKENS: FrozenSet[str] = frozenset({
    "tab", "tabs", "tablet", "tablets",
    "capsule", "capsules", "cap", "caps",
    "ml", "mg", "mcg", "solution", "oral", "po",
    "take", "sig", "daily", "day", "supply",
})

UNIT_TOKENS: FrozenSet[str] = frozenset({
    "mg", "mcg", "g", "ml", "unit", "units", "meq", "puff",
    "actuation", "actuations", "inhalation", "inhalations",
})

_DIGIT_RX = re.compile(r"\d")


@dataclass
class ParsedPrescription:
    generic_name: Optional[str] = None
    brand_name: Optional[str] = None
    strength_tokens: List[str] = field(default_factory=list)
    dosage_form: Optional[str] = None
    route: Optional[str] = None
    additional_keywords: List[str] = field(default_factory=list)

    def fingerprint(self) -> Tuple[Any, ...]:
        """Hashable view of every field, for cache keys."""
        return (
            self.generic_name,
            self.brand_name,
            tuple(self.strength_tokens),
            self.dosage_form,
            self.route,
            tuple(self.additional_keywords),
        )

    def to_dict(self) -> dict:
        return {
            "generic_name": self.generic_name,
            "brand_name": self.brand_name,
            "strength_tokens": list(self.strength_tokens),
            "dosage_form": self.dosage_form,
            "route": self.route,
            "additional_keywords": list(self.additional_keywords),
        }


@dataclass
class TokenContext:
    tokens: Set[str] = field(default_factory=set)
    ingredient_tokens: Set[str] = field(default_factory=set)
    numeric_tokens: Set[str] = field(default_factory=set)
    unit_tokens: Set[str] = field(default_factory=set)
    desired_dosage_form: Optional[str] = None
    desired_route: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.tokens or self.numeric_tokens or self.ingredient_tokens)

    def register(self, token: Optional[str]) -> None:
        if not token:
            return
        normalized = token.lower().strip()
        if len(normalized) < 2 or normalized in BASE_TOKENS:
            return
        self.tokens.add(normalized)
        if _DIGIT_RX.search(normalized):
            self.numeric_tokens.add(normalized)
        elif normalized in UNIT_TOKENS:
            self.unit_tokens.add(normalized)
        else:
            self.ingredient_tokens.add(normalized)


def fallback_parse(drug: str, sig: Optional[str] = None) -> ParsedPrescription:
    """Deterministic stand-in for assisted extraction."""
    drug_tokens = split_loose(drug)
    sig_tokens = split_loose(sig)
    combined = drug_tokens + sig_tokens
    strength_tokens = [tok for tok in drug_tokens if _DIGIT_RX.search(tok)]
    dosage_form = guess_dosage_form(combined) or guess_dosage_form(drug_tokens) or guess_dosage_form(sig_tokens)
    return ParsedPrescription(
        generic_name=drug,
        strength_tokens=strength_tokens,
        dosage_form=dosage_form,
        route=derive_route(sig),
        additional_keywords=[tok for tok in combined if len(tok) > 2 and tok not in strength_tokens],
    )


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None]


def _opt(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def prescription_from_payload(payload: Any) -> Optional[ParsedPrescription]:
    """Build a ParsedPrescription from an assistant JSON object; None when it is not an object."""
    if not isinstance(payload, dict):
        return None
    return ParsedPrescription(
        generic_name=_opt(payload.get("generic_name")),
        brand_name=_opt(payload.get("brand_name")),
        strength_tokens=_str_list(payload.get("strength_tokens")),
        dosage_form=_opt(payload.get("dosage_form")),
        route=_opt(payload.get("route")),
        additional_keywords=_str_list(payload.get("additional_keywords")),
    )


def build_token_context(drug: str, sig: Optional[str], parsed: ParsedPrescription) -> TokenContext:
    context = TokenContext()
    for value in (drug, parsed.generic_name, parsed.brand_name, parsed.dosage_form):
        for token in create_tokens(value):
            context.register(token)
    for token in parsed.additional_keywords:
        context.register(token)
    for token in parsed.strength_tokens:
        context.register(token)

    context.desired_dosage_form = canonical_dosage_form(
        parsed.dosage_form or guess_dosage_form_from_text(drug, sig)
    )
    context.desired_route = canonical_route(parsed.route or derive_route(sig))
    return context


__all__ = [
    "BASE_TOKENS",
    "ParsedPrescription",
    "TokenContext",
    "UNIT_TOKENS",
    "build_token_context",
    "fallback_parse",
    "prescription_from_payload",
]
