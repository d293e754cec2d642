"""
Candidate scoring against the catalog.

A candidate must pass three gates before it is scored:

1. FORM - when the prescription implies a dosage form and the product declares
   one, they must agree (skipped in the relaxed pass)
2. ROUTE - when the prescription implies a route and the product declares
   routes, one of them must agree (skipped in the relaxed pass)
3. INGREDIENT - at least one ingredient-like token (> 2 chars) must appear in
   an active ingredient name or the product's search tokens

Survivors are scored with ScoringWeights; only positive scores are kept.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Set

from ..catalog import CatalogProduct
from ..form_route_mapping import canonical_dosage_form, canonical_routes
from .tokenizer import TokenContext

MAX_CANDIDATES = 100


@dataclass(frozen=True)
class ScoringWeights:
    token_hit: int = 4
    form_match: int = 12
    form_mismatch: int = -8
    route_match: int = 6
    route_mismatch: int = -6
    strength_hit: int = 8
    strength_unit_hit: int = 4
    package_hit: int = 3
    package_unit_hit: int = 2


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ScoredCandidate:
    product: CatalogProduct
    score: float


def compute_strength_score(
    product: CatalogProduct,
    numeric_tokens: Set[str],
    unit_tokens: Set[str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Bonus for numeric tokens found in ingredient strengths and package descriptions."""
    if not numeric_tokens:
        return 0
    score = 0

    strengths = [ing.strength.lower() for ing in product.active_ingredients if ing.strength]
    unit_in_strength = bool(unit_tokens) and any(
        unit in strength for strength in strengths for unit in unit_tokens
    )
    for numeric in numeric_tokens:
        if any(numeric in strength for strength in strengths):
            score += weights.strength_hit
            if unit_in_strength:
                score += weights.strength_unit_hit

    for pkg in product.packages:
        desc = (pkg.description or "").lower()
        if not desc:
            continue
        if any(token in desc for token in numeric_tokens):
            score += weights.package_hit
            if unit_tokens and any(unit in desc for unit in unit_tokens):
                score += weights.package_unit_hit

    return score


def _ingredient_hit(product: CatalogProduct, desired: List[str]) -> bool:
    names = [ing.name.lower() for ing in product.active_ingredients if ing.name]
    return any(
        token in product.search_tokens or any(token in name for name in names)
        for token in desired
    )


def evaluate_candidates(
    products: Iterable[CatalogProduct],
    context: TokenContext,
    relax_form: bool = False,
    relax_route: bool = False,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredCandidate]:
    """Gate and score every product; best first, ties in catalog order."""
    desired_form = context.desired_dosage_form
    desired_route = context.desired_route
    desired_ingredients = [tok for tok in context.ingredient_tokens if len(tok) > 2]

    out: List[ScoredCandidate] = []
    for product in products:
        form = canonical_dosage_form(product.dosage_form)
        routes = canonical_routes(product.routes)

        if not relax_form and desired_form and form and form != desired_form:
            continue
        if not relax_route and desired_route and routes and desired_route not in routes:
            continue
        if desired_ingredients and not _ingredient_hit(product, desired_ingredients):
            continue

        score = weights.token_hit * sum(1 for tok in context.tokens if tok in product.search_tokens)

        if desired_form and form == desired_form:
            score += weights.form_match
        elif desired_form and form:
            score += weights.form_mismatch

        if desired_route:
            if desired_route in routes:
                score += weights.route_match
            elif routes:
                score += weights.route_mismatch

        score += compute_strength_score(product, context.numeric_tokens, context.unit_tokens, weights)

        if score > 0:
            out.append(ScoredCandidate(product=product, score=score))

    out.sort(key=lambda c: c.score, reverse=True)
    return out[:MAX_CANDIDATES]


__all__ = [
    "DEFAULT_WEIGHTS",
    "MAX_CANDIDATES",
    "ScoredCandidate",
    "ScoringWeights",
    "compute_strength_score",
    "evaluate_candidates",
]
