"""
Resolve free-text drug names to catalog products.

rank_candidates runs strict -> relaxed -> name-substring fallback and stops at
the first pass that yields anything. suggest_product adds the optional
assistant on top: it may parse the prescription and pick among the top six,
otherwise the best-scored candidate wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..assistant import TextAssistant
from ..catalog import Catalog, CatalogProduct
from ..text_utils import normalize_text
from .scoring import DEFAULT_WEIGHTS, MAX_CANDIDATES, ScoredCandidate, ScoringWeights, evaluate_candidates
from .tokenizer import ParsedPrescription, build_token_context, fallback_parse, prescription_from_payload

ASSIST_TOP_N = 6
FALLBACK_MODEL = "fallback-local"


@dataclass(frozen=True)
class ProductSuggestion:
    product: CatalogProduct
    rationale: str
    confidence: Optional[float] = None
    model: Optional[str] = None
    # Canonical form/route the prescription asked for, kept for diagnostics.
    requested_dosage_form: Optional[str] = None
    requested_route: Optional[str] = None


CacheKey = Tuple[str, str, Optional[Tuple[Any, ...]], ScoringWeights]


class MatchCache:
    """
    Ranked candidates keyed by normalized (drug, sig) plus the parsed
    prescription and scoring weights they were ranked with. Unbounded, owned by
    the caller.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, List[ScoredCandidate]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(
        drug: str,
        sig: Optional[str],
        parsed: Optional[ParsedPrescription] = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> CacheKey:
        return (
            normalize_text(drug),
            normalize_text(sig),
            parsed.fingerprint() if parsed is not None else None,
            weights,
        )

    def get(
        self,
        drug: str,
        sig: Optional[str],
        parsed: Optional[ParsedPrescription] = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> Optional[List[ScoredCandidate]]:
        entry = self._entries.get(self.key(drug, sig, parsed, weights))
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    def put(
        self,
        drug: str,
        sig: Optional[str],
        candidates: List[ScoredCandidate],
        parsed: Optional[ParsedPrescription] = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self._entries[self.key(drug, sig, parsed, weights)] = list(candidates)

    def __len__(self) -> int:
        return len(self._entries)


def simple_fallback(catalog: Catalog, drug: str) -> List[ScoredCandidate]:
    """Substring match of the drug's first word (10) or whole text (100) against product names."""
    needle = " ".join((drug or "").lower().split())
    if not needle:
        return []
    first_word = needle.split(" ")[0]

    out: List[ScoredCandidate] = []
    for product in catalog:
        haystack = f"{product.generic_name or ''} {product.brand_name or ''}".lower()
        if first_word in haystack:
            out.append(ScoredCandidate(product=product, score=100 if needle in haystack else 10))
    out.sort(key=lambda c: c.score, reverse=True)
    return out[:MAX_CANDIDATES]


def rank_candidates(
    catalog: Catalog,
    drug: str,
    sig: Optional[str],
    parsed: ParsedPrescription,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    cache: Optional[MatchCache] = None,
) -> List[ScoredCandidate]:
    if cache is not None:
        cached = cache.get(drug, sig, parsed, weights)
        if cached is not None:
            return list(cached)

    context = build_token_context(drug, sig, parsed)
    candidates: List[ScoredCandidate] = []
    if not context.is_empty:
        candidates = evaluate_candidates(catalog, context, weights=weights)
        if not candidates:
            candidates = evaluate_candidates(catalog, context, relax_form=True, relax_route=True, weights=weights)
    if not candidates:
        candidates = simple_fallback(catalog, drug)

    if cache is not None:
        cache.put(drug, sig, candidates, parsed, weights)
    return candidates


def _candidate_payload(candidate: ScoredCandidate) -> dict:
    product = candidate.product
    return {
        "product_ndc": product.product_ndc,
        "generic_name": product.generic_name,
        "brand_name": product.brand_name,
        "dosage_form": product.dosage_form,
        "route": list(product.routes),
        "labeler_name": product.labeler_name,
        "score": candidate.score,
        "active_ingredients": [
            {"name": ing.name, "strength": ing.strength} for ing in product.active_ingredients[:3]
        ],
        "package_examples": [
            {"ndc": pkg.ndc, "description": pkg.description} for pkg in product.packages[:3]
        ],
    }


def _parse_prescription(
    drug: str,
    sig: Optional[str],
    days: Optional[float],
    assistant: Optional[TextAssistant],
    verbose: bool,
) -> ParsedPrescription:
    if assistant is not None:
        try:
            parsed = prescription_from_payload(assistant.extract_prescription(drug, sig, days))
        except Exception as exc:  # noqa: BLE001 - assistant failures degrade to the local parse
            if verbose:
                print(f"[suggest_product] assistant parse raised {type(exc).__name__}: {exc}")
            parsed = None
        if parsed is not None:
            return parsed
    return fallback_parse(drug, sig)


def _assistant_pick(
    assistant: TextAssistant,
    parsed: ParsedPrescription,
    top: Sequence[ScoredCandidate],
    verbose: bool,
) -> Optional[dict]:
    try:
        selection = assistant.pick_candidate(parsed.to_dict(), [_candidate_payload(c) for c in top])
    except Exception as exc:  # noqa: BLE001
        if verbose:
            print(f"[suggest_product] assistant pick raised {type(exc).__name__}: {exc}")
        return None
    return selection if isinstance(selection, dict) else None


def suggest_product(
    catalog: Catalog,
    drug: str,
    sig: Optional[str] = None,
    days: Optional[float] = None,
    assistant: Optional[TextAssistant] = None,
    cache: Optional[MatchCache] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    verbose: bool = False,
) -> Optional[ProductSuggestion]:
    """Best catalog product for a free-text drug, or None when nothing matches."""
    parsed = _parse_prescription(drug, sig, days, assistant, verbose)
    candidates = rank_candidates(catalog, drug, sig, parsed, weights=weights, cache=cache)
    if not candidates:
        return None
    best = candidates[0].product
    context = build_token_context(drug, sig, parsed)
    requested = {
        "requested_dosage_form": context.desired_dosage_form,
        "requested_route": context.desired_route,
    }

    if assistant is not None:
        selection = _assistant_pick(assistant, parsed, candidates[:ASSIST_TOP_N], verbose)
        picked_ndc = selection.get("product_ndc") if selection else None
        if picked_ndc:
            for candidate in candidates:
                if candidate.product.product_ndc == picked_ndc:
                    confidence = selection.get("confidence")
                    return ProductSuggestion(
                        product=candidate.product,
                        rationale=selection.get("rationale") or "AI-selected NDC based on text similarity",
                        confidence=confidence if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else None,
                        model=selection.get("model"),
                        **requested,
                    )
        return ProductSuggestion(
            product=best,
            rationale="Matched local NDC index via keyword scoring (LLM fallback).",
            model=(selection or {}).get("model") or FALLBACK_MODEL,
            **requested,
        )

    matched: List[str] = []
    for token in sorted(best.search_tokens):
        if len(token) > 2 and token not in matched:
            matched.append(token)
        if len(matched) == 5:
            break
    return ProductSuggestion(
        product=best,
        rationale=f"Matched local NDC index on tokens: {', '.join(matched)}",
        model=FALLBACK_MODEL,
        **requested,
    )


__all__ = [
    "ASSIST_TOP_N",
    "FALLBACK_MODEL",
    "MatchCache",
    "ProductSuggestion",
    "rank_candidates",
    "simple_fallback",
    "suggest_product",
]
