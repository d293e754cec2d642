"""
Catalog candidate matching.

Submodules:
- tokenizer: prescription parsing and token context
- scoring: gated candidate scoring with tunable weights
- matcher: strict/relaxed/fallback ranking and product suggestion

Usage:
    from ndc_pipelines.calc.scripts.matching import suggest_product

    suggestion = suggest_product(catalog, "amoxicillin 500 mg capsule", "1 cap po tid")
"""

from .matcher import MatchCache, ProductSuggestion, rank_candidates, simple_fallback, suggest_product
from .scoring import DEFAULT_WEIGHTS, ScoredCandidate, ScoringWeights, compute_strength_score, evaluate_candidates
from .tokenizer import ParsedPrescription, TokenContext, build_token_context, fallback_parse, prescription_from_payload

__all__ = [
    "DEFAULT_WEIGHTS",
    "MatchCache",
    "ParsedPrescription",
    "ProductSuggestion",
    "ScoredCandidate",
    "ScoringWeights",
    "TokenContext",
    "build_token_context",
    "compute_strength_score",
    "evaluate_candidates",
    "fallback_parse",
    "prescription_from_payload",
    "rank_candidates",
    "simple_fallback",
    "suggest_product",
]
