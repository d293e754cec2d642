#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Catalog candidate matching: token context, gated scoring, fallbacks and suggestions."""

import dataclasses

import pytest

from ndc_pipelines.calc.scripts.catalog import Catalog
from ndc_pipelines.calc.scripts.matching import (
    DEFAULT_WEIGHTS,
    MatchCache,
    ParsedPrescription,
    ScoringWeights,
    build_token_context,
    compute_strength_score,
    evaluate_candidates,
    fallback_parse,
    prescription_from_payload,
    rank_candidates,
    simple_fallback,
    suggest_product,
)
from ndc_pipelines.calc.scripts.matching.matcher import FALLBACK_MODEL
from ndc_pipelines.calc.scripts.matching.scoring import MAX_CANDIDATES


class PickingAssistant:
    def __init__(self, parsed=None, pick=None, error=None):
        self.parsed = parsed
        self.pick = pick
        self.error = error
        self.seen_candidates = []

    def extract_sig(self, sig):
        return None

    def extract_prescription(self, drug, sig, days):
        if self.error:
            raise self.error
        return self.parsed

    def pick_candidate(self, parsed, candidates):
        self.seen_candidates = list(candidates)
        return self.pick


def test_fallback_parse() -> None:
    parsed = fallback_parse("Amoxicillin 500 mg capsules", "1 cap po tid")
    assert parsed.generic_name == "Amoxicillin 500 mg capsules"
    assert parsed.strength_tokens == ["500"]
    assert parsed.dosage_form == "capsules"
    assert parsed.route == "oral"
    assert "amoxicillin" in parsed.additional_keywords
    assert "500" not in parsed.additional_keywords
    assert "po" not in parsed.additional_keywords


def test_token_context_buckets() -> None:
    context = build_token_context(
        "Amoxicillin 500 mg capsules", "1 cap po tid", fallback_parse("Amoxicillin 500 mg capsules", "1 cap po tid")
    )
    assert "amoxicillin" in context.ingredient_tokens
    assert context.numeric_tokens == {"500"}
    assert "mg" not in context.tokens
    assert "capsules" not in context.tokens
    assert context.desired_dosage_form == "capsule"
    assert context.desired_route == "oral"


def test_unit_tokens_are_separated() -> None:
    parsed = ParsedPrescription(generic_name="albuterol", strength_tokens=["90"], additional_keywords=["puff", "x"])
    context = build_token_context("albuterol", None, parsed)
    assert context.unit_tokens == {"puff"}
    assert "x" not in context.tokens


def test_prescription_from_payload() -> None:
    parsed = prescription_from_payload(
        {"generic_name": "lisinopril", "strength_tokens": ["10", None], "route": "oral", "additional_keywords": "bad"}
    )
    assert parsed.generic_name == "lisinopril"
    assert parsed.strength_tokens == ["10"]
    assert parsed.additional_keywords == []
    assert prescription_from_payload(["not", "a", "dict"]) is None


def test_strict_pass_gates_on_form(catalog) -> None:
    drug, sig = "amoxicillin 500 mg capsules", "1 cap po tid"
    context = build_token_context(drug, sig, fallback_parse(drug, sig))
    candidates = evaluate_candidates(catalog, context)
    assert [c.product.product_ndc for c in candidates] == ["0093-3109"]
    # token +4, form +12, route +6, ingredient strength +8, package description +3
    assert candidates[0].score == 33


def test_weights_are_overridable(catalog) -> None:
    drug, sig = "amoxicillin 500 mg capsules", "1 cap po tid"
    context = build_token_context(drug, sig, fallback_parse(drug, sig))
    weights = dataclasses.replace(DEFAULT_WEIGHTS, form_match=0)
    assert evaluate_candidates(catalog, context, weights=weights)[0].score == 21


def test_abbreviated_form_passes_strict_gate(catalog) -> None:
    drug, sig = "lisinopril 10 mg tab", "1 po daily"
    context = build_token_context(drug, sig, fallback_parse(drug, sig))
    assert context.desired_dosage_form == "tablet"
    assert [c.product.product_ndc for c in evaluate_candidates(catalog, context)] == ["68180-513"]


def test_relaxed_pass_when_form_disagrees(catalog) -> None:
    drug, sig = "amoxicillin 500 mg tablet", "take 1 tablet po daily"
    parsed = fallback_parse(drug, sig)
    context = build_token_context(drug, sig, parsed)
    assert evaluate_candidates(catalog, context) == []

    ranked = rank_candidates(catalog, drug, sig, parsed)
    assert [c.product.product_ndc for c in ranked] == ["0093-3109", "0781-6156"]
    assert ranked[0].score == 13
    assert ranked[1].score == 2


def test_strength_score_with_units(catalog) -> None:
    product = catalog.find_product("0093-3109")
    assert compute_strength_score(product, {"500"}, set()) == 8 + 3
    assert compute_strength_score(product, {"500"}, {"mg"}) == 8 + 4 + 3
    assert compute_strength_score(product, set(), {"mg"}) == 0


def test_simple_fallback(catalog) -> None:
    hits = simple_fallback(catalog, "Amoxicillin")
    assert [(c.product.product_ndc, c.score) for c in hits] == [("0093-3109", 100), ("0781-6156", 100)]

    partial = simple_fallback(catalog, "ventolin inhaler 90")
    assert [(c.product.product_ndc, c.score) for c in partial] == [("0173-0682", 10)]
    assert simple_fallback(catalog, "   ") == []


def test_rank_falls_back_to_name_substring() -> None:
    catalog = Catalog.from_records(
        [
            {
                "productNdc": "1111-2222",
                "genericName": "Zincox",
                "dosageForm": "TABLET",
                "route": ["ORAL"],
                "packages": [],
            }
        ]
    )
    parsed = ParsedPrescription(generic_name="zincox", dosage_form="capsule", route="nasal")
    ranked = rank_candidates(catalog, "zincox", None, parsed, weights=ScoringWeights(token_hit=0))
    assert [(c.product.product_ndc, c.score) for c in ranked] == [("1111-2222", 100)]


def test_ties_keep_catalog_order() -> None:
    record = {
        "genericName": "Metformin",
        "dosageForm": "TABLET",
        "route": ["ORAL"],
        "activeIngredients": [{"name": "METFORMIN", "strength": "500 mg/1"}],
        "packages": [],
    }
    catalog = Catalog.from_records(
        [dict(record, productNdc="2222-0001"), dict(record, productNdc="2222-0002")]
    )
    ranked = rank_candidates(catalog, "metformin", "1 tab po bid", fallback_parse("metformin", "1 tab po bid"))
    assert [c.product.product_ndc for c in ranked] == ["2222-0001", "2222-0002"]


def _metformin_catalog(count: int) -> Catalog:
    record = {
        "genericName": "Metformin",
        "dosageForm": "TABLET",
        "route": ["ORAL"],
        "activeIngredients": [{"name": "METFORMIN", "strength": "500 mg/1"}],
        "packages": [],
    }
    return Catalog.from_records([dict(record, productNdc=f"3333-{i:04d}") for i in range(count)])


def test_scored_candidates_are_capped() -> None:
    catalog = _metformin_catalog(MAX_CANDIDATES + 50)
    context = build_token_context("metformin 500 mg", "1 tab po bid", fallback_parse("metformin 500 mg", "1 tab po bid"))
    scored = evaluate_candidates(catalog, context)
    assert len(scored) == MAX_CANDIDATES
    assert scored[0].product.product_ndc == "3333-0000"
    assert scored[-1].product.product_ndc == f"3333-{MAX_CANDIDATES - 1:04d}"


def test_fallback_candidates_are_capped() -> None:
    catalog = _metformin_catalog(MAX_CANDIDATES + 50)
    fallback = simple_fallback(catalog, "metformin xr")
    assert len(fallback) == MAX_CANDIDATES
    assert {c.score for c in fallback} == {10}


def test_match_cache(catalog) -> None:
    cache = MatchCache()
    parsed = fallback_parse("Lisinopril 10 mg", "1 tab daily")
    first = rank_candidates(catalog, "Lisinopril 10 mg", "1 tab daily", parsed, cache=cache)
    second = rank_candidates(catalog, "  lisinopril 10 MG ", "1 tab  daily", parsed, cache=cache)
    assert first == second
    assert len(cache) == 1
    assert (cache.hits, cache.misses) == (1, 1)


def test_match_cache_respects_weights(catalog) -> None:
    cache = MatchCache()
    drug, sig = "amoxicillin 500 mg capsules", "1 cap po tid"
    parsed = fallback_parse(drug, sig)
    default = rank_candidates(catalog, drug, sig, parsed, cache=cache)
    no_form = rank_candidates(
        catalog, drug, sig, parsed, weights=dataclasses.replace(DEFAULT_WEIGHTS, form_match=0), cache=cache
    )
    assert default[0].product.product_ndc == no_form[0].product.product_ndc == "0093-3109"
    assert no_form[0].score == default[0].score - DEFAULT_WEIGHTS.form_match
    assert len(cache) == 2
    assert (cache.hits, cache.misses) == (0, 2)


def test_match_cache_separates_parsed_prescriptions(catalog) -> None:
    cache = MatchCache()
    drug, sig = "amoxicillin 250", "5 ml po tid"
    local = rank_candidates(catalog, drug, sig, fallback_parse(drug, sig), cache=cache)
    assisted = ParsedPrescription(generic_name="amoxicillin", dosage_form="suspension", route="oral")
    rank_candidates(catalog, drug, sig, assisted, cache=cache)
    assert len(cache) == 2
    again = rank_candidates(catalog, drug, sig, fallback_parse(drug, sig), cache=cache)
    assert again == local
    assert cache.hits == 1


def test_suggest_product_deterministic(catalog) -> None:
    suggestion = suggest_product(catalog, "amoxicillin 500 mg capsules", "1 cap po tid", 10)
    assert suggestion.product.product_ndc == "0093-3109"
    assert suggestion.rationale == "Matched local NDC index on tokens: amoxicillin, capsule"
    assert suggestion.model == FALLBACK_MODEL
    assert suggestion.confidence is None
    assert (suggestion.requested_dosage_form, suggestion.requested_route) == ("capsule", "oral")


def test_suggest_product_no_match(catalog) -> None:
    assert suggest_product(catalog, "zzzunknown", "1 tab daily") is None


def test_suggest_product_assistant_pick(catalog) -> None:
    assistant = PickingAssistant(
        parsed={"generic_name": "amoxicillin", "strength_tokens": ["250"], "dosage_form": None, "route": "oral"},
        pick={"product_ndc": "0781-6156", "confidence": 0.82, "rationale": "suspension strength", "model": "stub-1"},
    )
    suggestion = suggest_product(catalog, "amoxicillin 250", "5 ml po tid", 10, assistant=assistant)
    assert suggestion.product.product_ndc == "0781-6156"
    assert suggestion.confidence == pytest.approx(0.82)
    assert suggestion.rationale == "suspension strength"
    assert suggestion.model == "stub-1"
    assert 0 < len(assistant.seen_candidates) <= 6
    assert {"product_ndc", "score", "package_examples"} <= set(assistant.seen_candidates[0])


def test_suggest_product_assistant_miss_uses_top_candidate(catalog) -> None:
    assistant = PickingAssistant(pick={"product_ndc": "not-a-candidate", "model": "stub-1"})
    suggestion = suggest_product(catalog, "amoxicillin 500 mg capsules", "1 cap po tid", assistant=assistant)
    assert suggestion.product.product_ndc == "0093-3109"
    assert suggestion.rationale == "Matched local NDC index via keyword scoring (LLM fallback)."
    assert suggestion.model == "stub-1"


def test_suggest_product_assistant_errors_use_local_parse(catalog) -> None:
    assistant = PickingAssistant(error=RuntimeError("timeout"))
    suggestion = suggest_product(catalog, "amoxicillin 500 mg capsules", "1 cap po tid", assistant=assistant)
    assert suggestion.product.product_ndc == "0093-3109"
    assert suggestion.model == FALLBACK_MODEL
