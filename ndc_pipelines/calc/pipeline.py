#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Pipeline implementation for ITEM_REF_CODE == 'NdcCalc'."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from ..base import (
    BasePipeline,
    PipelineContext,
    PipelineOptions,
    PipelinePreparedInputs,
    PipelineResult,
    PipelineRunParams,
    TimingHook,
)
from ..registry import register_pipeline
from .constants import ITEM_REF_CODE, PIPELINE_SLUG
from .scripts.assistant import TextAssistant, assistant_from_env
from .scripts.calculator import CalcResponse, calculate_prescription
from .scripts.catalog import Catalog, load_catalog
from .scripts.io_utils import read_prescriptions_csv, records_to_frame, write_csv
from .scripts.matching import MatchCache
from .scripts.quantity import OverfillPolicy

OUTPUT_COLUMNS: tuple[str, ...] = (
    "drug",
    "sig",
    "days",
    "success",
    "error",
    "lookup_type",
    "drug_name",
    "total_qty",
    "dispensed_qty",
    "overfill_pct",
    "primary_ndc",
    "packs",
    "unit",
    "warnings",
    "json",
)
WARNING_SEPARATOR = " | "


def response_row(drug: str, sig: str, days: str, response: CalcResponse) -> Dict[str, object]:
    """Flatten one CalcResponse into an output CSV row."""
    calc = response.calc
    primary = calc.selections[0] if calc and calc.selections else None
    return {
        "drug": drug,
        "sig": sig,
        "days": days,
        "success": response.success,
        "error": response.error or "",
        "lookup_type": response.lookup_type or "",
        "drug_name": response.drug_name or "",
        "total_qty": calc.total_qty if calc else None,
        "dispensed_qty": calc.dispensed_qty if calc else None,
        "overfill_pct": calc.overfill_pct if calc else None,
        "primary_ndc": primary.formatted_ndc if primary else "",
        "packs": primary.packs if primary else None,
        "unit": primary.package.unit if primary else "",
        "warnings": WARNING_SEPARATOR.join(response.warnings),
        "json": response.to_json() if response.success else "",
    }


@register_pipeline
class NdcCalcPipeline(BasePipeline):
    """Batch NDC package selection and dispense-quantity calculation."""

    item_ref_code = ITEM_REF_CODE
    display_name = "NDC Calc"
    description = "Resolves prescriptions to NDC packages and computes dispense quantities and overfill."

    def __init__(self) -> None:
        self.catalog: Optional[Catalog] = None
        self.cache = MatchCache()

    def pre_run(
        self,
        context: PipelineContext,
        params: PipelineRunParams,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> Mapping[str, Path]:
        catalog_path = Path(params.catalog_path) if params.catalog_path else None

        def _load() -> None:
            self.catalog = load_catalog(catalog_path, verbose=options.verbose)

        self.run_stage("Load NDC catalog", _load, options, timing_hook)
        return {"catalog": catalog_path} if catalog_path else {}

    def prepare_inputs(
        self,
        context: PipelineContext,
        params: PipelineRunParams,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> PipelinePreparedInputs:
        prepared_csv = context.prepared_csv(PIPELINE_SLUG)
        out_csv = Path(params.out_csv) if params.out_csv else context.results_csv(PIPELINE_SLUG)

        def _prepare() -> None:
            df = read_prescriptions_csv(Path(params.prescriptions_csv))
            write_csv(df, prepared_csv)

        self.run_stage("Prepare prescriptions", _prepare, options, timing_hook)
        return PipelinePreparedInputs(
            prescriptions_csv=prepared_csv,
            catalog_path=params.catalog_path,
            artifacts={"out_csv": out_csv},
        )

    def match(
        self,
        context: PipelineContext,
        prepared: PipelinePreparedInputs,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> PipelineResult:
        if self.catalog is None:
            self.catalog = load_catalog(prepared.catalog_path, verbose=options.verbose)
        out_path = Path(prepared.artifacts.get("out_csv") or context.results_csv(PIPELINE_SLUG))
        assistant = self._assistant(options)
        policy = OverfillPolicy(enabled=options.overfill_warnings)
        catalog = self.catalog

        def _match() -> None:
            df = read_prescriptions_csv(prepared.prescriptions_csv)
            rows: List[Dict[str, object]] = []
            for drug, sig, days in zip(df["drug"], df["sig"], df["days"]):
                response = calculate_prescription(
                    drug,
                    sig,
                    days,
                    catalog,
                    assistant=assistant,
                    policy=policy,
                    cache=self.cache,
                    verbose=options.verbose,
                )
                rows.append(response_row(drug, sig, days, response))
            write_csv(records_to_frame(rows, OUTPUT_COLUMNS), out_path)

        self.run_stage("Calculate quantities", _match, options, timing_hook)
        return PipelineResult(matched_csv=out_path, prepared=prepared)

    def post_run(
        self,
        context: PipelineContext,
        result: PipelineResult,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> None:
        if options.skip_summary:
            return
        summary_path = result.matched_csv.parent / "summary.txt"

        def _summarize() -> None:
            df = read_prescriptions_csv(result.matched_csv, required=("success", "lookup_type"))
            summary_path.write_text(render_summary(df["success"], df["lookup_type"]), encoding="utf-8")

        self.run_stage("Write summary", _summarize, options, timing_hook)
        result.extras["summary"] = summary_path

    @staticmethod
    def _assistant(options: PipelineOptions) -> Optional[TextAssistant]:
        if options.no_assist:
            return None
        if options.assistant is not None:
            return options.assistant
        return assistant_from_env(verbose=options.verbose)


def render_summary(success: List[str], lookup_types: List[str]) -> str:
    """Plain-text counts of rows by outcome and by lookup type."""
    outcomes = Counter("ok" if str(flag).strip().lower() == "true" else "failed" for flag in success)
    lookups = Counter(str(kind).strip() or "none" for kind in lookup_types)
    total = sum(outcomes.values())
    lines = [f"NDC calc summary: {total:,} prescriptions", ""]
    lines.append("By outcome:")
    for key in ("ok", "failed"):
        lines.append(f"  {key}: {outcomes.get(key, 0):,}")
    lines.append("")
    lines.append("By lookup type:")
    for key, count in sorted(lookups.items(), key=lambda kv: (-kv[1], kv[0])):
        lines.append(f"  {key}: {count:,}")
    return "\n".join(lines) + "\n"


__all__ = ["NdcCalcPipeline", "OUTPUT_COLUMNS", "render_summary", "response_row"]
