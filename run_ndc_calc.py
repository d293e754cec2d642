#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
run_ndc_calc.py: NDC package selection and quantity calculation with spinner and timing.

Modes:
  • single: one prescription from --drug/--sig/--days; prints the JSON summary.
  • batch:  a CSV with drug,sig,days columns; writes one result row per prescription
            under ./outputs/ndc plus summary.txt.

Console behavior:
  • Only the spinner/timer lines, the JSON (single mode) and the final timing summary are printed.
  • Warnings about optional inputs go to stderr prefixed with "! ".
"""
from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Optional

from ndc_pipelines import (
    PipelineContext,
    PipelineOptions,
    PipelineRunParams,
    get_pipeline,
)
from ndc_pipelines.calc.constants import (
    DEFAULT_CATALOG_PATH,
    ITEM_REF_CODE,
    PIPELINE_INPUTS_DIR,
    PIPELINE_OUTPUTS_DIR,
    PIPELINE_SLUG,
    PROJECT_ROOT,
)
from ndc_pipelines.calc.scripts.assistant import assistant_from_env
from ndc_pipelines.calc.scripts.calculator import calculate_prescription
from ndc_pipelines.calc.scripts.catalog import Catalog, load_catalog
from ndc_pipelines.calc.scripts.quantity import OverfillPolicy
from ndc_pipelines.calc.scripts.spinner import run_with_spinner, timed_spinner
from ndc_pipelines.calc.scripts.timing import TimingCollector

THIS_DIR: Path = Path(__file__).resolve().parent


# ----------------------------
# Utilities
# ----------------------------
def _candidate_paths(pth: Path) -> list[Path]:
    if pth.is_absolute():
        return [pth]
    roots = (Path.cwd(), THIS_DIR, PIPELINE_INPUTS_DIR)
    found = [(root / pth).resolve() for root in roots] + [(PIPELINE_INPUTS_DIR / pth.name).resolve()]
    return list(dict.fromkeys(found))


def _resolve_input_path(p: str | os.PathLike[str]) -> Path:
    """Find p relative to the cwd, this checkout or the NDC inputs directory."""
    if not p:
        raise FileNotFoundError("No input path provided.")
    candidates = _candidate_paths(Path(p))
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(
        f"Input file not found: {p!s}. Looked in {[str(c) for c in candidates]!r}. "
        f"Place it under {PIPELINE_INPUTS_DIR} or pass an absolute path."
    )


def _ensure_dir(path: Path) -> Path:
    path = path.resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def _optional_catalog(path: Optional[str]) -> Optional[Path]:
    """Resolve --catalog; a missing explicit path falls back to the default index."""
    if path is None:
        return None
    try:
        return _resolve_input_path(path)
    except FileNotFoundError:
        print(
            f"! Catalog {path!s} not found; falling back to {DEFAULT_CATALOG_PATH}.",
            file=sys.stderr,
        )
        return None


# ----------------------------
# Modes
# ----------------------------
def run_single(args: argparse.Namespace, timings: TimingCollector) -> int:
    catalog_path = _optional_catalog(args.catalog)
    holder: dict[str, Catalog] = {}

    def _load() -> None:
        holder["catalog"] = load_catalog(catalog_path, verbose=args.verbose)

    timings.add("Load NDC catalog", timed_spinner("Load NDC catalog", _load))

    assistant = None if args.no_assist else assistant_from_env(verbose=args.verbose)
    policy = OverfillPolicy(enabled=args.overfill_warnings)
    start = time.perf_counter()
    response = run_with_spinner(
        "Calculate prescription",
        lambda: calculate_prescription(
            args.drug,
            args.sig,
            args.days,
            holder["catalog"],
            assistant=assistant,
            policy=policy,
            verbose=args.verbose,
        ),
    )
    timings.add("Calculate prescription", time.perf_counter() - start)

    if not response.success:
        print(f"ERROR: {response.error}", file=sys.stderr)
        for warning in response.warnings:
            print(f"! {warning}", file=sys.stderr)
        return 1
    for warning in response.warnings:
        print(f"! {warning}", file=sys.stderr)
    print(response.to_json())
    return 0


def run_batch(args: argparse.Namespace, timings: TimingCollector) -> int:
    pipeline = get_pipeline(ITEM_REF_CODE)
    outdir = _ensure_dir(PIPELINE_OUTPUTS_DIR)
    inputs_dir = _ensure_dir(PIPELINE_INPUTS_DIR)
    out_path = outdir / Path(args.out).name

    context = PipelineContext(project_root=PROJECT_ROOT, inputs_dir=inputs_dir, outputs_dir=outdir)
    params = PipelineRunParams(
        prescriptions_csv=_resolve_input_path(args.input),
        catalog_path=_optional_catalog(args.catalog),
        out_csv=out_path,
    )
    options = PipelineOptions(
        skip_summary=args.skip_summary,
        no_assist=args.no_assist,
        overfill_warnings=args.overfill_warnings,
        verbose=args.verbose,
        stage_runner=timed_spinner,
    )
    result = pipeline.run(context, params, options, timing_hook=timings.add)
    print(f"Results written to {result.matched_csv}")
    return 0


# ----------------------------
# Main entry
# ----------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve prescriptions to NDC packages and compute dispense quantities.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--catalog", default=None, help=f"Path to the NDC index (defaults to {DEFAULT_CATALOG_PATH})")
    parser.add_argument("--no-assist", action="store_true", help="Never call the text assistant even when OPENAI_API_KEY is set")
    parser.add_argument(
        "--overfill-warnings",
        action="store_true",
        help="Emit FDA overage guidance warnings when the primary package overfills",
    )
    parser.add_argument("--verbose", action="store_true", help="Print diagnostic messages")
    sub = parser.add_subparsers(dest="mode", required=True)

    single = sub.add_parser("single", help="Calculate one prescription and print its JSON summary")
    single.add_argument("--drug", required=True, help="Drug name or NDC")
    single.add_argument("--sig", required=True, help="Dosing instructions, e.g. 'Take 1 tablet twice daily'")
    single.add_argument("--days", required=True, type=float, help="Days supply")

    batch = sub.add_parser("batch", help="Calculate every row of a prescriptions CSV")
    batch.add_argument("--input", default="prescriptions.csv", help="CSV with drug, sig and days columns")
    batch.add_argument(
        "--out",
        default=f"{PIPELINE_SLUG}_results.csv",
        help=f"Output CSV filename (saved under {PIPELINE_OUTPUTS_DIR})",
    )
    batch.add_argument("--skip-summary", action="store_true", help="Do not write summary.txt")
    return parser


def main_entry(argv: Optional[list[str]] = None) -> int:
    """CLI front-end for the NdcCalc pipeline with spinner+timing."""
    args = build_parser().parse_args(argv)
    timings = TimingCollector()
    if args.mode == "single":
        code = run_single(args, timings)
    else:
        code = run_batch(args, timings)
    for line in timings.render():
        print(line)
    return code


if __name__ == "__main__":
    try:
        sys.exit(main_entry())
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        raise
