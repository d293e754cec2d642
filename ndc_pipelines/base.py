#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Run parameters, options and the staged base class shared by NDC pipelines."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

TimingHook = Callable[[str, float], None]
# Wraps a stage body (e.g. with a console spinner) and returns elapsed seconds.
StageRunner = Callable[[str, Callable[[], None]], float]


@dataclass(frozen=True)
class PipelineRunParams:
    """Files a batch run reads from and writes to."""

    prescriptions_csv: Path
    catalog_path: Optional[Path] = None
    out_csv: Optional[Path] = None


@dataclass(frozen=True)
class PipelineContext:
    """Resolved project directories."""

    project_root: Path
    inputs_dir: Path
    outputs_dir: Path

    def prepared_csv(self, slug: str) -> Path:
        return self.inputs_dir / f"{slug}_prepared.csv"

    def results_csv(self, slug: str) -> Path:
        return self.outputs_dir / f"{slug}_results.csv"


@dataclass
class PipelineOptions:
    """Per-run switches.

    ``assistant`` overrides the environment-configured text assistant (tests
    pass fakes here); ``no_assist`` wins over both.
    """

    skip_summary: bool = False
    no_assist: bool = False
    overfill_warnings: bool = False
    verbose: bool = False
    stage_runner: Optional[StageRunner] = None
    assistant: Optional[Any] = None


@dataclass
class PipelinePreparedInputs:
    """Normalized prescriptions plus whatever the preparation stages tracked."""

    prescriptions_csv: Path
    catalog_path: Optional[Path] = None
    artifacts: Dict[str, Path] = field(default_factory=dict)


@dataclass
class PipelineResult:
    """Where the calculated rows landed, plus optional side outputs."""

    matched_csv: Path
    prepared: PipelinePreparedInputs
    extras: Dict[str, Path] = field(default_factory=dict)


class BasePipeline:
    """Staged contract: pre_run -> prepare_inputs -> match -> post_run."""

    item_ref_code: str = ""
    display_name: str = ""
    description: str = ""

    @staticmethod
    def run_stage(
        label: str,
        func: Callable[[], None],
        options: PipelineOptions,
        timing_hook: Optional[TimingHook] = None,
    ) -> float:
        """Run one stage body through the configured runner and report its timing."""
        if options.stage_runner is not None:
            elapsed = options.stage_runner(label, func)
        else:
            t0 = time.perf_counter()
            func()
            elapsed = time.perf_counter() - t0
        if timing_hook:
            timing_hook(label, elapsed)
        return elapsed

    def pre_run(
        self,
        context: PipelineContext,
        params: PipelineRunParams,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> Mapping[str, Path]:
        """Load shared resources; returned paths are merged into the prepared artifacts."""
        return {}

    def prepare_inputs(
        self,
        context: PipelineContext,
        params: PipelineRunParams,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> PipelinePreparedInputs:
        raise NotImplementedError

    def match(
        self,
        context: PipelineContext,
        prepared: PipelinePreparedInputs,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> PipelineResult:
        raise NotImplementedError

    def post_run(
        self,
        context: PipelineContext,
        result: PipelineResult,
        options: PipelineOptions,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> None:
        """Optional reporting after the calculation stage."""

    def run(
        self,
        context: PipelineContext,
        params: PipelineRunParams,
        options: Optional[PipelineOptions] = None,
        *,
        timing_hook: Optional[TimingHook] = None,
    ) -> PipelineResult:
        opts = options or PipelineOptions()
        loaded = dict(self.pre_run(context, params, opts, timing_hook=timing_hook))
        prepared = self.prepare_inputs(context, params, opts, timing_hook=timing_hook)
        prepared.artifacts.update(loaded)
        result = self.match(context, prepared, opts, timing_hook=timing_hook)
        self.post_run(context, result, opts, timing_hook=timing_hook)
        return result


__all__ = [
    "BasePipeline",
    "PipelineContext",
    "PipelineOptions",
    "PipelinePreparedInputs",
    "PipelineResult",
    "PipelineRunParams",
    "StageRunner",
    "TimingHook",
]
