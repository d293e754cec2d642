#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Maps ITEM_REF_CODEs (and their slugs) to pipeline classes."""

from __future__ import annotations

from typing import Dict, Iterable, List, Type

from .base import BasePipeline
from .utils import slugify_item_ref_code


PIPELINE_REGISTRY: Dict[str, Type[BasePipeline]] = {}


def register_pipeline(cls: Type[BasePipeline]) -> Type[BasePipeline]:
    """Class decorator; the class must set item_ref_code."""
    code = getattr(cls, "item_ref_code", None)
    if not code:
        raise ValueError(f"Pipeline {cls.__name__} must define item_ref_code.")
    existing = PIPELINE_REGISTRY.get(code)
    if existing is not None and existing is not cls:
        raise ValueError(f"ITEM_REF_CODE {code!r} is already registered to {existing.__name__}.")
    PIPELINE_REGISTRY[code] = cls
    return cls


def _resolve(code_or_slug: str) -> Type[BasePipeline]:
    if code_or_slug in PIPELINE_REGISTRY:
        return PIPELINE_REGISTRY[code_or_slug]
    for code, cls in PIPELINE_REGISTRY.items():
        if slugify_item_ref_code(code) == code_or_slug:
            return cls
    raise KeyError(f"No pipeline registered for ITEM_REF_CODE={code_or_slug!r}.")


def get_pipeline(code_or_slug: str) -> BasePipeline:
    """Instantiate the pipeline for an ITEM_REF_CODE such as 'NdcCalc' or its slug 'ndc_calc'."""
    return _resolve(code_or_slug)()


def pipeline_codes() -> List[str]:
    return sorted(PIPELINE_REGISTRY)


def list_pipelines() -> Iterable[BasePipeline]:
    for code in pipeline_codes():
        yield PIPELINE_REGISTRY[code]()


# Implementations register themselves on import.
from .calc.pipeline import NdcCalcPipeline  # noqa: E402,F401


__all__ = ["PIPELINE_REGISTRY", "get_pipeline", "list_pipelines", "pipeline_codes", "register_pipeline"]
