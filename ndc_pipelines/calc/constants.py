#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Shared constants for the NdcCalc pipeline."""

from __future__ import annotations

import os
from pathlib import Path

from ..utils import slugify_item_ref_code

ITEM_REF_CODE: str = "NdcCalc"
PIPELINE_SLUG: str = slugify_item_ref_code(ITEM_REF_CODE)
PROJECT_ROOT: Path = Path(__file__).resolve().parents[2]
PIPELINE_INPUTS_DIR: Path = Path(os.environ.get("PIPELINE_INPUTS_DIR", PROJECT_ROOT / "inputs" / "ndc"))
PIPELINE_OUTPUTS_DIR: Path = Path(os.environ.get("PIPELINE_OUTPUTS_DIR", PROJECT_ROOT / "outputs" / "ndc"))
# Gzip-compressed JSON index built from the openFDA NDC directory.
DEFAULT_CATALOG_PATH: Path = Path(
    os.environ.get("NDC_CATALOG_PATH", PIPELINE_INPUTS_DIR / "ndc-index.json.gz")
)

# Columns expected in a batch prescriptions CSV.
PRESCRIPTION_COLUMNS: tuple[str, ...] = ("drug", "sig", "days")

__all__ = [
    "ITEM_REF_CODE",
    "PIPELINE_SLUG",
    "PIPELINE_INPUTS_DIR",
    "PIPELINE_OUTPUTS_DIR",
    "DEFAULT_CATALOG_PATH",
    "PRESCRIPTION_COLUMNS",
    "PROJECT_ROOT",
]
