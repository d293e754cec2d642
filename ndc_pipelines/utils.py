#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Naming helpers for pipeline codes and their output files."""

from __future__ import annotations

import re

# Word boundaries inside CamelCase codes; an acronym run ("NDC" in "NDCCalc") stays one word.
_CAMEL_BOUNDARY_RX = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def slugify_item_ref_code(item_ref_code: str) -> str:
    """'NdcCalc' -> 'ndc_calc', 'NDCCalc' -> 'ndc_calc'; slugs pass through unchanged."""
    code = (item_ref_code or "").strip()
    if not code:
        raise ValueError("item_ref_code must be a non-empty string.")
    return _CAMEL_BOUNDARY_RX.sub("_", code).replace("-", "_").lower()


__all__ = ["slugify_item_ref_code"]
