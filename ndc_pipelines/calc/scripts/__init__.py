#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Exports convenience aliases for NdcCalc pipeline modules."""

from .calculator import CalcResponse, calculate_prescription
from .catalog import Catalog, load_catalog
from .matching import MatchCache, suggest_product
from .ndc_utils import format_ndc11, normalize_ndc
from .package_parser import parse_package_description
from .quantity import OverfillPolicy, build_calc_result
from .sig_parser import parse_sig

__all__ = [
    "CalcResponse",
    "Catalog",
    "MatchCache",
    "OverfillPolicy",
    "build_calc_result",
    "calculate_prescription",
    "format_ndc11",
    "load_catalog",
    "normalize_ndc",
    "parse_package_description",
    "parse_sig",
    "suggest_product",
]
