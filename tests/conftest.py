#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Shared fixtures: a small in-memory NDC catalog mirroring openFDA index items."""

from __future__ import annotations

import gzip
import json
import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ndc_pipelines.calc.scripts.catalog import Catalog  # noqa: E402

TODAY = date(2026, 1, 15)

CATALOG_ITEMS = [
    {
        "productNdc": "0093-3109",
        "productNdcPlain": "00933109",
        "genericName": "AMOXICILLIN",
        "brandName": "Amoxicillin",
        "labelerName": "Teva Pharmaceuticals USA, Inc.",
        "dosageForm": "CAPSULE",
        "route": ["ORAL"],
        "activeIngredients": [{"name": "AMOXICILLIN", "strength": "500 mg/1"}],
        "packages": [
            {"ndc": "0093-3109-01", "description": "100 CAPSULE in 1 BOTTLE (0093-3109-01)"},
            {"ndc": "0093-3109-05", "description": "500 CAPSULE in 1 BOTTLE (0093-3109-05)"},
        ],
    },
    {
        "productNdc": "68180-513",
        "genericName": "Lisinopril",
        "brandName": "Lisinopril",
        "labelerName": "Lupin Pharmaceuticals, Inc.",
        "dosageForm": "TABLET",
        "route": ["ORAL"],
        "activeIngredients": [{"name": "LISINOPRIL", "strength": "10 mg/1"}],
        "packages": [
            {"ndc": "68180-513-01", "description": "90 TABLET in 1 BOTTLE (68180-513-01)"},
            {
                "ndc": "68180-513-02",
                "description": "1000 TABLET in 1 BOTTLE (68180-513-02)",
                "marketingEndDate": "2020-01-31",
            },
            {"ndc": "68180-513-09", "description": "30 BLISTER PACK in 1 CARTON (68180-513-09)"},
        ],
    },
    {
        "productNdc": "0173-0682",
        "genericName": "ALBUTEROL SULFATE",
        "brandName": "Ventolin HFA",
        "labelerName": "GlaxoSmithKline LLC",
        "dosageForm": "AEROSOL, METERED",
        "route": ["RESPIRATORY (INHALATION)"],
        "activeIngredients": [{"name": "ALBUTEROL SULFATE", "strength": "90 ug/1"}],
        "packages": [
            {
                "ndc": "0173-0682-20",
                "description": "1 INHALER in 1 CARTON (0173-0682-20)  / 200 AEROSOL, METERED in 1 INHALER",
            },
        ],
    },
    {
        "productNdc": "0781-6156",
        "genericName": "AMOXICILLIN",
        "labelerName": "Sandoz Inc",
        "dosageForm": "POWDER, FOR SUSPENSION",
        "route": ["ORAL"],
        "activeIngredients": [{"name": "AMOXICILLIN", "strength": "250 mg/5mL"}],
        "packages": [
            {"ndc": "0781-6156-46", "description": "100 mL in 1 BOTTLE (0781-6156-46)"},
        ],
    },
]


@pytest.fixture
def catalog_items():
    return json.loads(json.dumps(CATALOG_ITEMS))


@pytest.fixture
def catalog(catalog_items) -> Catalog:
    return Catalog.from_records(catalog_items, generated_at="2026-01-01T00:00:00Z")


@pytest.fixture
def catalog_path(tmp_path, catalog_items) -> Path:
    path = tmp_path / "ndc-index.json.gz"
    with gzip.open(path, "wt", encoding="utf-8") as handle:
        json.dump({"generatedAt": "2026-01-01T00:00:00Z", "items": catalog_items}, handle)
    return path


@pytest.fixture
def today() -> date:
    return TODAY
