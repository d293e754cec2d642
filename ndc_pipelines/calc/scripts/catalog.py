#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Read-only drug product catalog built from the local NDC index.

The index is the gzip-compressed JSON produced from the openFDA NDC
directory ({"generatedAt": ..., "items": [...]}, camelCase fields). Raw
openFDA records (snake_case, "packaging") are accepted as well.

A Catalog is loaded once and shared by every lookup; nothing mutates it
after construction.
"""

from __future__ import annotations

import gzip
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..constants import DEFAULT_CATALOG_PATH
from .errors import InvalidFormatError
from .ndc_utils import digits_only, normalize_ndc
from .text_utils import create_tokens, normalize_text


@dataclass(frozen=True)
class ActiveIngredient:
    name: Optional[str] = None
    strength: Optional[str] = None


@dataclass(frozen=True)
class CatalogPackage:
    ndc: str
    ndc_plain: str
    description: Optional[str] = None
    marketing_start_date: Optional[str] = None
    marketing_end_date: Optional[str] = None
    sample: Optional[bool] = None


@dataclass(frozen=True)
class CatalogProduct:
    product_ndc: str
    product_ndc_plain: str
    labeler_name: Optional[str] = None
    generic_name: Optional[str] = None
    brand_name: Optional[str] = None
    dosage_form: Optional[str] = None
    routes: Tuple[str, ...] = ()
    marketing_category: Optional[str] = None
    marketing_start_date: Optional[str] = None
    marketing_end_date: Optional[str] = None
    active_ingredients: Tuple[ActiveIngredient, ...] = ()
    packages: Tuple[CatalogPackage, ...] = ()
    search_tokens: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def display_name(self) -> Optional[str]:
        return self.generic_name or self.brand_name


def _pick(entry: Mapping[str, Any], *keys: str) -> Any:
    """First non-None value among alternative field spellings."""
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_search_tokens(
    generic_name: Optional[str],
    brand_name: Optional[str],
    dosage_form: Optional[str],
    ingredients: Iterable[ActiveIngredient],
) -> FrozenSet[str]:
    tokens: set[str] = set()
    tokens.update(create_tokens(generic_name))
    tokens.update(create_tokens(brand_name))
    tokens.update(create_tokens(dosage_form))
    for ingredient in ingredients:
        tokens.update(create_tokens(ingredient.name))
    return frozenset(tokens)


def package_from_record(entry: Mapping[str, Any]) -> Optional[CatalogPackage]:
    ndc = _opt_str(_pick(entry, "ndc", "package_ndc"))
    if not ndc:
        return None
    ndc_plain = _opt_str(_pick(entry, "ndcPlain", "ndc_plain")) or digits_only(ndc)
    if not ndc_plain:
        return None
    sample = _pick(entry, "sample")
    return CatalogPackage(
        ndc=ndc,
        ndc_plain=ndc_plain,
        description=_opt_str(_pick(entry, "description")),
        marketing_start_date=_opt_str(_pick(entry, "marketingStartDate", "marketing_start_date")),
        marketing_end_date=_opt_str(_pick(entry, "marketingEndDate", "marketing_end_date")),
        sample=sample if isinstance(sample, bool) else None,
    )


def product_from_record(entry: Mapping[str, Any]) -> Optional[CatalogProduct]:
    """Build a CatalogProduct from an index item; None when it has no product code."""
    product_ndc = _opt_str(_pick(entry, "productNdc", "product_ndc"))
    if not product_ndc:
        return None
    product_ndc_plain = _opt_str(_pick(entry, "productNdcPlain", "product_ndc_plain")) or digits_only(product_ndc)
    if not product_ndc_plain:
        return None

    raw_route = _pick(entry, "route")
    if isinstance(raw_route, str):
        routes: Tuple[str, ...] = (raw_route,)
    elif isinstance(raw_route, (list, tuple)):
        routes = tuple(str(r) for r in raw_route if r)
    else:
        routes = ()

    ingredients = tuple(
        ActiveIngredient(name=_opt_str(item.get("name")), strength=_opt_str(item.get("strength")))
        for item in (_pick(entry, "activeIngredients", "active_ingredients") or [])
        if isinstance(item, Mapping)
    )

    packages: List[CatalogPackage] = []
    for raw_pkg in _pick(entry, "packages", "packaging") or []:
        if not isinstance(raw_pkg, Mapping):
            continue
        pkg = package_from_record(raw_pkg)
        if pkg is not None:
            packages.append(pkg)

    generic_name = _opt_str(_pick(entry, "genericName", "generic_name"))
    brand_name = _opt_str(_pick(entry, "brandName", "brand_name"))
    dosage_form = _opt_str(_pick(entry, "dosageForm", "dosage_form"))

    return CatalogProduct(
        product_ndc=product_ndc,
        product_ndc_plain=product_ndc_plain,
        labeler_name=_opt_str(_pick(entry, "labelerName", "labeler_name")),
        generic_name=generic_name,
        brand_name=brand_name,
        dosage_form=dosage_form,
        routes=routes,
        marketing_category=_opt_str(_pick(entry, "marketingCategory", "marketing_category")),
        marketing_start_date=_opt_str(_pick(entry, "marketingStartDate", "marketing_start_date")),
        marketing_end_date=_opt_str(
            _pick(entry, "marketingEndDate", "marketing_end_date", "listing_expiration_date")
        ),
        active_ingredients=ingredients,
        packages=tuple(packages),
        search_tokens=build_search_tokens(generic_name, brand_name, dosage_form, ingredients),
    )


class Catalog:
    """Products plus lookup indices by product code, package code and name."""

    def __init__(self, products: Iterable[CatalogProduct], generated_at: Optional[str] = None):
        self.generated_at = generated_at
        self.products: Tuple[CatalogProduct, ...] = tuple(products)
        self._product_map: Dict[str, CatalogProduct] = {}
        self._package_map: Dict[str, Tuple[CatalogProduct, CatalogPackage]] = {}
        self._name_map: Dict[str, CatalogProduct] = {}

        # First occurrence wins for every key.
        for product in self.products:
            for key in (product.product_ndc, product.product_ndc_plain):
                self._product_map.setdefault(key, product)
            for pkg in product.packages:
                for key in self._package_keys(pkg):
                    self._package_map.setdefault(key, (product, pkg))
            for name in (product.generic_name, product.brand_name):
                if name:
                    self._name_map.setdefault(normalize_text(name), product)

    @staticmethod
    def _package_keys(pkg: CatalogPackage) -> List[str]:
        keys = [pkg.ndc, pkg.ndc_plain]
        try:
            keys.append(normalize_ndc(pkg.ndc))
        except InvalidFormatError:
            pass
        return keys

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], generated_at: Optional[str] = None) -> "Catalog":
        products = []
        for entry in records:
            product = product_from_record(entry)
            if product is not None:
                products.append(product)
        return cls(products, generated_at=generated_at)

    def __len__(self) -> int:
        return len(self.products)

    def __iter__(self) -> Iterator[CatalogProduct]:
        return iter(self.products)

    @staticmethod
    def _lookup_keys(code: str) -> List[str]:
        keys = [code.strip()]
        plain = digits_only(code)
        if plain:
            keys.append(plain)
        try:
            keys.append(normalize_ndc(code))
        except InvalidFormatError:
            pass
        return keys

    def find_product(self, code: str) -> Optional[CatalogProduct]:
        """Product by product NDC (hyphenated or plain) or by one of its package NDCs."""
        if not code:
            return None
        for key in self._lookup_keys(code):
            if key in self._product_map:
                return self._product_map[key]
        hit = self.find_package(code)
        return hit[0] if hit else None

    def find_package(self, code: str) -> Optional[Tuple[CatalogProduct, CatalogPackage]]:
        """(product, package) for a package NDC in any textual layout."""
        if not code:
            return None
        for key in self._lookup_keys(code):
            if key in self._package_map:
                return self._package_map[key]
        return None

    def find_by_name(self, name: str) -> Optional[CatalogProduct]:
        """Exact (case/whitespace-insensitive) generic or brand name match."""
        if not name:
            return None
        return self._name_map.get(normalize_text(name))


def read_index(path: Path) -> Dict[str, Any]:
    """Read a .json or .json.gz index; a bare list of items is accepted too."""
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt", encoding="utf-8") as handle:
        raw = json.load(handle)
    if isinstance(raw, list):
        return {"generatedAt": None, "items": raw}
    if not isinstance(raw, dict):
        raise ValueError(f"Unexpected catalog format in {path}: expected an object or list")
    items = raw.get("items", raw.get("results"))
    if not isinstance(items, list):
        raise ValueError(f"Unexpected catalog format in {path}: missing items array")
    return {"generatedAt": raw.get("generatedAt"), "items": items}


def load_catalog(path: Optional[Path] = None, verbose: bool = False) -> Catalog:
    """Load the catalog from path (defaults to NDC_CATALOG_PATH / inputs/ndc/ndc-index.json.gz)."""
    catalog_path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    if not catalog_path.is_file():
        raise FileNotFoundError(f"NDC catalog not found: {catalog_path}")
    raw = read_index(catalog_path)
    catalog = Catalog.from_records(
        (item for item in raw["items"] if isinstance(item, Mapping)),
        generated_at=raw["generatedAt"],
    )
    if verbose:
        print(f"[load_catalog] {len(catalog):,} products from {catalog_path}")
    return catalog


__all__ = [
    "ActiveIngredient",
    "Catalog",
    "CatalogPackage",
    "CatalogProduct",
    "build_search_tokens",
    "load_catalog",
    "package_from_record",
    "product_from_record",
    "read_index",
]
