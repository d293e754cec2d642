#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Package selection ranking, quantity arithmetic and the overfill policy."""

import dataclasses
import itertools

import pytest

from ndc_pipelines.calc.scripts.errors import InvalidQuantityError
from ndc_pipelines.calc.scripts.packages import PackageRecord
from ndc_pipelines.calc.scripts.quantity import (
    MAX_SELECTIONS,
    NO_PACKAGES_WARNING,
    OverfillPolicy,
    build_calc_result,
    cost_package,
    total_quantity,
)
from ndc_pipelines.calc.scripts.sig_parser import ParsedSig

BASE_SIG = ParsedSig(dose=1, unit="tablet", frequency_per_day=1, prn=False)

ACTIVE = PackageRecord(
    ndc="01234567890",
    formatted_ndc="01234-5678-90",
    size=30,
    unit="tablet",
    description="Bottle of 30 tablets",
)
INACTIVE = dataclasses.replace(ACTIVE, ndc="12345678901", formatted_ndc="12345-6789-01", size=60, inactive=True)
LARGE = dataclasses.replace(ACTIVE, ndc="23456789012", formatted_ndc="23456-7890-12", size=100)


def test_prefers_active_package_with_minimal_overfill() -> None:
    result = build_calc_result(BASE_SIG, 30, [ACTIVE, INACTIVE])
    assert result.total_qty == 30
    assert result.selections[0].ndc == ACTIVE.ndc
    assert result.overfill_pct == 0
    assert len(result.warnings) > 0


def test_active_beats_better_fitting_inactive() -> None:
    exact_inactive = dataclasses.replace(INACTIVE, size=30)
    result = build_calc_result(BASE_SIG, 30, [exact_inactive, LARGE])
    assert result.selections[0].ndc == LARGE.ndc
    assert result.selections[1].inactive is True


def test_overfill_warning_when_policy_enabled() -> None:
    result = build_calc_result(BASE_SIG, 30, [LARGE], policy=OverfillPolicy(enabled=True))
    assert result.selections[0].overfill_pct == pytest.approx((100 - 30) / 30)
    assert result.overfill_pct == pytest.approx(2.3333)
    assert any("Overfill" in w for w in result.warnings)
    assert any("12% tolerance" in w for w in result.warnings)


def test_overfill_policy_disabled_by_default() -> None:
    result = build_calc_result(BASE_SIG, 30, [LARGE])
    assert result.warnings == []


def test_guidance_note_within_tolerance() -> None:
    result = build_calc_result(BASE_SIG, 30, [ACTIVE], policy=OverfillPolicy(enabled=True))
    assert result.warnings == ["FDA 2011 overage guidance: <=30 units -> +1 unit (~2-3%)"]


def test_no_packages() -> None:
    result = build_calc_result(BASE_SIG, 30, [])
    assert result.selections == []
    assert result.warnings[0] == NO_PACKAGES_WARNING
    assert result.total_qty == 30


def test_zero_size_packages_are_ignored() -> None:
    empty = dataclasses.replace(ACTIVE, size=0)
    result = build_calc_result(BASE_SIG, 30, [empty])
    assert result.selections == []
    assert result.warnings == [NO_PACKAGES_WARNING]


def test_inactive_primary_warning() -> None:
    result = build_calc_result(BASE_SIG, 30, [INACTIVE])
    assert result.selections[0].inactive is True
    assert result.warnings == ["Recommended NDC 12345-6789-01 is inactive. Select an alternate package."]


def test_packs_round_up() -> None:
    sig = ParsedSig(dose=1.5, unit="tablet", frequency_per_day=1, prn=False)
    result = build_calc_result(sig, 30, [ACTIVE])
    primary = result.selections[0]
    assert result.total_qty == 45
    assert primary.packs == 2
    assert primary.dispensed_qty == 60
    assert result.dispensed_qty == 60


def test_at_least_one_pack() -> None:
    sig = ParsedSig(dose=1, unit="tablet", frequency_per_day=1, prn=False)
    result = build_calc_result(sig, 3, [ACTIVE])
    assert result.selections[0].packs == 1


def test_ties_keep_input_order() -> None:
    twin = dataclasses.replace(ACTIVE, ndc="99999999999", formatted_ndc="99999-9999-99")
    result = build_calc_result(BASE_SIG, 30, [twin, ACTIVE])
    assert [s.ndc for s in result.selections] == ["99999999999", ACTIVE.ndc]


def test_selection_cap_and_order() -> None:
    packages = [
        dataclasses.replace(ACTIVE, ndc=f"0000000000{i}", formatted_ndc=f"00000-0000-0{i}", size=size)
        for i, size in enumerate([7, 30, 45, 90, 15, 100, 1000])
    ]
    result = build_calc_result(BASE_SIG, 30, packages)
    assert len(result.selections) == MAX_SELECTIONS
    overfills = [s.overfill_pct for s in result.selections]
    assert overfills == sorted(overfills)
    assert result.selections[0].package.size in (30, 15)


def test_total_is_rounded_to_cents() -> None:
    sig = ParsedSig(dose=0.333, unit="ml", frequency_per_day=3, prn=False)
    result = build_calc_result(sig, 7, [dataclasses.replace(ACTIVE, unit="ml", size=10)])
    assert result.total_qty == 6.99


@pytest.mark.parametrize("dose, days", [(0, 30), (1, 0), (float("inf"), 30)])
def test_non_positive_or_infinite_total_raises(dose: float, days: float) -> None:
    sig = ParsedSig(dose=dose, unit="tablet", frequency_per_day=1, prn=False)
    with pytest.raises(InvalidQuantityError):
        build_calc_result(sig, days, [ACTIVE])


def test_fractional_syringe_covers_the_need() -> None:
    syringe = dataclasses.replace(ACTIVE, size=0.3, unit="ml", description="0.3 mL in 1 SYRINGE")
    sig = ParsedSig(dose=0.3, unit="ml", frequency_per_day=3, prn=False)
    result = build_calc_result(sig, 1, [syringe])
    primary = result.selections[0]
    assert result.total_qty == 0.9
    assert primary.packs == 3
    assert primary.dispensed_qty == 0.9
    assert primary.overfill_pct == 0


FRACTIONAL_SIZES = (0.1, 0.2, 0.3, 0.6, 0.7, 1.1, 2.5, 3.3, 7.5, 30)


def test_every_selection_covers_total_for_fractional_inputs() -> None:
    packages = [
        dataclasses.replace(ACTIVE, ndc=f"{i:011d}", formatted_ndc=f"pkg-{i}", size=size)
        for i, size in enumerate(FRACTIONAL_SIZES)
    ]
    doses = (0.1, 0.3, 0.5, 0.7, 1.5, 2.2)
    frequencies = (0.5, 1, 2, 3, 4, 6)
    days_options = (1, 3, 7, 10, 30)

    for dose, freq, days in itertools.product(doses, frequencies, days_options):
        sig = ParsedSig(dose=dose, unit="ml", frequency_per_day=freq, prn=False)
        total = total_quantity(sig, days)
        assert total > 0
        for pkg in packages:
            sel = cost_package(pkg, total)
            assert sel.packs >= 1
            assert sel.dispensed_qty >= total, (dose, freq, days, pkg.size, sel.dispensed_qty)
            assert sel.overfill_pct >= 0
            assert sel.packs == 1 or (sel.packs - 1) * pkg.size < total + 1e-6

        result = build_calc_result(sig, days, packages)
        overfills = [s.overfill_pct for s in result.selections]
        assert overfills == sorted(overfills)
