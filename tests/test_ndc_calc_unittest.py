#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Unit tests for the dispense-quantity rules on realistic prescriptions."""

from __future__ import annotations

import unittest

from ndc_pipelines.calc.scripts.packages import PackageRecord
from ndc_pipelines.calc.scripts.quantity import build_calc_result
from ndc_pipelines.calc.scripts.sig_parser import parse_sig


def _package(ndc: str, size: float, unit: str = "tablet", inactive: bool = False) -> PackageRecord:
    return PackageRecord(
        ndc=ndc,
        formatted_ndc=f"{ndc[:5]}-{ndc[5:9]}-{ndc[9:]}",
        size=size,
        unit=unit,
        inactive=inactive,
    )


class DispenseQuantityTests(unittest.TestCase):
    def assertDispense(self, sig: str, days: float, sizes: list[float], ndc: str, packs: int, total: float) -> None:
        parsed = parse_sig(sig).parsed
        self.assertIsNotNone(parsed)
        packages = [_package(f"{i:011d}", size) for i, size in enumerate(sizes, start=1)]
        result = build_calc_result(parsed, days, packages)
        self.assertEqual(result.total_qty, total)
        self.assertEqual(result.selections[0].ndc, ndc)
        self.assertEqual(result.selections[0].packs, packs)

    def test_thirty_day_once_daily(self) -> None:
        self.assertDispense("Take 1 tablet by mouth daily", 30, [30, 90], "00000000001", 1, 30)

    def test_ninety_day_twice_daily(self) -> None:
        self.assertDispense("Take 1 tablet twice daily", 90, [100, 90, 30], "00000000002", 2, 180)

    def test_half_tablet_every_other_day(self) -> None:
        self.assertDispense("Take 0.5 tab every other day", 28, [7, 30], "00000000001", 1, 7)

    def test_two_puffs_qid(self) -> None:
        self.assertDispense("Inhale 2 puffs qid", 25, [200, 60], "00000000001", 1, 200)

    def test_every_twelve_hours(self) -> None:
        self.assertDispense("1 cap every 12 hours", 14, [14, 30], "00000000001", 2, 28)


class PrnHandlingTests(unittest.TestCase):
    def test_prn_keeps_parse(self) -> None:
        result = parse_sig("Take 2 tablets every 4 hours PRN pain")
        self.assertTrue(result.parsed.prn)
        self.assertEqual(result.parsed.dose, 2)
        self.assertEqual(result.parsed.frequency_per_day, 6)
        self.assertEqual(result.warnings, ["PRN scripts may use partial fills."])


if __name__ == "__main__":
    unittest.main()
