#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
SIG (dosing instruction) parsing.

A deterministic pattern pass extracts dose, unit and frequency. When it fails,
the request's strategy decides what happens next:

- PatternOnlyStrategy: give up with a warning.
- AssistedStrategy: ask the text assistant for {dose, unit, frequencyPerDay}.

The strategy is chosen once per request by select_sig_strategy().
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .assistant import TextAssistant

SIG_UNIT_ALIASES: Dict[str, str] = {
    "tablet": "tablet", "tab": "tablet", "tabs": "tablet",
    "capsule": "capsule", "cap": "capsule", "caps": "capsule",
    "ml": "ml", "milliliter": "ml", "milliliters": "ml",
    "drop": "drop", "drops": "drop",
    "puff": "puff", "puffs": "puff",
    "unit": "unit", "units": "unit",
}

# Priority order matters: "twice daily" must win over the bare "daily".
FREQUENCY_PATTERNS: List[Tuple[re.Pattern, float]] = [
    (re.compile(r"\b(?:twice daily|two times daily|bid|b\.i\.d\.?)(?!\w)", re.I), 2),
    (re.compile(r"\b(?:three times daily|tid|t\.i\.d\.?)(?!\w)", re.I), 3),
    (re.compile(r"\b(?:four times daily|qid|q\.i\.d\.?)(?!\w)", re.I), 4),
    (re.compile(r"\bevery other day\b", re.I), 0.5),
    (re.compile(r"\b(?:once daily|every day|daily|qd|q\.d\.?)(?!\w)", re.I), 1),
]
EVERY_HOURS_RX = re.compile(r"\bevery\s+(\d+)\s*(?:hours?|hrs?|h)\b", re.I)
TIMES_PER_DAY_RX = re.compile(r"(\d+)\s*times?\s+per\s+day", re.I)
DOSE_RX = re.compile(
    r"(\d+(?:\.\d+)?)\s*(tablet|tab|tabs|capsule|cap|caps|ml|milliliters?|drop|drops|puff|puffs|unit|units)?",
    re.I,
)
PRN_RX = re.compile(r"\bprn\b", re.I)

PRN_WARNING = "PRN scripts may use partial fills."
PATTERN_ONLY_FAILURE = "Unable to parse SIG automatically. Please refine input or provide structured fields."
ASSISTED_FAILURE = "Assisted parsing failed to parse SIG."


@dataclass
class ParsedSig:
    dose: float
    unit: str
    frequency_per_day: float
    prn: bool
    source: str = "pattern"
    raw: Optional[Dict[str, Any]] = None


@dataclass
class SigParseResult:
    parsed: Optional[ParsedSig]
    warnings: List[str] = field(default_factory=list)


def detect_frequency(sig: str) -> Optional[float]:
    """Doses per day implied by the SIG, or None when no frequency phrase is present."""
    for rx, value in FREQUENCY_PATTERNS:
        if rx.search(sig):
            return value

    m = EVERY_HOURS_RX.search(sig)
    if m:
        hours = int(m.group(1))
        if hours > 0:
            return round(24 / hours, 2)

    m = TIMES_PER_DAY_RX.search(sig)
    if m and int(m.group(1)) > 0:
        return float(m.group(1))
    return None


def pattern_parse(sig: str, prn: bool) -> Optional[ParsedSig]:
    m = DOSE_RX.search(sig)
    if not m:
        return None
    dose = float(m.group(1))
    if dose <= 0:
        return None
    unit = SIG_UNIT_ALIASES[(m.group(2) or "unit").lower()]

    frequency = detect_frequency(sig)
    if frequency is None:
        return None
    return ParsedSig(dose=dose, unit=unit, frequency_per_day=frequency, prn=prn, source="pattern")


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def parsed_sig_from_payload(payload: Any, prn: bool) -> Optional[ParsedSig]:
    """Validate an assistant payload; anything malformed is treated as no result."""
    if not isinstance(payload, dict):
        return None
    dose = _as_number(payload.get("dose"))
    frequency = _as_number(payload.get("frequencyPerDay", payload.get("frequency_per_day")))
    if dose is None or dose <= 0 or frequency is None or frequency <= 0:
        return None
    raw_unit = payload.get("unit")
    unit = SIG_UNIT_ALIASES.get(raw_unit.strip().lower(), "unit") if isinstance(raw_unit, str) else "unit"
    return ParsedSig(
        dose=dose,
        unit=unit,
        frequency_per_day=frequency,
        prn=prn,
        source="assisted",
        raw=dict(payload),
    )


class PatternOnlyStrategy:
    """No assistant available: the pattern pass is the only chance."""

    failure_warning = PATTERN_ONLY_FAILURE

    def fallback(self, sig: str, prn: bool) -> Optional[ParsedSig]:
        return None


class AssistedStrategy:
    """Delegate SIGs the pattern pass cannot read to a text assistant."""

    failure_warning = ASSISTED_FAILURE

    def __init__(self, assistant: TextAssistant, verbose: bool = False):
        self.assistant = assistant
        self.verbose = verbose

    def _log(self, msg: str) -> None:
        if self.verbose:
            print(f"[AssistedStrategy] {msg}")

    def fallback(self, sig: str, prn: bool) -> Optional[ParsedSig]:
        try:
            payload = self.assistant.extract_sig(sig)
        except Exception as exc:  # noqa: BLE001 - assistant failures degrade to "no result"
            self._log(f"assistant raised {type(exc).__name__}: {exc}")
            return None
        parsed = parsed_sig_from_payload(payload, prn)
        if parsed is None:
            self._log(f"assistant payload rejected: {payload!r}")
        return parsed


SigStrategy = Union[PatternOnlyStrategy, AssistedStrategy]


def select_sig_strategy(assistant: Optional[TextAssistant], verbose: bool = False) -> SigStrategy:
    if assistant is None:
        return PatternOnlyStrategy()
    return AssistedStrategy(assistant, verbose=verbose)


def parse_sig(sig: str, strategy: Optional[SigStrategy] = None) -> SigParseResult:
    """Parse a SIG into dose/unit/frequency; None plus a warning when it cannot be read."""
    cleaned = (sig or "").strip()
    if not cleaned:
        raise ValueError("SIG is required")

    strategy = strategy or PatternOnlyStrategy()
    warnings: List[str] = []

    prn = bool(PRN_RX.search(cleaned))
    if prn:
        warnings.append(PRN_WARNING)

    parsed = pattern_parse(cleaned, prn)
    if parsed is None:
        parsed = strategy.fallback(cleaned, prn)
    if parsed is None:
        warnings.append(strategy.failure_warning)
    return SigParseResult(parsed=parsed, warnings=warnings)


__all__ = [
    "AssistedStrategy",
    "FREQUENCY_PATTERNS",
    "ParsedSig",
    "PatternOnlyStrategy",
    "SIG_UNIT_ALIASES",
    "SigParseResult",
    "detect_frequency",
    "parse_sig",
    "parsed_sig_from_payload",
    "pattern_parse",
    "select_sig_strategy",
]
