#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Stage timing rollup printed at the end of each CLI run."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

# Stage label -> summary group, in display order.
STAGE_GROUPS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("Setup & Catalog", ("Load NDC catalog",)),
    ("Inputs", ("Prepare prescriptions",)),
    ("Calculation", ("Calculate quantities", "Calculate prescription")),
    ("Outputs", ("Write summary",)),
)
OTHER_GROUP = "Other"


class TimingCollector:
    """Collects (stage, seconds) pairs; use ``add`` as a pipeline timing hook."""

    def __init__(self, groups: Sequence[Tuple[str, Iterable[str]]] = STAGE_GROUPS) -> None:
        self._order: List[str] = [name for name, _ in groups]
        self._group_of: Dict[str, str] = {stage: name for name, stages in groups for stage in stages}
        self._entries: List[Tuple[str, float]] = []

    def add(self, label: str, seconds: float) -> None:
        self._entries.append((label, seconds))

    @property
    def entries(self) -> List[Tuple[str, float]]:
        return list(self._entries)

    def grouped_totals(self) -> Mapping[str, float]:
        totals: Dict[str, float] = dict.fromkeys(self._order, 0.0)
        for label, seconds in self._entries:
            group = self._group_of.get(label, OTHER_GROUP)
            totals[group] = totals.get(group, 0.0) + seconds
        return totals

    def total(self) -> float:
        return sum(seconds for _, seconds in self._entries)

    def render(self) -> List[str]:
        """Summary lines for non-empty groups plus a total; empty when nothing ran."""
        rows = [(group, secs) for group, secs in self.grouped_totals().items() if secs > 0.0]
        if not rows:
            return []
        width = max(len(group) for group, _ in rows + [("Total", 0.0)])
        lines = ["", "=== Timing Summary ==="]
        lines.extend(f"• {group:<{width}} {secs:9.2f}s" for group, secs in rows)
        lines.append("-" * (width + 16))
        lines.append(f"• {'Total':<{width}} {self.total():9.2f}s")
        return lines


__all__ = ["OTHER_GROUP", "STAGE_GROUPS", "TimingCollector"]
