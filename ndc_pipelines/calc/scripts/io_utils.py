"""
CSV helpers for batch prescription runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd

from ..constants import PRESCRIPTION_COLUMNS


def read_prescriptions_csv(path: Path, required: Sequence[str] = PRESCRIPTION_COLUMNS) -> pd.DataFrame:
    """Load a prescriptions CSV as strings, trimmed, with the required columns present."""
    if not Path(path).is_file():
        raise FileNotFoundError(f"Prescriptions CSV not found: {path}")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing required column(s): {', '.join(missing)}")
    for col in required:
        df[col] = df[col].astype(str).str.strip()
    return df


def write_csv(df: pd.DataFrame, csv_path: Path) -> None:
    """Write DataFrame to CSV, creating the parent directory."""
    csv_path = Path(csv_path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(csv_path, index=False)


def records_to_frame(rows: Iterable[dict], columns: Sequence[str]) -> pd.DataFrame:
    """Build a frame with a fixed column order, even when there are no rows."""
    return pd.DataFrame(list(rows), columns=list(columns))


__all__ = ["read_prescriptions_csv", "records_to_frame", "write_csv"]
