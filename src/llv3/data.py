"""Loading and summarising logged measurement CSVs."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

REQUIRED_COLUMNS = {"ts_ms", "distance_cm", "signal_strength"}


@dataclass(frozen=True)
class MeasurementSummary:
    count: int
    distance_mean: float
    distance_std: float
    distance_min: int
    distance_max: int
    signal_mean: float


def load_measurements(path: str | Path) -> pd.DataFrame:
    """Load a log written by `CsvLogger`.

    Parameters
    ----------
    path:
        CSV with `ts_ms`, `distance_cm` and `signal_strength` columns. Lines
        starting with `#` carry metadata and are skipped.

    Returns
    -------
    pandas.DataFrame
        Rows sorted by timestamp.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    df = pd.read_csv(path, comment="#")
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")
    df = df.sort_values("ts_ms", kind="mergesort")
    df.reset_index(drop=True, inplace=True)
    return df


def summarize(df: pd.DataFrame) -> MeasurementSummary:
    if df.empty:
        raise ValueError("No measurements to summarise")
    distance = df["distance_cm"]
    return MeasurementSummary(
        count=int(len(df)),
        distance_mean=float(distance.mean()),
        distance_std=float(distance.std(ddof=0)),
        distance_min=int(distance.min()),
        distance_max=int(distance.max()),
        signal_mean=float(df["signal_strength"].mean()),
    )
