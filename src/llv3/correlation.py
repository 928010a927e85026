"""Analysis helpers for correlation records read in test mode."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from . import registers as reg


@dataclass(frozen=True)
class CorrelationRecord:
    samples: np.ndarray
    address: int = reg.DEFAULT_ADDRESS

    @staticmethod
    def from_samples(samples: Sequence[int], address: int = reg.DEFAULT_ADDRESS) -> "CorrelationRecord":
        return CorrelationRecord(samples=np.asarray(samples, dtype=np.int16), address=address)

    def __len__(self) -> int:
        return int(self.samples.size)


def peak_indices(samples: Sequence[int] | np.ndarray) -> Tuple[int, int]:
    """Index of the positive peak and of the negative pulse."""
    values = np.asarray(samples, dtype=float)
    if values.size == 0:
        raise ValueError("Correlation record is empty")
    return int(np.argmax(values)), int(np.argmin(values))


def zero_crossing(samples: Sequence[int] | np.ndarray) -> Optional[float]:
    """
    Fractional index where the waveform crosses zero going from the positive
    peak down to the negative pulse.

    The crossing marks the effective delay between reference and return
    signal. Returns None when the record has no such crossing.
    """
    values = np.asarray(samples, dtype=float)
    if values.size < 2:
        return None
    peak, trough = peak_indices(values)
    if values[peak] <= 0 or values[trough] >= 0 or trough <= peak:
        return None
    segment = values[peak : trough + 1]
    below = np.nonzero(segment <= 0)[0]
    if below.size == 0:
        return None
    idx = int(below[0]) + peak
    before, after = values[idx - 1], values[idx]
    if after == 0:
        return float(idx)
    return float(idx - 1 + before / (before - after))


def save_csv(record: CorrelationRecord, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame({"index": np.arange(len(record)), "value": record.samples})
    df.to_csv(path, index=False)


def load_csv(path: Path, address: int = reg.DEFAULT_ADDRESS) -> CorrelationRecord:
    df = pd.read_csv(path)
    if "value" not in df.columns:
        raise ValueError(f"{path} has no 'value' column")
    return CorrelationRecord.from_samples(df["value"].to_numpy(), address=address)
