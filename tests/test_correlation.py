from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from llv3.correlation import CorrelationRecord, load_csv, peak_indices, save_csv, zero_crossing


def _bipolar() -> list[int]:
    return [0, 20, 80, 40, -40, -90, -30, 0]


def test_peak_indices() -> None:
    assert peak_indices(_bipolar()) == (2, 5)


def test_zero_crossing_interpolates() -> None:
    assert np.isclose(zero_crossing(_bipolar()), 3.5)


def test_zero_crossing_on_exact_zero() -> None:
    assert zero_crossing([10, 50, 0, -50]) == 2.0


def test_zero_crossing_missing() -> None:
    assert zero_crossing([1, 2, 3]) is None
    assert zero_crossing([-50, -10, 30, 60]) is None
    assert zero_crossing([]) is None


def test_record_csv_round_trip(tmp_path: Path) -> None:
    record = CorrelationRecord.from_samples(_bipolar(), address=0x44)
    path = tmp_path / "corr.csv"
    save_csv(record, path)
    loaded = load_csv(path, address=0x44)
    assert loaded.samples.dtype == np.int16
    assert loaded.samples.tolist() == _bipolar()


def test_plot_correlation_writes_png(tmp_path: Path) -> None:
    pytest.importorskip("matplotlib")
    from llv3.plotting import plot_correlation

    out = plot_correlation(CorrelationRecord.from_samples(_bipolar()), tmp_path / "corr.png")
    assert out.exists()
