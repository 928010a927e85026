"""Plotting helpers for correlation records and measurement logs."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .correlation import CorrelationRecord, zero_crossing
from .data import load_measurements


def plot_correlation(record: CorrelationRecord, output_path: Path) -> Path:
    plt = _require_matplotlib()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(np.arange(len(record)), record.samples, color="tab:blue", label="correlation")
    ax.axhline(0.0, color="black", linewidth=0.8, linestyle="--")
    crossing = zero_crossing(record.samples)
    if crossing is not None:
        ax.axvline(crossing, color="tab:red", linestyle=":", label=f"zero crossing {crossing:.2f}")
    ax.set_title(f"Correlation record (0x{record.address:02X})")
    ax.set_xlabel("Sample")
    ax.set_ylabel("Value")
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def plot_measurements(csv_path: Path, output_path: Path) -> Path:
    plt = _require_matplotlib()
    data = load_measurements(csv_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax1 = plt.subplots(figsize=(10, 5))
    t = data["ts_ms"] / 1000.0
    ax1.plot(t, data["distance_cm"], color="tab:blue")
    ax1.set_xlabel("Time [s]")
    ax1.set_ylabel("Distance [cm]", color="tab:blue")
    ax1.tick_params(axis="y", labelcolor="tab:blue")

    ax2 = ax1.twinx()
    ax2.plot(t, data["signal_strength"], color="tab:orange")
    ax2.set_ylabel("Signal strength", color="tab:orange")
    ax2.tick_params(axis="y", labelcolor="tab:orange")

    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def _require_matplotlib() -> Any:
    """Import pyplot on the headless Agg backend, PNG output only."""
    try:
        import matplotlib
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("plotting needs matplotlib: pip install 'llv3[plot]'") from exc
    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt  # type: ignore

    return plt
