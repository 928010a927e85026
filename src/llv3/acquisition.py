from __future__ import annotations

import csv
import logging
import time
from pathlib import Path
from typing import Dict, Iterator, List, Optional, TextIO

import numpy as np

from .driver import CancelFlag, LidarLiteV3, Measurement

logger = logging.getLogger(__name__)

CSV_FIELDS = ["ts_ms", "distance_cm", "signal_strength"]


class MeasurementStream:
    """
    Pipelined acquisition loop.

    Whenever the device reports idle, the next acquisition is triggered first
    and the result of the previous one is read afterwards, overlapping bus
    latency with the device's conversion time. The first yielded measurement
    therefore belongs to whatever acquisition preceded the stream.
    """

    def __init__(
        self,
        driver: LidarLiteV3,
        poll_interval: float = 0.0,
        stop_event: Optional[CancelFlag] = None,
    ):
        self.driver = driver
        self.poll_interval = poll_interval
        self.stop_event = stop_event
        self._stats: Dict[str, int] = {"polls": 0, "measurements": 0}

    def iter_measurements(self, limit: Optional[int] = None) -> Iterator[Measurement]:
        t0 = time.monotonic()
        emitted = 0
        while limit is None or emitted < limit:
            if self.stop_event is not None and self.stop_event.is_set():
                break
            self._stats["polls"] += 1
            if self.driver.is_busy():
                if self.poll_interval > 0:
                    time.sleep(self.poll_interval)
                continue
            self.driver.trigger_acquisition()
            distance = self.driver.read_distance()
            signal = self.driver.read_signal_strength()
            emitted += 1
            self._stats["measurements"] += 1
            yield Measurement(
                distance_cm=distance,
                signal_strength=signal,
                ts_ms=(time.monotonic() - t0) * 1000.0,
            )
        logger.debug("Stream stopped after %d measurements", emitted)

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)


class Averager:
    """Block average over `window` consecutive measurements."""

    def __init__(self, window: int):
        if window < 1:
            raise ValueError("Averaging window must be at least 1")
        self.window = window
        self._pending: List[Measurement] = []

    def push(self, measurement: Measurement) -> Optional[Measurement]:
        self._pending.append(measurement)
        if len(self._pending) < self.window:
            return None
        block = np.array(
            [(m.distance_cm, m.signal_strength) for m in self._pending], dtype=float
        )
        distance, signal = block.mean(axis=0)
        last_ts = self._pending[-1].ts_ms
        self._pending.clear()
        return Measurement(
            distance_cm=int(round(distance)),
            signal_strength=int(round(signal)),
            ts_ms=last_ts,
        )


class CsvLogger:
    """
    Lazily creates a CSV writer when the first measurement arrives, so dry
    runs and tests never touch the filesystem.
    """

    def __init__(self, path: Path):
        self.path = path
        self._writer: Optional[csv.DictWriter[str]] = None
        self._file_handle: Optional[TextIO] = None
        self._pending_metadata: List[str] = []

    def append(self, measurement: Measurement) -> None:
        if self._writer is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = self.path.open("w", newline="", encoding="utf-8")
            for line in self._pending_metadata:
                self._file_handle.write(line + "\n")
            self._pending_metadata.clear()
            self._writer = csv.DictWriter(self._file_handle, fieldnames=CSV_FIELDS)
            self._writer.writeheader()
        assert self._writer is not None
        self._writer.writerow(
            {
                "ts_ms": f"{measurement.ts_ms:.3f}",
                "distance_cm": measurement.distance_cm,
                "signal_strength": measurement.signal_strength,
            }
        )
        if self._file_handle is not None:
            self._file_handle.flush()

    def set_metadata(self, metadata: Dict[str, str]) -> None:
        if not metadata:
            return
        line = "# " + " ".join(f"{key}={value}" for key, value in metadata.items())
        if self._file_handle is None:
            self._pending_metadata.append(line)
            return
        self._file_handle.write(line + "\n")
        self._file_handle.flush()

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
            self._writer = None
