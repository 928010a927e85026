from __future__ import annotations

import threading
from pathlib import Path

import pytest

from llv3 import registers as reg
from llv3.acquisition import Averager, CsvLogger, MeasurementStream
from llv3.driver import LidarLiteV3, Measurement


def test_stream_triggers_before_reading(fake_bus) -> None:
    fake_bus.responses[reg.STATUS] = [b"\x01", b"\x00", b"\x01", b"\x01", b"\x00"]
    fake_bus.responses[reg.DISTANCE | 0x80] = [b"\x00\x0a", b"\x00\x14"]
    fake_bus.responses[reg.SIGNAL_STRENGTH] = [b"\x50", b"\x51"]
    stream = MeasurementStream(LidarLiteV3(fake_bus))
    results = list(stream.iter_measurements(limit=2))
    assert [(m.distance_cm, m.signal_strength) for m in results] == [(10, 80), (20, 81)]
    assert stream.stats() == {"polls": 5, "measurements": 2}
    ops = [op[2] for op in fake_bus.transactions()]
    first_trigger = ops.index(reg.ACQ_CMD)
    assert ops[first_trigger + 1] == reg.DISTANCE | 0x80
    assert ops[first_trigger + 2] == reg.SIGNAL_STRENGTH


def test_stream_stops_on_event(fake_bus) -> None:
    stop = threading.Event()
    stream = MeasurementStream(LidarLiteV3(fake_bus), stop_event=stop)
    results = []
    for measurement in stream.iter_measurements():
        results.append(measurement)
        if len(results) == 3:
            stop.set()
    assert len(results) == 3


def test_averager_emits_block_mean() -> None:
    averager = Averager(3)
    assert averager.push(Measurement(100, 10, ts_ms=1.0)) is None
    assert averager.push(Measurement(101, 20, ts_ms=2.0)) is None
    result = averager.push(Measurement(105, 30, ts_ms=3.0))
    assert result == Measurement(distance_cm=102, signal_strength=20, ts_ms=3.0)
    assert averager.push(Measurement(1, 1)) is None


def test_averager_rejects_empty_window() -> None:
    with pytest.raises(ValueError):
        Averager(0)


def test_csv_logger_is_lazy(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "run.csv"
    logger = CsvLogger(path)
    logger.set_metadata({"address": "0x62"})
    assert not path.exists()
    logger.append(Measurement(250, 90, ts_ms=12.5))
    logger.append(Measurement(251, 91, ts_ms=25.0))
    logger.close()
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "# address=0x62"
    assert lines[1] == "ts_ms,distance_cm,signal_strength"
    assert lines[2:] == ["12.500,250,90", "25.000,251,91"]
