from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from conftest import FakeBus
from llv3 import registers as reg
from llv3.cli import app

runner = CliRunner()


class FakeTransport(FakeBus):
    instances: list["FakeTransport"] = []

    def __init__(self, bus: int = 1):
        super().__init__(
            {
                reg.DISTANCE | 0x80: b"\x01\x2c",
                reg.SIGNAL_STRENGTH: b"\x40",
                reg.UNIT_ID_HIGH | 0x80: b"\xbe\xef",
            }
        )
        self.bus_number = bus
        FakeTransport.instances.append(self)

    def __enter__(self) -> "FakeTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        pass


def _patch_transport(monkeypatch) -> None:
    FakeTransport.instances = []
    monkeypatch.setattr("llv3.cli.SMBusTransport", FakeTransport)


def test_presets_listing() -> None:
    result = runner.invoke(app, ["presets"])
    assert result.exit_code == 0
    assert "1: 0x1D 0x08 0x03 0x00" in result.output


def test_measure_prints_distance_and_signal(monkeypatch) -> None:
    _patch_transport(monkeypatch)
    result = runner.invoke(app, ["--bus", "3", "measure"])
    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith("300,64")
    assert FakeTransport.instances[0].bus_number == 3


def test_stream_writes_csv(monkeypatch, tmp_path: Path) -> None:
    _patch_transport(monkeypatch)
    out = tmp_path / "stream.csv"
    result = runner.invoke(app, ["stream", "--limit", "3", "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert result.output.count("300,64") == 3
    rows = [line for line in out.read_text(encoding="utf-8").splitlines() if not line.startswith("#")]
    assert len(rows) == 4


def test_set_address_uses_new_address(monkeypatch) -> None:
    _patch_transport(monkeypatch)
    result = runner.invoke(app, ["--address", "0x62", "set-address", "0x44", "--disable-default"])
    assert result.exit_code == 0, result.output
    assert FakeTransport.instances[0].writes()[-1] == (0x44, reg.I2C_CONFIG, 0x08)
    assert "now answers on 0x44" in result.output


def test_info_prints_unit_id(monkeypatch) -> None:
    _patch_transport(monkeypatch)
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0, result.output
    assert "Unit id: 0xBEEF" in result.output


def test_correlation_takes_reading_first(monkeypatch, tmp_path: Path) -> None:
    _patch_transport(monkeypatch)
    out = tmp_path / "corr.csv"
    result = runner.invoke(app, ["correlation", "--samples", "8", "--out", str(out)])
    assert result.exit_code == 0, result.output
    bus = FakeTransport.instances[0]
    writes = bus.writes()
    assert writes.index((0x62, reg.ACQ_CMD, 0x04)) < writes.index((0x62, reg.ACQ_SETTINGS, 0xC0))
    assert writes[-1] == (0x62, reg.COMMAND, 0x00)
    assert out.exists()


def test_bus_error_exits_nonzero(monkeypatch) -> None:
    _patch_transport(monkeypatch)
    original_init = FakeTransport.__init__

    def failing_init(self, bus: int = 1) -> None:
        original_init(self, bus)
        self.fail_write = lambda register, value: True

    monkeypatch.setattr(FakeTransport, "__init__", failing_init)
    result = runner.invoke(app, ["configure", "--preset", "2"])
    assert result.exit_code == 1


def test_missing_config_file_is_usage_error(monkeypatch, tmp_path: Path) -> None:
    _patch_transport(monkeypatch)
    result = runner.invoke(app, ["--config", str(tmp_path / "typo.json"), "measure"])
    assert result.exit_code == 2
    assert FakeTransport.instances == []
