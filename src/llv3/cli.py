"""Command line interface for the llv3 package."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from . import __version__
from .acquisition import Averager, CsvLogger, MeasurementStream
from .bus import LidarLiteError, SMBusTransport
from .config import HostConfig, load_config
from .correlation import CorrelationRecord, save_csv, zero_crossing
from .data import load_measurements, summarize
from .driver import LidarLiteV3
from .presets import PRESETS, preset_for

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="LIDAR-Lite v3 host utilities.",
)


@dataclass
class CliState:
    config: HostConfig


def _parse_address(value: str) -> int:
    try:
        address = int(value, 0)
    except ValueError as exc:
        raise typer.BadParameter(f"'{value}' is not an integer address") from exc
    if not 0 <= address <= 0x7F:
        raise typer.BadParameter(f"0x{address:X} is not a 7-bit I2C address")
    return address


@contextmanager
def _open_driver(config: HostConfig) -> Iterator[LidarLiteV3]:
    try:
        with SMBusTransport(config.bus) as transport:
            yield LidarLiteV3(transport, address=config.address)
    except LidarLiteError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a JSON host config."
    ),
    bus: Optional[int] = typer.Option(None, "--bus", "-b", help="I2C bus number (/dev/i2c-N)."),
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Device address, e.g. 0x62."),
    override: Optional[List[str]] = typer.Option(
        None, "--set", help="Override config keys, e.g. --set preset=3 --set correlation.samples=1024"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every bus transaction."),
) -> None:
    overrides = list(override or [])
    if bus is not None:
        overrides.append(f"bus={bus}")
    if address is not None:
        overrides.append(f"address={_parse_address(address)}")
    try:
        cfg = load_config(config_path, overrides or None)
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read config: {exc}", param_hint="--config") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ctx.obj = CliState(config=cfg)


@app.command()
def stream(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Stop after N readings."),
    average: Optional[int] = typer.Option(
        None, "--average", help="Print the mean of every N readings (overrides config)."
    ),
    out: Optional[Path] = typer.Option(None, "--out", help="Also log readings to this CSV."),
) -> None:
    """Print `distance,signal` continuously using the pipelined trigger/read loop."""

    cfg: HostConfig = ctx.obj.config
    window = average if average is not None else cfg.average_window
    averager = Averager(window) if window and window > 1 else None
    csv_path = out or cfg.output_csv
    csv_logger = CsvLogger(csv_path) if csv_path else None
    stop = threading.Event()
    with _open_driver(cfg) as lidar:
        measurements = MeasurementStream(lidar, cfg.poll_interval_sec, stop)
        try:
            lidar.configure(cfg.preset)
            if csv_logger:
                csv_logger.set_metadata(
                    {"address": f"0x{lidar.address:02X}", "preset": str(cfg.preset), "llv3": __version__}
                )
            for measurement in measurements.iter_measurements(limit):
                if averager is not None:
                    measurement = averager.push(measurement)
                    if measurement is None:
                        continue
                typer.echo(f"{measurement.distance_cm},{measurement.signal_strength}")
                if csv_logger:
                    csv_logger.append(measurement)
        except KeyboardInterrupt:
            stop.set()
            logger.info("Stopping stream (Ctrl+C)")
        finally:
            if csv_logger:
                csv_logger.close()
            stats = measurements.stats()
            logger.info("polls=%d measurements=%d", stats["polls"], stats["measurements"])


@app.command()
def measure(ctx: typer.Context) -> None:
    """Take one blocking reading."""

    cfg: HostConfig = ctx.obj.config
    with _open_driver(cfg) as lidar:
        result = lidar.measure()
    typer.echo(f"{result.distance_cm},{result.signal_strength}")


@app.command()
def configure(
    ctx: typer.Context,
    preset: Optional[int] = typer.Option(None, "--preset", "-p", help="Preset id 0-6."),
) -> None:
    """Apply a configuration preset."""

    cfg: HostConfig = ctx.obj.config
    preset_id = cfg.preset if preset is None else preset
    if preset_id not in PRESETS:
        logger.warning("Unknown preset %d, applying the default preset", preset_id)
    with _open_driver(cfg) as lidar:
        lidar.configure(preset_id)
    typer.echo(f"Applied preset {preset_id}: {preset_for(preset_id).description}")


@app.command()
def presets() -> None:
    """List the configuration presets."""

    for preset_id, preset in PRESETS.items():
        values = " ".join(f"0x{value:02X}" for value in preset.as_tuple())
        typer.echo(f"{preset_id}: {values}  {preset.description}")


@app.command("set-address")
def set_address(
    ctx: typer.Context,
    new_address: str = typer.Argument(..., help="Secondary address, e.g. 0x44."),
    disable_default: bool = typer.Option(
        False, "--disable-default", help="Stop answering on the current address."
    ),
) -> None:
    """Assign a secondary I2C address."""

    cfg: HostConfig = ctx.obj.config
    target = _parse_address(new_address)
    with _open_driver(cfg) as lidar:
        previous = lidar.address
        lidar.set_secondary_address(target, disable_default)
    typer.echo(f"Device 0x{previous:02X} now answers on 0x{target:02X}")


@app.command()
def info(ctx: typer.Context) -> None:
    """Print the device unit id."""

    cfg: HostConfig = ctx.obj.config
    with _open_driver(cfg) as lidar:
        unit_id = lidar.read_unit_id()
    typer.echo(f"Address: 0x{cfg.address:02X}")
    typer.echo(f"Unit id: 0x{unit_id:04X}")


@app.command()
def correlation(
    ctx: typer.Context,
    samples: Optional[int] = typer.Option(None, "--samples", "-n", help="Number of points (max 1024)."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the record to CSV."),
    plot: Optional[Path] = typer.Option(None, "--plot", help="Save a PNG of the waveform."),
) -> None:
    """Take a reading, then dump the correlation record behind it."""

    cfg: HostConfig = ctx.obj.config
    count = cfg.correlation.samples if samples is None else samples
    with _open_driver(cfg) as lidar:
        lidar.measure()
        values = lidar.read_correlation_record(count)
    record = CorrelationRecord.from_samples(values, address=cfg.address)
    crossing = zero_crossing(record.samples)
    if out is not None:
        save_csv(record, out)
        typer.echo(f"Saved {len(record)} samples to {out}")
    else:
        typer.echo(",".join(str(value) for value in values))
    if crossing is not None:
        typer.echo(f"Zero crossing at sample {crossing:.2f}")
    if plot is not None:
        from .plotting import plot_correlation

        try:
            plot_correlation(record, plot)
        except RuntimeError as exc:
            typer.echo(f"[warning] plotting skipped: {exc}")
        else:
            typer.echo(f"Plot written to {plot}")


@app.command()
def summary(
    csv_path: Path = typer.Argument(..., exists=True, readable=True, help="Log written by `stream --out`."),
    plot: Optional[Path] = typer.Option(None, "--plot", help="Save a PNG of distance and signal."),
) -> None:
    """Summarise a measurement log."""

    try:
        result = summarize(load_measurements(csv_path))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Readings: {result.count}")
    typer.echo(
        f"Distance: mean={result.distance_mean:.2f} std={result.distance_std:.2f} "
        f"min={result.distance_min} max={result.distance_max}"
    )
    typer.echo(f"Signal: mean={result.signal_mean:.2f}")
    if plot is not None:
        from .plotting import plot_measurements

        try:
            plot_measurements(csv_path, plot)
        except RuntimeError as exc:
            typer.echo(f"[warning] plotting skipped: {exc}")
        else:
            typer.echo(f"Plot written to {plot}")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
