"""LIDAR-Lite v3 rangefinder driver and host utilities."""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - fallback when package metadata missing
    __version__ = version("llv3")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .bus import BusUnavailable, I2CBus, IoFailure, LidarLiteError, PreconditionViolated, SMBusTransport
from .driver import LidarLiteV3, decode_correlation_sample
from .presets import PRESETS, Preset, preset_for

__all__ = [
    "__version__",
    "BusUnavailable",
    "I2CBus",
    "IoFailure",
    "LidarLiteError",
    "PreconditionViolated",
    "SMBusTransport",
    "LidarLiteV3",
    "decode_correlation_sample",
    "PRESETS",
    "Preset",
    "preset_for",
]
