from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol

from . import registers as reg
from .bus import I2CBus, PreconditionViolated
from .presets import preset_for

logger = logging.getLogger(__name__)


class CancelFlag(Protocol):
    def is_set(self) -> bool: ...


@dataclass
class Measurement:
    """One acquisition cycle's result."""

    distance_cm: int
    signal_strength: int
    ts_ms: float = 0.0


def decode_correlation_sample(magnitude: int, sign: int) -> int:
    """
    Assemble a correlation point from its magnitude and sign bytes.

    The sign byte only says negative or not; a negative point is the magnitude
    with the high byte forced to 0xFF, read back as a signed 16-bit value.
    """
    raw = (magnitude & 0xFF) | (0xFF00 if sign else 0x0000)
    return raw - 0x10000 if raw & 0x8000 else raw


class LidarLiteV3:
    """
    Register-level driver for a LIDAR-Lite v3.

    The device registers are the only state; every call goes back to the bus.
    Each transaction re-selects the target address because the bus may be
    shared. The handle is not thread-safe: callers serialize access.
    """

    def __init__(self, bus: I2CBus, address: int = reg.DEFAULT_ADDRESS):
        self.bus = bus
        self.address = address

    # -- bus helpers -----------------------------------------------------

    def _write(self, register: int, data: bytes, address: Optional[int] = None) -> None:
        if not data:
            return
        self.bus.select(self._resolve(address))
        self.bus.write_register(register, data)

    def _read(self, register: int, count: int, address: Optional[int] = None) -> bytes:
        self.bus.select(self._resolve(address))
        return self.bus.read_register(register, count)

    def _resolve(self, address: Optional[int]) -> int:
        return self.address if address is None else address

    # -- configuration ---------------------------------------------------

    def configure(self, preset_id: int = 0, address: Optional[int] = None) -> None:
        """Apply one of the preset configurations. Not rolled back on failure."""
        preset = preset_for(preset_id)
        logger.info(
            "Configuring 0x%02X with preset %d (%s)", self._resolve(address), preset_id, preset.description
        )
        for register, value in preset.register_writes():
            self._write(register, bytes([value]), address)

    # -- acquisition -----------------------------------------------------

    def trigger_acquisition(self, address: Optional[int] = None) -> None:
        self._write(reg.ACQ_CMD, bytes([reg.CMD_ACQUIRE_WITH_BIAS]), address)

    def is_busy(self, address: Optional[int] = None) -> bool:
        status = self._read(reg.STATUS, 1, address)
        return bool(status[0] & reg.STATUS_BUSY)

    def wait_until_idle(self, address: Optional[int] = None) -> None:
        """Spin on the busy flag until it clears. Never times out."""
        while self.is_busy(address):
            pass

    def poll_until_idle(
        self,
        timeout: Optional[float] = None,
        interval: float = 0.0,
        cancel: Optional[CancelFlag] = None,
        address: Optional[int] = None,
    ) -> bool:
        """
        Poll the busy flag with an optional timeout and cancel flag.

        Returns True once the device reports idle, False if the timeout
        expired or `cancel` was set first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.is_set():
                return False
            if not self.is_busy(address):
                return True
            if deadline is not None and time.monotonic() >= deadline:
                logger.debug("Timed out after %.3fs waiting for idle", timeout)
                return False
            if interval > 0:
                time.sleep(interval)

    def read_distance(self, address: Optional[int] = None) -> int:
        data = self._read(reg.auto_increment(reg.DISTANCE), 2, address)
        return (data[0] << 8) | data[1]

    def read_signal_strength(self, address: Optional[int] = None) -> int:
        # single-byte register; the next offset is already the distance high byte
        data = self._read(reg.SIGNAL_STRENGTH, 1, address)
        return data[0]

    def measure(self, address: Optional[int] = None) -> Measurement:
        """Blocking single shot: trigger, wait, read."""
        self.wait_until_idle(address)
        self.trigger_acquisition(address)
        self.wait_until_idle(address)
        return Measurement(
            distance_cm=self.read_distance(address),
            signal_strength=self.read_signal_strength(address),
        )

    # -- addressing ------------------------------------------------------

    def read_unit_id(self, address: Optional[int] = None) -> int:
        data = self._read(reg.auto_increment(reg.UNIT_ID_HIGH), 2, address)
        return (data[0] << 8) | data[1]

    def set_secondary_address(
        self, new_address: int, disable_default: bool = False, address: Optional[int] = None
    ) -> None:
        """
        Make the device answer on `new_address`.

        The unit id has to be mirrored into I2C_ID before the device accepts
        a secondary address. When `disable_default` is set, the final write
        goes to `new_address` because the old one stops accepting
        configuration. A failure part way leaves the device addressing in an
        unknown state.
        """
        if not 0 <= new_address <= 0x7F:
            raise PreconditionViolated(f"Address 0x{new_address:02X} is not a 7-bit I2C address")
        current = self._resolve(address)
        unit_id = self._read(reg.auto_increment(reg.UNIT_ID_HIGH), 2, current)
        self._write(reg.I2C_ID_HIGH, unit_id, current)
        self._write(reg.I2C_SEC_ADR, bytes([new_address]), current)
        self._write(reg.I2C_CONFIG, bytes([reg.I2C_CONFIG_ENABLE_SECONDARY]), current)
        if disable_default:
            self._write(reg.I2C_CONFIG, bytes([reg.I2C_CONFIG_DISABLE_DEFAULT]), new_address)
        logger.info(
            "Device 0x%02X (unit id %s) now answers on 0x%02X%s",
            current,
            unit_id.hex(),
            new_address,
            " only" if disable_default else "",
        )
        if address is None or address == self.address:
            self.address = new_address

    # -- diagnostics -----------------------------------------------------

    def read_correlation_record(
        self, count: int = reg.CORRELATION_DEFAULT_SAMPLES, address: Optional[int] = None
    ) -> List[int]:
        """
        Read `count` points of the correlation waveform.

        A distance acquisition must have completed beforehand or the record
        holds garbage; the device gives no way to detect that. Test mode is
        switched off again even when a read fails.
        """
        if not 0 <= count <= reg.CORRELATION_MAX_SAMPLES:
            raise PreconditionViolated(
                f"Correlation record holds at most {reg.CORRELATION_MAX_SAMPLES} samples, got {count}"
            )
        self._write(reg.ACQ_SETTINGS, bytes([reg.CORRELATION_BANK]), address)
        self._write(reg.COMMAND, bytes([reg.TEST_MODE_ENABLE]), address)
        samples: List[int] = []
        try:
            for _ in range(count):
                magnitude, sign = self._read(reg.auto_increment(reg.CORR_DATA), 2, address)
                samples.append(decode_correlation_sample(magnitude, sign))
        finally:
            self._write(reg.COMMAND, bytes([reg.TEST_MODE_DISABLE]), address)
        logger.debug("Read %d correlation samples", len(samples))
        return samples
