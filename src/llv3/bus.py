from __future__ import annotations

import logging
from typing import Optional, Protocol

import smbus2

logger = logging.getLogger(__name__)

MAX_7BIT_ADDRESS = 0x7F


class LidarLiteError(RuntimeError):
    """Base class for every error raised by the driver and its transport."""


class BusUnavailable(LidarLiteError):
    """The bus device node could not be opened or the target could not be selected."""


class IoFailure(LidarLiteError):
    """A register read or write transaction failed on the bus."""


class PreconditionViolated(LidarLiteError):
    """An argument or device state requirement was not met."""


class I2CBus(Protocol):
    """Primitives the driver needs from a two-wire bus."""

    def select(self, device_address: int) -> None: ...

    def write_register(self, reg_addr: int, data: bytes) -> None: ...

    def read_register(self, reg_addr: int, count: int) -> bytes: ...


class SMBusTransport:
    """
    Linux `/dev/i2c-N` transport built on smbus2.

    Writes go out one byte per transaction at consecutive register offsets.
    Reads are a plain register-address write followed by a separate read
    message, so the device sees a stop condition between the two.
    """

    def __init__(self, bus: int = 1):
        self.bus_number = bus
        self._bus: Optional[smbus2.SMBus] = None
        self._address: Optional[int] = None

    def open(self) -> "SMBusTransport":
        if self._bus is not None:
            return self
        try:
            self._bus = smbus2.SMBus(self.bus_number)
        except OSError as exc:
            raise BusUnavailable(f"Failed to open /dev/i2c-{self.bus_number}: {exc}") from exc
        logger.info("Opened I2C bus %d", self.bus_number)
        return self

    def close(self) -> None:
        if self._bus is None:
            return
        try:
            self._bus.close()
        finally:
            self._bus = None
            self._address = None
            logger.info("Closed I2C bus %d", self.bus_number)

    def __enter__(self) -> "SMBusTransport":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def address(self) -> Optional[int]:
        return self._address

    def select(self, device_address: int) -> None:
        if self._bus is None:
            raise BusUnavailable(f"I2C bus {self.bus_number} is not open")
        if not 0 <= device_address <= MAX_7BIT_ADDRESS:
            raise BusUnavailable(f"Address 0x{device_address:02X} is not a 7-bit I2C address")
        self._address = device_address

    def write_register(self, reg_addr: int, data: bytes) -> None:
        bus, address = self._target()
        for offset, value in enumerate(data):
            reg = (reg_addr + offset) & 0xFF
            logger.debug("write addr=0x%02X reg=0x%02X value=0x%02X", address, reg, value)
            try:
                bus.write_byte_data(address, reg, value)
            except OSError as exc:
                raise IoFailure(
                    f"Write to register 0x{reg:02X} at 0x{address:02X} failed: {exc}"
                ) from exc

    def read_register(self, reg_addr: int, count: int) -> bytes:
        bus, address = self._target()
        read = smbus2.i2c_msg.read(address, count)
        try:
            bus.i2c_rdwr(smbus2.i2c_msg.write(address, [reg_addr & 0xFF]))
            bus.i2c_rdwr(read)
        except OSError as exc:
            raise IoFailure(
                f"Read of {count} byte(s) from register 0x{reg_addr:02X} at 0x{address:02X} failed: {exc}"
            ) from exc
        data = bytes(list(read))
        logger.debug("read addr=0x%02X reg=0x%02X data=%s", address, reg_addr, data.hex())
        return data

    def _target(self) -> tuple[smbus2.SMBus, int]:
        if self._bus is None:
            raise BusUnavailable(f"I2C bus {self.bus_number} is not open")
        if self._address is None:
            raise BusUnavailable("No device address selected")
        return self._bus, self._address
