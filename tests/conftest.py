from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import pytest

from llv3.bus import IoFailure


class FakeBus:
    """
    In-memory bus that records every transaction.

    `responses` maps a register address (as passed to `read_register`, i.e.
    including the auto-increment bit) to either fixed bytes or a list of byte
    strings consumed one per read.
    """

    def __init__(self, responses: Optional[Dict[int, object]] = None):
        self.responses: Dict[int, object] = dict(responses or {})
        self.selected: Optional[int] = None
        self.log: List[Tuple] = []
        self.fail_read: Optional[Callable[[int, int], bool]] = None
        self.fail_write: Optional[Callable[[int, int], bool]] = None
        self._read_calls = 0

    def select(self, device_address: int) -> None:
        self.selected = device_address
        self.log.append(("select", device_address))

    def write_register(self, reg_addr: int, data: bytes) -> None:
        for offset, value in enumerate(data):
            if self.fail_write is not None and self.fail_write(reg_addr + offset, value):
                raise IoFailure(f"injected write failure at 0x{reg_addr + offset:02X}")
            self.log.append(("write", self.selected, reg_addr + offset, value))

    def read_register(self, reg_addr: int, count: int) -> bytes:
        self._read_calls += 1
        if self.fail_read is not None and self.fail_read(reg_addr, self._read_calls):
            raise IoFailure(f"injected read failure at 0x{reg_addr:02X}")
        self.log.append(("read", self.selected, reg_addr, count))
        response = self.responses.get(reg_addr, bytes(count))
        if isinstance(response, list):
            response = response.pop(0) if response else bytes(count)
        return bytes(response)[:count]

    def writes(self) -> List[Tuple[int, int, int]]:
        return [entry[1:] for entry in self.log if entry[0] == "write"]

    def reads(self) -> List[Tuple[int, int, int]]:
        return [entry[1:] for entry in self.log if entry[0] == "read"]

    def transactions(self) -> List[Tuple]:
        return [entry for entry in self.log if entry[0] != "select"]


@pytest.fixture
def fake_bus() -> FakeBus:
    return FakeBus()
