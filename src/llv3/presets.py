from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Tuple

from . import registers as reg


@dataclass(frozen=True)
class Preset:
    sig_count_max: int
    acq_config_reg: int
    ref_count_max: int
    threshold_bypass: int
    description: str = ""

    def register_writes(self) -> Iterator[Tuple[int, int]]:
        """Register/value pairs in the order the device expects them."""
        yield reg.SIG_CNT_VAL, self.sig_count_max
        yield reg.ACQ_CONFIG, self.acq_config_reg
        yield reg.REF_CNT_VAL, self.ref_count_max
        yield reg.THRESH_BYPASS, self.threshold_bypass

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.sig_count_max, self.acq_config_reg, self.ref_count_max, self.threshold_bypass)


DEFAULT_PRESET_ID = 0

PRESETS: Dict[int, Preset] = {
    0: Preset(0x80, 0x08, 0x05, 0x00, "default mode, balanced performance"),
    1: Preset(0x1D, 0x08, 0x03, 0x00, "short range, high speed"),
    # quick termination detection: faster at short range, less accurate
    2: Preset(0x80, 0x00, 0x03, 0x00, "default range, higher speed short range"),
    3: Preset(0xFF, 0x08, 0x05, 0x00, "maximum range"),
    4: Preset(0x80, 0x08, 0x05, 0x80, "high sensitivity detection, high erroneous measurements"),
    5: Preset(0x80, 0x08, 0x05, 0xB0, "low sensitivity detection, low erroneous measurements"),
    # short_sig off, mode pin = status output
    6: Preset(0x04, 0x01, 0x03, 0x00, "short range, high speed, higher error"),
}


def preset_for(preset_id: int) -> Preset:
    """Look up a preset; unknown ids fall back to the default preset."""
    return PRESETS.get(preset_id, PRESETS[DEFAULT_PRESET_ID])
