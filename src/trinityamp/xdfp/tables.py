from __future__ import annotations

import enum
from typing import Dict, Tuple

from .errors import ConfigurationError

EQ_TABLE_SIZE = 16

EQTable = Tuple[int, ...]


class PowerBudget(enum.Enum):
    """Current the USB source can deliver; picks the EQ gain ceiling."""

    NONE = 0
    MA_500 = 500
    MA_1500 = 1500
    MA_3000 = 3000
    MA_4000 = 4000

    @property
    def milliamps(self) -> int:
        return self.value

    @classmethod
    def from_milliamps(cls, milliamps: int) -> "PowerBudget":
        for budget in cls:
            if budget is not cls.NONE and budget.value == milliamps:
                return budget
        raise ConfigurationError(f"Unsupported power budget {milliamps}mA")


# Calibration data shipped with the vendor driver (AppleUSBTrinityAudioDevice).
POWER_4000MA_EQ: EQTable = (
    228, -129968, 130513,
    -279, -125942, 128415,
    -1689, -123355, 126686,
    -5136, -95891, 109553,
    -18995, -993, 6924,
    -45000,
)

POWER_3000MA_EQ: EQTable = (
    228, -129968, 130513,
    -279, -125942, 128415,
    -1689, -123355, 126686,
    -5137, -95891, 109553,
    -18995, -993, 6924,
    -42000,
)

POWER_1500MA_EQ: EQTable = (
    228, -129968, 130513,
    -279, -125942, 128415,
    -1689, -123355, 126686,
    -5137, -95891, 109553,
    -18995, -993, 6924,
    -20000,
)

POWER_500MA_EQ: EQTable = (
    228, -129968, 130513,
    -279, -125942, 128415,
    -1689, -123355, 126686,
    -5137, -95891, 109553,
    -18995, -993, 6924,
    -8000,
)

EQ_TABLES: Dict[PowerBudget, EQTable] = {
    PowerBudget.MA_4000: POWER_4000MA_EQ,
    PowerBudget.MA_3000: POWER_3000MA_EQ,
    PowerBudget.MA_1500: POWER_1500MA_EQ,
    PowerBudget.MA_500: POWER_500MA_EQ,
}

# Plugins are firmware extensions; this one is required to enable the amplifier.
PLUGIN_IMAGE = bytes(
    (
        0xBF, 0x35, 0x81, 0xBA, 0x85, 0xEA, 0x7B, 0x80, 0xE1, 0x13, 0xBF, 0xDE, 0x0B, 0x8D, 0xB9, 0x85,
        0xBF, 0x1A, 0x0C, 0x8D, 0xB9, 0xE9, 0xF3, 0x81, 0xE8, 0x80, 0x80, 0x79, 0x90, 0x03, 0xBC, 0xEC,
        0x81, 0xEA, 0xA2, 0xB0, 0xE4, 0x00, 0xE5, 0x02, 0x44, 0x99, 0x01, 0x45, 0x15, 0x71, 0x14, 0x19,
        0x90, 0xF6, 0xE0, 0xF0, 0xC8, 0x87, 0x80, 0xC8, 0x51, 0xB0, 0x12, 0x63, 0x90, 0x03, 0x28, 0x98,
        0x02, 0xE0, 0x40, 0xC8, 0x89, 0x80, 0xC8, 0xA0, 0xB0, 0xE1, 0xFB, 0x12, 0x21, 0xC8, 0x88, 0x80,
        0xE8, 0x80, 0x80, 0x90, 0x09, 0xE8, 0x01, 0xA0, 0xC8, 0x80, 0x80, 0xBF, 0x2F, 0x81, 0xE8, 0x80,
        0x80, 0xC8, 0xF3, 0x81, 0xE1, 0x0C, 0x12, 0x21, 0x90, 0x25, 0xE9, 0xED, 0x81, 0xE8, 0x7B, 0x80,
        0x59, 0x49, 0x74, 0xE9, 0xF0, 0x81, 0xE2, 0x80, 0x2A, 0x73, 0x11, 0x2A, 0x7B, 0x99, 0x0A, 0xE8,
        0xF1, 0x81, 0x00, 0xC8, 0xF1, 0x81, 0xCC, 0x7B, 0x80, 0xE8, 0xEE, 0x81, 0xBC, 0xDA, 0x81, 0xE8,
        0xF2, 0x81, 0x90, 0x29, 0xE9, 0x7B, 0x80, 0xE8, 0xED, 0x81, 0x51, 0x72, 0xE8, 0xF1, 0x81, 0x98,
        0x16, 0x40, 0xC8, 0xF1, 0x81, 0x12, 0xE1, 0x80, 0x29, 0xE1, 0xB0, 0x79, 0x99, 0x04, 0x12, 0xBC,
        0xD4, 0x81, 0xE0, 0x30, 0xC8, 0x7B, 0x80, 0xE8, 0xEF, 0x81, 0xC8, 0xF2, 0x81, 0xE8, 0xF2, 0x81,
        0x90, 0x03, 0xBC, 0x24, 0x81, 0x40, 0xC8, 0xF2, 0x81, 0xBC, 0x24, 0x81, 0xB9, 0x01, 0x08, 0x0F,
        0xD0, 0x01, 0x01, 0x01,
    )
)

PLUGIN_DISABLE_SENTINEL = 0xBA


def select_eq_table(budget: PowerBudget) -> EQTable:
    if not isinstance(budget, PowerBudget):
        raise ConfigurationError(f"Expected a PowerBudget, got {budget!r}")
    if budget is PowerBudget.NONE:
        raise ConfigurationError("No power budget selected; refusing to pick an EQ table")
    return EQ_TABLES[budget]
