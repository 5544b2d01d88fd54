from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .errors import FrameError, RangeError

# 0xB042-0xB044 holds XDFP data in, 0xB045-0xB046 the address/command word.
WRITE_STAGING_ADDR = 0xB042
PLUGIN_BASE_ADDR = 0x8120
EQ_BASE_ADDR = 0x50

SET_MEM_REQUEST = 4
GET_MEM_REQUEST = 5136

VALUE_FRAME_LEN = 5
VALUE_MIN = -0x20000
VALUE_MAX = 0x3FFFF
ADDRESS_MAX = 0x3FF

_NEGATIVE_OFFSET = 0x40000
_SIGN_BIT = 0x20000


@dataclass(frozen=True)
class XdfpWrite:
    """One SetMem transfer: ``address`` travels as wIndex, ``payload`` as the data stage."""

    address: int
    payload: bytes

    def __len__(self) -> int:
        return len(self.payload)

    def describe(self) -> str:
        return f"addr=0x{self.address:04X} len={len(self.payload)} data={self.payload.hex(' ')}"


def _check_range(value: int, address: int) -> None:
    if not VALUE_MIN <= value <= VALUE_MAX:
        raise RangeError(f"Coefficient {value} outside [{VALUE_MIN:#x}, {VALUE_MAX:#x}]")
    if not 0 <= address <= ADDRESS_MAX:
        raise RangeError(f"Register address {address:#x} outside [0, {ADDRESS_MAX:#x}]")


def encode_value(value: int, address: int) -> bytes:
    """
    Pack a coefficient and its 10-bit register address into the 5-byte XDFP word.

    Negative coefficients are shifted into the chip's 18-bit space by adding
    0x40000 before the 10/8/2-bit split; the address follows as 2 + 8 bits.
    """
    _check_range(value, address)
    if value < 0:
        value += _NEGATIVE_OFFSET
    return bytes(
        (
            (value >> 10) & 0xFF,
            (value >> 2) & 0xFF,
            value & 0x03,
            (address >> 8) & 0x03,
            address & 0xFF,
        )
    )


def decode_value(frame: bytes) -> Tuple[int, int]:
    if len(frame) != VALUE_FRAME_LEN:
        raise FrameError(f"XDFP value frame must be {VALUE_FRAME_LEN} bytes, got {len(frame)}")
    raw = (frame[0] << 10) | (frame[1] << 2) | (frame[2] & 0x03)
    raw &= _NEGATIVE_OFFSET - 1
    value = raw - _NEGATIVE_OFFSET if raw & _SIGN_BIT else raw
    address = ((frame[3] & 0x03) << 8) | frame[4]
    return value, address


def build_value_write(value: int, address: int) -> XdfpWrite:
    # The target register rides inside the frame; the transfer always goes to staging.
    return XdfpWrite(address=WRITE_STAGING_ADDR, payload=encode_value(value, address))
