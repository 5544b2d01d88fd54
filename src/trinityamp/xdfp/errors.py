from __future__ import annotations

from typing import Optional


class XdfpError(Exception):
    """Base class for every error raised while talking to the XDFP interface."""


class DeviceNotFound(XdfpError):
    def __init__(self, vendor_id: int, product_id: int) -> None:
        super().__init__(f"No suitable device found ({vendor_id:04x}:{product_id:04x})")
        self.vendor_id = vendor_id
        self.product_id = product_id


class TransportError(XdfpError):
    """A vendor control transfer failed at the USB layer."""

    def __init__(self, message: str, *, address: Optional[int] = None, index: Optional[int] = None) -> None:
        super().__init__(message)
        self.address = address
        self.index = index


class RangeError(XdfpError, ValueError):
    pass


class FrameError(XdfpError, ValueError):
    pass


class ConfigurationError(XdfpError, ValueError):
    pass


class SequenceError(XdfpError):
    """An operation was attempted out of the order the chip requires."""


class StepError(XdfpError):
    def __init__(self, step: str, cause: BaseException) -> None:
        super().__init__(f"Error while {step}: {cause}")
        self.step = step
        self.cause = cause


class BackendUnavailable(XdfpError):
    """pyusb found no libusb/openusb backend on this host."""
