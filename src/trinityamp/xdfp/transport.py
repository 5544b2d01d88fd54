from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import List, Optional

import usb.core
import usb.util

from .config import UsbSettings
from .errors import BackendUnavailable, DeviceNotFound, TransportError
from .frames import SET_MEM_REQUEST, XdfpWrite

logger = logging.getLogger(__name__)

# Vendor request, device recipient, host-to-device.
VENDOR_OUT_REQUEST_TYPE = usb.util.build_request_type(
    usb.util.CTRL_OUT, usb.util.CTRL_TYPE_VENDOR, usb.util.CTRL_RECIPIENT_DEVICE
)


class XdfpTransport(abc.ABC):
    """Base class for anything able to issue a vendor OUT control transfer to the chip."""

    timeout_ms: int = 100

    @abc.abstractmethod
    def send_vendor_write(self, request: int, address: int, payload: bytes, timeout_ms: Optional[int] = None) -> None:
        """Send one SetMem-style transfer; raise ``TransportError`` on failure."""

    def set_mem(self, write: XdfpWrite) -> None:
        self.send_vendor_write(SET_MEM_REQUEST, write.address, write.payload)

    def close(self) -> None:
        pass

    def __enter__(self) -> "XdfpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class UsbTransport(XdfpTransport):
    def __init__(self, device, settings: UsbSettings, driver_detached: bool = False) -> None:
        self._device = device
        self.settings = settings
        self.timeout_ms = settings.timeout_ms
        self._driver_detached = driver_detached
        self._closed = False

    @classmethod
    def open(cls, settings: UsbSettings) -> "UsbTransport":
        try:
            device = usb.core.find(idVendor=settings.vendor_id, idProduct=settings.product_id)
        except usb.core.NoBackendError as exc:
            raise BackendUnavailable(f"No USB backend available (is libusb installed?): {exc}") from exc
        if device is None:
            raise DeviceNotFound(settings.vendor_id, settings.product_id)
        logger.info(
            "Opened device %04x:%04x (bus=%s address=%s)",
            settings.vendor_id,
            settings.product_id,
            getattr(device, "bus", "?"),
            getattr(device, "address", "?"),
        )
        detached = False
        if settings.detach_kernel_driver:
            try:
                if device.is_kernel_driver_active(settings.interface):
                    device.detach_kernel_driver(settings.interface)
                    detached = True
                    logger.info("Detached kernel driver from interface %d", settings.interface)
            except (NotImplementedError, usb.core.USBError) as exc:
                logger.warning("Could not detach kernel driver: %s", exc)
        return cls(device, settings, driver_detached=detached)

    @property
    def closed(self) -> bool:
        return self._closed

    def send_vendor_write(self, request: int, address: int, payload: bytes, timeout_ms: Optional[int] = None) -> None:
        if self._closed:
            raise TransportError("Device handle already closed", address=address)
        timeout = timeout_ms if timeout_ms is not None else self.timeout_ms
        logger.debug("ctrl_transfer req=%d addr=0x%04X len=%d data=%s", request, address, len(payload), payload.hex(" "))
        try:
            written = self._device.ctrl_transfer(
                VENDOR_OUT_REQUEST_TYPE,
                request,
                0,
                address,
                bytes(payload),
                timeout=timeout,
            )
        except usb.core.USBError as exc:
            raise TransportError(f"control transfer to 0x{address:04X} failed: {exc}", address=address) from exc
        if written is not None and written != len(payload):
            raise TransportError(
                f"short control transfer to 0x{address:04X} ({written}/{len(payload)} bytes)",
                address=address,
            )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._driver_detached:
            try:
                self._device.attach_kernel_driver(self.settings.interface)
                self._driver_detached = False
                logger.info("Reattached kernel driver to interface %d", self.settings.interface)
            except (NotImplementedError, usb.core.USBError) as exc:
                logger.warning("Could not reattach kernel driver: %s", exc)
        try:
            usb.util.dispose_resources(self._device)
        except usb.core.USBError as exc:
            logger.warning("Error releasing USB device: %s", exc)
        logger.debug("Device handle released")


@dataclass
class RecordedWrite:
    request: int
    address: int
    payload: bytes
    timeout_ms: int


class RecordingTransport(XdfpTransport):
    """
    In-memory transport that keeps every transfer instead of touching USB.

    ``fail_at`` makes the N-th call (0-based) raise ``TransportError`` without
    recording it, which lets callers rehearse aborted runs.
    """

    def __init__(self, fail_at: Optional[int] = None, timeout_ms: int = 100) -> None:
        self.writes: List[RecordedWrite] = []
        self.fail_at = fail_at
        self.timeout_ms = timeout_ms
        self.calls = 0
        self.closed = False

    def send_vendor_write(self, request: int, address: int, payload: bytes, timeout_ms: Optional[int] = None) -> None:
        call = self.calls
        self.calls += 1
        if self.fail_at is not None and call == self.fail_at:
            raise TransportError(f"simulated failure on transfer #{call}", address=address)
        record = RecordedWrite(
            request=request,
            address=address,
            payload=bytes(payload),
            timeout_ms=timeout_ms if timeout_ms is not None else self.timeout_ms,
        )
        self.writes.append(record)
        logger.debug("recorded req=%d addr=0x%04X data=%s", request, address, record.payload.hex(" "))

    def close(self) -> None:
        self.closed = True
