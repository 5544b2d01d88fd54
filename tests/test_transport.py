from __future__ import annotations

from types import SimpleNamespace

import pytest

from trinityamp.xdfp.config import UsbSettings
from trinityamp.xdfp.errors import BackendUnavailable, DeviceNotFound, StepError, TransportError
from trinityamp.xdfp.frames import PLUGIN_BASE_ADDR
from trinityamp.xdfp.sequencer import SequencerState, configure_device
from trinityamp.xdfp.tables import PowerBudget
from trinityamp.xdfp.transport import VENDOR_OUT_REQUEST_TYPE, UsbTransport


class FakeUSBError(Exception):
    pass


class FakeNoBackendError(Exception):
    pass


class FakeDevice:
    def __init__(self, fail_at: int | None = None, short_write: bool = False):
        self.transfers: list[tuple] = []
        self.fail_at = fail_at
        self.short_write = short_write
        self.kernel_driver_active = True
        self.detached: list[int] = []
        self.attached: list[int] = []

    def ctrl_transfer(self, bmRequestType, bRequest, wValue, wIndex, data, timeout=None):
        call = len(self.transfers)
        self.transfers.append((bmRequestType, bRequest, wValue, wIndex, bytes(data), timeout))
        if self.fail_at is not None and call == self.fail_at:
            raise FakeUSBError("[Errno 32] Pipe error")
        return len(data) - 1 if self.short_write else len(data)

    def is_kernel_driver_active(self, interface):
        return self.kernel_driver_active

    def detach_kernel_driver(self, interface):
        self.kernel_driver_active = False
        self.detached.append(interface)

    def attach_kernel_driver(self, interface):
        self.kernel_driver_active = True
        self.attached.append(interface)


class FakeUsbModule:
    def __init__(self, device: FakeDevice | None):
        self.device = device
        self.find_calls: list[dict] = []
        self.disposed: list[FakeDevice] = []
        self.core = SimpleNamespace(find=self._find, USBError=FakeUSBError, NoBackendError=FakeNoBackendError)
        self.util = SimpleNamespace(dispose_resources=self.disposed.append)

    def _find(self, **kwargs):
        self.find_calls.append(kwargs)
        return self.device


@pytest.fixture
def fake_usb(monkeypatch):
    def install(device):
        module = FakeUsbModule(device)
        monkeypatch.setattr("trinityamp.xdfp.transport.usb", module)
        return module

    return install


def test_vendor_out_request_type():
    assert VENDOR_OUT_REQUEST_TYPE == 0x40


def test_open_reports_missing_device(fake_usb):
    module = fake_usb(None)
    with pytest.raises(DeviceNotFound) as excinfo:
        UsbTransport.open(UsbSettings())
    assert module.find_calls == [{"idVendor": 0x05AC, "idProduct": 0x1101}]
    assert "05ac:1101" in str(excinfo.value)


def test_send_vendor_write_maps_to_control_transfer(fake_usb):
    device = FakeDevice()
    fake_usb(device)
    transport = UsbTransport.open(UsbSettings(timeout_ms=250))
    transport.send_vendor_write(4, PLUGIN_BASE_ADDR, b"\xba")
    assert device.transfers == [(0x40, 4, 0, PLUGIN_BASE_ADDR, b"\xba", 250)]


def test_usb_errors_become_transport_errors(fake_usb):
    fake_usb(FakeDevice(fail_at=0))
    transport = UsbTransport.open(UsbSettings())
    with pytest.raises(TransportError) as excinfo:
        transport.send_vendor_write(4, 0xB042, b"\x00" * 5)
    assert excinfo.value.address == 0xB042
    assert isinstance(excinfo.value.__cause__, FakeUSBError)


def test_short_write_is_an_error(fake_usb):
    fake_usb(FakeDevice(short_write=True))
    transport = UsbTransport.open(UsbSettings())
    with pytest.raises(TransportError):
        transport.send_vendor_write(4, 0xB042, b"\x00" * 5)


def test_close_is_idempotent_and_blocks_further_writes(fake_usb):
    device = FakeDevice()
    module = fake_usb(device)
    transport = UsbTransport.open(UsbSettings())
    transport.close()
    transport.close()
    assert module.disposed == [device]
    assert transport.closed
    with pytest.raises(TransportError):
        transport.send_vendor_write(4, 0xB042, b"\x00")
    assert device.transfers == []


def test_detach_kernel_driver_when_requested(fake_usb):
    device = FakeDevice()
    fake_usb(device)
    UsbTransport.open(UsbSettings(detach_kernel_driver=True, interface=2))
    assert device.detached == [2]


def test_close_reattaches_detached_kernel_driver(fake_usb):
    device = FakeDevice()
    module = fake_usb(device)
    transport = UsbTransport.open(UsbSettings(detach_kernel_driver=True, interface=2))
    assert not device.kernel_driver_active
    transport.close()
    assert device.kernel_driver_active
    assert device.attached == [2]
    assert module.disposed == [device]


def test_close_leaves_driver_alone_without_detach(fake_usb):
    device = FakeDevice()
    fake_usb(device)
    UsbTransport.open(UsbSettings()).close()
    assert device.attached == []


def test_configure_device_reattaches_driver_after_failure(fake_usb):
    device = FakeDevice(fail_at=0)
    fake_usb(device)
    with pytest.raises(StepError):
        configure_device(UsbSettings(detach_kernel_driver=True), PowerBudget.MA_500)
    assert device.attached == [0]
    assert device.kernel_driver_active


def test_missing_backend_is_reported(fake_usb):
    module = fake_usb(FakeDevice())

    def no_backend(**kwargs):
        raise FakeNoBackendError("No backend available")

    module.core.find = no_backend
    with pytest.raises(BackendUnavailable) as excinfo:
        UsbTransport.open(UsbSettings())
    assert "libusb" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, FakeNoBackendError)


def test_configure_device_releases_handle_on_success(fake_usb):
    device = FakeDevice()
    module = fake_usb(device)
    state = configure_device(UsbSettings(), PowerBudget.MA_500)
    assert state is SequencerState.ENABLED
    assert len(device.transfers) == 19
    assert module.disposed == [device]


def test_configure_device_releases_handle_on_failure(fake_usb):
    device = FakeDevice(fail_at=3)
    module = fake_usb(device)
    with pytest.raises(StepError) as excinfo:
        configure_device(UsbSettings(), PowerBudget.MA_500)
    assert excinfo.value.step == "downloading EQ"
    assert len(device.transfers) == 4
    assert module.disposed == [device]


def test_configure_device_rejects_none_before_opening(fake_usb):
    module = fake_usb(FakeDevice())
    with pytest.raises(ValueError):
        configure_device(UsbSettings(), PowerBudget.NONE)
    assert module.find_calls == []
