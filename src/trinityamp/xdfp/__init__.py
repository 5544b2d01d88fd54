"""
XDFP register protocol for the Trinity DSP amplifier.

The subpackage holds the value encoder, the vendor calibration data, the USB
transport and the sequencer that reprograms a live chip in the order its
plugin interpreter requires.
"""

from .config import UsbSettings, load_settings
from .errors import (
    BackendUnavailable,
    ConfigurationError,
    DeviceNotFound,
    FrameError,
    RangeError,
    SequenceError,
    StepError,
    TransportError,
    XdfpError,
)
from .frames import XdfpWrite, build_value_write, decode_value, encode_value
from .sequencer import (
    ConfigurationSequencer,
    PluginController,
    SequencerState,
    configure_device,
    download_eq,
)
from .tables import PLUGIN_IMAGE, PowerBudget, select_eq_table
from .transport import RecordingTransport, UsbTransport, XdfpTransport

__all__ = [
    "UsbSettings",
    "load_settings",
    "BackendUnavailable",
    "ConfigurationError",
    "DeviceNotFound",
    "FrameError",
    "RangeError",
    "SequenceError",
    "StepError",
    "TransportError",
    "XdfpError",
    "XdfpWrite",
    "build_value_write",
    "decode_value",
    "encode_value",
    "ConfigurationSequencer",
    "PluginController",
    "SequencerState",
    "configure_device",
    "download_eq",
    "PLUGIN_IMAGE",
    "PowerBudget",
    "select_eq_table",
    "RecordingTransport",
    "UsbTransport",
    "XdfpTransport",
]
