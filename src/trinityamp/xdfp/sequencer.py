from __future__ import annotations

import enum
import logging
from typing import Callable, List, Optional, Sequence

from .config import UsbSettings
from .errors import ConfigurationError, SequenceError, StepError, TransportError, XdfpError
from .frames import EQ_BASE_ADDR, PLUGIN_BASE_ADDR, XdfpWrite, build_value_write
from .tables import EQ_TABLE_SIZE, PLUGIN_DISABLE_SENTINEL, PLUGIN_IMAGE, PowerBudget, select_eq_table
from .transport import UsbTransport, XdfpTransport

logger = logging.getLogger(__name__)

STEP_DISABLE = "disabling plugin"
STEP_EQ = "downloading EQ"
STEP_DOWNLOAD = "downloading plugin"
STEP_ENABLE = "enabling plugin"


def eq_writes(table: Sequence[int], base: int = EQ_BASE_ADDR) -> List[XdfpWrite]:
    if len(table) != EQ_TABLE_SIZE:
        raise ConfigurationError(f"EQ table must hold {EQ_TABLE_SIZE} coefficients, got {len(table)}")
    return [build_value_write(value, base + index) for index, value in enumerate(table)]


def download_eq(transport: XdfpTransport, table: Sequence[int], *, base: int = EQ_BASE_ADDR) -> int:
    """
    Program the active EQ bank, one coefficient per transfer in register order.

    Every frame is encoded up front so an out-of-range table is rejected
    before the chip sees any of it. The first failed transfer aborts the
    download; its ``TransportError`` carries the failing table index.
    """
    writes = eq_writes(table, base)
    for index, write in enumerate(writes):
        try:
            transport.set_mem(write)
        except TransportError as exc:
            exc.index = index
            logger.debug("EQ write %d/%d failed", index, len(writes))
            raise
    logger.debug("Wrote %d EQ coefficients starting at 0x%03X", len(writes), base)
    return len(writes)


class PluginController:
    """Disable, stage and arm the amplifier plugin; one transfer per operation."""

    def __init__(
        self,
        transport: XdfpTransport,
        image: bytes = PLUGIN_IMAGE,
        disable_value: int = PLUGIN_DISABLE_SENTINEL,
        base: int = PLUGIN_BASE_ADDR,
    ) -> None:
        if len(image) < 2:
            raise ConfigurationError("Plugin image must contain an arm byte and a body")
        self.transport = transport
        self.image = bytes(image)
        self.disable_value = disable_value
        self.base = base
        self._staged = False

    @property
    def staged(self) -> bool:
        return self._staged

    def disable(self) -> None:
        self._staged = False
        self.transport.set_mem(XdfpWrite(self.base, bytes((self.disable_value,))))

    def download(self) -> None:
        # Byte 0 is the arm instruction and is held back until enable().
        self._staged = False
        self.transport.set_mem(XdfpWrite(self.base + 1, self.image[1:]))
        self._staged = True

    def enable(self) -> None:
        if not self._staged:
            raise SequenceError("Plugin body must be downloaded before it is armed")
        self.transport.set_mem(XdfpWrite(self.base, self.image[:1]))


class SequencerState(str, enum.Enum):
    IDLE = "idle"
    PLUGIN_DISABLED = "plugin_disabled"
    EQ_LOADED = "eq_loaded"
    PLUGIN_LOADED = "plugin_loaded"
    ENABLED = "enabled"
    FAILED = "failed"


class ConfigurationSequencer:
    """
    Reprogram a live chip: disable plugin, load EQ, load plugin, enable.

    A failed step leaves the machine in FAILED with whatever the chip already
    received; nothing is rolled back. Both ENABLED and FAILED are terminal,
    so a new sequencer is needed for another attempt.
    """

    def __init__(
        self,
        transport: XdfpTransport,
        budget: PowerBudget,
        plugin: Optional[PluginController] = None,
    ) -> None:
        self.transport = transport
        self.budget = budget
        self.plugin = plugin or PluginController(transport)
        self.state = SequencerState.IDLE
        self.failed_step: Optional[str] = None

    def run(self) -> SequencerState:
        if self.state is not SequencerState.IDLE:
            raise SequenceError(f"Sequencer already ran (state={self.state.value})")
        try:
            table = select_eq_table(self.budget)
        except ConfigurationError as exc:
            raise self._fail("selecting EQ table", exc) from exc
        steps: List[tuple[str, Callable[[], object], SequencerState]] = [
            (STEP_DISABLE, self.plugin.disable, SequencerState.PLUGIN_DISABLED),
            (STEP_EQ, lambda: download_eq(self.transport, table), SequencerState.EQ_LOADED),
            (STEP_DOWNLOAD, self.plugin.download, SequencerState.PLUGIN_LOADED),
            (STEP_ENABLE, self.plugin.enable, SequencerState.ENABLED),
        ]
        for step, action, next_state in steps:
            try:
                action()
            except XdfpError as exc:
                raise self._fail(step, exc) from exc
            logger.info("%s: %s -> %s", step, self.state.value, next_state.value)
            self.state = next_state
        return self.state

    def _fail(self, step: str, exc: Exception) -> StepError:
        logger.error("Error while %s (state=%s): %s", step, self.state.value, exc)
        self.state = SequencerState.FAILED
        self.failed_step = step
        return StepError(step, exc)


def configure_device(settings: UsbSettings, budget: PowerBudget) -> SequencerState:
    """Open the device, run the full sequence and release the handle on every path."""
    select_eq_table(budget)
    with UsbTransport.open(settings) as transport:
        return ConfigurationSequencer(transport, budget).run()
