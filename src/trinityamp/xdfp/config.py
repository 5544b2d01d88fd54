from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Sequence

from .errors import ConfigurationError

TRINITY_VENDOR_ID = 0x05AC
TRINITY_PRODUCT_ID = 0x1101
DEFAULT_TIMEOUT_MS = 100


@dataclass(frozen=True)
class UsbSettings:
    vendor_id: int = TRINITY_VENDOR_ID
    product_id: int = TRINITY_PRODUCT_ID
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    interface: int = 0
    detach_kernel_driver: bool = False

    def __post_init__(self) -> None:
        for name in ("vendor_id", "product_id"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ConfigurationError(f"{name} must fit in 16 bits, got {value!r}")
        if self.timeout_ms <= 0:
            raise ConfigurationError("timeout_ms must be positive")
        if self.interface < 0:
            raise ConfigurationError("interface must be non-negative")


def load_settings(overrides: Sequence[str] | None = None, base: UsbSettings | None = None) -> UsbSettings:
    """
    Build USB settings from defaults and CLI-style overrides.

    Overrides are ``key=value`` pairs, e.g.:
        ["timeout_ms=250", "product_id=0x1102"]
    """
    settings = base or UsbSettings()
    known = {f.name for f in fields(UsbSettings)}
    changes: Dict[str, Any] = {}
    for override in overrides or []:
        key, value = _parse_override(override)
        if key not in known:
            raise ConfigurationError(f"Unknown setting '{key}'. Expected one of {sorted(known)}")
        if key == "detach_kernel_driver":
            if not isinstance(value, bool):
                raise ConfigurationError(f"Setting '{key}' expects true/false, got {value!r}")
        elif isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"Setting '{key}' expects an integer, got {value!r}")
        changes[key] = value
    return replace(settings, **changes) if changes else settings


def _parse_override(item: str) -> tuple[str, Any]:
    if "=" not in item:
        raise ConfigurationError(f"Override '{item}' must use key=value syntax")
    key, raw_value = item.split("=", 1)
    key = key.strip()
    if not key:
        raise ConfigurationError("Override key may not be empty")
    return key, _coerce_value(raw_value.strip())


def _coerce_value(raw: str) -> Any:
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    try:
        return int(raw, 0)
    except ValueError:
        return raw
