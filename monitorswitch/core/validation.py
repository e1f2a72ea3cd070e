"""Confirm that a DDC link really controls the monitor.

Some connections (typically VGA or older adapters) accept DDC/CI commands
without acting on them, so a working tool is not enough evidence. The check
reads brightness, writes a probe value, reads it back, and then restores the
original value.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from monitorswitch.core.errors import MonitorSwitchError
from monitorswitch.core.model import DDCValidationResult, ValidationStatus

LOGGER = logging.getLogger(__name__)

PROBE_STEP = 10
PROBE_CEILING = 100
PROBE_FALLBACK = 50
DEFAULT_SETTLE_S = 0.5


class BrightnessIO(Protocol):
    def read_brightness(self, display: str, tool: str) -> int:
        """Return the current brightness of `display` using `tool`."""

    def write_brightness(self, display: str, tool: str, value: int) -> None:
        """Set the brightness of `display` using `tool`."""


def probe_value(current: int) -> int:
    candidate = current + PROBE_STEP
    if candidate <= PROBE_CEILING:
        return candidate
    if current >= PROBE_STEP:
        return current - PROBE_STEP
    return PROBE_FALLBACK


def _restore(io: BrightnessIO, display: str, tool: str, original: int) -> None:
    try:
        io.write_brightness(display, tool, original)
    except MonitorSwitchError as exc:
        LOGGER.warning("Could not restore brightness %d on display %s: %s", original, display, exc)


def _write_takes_effect(
    io: BrightnessIO,
    display: str,
    tool: str,
    original: int,
    *,
    settle_s: float,
    sleep: Callable[[float], None],
) -> bool:
    target = probe_value(original)
    try:
        io.write_brightness(display, tool, target)
    except MonitorSwitchError as exc:
        LOGGER.debug("Probe write on display %s failed: %s", display, exc)
        _restore(io, display, tool, original)
        return False

    try:
        sleep(settle_s)
        observed = io.read_brightness(display, tool)
    except MonitorSwitchError as exc:
        LOGGER.debug("Probe re-read on display %s failed: %s", display, exc)
        return False
    finally:
        _restore(io, display, tool, original)

    LOGGER.debug("Display %s probe wrote %d, read back %d", display, target, observed)
    return observed == target


def validate_ddc_support(
    io: BrightnessIO,
    display: str,
    tool: str,
    *,
    settle_s: float = DEFAULT_SETTLE_S,
    sleep: Callable[[float], None] = time.sleep,
) -> DDCValidationResult:
    if not tool:
        return DDCValidationResult(
            status=ValidationStatus.UNSUPPORTED,
            tool_available=False,
            can_read_values=False,
            can_write_values=False,
            validation_error="no DDC tool available",
            recommended_action="Install 'm1ddc' or 'ddcctl' to enable DDC functionality.",
        )

    try:
        original = io.read_brightness(display, tool)
    except MonitorSwitchError as exc:
        return DDCValidationResult(
            status=ValidationStatus.READ_FAILED,
            tool_available=True,
            can_read_values=False,
            can_write_values=False,
            validation_error=f"Cannot read brightness: {exc}",
            recommended_action="Monitor may not support DDC/CI or connection issue",
        )

    if not _write_takes_effect(io, display, tool, original, settle_s=settle_s, sleep=sleep):
        return DDCValidationResult(
            status=ValidationStatus.WRITE_INEFFECTIVE,
            tool_available=True,
            can_read_values=True,
            can_write_values=False,
            validation_error="DDC commands execute but have no effect",
            recommended_action="VGA/older connections often don't support DDC control. Try HDMI/DisplayPort",
        )

    return DDCValidationResult(
        status=ValidationStatus.FULLY_SUPPORTED,
        tool_available=True,
        can_read_values=True,
        can_write_values=True,
    )
