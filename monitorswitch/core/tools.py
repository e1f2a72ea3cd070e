"""Detect which external DDC helper binaries are installed."""

from __future__ import annotations

import shutil
from collections.abc import Sequence

from monitorswitch.core.model import OSType

TOOL_PREFERENCES: dict[OSType, tuple[str, ...]] = {
    OSType.MACOS: ("m1ddc", "ddcctl"),
    OSType.LINUX: ("ddcutil", "ddccontrol"),
    OSType.WINDOWS: ("ControlMyMonitor",),
}

_INSTALL_HINTS: dict[OSType, str] = {
    OSType.MACOS: "Install m1ddc or ddcctl to enable DDC/CI control.",
    OSType.LINUX: "Install ddcutil (or ddccontrol) and make sure the i2c-dev module is loaded.",
    OSType.WINDOWS: "Install ControlMyMonitor and add it to PATH.",
}


def preferences_for(
    os_type: OSType,
    overrides: dict[OSType, tuple[str, ...]] | None = None,
) -> tuple[str, ...]:
    if overrides and overrides.get(os_type):
        return overrides[os_type]
    return TOOL_PREFERENCES.get(os_type, ())


def detect_available_tool(os_type: OSType, preferences: Sequence[str] | None = None) -> str:
    """Return the first installed tool for `os_type`, or "" when none resolve.

    Re-evaluated on every call since tools may be installed or removed
    between invocations.
    """
    candidates = preferences if preferences is not None else TOOL_PREFERENCES.get(os_type, ())
    for tool in candidates:
        if shutil.which(tool) is not None:
            return tool
    return ""


def install_hint(os_type: OSType) -> str:
    return _INSTALL_HINTS.get(os_type, "No DDC/CI tooling is known for this platform.")


def check_ddc_support(os_type: OSType, preferences: Sequence[str] | None = None) -> tuple[bool, str]:
    tool = detect_available_tool(os_type, preferences)
    if tool:
        return True, f"DDC/CI support detected via {tool}"
    if os_type is OSType.MACOS:
        return False, f"No DDC/CI tool found. {install_hint(os_type)} Native IOKit access is tried as a fallback."
    return False, f"No DDC/CI tool found. {install_hint(os_type)}"
