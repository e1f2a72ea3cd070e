"""Input-source (VCP 0x60) code tables and name resolution."""

from __future__ import annotations

from collections.abc import Mapping

from monitorswitch.core.errors import InputResolutionError
from monitorswitch.core.model import Monitor

STANDARD_INPUT_NAMES: dict[int, str] = {
    0x01: "VGA",
    0x03: "DVI-1",
    0x04: "DVI-2",
    0x0F: "DisplayPort",
    0x11: "HDMI-1",
    0x12: "HDMI-2",
    0x13: "HDMI-3",
}

# Codes as understood by the macOS helpers; 16 and 27 are vendor-specific.
M1DDC_INPUT_SOURCES: dict[str, int] = {
    "DisplayPort": 15,
    "DP": 15,
    "DP-1": 15,
    "DP-2": 16,
    "HDMI": 17,
    "HDMI-1": 17,
    "HDMI-2": 18,
    "USB-C": 27,
    "Thunderbolt": 27,
}

DDCCTL_INPUT_SOURCES: dict[str, int] = {
    "HDMI-1": 17,
    "HDMI-2": 18,
    "DisplayPort": 15,
    "DP": 15,
    "USB-C": 27,
}


def input_code_to_name(code: int) -> str:
    return STANDARD_INPUT_NAMES.get(code, f"Input-0x{code:02X}")


def input_name_for_code(code: int, tool: str = "") -> str:
    """Name a code, preferring the standard table, then the tool's own table."""
    if code in STANDARD_INPUT_NAMES:
        return STANDARD_INPUT_NAMES[code]
    for name, candidate in input_table_for(tool).items():
        if candidate == code:
            return name
    return input_code_to_name(code)


def input_table_for(tool: str) -> dict[str, int]:
    if tool == "m1ddc":
        return dict(M1DDC_INPUT_SOURCES)
    if tool == "ddcctl":
        return dict(DDCCTL_INPUT_SOURCES)
    return {name: code for code, name in STANDARD_INPUT_NAMES.items()}


def resolve_input(
    name: str,
    *,
    monitor: Monitor | None = None,
    tool: str = "",
    aliases: Mapping[str, int] | None = None,
) -> int:
    """Map an input name (case-insensitive) or numeric code to a VCP value.

    Lookup order: the monitor's own detected inputs, user aliases, then the
    table of the active tool.
    """
    stripped = name.strip()
    if stripped.lower().startswith("0x"):
        try:
            return int(stripped, 16)
        except ValueError:
            pass
    elif stripped.isdigit():
        return int(stripped)

    tables: list[Mapping[str, int]] = []
    if monitor is not None and monitor.inputs:
        tables.append(monitor.inputs)
    if aliases:
        tables.append(aliases)
    tables.append(input_table_for(tool))

    lowered = stripped.lower()
    for table in tables:
        for candidate, code in table.items():
            if candidate.lower() == lowered:
                return code

    available = sorted({candidate for table in tables for candidate in table})
    raise InputResolutionError(
        f"Unknown input '{name}'. Available: {', '.join(available)}"
    )
