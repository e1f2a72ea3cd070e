"""Argument syntax for each (helper tool, operation) pair."""

from __future__ import annotations

from monitorswitch.core.errors import UnsupportedFeatureError
from monitorswitch.core.model import VCP_BRIGHTNESS, VCP_CONTRAST, VCP_INPUT_SOURCE, VCP_VOLUME

M1DDC_FEATURES: dict[int, str] = {
    VCP_BRIGHTNESS: "luminance",
    VCP_CONTRAST: "contrast",
    VCP_INPUT_SOURCE: "input",
    VCP_VOLUME: "volume",
}

DDCCTL_FLAGS: dict[int, str] = {
    VCP_BRIGHTNESS: "-b",
    VCP_CONTRAST: "-c",
    VCP_INPUT_SOURCE: "-i",
    VCP_VOLUME: "-v",
}

SUPPORTED_TOOLS = ("ddcutil", "ddccontrol", "m1ddc", "ddcctl")


def _check_byte(code: int) -> None:
    if not 0 <= code <= 0xFF:
        raise UnsupportedFeatureError(f"VCP code {code} is outside the 0x00-0xFF range")


def _check_value(value: int) -> None:
    if not 0 <= value <= 0xFFFF:
        raise UnsupportedFeatureError(f"VCP value {value} is outside the 0-65535 range")


def _m1ddc_feature(code: int) -> str:
    try:
        return M1DDC_FEATURES[code]
    except KeyError:
        raise UnsupportedFeatureError(f"unsupported VCP code for m1ddc: 0x{code:02X}") from None


def _ddcctl_flag(code: int) -> str:
    try:
        return DDCCTL_FLAGS[code]
    except KeyError:
        raise UnsupportedFeatureError(f"unsupported VCP code for ddcctl: 0x{code:02X}") from None


def _unknown_tool(tool: str) -> UnsupportedFeatureError:
    return UnsupportedFeatureError(f"no command mapping for tool '{tool}'")


def detect_args(tool: str) -> list[str]:
    if tool == "ddcutil":
        return ["ddcutil", "detect"]
    if tool == "ddccontrol":
        return ["ddccontrol", "-p"]
    raise _unknown_tool(tool)


def capabilities_args(tool: str, display: str) -> list[str]:
    if tool == "ddcutil":
        return ["ddcutil", "--display", display, "capabilities"]
    if tool == "ddccontrol":
        return ["ddccontrol", "-c", display]
    raise _unknown_tool(tool)


def get_vcp_args(tool: str, display: str, code: int) -> list[str]:
    _check_byte(code)
    if tool == "ddcutil":
        return ["ddcutil", "--display", display, "getvcp", f"{code:02x}"]
    if tool == "ddccontrol":
        return ["ddccontrol", "-r", f"0x{code:02x}", display]
    if tool == "m1ddc":
        return ["m1ddc", "display", display, "get", _m1ddc_feature(code)]
    if tool == "ddcctl":
        return ["ddcctl", "-d", display, _ddcctl_flag(code), "?"]
    raise _unknown_tool(tool)


def set_vcp_args(tool: str, display: str, code: int, value: int) -> list[str]:
    _check_byte(code)
    _check_value(value)
    if tool == "ddcutil":
        return ["ddcutil", "--display", display, "setvcp", f"{code:02x}", str(value)]
    if tool == "ddccontrol":
        return ["ddccontrol", "-r", f"0x{code:02x}", "-w", str(value), display]
    if tool == "m1ddc":
        return ["m1ddc", "display", display, "set", _m1ddc_feature(code), str(value)]
    if tool == "ddcctl":
        return ["ddcctl", "-d", display, _ddcctl_flag(code), str(value)]
    raise _unknown_tool(tool)
