"""Parsers that turn helper-tool output into the monitor model.

Helper output drifts between tool versions, so every value parser walks an
ordered list of candidate patterns and accepts the first match.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from monitorswitch.core.errors import ParseError
from monitorswitch.core.inputs import input_code_to_name
from monitorswitch.core.model import Capabilities, Monitor

_DISPLAY_HEADER_RE = re.compile(r"^Display\s+(\d+)\b")
_INVALID_DISPLAY_RE = re.compile(r"^Invalid display\b", re.IGNORECASE)
_INPUT_FEATURE_RE = re.compile(r"Feature:\s*60\s*\(Input Source\)", re.IGNORECASE)
_FEATURE_RE = re.compile(r"^Feature:\s*([0-9A-Fa-f]{2})\b")
_HEX_TOKEN_RE = re.compile(r"^(?:0x)?([0-9A-Fa-f]{1,2})$")
_VALUE_LINE_RE = re.compile(r"^([0-9A-Fa-f]{2}):")
_RAW_VCP_RE = re.compile(r"vcp\((.*)\)", re.IGNORECASE | re.DOTALL)
_RAW_INPUTS_RE = re.compile(r"\b60\s*\(([^)]*)\)")
_DDCCONTROL_DEVICE_RE = re.compile(r"-\s*Device:\s*(\S+)")

DEFAULT_VENDORS: dict[str, str] = {
    "610": "Apple",
    "5e3": "ASUS",
    "10ac": "Dell",
    "1e6d": "LG",
    "4c2d": "Samsung",
}

# (pattern, numeric base) pairs, tried in order per tool.
_VALUE_PATTERNS: dict[str, tuple[tuple[re.Pattern[str], int], ...]] = {
    "ddcutil": (
        (re.compile(r"current value\s*=\s*0x([0-9A-Fa-f]+)"), 16),
        (re.compile(r"current value\s*=\s*(\d+)"), 10),
        (re.compile(r"\(sl=0x([0-9A-Fa-f]+)\)"), 16),
        (re.compile(r"VCP\s+[0-9A-Fa-f]{2}\s+SNC\s+x([0-9A-Fa-f]+)"), 16),
        (re.compile(r"VCP\s+[0-9A-Fa-f]{2}\s+C\s+(\d+)"), 10),
    ),
    "ddccontrol": (
        (re.compile(r"Control\s+0x[0-9A-Fa-f]+:\s*[+-]?/(\d+)/\d+"), 10),
    ),
    "ddcctl": (
        (re.compile(r"current:\s*(\d+)"), 10),
        (re.compile(r"control\s+#\d+\s+=\s+(\d+)"), 10),
        (re.compile(r"brightness\s*=\s*(\d+)"), 10),
        (re.compile(r"contrast\s*=\s*(\d+)"), 10),
        (re.compile(r"volume\s*=\s*(\d+)"), 10),
        (re.compile(r"input\s*=\s*(\d+)"), 10),
        (re.compile(r"(\d+)"), 10),
    ),
    "m1ddc": (
        (re.compile(r"luminance:\s*(\d+)", re.IGNORECASE), 10),
        (re.compile(r"contrast:\s*(\d+)", re.IGNORECASE), 10),
        (re.compile(r"volume:\s*(\d+)", re.IGNORECASE), 10),
        (re.compile(r"input:\s*(\d+)", re.IGNORECASE), 10),
        (re.compile(r"^\s*(\d+)\s*$", re.MULTILINE), 10),
    ),
}


def _field_value(line: str, label: str) -> str:
    _, _, value = line.partition(label)
    return value.strip()


def parse_ddcutil_detect(output: str) -> list[Monitor]:
    """Split `ddcutil detect` output into one Monitor per `Display N` block."""
    blocks: list[dict[str, str]] = []
    current: dict[str, str] | None = None

    for raw_line in output.splitlines():
        line = raw_line.strip()
        header = _DISPLAY_HEADER_RE.match(line)
        if header:
            current = {"id": header.group(1)}
            blocks.append(current)
            continue
        if _INVALID_DISPLAY_RE.match(line):
            current = None
            continue
        if current is None:
            continue
        if "Mfg id:" in line:
            current.setdefault("mfg", _field_value(line, "Mfg id:"))
        elif line.startswith("Model:"):
            current.setdefault("model", _field_value(line, "Model:"))

    monitors: list[Monitor] = []
    for block in blocks:
        mfg = block.get("mfg", "")
        model = block.get("model", "")
        if mfg and model:
            name = f"{mfg} {model}"
        else:
            name = mfg or model or f"External Display {block['id']}"
        monitors.append(Monitor(id=block["id"], name=name))
    return monitors


def _hex_codes(tokens: Sequence[str]) -> list[int]:
    codes: list[int] = []
    for token in tokens:
        match = _HEX_TOKEN_RE.match(token)
        if match:
            codes.append(int(match.group(1), 16))
    return codes


def parse_input_sources(capabilities: str) -> dict[str, int]:
    """Decode the values listed under `Feature: 60 (Input Source)`."""
    inputs: dict[str, int] = {}
    in_section = False
    in_values = False

    for raw_line in capabilities.splitlines():
        line = raw_line.strip()
        if not in_section:
            if _INPUT_FEATURE_RE.search(line):
                in_section = True
            continue

        if line.startswith("Feature:"):
            break
        if line.startswith("Values:"):
            tokens = line[len("Values:"):].split()
            if tokens:
                for code in _hex_codes(tokens):
                    inputs[input_code_to_name(code)] = code
                break
            in_values = True
            continue
        if in_values:
            match = _VALUE_LINE_RE.match(line)
            if not match:
                break
            code = int(match.group(1), 16)
            inputs[input_code_to_name(code)] = code

    return inputs


def _strip_nested(text: str) -> str:
    depth = 0
    kept: list[str] = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0:
            kept.append(char)
    return "".join(kept)


def parse_raw_capabilities(raw: str) -> Capabilities:
    """Extract inputs/brightness/contrast from an MCCS `vcp(...)` section.

    Only the top level of the section is inspected; this is not a full
    capabilities-string grammar.
    """
    match = _RAW_VCP_RE.search(raw)
    if not match:
        return Capabilities()
    section = match.group(1)
    top_level = {code for code in _hex_codes(_strip_nested(section).split())}
    inputs: dict[str, int] = {}
    values = _RAW_INPUTS_RE.search(section)
    if values:
        for code in _hex_codes(values.group(1).split()):
            inputs[input_code_to_name(code)] = code
    return Capabilities(
        supported_inputs=inputs,
        supports_brightness=0x10 in top_level,
        supports_contrast=0x12 in top_level,
    )


def parse_capabilities(output: str) -> Capabilities:
    """Build Capabilities from `ddcutil capabilities` style output."""
    features: set[int] = set()
    for raw_line in output.splitlines():
        match = _FEATURE_RE.match(raw_line.strip())
        if match:
            features.add(int(match.group(1), 16))

    if not features and "vcp(" in output.lower():
        return parse_raw_capabilities(output)

    return Capabilities(
        supported_inputs=parse_input_sources(output),
        supports_brightness=0x10 in features,
        supports_contrast=0x12 in features,
    )


def parse_vcp_value(output: str, tool: str, code: int | None = None) -> int:
    """Extract the current value of a VCP feature from helper output."""
    cleaned = output.strip()
    for pattern, base in _VALUE_PATTERNS.get(tool, ()):
        match = pattern.search(cleaned)
        if not match:
            continue
        try:
            return int(match.group(1), base)
        except ValueError:
            continue

    feature = f" for VCP 0x{code:02X}" if code is not None else ""
    raise ParseError(
        f"could not parse {tool or 'tool'} value{feature} from output: '{cleaned}'",
        raw_output=cleaned,
    )


def parse_xrandr_monitors(output: str) -> list[Monitor]:
    """Parse `xrandr --listmonitors`; connector names only, no DDC data."""
    monitors: list[Monitor] = []
    for line in output.splitlines():
        if ":" not in line or line.startswith("Monitors:"):
            continue
        parts = line.split()
        if len(parts) < 3:
            continue
        monitors.append(Monitor(id=str(len(monitors) + 1), name=parts[-1]))
    return monitors


def parse_ddccontrol_probe(output: str) -> list[Monitor]:
    monitors: list[Monitor] = []
    device = ""
    name = ""
    for raw_line in output.splitlines():
        line = raw_line.strip()
        match = _DDCCONTROL_DEVICE_RE.match(line)
        if match:
            if device:
                monitors.append(Monitor(id=device, name=name or f"External Display {device}"))
            device, name = match.group(1), ""
            continue
        if device and line.startswith("Monitor Name:"):
            name = _field_value(line, "Monitor Name:")
    if device:
        monitors.append(Monitor(id=device, name=name or f"External Display {device}"))
    return monitors


def display_name(entry: Mapping[str, Any], vendors: Mapping[str, str] | None = None) -> str:
    name = str(entry.get("_name") or "")
    if name and name != "(null)":
        return name

    table = vendors or DEFAULT_VENDORS
    vendor_id = str(entry.get("_spdisplays_display-vendor-id") or "").lower()
    vendor = table.get(vendor_id, "")
    if vendor:
        return f"{vendor} Display"

    return f"External Display {entry.get('_spdisplays_displayID', '')}".rstrip()


def parse_system_profiler_displays(
    output: str,
    vendors: Mapping[str, str] | None = None,
) -> list[Monitor]:
    """Parse `system_profiler SPDisplaysDataType -json`, skipping built-ins."""
    try:
        doc = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ParseError(f"failed to parse system_profiler output: {exc}", raw_output=output.strip()) from exc
    if not isinstance(doc, dict):
        raise ParseError("system_profiler output is not a JSON object", raw_output=output.strip())

    monitors: list[Monitor] = []
    for gpu in doc.get("SPDisplaysDataType", []) or []:
        for entry in gpu.get("spdisplays_ndrvs", []) or []:
            if entry.get("spdisplays_connection_type") == "spdisplays_internal":
                continue
            monitors.append(
                Monitor(
                    id=str(entry.get("_spdisplays_displayID", "")),
                    name=display_name(entry, vendors),
                )
            )
    return monitors
