from __future__ import annotations

import json
import shutil

import pytest

from monitorswitch.core.errors import (
    DetectionError,
    InputResolutionError,
    InvalidValueError,
    MonitorSelectionError,
    UnsupportedFeatureError,
)
from monitorswitch.core.model import Capabilities, Monitor, OSType, Settings
from monitorswitch.core.service import MonitorService
from monitorswitch.transports.client import DDCClient
from monitorswitch.transports.macos import MacTransport

DELL = Monitor(id="1", name="DELL U2720Q", inputs={"DisplayPort": 0x0F, "HDMI-1": 0x11}, current_input="HDMI-1")
LG = Monitor(id="2", name="LG HDR 4K")


class FakeTransport:
    def __init__(self, monitors: list[Monitor], tool: str = "ddcutil") -> None:
        self.monitors = monitors
        self.tool = tool
        self.registers: dict[tuple[str, int], int] = {("2", 0x60): 0x12}
        self.writes: list[tuple[str, int, int]] = []

    def active_tool(self) -> str:
        return self.tool

    def detect_monitors(self) -> list[Monitor]:
        if not self.monitors:
            raise DetectionError("no monitors detected: xrandr: no usable result")
        return list(self.monitors)

    def list_monitors(self) -> list[Monitor]:
        return self.detect_monitors()

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        return Capabilities()

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        self.writes.append((monitor_id, code, value))

    def get_vcp(self, monitor_id: str, code: int) -> int:
        return self.registers.get((monitor_id, code), 50)


class FakeProbe:
    def get_os_info(self) -> str:
        return "Operating System: linux (Debian 12.4)"


def _service(*monitors: Monitor, settings: Settings | None = None, tool: str = "ddcutil") -> tuple[MonitorService, FakeTransport]:
    transport = FakeTransport(list(monitors), tool=tool)
    settings = settings or Settings()
    client = DDCClient(OSType.LINUX, settings=settings, transport=transport)
    return MonitorService(settings=settings, client=client, probe=FakeProbe()), transport


def test_detect_reports_empty_result_instead_of_raising() -> None:
    service, _ = _service()
    report = service.detect()
    assert report.monitors == ()
    assert report.tool == "ddcutil"
    assert report.errors == ("no monitors detected: xrandr: no usable result",)


def test_resolve_monitor_by_id_or_name_fragment() -> None:
    service, _ = _service(DELL, LG)
    assert service.resolve_monitor("2") == LG
    assert service.resolve_monitor("dell") == DELL


def test_resolve_monitor_needs_hint_when_ambiguous() -> None:
    service, _ = _service(DELL, LG)
    with pytest.raises(MonitorSelectionError, match="Multiple monitors found"):
        service.resolve_monitor()
    with pytest.raises(MonitorSelectionError, match="No monitor found matching 'samsung'"):
        service.resolve_monitor("samsung")


def test_switch_input_uses_detected_inputs_case_insensitively() -> None:
    service, transport = _service(DELL)
    result = service.switch_input("displayport")
    assert result.value == 0x0F
    assert transport.writes == [("1", 0x60, 0x0F)]


def test_switch_input_falls_back_to_aliases_and_tool_table() -> None:
    service, transport = _service(LG, settings=Settings(input_aliases={"Laptop": 0x1B}))
    service.switch_input("laptop")
    service.switch_input("HDMI-2")
    assert transport.writes == [("2", 0x60, 0x1B), ("2", 0x60, 0x12)]


def test_switch_input_rejects_unknown_names() -> None:
    service, transport = _service(DELL)
    with pytest.raises(InputResolutionError, match="Unknown input 'S-Video'"):
        service.switch_input("S-Video")
    assert transport.writes == []


def test_status_reads_input_when_detection_did_not() -> None:
    service, _ = _service(DELL, LG)
    assert service.status("1").current_input == "HDMI-1"
    assert service.status("2").current_input == "HDMI-2"


def test_get_and_set_named_features() -> None:
    service, transport = _service(DELL)
    assert service.get_feature("Brightness").value == 50
    result = service.set_feature("contrast", "70")
    assert (result.code, result.value) == (0x12, 70)
    service.set_feature("0x62", "0x10")
    assert transport.writes == [("1", 0x12, 70), ("1", 0x62, 0x10)]


def test_set_input_feature_accepts_names() -> None:
    service, transport = _service(DELL)
    service.set_feature("input", "HDMI-1")
    assert transport.writes == [("1", 0x60, 0x11)]


def test_feature_and_value_validation() -> None:
    service, transport = _service(DELL)
    with pytest.raises(UnsupportedFeatureError, match="Unknown feature 'sharpness'"):
        service.get_feature("sharpness")
    with pytest.raises(InvalidValueError):
        service.set_feature("brightness", "bright")
    with pytest.raises(InvalidValueError):
        service.set_feature("brightness", "70000")
    assert transport.writes == []


def test_known_inputs_prefers_monitor_then_tool_table() -> None:
    service, _ = _service(DELL, LG, tool="m1ddc", settings=Settings(input_aliases={"Laptop": 0x1B}))
    assert service.known_inputs(DELL) == {"DisplayPort": 0x0F, "HDMI-1": 0x11, "Laptop": 0x1B}
    assert service.known_inputs(LG)["USB-C"] == 27


def test_os_info_and_support_pass_through() -> None:
    service, _ = _service(DELL)
    assert service.os_info() == "Operating System: linux (Debian 12.4)"
    supported, message = service.check_support()
    assert isinstance(supported, bool)
    assert message


class M1DDCRunner:
    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []

    def run(self, argv, *, timeout_s: float) -> str:
        argv = tuple(argv)
        self.calls.append(argv)
        if argv[0] == "system_profiler":
            return json.dumps(
                {"SPDisplaysDataType": [{"spdisplays_ndrvs": [{"_name": "DELL U2720Q", "_spdisplays_displayID": "4"}]}]}
            )
        if argv[:4] == ("m1ddc", "display", "1", "get"):
            return {"luminance": "60\n", "input": "17\n"}[argv[4]]
        if argv[:4] == ("m1ddc", "display", "1", "set"):
            return ""
        raise AssertionError(f"Unexpected cmd: {argv}")


def test_reads_on_macos_leave_monitor_settings_alone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", lambda name: "/opt/homebrew/bin/m1ddc" if name == "m1ddc" else None)
    runner = M1DDCRunner()
    settings = Settings()
    transport = MacTransport(runner=runner, settings=settings, sleep=lambda _: None)
    client = DDCClient(OSType.MACOS, settings=settings, transport=transport)
    service = MonitorService(settings=settings, client=client, probe=FakeProbe())

    assert service.get_feature("brightness").value == 60
    assert service.status().current_input == "HDMI-1"
    assert [call for call in runner.calls if "set" in call] == []

    service.set_feature("brightness", "40", "dell")
    assert [call for call in runner.calls if "set" in call] == [("m1ddc", "display", "1", "set", "luminance", "40")]
