from __future__ import annotations

import json
import shutil

import pytest

from monitorswitch.core.errors import (
    NativeUnavailableError,
    ToolNotFoundError,
    TransportCommandError,
)
from monitorswitch.core.model import EnhancedMonitor, Settings, ValidationStatus, VCPReading
from monitorswitch.transports.macos import MacTransport

PROFILER = json.dumps(
    {
        "SPDisplaysDataType": [
            {
                "_name": "Apple M2",
                "spdisplays_ndrvs": [
                    {
                        "_name": "Color LCD",
                        "_spdisplays_displayID": "1",
                        "spdisplays_connection_type": "spdisplays_internal",
                    },
                    {"_name": "DELL U2720Q", "_spdisplays_displayID": "4"},
                ],
            }
        ]
    }
)

FEATURES = {"luminance": 0x10, "input": 0x60}


class FakeM1DDC:
    """Runner that answers system_profiler and emulates m1ddc against one display."""

    def __init__(self, *, brightness: int = 50, input_code: int = 17, obeys_writes: bool = True, accepted_inputs=(15, 17)) -> None:
        self.registers = {0x10: brightness, 0x60: input_code}
        self.obeys_writes = obeys_writes
        self.accepted_inputs = set(accepted_inputs)
        self.calls: list[tuple[str, ...]] = []

    def run(self, argv, *, timeout_s: float) -> str:
        argv = tuple(argv)
        self.calls.append(argv)
        if argv == ("system_profiler", "SPDisplaysDataType", "-json"):
            return PROFILER
        if argv[:3] == ("m1ddc", "display", "1") and argv[3] == "get":
            return f"{self.registers[FEATURES[argv[4]]]}\n"
        if argv[:3] == ("m1ddc", "display", "1") and argv[3] == "set":
            code, value = FEATURES[argv[4]], int(argv[5])
            if code == 0x60 and value not in self.accepted_inputs:
                raise TransportCommandError(list(argv), 1, "input rejected")
            if self.obeys_writes:
                self.registers[code] = value
            return ""
        raise AssertionError(f"Unexpected cmd: {argv}")


class FakeNative:
    def __init__(self) -> None:
        self.writes: list[tuple[int, int, int]] = []

    def list_monitors(self):
        return [{"id": 69733378, "name": "LG HDR 4K", "vendor_id": 7789, "model_id": 30471, "serial": 0}]

    def get_vcp(self, display_id: int, code: int) -> VCPReading:
        return VCPReading(current=33, maximum=100)

    def set_vcp(self, display_id: int, code: int, value: int) -> None:
        self.writes.append((display_id, code, value))


def _no_native() -> FakeNative:
    raise NativeUnavailableError("native DDC access is only available on macOS")


def _no_sleep(_: float) -> None:
    return None


def _which(*installed: str):
    return lambda name: f"/usr/local/bin/{name}" if name in installed else None


def test_internal_panel_is_filtered_and_external_is_validated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("m1ddc"))
    runner = FakeM1DDC(brightness=95)
    transport = MacTransport(runner=runner, native_factory=_no_native, sleep=_no_sleep)

    monitors = transport.detect_monitors()
    assert len(monitors) == 1
    monitor = monitors[0]
    assert isinstance(monitor, EnhancedMonitor)
    assert monitor.id == "1"
    assert monitor.name == "DELL U2720Q"
    assert monitor.ddc_supported is True
    assert monitor.current_input == "HDMI-1"
    assert monitor.inputs == {}
    assert runner.registers[0x10] == 95
    assert transport.last_validation["1"].status is ValidationStatus.FULLY_SUPPORTED


def test_read_only_display_is_marked(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("m1ddc"))
    transport = MacTransport(runner=FakeM1DDC(obeys_writes=False), native_factory=_no_native, sleep=_no_sleep)

    monitor = transport.detect_monitors()[0]
    assert monitor.current_input == "HDMI-1 (read-only)"
    assert monitor.inputs == {}
    assert monitor.ddc_supported is False
    assert monitor.validation.can_read_values is True
    assert monitor.validation.can_write_values is False


def test_input_probe_keeps_accepted_codes_and_reselects_original(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("m1ddc"))
    runner = FakeM1DDC(input_code=17, accepted_inputs=(15, 17))
    transport = MacTransport(
        runner=runner,
        settings=Settings(probe_inputs=True),
        native_factory=_no_native,
        sleep=_no_sleep,
    )

    monitor = transport.detect_monitors()[0]
    assert monitor.inputs == {"DisplayPort": 15, "DP": 15, "DP-1": 15, "HDMI": 17, "HDMI-1": 17}
    assert monitor.supported_inputs == monitor.inputs
    assert runner.registers[0x60] == 17
    assert runner.calls[-1] == ("m1ddc", "display", "1", "set", "input", "17")


def test_native_path_without_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which())
    native = FakeNative()

    class FailingProfiler:
        def run(self, argv, *, timeout_s: float) -> str:
            raise TransportCommandError(list(argv), 1, "system_profiler unavailable")

    transport = MacTransport(runner=FailingProfiler(), native_factory=lambda: native, sleep=_no_sleep)

    monitors = transport.detect_monitors()
    assert [(m.id, m.name) for m in monitors] == [("69733378", "LG HDR 4K")]
    assert monitors[0].validation.status is ValidationStatus.UNSUPPORTED

    assert transport.get_vcp("69733378", 0x10) == 33
    transport.set_vcp("69733378", 0x60, 0x0F)
    assert native.writes == [(69733378, 0x60, 0x0F)]


def test_no_tool_and_no_native_names_the_fix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which())
    transport = MacTransport(runner=FakeM1DDC(), native_factory=_no_native, sleep=_no_sleep)

    with pytest.raises(ToolNotFoundError, match="m1ddc or ddcctl"):
        transport.get_vcp("1", 0x10)


def test_capabilities_reflect_readable_features(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("m1ddc"))

    class BrightnessOnly(FakeM1DDC):
        def run(self, argv, *, timeout_s: float) -> str:
            if tuple(argv) == ("m1ddc", "display", "1", "get", "contrast"):
                raise TransportCommandError(list(argv), 1)
            return super().run(argv, timeout_s=timeout_s)

    capabilities = MacTransport(runner=BrightnessOnly(), native_factory=_no_native).get_capabilities("1")
    assert capabilities.supports_brightness is True
    assert capabilities.supports_contrast is False


def test_list_monitors_addresses_without_validating(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("m1ddc"))
    runner = FakeM1DDC()
    transport = MacTransport(runner=runner, native_factory=_no_native, sleep=_no_sleep)

    monitors = transport.list_monitors()
    assert [(m.id, m.name) for m in monitors] == [("1", "DELL U2720Q")]
    assert runner.calls == [("system_profiler", "SPDisplaysDataType", "-json")]
    assert transport.last_validation == {}

    monkeypatch.setattr(shutil, "which", _which())
    transport = MacTransport(runner=runner, native_factory=_no_native, sleep=_no_sleep)
    assert [m.id for m in transport.list_monitors()] == ["4"]
