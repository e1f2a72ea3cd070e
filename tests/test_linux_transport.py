from __future__ import annotations

import shutil
import subprocess

import pytest

from monitorswitch.core.errors import DetectionError, ToolNotFoundError, TransportCommandError
from monitorswitch.transports.linux import LinuxTransport

DETECT = """\
Display 1
   I2C bus:  /dev/i2c-4
   EDID synopsis:
      Mfg id:               DEL - Dell Inc.
      Model:                DELL U2720Q

Display 2
   I2C bus:  /dev/i2c-5
   EDID synopsis:
      Model:                LG HDR 4K
"""

CAPABILITIES = """\
   Feature: 10 (Brightness)
   Feature: 60 (Input Source)
      Values: 0F 11 12
"""


class FakeRunner:
    def __init__(self, responses: dict[tuple[str, ...], str | Exception]) -> None:
        self.responses = responses
        self.calls: list[tuple[tuple[str, ...], float]] = []

    def run(self, argv, *, timeout_s: float) -> str:
        key = tuple(argv)
        self.calls.append((key, timeout_s))
        response = self.responses.get(key)
        if response is None:
            raise AssertionError(f"Unexpected cmd: {key}")
        if isinstance(response, Exception):
            raise response
        return response


def _which(*installed: str):
    return lambda name: f"/usr/bin/{name}" if name in installed else None


def test_xrandr_fallback_without_ddc_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which())

    def fake_run(cmd, check, capture_output, text, errors, timeout):
        assert cmd == ["xrandr", "--listmonitors"]
        return subprocess.CompletedProcess(cmd, 0, stdout="Monitors: 1\n 0: +HDMI-1 1920x1080+0+0  HDMI-1", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    monitors = LinuxTransport().detect_monitors()
    assert len(monitors) == 1
    assert monitors[0].name == "HDMI-1"
    assert monitors[0].inputs == {}
    assert monitors[0].current_input == ""


def test_ddcutil_detection_enriches_each_monitor(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("ddcutil"))
    runner = FakeRunner(
        {
            ("ddcutil", "detect"): DETECT,
            ("ddcutil", "--display", "1", "capabilities"): CAPABILITIES,
            ("ddcutil", "--display", "1", "getvcp", "60"): "VCP code 0x60 (Input Source): HDMI-1 (sl=0x11)",
            ("ddcutil", "--display", "2", "capabilities"): TransportCommandError(["ddcutil"], 1, "DDC communication failed"),
            ("ddcutil", "--display", "2", "getvcp", "60"): TransportCommandError(["ddcutil"], 1),
        }
    )

    monitors = LinuxTransport(runner=runner).detect_monitors()
    assert [m.id for m in monitors] == ["1", "2"]
    assert monitors[0].inputs == {"DisplayPort": 0x0F, "HDMI-1": 0x11, "HDMI-2": 0x12}
    assert monitors[0].current_input == "HDMI-1"
    assert monitors[1].name == "LG HDR 4K"
    assert monitors[1].inputs == {}
    assert monitors[1].current_input == ""


def test_failed_ddcutil_detect_falls_back_to_xrandr(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("ddcutil"))
    runner = FakeRunner(
        {
            ("ddcutil", "detect"): TransportCommandError(["ddcutil", "detect"], 1, "No /dev/i2c devices"),
            ("xrandr", "--listmonitors"): "Monitors: 1\n 0: +*DP-1 2560x1440+0+0  DP-1",
        }
    )

    monitors = LinuxTransport(runner=runner).detect_monitors()
    assert [m.name for m in monitors] == ["DP-1"]


def test_nothing_found_raises_detection_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which())
    runner = FakeRunner({("xrandr", "--listmonitors"): "Monitors: 0\n"})

    with pytest.raises(DetectionError, match="no monitors detected"):
        LinuxTransport(runner=runner).detect_monitors()


def test_vcp_access_uses_available_tool_and_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which("ddcutil"))
    runner = FakeRunner(
        {
            ("ddcutil", "--display", "1", "getvcp", "10"): "VCP code 0x10 (Brightness): current value = 40, max value = 100",
            ("ddcutil", "--display", "1", "setvcp", "10", "55"): "",
        }
    )
    transport = LinuxTransport(runner=runner)

    assert transport.get_vcp("1", 0x10) == 40
    transport.set_vcp("1", 0x10, 55)
    assert [timeout for _, timeout in runner.calls] == [3.0, 5.0]


def test_vcp_access_without_tool_names_the_fix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", _which())

    with pytest.raises(ToolNotFoundError, match="ddcutil"):
        LinuxTransport(runner=FakeRunner({})).set_vcp("1", 0x60, 0x11)
