from __future__ import annotations

import pytest

from monitorswitch.api import Client, DDCClient, InvalidValueError, Monitor, OSType, Settings
from monitorswitch.core.model import Capabilities


class FakeTransport:
    def __init__(self) -> None:
        self.registers = {0x10: 60, 0x60: 0x0F}

    def active_tool(self) -> str:
        return "ddcutil"

    def detect_monitors(self) -> list[Monitor]:
        return [Monitor(id="1", name="DELL U2720Q")]

    def list_monitors(self) -> list[Monitor]:
        return self.detect_monitors()

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        return Capabilities(supports_brightness=True)

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        self.registers[code] = value

    def get_vcp(self, monitor_id: str, code: int) -> int:
        return self.registers[code]


def _client(transport: FakeTransport) -> Client:
    settings = Settings()
    return Client(settings=settings, ddc_client=DDCClient(OSType.LINUX, settings=settings, transport=transport))


def test_public_client_detect() -> None:
    client = _client(FakeTransport())
    report = client.detect()
    assert [m.name for m in report.monitors] == ["DELL U2720Q"]
    assert report.tool == "ddcutil"
    assert client.load_warnings == ()


def test_public_client_status_and_switch() -> None:
    transport = FakeTransport()
    client = _client(transport)

    assert client.status(monitor="dell").current_input == "DisplayPort"
    result = client.switch_input("hdmi-1", monitor="dell")
    assert result.value == 0x11
    assert transport.registers[0x60] == 0x11


def test_public_client_features() -> None:
    transport = FakeTransport()
    client = _client(transport)

    assert client.get_feature("brightness").value == 60
    client.set_feature("brightness", 25)
    assert transport.registers[0x10] == 25

    with pytest.raises(InvalidValueError):
        client.set_feature("brightness", -5)
