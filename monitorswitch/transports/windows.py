"""Windows transport placeholder."""

from __future__ import annotations

from monitorswitch.core.errors import UnsupportedPlatformError
from monitorswitch.core.model import Capabilities, Monitor, OSType, Settings
from monitorswitch.core.tools import detect_available_tool, preferences_for

_NOT_IMPLEMENTED = "Windows DDC not implemented yet"


class WindowsTransport:
    def __init__(self, *, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()

    def active_tool(self) -> str:
        return detect_available_tool(
            OSType.WINDOWS,
            preferences_for(OSType.WINDOWS, self._settings.tool_preferences),
        )

    def detect_monitors(self) -> list[Monitor]:
        raise UnsupportedPlatformError(_NOT_IMPLEMENTED)

    def list_monitors(self) -> list[Monitor]:
        raise UnsupportedPlatformError(_NOT_IMPLEMENTED)

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        raise UnsupportedPlatformError(_NOT_IMPLEMENTED)

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        raise UnsupportedPlatformError(_NOT_IMPLEMENTED)

    def get_vcp(self, monitor_id: str, code: int) -> int:
        raise UnsupportedPlatformError(_NOT_IMPLEMENTED)
