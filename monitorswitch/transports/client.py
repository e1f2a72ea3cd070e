"""Unified DDC client: one OS-specific transport chosen at construction."""

from __future__ import annotations

import logging
import sys

from monitorswitch.core.errors import UnsupportedPlatformError
from monitorswitch.core.model import Capabilities, Monitor, OSType, Settings
from monitorswitch.core.tools import check_ddc_support, preferences_for
from monitorswitch.transports.base import DisplayTransport
from monitorswitch.transports.linux import LinuxTransport
from monitorswitch.transports.macos import MacTransport
from monitorswitch.transports.process import ProcessRunner
from monitorswitch.transports.windows import WindowsTransport

LOGGER = logging.getLogger(__name__)


def _coerce_os(os_type: OSType | str | None) -> OSType:
    if isinstance(os_type, OSType):
        return os_type
    if os_type is None:
        current = OSType.current()
        if current is None:
            raise UnsupportedPlatformError(f"unsupported OS: {sys.platform}")
        return current
    try:
        return OSType(os_type)
    except ValueError:
        raise UnsupportedPlatformError(f"unsupported OS: {os_type}") from None


def build_transport(os_type: OSType, settings: Settings, runner: ProcessRunner | None = None) -> DisplayTransport:
    if os_type is OSType.LINUX:
        return LinuxTransport(runner=runner, settings=settings)
    if os_type is OSType.MACOS:
        return MacTransport(runner=runner, settings=settings)
    return WindowsTransport(settings=settings)


class DDCClient:
    def __init__(
        self,
        os_type: OSType | str | None = None,
        *,
        settings: Settings | None = None,
        runner: ProcessRunner | None = None,
        transport: DisplayTransport | None = None,
    ) -> None:
        self.os_type = _coerce_os(os_type)
        self.settings = settings or Settings()
        self.transport = transport or build_transport(self.os_type, self.settings, runner)
        LOGGER.debug("Using %s for %s", type(self.transport).__name__, self.os_type.value)

    def active_tool(self) -> str:
        return self.transport.active_tool()

    def check_support(self) -> tuple[bool, str]:
        return check_ddc_support(self.os_type, preferences_for(self.os_type, self.settings.tool_preferences))

    def detect_monitors(self) -> list[Monitor]:
        return self.transport.detect_monitors()

    def list_monitors(self) -> list[Monitor]:
        return self.transport.list_monitors()

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        return self.transport.get_capabilities(monitor_id)

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        self.transport.set_vcp(monitor_id, code, value)

    def get_vcp(self, monitor_id: str, code: int) -> int:
        return self.transport.get_vcp(monitor_id, code)
