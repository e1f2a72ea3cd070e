"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol

from monitorswitch.core.model import Capabilities, Monitor


class DisplayTransport(Protocol):
    def active_tool(self) -> str:
        """Return the helper tool currently in use, or "" for none."""

    def detect_monitors(self) -> list[Monitor]:
        """Return the monitors reachable through this transport."""

    def list_monitors(self) -> list[Monitor]:
        """Return addressable monitors without changing any monitor setting."""

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        """Return what the monitor reports it supports."""

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        """Write a VCP feature value."""

    def get_vcp(self, monitor_id: str, code: int) -> int:
        """Read the current value of a VCP feature."""
