"""Stable public API for building tooling on top of monitorswitch.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from monitorswitch.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    DetectionError,
    InputResolutionError,
    InvalidValueError,
    MonitorSelectionError,
    MonitorSwitchError,
    NativeTransportError,
    NativeUnavailableError,
    ParseError,
    ProtocolError,
    ToolNotFoundError,
    TransportCommandError,
    TransportError,
    TransportTimeoutError,
    UnsupportedFeatureError,
    UnsupportedPlatformError,
)
from monitorswitch.core.model import (
    Capabilities,
    DDCValidationResult,
    DetectionReport,
    EnhancedMonitor,
    FeatureResult,
    Monitor,
    MonitorStatus,
    OSType,
    Settings,
    ValidationStatus,
)
from monitorswitch.core.service import MonitorService
from monitorswitch.transports.client import DDCClient

__all__ = [
    "MonitorSwitchError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DetectionError",
    "InputResolutionError",
    "InvalidValueError",
    "MonitorSelectionError",
    "NativeTransportError",
    "NativeUnavailableError",
    "ParseError",
    "ProtocolError",
    "ToolNotFoundError",
    "TransportCommandError",
    "TransportError",
    "TransportTimeoutError",
    "UnsupportedFeatureError",
    "UnsupportedPlatformError",
    "Capabilities",
    "DDCValidationResult",
    "DetectionReport",
    "EnhancedMonitor",
    "FeatureResult",
    "Monitor",
    "MonitorStatus",
    "OSType",
    "Settings",
    "ValidationStatus",
    "DDCClient",
    "Client",
]


class Client:
    """Public client for monitor detection, input switching and VCP access.

    A `Client` wraps config loading, OS detection and transport selection
    behind a stable API intended for third-party tools (GUI/TUI/scripts).
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        ddc_client: DDCClient | None = None,
        config_path: Path | None = None,
    ) -> None:
        self._service = MonitorService(settings=settings, client=ddc_client, config_path=config_path)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def tool(self) -> str:
        return self._service.tool

    def os_info(self) -> str:
        return self._service.os_info()

    def check_support(self) -> tuple[bool, str]:
        return self._service.check_support()

    def detect(self) -> DetectionReport:
        return self._service.detect()

    def resolve_monitor(self, hint: str | None = None) -> Monitor:
        return self._service.resolve_monitor(hint)

    def known_inputs(self, monitor: Monitor | None = None) -> dict[str, int]:
        return self._service.known_inputs(monitor)

    def status(self, *, monitor: str | None = None) -> MonitorStatus:
        return self._service.status(monitor)

    def switch_input(self, name: str, *, monitor: str | None = None) -> FeatureResult:
        return self._service.switch_input(name, monitor)

    def get_feature(self, feature: str, *, monitor: str | None = None) -> FeatureResult:
        return self._service.get_feature(feature, monitor)

    def set_feature(self, feature: str, value: str | int, *, monitor: str | None = None) -> FeatureResult:
        return self._service.set_feature(feature, str(value), monitor)
