"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
from pathlib import Path

from monitorswitch.core.config_loader import load_settings
from monitorswitch.core.errors import (
    DetectionError,
    InvalidValueError,
    MonitorSelectionError,
    UnsupportedFeatureError,
)
from monitorswitch.core.inputs import input_name_for_code, input_table_for, resolve_input
from monitorswitch.core.model import (
    FEATURE_CODES,
    VCP_INPUT_SOURCE,
    DetectionReport,
    FeatureResult,
    Monitor,
    MonitorStatus,
    Settings,
)
from monitorswitch.core.platform_probe import PlatformProbe
from monitorswitch.transports.client import DDCClient

LOGGER = logging.getLogger(__name__)

MAX_VCP_VALUE = 0xFFFF


class MonitorService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        client: DDCClient | None = None,
        probe: PlatformProbe | None = None,
        config_path: Path | None = None,
    ) -> None:
        self.settings = settings or load_settings(config_path)
        self.load_warnings = self.settings.warnings
        self.client = client or DDCClient(settings=self.settings)
        self.probe = probe or PlatformProbe(self.client.os_type)

    @property
    def tool(self) -> str:
        return self.client.active_tool()

    def os_info(self) -> str:
        return self.probe.get_os_info()

    def check_support(self) -> tuple[bool, str]:
        return self.client.check_support()

    def detect(self) -> DetectionReport:
        """Detect monitors; finding none is reported, not raised."""
        tool = self.tool
        try:
            monitors = self.client.detect_monitors()
        except DetectionError as exc:
            LOGGER.debug("Detection found nothing: %s", exc)
            return DetectionReport(monitors=(), tool=tool, errors=(str(exc),))
        return DetectionReport(monitors=tuple(monitors), tool=tool)

    def resolve_monitor(self, hint: str | None = None) -> Monitor:
        monitors = self.client.list_monitors()
        if not monitors:
            raise MonitorSelectionError("No monitors detected")

        if hint:
            exact = [m for m in monitors if m.id == hint]
            if exact:
                return exact[0]
            lowered = hint.lower()
            matched = [m for m in monitors if lowered in m.name.lower()]
            if not matched:
                raise MonitorSelectionError(f"No monitor found matching '{hint}'")
            monitors = matched

        if len(monitors) > 1:
            described = ", ".join(f"{m.id} ({m.name})" for m in monitors)
            raise MonitorSelectionError(
                f"Multiple monitors found: {described}. Use --monitor to choose one."
            )
        return monitors[0]

    def known_inputs(self, monitor: Monitor | None = None) -> dict[str, int]:
        """Inputs a name can resolve to: detected ones when known, else the tool table."""
        if monitor is not None and monitor.inputs:
            known = dict(monitor.inputs)
        else:
            known = input_table_for(self.tool)
        known.update(self.settings.input_aliases)
        return known

    def status(self, hint: str | None = None) -> MonitorStatus:
        monitor = self.resolve_monitor(hint)
        tool = self.tool
        current = monitor.current_input
        if not current:
            current = input_name_for_code(self.client.get_vcp(monitor.id, VCP_INPUT_SOURCE), tool)
        return MonitorStatus(monitor=monitor, current_input=current, tool=tool)

    def switch_input(self, name: str, hint: str | None = None) -> FeatureResult:
        monitor = self.resolve_monitor(hint)
        code = resolve_input(
            name,
            monitor=monitor,
            tool=self.tool,
            aliases=self.settings.input_aliases,
        )
        LOGGER.debug("Switching display %s to input %s (0x%02X)", monitor.id, name, code)
        self.client.set_vcp(monitor.id, VCP_INPUT_SOURCE, code)
        return FeatureResult(monitor=monitor, feature="input", code=VCP_INPUT_SOURCE, value=code)

    def feature_code(self, feature: str) -> int:
        name = feature.strip().lower()
        if name in FEATURE_CODES:
            return FEATURE_CODES[name]
        try:
            code = int(name, 16) if name.startswith("0x") else int(name)
        except ValueError:
            available = ", ".join(sorted(FEATURE_CODES))
            raise UnsupportedFeatureError(f"Unknown feature '{feature}'. Available: {available}") from None
        if not 0 <= code <= 0xFF:
            raise UnsupportedFeatureError(f"VCP code {code} is outside the 0x00-0xFF range")
        return code

    def get_feature(self, feature: str, hint: str | None = None) -> FeatureResult:
        code = self.feature_code(feature)
        monitor = self.resolve_monitor(hint)
        value = self.client.get_vcp(monitor.id, code)
        return FeatureResult(monitor=monitor, feature=feature, code=code, value=value)

    def set_feature(self, feature: str, value: str, hint: str | None = None) -> FeatureResult:
        code = self.feature_code(feature)
        if code == VCP_INPUT_SOURCE:
            return self.switch_input(value, hint)

        try:
            number = int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            raise InvalidValueError(f"Value for '{feature}' must be an integer, got '{value}'") from None
        if not 0 <= number <= MAX_VCP_VALUE:
            raise InvalidValueError(f"Value for '{feature}' must be between 0 and {MAX_VCP_VALUE}")

        monitor = self.resolve_monitor(hint)
        self.client.set_vcp(monitor.id, code, number)
        return FeatureResult(monitor=monitor, feature=feature, code=code, value=number)
