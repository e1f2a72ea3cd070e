"""Linux transport built on ddcutil/ddccontrol, with xrandr as a last resort."""

from __future__ import annotations

import logging
from collections.abc import Callable

from monitorswitch.core import commands, parsers
from monitorswitch.core.errors import (
    DetectionError,
    FallbackError,
    MonitorSwitchError,
    ToolNotFoundError,
)
from monitorswitch.core.fallback import first_success
from monitorswitch.core.inputs import input_code_to_name
from monitorswitch.core.model import VCP_INPUT_SOURCE, Capabilities, Monitor, OSType, Settings
from monitorswitch.core.tools import detect_available_tool, install_hint, preferences_for
from monitorswitch.transports.process import ProcessRunner

LOGGER = logging.getLogger(__name__)


class LinuxTransport:
    def __init__(self, *, runner: ProcessRunner | None = None, settings: Settings | None = None) -> None:
        self._runner = runner or ProcessRunner()
        self._settings = settings or Settings()

    def active_tool(self) -> str:
        return detect_available_tool(
            OSType.LINUX,
            preferences_for(OSType.LINUX, self._settings.tool_preferences),
        )

    def _require_tool(self) -> str:
        tool = self.active_tool()
        if not tool:
            raise ToolNotFoundError(f"no DDC/CI tool available. {install_hint(OSType.LINUX)}")
        return tool

    def detect_monitors(self) -> list[Monitor]:
        tool = self.active_tool()
        candidates: list[tuple[str, Callable[[], list[Monitor]]]] = []
        if tool == "ddcutil":
            candidates.append(("ddcutil", self._detect_with_ddcutil))
        elif tool == "ddccontrol":
            candidates.append(("ddccontrol", self._detect_with_ddccontrol))
        candidates.append(("xrandr", self._detect_with_xrandr))

        try:
            result = first_success(candidates, accept=bool, description="no monitors detected")
        except FallbackError as exc:
            raise DetectionError(str(exc)) from exc
        LOGGER.debug("Detected %d monitor(s) via %s", len(result.value), result.label)
        return result.value

    def list_monitors(self) -> list[Monitor]:
        # Detection here only reads from the monitors.
        return self.detect_monitors()

    def _detect_with_ddcutil(self) -> list[Monitor]:
        output = self._runner.run(commands.detect_args("ddcutil"), timeout_s=self._settings.timeouts.detect)
        return [self._enrich(monitor, "ddcutil") for monitor in parsers.parse_ddcutil_detect(output)]

    def _detect_with_ddccontrol(self) -> list[Monitor]:
        output = self._runner.run(commands.detect_args("ddccontrol"), timeout_s=self._settings.timeouts.detect)
        return [self._enrich(monitor, "ddccontrol") for monitor in parsers.parse_ddccontrol_probe(output)]

    def _detect_with_xrandr(self) -> list[Monitor]:
        output = self._runner.run(["xrandr", "--listmonitors"], timeout_s=self._settings.timeouts.detect)
        return parsers.parse_xrandr_monitors(output)

    def _enrich(self, monitor: Monitor, tool: str) -> Monitor:
        inputs: dict[str, int] = {}
        current_input = ""
        try:
            inputs = dict(self._capabilities(monitor.id, tool).supported_inputs)
        except MonitorSwitchError as exc:
            LOGGER.warning("Could not read capabilities of display %s: %s", monitor.id, exc)
        try:
            current_input = input_code_to_name(self._get_vcp(monitor.id, tool, VCP_INPUT_SOURCE))
        except MonitorSwitchError as exc:
            LOGGER.debug("Could not read current input of display %s: %s", monitor.id, exc)
        return Monitor(id=monitor.id, name=monitor.name, inputs=inputs, current_input=current_input)

    def _capabilities(self, monitor_id: str, tool: str) -> Capabilities:
        output = self._runner.run(
            commands.capabilities_args(tool, monitor_id),
            timeout_s=self._settings.timeouts.detect,
        )
        return parsers.parse_capabilities(output)

    def _get_vcp(self, monitor_id: str, tool: str, code: int) -> int:
        output = self._runner.run(
            commands.get_vcp_args(tool, monitor_id, code),
            timeout_s=self._settings.timeouts.read,
        )
        return parsers.parse_vcp_value(output, tool, code)

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        return self._capabilities(monitor_id, self._require_tool())

    def get_vcp(self, monitor_id: str, code: int) -> int:
        return self._get_vcp(monitor_id, self._require_tool(), code)

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        tool = self._require_tool()
        self._runner.run(
            commands.set_vcp_args(tool, monitor_id, code, value),
            timeout_s=self._settings.timeouts.write,
        )
