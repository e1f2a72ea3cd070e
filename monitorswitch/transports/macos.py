"""macOS transport: m1ddc/ddcctl when installed, native IOKit access otherwise.

Displays found through system inventory are validated one at a time before
they are reported, because a helper that runs cleanly is no proof that the
monitor listens. Validation results are kept on `last_validation` so callers
can explain why a display came back read-only or unsupported.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from monitorswitch.core import commands, parsers
from monitorswitch.core.errors import (
    DetectionError,
    FallbackError,
    MonitorSelectionError,
    MonitorSwitchError,
    NativeUnavailableError,
    ToolNotFoundError,
)
from monitorswitch.core.fallback import first_success
from monitorswitch.core.inputs import M1DDC_INPUT_SOURCES, input_name_for_code
from monitorswitch.core.model import (
    VCP_BRIGHTNESS,
    VCP_CONTRAST,
    VCP_INPUT_SOURCE,
    Capabilities,
    DDCValidationResult,
    EnhancedMonitor,
    Monitor,
    OSType,
    Settings,
)
from monitorswitch.core.tools import detect_available_tool, install_hint, preferences_for
from monitorswitch.core.validation import validate_ddc_support
from monitorswitch.transports.native_macos import NativeMacDDC
from monitorswitch.transports.process import ProcessRunner

LOGGER = logging.getLogger(__name__)


class MacTransport:
    def __init__(
        self,
        *,
        runner: ProcessRunner | None = None,
        settings: Settings | None = None,
        native_factory: Callable[[], NativeMacDDC] = NativeMacDDC,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runner = runner or ProcessRunner()
        self._settings = settings or Settings()
        self._native_factory = native_factory
        self._native: NativeMacDDC | None = None
        self._native_checked = False
        self._sleep = sleep
        self.last_validation: dict[str, DDCValidationResult] = {}

    def active_tool(self) -> str:
        return detect_available_tool(
            OSType.MACOS,
            preferences_for(OSType.MACOS, self._settings.tool_preferences),
        )

    def native(self) -> NativeMacDDC | None:
        if not self._native_checked:
            self._native_checked = True
            try:
                self._native = self._native_factory()
            except NativeUnavailableError as exc:
                LOGGER.debug("Native DDC unavailable: %s", exc)
        return self._native

    # -- detection ---------------------------------------------------------

    def detect_monitors(self) -> list[Monitor]:
        """List displays and validate DDC/CI on each one, writing brightness to do so."""
        tool = self.active_tool()
        self.last_validation = {}
        return [self._enhance(display, index, tool) for index, display in enumerate(self._base_displays(), start=1)]

    def list_monitors(self) -> list[Monitor]:
        """List displays by the ID commands address them with, without touching them."""
        tool = self.active_tool()
        return [
            Monitor(id=_display_id(display, index, tool), name=display.name)
            for index, display in enumerate(self._base_displays(), start=1)
        ]

    def _base_displays(self) -> list[Monitor]:
        try:
            result = first_success(
                [
                    ("system_profiler", self._system_profiler_displays),
                    ("native", self._native_displays),
                ],
                accept=bool,
                description="no external monitors detected",
            )
        except FallbackError as exc:
            raise DetectionError(str(exc)) from exc
        return result.value

    def _system_profiler_displays(self) -> list[Monitor]:
        output = self._runner.run(
            ["system_profiler", "SPDisplaysDataType", "-json"],
            timeout_s=self._settings.timeouts.detect,
        )
        return parsers.parse_system_profiler_displays(output, self._settings.vendors or None)

    def _native_displays(self) -> list[Monitor]:
        native = self.native()
        if native is None:
            raise NativeUnavailableError("native display access is not available")
        return [Monitor(id=str(entry["id"]), name=entry["name"]) for entry in native.list_monitors()]

    def _enhance(self, display: Monitor, index: int, tool: str) -> EnhancedMonitor:
        display_id = _display_id(display, index, tool)
        validation = validate_ddc_support(
            self,
            display_id,
            tool,
            settle_s=self._settings.settle_s,
            sleep=self._sleep,
        )
        self.last_validation[display_id] = validation

        if not validation.can_read_values:
            LOGGER.warning("Display %s (%s): %s", display_id, display.name, validation.validation_error)
            return EnhancedMonitor(id=display_id, name=display.name, ddc_tool=tool, validation=validation)

        current_input = ""
        try:
            current_input = input_name_for_code(self._get_vcp_with_tool(display_id, tool, VCP_INPUT_SOURCE), tool)
        except MonitorSwitchError as exc:
            LOGGER.debug("Could not read current input of display %s: %s", display_id, exc)

        if not validation.can_write_values:
            return EnhancedMonitor(
                id=display_id,
                name=display.name,
                current_input=f"{current_input} (read-only)" if current_input else "",
                ddc_tool=tool,
                validation=validation,
            )

        inputs = self._probe_inputs(display_id, tool) if self._settings.probe_inputs else {}
        return EnhancedMonitor(
            id=display_id,
            name=display.name,
            inputs=inputs,
            current_input=current_input,
            ddc_supported=True,
            supported_inputs=dict(inputs),
            ddc_tool=tool,
            validation=validation,
        )

    def _probe_inputs(self, display_id: str, tool: str) -> dict[str, int]:
        """Select each known input code in turn and keep those the monitor accepts."""
        try:
            original = self._get_vcp_with_tool(display_id, tool, VCP_INPUT_SOURCE)
        except MonitorSwitchError as exc:
            LOGGER.debug("Skipping input probe on display %s: %s", display_id, exc)
            return {}

        accepted: set[int] = set()
        for code in sorted(set(M1DDC_INPUT_SOURCES.values())):
            try:
                self._set_vcp_with_tool(
                    display_id,
                    tool,
                    VCP_INPUT_SOURCE,
                    code,
                    timeout_s=self._settings.timeouts.input_test,
                )
            except MonitorSwitchError as exc:
                LOGGER.debug("Display %s rejected input %d: %s", display_id, code, exc)
                continue
            accepted.add(code)

        try:
            self._set_vcp_with_tool(display_id, tool, VCP_INPUT_SOURCE, original)
        except MonitorSwitchError as exc:
            LOGGER.warning("Could not reselect input %d on display %s: %s", original, display_id, exc)

        return {name: code for name, code in M1DDC_INPUT_SOURCES.items() if code in accepted}

    # -- brightness access used by the validation round trip ------------------

    def read_brightness(self, display: str, tool: str) -> int:
        return self._get_vcp_with_tool(display, tool, VCP_BRIGHTNESS, timeout_s=self._settings.timeouts.probe)

    def write_brightness(self, display: str, tool: str, value: int) -> None:
        self._set_vcp_with_tool(display, tool, VCP_BRIGHTNESS, value, timeout_s=self._settings.timeouts.probe)

    # -- VCP access ------------------------------------------------------------

    def _native_or_raise(self) -> NativeMacDDC:
        native = self.native()
        if native is None:
            raise ToolNotFoundError(f"no DDC tools available. {install_hint(OSType.MACOS)}")
        return native

    def _get_vcp_with_tool(self, display_id: str, tool: str, code: int, *, timeout_s: float | None = None) -> int:
        if not tool:
            return self._native_or_raise().get_vcp(_numeric_id(display_id), code).current
        output = self._runner.run(
            commands.get_vcp_args(tool, display_id, code),
            timeout_s=self._settings.timeouts.read if timeout_s is None else timeout_s,
        )
        return parsers.parse_vcp_value(output, tool, code)

    def _set_vcp_with_tool(
        self,
        display_id: str,
        tool: str,
        code: int,
        value: int,
        *,
        timeout_s: float | None = None,
    ) -> None:
        if not tool:
            self._native_or_raise().set_vcp(_numeric_id(display_id), code, value)
            return
        self._runner.run(
            commands.set_vcp_args(tool, display_id, code, value),
            timeout_s=self._settings.timeouts.write if timeout_s is None else timeout_s,
        )

    def get_vcp(self, monitor_id: str, code: int) -> int:
        return self._get_vcp_with_tool(monitor_id, self.active_tool(), code)

    def set_vcp(self, monitor_id: str, code: int, value: int) -> None:
        self._set_vcp_with_tool(monitor_id, self.active_tool(), code, value)

    def get_capabilities(self, monitor_id: str) -> Capabilities:
        """macOS helpers expose no capabilities string; probe what reads back."""
        tool = self.active_tool()
        supported: dict[int, bool] = {}
        for code in (VCP_BRIGHTNESS, VCP_CONTRAST):
            try:
                self._get_vcp_with_tool(monitor_id, tool, code)
            except MonitorSwitchError as exc:
                LOGGER.debug("Display %s does not answer VCP 0x%02X: %s", monitor_id, code, exc)
                supported[code] = False
            else:
                supported[code] = True
        return Capabilities(
            supports_brightness=supported[VCP_BRIGHTNESS],
            supports_contrast=supported[VCP_CONTRAST],
        )


def _display_id(display: Monitor, index: int, tool: str) -> str:
    # Helpers address displays by 1-based position; native access by display id.
    return str(index) if tool else display.id


def _numeric_id(monitor_id: str) -> int:
    try:
        return int(monitor_id)
    except ValueError:
        raise MonitorSelectionError(f"invalid monitor ID: {monitor_id}") from None
