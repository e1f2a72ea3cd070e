"""Domain-specific errors for monitorswitch."""

from __future__ import annotations

from collections.abc import Sequence


class MonitorSwitchError(Exception):
    """Base error for monitorswitch."""


class ConfigValidationError(MonitorSwitchError):
    """Raised when a config file does not conform to schema or semantics."""


class ConfigLoadError(MonitorSwitchError):
    """Raised when reading config sources fails."""


class UnsupportedPlatformError(MonitorSwitchError):
    """Raised when the running OS has no usable DDC backend."""


class ToolNotFoundError(MonitorSwitchError):
    """Raised when a required DDC helper binary is not installed."""


class DetectionError(MonitorSwitchError):
    """Raised when no monitor could be detected by any backend."""


class MonitorSelectionError(MonitorSwitchError):
    """Raised when a monitor hint cannot resolve a single monitor."""


class InputResolutionError(MonitorSwitchError):
    """Raised when an input name cannot be mapped to a VCP code."""


class UnsupportedFeatureError(MonitorSwitchError):
    """Raised when a VCP code has no mapping for the selected tool."""


class InvalidValueError(MonitorSwitchError):
    """Raised when a feature value is not a usable VCP value."""


class PlatformProbeError(MonitorSwitchError):
    """Raised when an OS information source yields nothing useful."""


class ParseError(MonitorSwitchError):
    """Raised when helper output matches none of the known patterns."""

    def __init__(self, message: str, raw_output: str = "") -> None:
        super().__init__(message)
        self.raw_output = raw_output


class FallbackError(MonitorSwitchError):
    """Raised when every candidate of a fallback chain failed."""

    def __init__(self, message: str, failures: Sequence[str] = ()) -> None:
        detail = "; ".join(failures)
        super().__init__(f"{message}: {detail}" if detail else message)
        self.failures = tuple(failures)


class TransportError(MonitorSwitchError):
    """Base transport error."""


class TransportCommandError(TransportError):
    """Raised when a helper process exits with a non-zero status."""

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int,
        stderr: str = "",
    ) -> None:
        command = " ".join(argv)
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"'{command}' exited with status {returncode}{detail}")
        self.argv = tuple(argv)
        self.returncode = returncode
        self.stderr = stderr


class TransportTimeoutError(TransportError):
    """Raised when a helper process exceeds its deadline."""


class NativeUnavailableError(TransportError):
    """Raised when the native DDC binding cannot be loaded on this host."""


class NativeTransportError(TransportError):
    """Raised when a native DDC call returns a failure status."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


class ProtocolError(TransportError):
    """Raised when a DDC/CI reply fails integrity checks."""
