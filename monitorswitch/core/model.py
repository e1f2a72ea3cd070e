"""Core data models used across transports, service, and CLI."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field


class OSType(str, enum.Enum):
    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"

    @classmethod
    def current(cls) -> OSType | None:
        platform = sys.platform
        if platform.startswith("linux"):
            return cls.LINUX
        if platform == "darwin":
            return cls.MACOS
        if platform in ("win32", "cygwin"):
            return cls.WINDOWS
        return None


# VCP feature codes used by the CLI and the validation round trip.
VCP_BRIGHTNESS = 0x10
VCP_CONTRAST = 0x12
VCP_INPUT_SOURCE = 0x60
VCP_VOLUME = 0x62

FEATURE_CODES: dict[str, int] = {
    "brightness": VCP_BRIGHTNESS,
    "contrast": VCP_CONTRAST,
    "input": VCP_INPUT_SOURCE,
    "volume": VCP_VOLUME,
}


@dataclass(frozen=True)
class Monitor:
    id: str
    name: str
    inputs: dict[str, int] = field(default_factory=dict)
    current_input: str = ""


@dataclass(frozen=True)
class Capabilities:
    supported_inputs: dict[str, int] = field(default_factory=dict)
    supports_brightness: bool = False
    supports_contrast: bool = False


class ValidationStatus(str, enum.Enum):
    UNSUPPORTED = "unsupported"
    READ_FAILED = "read_failed"
    WRITE_INEFFECTIVE = "write_ineffective"
    FULLY_SUPPORTED = "fully_supported"


@dataclass(frozen=True)
class DDCValidationResult:
    status: ValidationStatus
    tool_available: bool
    can_read_values: bool
    can_write_values: bool
    validation_error: str | None = None
    recommended_action: str = ""


@dataclass(frozen=True)
class EnhancedMonitor(Monitor):
    ddc_supported: bool = False
    supported_inputs: dict[str, int] = field(default_factory=dict)
    ddc_tool: str = ""
    validation: DDCValidationResult | None = None


@dataclass(frozen=True)
class VCPReading:
    current: int
    maximum: int


@dataclass
class LinuxInfo:
    name: str = ""
    version: str = ""
    id: str = ""
    version_id: str = ""
    pretty_name: str = ""
    codename: str = ""
    kernel_name: str = ""
    kernel_release: str = ""
    kernel_version: str = ""
    machine: str = ""


@dataclass
class MacOSInfo:
    product_name: str = ""
    product_version: str = ""
    build_version: str = ""
    kernel_name: str = ""
    kernel_release: str = ""
    kernel_version: str = ""
    machine: str = ""
    model_name: str = ""
    model_id: str = ""


@dataclass
class WindowsInfo:
    product_name: str = ""
    version: str = ""
    build: str = ""
    display_version: str = ""
    edition: str = ""
    architecture: str = ""
    install_date: str = ""
    registered_owner: str = ""
    system_root: str = ""


@dataclass(frozen=True)
class Timeouts:
    detect: float = 5.0
    read: float = 3.0
    write: float = 5.0
    probe: float = 3.0
    input_test: float = 1.0


@dataclass(frozen=True)
class Settings:
    timeouts: Timeouts = field(default_factory=Timeouts)
    settle_s: float = 0.5
    probe_inputs: bool = False
    tool_preferences: dict[OSType, tuple[str, ...]] = field(default_factory=dict)
    input_aliases: dict[str, int] = field(default_factory=dict)
    vendors: dict[str, str] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DetectionReport:
    monitors: tuple[Monitor, ...]
    tool: str
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class MonitorStatus:
    monitor: Monitor
    current_input: str
    tool: str


@dataclass(frozen=True)
class FeatureResult:
    monitor: Monitor
    feature: str
    code: int
    value: int
