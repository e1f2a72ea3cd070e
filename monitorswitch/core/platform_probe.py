"""Describe the host operating system for the `status` and `detect` commands.

Every OS has several sources of truth that come and go between releases, so
each lookup walks an ordered chain and takes the first source that yields
useful fields.
"""

from __future__ import annotations

import logging
import os
import platform
import plistlib
import re
from collections.abc import Callable
from pathlib import Path
from xml.parsers.expat import ExpatError

from monitorswitch.core.errors import MonitorSwitchError, PlatformProbeError
from monitorswitch.core.fallback import first_success
from monitorswitch.core.model import LinuxInfo, MacOSInfo, OSType, WindowsInfo
from monitorswitch.transports.process import ProcessRunner

LOGGER = logging.getLogger(__name__)

SYSTEM_VERSION_PLIST = Path("/System/Library/CoreServices/SystemVersion.plist")
WINDOWS_VERSION_KEY = r"SOFTWARE\Microsoft\Windows NT\CurrentVersion"
PROBE_TIMEOUT_S = 5.0

_RELEASE_FILES = (
    ("redhat-release", "redhat"),
    ("centos-release", "centos"),
    ("fedora-release", "fedora"),
    ("debian_version", "debian"),
    ("arch-release", "arch"),
    ("gentoo-release", "gentoo"),
    ("alpine-release", "alpine"),
    ("slackware-version", "slackware"),
)

_OS_RELEASE_FIELDS = {
    "NAME": "name",
    "VERSION": "version",
    "ID": "id",
    "VERSION_ID": "version_id",
    "PRETTY_NAME": "pretty_name",
    "VERSION_CODENAME": "codename",
}

_SYSTEMINFO_VERSION_RE = re.compile(r"(\d+\.\d+\.\d+).*Build (\d+)")
_VER_RE = re.compile(r"Microsoft Windows \[Version ([^\]]+)\]")

_MACHINE_NAMES = {"amd64": "AMD64", "x86_64": "AMD64", "i386": "x86", "i686": "x86", "arm64": "ARM64", "aarch64": "ARM64"}

Fields = dict[str, str]


def _key_values(text: str, separator: str = "=") -> dict[str, str]:
    pairs: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(separator)
        if not sep:
            continue
        pairs[key.strip()] = value.strip().strip("\"'")
    return pairs


def extract_version(content: str) -> str:
    """Return the first word that looks like a dotted version number."""
    for word in content.split():
        if "." in word and len(word) >= 3 and word[0].isdigit():
            return word
    return ""


def _apply(info: object, fields: Fields) -> None:
    for name, value in fields.items():
        setattr(info, name, value)


def _first_useful(sources: list[tuple[str, Callable[[], Fields]]], description: str) -> Fields:
    result = first_success(sources, description=description)
    for failure in result.failures:
        LOGGER.warning("OS info source skipped: %s", failure)
    return result.value


class PlatformProbe:
    def __init__(
        self,
        os_type: OSType | None = None,
        *,
        runner: ProcessRunner | None = None,
        etc_dir: Path = Path("/etc"),
        plist_path: Path = SYSTEM_VERSION_PLIST,
    ) -> None:
        self.os_type = os_type or OSType.current()
        self._runner = runner or ProcessRunner()
        self._etc_dir = etc_dir
        self._plist_path = plist_path

    def get_os_info(self) -> str:
        """One-line OS summary; failures are rendered into the line, never raised."""
        label = self.os_type.value if self.os_type else platform.system().lower()
        try:
            if self.os_type is OSType.LINUX:
                linux = self.detect_linux_info()
                detail = f"{linux.name} {linux.version}"
            elif self.os_type is OSType.MACOS:
                mac = self.detect_macos_info()
                detail = f"{mac.product_name} {mac.product_version}"
            elif self.os_type is OSType.WINDOWS:
                windows = self.detect_windows_info()
                detail = f"{windows.product_name} {windows.version}"
            else:
                raise PlatformProbeError("unsupported operating system")
        except MonitorSwitchError as exc:
            return f"Operating System: {label} (Error: {exc})"
        return f"Operating System: {label} ({detail.strip()})"

    def _require(self, expected: OSType) -> None:
        if self.os_type is not expected:
            raise PlatformProbeError(f"not running on {expected.value}")

    def _run(self, argv: list[str]) -> str:
        return self._runner.run(argv, timeout_s=PROBE_TIMEOUT_S)

    def _kernel_fields(self) -> Fields:
        uname = os.uname()
        return {
            "kernel_name": uname.sysname,
            "kernel_release": uname.release,
            "kernel_version": uname.version,
            "machine": uname.machine,
        }

    def _fill_kernel(self, info: LinuxInfo | MacOSInfo) -> None:
        try:
            _apply(info, self._kernel_fields())
        except (AttributeError, OSError) as exc:
            LOGGER.warning("Could not get kernel info: %s", exc)

    # -- Linux -------------------------------------------------------------

    def detect_linux_info(self) -> LinuxInfo:
        self._require(OSType.LINUX)
        info = LinuxInfo()
        self._fill_kernel(info)
        fields = _first_useful(
            [
                ("os-release", self._os_release),
                ("lsb-release", self._lsb_release),
                ("release files", self._release_files),
            ],
            "could not detect distribution information",
        )
        _apply(info, fields)
        return info

    def _os_release(self) -> Fields:
        pairs = _key_values((self._etc_dir / "os-release").read_text(encoding="utf-8", errors="replace"))
        fields = {attr: pairs[key] for key, attr in _OS_RELEASE_FIELDS.items() if key in pairs}
        if not fields.get("codename") and pairs.get("UBUNTU_CODENAME"):
            fields["codename"] = pairs["UBUNTU_CODENAME"]
        if not (fields.get("name") or fields.get("id") or fields.get("pretty_name")):
            raise PlatformProbeError("no useful information found in /etc/os-release")
        return fields

    def _lsb_release(self) -> Fields:
        pairs = _key_values((self._etc_dir / "lsb-release").read_text(encoding="utf-8", errors="replace"))
        fields: Fields = {}
        if pairs.get("DISTRIB_ID"):
            fields["id"] = pairs["DISTRIB_ID"].lower()
            fields["name"] = pairs["DISTRIB_ID"]
        if "DISTRIB_RELEASE" in pairs:
            fields["version"] = fields["version_id"] = pairs["DISTRIB_RELEASE"]
        if "DISTRIB_DESCRIPTION" in pairs:
            fields["pretty_name"] = pairs["DISTRIB_DESCRIPTION"]
        if "DISTRIB_CODENAME" in pairs:
            fields["codename"] = pairs["DISTRIB_CODENAME"]
        if not (fields.get("name") or fields.get("id")):
            raise PlatformProbeError("no useful information found in /etc/lsb-release")
        return fields

    def _release_files(self) -> Fields:
        for filename, distro in _RELEASE_FILES:
            path = self._etc_dir / filename
            try:
                lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
            except OSError:
                continue
            content = lines[0].strip() if lines else ""
            if not content:
                continue
            fields = {"id": distro, "name": distro.title(), "pretty_name": content}
            version = extract_version(content)
            if version:
                fields["version"] = fields["version_id"] = version
            return fields
        raise PlatformProbeError("no distribution-specific files found")

    # -- macOS -------------------------------------------------------------

    def detect_macos_info(self) -> MacOSInfo:
        self._require(OSType.MACOS)
        info = MacOSInfo()
        self._fill_kernel(info)
        fields = _first_useful(
            [
                ("sw_vers", self._sw_vers),
                ("SystemVersion.plist", self._system_version_plist),
            ],
            "could not detect macOS system information",
        )
        _apply(info, fields)
        self._fill_hardware(info)
        return info

    def _sw_vers(self) -> Fields:
        pairs = _key_values(self._run(["sw_vers"]), separator=":")
        fields = {
            attr: pairs[key]
            for key, attr in (
                ("ProductName", "product_name"),
                ("ProductVersion", "product_version"),
                ("BuildVersion", "build_version"),
            )
            if key in pairs
        }
        if not (fields.get("product_name") or fields.get("product_version")):
            raise PlatformProbeError("no useful information from sw_vers")
        return fields

    def _system_version_plist(self) -> Fields:
        try:
            with self._plist_path.open("rb") as handle:
                doc = plistlib.load(handle)
        except (ValueError, ExpatError) as exc:
            raise PlatformProbeError(f"failed to parse SystemVersion.plist: {exc}") from exc
        if not isinstance(doc, dict):
            raise PlatformProbeError("malformed plist: root is not a dictionary")

        fields = {
            attr: str(doc[key])
            for key, attr in (
                ("ProductName", "product_name"),
                ("ProductVersion", "product_version"),
                ("ProductBuildVersion", "build_version"),
            )
            if key in doc
        }
        if not (fields.get("product_name") or fields.get("product_version")):
            raise PlatformProbeError("no useful information from SystemVersion.plist")
        return fields

    def _fill_hardware(self, info: MacOSInfo) -> None:
        try:
            fields = _first_useful(
                [
                    ("system_profiler", self._hardware_profile),
                    ("sysctl", self._sysctl_model),
                ],
                "could not read hardware model",
            )
        except MonitorSwitchError as exc:
            LOGGER.warning("%s", exc)
            return
        _apply(info, fields)

    def _hardware_profile(self) -> Fields:
        pairs = _key_values(self._run(["system_profiler", "SPHardwareDataType"]), separator=":")
        fields: Fields = {}
        if pairs.get("Model Name"):
            fields["model_name"] = pairs["Model Name"]
        if pairs.get("Model Identifier"):
            fields["model_id"] = pairs["Model Identifier"]
        if not fields:
            raise PlatformProbeError("no model information from system_profiler")
        return fields

    def _sysctl_model(self) -> Fields:
        model = self._run(["sysctl", "-n", "hw.model"]).strip()
        if not model:
            raise PlatformProbeError("sysctl returned no model")
        return {"model_name": model}

    # -- Windows -----------------------------------------------------------

    def detect_windows_info(self) -> WindowsInfo:
        self._require(OSType.WINDOWS)
        info = WindowsInfo()
        sources: list[tuple[str, Callable[[], Fields]]] = [
            ("registry", self._windows_registry),
            ("systeminfo", self._systeminfo),
            ("wmic", self._wmic),
            ("ver", self._ver),
        ]
        fields = _first_useful(sources, "could not detect Windows system information")
        _apply(info, fields)
        return info

    def _windows_registry(self) -> Fields:
        try:
            import winreg
        except ImportError as exc:
            raise PlatformProbeError("registry access is not available") from exc

        fields: Fields = {}
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, WINDOWS_VERSION_KEY) as key:
            for value_name, attr in (
                ("ProductName", "product_name"),
                ("CurrentVersion", "version"),
                ("CurrentBuild", "build"),
                ("DisplayVersion", "display_version"),
                ("EditionID", "edition"),
                ("InstallDate", "install_date"),
                ("RegisteredOwner", "registered_owner"),
                ("SystemRoot", "system_root"),
            ):
                try:
                    value, _ = winreg.QueryValueEx(key, value_name)
                except OSError:
                    continue
                fields[attr] = str(value)
        fields["architecture"] = windows_architecture()
        if not (fields.get("product_name") or fields.get("version") or fields.get("build")):
            raise PlatformProbeError("no useful information found in registry")
        return fields

    def _systeminfo(self) -> Fields:
        pairs = _key_values(self._run(["systeminfo"]), separator=":")
        fields: Fields = {}
        if "OS Name" in pairs:
            fields["product_name"] = pairs["OS Name"]
        match = _SYSTEMINFO_VERSION_RE.search(pairs.get("OS Version", ""))
        if match:
            fields["version"], fields["build"] = match.group(1), match.group(2)
        for key, attr in (
            ("System Type", "architecture"),
            ("Original Install Date", "install_date"),
            ("Registered Owner", "registered_owner"),
            ("Windows Directory", "system_root"),
        ):
            if key in pairs:
                fields[attr] = pairs[key]
        if not (fields.get("product_name") or fields.get("version")):
            raise PlatformProbeError("no useful information from systeminfo")
        return fields

    def _wmic(self) -> Fields:
        pairs = _key_values(
            self._run(["wmic", "os", "get", "Caption,Version,BuildNumber,OSArchitecture", "/format:list"])
        )
        fields = {
            attr: pairs[key]
            for key, attr in (
                ("Caption", "product_name"),
                ("Version", "version"),
                ("BuildNumber", "build"),
                ("OSArchitecture", "architecture"),
            )
            if key in pairs
        }
        if not (fields.get("product_name") or fields.get("version")):
            raise PlatformProbeError("no useful information from WMI")
        return fields

    def _ver(self) -> Fields:
        match = _VER_RE.search(self._run(["cmd", "/c", "ver"]))
        if not match:
            raise PlatformProbeError("could not parse ver command output")
        version = match.group(1)
        fields = {"product_name": "Microsoft Windows", "version": version}
        parts = version.split(".")
        if len(parts) >= 3:
            fields["build"] = parts[2]
        fields["architecture"] = windows_architecture()
        return fields


def windows_architecture() -> str:
    for variable in ("PROCESSOR_ARCHITECTURE", "PROCESSOR_ARCHITEW6432"):
        value = os.environ.get(variable)
        if value:
            return value
    machine = platform.machine()
    return _MACHINE_NAMES.get(machine.lower(), machine)
