"""Config loading and validation for YAML-based monitorswitch settings."""

from __future__ import annotations

import json
import logging
import os
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from monitorswitch.core.errors import ConfigLoadError, ConfigValidationError
from monitorswitch.core.model import OSType, Settings, Timeouts

LOGGER = logging.getLogger(__name__)

_MERGED_SECTIONS = ("timeouts", "validation", "tools", "input_aliases", "vendors")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# "on"/"off"/"yes"/"no" stay strings so input names like "ON" survive intact.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("monitorswitch.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "monitorswitch/config.yaml"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ConfigValidationError(f"{context} must be boolean true/false")


def _normalize_vendor_id(value: Any) -> str:
    return str(value).strip().lower()


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for section in _MERGED_SECTIONS:
        if section in override:
            merged[section] = {**base.get(section, {}), **override[section]}
    return merged


def _build_settings(doc: dict[str, Any], warnings: tuple[str, ...]) -> Settings:
    timeouts = doc.get("timeouts", {})
    validation = doc.get("validation", {})

    preferences: dict[OSType, tuple[str, ...]] = {}
    for os_name, tools in doc.get("tools", {}).items():
        preferences[OSType(os_name)] = tuple(tools)

    return Settings(
        timeouts=Timeouts(
            detect=float(timeouts.get("detect", Timeouts.detect)),
            read=float(timeouts.get("read", Timeouts.read)),
            write=float(timeouts.get("write", Timeouts.write)),
            probe=float(timeouts.get("probe", Timeouts.probe)),
            input_test=float(timeouts.get("input_test", Timeouts.input_test)),
        ),
        settle_s=float(validation.get("settle_s", 0.5)),
        probe_inputs=_normalize_bool(
            validation.get("probe_inputs", False),
            context="validation.probe_inputs",
        ),
        tool_preferences=preferences,
        input_aliases={str(name): int(code) for name, code in doc.get("input_aliases", {}).items()},
        vendors={_normalize_vendor_id(key): str(name) for key, name in doc.get("vendors", {}).items()},
        warnings=warnings,
    )


def load_settings(path: Path | None = None) -> Settings:
    defaults_path = resources.files("monitorswitch.data").joinpath("defaults.yaml")
    doc = _read_yaml(defaults_path)
    _validate(doc, defaults_path)

    warnings: list[str] = []
    user_path = path or user_config_path()
    if user_path.exists():
        user_doc = _read_yaml(user_path)
        _validate(user_doc, user_path)
        known_tools = {tool for tools in doc.get("tools", {}).values() for tool in tools}
        for tools in user_doc.get("tools", {}).values():
            for tool in tools:
                if tool in known_tools:
                    continue
                warning = f"Config lists tool '{tool}' which monitorswitch has no command mapping for"
                LOGGER.warning(warning)
                warnings.append(warning)
        doc = _merge(doc, user_doc)
    elif path is not None:
        raise ConfigLoadError(f"Config file {path} does not exist")

    return _build_settings(doc, tuple(warnings))
