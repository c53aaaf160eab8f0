"""Shared configuration loader for the UMP lookup service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from .decoder import UMP_TOPIC
from .record_store import DEFAULT_DB_PATH


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".ump-lookup.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass
class LookupConfig:
    """Where the record store lives and how the service filters input."""

    db_path: str = str(DEFAULT_DB_PATH)
    topic: str = UMP_TOPIC
    strict_queries: bool = False


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'lookup' section")
    return loaded


def _coerce_bool(value: Any, *, source: str) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    raise ConfigurationError(f"Invalid boolean in {source}: {value}")


def _coerce_str(value: Any, *, source: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, Path):
        return str(value.expanduser())
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Expected a non-empty string in {source}: {value!r}")
    return value.strip()


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def load_lookup_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> LookupConfig:
    """Load lookup configuration from overrides, environment and optional YAML."""

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    section = file_config.get("lookup", {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'lookup' to be a mapping in {path}")

    override_map = dict(overrides or {})

    resolved_db_path = _first_value(
        _coerce_str(override_map.get("db_path"), source="overrides"),
        _coerce_str(env_map.get("UMP_LOOKUP_DB_PATH") or None, source="UMP_LOOKUP_DB_PATH"),
        _coerce_str(section.get("db_path"), source=f"{path} lookup.db_path"),
        str(DEFAULT_DB_PATH),
    )
    resolved_topic = _first_value(
        _coerce_str(override_map.get("topic"), source="overrides"),
        _coerce_str(env_map.get("UMP_LOOKUP_TOPIC") or None, source="UMP_LOOKUP_TOPIC"),
        _coerce_str(section.get("topic"), source=f"{path} lookup.topic"),
        UMP_TOPIC,
    )
    resolved_strict = _first_value(
        _coerce_bool(override_map.get("strict_queries"), source="overrides"),
        _coerce_bool(
            env_map.get("UMP_LOOKUP_STRICT_QUERIES") or None, source="UMP_LOOKUP_STRICT_QUERIES"
        ),
        _coerce_bool(section.get("strict_queries"), source=f"{path} lookup.strict_queries"),
        False,
    )

    return LookupConfig(
        db_path=resolved_db_path,
        topic=resolved_topic,
        strict_queries=bool(resolved_strict),
    )
