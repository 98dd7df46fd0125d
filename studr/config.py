"""
Settings for a reconciliation run.

Values come from, in increasing precedence: built-in defaults, an optional
YAML file, STUDR_* / AZURE_SUBSCRIPTION_ID environment variables, and
explicit overrides (normally CLI flags).
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .clouds import CloudEnvironment
from .errors import ConfigError, InvalidNameComponent
from .naming import SEPARATOR, route_name_stem
from .reconciler.engine import DEFAULT_CAPACITY, DEFAULT_PREFIX

ENV_VARS = {
    "subscription_id": "AZURE_SUBSCRIPTION_ID",
    "cloud": "STUDR_CLOUD",
    "route_prefix": "STUDR_PREFIX",
    "capacity": "STUDR_CAPACITY",
    "http_timeout": "STUDR_HTTP_TIMEOUT",
    "record_events": "STUDR_RECORD_EVENTS",
}


@dataclass(frozen=True)
class Settings:
    subscription_id: Optional[str] = None
    cloud: CloudEnvironment = CloudEnvironment.PUBLIC
    route_prefix: str = DEFAULT_PREFIX
    capacity: int = DEFAULT_CAPACITY
    http_timeout: int = 30
    record_events: bool = True


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML settings file.

    Args:
        path: File path

    Returns:
        Mapping of settings

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    file_path = Path(path).expanduser()
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {file_path} is not valid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping/dict")
    return data


def _as_int(key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e
    if number < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {number}")
    return number


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _coerce(key: str, value: Any) -> Any:
    if key == "cloud":
        return CloudEnvironment.parse(value)
    if key == "capacity":
        return _as_int(key, value, 0)
    if key == "http_timeout":
        return _as_int(key, value, 1)
    if key == "record_events":
        return _as_bool(key, value)
    if key == "route_prefix":
        prefix = str(value).strip()
        try:
            route_name_stem(prefix, "cloud", "tag")
        except InvalidNameComponent as e:
            raise ConfigError(
                f"route_prefix must be non-empty and must not contain {SEPARATOR!r}: {value!r}"
            ) from e
        return prefix
    text = str(value).strip()
    return text or None


def load_settings(
    config_path: Union[str, Path, None] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """
    Build Settings from file, environment and overrides.

    Args:
        config_path: Optional YAML file
        environ: Environment mapping (defaults to os.environ)
        **overrides: Explicit values; None means "not given"

    Returns:
        Settings

    Raises:
        ConfigError: On unknown keys or invalid values
    """
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}

    if config_path:
        file_values = load_yaml(config_path)
        unknown = sorted(set(file_values) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        values.update({k: v for k, v in file_values.items() if v is not None})

    environ = os.environ if environ is None else environ
    for key, env_name in ENV_VARS.items():
        if environ.get(env_name):
            values[key] = environ[env_name]

    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    return replace(Settings(), **{k: _coerce(k, v) for k, v in values.items()})
