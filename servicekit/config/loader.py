"""Load and save service configs as JSON files."""

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from servicekit.config.schema import ServiceConfig
from servicekit.service.base import ConfigError, FilesystemError

# Mappings whose keys are user data, not field names
_OPAQUE_KEYS = {"env_vars"}


def get_config_path() -> Path:
    """Return the default service config path."""
    return Path.home() / ".servicekit" / "service.json"


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def convert_keys(data: Any, convert) -> Any:
    """Apply *convert* to every field-name key, leaving env var names alone."""
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            new_key = convert(key)
            if camel_to_snake(key) in _OPAQUE_KEYS:
                result[new_key] = value
            else:
                result[new_key] = convert_keys(value, convert)
        return result
    if isinstance(data, list):
        return [convert_keys(item, convert) for item in data]
    return data


def load_config(path: Path | None = None) -> ServiceConfig:
    """Load a ServiceConfig from JSON, accepting camelCase or snake_case keys."""
    path = path or get_config_path()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FilesystemError(path, e) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(path, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(path, "top-level value must be an object")

    try:
        config = ServiceConfig.model_validate(convert_keys(data, camel_to_snake))
    except ValidationError as e:
        raise ConfigError(path, str(e)) from e

    logger.debug(f"Loaded service config {config.name!r} from {path}")
    return config


def save_config(config: ServiceConfig, path: Path | None = None) -> Path:
    """Write *config* as camelCase JSON. Returns the path written."""
    path = path or get_config_path()
    data = convert_keys(config.model_dump(), snake_to_camel)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise FilesystemError(path, e) from e
    return path
