"""
Engine configuration with YAML loading, deep merge and dotted path access.
Path: tiny_templates/config.py
"""
import yaml
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from pathlib import Path
import structlog
from copy import deepcopy
import collections.abc

from tiny_templates.errors import ConfigError
from tiny_templates.utils.logging_setup import configure_logging

logger = structlog.get_logger()

DEFAULT_CONFIG: Dict[str, Any] = {
    "engine": {
        "strict": True,
        "trim_blocks": False,
        "max_depth": 64,
        "cache_size": 256,
    },
    "services": {
        "aliases": {},
        "modules": {},
    },
    "logging": {
        "level": "INFO",
        "format": "console",
    },
}


def get_by_path(data: Dict[str, Any], path: List[str]) -> Any:
    """
    Access dictionary data using a path list.

    Args:
        data: Dictionary to traverse
        path: List of keys forming the path

    Returns:
        Value at path or None if not found
    """
    current = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def get_value(data: Dict[str, Any], path_str: str) -> Any:
    """
    Access dictionary data using a hierarchical path string (e.g. "engine.strict").
    Supports both dots (.) and slashes (/) as path separators.
    """
    if '/' in path_str:
        path_list = path_str.split('/')
    else:
        path_list = path_str.split('.')
    return get_by_path(data, path_list)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], _path: str = "") -> Dict[str, Any]:
    """
    Deep merge dictionaries preserving hierarchical structure.
    Rules:
    1. Override values take precedence.
    2. Dictionaries merged recursively.
    3. Lists from override replace lists from base.
    4. None values in override delete keys from base.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary
        _path: Internal path tracking for logging

    Returns:
        Merged configuration dictionary
    """
    result = deepcopy(base)
    current_path_prefix = f"{_path}." if _path else ""

    for key, value in override.items():
        current_key_path = f"{current_path_prefix}{key}"
        if value is None:
            if key in result:
                logger.debug("config.deep_merge.delete", key_path=current_key_path)
                result.pop(key, None)
            continue

        if key in result and isinstance(result.get(key), collections.abc.Mapping) \
                and isinstance(value, collections.abc.Mapping):
            result[key] = deep_merge(result[key], value, _path=current_key_path)
        elif isinstance(value, Path):
            result[key] = str(value)
        else:
            if key in result and result.get(key) != value:
                logger.debug("config.deep_merge.override", key_path=current_key_path,
                             old_value=result.get(key), new_value=value)
            result[key] = deepcopy(value)

    return result


def load_config(path: Path) -> Dict[str, Any]:
    """Load configuration from a YAML file; returns {} when it cannot be read."""
    path = Path(path)
    try:
        logger.info("config.load.starting", path=str(path))
        if not path.exists():
            logger.error("config.load.file_not_found", path=str(path))
            return {}
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        logger.info("config.load.success", path=str(path), keys=list(config.keys()))
        return config
    except yaml.YAMLError as e:
        logger.error("config.load.yaml_error", path=str(path), error=str(e))
        return {}
    except OSError as e:
        logger.error("config.load.failed", path=str(path), error=str(e), error_type=type(e).__name__)
        return {}


@dataclass(frozen=True)
class EngineConfig:
    """
    Effective engine settings, built from DEFAULT_CONFIG merged with overrides.

    duplicate_policy stays None unless the configuration names one; the
    process-wide registry keeps its current policy in that case.
    """
    strict: bool = True
    trim_blocks: bool = False
    max_depth: int = 64
    cache_size: int = 256
    duplicate_policy: Optional[str] = None
    service_aliases: Dict[str, str] = field(default_factory=dict)
    service_modules: Dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_dict(cls, overrides: Optional[Dict[str, Any]] = None) -> 'EngineConfig':
        """
        Merge overrides over the defaults and validate the result.

        Raises:
            ConfigError: If the merged configuration does not match the schema
        """
        # Imported here to keep jsonschema off the import path of plain config access
        from tiny_templates.utils.schema_validation import SchemaValidator

        merged = deep_merge(DEFAULT_CONFIG, overrides or {})
        errors = SchemaValidator.get_validation_errors(merged)
        if errors:
            logger.error("config.validation_failed", errors=errors)
            first = errors[0]
            raise ConfigError(f"Invalid configuration at '{first['path']}': {first['message']}",
                              errors=errors)

        return cls(
            strict=get_value(merged, "engine.strict"),
            trim_blocks=get_value(merged, "engine.trim_blocks"),
            max_depth=get_value(merged, "engine.max_depth"),
            cache_size=get_value(merged, "engine.cache_size"),
            duplicate_policy=get_value(merged, "services.duplicate_policy"),
            service_aliases=dict(get_value(merged, "services.aliases") or {}),
            service_modules=dict(get_value(merged, "services.modules") or {}),
            log_level=get_value(merged, "logging.level"),
            log_format=get_value(merged, "logging.format"),
        )

    @classmethod
    def from_yaml(cls, text: str) -> 'EngineConfig':
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Configuration is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path) -> 'EngineConfig':
        return cls.from_dict(load_config(path))

    def apply_logging(self) -> None:
        """Configure structlog from the logging section (level and console/json format)."""
        configure_logging(self.log_level, self.log_format)
        logger.debug("config.logging_applied", level=self.log_level, format=self.log_format)
