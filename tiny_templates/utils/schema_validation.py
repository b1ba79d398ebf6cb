"""
JSON Schema validation utility for engine configuration.
Path: tiny_templates/utils/schema_validation.py
"""

from typing import Dict, Any, List, Union, Optional
import json
from pathlib import Path
from jsonschema import Draft7Validator
import structlog

from tiny_templates.errors import ConfigError

logger = structlog.get_logger()

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "engine_config_v1.json"


class SchemaValidator:
    """
    Utility class for validating configuration structures against JSON schemas.
    """

    _schema_cache: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def _load_schema(cls, schema_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a JSON schema from file with caching support.

        Args:
            schema_path: Path to the JSON schema file

        Returns:
            Loaded schema as a dictionary

        Raises:
            ConfigError: If the schema cannot be read or parsed
        """
        schema_path_str = str(schema_path)

        if schema_path_str in cls._schema_cache:
            return cls._schema_cache[schema_path_str]

        try:
            with open(schema_path, 'r') as f:
                schema = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("schema.load_failed",
                         schema_path=schema_path_str,
                         error=str(e))
            raise ConfigError(f"Cannot load schema '{schema_path_str}': {e}") from e

        cls._schema_cache[schema_path_str] = schema
        return schema

    @classmethod
    def get_validation_errors(cls,
                              instance: Dict[str, Any],
                              schema_path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
        """
        Validate an instance against a schema and return a list of validation errors.

        Args:
            instance: The instance to validate
            schema_path: Path to the schema file

        Returns:
            List of validation errors (empty if valid)
        """
        schema = cls._load_schema(schema_path or DEFAULT_SCHEMA_PATH)
        validator = Draft7Validator(schema)
        errors = []

        for error in sorted(validator.iter_errors(instance), key=lambda e: list(e.path)):
            errors.append({
                "message": error.message,
                "path": ".".join(str(p) for p in error.path),
                "schema_path": list(error.schema_path) if error.schema_path else []
            })

        return errors
