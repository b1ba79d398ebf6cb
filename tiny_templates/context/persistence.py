"""
Serialization of ExecutionContext models.

Hosts often keep template test data as JSON or YAML text; this module turns
such text into contexts and contexts back into text. Services are code and
are never serialized.
"""

import json
from typing import Any, Dict, Mapping, Optional

import yaml

from tiny_templates.context.execution_context import ExecutionContext, ServiceFunc
from tiny_templates.context.values import to_plain
from tiny_templates.errors import ModelError


class ContextPersistence:
    """Converts contexts to and from JSON / YAML text."""

    @staticmethod
    def to_dict(context: ExecutionContext) -> Dict[str, Any]:
        """Model and visible bindings as plain JSON-compatible data."""
        return to_plain(context.to_dict())

    @staticmethod
    def to_json(context: ExecutionContext) -> str:
        """Convert context to a JSON string."""
        return json.dumps(ContextPersistence.to_dict(context), indent=2, ensure_ascii=False)

    @staticmethod
    def to_yaml(context: ExecutionContext) -> str:
        return yaml.safe_dump(ContextPersistence.to_dict(context), sort_keys=False, allow_unicode=True)

    @staticmethod
    def from_json(json_str: str, services: Optional[Mapping[str, ServiceFunc]] = None) -> ExecutionContext:
        """Create a context whose model is the parsed JSON document."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ModelError(f"Model is not valid JSON: {e}", kind="invalid_model") from e
        return ExecutionContext(root=data, services=services)

    @staticmethod
    def from_yaml(yaml_str: str, services: Optional[Mapping[str, ServiceFunc]] = None) -> ExecutionContext:
        """Create a context whose model is the parsed YAML document."""
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise ModelError(f"Model is not valid YAML: {e}", kind="invalid_model") from e
        return ExecutionContext(root=data, services=services)

    @staticmethod
    def restore(data: Dict[str, Any], services: Optional[Mapping[str, ServiceFunc]] = None) -> ExecutionContext:
        """Rebuild a context from to_dict() output; bindings become a child scope."""
        root = ExecutionContext(root=data.get("model"), services=services, key=data.get("key"))
        bindings = data.get("bindings") or {}
        return root.child(bindings, key=data.get("key")) if bindings else root
