"""
Template resolution for structured values.

This module provides functionality for resolving ``${...}`` expressions in
strings nested inside dicts and lists, using an ExecutionContext as the
source of values.
"""

import re
from typing import Any, Optional, Pattern

from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.engine.interpreter import evaluate_interpolation
from tiny_templates.engine.parser import parse_interpolation
from tiny_templates.engine.template_engine import TemplateEngine, get_default_engine


class TemplateResolver:
    """Resolves templates in structured values."""

    # Whole-string template: "${path.to.value}" with nothing around it
    _SINGLE_TEMPLATE: Pattern = re.compile(r'^\$\{([^}]*)\}$')

    def __init__(self, engine: Optional[TemplateEngine] = None):
        self.engine = engine or get_default_engine()

    def resolve(self, value: Any, context: ExecutionContext) -> Any:
        """
        Resolve templates in a value, using the context as a source of values.

        Supports:
        - String templates: "Hello, ${user.name ?? 'Anonymous'}!"
        - Dict templates: {"name": "${user.name}"}
        - List templates: ["${items[0]}", "${items[1]}"]

        A string consisting of exactly one ``${...}`` yields the typed value
        (a sequence stays a sequence) instead of its text.
        """
        if isinstance(value, str):
            return self._resolve_string(value, context)
        elif isinstance(value, dict):
            return {k: self.resolve(v, context) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            return [self.resolve(item, context) for item in value]
        else:
            return value

    def _resolve_string(self, value: str, context: ExecutionContext) -> Any:
        match = self._SINGLE_TEMPLATE.match(value)
        if match and '${' not in match.group(1):
            segment = parse_interpolation(match.group(1), 0)
            return evaluate_interpolation(segment, context, strict=self.engine.config.strict)
        return self.engine.render(value, context)
