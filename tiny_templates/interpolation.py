"""
Convenience interpolation entry points.
Path: tiny_templates/interpolation.py

``interpolate`` keeps the legacy bare-brace form (``{FirstName}``) that
predates the engine; the other helpers route through a TemplateEngine.
"""

from typing import Any, Iterable, List, Optional

import structlog

from tiny_templates.context.values import stringify, to_value
from tiny_templates.engine.template_engine import TemplateEngine, as_context, get_default_engine

logger = structlog.get_logger()


def interpolate(template: str, model: Any, has_tags: bool = True) -> str:
    """
    Replace ``{Field}`` (or bare ``Field`` when has_tags is False) with model values.

    Only top-level fields with a non-None value are substituted; no control
    flow, paths or pipelines.

    Raises:
        ValueError: If template is empty or model is None
    """
    if not template:
        raise ValueError("Template should be supplied.")
    if model is None:
        raise ValueError("Model should be supplied.")

    fields = to_value(model)
    if not isinstance(fields, dict):
        raise ValueError(f"Model must be a mapping or an object with fields, got {type(model).__name__}")

    for name, value in fields.items():
        if value is None:
            continue
        token = f"{{{name}}}" if has_tags else name
        template = template.replace(token, stringify(value))
    return template


def interpolate_with_engine(template: str, model: Any, engine: Optional[TemplateEngine] = None) -> str:
    """Render template against a model with full ``${...}`` / ``@if`` / ``@foreach`` support."""
    if not template:
        raise ValueError("Template should be supplied.")
    if model is None:
        raise ValueError("Model should be supplied.")
    engine = engine or get_default_engine()
    return engine.render(template, as_context(model))


def interpolate_all(templates: Iterable[str], context: Any,
                    engine: Optional[TemplateEngine] = None) -> List[str]:
    """Render several templates against the same context, in order."""
    if templates is None:
        raise ValueError("Templates should be supplied.")
    engine = engine or get_default_engine()
    context = as_context(context)
    results = [engine.render(template, context) for template in templates]
    logger.debug("interpolation.rendered_batch", count=len(results))
    return results
