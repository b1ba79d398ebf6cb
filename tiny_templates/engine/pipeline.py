"""
Transform pipelines.
Path: tiny_templates/engine/pipeline.py

``${Name | trim | truncate:20}`` resolves Name, then applies ``trim`` and
``truncate`` (argument "20") left to right.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

import structlog

from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.errors import TemplateSyntaxError, TransformError
from tiny_templates.services.registry import ServiceRegistry

logger = structlog.get_logger()

_SERVICE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class PipelineStep:
    name: str
    argument: Optional[str] = None


@dataclass(frozen=True)
class Pipeline:
    steps: Tuple[PipelineStep, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.steps)

    def __iter__(self) -> Iterator[PipelineStep]:
        return iter(self.steps)

    @property
    def names(self) -> List[str]:
        return [step.name for step in self.steps]


EMPTY_PIPELINE = Pipeline()


def split_unquoted(text: str, separator: str) -> List[str]:
    """Split on a single-character separator outside single or double quotes."""
    parts = []
    current = []
    quote = None
    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == separator:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def parse_pipeline(segments: List[str], position: Optional[int] = None) -> Pipeline:
    """
    Parse the pipe-separated part of an interpolation.

    Args:
        segments: Raw step texts (already split on unquoted '|'), e.g. ["upper", " truncate:20"]
        position: Offset in the template, for error reporting

    Raises:
        TemplateSyntaxError: If a step has no valid service name
    """
    steps = []
    for raw in segments:
        name, colon, argument = raw.strip().partition(":")
        name = name.strip()
        if not _SERVICE_NAME.match(name):
            raise TemplateSyntaxError(f"Invalid service name in pipeline step '{raw.strip()}'",
                                      kind="malformed_pipeline", position=position, step=raw.strip())
        steps.append(PipelineStep(name, unquote(argument) if colon else None))
    return Pipeline(tuple(steps))


def find_service(name: str, context: ExecutionContext):
    """Context chain first, then the process-wide registry."""
    service = context.get_service(name)
    if service is None:
        registry = ServiceRegistry.get_instance()
        registry.ensure_builtins()
        service = registry.get(name)
    return service


def apply(value: Any, pipeline: Pipeline, context: ExecutionContext) -> Any:
    """
    Apply each pipeline step to the value, left to right.

    Args:
        value: Resolved value (None included)
        pipeline: Steps to apply
        context: Context whose services shadow the process-wide registry

    Returns:
        Transformed value

    Raises:
        TransformError: If a service is unknown or raises
    """
    for step in pipeline:
        service = find_service(step.name, context)
        if service is None:
            raise TransformError(f"Unknown service '{step.name}'", name=step.name)
        try:
            value = service(value) if step.argument is None else service(value, step.argument)
        except Exception as e:
            logger.debug("engine.pipeline.service_failed", service=step.name, error=str(e))
            raise TransformError(f"Service '{step.name}' failed: {e}", name=step.name,
                                 kind="service_failed") from e
    return value
