"""
Template engine facade.
Path: tiny_templates/engine/template_engine.py

Ties configuration, the parse cache, the interpreter and the service registry
together behind parse / render / resolve_variables.
"""

import functools
import threading
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import structlog

from tiny_templates.config import EngineConfig
from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.engine import interpreter
from tiny_templates.engine.parser import ParsedTemplate, parse as parse_text
from tiny_templates.errors import TemplateError
from tiny_templates.services.registry import ServiceRegistry

logger = structlog.get_logger()

TemplateSource = Union[str, ParsedTemplate]


@dataclass(frozen=True)
class RenderResult:
    """Rendered content plus the target path and namespace supplied by the caller."""
    content: str
    path: Optional[str] = None
    namespace: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class TemplateEngine:
    """Parses and renders templates according to an EngineConfig."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        ServiceRegistry.register_default_services(self.config)
        self._parse_cached = functools.lru_cache(maxsize=self.config.cache_size)(self._parse)
        logger.debug("engine.initialized",
                     strict=self.config.strict,
                     trim_blocks=self.config.trim_blocks,
                     max_depth=self.config.max_depth)

    @classmethod
    def from_dict(cls, overrides: Optional[Dict[str, Any]] = None) -> "TemplateEngine":
        return cls(EngineConfig.from_dict(overrides))

    @classmethod
    def from_file(cls, path: Union[str, Path], apply_logging: bool = False) -> "TemplateEngine":
        """Build an engine from a YAML file, optionally applying its logging section."""
        config = EngineConfig.from_file(Path(path))
        if apply_logging:
            config.apply_logging()
        return cls(config)

    def _parse(self, text: str, control_flow: bool) -> ParsedTemplate:
        return parse_text(text, trim_blocks=self.config.trim_blocks,
                          max_depth=self.config.max_depth, control_flow=control_flow)

    def parse(self, text: str) -> ParsedTemplate:
        """
        Parse template text, reusing the cached result for text seen before.

        Raises:
            TemplateSyntaxError: On malformed input
        """
        try:
            return self._parse_cached(text or "", True)
        except TemplateError as e:
            logger.error("engine.parse.failed", **e.to_dict())
            raise

    def render(self, template: TemplateSource, context: Any = None) -> str:
        """
        Render a template.

        Args:
            template: Template text or an already parsed template
            context: ExecutionContext, or a model to wrap in a new context

        Returns:
            Rendered text

        Raises:
            TemplateSyntaxError: If text fails to parse
            RenderError: If rendering fails
        """
        parsed = template if isinstance(template, ParsedTemplate) else self.parse(template)
        return self._render(parsed, context, "engine.render.failed")

    def resolve_variables(self, text: str, context: Any = None) -> str:
        """
        Resolve ``${...}`` interpolations only.

        Control-flow directives and comments are not interpreted: they are
        copied to the output as literal text.
        """
        try:
            parsed = self._parse_cached(text or "", False)
        except TemplateError as e:
            logger.error("engine.resolve_variables.failed", **e.to_dict())
            raise
        return self._render(parsed, context, "engine.resolve_variables.failed")

    def render_template(self, text: str, model: Any = None, path: Optional[str] = None,
                        namespace: Optional[str] = None,
                        metadata: Optional[Dict[str, Any]] = None) -> RenderResult:
        """Render text against a model; path and namespace pass through untouched."""
        return RenderResult(
            content=self.render(text, model),
            path=path,
            namespace=namespace,
            metadata=dict(metadata or {}),
        )

    def _render(self, parsed: ParsedTemplate, context: Any, failure_event: str) -> str:
        context = as_context(context)
        try:
            return interpreter.render(parsed, context, strict=self.config.strict)
        except TemplateError as e:
            logger.error(failure_event, **e.to_dict())
            raise

    def clear_cache(self) -> None:
        self._parse_cached.cache_clear()

    def cache_info(self):
        return self._parse_cached.cache_info()


def as_context(value: Any) -> ExecutionContext:
    if isinstance(value, ExecutionContext):
        return value
    return ExecutionContext(root=value)


_default_engine: Optional[TemplateEngine] = None
_default_lock = threading.Lock()


def get_default_engine() -> TemplateEngine:
    """Lazily created engine with default configuration."""
    global _default_engine
    if _default_engine is None:
        with _default_lock:
            if _default_engine is None:
                _default_engine = TemplateEngine()
    return _default_engine


def set_default_engine(engine: Optional[TemplateEngine]) -> None:
    """Replace the default engine (None resets it to defaults on next use)."""
    global _default_engine
    with _default_lock:
        _default_engine = engine


def parse(text: str) -> ParsedTemplate:
    return get_default_engine().parse(text)


def render(template: TemplateSource, context: Any = None) -> str:
    return get_default_engine().render(template, context)


def resolve_variables(text: str, context: Any = None) -> str:
    return get_default_engine().resolve_variables(text, context)


def render_template(text: str, model: Any = None, path: Optional[str] = None,
                    namespace: Optional[str] = None,
                    metadata: Optional[Dict[str, Any]] = None) -> RenderResult:
    return get_default_engine().render_template(text, model, path, namespace, metadata)
