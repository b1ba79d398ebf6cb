"""
tiny_templates: a small template engine for code, emails and config files.

    from tiny_templates import render

    render("Hello, ${FirstName} ${LastName}", {"FirstName": "John", "LastName": "Smith"})
"""

from tiny_templates.errors import (
    ConfigError,
    DuplicateServiceError,
    ModelError,
    RenderError,
    ResolutionError,
    TemplateError,
    TemplateSyntaxError,
    TransformError,
)
from tiny_templates.config import EngineConfig, load_config
from tiny_templates.context import ContextPersistence, ExecutionContext, TemplateResolver
from tiny_templates.engine import ParsedTemplate, RenderResult, TemplateEngine
from tiny_templates.engine.template_engine import parse, render, render_template, resolve_variables
from tiny_templates.interpolation import interpolate, interpolate_all, interpolate_with_engine
from tiny_templates.services import ServiceRegistry, register_service
from tiny_templates.utils.logging_setup import configure_logging

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ContextPersistence",
    "DuplicateServiceError",
    "EngineConfig",
    "ExecutionContext",
    "ModelError",
    "ParsedTemplate",
    "RenderError",
    "RenderResult",
    "ResolutionError",
    "ServiceRegistry",
    "TemplateEngine",
    "TemplateError",
    "TemplateResolver",
    "TemplateSyntaxError",
    "TransformError",
    "configure_logging",
    "interpolate",
    "interpolate_all",
    "interpolate_with_engine",
    "load_config",
    "parse",
    "register_service",
    "render",
    "render_template",
    "resolve_variables",
]
