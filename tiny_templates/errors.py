"""
Error taxonomy for the template engine.
Path: tiny_templates/errors.py

Every failure surfaced by parse or render is a TemplateError subclass carrying
a machine-readable ``kind`` plus structured ``details`` suitable for logging.
"""

from typing import Any, Dict, Optional


class TemplateError(Exception):
    """Base class for all engine failures."""

    kind = "template_error"

    def __init__(self, message: str, kind: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used for log events."""
        return {
            "error_type": type(self).__name__,
            "kind": self.kind,
            "message": self.message,
            **{k: v for k, v in self.details.items() if v is not None},
        }


class TemplateSyntaxError(TemplateError):
    """Raised by the parser; fatal to the template being parsed."""

    kind = "syntax_error"

    def __init__(self, message: str, kind: str, position: Optional[int] = None, **details: Any):
        super().__init__(message, kind=kind, position=position, **details)
        self.position = position

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at offset {self.position})"


class RenderError(TemplateError):
    """Render-time failure. Aborts the whole render call."""

    kind = "render_error"


class ResolutionError(RenderError):
    """A path could not be navigated: absent key, bad index or scalar indexing."""

    kind = "missing"

    def __init__(self, message: str, path: str, failing_step: Any, kind: str = "missing"):
        super().__init__(message, kind=kind, path=path, failing_step=failing_step)
        self.path = path
        self.failing_step = failing_step


class TransformError(RenderError):
    """A pipeline step referenced an unknown service or the service failed."""

    kind = "unknown_service"

    def __init__(self, message: str, name: str, kind: str = "unknown_service"):
        super().__init__(message, kind=kind, name=name)
        self.name = name


class ConfigError(TemplateError):
    """Invalid engine configuration or service registration."""

    kind = "invalid_config"


class DuplicateServiceError(ConfigError):
    """A service name is already registered and the policy rejects duplicates."""

    kind = "duplicate_service"

    def __init__(self, name: str):
        super().__init__(f"Service '{name}' is already registered", kind="duplicate_service", name=name)
        self.name = name


class ModelError(TemplateError):
    """The host model cannot be converted into structural values."""

    kind = "invalid_model"
