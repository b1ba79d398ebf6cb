"""
Context module for template rendering.

This module contains components for immutable context management, structural
model values, persistence, and template resolution.
"""

from .execution_context import ExecutionContext
from .persistence import ContextPersistence
from .template import TemplateResolver

__all__ = ['ExecutionContext', 'ContextPersistence', 'TemplateResolver']
