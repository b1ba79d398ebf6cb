"""
Named transform services used by ``${value | service}`` pipelines.
"""

from .registry import ServiceRegistry, register_service
from .builtins import BUILTIN_SERVICES

__all__ = ['ServiceRegistry', 'register_service', 'BUILTIN_SERVICES']
