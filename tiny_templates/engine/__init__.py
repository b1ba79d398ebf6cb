"""
Template engine: path resolver, transform pipeline, parser and interpreter.
"""

from .paths import ResolvedPath, parse_path, resolve
from .pipeline import Pipeline, PipelineStep, apply
from .parser import Block, Condition, Constant, Interpolation, Literal, ParsedTemplate
from .interpreter import evaluate_condition, evaluate_interpolation
from .template_engine import RenderResult, TemplateEngine, get_default_engine, set_default_engine

__all__ = [
    'ResolvedPath', 'parse_path', 'resolve',
    'Pipeline', 'PipelineStep', 'apply',
    'Block', 'Condition', 'Constant', 'Interpolation', 'Literal', 'ParsedTemplate',
    'evaluate_condition', 'evaluate_interpolation',
    'RenderResult', 'TemplateEngine', 'get_default_engine', 'set_default_engine',
]
