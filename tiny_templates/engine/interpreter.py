"""
Control-flow interpreter.
Path: tiny_templates/engine/interpreter.py

Walks a ParsedTemplate and produces output text. Rendering is all-or-nothing:
any error propagates and no partial output is returned.
"""

from decimal import Decimal
from typing import Any, List, Union

from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.context.values import describe, is_empty, is_number, is_truthy, stringify
from tiny_templates.engine.parser import (
    FOREACH, IF, Block, Condition, Constant, Interpolation, Literal, ParsedTemplate,
)
from tiny_templates.engine.paths import ResolvedPath, resolve
from tiny_templates.engine.pipeline import apply
from tiny_templates.errors import RenderError, ResolutionError

# Bound for every foreach iteration in addition to the item itself
CURRENT_NAME = "Current"
CURRENT_INDEX_NAME = "CurrentIndex"
INDEX_SUFFIX = "_index"

FLOAT_TOLERANCE = 1e-10


def render(parsed: ParsedTemplate, context: ExecutionContext, strict: bool = True) -> str:
    """
    Render a parsed template under a context.

    Args:
        parsed: Output of parse()
        context: Execution context
        strict: When True a missing interpolation or foreach path raises
            ResolutionError; when False it renders as empty

    Returns:
        Rendered text

    Raises:
        RenderError: ResolutionError, TransformError or a not_iterable failure
    """
    out: List[str] = []
    _render_into(out, parsed, context, strict)
    return "".join(out)


def _render_into(out: List[str], parsed: ParsedTemplate, context: ExecutionContext, strict: bool) -> None:
    for segment in parsed:
        if isinstance(segment, Literal):
            out.append(segment.text)
        elif isinstance(segment, Interpolation):
            out.append(stringify(evaluate_interpolation(segment, context, strict)))
        elif segment.kind == IF:
            _render_if(out, segment, context, strict)
        elif segment.kind == FOREACH:
            _render_foreach(out, segment, context, strict)
        else:
            raise RenderError(f"Unknown block kind '{segment.kind}'", kind="unknown_block")


def evaluate_interpolation(segment: Interpolation, context: ExecutionContext, strict: bool = True) -> Any:
    """Resolve the path, apply the ``??`` default and the pipeline; returns the typed value."""
    try:
        value = resolve(segment.path, context)
    except ResolutionError:
        if segment.default is None and strict:
            raise
        value = None

    if segment.default is not None and is_empty(value):
        value = segment.default
    return apply(value, segment.pipeline, context)


def _render_if(out: List[str], block: Block, context: ExecutionContext, strict: bool) -> None:
    if evaluate_condition(block.condition, context):
        _render_into(out, block.body, context, strict)
    elif block.else_body is not None:
        _render_into(out, block.else_body, context, strict)


def _render_foreach(out: List[str], block: Block, context: ExecutionContext, strict: bool) -> None:
    try:
        items = resolve(block.iterable, context)
    except ResolutionError:
        if strict:
            raise
        return

    if not isinstance(items, (tuple, list)):
        raise RenderError(
            f"@foreach over '{block.iterable}' needs a sequence, got {describe(items)}",
            kind="not_iterable", path=block.iterable.text, value_type=describe(items))

    for index, item in enumerate(items):
        child = context.scope({
            block.item_name: item,
            block.item_name + INDEX_SUFFIX: index,
            CURRENT_NAME: item,
            CURRENT_INDEX_NAME: index,
        })
        _render_into(out, block.body, child, strict)


def evaluate_condition(condition: Condition, context: ExecutionContext) -> bool:
    """Missing paths are falsy; comparisons are numeric when both sides are numbers."""
    left = _resolve_or_none(condition.path, context)
    if condition.operator is None:
        result = is_truthy(left)
    else:
        right = _operand_value(condition.operand, context)
        result = _compare(left, condition.operator, right)
    return not result if condition.negated else result


def _resolve_or_none(path: ResolvedPath, context: ExecutionContext) -> Any:
    try:
        return resolve(path, context)
    except ResolutionError:
        return None


def _operand_value(operand: Union[Constant, ResolvedPath], context: ExecutionContext) -> Any:
    if isinstance(operand, Constant):
        return operand.value
    return _resolve_or_none(operand, context)


def _compare(left: Any, operator: str, right: Any) -> bool:
    if operator == "==":
        return _equal(left, right)
    if operator == "!=":
        return not _equal(left, right)

    order = _order(left, right)
    if operator == ">":
        return order > 0
    if operator == "<":
        return order < 0
    if operator == ">=":
        return order >= 0
    return order <= 0


def _equal(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if is_number(left) and is_number(right):
        return abs(_numeric(left) - _numeric(right)) < FLOAT_TOLERANCE
    return stringify(left).casefold() == stringify(right).casefold()


def _order(left: Any, right: Any) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return -1
    if right is None:
        return 1
    if is_number(left) and is_number(right):
        a, b = _numeric(left), _numeric(right)
    else:
        a, b = stringify(left).casefold(), stringify(right).casefold()
    return (a > b) - (a < b)


def _numeric(value: Any) -> Any:
    return float(value) if isinstance(value, Decimal) else value
