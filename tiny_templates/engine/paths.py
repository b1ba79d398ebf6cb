"""
Path parsing and resolution.
Path: tiny_templates/engine/paths.py

A path such as ``Context.Model.Orders[0].Total`` is parsed once into a
ResolvedPath (a tuple of field names, integer indices and call steps) and can
then be resolved against any number of contexts.

Call forms:
- ``Services('name')`` as the first step yields the named service
- ``Get('key')`` as the first step looks up a key that need not be an identifier
- ``(...)`` after any step calls the current value with a quoted literal, a
  path, or no argument: ``Services('calc')(Order.Total).Rounded``
"""

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

import structlog

from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.context.values import to_value
from tiny_templates.engine.pipeline import find_service
from tiny_templates.errors import ResolutionError, TemplateSyntaxError, TransformError

logger = structlog.get_logger()

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INDEX = re.compile(r"\[\s*(\d+)\s*\]")
_QUOTED_KEY = re.compile(r"""\[\s*(?:"([^"]*)"|'([^']*)')\s*\]""")

# Optional leading step, kept for templates written as ${Context.Name}
CONTEXT_PREFIX = "context"
SERVICES_CALL = "services"
GET_CALL = "get"


@dataclass(frozen=True)
class ServiceRef:
    """First step naming a service: ``Services('name')``."""
    name: str


@dataclass(frozen=True)
class Invoke:
    """Call of the current value; argument is a literal str, a path, or None for no argument."""
    argument: Union[str, "ResolvedPath", None] = None


Step = Union[str, int, ServiceRef, Invoke]


@dataclass(frozen=True)
class ResolvedPath:
    """Parsed path: the first step is a name or a ServiceRef, later steps are names, indices or calls."""
    steps: Tuple[Step, ...]
    text: str

    def __str__(self) -> str:
        return self.text


def parse_path(text: str, position: Optional[int] = None) -> ResolvedPath:
    """
    Parse a dotted / indexed path.

    Args:
        text: Path text, e.g. ``Orders[0].Total`` or ``Lines["unit price"]``
        position: Offset of the path in its template, for error reporting

    Returns:
        ResolvedPath

    Raises:
        TemplateSyntaxError: If the text is not a valid path
    """
    source = text.strip()
    match = _IDENT.match(source)
    if not match:
        raise _malformed(source, "a path must start with an identifier", position)

    steps: List[Step] = [match.group()]
    pos = match.end()
    while pos < len(source):
        char = source[pos]
        if char == ".":
            match = _IDENT.match(source, pos + 1)
            if not match:
                raise _malformed(source, "expected an identifier after '.'", position)
            steps.append(match.group())
            pos = match.end()
        elif char == "[":
            match = _INDEX.match(source, pos)
            if match:
                steps.append(int(match.group(1)))
            else:
                match = _QUOTED_KEY.match(source, pos)
                if not match:
                    raise _malformed(source, "expected an integer index or quoted key inside []", position)
                key = match.group(1) if match.group(1) is not None else match.group(2)
                steps.append(key)
            pos = match.end()
        elif char == "(":
            close = find_closing_paren(source, pos + 1)
            if close < 0:
                raise _malformed(source, "unbalanced parentheses", position)
            _call(steps, source[pos + 1:close], source, position)
            pos = close + 1
        else:
            raise _malformed(source, f"unexpected character {char!r}", position)

    if (len(steps) > 1 and isinstance(steps[0], str) and steps[0].casefold() == CONTEXT_PREFIX
            and isinstance(steps[1], (str, ServiceRef))):
        steps = steps[1:]
    return ResolvedPath(tuple(steps), source)


def _call(steps: List[Step], inner: str, source: str, position: Optional[int]) -> None:
    """Append a call step, or turn a leading ``Services`` / ``Get`` name into its special form."""
    argument = _parse_argument(inner, source, position)
    last = steps[-1]
    at_head = len(steps) == 1 or (len(steps) == 2 and isinstance(steps[0], str)
                                  and steps[0].casefold() == CONTEXT_PREFIX)
    if at_head and isinstance(last, str) and isinstance(argument, str):
        if last.casefold() == SERVICES_CALL:
            steps[-1] = ServiceRef(argument)
            return
        if last.casefold() == GET_CALL:
            steps[-1] = argument
            return
    steps.append(Invoke(argument))


def _parse_argument(inner: str, source: str, position: Optional[int]) -> Union[str, ResolvedPath, None]:
    argument = inner.strip()
    if not argument:
        return None
    if len(argument) >= 2 and argument[0] == argument[-1] and argument[0] in ("'", '"'):
        return argument[1:-1]
    if argument[0] in ("'", '"'):
        raise _malformed(source, "unterminated quoted argument", position)
    return parse_path(argument, position)


def _malformed(source: str, reason: str, position: Optional[int]) -> TemplateSyntaxError:
    return TemplateSyntaxError(f"Malformed path '{source}': {reason}", kind="malformed_path",
                               position=position, path=source)


def find_closing_paren(text: str, start: int) -> int:
    """Index of the ')' closing a '(' that ends just before start, or -1."""
    depth = 1
    quote = None
    for i in range(start, len(text)):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def resolve(path: ResolvedPath, context: ExecutionContext) -> Any:
    """
    Resolve a path against a context.

    The first step is looked up through the context's scopes (bindings, parent
    chain, root), or in the services when it is a ServiceRef. Later steps
    navigate mappings by key and sequences by index, or call the current value.
    A present None is returned as a value.

    Raises:
        ResolutionError: If a key is absent, an index is out of range, a
            scalar is indexed or a non-callable value is called
        TransformError: If a named service is unknown or a call raises
    """
    first = path.steps[0]
    if isinstance(first, ServiceRef):
        value = _service(first.name, context)
    else:
        found, value = context.lookup(first)
        if not found:
            raise ResolutionError(f"Cannot resolve '{path.text}': '{first}' is not defined",
                                  path=path.text, failing_step=first)

    for step in path.steps[1:]:
        if isinstance(step, Invoke):
            value = _invoke(value, step, path, context)
            continue
        found, value = _navigate(value, step)
        if not found:
            raise ResolutionError(f"Cannot resolve '{path.text}' at step {step!r}",
                                  path=path.text, failing_step=step)
    return value


def _service(name: str, context: ExecutionContext) -> Any:
    service = find_service(name, context)
    if service is None:
        raise TransformError(f"Unknown service '{name}'", name=name)
    return service


def _invoke(target: Any, step: Invoke, path: ResolvedPath, context: ExecutionContext) -> Any:
    if not callable(target):
        raise ResolutionError(f"Cannot resolve '{path.text}': value is not callable",
                              path=path.text, failing_step=step, kind="not_callable")

    argument = step.argument
    if isinstance(argument, ResolvedPath):
        argument = resolve(argument, context)
    try:
        result = target() if step.argument is None else target(argument)
    except Exception as e:
        name = getattr(target, "__name__", path.text)
        logger.debug("engine.paths.call_failed", path=path.text, error=str(e))
        raise TransformError(f"Call in '{path.text}' failed: {e}", name=name,
                             kind="service_failed") from e
    return to_value(result)


def _navigate(value: Any, step: Any) -> Tuple[bool, Any]:
    if isinstance(value, dict):
        key = str(step)
        if key in value:
            return True, value[key]
        if isinstance(step, str):
            folded = step.casefold()
            for candidate, item in value.items():
                if candidate.casefold() == folded:
                    return True, item
        return False, None

    if isinstance(step, int) and isinstance(value, (tuple, list)):
        if 0 <= step < len(value):
            return True, value[step]
    return False, None
