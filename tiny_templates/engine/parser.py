"""
Expression parser for templates.
Path: tiny_templates/engine/parser.py

Turns template text into an immutable ParsedTemplate in a single left-to-right
pass with an explicit stack of open blocks.

Syntax:
- ``${Path}``, ``${Path | service | service:arg}``, ``${Path ?? "default"}``
- ``@if(cond)`` ... ``@elseif(cond)`` ... ``@else`` ... ``@endif``
- ``@foreach(item in Path)`` ... ``@endforeach``
- ``@* comment *@`` and ``@@`` for a literal ``@``

Conditions are ``[!]Path`` or ``Path <op> operand`` with op one of
``== != < > <= >=``; operands are numbers, true/false/null, quoted strings or
paths. ``@elseif`` is stored as an ``if`` block nested in the else body.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union

import structlog

from tiny_templates.engine.paths import ResolvedPath, find_closing_paren, parse_path
from tiny_templates.engine.pipeline import EMPTY_PIPELINE, Pipeline, parse_pipeline, split_unquoted, unquote
from tiny_templates.errors import TemplateSyntaxError

logger = structlog.get_logger()

DEFAULT_MAX_DEPTH = 64

IF = "if"
FOREACH = "foreach"
_ROOT = "root"

_TOKEN_START = re.compile(r"\$\{|@")
_DIRECTIVE = re.compile(
    r"@(?:(?P<open>if|foreach|elseif)\s*\(|(?P<close>endforeach|endif)|(?P<else>else)|(?P<comment>\*)|(?P<at>@))"
)
_FOREACH_HEADER = re.compile(r"^\s*(?:var\s+)?(?P<item>[A-Za-z_][A-Za-z0-9_]*)\s+in\s+(?P<path>.+?)\s*$", re.DOTALL)
_INT = re.compile(r"^[+-]?\d+$")
_FLOAT = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")

OPERATORS = ("==", "!=", ">=", "<=", ">", "<")


@dataclass(frozen=True)
class Constant:
    """Literal operand in a condition."""
    value: Any


@dataclass(frozen=True)
class Condition:
    path: ResolvedPath
    operator: Optional[str] = None
    operand: Union[Constant, ResolvedPath, None] = None
    negated: bool = False


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Interpolation:
    path: ResolvedPath
    pipeline: Pipeline = EMPTY_PIPELINE
    default: Optional[str] = None
    source: str = ""


@dataclass(frozen=True)
class Block:
    kind: str
    body: "ParsedTemplate"
    condition: Optional[Condition] = None
    item_name: Optional[str] = None
    iterable: Optional[ResolvedPath] = None
    else_body: Optional["ParsedTemplate"] = None


Segment = Union[Literal, Interpolation, Block]


@dataclass(frozen=True)
class ParsedTemplate:
    """Ordered, immutable sequence of segments."""
    segments: Tuple[Segment, ...] = ()

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def is_literal(self) -> bool:
        return all(isinstance(segment, Literal) for segment in self.segments)


class _Frame:
    """An open block on the parser stack."""

    __slots__ = ("kind", "position", "condition", "item_name", "iterable",
                 "body", "else_body", "target", "implicit")

    def __init__(self, kind: str, position: int, condition: Optional[Condition] = None,
                 item_name: Optional[str] = None, iterable: Optional[ResolvedPath] = None,
                 implicit: bool = False):
        self.kind = kind
        self.position = position
        self.condition = condition
        self.item_name = item_name
        self.iterable = iterable
        self.body: List[Segment] = []
        self.else_body: Optional[List[Segment]] = None
        self.target = self.body
        self.implicit = implicit

    def close(self) -> Block:
        return Block(
            kind=self.kind,
            body=ParsedTemplate(tuple(self.body)),
            condition=self.condition,
            item_name=self.item_name,
            iterable=self.iterable,
            else_body=ParsedTemplate(tuple(self.else_body)) if self.else_body is not None else None,
        )


def parse(text: str, trim_blocks: bool = False, max_depth: int = DEFAULT_MAX_DEPTH,
          control_flow: bool = True) -> ParsedTemplate:
    """
    Parse template text.

    Args:
        text: Template source
        trim_blocks: Drop the whole line of a directive that stands alone on it
        max_depth: Maximum nesting of blocks
        control_flow: When False only ``${...}`` is recognised; directives and
            comments stay literal text

    Returns:
        ParsedTemplate

    Raises:
        TemplateSyntaxError: On malformed input
    """
    return _Parser(text or "", trim_blocks, max_depth, control_flow).run()


class _Parser:

    def __init__(self, text: str, trim_blocks: bool, max_depth: int, control_flow: bool):
        self.text = text
        self.trim_blocks = trim_blocks
        self.max_depth = max_depth
        self.control_flow = control_flow
        self.stack: List[_Frame] = [_Frame(_ROOT, 0)]
        self.pos = 0

    @property
    def top(self) -> _Frame:
        return self.stack[-1]

    def run(self) -> ParsedTemplate:
        text = self.text
        while True:
            match = _TOKEN_START.search(text, self.pos)
            if not match:
                self._literal(text[self.pos:])
                break

            start = match.start()
            if match.group() == "${":
                self._literal(text[self.pos:start])
                self._interpolation(start)
                continue

            directive = _DIRECTIVE.match(text, start) if self.control_flow else None
            if directive is None:
                # A lone '@' is ordinary text
                self._literal(text[self.pos:start + 1])
                self.pos = start + 1
                continue
            self._directive(directive, start)

        if len(self.stack) > 1:
            frame = self.top
            raise TemplateSyntaxError(f"Unterminated @{frame.kind} block", kind="unterminated_block",
                                      position=frame.position, block=frame.kind)

        parsed = ParsedTemplate(tuple(self.top.body))
        logger.debug("engine.parse.completed", segments=len(parsed), length=len(text))
        return parsed

    # Emitters

    def _literal(self, chunk: str) -> None:
        if not chunk:
            return
        target = self.top.target
        if target and isinstance(target[-1], Literal):
            target[-1] = Literal(target[-1].text + chunk)
        else:
            target.append(Literal(chunk))

    def _interpolation(self, start: int) -> None:
        end = _find_unquoted(self.text, "}", start + 2)
        if end < 0:
            raise TemplateSyntaxError("Unterminated interpolation: missing '}'",
                                      kind="unterminated_interpolation", position=start)
        content = self.text[start + 2:end]
        self.top.target.append(parse_interpolation(content, start))
        self.pos = end + 1

    # Directives

    def _directive(self, match: "re.Match", start: int) -> None:
        if match.group("at"):
            self._literal(self.text[self.pos:start] + "@")
            self.pos = match.end()
            return

        if match.group("comment"):
            close = self.text.find("*@", match.end())
            if close < 0:
                raise TemplateSyntaxError("Unterminated comment: missing '*@'",
                                          kind="unterminated_comment", position=start)
            self._consume(start, close + 2)
            return

        if match.group("open"):
            keyword = match.group("open")
            close = find_closing_paren(self.text, match.end())
            if close < 0:
                raise TemplateSyntaxError(f"Unbalanced parentheses in @{keyword}",
                                          kind="malformed_directive", position=start)
            argument = self.text[match.end():close]
            self._consume(start, close + 1)
            if keyword == IF:
                self._push(_Frame(IF, start, condition=parse_condition(argument, start)))
            elif keyword == FOREACH:
                item_name, iterable = parse_foreach_header(argument, start)
                self._push(_Frame(FOREACH, start, item_name=item_name, iterable=iterable))
            else:
                self._elseif(parse_condition(argument, start), start)
            return

        if match.group("else"):
            self._consume(start, match.end())
            self._else(start)
            return

        keyword = match.group("close")
        self._consume(start, match.end())
        self._close(IF if keyword == "endif" else FOREACH, start)

    def _consume(self, start: int, end: int) -> None:
        """Emit the literal text before a directive and move past it, trimming its line if asked."""
        if self.trim_blocks:
            line_start = self.text.rfind("\n", 0, start) + 1
            line_end = self.text.find("\n", end)
            line_end = len(self.text) if line_end < 0 else line_end + 1
            if (line_start >= self.pos
                    and not self.text[line_start:start].strip()
                    and not self.text[end:line_end].strip()):
                self._literal(self.text[self.pos:line_start])
                self.pos = line_end
                return
        self._literal(self.text[self.pos:start])
        self.pos = end

    def _push(self, frame: _Frame) -> None:
        if len(self.stack) > self.max_depth:
            raise TemplateSyntaxError(f"Blocks nested deeper than {self.max_depth} levels",
                                      kind="nesting_too_deep", position=frame.position)
        self.stack.append(frame)

    def _else(self, start: int) -> None:
        frame = self._else_target("@else", start)
        frame.else_body = []
        frame.target = frame.else_body

    def _elseif(self, condition: Condition, start: int) -> None:
        frame = self._else_target("@elseif", start)
        frame.else_body = []
        frame.target = frame.else_body
        self._push(_Frame(IF, start, condition=condition, implicit=True))

    def _else_target(self, keyword: str, start: int) -> _Frame:
        frame = self.top
        if frame.kind != IF:
            where = "outside an @if block" if frame.kind == _ROOT else f"inside @{frame.kind}"
            raise TemplateSyntaxError(f"{keyword} {where}", kind="misplaced_else", position=start)
        if frame.else_body is not None:
            raise TemplateSyntaxError(f"{keyword} after @else in the same @if block",
                                      kind="misplaced_else", position=start)
        return frame

    def _close(self, kind: str, start: int) -> None:
        frame = self.top
        if frame.kind != kind:
            expected = "nothing is open" if frame.kind == _ROOT else f"expected @end{frame.kind}"
            raise TemplateSyntaxError(f"@end{kind} does not match: {expected}",
                                      kind="mismatched_block", position=start, block=kind)
        if kind == IF:
            while self.top.implicit:
                self._pop()
        self._pop()

    def _pop(self) -> None:
        frame = self.stack.pop()
        self.top.target.append(frame.close())


def parse_interpolation(content: str, position: Optional[int] = None) -> Interpolation:
    """Parse the inside of ``${...}``: path, optional ``?? default`` and pipeline."""
    if not content.strip():
        raise TemplateSyntaxError("Empty interpolation", kind="empty_interpolation", position=position)

    parts = split_unquoted(content, "|")
    expression = parts[0]
    default = None
    marker = _find_unquoted(expression, "??", 0)
    if marker >= 0:
        default = unquote(expression[marker + 2:])
        expression = expression[:marker]

    path = parse_path(expression, position)
    pipeline = parse_pipeline(parts[1:], position) if len(parts) > 1 else EMPTY_PIPELINE
    return Interpolation(path=path, pipeline=pipeline, default=default, source=content.strip())


def parse_condition(text: str, position: Optional[int] = None) -> Condition:
    """Parse an @if / @elseif condition."""
    expression = text.strip()
    negated = False
    while True:
        if expression.startswith("!") and not expression.startswith("!="):
            negated = not negated
            expression = expression[1:].strip()
        elif expression.startswith("(") and find_closing_paren(expression, 1) == len(expression) - 1:
            expression = expression[1:-1].strip()
        else:
            break

    if not expression:
        raise TemplateSyntaxError("Empty condition", kind="malformed_directive", position=position)

    comparison = _split_comparison(expression)
    if comparison:
        left, operator, right = comparison
        return Condition(parse_path(left, position), operator, _parse_operand(right, position), negated)
    return Condition(parse_path(expression, position), negated=negated)


def _parse_operand(text: str, position: Optional[int]) -> Union[Constant, ResolvedPath]:
    raw = text.strip()
    lowered = raw.casefold()
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return Constant(raw[1:-1])
    if lowered in ("null", "none"):
        return Constant(None)
    if lowered in ("true", "false"):
        return Constant(lowered == "true")
    if _INT.match(raw):
        return Constant(int(raw))
    if _FLOAT.match(raw):
        return Constant(float(raw))
    return parse_path(raw, position)


def parse_foreach_header(text: str, position: Optional[int] = None) -> Tuple[str, ResolvedPath]:
    """Parse ``item in Path`` (``var item in Path`` is also accepted)."""
    match = _FOREACH_HEADER.match(text)
    if not match:
        raise TemplateSyntaxError(f"Malformed @foreach header '{text.strip()}': expected 'item in Path'",
                                  kind="malformed_directive", position=position)
    return match.group("item"), parse_path(match.group("path"), position)


def _find_unquoted(text: str, token: str, start: int) -> int:
    """Index of token at or after start outside quotes, or -1."""
    quote = None
    i = start
    while i < len(text):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif text.startswith(token, i):
            return i
        elif char in ("'", '"'):
            quote = char
        i += 1
    return -1


def _split_comparison(expression: str) -> Optional[Tuple[str, str, str]]:
    """Split ``left op right`` at the first operator outside quotes, brackets and parentheses."""
    quote = None
    depth = 0
    for i, char in enumerate(expression):
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif depth == 0 and i > 0:
            for operator in OPERATORS:
                if expression.startswith(operator, i):
                    return expression[:i], operator, expression[i + len(operator):]
    return None
