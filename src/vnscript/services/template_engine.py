"""Handlebars-style template evaluator.

Supports the subset that script text relies on:

* ``{{path.to.value}}`` lookups (searched from the innermost block context
  outwards), ``this`` and ``@index``/``@key``/``@first``/``@last``;
* helper calls ``{{helper arg ...}}`` with quoted strings, numbers,
  ``true``/``false``/``null`` and nested ``(subexpressions)``;
* ``{{{raw}}}`` output and ``{{! comments}}``;
* blocks ``#if``, ``#unless``, ``#each``, ``#with`` and any registered helper
  used as a block, each with an optional ``{{else}}`` section.

Output is never HTML-escaped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from vnscript.core.values import format_value, is_truthy

HelperFn = Callable[..., Any]

_LITERAL_WORDS: Dict[str, Any] = {"true": True, "false": False, "null": None, "undefined": None}
_NUMBER_RE = re.compile(r"-?\d+(\.\d+)?")


class TemplateSyntaxError(Exception):
    """Raised for malformed templates and calls to unknown helpers."""


@dataclass(frozen=True, slots=True)
class Literal:
    value: Any


@dataclass(frozen=True, slots=True)
class PathExpr:
    path: str


@dataclass(frozen=True, slots=True)
class SubExpr:
    name: str
    params: Tuple[Any, ...]


@dataclass(slots=True)
class TextNode:
    text: str


@dataclass(slots=True)
class MustacheNode:
    name: Any
    params: Tuple[Any, ...]


@dataclass(slots=True)
class BlockNode:
    name: str
    params: Tuple[Any, ...]
    body: List[Any] = field(default_factory=list)
    inverse: List[Any] = field(default_factory=list)
    in_inverse: bool = False

    def append(self, node: Any) -> None:
        (self.inverse if self.in_inverse else self.body).append(node)


@dataclass(slots=True)
class _Frame:
    context: Any
    data: Dict[str, Any]


class TemplateEngine:
    """Stateless evaluator: ``render(template, helpers, context) -> str``."""

    def __init__(self) -> None:
        self._cache: Dict[str, List[Any]] = {}

    def render(self, template: str, helpers: Mapping[str, HelperFn], context: Mapping[str, Any]) -> str:
        if "{{" not in template:
            return template
        nodes = self.compile(template)
        frames = [_Frame(context=context, data={"root": context})]
        return self._render_nodes(nodes, helpers, frames)

    def compile(self, template: str) -> List[Any]:
        """Parse a template into nodes; results are cached per template text."""
        cached = self._cache.get(template)
        if cached is None:
            cached = _parse_template(template)
            self._cache[template] = cached
        return cached

    # Rendering
    def _render_nodes(self, nodes: Sequence[Any], helpers: Mapping[str, HelperFn], frames: List[_Frame]) -> str:
        parts: List[str] = []
        for node in nodes:
            if isinstance(node, TextNode):
                parts.append(node.text)
            elif isinstance(node, MustacheNode):
                parts.append(format_value(self._eval_mustache(node, helpers, frames)))
            else:
                parts.append(self._render_block(node, helpers, frames))
        return "".join(parts)

    def _eval_mustache(self, node: MustacheNode, helpers: Mapping[str, HelperFn], frames: List[_Frame]) -> Any:
        if isinstance(node.name, PathExpr):
            helper = helpers.get(node.name.path)
            if helper is not None:
                return helper(*[self._eval(param, helpers, frames) for param in node.params])
            if node.params:
                raise TemplateSyntaxError(f'Missing helper: "{node.name.path}"')
        elif node.params:
            raise TemplateSyntaxError("Only helpers can take arguments")
        return self._eval(node.name, helpers, frames)

    def _render_block(self, node: BlockNode, helpers: Mapping[str, HelperFn], frames: List[_Frame]) -> str:
        args = [self._eval(param, helpers, frames) for param in node.params]
        name = node.name
        if name in ("if", "unless"):
            self._expect_args(name, args, 1)
            truthy = is_truthy(args[0])
            if name == "unless":
                truthy = not truthy
            return self._render_nodes(node.body if truthy else node.inverse, helpers, frames)
        if name == "with":
            self._expect_args(name, args, 1)
            if not is_truthy(args[0]):
                return self._render_nodes(node.inverse, helpers, frames)
            return self._render_nodes(node.body, helpers, frames + [_Frame(args[0], dict(frames[-1].data))])
        if name == "each":
            self._expect_args(name, args, 1)
            return self._render_each(node, args[0], helpers, frames)
        helper = helpers.get(name)
        if helper is None:
            raise TemplateSyntaxError(f'Missing helper: "{name}"')
        result = helper(*args)
        return self._render_nodes(node.body if is_truthy(result) else node.inverse, helpers, frames)

    def _render_each(
        self, node: BlockNode, collection: Any, helpers: Mapping[str, HelperFn], frames: List[_Frame]
    ) -> str:
        if isinstance(collection, Mapping):
            entries = list(collection.items())
        elif isinstance(collection, (list, tuple)):
            entries = list(enumerate(collection))
        else:
            entries = []
        if not entries:
            return self._render_nodes(node.inverse, helpers, frames)
        parts: List[str] = []
        last = len(entries) - 1
        for position, (key, item) in enumerate(entries):
            data = dict(frames[-1].data)
            data.update({"index": position, "key": key, "first": position == 0, "last": position == last})
            parts.append(self._render_nodes(node.body, helpers, frames + [_Frame(item, data)]))
        return "".join(parts)

    @staticmethod
    def _expect_args(name: str, args: Sequence[Any], count: int) -> None:
        if len(args) != count:
            raise TemplateSyntaxError(f"#{name} requires exactly {count} argument")

    # Expressions
    def _eval(self, expr: Any, helpers: Mapping[str, HelperFn], frames: List[_Frame]) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, SubExpr):
            helper = helpers.get(expr.name)
            if helper is None:
                raise TemplateSyntaxError(f'Missing helper: "{expr.name}"')
            return helper(*[self._eval(param, helpers, frames) for param in expr.params])
        return _lookup(expr.path, frames)


def _lookup(path: str, frames: List[_Frame]) -> Any:
    if path.startswith("@"):
        head, _, rest = path[1:].partition(".")
        value = frames[-1].data.get(head)
        return _walk(value, rest.split(".")) if rest else value
    if path == "this" or path == ".":
        return frames[-1].context
    segments = path.split(".")
    if segments[0] == "this":
        return _walk(frames[-1].context, segments[1:])
    for frame in reversed(frames):
        if isinstance(frame.context, Mapping) and segments[0] in frame.context:
            return _walk(frame.context, segments)
    return None


def _walk(value: Any, segments: Sequence[str]) -> Any:
    current = value
    for segment in segments:
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        elif isinstance(current, (list, tuple, str)) and segment == "length":
            current = len(current)
        else:
            return None
    return current


def _parse_template(template: str) -> List[Any]:
    root: List[Any] = []
    stack: List[BlockNode] = []

    def emit(node: Any) -> None:
        if stack:
            stack[-1].append(node)
        else:
            root.append(node)

    pos = 0
    while True:
        start = template.find("{{", pos)
        if start == -1:
            if pos < len(template):
                emit(TextNode(template[pos:]))
            break
        if start > pos:
            emit(TextNode(template[pos:start]))
        if template.startswith("{{!--", start):
            end = template.find("--}}", start)
            if end == -1:
                raise TemplateSyntaxError("Unclosed comment")
            pos = end + 4
            continue
        if template.startswith("{{{", start):
            end = template.find("}}}", start)
            if end == -1:
                raise TemplateSyntaxError("Unclosed triple-stash tag")
            content = template[start + 3 : end].strip()
            pos = end + 3
        else:
            end = template.find("}}", start)
            if end == -1:
                raise TemplateSyntaxError("Unclosed tag")
            content = template[start + 2 : end].strip()
            pos = end + 2

        if content.startswith("!"):
            continue
        if not content:
            raise TemplateSyntaxError("Empty tag")
        if content.startswith("#"):
            name, params = _parse_call(content[1:])
            if not isinstance(name, PathExpr):
                raise TemplateSyntaxError("Block name must be an identifier")
            block = BlockNode(name=name.path, params=params)
            emit(block)
            stack.append(block)
        elif content.startswith("/"):
            closing = content[1:].strip()
            if not stack or stack[-1].name != closing:
                raise TemplateSyntaxError(f"Unexpected closing tag {{{{/{closing}}}}}")
            stack.pop()
        elif content == "else" or content == "^":
            if not stack or stack[-1].in_inverse:
                raise TemplateSyntaxError("Unexpected {{else}}")
            stack[-1].in_inverse = True
        else:
            name, params = _parse_call(content)
            emit(MustacheNode(name=name, params=params))

    if stack:
        raise TemplateSyntaxError(f"Unclosed block {{{{#{stack[-1].name}}}}}")
    return root


def _parse_call(source: str) -> Tuple[Any, Tuple[Any, ...]]:
    tokens = _tokenize(source)
    if not tokens:
        raise TemplateSyntaxError("Empty expression")
    exprs, index = _parse_exprs(tokens, 0)
    if index != len(tokens):
        raise TemplateSyntaxError(f"Unbalanced parentheses in '{source}'")
    return exprs[0], tuple(exprs[1:])


def _parse_exprs(tokens: List[Tuple[str, Any]], index: int) -> Tuple[List[Any], int]:
    exprs: List[Any] = []
    while index < len(tokens):
        kind, value = tokens[index]
        if kind == ")":
            break
        if kind == "(":
            inner, index = _parse_exprs(tokens, index + 1)
            if index >= len(tokens) or tokens[index][0] != ")":
                raise TemplateSyntaxError("Unclosed subexpression")
            if not inner or not isinstance(inner[0], PathExpr):
                raise TemplateSyntaxError("Subexpression must start with a helper name")
            exprs.append(SubExpr(name=inner[0].path, params=tuple(inner[1:])))
            index += 1
            continue
        if kind == "literal":
            exprs.append(Literal(value))
        else:
            exprs.append(Literal(_LITERAL_WORDS[value]) if value in _LITERAL_WORDS else _word_expr(value))
        index += 1
    return exprs, index


def _word_expr(word: str) -> Any:
    if _NUMBER_RE.fullmatch(word):
        return Literal(float(word) if "." in word else int(word))
    return PathExpr(word)


def _tokenize(source: str) -> List[Tuple[str, Any]]:
    tokens: List[Tuple[str, Any]] = []
    index = 0
    length = len(source)
    while index < length:
        char = source[index]
        if char.isspace():
            index += 1
        elif char in "()":
            tokens.append((char, char))
            index += 1
        elif char in "'\"":
            end = source.find(char, index + 1)
            if end == -1:
                raise TemplateSyntaxError(f"Unterminated string in '{source}'")
            tokens.append(("literal", source[index + 1 : end]))
            index = end + 1
        else:
            end = index
            while end < length and not source[end].isspace() and source[end] not in "()'\"":
                end += 1
            tokens.append(("word", source[index:end]))
            index = end
    return tokens
