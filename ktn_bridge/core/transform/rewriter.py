"""AST rewriter: turns a pattern match into a replacement fragment.

A :class:`Replacement` covers exactly the byte range of the matched call
and is made of literal text plus :class:`Hole` s, original sub-trees that
the code generator renders in place (and rewrites further, when they
contain matches of their own). The rewriter never touches anything
outside the matched node.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Union

import tree_sitter

from ..ast_parser import node_text
from ..constants import HANDLER_EVENT_PARAM, PLATFORM_API_INVOCATION, PLATFORM_EVENT_REGISTRATION
from ..errors import ErrorContext, RewriteError
from ..mappings import JsExpression
from .patterns import PatternKind, PatternMatch

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")

# Callback shapes that can be called without wrapping them in parentheses
_CALLABLE_AS_IS = frozenset({"identifier", "member_expression"})


@dataclass(frozen=True)
class Hole:
    """Placeholder for an original sub-tree inside a replacement."""

    node: tree_sitter.Node


Part = Union[str, Hole]


@dataclass
class Replacement:
    """Text that replaces ``source[start:end]`` in the generated output."""

    node: tree_sitter.Node
    parts: List[Part]
    name: str  # "<webConstruct>-><platformConstruct>"
    holes: List[Hole] = field(init=False)

    def __post_init__(self) -> None:
        self.holes = [p for p in self.parts if isinstance(p, Hole)]

    @property
    def start(self) -> int:
        return self.node.start_byte

    @property
    def end(self) -> int:
        return self.node.end_byte

    def covers(self, other: "Replacement") -> bool:
        return self.start <= other.start and other.end <= self.end and other is not self


# ── JS literal rendering ─────────────────────────────────────────────


def js_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return f"'{escaped}'"


def _js_key(key: str) -> str:
    return key if _IDENTIFIER_RE.match(key) else js_string(key)


def render_js_value(value: Any, parts: List[Part]) -> None:
    """Append the JS source of ``value`` to ``parts``."""
    if isinstance(value, JsExpression):
        parts.append(Hole(value.node) if value.node is not None else value.text)
    elif value is None:
        parts.append("null")
    elif isinstance(value, bool):
        parts.append("true" if value else "false")
    elif isinstance(value, (int, float)):
        parts.append(repr(value))
    elif isinstance(value, str):
        parts.append(js_string(value))
    elif isinstance(value, (list, tuple)):
        parts.append("[")
        for i, item in enumerate(value):
            if i:
                parts.append(", ")
            render_js_value(item, parts)
        parts.append("]")
    elif isinstance(value, dict):
        if not value:
            parts.append("{}")
            return
        parts.append("{ ")
        for i, (key, item) in enumerate(value.items()):
            if i:
                parts.append(", ")
            parts.append(f"{_js_key(str(key))}: ")
            render_js_value(item, parts)
        parts.append(" }")
    else:
        raise TypeError(f"Cannot render {type(value).__name__} as a JavaScript literal")


def _line_indent(source: bytes, offset: int) -> str:
    line_start = source.rfind(b"\n", 0, offset) + 1
    line = source[line_start:offset]
    indent = line[: len(line) - len(line.lstrip(b" \t"))]
    return indent.decode("utf-8")


def _is_async(callback: tree_sitter.Node) -> bool:
    return any(child.type == "async" for child in callback.children)


# ── Rewriter ─────────────────────────────────────────────────────────


class Rewriter:
    """Builds one :class:`Replacement` per mapped :class:`PatternMatch`."""

    def __init__(self) -> None:
        self._handlers: Dict[PatternKind, Callable[[PatternMatch, bytes], List[Part]]] = {
            PatternKind.EVENT_REGISTRATION: self._rewrite_event,
            PatternKind.NETWORK_FETCH: self._rewrite_fetch,
        }

    def register_handler(
        self, kind: PatternKind, handler: Callable[[PatternMatch, bytes], List[Part]]
    ) -> None:
        self._handlers[kind] = handler

    def rewrite(self, match: PatternMatch, source: bytes) -> Replacement:
        """Build the replacement for ``match``.

        Raises:
            RewriteError: If the match has no mapping or its request
                transform cannot be applied.
        """
        if not match.matched:
            raise RewriteError(
                match.unsupported_reason or f"No mapping for {match.web_construct}",
                context=ErrorContext(line=match.location.line, column=match.location.column),
            )
        handler = self._handlers.get(match.kind)
        if handler is None:
            raise RewriteError(f"No rewrite handler for pattern kind: {match.kind.value}")

        parts = handler(match, source)
        logger.debug("Rewrote %s at %s", match.rewrite_name, match.location)
        return Replacement(node=match.node, parts=parts, name=match.rewrite_name)

    @staticmethod
    def _rewrite_event(match: PatternMatch, source: bytes) -> List[Part]:
        callback = match.callback
        if callback is None:
            raise RewriteError(f"Listener for '{match.web_construct}' is missing")

        indent = _line_indent(source, match.node.start_byte)
        param = HANDLER_EVENT_PARAM
        is_async = _is_async(callback)

        callee: List[Part]
        if callback.type in _CALLABLE_AS_IS:
            callee = [Hole(callback)]
        else:
            callee = ["(", Hole(callback), ")"]

        head = f"{PLATFORM_EVENT_REGISTRATION}({js_string(match.platform_construct)}, "
        head += f"async ({param}) => {{\n" if is_async else f"({param}) => {{\n"
        call_prefix = f"{indent}  await " if is_async else f"{indent}  "

        return [
            head,
            call_prefix,
            *callee,
            f"({param});\n",
            f"{indent}  return {param};\n",
            f"{indent}}})",
        ]

    @staticmethod
    def _rewrite_fetch(match: PatternMatch, source: bytes) -> List[Part]:
        mapping = match.mapping
        request = match.request
        try:
            platform_request = mapping.request_transform(request)
        except Exception as e:
            raise RewriteError(
                f"Request transform '{mapping.name}' failed for {request.url}: {e}",
                context=ErrorContext(
                    line=match.location.line,
                    column=match.location.column,
                    api_endpoint=request.url,
                    source_snippet=node_text(match.node, source)[:120],
                ),
            ) from e

        parts: List[Part] = [
            f"{PLATFORM_API_INVOCATION}({js_string(platform_request.path)}, "
            f"{js_string(platform_request.method)}, "
        ]
        try:
            render_js_value(platform_request.params, parts)
        except TypeError as e:
            raise RewriteError(f"Cannot render parameters for {request.url}: {e}") from e
        parts.append(")")
        return parts
