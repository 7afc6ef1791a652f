"""Pattern matcher: classifies call expressions against the registry.

Each recognized web construct is a :class:`CallPattern` variant keyed by
:class:`PatternKind`. The matcher walks the tree once, in document
order, and asks every variant about every ``call_expression``. Matching
is purely structural: callee shape plus literal argument values, no type
inference. Anything that cannot be decided statically (computed URLs,
computed event names, spread init objects) is left alone.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import tree_sitter

from ..ast_parser import argument_nodes, iter_nodes, literal_string_value, node_text
from ..constants import (
    DEFAULT_API_BASE_PATH,
    EVENT_RECEIVERS,
    EVENT_REGISTRATION_METHOD,
    FETCH_FUNCTION,
    FETCH_RECEIVERS,
    SELECTOR_METHODS,
)
from ..errors import PatternConflictError
from ..mappings import JsExpression, Mapping, MappingRegistry, WebRequest, normalize_path
from ..models import SourceLocation
from .position_mapper import LineIndex

logger = logging.getLogger(__name__)


class PatternKind(str, Enum):
    EVENT_REGISTRATION = "event_registration"
    NETWORK_FETCH = "network_fetch"


@dataclass
class PatternMatch:
    """A call expression recognized as a web construct.

    ``mapping`` is ``None`` when the construct belongs to a recognized
    category but has no registry entry; ``unsupported_reason`` says why.
    """

    kind: PatternKind
    node: tree_sitter.Node
    web_construct: str
    location: SourceLocation
    mapping: Optional[Mapping] = None
    unsupported_reason: Optional[str] = None
    # event_registration
    selector: Optional[str] = None
    callback: Optional[tree_sitter.Node] = None
    # network_fetch
    request: Optional[WebRequest] = None

    @property
    def matched(self) -> bool:
        return self.mapping is not None and self.unsupported_reason is None

    @property
    def platform_construct(self) -> Optional[str]:
        return self.mapping.platform_construct if self.mapping is not None else None

    @property
    def rewrite_name(self) -> str:
        return f"{self.web_construct}->{self.platform_construct or '?'}"


@dataclass
class MatchContext:
    source: bytes
    registry: MappingRegistry
    line_index: LineIndex

    def text(self, node: tree_sitter.Node) -> str:
        return node_text(node, self.source)

    def locate(self, node: tree_sitter.Node) -> SourceLocation:
        return self.line_index.location(node.start_byte)


class CallPattern(ABC):
    """One recognized web-side call shape."""

    kind: PatternKind

    @abstractmethod
    def match(self, call: tree_sitter.Node, context: MatchContext) -> Optional[PatternMatch]:
        """Classify ``call``. ``None`` means the call is irrelevant."""
        ...


# ── addEventListener ─────────────────────────────────────────────────


class EventRegistrationPattern(CallPattern):
    """``document|window|document.querySelector(sel) .addEventListener(type, cb)``.

    Listeners on arbitrary elements (``button.addEventListener``) are
    ordinary DOM code inside kintone customizations too, so only the
    page-level receivers count as registrations.
    """

    kind = PatternKind.EVENT_REGISTRATION

    def match(self, call: tree_sitter.Node, context: MatchContext) -> Optional[PatternMatch]:
        callee = call.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return None
        prop = callee.child_by_field_name("property")
        if prop is None or context.text(prop) != EVENT_REGISTRATION_METHOD:
            return None

        recognized, selector = self._resolve_receiver(callee.child_by_field_name("object"), context)
        if not recognized:
            return None

        args = argument_nodes(call)
        if not args:
            return None
        event_type = literal_string_value(args[0], context.source)
        if event_type is None:
            return None

        match = PatternMatch(
            kind=self.kind,
            node=call,
            web_construct=event_type,
            location=context.locate(call),
            selector=selector,
        )
        if len(args) < 2:
            match.unsupported_reason = "addEventListener call without a listener"
            return match
        if len(args) > 2:
            match.unsupported_reason = "listener options have no kintone equivalent"
            return match

        match.callback = args[1]
        match.mapping = context.registry.lookup_event_by_trigger(event_type, selector)
        if match.mapping is None:
            where = f" on {selector}" if selector else ""
            match.unsupported_reason = f"No event mapping for '{event_type}'{where}"
        return match

    @staticmethod
    def _resolve_receiver(
        receiver: Optional[tree_sitter.Node], context: MatchContext
    ) -> Tuple[bool, Optional[str]]:
        if receiver is None:
            return False, None
        if receiver.type == "identifier":
            return context.text(receiver) in EVENT_RECEIVERS, None
        if receiver.type != "call_expression":
            return False, None

        inner = receiver.child_by_field_name("function")
        if inner is None or inner.type != "member_expression":
            return False, None
        obj = inner.child_by_field_name("object")
        method = inner.child_by_field_name("property")
        if obj is None or method is None:
            return False, None
        if context.text(obj) != "document" or context.text(method) not in SELECTOR_METHODS:
            return False, None
        args = argument_nodes(receiver)
        if len(args) != 1:
            return False, None
        selector = literal_string_value(args[0], context.source)
        return selector is not None, selector


# ── fetch ────────────────────────────────────────────────────────────


class NetworkFetchPattern(CallPattern):
    """``fetch(url, init?)`` with a static URL under the API base path."""

    kind = PatternKind.NETWORK_FETCH

    def __init__(self, api_base_path: str = DEFAULT_API_BASE_PATH):
        self.api_base_path = normalize_path(api_base_path)

    def match(self, call: tree_sitter.Node, context: MatchContext) -> Optional[PatternMatch]:
        if not self._is_fetch_callee(call.child_by_field_name("function"), context):
            return None

        args = argument_nodes(call)
        if not args:
            return None
        url = literal_string_value(args[0], context.source)
        if url is None:
            return None
        if not self._under_api_base(normalize_path(url)):
            return None

        method, body, unsupported = "GET", None, None
        if len(args) > 1:
            init = self._decompose_init(args[1], context)
            if init is None:
                return None
            method, body, unsupported = init

        request = WebRequest(url=url, method=method, body=body)
        match = PatternMatch(
            kind=self.kind,
            node=call,
            web_construct=url,
            location=context.locate(call),
            request=request,
        )
        if unsupported is not None:
            match.unsupported_reason = unsupported
            return match
        match.mapping = context.registry.lookup_api_by_path_prefix(request.path, method)
        if match.mapping is None:
            match.unsupported_reason = f"No API mapping for {method} {request.path}"
        return match

    @staticmethod
    def _is_fetch_callee(callee: Optional[tree_sitter.Node], context: MatchContext) -> bool:
        if callee is None:
            return False
        if callee.type == "identifier":
            return context.text(callee) == FETCH_FUNCTION
        if callee.type == "member_expression":
            obj = callee.child_by_field_name("object")
            prop = callee.child_by_field_name("property")
            return (
                obj is not None
                and prop is not None
                and obj.type == "identifier"
                and context.text(obj) in FETCH_RECEIVERS
                and context.text(prop) == FETCH_FUNCTION
            )
        return False

    def _under_api_base(self, path: str) -> bool:
        base = self.api_base_path
        if base == "/":
            return True
        return path == base or path.startswith(base + "/")

    @staticmethod
    def _decompose_init(
        init: tree_sitter.Node, context: MatchContext
    ) -> Optional[Tuple[str, Optional[JsExpression], Optional[str]]]:
        """Pull ``method`` and ``body`` out of a literal init object.

        Returns ``None`` when the method cannot be determined statically.
        The third element names the first option that cannot be carried
        over to ``kintone.api``; such a call is reported, never rewritten.
        """
        if init.type != "object":
            return None

        method, body, unsupported = "GET", None, None
        for prop in init.named_children:
            if prop.type == "comment":
                continue
            if prop.type == "spread_element":
                return None
            if prop.type == "shorthand_property_identifier":
                name = context.text(prop)
                if name == "method":
                    return None
                if name == "body":
                    body = JsExpression(context.text(prop), node=prop)
                elif unsupported is None:
                    unsupported = f"fetch init option '{name}' has no kintone equivalent"
                continue
            if prop.type != "pair":
                if unsupported is None:
                    unsupported = (
                        f"fetch init member '{context.text(prop)[:40]}' has no kintone equivalent"
                    )
                continue

            key_node = prop.child_by_field_name("key")
            value = prop.child_by_field_name("value")
            if key_node is None or value is None:
                continue
            if key_node.type == "computed_property_name":
                if unsupported is None:
                    unsupported = (
                        f"computed fetch init option {context.text(key_node)} "
                        "has no kintone equivalent"
                    )
                continue
            if key_node.type in ("string", "template_string"):
                key = literal_string_value(key_node, context.source)
            else:
                key = context.text(key_node)

            if key == "method":
                literal = literal_string_value(value, context.source)
                if literal is None:
                    return None
                method = literal.upper()
            elif key == "body":
                body = _body_expression(value, context)
            elif unsupported is None:
                unsupported = f"fetch init option '{key}' has no kintone equivalent"
        return method, body, unsupported


def _body_expression(value: tree_sitter.Node, context: MatchContext) -> JsExpression:
    """``JSON.stringify(x)`` contributes ``x``; anything else is kept whole."""
    if value.type == "call_expression":
        callee = value.child_by_field_name("function")
        if callee is not None and context.text(callee).replace(" ", "") == "JSON.stringify":
            args = argument_nodes(value)
            if len(args) == 1:
                return JsExpression(context.text(args[0]), node=args[0])
    return JsExpression(context.text(value), node=value)


def default_patterns(api_base_path: str = DEFAULT_API_BASE_PATH) -> List[CallPattern]:
    return [EventRegistrationPattern(), NetworkFetchPattern(api_base_path)]


# ── Matcher ──────────────────────────────────────────────────────────


class PatternMatcher:
    """Dispatch table of :class:`CallPattern` variants.

    Usage:
        matcher = PatternMatcher(registry)
        for match in matcher.iter_matches(parsed.root, parsed.source):
            ...
    """

    def __init__(
        self,
        registry: MappingRegistry,
        patterns: Optional[Iterable[CallPattern]] = None,
        api_base_path: str = DEFAULT_API_BASE_PATH,
    ):
        self._registry = registry
        self._patterns: Dict[PatternKind, CallPattern] = {}
        for pattern in (default_patterns(api_base_path) if patterns is None else patterns):
            self.register_pattern(pattern)

    def register_pattern(self, pattern: CallPattern) -> None:
        if pattern.kind in self._patterns:
            raise ValueError(f"Pattern already registered for kind: {pattern.kind.value}")
        self._patterns[pattern.kind] = pattern

    @property
    def kinds(self) -> List[PatternKind]:
        return list(self._patterns)

    def classify(self, call: tree_sitter.Node, context: MatchContext) -> Optional[PatternMatch]:
        """Run every variant on ``call``.

        Raises:
            PatternConflictError: If two variants claim the same node;
                the categories are meant to be mutually exclusive.
        """
        matches: List[PatternMatch] = []
        for pattern in self._patterns.values():
            match = pattern.match(call, context)
            if match is not None:
                matches.append(match)

        if len(matches) > 1:
            kinds = ", ".join(m.kind.value for m in matches)
            raise PatternConflictError(
                f"Call at {matches[0].location} matched several patterns: {kinds}"
            )
        return matches[0] if matches else None

    def iter_matches(self, root: tree_sitter.Node, source: bytes) -> Iterator[PatternMatch]:
        """Yield every recognized call under ``root`` in document order."""
        context = MatchContext(source=source, registry=self._registry, line_index=LineIndex(source))
        for node in iter_nodes(root):
            if node.type != "call_expression":
                continue
            match = self.classify(node, context)
            if match is not None:
                logger.debug(
                    "Matched %s '%s' at %s (mapped=%s)",
                    match.kind.value,
                    match.web_construct,
                    match.location,
                    match.matched,
                )
                yield match
