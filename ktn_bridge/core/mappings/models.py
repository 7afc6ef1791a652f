"""Mapping registry data contracts.

Each mapping describes one recognized web-side construct, the kintone
construct it becomes, and the value transforms between the two worlds.
Mappings are frozen dataclasses: once registered they never change.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit


# ── Web / platform value shapes ──────────────────────────────────────

# Events on both sides are plain dicts: {"type": ..., "detail": {...}} on
# the web side, {"type": ..., "record": ..., "appId": ...} on kintone.
WebEvent = Dict[str, Any]
PlatformEvent = Dict[str, Any]


@dataclass(frozen=True)
class JsExpression:
    """A JavaScript expression carried verbatim through a value transform.

    ``node`` optionally points at the tree-sitter node the text came from
    so the rewriter can splice the (possibly rewritten) original in place.
    """

    text: str
    node: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class WebRequest:
    """Structured decomposition of a ``fetch(url, init)`` call."""

    url: str
    method: str = "GET"
    body: Any = None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query(self) -> Dict[str, List[str]]:
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)


@dataclass(frozen=True)
class PlatformRequest:
    """Arguments of a ``kintone.api(path, method, params)`` call."""

    path: str
    method: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WebResponse:
    """What a ``fetch`` caller would have received."""

    status: int
    body: str
    headers: Tuple[Tuple[str, str], ...] = (("Content-Type", "application/json"),)


@dataclass(frozen=True)
class MappingExample:
    web: str
    platform: str


# ── Event mappings ───────────────────────────────────────────────────


@dataclass(frozen=True)
class WebTrigger:
    event_type: str  # "DOMContentLoaded"
    selector: Optional[str] = None  # '[data-page="record-detail"]'
    description: str = ""
    # Further receivers that mean the same page, e.g. '[data-page="record-list"]'
    selector_aliases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValueTransform:
    to_platform: Callable[[WebEvent], PlatformEvent]
    to_web: Callable[[PlatformEvent], WebEvent]


@dataclass(frozen=True)
class EventMapping:
    """A web event-registration pattern and its kintone event."""

    platform_event: str  # Unique key, e.g. "app.record.index.show"
    web_trigger: WebTrigger
    value_transform: ValueTransform
    example: MappingExample
    introduced_version: Optional[str] = None
    deprecated: bool = False

    @property
    def trigger_key(self) -> Tuple[str, Optional[str]]:
        return (self.web_trigger.event_type, self.web_trigger.selector)

    @property
    def trigger_keys(self) -> Tuple[Tuple[str, Optional[str]], ...]:
        """The primary trigger key followed by one key per selector alias."""
        event_type = self.web_trigger.event_type
        aliases = tuple((event_type, alias) for alias in self.web_trigger.selector_aliases)
        return (self.trigger_key,) + aliases

    @property
    def platform_construct(self) -> str:
        return self.platform_event


# ── API mappings ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ApiMapping:
    """A web ``fetch`` route and its ``kintone.api`` equivalent."""

    name: str  # Unique key, e.g. "records.get"
    web_method: str  # HTTP method of the fetch call
    path_prefix: str  # "/api/records"
    platform_path: str  # "/k/v1/records.json"
    description: str
    request_transform: Callable[[WebRequest], PlatformRequest]
    response_transform: Callable[[Dict[str, Any]], WebResponse]
    example: MappingExample
    deprecated: bool = False

    @property
    def route_key(self) -> Tuple[str, str]:
        return (self.web_method.upper(), self.path_prefix)

    @property
    def platform_construct(self) -> str:
        return self.platform_path
