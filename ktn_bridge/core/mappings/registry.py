"""Mapping registry.

Dict-indexed store of event and API mappings. Instances are populated
once at startup, frozen, and then shared read-only by every transform.
Registration mistakes (duplicate keys, late registration) fail fast
instead of surfacing mid-build.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple, Union

from ..errors import DuplicateMappingError, RegistryFrozenError
from .models import ApiMapping, EventMapping

logger = logging.getLogger(__name__)

Mapping = Union[EventMapping, ApiMapping]


def normalize_path(path_or_url: str) -> str:
    """Reduce a URL or path to a slash-delimited path without query/fragment."""
    path = path_or_url.split("#", 1)[0].split("?", 1)[0]
    if "://" in path:
        path = "/" + path.split("://", 1)[1].partition("/")[2]
    elif path.startswith("//"):
        path = "/" + path[2:].partition("/")[2]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


class MappingRegistry:
    """Registry for event and API mappings.

    Lookups never raise for absence; they return ``None`` and leave the
    benign-or-error decision to the pattern matcher.

    Usage:
        registry = MappingRegistry()
        registry.register(mapping)
        registry.freeze()
        registry.lookup_event_by_trigger("DOMContentLoaded")
    """

    def __init__(self) -> None:
        self._events_by_name: Dict[str, EventMapping] = {}
        self._events_by_trigger: Dict[Tuple[str, Optional[str]], EventMapping] = {}
        self._apis_by_name: Dict[str, ApiMapping] = {}
        self._apis_by_route: Dict[Tuple[str, str], ApiMapping] = {}
        self._frozen = False
        self._lock = threading.Lock()

    # ── Registration ─────────────────────────────────────────────

    def register(self, mapping: Mapping) -> None:
        """Register an event or API mapping."""
        if isinstance(mapping, EventMapping):
            self.register_event(mapping)
        elif isinstance(mapping, ApiMapping):
            self.register_api(mapping)
        else:
            raise TypeError(f"Not a mapping: {type(mapping).__name__}")

    def register_event(self, mapping: EventMapping) -> None:
        with self._lock:
            self._check_writable(mapping.platform_event)
            if mapping.platform_event in self._events_by_name:
                raise DuplicateMappingError(
                    f"Event mapping already registered: {mapping.platform_event}"
                )
            keys = mapping.trigger_keys
            for key in keys:
                if key in self._events_by_trigger:
                    other = self._events_by_trigger[key]
                    raise DuplicateMappingError(
                        f"Trigger {key} of {mapping.platform_event} "
                        f"already maps to {other.platform_event}"
                    )
            if len(set(keys)) != len(keys):
                raise DuplicateMappingError(
                    f"Event mapping {mapping.platform_event} repeats one of its triggers"
                )
            self._events_by_name[mapping.platform_event] = mapping
            for key in keys:
                self._events_by_trigger[key] = mapping
        logger.debug(
            "Registered event mapping: %s <- %s", mapping.platform_event, mapping.trigger_key
        )

    def register_api(self, mapping: ApiMapping) -> None:
        route_key = (mapping.web_method.upper(), normalize_path(mapping.path_prefix))
        with self._lock:
            self._check_writable(mapping.name)
            if mapping.name in self._apis_by_name:
                raise DuplicateMappingError(f"API mapping already registered: {mapping.name}")
            if route_key in self._apis_by_route:
                other = self._apis_by_route[route_key]
                raise DuplicateMappingError(
                    f"Route {route_key} of {mapping.name} already maps to {other.name}"
                )
            self._apis_by_name[mapping.name] = mapping
            self._apis_by_route[route_key] = mapping
        logger.debug("Registered API mapping: %s <- %s %s", mapping.name, *route_key)

    def _check_writable(self, key: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {key}: registry is frozen (read-only after startup)"
            )

    def freeze(self) -> "MappingRegistry":
        """Make the registry read-only. Returns ``self`` for chaining."""
        self._frozen = True
        logger.info(
            "Mapping registry frozen: %d event mappings, %d API mappings",
            len(self._events_by_name),
            len(self._apis_by_name),
        )
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── Lookup ───────────────────────────────────────────────────

    def lookup_event_by_trigger(
        self, event_type: str, selector: Optional[str] = None
    ) -> Optional[EventMapping]:
        return self._events_by_trigger.get((event_type, selector))

    def lookup_event_by_name(self, name: str) -> Optional[EventMapping]:
        return self._events_by_name.get(name)

    def lookup_api_by_name(self, name: str) -> Optional[ApiMapping]:
        return self._apis_by_name.get(name)

    def lookup_api_by_path_prefix(self, path: str, method: str = "GET") -> Optional[ApiMapping]:
        """Find the API mapping whose prefix covers ``path``.

        Matching is on whole path segments, longest prefix first, so
        ``/api/records`` never matches the ``/api/record`` prefix.
        """
        method = method.upper()
        candidate = normalize_path(path)
        while True:
            mapping = self._apis_by_route.get((method, candidate))
            if mapping is not None:
                return mapping
            if candidate == "/":
                return None
            candidate = candidate.rsplit("/", 1)[0] or "/"

    def contains_construct(self, platform_construct: str) -> bool:
        """True if some registered mapping produces ``platform_construct``."""
        if platform_construct in self._events_by_name:
            return True
        return any(m.platform_construct == platform_construct for m in self._apis_by_name.values())

    # ── Listing ──────────────────────────────────────────────────

    def event_mappings(self) -> List[EventMapping]:
        return list(self._events_by_name.values())

    def api_mappings(self) -> List[ApiMapping]:
        return list(self._apis_by_name.values())

    def __len__(self) -> int:
        return len(self._events_by_name) + len(self._apis_by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._events_by_name or name in self._apis_by_name
