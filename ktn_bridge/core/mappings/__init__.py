"""Mapping registry -- data-driven web → kintone correspondences.

Nothing registers at import time. Callers build their own
:class:`MappingRegistry`, or use :func:`create_default_registry` for one
pre-loaded with the built-in event and API mappings.
"""

from typing import Iterable, Optional

from .apis import API_MAPPINGS, coerce_query_params, flatten_record
from .events import EVENT_MAPPINGS
from .models import (
    ApiMapping,
    EventMapping,
    JsExpression,
    MappingExample,
    PlatformRequest,
    ValueTransform,
    WebRequest,
    WebResponse,
    WebTrigger,
)
from .registry import Mapping, MappingRegistry, normalize_path


def create_default_registry(
    extra: Optional[Iterable[Mapping]] = None, freeze: bool = True
) -> MappingRegistry:
    """Build a registry holding the built-in mappings plus ``extra``.

    Args:
        extra: Additional mappings to register after the built-ins.
        freeze: Freeze the registry before returning it.

    Raises:
        DuplicateMappingError: If ``extra`` collides with a built-in key.
    """
    registry = MappingRegistry()
    for mapping in EVENT_MAPPINGS:
        registry.register(mapping)
    for mapping in API_MAPPINGS:
        registry.register(mapping)
    for mapping in extra or ():
        registry.register(mapping)
    if freeze:
        registry.freeze()
    return registry


__all__ = [
    "API_MAPPINGS",
    "ApiMapping",
    "EVENT_MAPPINGS",
    "EventMapping",
    "JsExpression",
    "Mapping",
    "MappingExample",
    "MappingRegistry",
    "PlatformRequest",
    "ValueTransform",
    "WebRequest",
    "WebResponse",
    "WebTrigger",
    "coerce_query_params",
    "create_default_registry",
    "flatten_record",
    "normalize_path",
]
