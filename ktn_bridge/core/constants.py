"""Shared constants for ktn-bridge.

Names of the kintone constructs the rewriter emits and the web-side
shapes the matcher recognizes. Kept in one place so the matcher, the
rewriter and the post-hoc validator agree on them.
"""

# =============================================================================
# Platform (kintone) call shapes
# =============================================================================

PLATFORM_NAMESPACE = "kintone"

# kintone.events.on('<event>', handler)
PLATFORM_EVENT_REGISTRATION = f"{PLATFORM_NAMESPACE}.events.on"

# kintone.api('<path>', '<method>', params)
PLATFORM_API_INVOCATION = f"{PLATFORM_NAMESPACE}.api"

# Parameter name of generated event handlers
HANDLER_EVENT_PARAM = "event"

# =============================================================================
# Web call shapes
# =============================================================================

EVENT_REGISTRATION_METHOD = "addEventListener"

# Receivers whose addEventListener calls are page-level registrations
EVENT_RECEIVERS = frozenset({"document", "window"})

# document.querySelector('<selector>').addEventListener(...)
SELECTOR_METHODS = frozenset({"querySelector"})

FETCH_FUNCTION = "fetch"

# window.fetch(...) / globalThis.fetch(...)
FETCH_RECEIVERS = frozenset({"window", "globalThis", "self"})

# fetch URLs under this path are expected to have an API mapping
DEFAULT_API_BASE_PATH = "/api"

# =============================================================================
# Diagnostics
# =============================================================================

DEFAULT_DEBUG_CAPACITY = 50
DEFAULT_TRACE_CAPACITY = 100

# Performance report window (seconds)
PERFORMANCE_WINDOW_SECONDS = 5 * 60

# Statistics "recent transforms" window (seconds)
STATISTICS_WINDOW_SECONDS = 60 * 60

# APIs with no kintone equivalent; flagged by the validator
UNSUPPORTED_WEB_APIS = ("XMLHttpRequest", "jQuery", "$(")
