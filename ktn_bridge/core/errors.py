"""Error taxonomy and the generic error-handling facility.

Two groups live here:

* Engine errors raised by the transform core. ``ParseFailure`` is the
  only one that aborts a transform request; the registry/matcher errors
  are caller or programming errors that surface at startup.
* ``ErrorHandler``, which wraps arbitrary exceptions thrown by code
  *around* the engine (dev server, CLI, generated runtime helpers) into
  classified ``BridgeError`` instances. The engine itself never routes
  its own failures through it.
"""

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Classification of every error the bridge reports."""

    PARSE_FAILURE = "PARSE_FAILURE"
    UNSUPPORTED_CONSTRUCT = "UNSUPPORTED_CONSTRUCT"
    VALIDATION_WARNING = "VALIDATION_WARNING"
    NETWORK_ERROR = "NETWORK_ERROR"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    MAPPING_ERROR = "MAPPING_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


_USER_ERROR_TYPES = frozenset({
    ErrorType.PARSE_FAILURE,
    ErrorType.UNSUPPORTED_CONSTRUCT,
    ErrorType.MAPPING_ERROR,
    ErrorType.VALIDATION_WARNING,
})


@dataclass
class ErrorContext:
    """Where and when an error happened."""

    filename: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    source_snippet: Optional[str] = None
    event_type: Optional[str] = None
    api_endpoint: Optional[str] = None
    original_error: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class BridgeError(Exception):
    """Base exception carrying a classification, context and suggestions."""

    error_type: ErrorType = ErrorType.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        error_type: Optional[ErrorType] = None,
        context: Optional[ErrorContext] = None,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_type is not None:
            self.error_type = error_type
        self.context = context or ErrorContext()
        self.suggestions = list(suggestions or [])

    @property
    def is_user_error(self) -> bool:
        return self.error_type in _USER_ERROR_TYPES

    def __str__(self) -> str:
        parts = []
        if self.context.filename:
            parts.append(f"File: {self.context.filename}")
        if self.context.line is not None:
            parts.append(f"Line: {self.context.line}, Column: {self.context.column or 0}")
        if self.context.event_type:
            parts.append(f"Event: {self.context.event_type}")
        if self.context.api_endpoint:
            parts.append(f"API: {self.context.api_endpoint}")

        result = f"[{self.error_type.value}] {self.message}"
        if parts:
            result += f"\n  Context: {', '.join(parts)}"
        if self.suggestions:
            result += "\n  Suggestions:\n    " + "\n    ".join(self.suggestions)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "type": self.error_type.value,
            "context": asdict(self.context),
            "is_user_error": self.is_user_error,
            "suggestions": list(self.suggestions),
        }


class ParseFailure(BridgeError):
    """Malformed input. Aborts the transform request."""

    error_type = ErrorType.PARSE_FAILURE

    def __init__(
        self,
        message: str,
        filename: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        snippet: Optional[str] = None,
    ):
        super().__init__(
            message,
            context=ErrorContext(
                filename=filename, line=line, column=column, source_snippet=snippet
            ),
            suggestions=[
                "Check the code for unbalanced braces, brackets or quotes",
                "Make sure the file extension matches its language (.js, .ts, .tsx)",
            ],
        )

    @property
    def line(self) -> Optional[int]:
        return self.context.line

    @property
    def column(self) -> Optional[int]:
        return self.context.column

    @property
    def snippet(self) -> Optional[str]:
        return self.context.source_snippet


class DuplicateMappingError(BridgeError, ValueError):
    """Two mappings registered under the same lookup key."""

    error_type = ErrorType.MAPPING_ERROR


class RegistryFrozenError(BridgeError, RuntimeError):
    """Registration attempted after the registry was frozen."""

    error_type = ErrorType.MAPPING_ERROR


class PatternConflictError(BridgeError, RuntimeError):
    """More than one pattern variant claimed the same call node."""

    error_type = ErrorType.MAPPING_ERROR


class RewriteError(BridgeError):
    """A matched node could not be turned into a platform call."""

    error_type = ErrorType.MAPPING_ERROR


# ── Generic error handling ───────────────────────────────────────────

_SUGGESTIONS: Dict[ErrorType, List[str]] = {
    ErrorType.NETWORK_ERROR: [
        "Check the network connection",
        "Check that the API endpoint URL is correct",
        "Check that the development server is running",
    ],
    ErrorType.RUNTIME_ERROR: [
        "Check that variables are defined before use",
        "Check that the accessed object properties exist",
        "Check that functions are called with the right arguments",
    ],
    ErrorType.MAPPING_ERROR: [
        "Check that an event or API mapping is registered for this construct",
        "Check that the event type is supported",
        "Check that the selector is correct",
    ],
    ErrorType.PARSE_FAILURE: [
        "Check the code syntax",
        "Check that no unsupported language features are used",
    ],
}


def classify_exception(error: BaseException) -> Tuple[ErrorType, List[str]]:
    """Guess the error category of an arbitrary exception.

    Exception type wins over message heuristics; the message is only
    consulted for the generic ``Exception``-family cases.
    """
    if isinstance(error, BridgeError):
        return error.error_type, list(error.suggestions)

    message = str(error).lower()
    if isinstance(error, (ConnectionError, TimeoutError)) or "fetch" in message or "network" in message:
        error_type = ErrorType.NETWORK_ERROR
    elif isinstance(error, LookupError) or "mapping" in message or "event" in message:
        error_type = ErrorType.MAPPING_ERROR
    elif isinstance(error, SyntaxError) or "parse" in message or "syntax" in message:
        error_type = ErrorType.PARSE_FAILURE
    elif isinstance(error, (TypeError, NameError, AttributeError, ValueError)):
        error_type = ErrorType.RUNTIME_ERROR
    else:
        error_type = ErrorType.UNKNOWN_ERROR
    return error_type, list(_SUGGESTIONS.get(error_type, []))


class ErrorHandler:
    """Wraps arbitrary exceptions into ``BridgeError`` and keeps a bounded log.

    Usage:
        handler = ErrorHandler(max_log_size=100)
        bridge_error = handler.handle_error(exc, ErrorContext(filename="app.js"))
    """

    def __init__(
        self,
        max_log_size: int = 100,
        on_error: Optional[Callable[[BridgeError], None]] = None,
    ):
        self._log: Deque[BridgeError] = deque(maxlen=max_log_size)
        self._lock = threading.Lock()
        self._on_error = on_error

    def set_error_callback(self, callback: Optional[Callable[[BridgeError], None]]) -> None:
        self._on_error = callback

    def handle_error(
        self, error: BaseException, context: Optional[ErrorContext] = None
    ) -> BridgeError:
        """Classify, log and return ``error`` as a ``BridgeError``."""
        if isinstance(error, BridgeError):
            bridge_error = error
        else:
            error_type, suggestions = classify_exception(error)
            ctx = context or ErrorContext()
            ctx.original_error = f"{type(error).__name__}: {error}"
            bridge_error = BridgeError(str(error), error_type, ctx, suggestions)
            bridge_error.__cause__ = error

        with self._lock:
            self._log.append(bridge_error)

        logger.error("%s", bridge_error)
        if bridge_error.context.source_snippet:
            logger.debug("Source snippet:\n%s", bridge_error.context.source_snippet)

        if self._on_error is not None:
            self._on_error(bridge_error)
        return bridge_error

    def get_error_log(self) -> List[BridgeError]:
        with self._lock:
            return list(self._log)

    def clear_error_log(self) -> None:
        with self._lock:
            self._log.clear()


_default_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Return the lazily-created default handler for simple callers."""
    global _default_handler
    if _default_handler is None:
        _default_handler = ErrorHandler()
    return _default_handler
