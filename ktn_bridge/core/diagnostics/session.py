"""Transform session state machine.

    idle → parsing → rewriting → generating → recorded
                 ↘        ↘           ↘
                            failed

``failed`` is reachable from every non-terminal state. Illegal
transitions raise :class:`InvalidTransitionError`.
"""

import logging
import time
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from ..errors import BridgeError
from ..models import TargetMode
from .models import RewriteEvent

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    REWRITING = "rewriting"
    GENERATING = "generating"
    RECORDED = "recorded"
    FAILED = "failed"


_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.PARSING, SessionState.FAILED}),
    SessionState.PARSING: frozenset({SessionState.REWRITING, SessionState.FAILED}),
    SessionState.REWRITING: frozenset({SessionState.GENERATING, SessionState.FAILED}),
    SessionState.GENERATING: frozenset({SessionState.RECORDED, SessionState.FAILED}),
    SessionState.RECORDED: frozenset(),
    SessionState.FAILED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    pass


class TransformSession:
    """State and collected rewrite events of one transform request."""

    def __init__(self, filename: str, target_mode: TargetMode):
        self.filename = filename
        self.target_mode = target_mode
        self.state = SessionState.IDLE
        self.events: List[RewriteEvent] = []
        self.error: Optional[BridgeError] = None
        self._started = time.perf_counter()
        self._finished: Optional[float] = None

    def transition(self, new_state: SessionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Illegal session transition {self.state.value} → {new_state.value} "
                f"({self.filename})"
            )
        logger.debug("Session %s: %s → %s", self.filename, self.state.value, new_state.value)
        self.state = new_state
        if self.terminal:
            self._finished = time.perf_counter()

    def fail(self, error: BridgeError) -> None:
        self.error = error
        self.transition(SessionState.FAILED)

    def record_event(self, event: RewriteEvent) -> None:
        if self.state not in (SessionState.REWRITING, SessionState.GENERATING):
            raise InvalidTransitionError(
                f"Rewrite events can only be recorded while rewriting or generating (state: {self.state.value})"
            )
        self.events.append(event)

    @property
    def terminal(self) -> bool:
        return self.state in (SessionState.RECORDED, SessionState.FAILED)

    @property
    def duration_ms(self) -> float:
        end = self._finished if self._finished is not None else time.perf_counter()
        return round((end - self._started) * 1000, 3)
