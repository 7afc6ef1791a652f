"""Diagnostics: rewrite events, debug records, traces and reports."""

from .models import (
    DebugInfo,
    DiagnosticIssue,
    RecorderStatistics,
    RewriteEvent,
    RewriteOutcome,
    Severity,
    TraceMapping,
    TransformTrace,
)
from .recorder import DiagnosticRecorder
from .session import InvalidTransitionError, SessionState, TransformSession
from .validator import TransformValidator

__all__ = [
    "DebugInfo",
    "DiagnosticIssue",
    "DiagnosticRecorder",
    "InvalidTransitionError",
    "RecorderStatistics",
    "RewriteEvent",
    "RewriteOutcome",
    "SessionState",
    "Severity",
    "TraceMapping",
    "TransformSession",
    "TransformTrace",
    "TransformValidator",
]
