"""Diagnostic & trace recorder.

Holds two bounded ring buffers, one of :class:`DebugInfo` records and one
of :class:`TransformTrace` records, with independent capacities. Both are
process-wide in practice (one recorder shared by a build), so every
access goes through a lock. Eviction is capacity based; time windows
only filter what reports look at.

Usage:
    recorder = DiagnosticRecorder()
    engine = TransformEngine(registry, recorder=recorder)
    engine.transform(source, filename="app.js")
    print(recorder.generate_diagnostic_report())
"""

import logging
import threading
import traceback
from collections import deque
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Deque, Iterable, List, Optional, Union

from ..constants import (
    DEFAULT_DEBUG_CAPACITY,
    DEFAULT_TRACE_CAPACITY,
    PERFORMANCE_WINDOW_SECONDS,
    STATISTICS_WINDOW_SECONDS,
)
from ..errors import BridgeError
from ..models import SourceLocation, TargetMode
from .models import (
    DebugInfo,
    DiagnosticIssue,
    RecorderStatistics,
    Severity,
    TraceMapping,
    TransformTrace,
)
from .session import SessionState, TransformSession
from .validator import TransformValidator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DiagnosticRecorder:
    """Captures per-rewrite events, debug records and transform traces."""

    def __init__(
        self,
        debug_capacity: int = DEFAULT_DEBUG_CAPACITY,
        trace_capacity: int = DEFAULT_TRACE_CAPACITY,
        enable_traces: bool = True,
        enable_error_details: bool = True,
        validator: Optional[TransformValidator] = None,
        clock: Optional[Clock] = None,
        performance_window_seconds: int = PERFORMANCE_WINDOW_SECONDS,
        statistics_window_seconds: int = STATISTICS_WINDOW_SECONDS,
    ):
        if debug_capacity < 1 or trace_capacity < 1:
            raise ValueError("Recorder capacities must be positive")
        self._debug: Deque[DebugInfo] = deque(maxlen=debug_capacity)
        self._traces: Deque[TransformTrace] = deque(maxlen=trace_capacity)
        self._lock = threading.Lock()
        self._validator = validator or TransformValidator()
        self._clock = clock or _utcnow
        self.enable_traces = enable_traces
        self.enable_error_details = enable_error_details
        self.performance_window_seconds = performance_window_seconds
        self.statistics_window_seconds = statistics_window_seconds

    # ── Session lifecycle ────────────────────────────────────────────

    def begin_session(self, filename: str, target_mode: TargetMode) -> TransformSession:
        return TransformSession(filename, target_mode)

    def complete_session(
        self,
        session: TransformSession,
        original_text: str,
        generated_text: str,
        source_map_text: Optional[str] = None,
        mappings: Iterable[TraceMapping] = (),
    ) -> DebugInfo:
        """Record a successful session.

        Side effects, in order: append the DebugInfo, append the trace,
        then run the validator and attach its findings to the DebugInfo.
        """
        session.transition(SessionState.RECORDED)

        info = DebugInfo(
            filename=session.filename,
            target_mode=session.target_mode,
            event_mappings=[e for e in session.events if e.kind == "event_registration"],
            api_mappings=[e for e in session.events if e.kind == "network_fetch"],
            errors=[
                DiagnosticIssue(
                    message=f"{e.web_construct}: {e.failure_reason}",
                    severity=Severity.ERROR,
                    code="UNSUPPORTED_CONSTRUCT",
                    location=e.location,
                    suggestions=["Register a mapping for this construct or rewrite it by hand"],
                )
                for e in session.events
                if not e.success
            ],
            recorded_at=self._clock(),
        )
        self.record_debug_info(info)

        self.record_trace(
            TransformTrace(
                filename=session.filename,
                original_text=original_text,
                generated_text=generated_text,
                duration_ms=session.duration_ms,
                source_map_text=source_map_text,
                mappings=tuple(mappings),
                recorded_at=self._clock(),
            )
        )

        issues = self._validator.validate(original_text, generated_text, session.target_mode)
        if issues:
            with self._lock:
                info.errors.extend(issues)
            for issue in issues:
                log = logger.warning if issue.severity == Severity.ERROR else logger.info
                log("%s: %s", session.filename, issue.message)
        return info

    def fail_session(self, session: TransformSession, error: BridgeError) -> DebugInfo:
        """Move ``session`` to ``failed`` and keep the classified error."""
        session.fail(error)
        location = None
        if error.context.line is not None:
            location = SourceLocation(error.context.line, error.context.column or 0)
        info = DebugInfo(
            filename=session.filename,
            target_mode=session.target_mode,
            event_mappings=[e for e in session.events if e.kind == "event_registration"],
            api_mappings=[e for e in session.events if e.kind == "network_fetch"],
            errors=[
                DiagnosticIssue(
                    message=error.message,
                    severity=Severity.ERROR,
                    code=error.error_type.value.upper(),
                    location=location,
                    suggestions=list(error.suggestions),
                )
            ],
            recorded_at=self._clock(),
        )
        self.record_debug_info(info)
        logger.error("Transform failed for %s: %s", session.filename, error.message)
        return info

    # ── Buffers ──────────────────────────────────────────────────────

    def record_debug_info(self, info: DebugInfo) -> None:
        with self._lock:
            self._debug.append(info)
        logger.info(
            "Debug info recorded - %d events, %d APIs",
            len(info.event_mappings),
            len(info.api_mappings),
        )

    def record_trace(self, trace: TransformTrace) -> None:
        if not self.enable_traces:
            return
        with self._lock:
            self._traces.append(trace)
        logger.debug("Transform trace recorded for %s", trace.filename)

    def debug_infos(self) -> List[DebugInfo]:
        with self._lock:
            return list(self._debug)

    def traces(
        self,
        since: Optional[Union[datetime, timedelta]] = None,
        filename: Optional[str] = None,
    ) -> List[TransformTrace]:
        """Retained traces, oldest first.

        Args:
            since: Absolute cut-off, or a window relative to now.
            filename: Only traces for this file.
        """
        with self._lock:
            traces = list(self._traces)
        if isinstance(since, timedelta):
            since = self._clock() - since
        if since is not None:
            traces = [t for t in traces if t.recorded_at >= since]
        if filename is not None:
            traces = [t for t in traces if t.filename == filename]
        return traces

    def find_trace(self, filename: str) -> Optional[TransformTrace]:
        """Most recent trace for ``filename``."""
        matching = self.traces(filename=filename)
        return matching[-1] if matching else None

    @property
    def debug_capacity(self) -> int:
        return self._debug.maxlen

    @property
    def trace_capacity(self) -> int:
        return self._traces.maxlen

    def clear(self) -> None:
        with self._lock:
            self._debug.clear()
            self._traces.clear()
        logger.info("Debug data cleared")

    # ── Reports ──────────────────────────────────────────────────────

    def generate_transform_report(self, filename: str) -> str:
        if not self.enable_traces:
            return "Transform trace not enabled"
        trace = self.find_trace(filename)
        if trace is None:
            return f"No transform trace found for {filename}"
        return self._format_trace(trace)

    @staticmethod
    def _format_trace(trace: TransformTrace) -> str:
        lines = [
            f"Transform Report: {trace.filename}",
            f"Timestamp: {trace.recorded_at.isoformat()}",
            f"Duration: {trace.duration_ms}ms",
            "",
            "Original Code:",
            trace.original_text,
            "",
            "Transformed Code:",
            trace.generated_text,
            "",
        ]
        if trace.mappings:
            lines.append("Mappings:")
            for m in trace.mappings:
                suffix = f" ({m.name})" if m.name else ""
                lines.append(f"  {m.original} → {m.generated}{suffix}")
        if trace.source_map_text:
            lines.extend(["", "Source Map:", trace.source_map_text])
        return "\n".join(lines)

    @staticmethod
    def generate_comparison_report(original_text: str, generated_text: str) -> str:
        original_lines = original_text.split("\n")
        generated_lines = generated_text.split("\n")
        lines = [
            "=== Code Comparison Report ===",
            f"Original: {len(original_lines)} lines",
            f"Transformed: {len(generated_lines)} lines",
            "",
            "Side-by-side comparison:",
            "",
        ]
        for i in range(max(len(original_lines), len(generated_lines))):
            left = original_lines[i] if i < len(original_lines) else ""
            right = generated_lines[i] if i < len(generated_lines) else ""
            lines.append(f"{i + 1:>3} | {left:<50} | {right}")
        return "\n".join(lines)

    def generate_diagnostic_report(self, detail_limit: int = 3) -> str:
        infos = self.debug_infos()
        events = [e for info in infos for e in info.event_mappings]
        apis = [e for info in infos for e in info.api_mappings]
        errors = [issue for info in infos for issue in info.errors]

        counts = {}
        for issue in errors:
            counts[issue.severity.value] = counts.get(issue.severity.value, 0) + 1
        breakdown = ", ".join(f"{k}: {v}" for k, v in sorted(counts.items()))

        lines = [
            "Diagnostic Report",
            f"Event Mappings: {len(events)}",
            f"API Mappings: {len(apis)}",
            f"Errors: {len(errors)}" + (f" ({breakdown})" if breakdown else ""),
            "",
            "Event Mapping Details:",
        ]
        lines.extend(
            f"  {e.web_construct} → {e.platform_construct or '-'} "
            f"({'Success' if e.success else 'Failed'})"
            for e in events[:detail_limit]
        )
        lines.extend(["", "API Mapping Details:"])
        lines.extend(
            f"  {e.method or ''} {e.web_construct} → {e.platform_construct or '-'} "
            f"({'Success' if e.success else 'Failed'})".lstrip()
            for e in apis[:detail_limit]
        )
        lines.extend(["", "Recent Issues:"])
        lines.extend(
            f"  {issue.severity.value.upper()}: {issue.message}"
            for issue in errors[-detail_limit:]
        )
        return "\n".join(lines)

    def generate_performance_report(self, window_seconds: Optional[int] = None) -> str:
        if window_seconds is None:
            window_seconds = self.performance_window_seconds
        recent = self.traces(since=timedelta(seconds=window_seconds))
        lines = ["=== Performance Report ===", f"Recent transforms: {len(recent)}"]
        if not recent:
            return "\n".join(lines)

        avg_original = sum(len(t.original_text) for t in recent) / len(recent)
        avg_generated = sum(len(t.generated_text) for t in recent) / len(recent)
        avg_duration = sum(t.duration_ms for t in recent) / len(recent)
        ratio = f"{avg_generated / avg_original * 100:.1f}%" if avg_original else "n/a"
        lines.extend(
            [
                f"Average original size: {round(avg_original)} chars",
                f"Average transformed size: {round(avg_generated)} chars",
                f"Size ratio: {ratio}",
                f"Average duration: {avg_duration:.2f}ms",
                "",
                "Transform times:",
            ]
        )
        lines.extend(
            f"  {t.filename}: {t.recorded_at.isoformat()} ({t.duration_ms}ms)" for t in recent[-5:]
        )
        return "\n".join(lines)

    def get_statistics(self, window_seconds: Optional[int] = None) -> RecorderStatistics:
        if window_seconds is None:
            window_seconds = self.statistics_window_seconds
        infos = self.debug_infos()
        traces = self.traces()
        events = [e for info in infos for e in info.event_mappings]
        apis = [e for info in infos for e in info.api_mappings]
        recent = self.traces(since=timedelta(seconds=window_seconds))
        avg_size = sum(len(t.generated_text) for t in traces) / len(traces) if traces else 0

        return RecorderStatistics(
            total_event_mappings=len(events),
            successful_event_mappings=sum(1 for e in events if e.success),
            failed_event_mappings=sum(1 for e in events if not e.success),
            total_api_mappings=len(apis),
            successful_api_mappings=sum(1 for e in apis if e.success),
            failed_api_mappings=sum(1 for e in apis if not e.success),
            total_errors=sum(len(info.errors) for info in infos),
            total_transforms=len(traces),
            recent_transforms=len(recent),
            average_transform_size=round(avg_size),
        )

    def export_debug_info(self, path: Union[str, Path]) -> Path:
        """Write every report to ``path`` and return the resolved path."""
        sections = [
            self.generate_diagnostic_report(),
            "",
            self.generate_performance_report(),
            "",
            "=== All Transform Traces ===",
        ]
        sections.extend(self._format_trace(t) for t in self.traces())

        output = Path(path).resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text("\n".join(sections), encoding="utf-8")
        logger.info("Debug info exported to %s", output)
        return output

    def generate_error_details(
        self,
        error: BaseException,
        filename: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
    ) -> str:
        message = error.message if isinstance(error, BridgeError) else str(error)
        if not self.enable_error_details:
            return message

        details = [f"Error: {message}", f"File: {filename}"]
        if line is not None:
            details.append(f"Line: {line}")
        if column is not None:
            details.append(f"Column: {column}")
        if code:
            details.append(f"Code: {code}")
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        details.append(f"Stack: {stack.rstrip()}")
        return "\n".join(details)
