"""Tests for the diagnostic & trace recorder, sessions and validator."""

from datetime import datetime, timedelta, timezone

import pytest

from ktn_bridge.core.diagnostics import (
    DebugInfo,
    DiagnosticRecorder,
    InvalidTransitionError,
    RewriteEvent,
    RewriteOutcome,
    SessionState,
    Severity,
    TransformSession,
    TransformTrace,
    TransformValidator,
)
from ktn_bridge.core.errors import ParseFailure
from ktn_bridge.core.models import SourceLocation, TargetMode


class FakeClock:
    """Settable clock for time-window tests."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _event(web="DOMContentLoaded", platform="app.record.index.show", success=True,
           kind="event_registration", line=1) -> RewriteEvent:
    return RewriteEvent(
        kind=kind,
        web_construct=web,
        platform_construct=platform if success else None,
        location=SourceLocation(line, 0),
        outcome=RewriteOutcome.SUCCESS if success else RewriteOutcome.FAILURE,
        failure_reason=None if success else "no mapping",
        applied=success,
    )


def _trace(filename: str, recorded_at: datetime = T0, generated: str = "x") -> TransformTrace:
    return TransformTrace(
        filename=filename,
        original_text="y",
        generated_text=generated,
        duration_ms=1.5,
        recorded_at=recorded_at,
    )


def _session(filename="app.js", mode=TargetMode.PRODUCTION) -> TransformSession:
    session = TransformSession(filename, mode)
    session.transition(SessionState.PARSING)
    session.transition(SessionState.REWRITING)
    return session


# =========================================================================
# Tests: Session state machine
# =========================================================================

class TestTransformSession:
    def test_happy_path(self):
        session = _session()
        session.record_event(_event())
        session.transition(SessionState.GENERATING)
        session.transition(SessionState.RECORDED)
        assert session.terminal
        assert session.duration_ms >= 0

    def test_skipping_states_is_illegal(self):
        session = TransformSession("app.js", TargetMode.PRODUCTION)
        with pytest.raises(InvalidTransitionError):
            session.transition(SessionState.GENERATING)

    def test_terminal_states_are_final(self):
        session = TransformSession("app.js", TargetMode.PRODUCTION)
        session.fail(ParseFailure("bad", filename="app.js"))
        assert session.state == SessionState.FAILED
        with pytest.raises(InvalidTransitionError):
            session.transition(SessionState.PARSING)

    def test_events_only_while_rewriting(self):
        session = TransformSession("app.js", TargetMode.PRODUCTION)
        with pytest.raises(InvalidTransitionError):
            session.record_event(_event())


# =========================================================================
# Tests: Ring buffers
# =========================================================================

class TestBuffers:
    def test_debug_eviction_keeps_newest(self):
        recorder = DiagnosticRecorder(debug_capacity=2)
        for name in ("a.js", "b.js", "c.js"):
            recorder.record_debug_info(DebugInfo(filename=name, target_mode=TargetMode.PRODUCTION))
        assert [i.filename for i in recorder.debug_infos()] == ["b.js", "c.js"]

    def test_trace_eviction_is_independent(self):
        recorder = DiagnosticRecorder(debug_capacity=2, trace_capacity=3)
        for i in range(5):
            recorder.record_trace(_trace(f"{i}.js"))
        assert [t.filename for t in recorder.traces()] == ["2.js", "3.js", "4.js"]
        assert recorder.debug_infos() == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            DiagnosticRecorder(trace_capacity=0)

    def test_traces_disabled(self):
        recorder = DiagnosticRecorder(enable_traces=False)
        recorder.record_trace(_trace("a.js"))
        assert recorder.traces() == []
        assert recorder.generate_transform_report("a.js") == "Transform trace not enabled"

    def test_find_trace_returns_most_recent(self):
        recorder = DiagnosticRecorder()
        recorder.record_trace(_trace("a.js", generated="first"))
        recorder.record_trace(_trace("b.js"))
        recorder.record_trace(_trace("a.js", generated="second"))
        assert recorder.find_trace("a.js").generated_text == "second"
        assert recorder.find_trace("missing.js") is None

    def test_time_window(self):
        clock = FakeClock(T0)
        recorder = DiagnosticRecorder(clock=clock)
        recorder.record_trace(_trace("old.js", recorded_at=T0))
        recorder.record_trace(_trace("new.js", recorded_at=T0 + timedelta(minutes=10)))
        clock.advance(minutes=12)
        assert [t.filename for t in recorder.traces(since=timedelta(minutes=5))] == ["new.js"]
        assert len(recorder.traces(since=T0)) == 2

    def test_clear(self):
        recorder = DiagnosticRecorder()
        recorder.record_trace(_trace("a.js"))
        recorder.record_debug_info(DebugInfo(filename="a.js", target_mode=TargetMode.PRODUCTION))
        recorder.clear()
        assert recorder.traces() == []
        assert recorder.debug_infos() == []


# =========================================================================
# Tests: Session completion
# =========================================================================

class TestSessionRecording:
    def test_complete_session(self):
        clock = FakeClock(T0)
        recorder = DiagnosticRecorder(clock=clock)
        session = _session()
        session.record_event(_event())
        session.record_event(_event(web="click", success=False, line=2))
        session.transition(SessionState.GENERATING)

        info = recorder.complete_session(
            session,
            original_text="document.addEventListener('DOMContentLoaded', f);",
            generated_text="kintone.events.on('app.record.index.show', f);",
        )

        assert session.state == SessionState.RECORDED
        assert len(info.event_mappings) == 2
        assert info.recorded_at == T0
        unsupported = [i for i in info.errors if i.code == "UNSUPPORTED_CONSTRUCT"]
        assert len(unsupported) == 1
        assert unsupported[0].location == SourceLocation(2, 0)
        assert recorder.find_trace("app.js").recorded_at == T0

    def test_fail_session(self):
        recorder = DiagnosticRecorder()
        session = TransformSession("broken.js", TargetMode.PRODUCTION)
        session.transition(SessionState.PARSING)
        error = ParseFailure("Syntax error in broken.js", filename="broken.js", line=3, column=4)

        info = recorder.fail_session(session, error)

        assert session.state == SessionState.FAILED
        assert info.errors[0].code == "PARSE_FAILURE"
        assert info.errors[0].location == SourceLocation(3, 4)
        assert recorder.traces() == []


# =========================================================================
# Tests: Validator
# =========================================================================

class TestTransformValidator:
    def setup_method(self):
        self.validator = TransformValidator()

    def test_clean_transform(self):
        issues = self.validator.validate(
            "document.addEventListener('DOMContentLoaded', f);",
            "kintone.events.on('app.record.index.show', f);",
        )
        assert issues == []

    def test_untransformed_production(self):
        original = "document.addEventListener('click', f);\nfetch('/api/users');"
        codes = {i.code for i in self.validator.validate(original, original)}
        assert codes == {"NO_PLATFORM_CALLS", "EVENTS_NOT_TRANSFORMED", "FETCH_NOT_TRANSFORMED"}

    def test_development_skips_markers(self):
        original = "document.addEventListener('click', f);"
        assert self.validator.validate(original, original, TargetMode.DEVELOPMENT) == []

    def test_unsupported_apis_in_any_mode(self):
        original = "const xhr = new XMLHttpRequest();\n$('#id').hide();"
        issues = self.validator.validate(original, original, TargetMode.DEVELOPMENT)
        assert [i.code for i in issues] == ["UNSUPPORTED_API", "UNSUPPORTED_API"]
        assert all(i.severity == Severity.WARNING for i in issues)
        assert "'$'" in issues[1].message


# =========================================================================
# Tests: Reports and statistics
# =========================================================================

class TestReports:
    def setup_method(self):
        self.clock = FakeClock(T0)
        self.recorder = DiagnosticRecorder(clock=self.clock)
        self.recorder.record_debug_info(
            DebugInfo(
                filename="app.js",
                target_mode=TargetMode.PRODUCTION,
                event_mappings=[_event(), _event(web="click", success=False)],
                api_mappings=[_event(web="/api/records", platform="/k/v1/records.json",
                                     kind="network_fetch")],
            )
        )
        self.recorder.record_trace(_trace("app.js", recorded_at=T0, generated="abcd"))

    def test_statistics(self):
        stats = self.recorder.get_statistics()
        assert stats.total_event_mappings == 2
        assert stats.successful_event_mappings == 1
        assert stats.failed_event_mappings == 1
        assert stats.total_api_mappings == 1
        assert stats.total_transforms == 1
        assert stats.recent_transforms == 1
        assert stats.average_transform_size == 4
        assert stats.to_dict()["successful_api_mappings"] == 1

    def test_statistics_window(self):
        self.clock.advance(hours=2)
        assert self.recorder.get_statistics().recent_transforms == 0

    def test_diagnostic_report(self):
        report = self.recorder.generate_diagnostic_report()
        assert report.startswith("Diagnostic Report")
        assert "Event Mappings: 2" in report
        assert "DOMContentLoaded → app.record.index.show (Success)" in report
        assert "click → - (Failed)" in report

    def test_transform_report(self):
        report = self.recorder.generate_transform_report("app.js")
        assert report.startswith("Transform Report: app.js")
        assert "Transformed Code:" in report
        missing = self.recorder.generate_transform_report("other.js")
        assert missing == "No transform trace found for other.js"

    def test_comparison_report(self):
        report = DiagnosticRecorder.generate_comparison_report("a\nb", "c")
        lines = report.split("\n")
        assert lines[0] == "=== Code Comparison Report ==="
        assert lines[1] == "Original: 2 lines"
        assert lines[-1] == f"  2 | {'b':<50} | "

    def test_performance_report(self):
        report = self.recorder.generate_performance_report()
        assert report.startswith("=== Performance Report ===")
        assert "Recent transforms: 1" in report
        self.clock.advance(minutes=10)
        assert "Recent transforms: 0" in self.recorder.generate_performance_report()

    def test_export(self, tmp_path):
        output = self.recorder.export_debug_info(tmp_path / "reports" / "debug.txt")
        text = output.read_text(encoding="utf-8")
        assert "Diagnostic Report" in text
        assert "=== All Transform Traces ===" in text
        assert "Transform Report: app.js" in text


class TestErrorDetails:
    def test_full_details(self):
        recorder = DiagnosticRecorder()
        try:
            raise ValueError("boom")
        except ValueError as e:
            details = recorder.generate_error_details(e, "app.js", line=3, column=1, code="x()")
        assert details.startswith("Error: boom\nFile: app.js\nLine: 3\nColumn: 1\nCode: x()")
        assert "Stack:" in details

    def test_details_disabled(self):
        recorder = DiagnosticRecorder(enable_error_details=False)
        assert recorder.generate_error_details(ValueError("boom"), "app.js") == "boom"
