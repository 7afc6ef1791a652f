"""Transform orchestrator.

Drives parse → match/rewrite → generate → map → record for one request.
The registry and recorder are injected; :func:`create_transformer` wires
default instances for simple callers.
"""

import logging
from typing import List, Optional, Tuple

from ..ast_parser import parse_source
from ..constants import DEFAULT_API_BASE_PATH
from ..diagnostics import (
    DiagnosticRecorder,
    RewriteEvent,
    RewriteOutcome,
    SessionState,
    TraceMapping,
    TransformSession,
)
from ..errors import BridgeError, RewriteError
from ..mappings import MappingRegistry, create_default_registry
from ..models import TargetMode, TransformRequest, TransformResult
from .codegen import CodeGenerator
from .patterns import PatternMatch, PatternMatcher
from .position_mapper import PositionMapper
from .rewriter import Replacement, Rewriter
from .source_map import build_source_map

logger = logging.getLogger(__name__)

_DROPPED_REASON = "Nested inside another rewrite outside of any preserved sub-expression"


def _rewrite_event(
    match: PatternMatch,
    outcome: RewriteOutcome,
    reason: Optional[str] = None,
    applied: bool = False,
) -> RewriteEvent:
    return RewriteEvent(
        kind=match.kind.value,
        web_construct=match.web_construct,
        platform_construct=match.platform_construct,
        location=match.location,
        outcome=outcome,
        failure_reason=reason,
        method=match.request.method if match.request is not None else None,
        applied=applied,
    )


class TransformEngine:
    """Rewrites web-standard DOM/fetch calls into kintone calls.

    Safe for concurrent ``transform`` calls as long as the registry is
    not modified while they run (freeze it).

    Usage:
        engine = TransformEngine(create_default_registry(), recorder=DiagnosticRecorder())
        result = engine.transform(source, filename="app.js", want_source_map=True)
    """

    def __init__(
        self,
        registry: MappingRegistry,
        recorder: Optional[DiagnosticRecorder] = None,
        matcher: Optional[PatternMatcher] = None,
        rewriter: Optional[Rewriter] = None,
        generator: Optional[CodeGenerator] = None,
        api_base_path: str = DEFAULT_API_BASE_PATH,
        default_target_mode: TargetMode = TargetMode.PRODUCTION,
    ):
        self.registry = registry
        self.recorder = recorder
        self.matcher = matcher or PatternMatcher(registry, api_base_path=api_base_path)
        self.rewriter = rewriter or Rewriter()
        self.generator = generator or CodeGenerator()
        self.default_target_mode = TargetMode.parse(default_target_mode)

    def transform(
        self,
        source_text: str,
        filename: str = "unknown.js",
        target_mode: Optional[TargetMode] = None,
        want_source_map: bool = False,
    ) -> TransformResult:
        """Transform one source unit.

        Raises:
            ParseFailure: If ``source_text`` is not syntactically valid.
        """
        request = TransformRequest(
            source_text=source_text,
            filename=filename,
            target_mode=TargetMode.parse(target_mode or self.default_target_mode),
            want_source_map=want_source_map,
        )
        return self.run(request)

    def run(self, request: TransformRequest) -> TransformResult:
        if self.recorder is not None:
            session = self.recorder.begin_session(request.filename, request.target_mode)
        else:
            session = TransformSession(request.filename, request.target_mode)

        try:
            return self._run(request, session)
        except BridgeError as e:
            if not session.terminal:
                if self.recorder is not None:
                    self.recorder.fail_session(session, e)
                else:
                    session.fail(e)
            raise

    def _run(self, request: TransformRequest, session: TransformSession) -> TransformResult:
        session.transition(SessionState.PARSING)
        parsed = parse_source(request.source_text, request.filename)
        source = parsed.source

        session.transition(SessionState.REWRITING)
        mapper = PositionMapper(source)
        pending = self._match_and_rewrite(request, session, parsed.root, source, mapper)

        session.transition(SessionState.GENERATING)
        generation = self.generator.generate(source, [r for r, _ in pending], mapper)
        dropped = {id(r) for r in generation.dropped}
        for replacement, match in pending:
            if id(replacement) in dropped:
                session.record_event(_rewrite_event(match, RewriteOutcome.FAILURE, _DROPPED_REASON))
            else:
                session.record_event(_rewrite_event(match, RewriteOutcome.SUCCESS, applied=True))

        entries = [e for e in mapper.entries if e.finalized]
        source_map = None
        if request.want_source_map:
            source_map = build_source_map(request.filename, source, generation, entries)

        result = TransformResult(
            generated_text=generation.text,
            source_map=source_map,
            dependency_list=tuple(parsed.imports),
        )

        if self.recorder is not None:
            self.recorder.complete_session(
                session,
                original_text=request.source_text,
                generated_text=result.generated_text,
                source_map_text=source_map,
                mappings=[TraceMapping(e.original, e.generated, e.name) for e in entries],
            )
        else:
            session.transition(SessionState.RECORDED)

        failures = sum(1 for e in session.events if not e.success)
        logger.info(
            "Transformed %s (%s): %d rewrite(s), %d failure(s) in %.1fms",
            request.filename,
            request.target_mode.value,
            len(pending) - len(dropped),
            failures,
            session.duration_ms,
        )
        return result

    def _match_and_rewrite(
        self,
        request: TransformRequest,
        session: TransformSession,
        root,
        source: bytes,
        mapper: PositionMapper,
    ) -> List[Tuple[Replacement, PatternMatch]]:
        """One rewrite step per matched node; nothing is mutated here."""
        production = request.target_mode == TargetMode.PRODUCTION
        pending: List[Tuple[Replacement, PatternMatch]] = []

        for match in self.matcher.iter_matches(root, source):
            if not match.matched:
                if production:
                    logger.warning(
                        "%s:%s unsupported construct: %s",
                        request.filename,
                        match.location,
                        match.unsupported_reason,
                    )
                    session.record_event(
                        _rewrite_event(match, RewriteOutcome.FAILURE, match.unsupported_reason)
                    )
                continue

            if not production:
                # Preview of what a production build would rewrite
                session.record_event(_rewrite_event(match, RewriteOutcome.SUCCESS))
                continue

            try:
                replacement = self.rewriter.rewrite(match, source)
            except RewriteError as e:
                logger.warning("%s:%s %s", request.filename, match.location, e.message)
                session.record_event(_rewrite_event(match, RewriteOutcome.FAILURE, e.message))
                continue

            mapper.record(match.node.start_byte, match.web_construct, match.platform_construct)
            pending.append((replacement, match))
        return pending


def create_transformer(
    registry: Optional[MappingRegistry] = None,
    recorder: Optional[DiagnosticRecorder] = None,
    settings=None,
) -> TransformEngine:
    """Engine wired with the built-in registry and a recorder from settings."""
    if settings is None:
        from ...setting import get_settings

        settings = get_settings()

    if recorder is None:
        diag = settings.diagnostics
        recorder = DiagnosticRecorder(
            debug_capacity=diag.debug_capacity,
            trace_capacity=diag.trace_capacity,
            enable_traces=diag.enable_traces,
            enable_error_details=diag.enable_error_details,
            performance_window_seconds=diag.performance_window_seconds,
            statistics_window_seconds=diag.statistics_window_seconds,
        )
    return TransformEngine(
        registry if registry is not None else create_default_registry(),
        recorder=recorder,
        api_base_path=settings.transform.api_base_path,
        default_target_mode=settings.transform.target_mode,
    )
