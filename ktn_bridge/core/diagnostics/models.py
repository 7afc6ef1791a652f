"""Data contracts of the diagnostic & trace recorder."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..models import SourceLocation, TargetMode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RewriteOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class RewriteEvent:
    """Outcome of one recognized construct during a transform.

    ``applied`` is False for successful matches that were only previewed
    (development mode) and for every failure.
    """

    kind: str  # "event_registration" | "network_fetch"
    web_construct: str
    platform_construct: Optional[str]
    location: SourceLocation
    outcome: RewriteOutcome
    failure_reason: Optional[str] = None
    method: Optional[str] = None  # HTTP method, network_fetch only
    applied: bool = True

    @property
    def success(self) -> bool:
        return self.outcome == RewriteOutcome.SUCCESS

    @property
    def name(self) -> str:
        return f"{self.web_construct}->{self.platform_construct or '?'}"


@dataclass
class DiagnosticIssue:
    message: str
    severity: Severity
    code: str
    location: Optional[SourceLocation] = None
    suggestions: List[str] = field(default_factory=list)


@dataclass
class DebugInfo:
    """Per-request diagnostic record."""

    filename: str
    target_mode: TargetMode
    event_mappings: List[RewriteEvent] = field(default_factory=list)
    api_mappings: List[RewriteEvent] = field(default_factory=list)
    errors: List[DiagnosticIssue] = field(default_factory=list)
    recorded_at: datetime = field(default_factory=_utcnow)

    @property
    def rewrite_events(self) -> List[RewriteEvent]:
        return sorted(
            self.event_mappings + self.api_mappings,
            key=lambda e: (e.location.line, e.location.column),
        )

    @property
    def failed_events(self) -> List[RewriteEvent]:
        return [e for e in self.rewrite_events if not e.success]


@dataclass(frozen=True)
class TraceMapping:
    original: SourceLocation
    generated: SourceLocation
    name: Optional[str] = None


@dataclass(frozen=True)
class TransformTrace:
    filename: str
    original_text: str
    generated_text: str
    duration_ms: float
    source_map_text: Optional[str] = None
    mappings: Tuple[TraceMapping, ...] = ()
    recorded_at: datetime = field(default_factory=_utcnow)


@dataclass
class RecorderStatistics:
    total_event_mappings: int = 0
    successful_event_mappings: int = 0
    failed_event_mappings: int = 0
    total_api_mappings: int = 0
    successful_api_mappings: int = 0
    failed_api_mappings: int = 0
    total_errors: int = 0
    total_transforms: int = 0
    recent_transforms: int = 0
    average_transform_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
