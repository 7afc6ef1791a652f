"""Post-hoc transform validator.

Marker checks are substring heuristics over the original and generated
text. Findings are advisory and never block a transform result.
"""

import logging
import re
from typing import List

from ..constants import (
    EVENT_REGISTRATION_METHOD,
    PLATFORM_API_INVOCATION,
    PLATFORM_EVENT_REGISTRATION,
    PLATFORM_NAMESPACE,
    UNSUPPORTED_WEB_APIS,
)
from ..models import TargetMode
from .models import DiagnosticIssue, Severity

logger = logging.getLogger(__name__)

_EVENT_MARKER = re.compile(re.escape(EVENT_REGISTRATION_METHOD))
_PLATFORM_EVENT_MARKER = re.compile(re.escape(PLATFORM_EVENT_REGISTRATION))
_FETCH_MARKER = re.compile(r"\bfetch\s*\(")
_PLATFORM_API_MARKER = re.compile(re.escape(PLATFORM_API_INVOCATION) + r"\s*\(")


class TransformValidator:
    """Compares original and generated text for expected markers."""

    def validate(
        self,
        original_text: str,
        generated_text: str,
        target_mode: TargetMode = TargetMode.PRODUCTION,
    ) -> List[DiagnosticIssue]:
        issues: List[DiagnosticIssue] = []
        if target_mode == TargetMode.PRODUCTION:
            issues.extend(self._check_markers(original_text, generated_text))
        issues.extend(self._check_unsupported_apis(original_text))
        if issues:
            logger.debug("Validator found %d issue(s)", len(issues))
        return issues

    @staticmethod
    def _check_markers(original_text: str, generated_text: str) -> List[DiagnosticIssue]:
        issues: List[DiagnosticIssue] = []
        original_events = len(_EVENT_MARKER.findall(original_text))
        original_fetches = len(_FETCH_MARKER.findall(original_text))

        if (original_events or original_fetches) and f"{PLATFORM_NAMESPACE}." not in generated_text:
            issues.append(
                DiagnosticIssue(
                    message="Transformed code does not contain kintone API calls",
                    severity=Severity.WARNING,
                    code="NO_PLATFORM_CALLS",
                    suggestions=["Check if web standard APIs are properly mapped to kintone APIs"],
                )
            )

        if original_events and not _PLATFORM_EVENT_MARKER.search(generated_text):
            issues.append(
                DiagnosticIssue(
                    message="Event listeners not properly transformed",
                    severity=Severity.ERROR,
                    code="EVENTS_NOT_TRANSFORMED",
                    suggestions=["Check event mapping configuration"],
                )
            )

        if original_fetches and not _PLATFORM_API_MARKER.search(generated_text):
            issues.append(
                DiagnosticIssue(
                    message="Fetch API calls not properly transformed",
                    severity=Severity.ERROR,
                    code="FETCH_NOT_TRANSFORMED",
                    suggestions=["Check API mapping configuration"],
                )
            )
        return issues

    @staticmethod
    def _check_unsupported_apis(original_text: str) -> List[DiagnosticIssue]:
        issues = []
        for api in UNSUPPORTED_WEB_APIS:
            if api in original_text:
                label = api.rstrip("(")
                issues.append(
                    DiagnosticIssue(
                        message=f"Unsupported API '{label}' found in original code",
                        severity=Severity.WARNING,
                        code="UNSUPPORTED_API",
                        suggestions=[f"Replace '{label}' with web standard alternatives"],
                    )
                )
        return issues
