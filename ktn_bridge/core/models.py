"""Request/response contracts of the transform engine.

Value objects shared by the transform pipeline and the diagnostics
layer. Request and result are immutable; one of each per invocation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class TargetMode(str, Enum):
    """Build target. Only production builds substitute platform calls."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: "str | TargetMode") -> "TargetMode":
        if isinstance(value, TargetMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown target mode: {value!r}. "
                f"Expected one of: {', '.join(m.value for m in cls)}"
            ) from None


@dataclass(frozen=True)
class SourceLocation:
    line: int  # 1-based
    column: int  # 0-based, characters

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class TransformRequest:
    """One ``transform()`` invocation."""

    source_text: str
    filename: str = "unknown.js"
    target_mode: TargetMode = TargetMode.PRODUCTION
    want_source_map: bool = False


@dataclass(frozen=True)
class TransformResult:
    """Output of a successful transform."""

    generated_text: str
    source_map: Optional[str] = None  # Source Map v3 JSON
    dependency_list: Tuple[str, ...] = ()

    # Names used by bundler hooks: {code, map}
    @property
    def code(self) -> str:
        return self.generated_text

    @property
    def map(self) -> Optional[str]:
        return self.source_map
