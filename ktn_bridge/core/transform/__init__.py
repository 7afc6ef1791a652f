"""Transform engine: pattern matching, rewriting, generation and source maps."""

from .codegen import CodeGenerator, GenerationResult
from .engine import TransformEngine, create_transformer
from .patterns import (
    CallPattern,
    EventRegistrationPattern,
    MatchContext,
    NetworkFetchPattern,
    PatternKind,
    PatternMatch,
    PatternMatcher,
)
from .position_mapper import LineIndex, MappingEntry, PositionMapper
from .rewriter import Hole, Replacement, Rewriter
from .source_map import SourceMapBuilder, build_source_map, decode_vlq, encode_vlq

__all__ = [
    "CallPattern",
    "CodeGenerator",
    "EventRegistrationPattern",
    "GenerationResult",
    "Hole",
    "LineIndex",
    "MappingEntry",
    "MatchContext",
    "NetworkFetchPattern",
    "PatternKind",
    "PatternMatch",
    "PatternMatcher",
    "PositionMapper",
    "Replacement",
    "Rewriter",
    "SourceMapBuilder",
    "TransformEngine",
    "build_source_map",
    "create_transformer",
    "decode_vlq",
    "encode_vlq",
]
