"""Source Map v3 output.

Mappings are base64 VLQ encoded. The map holds a segment at the start of
every generated line (pointing at the original position the line's first
byte came from) plus one named segment per applied rewrite.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..models import SourceLocation
from .codegen import GenerationResult
from .position_mapper import LineIndex, MappingEntry

logger = logging.getLogger(__name__)

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT  # 32
_VLQ_MASK = _VLQ_CONTINUATION - 1  # 31


def encode_vlq(value: int) -> str:
    """Base64 VLQ encoding of one signed integer."""
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        out.append(_BASE64[digit])
        if not vlq:
            return "".join(out)


def decode_vlq(text: str) -> List[int]:
    """Inverse of :func:`encode_vlq` over a run of concatenated values."""
    values: List[int] = []
    shift = 0
    acc = 0
    for ch in text:
        digit = _BASE64.index(ch)
        acc += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        values.append(-(acc >> 1) if acc & 1 else acc >> 1)
        acc = 0
        shift = 0
    return values


@dataclass(frozen=True)
class Segment:
    generated: SourceLocation
    original: SourceLocation
    name: Optional[str] = None


class SourceMapBuilder:
    """Collects segments for a single-source map and serializes them."""

    def __init__(self, filename: str, source_text: Optional[str] = None, generated_file: Optional[str] = None):
        self.filename = filename
        self.source_text = source_text
        self.generated_file = generated_file or filename
        self._segments: Dict[Tuple[int, int], Segment] = {}

    def add(self, generated: SourceLocation, original: SourceLocation, name: Optional[str] = None) -> None:
        key = (generated.line, generated.column)
        existing = self._segments.get(key)
        # A named segment wins over a plain line-start segment at the same spot
        if existing is not None and existing.name and not name:
            return
        self._segments[key] = Segment(generated, original, name)

    def __len__(self) -> int:
        return len(self._segments)

    def _encode_mappings(self, names: List[str]) -> str:
        name_index = {n: i for i, n in enumerate(names)}
        by_line: Dict[int, List[Segment]] = {}
        for segment in self._segments.values():
            by_line.setdefault(segment.generated.line, []).append(segment)

        last_line = max(by_line) if by_line else 0
        prev_orig_line = prev_orig_col = prev_name = 0
        lines: List[str] = []
        for line in range(1, last_line + 1):
            encoded: List[str] = []
            prev_gen_col = 0
            for segment in sorted(by_line.get(line, []), key=lambda s: s.generated.column):
                orig_line = segment.original.line - 1
                fields = [
                    segment.generated.column - prev_gen_col,
                    0,  # single source
                    orig_line - prev_orig_line,
                    segment.original.column - prev_orig_col,
                ]
                prev_gen_col = segment.generated.column
                prev_orig_line = orig_line
                prev_orig_col = segment.original.column
                if segment.name is not None:
                    idx = name_index[segment.name]
                    fields.append(idx - prev_name)
                    prev_name = idx
                encoded.append("".join(encode_vlq(v) for v in fields))
            lines.append(",".join(encoded))
        return ";".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        names: List[str] = []
        for segment in sorted(self._segments.values(), key=lambda s: (s.generated.line, s.generated.column)):
            if segment.name is not None and segment.name not in names:
                names.append(segment.name)
        return {
            "version": 3,
            "file": self.generated_file,
            "sources": [self.filename],
            "sourcesContent": [self.source_text],
            "names": names,
            "mappings": self._encode_mappings(names),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def build_source_map(
    filename: str,
    source: bytes,
    generation: GenerationResult,
    entries: List[MappingEntry],
) -> str:
    """Assemble the v3 map for one generated unit.

    Columns are UTF-16 code units on both sides.
    """
    builder = SourceMapBuilder(filename, source.decode("utf-8"))
    original_index = LineIndex(source, utf16=True)
    generated_index = LineIndex(generation.output, utf16=True)

    for line_no, start in enumerate(generated_index.line_starts, start=1):
        if start >= len(generation.output):
            break
        if generation.output[start:start + 1] == b"\n":
            continue
        original = original_index.location(generation.original_offset_at(start))
        builder.add(SourceLocation(line_no, 0), original)

    for entry in entries:
        if not entry.finalized:
            continue
        generated_offset = generation.generated_offsets.get(entry.original_offset)
        if generated_offset is None:
            continue
        builder.add(
            generated_index.location(generated_offset),
            original_index.location(entry.original_offset),
            entry.name,
        )

    logger.debug("Source map for %s: %d segment(s)", filename, len(builder))
    return builder.to_json()
