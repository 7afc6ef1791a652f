"""Code generation: splices replacements into the original source.

The output is assembled from verbatim byte ranges of the input and the
literal text of each replacement. Holes are rendered by recursing into
the original range they cover, so a match nested inside a hole (a
``fetch`` inside a rewritten listener) is applied as well. A nested
replacement that falls outside every hole of its enclosing replacement
cannot be emitted; it is reported back as dropped.
"""

import bisect
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import SourceLocation
from .position_mapper import LineIndex, PositionMapper
from .rewriter import Hole, Replacement

logger = logging.getLogger(__name__)


@dataclass
class OutputChunk:
    """A contiguous run of generated bytes and where it came from."""

    generated_start: int
    generated_end: int
    original_start: int
    verbatim: bool  # Copied from the input unchanged


@dataclass
class GenerationResult:
    text: str
    output: bytes
    chunks: List[OutputChunk] = field(default_factory=list)
    applied: List[Replacement] = field(default_factory=list)
    dropped: List[Replacement] = field(default_factory=list)
    generated_offsets: Dict[int, int] = field(default_factory=dict)  # original → generated start

    def original_offset_at(self, generated_offset: int) -> int:
        """Map a generated byte offset back to an original byte offset."""
        if not self.chunks:
            return generated_offset
        starts = [c.generated_start for c in self.chunks]
        idx = max(0, bisect.bisect_right(starts, generated_offset) - 1)
        chunk = self.chunks[idx]
        if chunk.verbatim:
            return chunk.original_start + (generated_offset - chunk.generated_start)
        return chunk.original_start

    def generated_location(self, original_start: int) -> Optional[SourceLocation]:
        offset = self.generated_offsets.get(original_start)
        if offset is None:
            return None
        return LineIndex(self.output).location(offset)


class _Emitter:
    def __init__(self, source: bytes):
        self.source = source
        self.buf = bytearray()
        self.chunks: List[OutputChunk] = []

    def copy(self, start: int, end: int) -> None:
        if start >= end:
            return
        gen_start = len(self.buf)
        self.buf += self.source[start:end]
        self.chunks.append(OutputChunk(gen_start, len(self.buf), start, verbatim=True))

    def write(self, text: str, original_start: int) -> None:
        if not text:
            return
        gen_start = len(self.buf)
        self.buf += text.encode("utf-8")
        self.chunks.append(OutputChunk(gen_start, len(self.buf), original_start, verbatim=False))


class CodeGenerator:
    """Renders ``source`` with ``replacements`` applied."""

    def generate(
        self,
        source: bytes,
        replacements: List[Replacement],
        mapper: Optional[PositionMapper] = None,
    ) -> GenerationResult:
        ordered = sorted(replacements, key=lambda r: (r.start, -r.end))
        emitter = _Emitter(source)
        result = GenerationResult(text="", output=b"")

        self._emit_range(0, len(source), ordered, emitter, result)

        result.output = bytes(emitter.buf)
        result.text = result.output.decode("utf-8")
        result.chunks = emitter.chunks

        if mapper is not None:
            index = LineIndex(result.output)
            for replacement in result.applied:
                offset = result.generated_offsets[replacement.start]
                mapper.finalize(replacement.start, index.location(offset))
            for replacement in result.dropped:
                mapper.discard(replacement.start)

        if result.dropped:
            logger.warning(
                "%d nested rewrite(s) could not be emitted: %s",
                len(result.dropped),
                ", ".join(r.name for r in result.dropped),
            )
        return result

    def _emit_range(
        self,
        start: int,
        end: int,
        candidates: List[Replacement],
        emitter: _Emitter,
        result: GenerationResult,
    ) -> None:
        pos = start
        i = 0
        while i < len(candidates):
            current = candidates[i]
            nested: List[Replacement] = []
            j = i + 1
            while j < len(candidates) and candidates[j].start < current.end:
                nested.append(candidates[j])
                j += 1
            i = j

            emitter.copy(pos, current.start)
            self._emit_replacement(current, nested, emitter, result)
            pos = current.end
        emitter.copy(pos, end)

    def _emit_replacement(
        self,
        replacement: Replacement,
        nested: List[Replacement],
        emitter: _Emitter,
        result: GenerationResult,
    ) -> None:
        result.generated_offsets[replacement.start] = len(emitter.buf)
        result.applied.append(replacement)

        placed = set()
        for part in replacement.parts:
            if isinstance(part, Hole):
                lo, hi = part.node.start_byte, part.node.end_byte
                inner = [n for n in nested if lo <= n.start and n.end <= hi]
                placed.update(id(n) for n in inner)
                self._emit_range(lo, hi, inner, emitter, result)
            else:
                emitter.write(part, replacement.start)

        for n in nested:
            if id(n) not in placed:
                result.dropped.append(n)
