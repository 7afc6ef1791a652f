"""Position mapping between original and generated source.

The mapper records one entry per successful rewrite while the matcher
walks the tree. At that point the generated position is provisional (it
equals the original one); the code generator finalizes it once the
output text exists and real offsets are known.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import SourceLocation

logger = logging.getLogger(__name__)


class LineIndex:
    """Byte offset → (line, column) lookup for a UTF-8 buffer.

    Columns count characters by default. With ``utf16=True`` they count
    UTF-16 code units, which is what Source Map v3 consumers expect.
    """

    def __init__(self, data: bytes, utf16: bool = False):
        self._data = data
        self._utf16 = utf16
        self._line_starts: List[int] = [0]
        pos = data.find(b"\n")
        while pos != -1:
            self._line_starts.append(pos + 1)
            pos = data.find(b"\n", pos + 1)

    def location(self, offset: int) -> SourceLocation:
        offset = max(0, min(offset, len(self._data)))
        line_idx = bisect.bisect_right(self._line_starts, offset) - 1
        start = self._line_starts[line_idx]
        segment = self._data[start:offset].decode("utf-8", errors="replace")
        if self._utf16:
            column = len(segment.encode("utf-16-le")) // 2
        else:
            column = len(segment)
        return SourceLocation(line=line_idx + 1, column=column)

    @property
    def line_starts(self) -> List[int]:
        return list(self._line_starts)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)


@dataclass
class MappingEntry:
    """One original → generated correspondence, named after the rewrite."""

    original: SourceLocation
    generated: SourceLocation
    name: str  # "<webConstruct>-><platformConstruct>"
    original_offset: int  # Byte offset of the rewritten node in the source
    finalized: bool = False


class PositionMapper:
    """Accumulates mapping entries for one transform request.

    Performs no I/O. Entries are keyed by the byte offset of the rewritten
    node, which is unique because at most one rewrite starts per node.
    """

    def __init__(self, source: bytes):
        self._index = LineIndex(source)
        self._entries: Dict[int, MappingEntry] = {}

    @property
    def line_index(self) -> LineIndex:
        return self._index

    def record(self, original_offset: int, web_construct: str, platform_construct: str) -> MappingEntry:
        location = self._index.location(original_offset)
        entry = MappingEntry(
            original=location,
            generated=location,
            name=f"{web_construct}->{platform_construct}",
            original_offset=original_offset,
        )
        self._entries[original_offset] = entry
        return entry

    def discard(self, original_offset: int) -> None:
        """Forget an entry whose rewrite never made it into the output."""
        self._entries.pop(original_offset, None)

    def finalize(self, original_offset: int, generated: SourceLocation) -> Optional[MappingEntry]:
        entry = self._entries.get(original_offset)
        if entry is None:
            return None
        entry.generated = generated
        entry.finalized = True
        return entry

    def name_at(self, original_offset: int) -> Optional[str]:
        entry = self._entries.get(original_offset)
        return entry.name if entry else None

    @property
    def entries(self) -> List[MappingEntry]:
        return sorted(self._entries.values(), key=lambda e: e.original_offset)
