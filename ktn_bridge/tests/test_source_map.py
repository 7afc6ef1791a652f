"""Tests for position mapping, code generation and Source Map v3 output."""

import json

import pytest

from ktn_bridge.core.mappings import create_default_registry
from ktn_bridge.core.models import SourceLocation
from ktn_bridge.core.transform import (
    LineIndex,
    PositionMapper,
    SourceMapBuilder,
    TransformEngine,
    decode_vlq,
    encode_vlq,
)


TWO_LINES = "const a = 1;\ndocument.addEventListener('DOMContentLoaded', handler);\n"


# =========================================================================
# Tests: VLQ
# =========================================================================

class TestVlq:
    @pytest.mark.parametrize(
        "value, encoded",
        [(0, "A"), (1, "C"), (-1, "D"), (15, "e"), (16, "gB"), (-17, "jB"), (1000, "w+B")],
    )
    def test_encode(self, value, encoded):
        assert encode_vlq(value) == encoded

    def test_decode_run(self):
        assert decode_vlq("AACAA") == [0, 0, 1, 0, 0]
        assert decode_vlq("gBjB") == [16, -17]


# =========================================================================
# Tests: Line index and position mapper
# =========================================================================

class TestLineIndex:
    def test_lines_are_one_based(self):
        index = LineIndex(b"ab\ncd")
        assert index.location(0) == SourceLocation(1, 0)
        assert index.location(4) == SourceLocation(2, 1)
        assert index.line_count == 2

    def test_columns_count_characters(self):
        index = LineIndex("xé=1".encode("utf-8"))
        assert index.location(3) == SourceLocation(1, 2)

    def test_utf16_columns_count_code_units(self):
        data = "x😀=1".encode("utf-8")
        assert LineIndex(data).location(5) == SourceLocation(1, 2)
        assert LineIndex(data, utf16=True).location(5) == SourceLocation(1, 3)

    def test_offset_clamped(self):
        assert LineIndex(b"ab").location(99) == SourceLocation(1, 2)


class TestPositionMapper:
    def test_entries_finalized_in_source_order(self):
        mapper = PositionMapper(b"a;\nb;\n")
        mapper.record(3, "submit", "app.record.edit.submit")
        mapper.record(0, "DOMContentLoaded", "app.record.index.show")
        assert [e.original_offset for e in mapper.entries] == [0, 3]
        assert not any(e.finalized for e in mapper.entries)

        entry = mapper.finalize(3, SourceLocation(5, 2))
        assert entry.finalized
        assert entry.original == SourceLocation(2, 0)
        assert entry.generated == SourceLocation(5, 2)
        assert mapper.name_at(3) == "submit->app.record.edit.submit"

    def test_discard(self):
        mapper = PositionMapper(b"x")
        mapper.record(0, "a", "b")
        mapper.discard(0)
        assert mapper.entries == []
        assert mapper.finalize(0, SourceLocation(1, 0)) is None


# =========================================================================
# Tests: Source map output
# =========================================================================

class TestSourceMap:
    def setup_method(self):
        self.engine = TransformEngine(create_default_registry())

    def test_exact_mappings(self):
        result = self.engine.transform(TWO_LINES, filename="app.js", want_source_map=True)
        source_map = json.loads(result.source_map)
        assert source_map["file"] == "app.js"
        assert source_map["names"] == ["DOMContentLoaded->app.record.index.show"]
        assert source_map["mappings"] == "AAAA;AACAA;AAAA;AAAA;AAAA"

    def test_rewritten_lines_point_at_the_call(self):
        result = self.engine.transform(TWO_LINES, filename="app.js", want_source_map=True)
        lines = json.loads(result.source_map)["mappings"].split(";")
        assert len(lines) == len(result.generated_text.rstrip("\n").split("\n"))
        orig_line = 0
        for line in lines:
            fields = decode_vlq(line)
            orig_line += fields[2]
        assert orig_line == 1  # zero-based: every rewritten line maps to source line 2

    def test_identity_in_development(self):
        result = self.engine.transform(
            TWO_LINES, filename="app.js", target_mode="development", want_source_map=True
        )
        source_map = json.loads(result.source_map)
        assert source_map["names"] == []
        assert source_map["mappings"] == "AAAA;AACA"

    def test_columns_are_utf16_code_units(self):
        source = "const s = '😀'; document.addEventListener('DOMContentLoaded', h);\n"
        result = self.engine.transform(source, filename="emoji.js", want_source_map=True)
        first_line = json.loads(result.source_map)["mappings"].split(";")[0]
        line_start, named = first_line.split(",")
        assert decode_vlq(line_start) == [0, 0, 0, 0]
        assert decode_vlq(named) == [16, 0, 0, 16, 0]

    def test_nested_rewrites_are_named(self):
        source = (
            "document.querySelector('[data-page=\"record-detail\"]')"
            ".addEventListener('DOMContentLoaded', async () => {\n"
            "  await fetch('/api/record?app=1&id=5');\n"
            "});\n"
        )
        result = self.engine.transform(source, filename="detail.js", want_source_map=True)
        assert json.loads(result.source_map)["names"] == [
            "DOMContentLoaded->app.record.detail.show",
            "/api/record?app=1&id=5->/k/v1/record.json",
        ]


class TestSourceMapBuilder:
    def test_named_segment_wins(self):
        builder = SourceMapBuilder("a.js", "x")
        builder.add(SourceLocation(1, 0), SourceLocation(1, 0), "x->y")
        builder.add(SourceLocation(1, 0), SourceLocation(1, 0))
        assert len(builder) == 1
        assert builder.to_dict()["mappings"] == "AAAAA"

    def test_empty_lines_are_empty_groups(self):
        builder = SourceMapBuilder("a.js")
        builder.add(SourceLocation(1, 0), SourceLocation(1, 0))
        builder.add(SourceLocation(3, 4), SourceLocation(2, 0))
        assert builder.to_dict()["mappings"] == "AAAA;;IACA"
