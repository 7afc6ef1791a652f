"""Tests for the AST parser module."""

import pytest

from ktn_bridge.core.ast_parser import (
    ParsedSource,
    argument_nodes,
    detect_language,
    is_supported_file,
    iter_nodes,
    literal_string_value,
    parse_source,
)
from ktn_bridge.core.errors import ErrorType, ParseFailure


# =========================================================================
# Sample source fixtures
# =========================================================================

MODULE_WITH_IMPORTS = """\
import { formatDate } from './utils/date';
import axios from "axios";
export { Chart } from './chart';
const config = require('./config');
import './styles.css';
const again = require('./config');

document.addEventListener('DOMContentLoaded', () => formatDate(config.now));
"""

TYPESCRIPT_SOURCE = """\
interface RecordRow {
  id: number;
  title: string;
}

async function load(app: number): Promise<RecordRow[]> {
  const res = await fetch(`/api/records?app=${app}`);
  return (await res.json()) as RecordRow[];
}
"""

TSX_SOURCE = """\
const Title = ({ text }: { text: string }) => <h1>{text}</h1>;
export default Title;
"""

UNBALANCED_BRACES = """\
document.addEventListener('DOMContentLoaded', () => {
  init();
"""

STRING_LITERALS = "f('it\\'s', `plain`, `with ${x}`, name);\n"


# =========================================================================
# Tests: Language detection
# =========================================================================

class TestLanguageDetection:
    def test_javascript_family(self):
        assert detect_language("src/app.js") == "javascript"
        assert detect_language("src/app.jsx") == "javascript"
        assert detect_language("src/app.mjs") == "javascript"

    def test_typescript_family(self):
        assert detect_language("src/app.ts") == "typescript"
        assert detect_language("src/app.mts") == "typescript"
        assert detect_language("src/App.tsx") == "tsx"

    def test_case_insensitive(self):
        assert detect_language("APP.JS") == "javascript"

    def test_unknown(self):
        assert detect_language("main.py") is None
        assert not is_supported_file("README.md")


# =========================================================================
# Tests: Parsing
# =========================================================================

class TestParsing:
    def test_parse_javascript(self):
        result = parse_source(MODULE_WITH_IMPORTS, "app.js")
        assert isinstance(result, ParsedSource)
        assert result.language == "javascript"
        assert result.line_count == 8
        assert result.root.type == "program"

    def test_parse_typescript(self):
        result = parse_source(TYPESCRIPT_SOURCE, "records.ts")
        assert result.language == "typescript"
        assert not result.root.has_error

    def test_parse_tsx(self):
        result = parse_source(TSX_SOURCE, "Title.tsx")
        assert result.language == "tsx"
        assert not result.root.has_error

    def test_unknown_extension_falls_back_to_javascript(self):
        result = parse_source("const a = 1;\n", "inline-script")
        assert result.language == "javascript"

    def test_source_bytes_kept(self):
        result = parse_source("const s = 'héllo';\n", "app.js")
        assert result.source == "const s = 'héllo';\n".encode("utf-8")


class TestDependencies:
    def test_imports_exports_and_requires_in_order(self):
        result = parse_source(MODULE_WITH_IMPORTS, "app.js")
        assert result.imports == [
            "./utils/date",
            "axios",
            "./chart",
            "./config",
            "./styles.css",
        ]

    def test_no_dependencies(self):
        result = parse_source("const a = 1;\n", "app.js")
        assert result.imports == []

    def test_dynamic_require_ignored(self):
        result = parse_source("const m = require(name);\n", "app.js")
        assert result.imports == []


class TestParseFailure:
    def test_unbalanced_braces(self):
        with pytest.raises(ParseFailure) as exc_info:
            parse_source(UNBALANCED_BRACES, "broken.js")
        error = exc_info.value
        assert error.error_type == ErrorType.PARSE_FAILURE
        assert error.context.filename == "broken.js"
        assert error.line is not None and error.line >= 1
        assert error.column is not None and error.column >= 0
        assert error.is_user_error

    def test_failure_message_names_file(self):
        with pytest.raises(ParseFailure) as exc_info:
            parse_source("function (", "oops.js")
        assert "oops.js" in str(exc_info.value)


# =========================================================================
# Tests: Node helpers
# =========================================================================

class TestNodeHelpers:
    def _call(self, source: str):
        parsed = parse_source(source, "app.js")
        call = next(n for n in iter_nodes(parsed.root) if n.type == "call_expression")
        return call, parsed.source

    def test_literal_values(self):
        call, source = self._call(STRING_LITERALS)
        args = argument_nodes(call)
        assert len(args) == 4
        assert literal_string_value(args[0], source) == "it's"
        assert literal_string_value(args[1], source) == "plain"
        assert literal_string_value(args[2], source) is None
        assert literal_string_value(args[3], source) is None

    def test_argument_nodes_skip_comments(self):
        call, _ = self._call("f(/* first */ a, b);\n")
        assert [n.type for n in argument_nodes(call)] == ["identifier", "identifier"]

    def test_iter_nodes_document_order(self):
        parsed = parse_source("a(); b(); c();\n", "app.js")
        names = [
            parsed.source[n.start_byte:n.end_byte].decode()
            for n in iter_nodes(parsed.root)
            if n.type == "identifier"
        ]
        assert names == ["a", "b", "c"]
