"""ktn-bridge AST Parser: tree-sitter based parsing of JS/TS sources.

Public API:
    parse_source(source, file_path, language) → ParsedSource
    detect_language(file_path) → str | None
"""

from .models import ParsedSource, SyntaxIssue
from .utils import (
    DEFAULT_LANGUAGE,
    SUPPORTED_EXTENSIONS,
    argument_nodes,
    detect_language,
    get_parser,
    is_supported_file,
    iter_nodes,
    literal_string_value,
    node_text,
)

__all__ = [
    "parse_source",
    "detect_language",
    "get_parser",
    "is_supported_file",
    "iter_nodes",
    "node_text",
    "argument_nodes",
    "literal_string_value",
    "ParsedSource",
    "SyntaxIssue",
    "SUPPORTED_EXTENSIONS",
]


def parse_source(source_text: str, file_path: str, language: str | None = None) -> ParsedSource:
    """Parse source code string into a tree plus its dependency list.

    Args:
        source_text: Source code as string
        file_path: File name (for grammar detection and error reporting)
        language: Language identifier. If None, detected from file_path,
            falling back to javascript for unknown extensions.

    Returns:
        ParsedSource holding the tree-sitter tree

    Raises:
        ParseFailure: On malformed input
    """
    if language is None:
        language = detect_language(file_path) or DEFAULT_LANGUAGE
    return get_parser(language).parse_source(source_text, file_path)
