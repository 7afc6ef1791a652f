"""AST Parser utilities.

Language detection, parser registry, and tree-sitter node helpers.
"""

import os
import re
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional

import tree_sitter

if TYPE_CHECKING:
    from .base import BaseLanguageParser

# Extension → language mapping
SUPPORTED_EXTENSIONS: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

DEFAULT_LANGUAGE = "javascript"


def _javascript_parser() -> "BaseLanguageParser":
    from .javascript_parser import JavaScriptParser
    return JavaScriptParser()


def _typescript_parser() -> "BaseLanguageParser":
    from .typescript_parser import TypeScriptParser
    return TypeScriptParser()


def _tsx_parser() -> "BaseLanguageParser":
    from .typescript_parser import TsxParser
    return TsxParser()


_PARSER_FACTORIES: Dict[str, Callable[[], "BaseLanguageParser"]] = {
    "javascript": _javascript_parser,
    "typescript": _typescript_parser,
    "tsx": _tsx_parser,
}

# Parser registry, lazy-loaded to avoid import overhead
_parser_registry: Dict[str, "BaseLanguageParser"] = {}


def detect_language(file_path: str) -> Optional[str]:
    """Detect the grammar to use from a file extension.

    Args:
        file_path: Path to the source file

    Returns:
        Language identifier string or None if unsupported
    """
    _, ext = os.path.splitext(file_path)
    return SUPPORTED_EXTENSIONS.get(ext.lower())


def get_parser(language: str) -> "BaseLanguageParser":
    """Get a parser instance for the given language.

    Args:
        language: Language identifier (e.g., "typescript")

    Returns:
        Parser instance

    Raises:
        ValueError: If language is not supported
    """
    if language not in _parser_registry:
        factory = _PARSER_FACTORIES.get(language)
        if factory is None:
            raise ValueError(
                f"Unsupported language: {language}. "
                f"Supported: {sorted(_PARSER_FACTORIES)}"
            )
        _parser_registry[language] = factory()
    return _parser_registry[language]


def is_supported_file(file_path: str) -> bool:
    """Check if a file has a supported language extension."""
    return detect_language(file_path) is not None


# =========================================================================
# Node helpers
# =========================================================================

def iter_nodes(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Yield ``root`` and its descendants in document (pre-)order.

    Iterative so deeply nested sources do not hit the recursion limit.
    """
    stack: List[tree_sitter.Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def node_text(node: tree_sitter.Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def argument_nodes(call: tree_sitter.Node) -> List[tree_sitter.Node]:
    """Return the argument expressions of a call_expression, comments excluded."""
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def _unescape(match: "re.Match[str]") -> str:
    esc = match.group(1)
    if esc.startswith("u{"):
        return chr(int(esc[2:-1], 16))
    if esc[0] == "u" and len(esc) == 5:
        return chr(int(esc[1:], 16))
    if esc[0] == "x" and len(esc) == 3:
        return chr(int(esc[1:], 16))
    if esc in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
        return ""  # line continuation
    return _SIMPLE_ESCAPES.get(esc, esc)


def literal_string_value(node: tree_sitter.Node, source: bytes) -> Optional[str]:
    """Return the value of a static string literal node, else ``None``.

    Plain ``'...'``/``"..."`` strings and template literals without
    ``${}`` substitutions count as static; everything else is dynamic.
    """
    if node.type == "string":
        raw = node_text(node, source)
    elif node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.children):
            return None
        raw = node_text(node, source)
    else:
        return None
    if len(raw) < 2:
        return None
    return _ESCAPE_RE.sub(_unescape, raw[1:-1])
