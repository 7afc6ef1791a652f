"""Base interface for language-specific AST parsers.

Defines the Strategy pattern base class that all language parsers implement.
Shared parsing logic lives here; grammar selection is delegated.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import tree_sitter

from ..errors import ParseFailure
from .models import ParsedSource, SyntaxIssue
from .utils import iter_nodes, literal_string_value, node_text

logger = logging.getLogger(__name__)

# Longest snippet attached to a ParseFailure
_SNIPPET_MAX_CHARS = 120


class BaseLanguageParser(ABC):
    """Abstract base for tree-sitter parsers of the JavaScript family.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'javascript', 'tsx')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    def extract_imports(self, tree: tree_sitter.Tree, source: bytes) -> List[str]:
        """Extract module specifiers the source unit depends on.

        Covers static ``import``/``export ... from`` statements at the top
        level and ``require('<module>')`` calls anywhere in the tree.
        Order follows the document; duplicates are dropped.

        Args:
            tree: Parsed tree-sitter tree
            source: Raw source bytes

        Returns:
            List of module specifier strings
        """
        specifiers: List[str] = []

        def _add(spec: Optional[str]) -> None:
            if spec and spec not in specifiers:
                specifiers.append(spec)

        for node in iter_nodes(tree.root_node):
            if node.type in ("import_statement", "export_statement"):
                source_node = node.child_by_field_name("source")
                if source_node is not None:
                    _add(literal_string_value(source_node, source))
            elif node.type == "call_expression":
                callee = node.child_by_field_name("function")
                if callee is None or callee.type != "identifier":
                    continue
                if node_text(callee, source) != "require":
                    continue
                args = node.child_by_field_name("arguments")
                first = _first_argument(args)
                if first is not None:
                    _add(literal_string_value(first, source))
        return specifiers

    def parse_source(self, source_text: str, file_path: str) -> ParsedSource:
        """Parse source code string into a ParsedSource.

        Args:
            source_text: Source code as string
            file_path: File name (for metadata and error reporting)

        Returns:
            ParsedSource holding the tree and its source bytes

        Raises:
            ParseFailure: If tree-sitter reports any ERROR or MISSING node
        """
        source_bytes = source_text.encode("utf-8")
        line_count = source_text.count("\n") + (1 if source_text and not source_text.endswith("\n") else 0)

        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source_bytes)

        if tree.root_node.has_error:
            issues = self.collect_syntax_issues(tree, source_bytes, file_path, max_issues=1)
            first = issues[0] if issues else None
            if first is not None:
                message = (
                    f"Syntax error in {file_path} at line {first.line}, "
                    f"column {first.column} ({first.node_type})"
                )
            else:
                message = f"Syntax error in {file_path}"
            logger.debug(message)
            raise ParseFailure(
                message,
                filename=file_path,
                line=first.line if first else None,
                column=first.column if first else None,
                snippet=first.snippet if first else None,
            )

        imports = self.extract_imports(tree, source_bytes)

        return ParsedSource(
            file_path=file_path,
            language=self.get_language(),
            tree=tree,
            source=source_bytes,
            imports=imports,
            line_count=line_count,
        )

    @staticmethod
    def collect_syntax_issues(
        tree: tree_sitter.Tree, source: bytes, file_path: str, max_issues: int = 10
    ) -> List[SyntaxIssue]:
        """Walk the tree and collect ERROR / MISSING nodes in document order."""
        issues: List[SyntaxIssue] = []
        for node in iter_nodes(tree.root_node):
            if len(issues) >= max_issues:
                break
            if node.type != "ERROR" and not node.is_missing:
                continue
            row = node.start_point[0]
            line_start = source.rfind(b"\n", 0, node.start_byte) + 1
            column = len(source[line_start:node.start_byte].decode("utf-8", errors="replace"))
            line_end = source.find(b"\n", node.start_byte)
            if line_end == -1:
                line_end = len(source)
            snippet = source[line_start:line_end].decode("utf-8", errors="replace")
            issues.append(SyntaxIssue(
                file_path=file_path,
                line=row + 1,
                column=column,
                node_type="MISSING" if node.is_missing else "ERROR",
                snippet=snippet[:_SNIPPET_MAX_CHARS],
            ))
        return issues


def _first_argument(args: Optional[tree_sitter.Node]) -> Optional[tree_sitter.Node]:
    if args is None:
        return None
    for child in args.named_children:
        if child.type != "comment":
            return child
    return None
