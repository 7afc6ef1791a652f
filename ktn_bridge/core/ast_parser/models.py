"""AST Parser data models.

Defines the data structures handed from the parser to the transform
engine. These are pure data containers with no parsing logic.
"""

from dataclasses import dataclass, field
from typing import List

import tree_sitter


@dataclass
class SyntaxIssue:
    """A syntax problem reported by tree-sitter."""

    file_path: str
    line: int  # 1-based
    column: int  # 0-based, characters
    node_type: str  # "ERROR" | "MISSING"
    snippet: str = ""


@dataclass
class ParsedSource:
    """Complete parse output for a single source unit.

    Holds the live tree-sitter tree together with the exact source bytes
    it was parsed from; byte offsets on tree nodes index into ``source``.
    """

    file_path: str
    language: str  # "javascript" | "typescript" | "tsx"
    tree: tree_sitter.Tree
    source: bytes
    imports: List[str] = field(default_factory=list)  # Module specifiers, document order
    line_count: int = 0

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node
