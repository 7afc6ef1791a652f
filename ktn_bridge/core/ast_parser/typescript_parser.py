"""TypeScript AST parsers using tree-sitter.

The typescript package ships two grammars: plain TypeScript, and TSX
which additionally accepts JSX but rejects ``<T>expr`` type assertions.
"""

import logging

import tree_sitter
import tree_sitter_typescript

from .base import BaseLanguageParser

logger = logging.getLogger(__name__)

_TS_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())
_TSX_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_tsx())


class TypeScriptParser(BaseLanguageParser):
    """tree-sitter based TypeScript parser."""

    def get_language(self) -> str:
        return "typescript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TS_LANGUAGE


class TsxParser(BaseLanguageParser):
    """tree-sitter based TSX parser."""

    def get_language(self) -> str:
        return "tsx"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TSX_LANGUAGE
