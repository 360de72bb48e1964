"""
Structural Go parsing on top of tree-sitter.

The parser never type-checks anything: it produces a concrete syntax tree and
answers tree-sitter queries against it. Query matches are flattened into an
ordered stream of capture events, which is what the extractors consume.

The underlying tree-sitter parser is stateless between calls, so a single
process-wide instance is shared (see ``default_parser``).
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import tree_sitter_go
from tree_sitter import Language, Node, Parser, Query, QueryCursor, Tree

from ..errors import SourceParseError
from ..models import Import

logger = logging.getLogger(__name__)

GO_LANGUAGE = Language(tree_sitter_go.language())


@dataclass(frozen=True)
class CaptureEvent:
    """One capture from a query match, in source order."""

    name: str
    text: str
    start_byte: int
    end_byte: int


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def code_text(node: Optional[Node]) -> str:
    """Text of ``node`` with every comment inside it replaced by a space."""
    if node is None or node.text is None:
        return ""
    comments: List[Node] = []
    stack = list(node.children)
    while stack:
        child = stack.pop()
        if child.type == "comment":
            comments.append(child)
        else:
            stack.extend(child.children)
    if not comments:
        return node_text(node)

    source = node.text
    pieces: List[bytes] = []
    last = 0
    for comment in sorted(comments, key=lambda c: c.start_byte):
        pieces.append(source[last : comment.start_byte - node.start_byte])
        pieces.append(b" ")
        last = comment.end_byte - node.start_byte
    pieces.append(source[last:])
    return b"".join(pieces).decode("utf-8")


def _first_error_node(node: Node) -> Optional[Node]:
    if node.is_error or node.is_missing:
        return node
    for child in node.children:
        if child.has_error:
            found = _first_error_node(child)
            if found is not None:
                return found
    return None


class GoSourceParser:
    """Parses Go source and runs compiled queries against it."""

    def __init__(self) -> None:
        self._parser = Parser(GO_LANGUAGE)
        self._queries: Dict[str, Query] = {}

    def parse(self, source: bytes, path: Optional[str] = None) -> Tree:
        """
        Parse Go source into a syntax tree.

        Args:
            source: Raw file content
            path: Path used in error messages

        Returns:
            The parsed tree

        Raises:
            SourceParseError: If the source is not valid UTF-8 or contains
                syntax errors
        """
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as e:
            line = source.count(b"\n", 0, e.start) + 1
            raise SourceParseError(f"invalid UTF-8 at byte {e.start}", path=path, line=line) from e
        tree = self._parser.parse(source)
        root = tree.root_node
        if root.has_error:
            bad = _first_error_node(root)
            line = bad.start_point[0] + 1 if bad is not None else None
            raise SourceParseError("syntax error", path=path, line=line)
        return tree

    def query(self, source: str) -> Query:
        """Compile a query once and reuse it for every later call."""
        query = self._queries.get(source)
        if query is None:
            query = Query(GO_LANGUAGE, source)
            self._queries[source] = query
        return query

    def capture_stream(
        self,
        query: Query,
        node: Node,
        capture_order: Sequence[str] = (),
    ) -> List[CaptureEvent]:
        """
        Flatten all matches of ``query`` below ``node`` into source-ordered events.

        Events are ordered by start offset; captures starting at the same offset
        follow ``capture_order``. Comments inside a captured node are
        blanked out of its text. Duplicate captures produced by overlapping
        matches are kept, consumers are expected to tolerate repeats.
        """
        rank = {name: i for i, name in enumerate(capture_order)}
        events: List[CaptureEvent] = []
        for _pattern_index, captures in QueryCursor(query).matches(node):
            for name, nodes in captures.items():
                for captured in nodes:
                    events.append(
                        CaptureEvent(
                            name=name,
                            text=code_text(captured),
                            start_byte=captured.start_byte,
                            end_byte=captured.end_byte,
                        )
                    )
        events.sort(key=lambda e: (e.start_byte, rank.get(e.name, len(rank))))
        return events


@functools.lru_cache(maxsize=None)
def default_parser() -> GoSourceParser:
    """Process-wide parser instance."""
    return GoSourceParser()


def package_clause(tree: Tree) -> Optional[Node]:
    for child in tree.root_node.children:
        if child.type == "package_clause":
            return child
    return None


def package_name(tree: Tree) -> Optional[str]:
    clause = package_clause(tree)
    if clause is None:
        return None
    for child in clause.named_children:
        if child.type == "package_identifier":
            return node_text(child)
    return None


def import_declarations(tree: Tree) -> List[Node]:
    return [c for c in tree.root_node.children if c.type == "import_declaration"]


def import_specs(declaration: Node) -> List[Node]:
    specs: List[Node] = []
    for child in declaration.named_children:
        if child.type == "import_spec":
            specs.append(child)
        elif child.type == "import_spec_list":
            specs.extend(c for c in child.named_children if c.type == "import_spec")
    return specs


def import_from_spec(spec: Node) -> Import:
    alias = node_text(spec.child_by_field_name("name"))
    path = node_text(spec.child_by_field_name("path"))
    # interpreted ("...") or raw (`...`) string literal
    return Import(path=path[1:-1], alias=alias)


def read_imports(tree: Tree) -> List[Import]:
    """All imports declared by a file, in source order."""
    imports: List[Import] = []
    for declaration in import_declarations(tree):
        imports.extend(import_from_spec(spec) for spec in import_specs(declaration))
    return imports
