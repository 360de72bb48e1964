"""
Merging generated declarations into implementation files.

The existing file is treated as text: everything up to the package clause
line and everything after the import section is forwarded byte for byte. When
new imports are needed the import section is rebuilt as one normalised block
holding the existing and the required imports; otherwise it is kept as is. New
declarations are appended at the end, so re-running with nothing new
reproduces the same text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from ..diff import compute_missing_methods
from ..errors import SourceParseError
from ..models import Import, ImplementationRecord, Method
from ..parsing.go_parser import (
    GoSourceParser,
    default_parser,
    import_declarations,
    import_from_spec,
    import_specs,
    node_text,
    package_clause,
)
from ..resolver import ImportResolver
from .renderers import render_dependency_block, render_method_stub

logger = logging.getLogger(__name__)

FILE_PREAMBLE = (
    "// This file will be automatically regenerated based on the API. Any repository implementations\n"
    "// will be copied through when generating and new methods will be added to the end.\n"
)

FX_IMPORT = Import(path="go.uber.org/fx")
CONTEXT_IMPORT = Import(path="context")
OTEL_IMPORT = Import(path="go.opentelemetry.io/otel")
OTEL_CODES_IMPORT = Import(path="go.opentelemetry.io/otel/codes")
ERIS_IMPORT = Import(path="github.com/rotisserie/eris")


@dataclass
class ImportLine:
    """An import spec with the comment trailing it on the same line."""

    imp: Import
    comment: str = ""


@dataclass
class FileLayout:
    """An existing Go file cut around its import section."""

    head: str
    tail: str
    imports: List[ImportLine] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)
    has_import_section: bool = False

    @property
    def existing_imports(self) -> List[Import]:
        return [line.imp for line in self.imports]


@dataclass
class MergeResult:
    path: str
    text: str
    created: bool
    new_types: int = 0
    new_methods: int = 0
    original: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.original != self.text


def is_stdlib(path: str) -> bool:
    return "." not in path.split("/", 1)[0]


def references(types: str, name: str) -> bool:
    """Whether ``name.`` is used as a package qualifier in ``types``."""
    if not name or name in ("_", "."):
        return False
    return re.search(rf"(?:(?<![\w.])|(?<=\.\.\.)){re.escape(name)}\.", types) is not None


def is_local(path: str, local_prefix: str) -> bool:
    return bool(local_prefix) and (path == local_prefix or path.startswith(local_prefix + "/"))


def render_import_block(
    lines: Sequence[ImportLine],
    comments: Sequence[str] = (),
    local_prefix: str = "",
) -> str:
    """
    Render imports as one parenthesised block.

    Groups are standard library, third party, then packages of the local
    module (``local_prefix``), each sorted by path. Standalone comments open
    the block.
    """
    unique: Dict[Tuple[str, str], ImportLine] = {}
    for line in lines:
        key = (line.imp.path, line.imp.alias)
        if key not in unique or (line.comment and not unique[key].comment):
            unique[key] = line

    def order(line: ImportLine) -> Tuple[str, str]:
        return (line.imp.path, line.imp.alias)

    local = sorted((l for l in unique.values() if is_local(l.imp.path, local_prefix)), key=order)
    rest = [l for l in unique.values() if not is_local(l.imp.path, local_prefix)]
    std = sorted((l for l in rest if is_stdlib(l.imp.path)), key=order)
    other = sorted((l for l in rest if not is_stdlib(l.imp.path)), key=order)

    body = [f"\t{comment}" for comment in comments]
    for i, group in enumerate(g for g in (std, other, local) if g):
        if i:
            body.append("")
        for line in group:
            rendered = f"\t{line.imp.render()}"
            if line.comment:
                rendered += f" {line.comment}"
            body.append(rendered)
    return "import (\n" + "\n".join(body) + "\n)"


def _section_comments(root: Node, declarations: Sequence[Node], start: int, end: int) -> List[Node]:
    comments = [
        c for c in root.children if c.type == "comment" and start <= c.start_byte < end
    ]
    stack = list(declarations)
    while stack:
        node = stack.pop()
        for child in node.children:
            if child.type == "comment":
                comments.append(child)
            else:
                stack.append(child)
    return sorted(comments, key=lambda c: c.start_byte)


def split_layout(parser: GoSourceParser, source: bytes, path: Optional[str] = None) -> FileLayout:
    """
    Cut an existing Go file into head, import section and tail.

    Raises:
        SourceParseError: If the file does not parse or has no package clause
    """
    tree = parser.parse(source, path)
    clause = package_clause(tree)
    if clause is None:
        raise SourceParseError("no package clause", path=path)
    newline = source.find(b"\n", clause.end_byte)
    head_end = len(source) if newline == -1 else newline + 1
    head = source[:head_end].decode("utf-8")

    declarations = import_declarations(tree)
    if not declarations:
        return FileLayout(head=head, tail=source[head_end:].decode("utf-8"))

    section_end = declarations[-1].end_byte
    for child in tree.root_node.children:
        if head_end <= child.start_byte < section_end and child.type not in (
            "import_declaration",
            "comment",
        ):
            raise SourceParseError(
                f"unexpected {child.type} between imports",
                path=path,
                line=child.start_point[0] + 1,
            )

    specs = [spec for declaration in declarations for spec in import_specs(declaration)]
    lines = [ImportLine(imp=import_from_spec(spec)) for spec in specs]
    standalone: List[str] = []
    for comment in _section_comments(tree.root_node, declarations, head_end, section_end):
        text = node_text(comment)
        owner = None
        for i, spec in enumerate(specs):
            if spec.end_point[0] == comment.start_point[0] and spec.end_byte <= comment.start_byte:
                owner = i
        if owner is None:
            standalone.append(text)
        else:
            lines[owner].comment = f"{lines[owner].comment} {text}".strip()

    return FileLayout(
        head=head,
        tail=source[section_end:].decode("utf-8"),
        imports=lines,
        comments=standalone,
        has_import_section=True,
    )


def _types_of(method: Method) -> str:
    return " ".join(p.type for p in list(method.parameters) + list(method.returns))


class ImplementationFileMerger:
    """Produces the full text of an implementation file for a set of records."""

    def __init__(self, resolver: ImportResolver, parser: Optional[GoSourceParser] = None):
        self.resolver = resolver
        self.parser = parser or default_parser()

    def merge(
        self,
        path: str,
        source: Optional[bytes],
        records: Sequence[ImplementationRecord],
    ) -> MergeResult:
        """
        Merge new declarations for ``records`` into a file.

        Args:
            path: File path relative to the project root (for messages)
            source: Current content, or None if the file does not exist
            records: Records whose implementation lives in this file

        Returns:
            The complete new text of the file and what was added
        """
        if source is not None:
            layout = split_layout(self.parser, source, path)
            original: Optional[str] = source.decode("utf-8")
        else:
            package = records[0].package_name if records else ""
            layout = FileLayout(head=f"{FILE_PREAMBLE}package {package}\n", tail="")
            original = None

        known: List[Import] = layout.existing_imports
        required: List[Import] = []
        planned: List[Tuple[ImplementationRecord, str, List[Method]]] = []

        for record in records:
            contract = record.contract
            contract_import = self.resolver.resolve(
                contract.package_path, contract.package_name, known
            )
            if all(imp.path != contract_import.path for imp in known):
                known.append(contract_import)
            qualifier = contract_import.reference_name
            missing = compute_missing_methods(contract, record, qualifier)
            planned.append((record, qualifier, missing))

            if record.is_new_type:
                required += [FX_IMPORT, contract_import]
            for method in missing:
                types = _types_of(method)
                if references(types, qualifier):
                    required.append(contract_import)
                if method.has_context:
                    required += [CONTEXT_IMPORT, OTEL_IMPORT]
                    if method.returns_error:
                        required.append(OTEL_CODES_IMPORT)
                if method.returns_error:
                    required.append(ERIS_IMPORT)
                for imp in contract.imports:
                    if imp.path != contract_import.path and references(types, imp.reference_name):
                        required.append(imp)

        existing_paths = {imp.path for imp in layout.existing_imports}
        new_imports: List[Import] = []
        for imp in required:
            if imp.path in existing_paths:
                continue
            existing_paths.add(imp.path)
            new_imports.append(imp)

        lines = layout.imports + [ImportLine(imp=imp) for imp in new_imports]
        if original is not None and not new_imports:
            text = original
        elif lines:
            block = render_import_block(
                lines, layout.comments, self.resolver.module_root.module.path
            )
            tail = layout.tail if layout.has_import_section else "\n" + layout.tail
            text = layout.head + "\n" + block + tail
        else:
            text = layout.head + layout.tail

        new_types = 0
        new_methods = 0
        appended: List[str] = []
        for record, qualifier, _missing in planned:
            if record.is_new_type:
                appended.append(render_dependency_block(record.contract, qualifier))
                new_types += 1
        for record, _qualifier, missing in planned:
            for method in missing:
                appended.append(render_method_stub(record.contract, method))
                new_methods += 1

        if appended:
            if not text.endswith("\n"):
                text += "\n"
            text += "".join("\n" + block for block in appended)

        logger.debug(
            f"Merged {path}: {len(new_imports)} new import(s), "
            f"{new_types} new type(s), {new_methods} new method(s)"
        )
        return MergeResult(
            path=path,
            text=text,
            created=source is None,
            new_types=new_types,
            new_methods=new_methods,
            original=original,
        )
