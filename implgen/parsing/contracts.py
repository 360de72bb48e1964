"""
Contract extraction from Go definition files.

A contract is an interface type whose name ends in ``Repository``. The
tree-sitter query below yields one match per interface header and one match
per method element; the matches are flattened into a source-ordered stream of
capture events and regrouped into contracts and methods by
``reduce_capture_stream``.

Example:
    >>> extractor = ContractExtractor()
    >>> contracts = extractor.extract(b"package api\\n type Repository interface { A() error }")
    >>> contracts[0].methods[0].returns
    [Parameter(identifier='', type='error')]
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ..errors import GenerationError, NoPackageDeclarationError, ParameterListError
from ..models import CONTRACT_SUFFIX, Contract, Method, Parameter
from .go_parser import CaptureEvent, GoSourceParser, default_parser, read_imports

logger = logging.getLogger(__name__)

PACKAGE_CAPTURE = "package"
CONTRACT_CAPTURE = "contract"
METHOD_CAPTURE = "method"
PARAMS_CAPTURE = "params"
RESULT_CAPTURE = "result"

CAPTURE_ORDER = (
    PACKAGE_CAPTURE,
    CONTRACT_CAPTURE,
    METHOD_CAPTURE,
    PARAMS_CAPTURE,
    RESULT_CAPTURE,
)

CONTRACT_QUERY = f"""
(package_clause (package_identifier) @{PACKAGE_CAPTURE})

(type_spec
  name: (type_identifier) @{CONTRACT_CAPTURE} (#match? @{CONTRACT_CAPTURE} "{CONTRACT_SUFFIX}$")
  type: (interface_type))

(type_spec
  name: (type_identifier) @{CONTRACT_CAPTURE} (#match? @{CONTRACT_CAPTURE} "{CONTRACT_SUFFIX}$")
  type: (interface_type
    (method_elem
      name: (field_identifier) @{METHOD_CAPTURE}
      parameters: (parameter_list) @{PARAMS_CAPTURE}
      result: (_)? @{RESULT_CAPTURE})))
"""

# A segment starting with one of these is a type expression, never "name type".
TYPE_KEYWORDS = ("<-chan", "chan", "func", "struct", "interface", "map")


def split_top_level(src: str, separator: str = ",") -> List[str]:
    """Split on separators that are not nested inside brackets."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    for ch in src:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        if ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def _is_type_expression(segment: str) -> bool:
    for keyword in TYPE_KEYWORDS:
        if segment == keyword:
            return True
        if segment.startswith(keyword):
            following = segment[len(keyword)]
            if not (following.isalnum() or following == "_"):
                return True
    return False


def _is_named_segment(segment: str) -> bool:
    return len(segment.split(None, 1)) > 1 and not _is_type_expression(segment)


def parse_parameter_list(src: str) -> List[Parameter]:
    """
    Parse the raw text of a parameter list or result into parameters.

    Handles unnamed lists (``int, error``), named lists and the grouped-type
    form where several names share one trailing type (``a, b bool, c int``).

    Args:
        src: Parameter list text, with or without surrounding parentheses

    Returns:
        Parameters in declaration order; empty for an empty list

    Raises:
        ParameterListError: If trailing names have no type to share
    """
    src = src.strip()
    if src.startswith("(") and src.endswith(")"):
        src = src[1:-1]
    segments = [s.strip() for s in split_top_level(src)]
    # a trailing comma in a multi-line list leaves an empty segment
    segments = [s for s in segments if s]
    if not segments:
        return []

    if not any(_is_named_segment(s) for s in segments):
        return [Parameter(type=s) for s in segments]

    params: List[Parameter] = []
    untyped: List[int] = []
    for segment in segments:
        if _is_named_segment(segment):
            identifier, type_ = segment.split(None, 1)
            type_ = type_.strip()
            for i in untyped:
                params[i] = Parameter(identifier=params[i].identifier, type=type_)
            untyped = []
            params.append(Parameter(identifier=identifier, type=type_))
        else:
            untyped.append(len(params))
            params.append(Parameter(identifier=segment))

    if untyped:
        names = ", ".join(params[i].identifier for i in untyped)
        raise ParameterListError(f"parameters without a type in ({src}): {names}")
    return params


def reduce_capture_stream(
    events: Iterable[CaptureEvent],
) -> Tuple[Optional[str], List[Contract]]:
    """
    Regroup a flat capture stream into contracts and their methods.

    One cursor is kept per nesting level. A contract capture equal to the
    current contract is a repeat and is skipped; a different name opens a new
    contract. A method capture equal to the current method is a repeat
    annotation of that method (e.g. its result arriving in a later match).

    Returns:
        Tuple of (package name or None, contracts in declaration order)
    """
    package: Optional[str] = None
    contracts: List[Contract] = []
    contract_idx = -1
    method_idx = -1

    for event in events:
        if event.name == PACKAGE_CAPTURE:
            if package is None:
                package = event.text
            continue

        if event.name == CONTRACT_CAPTURE:
            if contract_idx >= 0 and contracts[contract_idx].name == event.text:
                continue
            known = [i for i, c in enumerate(contracts) if c.name == event.text]
            if known:
                contract_idx = known[0]
                method_idx = len(contracts[contract_idx].methods) - 1
                continue
            contracts.append(Contract(name=event.text))
            contract_idx = len(contracts) - 1
            method_idx = -1
            continue

        if contract_idx < 0:
            logger.debug(f"Capture '{event.name}' before any contract, ignoring")
            continue
        contract = contracts[contract_idx]

        if event.name == METHOD_CAPTURE:
            if method_idx >= 0 and contract.methods[method_idx].name == event.text:
                continue
            names = contract.method_names()
            if event.text in names:
                method_idx = names.index(event.text)
                continue
            contract.methods.append(Method(name=event.text))
            method_idx = len(contract.methods) - 1
        elif event.name in (PARAMS_CAPTURE, RESULT_CAPTURE):
            if method_idx < 0:
                logger.debug(f"Capture '{event.name}' before any method of {contract.name}, ignoring")
                continue
            method = contract.methods[method_idx]
            params = parse_parameter_list(event.text)
            if event.name == PARAMS_CAPTURE:
                method.parameters = params
            else:
                method.returns = params
        else:
            logger.error(f"Unhandled capture '{event.name}': {event.text!r}")

    return package, contracts


class ContractExtractor:
    """Extracts contracts from Go definition files."""

    def __init__(self, parser: Optional[GoSourceParser] = None):
        self.parser = parser or default_parser()

    def extract(self, source: bytes, path: Optional[str] = None) -> List[Contract]:
        """
        Extract every contract declared in one definition file.

        Args:
            source: File content
            path: Path used in error messages

        Returns:
            Contracts with package name and file imports filled in; empty if the
            file declares none

        Raises:
            SourceParseError: If the file does not parse
            NoPackageDeclarationError: If the file has no package clause
            ParameterListError: If a method has a malformed parameter list
        """
        tree = self.parser.parse(source, path)
        query = self.parser.query(CONTRACT_QUERY)
        events = self.parser.capture_stream(query, tree.root_node, CAPTURE_ORDER)
        try:
            package, contracts = reduce_capture_stream(events)
        except ParameterListError as e:
            raise ParameterListError(f"{path or '<source>'}: {e}") from e
        if package is None:
            raise NoPackageDeclarationError(path)

        imports = read_imports(tree)
        for contract in contracts:
            contract.package_name = package
            contract.imports = list(imports)
        return contracts

    def extract_package(
        self,
        root: Path,
        package_path: str,
        filenames: Sequence[str],
    ) -> List[Contract]:
        """
        Extract the contracts of every file in a definition package.

        Args:
            root: Project root directory
            package_path: Package directory relative to ``root``
            filenames: Files of the package

        Returns:
            Contracts of all files, in file order then declaration order
        """
        contracts: List[Contract] = []
        for filename in filenames:
            rel_path = posixpath.join(package_path, filename)
            try:
                source = (Path(root) / rel_path).read_bytes()
            except OSError as e:
                raise GenerationError(f"failed to read file {rel_path}: {e}") from e
            file_contracts = self.extract(source, rel_path)
            for contract in file_contracts:
                contract.package_path = package_path
                contract.definition_filename = filename
            logger.debug(f"Extracted {len(file_contracts)} contract(s) from {rel_path}")
            contracts.extend(file_contracts)
        return contracts
