"""
Scanning of existing implementation packages.

For every contract the scanner decides whether its backing type (the
``...Impl`` struct) already exists somewhere in the implementation package,
which file declares it, and which methods have already been written for it.
Methods may be spread across several files of the package.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..errors import GenerationError
from ..models import (
    IMPLEMENTATION_FILE_SUFFIX,
    IMPLEMENTATION_PACKAGE_SUFFIX,
    IMPLEMENTATION_SUFFIX,
    Contract,
    ImplementationRecord,
)
from .go_parser import GoSourceParser, default_parser

logger = logging.getLogger(__name__)

PACKAGE_CAPTURE = "package"
TYPE_CAPTURE = "type_name"
RECEIVER_CAPTURE = "receiver"
METHOD_CAPTURE = "method"

CAPTURE_ORDER = (PACKAGE_CAPTURE, TYPE_CAPTURE, RECEIVER_CAPTURE, METHOD_CAPTURE)

IMPLEMENTATION_QUERY = f"""
(package_clause (package_identifier) @{PACKAGE_CAPTURE})

(type_spec
  name: (type_identifier) @{TYPE_CAPTURE} (#match? @{TYPE_CAPTURE} "{IMPLEMENTATION_SUFFIX}$"))

(method_declaration
  receiver: (parameter_list
    (parameter_declaration
      type: (_) @{RECEIVER_CAPTURE} (#match? @{RECEIVER_CAPTURE} "{IMPLEMENTATION_SUFFIX}$")))
  name: (field_identifier) @{METHOD_CAPTURE})
"""


def default_package_name(source_package: str) -> str:
    return source_package + IMPLEMENTATION_PACKAGE_SUFFIX


def default_filename(contract: Contract) -> str:
    return contract.short_name.lower() + IMPLEMENTATION_FILE_SUFFIX


def is_go_source(filename: str) -> bool:
    return filename.endswith(".go") and not filename.endswith("_test.go")


@dataclass
class ImplementationFileFacts:
    """What a single implementation file declares."""

    package_name: Optional[str] = None
    type_names: List[str] = field(default_factory=list)
    methods: Dict[str, List[str]] = field(default_factory=dict)


class ImplementationScanner:
    """Reconciles contracts with an implementation package on disk."""

    def __init__(self, parser: Optional[GoSourceParser] = None):
        self.parser = parser or default_parser()

    def scan_file(self, source: bytes, path: Optional[str] = None) -> ImplementationFileFacts:
        """
        Collect package name, backing type names and their methods from one file.

        Args:
            source: File content
            path: Path used in error messages

        Returns:
            Facts declared by the file
        """
        tree = self.parser.parse(source, path)
        query = self.parser.query(IMPLEMENTATION_QUERY)
        facts = ImplementationFileFacts()
        receiver: Optional[str] = None
        for event in self.parser.capture_stream(query, tree.root_node, CAPTURE_ORDER):
            if event.name == PACKAGE_CAPTURE:
                facts.package_name = event.text
            elif event.name == TYPE_CAPTURE:
                if event.text not in facts.type_names:
                    facts.type_names.append(event.text)
            elif event.name == RECEIVER_CAPTURE:
                receiver = event.text.lstrip("*").strip()
            elif event.name == METHOD_CAPTURE:
                if not receiver:
                    logger.debug(f"Method {event.text} without a matching receiver in {path}")
                    continue
                known = facts.methods.setdefault(receiver, [])
                if event.text not in known:
                    known.append(event.text)
            else:
                logger.error(f"Unhandled capture '{event.name}': {event.text!r}")
        return facts

    def scan(
        self,
        root: Path,
        package_path: str,
        contracts: Sequence[Contract],
    ) -> List[ImplementationRecord]:
        """
        Build one implementation record per contract.

        Args:
            root: Project root directory
            package_path: Implementation package directory relative to ``root``
            contracts: Contracts expected to be implemented in that package

        Returns:
            Records in contract order
        """
        if not contracts:
            return []

        package_name = default_package_name(contracts[0].package_name)
        directory = Path(root) / package_path
        if not directory.is_dir():
            logger.debug(f"Implementation package {package_path} does not exist yet")
            return [
                ImplementationRecord(
                    contract=contract,
                    package_name=package_name,
                    package_path=package_path,
                    filename=default_filename(contract),
                    is_new_type=True,
                )
                for contract in contracts
            ]

        declared_in: Dict[str, str] = {}
        methods_by_receiver: Dict[str, List[str]] = {}
        found_package: Optional[str] = None
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if not entry.is_file() or not is_go_source(entry.name):
                continue
            rel_path = posixpath.join(package_path, entry.name)
            try:
                source = entry.read_bytes()
            except OSError as e:
                raise GenerationError(f"failed to read file {rel_path}: {e}") from e
            facts = self.scan_file(source, rel_path)
            if facts.package_name:
                if found_package is None:
                    found_package = facts.package_name
                elif found_package != facts.package_name:
                    logger.warning(
                        f"{rel_path} declares package {facts.package_name}, "
                        f"expected {found_package}"
                    )
            for type_name in facts.type_names:
                declared_in.setdefault(type_name, entry.name)
            for receiver, names in facts.methods.items():
                accumulated = methods_by_receiver.setdefault(receiver, [])
                accumulated.extend(n for n in names if n not in accumulated)

        if found_package:
            package_name = found_package

        records: List[ImplementationRecord] = []
        for contract in contracts:
            implementation_name = contract.implementation_name
            filename = declared_in.get(implementation_name)
            if filename is not None:
                records.append(
                    ImplementationRecord(
                        contract=contract,
                        package_name=package_name,
                        package_path=package_path,
                        filename=filename,
                        existing_method_names=set(methods_by_receiver.get(implementation_name, [])),
                    )
                )
            else:
                records.append(
                    ImplementationRecord(
                        contract=contract,
                        package_name=package_name,
                        package_path=package_path,
                        filename=default_filename(contract),
                        is_new_type=True,
                    )
                )
        return records
