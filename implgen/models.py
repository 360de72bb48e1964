"""
Data models shared by the implgen pipeline.

Contracts are Go interfaces whose name ends in ``Repository``; their backing
implementation types end in ``Impl``. The naming conventions below are used
by the extractor, the scanner and the renderers alike, so they live here.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import List, Sequence, Set

CONTRACT_SUFFIX = "Repository"
IMPLEMENTATION_SUFFIX = "Impl"
IMPLEMENTATION_PACKAGE_SUFFIX = "impl"
IMPLEMENTATION_FILE_SUFFIX = "_impl.go"
MOCKS_DIRECTORY = "mocks"

CONTEXT_TYPE = "context.Context"
ERROR_TYPE = "error"


@dataclass(frozen=True)
class Import:
    """A Go import spec: optional alias plus the quoted path."""

    path: str
    alias: str = ""

    @property
    def default_name(self) -> str:
        return posixpath.basename(self.path)

    @property
    def reference_name(self) -> str:
        """Name under which the package is referenced in code."""
        return self.alias or self.default_name

    def render(self) -> str:
        if self.alias:
            return f'{self.alias} "{self.path}"'
        return f'"{self.path}"'


@dataclass(frozen=True)
class Parameter:
    identifier: str = ""
    type: str = ""


def has_context(params: Sequence[Parameter]) -> bool:
    return any(p.type == CONTEXT_TYPE for p in params)


def has_error(params: Sequence[Parameter]) -> bool:
    return any(p.type == ERROR_TYPE for p in params)


def is_named(params: Sequence[Parameter]) -> bool:
    return any(p.identifier for p in params)


@dataclass
class Method:
    """A method signature declared by a contract."""

    name: str
    parameters: List[Parameter] = field(default_factory=list)
    returns: List[Parameter] = field(default_factory=list)

    @property
    def has_context(self) -> bool:
        return has_context(self.parameters)

    @property
    def returns_error(self) -> bool:
        return has_error(self.returns)


@dataclass
class Contract:
    """
    A named service boundary extracted from a definition file.

    Attributes:
        name: Interface name, unique within its package
        package_name: Go package name of the definition file
        package_path: Directory of the definition package, relative to the project root
        definition_filename: File the interface is declared in
        methods: Methods in declaration order (generation order)
        imports: Imports of the declaring file
    """

    name: str
    package_name: str = ""
    package_path: str = ""
    definition_filename: str = ""
    methods: List[Method] = field(default_factory=list)
    imports: List[Import] = field(default_factory=list)

    @property
    def short_name(self) -> str:
        """Name with the contract suffix stripped (``FooRepository`` -> ``Foo``)."""
        if len(self.name) > len(CONTRACT_SUFFIX) and self.name.endswith(CONTRACT_SUFFIX):
            return self.name[: -len(CONTRACT_SUFFIX)]
        return self.name

    @property
    def is_bare(self) -> bool:
        return self.short_name == CONTRACT_SUFFIX

    @property
    def implementation_name(self) -> str:
        if not self.name:
            return ""
        return self.name[0].lower() + self.name[1:] + IMPLEMENTATION_SUFFIX

    @property
    def qualified_name(self) -> str:
        if not self.package_name:
            return self.name
        return f"{self.package_name}.{self.name}"

    @property
    def definition_path(self) -> str:
        return posixpath.join(self.package_path, self.definition_filename)

    def qualify(self, name: str) -> str:
        """Prefix a declaration name with the short name unless the contract is bare."""
        if self.is_bare:
            return name
        return self.short_name + name

    def method_names(self) -> List[str]:
        return [m.name for m in self.methods]


@dataclass
class ImplementationRecord:
    """A contract paired with what was found in its implementation package."""

    contract: Contract
    package_name: str
    package_path: str
    filename: str
    existing_method_names: Set[str] = field(default_factory=set)
    is_new_type: bool = False

    @property
    def path(self) -> str:
        return posixpath.join(self.package_path, self.filename)

    @property
    def options_name(self) -> str:
        return self.contract.qualify("Options")
