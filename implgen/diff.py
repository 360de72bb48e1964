"""
Diff engine: which contract methods still need a stub.

Types in the returned methods are qualified for use from the implementation
package, where the contract's own package is only reachable through an import.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .models import Contract, ImplementationRecord, Method, Parameter

# An exported identifier that is neither a package qualifier nor already qualified.
_UNQUALIFIED_EXPORTED = re.compile(r"(?:(?<![\w.])|(?<=\.\.\.))([A-Z]\w*)(?![\w.])")


def qualify_type(type_: str, package: str) -> str:
    """
    Prefix every unqualified exported identifier of a type expression.

    >>> qualify_type("*Waltuh", "waltuh")
    '*waltuh.Waltuh'
    >>> qualify_type("context.Context", "waltuh")
    'context.Context'
    >>> qualify_type("...Waltuh", "waltuh")
    '...waltuh.Waltuh'
    """
    if not package:
        return type_
    return _UNQUALIFIED_EXPORTED.sub(lambda m: f"{package}.{m.group(1)}", type_)


def _qualify(params: List[Parameter], package: str) -> List[Parameter]:
    return [Parameter(identifier=p.identifier, type=qualify_type(p.type, package)) for p in params]


def compute_missing_methods(
    contract: Contract,
    record: ImplementationRecord,
    qualifier: Optional[str] = None,
) -> List[Method]:
    """
    Return the contract methods not yet implemented, in declaration order.

    Args:
        contract: Contract to reconcile
        record: What the implementation package already has for it
        qualifier: Name the contract package is imported under; defaults to
            the contract's package name

    Returns:
        Missing methods with qualified parameter and return types
    """
    package = contract.package_name if qualifier is None else qualifier
    missing: List[Method] = []
    for method in contract.methods:
        if method.name in record.existing_method_names:
            continue
        missing.append(
            Method(
                name=method.name,
                parameters=_qualify(method.parameters, package),
                returns=_qualify(method.returns, package),
            )
        )
    return missing
