"""
Registry file rendering.

The registry collects the fx options of every implementation into one
``Repositories`` value and carries the ``go:generate`` directives that produce
mocks for each contract definition file.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import CONTRACT_SUFFIX, MOCKS_DIRECTORY, Import, ImplementationRecord
from ..resolver import ImportResolver
from .merge import FX_IMPORT, ImportLine, render_import_block

logger = logging.getLogger(__name__)

REGISTRY_HEADER = (
    "// DO NOT MODIFY\n"
    "// This file will be automatically regenerated based on the API.\n"
)
REGISTRY_VARIABLE = "Repositories"


def sort_records(records: Iterable[ImplementationRecord]) -> List[ImplementationRecord]:
    """Order by implementation package, the bare contract first, then contract name."""
    return sorted(
        records,
        key=lambda r: (
            r.package_name,
            r.package_path,
            r.contract.name != CONTRACT_SUFFIX,
            r.contract.name,
        ),
    )


def mock_directives(
    records: Iterable[ImplementationRecord],
    registry_dir: str,
) -> List[Tuple[str, str]]:
    """
    Distinct (source, destination) pairs for mockgen, relative to the registry.

    Mocks for ``api/x/file.go`` are written to ``<impl dir>/mocks/file.go``.
    """
    directives = set()
    for record in records:
        contract = record.contract
        src = posixpath.relpath(contract.definition_path, registry_dir)
        dst = posixpath.relpath(
            posixpath.join(record.package_path, MOCKS_DIRECTORY, contract.definition_filename),
            registry_dir,
        )
        directives.add((src, dst))
    return sorted(directives)


class RegistryRenderer:
    """Renders the package-level registry file for a set of records."""

    def __init__(self, resolver: ImportResolver):
        self.resolver = resolver

    def render(
        self,
        records: Sequence[ImplementationRecord],
        registry_dir: str,
        package_name: Optional[str] = None,
    ) -> str:
        """
        Render the registry for all records of a run.

        Args:
            records: Implementation records of every contract
            registry_dir: Directory of the registry file, relative to the project root
            package_name: Package name of the registry; derived from the directory
                when omitted

        Returns:
            Go source of the registry file
        """
        ordered = sort_records(records)
        registry_dir = posixpath.normpath(registry_dir)
        local = [r for r in ordered if posixpath.normpath(r.package_path) == registry_dir]
        if package_name is None:
            package_name = local[0].package_name if local else self.resolver.package_name(registry_dir)

        known: List[Import] = [FX_IMPORT]
        references: Dict[str, str] = {}
        for record in ordered:
            if record.package_path in references:
                continue
            if posixpath.normpath(record.package_path) == registry_dir:
                references[record.package_path] = ""
                continue
            imp = self.resolver.resolve(record.package_path, record.package_name, known)
            if all(k.path != imp.path for k in known):
                known.append(imp)
            references[record.package_path] = imp.reference_name

        lines = [REGISTRY_HEADER + f"package {package_name}", ""]
        directives = mock_directives(ordered, registry_dir)
        for src, dst in directives:
            lines.append(f"//go:generate mockgen -source={src} -destination={dst}")
        if directives:
            lines.append("")

        block = render_import_block(
            [ImportLine(imp=imp) for imp in known],
            local_prefix=self.resolver.module_root.module.path,
        )
        lines += [block, "", f"var {REGISTRY_VARIABLE} = fx.Options("]
        for record in ordered:
            reference = references[record.package_path]
            qualified = f"{reference}.{record.options_name}" if reference else record.options_name
            lines.append(f"\t{qualified},")
        lines.append(")")
        logger.debug(f"Rendered registry for {len(ordered)} record(s) in {registry_dir}")
        return "\n".join(lines) + "\n"
