"""
Module and import path resolution.

Package directories are handled as POSIX paths relative to the project root,
the same way the crawler reports them. The canonical import path of a package
is the module path from the nearest ``go.mod`` joined with the package
directory relative to that ``go.mod``.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .errors import ModuleManifestNotFoundError, PathContainmentError
from .models import Import

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "go.mod"

_MODULE_DIRECTIVE = re.compile(r"^\s*module\s+(?P<path>\"[^\"]*\"|`[^`]*`|\S+)")


@dataclass(frozen=True)
class ModuleInfo:
    """A Go module: its import path and the directory holding go.mod."""

    path: str
    directory: Path


def read_module_path(manifest: str) -> Optional[str]:
    """Return the path of the ``module`` directive, or None if there is none."""
    for line in manifest.splitlines():
        line = line.split("//", 1)[0]
        match = _MODULE_DIRECTIVE.match(line)
        if match:
            path = match.group("path")
            if path[0] in "\"`":
                path = path[1:-1]
            return path
    return None


def find_module(start: Path) -> ModuleInfo:
    """
    Walk upward from ``start`` until a go.mod is found.

    Raises:
        ModuleManifestNotFoundError: If neither ``start`` nor any parent has one
    """
    current = Path(start).resolve()
    while True:
        manifest = current / MANIFEST_FILENAME
        if manifest.is_file():
            try:
                module_path = read_module_path(manifest.read_text(encoding="utf-8"))
            except UnicodeDecodeError as e:
                raise ModuleManifestNotFoundError(f"{manifest} is not valid UTF-8: {e}") from e
            if not module_path:
                raise ModuleManifestNotFoundError(f"{manifest} has no module directive")
            logger.debug(f"Found module {module_path} in {manifest}")
            return ModuleInfo(path=module_path, directory=current)
        if current.parent == current:
            raise ModuleManifestNotFoundError(
                f"could not find a {MANIFEST_FILENAME} in {start} or any parent directory"
            )
        current = current.parent


class ModuleRoot:
    """Module lookup computed at most once, scoped to the owning run."""

    def __init__(self, start: Path):
        self.start = Path(start)
        self._module: Optional[ModuleInfo] = None

    @property
    def module(self) -> ModuleInfo:
        if self._module is None:
            self._module = find_module(self.start)
        return self._module


class ImportResolver:
    """Computes import paths and aliases for packages of the project."""

    def __init__(self, project_root: Path, module_root: ModuleRoot):
        self.project_root = Path(project_root)
        self.module_root = module_root

    def import_path(self, package_dir: str) -> str:
        module = self.module_root.module
        absolute = (self.project_root / package_dir).resolve()
        relative = os.path.relpath(absolute, module.directory).replace(os.sep, "/")
        if relative == ".":
            return module.path
        return posixpath.join(module.path, relative)

    def resolve(
        self,
        package_dir: str,
        package_name: Optional[str] = None,
        existing: Iterable[Import] = (),
    ) -> Import:
        """
        Resolve the import of a local package from the point of view of a file.

        Args:
            package_dir: Package directory relative to the project root
            package_name: Declared package name, when it is known
            existing: Imports already present in the destination file

        Returns:
            Import whose alias is the one already used by the file, or a
            default alias (empty when the directory name is usable as is)
        """
        path = self.import_path(package_dir)
        existing = list(existing)
        for imp in existing:
            if imp.path == path:
                return imp

        base = posixpath.basename(path)
        alias = base.replace("_", "")
        if package_name and package_name != base:
            alias = package_name
        if alias == base:
            alias = ""

        taken = {imp.reference_name for imp in existing}
        name = alias or base
        if name in taken:
            suffix = 2
            while f"{name}{suffix}" in taken:
                suffix += 1
            alias = f"{name}{suffix}"
        return Import(path=path, alias=alias)

    def package_name(self, package_dir: str) -> str:
        """Default Go package name for a directory with no declared name."""
        base = posixpath.basename(self.import_path(package_dir))
        return base.replace("_", "").replace("-", "")


def compute_implementation_package_path(api_root: str, impl_root: str, api_package_path: str) -> str:
    """
    Map an API package directory to its implementation package directory.

    >>> compute_implementation_package_path("api", "internal", "api/waltuh")
    'internal/waltuh'

    Raises:
        PathContainmentError: If the package is not nested under ``api_root``
    """
    api_root = posixpath.normpath(api_root)
    impl_root = posixpath.normpath(impl_root)
    api_package_path = posixpath.normpath(api_package_path)

    package_parts = [] if api_package_path == "." else api_package_path.split("/")
    if api_root == ".":
        relative = package_parts
    else:
        root_parts = api_root.split("/")
        if package_parts[: len(root_parts)] != root_parts:
            raise PathContainmentError(
                f"{api_package_path} is not nested under the API root {api_root}"
            )
        relative = package_parts[len(root_parts):]
    return posixpath.normpath(posixpath.join(impl_root, *relative)) if relative else impl_root
