"""File system crawl of the API definition tree."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

from .parsing.implementations import is_go_source

logger = logging.getLogger(__name__)


def crawl_packages(root: Path, directory: str) -> Dict[str, List[str]]:
    """
    Group the non-test Go files under ``root/directory`` by package directory.

    Args:
        root: Project root
        directory: Directory to crawl, relative to ``root``

    Returns:
        Mapping of package directory (POSIX, relative to ``root``) to sorted
        file names, with directories in sorted order
    """
    root = Path(root)
    base = root / directory
    if not base.is_dir():
        raise FileNotFoundError(f"API directory not found: {base}")

    packages: Dict[str, List[str]] = {}
    for path in base.rglob("*.go"):
        if not path.is_file() or not is_go_source(path.name):
            continue
        package_dir = path.parent.relative_to(root).as_posix()
        packages.setdefault(package_dir, []).append(path.name)

    logger.debug(f"Found {len(packages)} package(s) under {base}")
    return {d: sorted(files) for d, files in sorted(packages.items())}
