"""
External source formatting.

Generated text only needs to be mergeable; making it pretty is delegated to
the Go toolchain. ``goimports`` is preferred because it also prunes and groups
imports, ``gofmt`` is the fallback, and without either the text is left as is.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from ..errors import FormatterError

logger = logging.getLogger(__name__)

FORMATTER_CHOICES = ("auto", "goimports", "gofmt", "none")


class SourceFormatter:
    """Formatter that leaves source untouched."""

    name = "none"

    def format(self, source: str, path: Optional[Path] = None) -> str:
        return source


NullFormatter = SourceFormatter


class CommandFormatter(SourceFormatter):
    """Pipes source through a formatting command on stdin."""

    command = ""
    timeout = 60

    def __init__(self, executable: Optional[str] = None):
        self.executable = executable or shutil.which(self.command) or self.command

    def arguments(self, path: Optional[Path]) -> List[str]:
        return [self.executable]

    def format(self, source: str, path: Optional[Path] = None) -> str:
        try:
            result = subprocess.run(
                self.arguments(path),
                input=source,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise FormatterError(f"failed to run {self.command} on {path}: {e}") from e
        if result.returncode != 0:
            raise FormatterError(f"{self.command} rejected {path}: {result.stderr.strip()}")
        return result.stdout


class GoImportsFormatter(CommandFormatter):
    name = "goimports"
    command = "goimports"

    def arguments(self, path: Optional[Path]) -> List[str]:
        args = [self.executable]
        if path is not None:
            # resolves imports relative to the destination package
            args += ["-srcdir", str(Path(path).parent)]
        return args


class GoFmtFormatter(CommandFormatter):
    name = "gofmt"
    command = "gofmt"


def create_formatter(choice: str = "auto") -> SourceFormatter:
    """
    Create the formatter for a configuration choice.

    Args:
        choice: One of ``auto``, ``goimports``, ``gofmt`` or ``none``

    Returns:
        The formatter; ``auto`` falls back to the null formatter when no tool
        is on PATH
    """
    if choice not in FORMATTER_CHOICES:
        raise ValueError(f"Unknown formatter: {choice}. Available: {list(FORMATTER_CHOICES)}")
    if choice == "none":
        return NullFormatter()
    if choice == "goimports":
        return GoImportsFormatter()
    if choice == "gofmt":
        return GoFmtFormatter()

    for formatter_cls in (GoImportsFormatter, GoFmtFormatter):
        executable = shutil.which(formatter_cls.command)
        if executable:
            logger.debug(f"Formatting generated code with {executable}")
            return formatter_cls(executable)
    logger.debug("No Go formatter found on PATH, output is left unformatted")
    return NullFormatter()
