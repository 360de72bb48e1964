"""
Error types for implgen.

Every failure raised by the pipeline derives from ImplgenError. Layers that
catch an error from a lower layer re-raise it with the operation and path that
failed prepended to the message, so the final message reads as a breadcrumb
trail, e.g.::

    failed to parse contracts in api/waltuh: failed to parse api/waltuh/a.go: ...
"""

from typing import Optional

__all__ = [
    "ImplgenError",
    "SourceParseError",
    "NoPackageDeclarationError",
    "ParameterListError",
    "ModuleManifestNotFoundError",
    "PathContainmentError",
    "FormatterError",
    "GenerationError",
]


class ImplgenError(Exception):
    """Base class for all implgen errors."""

    pass


class SourceParseError(ImplgenError):
    """Raised when a Go source file cannot be parsed structurally."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        location = path or "<source>"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")


class NoPackageDeclarationError(SourceParseError):
    """Raised when a definition file has no package clause at all."""

    def __init__(self, path: Optional[str] = None):
        super().__init__("no package name found", path=path)


class ParameterListError(ImplgenError):
    """Raised for a parameter list whose trailing names have no type to share."""

    pass


class ModuleManifestNotFoundError(ImplgenError):
    """Raised when no go.mod exists in the start directory or any parent."""

    pass


class PathContainmentError(ImplgenError):
    """Raised when an API package path is not nested under the API root."""

    pass


class FormatterError(ImplgenError):
    """Raised when the external source formatter rejects generated code."""

    pass


class GenerationError(ImplgenError):
    """Wraps a failure while generating a package with the path that failed."""

    pass
