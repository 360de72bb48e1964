"""
Code synthesis: stub and dependency-block rendering, file merge and registry.
"""

from .formatter import SourceFormatter, create_formatter
from .merge import ImplementationFileMerger, MergeResult, render_import_block, split_layout
from .registry import RegistryRenderer, mock_directives, sort_records
from .renderers import (
    render_dependency_block,
    render_method_stub,
    render_parameters,
    render_returns,
)

__all__ = [
    "ImplementationFileMerger",
    "MergeResult",
    "RegistryRenderer",
    "SourceFormatter",
    "create_formatter",
    "mock_directives",
    "render_dependency_block",
    "render_import_block",
    "render_method_stub",
    "render_parameters",
    "render_returns",
    "sort_records",
    "split_layout",
]
