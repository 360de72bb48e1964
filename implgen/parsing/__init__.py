"""
Structural parsing of Go sources: contract extraction and implementation scanning.
"""

from .contracts import ContractExtractor, parse_parameter_list, reduce_capture_stream
from .go_parser import CaptureEvent, GoSourceParser, default_parser
from .implementations import ImplementationFileFacts, ImplementationScanner

__all__ = [
    "CaptureEvent",
    "ContractExtractor",
    "GoSourceParser",
    "ImplementationFileFacts",
    "ImplementationScanner",
    "default_parser",
    "parse_parameter_list",
    "reduce_capture_stream",
]
