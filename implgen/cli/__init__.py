"""
Command-line interface for implgen.

Generates implementation stubs, dependency wiring and the repository registry
for the Go contracts found under the API directory.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from rich.logging import RichHandler

from .. import __version__
from ..config import ConfigurationError, load_config
from ..errors import ImplgenError
from ..runner import run_generation
from ..synthesis.formatter import FORMATTER_CHOICES
from .rich_output import RichOutputManager

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, use_rich: bool = True) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    if use_rich:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(show_path=verbose, markup=False)],
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="implgen",
        description="Generate Go implementation stubs and fx wiring from repository contracts",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--root", type=str, help="Project root (default: current directory)")
    parser.add_argument("--api", type=str, help="Contract directory relative to the root (default: api)")
    parser.add_argument(
        "--impl", type=str, help="Implementation directory relative to the root (default: internal)"
    )
    parser.add_argument(
        "--formatter",
        choices=FORMATTER_CHOICES,
        help="Formatter applied to generated files (default: auto)",
    )
    parser.add_argument("--config", "-c", type=str, help="Path to configuration file")
    parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be generated without writing files"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--no-rich", action="store_true", help="Disable rich terminal output")
    return parser


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate command-line flags into a configuration override mapping."""
    paths: Dict[str, Any] = {}
    generation: Dict[str, Any] = {}
    if args.root:
        paths["root"] = args.root
    if args.api:
        paths["api_dir"] = args.api
    if args.impl:
        paths["impl_dir"] = args.impl
    if args.formatter:
        generation["formatter"] = args.formatter
    if args.dry_run:
        generation["dry_run"] = True

    overrides: Dict[str, Any] = {}
    if paths:
        overrides["paths"] = paths
    if generation:
        overrides["generation"] = generation
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    use_rich = not args.no_rich
    setup_logging(args.verbose, use_rich)
    output = RichOutputManager(use_rich=use_rich)

    try:
        config = load_config(config_path=args.config, overrides=build_overrides(args))
    except ConfigurationError as e:
        output.print_error(f"Configuration error: {e}")
        return 1

    if args.verbose:
        logger.debug(config.get_config_summary())

    output.print_header("implgen", f"{config.paths_settings.api_dir} -> {config.paths_settings.impl_dir}")
    if config.generation_settings.dry_run:
        output.print_info("Dry run: no files will be written")
    try:
        report = run_generation(config)
    except ImplgenError as e:
        logger.debug("Generation failed", exc_info=True)
        output.print_error(str(e))
        return 1

    output.print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
