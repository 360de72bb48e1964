"""
Generation run orchestration.

A run crawls the API tree and handles one definition package at a time:
contracts are extracted, reconciled with the implementation package, and every
affected implementation file is rendered in memory before any of them is
written. The registry file is rendered last from the records of all packages.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import ImplgenConfig
from .crawler import crawl_packages
from .errors import GenerationError, ImplgenError
from .models import ImplementationRecord
from .parsing.contracts import ContractExtractor
from .parsing.go_parser import GoSourceParser, default_parser
from .parsing.implementations import ImplementationScanner
from .resolver import ImportResolver, ModuleRoot, compute_implementation_package_path
from .synthesis.formatter import SourceFormatter, create_formatter
from .synthesis.merge import ImplementationFileMerger, MergeResult
from .synthesis.registry import RegistryRenderer

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"


@dataclass
class FileOutcome:
    """What happened to one generated file."""

    path: str
    status: str
    new_types: int = 0
    new_methods: int = 0


@dataclass
class PackagePlan:
    """Fully rendered output of one definition package, not yet written."""

    api_package: str
    impl_package: str
    records: List[ImplementationRecord] = field(default_factory=list)
    results: List[MergeResult] = field(default_factory=list)


@dataclass
class GenerationReport:
    """Summary of a generation run."""

    files: List[FileOutcome] = field(default_factory=list)
    registry: Optional[FileOutcome] = None
    packages: int = 0
    contracts: int = 0
    dry_run: bool = False

    @property
    def new_types(self) -> int:
        return sum(f.new_types for f in self.files)

    @property
    def new_methods(self) -> int:
        return sum(f.new_methods for f in self.files)

    def changed_files(self) -> List[FileOutcome]:
        changed = [f for f in self.files if f.status != UNCHANGED]
        if self.registry is not None and self.registry.status != UNCHANGED:
            changed.append(self.registry)
        return changed


class RunContext:
    """Collaborators shared by every stage of one run."""

    def __init__(
        self,
        config: ImplgenConfig,
        formatter: Optional[SourceFormatter] = None,
        parser: Optional[GoSourceParser] = None,
    ):
        self.config = config
        self.root = Path(config.paths_settings.root).resolve()
        self.api_dir = posixpath.normpath(config.paths_settings.api_dir)
        self.impl_dir = posixpath.normpath(config.paths_settings.impl_dir)
        self.module_root = ModuleRoot(self.root)
        self.parser = parser or default_parser()
        self.resolver = ImportResolver(self.root, self.module_root)
        self.formatter = formatter or create_formatter(config.generation_settings.formatter)

    @property
    def dry_run(self) -> bool:
        return self.config.generation_settings.dry_run

    @property
    def registry_path(self) -> str:
        return posixpath.join(self.impl_dir, self.config.generation_settings.registry_filename)


def group_by_filename(records: Sequence[ImplementationRecord]) -> Dict[str, List[ImplementationRecord]]:
    grouped: Dict[str, List[ImplementationRecord]] = {}
    for record in records:
        grouped.setdefault(record.filename, []).append(record)
    return grouped


class GenerationRunner:
    """Runs the extract, diff and synthesize pipeline over a project."""

    def __init__(self, context: RunContext):
        self.context = context
        self.extractor = ContractExtractor(context.parser)
        self.scanner = ImplementationScanner(context.parser)
        self.merger = ImplementationFileMerger(context.resolver, context.parser)
        self.registry_renderer = RegistryRenderer(context.resolver)

    def run(self) -> GenerationReport:
        """
        Generate every package under the API directory, then the registry.

        Returns:
            Report of all touched files

        Raises:
            GenerationError: On the first package that fails; packages written
                before it are kept
        """
        ctx = self.context
        report = GenerationReport(dry_run=ctx.dry_run)
        logger.debug(f"Crawling API directory {ctx.api_dir} under {ctx.root}")
        try:
            packages = crawl_packages(ctx.root, ctx.api_dir)
        except OSError as e:
            raise GenerationError(f"failed to walk API directory {ctx.api_dir}: {e}") from e

        all_records: List[ImplementationRecord] = []
        for api_package, filenames in packages.items():
            plan = self.plan_package(api_package, filenames)
            if plan is None:
                continue
            report.packages += 1
            report.contracts += len(plan.records)
            all_records.extend(plan.records)
            for result in plan.results:
                report.files.append(self.write(result.path, result.text, result))

        if all_records:
            report.registry = self.write_registry(all_records)
        return report

    def plan_package(self, api_package: str, filenames: Sequence[str]) -> Optional[PackagePlan]:
        """
        Render all implementation files of one definition package in memory.

        Returns:
            The plan, or None when the package declares no contracts
        """
        ctx = self.context
        try:
            contracts = self.extractor.extract_package(ctx.root, api_package, filenames)
            if not contracts:
                logger.debug(f"No contracts in {api_package}")
                return None
            logger.debug(f"Parsed {len(contracts)} contract(s) in {api_package}")

            impl_package = compute_implementation_package_path(ctx.api_dir, ctx.impl_dir, api_package)
            records = self.scanner.scan(ctx.root, impl_package, contracts)
            plan = PackagePlan(api_package=api_package, impl_package=impl_package, records=records)

            for filename, file_records in group_by_filename(records).items():
                rel_path = posixpath.join(impl_package, filename)
                full_path = ctx.root / rel_path
                source = full_path.read_bytes() if full_path.is_file() else None
                result = self.merger.merge(rel_path, source, file_records)
                result.text = ctx.formatter.format(result.text, full_path)
                plan.results.append(result)
        except (ImplgenError, OSError) as e:
            raise GenerationError(f"failed to generate package {api_package}: {e}") from e
        return plan

    def write_registry(self, records: Sequence[ImplementationRecord]) -> FileOutcome:
        ctx = self.context
        path = ctx.registry_path
        full_path = ctx.root / path
        try:
            text = self.registry_renderer.render(records, ctx.impl_dir)
            text = ctx.formatter.format(text, full_path)
            original = full_path.read_text(encoding="utf-8") if full_path.is_file() else None
        except (ImplgenError, OSError, UnicodeDecodeError) as e:
            raise GenerationError(f"failed to generate registry file {path}: {e}") from e
        result = MergeResult(path=path, text=text, created=original is None, original=original)
        return self.write(path, text, result)

    def write(self, path: str, text: str, result: MergeResult) -> FileOutcome:
        """Persist a rendered file unless it is unchanged or this is a dry run."""
        if not result.changed:
            status = UNCHANGED
        elif result.created:
            status = CREATED
        else:
            status = UPDATED
        outcome = FileOutcome(
            path=path,
            status=status,
            new_types=result.new_types,
            new_methods=result.new_methods,
        )
        if status == UNCHANGED:
            logger.debug(f"{path} is up to date")
            return outcome
        if self.context.dry_run:
            logger.info(f"Would write {path} ({status})")
            return outcome

        full_path = self.context.root / path
        try:
            full_path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
            full_path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise GenerationError(f"failed to write {path}: {e}") from e
        logger.info(
            f"{'Created' if status == CREATED else 'Updated'} {path} "
            f"({result.new_types} new type(s), {result.new_methods} new method(s))"
        )
        return outcome


def run_generation(
    config: ImplgenConfig,
    formatter: Optional[SourceFormatter] = None,
) -> GenerationReport:
    """Convenience wrapper: build a run context and run it."""
    return GenerationRunner(RunContext(config, formatter=formatter)).run()
