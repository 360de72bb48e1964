"""
End-to-end tests for generation runs over the sample project.
"""

import pytest

from implgen.config import GenerationConfig, ImplgenConfig, PathsConfig
from implgen.errors import GenerationError
from implgen.models import ImplementationRecord
from implgen.parsing.contracts import ContractExtractor
from implgen.parsing.implementations import ImplementationScanner
from implgen.runner import (
    CREATED,
    UNCHANGED,
    UPDATED,
    GenerationRunner,
    RunContext,
    group_by_filename,
    run_generation,
)
from implgen.synthesis.formatter import SourceFormatter


class RecordingFormatter(SourceFormatter):
    """Formatter stand-in that records which files it saw."""

    def __init__(self):
        self.paths = []

    def format(self, source, path=None):
        self.paths.append(path)
        return source


def outcomes(report):
    return {o.path: o for o in report.files}


class TestGenerationRunner:
    """Tests for GenerationRunner.run."""

    def test_first_run(self, config, sample_project):
        """Test that new and partial implementations are generated with the registry."""
        report = run_generation(config)
        files = outcomes(report)

        assert report.packages == 1
        assert report.contracts == 3
        assert files["internal/waltuh/another_impl.go"].status == CREATED
        assert files["internal/waltuh/b_impl.go"].status == CREATED
        assert files["internal/waltuh/repository_impl.go"].status == UPDATED
        assert files["internal/waltuh/repository_impl.go"].new_methods == 6
        assert report.registry.path == "internal/repositories.go"
        assert report.registry.status == CREATED
        assert report.new_types == 2
        assert report.new_methods == 3 + 6

        another = (sample_project / "internal/waltuh/another_impl.go").read_text()
        assert "func (r *anotherRepositoryImpl) B(ctx context.Context) (err error) {" in another
        registry = (sample_project / "internal/repositories.go").read_text()
        assert "\twaltuhimpl.Options,\n\twaltuhimpl.AnotherOptions,\n\twaltuhimpl.BOptions,\n" in registry

    def test_second_run_is_unchanged(self, config, sample_project):
        """Test that generation is idempotent."""
        run_generation(config)
        snapshot = {p: p.read_text() for p in sample_project.rglob("*.go")}

        report = run_generation(config)

        assert all(o.status == UNCHANGED for o in report.files)
        assert report.registry.status == UNCHANGED
        assert report.changed_files() == []
        assert {p: p.read_text() for p in sample_project.rglob("*.go")} == snapshot

    def test_every_contract_method_is_implemented(self, config, sample_project, parser):
        """Test that after a run no contract method is missing."""
        run_generation(config)

        contracts = ContractExtractor(parser).extract_package(
            sample_project, "api/waltuh", ["another.go", "repository.go"]
        )
        for record in ImplementationScanner(parser).scan(sample_project, "internal/waltuh", contracts):
            assert not record.is_new_type
            assert set(record.contract.method_names()) <= record.existing_method_names

    def test_new_contract_method(self, config, sample_project):
        """Test that a method added to a contract is appended on the next run."""
        run_generation(config)
        api_file = sample_project / "api/waltuh/another.go"
        api_file.write_text(api_file.read_text().replace("\tC() (string, error)\n", "\tC() (string, error)\n\tD(w *Waltuh)\n"))

        report = run_generation(config)
        files = outcomes(report)

        assert files["internal/waltuh/another_impl.go"].status == UPDATED
        assert files["internal/waltuh/another_impl.go"].new_methods == 1
        text = (sample_project / "internal/waltuh/another_impl.go").read_text()
        assert text.rstrip().endswith('panic("TODO: implement waltuh.AnotherRepository.D")\n}')
        assert "D(w *waltuh.Waltuh) {" in text

    def test_dry_run_writes_nothing(self, sample_project):
        config = ImplgenConfig(
            paths_settings=PathsConfig(root=str(sample_project)),
            generation_settings=GenerationConfig(formatter="none", dry_run=True),
        )
        before = (sample_project / "internal/waltuh/repository_impl.go").read_text()

        report = run_generation(config)

        assert report.dry_run
        assert len(report.changed_files()) == 4
        assert not (sample_project / "internal/waltuh/another_impl.go").exists()
        assert not (sample_project / "internal/repositories.go").exists()
        assert (sample_project / "internal/waltuh/repository_impl.go").read_text() == before

    def test_missing_implementation_tree(self, config, sample_project):
        """Test that implementation directories are created."""
        for path in (sample_project / "internal/waltuh").iterdir():
            path.unlink()
        (sample_project / "internal/waltuh").rmdir()
        (sample_project / "internal").rmdir()

        report = run_generation(config)

        assert {o.status for o in report.files} == {CREATED}
        assert (sample_project / "internal/waltuh/repository_impl.go").is_file()
        assert (sample_project / "internal/repositories.go").is_file()

    def test_formatter_sees_absolute_paths(self, config, sample_project):
        formatter = RecordingFormatter()
        GenerationRunner(RunContext(config, formatter=formatter)).run()

        assert sample_project.resolve() / "internal/repositories.go" in formatter.paths
        assert all(p.is_absolute() for p in formatter.paths)

    def test_package_without_contracts_is_skipped(self, config, sample_project):
        (sample_project / "api/util").mkdir()
        (sample_project / "api/util/util.go").write_text("package util\n\nfunc Helper() {}\n")

        report = run_generation(config)

        assert report.packages == 1
        assert not (sample_project / "internal/util").exists()

    def test_parse_error_names_package_and_file(self, config, sample_project):
        (sample_project / "api/broken").mkdir()
        (sample_project / "api/broken/broken.go").write_text(
            "package broken\n\ntype XRepository interface {\n\tA(\n}\n"
        )

        with pytest.raises(GenerationError, match="api/broken") as excinfo:
            run_generation(config)

        assert "api/broken/broken.go" in str(excinfo.value)

    def test_invalid_utf8_names_package_and_file(self, config, sample_project):
        impl = sample_project / "internal/waltuh/repository_impl.go"
        impl.write_bytes(impl.read_bytes().replace(b"Heisenberg", b"Heisen\xffberg"))

        with pytest.raises(GenerationError, match="api/waltuh") as excinfo:
            run_generation(config)

        assert "internal/waltuh/repository_impl.go" in str(excinfo.value)
        assert "invalid UTF-8" in str(excinfo.value)
        assert not (sample_project / "internal/repositories.go").exists()

    def test_contract_with_commented_parameters(self, config, sample_project):
        (sample_project / "api/notes").mkdir()
        (sample_project / "api/notes/notes.go").write_text(
            "package notes\n\nimport \"context\"\n\n"
            "type NoteRepository interface {\n"
            "\tSave(\n\t\tctx context.Context, // request scope\n\t\tbody string, // note\n\t) error\n"
            "}\n"
        )

        run_generation(config)

        text = (sample_project / "internal/notes/note_impl.go").read_text()
        assert "Save(ctx context.Context, body string) (err error) {" in text
        assert '.Start(ctx, "Note.Save")' in text

    def test_missing_api_directory(self, sample_project):
        config = ImplgenConfig(
            paths_settings=PathsConfig(root=str(sample_project), api_dir="contracts"),
            generation_settings=GenerationConfig(formatter="none"),
        )
        with pytest.raises(GenerationError, match="contracts"):
            run_generation(config)


class TestGroupByFilename:
    """Tests for grouping records by destination file."""

    def test_preserves_first_seen_order(self, another_contract, bare_contract):
        records = [
            ImplementationRecord(bare_contract, "p", "d", "b.go"),
            ImplementationRecord(another_contract, "p", "d", "a.go"),
            ImplementationRecord(another_contract, "p", "d", "b.go"),
        ]
        grouped = group_by_filename(records)

        assert list(grouped) == ["b.go", "a.go"]
        assert len(grouped["b.go"]) == 2
