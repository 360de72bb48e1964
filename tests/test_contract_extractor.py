"""
Tests for contract extraction from Go definition files.
"""

import pytest

from implgen.errors import GenerationError, NoPackageDeclarationError, ParameterListError, SourceParseError
from implgen.models import Import, Parameter
from implgen.parsing.contracts import (
    CONTRACT_CAPTURE,
    METHOD_CAPTURE,
    PACKAGE_CAPTURE,
    PARAMS_CAPTURE,
    RESULT_CAPTURE,
    ContractExtractor,
    reduce_capture_stream,
)
from implgen.parsing.go_parser import CaptureEvent


def event(name, text, start):
    return CaptureEvent(name=name, text=text, start_byte=start, end_byte=start + len(text))


class TestReduceCaptureStream:
    """Tests for regrouping the flat capture stream."""

    def test_groups_methods_under_contracts(self):
        """Test that methods attach to the most recent contract."""
        events = [
            event(PACKAGE_CAPTURE, "waltuh", 8),
            event(CONTRACT_CAPTURE, "FooRepository", 20),
            event(METHOD_CAPTURE, "A", 50),
            event(PARAMS_CAPTURE, "()", 51),
            event(RESULT_CAPTURE, "error", 54),
            event(CONTRACT_CAPTURE, "BarRepository", 80),
            event(METHOD_CAPTURE, "B", 110),
            event(PARAMS_CAPTURE, "(id string)", 111),
        ]
        package, contracts = reduce_capture_stream(events)

        assert package == "waltuh"
        assert [c.name for c in contracts] == ["FooRepository", "BarRepository"]
        assert contracts[0].method_names() == ["A"]
        assert contracts[0].methods[0].returns == [Parameter(type="error")]
        assert contracts[1].methods[0].parameters == [Parameter("id", "string")]

    def test_repeated_captures_are_skipped(self):
        """Test that one capture per match does not duplicate contracts or methods."""
        events = [
            event(PACKAGE_CAPTURE, "waltuh", 8),
            event(CONTRACT_CAPTURE, "FooRepository", 20),
            event(CONTRACT_CAPTURE, "FooRepository", 20),
            event(METHOD_CAPTURE, "A", 50),
            event(PARAMS_CAPTURE, "()", 51),
            event(CONTRACT_CAPTURE, "FooRepository", 20),
            event(METHOD_CAPTURE, "A", 50),
            event(METHOD_CAPTURE, "B", 70),
        ]
        _, contracts = reduce_capture_stream(events)

        assert len(contracts) == 1
        assert contracts[0].method_names() == ["A", "B"]

    def test_captures_before_contract_are_ignored(self):
        """Test that stray method captures without a contract are dropped."""
        events = [event(METHOD_CAPTURE, "A", 1), event(PARAMS_CAPTURE, "()", 2)]
        package, contracts = reduce_capture_stream(events)

        assert package is None
        assert contracts == []

    def test_unknown_capture_is_logged(self, caplog):
        """Test that an unexpected capture name is reported."""
        events = [event(CONTRACT_CAPTURE, "FooRepository", 1), event("surprise", "x", 5)]
        reduce_capture_stream(events)

        assert "Unhandled capture 'surprise'" in caplog.text


class TestContractExtractor:
    """Tests for ContractExtractor against real Go sources."""

    @pytest.fixture
    def extractor(self, parser):
        return ContractExtractor(parser)

    def test_sample_definition_file(self, extractor, sample_project):
        """Test extraction of every contract and method in declaration order."""
        source = (sample_project / "api/waltuh/repository.go").read_bytes()
        contracts = extractor.extract(source, "api/waltuh/repository.go")

        assert [c.name for c in contracts] == ["Repository", "BRepository"]
        repository, b_repository = contracts
        assert repository.package_name == "waltuh"
        assert repository.method_names() == [
            "MakeBreakfast",
            "SynthesizeMeth",
            "MakeMoney",
            "DropWaltJrOffAtSchool",
            "KillKrazy8",
            "Get",
            "Nope",
        ]
        assert b_repository.methods == []
        assert repository.imports == [Import("context")]

    def test_grouped_and_multiple_returns(self, extractor, sample_project):
        """Test parameters sharing a type and parenthesized results."""
        source = (sample_project / "api/waltuh/repository.go").read_bytes()
        repository = extractor.extract(source)[0]
        methods = {m.name: m for m in repository.methods}

        assert methods["MakeBreakfast"].parameters == [
            Parameter("birthday", "int"),
            Parameter("kilograms", "int"),
        ]
        assert methods["MakeBreakfast"].returns == [Parameter(type="Waltuh")]
        assert methods["MakeMoney"].returns == [Parameter(type="int"), Parameter(type="error")]
        assert methods["Nope"].parameters == []
        assert methods["Nope"].returns == []

    def test_mixed_grouping(self, extractor):
        """Test that a shared type applies only to the names before it."""
        source = b"package p\n\ntype FooRepository interface {\n\tF(a, b bool, c int) (n int, err error)\n}\n"
        method = extractor.extract(source)[0].methods[0]

        assert method.parameters == [
            Parameter("a", "bool"),
            Parameter("b", "bool"),
            Parameter("c", "int"),
        ]
        assert method.returns == [Parameter("n", "int"), Parameter("err", "error")]

    def test_only_interfaces_with_suffix(self, extractor):
        """Test that structs and other interfaces are not contracts."""
        source = (
            b"package p\n\n"
            b"type FooRepository struct{}\n\n"
            b"type Reader interface {\n\tRead() error\n}\n\n"
            b"type UserRepository interface {\n\tGet(id string) (*User, error)\n}\n"
        )
        contracts = extractor.extract(source)

        assert [c.name for c in contracts] == ["UserRepository"]
        assert contracts[0].methods[0].returns == [Parameter(type="*User"), Parameter(type="error")]

    def test_multiline_parameters_with_trailing_comma(self, extractor):
        """Test a parameter list split over several lines."""
        source = (
            b"package p\n\nimport \"context\"\n\n"
            b"type FooRepository interface {\n"
            b"\tSave(\n\t\tctx context.Context,\n\t\tvalues map[string][]int,\n\t) error\n"
            b"}\n"
        )
        method = extractor.extract(source)[0].methods[0]

        assert method.parameters == [
            Parameter("ctx", "context.Context"),
            Parameter("values", "map[string][]int"),
        ]

    def test_comments_inside_parameter_lists(self, extractor):
        """Test that line, trailing and block comments never become parameters."""
        source = (
            b"package p\n\nimport \"context\"\n\n"
            b"type FooRepository interface {\n"
            b"\tGet(\n\t\tctx context.Context, // request scope\n\t\tid string,\n\t) error\n"
            b"\tPut(id string, // note\n\t) error\n"
            b"\tFind(ctx context.Context /* scope */, name /* key */ string) (int /* count */, error)\n"
            b"}\n"
        )
        methods = {m.name: m for m in extractor.extract(source)[0].methods}

        assert methods["Get"].parameters == [Parameter("ctx", "context.Context"), Parameter("id", "string")]
        assert methods["Put"].parameters == [Parameter("id", "string")]
        assert methods["Find"].parameters == [Parameter("ctx", "context.Context"), Parameter("name", "string")]
        assert methods["Find"].returns == [Parameter(type="int"), Parameter(type="error")]
        assert methods["Find"].has_context

    def test_invalid_utf8_carries_path_and_line(self, extractor):
        """Test that undecodable sources are rejected with their location."""
        with pytest.raises(SourceParseError, match="api/p/foo.go:2: invalid UTF-8"):
            extractor.extract(b"package p\n// caf\xe9\n", "api/p/foo.go")

    def test_file_without_contracts(self, extractor):
        """Test that a file without contracts yields nothing."""
        assert extractor.extract(b"package p\n\nfunc main() {}\n") == []

    def test_missing_package_clause(self, extractor):
        """Test that a file without a package clause is rejected."""
        with pytest.raises(NoPackageDeclarationError, match="no package name found"):
            extractor.extract(b"type FooRepository interface{}\n", "api/p/foo.go")

    def test_syntax_error_carries_path(self, extractor):
        """Test that malformed sources name the offending file."""
        with pytest.raises(SourceParseError, match="api/p/foo.go"):
            extractor.extract(b"package p\n\ntype FooRepository interface {\n\tA(\n}\n", "api/p/foo.go")

    def test_parameter_error_carries_path(self, extractor, monkeypatch):
        """Test that parameter list errors are re-raised with the file path."""

        def broken(_src):
            raise ParameterListError("parameters without a type")

        monkeypatch.setattr("implgen.parsing.contracts.parse_parameter_list", broken)
        source = b"package p\n\ntype FooRepository interface {\n\tA(x int)\n}\n"
        with pytest.raises(ParameterListError, match="api/p/foo.go"):
            extractor.extract(source, "api/p/foo.go")

    def test_extract_package(self, extractor, sample_project):
        """Test extraction over all files of a package."""
        contracts = extractor.extract_package(
            sample_project, "api/waltuh", ["another.go", "repository.go"]
        )

        assert [c.name for c in contracts] == ["AnotherRepository", "Repository", "BRepository"]
        assert contracts[0].definition_filename == "another.go"
        assert contracts[0].definition_path == "api/waltuh/another.go"
        assert all(c.package_path == "api/waltuh" for c in contracts)

    def test_extract_package_missing_file(self, extractor, sample_project):
        """Test that unreadable files are reported with their path."""
        with pytest.raises(GenerationError, match="api/waltuh/missing.go"):
            extractor.extract_package(sample_project, "api/waltuh", ["missing.go"])
