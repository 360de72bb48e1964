"""
Tests for parameter list parsing.

Includes property-based tests over generated parameter lists.
"""

import pytest
from hypothesis import given, strategies as st

from implgen.errors import ParameterListError
from implgen.models import Parameter
from implgen.parsing.contracts import parse_parameter_list, split_top_level

GO_KEYWORDS = {
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
}

TYPES = [
    "int",
    "string",
    "error",
    "bool",
    "context.Context",
    "[]byte",
    "map[string]int",
    "*Waltuh",
    "[]*waltuh.Waltuh",
    "chan int",
    "func(a, b int) error",
    "map[string]func(int) (bool, error)",
]


@st.composite
def identifier_strategy(draw):
    name = draw(st.from_regex(r"[a-z][a-zA-Z0-9]{0,8}", fullmatch=True))
    return name


@st.composite
def named_parameters_strategy(draw):
    names = draw(
        st.lists(
            identifier_strategy().filter(lambda n: n not in GO_KEYWORDS),
            min_size=1,
            max_size=6,
            unique=True,
        )
    )
    return [Parameter(identifier=n, type=draw(st.sampled_from(TYPES))) for n in names]


class TestSplitTopLevel:
    """Tests for bracket-aware splitting."""

    def test_nested_commas_are_kept(self):
        """Test that commas inside brackets do not split."""
        assert split_top_level("f func(a, b int), m map[string]int") == [
            "f func(a, b int)",
            " m map[string]int",
        ]

    def test_empty(self):
        assert split_top_level("") == [""]


class TestParseParameterList:
    """Tests for parse_parameter_list."""

    def test_empty_list(self):
        """Test that an empty list yields no parameters."""
        assert parse_parameter_list("()") == []
        assert parse_parameter_list("") == []

    def test_single_unnamed_result(self):
        """Test a bare result type."""
        assert parse_parameter_list("error") == [Parameter(type="error")]

    def test_unnamed_list(self):
        """Test a parenthesized list of types."""
        assert parse_parameter_list("(int, error)") == [
            Parameter(type="int"),
            Parameter(type="error"),
        ]

    def test_grouped_types(self):
        """Test that preceding names take the next declared type."""
        assert parse_parameter_list("(a, b bool, c int)") == [
            Parameter("a", "bool"),
            Parameter("b", "bool"),
            Parameter("c", "int"),
        ]

    def test_function_type_is_not_named(self):
        """Test that a func type with spaces is treated as an unnamed type."""
        assert parse_parameter_list("(func(a int) error, chan int)") == [
            Parameter(type="func(a int) error"),
            Parameter(type="chan int"),
        ]

    def test_variadic(self):
        """Test a variadic parameter."""
        assert parse_parameter_list("(prefix string, ids ...string)") == [
            Parameter("prefix", "string"),
            Parameter("ids", "...string"),
        ]

    def test_trailing_comma(self):
        """Test that a trailing comma from a multi-line list is ignored."""
        assert parse_parameter_list("(\n\tctx context.Context,\n\tid string,\n)") == [
            Parameter("ctx", "context.Context"),
            Parameter("id", "string"),
        ]

    def test_trailing_untyped_names(self):
        """Test that names after the last type are rejected."""
        with pytest.raises(ParameterListError, match="b"):
            parse_parameter_list("(a int, b)")

    @given(st.lists(st.sampled_from(TYPES), min_size=1, max_size=6))
    def test_unnamed_lists_roundtrip(self, types):
        """Property: a list of bare types parses to unnamed parameters in order."""
        params = parse_parameter_list("(" + ", ".join(types) + ")")
        assert params == [Parameter(type=t) for t in types]

    @given(named_parameters_strategy())
    def test_named_lists_roundtrip(self, expected):
        """Property: a fully named list parses back to the same parameters."""
        src = ", ".join(f"{p.identifier} {p.type}" for p in expected)
        assert parse_parameter_list(f"({src})") == expected

    @given(named_parameters_strategy())
    def test_grouped_lists_expand(self, expected):
        """Property: grouping adjacent names of the same type is transparent."""
        parts = []
        for i, param in enumerate(expected):
            following = expected[i + 1] if i + 1 < len(expected) else None
            if following is not None and following.type == param.type:
                parts.append(param.identifier)
            else:
                parts.append(f"{param.identifier} {param.type}")
        assert parse_parameter_list(", ".join(parts)) == expected
