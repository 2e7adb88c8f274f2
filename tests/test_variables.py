"""
Tests for variable partitioning, coercion and assembly.
"""

import pytest

from graphql_rest_router.models import OperationVariable
from graphql_rest_router.operation import resolve_operation
from graphql_rest_router.variables import (
    assemble,
    attempt_json_parse,
    body_variables,
    clean_path,
    coerce,
    coerce_all,
    path_variable_names,
    path_variables,
    query_variables,
    required_variables,
)


def _names(variables):
    return [variable.name for variable in variables]


class TestPaths:
    """Test path helpers."""

    @pytest.mark.parametrize(
        "path,expected",
        [("user", "/user"), ("/user", "/user"), ("", "/"), ("GetUserById", "/GetUserById")],
    )
    def test_clean_path(self, path, expected):
        """Test that paths always start with a slash."""
        assert clean_path(path) == expected

    def test_path_variable_names(self):
        """Test placeholder extraction."""
        assert path_variable_names("/user/:userId/posts/:post_id") == ["userId", "post_id"]
        assert path_variable_names("/users") == []


class TestPartitioning:
    """Test variable partitioning between path, query and body."""

    def test_get_route(self, schema):
        """Test that GET routes take non-path variables from the query string."""
        variables = resolve_operation(schema, "GetPosts")

        assert _names(path_variables("/user/:userId/posts", variables)) == ["userId"]
        assert _names(query_variables("/user/:userId/posts", "get", variables)) == ["first"]
        assert body_variables("/user/:userId/posts", "get", variables) == []

    def test_post_route(self, schema):
        """Test that other methods take non-path variables from the body."""
        variables = resolve_operation(schema, "GetPosts")

        assert query_variables("/user/:userId/posts", "post", variables) == []
        assert _names(body_variables("/user/:userId/posts", "post", variables)) == ["first"]

    def test_unknown_placeholders_are_ignored(self, schema):
        """Test that placeholders naming no variable bind nothing."""
        variables = resolve_operation(schema, "GetUserById")

        assert path_variables("/org/:orgId/user", variables) == []


class TestCoerce:
    """Test raw value coercion."""

    @pytest.mark.parametrize(
        "value,type_name,expected",
        [
            ("42", "Int", 42),
            ("-3", "Int", -3),
            ("true", "Boolean", True),
            ("false", "Boolean", True),
            ("", "Boolean", False),
            ("abc", "String", "abc"),
            ("42", "String", "42"),
            ("abc", "Custom", "abc"),
            ('{"a":1}', "Custom", {"a": 1}),
            ("1.5", "Float", 1.5),
            ("7", "ID", 7),
        ],
    )
    def test_scalar_types(self, value, type_name, expected):
        """Test coercion by declared type."""
        assert coerce(value, OperationVariable(name="v", type=type_name)) == expected

    def test_invalid_int_passes_through(self):
        """Test that unparsable integers are returned unchanged."""
        assert coerce("4.5", OperationVariable(name="v", type="Int")) == "4.5"
        assert coerce("abc", OperationVariable(name="v", type="Int")) == "abc"

    def test_arrays_use_json(self):
        """Test that list variables are JSON decoded whatever their item type."""
        variable = OperationVariable(name="v", type="String", is_array=True)

        assert coerce('["a","b"]', variable) == ["a", "b"]

    def test_unknown_variable_uses_json(self):
        """Test values without a variable definition."""
        assert coerce("[1,2]") == [1, 2]
        assert coerce("plain") == "plain"

    def test_non_strings_pass_through(self):
        """Test that already typed values are untouched."""
        variable = OperationVariable(name="v", type="Int")

        assert coerce(5, variable) == 5
        assert coerce(None, variable) is None

    def test_coerce_all(self, schema):
        """Test coercing a mapping of raw values."""
        variables = resolve_operation(schema, "SearchUsers")

        assert coerce_all({"limit": "10", "query": "ada", "extra": "null"}, variables) == {
            "limit": 10,
            "query": "ada",
            "extra": None,
        }

    def test_attempt_json_parse(self):
        """Test best-effort JSON decoding."""
        assert attempt_json_parse('{"a": [1]}') == {"a": [1]}
        assert attempt_json_parse("{oops") == "{oops"


class TestAssemble:
    """Test variable assembly."""

    def test_precedence(self, schema):
        """Test default < provided < static."""
        variables = resolve_operation(schema, "SearchUsers")

        result = assemble(
            {"query": "provided", "limit": 50},
            variables,
            default_variables={"query": "default", "active": True},
            static_variables={"limit": 10},
        )

        assert result.variables == {"query": "provided", "active": True, "limit": 10}
        assert result.discarded == ["limit"]
        assert result.missing == []
        assert result.is_valid

    def test_missing_required(self, schema):
        """Test that every absent required variable is reported."""
        result = assemble({"after": "c1"}, resolve_operation(schema, "ListComments"))

        assert result.missing == ["postId", "limit"]
        assert not result.is_valid

    def test_defaults_satisfy_required(self, schema):
        """Test that configured defaults count as provided."""
        result = assemble({}, resolve_operation(schema, "GetUserById"), default_variables={"id": "1"})

        assert result.is_valid
        assert result.variables == {"id": "1"}

    def test_required_variables(self, schema):
        """Test that declared defaults exempt variables from being required."""
        variables = resolve_operation("query Q($a: Int!, $b: Int! = 2, $c: Int) { q { id } }")

        assert required_variables(variables) == ["a"]
        assert required_variables(resolve_operation(schema, "ListComments")) == ["postId", "limit"]
