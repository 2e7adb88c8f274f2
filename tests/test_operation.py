"""
Tests for GraphQL operation inspection.
"""

import pytest
from graphql import parse, print_ast

from graphql_rest_router.exceptions import ConfigurationError, MissingSchemaError, OperationNotFoundError
from graphql_rest_router.operation import (
    build_optimized_document,
    find_operation,
    parse_document,
    resolve_operation,
)


class TestParseDocument:
    """Test document parsing."""

    def test_parses_text(self, schema):
        """Test that document text is parsed."""
        document = parse_document(schema)

        assert len(document.definitions) == 8

    def test_passes_parsed_documents_through(self, schema):
        """Test that parsed documents are returned as-is."""
        document = parse(schema)

        assert parse_document(document) is document

    @pytest.mark.parametrize("schema", [None, "", "   \n"])
    def test_missing_schema(self, schema):
        """Test that an absent document is a configuration error."""
        with pytest.raises(MissingSchemaError):
            parse_document(schema)

    def test_syntax_error(self):
        """Test that unparsable documents are configuration errors."""
        with pytest.raises(ConfigurationError, match="Unable to parse GraphQL document"):
            parse_document("query GetUser($id: ID!) { user(id: $id) {")


class TestFindOperation:
    """Test operation lookup."""

    def test_named_operation(self, schema):
        """Test finding an operation by name."""
        operation = find_operation(parse(schema), "CreateUser")

        assert operation.name.value == "CreateUser"
        assert operation.operation.value == "mutation"

    def test_unknown_operation(self, schema):
        """Test that unknown names raise with the operation name attached."""
        with pytest.raises(OperationNotFoundError) as exc_info:
            find_operation(parse(schema), "DeleteUser")

        assert exc_info.value.operation_name == "DeleteUser"
        assert str(exc_info.value) == 'The named query "DeleteUser" does not exist in the Schema provided'

    def test_sole_anonymous_operation(self):
        """Test that the only operation is used when no name is given."""
        operation = find_operation(parse("{ viewer { id } }"))

        assert operation.name is None

    def test_no_name_with_several_operations(self, schema):
        """Test that omitting the name is ambiguous with several operations."""
        with pytest.raises(OperationNotFoundError):
            find_operation(parse(schema))


class TestResolveOperation:
    """Test variable metadata derivation."""

    def test_required_scalar(self, schema):
        """Test a required scalar variable."""
        variables = resolve_operation(schema, "GetUserById")

        assert list(variables) == ["id"]
        assert variables["id"].type == "ID"
        assert variables["id"].required is True
        assert variables["id"].is_array is False
        assert variables["id"].default_value is None

    def test_variable_shapes(self, schema):
        """Test optional, defaulted, list and custom typed variables."""
        variables = resolve_operation(schema, "SearchUsers")

        assert list(variables) == ["query", "page", "limit", "active", "tags", "filter"]
        assert variables["query"].required is False
        assert variables["page"].default_value == 1
        assert variables["limit"].required is True
        assert variables["tags"].is_array is True
        assert variables["tags"].type == "String"
        assert variables["filter"].type == "UserFilter"

    def test_required_list(self):
        """Test that non-null lists are both required and arrays."""
        variables = resolve_operation("query Users($ids: [ID!]!) { users(ids: $ids) { id } }")

        assert variables["ids"].required is True
        assert variables["ids"].is_array is True
        assert variables["ids"].type == "ID"

    def test_list_default_is_not_evaluated(self):
        """Test that list defaults are not turned into values."""
        variables = resolve_operation('query Users($tags: [String] = ["a"]) { users(tags: $tags) { id } }')

        assert variables["tags"].default_value is None

    def test_scalar_defaults(self):
        """Test that scalar defaults are evaluated."""
        variables = resolve_operation(
            'query Users($name: String = "ada", $active: Boolean = false) { users { id } }'
        )

        assert variables["name"].default_value == "ada"
        assert variables["active"].default_value is False

    def test_no_variables(self):
        """Test operations without variables."""
        assert resolve_operation("query Viewer { viewer { id } }", "Viewer") == {}


class TestBuildOptimizedDocument:
    """Test reduced document construction."""

    def test_keeps_operation_and_used_fragments(self, schema):
        """Test that only the operation and its transitive fragments remain."""
        printed = print_ast(build_optimized_document(parse(schema), "GetUserById"))

        assert "query GetUserById" in printed
        assert "fragment UserFields" in printed
        assert "fragment UserContact" in printed
        assert "PostFields" not in printed
        assert "CreateUser" not in printed
        assert "SearchUsers" not in printed

    def test_operation_without_fragments(self, schema):
        """Test an operation that spreads no fragments."""
        document = build_optimized_document(parse(schema), "SearchUsers")

        assert len(document.definitions) == 1
        assert document.definitions[0].name.value == "SearchUsers"

    def test_result_is_parseable(self, schema):
        """Test that the printed document parses again."""
        printed = print_ast(build_optimized_document(parse(schema), "CreateUser"))

        assert len(parse(printed).definitions) == 3
