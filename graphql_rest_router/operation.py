"""
GraphQL operation inspection.

This module locates operations inside a GraphQL document and derives the
metadata of their variable definitions. It also builds reduced documents
holding a single operation and the fragments it depends on.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

from graphql import (
    DocumentNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSyntaxError,
    ListTypeNode,
    NonNullTypeNode,
    OperationDefinitionNode,
    SelectionNode,
    TypeNode,
    VariableDefinitionNode,
    get_operation_ast,
    parse,
    value_from_ast_untyped,
)
from graphql.language import ListValueNode, ObjectValueNode, ValueNode, VariableNode

from .exceptions import ConfigurationError, MissingSchemaError, OperationNotFoundError
from .models import OperationVariable, OperationVariableMap

logger = logging.getLogger(__name__)

Schema = Union[str, DocumentNode]


def parse_document(schema: Optional[Schema]) -> DocumentNode:
    """
    Parse a GraphQL document, passing pre-parsed documents through.

    Raises:
        MissingSchemaError: If no document was provided
        ConfigurationError: If the document text cannot be parsed
    """
    if schema is None or (isinstance(schema, str) and not schema.strip()):
        raise MissingSchemaError("A valid schema is required to initialize a Route")

    if isinstance(schema, DocumentNode):
        return schema

    try:
        return parse(schema)
    except GraphQLSyntaxError as e:
        raise ConfigurationError(f"Unable to parse GraphQL document: {e.message}") from e


def find_operation(document: DocumentNode, operation_name: Optional[str] = None) -> OperationDefinitionNode:
    """
    Locate an operation by name, or the sole operation when no name is given.

    Raises:
        OperationNotFoundError: If no matching operation exists
    """
    operation = get_operation_ast(document, operation_name)

    if operation is None:
        if operation_name:
            message = f'The named query "{operation_name}" does not exist in the Schema provided'
        else:
            message = "The Schema provided does not contain a single anonymous operation"
        raise OperationNotFoundError(message, operation_name=operation_name)

    return operation


def _is_required(type_node: TypeNode) -> bool:
    return isinstance(type_node, NonNullTypeNode)


def _is_array(type_node: TypeNode) -> bool:
    if isinstance(type_node, NonNullTypeNode):
        return _is_array(type_node.type)

    return isinstance(type_node, ListTypeNode)


def _named_type(type_node: TypeNode) -> str:
    while isinstance(type_node, (NonNullTypeNode, ListTypeNode)):
        type_node = type_node.type

    return type_node.name.value


def _default_value(value_node: Optional[ValueNode]) -> object:
    # List, object and variable defaults are not evaluated.
    if value_node is None or isinstance(value_node, (ListValueNode, ObjectValueNode, VariableNode)):
        return None

    return value_from_ast_untyped(value_node)


def describe_variable(node: VariableDefinitionNode) -> OperationVariable:
    """Derive :class:`OperationVariable` metadata from a variable definition."""
    return OperationVariable(
        name=node.variable.name.value,
        type=_named_type(node.type),
        required=_is_required(node.type),
        is_array=_is_array(node.type),
        default_value=_default_value(node.default_value),
    )


def get_operation_variables(operation: OperationDefinitionNode) -> OperationVariableMap:
    """Build the variable map of an operation, keyed by variable name."""
    variables: OperationVariableMap = {}

    for node in operation.variable_definitions or ():
        variable = describe_variable(node)
        variables[variable.name] = variable

    return variables


def resolve_operation(document: Schema, operation_name: Optional[str] = None) -> OperationVariableMap:
    """
    Resolve the variable definitions of an operation within a document.

    Args:
        document: GraphQL document text or parsed document
        operation_name: Operation to look up; the sole operation if omitted

    Returns:
        Mapping of variable name to :class:`OperationVariable`
    """
    return get_operation_variables(find_operation(parse_document(document), operation_name))


def build_optimized_document(document: DocumentNode, operation_name: Optional[str] = None) -> DocumentNode:
    """
    Build a document holding only one operation and the fragments it uses.

    Fragments are collected transitively. The full document is returned when
    the operation has no selections.
    """
    operation = find_operation(document, operation_name)

    if not operation.selection_set or not operation.selection_set.selections:
        return document

    fragments: Dict[str, FragmentDefinitionNode] = {
        definition.name.value: definition
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }
    used: Dict[str, FragmentDefinitionNode] = {}

    def collect(selections: Iterable[SelectionNode]) -> None:
        for selection in selections:
            if isinstance(selection, FragmentSpreadNode):
                name = selection.name.value
                if name not in used and name in fragments:
                    used[name] = fragments[name]
                    collect(fragments[name].selection_set.selections)

            selection_set = getattr(selection, "selection_set", None)
            if selection_set and selection_set.selections:
                collect(selection_set.selections)

    collect(operation.selection_set.selections)

    definitions: List[Union[FragmentDefinitionNode, OperationDefinitionNode]] = list(used.values())
    definitions.append(operation)

    logger.debug(
        "Optimized document for %s keeps %d fragment(s)", operation_name or "<anonymous>", len(used)
    )

    return DocumentNode(definitions=tuple(definitions))
