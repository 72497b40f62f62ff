# Copyright 2021-present Kensho Technologies, LLC.
from typing import Any, Dict, List, Mapping, Optional, Tuple

from graphql import GraphQLIncludeDirective, GraphQLSkipDirective
from graphql.error import GraphQLSyntaxError
from graphql.execution.values import get_directive_values
from graphql.language.ast import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    OperationDefinitionNode,
    OperationType,
    SelectionNode,
    SelectionSetNode,
)
from graphql.language.parser import parse
from graphql.pyutils import Undefined
from graphql.utilities import value_from_ast_untyped

from .exceptions import GraphQLCompilationError, GraphQLParsingError


def get_ast_field_name(ast: FieldNode) -> str:
    """Return the field name for the given AST node."""
    return ast.name.value


def get_ast_field_alias(ast: FieldNode) -> str:
    """Return the name the field's value is output under: its alias if it has one, or its name."""
    if ast.alias is not None:
        return ast.alias.value
    return get_ast_field_name(ast)


def safe_parse_graphql(graphql_string: str) -> DocumentNode:
    """Return an AST representation of the given GraphQL input, reraising GraphQL library errors."""
    try:
        ast = parse(graphql_string)
    except GraphQLSyntaxError as e:
        raise GraphQLParsingError(e) from e

    return ast


def get_only_query_definition(
    document_ast: DocumentNode,
) -> Tuple[OperationDefinitionNode, Dict[str, FragmentDefinitionNode]]:
    """Return the document's single query definition, and its fragment definitions by name."""
    if not isinstance(document_ast, DocumentNode) or not document_ast.definitions:
        raise AssertionError(
            'Received an unexpected value for "document_ast": {}'.format(document_ast)
        )

    operations = [
        definition
        for definition in document_ast.definitions
        if isinstance(definition, OperationDefinitionNode)
    ]
    fragments = {
        definition.name.value: definition
        for definition in document_ast.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }

    if len(operations) != 1:
        raise GraphQLCompilationError(
            "Expected exactly one operation definition within GraphQL input, but found {}. "
            "This is not supported.".format(len(operations))
        )

    definition_ast = operations[0]
    if definition_ast.operation != OperationType.QUERY:
        raise GraphQLCompilationError(
            'Expected a GraphQL document with a single query definition, but instead found a "{}" '
            "operation. This is not supported.".format(definition_ast.operation.value)
        )

    return definition_ast, fragments


def _is_selection_included(ast: SelectionNode, variables: Mapping[str, Any]) -> bool:
    """Return False if the selection is excluded by a @skip or @include directive."""
    skip_arguments = get_directive_values(GraphQLSkipDirective, ast, variables)
    if skip_arguments is not None and skip_arguments["if"] is True:
        return False
    include_arguments = get_directive_values(GraphQLIncludeDirective, ast, variables)
    if include_arguments is not None and include_arguments["if"] is False:
        return False
    return True


def collect_field_nodes(
    selection_set: Optional[SelectionSetNode],
    fragments: Mapping[str, FragmentDefinitionNode],
    variables: Mapping[str, Any],
) -> List[FieldNode]:
    """Return the fields of the selection set, with fragment spreads and inline fragments flattened.

    All object types are concrete, so type conditions on fragments are not checked here; the
    document has already been validated against the schema.
    """
    if selection_set is None:
        return []

    field_nodes: List[FieldNode] = []
    for selection in selection_set.selections:
        if not _is_selection_included(selection, variables):
            continue

        if isinstance(selection, FieldNode):
            field_nodes.append(selection)
        elif isinstance(selection, InlineFragmentNode):
            field_nodes.extend(collect_field_nodes(selection.selection_set, fragments, variables))
        elif isinstance(selection, FragmentSpreadNode):
            fragment = fragments[selection.name.value]
            field_nodes.extend(collect_field_nodes(fragment.selection_set, fragments, variables))
        else:
            raise AssertionError(
                "Unexpected selection type {}: {}".format(type(selection).__name__, selection)
            )
    return field_nodes


def get_field_arguments(ast: FieldNode, variables: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the raw values of the field's arguments, with variables substituted."""
    arguments: Dict[str, Any] = {}
    for argument in ast.arguments or ():
        value = value_from_ast_untyped(argument.value, variables)
        if value is not Undefined:
            arguments[argument.name.value] = value
    return arguments
