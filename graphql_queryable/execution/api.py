# Copyright 2021-present Kensho Technologies, LLC.
"""Execution of named queries and GraphQL request documents against a completed schema."""
from collections import OrderedDict
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Sequence, Tuple

from graphql import validate
from graphql.language.ast import FieldNode, FragmentDefinitionNode

from ..ast_manipulation import (
    collect_field_nodes,
    get_ast_field_alias,
    get_ast_field_name,
    get_field_arguments,
    get_only_query_definition,
    safe_parse_graphql,
)
from ..exceptions import (
    GraphQLCompilationError,
    GraphQLSchemaLifecycleError,
    GraphQLValidationError,
)
from ..expression_tree import evaluate_lambda_with_arguments
from ..schema import ROOT_QUERY_TYPE_NAME, TYPENAME_META_FIELD_NAME
from .composition import FieldSelection, compose_query_expression
from .materialization import materialize_post_fields


if TYPE_CHECKING:
    from ..schema.schema import QueryableSchema


logger = logging.getLogger(__name__)


def _ensure_completed(schema: "QueryableSchema") -> None:
    if not schema.completed:
        raise GraphQLSchemaLifecycleError(
            "The schema must be completed before its queries can be executed."
        )


def _run_query(
    schema: "QueryableSchema",
    context: Any,
    query_name: str,
    arguments: Optional[Mapping[str, Any]],
    selections: Sequence[FieldSelection],
    offset: Optional[int],
    limit: Optional[int],
) -> Any:
    """Compose the named query with the selected fields, and evaluate it against the context."""
    query = schema.find_query(query_name)
    if query is None:
        raise GraphQLCompilationError(
            "The schema has no query named {}. Available queries: {}".format(
                query_name, [query.name for query in schema.queries]
            )
        )

    composed_expression = compose_query_expression(
        schema, query, arguments, selections, offset=offset, limit=limit
    )
    logger.debug("Evaluating query %s.", query_name)
    result = evaluate_lambda_with_arguments(composed_expression, context)
    materialize_post_fields(query.type, result, selections, is_list=query.is_list)
    return result


def execute_query(
    schema: "QueryableSchema",
    query_name: str,
    arguments: Optional[Mapping[str, Any]] = None,
    selections: Sequence[FieldSelection] = (),
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> Any:
    """Execute the named query of the completed schema against a fresh data context.

    Args:
        schema: completed schema
        query_name: name of the query to execute
        arguments: raw values of the query's arguments, by argument name
        selections: the fields to select on the query's values; required for object types
        offset: number of elements to skip; only valid for queries producing sequences
        limit: maximum number of elements to produce; only valid for queries producing sequences

    Returns:
        the projected value of the query: a list of records for queries producing sequences,
        a single record or None for queries producing single values, or a plain value for
        queries producing scalars
    """
    _ensure_completed(schema)
    context = schema.context_factory()
    return _run_query(schema, context, query_name, arguments, selections, offset, limit)


def _convert_field_nodes(
    field_nodes: Sequence[FieldNode],
    fragments: Mapping[str, FragmentDefinitionNode],
    variables: Mapping[str, Any],
) -> Tuple[FieldSelection, ...]:
    """Convert the AST nodes of nested fields into FieldSelections."""
    selections = []
    for field_node in field_nodes:
        field_name = get_ast_field_name(field_node)
        if get_ast_field_alias(field_node) != field_name:
            raise GraphQLCompilationError(
                "Aliases are only supported on the root fields of a query, but field {} is "
                "aliased as {}.".format(field_name, get_ast_field_alias(field_node))
            )
        child_nodes = collect_field_nodes(field_node.selection_set, fragments, variables)
        selections.append(
            FieldSelection(
                field_name,
                get_field_arguments(field_node, variables),
                _convert_field_nodes(child_nodes, fragments, variables),
            )
        )
    return tuple(selections)


def execute_graphql(
    schema: "QueryableSchema", query_string: str, variables: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Execute a GraphQL request document against a fresh data context.

    The document must hold a single query operation, and validate against the schema. Each root
    field of the operation executes the query of the same name, and its result is output under
    the field's alias, if any. All root fields are evaluated against the same data context.

    Args:
        schema: completed schema
        query_string: GraphQL request document
        variables: values of the variables used in the document, by variable name

    Returns:
        dict from root field alias (or name) to the projected value of the query
    """
    _ensure_completed(schema)
    if variables is None:
        variables = {}

    document = safe_parse_graphql(query_string)
    validation_errors = validate(schema.adapter, document)
    if validation_errors:
        raise GraphQLValidationError(
            "The query does not validate against the schema: {}".format(
                [error.message for error in validation_errors]
            )
        )

    operation, fragments = get_only_query_definition(document)
    context = schema.context_factory()

    result: Dict[str, Any] = OrderedDict()
    for field_node in collect_field_nodes(operation.selection_set, fragments, variables):
        output_name = get_ast_field_alias(field_node)
        field_name = get_ast_field_name(field_node)
        if field_name == TYPENAME_META_FIELD_NAME:
            result[output_name] = ROOT_QUERY_TYPE_NAME
            continue

        child_nodes = collect_field_nodes(field_node.selection_set, fragments, variables)
        result[output_name] = _run_query(
            schema,
            context,
            field_name,
            get_field_arguments(field_node, variables),
            _convert_field_nodes(child_nodes, fragments, variables),
            None,
            None,
        )
    return result
