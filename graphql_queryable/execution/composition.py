# Copyright 2021-present Kensho Technologies, LLC.
"""Composition of a query expression with the expressions of the fields selected from it.

Given a query and a tree of field selections, composition produces a single Lambda over the
schema's context parameter. Each selected pre field contributes the body of its
(context, entity) -> value Lambda, with the entity parameter substituted by the element being
projected. The context parameter is left in place: since every field and query expression of
the schema closes over the same context Parameter object, the composed tree refers to one
context value throughout.

Post fields are never part of the composed expression. They are filled in on the evaluated
records by the materialization step.
"""
import logging
from typing import TYPE_CHECKING, Any, Mapping, NamedTuple, Optional, Sequence, Tuple

from ..exceptions import GraphQLCompilationError, GraphQLInvalidArgumentError
from ..expression_tree import (
    BinaryComposition,
    Expression,
    Invocation,
    Lambda,
    Literal,
    NullLiteral,
    Parameter,
    RecordConstruction,
    SequenceOperation,
    TernaryConditional,
    substitute_parameters,
)
from ..schema.descriptors import EntityTypeDescriptor, FieldDescriptor, QueryDescriptor
from .arguments import bind_arguments


if TYPE_CHECKING:
    from ..schema.schema import QueryableSchema


logger = logging.getLogger(__name__)


class FieldSelection(NamedTuple):
    """One selected field: its name, its raw arguments, and the fields selected beneath it."""

    name: str
    arguments: Optional[Mapping[str, Any]] = None
    selections: Tuple["FieldSelection", ...] = ()


def _get_selected_field(
    type_descriptor: EntityTypeDescriptor, selection: FieldSelection
) -> FieldDescriptor:
    field = type_descriptor.find_field(selection.name)
    if field is None:
        raise GraphQLCompilationError(
            "Type {} has no field named {}. Available fields: {}".format(
                type_descriptor.name,
                selection.name,
                [field.name for field in type_descriptor.fields],
            )
        )
    if field.type.is_scalar and selection.selections:
        raise GraphQLCompilationError(
            "Field {} of type {} has the scalar type {}, and cannot have fields selected "
            "beneath it.".format(field.name, type_descriptor.name, field.type.name)
        )
    if not field.type.is_scalar and not selection.selections:
        raise GraphQLCompilationError(
            "Field {} of type {} has the object type {}, and must have at least one field "
            "selected beneath it.".format(field.name, type_descriptor.name, field.type.name)
        )
    return field


def _make_projection_lambda(
    schema: "QueryableSchema",
    type_descriptor: EntityTypeDescriptor,
    selections: Sequence[FieldSelection],
) -> Lambda:
    """Return a Lambda projecting one entity of the type into a record of the selected fields."""
    if not selections:
        raise GraphQLCompilationError(
            "Values of type {} must have at least one field selected.".format(type_descriptor.name)
        )
    if type_descriptor.projection_type is None:
        raise AssertionError(
            "Type {} has no projection type. The schema must be completed before its queries "
            "are composed.".format(type_descriptor.name)
        )

    row_parameter = Parameter(type_descriptor.name[:1].lower() + type_descriptor.name[1:])
    record_fields = []
    seen_names = set()
    for selection in selections:
        field = _get_selected_field(type_descriptor, selection)
        if field.is_post or field.name in seen_names:
            # Post fields are written onto the records after evaluation.
            continue
        seen_names.add(field.name)

        arguments = bind_arguments(schema.scalar_types, field.args_shape, selection.arguments)
        field_expression = field.get_expression(arguments)
        context_parameter = schema.context_parameter
        if field_expression.arity != 2 or field_expression.parameters[0] is not context_parameter:
            raise AssertionError(
                "Expression of field {} of type {} is not a Lambda over the schema's context "
                "parameter and an entity parameter: {}".format(
                    field.name, type_descriptor.name, field_expression
                )
            )

        entity_parameter = field_expression.parameters[1]
        value_expression = substitute_parameters(
            field_expression.body, {entity_parameter: row_parameter}
        )
        record_fields.append(
            (
                field.name,
                _project_value(
                    schema, value_expression, field.type, field.is_list, selection.selections
                ),
            )
        )

    record = RecordConstruction(type_descriptor.projection_type, tuple(record_fields))
    return Lambda((row_parameter,), record)


def _project_value(
    schema: "QueryableSchema",
    value_expression: Expression,
    value_type: EntityTypeDescriptor,
    is_list: bool,
    selections: Sequence[FieldSelection],
) -> Expression:
    """Return the expression projecting the value, or each of its elements, of the given type."""
    if value_type.is_scalar:
        return value_expression

    projection = _make_projection_lambda(schema, value_type, selections)
    if is_list:
        return SequenceOperation("select", value_expression, (projection,))

    # A missing entity is projected as null rather than as a record of nulls.
    row_parameter = projection.parameters[0]
    null_guarded_projection = Lambda(
        (row_parameter,),
        TernaryConditional(
            BinaryComposition("=", row_parameter, NullLiteral), NullLiteral, projection.body
        ),
    )
    return Invocation(null_guarded_projection, (value_expression,))


def compose_query_expression(
    schema: "QueryableSchema",
    query: QueryDescriptor,
    arguments: Optional[Mapping[str, Any]],
    selections: Sequence[FieldSelection],
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> Lambda:
    """Compose the query and the selected fields into one Lambda over the context parameter.

    Args:
        schema: the completed schema the query belongs to
        query: the query to execute
        arguments: raw arguments of the query, or None if it has none
        selections: the fields selected on the query's values
        offset: number of elements to skip; only valid for queries producing sequences
        limit: maximum number of elements to produce; only valid for queries producing sequences

    Returns:
        Lambda taking the data context, and producing the projected value of the query
    """
    if not query.is_list and (offset is not None or limit is not None):
        raise GraphQLInvalidArgumentError(
            "Query {} produces a single value and cannot be paginated, but got offset {} and "
            "limit {}.".format(query.name, offset, limit)
        )
    for pagination_name, pagination_value in (("offset", offset), ("limit", limit)):
        if pagination_value is None:
            continue
        is_integer = isinstance(pagination_value, int) and not isinstance(pagination_value, bool)
        if not is_integer or pagination_value < 0:
            raise GraphQLInvalidArgumentError(
                "Query {} requires a non-negative integer {}, but got: {}".format(
                    query.name, pagination_name, pagination_value
                )
            )

    context_parameter = schema.context_parameter
    bound_arguments = bind_arguments(schema.scalar_types, query.args_shape, arguments)
    query_expression = query.get_expression(bound_arguments)
    if query_expression.arity != 1 or query_expression.parameters[0] is not context_parameter:
        raise AssertionError(
            "Expression of query {} is not a Lambda over the schema's context parameter: "
            "{}".format(query.name, query_expression)
        )

    value_expression = query_expression.body
    if offset is not None:
        value_expression = SequenceOperation("skip", value_expression, (Literal(offset),))
    if limit is not None:
        value_expression = SequenceOperation("take", value_expression, (Literal(limit),))

    if query.type.is_scalar and selections:
        raise GraphQLCompilationError(
            "Query {} produces values of the scalar type {}, and cannot have fields selected "
            "beneath it.".format(query.name, query.type.name)
        )

    composed_body = _project_value(
        schema, value_expression, query.type, query.is_list, selections
    )
    logger.debug("Composed query %s: %s", query.name, composed_body)
    return Lambda((context_parameter,), composed_body)
