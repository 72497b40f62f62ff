# Copyright 2021-present Kensho Technologies, LLC.
"""Mirror a completed schema as a graphql-core GraphQLSchema.

The graphql-core schema is used to validate GraphQL request documents before they are executed,
and to print the schema as SDL. Its types and fields carry no resolvers: request documents are
always executed by composing query expressions, never by graphql-core's own executor.

Types, fields and queries whose names start with "__" are introspection content. graphql-core
declares its own introspection types, so they are not mirrored.
"""
from collections import OrderedDict
from typing import TYPE_CHECKING, Any, Callable, Dict

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLField,
    GraphQLFloat,
    GraphQLID,
    GraphQLInt,
    GraphQLList,
    GraphQLObjectType,
    GraphQLOutputType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLString,
    print_schema,
)

from .execution.arguments import get_argument_types
from .schema import ROOT_QUERY_TYPE_NAME
from .schema.descriptors import EntityTypeDescriptor


if TYPE_CHECKING:
    from .schema.schema import QueryableSchema


# GraphQL's own scalars, which scalar types of the same name are mapped to.
SPECIFIED_SCALAR_TYPES: Dict[str, GraphQLScalarType] = {
    scalar_type.name: scalar_type
    for scalar_type in (GraphQLString, GraphQLInt, GraphQLFloat, GraphQLBoolean, GraphQLID)
}


def _is_introspection_name(name: str) -> bool:
    return name.startswith("__")


def build_graphql_schema(schema: "QueryableSchema") -> GraphQLSchema:
    """Return a graphql-core schema with the same types, fields and queries as the given schema.

    Scalar types named like one of GraphQL's specified scalars (String, Int, Float, Boolean, ID)
    become that scalar; all other scalar types become custom scalars of the same name.
    """
    scalar_types: Dict[str, GraphQLScalarType] = {}
    object_types: Dict[str, GraphQLObjectType] = {}

    def get_scalar_type(type_descriptor: EntityTypeDescriptor) -> GraphQLScalarType:
        scalar_type = scalar_types.get(type_descriptor.name)
        if scalar_type is None:
            scalar_type = SPECIFIED_SCALAR_TYPES.get(type_descriptor.name)
            if scalar_type is None:
                scalar_type = GraphQLScalarType(
                    type_descriptor.name, description=type_descriptor.description or None
                )
            scalar_types[type_descriptor.name] = scalar_type
        return scalar_type

    def get_output_type(type_descriptor: EntityTypeDescriptor, is_list: bool) -> GraphQLOutputType:
        if type_descriptor.is_scalar:
            output_type: GraphQLOutputType = get_scalar_type(type_descriptor)
        else:
            output_type = object_types[type_descriptor.name]
        return GraphQLList(output_type) if is_list else output_type

    def get_arguments(args_shape: Any) -> Dict[str, GraphQLArgument]:
        arguments = OrderedDict()
        for argument_name, argument_host_type in get_argument_types(args_shape).items():
            argument_type = schema.get_gql_type(argument_host_type)
            if not argument_type.is_scalar:
                raise AssertionError(
                    "Argument {} has non-scalar type {}, which completion should have rejected. "
                    "This is a bug.".format(argument_name, argument_type.name)
                )
            arguments[argument_name] = GraphQLArgument(get_scalar_type(argument_type))
        return arguments

    def make_fields_thunk(type_descriptor: EntityTypeDescriptor) -> Callable[[], Dict[str, Any]]:
        def fields_thunk() -> Dict[str, GraphQLField]:
            return OrderedDict(
                (
                    field.name,
                    GraphQLField(
                        get_output_type(field.type, field.is_list),
                        args=get_arguments(field.args_shape),
                        description=field.description or None,
                    ),
                )
                for field in type_descriptor.fields
                if not _is_introspection_name(field.name)
            )

        return fields_thunk

    for type_descriptor in schema.types:
        if type_descriptor.is_scalar or _is_introspection_name(type_descriptor.name):
            continue
        object_types[type_descriptor.name] = GraphQLObjectType(
            type_descriptor.name,
            make_fields_thunk(type_descriptor),
            description=type_descriptor.description or None,
        )

    query_fields = OrderedDict(
        (
            query.name,
            GraphQLField(
                get_output_type(query.type, query.is_list),
                args=get_arguments(query.args_shape),
                description=query.description or None,
            ),
        )
        for query in schema.queries
        if not _is_introspection_name(query.name)
    )

    # Scalars are declared even when unused, so they appear in the printed schema.
    for scalar_descriptor in schema.scalar_types.introspection_types:
        get_scalar_type(scalar_descriptor)

    return GraphQLSchema(
        query=GraphQLObjectType(ROOT_QUERY_TYPE_NAME, query_fields),
        types=list(scalar_types.values()) + list(object_types.values()),
    )


def get_schema_text(schema: "QueryableSchema") -> str:
    """Return the SDL text of the graphql-core mirror of the completed schema."""
    if schema.adapter is None:
        raise AssertionError(
            "The schema has not been completed, so it has no graphql-core mirror to print."
        )
    return print_schema(schema.adapter)
