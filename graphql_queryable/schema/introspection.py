# Copyright 2021-present Kensho Technologies, LLC.
"""Introspection declared as ordinary schema content.

At completion the schema describes itself through the same builder API that application code
uses: the schema, its types and their fields become the entity types __Schema, __Type and
__Field, exposed through the __schema and __type queries. Every entity type also gains a
__typename post field holding its own name.

Interfaces, unions, enums, wrapper kinds, deprecation and directives are not modeled, and are
exposed as empty lists, false or null.
"""
from typing import TYPE_CHECKING, Any, Callable

from ..expression_tree import constant
from . import SCHEMA_QUERY_NAME, TYPE_QUERY_NAME, TYPENAME_META_FIELD_NAME
from .descriptors import EntityTypeDescriptor, FieldDescriptor


if TYPE_CHECKING:
    from .schema import QueryableSchema


SCHEMA_TYPE_NAME = "__Schema"
TYPE_TYPE_NAME = "__Type"
FIELD_TYPE_NAME = "__Field"


def _make_type_name_function(type_name: str) -> Callable[[], str]:
    """Return a zero-argument function producing the given type name."""

    def get_type_name() -> str:
        return type_name

    return get_type_name


def _add_introspection_types(schema: "QueryableSchema") -> None:
    schema_type = schema.add_type(
        type(schema), name=SCHEMA_TYPE_NAME, description="A schema's types and root operations."
    )
    schema_type.add_field(
        "types",
        lambda context, schema_value: schema_value.list_all_types(),
        field_type=EntityTypeDescriptor,
        is_list=True,
    )
    schema_type.add_field(
        "queryType", lambda context, schema_value: None, field_type=EntityTypeDescriptor
    )
    schema_type.add_field(
        "mutationType", lambda context, schema_value: None, field_type=EntityTypeDescriptor
    )
    schema_type.add_field(
        "directives", lambda context, schema_value: [], field_type=str, is_list=True
    )

    type_type = schema.add_type(
        EntityTypeDescriptor, name=TYPE_TYPE_NAME, description="A type of the schema."
    )
    type_type.add_property_field(lambda type_value: type_value.kind)
    type_type.add_property_field(lambda type_value: type_value.name)
    type_type.add_property_field(lambda type_value: type_value.description)
    type_type.add_field(
        "fields",
        lambda context, type_value: type_value.fields,
        field_type=FieldDescriptor,
        is_list=True,
    )
    type_type.add_field(
        "interfaces",
        lambda context, type_value: [],
        field_type=EntityTypeDescriptor,
        is_list=True,
    )

    field_type = schema.add_type(
        FieldDescriptor, name=FIELD_TYPE_NAME, description="A field of a type of the schema."
    )
    field_type.add_property_field(lambda field_value: field_value.name)
    field_type.add_property_field(lambda field_value: field_value.description)
    field_type.add_property_field(lambda field_value: field_value.type)
    field_type.add_field("isDeprecated", lambda context, field_value: False)
    field_type.add_field("deprecationReason", lambda context, field_value: "")


def _add_introspection_queries(schema: "QueryableSchema") -> None:
    schema.add_unmodified_query(
        SCHEMA_QUERY_NAME,
        type(schema),
        lambda context: constant(schema),
        description="The schema itself.",
    )

    def make_type_lookup(arguments: Any) -> Callable[[Any], Any]:
        type_name = arguments["name"]
        return lambda context: constant(schema).list_all_types().first_or_default(
            lambda type_value: type_value.name == type_name
        )

    schema.add_unmodified_query_with_args(
        TYPE_QUERY_NAME,
        EntityTypeDescriptor,
        {"name": ""},
        make_type_lookup,
        description="The type with the given name, or null if there is none.",
    )


def _add_type_name_fields(schema: "QueryableSchema") -> None:
    for type_descriptor in schema.types:
        if type_descriptor.is_scalar:
            continue
        if type_descriptor.find_field(TYPENAME_META_FIELD_NAME) is not None:
            continue
        schema.get_type(type_descriptor.host_type).add_post_field(
            TYPENAME_META_FIELD_NAME,
            _make_type_name_function(type_descriptor.name),
            field_type=str,
            description="The name of this object's type.",
        )


def add_introspection_declarations(schema: "QueryableSchema") -> None:
    """Declare the introspection types and queries, and each entity type's __typename field."""
    _add_introspection_types(schema)
    _add_introspection_queries(schema)
    _add_type_name_fields(schema)
