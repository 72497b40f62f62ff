# Copyright 2021-present Kensho Technologies, LLC.
"""Commonly-used functions and data types from this package."""
from .exceptions import (  # noqa
    GraphQLCompilationError,
    GraphQLDuplicateRegistrationError,
    GraphQLError,
    GraphQLEvaluationError,
    GraphQLInvalidArgumentError,
    GraphQLMalformedFieldExpressionError,
    GraphQLParsingError,
    GraphQLSchemaError,
    GraphQLSchemaLifecycleError,
    GraphQLSchemaValidationError,
    GraphQLTypeNotFoundError,
    GraphQLValidationError,
)
from .execution.api import execute_graphql, execute_query  # noqa
from .execution.composition import FieldSelection, compose_query_expression  # noqa
from .expression_tree import constant  # noqa
from .schema import (  # noqa
    RESERVED_QUERY_NAMES,
    ROOT_QUERY_TYPE_NAME,
    TYPENAME_META_FIELD_NAME,
)
from .schema.descriptors import (  # noqa
    EntityTypeDescriptor,
    FieldDescriptor,
    QueryDescriptor,
    ResolutionMode,
)
from .schema.projection import ProjectionRecord  # noqa
from .schema.scalars import (  # noqa
    ScalarTypeEntry,
    WireKind,
    parse_date_value,
    parse_datetime_value,
)
from .schema.schema import QueryableSchema  # noqa
from .schema.type_builder import TypeBuilder  # noqa
from .schema_adapter import get_schema_text  # noqa


__package_name__ = "graphql-queryable"
__version__ = "0.1.0"
