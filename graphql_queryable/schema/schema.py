# Copyright 2021-present Kensho Technologies, LLC.
"""The queryable schema: types, fields and named queries over a data context.

A schema has a two-phase lifecycle. While open, application code declares types, fields, queries
and scalars. complete() then validates the declarations, declares the introspection types and
queries, synthesizes one projection type per entity type, and builds the graphql-core adapter.
After completion the schema is read-only.

Every field and query expression of a schema closes over the same context Parameter object,
schema.context_parameter. That shared identity is what lets the executor stitch field
expressions into query expressions as a single computation over a single context value.
"""
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Type

from graphql import GraphQLSchema

from ..exceptions import (
    GraphQLDuplicateRegistrationError,
    GraphQLMalformedFieldExpressionError,
    GraphQLSchemaLifecycleError,
    GraphQLSchemaValidationError,
    GraphQLTypeNotFoundError,
)
from ..execution.arguments import get_argument_types
from ..expression_tree import Lambda, Parameter, capture_lambda
from ..schema_adapter import build_graphql_schema
from . import RESERVED_QUERY_NAMES
from .descriptors import EntityTypeDescriptor, FieldDescriptor, QueryDescriptor, ResolutionMode
from .host_types import is_primitive_host_type
from .introspection import add_introspection_declarations
from .projection import synthesize_projection_type
from .scalars import ScalarTypeEntry, ScalarTypeRegistry, add_default_scalar_types
from .type_builder import TypeBuilder


logger = logging.getLogger(__name__)


def validate_type_descriptor(type_descriptor: EntityTypeDescriptor) -> None:
    """Ensure that scalar types declare no fields, and that other types declare at least one."""
    if type_descriptor.is_scalar and type_descriptor.fields:
        raise GraphQLSchemaValidationError(
            "Scalar type {} must not declare any fields, but declares: {}".format(
                type_descriptor.name, [field.name for field in type_descriptor.fields]
            )
        )
    elif not type_descriptor.is_scalar and not type_descriptor.fields:
        raise GraphQLSchemaValidationError(
            "Type {} must declare at least one field, but declares none.".format(
                type_descriptor.name
            )
        )


class _SchemaSnapshot(NamedTuple):
    """The mutable state of an open schema, as it was before a completion attempt."""

    types: List[EntityTypeDescriptor]
    queries: List[QueryDescriptor]
    fields_by_type: List[List[FieldDescriptor]]
    projection_types_by_type: List[Optional[Type[Any]]]
    ad_hoc_scalar_types: Dict[Type[Any], EntityTypeDescriptor]


class QueryableSchema(object):
    """A set of types and named queries over the data context produced by a context factory."""

    def __init__(self, context_factory: Callable[[], Any]) -> None:
        """Construct a new open schema.

        Args:
            context_factory: zero-argument function returning a fresh data context; called by the
                             executor once per executed request, never by the schema itself
        """
        self.context_factory = context_factory
        self.scalar_types = ScalarTypeRegistry()
        add_default_scalar_types(self.scalar_types)

        # The single context parameter shared by every field and query expression of the schema.
        self.context_parameter = Parameter("context")

        self.completed = False
        self.adapter: Optional[GraphQLSchema] = None

        self._types: List[EntityTypeDescriptor] = []
        self._queries: List[QueryDescriptor] = []
        self._ad_hoc_scalar_types: Dict[Type[Any], EntityTypeDescriptor] = {}
        self._allow_reserved_query_names = False

    def ensure_not_completed(self, operation: str) -> None:
        """Raise GraphQLSchemaLifecycleError if the schema has already been completed."""
        if self.completed:
            raise GraphQLSchemaLifecycleError(
                "Cannot {}: the schema has already been completed and is read-only.".format(
                    operation
                )
            )

    @property
    def types(self) -> List[EntityTypeDescriptor]:
        """Return the declared types, in declaration order."""
        return list(self._types)

    @property
    def queries(self) -> List[QueryDescriptor]:
        """Return the declared queries, in declaration order."""
        return list(self._queries)

    def find_type_descriptor(self, host_type: Type[Any]) -> Optional[EntityTypeDescriptor]:
        """Return the descriptor declared for the host type, or None if there is none."""
        for type_descriptor in self._types:
            if type_descriptor.host_type is host_type:
                return type_descriptor
        return None

    def add_type(
        self, host_type: Type[Any], name: Optional[str] = None, description: str = ""
    ) -> TypeBuilder:
        """Declare a new type for the host type, and return a builder for its fields.

        The type is scalar if its host type is a primitive like int or str, or is produced by one
        of the schema's scalar translators. Scalar types must not declare fields; all other types
        must declare at least one before the schema is completed.
        """
        self.ensure_not_completed("add type {}".format(host_type))
        if self.find_type_descriptor(host_type) is not None:
            raise GraphQLDuplicateRegistrationError(
                "Host type {} has already been added to the schema.".format(host_type)
            )

        is_scalar = (
            is_primitive_host_type(host_type)
            or self.scalar_types.find_by_host_type(host_type) is not None
        )
        type_descriptor = EntityTypeDescriptor(
            host_type, name=name, description=description, is_scalar=is_scalar
        )
        for existing_descriptor in self._types:
            if existing_descriptor.name == type_descriptor.name:
                raise GraphQLDuplicateRegistrationError(
                    "A type named {} has already been added to the schema, for host type {}. "
                    "Pass a distinct name for host type {}.".format(
                        type_descriptor.name, existing_descriptor.host_type, host_type
                    )
                )

        logger.debug(
            "Adding %s type %s for host type %s.",
            "scalar" if is_scalar else "entity",
            type_descriptor.name,
            host_type,
        )
        self._types.append(type_descriptor)
        return TypeBuilder(self, type_descriptor)

    def get_type(self, host_type: Type[Any]) -> TypeBuilder:
        """Return a builder for the type declared for the host type."""
        type_descriptor = self.find_type_descriptor(host_type)
        if type_descriptor is None:
            raise GraphQLTypeNotFoundError(
                "Host type {} has not been added to the schema.".format(host_type)
            )
        return TypeBuilder(self, type_descriptor)

    def get_gql_type(self, host_type: Type[Any]) -> EntityTypeDescriptor:
        """Return the type describing values of the host type.

        This is the declared type for the host type if there is one, else the scalar type of the
        schema's translator producing it, else an undeclared scalar type for the host type.
        """
        type_descriptor = self.find_type_descriptor(host_type)
        if type_descriptor is not None:
            return type_descriptor

        scalar_entry = self.scalar_types.find_by_host_type(host_type)
        if scalar_entry is not None:
            return scalar_entry.type_descriptor

        type_descriptor = self._ad_hoc_scalar_types.get(host_type)
        if type_descriptor is None:
            type_descriptor = EntityTypeDescriptor(host_type, is_scalar=True)
            type_descriptor.projection_type = host_type
            self._ad_hoc_scalar_types[host_type] = type_descriptor
        return type_descriptor

    def list_all_types(self) -> List[EntityTypeDescriptor]:
        """Return the declared types followed by the scalar types of the schema's translators."""
        declared_names = {type_descriptor.name for type_descriptor in self._types}
        return self.types + [
            scalar_descriptor
            for scalar_descriptor in self.scalar_types.introspection_types
            if scalar_descriptor.name not in declared_names
        ]

    def find_query(self, name: str) -> Optional[QueryDescriptor]:
        """Return the query with exactly the given name, or None if there is none."""
        for query in self._queries:
            if query.name == name:
                return query
        return None

    def _capture_query_expression(self, expression: Any) -> Lambda:
        """Return the (context) -> value Lambda for a Python callable or a built Lambda."""
        if isinstance(expression, Lambda):
            if expression.arity != 1 or expression.parameters[0] is not self.context_parameter:
                raise GraphQLMalformedFieldExpressionError(
                    "Query expressions must be Lambdas over the schema's context parameter only, "
                    "got: {}".format(expression)
                )
            return expression
        return capture_lambda(expression, (self.context_parameter,))

    def _add_query_descriptor(
        self,
        name: str,
        entity_type: Type[Any],
        expression_generator: Callable[[Any], Lambda],
        resolution_mode: ResolutionMode,
        args_shape: Any,
        description: str,
    ) -> QueryDescriptor:
        self.ensure_not_completed("add query {}".format(name))
        if name in RESERVED_QUERY_NAMES and not self._allow_reserved_query_names:
            raise GraphQLDuplicateRegistrationError(
                "Query name {} is reserved for the introspection query of the same name, "
                "declared when the schema is completed.".format(name)
            )
        if self.find_query(name) is not None:
            raise GraphQLDuplicateRegistrationError(
                "A query named {} has already been added to the schema.".format(name)
            )

        query = QueryDescriptor(
            name,
            entity_type,
            self.get_gql_type,
            expression_generator,
            resolution_mode,
            args_shape=args_shape,
            description=description,
        )
        logger.debug(
            "Adding %s query %s producing host type %s.", resolution_mode.value, name, entity_type
        )
        self._queries.append(query)
        return query

    def _add_fixed_query(
        self,
        name: str,
        entity_type: Type[Any],
        expression: Any,
        resolution_mode: ResolutionMode,
        description: str,
    ) -> QueryDescriptor:
        self.ensure_not_completed("add query {}".format(name))
        query_expression = self._capture_query_expression(expression)
        return self._add_query_descriptor(
            name,
            entity_type,
            lambda arguments: query_expression,
            resolution_mode,
            None,
            description,
        )

    def _add_query_with_args(
        self,
        name: str,
        entity_type: Type[Any],
        args_shape: Any,
        expression_factory: Callable[[Any], Any],
        resolution_mode: ResolutionMode,
        description: str,
    ) -> QueryDescriptor:
        def expression_generator(arguments: Any) -> Lambda:
            return self._capture_query_expression(expression_factory(arguments))

        return self._add_query_descriptor(
            name, entity_type, expression_generator, resolution_mode, args_shape, description
        )

    def add_query(
        self, name: str, entity_type: Type[Any], expression: Any, description: str = ""
    ) -> QueryDescriptor:
        """Add a query producing a sequence of entity_type values, e.g. lambda db: db.users.

        The executor may further constrain the sequence, e.g. paginate it, before projecting
        each of its elements.
        """
        return self._add_fixed_query(
            name, entity_type, expression, ResolutionMode.MODIFIED, description
        )

    def add_query_with_args(
        self,
        name: str,
        entity_type: Type[Any],
        args_shape: Any,
        expression_factory: Callable[[Any], Any],
        description: str = "",
    ) -> QueryDescriptor:
        """Add a query producing a sequence, whose expression depends on request arguments.

        Args:
            name: name of the query
            entity_type: host type of the elements of the produced sequence
            args_shape: the arguments the query takes; a dict from argument name to default
                        value, a dataclass, or a NamedTuple class
            expression_factory: function taking the bound arguments value and returning a
                                (context) -> sequence callable or Lambda
            description: human-readable description of the query

        Returns:
            the new QueryDescriptor
        """
        return self._add_query_with_args(
            name, entity_type, args_shape, expression_factory, ResolutionMode.MODIFIED, description
        )

    def add_unmodified_query(
        self, name: str, entity_type: Type[Any], expression: Any, description: str = ""
    ) -> QueryDescriptor:
        """Add a query producing a single entity_type value, evaluated and projected as-is."""
        return self._add_fixed_query(
            name, entity_type, expression, ResolutionMode.UNMODIFIED, description
        )

    def add_unmodified_query_with_args(
        self,
        name: str,
        entity_type: Type[Any],
        args_shape: Any,
        expression_factory: Callable[[Any], Any],
        description: str = "",
    ) -> QueryDescriptor:
        """Add a query producing a single value, whose expression depends on request arguments."""
        return self._add_query_with_args(
            name,
            entity_type,
            args_shape,
            expression_factory,
            ResolutionMode.UNMODIFIED,
            description,
        )

    def _add_scalar(self, entry: ScalarTypeEntry) -> ScalarTypeEntry:
        self.scalar_types.add_type(entry)
        return entry

    def add_string(
        self,
        translate: Callable[[str], Any],
        name: Optional[str] = None,
        host_type: Optional[Type[Any]] = None,
        description: str = "",
    ) -> ScalarTypeEntry:
        """Add a scalar carried as a string on the wire, converted by translate."""
        self.ensure_not_completed("add a string scalar")
        return self._add_scalar(
            ScalarTypeEntry.for_string(
                translate, name=name, host_type=host_type, description=description
            )
        )

    def add_integer(
        self,
        translate: Callable[[int], Any],
        name: Optional[str] = None,
        host_type: Optional[Type[Any]] = None,
        description: str = "",
    ) -> ScalarTypeEntry:
        """Add a scalar carried as an integer on the wire, converted by translate."""
        self.ensure_not_completed("add an integer scalar")
        return self._add_scalar(
            ScalarTypeEntry.for_integer(
                translate, name=name, host_type=host_type, description=description
            )
        )

    def add_float(
        self,
        translate: Callable[[float], Any],
        name: Optional[str] = None,
        host_type: Optional[Type[Any]] = None,
        description: str = "",
    ) -> ScalarTypeEntry:
        """Add a scalar carried as a float on the wire, converted by translate."""
        self.ensure_not_completed("add a float scalar")
        return self._add_scalar(
            ScalarTypeEntry.for_float(
                translate, name=name, host_type=host_type, description=description
            )
        )

    def add_boolean(
        self,
        translate: Callable[[bool], Any],
        name: Optional[str] = None,
        host_type: Optional[Type[Any]] = None,
        description: str = "",
    ) -> ScalarTypeEntry:
        """Add a scalar carried as a boolean on the wire, converted by translate."""
        self.ensure_not_completed("add a boolean scalar")
        return self._add_scalar(
            ScalarTypeEntry.for_boolean(
                translate, name=name, host_type=host_type, description=description
            )
        )

    def _take_snapshot(self) -> _SchemaSnapshot:
        return _SchemaSnapshot(
            types=list(self._types),
            queries=list(self._queries),
            fields_by_type=[list(type_descriptor.fields) for type_descriptor in self._types],
            projection_types_by_type=[
                type_descriptor.projection_type for type_descriptor in self._types
            ],
            ad_hoc_scalar_types=dict(self._ad_hoc_scalar_types),
        )

    def _restore_snapshot(self, snapshot: _SchemaSnapshot) -> None:
        self._types = list(snapshot.types)
        self._queries = list(snapshot.queries)
        self._ad_hoc_scalar_types = dict(snapshot.ad_hoc_scalar_types)
        for type_descriptor, fields, projection_type in zip(
            snapshot.types, snapshot.fields_by_type, snapshot.projection_types_by_type
        ):
            type_descriptor.fields = fields
            type_descriptor.projection_type = projection_type
        self.adapter = None

    def _validate_argument_types(self, owner_description: str, args_shape: Any) -> None:
        """Ensure every argument of the argument shape has a scalar type."""
        for argument_name, argument_host_type in get_argument_types(args_shape).items():
            argument_type = self.get_gql_type(argument_host_type)
            if not argument_type.is_scalar:
                raise GraphQLSchemaValidationError(
                    "{} declares argument {} of the non-scalar type {}, but arguments can only "
                    "have scalar types.".format(
                        owner_description, argument_name, argument_type.name
                    )
                )

    def _complete(self) -> None:
        if not self._queries:
            raise GraphQLSchemaValidationError(
                "The schema must declare at least one query, but declares none."
            )

        # Validate the application's declarations before the introspection fields are added,
        # so a type with no fields of its own cannot pass on account of its "__typename" field.
        for type_descriptor in self._types:
            if type_descriptor.projection_type is None:
                validate_type_descriptor(type_descriptor)

        self._allow_reserved_query_names = True
        try:
            add_introspection_declarations(self)
        finally:
            self._allow_reserved_query_names = False

        for type_descriptor in self._types:
            if type_descriptor.projection_type is None:
                validate_type_descriptor(type_descriptor)
                if type_descriptor.is_scalar:
                    type_descriptor.projection_type = type_descriptor.host_type
                else:
                    type_descriptor.projection_type = synthesize_projection_type(type_descriptor)

        for type_descriptor in self._types:
            for field in type_descriptor.fields:
                self._validate_argument_types(
                    "Field {} of type {}".format(field.name, type_descriptor.name), field.args_shape
                )
        for query in self._queries:
            self._validate_argument_types("Query {}".format(query.name), query.args_shape)

        self.adapter = build_graphql_schema(self)

    def complete(self) -> None:
        """Validate and freeze the schema; it cannot be modified afterward.

        If completion fails, the schema is restored to exactly its state before this call, and
        the error is raised. The declarations may then be fixed and the schema completed again.
        """
        if self.completed:
            raise GraphQLSchemaLifecycleError("The schema has already been completed.")

        snapshot = self._take_snapshot()
        try:
            self._complete()
        except Exception:
            self._restore_snapshot(snapshot)
            raise

        self.completed = True
        logger.info(
            "Completed schema with %d types and %d queries.", len(self._types), len(self._queries)
        )
