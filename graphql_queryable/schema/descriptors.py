# Copyright 2021-present Kensho Technologies, LLC.
"""Descriptors of the types, fields and queries held by a schema.

The schema stores these as homogeneous lists regardless of which host class each one describes:
the host type is plain data on the descriptor, and the expression generators are stored as
host-type-agnostic callables returning Lambda expressions.
"""
from enum import Enum
from typing import Any, Callable, List, Optional, Type

import funcy

from ..expression_tree import Lambda


TypeResolverFunc = Callable[[Type[Any]], "EntityTypeDescriptor"]
ExpressionGeneratorFunc = Callable[[Any], Lambda]

SCALAR_TYPE_KIND = "SCALAR"
OBJECT_TYPE_KIND = "OBJECT"


class EntityTypeDescriptor(object):
    """One type of the schema: a scalar, or an entity type with one or more fields."""

    __slots__ = ("host_type", "name", "description", "is_scalar", "fields", "projection_type")

    host_type: Type[Any]
    name: str
    description: str
    is_scalar: bool
    fields: List["FieldDescriptor"]
    projection_type: Optional[Type[Any]]

    def __init__(
        self,
        host_type: Type[Any],
        name: Optional[str] = None,
        description: str = "",
        is_scalar: bool = False,
    ) -> None:
        """Construct a new descriptor for the host type, named after it unless a name is given."""
        self.host_type = host_type
        self.name = name if name else host_type.__name__
        self.description = description
        self.is_scalar = is_scalar
        self.fields = []
        self.projection_type = None

    def __repr__(self) -> str:
        return "EntityTypeDescriptor(name={}, host_type={}, is_scalar={}, fields={})".format(
            self.name, self.host_type, self.is_scalar, [field.name for field in self.fields]
        )

    @property
    def kind(self) -> str:
        """Return the introspection kind of this type."""
        # Interfaces, unions, enums, input objects and wrapper kinds are not supported.
        return SCALAR_TYPE_KIND if self.is_scalar else OBJECT_TYPE_KIND

    @property
    def pre_fields(self) -> List["FieldDescriptor"]:
        """Return the fields computed inside the composed query, in declaration order."""
        return [field for field in self.fields if not field.is_post]

    @property
    def post_fields(self) -> List["FieldDescriptor"]:
        """Return the fields computed after the query results are materialized."""
        return [field for field in self.fields if field.is_post]

    def find_field(self, name: str) -> Optional["FieldDescriptor"]:
        """Return the field with the given name, or None if there is none."""
        return funcy.first(field for field in self.fields if field.name == name)


class FieldDescriptor(object):
    """A named, typed attribute of an entity type.

    Pre fields carry an expression generator: a function from the bound arguments value to a
    Lambda of shape (context, entity) -> value, composed into the query expression. Post fields
    instead carry a zero-argument function evaluated after the query has been materialized.
    """

    __slots__ = (
        "name",
        "description",
        "field_host_type",
        "is_list",
        "args_shape",
        "is_post",
        "_expression_generator",
        "_post_function",
        "_type_resolver",
    )

    name: str
    description: str
    field_host_type: Type[Any]
    is_list: bool
    args_shape: Any
    is_post: bool

    def __init__(
        self,
        name: str,
        field_host_type: Type[Any],
        type_resolver: TypeResolverFunc,
        expression_generator: Optional[ExpressionGeneratorFunc] = None,
        post_function: Optional[Callable[[], Any]] = None,
        args_shape: Any = None,
        is_list: bool = False,
        description: str = "",
    ) -> None:
        """Construct a new FieldDescriptor; exactly one of generator and post function is set."""
        if (expression_generator is None) == (post_function is None):
            raise AssertionError(
                "Expected exactly one of expression_generator and post_function for field {}, "
                "got {} and {}.".format(name, expression_generator, post_function)
            )
        self.name = name
        self.description = description
        self.field_host_type = field_host_type
        self.is_list = is_list
        self.args_shape = args_shape
        self.is_post = post_function is not None
        self._expression_generator = expression_generator
        self._post_function = post_function
        self._type_resolver = type_resolver

    def __repr__(self) -> str:
        return "FieldDescriptor(name={}, field_host_type={}, is_list={}, is_post={})".format(
            self.name, self.field_host_type, self.is_list, self.is_post
        )

    def get_expression(self, arguments: Any) -> Lambda:
        """Return the (context, entity) -> value Lambda of this field for the bound arguments."""
        if self._expression_generator is None:
            raise AssertionError(
                "Attempted to generate an expression for post field {}, which is computed after "
                "the query is materialized. This is a bug.".format(self.name)
            )
        return self._expression_generator(arguments)

    def compute_post_value(self) -> Any:
        """Return the value of this post field."""
        if self._post_function is None:
            raise AssertionError(
                "Attempted to compute a post value for field {}, which is computed inside the "
                "query expression. This is a bug.".format(self.name)
            )
        return self._post_function()

    @property
    def type(self) -> EntityTypeDescriptor:
        """Return the descriptor of this field's value type (of its elements, for list fields)."""
        return self._type_resolver(self.field_host_type)


class ResolutionMode(Enum):
    """How the execution layer treats the value produced by a query's expression."""

    # The expression produces a sequence that may be further constrained, e.g. paginated,
    # before each element is projected.
    MODIFIED = "modified"

    # The expression produces a single value that is projected as-is.
    UNMODIFIED = "unmodified"


class QueryDescriptor(object):
    """A named, externally invocable query of the schema."""

    __slots__ = (
        "name",
        "description",
        "entity_host_type",
        "args_shape",
        "resolution_mode",
        "_expression_generator",
        "_type_resolver",
    )

    name: str
    description: str
    entity_host_type: Type[Any]
    args_shape: Any
    resolution_mode: ResolutionMode

    def __init__(
        self,
        name: str,
        entity_host_type: Type[Any],
        type_resolver: TypeResolverFunc,
        expression_generator: ExpressionGeneratorFunc,
        resolution_mode: ResolutionMode,
        args_shape: Any = None,
        description: str = "",
    ) -> None:
        """Construct a new QueryDescriptor."""
        self.name = name
        self.description = description
        self.entity_host_type = entity_host_type
        self.args_shape = args_shape
        self.resolution_mode = resolution_mode
        self._expression_generator = expression_generator
        self._type_resolver = type_resolver

    def __repr__(self) -> str:
        return "QueryDescriptor(name={}, entity_host_type={}, resolution_mode={})".format(
            self.name, self.entity_host_type, self.resolution_mode
        )

    @property
    def is_list(self) -> bool:
        """Return True if the query produces a sequence of entities rather than a single value."""
        return self.resolution_mode is ResolutionMode.MODIFIED

    def get_expression(self, arguments: Any) -> Lambda:
        """Return the (context) -> value Lambda of this query for the bound arguments."""
        return self._expression_generator(arguments)

    @property
    def type(self) -> EntityTypeDescriptor:
        """Return the descriptor of the entity type this query produces."""
        return self._type_resolver(self.entity_host_type)
