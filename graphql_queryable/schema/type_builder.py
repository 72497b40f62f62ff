# Copyright 2021-present Kensho Technologies, LLC.
"""Declaration of the fields of one schema type.

A TypeBuilder is a thin, stateless view over one (schema, type descriptor) pair: every
declaration lands directly on the descriptor, so builders may be created on demand and discarded.
"""
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, get_type_hints

from ..exceptions import GraphQLDuplicateRegistrationError, GraphQLMalformedFieldExpressionError
from ..expression_tree import (
    BinaryComposition,
    Expression,
    Lambda,
    Literal,
    MemberAccess,
    Parameter,
    SequenceOperation,
    UnaryTransformation,
    capture_lambda,
)
from ..global_utils import to_camel_case
from .descriptors import EntityTypeDescriptor, FieldDescriptor
from .host_types import (
    UNKNOWN_MEMBER_TYPE,
    MemberType,
    get_member_type,
    get_public_member_names,
)


if TYPE_CHECKING:
    from .schema import QueryableSchema


logger = logging.getLogger(__name__)

# Operators whose result is always a boolean, regardless of their operand types.
BOOLEAN_BINARY_OPERATORS = frozenset(
    {"=", "!=", ">", ">=", "<", "<=", "contains", "in_collection", "&&", "||"}
)


def _infer_expression_type(
    expression: Expression, parameter_types: Dict[Parameter, MemberType]
) -> MemberType:
    """Infer the value type of the expression from the types of the parameters it uses."""
    if isinstance(expression, Literal):
        if expression.value is None:
            return UNKNOWN_MEMBER_TYPE
        return MemberType(type(expression.value), False)
    elif isinstance(expression, Parameter):
        return parameter_types.get(expression, UNKNOWN_MEMBER_TYPE)
    elif isinstance(expression, MemberAccess):
        target_type = _infer_expression_type(expression.target, parameter_types)
        if target_type.is_list or target_type.host_type is object:
            return UNKNOWN_MEMBER_TYPE
        return get_member_type(target_type.host_type, expression.member_name)
    elif isinstance(expression, BinaryComposition):
        if expression.operator in BOOLEAN_BINARY_OPERATORS:
            return MemberType(bool, False)
        return UNKNOWN_MEMBER_TYPE
    elif isinstance(expression, UnaryTransformation):
        if expression.operator == "!":
            return MemberType(bool, False)
        return _infer_expression_type(expression.inner_expression, parameter_types)
    elif isinstance(expression, SequenceOperation):
        if expression.operator == "count":
            return MemberType(int, False)
        elif expression.operator == "any":
            return MemberType(bool, False)
        elif expression.operator in {"where", "order_by", "order_by_descending", "take", "skip"}:
            return _infer_expression_type(expression.source, parameter_types)
        elif expression.operator in {"first", "first_or_default"}:
            source_type = _infer_expression_type(expression.source, parameter_types)
            if source_type.is_list:
                return MemberType(source_type.host_type, False)
        return UNKNOWN_MEMBER_TYPE
    else:
        return UNKNOWN_MEMBER_TYPE


def _get_return_type(function: Callable[..., Any]) -> Type[Any]:
    """Return the annotated return type of a Python callable, or object if it has none."""
    try:
        return_hint = get_type_hints(function).get("return")
    except TypeError:
        # Callables like functools.partial objects cannot be introspected for hints.
        return object
    if isinstance(return_hint, type):
        return return_hint
    return object


class TypeBuilder(object):
    """Declares the fields of one type of a schema."""

    __slots__ = ("_schema", "_type_descriptor")

    def __init__(self, schema: "QueryableSchema", type_descriptor: EntityTypeDescriptor) -> None:
        """Construct a builder for the given type of the given schema."""
        self._schema = schema
        self._type_descriptor = type_descriptor

    def __repr__(self) -> str:
        return "TypeBuilder({})".format(self._type_descriptor.name)

    @property
    def descriptor(self) -> EntityTypeDescriptor:
        """Return the descriptor of the type this builder declares fields on."""
        return self._type_descriptor

    def _make_entity_parameter(self) -> Parameter:
        return Parameter(self._type_descriptor.name[:1].lower() + self._type_descriptor.name[1:])

    def _capture_field_expression(self, expression: Any) -> Lambda:
        """Return the (context, entity) -> value Lambda for a Python callable or a built Lambda."""
        context_parameter = self._schema.context_parameter
        if isinstance(expression, Lambda):
            if expression.arity != 2 or expression.parameters[0] is not context_parameter:
                raise GraphQLMalformedFieldExpressionError(
                    "Field expressions on type {} must be Lambdas over the schema's context "
                    "parameter and an entity parameter, got: {}".format(
                        self._type_descriptor.name, expression
                    )
                )
            return expression
        return capture_lambda(expression, (context_parameter, self._make_entity_parameter()))

    def _infer_field_type(self, field_expression: Lambda) -> MemberType:
        """Infer the value type of a (context, entity) -> value Lambda of this type."""
        entity_parameter = field_expression.parameters[1]
        parameter_types = {
            entity_parameter: MemberType(self._type_descriptor.host_type, False),
        }
        return _infer_expression_type(field_expression.body, parameter_types)

    def _add_field_descriptor(self, field: FieldDescriptor) -> FieldDescriptor:
        """Append the field to the type, rejecting duplicate names and completed schemas."""
        self._schema.ensure_not_completed("add field {}".format(field.name))
        if self._type_descriptor.find_field(field.name) is not None:
            raise GraphQLDuplicateRegistrationError(
                "A field named {} has already been added to type {}.".format(
                    field.name, self._type_descriptor.name
                )
            )
        logger.debug(
            "Adding %s field %s of type %s to type %s.",
            "post" if field.is_post else "pre",
            field.name,
            field.field_host_type,
            self._type_descriptor.name,
        )
        self._type_descriptor.fields.append(field)
        return field

    def add_field_with_args(
        self,
        name: str,
        args_shape: Any,
        expression_factory: Callable[[Any], Any],
        field_type: Optional[Type[Any]] = None,
        is_list: bool = False,
        description: str = "",
    ) -> FieldDescriptor:
        """Add a field whose expression depends on arguments supplied with each request.

        Args:
            name: wire name of the field
            args_shape: the arguments the field takes; a dict from argument name to default value,
                        a dataclass, or a NamedTuple class
            expression_factory: function taking the bound arguments value and returning a
                                (context, entity) -> value callable or Lambda
            field_type: host type of the field's value (of its elements, for list fields);
                        defaults to object
            is_list: whether the field's value is a sequence of field_type values
            description: human-readable description of the field

        Returns:
            the new FieldDescriptor
        """
        self._schema.ensure_not_completed("add field {}".format(name))

        def expression_generator(arguments: Any) -> Lambda:
            return self._capture_field_expression(expression_factory(arguments))

        field = FieldDescriptor(
            name,
            field_type if field_type is not None else object,
            self._schema.get_gql_type,
            expression_generator=expression_generator,
            args_shape=args_shape,
            is_list=is_list,
            description=description,
        )
        return self._add_field_descriptor(field)

    def add_field(
        self,
        name: str,
        expression: Any,
        field_type: Optional[Type[Any]] = None,
        is_list: bool = False,
        description: str = "",
    ) -> FieldDescriptor:
        """Add a field computed by a fixed (context, entity) -> value expression.

        The expression is either a Python callable, captured once here, or a Lambda whose first
        parameter is the schema's context parameter. When no field_type is given, it is inferred
        from the expression: literals have the type of their value, member accesses the annotated
        type of the member, comparisons and boolean operators are bool, and count() is int.
        """
        self._schema.ensure_not_completed("add field {}".format(name))
        field_expression = self._capture_field_expression(expression)

        if field_type is None:
            inferred_type = self._infer_field_type(field_expression)
            field_type = inferred_type.host_type
            is_list = is_list or inferred_type.is_list

        field = FieldDescriptor(
            name,
            field_type,
            self._schema.get_gql_type,
            expression_generator=lambda arguments: field_expression,
            is_list=is_list,
            description=description,
        )
        return self._add_field_descriptor(field)

    def _add_member_field(self, member_name: str, description: str) -> FieldDescriptor:
        """Add a field reading the named member of the entity, named after it in camel case."""
        entity_parameter = self._make_entity_parameter()
        field_expression = Lambda(
            (self._schema.context_parameter, entity_parameter),
            MemberAccess(entity_parameter, member_name),
        )
        member_type = get_member_type(self._type_descriptor.host_type, member_name)
        field = FieldDescriptor(
            to_camel_case(member_name),
            member_type.host_type,
            self._schema.get_gql_type,
            expression_generator=lambda arguments: field_expression,
            is_list=member_type.is_list,
            description=description,
        )
        return self._add_field_descriptor(field)

    def add_property_field(
        self, selector: Callable[[Any], Any], description: str = ""
    ) -> FieldDescriptor:
        """Add a field reading one member of the entity, e.g. lambda user: user.first_name.

        The selector must be exactly a member access on its argument. The field is named after
        the member in camel case ("first_name" becomes "firstName"), and its type is taken from
        the host type's annotation of the member.
        """
        self._schema.ensure_not_completed("add a property field")
        entity_parameter = self._make_entity_parameter()
        try:
            selector_expression = capture_lambda(selector, (entity_parameter,))
        except TypeError as e:
            # Raised for a wrong arity, and for operations a proxy cannot record, like len().
            raise GraphQLMalformedFieldExpressionError(
                "Property selector on type {} could not be captured as an expression: {}".format(
                    self._type_descriptor.name, e
                )
            ) from e

        body = selector_expression.body
        if not isinstance(body, MemberAccess) or body.target is not entity_parameter:
            raise GraphQLMalformedFieldExpressionError(
                "Property selectors on type {} must directly access a member of their argument, "
                "like lambda entity: entity.member, but got: {}".format(
                    self._type_descriptor.name, body
                )
            )
        return self._add_member_field(body.member_name, description)

    def add_all_fields(self) -> List[FieldDescriptor]:
        """Add one member-reading field for every publicly readable member of the host type."""
        self._schema.ensure_not_completed("add all fields")
        return [
            self._add_member_field(member_name, "")
            for member_name in get_public_member_names(self._type_descriptor.host_type)
        ]

    def add_post_field(
        self,
        name: str,
        value_function: Callable[[], Any],
        field_type: Optional[Type[Any]] = None,
        description: str = "",
    ) -> FieldDescriptor:
        """Add a field whose value is computed after the query has been evaluated.

        The value function takes no arguments and is never part of the composed query expression;
        its result is written onto every projected record of this type that selects the field.
        """
        self._schema.ensure_not_completed("add field {}".format(name))
        if field_type is None:
            field_type = _get_return_type(value_function)

        field = FieldDescriptor(
            name,
            field_type,
            self._schema.get_gql_type,
            post_function=value_function,
            description=description,
        )
        return self._add_field_descriptor(field)
