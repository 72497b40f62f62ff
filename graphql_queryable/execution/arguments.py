# Copyright 2021-present Kensho Technologies, LLC.
"""Binding raw request arguments to the argument shapes of queries and fields.

An argument shape describes the arguments a query or field takes. It is one of:
- a dict from argument name to default value; the argument's type is the type of its default;
- a dataclass; its fields are the arguments;
- a NamedTuple class; its fields are the arguments.
Raw argument values are converted into host values by the schema's scalar translators.
"""
from collections import OrderedDict
import dataclasses
from typing import Any, Dict, Mapping, Optional, Set, Type, get_type_hints

from ..exceptions import GraphQLInvalidArgumentError
from ..schema.host_types import member_type_from_annotation
from ..schema.scalars import ScalarTypeRegistry


def _is_named_tuple_class(args_shape: Any) -> bool:
    return (
        isinstance(args_shape, type)
        and issubclass(args_shape, tuple)
        and hasattr(args_shape, "_fields")
    )


def get_argument_types(args_shape: Any) -> Dict[str, Type[Any]]:
    """Return the host type of each argument of the argument shape, in declaration order."""
    if args_shape is None:
        return OrderedDict()
    elif isinstance(args_shape, Mapping):
        return OrderedDict(
            (argument_name, type(default_value))
            for argument_name, default_value in args_shape.items()
        )
    elif dataclasses.is_dataclass(args_shape) and isinstance(args_shape, type):
        hints = get_type_hints(args_shape)
        return OrderedDict(
            (field.name, member_type_from_annotation(hints[field.name]).host_type)
            for field in dataclasses.fields(args_shape)
        )
    elif _is_named_tuple_class(args_shape):
        hints = get_type_hints(args_shape)
        return OrderedDict(
            (field_name, member_type_from_annotation(hints[field_name]).host_type)
            for field_name in args_shape._fields
        )
    else:
        raise AssertionError(
            "Unsupported argument shape {}. Expected a dict of default values, a dataclass, "
            "or a NamedTuple class.".format(args_shape)
        )


def _get_required_argument_names(args_shape: Any) -> Set[str]:
    """Return the names of the arguments of the argument shape that have no default value."""
    if dataclasses.is_dataclass(args_shape):
        return {
            field.name
            for field in dataclasses.fields(args_shape)
            if field.default is dataclasses.MISSING
            and field.default_factory is dataclasses.MISSING  # type: ignore[misc]
        }
    elif _is_named_tuple_class(args_shape):
        return set(args_shape._fields) - set(args_shape._field_defaults)
    else:
        return set()


def bind_arguments(
    registry: ScalarTypeRegistry, args_shape: Any, raw_arguments: Optional[Mapping[str, Any]]
) -> Any:
    """Convert raw request arguments into the arguments value of the given shape.

    Args:
        registry: scalar registry used to convert each raw value into its argument's host type
        args_shape: argument shape of the query or field, or None if it takes no arguments
        raw_arguments: dict from argument name to raw wire value, or None

    Returns:
        None if the shape is None; a dict of the defaults updated with the converted values if
        the shape is a dict; an instance of the shape if it is a dataclass or NamedTuple class
    """
    if raw_arguments is None:
        raw_arguments = {}

    if args_shape is None:
        if raw_arguments:
            raise GraphQLInvalidArgumentError(
                "Expected no arguments, but got: {}".format(sorted(raw_arguments))
            )
        return None

    argument_types = get_argument_types(args_shape)
    unexpected_names = set(raw_arguments) - set(argument_types)
    if unexpected_names:
        raise GraphQLInvalidArgumentError(
            "Unexpected arguments {}. Expected only arguments among: {}".format(
                sorted(unexpected_names), list(argument_types)
            )
        )

    missing_names = _get_required_argument_names(args_shape) - set(raw_arguments)
    if missing_names:
        raise GraphQLInvalidArgumentError(
            "Missing required arguments: {}".format(sorted(missing_names))
        )

    bound_values = OrderedDict()
    for argument_name, raw_value in raw_arguments.items():
        if raw_value is None:
            bound_values[argument_name] = None
        else:
            bound_values[argument_name] = registry.translate_by_host_type(
                argument_types[argument_name], raw_value
            )

    if isinstance(args_shape, Mapping):
        arguments = OrderedDict(args_shape)
        arguments.update(bound_values)
        return arguments
    return args_shape(**bound_values)
