# Copyright 2021-present Kensho Technologies, LLC.
"""Reflection over host classes: their readable members, and the types of those members."""
from collections import abc
import dataclasses
from datetime import date, datetime
from decimal import Decimal
from typing import (
    Any,
    ClassVar,
    Dict,
    List,
    NamedTuple,
    Optional,
    Type,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
import uuid

import sqlalchemy
from sqlalchemy.orm import Mapper


# Host types that are always scalars: values of these types have no sub-fields.
PRIMITIVE_HOST_TYPES = frozenset(
    {bool, int, float, complex, str, bytes, Decimal, date, datetime, uuid.UUID}
)

_SEQUENCE_ORIGINS = frozenset(
    {
        list,
        tuple,
        set,
        frozenset,
        abc.Sequence,
        abc.MutableSequence,
        abc.Set,
        abc.Iterable,
        abc.Collection,
    }
)


class MemberType(NamedTuple):
    """The type of a host member: its (element) type, and whether it holds a sequence of them."""

    host_type: Type[Any]
    is_list: bool


UNKNOWN_MEMBER_TYPE = MemberType(object, False)


def is_primitive_host_type(host_type: Type[Any]) -> bool:
    """Return True if values of the host type are scalars."""
    return host_type in PRIMITIVE_HOST_TYPES


def _get_mapper(host_type: Type[Any]) -> Optional[Mapper]:
    """Return the SQLAlchemy mapper of the host class, or None if it is not a mapped class."""
    inspected = sqlalchemy.inspect(host_type, raiseerr=False)
    if isinstance(inspected, Mapper):
        return inspected
    return None


def member_type_from_annotation(annotation: Any) -> MemberType:
    """Interpret a type annotation as a MemberType, unwrapping Optional and sequence types."""
    origin = get_origin(annotation)

    if origin is Union:
        non_none_arguments = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(non_none_arguments) == 1:
            return member_type_from_annotation(non_none_arguments[0])
        return UNKNOWN_MEMBER_TYPE

    if origin in _SEQUENCE_ORIGINS:
        arguments = get_args(annotation)
        element_annotation = arguments[0] if arguments else Any
        element_type = member_type_from_annotation(element_annotation)
        if element_type.is_list:
            # Nested sequences are opaque values.
            return MemberType(object, True)
        return MemberType(element_type.host_type, True)

    if isinstance(annotation, type):
        return MemberType(annotation, False)

    return UNKNOWN_MEMBER_TYPE


def _get_annotated_members(host_type: Type[Any]) -> Dict[str, Any]:
    """Return the public, non-ClassVar annotated members of the host class, in order."""
    hints = get_type_hints(host_type)
    return {
        name: hint
        for name, hint in hints.items()
        if not name.startswith("_") and get_origin(hint) is not ClassVar and hint is not ClassVar
    }


def _get_public_properties(host_type: Type[Any]) -> List[str]:
    """Return the names of the public properties of the host class, base classes first."""
    names: List[str] = []
    for klass in reversed(host_type.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, property) and not name.startswith("_") and name not in names:
                names.append(name)
    return names


def get_member_type(host_type: Type[Any], member_name: str) -> MemberType:
    """Return the type of the named member of the host class, or an opaque type if unknown."""
    mapper = _get_mapper(host_type)
    if mapper is not None:
        if member_name in mapper.relationships:
            relationship = mapper.relationships[member_name]
            return MemberType(relationship.mapper.class_, bool(relationship.uselist))
        if member_name in mapper.column_attrs:
            column = mapper.column_attrs[member_name].columns[0]
            try:
                return MemberType(column.type.python_type, False)
            except NotImplementedError:
                # Some column types do not declare the Python type of their values.
                return UNKNOWN_MEMBER_TYPE

    annotated_members = _get_annotated_members(host_type)
    if member_name in annotated_members:
        return member_type_from_annotation(annotated_members[member_name])

    member = getattr(host_type, member_name, None)
    if isinstance(member, property) and member.fget is not None:
        return_hint = get_type_hints(member.fget).get("return")
        if return_hint is not None:
            return member_type_from_annotation(return_hint)

    return UNKNOWN_MEMBER_TYPE


def get_public_member_names(host_type: Type[Any]) -> List[str]:
    """Return the names of the publicly readable instance members of the host class, in order.

    - SQLAlchemy-mapped classes: their mapped column attributes, then their relationships.
    - Dataclasses: their fields.
    - NamedTuples: their fields.
    - Other classes: their annotated attributes, then their properties.
    Names starting with an underscore are never included.
    """
    mapper = _get_mapper(host_type)
    if mapper is not None:
        names = [attribute.key for attribute in mapper.column_attrs]
        names.extend(relationship.key for relationship in mapper.relationships)
    elif dataclasses.is_dataclass(host_type):
        names = [field.name for field in dataclasses.fields(host_type)]
    elif issubclass(host_type, tuple) and hasattr(host_type, "_fields"):
        names = list(host_type._fields)
    else:
        names = list(_get_annotated_members(host_type))
        names.extend(name for name in _get_public_properties(host_type) if name not in names)

    return [name for name in names if not name.startswith("_")]
