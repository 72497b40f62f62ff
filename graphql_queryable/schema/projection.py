# Copyright 2021-present Kensho Technologies, LLC.
"""Projection types: the per-entity-type row shapes produced by composed queries.

A projection type is a class synthesized at schema completion, one per non-scalar type. Its
instances are ordered mappings from field name to value. Pre fields are filled in by the query
expression itself; post fields are written onto the record after the query has been evaluated.
"""
from collections import OrderedDict
from types import MappingProxyType
from typing import Any, ClassVar, FrozenSet, Iterable, Mapping, Tuple, Type, Union
import uuid

from .descriptors import EntityTypeDescriptor


class ProjectionRecord(OrderedDict):
    """Base class of synthesized projection types.

    Subclasses define the "members" class attribute, mapping each pre field name to its value
    kind, and the "post_members" class attribute holding the names of post fields. A record
    holds only the members that were actually selected, in selection order.
    """

    members: ClassVar[Mapping[str, Type[Any]]] = MappingProxyType({})
    post_members: ClassVar[FrozenSet[str]] = frozenset()
    entity_type_name: ClassVar[str] = ""

    def __init__(self, values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]] = ()) -> None:
        """Construct a record from pre field values; unknown member names are rejected."""
        super(ProjectionRecord, self).__init__(values)
        unexpected_names = [name for name in self if name not in self.members]
        if unexpected_names:
            raise AssertionError(
                "Record of type {} constructed with unexpected members {}. Expected only "
                "members among: {}".format(
                    type(self).__name__, unexpected_names, list(self.members)
                )
            )

    def __getattr__(self, name: str) -> Any:
        """Allow reading members as attributes, e.g. record.name."""
        try:
            return self[name]
        except KeyError:
            raise AttributeError(
                "{} record has no member {}".format(self.entity_type_name, name)
            ) from None

    def set_post_field(self, name: str, value: Any) -> None:
        """Write the value of a post field onto this record."""
        if name not in self.post_members:
            raise AssertionError(
                "Attempted to set {} on a record of type {}, but it is not a post field. "
                "Post fields: {}".format(name, type(self).__name__, sorted(self.post_members))
            )
        self[name] = value


def get_member_kind(field_type: EntityTypeDescriptor, is_list: bool) -> Type[Any]:
    """Return the value kind of a projection member for a field of the given type."""
    # Nested entities are projected recursively, so they cannot be typed statically here.
    if field_type.is_scalar and not is_list:
        return field_type.host_type
    return object


def synthesize_projection_type(type_descriptor: EntityTypeDescriptor) -> Type[ProjectionRecord]:
    """Create a brand-new projection class for the non-scalar type.

    The class name combines the type name with a fresh random token, so classes created for
    different types, or for the same type in different schemas, never share an identity.
    """
    if type_descriptor.is_scalar:
        raise AssertionError(
            "Attempted to synthesize a projection type for scalar type {}. Scalar types are "
            "projected as their own host type. This is a bug.".format(type_descriptor.name)
        )

    members = OrderedDict(
        (field.name, get_member_kind(field.type, field.is_list))
        for field in type_descriptor.pre_fields
    )
    post_members = frozenset(field.name for field in type_descriptor.post_fields)

    class_name = "{}{}".format(type_descriptor.name, uuid.uuid4().hex)
    return type(
        class_name,
        (ProjectionRecord,),
        {
            "members": MappingProxyType(members),
            "post_members": post_members,
            "entity_type_name": type_descriptor.name,
        },
    )
