# Copyright 2021-present Kensho Technologies, LLC.
"""Writing post field values onto the records produced by an evaluated query."""
from typing import Any, Sequence

import funcy

from ..schema.descriptors import EntityTypeDescriptor
from ..schema.projection import ProjectionRecord
from .composition import FieldSelection


def _materialize_record(
    type_descriptor: EntityTypeDescriptor,
    record: ProjectionRecord,
    selections: Sequence[FieldSelection],
) -> None:
    for selection in selections:
        field = type_descriptor.find_field(selection.name)
        if field is None:
            raise AssertionError(
                "Selected field {} does not exist on type {}, but the query was composed. "
                "This is a bug.".format(selection.name, type_descriptor.name)
            )
        if field.is_post:
            record.set_post_field(field.name, field.compute_post_value())
        elif not field.type.is_scalar:
            materialize_post_fields(
                field.type, record[field.name], selection.selections, is_list=field.is_list
            )

    # Post fields were appended after the pre fields; restore the selection order.
    for field_name in funcy.distinct(selection.name for selection in selections):
        if field_name in record:
            record.move_to_end(field_name)


def materialize_post_fields(
    type_descriptor: EntityTypeDescriptor,
    value: Any,
    selections: Sequence[FieldSelection],
    is_list: bool = False,
) -> None:
    """Write the selected post fields onto the records of the evaluated value, recursively.

    Args:
        type_descriptor: the type of the value, or of its elements if is_list
        value: evaluated value; a record, a sequence of records, or None
        selections: the fields that were selected on the records
        is_list: whether the value is a sequence of records
    """
    if value is None or type_descriptor.is_scalar:
        return

    records = value if is_list else (value,)
    for record in records:
        if record is not None:
            _materialize_record(type_descriptor, record, selections)
