# Copyright 2021-present Kensho Technologies, LLC.
"""Scalar types: conversions between raw wire values and host values.

Every scalar is carried on the wire as one of four kinds of raw value (string, integer, float,
boolean). A ScalarTypeEntry names a scalar, fixes its wire kind, and converts raw values of that
kind into values of a host type, e.g. a UUID string into a uuid.UUID.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
import inspect
import logging
import math
import struct
from typing import Any, Callable, List, Optional, Type
import uuid

# C-based module confuses pylint, which is why we disable the check below.
from ciso8601 import parse_datetime  # pylint: disable=no-name-in-module
import funcy

from ..exceptions import GraphQLDuplicateRegistrationError, GraphQLInvalidArgumentError
from .descriptors import EntityTypeDescriptor


logger = logging.getLogger(__name__)


class WireKind(Enum):
    """The kind of raw value a scalar is carried as on the wire."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"

    def coerce_raw_value(self, raw_value: Any) -> Any:
        """Check that the raw value is of this wire kind, widening integers for floats."""
        # bool is a subclass of int, so it has to be excluded from the numeric kinds explicitly.
        is_bool = isinstance(raw_value, bool)
        if self is WireKind.STRING and isinstance(raw_value, str):
            return raw_value
        elif self is WireKind.INTEGER and isinstance(raw_value, int) and not is_bool:
            return raw_value
        elif self is WireKind.FLOAT and isinstance(raw_value, (int, float)) and not is_bool:
            return float(raw_value)
        elif self is WireKind.BOOLEAN and is_bool:
            return raw_value

        raise GraphQLInvalidArgumentError(
            "Expected a raw {} value, got {} of type {} instead.".format(
                self.value, repr(raw_value), type(raw_value).__name__
            )
        )


def _infer_host_type(translate: Callable[[Any], Any]) -> Optional[Type[Any]]:
    """Return the host type produced by the translator, if it can be determined."""
    if isinstance(translate, type):
        return translate

    try:
        signature = inspect.signature(translate)
    except (TypeError, ValueError):
        # Some builtins do not expose a signature.
        return None

    return_annotation = signature.return_annotation
    if return_annotation is not signature.empty and isinstance(return_annotation, type):
        return return_annotation
    return None


@dataclass(frozen=True)
class ScalarTypeEntry:
    """A named scalar: its wire kind, host type, and raw-to-host conversion function."""

    name: str
    kind: WireKind
    host_type: Type[Any]
    translate_function: Callable[[Any], Any]
    description: str = ""
    type_descriptor: EntityTypeDescriptor = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Create the scalar type descriptor that represents this entry in introspection."""
        descriptor = EntityTypeDescriptor(
            self.host_type, self.name, description=self.description, is_scalar=True
        )
        descriptor.projection_type = self.host_type
        object.__setattr__(self, "type_descriptor", descriptor)

    def translate(self, raw_value: Any) -> Any:
        """Convert a raw wire value into a host value, propagating any conversion error."""
        return self.translate_function(self.kind.coerce_raw_value(raw_value))

    @classmethod
    def create(
        cls,
        kind: WireKind,
        translate: Callable[[Any], Any],
        name: Optional[str] = None,
        host_type: Optional[Type[Any]] = None,
        description: str = "",
    ) -> "ScalarTypeEntry":
        """Create an entry, inferring the host type and name from the translator if needed.

        Args:
            kind: the wire kind of the scalar's raw values
            translate: function converting a raw value of the given kind into a host value
            name: wire name of the scalar; defaults to the host type's name
            host_type: the host type produced by translate; defaults to translate itself if it is
                       a class, and otherwise to the return annotation of translate
            description: human-readable description of the scalar

        Returns:
            new ScalarTypeEntry
        """
        if host_type is None:
            host_type = _infer_host_type(translate)
        if host_type is None:
            if name is None:
                raise ValueError(
                    "Cannot determine the host type of scalar translator {}. Pass host_type "
                    "explicitly, or annotate the return type of the translator.".format(translate)
                )
            host_type = object
        if name is None:
            name = host_type.__name__
        return cls(name, kind, host_type, translate, description=description)

    @classmethod
    def for_string(cls, translate: Callable[[str], Any], **kwargs: Any) -> "ScalarTypeEntry":
        """Create an entry for a scalar carried as a string on the wire."""
        return cls.create(WireKind.STRING, translate, **kwargs)

    @classmethod
    def for_integer(cls, translate: Callable[[int], Any], **kwargs: Any) -> "ScalarTypeEntry":
        """Create an entry for a scalar carried as an integer on the wire."""
        return cls.create(WireKind.INTEGER, translate, **kwargs)

    @classmethod
    def for_float(cls, translate: Callable[[float], Any], **kwargs: Any) -> "ScalarTypeEntry":
        """Create an entry for a scalar carried as a float on the wire."""
        return cls.create(WireKind.FLOAT, translate, **kwargs)

    @classmethod
    def for_boolean(cls, translate: Callable[[bool], Any], **kwargs: Any) -> "ScalarTypeEntry":
        """Create an entry for a scalar carried as a boolean on the wire."""
        return cls.create(WireKind.BOOLEAN, translate, **kwargs)


def _identity(value: Any) -> Any:
    return value


BUILTIN_SCALAR_ENTRIES = (
    ScalarTypeEntry("String", WireKind.STRING, str, _identity),
    ScalarTypeEntry("Float", WireKind.FLOAT, float, _identity),
    ScalarTypeEntry("Boolean", WireKind.BOOLEAN, bool, _identity),
)


class ScalarTypeRegistry(object):
    """The scalar types known to a schema, in registration order.

    Lookups are linear scans. They happen while the schema is being defined and when request
    arguments are bound, never in the inner loop of query evaluation.
    """

    def __init__(self) -> None:
        """Construct a registry holding only the built-in String, Float and Boolean scalars."""
        self._entries: List[ScalarTypeEntry] = list(BUILTIN_SCALAR_ENTRIES)

    def add_type(self, entry: ScalarTypeEntry) -> None:
        """Register a scalar; its wire name must not already be registered."""
        if self.find_by_name(entry.name) is not None:
            raise GraphQLDuplicateRegistrationError(
                "A scalar type named {} has already been registered.".format(entry.name)
            )
        logger.debug(
            "Registering %s scalar %s for host type %s.",
            entry.kind.value,
            entry.name,
            entry.host_type,
        )
        self._entries.append(entry)

    def find_by_name(self, name: str) -> Optional[ScalarTypeEntry]:
        """Return the entry with the given wire name, or None if there is none."""
        return funcy.first(entry for entry in self._entries if entry.name == name)

    def find_by_host_type(self, host_type: Type[Any]) -> Optional[ScalarTypeEntry]:
        """Return the first entry producing exactly the given host type, or None if none does."""
        return funcy.first(entry for entry in self._entries if entry.host_type is host_type)

    @property
    def entries(self) -> List[ScalarTypeEntry]:
        """Return a copy of the list of registered entries."""
        return list(self._entries)

    @property
    def introspection_types(self) -> List[EntityTypeDescriptor]:
        """Return the scalar type descriptor of every registered entry."""
        return [entry.type_descriptor for entry in self._entries]

    def translate_by_host_type(self, host_type: Type[Any], raw_value: Any) -> Any:
        """Convert the raw value into the given host type, if a scalar for it is registered."""
        entry = self.find_by_host_type(host_type)
        if entry is None:
            return raw_value
        return entry.translate(raw_value)


def narrow_to_int32(value: int) -> int:
    """Wrap an integer into the signed 32-bit range, like an unchecked integer cast."""
    return ((value + 2 ** 31) % 2 ** 32) - 2 ** 31


def narrow_to_float32(value: float) -> float:
    """Round a float to the nearest IEEE-754 single-precision value."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        # Values beyond the single-precision range round to infinity, as in a narrowing cast.
        return math.copysign(math.inf, value)


def parse_uuid_value(value: str) -> uuid.UUID:
    """Parse a UUID from its string representation."""
    return uuid.UUID(value)


def add_default_scalar_types(registry: ScalarTypeRegistry) -> None:
    """Register the UUID, Float32 and Int scalars every schema starts with."""
    registry.add_type(ScalarTypeEntry.for_string(parse_uuid_value))
    registry.add_type(ScalarTypeEntry.for_float(narrow_to_float32, name="Float32"))
    registry.add_type(ScalarTypeEntry.for_integer(narrow_to_int32, name="Int"))


def parse_date_value(value: str) -> date:
    """Deserialize a Date object from its proper ISO-8601 representation."""
    # ciso8601 only supports parsing into datetime objects, not date objects.
    # "YYYY-MM-DD" strings get parsed into datetimes with all time fields set to 0, and
    # tzinfo=None. We don't want our parsing to implicitly lose precision, so before we convert
    # the parsed datetime into a date value, we assert that these fields are set as expected.
    dt = parse_datetime(value)  # This will raise ValueError in case of bad ISO 8601 formatting.
    if (
        dt.hour != 0
        or dt.minute != 0
        or dt.second != 0
        or dt.microsecond != 0
        or dt.tzinfo is not None
    ):
        raise ValueError(
            f"Expected an ISO-8601 date string in 'YYYY-MM-DD' format, but got a datetime "
            f"string with a non-empty time component. This is not supported, since converting "
            f"it to a date would result in an implicit loss of precision. Received value "
            f"{repr(value)}, parsed as {dt}."
        )

    return dt.date()


def parse_datetime_value(value: str) -> datetime:
    """Deserialize a timezone-naive DateTime object from its ISO-8601 representation."""
    dt = parse_datetime(value)  # This will raise ValueError in case of bad ISO 8601 formatting.
    if dt.tzinfo is not None:
        raise ValueError(
            f"Expected a timezone-naive datetime value, but got a timezone-aware datetime "
            f"string. This is not supported, since discarding the timezone component would "
            f"result in an implicit loss of precision. Received value {repr(value)}, "
            f"parsed as {dt}."
        )

    return dt
