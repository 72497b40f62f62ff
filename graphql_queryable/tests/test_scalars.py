# Copyright 2021-present Kensho Technologies, LLC.
from datetime import date, datetime
import math
import unittest
import uuid

from ..exceptions import GraphQLDuplicateRegistrationError, GraphQLInvalidArgumentError
from ..schema.scalars import (
    ScalarTypeEntry,
    ScalarTypeRegistry,
    WireKind,
    add_default_scalar_types,
    narrow_to_float32,
    narrow_to_int32,
    parse_date_value,
    parse_datetime_value,
)


class Celsius(object):
    def __init__(self, degrees: float) -> None:
        self.degrees = degrees


def parse_celsius(value: float) -> Celsius:
    return Celsius(value)


class WireKindTests(unittest.TestCase):
    def test_matching_raw_values_pass_through(self) -> None:
        self.assertEqual("abc", WireKind.STRING.coerce_raw_value("abc"))
        self.assertEqual(3, WireKind.INTEGER.coerce_raw_value(3))
        self.assertIs(True, WireKind.BOOLEAN.coerce_raw_value(True))

    def test_integers_widen_to_floats(self) -> None:
        widened = WireKind.FLOAT.coerce_raw_value(3)
        self.assertIsInstance(widened, float)
        self.assertEqual(3.0, widened)

    def test_mismatched_raw_values_are_rejected(self) -> None:
        invalid_values = (
            (WireKind.STRING, 1),
            (WireKind.INTEGER, "1"),
            (WireKind.INTEGER, 1.5),
            (WireKind.INTEGER, True),
            (WireKind.FLOAT, False),
            (WireKind.BOOLEAN, 0),
        )
        for kind, raw_value in invalid_values:
            with self.assertRaises(GraphQLInvalidArgumentError):
                kind.coerce_raw_value(raw_value)


class NarrowingTests(unittest.TestCase):
    def test_int32_wraps_around(self) -> None:
        self.assertEqual(5, narrow_to_int32(5))
        self.assertEqual(-5, narrow_to_int32(-5))
        self.assertEqual(-(2 ** 31), narrow_to_int32(2 ** 31))
        self.assertEqual(2 ** 31 - 1, narrow_to_int32(-(2 ** 31) - 1))

    def test_float32_rounds_and_overflows(self) -> None:
        self.assertEqual(0.5, narrow_to_float32(0.5))
        self.assertNotEqual(0.1, narrow_to_float32(0.1))
        self.assertAlmostEqual(0.1, narrow_to_float32(0.1), places=6)
        self.assertEqual(math.inf, narrow_to_float32(1e300))
        self.assertEqual(-math.inf, narrow_to_float32(-1e300))


class ScalarTypeEntryTests(unittest.TestCase):
    def test_host_type_and_name_are_inferred(self) -> None:
        entry = ScalarTypeEntry.for_float(parse_celsius)
        self.assertEqual("Celsius", entry.name)
        self.assertIs(Celsius, entry.host_type)
        self.assertEqual(WireKind.FLOAT, entry.kind)

        converted = entry.translate(21)
        self.assertIsInstance(converted, Celsius)
        self.assertEqual(21.0, converted.degrees)

        # A class used as the translator is its own host type.
        self.assertIs(uuid.UUID, ScalarTypeEntry.for_string(uuid.UUID).host_type)

    def test_uninferrable_host_type_requires_a_name(self) -> None:
        with self.assertRaises(ValueError):
            ScalarTypeEntry.for_string(lambda value: value.upper())

        entry = ScalarTypeEntry.for_string(lambda value: value.upper(), name="Shout")
        self.assertIs(object, entry.host_type)
        self.assertEqual("HEY", entry.translate("hey"))

    def test_type_descriptor_is_scalar(self) -> None:
        entry = ScalarTypeEntry.for_string(parse_date_value, name="Date")
        self.assertTrue(entry.type_descriptor.is_scalar)
        self.assertEqual("Date", entry.type_descriptor.name)
        self.assertIs(date, entry.type_descriptor.projection_type)

    def test_translation_errors_propagate(self) -> None:
        entry = ScalarTypeEntry.for_string(parse_date_value, name="Date")
        with self.assertRaises(GraphQLInvalidArgumentError):
            entry.translate(20210101)
        with self.assertRaises(ValueError):
            entry.translate("not a date")


class ScalarTypeRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = ScalarTypeRegistry()
        add_default_scalar_types(self.registry)

    def test_default_scalars(self) -> None:
        self.assertEqual(
            ["String", "Float", "Boolean", "UUID", "Float32", "Int"],
            [entry.name for entry in self.registry.entries],
        )
        self.assertEqual("Int", self.registry.find_by_host_type(int).name)
        # The first entry registered for a host type wins.
        self.assertEqual("Float", self.registry.find_by_host_type(float).name)
        self.assertIsNone(self.registry.find_by_name("Date"))
        self.assertIsNone(self.registry.find_by_host_type(date))

    def test_duplicate_names_are_rejected(self) -> None:
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.registry.add_type(ScalarTypeEntry.for_string(str, name="UUID"))

    def test_translate_by_host_type(self) -> None:
        self.assertEqual(
            uuid.UUID("12345678123456781234567812345678"),
            self.registry.translate_by_host_type(uuid.UUID, "12345678123456781234567812345678"),
        )
        self.assertEqual(-(2 ** 31), self.registry.translate_by_host_type(int, 2 ** 31))

        # Without a registered scalar, raw values pass through unchanged.
        self.assertEqual("2021-01-01", self.registry.translate_by_host_type(date, "2021-01-01"))

        self.registry.add_type(ScalarTypeEntry.for_string(parse_date_value, name="Date"))
        self.assertEqual(
            date(2021, 1, 1), self.registry.translate_by_host_type(date, "2021-01-01")
        )


class DateParsingTests(unittest.TestCase):
    def test_parse_date(self) -> None:
        self.assertEqual(date(2020, 2, 29), parse_date_value("2020-02-29"))
        with self.assertRaises(ValueError):
            parse_date_value("2020-02-29T10:00:00")

    def test_parse_datetime(self) -> None:
        self.assertEqual(
            datetime(2020, 2, 29, 10, 30), parse_datetime_value("2020-02-29T10:30:00")
        )
        with self.assertRaises(ValueError):
            parse_datetime_value("2020-02-29T10:30:00+02:00")
