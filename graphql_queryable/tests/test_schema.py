# Copyright 2021-present Kensho Technologies, LLC.
from datetime import date
import unittest
import uuid

from ..exceptions import (
    GraphQLDuplicateRegistrationError,
    GraphQLMalformedFieldExpressionError,
    GraphQLSchemaLifecycleError,
    GraphQLSchemaValidationError,
)
from ..expression_tree import Lambda, Parameter
from ..schema import ROOT_QUERY_TYPE_NAME, TYPENAME_META_FIELD_NAME
from ..schema.descriptors import ResolutionMode
from ..schema.projection import ProjectionRecord
from ..schema.scalars import parse_date_value
from ..schema.schema import QueryableSchema
from .test_helpers import Post, User, make_blog_schema, make_test_db, make_users_schema


class SchemaRegistrationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.schema = make_users_schema()

    def test_duplicate_types_are_rejected(self) -> None:
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_type(User)

        # A different host type under an already-used name.
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_type(Post, name="User")

        self.assertEqual(["User"], [type_descriptor.name for type_descriptor in self.schema.types])

    def test_scalar_types(self) -> None:
        self.assertTrue(self.schema.add_type(int, name="Count").descriptor.is_scalar)
        self.assertTrue(self.schema.add_type(uuid.UUID).descriptor.is_scalar)
        self.assertFalse(self.schema.add_type(Post).descriptor.is_scalar)

        self.schema.add_string(parse_date_value, name="Date")
        self.assertTrue(self.schema.add_type(date).descriptor.is_scalar)

    def test_get_gql_type(self) -> None:
        self.assertEqual("User", self.schema.get_gql_type(User).name)
        self.assertEqual("Int", self.schema.get_gql_type(int).name)
        self.assertEqual("String", self.schema.get_gql_type(str).name)

        ad_hoc_type = self.schema.get_gql_type(bytes)
        self.assertTrue(ad_hoc_type.is_scalar)
        self.assertEqual("bytes", ad_hoc_type.name)
        self.assertIs(ad_hoc_type, self.schema.get_gql_type(bytes))

    def test_duplicate_and_reserved_query_names(self) -> None:
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_query("users", User, lambda db: db.users)
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_unmodified_query("__schema", User, lambda db: db.users.first())
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_query_with_args(
                "__type", User, {"name": ""}, lambda args: lambda db: db.users
            )

    def test_find_query(self) -> None:
        query = self.schema.find_query("users")
        self.assertIsNotNone(query)
        self.assertEqual(ResolutionMode.MODIFIED, query.resolution_mode)
        self.assertTrue(query.is_list)
        self.assertIsNone(self.schema.find_query("Users"))
        self.assertIsNone(self.schema.find_query("posts"))

    def test_query_lambdas_must_close_over_the_context_parameter(self) -> None:
        with self.assertRaises(GraphQLMalformedFieldExpressionError):
            self.schema.add_query("everyone", User, Lambda((Parameter("context"),), Parameter("x")))

    def test_scalar_registration(self) -> None:
        entry = self.schema.add_string(parse_date_value, name="Date")
        self.assertIs(date, entry.host_type)
        self.assertIs(entry, self.schema.scalar_types.find_by_name("Date"))
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_string(parse_date_value, name="Date")
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.schema.add_integer(int, name="Int")


class SchemaCompletionTests(unittest.TestCase):
    def test_completion_synthesizes_projection_types(self) -> None:
        schema = make_blog_schema()
        self.assertTrue(schema.completed)
        self.assertIsNotNone(schema.adapter)

        for type_descriptor in schema.list_all_types():
            self.assertIsNotNone(type_descriptor.projection_type, msg=type_descriptor.name)

        user_projection = schema.get_gql_type(User).projection_type
        post_projection = schema.get_gql_type(Post).projection_type
        self.assertTrue(issubclass(user_projection, ProjectionRecord))
        self.assertIsNot(user_projection, post_projection)
        self.assertTrue(user_projection.__name__.startswith("User"))
        self.assertIn("bestFriend", user_projection.members)
        self.assertIn(TYPENAME_META_FIELD_NAME, user_projection.post_members)
        self.assertNotIn(TYPENAME_META_FIELD_NAME, user_projection.members)

        # Scalar types are projected as their own host type.
        self.assertIs(int, schema.get_gql_type(int).projection_type)

    def test_projection_types_differ_across_schemas(self) -> None:
        first_schema = make_blog_schema()
        second_schema = make_blog_schema()
        self.assertIsNot(
            first_schema.get_gql_type(User).projection_type,
            second_schema.get_gql_type(User).projection_type,
        )

    def test_completion_declares_introspection(self) -> None:
        schema = make_blog_schema()
        self.assertIsNotNone(schema.find_query("__schema"))
        self.assertIsNotNone(schema.find_query("__type"))
        type_names = [type_descriptor.name for type_descriptor in schema.types]
        self.assertEqual(["User", "Post", "__Schema", "__Type", "__Field"], type_names)

        for type_descriptor in schema.types:
            type_name_field = type_descriptor.find_field(TYPENAME_META_FIELD_NAME)
            self.assertTrue(type_name_field.is_post)
            self.assertEqual(type_descriptor.name, type_name_field.compute_post_value())

        self.assertNotIn(ROOT_QUERY_TYPE_NAME, type_names)

    def test_completed_schema_is_read_only(self) -> None:
        schema = make_blog_schema()
        with self.assertRaises(GraphQLSchemaLifecycleError):
            schema.complete()
        with self.assertRaises(GraphQLSchemaLifecycleError):
            schema.add_type(date)
        with self.assertRaises(GraphQLSchemaLifecycleError):
            schema.add_query("everyone", User, lambda db: db.users)
        with self.assertRaises(GraphQLSchemaLifecycleError):
            schema.add_string(parse_date_value, name="Date")

        # The exposed lists are copies.
        schema.types.clear()
        schema.queries.clear()
        self.assertNotEqual([], schema.types)
        self.assertNotEqual([], schema.queries)

    def test_scalar_types_must_not_declare_fields(self) -> None:
        schema = make_users_schema()
        schema.add_type(int, name="Count").add_field("double", lambda db, value: value * 2)
        with self.assertRaises(GraphQLSchemaValidationError):
            schema.complete()

    def test_failed_completion_rolls_back(self) -> None:
        schema = make_users_schema()
        post_type = schema.add_type(Post)
        with self.assertRaises(GraphQLSchemaValidationError):
            schema.complete()

        # Nothing declared by the failed attempt survives it.
        self.assertFalse(schema.completed)
        self.assertIsNone(schema.adapter)
        self.assertEqual(
            ["User", "Post"], [type_descriptor.name for type_descriptor in schema.types]
        )
        self.assertEqual(["users"], [query.name for query in schema.queries])
        self.assertEqual(["id", "name"], [field.name for field in schema.get_gql_type(User).fields])
        self.assertIsNone(schema.get_gql_type(User).projection_type)

        # Fixing the declarations allows completing the schema.
        post_type.add_property_field(lambda post: post.title)
        schema.complete()
        self.assertTrue(schema.completed)
        self.assertEqual(
            ["id", "name", TYPENAME_META_FIELD_NAME],
            [field.name for field in schema.get_gql_type(User).fields],
        )

    def test_rollback_undoes_introspection_declarations(self) -> None:
        schema = make_users_schema()
        # Arguments must be scalars, which is checked after the introspection types and fields
        # have been declared.
        schema.get_type(User).add_field_with_args(
            "isFriendOf",
            {"friend": User(0, "Nobody")},
            lambda args: lambda db, user: user.best_friend == args["friend"],
        )
        with self.assertRaises(GraphQLSchemaValidationError):
            schema.complete()

        self.assertFalse(schema.completed)
        self.assertEqual(["User"], [type_descriptor.name for type_descriptor in schema.types])
        self.assertEqual(["users"], [query.name for query in schema.queries])
        self.assertEqual(
            ["id", "name", "isFriendOf"], [field.name for field in schema.get_gql_type(User).fields]
        )
        self.assertIsNone(schema.get_gql_type(User).projection_type)
        self.assertIsNone(schema.find_query("__schema"))

    def test_context_factory_is_not_called_by_the_schema(self) -> None:
        calls = []

        def make_context() -> object:
            calls.append(None)
            return make_test_db()

        schema = QueryableSchema(make_context)
        schema.add_type(User).add_property_field(lambda user: user.id)
        schema.add_query("users", User, lambda db: db.users)
        schema.complete()
        self.assertEqual([], calls)

    def test_query_arguments_must_be_scalars(self) -> None:
        schema = make_users_schema()
        schema.add_query_with_args(
            "friendsOf", User, {"friend": User(0, "Nobody")}, lambda args: lambda db: db.users
        )
        with self.assertRaises(GraphQLSchemaValidationError):
            schema.complete()
        self.assertFalse(schema.completed)
        self.assertIsNone(schema.adapter)

    def test_schema_without_queries_cannot_complete(self) -> None:
        schema = QueryableSchema(make_test_db)
        schema.add_type(User).add_property_field(lambda user: user.id)
        with self.assertRaises(GraphQLSchemaValidationError):
            schema.complete()

        self.assertFalse(schema.completed)
        self.assertEqual(["User"], [type_descriptor.name for type_descriptor in schema.types])
        self.assertEqual([], schema.queries)
