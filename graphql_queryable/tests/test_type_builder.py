# Copyright 2021-present Kensho Technologies, LLC.
from dataclasses import dataclass
from typing import List, NamedTuple
import unittest

from ..exceptions import (
    GraphQLDuplicateRegistrationError,
    GraphQLMalformedFieldExpressionError,
    GraphQLSchemaLifecycleError,
    GraphQLTypeNotFoundError,
)
from ..execution.api import execute_graphql, execute_query
from ..execution.composition import FieldSelection
from ..expression_tree import (
    Lambda,
    MemberAccess,
    Parameter,
    evaluate_lambda_with_arguments,
)
from ..schema.host_types import MemberType, get_member_type, get_public_member_names
from ..schema.schema import QueryableSchema
from .test_helpers import Post, User, make_test_db, make_users_schema


class Point(NamedTuple):
    x: float
    y: float


@dataclass
class Tally:
    label: str
    count: int


class Account(object):
    owner: User
    tags: List[str]
    _secret: str

    @property
    def display_name(self) -> str:
        return "account of {}".format(self.owner.name)


class HostTypeTests(unittest.TestCase):
    def test_member_types_from_annotations(self) -> None:
        self.assertEqual(MemberType(str, False), get_member_type(User, "first_name"))
        self.assertEqual(MemberType(User, False), get_member_type(User, "best_friend"))
        self.assertEqual(MemberType(str, True), get_member_type(User, "nicknames"))
        self.assertEqual(MemberType(float, False), get_member_type(Point, "y"))
        self.assertEqual(MemberType(str, False), get_member_type(Account, "display_name"))
        self.assertEqual(MemberType(object, False), get_member_type(User, "missing"))

    def test_public_member_names(self) -> None:
        self.assertEqual(["id", "title", "author_id", "score"], get_public_member_names(Post))
        self.assertEqual(["x", "y"], get_public_member_names(Point))
        self.assertEqual(["owner", "tags", "display_name"], get_public_member_names(Account))


class TypeBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.schema = make_users_schema()
        self.user_type = self.schema.get_type(User)

    def test_property_fields_are_camel_cased(self) -> None:
        field = self.user_type.add_property_field(lambda user: user.first_name)
        self.assertEqual("firstName", field.name)
        self.assertIs(str, field.field_host_type)
        self.assertFalse(field.is_list)

        field = self.user_type.add_property_field(lambda user: user.nicknames)
        self.assertEqual("nicknames", field.name)
        self.assertIs(str, field.field_host_type)
        self.assertTrue(field.is_list)

        # The field reads the original member.
        expression = self.user_type.descriptor.find_field("firstName").get_expression(None)
        self.assertIs(self.schema.context_parameter, expression.parameters[0])
        alice = make_test_db().users[0]
        self.assertEqual("Alice", evaluate_lambda_with_arguments(expression, None, alice))

    def test_duplicate_field_names_are_rejected(self) -> None:
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.user_type.add_property_field(lambda user: user.name)
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            self.user_type.add_field("id", lambda db, user: user.id)

    def test_malformed_property_selectors(self) -> None:
        with self.assertRaises(GraphQLMalformedFieldExpressionError):
            self.user_type.add_property_field(lambda user: user.name.upper())
        with self.assertRaises(GraphQLMalformedFieldExpressionError):
            self.user_type.add_property_field(lambda user: user.best_friend.name)
        with self.assertRaises(GraphQLMalformedFieldExpressionError):
            self.user_type.add_property_field(lambda db, user: user.name)

        # Selectors of the right arity can still fail to be captured, e.g. by calling len().
        with self.assertRaises(GraphQLMalformedFieldExpressionError) as context:
            self.user_type.add_property_field(lambda user: len(user.name))
        self.assertIn("could not be captured", str(context.exception))
        self.assertIn("len()", str(context.exception))

    def test_field_lambdas_must_close_over_the_context_parameter(self) -> None:
        entity = Parameter("user")
        foreign_lambda = Lambda((Parameter("context"), entity), MemberAccess(entity, "name"))
        with self.assertRaises(GraphQLMalformedFieldExpressionError):
            self.user_type.add_field("foreignName", foreign_lambda)

        own_lambda = Lambda((self.schema.context_parameter, entity), MemberAccess(entity, "name"))
        field = self.user_type.add_field("ownName", own_lambda)
        self.assertIs(str, field.field_host_type)

    def test_field_type_inference(self) -> None:
        inferred_types = {
            "isFirst": (lambda db, user: user.id == 1, bool, False),
            "isNotFirst": (lambda db, user: ~(user.id == 1), bool, False),
            "displayName": (lambda db, user: user.name, str, False),
            "friendName": (lambda db, user: user.best_friend.name, str, False),
            "firstNickname": (lambda db, user: user.nicknames.first(), str, False),
            "someNicknames": (lambda db, user: user.nicknames.take(1), str, True),
            "hasNicknames": (lambda db, user: user.nicknames.any(), bool, False),
            "nicknameCount": (lambda db, user: user.nicknames.count(), int, False),
            "answer": (lambda db, user: 42, int, False),
            "everything": (lambda db, user: db.posts, object, False),
        }
        for name, (expression, expected_type, expected_is_list) in inferred_types.items():
            field = self.user_type.add_field(name, expression)
            self.assertIs(expected_type, field.field_host_type, msg=name)
            self.assertEqual(expected_is_list, field.is_list, msg=name)

    def test_explicit_field_types(self) -> None:
        field = self.user_type.add_field(
            "posts",
            lambda db, user: db.posts.where(lambda post: post.author_id == user.id),
            field_type=Post,
            is_list=True,
        )
        self.assertIs(Post, field.field_host_type)
        self.assertTrue(field.is_list)

        field = self.user_type.add_field_with_args(
            "postsBy", {"authorId": 0}, lambda args: lambda db, user: db.posts
        )
        self.assertIs(object, field.field_host_type)
        self.assertEqual({"authorId": 0}, field.args_shape)

    def test_add_all_fields(self) -> None:
        post_type = self.schema.add_type(Post)
        fields = post_type.add_all_fields()
        self.assertEqual(["id", "title", "authorId", "score"], [field.name for field in fields])
        self.assertEqual(
            [int, str, int, float], [field.field_host_type for field in fields]
        )
        with self.assertRaises(GraphQLDuplicateRegistrationError):
            post_type.add_all_fields()

    def test_post_field_types(self) -> None:
        def get_version() -> int:
            return 3

        field = self.user_type.add_post_field("version", get_version)
        self.assertTrue(field.is_post)
        self.assertIs(int, field.field_host_type)
        self.assertEqual(3, field.compute_post_value())

        field = self.user_type.add_post_field("motto", lambda: "hi")
        self.assertIs(object, field.field_host_type)
        self.assertNotIn(field, self.user_type.descriptor.pre_fields)

    def test_unknown_type(self) -> None:
        with self.assertRaises(GraphQLTypeNotFoundError):
            self.schema.get_type(Post)

    def test_completed_schema_rejects_new_fields(self) -> None:
        self.schema.complete()
        with self.assertRaises(GraphQLSchemaLifecycleError):
            self.user_type.add_property_field(lambda user: user.first_name)
        with self.assertRaises(GraphQLSchemaLifecycleError):
            self.user_type.add_post_field("version", lambda: 1)

    def test_builders_are_views(self) -> None:
        schema = QueryableSchema(make_test_db)
        first_builder = schema.add_type(User)
        first_builder.add_property_field(lambda user: user.id)
        second_builder = schema.get_type(User)
        self.assertIs(first_builder.descriptor, second_builder.descriptor)
        self.assertEqual(["id"], [field.name for field in second_builder.descriptor.fields])


class MemberNamingTests(unittest.TestCase):
    def test_members_named_like_sequence_operators(self) -> None:
        tallies = [Tally("a", 2), Tally("b", 5)]
        schema = QueryableSchema(lambda: tallies)
        tally_type = schema.add_type(Tally)
        tally_type.add_property_field(lambda tally: tally.label)
        count_field = tally_type.add_property_field(lambda tally: tally.count)
        self.assertEqual("count", count_field.name)
        self.assertIs(int, count_field.field_host_type)
        tally_type.add_field("double", lambda context, tally: tally.count * 2, field_type=int)
        schema.add_query(
            "bigTallies", Tally, lambda context: context.where(lambda tally: tally.count > 2)
        )
        schema.complete()

        selections = (FieldSelection("label"), FieldSelection("count"), FieldSelection("double"))
        expected_records = [{"label": "b", "count": 5, "double": 10}]
        result = execute_query(schema, "bigTallies", selections=selections)
        self.assertEqual(expected_records, result)
        self.assertEqual(
            {"bigTallies": expected_records},
            execute_graphql(schema, "{ bigTallies { label count double } }"),
        )
