# Copyright 2021-present Kensho Technologies, LLC.
import unittest

from ..execution.api import execute_graphql, execute_query
from ..execution.composition import FieldSelection
from .test_helpers import make_blog_schema


class IntrospectionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.schema = make_blog_schema()

    def test_schema_query_lists_all_types(self) -> None:
        result = execute_query(
            self.schema,
            "__schema",
            selections=(
                FieldSelection(
                    "types", selections=(FieldSelection("name"), FieldSelection("kind"))
                ),
                FieldSelection("directives"),
            ),
        )

        self.assertEqual([], result["directives"])
        type_kinds = {type_record["name"]: type_record["kind"] for type_record in result["types"]}
        expected_type_kinds = {
            "User": "OBJECT",
            "Post": "OBJECT",
            "__Schema": "OBJECT",
            "__Type": "OBJECT",
            "__Field": "OBJECT",
            "String": "SCALAR",
            "Float": "SCALAR",
            "Boolean": "SCALAR",
            "UUID": "SCALAR",
            "Float32": "SCALAR",
            "Int": "SCALAR",
        }
        self.assertEqual(expected_type_kinds, type_kinds)

    def test_type_query_finds_types_by_name(self) -> None:
        result = execute_query(
            self.schema,
            "__type",
            arguments={"name": "Post"},
            selections=(
                FieldSelection("name"),
                FieldSelection(
                    "fields",
                    selections=(
                        FieldSelection("name"),
                        FieldSelection("type", selections=(FieldSelection("name"),)),
                    ),
                ),
            ),
        )

        self.assertEqual("Post", result["name"])
        field_types = [
            (field_record["name"], field_record["type"]["name"])
            for field_record in result["fields"]
        ]
        expected_field_types = [
            ("id", "Int"),
            ("title", "String"),
            ("authorId", "Int"),
            ("score", "Float"),
            ("author", "User"),
            ("__typename", "String"),
        ]
        self.assertEqual(expected_field_types, field_types)

    def test_type_query_for_missing_type_is_null(self) -> None:
        result = execute_query(
            self.schema,
            "__type",
            arguments={"name": "Comment"},
            selections=(FieldSelection("name"),),
        )
        self.assertIsNone(result)

    def test_introspection_types_have_type_names(self) -> None:
        result = execute_query(
            self.schema,
            "__type",
            arguments={"name": "User"},
            selections=(FieldSelection("__typename"), FieldSelection("description")),
        )
        self.assertEqual(
            {"__typename": "__Type", "description": "A person who writes posts."}, result
        )
        self.assertEqual(["__typename", "description"], list(result))

    def test_introspection_through_graphql_documents(self) -> None:
        query = """{
            __type(name: "User") {
                name
                kind
                fields {
                    name
                }
            }
        }"""
        result = execute_graphql(self.schema, query)

        user_type = result["__type"]
        self.assertEqual("User", user_type["name"])
        self.assertEqual("OBJECT", user_type["kind"])
        self.assertEqual(
            [
                "id",
                "name",
                "firstName",
                "bestFriend",
                "nicknames",
                "posts",
                "postCount",
                "postsAbove",
                "__typename",
            ],
            [field_record["name"] for field_record in user_type["fields"]],
        )
