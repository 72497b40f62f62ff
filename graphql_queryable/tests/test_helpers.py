# Copyright 2021-present Kensho Technologies, LLC.
"""Common test data and helper functions."""
from dataclasses import dataclass, field
import re
from typing import List, Optional
from unittest import TestCase

from ..schema.schema import QueryableSchema


# The strings which we will be comparing have newlines and spaces we'd like to get rid of,
# so we can compare expected and produced schema text irrespective of whitespace.
WHITESPACE_PATTERN = re.compile("[\t\n ]*", flags=re.UNICODE)


@dataclass
class Post:
    id: int
    title: str
    author_id: int
    score: Optional[float] = None


@dataclass
class User:
    id: int
    name: str
    first_name: Optional[str] = None
    best_friend: Optional["User"] = None
    nicknames: List[str] = field(default_factory=list)


@dataclass
class Db:
    users: List[User]
    posts: List[Post]


def make_test_db() -> Db:
    """Return a data context holding two users, the first of whom has written two posts."""
    alice = User(1, "Alice", first_name="Alice", nicknames=["Al"])
    bob = User(2, "Bob", best_friend=alice)
    posts = [
        Post(10, "Hello world", author_id=1, score=4.5),
        Post(11, "Second post", author_id=1),
        Post(12, "Bob was here", author_id=2, score=1.0),
    ]
    return Db(users=[alice, bob], posts=posts)


def make_users_schema() -> QueryableSchema:
    """Return an open schema with a User type of two fields, and a "users" query."""
    schema = QueryableSchema(make_test_db)
    user_type = schema.add_type(User)
    user_type.add_property_field(lambda user: user.id)
    user_type.add_property_field(lambda user: user.name)
    schema.add_query("users", User, lambda db: db.users)
    return schema


def make_blog_schema() -> QueryableSchema:
    """Return a completed schema over users and their posts, exercising most field kinds."""
    schema = QueryableSchema(make_test_db)

    user_type = schema.add_type(User, description="A person who writes posts.")
    user_type.add_property_field(lambda user: user.id)
    user_type.add_property_field(lambda user: user.name)
    user_type.add_property_field(lambda user: user.first_name)
    user_type.add_property_field(lambda user: user.best_friend)
    user_type.add_property_field(lambda user: user.nicknames)
    user_type.add_field(
        "posts",
        lambda db, user: db.posts.where(lambda post: post.author_id == user.id),
        field_type=Post,
        is_list=True,
    )
    user_type.add_field(
        "postCount", lambda db, user: db.posts.count(lambda post: post.author_id == user.id)
    )
    user_type.add_field_with_args(
        "postsAbove",
        {"minScore": 0.0},
        lambda args: lambda db, user: db.posts.where(
            lambda post: (post.author_id == user.id) & (post.score > args["minScore"])
        ),
        field_type=Post,
        is_list=True,
    )

    post_type = schema.add_type(Post)
    post_type.add_all_fields()
    post_type.add_field(
        "author",
        lambda db, post: db.users.first_or_default(lambda user: user.id == post.author_id),
        field_type=User,
    )

    schema.add_query("users", User, lambda db: db.users)
    schema.add_query("posts", Post, lambda db: db.posts.order_by(lambda post: post.id))
    schema.add_unmodified_query_with_args(
        "user",
        User,
        {"id": 0},
        lambda args: lambda db: db.users.first_or_default(lambda user: user.id == args["id"]),
    )
    schema.add_unmodified_query("userCount", int, lambda db: db.users.count())
    schema.complete()
    return schema


def compare_ignoring_whitespace(
    test_case: TestCase, expected: str, received: str, msg: Optional[str] = None
) -> None:
    """Compare expected and received strings, ignoring whitespace."""
    msg = "\n{}\n\n!=\n\n{}".format(expected, received) if msg is None else msg
    test_case.assertEqual(
        WHITESPACE_PATTERN.sub("", expected), WHITESPACE_PATTERN.sub("", received), msg=msg
    )
