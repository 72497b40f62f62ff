# Copyright 2021-present Kensho Technologies, LLC.
from typing import FrozenSet


# Name of the post field exposing the name of each entity type, declared at schema completion.
TYPENAME_META_FIELD_NAME = "__typename"  # This meta field is built-in.

# Names of the introspection queries declared at schema completion.
# User code may not register queries with these names.
SCHEMA_QUERY_NAME = "__schema"
TYPE_QUERY_NAME = "__type"
RESERVED_QUERY_NAMES: FrozenSet[str] = frozenset({SCHEMA_QUERY_NAME, TYPE_QUERY_NAME})

# Name of the root type of the graphql-core schema built at completion.
ROOT_QUERY_TYPE_NAME = "Query"
