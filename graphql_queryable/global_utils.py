# Copyright 2021-present Kensho Technologies, LLC.
from graphql.pyutils import snake_to_camel


def to_camel_case(member_name: str) -> str:
    """Convert a host member name like "first_name" or "Name" into a field name like "firstName"."""
    camel_name = snake_to_camel(member_name, upper=False)
    return camel_name[:1].lower() + camel_name[1:]
