# Copyright 2021-present Kensho Technologies, LLC.
class GraphQLError(Exception):
    """Generic error when processing GraphQL."""


class GraphQLSchemaError(GraphQLError):
    """Exception raised when a schema cannot be declared or completed as requested.

    Schema errors are always raised at schema-build time, synchronously to the caller that
    attempted the offending declaration. They are never recoverable at request time.
    """


class GraphQLDuplicateRegistrationError(GraphQLSchemaError):
    """Exception raised when a type, field, query or scalar name is registered more than once.

    For example:
    - a host type added with add_type() twice;
    - two fields with the same name added to the same type;
    - two queries with the same name, or a user query with a reserved introspection name;
    - two scalar translators with the same wire name.
    """


class GraphQLTypeNotFoundError(GraphQLSchemaError):
    """Exception raised when looking up a host type that was never added to the schema."""


class GraphQLSchemaValidationError(GraphQLSchemaError):
    """Exception raised when a type violates the scalar / field-count invariant at completion.

    Scalar types must not declare any fields, and non-scalar types must declare at least one.
    """


class GraphQLMalformedFieldExpressionError(GraphQLSchemaError):
    """Exception raised when a property selector is not a direct member access on the entity."""


class GraphQLSchemaLifecycleError(GraphQLSchemaError):
    """Exception raised when the schema is completed twice, or mutated after completion."""


class GraphQLParsingError(GraphQLError):
    """Exception raised when the provided GraphQL string could not be parsed."""


class GraphQLValidationError(GraphQLError):
    """Exception raised when the provided GraphQL does not validate against the provided schema."""


class GraphQLCompilationError(GraphQLError):
    """Exception raised when a selection cannot be composed into a query expression.

    This could be due to many reasons, such as:
    - the selection names a query or field that does not exist;
    - a non-scalar field was selected without any subfields;
    - subfields were selected on a scalar field.
    """


class GraphQLInvalidArgumentError(GraphQLError):
    """Exception raised when the arguments to a GraphQL query or field are invalid.

    For example:
    - there may be unexpected arguments;
    - arguments may be supplied to a query or field that takes none.
    """


class GraphQLEvaluationError(GraphQLError):
    """Exception raised when a composed query expression cannot be evaluated."""
