# Copyright 2021-present Kensho Technologies, LLC.
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from .entities import Expression


SUPPORTED_UNARY_OPERATORS = frozenset({"!", "-"})

SUPPORTED_BINARY_OPERATORS = frozenset(
    {
        "=",
        "!=",
        ">",
        ">=",
        "<",
        "<=",
        "contains",
        "in_collection",
        "&&",
        "||",
        "+",
        "-",
        "*",
        "/",
        "%",
    }
)

# Sequence operator name -> (minimum argument count, maximum argument count, lambda arity).
# A lambda arity of None means the operator's argument, if any, is a plain value expression.
SEQUENCE_OPERATOR_SIGNATURES: Dict[str, Tuple[int, int, Optional[int]]] = {
    "where": (1, 1, 1),
    "select": (1, 1, 1),
    "first": (0, 1, 1),
    "first_or_default": (0, 1, 1),
    "count": (0, 1, 1),
    "any": (0, 1, 1),
    "order_by": (1, 1, 1),
    "order_by_descending": (1, 1, 1),
    "take": (1, 1, None),
    "skip": (1, 1, None),
}


def _validate_expression_tuple(expressions: Any, description: str) -> None:
    """Ensure the value is a tuple made up entirely of Expression objects."""
    if not isinstance(expressions, tuple):
        raise TypeError(
            "Expected {} to be a tuple, got: {} {}".format(
                description, type(expressions).__name__, expressions
            )
        )
    for expression in expressions:
        if not isinstance(expression, Expression):
            raise TypeError(
                "Expected {} to contain only Expression objects, got: {} {}".format(
                    description, type(expression).__name__, expression
                )
            )


def _visit_expression_tuple(
    expressions: Tuple[Expression, ...], visitor_fn: Callable[[Expression], Expression]
) -> Tuple[Tuple[Expression, ...], bool]:
    """Visit every expression in the tuple, returning the new tuple and whether anything changed."""
    new_expressions = tuple(expression.visit_and_update(visitor_fn) for expression in expressions)
    changed = any(
        new_expression is not expression
        for new_expression, expression in zip(new_expressions, expressions)
    )
    return new_expressions, changed


class Parameter(Expression):
    """A placeholder for a value supplied when the enclosing Lambda is invoked.

    Parameters are compared by identity, never by name: two parameters named "db" are different
    parameters unless they are the very same object. This is what allows expressions built at
    different times, by different callers, to be stitched together as long as they close over
    the same parameter object.
    """

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        """Construct a new Parameter with the given display name."""
        super(Parameter, self).__init__(name)
        self.name = name
        self.validate()

    def validate(self) -> None:
        """Validate that the Parameter is correctly representable."""
        if not isinstance(self.name, str):
            raise TypeError(
                "Expected str name, got: {} {}".format(type(self.name).__name__, self.name)
            )

    def __eq__(self, other: Any) -> bool:
        """Return True only if the other object is this very same Parameter."""
        return self is other

    def __hash__(self) -> int:
        """Hash by identity, consistently with equality."""
        return id(self)


class Literal(Expression):
    """A constant value embedded in the expression tree."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        """Construct a new Literal object with the given value."""
        super(Literal, self).__init__(value)
        self.value = value
        self.validate()

    def validate(self) -> None:
        """Validate that the Literal is correctly representable."""
        if isinstance(self.value, Expression):
            raise TypeError("Literal values cannot be Expression objects: {}".format(self.value))


NullLiteral = Literal(None)


class MemberAccess(Expression):
    """Read a named attribute from the value of the target expression."""

    __slots__ = ("target", "member_name")

    def __init__(self, target: Expression, member_name: str) -> None:
        """Construct a new MemberAccess reading the given attribute of the target's value."""
        super(MemberAccess, self).__init__(target, member_name)
        self.target = target
        self.member_name = member_name
        self.validate()

    def validate(self) -> None:
        """Validate that the MemberAccess is correctly representable."""
        if not isinstance(self.target, Expression):
            raise TypeError(
                "Expected Expression target, got: {} {}".format(
                    type(self.target).__name__, self.target
                )
            )
        if not isinstance(self.member_name, str) or not self.member_name:
            raise ValueError("Expected a non-empty member name, got: {}".format(self.member_name))

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the MemberAccess via the visitor pattern."""
        new_target = self.target.visit_and_update(visitor_fn)

        if new_target is not self.target:
            return visitor_fn(MemberAccess(new_target, self.member_name))
        else:
            return visitor_fn(self)


class ItemAccess(Expression):
    """Read an item (by key or index) from the value of the target expression."""

    __slots__ = ("target", "key")

    def __init__(self, target: Expression, key: Expression) -> None:
        """Construct a new ItemAccess reading the given key of the target's value."""
        super(ItemAccess, self).__init__(target, key)
        self.target = target
        self.key = key
        self.validate()

    def validate(self) -> None:
        """Validate that the ItemAccess is correctly representable."""
        _validate_expression_tuple((self.target, self.key), "ItemAccess operands")

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the ItemAccess via the visitor pattern."""
        new_target = self.target.visit_and_update(visitor_fn)
        new_key = self.key.visit_and_update(visitor_fn)

        if new_target is not self.target or new_key is not self.key:
            return visitor_fn(ItemAccess(new_target, new_key))
        else:
            return visitor_fn(self)


class MethodCall(Expression):
    """Call a named method on the value of the target expression."""

    __slots__ = ("target", "method_name", "arguments")

    def __init__(
        self, target: Expression, method_name: str, arguments: Tuple[Expression, ...]
    ) -> None:
        """Construct a new MethodCall of the given method with the given argument expressions."""
        super(MethodCall, self).__init__(target, method_name, arguments)
        self.target = target
        self.method_name = method_name
        self.arguments = arguments
        self.validate()

    def validate(self) -> None:
        """Validate that the MethodCall is correctly representable."""
        if not isinstance(self.target, Expression):
            raise TypeError(
                "Expected Expression target, got: {} {}".format(
                    type(self.target).__name__, self.target
                )
            )
        if not isinstance(self.method_name, str) or not self.method_name:
            raise ValueError("Expected a non-empty method name, got: {}".format(self.method_name))
        _validate_expression_tuple(self.arguments, "MethodCall arguments")

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the MethodCall via the visitor pattern."""
        new_target = self.target.visit_and_update(visitor_fn)
        new_arguments, arguments_changed = _visit_expression_tuple(self.arguments, visitor_fn)

        if new_target is not self.target or arguments_changed:
            return visitor_fn(MethodCall(new_target, self.method_name, new_arguments))
        else:
            return visitor_fn(self)


class FunctionCall(Expression):
    """Call the value of the function expression, usually a Literal wrapping a Python callable."""

    __slots__ = ("function", "arguments")

    def __init__(self, function: Expression, arguments: Tuple[Expression, ...]) -> None:
        """Construct a new FunctionCall with the given argument expressions."""
        super(FunctionCall, self).__init__(function, arguments)
        self.function = function
        self.arguments = arguments
        self.validate()

    def validate(self) -> None:
        """Validate that the FunctionCall is correctly representable."""
        if not isinstance(self.function, Expression):
            raise TypeError(
                "Expected Expression function, got: {} {}".format(
                    type(self.function).__name__, self.function
                )
            )
        _validate_expression_tuple(self.arguments, "FunctionCall arguments")

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the FunctionCall via the visitor pattern."""
        new_function = self.function.visit_and_update(visitor_fn)
        new_arguments, arguments_changed = _visit_expression_tuple(self.arguments, visitor_fn)

        if new_function is not self.function or arguments_changed:
            return visitor_fn(FunctionCall(new_function, new_arguments))
        else:
            return visitor_fn(self)


class UnaryTransformation(Expression):
    """An operation applied to a single expression, such as boolean negation."""

    __slots__ = ("operator", "inner_expression")

    def __init__(self, operator: str, inner_expression: Expression) -> None:
        """Construct a UnaryTransformation applying the operator to the inner expression."""
        super(UnaryTransformation, self).__init__(operator, inner_expression)
        self.operator = operator
        self.inner_expression = inner_expression
        self.validate()

    def validate(self) -> None:
        """Validate that the UnaryTransformation is correctly representable."""
        if self.operator not in SUPPORTED_UNARY_OPERATORS:
            raise ValueError(
                "Unrecognized operator value: {} {}".format(
                    type(self.operator).__name__, self.operator
                )
            )
        if not isinstance(self.inner_expression, Expression):
            raise TypeError(
                "Expected Expression inner_expression, got {} {}".format(
                    type(self.inner_expression).__name__, self.inner_expression
                )
            )

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the UnaryTransformation via visitor pattern."""
        new_inner = self.inner_expression.visit_and_update(visitor_fn)

        if new_inner is not self.inner_expression:
            return visitor_fn(UnaryTransformation(self.operator, new_inner))
        else:
            return visitor_fn(self)


class BinaryComposition(Expression):
    """An expression created by composing two expressions together."""

    __slots__ = ("operator", "left", "right")

    def __init__(self, operator: str, left: Expression, right: Expression) -> None:
        """Construct an expression that connects two expressions with an operator.

        Args:
            operator: str, specifying the operator to use to connect the two expressions
            left: Expression, the left side of the binary operator
            right: Expression, the right side of the binary operator

        Returns:
            new BinaryComposition object
        """
        super(BinaryComposition, self).__init__(operator, left, right)
        self.operator = operator
        self.left = left
        self.right = right
        self.validate()

    def validate(self) -> None:
        """Validate that the BinaryComposition is correctly representable."""
        if not isinstance(self.operator, str):
            raise TypeError(
                "Expected str operator, got {} {}".format(
                    type(self.operator).__name__, self.operator
                )
            )

        if self.operator not in SUPPORTED_BINARY_OPERATORS:
            raise ValueError(
                "Unrecognized operator value: {} {}".format(
                    type(self.operator).__name__, self.operator
                )
            )

        _validate_expression_tuple((self.left, self.right), "BinaryComposition operands")

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of BinaryComposition via the visitor pattern."""
        new_left = self.left.visit_and_update(visitor_fn)
        new_right = self.right.visit_and_update(visitor_fn)

        if new_left is not self.left or new_right is not self.right:
            return visitor_fn(BinaryComposition(self.operator, new_left, new_right))
        else:
            return visitor_fn(self)


class TernaryConditional(Expression):
    """A ternary conditional expression, returning one of two expressions depending on a third."""

    __slots__ = ("predicate", "if_true", "if_false")

    def __init__(self, predicate: Expression, if_true: Expression, if_false: Expression) -> None:
        """Construct an expression that evaluates a predicate and returns one of two results.

        Args:
            predicate: Expression to evaluate, and based on which to choose the returned value
            if_true: Expression to return if the predicate was true
            if_false: Expression to return if the predicate was false

        Returns:
            new TernaryConditional object
        """
        super(TernaryConditional, self).__init__(predicate, if_true, if_false)
        self.predicate = predicate
        self.if_true = if_true
        self.if_false = if_false
        self.validate()

    def validate(self) -> None:
        """Validate that the TernaryConditional is correctly representable."""
        _validate_expression_tuple(
            (self.predicate, self.if_true, self.if_false), "TernaryConditional operands"
        )

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of TernaryConditional via the visitor pattern."""
        new_predicate = self.predicate.visit_and_update(visitor_fn)
        new_if_true = self.if_true.visit_and_update(visitor_fn)
        new_if_false = self.if_false.visit_and_update(visitor_fn)

        if any(
            (
                new_predicate is not self.predicate,
                new_if_true is not self.if_true,
                new_if_false is not self.if_false,
            )
        ):
            return visitor_fn(TernaryConditional(new_predicate, new_if_true, new_if_false))
        else:
            return visitor_fn(self)


class Lambda(Expression):
    """A deferred function of its parameters, whose value is its body evaluated on invocation."""

    __slots__ = ("parameters", "body")

    def __init__(self, parameters: Tuple[Parameter, ...], body: Expression) -> None:
        """Construct a new Lambda over the given parameters."""
        super(Lambda, self).__init__(parameters, body)
        self.parameters = parameters
        self.body = body
        self.validate()

    def validate(self) -> None:
        """Validate that the Lambda is correctly representable."""
        if not isinstance(self.parameters, tuple):
            raise TypeError("Expected tuple of parameters, got: {}".format(self.parameters))
        for parameter in self.parameters:
            if not isinstance(parameter, Parameter):
                raise TypeError(
                    "Expected Parameter, got: {} {}".format(type(parameter).__name__, parameter)
                )
        if len(set(self.parameters)) != len(self.parameters):
            raise ValueError("Lambda parameters must be distinct: {}".format(self.parameters))
        if not isinstance(self.body, Expression):
            raise TypeError(
                "Expected Expression body, got: {} {}".format(type(self.body).__name__, self.body)
            )

    @property
    def arity(self) -> int:
        """Return the number of parameters this Lambda takes."""
        return len(self.parameters)

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the Lambda via the visitor pattern.

        The parameters of the Lambda are declarations rather than uses, and are not visited.
        """
        new_body = self.body.visit_and_update(visitor_fn)

        if new_body is not self.body:
            return visitor_fn(Lambda(self.parameters, new_body))
        else:
            return visitor_fn(self)


class Invocation(Expression):
    """Invoke a Lambda with argument expressions, each of which is evaluated exactly once."""

    __slots__ = ("function", "arguments")

    def __init__(self, function: Lambda, arguments: Tuple[Expression, ...]) -> None:
        """Construct a new Invocation of the given Lambda."""
        super(Invocation, self).__init__(function, arguments)
        self.function = function
        self.arguments = arguments
        self.validate()

    def validate(self) -> None:
        """Validate that the Invocation is correctly representable."""
        if not isinstance(self.function, Lambda):
            raise TypeError(
                "Expected Lambda function, got: {} {}".format(
                    type(self.function).__name__, self.function
                )
            )
        _validate_expression_tuple(self.arguments, "Invocation arguments")
        if len(self.arguments) != self.function.arity:
            raise ValueError(
                "Lambda of arity {} invoked with {} arguments: {}".format(
                    self.function.arity, len(self.arguments), self
                )
            )

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the Invocation via the visitor pattern."""
        new_function = self.function.visit_and_update(visitor_fn)
        new_arguments, arguments_changed = _visit_expression_tuple(self.arguments, visitor_fn)

        if new_function is not self.function or arguments_changed:
            if not isinstance(new_function, Lambda):
                raise AssertionError(
                    "Visitor replaced the Lambda of an Invocation with a non-Lambda "
                    "expression, this is a bug: {} {}".format(self, new_function)
                )
            return visitor_fn(Invocation(new_function, new_arguments))
        else:
            return visitor_fn(self)


class SequenceOperation(Expression):
    """An operation over the sequence produced by the source expression, like "where" or "take"."""

    __slots__ = ("operator", "source", "arguments")

    def __init__(
        self, operator: str, source: Expression, arguments: Tuple[Expression, ...]
    ) -> None:
        """Construct a new SequenceOperation applying the operator to the source sequence.

        Args:
            operator: str, one of the keys of SEQUENCE_OPERATOR_SIGNATURES
            source: Expression producing the sequence to operate on
            arguments: tuple of Expressions; Lambda objects of arity one for operators that
                       take a per-element function, and plain value expressions otherwise

        Returns:
            new SequenceOperation object
        """
        super(SequenceOperation, self).__init__(operator, source, arguments)
        self.operator = operator
        self.source = source
        self.arguments = arguments
        self.validate()

    def validate(self) -> None:
        """Validate that the SequenceOperation is correctly representable."""
        signature = SEQUENCE_OPERATOR_SIGNATURES.get(self.operator)
        if signature is None:
            raise ValueError("Unrecognized sequence operator: {}".format(self.operator))
        if not isinstance(self.source, Expression):
            raise TypeError(
                "Expected Expression source, got: {} {}".format(
                    type(self.source).__name__, self.source
                )
            )
        _validate_expression_tuple(self.arguments, "SequenceOperation arguments")

        min_arguments, max_arguments, lambda_arity = signature
        if not min_arguments <= len(self.arguments) <= max_arguments:
            raise ValueError(
                'Sequence operator "{}" takes between {} and {} arguments, got: {}'.format(
                    self.operator, min_arguments, max_arguments, self.arguments
                )
            )
        if lambda_arity is not None:
            for argument in self.arguments:
                if not isinstance(argument, Lambda) or argument.arity != lambda_arity:
                    raise TypeError(
                        'Sequence operator "{}" expects Lambda arguments of arity {}, '
                        "got: {}".format(self.operator, lambda_arity, argument)
                    )

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the SequenceOperation via visitor pattern."""
        new_source = self.source.visit_and_update(visitor_fn)
        new_arguments, arguments_changed = _visit_expression_tuple(self.arguments, visitor_fn)

        if new_source is not self.source or arguments_changed:
            return visitor_fn(SequenceOperation(self.operator, new_source, new_arguments))
        else:
            return visitor_fn(self)


class RecordConstruction(Expression):
    """Construct an instance of a projection type, with one value expression per member."""

    __slots__ = ("record_type", "fields")

    def __init__(self, record_type: Type[Any], fields: Tuple[Tuple[str, Expression], ...]) -> None:
        """Construct a new RecordConstruction of the given record type.

        Args:
            record_type: the class to instantiate, called with an ordered dict of member values
            fields: tuple of (member name, Expression) pairs, in output order

        Returns:
            new RecordConstruction object
        """
        super(RecordConstruction, self).__init__(record_type, fields)
        self.record_type = record_type
        self.fields = fields
        self.validate()

    def validate(self) -> None:
        """Validate that the RecordConstruction is correctly representable."""
        if not isinstance(self.record_type, type):
            raise TypeError("Expected a record class, got: {}".format(self.record_type))
        if not isinstance(self.fields, tuple):
            raise TypeError("Expected tuple of fields, got: {}".format(self.fields))

        seen_names = set()
        for member_name, expression in self.fields:
            if member_name in seen_names:
                raise ValueError(
                    "Duplicate member {} in RecordConstruction: {}".format(member_name, self.fields)
                )
            seen_names.add(member_name)
            if not isinstance(expression, Expression):
                raise TypeError(
                    "Expected Expression for member {}, got: {}".format(member_name, expression)
                )

    @property
    def member_names(self) -> Tuple[str, ...]:
        """Return the names of the constructed members, in order."""
        return tuple(member_name for member_name, _ in self.fields)

    def visit_and_update(self, visitor_fn: Callable[[Expression], Expression]) -> Expression:
        """Create an updated version (if needed) of the RecordConstruction via visitor pattern."""
        new_expressions, changed = _visit_expression_tuple(
            tuple(expression for _, expression in self.fields), visitor_fn
        )

        if changed:
            new_fields = tuple(zip(self.member_names, new_expressions))
            return visitor_fn(RecordConstruction(self.record_type, new_fields))
        else:
            return visitor_fn(self)


def make_parameter_replacement_visitor(
    replacements: Mapping[Parameter, Expression]
) -> Callable[[Expression], Expression]:
    """Return a visitor function that replaces each given parameter, matched by identity."""

    def visitor_fn(expression: Expression) -> Expression:
        """Return the replacement if this expression is one of the parameters being replaced."""
        if isinstance(expression, Parameter):
            return replacements.get(expression, expression)
        else:
            return expression

    return visitor_fn


def substitute_parameters(
    expression: Expression, replacements: Mapping[Parameter, Expression]
) -> Expression:
    """Return the expression with every use of the given parameters replaced."""
    return expression.visit_and_update(make_parameter_replacement_visitor(replacements))


def collect_subexpressions(expression: Expression) -> List[Expression]:
    """Return every expression in the tree rooted at the given expression, children first."""
    collected: List[Expression] = []

    def visitor_fn(visited: Expression) -> Expression:
        """Record the visited expression without requesting any updates."""
        collected.append(visited)
        return visited

    expression.visit_and_update(visitor_fn)
    return collected


def find_free_parameters(expression: Expression) -> Sequence[Parameter]:
    """Return the parameters used in the tree but not declared by any Lambda within it."""
    subexpressions = collect_subexpressions(expression)
    declared = {
        parameter
        for subexpression in subexpressions
        if isinstance(subexpression, Lambda)
        for parameter in subexpression.parameters
    }

    free_parameters: List[Parameter] = []
    for subexpression in subexpressions:
        if (
            isinstance(subexpression, Parameter)
            and subexpression not in declared
            and subexpression not in free_parameters
        ):
            free_parameters.append(subexpression)
    return free_parameters
