# Copyright 2021-present Kensho Technologies, LLC.
"""Capture Python lambdas as expression trees.

A lambda like

    lambda db, user: db.posts.where(lambda post: post.author_id == user.id).count()

is captured by calling it once with proxy objects standing in for its parameters. Each proxy
records attribute access, item access, method calls, operators and sequence operations as
expression nodes instead of executing them. Nested lambdas passed to sequence operations are
captured the same way, with a fresh parameter; because they close over the outer proxies, the
expressions they produce reference the outer parameter objects themselves. That is how every
field and query expression of a schema comes to share the schema's single context parameter.

Python's "and", "or", "not" and "in" cannot be intercepted; use "&", "|", "~" and the
contains() / in_() methods instead.
"""
import inspect
from typing import Any, Callable, Sequence

from .entities import Expression
from .expressions import (
    SEQUENCE_OPERATOR_SIGNATURES,
    BinaryComposition,
    FunctionCall,
    ItemAccess,
    Lambda,
    Literal,
    MemberAccess,
    MethodCall,
    Parameter,
    SequenceOperation,
    UnaryTransformation,
)


def to_expression(value: Any) -> Expression:
    """Return the expression recorded by a proxy, the expression itself, or a Literal of a value."""
    if isinstance(value, ExpressionProxy):
        return object.__getattribute__(value, "_expression")
    elif isinstance(value, Expression):
        return value
    else:
        return Literal(value)


def _get_positional_arity(function: Callable[..., Any]) -> int:
    """Return the number of positional parameters the Python callable declares."""
    signature = inspect.signature(function)
    return sum(
        1
        for parameter in signature.parameters.values()
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD)
    )


def capture_lambda(function: Callable[..., Any], parameters: Sequence[Parameter]) -> Lambda:
    """Capture the Python callable as a Lambda over the given parameters.

    Args:
        function: Python callable taking exactly len(parameters) positional arguments
        parameters: the Parameter objects the captured Lambda is declared over

    Returns:
        Lambda whose body is the expression recorded while calling the function with proxies
    """
    arity = _get_positional_arity(function)
    if arity != len(parameters):
        raise TypeError(
            "Expected a callable taking {} positional arguments, but {} takes {}.".format(
                len(parameters), function, arity
            )
        )
    body = function(*(ExpressionProxy(parameter) for parameter in parameters))
    return Lambda(tuple(parameters), to_expression(body))


def _capture_element_lambda(function: Any, parameter_name: str) -> Lambda:
    """Capture a per-element callable passed to a sequence operation."""
    if isinstance(function, Lambda):
        return function
    return capture_lambda(function, (Parameter(parameter_name),))


# Attribute calls recorded as membership tests, with the binary operator each one records.
_MEMBERSHIP_OPERATORS = {"contains": "contains", "in_": "in_collection"}


def _make_sequence_operation(
    operator: str, source: Expression, args: Sequence[Any]
) -> SequenceOperation:
    """Record the sequence operator over the source, capturing any per-element callables."""
    _, _, lambda_arity = SEQUENCE_OPERATOR_SIGNATURES[operator]
    if lambda_arity is None:
        arguments = tuple(to_expression(arg) for arg in args)
    else:
        # A None predicate, as in first(None), is the same as passing no predicate at all.
        arguments = tuple(_capture_element_lambda(arg, "x") for arg in args if arg is not None)
    return SequenceOperation(operator, source, arguments)


def constant(value: Any) -> "ExpressionProxy":
    """Return a proxy for a constant value, so it can be used as the start of an expression."""
    return ExpressionProxy(Literal(value))


class ExpressionProxy(object):
    """Stand-in for a value inside a captured lambda, recording everything done with it."""

    __slots__ = ("_expression",)

    def __init__(self, expression: Expression) -> None:
        """Construct a proxy recording operations on the value of the given expression."""
        object.__setattr__(self, "_expression", expression)

    def __repr__(self) -> str:
        """Return a human-readable representation of the recorded expression."""
        return "ExpressionProxy({})".format(self._expression)

    def __getattr__(self, name: str) -> "ExpressionProxy":
        """Record reading the named attribute."""
        # Dunder lookups come from Python protocols (copy, pickle, etc.), not from user code.
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return ExpressionProxy(MemberAccess(self._expression, name))

    def __setattr__(self, name: str, value: Any) -> None:
        """Refuse assignments, which cannot be represented in an expression."""
        raise TypeError("Captured expressions are read-only; cannot assign {}.".format(name))

    def __getitem__(self, key: Any) -> "ExpressionProxy":
        """Record reading the given key or index."""
        return ExpressionProxy(ItemAccess(self._expression, to_expression(key)))

    def __call__(self, *args: Any) -> "ExpressionProxy":
        """Record a sequence operation, a method call or a function call.

        Calling an attribute named after a sequence operator ("where", "count", "take", ...)
        records that operation over the attribute's target, and calling "contains" or "in_"
        records a membership test. Any other attribute call is a method call. Reading such an
        attribute without calling it is an ordinary member access, so host members named
        "count" or "first" stay reachable.
        """
        expression = self._expression
        if isinstance(expression, MemberAccess):
            target = expression.target
            name = expression.member_name
            if name in SEQUENCE_OPERATOR_SIGNATURES:
                return ExpressionProxy(_make_sequence_operation(name, target, args))
            elif name in _MEMBERSHIP_OPERATORS:
                if len(args) != 1:
                    raise TypeError("{}() takes exactly one argument, got: {}".format(name, args))
                return ExpressionProxy(
                    BinaryComposition(_MEMBERSHIP_OPERATORS[name], target, to_expression(args[0]))
                )
            arguments = tuple(to_expression(arg) for arg in args)
            return ExpressionProxy(MethodCall(target, name, arguments))
        arguments = tuple(to_expression(arg) for arg in args)
        return ExpressionProxy(FunctionCall(expression, arguments))

    def __bool__(self) -> bool:
        """Refuse truth testing, which would silently evaluate "and" / "or" / "not" eagerly."""
        raise TypeError(
            "Captured expressions cannot be used as booleans. "
            'Use "&", "|" and "~" instead of "and", "or" and "not".'
        )

    def __iter__(self) -> Any:
        """Refuse iteration, which cannot be represented in an expression."""
        raise TypeError("Captured expressions cannot be iterated; use select() or where() instead.")

    def _binary(self, operator: str, other: Any) -> "ExpressionProxy":
        return ExpressionProxy(BinaryComposition(operator, self._expression, to_expression(other)))

    def _reflected_binary(self, operator: str, other: Any) -> "ExpressionProxy":
        return ExpressionProxy(BinaryComposition(operator, to_expression(other), self._expression))

    def __eq__(self, other: Any) -> "ExpressionProxy":  # type: ignore[override]
        return self._binary("=", other)

    def __ne__(self, other: Any) -> "ExpressionProxy":  # type: ignore[override]
        return self._binary("!=", other)

    def __lt__(self, other: Any) -> "ExpressionProxy":
        return self._binary("<", other)

    def __le__(self, other: Any) -> "ExpressionProxy":
        return self._binary("<=", other)

    def __gt__(self, other: Any) -> "ExpressionProxy":
        return self._binary(">", other)

    def __ge__(self, other: Any) -> "ExpressionProxy":
        return self._binary(">=", other)

    def __and__(self, other: Any) -> "ExpressionProxy":
        return self._binary("&&", other)

    def __rand__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("&&", other)

    def __or__(self, other: Any) -> "ExpressionProxy":
        return self._binary("||", other)

    def __ror__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("||", other)

    def __add__(self, other: Any) -> "ExpressionProxy":
        return self._binary("+", other)

    def __radd__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("+", other)

    def __sub__(self, other: Any) -> "ExpressionProxy":
        return self._binary("-", other)

    def __rsub__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("-", other)

    def __mul__(self, other: Any) -> "ExpressionProxy":
        return self._binary("*", other)

    def __rmul__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("*", other)

    def __truediv__(self, other: Any) -> "ExpressionProxy":
        return self._binary("/", other)

    def __rtruediv__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("/", other)

    def __mod__(self, other: Any) -> "ExpressionProxy":
        return self._binary("%", other)

    def __rmod__(self, other: Any) -> "ExpressionProxy":
        return self._reflected_binary("%", other)

    def __invert__(self) -> "ExpressionProxy":
        return ExpressionProxy(UnaryTransformation("!", self._expression))

    def __neg__(self) -> "ExpressionProxy":
        return ExpressionProxy(UnaryTransformation("-", self._expression))

    __hash__ = None  # type: ignore[assignment]
