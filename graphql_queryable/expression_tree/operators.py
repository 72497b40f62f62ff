# Copyright 2021-present Kensho Technologies, LLC.
from typing import Any, Callable, Optional


# Define the various operators' behavior for values other than None.
# The behavior with respect to None is defined explicitly in the "apply_operator()" function.
_operator_definitions_for_non_null_values = {
    "=": lambda left, right: left == right,
    ">": lambda left, right: left > right,
    ">=": lambda left, right: left >= right,
    "<": lambda left, right: left < right,
    "<=": lambda left, right: left <= right,
    "!=": lambda left, right: left != right,
    "contains": lambda left, right: right in left,
    "in_collection": lambda left, right: left in right,
    "+": lambda left, right: left + right,
    "-": lambda left, right: left - right,
    "*": lambda left, right: left * right,
    "/": lambda left, right: left / right,
    "%": lambda left, right: left % right,
}

_arithmetic_operators = frozenset({"+", "-", "*", "/", "%"})
_boolean_operators = frozenset({"&&", "||"})


def apply_operator(operator: str, left_value: Any, right_value: Any) -> Any:
    """Apply the binary operator to the given values, with SQL-like handling of None."""
    # SQL-like semantics: comparisons with "None" generally produce False unless comparing to None:
    # - None is equal to None
    # - None != <anything other than None> is True
    # - None is not greater than, nor less than, any other value
    # - None contains nothing and is never contained in anything
    # - arithmetic involving None produces None
    # - in "&&", "||" and "!", None is false, as is any other falsy value
    if operator in _boolean_operators:
        if operator == "&&":
            return bool(left_value) and bool(right_value)
        else:
            return bool(left_value) or bool(right_value)

    left_none = left_value is None
    right_none = right_value is None

    if (left_none or right_none) and operator in _arithmetic_operators:
        return None

    if left_none and right_none:
        if operator in {"=", ">=", "<="}:
            # The operation simplifies to None = None, which we define as True.
            return True
        else:
            # All other comparisons vs None produce False, including None != None.
            return False
    elif left_none or right_none:
        # Only one of the values is None.
        return operator == "!="
    else:
        # Neither side of the operator is None, apply operator normally.
        operator_handler: Optional[
            Callable[[Any, Any], Any]
        ] = _operator_definitions_for_non_null_values.get(operator, None)
        if operator_handler is not None:
            return operator_handler(left_value, right_value)
        else:
            raise NotImplementedError(f"Operator {operator} is not currently implemented.")


def apply_unary_operator(operator: str, value: Any) -> Any:
    """Apply the unary operator to the given value; None is false for "!", and negates to None."""
    if operator == "!":
        return not value
    elif operator == "-":
        return None if value is None else -value
    else:
        raise NotImplementedError(f"Operator {operator} is not currently implemented.")
