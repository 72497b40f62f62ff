# Copyright 2021-present Kensho Technologies, LLC.
"""In-memory evaluation of expression trees.

Evaluation is eager: every sequence operation produces a list. Member access, item access and
method calls on None produce None, so that optional relationships and nested selections over
missing entities resolve to null rather than raising.
"""
from typing import Any, Callable, Dict, List, Tuple, Type

from ..exceptions import GraphQLEvaluationError
from .entities import Expression
from .expressions import (
    BinaryComposition,
    FunctionCall,
    Invocation,
    ItemAccess,
    Lambda,
    Literal,
    MemberAccess,
    MethodCall,
    Parameter,
    RecordConstruction,
    SequenceOperation,
    TernaryConditional,
    UnaryTransformation,
)
from .operators import apply_operator, apply_unary_operator
from .scope import ParameterScope, make_empty_scope


ExpressionEvaluatorFunc = Callable[[Expression, ParameterScope], Any]


def _make_element_function(
    expression_evaluator_func: ExpressionEvaluatorFunc, function: Expression, scope: ParameterScope
) -> Callable[[Any], Any]:
    """Return a Python callable evaluating the one-parameter Lambda for a given sequence element."""
    if not isinstance(function, Lambda) or function.arity != 1:
        raise AssertionError(
            "Expected a Lambda of arity 1 as a sequence operator argument, this is a bug: "
            "{}".format(function)
        )
    parameter = function.parameters[0]
    return lambda element: expression_evaluator_func(function.body, scope.bind(parameter, element))


def _make_null_first_sort_key(key_function: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Wrap the sort key so that null keys order before all others, and never get compared."""

    def sort_key(element: Any) -> Tuple[bool, Any]:
        key_value = key_function(element)
        return (key_value is not None, key_value)

    return sort_key


def evaluate_parameter(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: Parameter,
    scope: ParameterScope,
) -> Any:
    return scope.lookup(expression)


def evaluate_literal(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: Literal,
    scope: ParameterScope,
) -> Any:
    return expression.value


def evaluate_member_access(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: MemberAccess,
    scope: ParameterScope,
) -> Any:
    target_value = expression_evaluator_func(expression.target, scope)
    if target_value is None:
        return None
    return getattr(target_value, expression.member_name)


def evaluate_item_access(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: ItemAccess,
    scope: ParameterScope,
) -> Any:
    target_value = expression_evaluator_func(expression.target, scope)
    if target_value is None:
        return None
    return target_value[expression_evaluator_func(expression.key, scope)]


def evaluate_method_call(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: MethodCall,
    scope: ParameterScope,
) -> Any:
    target_value = expression_evaluator_func(expression.target, scope)
    if target_value is None:
        return None
    argument_values = [
        expression_evaluator_func(argument, scope) for argument in expression.arguments
    ]
    return getattr(target_value, expression.method_name)(*argument_values)


def evaluate_function_call(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: FunctionCall,
    scope: ParameterScope,
) -> Any:
    function_value = expression_evaluator_func(expression.function, scope)
    argument_values = [
        expression_evaluator_func(argument, scope) for argument in expression.arguments
    ]
    return function_value(*argument_values)


def evaluate_unary_transformation(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: UnaryTransformation,
    scope: ParameterScope,
) -> Any:
    inner_value = expression_evaluator_func(expression.inner_expression, scope)
    return apply_unary_operator(expression.operator, inner_value)


def evaluate_binary_composition(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: BinaryComposition,
    scope: ParameterScope,
) -> Any:
    left_value = expression_evaluator_func(expression.left, scope)

    # Short-circuit the boolean operators, so the right side can rely on the left side's outcome.
    if expression.operator == "&&" and not left_value:
        return False
    if expression.operator == "||" and left_value:
        return True

    right_value = expression_evaluator_func(expression.right, scope)
    return apply_operator(expression.operator, left_value, right_value)


def evaluate_ternary_conditional(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: TernaryConditional,
    scope: ParameterScope,
) -> Any:
    if expression_evaluator_func(expression.predicate, scope):
        return expression_evaluator_func(expression.if_true, scope)
    else:
        return expression_evaluator_func(expression.if_false, scope)


def evaluate_lambda(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: Lambda,
    scope: ParameterScope,
) -> Any:
    # A Lambda evaluates to a Python callable closing over the current scope.
    def lambda_value(*argument_values: Any) -> Any:
        return expression_evaluator_func(
            expression.body, scope.bind_all(expression.parameters, argument_values)
        )

    return lambda_value


def evaluate_invocation(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: Invocation,
    scope: ParameterScope,
) -> Any:
    argument_values = tuple(
        expression_evaluator_func(argument, scope) for argument in expression.arguments
    )
    function = expression.function
    return expression_evaluator_func(
        function.body, scope.bind_all(function.parameters, argument_values)
    )


def evaluate_sequence_operation(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: SequenceOperation,
    scope: ParameterScope,
) -> Any:
    operator = expression.operator
    source_value = expression_evaluator_func(expression.source, scope)

    if source_value is None:
        if operator in {"select", "where", "order_by", "order_by_descending", "take", "skip"}:
            # Projecting a missing collection, e.g. an unset relationship, produces null.
            return None
        elif operator == "first_or_default":
            return None
        raise GraphQLEvaluationError(
            'Cannot apply sequence operator "{}" to a null sequence: {}'.format(
                operator, expression
            )
        )

    elements: List[Any] = list(source_value)
    if operator in {"take", "skip"}:
        count = expression_evaluator_func(expression.arguments[0], scope)
        if count is None:
            return elements
        # Negative counts take nothing and skip nothing.
        count = max(count, 0)
        return elements[:count] if operator == "take" else elements[count:]

    element_function = None
    if expression.arguments:
        element_function = _make_element_function(
            expression_evaluator_func, expression.arguments[0], scope
        )

    if operator == "select":
        return [element_function(element) for element in elements]
    elif operator in {"order_by", "order_by_descending"}:
        return sorted(
            elements,
            key=_make_null_first_sort_key(element_function),
            reverse=(operator == "order_by_descending"),
        )

    if element_function is not None:
        elements = [element for element in elements if element_function(element)]

    if operator == "where":
        return elements
    elif operator == "count":
        return len(elements)
    elif operator == "any":
        return len(elements) > 0
    elif operator == "first_or_default":
        return elements[0] if elements else None
    elif operator == "first":
        if not elements:
            raise GraphQLEvaluationError(
                "Sequence contains no matching elements: {}".format(expression)
            )
        return elements[0]

    raise AssertionError(f"Unreachable code reached: unhandled sequence operator {operator}")


def evaluate_record_construction(
    expression_evaluator_func: ExpressionEvaluatorFunc,
    expression: RecordConstruction,
    scope: ParameterScope,
) -> Any:
    member_values = [
        (member_name, expression_evaluator_func(member_expression, scope))
        for member_name, member_expression in expression.fields
    ]
    return expression.record_type(member_values)


def evaluate_expression(expression: Expression, scope: ParameterScope) -> Any:
    """Evaluate the expression with the given parameter bindings, and return its value."""
    type_to_handler: Dict[Type[Expression], Callable[..., Any]] = {
        Parameter: evaluate_parameter,
        Literal: evaluate_literal,
        MemberAccess: evaluate_member_access,
        ItemAccess: evaluate_item_access,
        MethodCall: evaluate_method_call,
        FunctionCall: evaluate_function_call,
        UnaryTransformation: evaluate_unary_transformation,
        BinaryComposition: evaluate_binary_composition,
        TernaryConditional: evaluate_ternary_conditional,
        Lambda: evaluate_lambda,
        Invocation: evaluate_invocation,
        SequenceOperation: evaluate_sequence_operation,
        RecordConstruction: evaluate_record_construction,
    }
    handler = type_to_handler[type(expression)]

    # N.B.: We pass "evaluate_expression" (i.e. this dispatch function) into
    #       the specific expression handler since some expressions contain nested sub-expressions.
    return handler(evaluate_expression, expression, scope)


def evaluate_lambda_with_arguments(function: Lambda, *argument_values: Any) -> Any:
    """Evaluate the body of a Lambda that has no free parameters, binding the given arguments."""
    scope = make_empty_scope().bind_all(function.parameters, argument_values)
    return evaluate_expression(function.body, scope)
