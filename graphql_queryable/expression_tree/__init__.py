# Copyright 2021-present Kensho Technologies, LLC.
"""Expression trees: deferred computations over a data context, and how to build and run them."""
from .capture import ExpressionProxy, capture_lambda, constant, to_expression  # noqa
from .entities import Expression  # noqa
from .evaluation import evaluate_expression, evaluate_lambda_with_arguments  # noqa
from .expressions import (  # noqa
    BinaryComposition,
    FunctionCall,
    Invocation,
    ItemAccess,
    Lambda,
    Literal,
    MemberAccess,
    MethodCall,
    NullLiteral,
    Parameter,
    RecordConstruction,
    SequenceOperation,
    TernaryConditional,
    UnaryTransformation,
    collect_subexpressions,
    find_free_parameters,
    substitute_parameters,
)
from .scope import ParameterScope, make_empty_scope  # noqa
