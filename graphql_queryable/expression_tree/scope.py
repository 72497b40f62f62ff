# Copyright 2021-present Kensho Technologies, LLC.
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

from ..exceptions import GraphQLEvaluationError
from .expressions import Parameter


@dataclass(frozen=True, init=False)
class ParameterScope:
    """An immutable chain of parameter bindings, innermost binding first.

    Specifically designed for cheap structural sharing: binding a Lambda's parameters for each
    element of a sequence creates one new node per parameter, while every enclosing binding
    (most importantly, the binding of the shared context parameter) is shared, not copied.
    """

    __slots__ = ("parameter", "value", "depth", "tail")

    # N.B.: Keep "depth" defined before "tail"! The default "==" implementation for dataclasses
    #       compares instances as if they were tuples with their attribute values in the order in
    #       which they were declared. The "depth" is much cheaper to check for equality.
    parameter: Optional[Parameter]  # The bound parameter, or None at the root of the chain.
    value: Any  # The value bound to the parameter.
    depth: int  # The number of bindings contained in the tail of the chain.
    tail: Optional["ParameterScope"]  # The enclosing scope, if any.

    def __init__(
        self, parameter: Optional[Parameter], value: Any, tail: Optional["ParameterScope"]
    ) -> None:
        """Initialize the ParameterScope."""
        # Per the docs, frozen dataclasses use object.__setattr__() to write their attributes.
        # Docs link: https://docs.python.org/3/library/dataclasses.html#frozen-instances
        object.__setattr__(self, "parameter", parameter)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "tail", tail)

        depth = 0 if tail is None else tail.depth + 1
        object.__setattr__(self, "depth", depth)

    def bind(self, parameter: Parameter, value: Any) -> "ParameterScope":
        """Create a new ParameterScope with the given binding shadowing any outer ones."""
        return ParameterScope(parameter, value, self)

    def bind_all(
        self, parameters: Tuple[Parameter, ...], values: Tuple[Any, ...]
    ) -> "ParameterScope":
        """Create a new ParameterScope binding each parameter to the value at the same position."""
        if len(parameters) != len(values):
            raise AssertionError(
                "Attempting to bind {} parameters to {} values, this is a bug: {} {}".format(
                    len(parameters), len(values), parameters, values
                )
            )
        scope = self
        for parameter, value in zip(parameters, values):
            scope = scope.bind(parameter, value)
        return scope

    def _iter_bindings(self) -> Iterator["ParameterScope"]:
        node: Optional[ParameterScope] = self
        while node is not None:
            if node.parameter is not None:
                yield node
            node = node.tail

    def lookup(self, parameter: Parameter) -> Any:
        """Return the value bound to the given parameter, matched by identity."""
        for node in self._iter_bindings():
            if node.parameter is parameter:
                return node.value

        raise GraphQLEvaluationError(
            "Parameter {} is not bound in the current scope. Expressions must only reference "
            "the schema's context parameter and the parameters of their enclosing "
            "lambdas.".format(parameter)
        )


def make_empty_scope() -> ParameterScope:
    """Create a new scope with no bindings."""
    return ParameterScope(None, None, None)
