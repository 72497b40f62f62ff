# Copyright 2021-present Kensho Technologies, LLC.
"""Base classes for expression tree nodes."""

from abc import ABCMeta, abstractmethod
from typing import Any, Callable


class ExpressionEntity(object, metaclass=ABCMeta):
    """An abstract expression tree entity."""

    __slots__ = ("_print_args", "_print_kwargs")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Construct a new ExpressionEntity."""
        self._print_args = args
        self._print_kwargs = kwargs

    @abstractmethod
    def validate(self) -> None:
        """Ensure that the ExpressionEntity is valid."""
        raise NotImplementedError()

    def __str__(self) -> str:
        """Return a human-readable unicode representation of this ExpressionEntity."""
        printed_args = []
        if self._print_args:
            printed_args.append("{args}")
        if self._print_kwargs:
            printed_args.append("{kwargs}")

        template = "{cls_name}(" + ", ".join(printed_args) + ")"
        return template.format(
            cls_name=type(self).__name__, args=self._print_args, kwargs=self._print_kwargs
        )

    def __repr__(self) -> str:
        """Return a human-readable str representation of the ExpressionEntity object."""
        return self.__str__()

    # pylint: disable=protected-access
    def __eq__(self, other: Any) -> bool:
        """Return True if the ExpressionEntity objects are structurally equal, and False otherwise.

        Parameters inside the compared trees are only equal to themselves, so two trees are equal
        only if they reference the very same parameter objects.
        """
        if type(self) != type(other):
            return False

        if len(self._print_args) != len(other._print_args):
            return False

        for self_arg, other_arg in zip(self._print_args, other._print_args):
            if self_arg != other_arg:
                return False

        return self._print_kwargs == other._print_kwargs

    # pylint: enable=protected-access

    def __ne__(self, other: Any) -> bool:
        """Check another object for non-equality against this one."""
        return not self.__eq__(other)

    __hash__ = None  # type: ignore[assignment]


class Expression(ExpressionEntity, metaclass=ABCMeta):
    """An expression that produces a value when evaluated against a data context."""

    __slots__ = ()

    def visit_and_update(self, visitor_fn: Callable[["Expression"], "Expression"]) -> "Expression":
        """Create an updated version (if needed) of the Expression via the visitor pattern.

        Args:
            visitor_fn: function that takes an Expression argument, and returns an Expression.
                        This function is recursively called on all child Expressions that may
                        exist within this expression. If the visitor_fn does not return the
                        exact same object that was passed in, this is interpreted as an update
                        request, and the visit_and_update() method will return a new Expression
                        with the given update applied. No Expressions are mutated in-place.

        Returns:
            - If the visitor_fn does not request any updates (by always returning the exact same
              object it was called with), this method returns 'self'.
            - Otherwise, this method returns a new Expression object that reflects the updates
              requested by the visitor_fn.
        """
        # Most Expressions simply visit themselves.
        # Any Expressions that contain Expressions will override this method.
        return visitor_fn(self)
