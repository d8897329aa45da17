from __future__ import annotations

import inspect
import types
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, Union, get_args, get_origin, get_type_hints

_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}


class TypeOracle(Protocol):
    """Report the declared type of an injection point.

    Implementations return ``None`` when the type is unknown; strategies then
    skip their type check.
    """

    def type_of_parameter(self, target: type[Any], member: str | None, index: int) -> Any | None:
        """Return the declared type of a constructor (``member=None``) or method parameter."""

    def type_of_property(self, target: type[Any], member: str) -> Any | None:
        """Return the declared type of a class-level property annotation."""


class AnnotationTypeOracle:
    """Type oracle reading ``typing`` annotations of classes and their methods.

    Generic aliases are reduced to their origin (``list[str]`` -> ``list``,
    ``Callable[[], int]`` -> ``collections.abc.Callable``) and ``X | None`` to
    ``X``. Unresolvable annotations, ``Any`` and other unions report ``None``.
    """

    def type_of_parameter(self, target: type[Any], member: str | None, index: int) -> Any | None:
        function = target.__init__ if member is None else getattr(target, member, None)
        if function is None:
            return None
        try:
            signature = inspect.signature(function)
        except (TypeError, ValueError):
            return None
        parameters = [
            parameter
            for position, parameter in enumerate(signature.parameters.values())
            if not (position == 0 and parameter.name in _IMPLICIT_FIRST_PARAMETER_NAMES)
        ]
        if index >= len(parameters):
            return None
        hints = self._type_hints(function)
        return normalize_type(hints.get(parameters[index].name))

    def type_of_property(self, target: type[Any], member: str) -> Any | None:
        return normalize_type(self._type_hints(target).get(member))

    def _type_hints(self, obj: Callable[..., Any] | type[Any]) -> dict[str, Any]:
        try:
            return get_type_hints(obj)
        except (AttributeError, NameError, TypeError):
            return {}


def normalize_type(annotation: Any) -> Any | None:
    """Reduce an annotation to the runtime type used by strategy type checks."""
    if annotation is None or annotation is Any or isinstance(annotation, TypeVar | str):
        return None
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) != 1:
            return None
        return normalize_type(members[0])
    if origin is not None:
        return origin
    return annotation


__all__ = ["AnnotationTypeOracle", "TypeOracle", "normalize_type"]
