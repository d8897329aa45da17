from __future__ import annotations

from collections.abc import Sequence


class BindwireError(Exception):
    """Represent a base class for all bindwire-specific failures.

    Catch this type when you want to handle any bindwire error path without
    matching each concrete exception class individually.
    """


class DeclarationError(BindwireError):
    """Signal an injection declared on an unsupported target shape.

    Raised by ``declare_injections`` and ``@injectable`` when an injection is
    attached to a static (``ClassVar``) property, to a method, or to an
    invalid parameter index.

    Typical fixes include moving the declaration to an instance property or a
    constructor parameter.
    """


class TypeMismatchError(BindwireError):
    """Signal that an injection point's declared type does not fit its strategy.

    Raised at the first resolution of an injection point, for example when
    ``inject_getter`` targets a parameter annotated as ``int`` or
    ``inject_view`` targets something other than ``ContextView``.
    """

    def __init__(self, target_name: str, expected: str, actual: object) -> None:
        self.target_name = target_name
        self.expected = expected
        self.actual = actual
        actual_name = getattr(actual, "__name__", repr(actual))
        super().__init__(f"The type of {target_name} ({actual_name}) is not {expected}")


class CircularDependencyError(BindwireError):
    """Signal a binding that depends on itself through the resolution chain.

    ``path`` holds the chain of binding keys already being resolved followed by
    the key whose resolution was attempted again.
    """

    def __init__(self, key: str, path: Sequence[str]) -> None:
        self.key = key
        self.path = tuple(path)
        super().__init__(f"Circular dependency detected: {' --> '.join(self.path)}")


class SelectorShapeError(BindwireError):
    """Signal a binding filter passed to a strategy that requires a binding key.

    ``inject_setter`` and ``inject_binding`` operate on exactly one binding, so
    their selector must be a key.
    """


class BindingNotFoundError(BindwireError):
    """Signal that a non-optional binding key is not bound in the context chain."""

    def __init__(self, key: str, context_name: str) -> None:
        self.key = key
        self.context_name = context_name
        super().__init__(f"The key '{key}' is not bound to any value in context {context_name}")


class InvalidBindingFilterError(BindwireError, TypeError):
    """Signal a key or tag pattern that cannot be turned into a binding filter.

    Patterns must be strings, compiled regular expressions, tag mappings or
    callables.
    """


class MissingCurrentBindingError(BindwireError):
    """Signal configuration or setter access without a binding being resolved.

    Only raised when ``MissingCurrentBindingPolicy.ERROR`` is selected. The
    default policy resolves such injections to ``None``.
    """


class AsyncValueInSyncContextError(BindwireError):
    """Signal synchronous resolution of a binding that produced an awaitable.

    Typical fix is switching to ``await ctx.get(...)``.
    """


class ResolutionError(BindwireError):
    """Signal that injected arguments for a callable cannot be assembled."""


class BindingLockedError(BindwireError):
    """Signal an attempt to replace or remove a locked binding."""
