"""Resolver strategies turning an injection descriptor into a value.

Every strategy has the signature ``(context, injection, session)`` and returns
a value or an awaitable value. Type checks compare the declared type reported
by the context's type oracle with the shape the strategy produces; an unknown
type skips the check.
"""

from __future__ import annotations

import collections.abc
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from bindwire.binding import Binding
from bindwire.binding_filter import is_binding_address
from bindwire.context_view import ContextView, Getter, Setter, create_view_getter
from bindwire.exceptions import SelectorShapeError, TypeMismatchError
from bindwire.session import ResolutionSession

if TYPE_CHECKING:
    from bindwire.context import Context
    from bindwire.injection import Injection
    from bindwire.value_promise import ValueOrAwaitable

logger = logging.getLogger(__name__)

_CALLABLE_TYPES: tuple[Any, ...] = (collections.abc.Callable, Getter, Setter)
_ARRAY_TYPES: tuple[Any, ...] = (
    list,
    tuple,
    collections.abc.Sequence,
    collections.abc.Collection,
    collections.abc.Iterable,
)


def inspect_target_type(ctx: Context, injection: Injection) -> Any | None:
    """Return the declared type of the injection point, or ``None`` when unknown."""
    if injection.parameter_index is None:
        return ctx.type_oracle.type_of_property(injection.target, injection.member or "")
    return ctx.type_oracle.type_of_parameter(
        injection.target,
        injection.member,
        injection.parameter_index,
    )


def assert_target_type(
    ctx: Context,
    injection: Injection,
    expected: str,
    accepts: Callable[[Any], bool],
) -> None:
    """Fail when the declared type is known and ``accepts`` rejects it.

    Raises:
        TypeMismatchError: Naming the injection point, ``expected`` and the
            declared type.

    """
    target_type = inspect_target_type(ctx, injection)
    if target_type is not None and not accepts(target_type):
        raise TypeMismatchError(injection.target_name, expected, target_type)


def _is_callable_type(target_type: Any) -> bool:
    return target_type in _CALLABLE_TYPES


def _is_array_type(target_type: Any) -> bool:
    return target_type in _ARRAY_TYPES


def _is_subclass_of(base: type[Any]) -> Callable[[Any], bool]:
    def _accepts(target_type: Any) -> bool:
        return isinstance(target_type, type) and issubclass(target_type, base)

    return _accepts


def _require_address(injection: Injection, target_type: Any) -> str:
    selector = injection.binding_selector
    if not is_binding_address(selector):
        type_name = getattr(target_type, "__name__", "unknown type")
        msg = (
            f"{injection.metadata.decorator} for {injection.target_name} ({type_name}) "
            "does not allow a binding filter"
        )
        raise SelectorShapeError(msg)
    return str(selector)


# region Value strategies
def resolve_value_by_key(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> ValueOrAwaitable[Any]:
    """Resolve the value bound to the injection's key (``None`` when optional and missing)."""
    return ctx.get_value_or_awaitable(
        str(injection.binding_selector),
        session=session,
        optional=injection.metadata.optional,
    )


def resolve_values_by_filter(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> ValueOrAwaitable[list[Any]]:
    """Resolve the values of all bindings matched by the injection's filter."""
    assert_target_type(ctx, injection, "an array", _is_array_type)
    view: ContextView[Any] = ContextView(ctx, injection.binding_selector)  # type: ignore[arg-type]
    return view.values(session)


def resolve_context(
    ctx: Context,
    _injection: Injection,
    _session: ResolutionSession | None = None,
) -> Context:
    return ctx


# endregion Value strategies


# region Deferred strategies
def resolve_as_getter(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> Getter[Any]:
    """Return a getter resolving the injection's key when called.

    Creating the getter does not touch the context. Each call resolves with
    its own fork of the session captured here.
    """
    assert_target_type(ctx, injection, "a Getter function", _is_callable_type)
    address = str(injection.binding_selector)
    optional = injection.metadata.optional
    forked_session = ResolutionSession.fork(session)

    async def getter() -> Any:
        return await ctx.get(
            address,
            session=ResolutionSession.fork(forked_session),
            optional=optional,
        )

    return getter


def resolve_as_getter_by_filter(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> Getter[list[Any]]:
    """Return a getter resolving the values of the bindings matched by the filter."""
    assert_target_type(ctx, injection, "a Getter function", _is_callable_type)
    return create_view_getter(ctx, injection.binding_selector, session)  # type: ignore[arg-type]


def resolve_as_setter(
    ctx: Context,
    injection: Injection,
    _session: ResolutionSession | None = None,
) -> Setter[Any]:
    """Return a setter binding the injection's key to a constant value.

    The binding is found or created when the setter is called, following
    ``metadata.binding_creation``.
    """
    target_type = inspect_target_type(ctx, injection)
    if target_type is not None and not _is_callable_type(target_type):
        raise TypeMismatchError(injection.target_name, "a Setter function", target_type)
    _require_address(injection, target_type)

    def setter(value: Any) -> None:
        binding = find_or_create_binding_for_injection(ctx, injection)
        binding.to(value)

    return setter


# endregion Deferred strategies


# region Binding strategies
def resolve_as_binding(
    ctx: Context,
    injection: Injection,
    _session: ResolutionSession | None = None,
) -> Binding[Any]:
    """Return the binding object for the injection's key, found or created by policy."""
    target_type = inspect_target_type(ctx, injection)
    if target_type is not None and not _is_subclass_of(Binding)(target_type):
        raise TypeMismatchError(injection.target_name, "Binding", target_type)
    _require_address(injection, target_type)
    return find_or_create_binding_for_injection(ctx, injection)


def resolve_as_context_view(
    ctx: Context,
    injection: Injection,
    _session: ResolutionSession | None = None,
) -> ContextView[Any]:
    """Return an open ``ContextView`` over the injection's filter."""
    assert_target_type(ctx, injection, "ContextView", _is_subclass_of(ContextView))
    view: ContextView[Any] = ContextView(ctx, injection.binding_selector)  # type: ignore[arg-type]
    return view.open()


def find_or_create_binding_for_injection(ctx: Context, injection: Injection) -> Binding[Any]:
    binding = ctx.find_or_create_binding(
        str(injection.binding_selector),
        injection.metadata.binding_creation,
    )
    logger.debug("Injection %s uses binding %s", injection.target_name, binding.key)
    return binding


# endregion Binding strategies

__all__ = [
    "assert_target_type",
    "find_or_create_binding_for_injection",
    "inspect_target_type",
    "resolve_as_binding",
    "resolve_as_context_view",
    "resolve_as_getter",
    "resolve_as_getter_by_filter",
    "resolve_as_setter",
    "resolve_context",
    "resolve_value_by_key",
    "resolve_values_by_filter",
]
