from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from bindwire.binding_filter import is_binding_address
from bindwire.exceptions import ResolutionError
from bindwire.injection import (
    Injection,
    describe_injected_arguments,
    describe_injected_properties,
)
from bindwire.session import ResolutionSession
from bindwire.strategies import resolve_value_by_key, resolve_values_by_filter
from bindwire.value_promise import (
    ValueOrAwaitable,
    resolve_list,
    resolve_map,
    transform_value_or_awaitable,
)

if TYPE_CHECKING:
    from bindwire.context import Context

T = TypeVar("T")

logger = logging.getLogger(__name__)

_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}


def resolve_injection(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> ValueOrAwaitable[Any]:
    """Resolve one injection point with its strategy, entering it on the session.

    Injections without a custom strategy resolve a key to its bound value and
    a filter to the list of matching values.
    """

    def _resolve(resolution_session: ResolutionSession) -> ValueOrAwaitable[Any]:
        if injection.resolve is not None:
            return injection.resolve(ctx, injection, resolution_session)
        if is_binding_address(injection.binding_selector):
            return resolve_value_by_key(ctx, injection, resolution_session)
        return resolve_values_by_filter(ctx, injection, resolution_session)

    return ResolutionSession.run_with_injection(_resolve, injection, session)


def resolve_injected_arguments(
    target: type[Any],
    method: str | None,
    ctx: Context,
    session: ResolutionSession | None = None,
    non_injected_args: Sequence[Any] = (),
) -> ValueOrAwaitable[tuple[list[Any], dict[str, Any]]]:
    """Assemble positional and keyword arguments for a constructor or method.

    Parameters with an injection are resolved in order. Remaining parameters
    take values from ``non_injected_args`` first, then fall back to their
    defaults. Injected parameters after a defaulted one are passed by keyword.

    Args:
        target: Class owning the constructor or method.
        method: Method name, or ``None`` for the constructor.
        ctx: Context to resolve from.
        session: Resolution session of the enclosing resolution.
        non_injected_args: Values for parameters without an injection.

    Raises:
        ResolutionError: If a parameter has neither an injection, a provided
            value nor a default.

    """
    function = target.__init__ if method is None else getattr(target, method)
    member_name = f"{target.__qualname__}.{method or '__init__'}"
    injections: dict[int, Injection] = {
        injection.parameter_index: injection
        for injection in describe_injected_arguments(target, method)
        if injection.parameter_index is not None
    }
    parameters = _explicit_parameters(function)
    if injections and max(injections) >= len(parameters):
        msg = f"{member_name} has injections for parameters it does not declare"
        raise ResolutionError(msg)

    remaining_args = list(non_injected_args)
    resolvers: list[Callable[[], ValueOrAwaitable[Any]]] = []
    names: list[str | None] = []
    by_keyword = False
    for index, parameter in enumerate(parameters):
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            if by_keyword:
                continue
            for value in remaining_args:
                resolvers.append(_constant(value))
                names.append(None)
            remaining_args = []
            continue
        if parameter.kind is inspect.Parameter.VAR_KEYWORD:
            break
        injection = injections.get(index)
        if injection is not None:
            resolvers.append(_injected(ctx, injection, session))
        elif remaining_args and not by_keyword:
            resolvers.append(_constant(remaining_args.pop(0)))
        elif parameter.default is not inspect.Parameter.empty:
            by_keyword = True
            continue
        else:
            msg = (
                f"Cannot resolve injected arguments for {member_name}: the argument "
                f"'{parameter.name}' is not declared for dependency injection"
            )
            raise ResolutionError(msg)
        keyword = by_keyword or parameter.kind is inspect.Parameter.KEYWORD_ONLY
        if keyword and parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
            msg = (
                f"Cannot resolve injected arguments for {member_name}: the positional-only "
                f"argument '{parameter.name}' follows an argument left to its default"
            )
            raise ResolutionError(msg)
        names.append(parameter.name if keyword else None)

    resolved = resolve_list(resolvers, lambda resolver, _index: resolver())
    return transform_value_or_awaitable(resolved, lambda values: _split_arguments(names, values))


def resolve_injected_properties(
    target: type[Any],
    ctx: Context,
    session: ResolutionSession | None = None,
) -> ValueOrAwaitable[dict[str, Any]]:
    """Resolve every property injection of ``target`` by property name."""
    return resolve_map(
        describe_injected_properties(target),
        lambda injection, _name: resolve_injection(ctx, injection, session),
    )


def instantiate_class(
    cls: type[T],
    ctx: Context,
    session: ResolutionSession | None = None,
    non_injected_args: Sequence[Any] = (),
) -> ValueOrAwaitable[T]:
    """Create an instance of ``cls`` with its constructor and property injections.

    The result is immediate unless one of the injections resolved to an
    awaitable.

    Examples:
        .. code-block:: python

            store = instantiate_class(Store, ctx)
            store = await instantiate_class(AsyncStore, ctx)

    """
    logger.debug("Instantiating %s", cls.__qualname__)
    arguments = resolve_injected_arguments(cls, None, ctx, session, non_injected_args)

    def _construct(resolved: tuple[list[Any], dict[str, Any]]) -> ValueOrAwaitable[T]:
        args, kwargs = resolved
        instance = cls(*args, **kwargs)
        properties = resolve_injected_properties(cls, ctx, session)
        return transform_value_or_awaitable(
            properties,
            lambda values: _assign_properties(instance, values),
        )

    return transform_value_or_awaitable(arguments, _construct)


def invoke_method(
    target: object,
    method: str,
    ctx: Context,
    session: ResolutionSession | None = None,
    non_injected_args: Sequence[Any] = (),
) -> ValueOrAwaitable[Any]:
    """Call an instance method with its declared parameter injections."""
    arguments = resolve_injected_arguments(type(target), method, ctx, session, non_injected_args)

    def _invoke(resolved: tuple[list[Any], dict[str, Any]]) -> Any:
        args, kwargs = resolved
        return getattr(target, method)(*args, **kwargs)

    return transform_value_or_awaitable(arguments, _invoke)


def _explicit_parameters(function: Callable[..., Any]) -> list[inspect.Parameter]:
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return []
    return [
        parameter
        for position, parameter in enumerate(signature.parameters.values())
        if not (position == 0 and parameter.name in _IMPLICIT_FIRST_PARAMETER_NAMES)
    ]


def _constant(value: Any) -> Callable[[], Any]:
    return lambda: value


def _injected(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None,
) -> Callable[[], ValueOrAwaitable[Any]]:
    return lambda: resolve_injection(ctx, injection, session)


def _split_arguments(
    names: list[str | None],
    values: list[Any],
) -> tuple[list[Any], dict[str, Any]]:
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for name, value in zip(names, values):
        if name is None:
            args.append(value)
        else:
            kwargs[name] = value
    return args, kwargs


def _assign_properties(instance: T, values: dict[str, Any]) -> T:
    for name, value in values.items():
        setattr(instance, name, value)
    return instance


__all__ = [
    "instantiate_class",
    "invoke_method",
    "resolve_injected_arguments",
    "resolve_injected_properties",
    "resolve_injection",
]
