from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from bindwire.binding_filter import (
    BindingFilter,
    BindingSelector,
    TagPattern,
    filter_by_predicate,
    filter_by_tag,
    is_binding_address,
)
from bindwire.binding_key import BindingKey
from bindwire.exceptions import InvalidBindingFilterError, SelectorShapeError
from bindwire.injection import InjectionDeclaration, InjectionMetadata, ResolverFunction
from bindwire.strategies import (
    resolve_as_binding,
    resolve_as_context_view,
    resolve_as_getter,
    resolve_as_getter_by_filter,
    resolve_as_setter,
    resolve_context,
    resolve_values_by_filter,
)


def inject(
    binding_selector: BindingSelector,
    metadata: Mapping[str, Any] | None = None,
    resolve: ResolverFunction | None = None,
) -> InjectionDeclaration:
    """Declare that a parameter or property receives the value of a binding.

    A key selects one binding. A filter function selects every matching
    binding and injects their values as a list.

    Args:
        binding_selector: Binding key or binding filter.
        metadata: Optional metadata, for example ``{"optional": True}``.
        resolve: Optional custom resolver strategy.

    Examples:
        .. code-block:: python

            @injectable
            class InfoController:
                def __init__(self, app_name: Annotated[str, inject("application.name")]) -> None:
                    self.app_name = app_name

    """
    _check_selector(binding_selector)
    if resolve is None and not is_binding_address(binding_selector):
        resolve = resolve_values_by_filter
    return InjectionDeclaration(
        binding_selector=binding_selector,
        metadata=InjectionMetadata.build({"decorator": "@inject"}, metadata),
        resolve=resolve,
    )


def inject_getter(
    binding_selector: BindingSelector,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject an async getter resolving the bound value(s) when called.

    Useful when the binding is only available after the consumer was created.
    """
    return inject(
        binding_selector,
        _with_decorator("@inject.getter", metadata),
        resolve_as_getter if is_binding_address(binding_selector) else resolve_as_getter_by_filter,
    )


def inject_setter(
    binding_key: str | BindingKey,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject a setter binding ``binding_key`` to a constant value when called.

    ``metadata["binding_creation"]`` selects the ``BindingCreationPolicy``.
    """
    _require_key("@inject.setter", binding_key)
    return inject(binding_key, _with_decorator("@inject.setter", metadata), resolve_as_setter)


def inject_binding(
    binding_key: str | BindingKey,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject the ``Binding`` for ``binding_key`` itself, found or created by policy."""
    _require_key("@inject.binding", binding_key)
    return inject(binding_key, _with_decorator("@inject.binding", metadata), resolve_as_binding)


def inject_tag(
    tag_pattern: TagPattern,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject the values of all bindings matching a tag name, regex or tag map."""
    return inject(
        filter_by_tag(tag_pattern),
        {"decorator": "@inject.tag", "tag": tag_pattern, **(metadata or {})},
    )


def inject_view(
    binding_filter: BindingFilter,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject an open ``ContextView`` over the bindings matched by ``binding_filter``."""
    return inject(
        filter_by_predicate(binding_filter),
        _with_decorator("@inject.view", metadata),
        resolve_as_context_view,
    )


def inject_context() -> InjectionDeclaration:
    """Inject the context the resolution was requested from."""
    return inject("", {"decorator": "@inject.context"}, resolve_context)


def _with_decorator(decorator: str, metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    return {"decorator": decorator, **(metadata or {})}


def _check_selector(binding_selector: object) -> None:
    if isinstance(binding_selector, str | BindingKey) or callable(binding_selector):
        return
    msg = (
        "Binding selector must be a key or a filter function, "
        f"got {type(binding_selector).__name__}"
    )
    raise InvalidBindingFilterError(msg)


def _require_key(decorator: str, binding_key: object) -> None:
    if not is_binding_address(binding_key):
        msg = f"{decorator} does not allow a binding filter"
        raise SelectorShapeError(msg)


__all__ = [
    "inject",
    "inject_binding",
    "inject_context",
    "inject_getter",
    "inject_setter",
    "inject_tag",
    "inject_view",
]
