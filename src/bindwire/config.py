from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from bindwire.binding_filter import BindingFilter
from bindwire.binding_key import BindingKey
from bindwire.context_view import ContextView, Getter
from bindwire.exceptions import MissingCurrentBindingError
from bindwire.inject import inject
from bindwire.injection import InjectionDeclaration
from bindwire.policies import MissingCurrentBindingPolicy
from bindwire.session import ResolutionSession
from bindwire.strategies import assert_target_type
from bindwire.value_promise import (
    ValueOrAwaitable,
    get_deep_property,
    transform_value_or_awaitable,
)

if TYPE_CHECKING:
    from bindwire.context import Context
    from bindwire.injection import Injection


def config(
    config_path: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject the configuration of the binding being resolved, or a path inside it.

    Resolves to ``None`` when no configuration is bound.

    Args:
        config_path: Dotted property path into the configuration value. The
            whole configuration is injected when empty or omitted.
        metadata: Optional metadata overriding the defaults.

    Examples:
        .. code-block:: python

            @injectable
            class Store:
                def __init__(
                    self,
                    option_x: Annotated[int, config("x")],
                    option_y: Annotated[str, config("y")],
                ) -> None:
                    self.option_x = option_x
                    self.option_y = option_y


            ctx.configure("store1").to({"x": 1, "y": "a"})
            ctx.bind("store1").to_class(Store)

    """
    return inject("", _config_metadata("@config", config_path, metadata), resolve_from_config)


def inject_config(
    config_path: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Same as ``config``, recorded as ``@inject.config``."""
    return inject(
        "",
        _config_metadata("@inject.config", config_path, metadata),
        resolve_from_config,
    )


def config_getter(
    config_path: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject an async getter for the configuration of the binding being resolved."""
    return inject(
        "",
        _config_metadata("@config.getter", config_path, metadata),
        resolve_as_getter_from_config,
    )


def config_view(
    config_path: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> InjectionDeclaration:
    """Inject an open ``ConfigView`` over the configuration of the binding being resolved."""
    return inject(
        "",
        _config_metadata("@config.view", config_path, metadata),
        resolve_as_view_from_config,
    )


def _config_metadata(
    decorator: str,
    config_path: str | None,
    metadata: Mapping[str, Any] | None,
) -> dict[str, Any]:
    return {
        "decorator": decorator,
        "config_path": config_path or "",
        "optional": True,
        **(metadata or {}),
    }


class ConfigView(ContextView[Any]):
    """Context view over a configuration binding projecting ``config_path`` from each value."""

    def __init__(
        self,
        context: Context,
        binding_filter: BindingFilter,
        config_path: str | None = None,
    ) -> None:
        super().__init__(context, binding_filter)
        self.config_path = config_path

    def values(self, session: ResolutionSession | None = None) -> ValueOrAwaitable[list[Any]]:
        config_values = super().values(session)
        config_path = self.config_path
        if not config_path:
            return config_values
        return transform_value_or_awaitable(
            config_values,
            lambda values: [get_deep_property(value, config_path) for value in values],
        )


def get_current_binding_key(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None,
) -> str | None:
    """Return the key of the binding being resolved.

    Without one, the ``missing_current_binding`` policy from the injection
    metadata, falling back to the context's policy, decides between ``None``
    and an error.

    Raises:
        MissingCurrentBindingError: If no binding is being resolved and the
            policy is ``MissingCurrentBindingPolicy.ERROR``.

    """
    binding = session.current_binding if session is not None else None
    if binding is not None:
        return binding.key
    policy = MissingCurrentBindingPolicy(
        injection.metadata.get("missing_current_binding", ctx.missing_current_binding),
    )
    if policy is MissingCurrentBindingPolicy.ERROR:
        msg = (
            f"{injection.metadata.decorator} for {injection.target_name} requires a binding "
            "being resolved; instantiate the class through a context binding"
        )
        raise MissingCurrentBindingError(msg)
    return None


def resolve_from_config(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> ValueOrAwaitable[Any]:
    binding_key = get_current_binding_key(ctx, injection, session)
    if binding_key is None:
        return None
    return ctx.get_config_as_value_or_awaitable(
        binding_key,
        injection.metadata.config_path,
        session=session,
        optional=injection.metadata.optional,
    )


def resolve_as_getter_from_config(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> Getter[Any]:
    binding_key = get_current_binding_key(ctx, injection, session)
    forked_session = ResolutionSession.fork(session)

    async def getter() -> Any:
        if binding_key is None:
            return None
        return await ctx.get_config(
            binding_key,
            injection.metadata.config_path,
            session=ResolutionSession.fork(forked_session),
            optional=injection.metadata.optional,
        )

    return getter


def resolve_as_view_from_config(
    ctx: Context,
    injection: Injection,
    session: ResolutionSession | None = None,
) -> ConfigView | None:
    assert_target_type(
        ctx,
        injection,
        "ContextView",
        lambda target_type: isinstance(target_type, type) and issubclass(target_type, ContextView),
    )
    binding_key = get_current_binding_key(ctx, injection, session)
    if binding_key is None:
        return None
    config_key = BindingKey.build_key_for_config(binding_key)
    view = ConfigView(
        ctx,
        lambda binding: binding.key == config_key,
        injection.metadata.config_path,
    )
    return view.open()


__all__ = [
    "ConfigView",
    "config",
    "config_getter",
    "config_view",
    "get_current_binding_key",
    "inject_config",
    "resolve_as_getter_from_config",
    "resolve_as_view_from_config",
    "resolve_from_config",
]
