from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from typing_extensions import Self

from bindwire.binding_key import PROPERTY_SEPARATOR, BindingKey
from bindwire.exceptions import BindwireError
from bindwire.policies import BindingScope
from bindwire.session import ResolutionSession
from bindwire.value_promise import (
    SharedAwaitable,
    ValueOrAwaitable,
    is_awaitable,
    transform_value_or_awaitable,
    try_with_finally,
)

if TYPE_CHECKING:
    from bindwire.context import Context

T = TypeVar("T")

_NOT_CACHED: Any = object()


class BindingType(str, Enum):
    """Kind of value provider attached to a binding."""

    CONSTANT = "constant"
    DYNAMIC_VALUE = "dynamic_value"
    CLASS = "class"
    ALIAS = "alias"


class Binding(Generic[T]):
    """A named, taggable unit of a context that knows how to produce a value.

    Examples:
        .. code-block:: python

            ctx.bind("app.name").to("demo").tag("config")
            ctx.bind("repositories.user").to_class(UserRepository).in_scope(
                BindingScope.SINGLETON,
            )

    """

    def __init__(self, key: str, *, is_locked: bool = False) -> None:
        if PROPERTY_SEPARATOR in key:
            msg = f"Binding key {key!r} cannot contain '{PROPERTY_SEPARATOR}'"
            raise ValueError(msg)
        self.key = key
        self.is_locked = is_locked
        self.scope = BindingScope.TRANSIENT
        self.type: BindingType | None = None
        self.source: Any = None
        self._tag_map: dict[str, Any] = {}
        self._value_getter: Callable[[Context, ResolutionSession], ValueOrAwaitable[T]] | None = (
            None
        )
        self._cached_value: Any = _NOT_CACHED
        self._pending: SharedAwaitable[T] | None = None

    @property
    def tag_map(self) -> dict[str, Any]:
        return dict(self._tag_map)

    @property
    def tag_names(self) -> tuple[str, ...]:
        return tuple(self._tag_map)

    def tag(self, *tag_names: str, **tag_values: Any) -> Self:
        """Tag the binding by names and/or name/value pairs.

        Args:
            *tag_names: Tags whose value is their own name.
            **tag_values: Tags with explicit values.

        """
        for name in tag_names:
            self._tag_map[name] = name
        self._tag_map.update(tag_values)
        return self

    def in_scope(self, scope: BindingScope) -> Self:
        self.scope = scope
        self._cached_value = _NOT_CACHED
        self._pending = None
        return self

    def lock(self) -> Self:
        self.is_locked = True
        return self

    # region Value providers
    def to(self, value: T) -> Self:
        """Bind the key to a constant value.

        Raises:
            BindwireError: If ``value`` is awaitable; use ``to_dynamic_value``.

        """
        if is_awaitable(value):
            msg = (
                f"Awaitable instances are not allowed for constant values of {self.key!r}, "
                "use to_dynamic_value() instead"
            )
            raise BindwireError(msg)
        self._set_value_getter(BindingType.CONSTANT, value, lambda _ctx, _session: value)
        return self

    def to_dynamic_value(self, factory: Callable[[], ValueOrAwaitable[T]]) -> Self:
        """Bind the key to a factory called on resolution; it may return an awaitable."""
        self._set_value_getter(
            BindingType.DYNAMIC_VALUE,
            factory,
            lambda _ctx, _session: factory(),
        )
        return self

    def to_class(self, cls: type[T]) -> Self:
        """Bind the key to a class instantiated with its declared injections."""
        from bindwire.instantiation import instantiate_class  # noqa: PLC0415

        self._set_value_getter(
            BindingType.CLASS,
            cls,
            lambda ctx, session: instantiate_class(cls, ctx, session),
        )
        return self

    def to_alias(self, key: str | BindingKey) -> Self:
        """Bind the key to the value of another binding (a ``key#path`` is allowed)."""
        self._set_value_getter(
            BindingType.ALIAS,
            key,
            lambda ctx, session: ctx.get_value_or_awaitable(key, session=session),
        )
        return self

    def _set_value_getter(
        self,
        binding_type: BindingType,
        source: Any,
        value_getter: Callable[[Context, ResolutionSession], ValueOrAwaitable[T]],
    ) -> None:
        self.type = binding_type
        self.source = source
        self._value_getter = value_getter
        self._cached_value = _NOT_CACHED
        self._pending = None

    # endregion Value providers

    def get_value(
        self,
        ctx: Context,
        session: ResolutionSession | None = None,
        *,
        optional: bool = False,
    ) -> ValueOrAwaitable[T | None]:
        """Compute the bound value, entering this binding on ``session``.

        Args:
            ctx: Context the resolution was requested from.
            session: Resolution session of the enclosing resolution.
            optional: Return ``None`` instead of failing when no value provider
                has been configured.

        Raises:
            CircularDependencyError: If the binding is already being resolved
                in ``session``.

        """
        if self._cached_value is not _NOT_CACHED:
            return self._cached_value
        if self._pending is not None:
            if session is not None:
                # A resolution reaching its own in-flight value is a cycle.
                session.push_binding(self)
                session.pop_binding()
            return self._pending
        value_getter = self._value_getter
        if value_getter is None:
            if optional:
                return None
            msg = f"No value was configured for binding {self.key}."
            raise BindwireError(msg)
        result = ResolutionSession.run_with_binding(
            lambda resolution_session: value_getter(ctx, resolution_session),
            self,
            session,
        )
        if self.scope is not BindingScope.SINGLETON:
            return result
        if not is_awaitable(result):
            return self._cache(result)
        # Concurrent callers share the in-flight value until it is cached.
        pending = SharedAwaitable(
            try_with_finally(
                lambda: transform_value_or_awaitable(result, self._cache),
                self._drop_pending,
            ),
        )
        self._pending = pending
        return pending

    def _cache(self, value: T) -> T:
        self._cached_value = value
        return value

    def _drop_pending(self) -> None:
        self._pending = None

    def __repr__(self) -> str:
        return f"Binding(key={self.key!r}, type={self.type}, tags={self._tag_map!r})"


__all__ = ["Binding", "BindingType"]
