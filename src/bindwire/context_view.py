from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from typing_extensions import Self

from bindwire.binding_filter import BindingFilter
from bindwire.events import ContextEventType
from bindwire.session import ResolutionSession
from bindwire.value_promise import ValueOrAwaitable, is_awaitable, resolve_list

if TYPE_CHECKING:
    from bindwire.binding import Binding
    from bindwire.context import Context

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

logger = logging.getLogger(__name__)


class Getter(Protocol[T_co]):
    """Callable injected by ``inject_getter``; awaiting it resolves the value(s)."""

    def __call__(self) -> Awaitable[T_co]: ...

    @staticmethod
    def from_value(value: T) -> Getter[T]:
        """Build a getter that always returns ``value``."""

        async def getter() -> T:
            return value

        return getter


class Setter(Protocol[T_co]):
    """Callable injected by ``inject_setter``; binds its key to a constant value."""

    def __call__(self, value: Any) -> None: ...


class ContextView(Generic[T]):
    """A live view of the bindings in a context chain selected by a filter.

    While open, the view caches its matching bindings and drops the cache
    whenever a binding is bound or unbound anywhere in the chain. The filter is
    applied lazily on the next query, after chained calls such as
    ``ctx.bind(key).tag(...)`` have completed. A view that is not open
    recomputes the bindings on every query.

    Examples:
        .. code-block:: python

            view = ContextView(ctx, filter_by_tag("plugin")).open()
            plugins = await view.values_async()

    """

    def __init__(self, context: Context, binding_filter: BindingFilter) -> None:
        self.context = context
        self.binding_filter = binding_filter
        self._cached_bindings: list[Binding] | None = None
        self._is_open = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> Self:
        """Subscribe to binding changes in the context chain. Idempotent.

        Only ``context`` holds the view; it forwards changes from its ancestors.
        """
        if self._is_open:
            return self
        self.context.subscribe(self)
        self._is_open = True
        logger.debug("Opened view on context %s", self.context.name)
        return self

    def close(self) -> None:
        """Unsubscribe from binding changes and drop the cached bindings."""
        self.context.unsubscribe(self)
        self._is_open = False
        self._cached_bindings = None
        logger.debug("Closed view on context %s", self.context.name)

    def observe(self, event_type: ContextEventType, binding: Binding, context: Context) -> None:
        """Invalidate the cache on ``bind``/``unbind`` in the context chain."""
        logger.debug(
            "View on context %s refreshed after %s of %s in %s",
            self.context.name,
            event_type.value,
            binding.key,
            context.name,
        )
        self.refresh()

    def refresh(self) -> None:
        self._cached_bindings = None

    @property
    def bindings(self) -> list[Binding]:
        """Bindings currently selected by the filter, in context lookup order."""
        if self._cached_bindings is not None:
            return list(self._cached_bindings)
        found = self.context.find(self.binding_filter)
        if self.is_open:
            self._cached_bindings = found
        return list(found)

    def values(self, session: ResolutionSession | None = None) -> ValueOrAwaitable[list[T]]:
        """Resolve the values of the selected bindings.

        The result is a list when every binding resolved immediately and an
        awaitable of the list otherwise. Each binding resolves with its own
        fork of ``session``.

        Args:
            session: Resolution session of the enclosing resolution.

        """
        return resolve_list(
            self.bindings,
            lambda binding, _index: self._resolve_binding(binding, session),
        )

    async def values_async(self, session: ResolutionSession | None = None) -> list[T]:
        values = self.values(session)
        if is_awaitable(values):
            return await values
        return values

    def as_getter(self, session: ResolutionSession | None = None) -> Getter[list[T]]:
        """Return a getter resolving the view's values on each call."""
        forked_session = ResolutionSession.fork(session)

        async def getter() -> list[T]:
            return await self.values_async(ResolutionSession.fork(forked_session))

        return getter

    def _resolve_binding(
        self,
        binding: Binding,
        session: ResolutionSession | None,
    ) -> ValueOrAwaitable[T]:
        return binding.get_value(self.context, ResolutionSession.fork(session))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(context={self.context.name!r}, open={self.is_open})"


def create_view_getter(
    context: Context,
    binding_filter: BindingFilter,
    session: ResolutionSession | None = None,
) -> Getter[list[Any]]:
    """Open a view for ``binding_filter`` and return its getter."""
    view: ContextView[Any] = ContextView(context, binding_filter).open()
    return view.as_getter(session)


__all__ = ["ContextView", "Getter", "Setter", "create_view_getter"]
