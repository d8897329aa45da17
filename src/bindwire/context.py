from __future__ import annotations

import logging
import uuid
import weakref
from collections.abc import Iterator
from typing import Any

from bindwire.binding import Binding
from bindwire.binding_filter import KeyPattern, TagPattern, filter_by_key, filter_by_tag
from bindwire.binding_key import BindingKey, normalize_address
from bindwire.events import ContextEventObserver, ContextEventType
from bindwire.exceptions import (
    AsyncValueInSyncContextError,
    BindingLockedError,
    BindingNotFoundError,
)
from bindwire.policies import BindingCreationPolicy, MissingCurrentBindingPolicy
from bindwire.session import ResolutionSession
from bindwire.type_oracle import AnnotationTypeOracle, TypeOracle
from bindwire.value_promise import (
    ValueOrAwaitable,
    close_awaitable,
    get_deep_property,
    is_awaitable,
    transform_value_or_awaitable,
)

CONFIG_FOR_TAG = "config_for"

logger = logging.getLogger(__name__)


class Context:
    """Keyed and tagged store of bindings with an optional parent chain.

    Lookups fall back to the parent context when a key is not bound locally.
    Observers subscribed with ``subscribe`` are notified synchronously when a
    binding is bound or unbound in this context or one of its ancestors.
    A parent only keeps weak references to its children, so short-lived child
    contexts and their observers are released with them.

    Examples:
        .. code-block:: python

            app = Context("app")
            app.configure("store").to({"x": 1})
            app.bind("store").to_class(Store)

            request = Context("request", parent=app)
            store = request.get_sync("store")

    """

    def __init__(
        self,
        name: str | None = None,
        parent: Context | None = None,
        *,
        type_oracle: TypeOracle | None = None,
        missing_current_binding: MissingCurrentBindingPolicy | None = None,
    ) -> None:
        """Initialize a context.

        Args:
            name: Name used in error messages and logs. Generated when omitted.
            parent: Parent context consulted for keys not bound locally.
            type_oracle: Reports declared types of injection points. Inherited
                from ``parent`` or ``AnnotationTypeOracle`` when omitted.
            missing_current_binding: What configuration injections do when no
                binding is being resolved. Inherited from ``parent`` or
                ``MissingCurrentBindingPolicy.RETURN_NONE`` when omitted.

        """
        self.name = name if name is not None else f"context-{uuid.uuid4().hex[:8]}"
        self.parent = parent
        if type_oracle is None:
            type_oracle = parent.type_oracle if parent is not None else AnnotationTypeOracle()
        self.type_oracle: TypeOracle = type_oracle
        if missing_current_binding is None:
            missing_current_binding = (
                parent.missing_current_binding
                if parent is not None
                else MissingCurrentBindingPolicy.RETURN_NONE
            )
        self.missing_current_binding = missing_current_binding
        self._registry: dict[str, Binding[Any]] = {}
        self._observers: list[ContextEventObserver] = []
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()
        if parent is not None:
            parent._children.add(self)  # noqa: SLF001

    # region Registration
    def bind(self, key: str) -> Binding[Any]:
        """Create a binding for ``key`` in this context, replacing an existing one."""
        binding: Binding[Any] = Binding(key)
        self.add(binding)
        return binding

    def add(self, binding: Binding[Any]) -> None:
        """Add ``binding``, replacing the binding registered under the same key.

        Raises:
            BindingLockedError: If the existing binding is locked.

        """
        existing = self._registry.get(binding.key)
        if existing is not None:
            self._check_unlocked(existing)
            del self._registry[existing.key]
            self._notify(ContextEventType.UNBIND, existing)
        self._registry[binding.key] = binding
        logger.debug("Bound %s in context %s", binding.key, self.name)
        self._notify(ContextEventType.BIND, binding)

    def unbind(self, key: str) -> bool:
        """Remove the local binding for ``key``; return whether one was removed."""
        binding = self._registry.get(key)
        if binding is None:
            return False
        self._check_unlocked(binding)
        del self._registry[key]
        logger.debug("Unbound %s from context %s", key, self.name)
        self._notify(ContextEventType.UNBIND, binding)
        return True

    def configure(self, key: str = "") -> Binding[Any]:
        """Bind the configuration of ``key`` and return the binding to set its value.

        Examples:
            .. code-block:: python

                ctx.configure("store1").to({"x": 1, "y": "a"})

        """
        return self.bind(BindingKey.build_key_for_config(key)).tag(**{CONFIG_FOR_TAG: key})

    def _check_unlocked(self, binding: Binding[Any]) -> None:
        if binding.is_locked:
            msg = f"Cannot unbind key {binding.key!r} of a locked binding in context {self.name}"
            raise BindingLockedError(msg)

    # endregion Registration

    # region Lookup
    def context_chain(self) -> Iterator[Context]:
        """Yield this context followed by its ancestors."""
        context: Context | None = self
        while context is not None:
            yield context
            context = context.parent

    def contains(self, key: str) -> bool:
        return key in self._registry

    def is_bound(self, key: str) -> bool:
        return any(context.contains(key) for context in self.context_chain())

    def get_owner_context(self, key: str) -> Context | None:
        return next((context for context in self.context_chain() if context.contains(key)), None)

    def get_binding(self, key: str, *, optional: bool = False) -> Binding[Any] | None:
        """Return the binding for ``key`` from the nearest context that binds it.

        Raises:
            BindingNotFoundError: If the key is not bound and ``optional`` is false.

        """
        owner = self.get_owner_context(key)
        if owner is not None:
            return owner._registry[key]
        if optional:
            return None
        raise BindingNotFoundError(key, self.name)

    def find(self, pattern: KeyPattern = None) -> list[Binding[Any]]:
        """Return bindings selected by a key pattern or filter across the chain.

        Local bindings come first in registration order, followed by parent
        bindings whose key is not bound locally.

        Args:
            pattern: Wildcard string, compiled regular expression, filter
                function, or ``None`` for every binding.

        """
        binding_filter = filter_by_key(pattern)
        found = [binding for binding in self._registry.values() if binding_filter(binding)]
        if self.parent is not None:
            found.extend(
                binding
                for binding in self.parent.find(binding_filter)
                if binding.key not in self._registry
            )
        return found

    def find_by_tag(self, tag_pattern: TagPattern) -> list[Binding[Any]]:
        return self.find(filter_by_tag(tag_pattern))

    def find_or_create_binding(
        self,
        key: str | BindingKey,
        policy: BindingCreationPolicy | str | None = None,
    ) -> Binding[Any]:
        """Find the binding for ``key`` or create it according to ``policy``.

        Args:
            key: Binding key. A property path is not allowed.
            policy: A ``BindingCreationPolicy`` or its value. Defaults to
                ``BindingCreationPolicy.CREATE_IF_NOT_BOUND``.

        Raises:
            BindingNotFoundError: If ``policy`` is ``NEVER_CREATE`` and the key
                is not bound.

        """
        binding_key = normalize_address(key)
        if binding_key.property_path:
            msg = f"Binding key {binding_key} must not have a property path"
            raise ValueError(msg)
        policy = BindingCreationPolicy(policy or BindingCreationPolicy.CREATE_IF_NOT_BOUND)
        if policy is BindingCreationPolicy.ALWAYS_CREATE:
            logger.debug("Creating binding %s in context %s", binding_key.key, self.name)
            return self.bind(binding_key.key)
        binding = self.get_binding(binding_key.key, optional=True)
        if binding is not None:
            return binding
        if policy is BindingCreationPolicy.NEVER_CREATE:
            raise BindingNotFoundError(binding_key.key, self.name)
        logger.debug("Creating binding %s in context %s", binding_key.key, self.name)
        return self.bind(binding_key.key)

    # endregion Lookup

    # region Values
    def get_value_or_awaitable(
        self,
        address: str | BindingKey,
        *,
        session: ResolutionSession | None = None,
        optional: bool = False,
    ) -> ValueOrAwaitable[Any]:
        """Resolve the value bound to ``address`` without forcing asynchrony.

        Args:
            address: Binding key, optionally with a ``#property.path``.
            session: Resolution session of the enclosing resolution.
            optional: Resolve a missing key to ``None`` instead of failing.

        Raises:
            BindingNotFoundError: If the key is not bound and ``optional`` is false.

        """
        binding_key = normalize_address(address)
        binding = self.get_binding(binding_key.key, optional=optional)
        if binding is None:
            return None
        value = binding.get_value(self, session, optional=optional)
        property_path = binding_key.property_path
        if not property_path:
            return value
        return transform_value_or_awaitable(
            value,
            lambda settled: get_deep_property(settled, property_path),
        )

    async def get(
        self,
        address: str | BindingKey,
        *,
        session: ResolutionSession | None = None,
        optional: bool = False,
    ) -> Any:
        value = self.get_value_or_awaitable(address, session=session, optional=optional)
        if is_awaitable(value):
            return await value
        return value

    def get_sync(
        self,
        address: str | BindingKey,
        *,
        session: ResolutionSession | None = None,
        optional: bool = False,
    ) -> Any:
        """Resolve the value bound to ``address`` synchronously.

        Raises:
            AsyncValueInSyncContextError: If the value is only available
                asynchronously.

        """
        value = self.get_value_or_awaitable(address, session=session, optional=optional)
        if is_awaitable(value):
            close_awaitable(value)
            msg = f"Cannot get {address} synchronously: the value is an awaitable"
            raise AsyncValueInSyncContextError(msg)
        return value

    def get_config_as_value_or_awaitable(
        self,
        key: str,
        config_path: str | None = None,
        *,
        session: ResolutionSession | None = None,
        optional: bool = True,
    ) -> ValueOrAwaitable[Any]:
        """Resolve the configuration of ``key``, optionally projecting ``config_path``."""
        address = BindingKey.create(BindingKey.build_key_for_config(key), config_path)
        return self.get_value_or_awaitable(address, session=session, optional=optional)

    async def get_config(
        self,
        key: str,
        config_path: str | None = None,
        *,
        session: ResolutionSession | None = None,
        optional: bool = True,
    ) -> Any:
        address = BindingKey.create(BindingKey.build_key_for_config(key), config_path)
        return await self.get(address, session=session, optional=optional)

    def get_config_sync(
        self,
        key: str,
        config_path: str | None = None,
        *,
        session: ResolutionSession | None = None,
        optional: bool = True,
    ) -> Any:
        address = BindingKey.create(BindingKey.build_key_for_config(key), config_path)
        return self.get_sync(address, session=session, optional=optional)

    # endregion Values

    # region Observers
    def subscribe(self, observer: ContextEventObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: ContextEventObserver) -> bool:
        if observer not in self._observers:
            return False
        self._observers.remove(observer)
        return True

    def is_subscribed(self, observer: ContextEventObserver) -> bool:
        return observer in self._observers

    def _notify(
        self,
        event_type: ContextEventType,
        binding: Binding[Any],
        source: Context | None = None,
    ) -> None:
        """Notify observers of this context and of its descendants.

        ``source`` is the context the binding changed in; observers receive it
        as the event context.
        """
        source = source if source is not None else self
        for observer in list(self._observers):
            observer_filter = getattr(observer, "filter", None)
            if observer_filter is not None and not observer_filter(binding):
                continue
            observer.observe(event_type, binding, source)
        for child in list(self._children):
            child._notify(event_type, binding, source)  # noqa: SLF001

    # endregion Observers

    def __repr__(self) -> str:
        return f"Context(name={self.name!r}, bindings={len(self._registry)})"


__all__ = ["CONFIG_FOR_TAG", "Context"]
