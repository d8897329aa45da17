from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Coroutine, Generator, Iterable, Mapping
from typing import Any, Generic, TypeAlias, TypeVar, cast

T = TypeVar("T")
V = TypeVar("V")
R = TypeVar("R")

ValueOrAwaitable: TypeAlias = T | Awaitable[T]
"""A value that is either available now or must be awaited."""


def is_awaitable(value: object) -> bool:
    """Return whether a resolved value is deferred and has to be awaited."""
    return inspect.isawaitable(value)


def close_awaitable(value: object) -> None:
    """Discard a deferred value that will never be awaited.

    Coroutines, ``DeferredValue`` and ``SharedAwaitable`` objects are closed,
    which also releases the resolution state pushed while producing them.
    Other objects are left untouched.
    """
    if inspect.iscoroutine(value) or isinstance(value, (DeferredValue, SharedAwaitable)):
        value.close()


class DeferredValue(Generic[T]):
    """Awaitable result of a coroutine that continues from another awaitable.

    Closing it before it is awaited closes ``inner`` as well and runs
    ``on_close``, so bookkeeping that would have run once ``inner`` settled
    is undone even when nobody awaits the value.
    """

    __slots__ = ("_coroutine", "_inner", "_on_close", "_started")

    def __init__(
        self,
        coroutine: Coroutine[Any, Any, T],
        inner: Awaitable[Any],
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self._coroutine = coroutine
        self._inner = inner
        self._on_close = on_close
        self._started = False

    def __await__(self) -> Generator[Any, None, T]:
        self._started = True
        return self._coroutine.__await__()

    def close(self) -> None:
        self._coroutine.close()
        if self._started:
            return
        self._started = True
        close_awaitable(self._inner)
        if self._on_close is not None:
            self._on_close()


class SharedAwaitable(Generic[T]):
    """Awaitable that several callers may await while ``awaitable`` runs once.

    The first ``await`` schedules ``awaitable`` as a task on the running loop.
    Later awaits share that task and its result.
    """

    __slots__ = ("_awaitable", "_task")

    def __init__(self, awaitable: Awaitable[T]) -> None:
        self._awaitable = awaitable
        self._task: asyncio.Future[T] | None = None

    def __await__(self) -> Generator[Any, None, T]:
        if self._task is None:
            self._task = asyncio.ensure_future(self._awaitable)
        return self._task.__await__()

    def close(self) -> None:
        if self._task is None:
            close_awaitable(self._awaitable)


def transform_value_or_awaitable(
    value: ValueOrAwaitable[V],
    transformer: Callable[[V], ValueOrAwaitable[R]],
) -> ValueOrAwaitable[R]:
    """Apply ``transformer`` to a value, deferring only when the value is deferred.

    Args:
        value: Immediate value or awaitable.
        transformer: Callable applied to the settled value. It may return an
            awaitable itself.

    """
    if not inspect.isawaitable(value):
        return transformer(cast("V", value))

    async def _transform() -> R:
        settled = await value
        result = transformer(settled)
        if inspect.isawaitable(result):
            return await result
        return cast("R", result)

    return DeferredValue(_transform(), value)


def resolve_list(
    items: Iterable[V],
    resolver: Callable[[V, int], ValueOrAwaitable[R]],
) -> ValueOrAwaitable[list[R]]:
    """Resolve each item in order, staying synchronous until a value is deferred.

    Items are visited one after another. Once an item resolves to an awaitable,
    the remaining items are resolved inside the returned coroutine only after
    the previous awaitable settled, so resolutions never interleave.

    Args:
        items: Items to resolve.
        resolver: Callable receiving the item and its index.

    """
    pending = list(items)
    results: list[R] = []
    for index, item in enumerate(pending):
        value = resolver(item, index)
        if inspect.isawaitable(value):
            rest = _resolve_rest(pending, resolver, results, index, value)
            return DeferredValue(rest, value)
        results.append(cast("R", value))
    return results


async def _resolve_rest(
    pending: list[V],
    resolver: Callable[[V, int], ValueOrAwaitable[R]],
    results: list[R],
    start: int,
    first: Awaitable[R],
) -> list[R]:
    results.append(await first)
    for index in range(start + 1, len(pending)):
        value = resolver(pending[index], index)
        if inspect.isawaitable(value):
            value = await value
        results.append(cast("R", value))
    return results


def resolve_map(
    mapping: Mapping[str, V],
    resolver: Callable[[V, str], ValueOrAwaitable[R]],
) -> ValueOrAwaitable[dict[str, R]]:
    """Resolve mapping values in order using the same rules as ``resolve_list``."""
    keys = list(mapping)
    resolved = resolve_list(keys, lambda key, _index: resolver(mapping[key], key))
    return transform_value_or_awaitable(resolved, lambda values: dict(zip(keys, values)))


def try_with_finally(
    action: Callable[[], ValueOrAwaitable[T]],
    final_action: Callable[[], None],
) -> ValueOrAwaitable[T]:
    """Run ``action`` and call ``final_action`` once its result is settled.

    For an immediate result ``final_action`` runs before returning. For a
    deferred result it runs when the awaitable completes or fails, or when the
    returned value is closed without being awaited.
    """
    try:
        result = action()
    except BaseException:
        final_action()
        raise
    if not inspect.isawaitable(result):
        final_action()
        return result

    async def _settle() -> T:
        try:
            return await result
        finally:
            final_action()

    return DeferredValue(_settle(), result, final_action)


def get_deep_property(value: object, path: str) -> Any:
    """Look up a dotted property path, returning ``None`` when a segment is missing.

    Mappings are traversed by key and other objects (dataclasses, pydantic
    models) by attribute. An empty path returns ``value`` itself.

    Examples:
        .. code-block:: python

            get_deep_property({"y": {"z": 2}}, "y.z")  # 2
            get_deep_property({"y": {"z": 2}}, "y.w")  # None

    """
    if not path:
        return value
    current: object = value
    for segment in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(segment)
            continue
        current = getattr(current, segment, None)
    return current


__all__ = [
    "DeferredValue",
    "SharedAwaitable",
    "ValueOrAwaitable",
    "close_awaitable",
    "get_deep_property",
    "is_awaitable",
    "resolve_list",
    "resolve_map",
    "transform_value_or_awaitable",
    "try_with_finally",
]
