"""Tests for live context views."""

import asyncio

import pytest

from bindwire.binding import Binding
from bindwire.binding_filter import filter_by_tag
from bindwire.context import Context
from bindwire.context_view import ContextView, Getter, create_view_getter


class CountingFilter:
    def __init__(self, tag: str) -> None:
        self.tag = tag
        self.calls = 0

    def __call__(self, binding: Binding) -> bool:
        self.calls += 1
        return self.tag in binding.tag_names


def test_closed_view_recomputes_on_every_query(ctx: Context) -> None:
    view: ContextView[int] = ContextView(ctx, filter_by_tag("plugin"))

    assert view.bindings == []

    ctx.bind("p1").to(1).tag("plugin")

    assert [binding.key for binding in view.bindings] == ["p1"]
    assert not view.is_open


def test_open_view_caches_bindings(ctx: Context) -> None:
    ctx.bind("p1").to(1).tag("plugin")
    ctx.bind("other").to(2)
    binding_filter = CountingFilter("plugin")
    view: ContextView[int] = ContextView(ctx, binding_filter).open()

    first = view.bindings
    calls = binding_filter.calls
    second = view.bindings

    assert [binding.key for binding in first] == ["p1"]
    assert second == first
    assert binding_filter.calls == calls


def test_open_view_reflects_new_bindings(ctx: Context) -> None:
    view: ContextView[int] = ContextView(ctx, filter_by_tag("plugin")).open()
    assert view.bindings == []

    ctx.bind("p1").to(1).tag("plugin")
    ctx.bind("p2").to(2).tag("plugin")

    assert [binding.key for binding in view.bindings] == ["p1", "p2"]
    assert view.values() == [1, 2]

    ctx.unbind("p1")

    assert view.values() == [2]


def test_open_view_observes_parent_contexts(app_ctx: Context, request_ctx: Context) -> None:
    view: ContextView[str] = ContextView(request_ctx, filter_by_tag("plugin")).open()
    assert view.values() == []

    app_ctx.bind("p1").to("app").tag("plugin")
    request_ctx.bind("p2").to("request").tag("plugin")

    assert request_ctx.is_subscribed(view)
    assert not app_ctx.is_subscribed(view)
    assert view.values() == ["request", "app"]


def test_open_is_idempotent_and_close_unsubscribes(
    app_ctx: Context,
    request_ctx: Context,
) -> None:
    view: ContextView[int] = ContextView(request_ctx, filter_by_tag("plugin"))

    assert view.open() is view.open()
    assert view.is_open

    view.close()

    assert not view.is_open
    assert not app_ctx.is_subscribed(view)
    assert not request_ctx.is_subscribed(view)


def test_views_do_not_share_cache(ctx: Context) -> None:
    first: ContextView[int] = ContextView(ctx, filter_by_tag("plugin")).open()
    second: ContextView[int] = ContextView(ctx, filter_by_tag("plugin")).open()
    assert first.bindings == []
    assert second.bindings == []

    ctx.bind("p1").to(1).tag("plugin")
    first.close()

    assert [binding.key for binding in second.bindings] == ["p1"]


@pytest.mark.asyncio
async def test_values_are_deferred_when_any_value_is_deferred(ctx: Context) -> None:
    async def slow() -> int:
        await asyncio.sleep(0)
        return 2

    ctx.bind("p1").to(1).tag("plugin")
    ctx.bind("p2").to_dynamic_value(slow).tag("plugin")
    view: ContextView[int] = ContextView(ctx, filter_by_tag("plugin"))

    values = view.values()

    assert not isinstance(values, list)
    assert await values == [1, 2]
    assert await view.values_async() == [1, 2]


@pytest.mark.asyncio
async def test_getter_resolves_on_every_call(ctx: Context) -> None:
    getter = create_view_getter(ctx, filter_by_tag("plugin"))

    assert await getter() == []

    ctx.bind("p1").to(1).tag("plugin")

    assert await getter() == [1]


@pytest.mark.asyncio
async def test_getter_from_value() -> None:
    getter: Getter[int] = Getter.from_value(3)

    assert await getter() == 3
