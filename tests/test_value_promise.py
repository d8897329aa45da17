"""Tests for helpers mixing immediate and awaitable values."""

import asyncio
import inspect
from dataclasses import dataclass

import pytest

from bindwire.value_promise import (
    SharedAwaitable,
    close_awaitable,
    get_deep_property,
    is_awaitable,
    resolve_list,
    resolve_map,
    transform_value_or_awaitable,
    try_with_finally,
)


async def _later(value: object) -> object:
    await asyncio.sleep(0)
    return value


def test_transform_immediate_value_stays_immediate() -> None:
    assert transform_value_or_awaitable(2, lambda value: value * 3) == 6


@pytest.mark.asyncio
async def test_transform_awaitable_value_is_deferred() -> None:
    result = transform_value_or_awaitable(_later(2), lambda value: value * 3)

    assert is_awaitable(result)
    assert await result == 6


@pytest.mark.asyncio
async def test_transform_awaits_a_deferred_transformer_result() -> None:
    result = transform_value_or_awaitable(_later(2), lambda value: _later(value + 1))

    assert await result == 3


def test_resolve_list_without_awaitables_returns_a_list() -> None:
    assert resolve_list(["a", "b"], lambda item, index: f"{item}{index}") == ["a0", "b1"]


@pytest.mark.asyncio
async def test_resolve_list_switches_to_a_coroutine_at_first_awaitable() -> None:
    calls: list[int] = []

    def resolver(item: int, index: int) -> object:
        calls.append(index)
        return _later(item * 10) if index == 1 else item * 10

    result = resolve_list([1, 2, 3], resolver)

    assert inspect.isawaitable(result)
    assert calls == [0, 1]
    assert await result == [10, 20, 30]
    assert calls == [0, 1, 2]


@pytest.mark.asyncio
async def test_resolve_list_never_interleaves_deferred_items() -> None:
    events: list[str] = []

    async def slow(name: str) -> str:
        events.append(f"{name} start")
        await asyncio.sleep(0)
        events.append(f"{name} end")
        return name

    result = resolve_list(["first", "second"], lambda name, _index: slow(name))

    assert await result == ["first", "second"]
    assert events == ["first start", "first end", "second start", "second end"]


@pytest.mark.asyncio
async def test_resolve_map_keeps_keys() -> None:
    immediate = resolve_map({"a": 1, "b": 2}, lambda value, _key: value + 1)
    deferred = resolve_map({"a": 1, "b": 2}, lambda value, _key: _later(value + 1))

    assert immediate == {"a": 2, "b": 3}
    assert await deferred == {"a": 2, "b": 3}


class TestTryWithFinally:
    def test_runs_final_action_for_immediate_value(self) -> None:
        finished: list[bool] = []

        assert try_with_finally(lambda: 1, lambda: finished.append(True)) == 1
        assert finished == [True]

    def test_runs_final_action_when_action_raises(self) -> None:
        finished: list[bool] = []

        def fail() -> int:
            msg = "boom"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="boom"):
            try_with_finally(fail, lambda: finished.append(True))
        assert finished == [True]

    @pytest.mark.asyncio
    async def test_runs_final_action_after_awaitable_settles(self) -> None:
        finished: list[bool] = []

        result = try_with_finally(lambda: _later(1), lambda: finished.append(True))

        assert finished == []
        assert await result == 1
        assert finished == [True]

    @pytest.mark.asyncio
    async def test_runs_final_action_after_awaitable_fails(self) -> None:
        finished: list[bool] = []

        async def fail() -> int:
            msg = "boom"
            raise RuntimeError(msg)

        result = try_with_finally(fail, lambda: finished.append(True))

        with pytest.raises(RuntimeError, match="boom"):
            await result
        assert finished == [True]

    def test_runs_final_action_when_closed_unawaited(self) -> None:
        finished: list[str] = []

        inner = try_with_finally(lambda: _later(1), lambda: finished.append("inner"))
        outer = try_with_finally(lambda: inner, lambda: finished.append("outer"))

        close_awaitable(outer)

        assert finished == ["inner", "outer"]


@pytest.mark.asyncio
async def test_shared_awaitable_runs_once_for_every_awaiter() -> None:
    calls: list[int] = []

    async def compute() -> object:
        calls.append(1)
        await asyncio.sleep(0)
        return object()

    shared = SharedAwaitable(compute())

    async def wait() -> object:
        return await shared

    first, second = await asyncio.gather(wait(), wait())

    assert first is second
    assert await shared is first
    assert calls == [1]


@dataclass
class _Options:
    size: int


@dataclass
class _Settings:
    options: _Options


class TestGetDeepProperty:
    def test_nested_mapping(self) -> None:
        value = {"x": 1, "y": {"z": 2}}

        assert get_deep_property(value, "y.z") == 2
        assert get_deep_property(value, "x") == 1

    def test_empty_path_returns_value(self) -> None:
        value = {"x": 1}

        assert get_deep_property(value, "") is value

    def test_missing_segment_returns_none(self) -> None:
        value = {"x": 1, "y": {"z": 2}}

        assert get_deep_property(value, "y.w") is None
        assert get_deep_property(value, "w.z") is None
        assert get_deep_property(None, "a") is None

    def test_objects_are_traversed_by_attribute(self) -> None:
        assert get_deep_property(_Settings(_Options(3)), "options.size") == 3
        assert get_deep_property(_Settings(_Options(3)), "options.missing") is None
