"""Tests for creating instances and invoking methods with injected arguments."""

import asyncio
from typing import Annotated

import pytest

from bindwire.context import Context
from bindwire.exceptions import (
    AsyncValueInSyncContextError,
    CircularDependencyError,
    ResolutionError,
)
from bindwire.inject import inject
from bindwire.injection import declare_injections, injectable
from bindwire.instantiation import (
    instantiate_class,
    invoke_method,
    resolve_injected_arguments,
    resolve_injected_properties,
)
from bindwire.policies import BindingScope
from bindwire.session import ResolutionSession


class Pair:
    def __init__(self, left: str, right: str) -> None:
        self.left = left
        self.right = right


declare_injections(Pair).parameter(1, inject("right"))


class WithDefaults:
    def __init__(self, first: str, middle: int = 2, last: str | None = None) -> None:
        self.first = first
        self.middle = middle
        self.last = last


declare_injections(WithDefaults).parameter(0, inject("first")).parameter(2, inject("last"))


class KeywordOnly:
    def __init__(self, *, name: str) -> None:
        self.name = name


declare_injections(KeywordOnly).parameter(0, inject("name"))


class Variadic:
    def __init__(self, name: str, *rest: int) -> None:
        self.name = name
        self.rest = rest


declare_injections(Variadic).parameter(0, inject("name"))


class Undeclared:
    def __init__(self, name: str) -> None:
        self.name = name


class OutOfRange:
    def __init__(self, name: str) -> None:
        self.name = name


declare_injections(OutOfRange).parameter(3, inject("name"))


@injectable
class Greeter:
    prefix: Annotated[str, inject("prefix")]

    def greet(self, greeting: Annotated[str, inject("greeting")], name: str) -> str:
        return f"{self.prefix}{greeting}, {name}"


@injectable
class ServiceA:
    def __init__(self, b: Annotated[object, inject("b")]) -> None:
        self.b = b


@injectable
class ServiceB:
    def __init__(self, a: Annotated[object, inject("a")]) -> None:
        self.a = a


@injectable
class SlowConsumer:
    first: Annotated[str, inject("first")]

    def __init__(
        self,
        fast: Annotated[str, inject("fast")],
        slow: Annotated[str, inject("slow")],
        last: Annotated[str, inject("last")],
    ) -> None:
        self.values = [fast, slow, last]


@injectable
class SelfAfterSlow:
    def __init__(
        self,
        slow: Annotated[str, inject("slow")],
        again: Annotated[object, inject("selfish")],
    ) -> None:
        self.values = [slow, again]


class TestConstructorArguments:
    def test_non_injected_arguments_fill_remaining_parameters(self, ctx: Context) -> None:
        ctx.bind("right").to("R")

        pair = instantiate_class(Pair, ctx, non_injected_args=["L"])

        assert (pair.left, pair.right) == ("L", "R")

    def test_injections_after_skipped_default_are_keywords(self, ctx: Context) -> None:
        ctx.bind("first").to("a")
        ctx.bind("last").to("c")

        assert resolve_injected_arguments(WithDefaults, None, ctx) == (["a"], {"last": "c"})

        instance = instantiate_class(WithDefaults, ctx)

        assert (instance.first, instance.middle, instance.last) == ("a", 2, "c")

    def test_keyword_only_parameter(self, ctx: Context) -> None:
        ctx.bind("name").to("n")

        assert instantiate_class(KeywordOnly, ctx).name == "n"

    def test_var_positional_receives_extra_arguments(self, ctx: Context) -> None:
        ctx.bind("name").to("n")

        instance = instantiate_class(Variadic, ctx, non_injected_args=[1, 2])

        assert (instance.name, instance.rest) == ("n", (1, 2))

    def test_undeclared_parameter(self, ctx: Context) -> None:
        with pytest.raises(ResolutionError, match="'name' is not declared"):
            instantiate_class(Undeclared, ctx)

    def test_injection_beyond_declared_parameters(self, ctx: Context) -> None:
        with pytest.raises(ResolutionError, match="does not declare"):
            instantiate_class(OutOfRange, ctx)


class TestMethods:
    def test_invoke_method(self, ctx: Context) -> None:
        ctx.bind("prefix").to("> ")
        ctx.bind("greeting").to("Hello")
        greeter = instantiate_class(Greeter, ctx)

        assert invoke_method(greeter, "greet", ctx, non_injected_args=["Ada"]) == "> Hello, Ada"

    @pytest.mark.asyncio
    async def test_invoke_method_with_deferred_argument(self, ctx: Context) -> None:
        async def greeting() -> str:
            return "Hi"

        ctx.bind("prefix").to("")
        ctx.bind("greeting").to_dynamic_value(greeting)
        greeter = instantiate_class(Greeter, ctx)

        assert await invoke_method(greeter, "greet", ctx, non_injected_args=["Bob"]) == "Hi, Bob"

    def test_resolve_injected_properties(self, ctx: Context) -> None:
        ctx.bind("prefix").to("> ")

        assert resolve_injected_properties(Greeter, ctx) == {"prefix": "> "}


class TestCircularDependencies:
    def test_cycle_through_constructors(self, ctx: Context) -> None:
        ctx.bind("a").to_class(ServiceA)
        ctx.bind("b").to_class(ServiceB)

        with pytest.raises(CircularDependencyError) as exc_info:
            ctx.get_sync("a")

        assert exc_info.value.path == ("a", "b", "a")

    def test_session_is_clean_after_cycle(self, ctx: Context) -> None:
        ctx.bind("a").to_class(ServiceA)
        ctx.bind("b").to_class(ServiceB)
        session = ResolutionSession()

        with pytest.raises(CircularDependencyError):
            ctx.get_sync("a", session=session)

        assert session.stack == []

    def test_self_reference(self, ctx: Context) -> None:
        ctx.bind("a").to_alias("a")

        with pytest.raises(CircularDependencyError, match="a --> a"):
            ctx.get_sync("a")

    @pytest.mark.asyncio
    async def test_deferred_singleton_reaching_itself(self, ctx: Context) -> None:
        async def slow() -> str:
            return "slow"

        ctx.bind("slow").to_dynamic_value(slow)
        ctx.bind("selfish").to_class(SelfAfterSlow).in_scope(BindingScope.SINGLETON)

        with pytest.raises(CircularDependencyError) as exc_info:
            await ctx.get("selfish")

        assert exc_info.value.path == ("selfish", "selfish")


class TestDeferredResolution:
    def test_sync_resolution_of_deferred_dependency_fails(self, ctx: Context) -> None:
        async def slow() -> str:
            return "slow"

        ctx.bind("first").to("1")
        ctx.bind("fast").to("fast")
        ctx.bind("slow").to_dynamic_value(slow)
        ctx.bind("last").to("last")
        ctx.bind("consumer").to_class(SlowConsumer)

        with pytest.raises(AsyncValueInSyncContextError):
            ctx.get_sync("consumer")

    @pytest.mark.asyncio
    async def test_deferred_dependency_keeps_argument_order(self, ctx: Context) -> None:
        events: list[str] = []

        async def slow() -> str:
            events.append("slow start")
            await asyncio.sleep(0)
            events.append("slow end")
            return "slow"

        def last() -> str:
            events.append("last")
            return "last"

        ctx.bind("first").to("1")
        ctx.bind("fast").to("fast")
        ctx.bind("slow").to_dynamic_value(slow)
        ctx.bind("last").to_dynamic_value(last)
        ctx.bind("consumer").to_class(SlowConsumer)

        consumer = await ctx.get("consumer")

        assert consumer.values == ["fast", "slow", "last"]
        assert consumer.first == "1"
        assert events == ["slow start", "slow end", "last"]
