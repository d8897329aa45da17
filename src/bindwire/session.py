from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeVar, overload

from bindwire.exceptions import BindwireError, CircularDependencyError
from bindwire.value_promise import ValueOrAwaitable, try_with_finally

if TYPE_CHECKING:
    from bindwire.binding import Binding
    from bindwire.injection import Injection

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionElement:
    """One entry of the resolution stack: a binding or an injection point."""

    kind: Literal["binding", "injection"]
    value: Any


@dataclass(frozen=True, slots=True)
class InjectionDescription:
    """Human readable description of an injection point."""

    target_name: str
    selector: str


class ResolutionSession:
    """Track the bindings and injections being resolved by one resolution call.

    A session is created for a top-level resolution and threaded through every
    nested resolution. Entering a binding whose key is already on the stack
    fails with ``CircularDependencyError``. Deferred callables (getters, view
    getters) keep a ``fork`` so their later invocation owns an independent
    stack.
    """

    __slots__ = ("stack",)

    def __init__(self, stack: list[ResolutionElement] | None = None) -> None:
        self.stack: list[ResolutionElement] = stack if stack is not None else []

    @overload
    @staticmethod
    def fork(session: ResolutionSession) -> ResolutionSession: ...

    @overload
    @staticmethod
    def fork(session: None) -> None: ...

    @staticmethod
    def fork(session: ResolutionSession | None) -> ResolutionSession | None:
        """Return an independent copy of ``session`` or ``None`` for no session.

        Args:
            session: Session to copy.

        """
        if session is None:
            return None
        return ResolutionSession(list(session.stack))

    # region Bindings
    def push_binding(self, binding: Binding) -> None:
        """Enter ``binding``.

        Raises:
            CircularDependencyError: If the binding key is already being resolved.
                The stack is left untouched.

        """
        keys = [element.key for element in self.binding_stack]
        if binding.key in keys:
            path = [*keys, binding.key]
            logger.debug("Circular dependency detected: %s", " --> ".join(path))
            raise CircularDependencyError(binding.key, path)
        self.stack.append(ResolutionElement("binding", binding))

    def pop_binding(self) -> Binding:
        top = self.stack[-1] if self.stack else None
        if top is None or top.kind != "binding":
            msg = "The top element must be a binding"
            raise BindwireError(msg)
        self.stack.pop()
        return top.value

    @property
    def current_binding(self) -> Binding | None:
        """The binding whose value is currently being computed, if any."""
        for element in reversed(self.stack):
            if element.kind == "binding":
                return element.value
        return None

    @property
    def binding_stack(self) -> list[Binding]:
        return [element.value for element in self.stack if element.kind == "binding"]

    # endregion Bindings

    # region Injections
    def push_injection(self, injection: Injection) -> None:
        self.stack.append(ResolutionElement("injection", injection))

    def pop_injection(self) -> Injection:
        top = self.stack[-1] if self.stack else None
        if top is None or top.kind != "injection":
            msg = "The top element must be an injection"
            raise BindwireError(msg)
        self.stack.pop()
        return top.value

    @property
    def current_injection(self) -> Injection | None:
        for element in reversed(self.stack):
            if element.kind == "injection":
                return element.value
        return None

    @property
    def injection_stack(self) -> list[Injection]:
        return [element.value for element in self.stack if element.kind == "injection"]

    # endregion Injections

    def get_resolution_path(self) -> str:
        """Describe the stack, for example ``a --> @Store.__init__[0] --> b``."""
        return " --> ".join(_describe_element(element) for element in self.stack)

    @staticmethod
    def run_with_binding(
        action: Callable[[ResolutionSession], ValueOrAwaitable[T]],
        binding: Binding,
        session: ResolutionSession | None = None,
    ) -> ValueOrAwaitable[T]:
        """Run ``action`` with ``binding`` entered on the session.

        The binding is popped when the result settles, which for a deferred
        result happens after it has been awaited.

        Args:
            action: Callable computing the binding's value.
            binding: Binding being resolved.
            session: Session to enter. A new one is created when omitted.

        """
        resolution_session = session if session is not None else ResolutionSession()
        resolution_session.push_binding(binding)
        return try_with_finally(
            lambda: action(resolution_session),
            resolution_session.pop_binding,
        )

    @staticmethod
    def run_with_injection(
        action: Callable[[ResolutionSession], ValueOrAwaitable[T]],
        injection: Injection,
        session: ResolutionSession | None = None,
    ) -> ValueOrAwaitable[T]:
        """Run ``action`` with ``injection`` entered on the session."""
        resolution_session = session if session is not None else ResolutionSession()
        resolution_session.push_injection(injection)
        return try_with_finally(
            lambda: action(resolution_session),
            resolution_session.pop_injection,
        )

    @staticmethod
    def describe_injection(injection: Injection) -> InjectionDescription:
        """Describe an injection point for error messages and logging."""
        return InjectionDescription(
            target_name=injection.target_name,
            selector=_describe_selector(injection.binding_selector),
        )

    def __repr__(self) -> str:
        return f"ResolutionSession({self.get_resolution_path()!r})"


def _describe_element(element: ResolutionElement) -> str:
    if element.kind == "binding":
        return element.value.key
    return f"@{element.value.target_name}"


def _describe_selector(selector: object) -> str:
    if callable(selector):
        return getattr(selector, "__name__", "<filter>")
    return str(selector)


__all__ = ["InjectionDescription", "ResolutionElement", "ResolutionSession"]
