"""Tests for the custom exception hierarchy."""

import pytest

from bindwire.exceptions import (
    AsyncValueInSyncContextError,
    BindingLockedError,
    BindingNotFoundError,
    BindwireError,
    CircularDependencyError,
    DeclarationError,
    InvalidBindingFilterError,
    MissingCurrentBindingError,
    ResolutionError,
    SelectorShapeError,
    TypeMismatchError,
)


@pytest.mark.parametrize(
    "error_type",
    [
        AsyncValueInSyncContextError,
        BindingLockedError,
        BindingNotFoundError,
        CircularDependencyError,
        DeclarationError,
        InvalidBindingFilterError,
        MissingCurrentBindingError,
        ResolutionError,
        SelectorShapeError,
        TypeMismatchError,
    ],
)
def test_errors_share_base_class(error_type: type[Exception]) -> None:
    assert issubclass(error_type, BindwireError)


def test_invalid_binding_filter_is_a_type_error() -> None:
    assert issubclass(InvalidBindingFilterError, TypeError)


class TestTypeMismatchError:
    def test_message_names_target_and_types(self) -> None:
        error = TypeMismatchError("Store.__init__[0]", "a Getter function", int)

        assert str(error) == "The type of Store.__init__[0] (int) is not a Getter function"
        assert error.target_name == "Store.__init__[0]"
        assert error.expected == "a Getter function"
        assert error.actual is int

    def test_message_for_type_without_name(self) -> None:
        error = TypeMismatchError("Store.option", "an array", "text")

        assert "('text')" in str(error)


def test_circular_dependency_error() -> None:
    error = CircularDependencyError("a", ["a", "b", "a"])

    assert error.key == "a"
    assert error.path == ("a", "b", "a")
    assert str(error) == "Circular dependency detected: a --> b --> a"


def test_binding_not_found_error() -> None:
    error = BindingNotFoundError("repositories.user", "app")

    assert error.key == "repositories.user"
    assert error.context_name == "app"
    assert "repositories.user" in str(error)
    assert "app" in str(error)
