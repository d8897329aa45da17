"""Shared pytest fixtures for bindwire tests."""

import pytest

from bindwire.context import Context
from bindwire.policies import MissingCurrentBindingPolicy


@pytest.fixture()
def ctx() -> Context:
    """Standalone context without a parent."""
    return Context("test")


@pytest.fixture()
def app_ctx() -> Context:
    """Application-level context used as a parent."""
    return Context("app")


@pytest.fixture()
def request_ctx(app_ctx: Context) -> Context:
    """Child context of ``app_ctx``."""
    return Context("request", parent=app_ctx)


@pytest.fixture()
def strict_ctx() -> Context:
    """Context failing configuration injections resolved outside a binding."""
    return Context("strict", missing_current_binding=MissingCurrentBindingPolicy.ERROR)
