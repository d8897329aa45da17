from enum import Enum


class BindingCreationPolicy(str, Enum):
    """Policy for finding or creating a binding requested by key."""

    ALWAYS_CREATE = "always_create"
    """Always create a new binding in the requesting context."""

    NEVER_CREATE = "never_create"
    """Return the existing binding or fail when the key is not bound."""

    CREATE_IF_NOT_BOUND = "create_if_not_bound"
    """Return the existing binding or create one in the requesting context."""


class BindingScope(str, Enum):
    """Defines how long a binding's resolved value is reused."""

    TRANSIENT = "transient"
    """The value provider runs on every resolution."""

    SINGLETON = "singleton"
    """The first resolved value is cached on the binding."""


class MissingCurrentBindingPolicy(str, Enum):
    """Policy for configuration and setter injections resolved outside a binding."""

    RETURN_NONE = "return_none"
    """Resolve the injection to ``None``."""

    ERROR = "error"
    """Raise ``MissingCurrentBindingError``."""
