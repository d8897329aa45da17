from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from bindwire.binding import Binding
    from bindwire.context import Context


class ContextEventType(str, Enum):
    """Kinds of binding changes a context reports to its observers."""

    BIND = "bind"
    UNBIND = "unbind"


class ContextEventObserver(Protocol):
    """Observer of binding changes in a context.

    An observer may also expose a ``filter`` attribute; it is then only
    notified about bindings the filter selects.
    """

    def observe(self, event_type: ContextEventType, binding: Binding, context: Context) -> None:
        """Handle a ``bind`` or ``unbind`` event."""
