from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

PROPERTY_SEPARATOR = "#"
CONFIG_NAMESPACE = "$config"


@dataclass(frozen=True, slots=True)
class BindingKey:
    """Address of a binding, optionally with a property path into its value.

    ``BindingKey.parse("store#options.size")`` addresses the ``options.size``
    property of the value bound to ``store``.
    """

    key: str
    property_path: str | None = None

    @classmethod
    def create(cls, key: str, property_path: str | None = None) -> BindingKey:
        """Build a key, splitting a ``key#path`` string when no path is given."""
        if property_path is None and PROPERTY_SEPARATOR in key:
            return cls.parse(key)
        if PROPERTY_SEPARATOR in key:
            msg = (
                f"Binding key {key!r} cannot contain '{PROPERTY_SEPARATOR}' "
                "when a property path is given"
            )
            raise ValueError(msg)
        return cls(key=key, property_path=property_path or None)

    @classmethod
    def parse(cls, address: str) -> BindingKey:
        key, _, path = address.partition(PROPERTY_SEPARATOR)
        return cls(key=key, property_path=path or None)

    @classmethod
    def build_key_for_config(cls, key: str = "") -> str:
        """Return the key of the binding that holds configuration for ``key``."""
        return f"{key}:{CONFIG_NAMESPACE}" if key else CONFIG_NAMESPACE

    def __str__(self) -> str:
        if self.property_path:
            return f"{self.key}{PROPERTY_SEPARATOR}{self.property_path}"
        return self.key


BindingAddress: TypeAlias = str | BindingKey
"""A binding key string or ``BindingKey``."""


def normalize_address(address: str | BindingKey) -> BindingKey:
    if isinstance(address, BindingKey):
        return address
    return BindingKey.parse(address)


__all__ = [
    "CONFIG_NAMESPACE",
    "PROPERTY_SEPARATOR",
    "BindingAddress",
    "BindingKey",
    "normalize_address",
]
