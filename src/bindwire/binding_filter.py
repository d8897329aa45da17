from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeAlias, TypeGuard

from bindwire.binding_key import BindingKey
from bindwire.exceptions import InvalidBindingFilterError

if TYPE_CHECKING:
    from bindwire.binding import Binding

BindingFilter: TypeAlias = "Callable[[Binding], bool]"
"""A predicate selecting bindings. Returns ``True`` to select a binding."""

BindingSelector: TypeAlias = "str | BindingKey | BindingFilter"
"""Select binding(s) by key or by a filter function."""

KeyPattern: TypeAlias = "str | re.Pattern[str] | BindingFilter | None"
TagPattern: TypeAlias = "str | re.Pattern[str] | Mapping[str, Any]"

# Characters with a meaning in regular expressions, except the `*` and `?`
# wildcards that are translated below.
_RESERVED_CHARS = re.compile(r"[\-\[\]/{}()+.\\^$|:]")


def is_binding_address(selector: object) -> TypeGuard[str | BindingKey]:
    """Return true when a binding selector is a key rather than a filter function.

    Args:
        selector: Key string, ``BindingKey`` or filter callable.

    """
    return not callable(selector)


def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """Convert a wildcard pattern to an anchored regular expression.

    ``*`` matches zero or more characters except ``.`` and ``:``; ``?`` matches
    exactly one character except ``.`` and ``:``. Any other character matches
    itself. The expression ends with ``\\Z`` so a trailing newline is not
    ignored the way ``$`` ignores it.

    Args:
        pattern: Wildcard pattern such as ``"controllers.*"``.

    """
    escaped = _RESERVED_CHARS.sub(lambda match: "\\" + match.group(0), pattern)
    translated = escaped.replace("*", "[^.:]*").replace("?", "[^.:]")
    return re.compile(f"^{translated}\\Z")


def filter_by_key(key_pattern: KeyPattern = None) -> BindingFilter:
    """Create a binding filter from a key pattern.

    Args:
        key_pattern: Wildcard string, compiled regular expression, or a filter
            function returned unchanged. ``None`` selects every binding.
            Compiled expressions are searched within the key, wildcard strings
            must match the whole key.

    Raises:
        InvalidBindingFilterError: If the pattern has an unsupported type.

    """
    if isinstance(key_pattern, str):
        regex = wildcard_to_regex(key_pattern)
        return lambda binding: regex.match(binding.key) is not None
    if isinstance(key_pattern, re.Pattern):
        compiled = key_pattern
        return lambda binding: compiled.search(binding.key) is not None
    if key_pattern is None:
        return _match_all
    if callable(key_pattern):
        return key_pattern
    msg = (
        "Key pattern must be a string, a compiled regular expression or a filter "
        f"function, got {type(key_pattern).__name__}"
    )
    raise InvalidBindingFilterError(msg)


def filter_by_tag(tag_pattern: TagPattern) -> BindingFilter:
    """Create a binding filter from a tag pattern.

    Args:
        tag_pattern: Tag name (wildcards allowed) or compiled regular expression
            matched against each tag name, or a mapping whose items must all
            equal the corresponding entries of the binding's tag map.

    Raises:
        InvalidBindingFilterError: If the pattern has an unsupported type.

    """
    if isinstance(tag_pattern, str | re.Pattern):
        regex = wildcard_to_regex(tag_pattern) if isinstance(tag_pattern, str) else tag_pattern
        return lambda binding: any(regex.search(name) for name in binding.tag_names)
    if isinstance(tag_pattern, Mapping):
        expected = dict(tag_pattern)

        def _match_tag_map(binding: Binding) -> bool:
            tag_map = binding.tag_map
            return all(
                name in tag_map and tag_map[name] == value for name, value in expected.items()
            )

        return _match_tag_map
    msg = (
        "Tag pattern must be a string, a compiled regular expression or a mapping, "
        f"got {type(tag_pattern).__name__}"
    )
    raise InvalidBindingFilterError(msg)


def filter_by_predicate(predicate: BindingFilter) -> BindingFilter:
    """Return ``predicate`` as a binding filter after checking it is callable."""
    if not callable(predicate):
        msg = f"Binding filter must be callable, got {type(predicate).__name__}"
        raise InvalidBindingFilterError(msg)
    return predicate


def _match_all(_binding: Binding) -> bool:
    return True


__all__ = [
    "BindingFilter",
    "BindingSelector",
    "filter_by_key",
    "filter_by_predicate",
    "filter_by_tag",
    "is_binding_address",
    "wildcard_to_regex",
]
