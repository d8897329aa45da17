from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    TypeAlias,
    get_args,
    get_origin,
    get_type_hints,
)

from typing_extensions import Self

from bindwire.binding_filter import BindingSelector
from bindwire.exceptions import DeclarationError
from bindwire.policies import BindingCreationPolicy

if TYPE_CHECKING:
    from bindwire.context import Context
    from bindwire.session import ResolutionSession
    from bindwire.value_promise import ValueOrAwaitable

ResolverFunction: TypeAlias = (
    "Callable[[Context, Injection, ResolutionSession | None], ValueOrAwaitable[Any]]"
)
"""A strategy turning an injection into a value or an awaitable value."""

INJECTIONS_ATTRIBUTE = "__bindwire_injections__"
_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}
_ANNOTATED_MIN_ARGS = 2


@dataclass(slots=True)
class InjectionMetadata:
    """Metadata recorded with an injection point.

    Well-known fields are typed; anything else lives in ``extras``.
    """

    decorator: str = "@inject"
    """Name of the declaration that produced the injection, such as ``@inject.getter``."""
    optional: bool = False
    """Resolve a missing binding to ``None`` instead of failing."""
    config_path: str | None = None
    """Dotted path projected out of a configuration value."""
    binding_creation: BindingCreationPolicy | None = None
    """How ``inject_setter``/``inject_binding`` find or create their binding."""
    tag: Any = None
    """Tag pattern used by ``inject_tag``."""
    extras: dict[str, Any] = field(default_factory=dict)
    """Open extension map."""

    @classmethod
    def build(
        cls,
        defaults: Mapping[str, Any],
        metadata: Mapping[str, Any] | None = None,
    ) -> InjectionMetadata:
        """Build metadata from declaration defaults overridden by user metadata."""
        return cls().merge(**defaults).merge(**(metadata or {}))

    def merge(self, **attributes: Any) -> InjectionMetadata:
        """Return a copy with ``attributes`` applied; unknown names go to ``extras``."""
        known = {item.name for item in dataclasses.fields(self)} - {"extras"}
        updates = {name: value for name, value in attributes.items() if name in known}
        extras = {**self.extras}
        extras.update({name: value for name, value in attributes.items() if name not in known})
        return dataclasses.replace(self, **updates, extras=extras)

    def get(self, name: str, default: Any = None) -> Any:
        if name != "extras" and name in self.__dataclass_fields__:
            return getattr(self, name)
        return self.extras.get(name, default)


@dataclass(frozen=True, slots=True)
class InjectionDeclaration:
    """What to inject, before it is attached to a parameter or property.

    Returned by ``inject`` and its variants. Attach it with
    ``declare_injections`` or as ``typing.Annotated`` metadata on a class
    decorated with ``@injectable``.
    """

    binding_selector: BindingSelector
    metadata: InjectionMetadata
    resolve: ResolverFunction | None = None


@dataclass(frozen=True, slots=True)
class Injection:
    """Descriptor of one injected constructor parameter, method parameter or property."""

    target: type[Any]
    """Class owning the injection point."""
    member: str | None
    """Method or property name; ``None`` for a constructor parameter."""
    parameter_index: int | None
    """Parameter position (``self`` excluded); ``None`` for a property."""
    binding_selector: BindingSelector
    metadata: InjectionMetadata
    resolve: ResolverFunction | None = None

    @property
    def is_property(self) -> bool:
        return self.parameter_index is None

    @property
    def target_name(self) -> str:
        """Readable name such as ``Store.__init__[0]`` or ``Store.option``."""
        class_name = self.target.__qualname__
        if self.parameter_index is None:
            return f"{class_name}.{self.member}"
        method = self.member if self.member is not None else "__init__"
        return f"{class_name}.{method}[{self.parameter_index}]"


@dataclass(slots=True)
class _ClassInjections:
    parameters: dict[str | None, dict[int, Injection]] = field(default_factory=dict)
    properties: dict[str, Injection] = field(default_factory=dict)


class InjectionBuilder:
    """Register injections for one class.

    Examples:
        .. code-block:: python

            declare_injections(Store).parameter(0, config("x")).property(
                "logger",
                inject("loggers.default"),
            )

    """

    def __init__(self, target: type[Any]) -> None:
        if not isinstance(target, type):
            msg = f"Injections can only be declared on classes, got {target!r}"
            raise DeclarationError(msg)
        self.target = target

    def parameter(self, index: int, declaration: InjectionDeclaration) -> Self:
        """Declare an injection for a constructor parameter (``self`` excluded)."""
        self._add_parameter(None, index, declaration)
        return self

    def method_parameter(self, method: str, index: int, declaration: InjectionDeclaration) -> Self:
        """Declare an injection for a parameter of an instance method."""
        if not inspect.isfunction(inspect.getattr_static(self.target, method, None)):
            msg = f"{self.target.__qualname__}.{method} is not an instance method"
            raise DeclarationError(msg)
        self._add_parameter(method, index, declaration)
        return self

    def property(self, name: str, declaration: InjectionDeclaration) -> Self:
        """Declare an injection for an instance property.

        Raises:
            DeclarationError: If the property is annotated as ``ClassVar`` or the
                name refers to a method.

        """
        target_name = f"{self.target.__qualname__}.{name}"
        if _is_class_var(self.target, name):
            msg = (
                f"{declaration.metadata.decorator} is not supported for a static property: "
                f"{target_name}"
            )
            raise DeclarationError(msg)
        attribute = inspect.getattr_static(self.target, name, None)
        if isinstance(attribute, staticmethod | classmethod) or inspect.isfunction(attribute):
            msg = f"{declaration.metadata.decorator} cannot be used on a method: {target_name}"
            raise DeclarationError(msg)
        registry = _own_injections(self.target)
        if name in registry.properties:
            msg = f"Injection is already declared for {target_name}"
            raise DeclarationError(msg)
        registry.properties[name] = Injection(
            target=self.target,
            member=name,
            parameter_index=None,
            binding_selector=declaration.binding_selector,
            metadata=declaration.metadata,
            resolve=declaration.resolve,
        )
        return self

    def from_annotations(self) -> Self:
        """Declare injections found as ``Annotated[T, inject(...)]`` metadata.

        Constructor and method parameters of the class itself and its own
        property annotations are scanned.
        """
        for name, attribute in list(vars(self.target).items()):
            if not inspect.isfunction(attribute):
                continue
            member = None if name == "__init__" else name
            for index, declaration in _annotated_parameter_declarations(attribute):
                self._add_parameter(member, index, declaration)

        own_annotations = inspect.get_annotations(self.target)
        hints = _type_hints(self.target)
        for name in own_annotations:
            declaration = _find_declaration(hints.get(name))
            if declaration is not None:
                self.property(name, declaration)
        return self

    def _add_parameter(
        self,
        member: str | None,
        index: int,
        declaration: InjectionDeclaration,
    ) -> None:
        injection = Injection(
            target=self.target,
            member=member,
            parameter_index=index,
            binding_selector=declaration.binding_selector,
            metadata=declaration.metadata,
            resolve=declaration.resolve,
        )
        if index < 0:
            msg = f"Parameter index must not be negative: {injection.target_name}"
            raise DeclarationError(msg)
        parameters = _own_injections(self.target).parameters.setdefault(member, {})
        if index in parameters:
            msg = f"Injection is already declared for {injection.target_name}"
            raise DeclarationError(msg)
        parameters[index] = injection


def declare_injections(target: type[Any]) -> InjectionBuilder:
    """Start registering injections for ``target``."""
    return InjectionBuilder(target)


def injectable(cls: type[Any]) -> type[Any]:
    """Class decorator declaring every ``Annotated[T, inject(...)]`` injection point.

    Examples:
        .. code-block:: python

            @injectable
            class Store:
                def __init__(
                    self,
                    option_x: Annotated[int, config("x")],
                    option_y: Annotated[str, config("y")],
                ) -> None: ...

    """
    declare_injections(cls).from_annotations()
    return cls


def describe_injected_arguments(
    target: type[Any],
    method: str | None = None,
) -> tuple[Injection, ...]:
    """Return the parameter injections of a constructor or method, ordered by index.

    Only the class that defines the constructor (or method) in effect, or
    declared injections for it, contributes; injections on overridden base
    implementations are ignored.
    """
    attribute = "__init__" if method is None else method
    for cls in target.__mro__:
        if cls is object:
            break
        registry: _ClassInjections | None = vars(cls).get(INJECTIONS_ATTRIBUTE)
        declared = registry.parameters.get(method) if registry is not None else None
        if declared:
            return tuple(declared[index] for index in sorted(declared))
        if attribute in vars(cls):
            return ()
    return ()


def describe_injected_properties(target: type[Any]) -> dict[str, Injection]:
    """Return property injections of ``target`` merged along its MRO."""
    properties: dict[str, Injection] = {}
    for cls in reversed(target.__mro__):
        registry: _ClassInjections | None = vars(cls).get(INJECTIONS_ATTRIBUTE)
        if registry is not None:
            properties.update(registry.properties)
    return properties


def _own_injections(target: type[Any]) -> _ClassInjections:
    registry = vars(target).get(INJECTIONS_ATTRIBUTE)
    if registry is None:
        registry = _ClassInjections()
        setattr(target, INJECTIONS_ATTRIBUTE, registry)
    return registry


def _is_class_var(target: type[Any], name: str) -> bool:
    for cls in target.__mro__:
        annotation = inspect.get_annotations(cls).get(name)
        if annotation is None:
            continue
        if isinstance(annotation, str):
            return annotation.startswith(("ClassVar", "typing.ClassVar"))
        return annotation is ClassVar or get_origin(annotation) is ClassVar
    return False


def _type_hints(obj: Any) -> dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except (AttributeError, NameError, TypeError):
        return {}


def _annotated_parameter_declarations(
    function: Callable[..., Any],
) -> list[tuple[int, InjectionDeclaration]]:
    hints = _type_hints(function)
    parameters = [
        parameter
        for position, parameter in enumerate(inspect.signature(function).parameters.values())
        if not (position == 0 and parameter.name in _IMPLICIT_FIRST_PARAMETER_NAMES)
    ]
    declarations: list[tuple[int, InjectionDeclaration]] = []
    for index, parameter in enumerate(parameters):
        declaration = _find_declaration(hints.get(parameter.name))
        if declaration is not None:
            declarations.append((index, declaration))
    return declarations


def _find_declaration(annotation: Any) -> InjectionDeclaration | None:
    if get_origin(annotation) is ClassVar:
        args = get_args(annotation)
        return _find_declaration(args[0]) if args else None
    if get_origin(annotation) is not Annotated:
        return None
    args = get_args(annotation)
    if len(args) < _ANNOTATED_MIN_ARGS:
        return None
    return next((item for item in args[1:] if isinstance(item, InjectionDeclaration)), None)


__all__ = [
    "Injection",
    "InjectionBuilder",
    "InjectionDeclaration",
    "InjectionMetadata",
    "ResolverFunction",
    "declare_injections",
    "describe_injected_arguments",
    "describe_injected_properties",
    "injectable",
]
