from bindwire.binding import Binding, BindingType
from bindwire.binding_filter import (
    filter_by_key,
    filter_by_predicate,
    filter_by_tag,
    is_binding_address,
    wildcard_to_regex,
)
from bindwire.binding_key import BindingKey
from bindwire.config import ConfigView, config, config_getter, config_view, inject_config
from bindwire.context import Context
from bindwire.context_view import ContextView, Getter, Setter
from bindwire.events import ContextEventType
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
from bindwire.inject import (
    inject,
    inject_binding,
    inject_context,
    inject_getter,
    inject_setter,
    inject_tag,
    inject_view,
)
from bindwire.injection import (
    Injection,
    InjectionMetadata,
    declare_injections,
    describe_injected_arguments,
    describe_injected_properties,
    injectable,
)
from bindwire.instantiation import instantiate_class, invoke_method
from bindwire.policies import BindingCreationPolicy, BindingScope, MissingCurrentBindingPolicy
from bindwire.session import ResolutionSession
from bindwire.type_oracle import AnnotationTypeOracle, TypeOracle

__all__ = [
    "AnnotationTypeOracle",
    "AsyncValueInSyncContextError",
    "Binding",
    "BindingCreationPolicy",
    "BindingKey",
    "BindingLockedError",
    "BindingNotFoundError",
    "BindingScope",
    "BindingType",
    "BindwireError",
    "CircularDependencyError",
    "ConfigView",
    "Context",
    "ContextEventType",
    "ContextView",
    "DeclarationError",
    "Getter",
    "Injection",
    "InjectionMetadata",
    "InvalidBindingFilterError",
    "MissingCurrentBindingError",
    "MissingCurrentBindingPolicy",
    "ResolutionError",
    "ResolutionSession",
    "SelectorShapeError",
    "Setter",
    "TypeMismatchError",
    "TypeOracle",
    "config",
    "config_getter",
    "config_view",
    "declare_injections",
    "describe_injected_arguments",
    "describe_injected_properties",
    "filter_by_key",
    "filter_by_predicate",
    "filter_by_tag",
    "inject",
    "inject_binding",
    "inject_config",
    "inject_context",
    "inject_getter",
    "inject_setter",
    "inject_tag",
    "inject_view",
    "injectable",
    "instantiate_class",
    "invoke_method",
    "is_binding_address",
    "wildcard_to_regex",
]
