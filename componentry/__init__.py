# Public API
from .aware import Aware, ContainerAware, NameAware, TypeLoaderAware
from .container import ComponentContainer
from .conversion import TypeConverter
from .definition import (
    SCOPE_PROTOTYPE,
    SCOPE_SINGLETON,
    AutowireMode,
    ComponentDefinition,
    ComponentReference,
    ConstructorArgumentValues,
    DependencyCheck,
    PropertyValue,
    PropertyValues,
    TypedStringValue,
    ValueHolder,
)
from .dependency import DependencyDescriptor, DependencyResolver
from .exceptions import (
    AmbiguousResolutionError,
    CircularWiringError,
    ComponentCreationError,
    ComponentNotOfRequiredTypeError,
    ComponentryError,
    ContainerClosedError,
    DefinitionError,
    DefinitionNotFoundError,
    DuplicateDefinitionError,
    ScopeNotActiveError,
    TypeConversionError,
    UnsatisfiedDependencyError,
)
from .introspection import TypeLoader, constructor, factory_method
from .lifecycle import INFER_METHOD, DisposableComponent, InitializingComponent
from .module import ComponentModule
from .ordering import HIGHEST_PRECEDENCE, LOWEST_PRECEDENCE, Ordered, PriorityOrdered, order, priority
from .post_processors import (
    ConstructorCandidatesPostProcessor,
    DestructionPostProcessor,
    EarlyReferencePostProcessor,
    InitializationPostProcessor,
    InstantiationPostProcessor,
    MergedDefinitionPostProcessor,
    PostProcessor,
    PropertiesPostProcessor,
    TypePredictingPostProcessor,
)
from .scope import Scope, SimpleScope, ThreadScope
from .wrapper import InstanceWrapper

__all__ = [
    "ComponentContainer",
    "ComponentModule",
    "ComponentDefinition",
    "ComponentReference",
    "TypedStringValue",
    "ConstructorArgumentValues",
    "ValueHolder",
    "PropertyValue",
    "PropertyValues",
    "AutowireMode",
    "DependencyCheck",
    "SCOPE_SINGLETON",
    "SCOPE_PROTOTYPE",
    "InstanceWrapper",
    "TypeConverter",
    "TypeLoader",
    "DependencyDescriptor",
    "DependencyResolver",
    "constructor",
    "factory_method",
    # Lifecycle
    "InitializingComponent",
    "DisposableComponent",
    "INFER_METHOD",
    "Aware",
    "NameAware",
    "TypeLoaderAware",
    "ContainerAware",
    # Ordering
    "Ordered",
    "PriorityOrdered",
    "order",
    "priority",
    "HIGHEST_PRECEDENCE",
    "LOWEST_PRECEDENCE",
    # Post-processors
    "PostProcessor",
    "MergedDefinitionPostProcessor",
    "InstantiationPostProcessor",
    "PropertiesPostProcessor",
    "ConstructorCandidatesPostProcessor",
    "TypePredictingPostProcessor",
    "EarlyReferencePostProcessor",
    "InitializationPostProcessor",
    "DestructionPostProcessor",
    # Scopes
    "Scope",
    "SimpleScope",
    "ThreadScope",
    # Exceptions
    "ComponentryError",
    "DefinitionError",
    "DefinitionNotFoundError",
    "DuplicateDefinitionError",
    "ContainerClosedError",
    "ScopeNotActiveError",
    "TypeConversionError",
    "ComponentNotOfRequiredTypeError",
    "ComponentCreationError",
    "UnsatisfiedDependencyError",
    "AmbiguousResolutionError",
    "CircularWiringError",
]

__version__ = "0.1.0"
