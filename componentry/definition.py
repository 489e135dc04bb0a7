"""
Definition

Data classes describing components: the definition record itself, its
declared constructor arguments and property values, and the value markers
(references, typed strings) that appear inside them.

A ``ComponentDefinition`` is metadata only. The container clones each
registered definition once into a *merged* definition, and keeps the
runtime caches (resolved constructor, converted property values,
post-processing flags) on that clone.
"""

import threading
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Type, Union

SCOPE_SINGLETON = "singleton"
SCOPE_PROTOTYPE = "prototype"

# Component type: a class, or a dotted import path resolved lazily
ComponentType = Union[Type, str]


class AutowireMode(Enum):
    """Strategy used to fill unset injection points automatically."""
    NO = "no"
    BY_NAME = "by_name"
    BY_TYPE = "by_type"
    CONSTRUCTOR = "constructor"


class DependencyCheck(Enum):
    """Which unset writable properties count as a failure after population."""
    NONE = "none"
    OBJECTS = "objects"
    SIMPLE = "simple"
    ALL = "all"


@dataclass(frozen=True)
class ComponentReference:
    """Reference to another named component, resolved at population time.

    Attributes:
        name: Name of the referenced component
        to_parent: Resolve the name in the parent container only
    """
    name: str
    to_parent: bool = False


@dataclass(frozen=True)
class TypedStringValue:
    """A literal string with an optional explicit target type.

    Example::

        module.define("pool", Pool, property_values=PropertyValues({
            "size": TypedStringValue("16", int),
        }))
    """
    value: Optional[str]
    target_type: Optional[Type] = None


class ValueHolder:
    """Holder for one declared constructor argument."""

    def __init__(self, value: Any, type: Optional[Type] = None, name: Optional[str] = None):
        self.value = value
        self.type = type
        self.name = name

    def copy(self) -> 'ValueHolder':
        return ValueHolder(self.value, self.type, self.name)

    def __repr__(self) -> str:
        return f"ValueHolder(value={self.value!r}, type={self.type!r}, name={self.name!r})"


class ConstructorArgumentValues:
    """Declared constructor (or factory method) arguments.

    Arguments are either indexed (bound to a parameter position) or generic
    (matched by parameter name, then by type, in declaration order).
    """

    def __init__(self):
        self._indexed: Dict[int, ValueHolder] = {}
        self._generic: List[ValueHolder] = []

    def add_indexed(self, index: int, value: Any, type: Optional[Type] = None,
                    name: Optional[str] = None) -> 'ConstructorArgumentValues':
        if index < 0:
            raise ValueError("Argument index must not be negative")
        self._indexed[index] = ValueHolder(value, type, name)
        return self

    def add_generic(self, value: Any, type: Optional[Type] = None,
                    name: Optional[str] = None) -> 'ConstructorArgumentValues':
        self._generic.append(ValueHolder(value, type, name))
        return self

    @property
    def indexed(self) -> Dict[int, ValueHolder]:
        return self._indexed

    @property
    def generic(self) -> List[ValueHolder]:
        return self._generic

    def get_argument_value(
        self,
        index: int,
        param_type: Any = None,
        param_name: Optional[str] = None,
        used: Optional[Set[int]] = None,
    ) -> Optional[ValueHolder]:
        """Find the holder for a parameter position.

        Indexed holders win; otherwise the first unused generic holder whose
        name matches, or which has no name and whose declared type (or
        value) is compatible with ``param_type``.

        Args:
            index: Parameter position
            param_type: Declared parameter type, if any
            param_name: Parameter name, if known
            used: ids of generic holders already consumed

        Returns:
            The matching holder or None
        """
        holder = self._indexed.get(index)
        if holder is not None and _holder_matches(holder, param_type, param_name):
            return holder
        used = used if used is not None else set()
        for holder in self._generic:
            if id(holder) in used:
                continue
            if holder.name is not None and holder.name != param_name:
                continue
            if holder.name is None and not _holder_type_matches(holder, param_type):
                continue
            return holder
        return None

    def argument_count(self) -> int:
        return len(self._indexed) + len(self._generic)

    def is_empty(self) -> bool:
        return not self._indexed and not self._generic

    def copy(self) -> 'ConstructorArgumentValues':
        clone = ConstructorArgumentValues()
        clone._indexed = {i: h.copy() for i, h in self._indexed.items()}
        clone._generic = [h.copy() for h in self._generic]
        return clone


def _holder_matches(holder: ValueHolder, param_type: Any, param_name: Optional[str]) -> bool:
    if holder.name is not None and param_name is not None and holder.name != param_name:
        return False
    return holder.type is None or param_type is None or _is_assignable(param_type, holder.type)


def _holder_type_matches(holder: ValueHolder, param_type: Any) -> bool:
    if param_type is None or not isinstance(param_type, type):
        return True
    if holder.type is not None:
        return _is_assignable(param_type, holder.type)
    value = holder.value
    if isinstance(value, (ComponentReference, TypedStringValue, ComponentDefinition)):
        return True
    # Plain strings may still be converted to the parameter type
    return isinstance(value, param_type) or isinstance(value, str)


def _is_assignable(target: Any, source: Any) -> bool:
    try:
        return isinstance(target, type) and isinstance(source, type) and issubclass(source, target)
    except TypeError:
        return False


class PropertyValue:
    """One declared property assignment.

    ``converted_value`` caches the value after resolution and conversion so
    that later prototype instances of the same definition skip conversion.
    """

    def __init__(self, name: str, value: Any):
        self.name = name
        self.value = value
        self.converted = False
        self.converted_value: Any = None

    def set_converted_value(self, value: Any) -> None:
        self.converted = True
        self.converted_value = value

    def __repr__(self) -> str:
        return f"PropertyValue(name={self.name!r}, value={self.value!r})"


class PropertyValues:
    """Ordered collection of PropertyValue objects, unique by name."""

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: List[PropertyValue] = []
        self.converted = False
        if values:
            for name, value in values.items():
                self.add(name, value)

    def add(self, name: str, value: Any) -> 'PropertyValues':
        for i, existing in enumerate(self._values):
            if existing.name == name:
                self._values[i] = PropertyValue(name, value)
                return self
        self._values.append(PropertyValue(name, value))
        return self

    def add_property_value(self, pv: PropertyValue) -> 'PropertyValues':
        for i, existing in enumerate(self._values):
            if existing.name == pv.name:
                self._values[i] = pv
                return self
        self._values.append(pv)
        return self

    def get(self, name: str) -> Optional[PropertyValue]:
        for pv in self._values:
            if pv.name == name:
                return pv
        return None

    def contains(self, name: str) -> bool:
        return self.get(name) is not None

    def remove(self, name: str) -> None:
        self._values = [pv for pv in self._values if pv.name != name]

    def names(self) -> List[str]:
        return [pv.name for pv in self._values]

    def copy(self) -> 'PropertyValues':
        """Shallow copy sharing the same PropertyValue objects."""
        clone = PropertyValues()
        clone._values = list(self._values)
        return clone

    def deep_copy(self) -> 'PropertyValues':
        """Copy with fresh PropertyValue objects (no conversion caches)."""
        clone = PropertyValues()
        clone._values = [PropertyValue(pv.name, pv.value) for pv in self._values]
        return clone

    def is_empty(self) -> bool:
        return not self._values

    def __iter__(self) -> Iterator[PropertyValue]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: str) -> bool:
        return self.contains(name)


@dataclass(eq=False)
class ComponentDefinition:
    """Component definition.

    Attributes:
        component_type: Class or dotted import path of the implementation
        scope: ``singleton``, ``prototype`` or the name of a registered custom scope
        autowire_mode: How unset injection points are filled
        dependency_check: Which unset properties fail population
        constructor_arguments: Declared constructor/factory-method arguments
        property_values: Declared property assignments
        factory_component_name: Component whose instance method creates this one
        factory_method_name: Static or instance factory method name
        init_method_name: Custom init method invoked after population
        destroy_method_name: Custom destroy method invoked on destruction
        enforce_init_method: Fail when the init method does not exist
        enforce_destroy_method: Fail when the destroy method does not exist
        synthetic: Excluded from post-processor phases
        primary: Preferred candidate when several match by type
        autowire_candidate: Whether this component may be autowired into others
        lazy_init: Skipped by ``preinstantiate_singletons()``
        depends_on: Components that must be created first
        non_public_access_allowed: Allow instantiating underscore-prefixed classes
        allow_caching: Cache filtered property slots for the type
    """
    component_type: Optional[ComponentType] = None
    scope: str = SCOPE_SINGLETON
    autowire_mode: AutowireMode = AutowireMode.NO
    dependency_check: DependencyCheck = DependencyCheck.NONE
    constructor_arguments: ConstructorArgumentValues = field(default_factory=ConstructorArgumentValues)
    property_values: PropertyValues = field(default_factory=PropertyValues)
    factory_component_name: Optional[str] = None
    factory_method_name: Optional[str] = None
    init_method_name: Optional[str] = None
    destroy_method_name: Optional[str] = None
    enforce_init_method: bool = True
    enforce_destroy_method: bool = True
    synthetic: bool = False
    primary: bool = False
    autowire_candidate: bool = True
    lazy_init: bool = False
    depends_on: List[str] = field(default_factory=list)
    non_public_access_allowed: bool = True
    allow_caching: bool = True

    # Runtime caches, populated on the merged definition only
    resolved_type: Optional[Type] = field(default=None, init=False, repr=False)
    resolved_constructor_or_factory_method: Optional[Callable] = field(default=None, init=False, repr=False)
    constructor_arguments_resolved: bool = field(default=False, init=False, repr=False)
    factory_method_return_type: Optional[Type] = field(default=None, init=False, repr=False)
    post_processed: bool = field(default=False, init=False, repr=False)
    before_instantiation_resolved: Optional[bool] = field(default=None, init=False, repr=False)
    externally_managed_init_methods: Set[str] = field(default_factory=set, init=False, repr=False)
    externally_managed_destroy_methods: Set[str] = field(default_factory=set, init=False, repr=False)
    constructor_argument_lock: Any = field(default_factory=threading.Lock, init=False, repr=False)
    post_processing_lock: Any = field(default_factory=threading.Lock, init=False, repr=False)
    track_dependencies: bool = field(default=True, init=False, repr=False)

    @property
    def is_singleton(self) -> bool:
        return self.scope == SCOPE_SINGLETON

    @property
    def is_prototype(self) -> bool:
        return self.scope == SCOPE_PROTOTYPE

    @property
    def is_factory_method_definition(self) -> bool:
        return self.factory_method_name is not None

    def has_constructor_arguments(self) -> bool:
        return not self.constructor_arguments.is_empty()

    def register_externally_managed_init_method(self, name: str) -> None:
        self.externally_managed_init_methods.add(name)

    def is_externally_managed_init_method(self, name: str) -> bool:
        return name in self.externally_managed_init_methods

    def register_externally_managed_destroy_method(self, name: str) -> None:
        self.externally_managed_destroy_methods.add(name)

    def is_externally_managed_destroy_method(self, name: str) -> bool:
        return name in self.externally_managed_destroy_methods

    def clone(self) -> 'ComponentDefinition':
        """Copy the declared metadata into a fresh definition.

        Runtime caches and locks are not copied. Argument and property
        holders are copied so that conversion caches on the clone never
        leak back into the registered definition.
        """
        declared = {f.name: getattr(self, f.name) for f in fields(self) if f.init}
        declared['constructor_arguments'] = self.constructor_arguments.copy()
        declared['property_values'] = self.property_values.deep_copy()
        declared['depends_on'] = list(self.depends_on)
        clone = replace(self, **declared)
        if self.resolved_type is not None:
            clone.resolved_type = self.resolved_type
        return clone

    def type_name(self) -> str:
        t = self.resolved_type or self.component_type
        if t is None:
            return "<unresolved>"
        return t if isinstance(t, str) else t.__name__
