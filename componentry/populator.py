"""
PropertyPopulator

Fills the writable properties of a freshly constructed instance:

1. Post-instantiation gate (any InstantiationPostProcessor may veto population)
2. Autowiring by name or by type of unset, non-simple properties
3. Properties post-processors (rewrite or reject the value set), then the
   dependency check
4. Resolution, conversion and assignment of every value, caching the
   immutable converted values on the definition for later prototype
   instances
"""

import datetime
import logging
import threading
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from pathlib import PurePath
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from uuid import UUID

from .definition import AutowireMode, ComponentDefinition, DependencyCheck, PropertyValues
from .dependency import DependencyDescriptor
from .exceptions import ComponentCreationError, UnsatisfiedDependencyError
from .introspection import PropertySlot, is_simple_type
from .ordering import PriorityOrdered
from .post_processors import InstantiationPostProcessor, PropertiesPostProcessor
from .value_resolver import ValueResolver, is_runtime_reference
from .wrapper import InstanceWrapper

if TYPE_CHECKING:
    from .container import ComponentContainer

logger = logging.getLogger(__name__)


class PropertyPopulator:
    """Populates instances on behalf of a container."""

    def __init__(self, container: 'ComponentContainer'):
        self._container = container
        self._filtered_slots: Dict[type, List[PropertySlot]] = {}
        self._filtered_lock = threading.Lock()

    def populate(self, name: str, definition: ComponentDefinition,
                 wrapper: Optional[InstanceWrapper]) -> None:
        """Populate the wrapped instance from the definition's property values.

        Raises:
            UnsatisfiedDependencyError: A required property cannot be resolved,
                or the dependency check fails
            ComponentCreationError: Resolving or applying a value fails
        """
        if wrapper is None:
            if not definition.property_values.is_empty():
                raise ComponentCreationError(
                    name, "Cannot apply property values to None instance", phase="population"
                )
            return

        pipeline = self._container.pipeline
        instance = wrapper.wrapped_instance

        if not definition.synthetic and pipeline.has(InstantiationPostProcessor):
            if not pipeline.apply_after_instantiation(instance, name):
                logger.debug(f"Population of component '{name}' skipped by post-processor")
                return

        pvs = definition.property_values
        mode = definition.autowire_mode
        if mode in (AutowireMode.BY_NAME, AutowireMode.BY_TYPE):
            pvs = pvs.copy()
            if mode is AutowireMode.BY_NAME:
                self.autowire_by_name(name, definition, wrapper, pvs)
            else:
                self.autowire_by_type(name, definition, wrapper, pvs)

        if pipeline.has(PropertiesPostProcessor):
            rewritten = pipeline.apply_properties(pvs, instance, name)
            if rewritten is None:
                return
            pvs = rewritten

        if definition.dependency_check is not DependencyCheck.NONE:
            slots = self.filtered_slots(wrapper, definition)
            self.check_dependencies(name, definition, slots, pvs)

        if not pvs.is_empty():
            self.apply_property_values(name, definition, wrapper, pvs)

    def autowire_by_name(self, name: str, definition: ComponentDefinition,
                         wrapper: InstanceWrapper, pvs: PropertyValues) -> None:
        for prop in self.unsatisfied_non_simple_properties(wrapper, pvs):
            if self._container.contains(prop):
                value = self._container.get(prop)
                pvs.add(prop, value)
                if definition.track_dependencies:
                    self._container.register_dependent(prop, name)
                logger.debug(
                    f"Added autowiring by name from component name '{name}' "
                    f"via property '{prop}' to component named '{prop}'"
                )
            else:
                logger.debug(
                    f"Not autowiring property '{prop}' of component '{name}' "
                    f"by name: no matching component found"
                )

    def autowire_by_type(self, name: str, definition: ComponentDefinition,
                         wrapper: InstanceWrapper, pvs: PropertyValues) -> None:
        # Do not eagerly instantiate candidates for priority-ordered consumers
        eager = not isinstance(wrapper.wrapped_instance, PriorityOrdered)
        resolver = self._container.dependency_resolver

        for prop in self.unsatisfied_non_simple_properties(wrapper, pvs):
            slot = wrapper.get_slot(prop)
            if slot.declared_type in (None, object, Any):
                continue
            descriptor = DependencyDescriptor(slot.declared_type, prop, kind="property", eager=eager)
            autowired: List[str] = []
            try:
                value = resolver.resolve(descriptor, name, autowired, self._container.type_converter)
            except UnsatisfiedDependencyError as e:
                if e.component_name == name:
                    e.phase = e.phase or "population"
                    raise
                raise UnsatisfiedDependencyError(
                    name, prop, f"Error creating component '{e.component_name}'",
                    cause=e, phase="population"
                ) from e
            except ComponentCreationError as e:
                raise UnsatisfiedDependencyError(
                    name, prop, f"Error creating component '{e.component_name}'",
                    cause=e, phase="population"
                ) from e

            if value is not None:
                pvs.add(prop, value)
            if definition.track_dependencies:
                for autowired_name in autowired:
                    self._container.register_dependent(autowired_name, name)
                    logger.debug(
                        f"Autowiring by type from component name '{name}' via property "
                        f"'{prop}' to component named '{autowired_name}'"
                    )

    def unsatisfied_non_simple_properties(self, wrapper: InstanceWrapper,
                                          pvs: PropertyValues) -> List[str]:
        """Writable, non-excluded, non-simple properties without a declared value."""
        result = []
        for slot in wrapper.property_slots():
            if pvs.contains(slot.name):
                continue
            if self._container.is_excluded_from_dependency_check(slot, wrapper.wrapped_class):
                continue
            if is_simple_type(slot.declared_type):
                continue
            result.append(slot.name)
        return result

    def filtered_slots(self, wrapper: InstanceWrapper,
                       definition: ComponentDefinition) -> List[PropertySlot]:
        """Writable slots not excluded from dependency checks, cached per class."""
        cls = wrapper.wrapped_class
        if not definition.allow_caching:
            return self._filter(wrapper)
        slots = self._filtered_slots.get(cls)
        if slots is None:
            with self._filtered_lock:
                slots = self._filtered_slots.get(cls)
                if slots is None:
                    slots = self._filter(wrapper)
                    self._filtered_slots[cls] = slots
        return slots

    def _filter(self, wrapper: InstanceWrapper) -> List[PropertySlot]:
        return [
            slot for slot in wrapper.property_slots()
            if not self._container.is_excluded_from_dependency_check(slot, wrapper.wrapped_class)
        ]

    def clear_cache(self) -> None:
        with self._filtered_lock:
            self._filtered_slots.clear()

    def check_dependencies(self, name: str, definition: ComponentDefinition,
                           slots: List[PropertySlot], pvs: PropertyValues) -> None:
        """Fail if a checked property has neither a value nor a class-level default."""
        mode = definition.dependency_check
        for slot in slots:
            if pvs.contains(slot.name) or slot.has_default:
                continue
            simple = is_simple_type(slot.declared_type)
            unsatisfied = (
                mode is DependencyCheck.ALL
                or (simple and mode is DependencyCheck.SIMPLE)
                or (not simple and mode is DependencyCheck.OBJECTS)
            )
            if unsatisfied:
                raise UnsatisfiedDependencyError(
                    name, slot.name,
                    "Set this property value or disable dependency checking for this component",
                    phase="population",
                )

    def apply_property_values(self, name: str, definition: ComponentDefinition,
                              wrapper: InstanceWrapper, pvs: PropertyValues) -> None:
        """Resolve, convert and assign every value.

        Converted immutable literals are cached on their PropertyValue, and a
        value set made only of such literals is marked converted, so later
        instances of the same definition skip resolution and conversion.
        Mutable values are resolved again for every instance.
        """
        if pvs.converted:
            try:
                for pv in pvs:
                    wrapper.set_property_value(pv.name, pv.converted_value, convert=False)
            except Exception as e:
                raise ComponentCreationError(
                    name, "Error setting property values", phase="population", cause=e
                ) from e
            return

        value_resolver = ValueResolver(self._container, name, definition)
        resolve_necessary = False
        resolved_values = []

        for pv in pvs:
            if pv.converted:
                resolved_values.append((pv.name, pv.converted_value))
                continue
            try:
                resolved = value_resolver.resolve(pv.name, pv.value)
                converted = resolved
                writable = wrapper.is_writable(pv.name)
                if writable:
                    converted = wrapper.convert_for_property(resolved, pv.name)
            except ComponentCreationError as e:
                if e.component_name == name:
                    raise
                raise ComponentCreationError(
                    name, f"Error resolving property '{pv.name}'", phase="population", cause=e
                ) from e
            except Exception as e:
                raise ComponentCreationError(
                    name, f"Error converting property '{pv.name}'", phase="population", cause=e
                ) from e

            if writable and not is_runtime_reference(pv.value) and _is_immutable(converted):
                pv.set_converted_value(converted)
            else:
                resolve_necessary = True
            resolved_values.append((pv.name, converted))

        if not resolve_necessary and pvs is definition.property_values:
            pvs.converted = True

        for prop, value in resolved_values:
            try:
                wrapper.set_property_value(prop, value, convert=False)
            except Exception as e:
                raise ComponentCreationError(
                    name, f"Error setting property value '{prop}'", phase="population", cause=e
                ) from e


_IMMUTABLE_TYPES = (
    str, bytes, int, float, complex, Decimal, Fraction, Enum,
    datetime.date, datetime.time, datetime.timedelta, PurePath, UUID, type,
)


def _is_immutable(value: Any) -> bool:
    """Whether a converted value can be shared between instances."""
    if value is None or isinstance(value, _IMMUTABLE_TYPES):
        return True
    if isinstance(value, (tuple, frozenset)):
        return all(_is_immutable(v) for v in value)
    return False
