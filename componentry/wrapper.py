"""
InstanceWrapper

A transient construction aid pairing one raw instance with the writable
property slots of its class. The container creates a wrapper for every
construction attempt and discards it once the instance is initialized.
"""

from typing import Any, Dict, List, Optional

from .conversion import TypeConverter
from .introspection import PropertyIntrospector, PropertySlot

__all__ = ['InstanceWrapper', 'PropertySlot']


class InstanceWrapper:
    """Wraps exactly one instance and writes its properties by name.

    Attributes:
        wrapped_instance: The raw instance
        wrapped_class: The runtime class of the instance

    Example::

        wrapper = InstanceWrapper(pool, introspector, converter)
        wrapper.set_property_value("size", "16")   # converted to int
    """

    def __init__(self, instance: Any, introspector: PropertyIntrospector,
                 converter: TypeConverter):
        self.wrapped_instance = instance
        self.wrapped_class = type(instance)
        self._introspector = introspector
        self._converter = converter

    @property
    def slots(self) -> Dict[str, PropertySlot]:
        return self._introspector.get_slots(self.wrapped_class)

    def property_slots(self) -> List[PropertySlot]:
        return list(self.slots.values())

    def get_slot(self, name: str) -> Optional[PropertySlot]:
        return self.slots.get(name)

    def is_writable(self, name: str) -> bool:
        return name in self.slots

    def get_property_type(self, name: str) -> Any:
        slot = self.slots.get(name)
        return slot.declared_type if slot is not None else None

    def get_property_value(self, name: str) -> Any:
        return getattr(self.wrapped_instance, name, None)

    def convert_for_property(self, value: Any, name: str) -> Any:
        """Convert a value to the declared type of the named property."""
        return self._converter.convert(value, self.get_property_type(name), name)

    def set_property_value(self, name: str, value: Any, convert: bool = True) -> None:
        """Write a property, converting the value to the declared type first.

        Raises:
            AttributeError: When the class has no writable slot of that name
            TypeConversionError: When conversion fails
        """
        slot = self.slots.get(name)
        if slot is None:
            raise AttributeError(
                f"Property '{name}' of {self.wrapped_class.__name__} is not writable. "
                f"Hint: declare it as an annotated class attribute or a property with a setter."
            )
        if convert:
            value = self._converter.convert(value, slot.declared_type, name)
        slot.write(self.wrapped_instance, value)

    def __repr__(self) -> str:
        return f"InstanceWrapper({self.wrapped_class.__name__})"
