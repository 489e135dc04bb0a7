"""
TypeConverter

Converts declared raw values to the declared type of the property or
parameter they are injected into.

Built-in conversions cover string literals to scalar types (numbers,
booleans, decimals, enums, paths, UUIDs, ISO dates), numeric widening,
and element-wise conversion of collections. Subclasses add conversions by
overriding ``convert_custom``, or converters can be registered per target
type with ``register``.

Example::

    converter = TypeConverter()
    converter.convert("42", int)              # 42
    converter.convert("a, b", List[str])      # ['a', 'b']
    converter.convert("INFO", LogLevel)       # LogLevel.INFO
"""

import collections.abc
import datetime
import decimal
import enum
import fractions
import inspect
import pathlib
import typing
import uuid
from typing import Any, Callable, Dict, Optional

from .exceptions import TypeConversionError
from .introspection import collection_info, is_instance_of, unwrap_optional, is_union

_TRUE_STRINGS = {'true', 'yes', 'on', '1', 'y'}
_FALSE_STRINGS = {'false', 'no', 'off', '0', 'n', ''}


class TypeConverter:
    """Value conversion service used during property population and
    constructor argument resolution.
    """

    def __init__(self):
        self._converters: Dict[type, Callable[[Any], Any]] = {}

    def register(self, target_type: type, converter: Callable[[Any], Any]) -> None:
        """Register a conversion function for a target type.

        The function receives the raw value and returns the converted one;
        it is consulted before the built-in conversions.
        """
        self._converters[target_type] = converter

    def convert(self, value: Any, target_type: Any, context: Optional[str] = None) -> Any:
        """Convert ``value`` to ``target_type``.

        Args:
            value: Raw value
            target_type: Declared target type (may be a typing construct or None)
            context: Property or parameter name, used in error messages

        Returns:
            The converted value (``value`` itself when no conversion is needed)

        Raises:
            TypeConversionError: When the value cannot be converted
        """
        if target_type is None or target_type is Any or target_type is object:
            return value

        inner, _ = unwrap_optional(target_type)
        if value is None:
            return None

        if is_union(inner):
            if is_instance_of(value, inner):
                return value
            for member in typing.get_args(inner):
                try:
                    return self.convert(value, member, context)
                except TypeConversionError:
                    continue
            raise self._failure(value, target_type, context)

        info = collection_info(inner)
        if info is not None:
            return self._convert_collection(value, info[0], info[1], target_type, context)

        origin = typing.get_origin(inner)
        if origin is not None:
            if is_instance_of(value, origin):
                return value
            raise self._failure(value, target_type, context)

        if not inspect.isclass(inner):
            return value

        custom = self._converters.get(inner)
        if custom is not None:
            try:
                return custom(value)
            except TypeConversionError:
                raise
            except Exception as e:
                raise self._failure(value, target_type, context, e) from e

        result = self.convert_custom(value, inner)
        if result is not NotImplemented:
            return result

        if isinstance(value, inner) and not (inner is int and isinstance(value, bool)):
            return value

        try:
            converted = self._convert_scalar(value, inner)
        except TypeConversionError:
            raise
        except (ValueError, TypeError, ArithmeticError, KeyError) as e:
            raise self._failure(value, target_type, context, e) from e
        if converted is NotImplemented:
            raise self._failure(value, target_type, context)
        return converted

    def convert_custom(self, value: Any, target_type: type) -> Any:
        """Hook for subclasses; return NotImplemented to use the built-in rules."""
        return NotImplemented

    def _convert_scalar(self, value: Any, target: type) -> Any:
        if target is bool:
            if isinstance(value, str):
                text = value.strip().lower()
                if text in _TRUE_STRINGS:
                    return True
                if text in _FALSE_STRINGS:
                    return False
                raise ValueError(f"'{value}' is not a boolean literal")
            if isinstance(value, (int, float)):
                return bool(value)
            return NotImplemented

        if target is int:
            if isinstance(value, str):
                text = value.strip()
                base = 0 if text.lower().startswith(('0x', '0o', '0b')) else 10
                return int(text, base)
            if isinstance(value, float):
                if not value.is_integer():
                    raise ValueError(f"{value} has a fractional part")
                return int(value)
            if isinstance(value, (decimal.Decimal, fractions.Fraction)):
                if value != int(value):
                    raise ValueError(f"{value} has a fractional part")
                return int(value)
            return NotImplemented

        if target in (float, complex, decimal.Decimal, fractions.Fraction):
            if isinstance(value, str):
                return target(value.strip())
            if isinstance(value, (int, float, decimal.Decimal, fractions.Fraction)) \
                    and not isinstance(value, bool):
                return target(value)
            return NotImplemented

        if target is str:
            if isinstance(value, (bytes, bytearray)):
                return value.decode()
            if isinstance(value, (int, float, complex, decimal.Decimal, fractions.Fraction,
                                  pathlib.PurePath, uuid.UUID)):
                return str(value)
            if isinstance(value, enum.Enum):
                return value.name
            return NotImplemented

        if target in (bytes, bytearray):
            if isinstance(value, str):
                return target(value.encode())
            return NotImplemented

        if issubclass(target, enum.Enum):
            if isinstance(value, str):
                try:
                    return target[value.strip()]
                except KeyError:
                    return target(value)
            return target(value)

        if issubclass(target, pathlib.PurePath):
            if isinstance(value, (str, pathlib.PurePath)):
                return target(value)
            return NotImplemented

        if target is uuid.UUID:
            if isinstance(value, str):
                return uuid.UUID(value.strip())
            return NotImplemented

        if target in (datetime.datetime, datetime.date, datetime.time):
            if isinstance(value, str):
                return target.fromisoformat(value.strip())
            return NotImplemented

        if target is datetime.timedelta:
            if isinstance(value, str):
                return datetime.timedelta(seconds=float(value.strip()))
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return datetime.timedelta(seconds=value)
            return NotImplemented

        return NotImplemented

    def _convert_collection(self, value: Any, kind: type, element_type: Any,
                            target_type: Any, context: Optional[str]) -> Any:
        if kind is dict:
            if not isinstance(value, collections.abc.Mapping):
                raise self._failure(value, target_type, context)
            return {
                str(k): self.convert(v, element_type, context)
                for k, v in value.items()
            }

        if isinstance(value, str):
            items = [part.strip() for part in value.split(',') if part.strip()]
        elif isinstance(value, (list, tuple, set, frozenset)) or (
                isinstance(value, collections.abc.Iterable) and not isinstance(value, (bytes, collections.abc.Mapping))):
            items = list(value)
        else:
            items = [value]

        converted = [self.convert(item, element_type, context) for item in items]
        return kind(converted)

    @staticmethod
    def _failure(value: Any, target_type: Any, context: Optional[str],
                 cause: Optional[BaseException] = None) -> TypeConversionError:
        target_name = getattr(target_type, '__name__', None) or str(target_type)
        where = f" for '{context}'" if context else ""
        message = (
            f"Cannot convert value of type {type(value).__name__} "
            f"to required type {target_name}{where}"
        )
        if cause is not None:
            message += f": {cause}"
        return TypeConversionError(message, value=value, target_type=target_type)
