"""
Introspection

Runtime type introspection used by the container:

- Callable signature analysis (constructor and factory-method parameters)
- Forward-reference and PEP 604 union resolution for annotations
- Candidate constructor and factory-method discovery
- Writable property slot discovery, cached per class
- Type loading from dotted import paths

Example::

    class Service:
        def __init__(self, repo: "Repository", retries: int = 3):
            ...

    [p.name for p in get_parameters(Service)]   # ['repo', 'retries']
    get_parameters(Service)[0].annotation       # <class 'Repository'>
"""

import ast
import collections.abc
import datetime
import decimal
import enum
import fractions
import importlib
import inspect
import pathlib
import threading
import types
import typing
import uuid
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Type, TypeVar, Union

from .exceptions import DefinitionError

T = TypeVar('T')

_CONSTRUCTOR_ATTR = '__component_constructor__'
_FACTORY_METHOD_ATTR = '__component_factory_method__'

SIMPLE_TYPES: Tuple[type, ...] = (
    str, bytes, bytearray, bool, int, float, complex,
    decimal.Decimal, fractions.Fraction, enum.Enum,
    datetime.datetime, datetime.date, datetime.time, datetime.timedelta,
    pathlib.PurePath, uuid.UUID, type,
)

_SEQUENCE_ORIGINS = (
    list, tuple, set, frozenset,
    collections.abc.Sequence, collections.abc.MutableSequence,
    collections.abc.Iterable, collections.abc.Collection,
    collections.abc.Set, collections.abc.MutableSet,
)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def constructor(func: Callable) -> Callable:
    """Mark a classmethod or staticmethod as an alternative constructor.

    Marked methods are considered together with ``__init__`` when the
    container autowires constructor arguments.

    Example::

        class Client:
            def __init__(self, host: str, port: int):
                ...

            @constructor
            @classmethod
            def from_settings(cls, settings: Settings) -> "Client":
                return cls(settings.host, settings.port)
    """
    target = func.__func__ if isinstance(func, (classmethod, staticmethod)) else func
    setattr(target, _CONSTRUCTOR_ATTR, True)
    return func


def factory_method(name: str) -> Callable[[T], T]:
    """Register a method as an overload of the factory method ``name``.

    Python has no method overloading, so overloads of a factory method are
    declared under distinct attribute names and tagged with the shared
    factory-method name.

    Example::

        class Pools:
            @staticmethod
            def create(size: int) -> Pool: ...

            @factory_method("create")
            @staticmethod
            def create_default() -> Pool: ...
    """

    def decorate(func: T) -> T:
        target = func.__func__ if isinstance(func, (classmethod, staticmethod)) else func
        setattr(target, _FACTORY_METHOD_ATTR, name)
        return func

    return decorate


class ParameterInfo:
    """One parameter of a constructor or factory method.

    Attributes:
        index: Position of the parameter (excluding self/cls)
        name: Parameter name
        annotation: Resolved annotation, or None when missing
        has_default: Whether the parameter declares a default value
        default: The default value, if any
        keyword_only: Whether the parameter can only be passed by keyword
    """

    __slots__ = ('index', 'name', 'annotation', 'has_default', 'default', 'keyword_only')

    def __init__(self, index: int, name: str, annotation: Any, has_default: bool,
                 default: Any, keyword_only: bool):
        self.index = index
        self.name = name
        self.annotation = annotation
        self.has_default = has_default
        self.default = default
        self.keyword_only = keyword_only

    def __repr__(self) -> str:
        return f"ParameterInfo({self.index}, {self.name!r}, {self.annotation!r})"


def get_parameters(target: Callable) -> List[ParameterInfo]:
    """Describe the parameters of a class constructor or a callable.

    ``target`` is what the container will actually call: a class, a bound
    classmethod, a static function or a bound instance method. Bound
    ``self``/``cls`` parameters and ``*args``/``**kwargs`` are omitted.

    Args:
        target: The callable to analyze

    Returns:
        Parameters in declaration order

    Raises:
        DefinitionError: When the signature cannot be inspected or a forward
            reference cannot be resolved
    """
    try:
        sig = inspect.signature(target)
    except (ValueError, TypeError) as e:
        raise DefinitionError(
            f"Cannot inspect signature of {_callable_name(target)}: {e}. "
            f"This may occur with built-in types or C extension classes."
        ) from e

    hint_source = _hint_source(target)
    resolved_hints = _resolve_type_hints(hint_source)

    params = []
    index = 0
    for param_name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = None
        if param.annotation is not inspect.Parameter.empty:
            annotation = resolved_hints.get(param_name, param.annotation)
            if isinstance(annotation, str):
                annotation = resolve_string_annotation(
                    _owner_of(target), param_name, annotation, _callable_name(target)
                )

        has_default = param.default is not inspect.Parameter.empty
        params.append(ParameterInfo(
            index=index,
            name=param_name,
            annotation=annotation,
            has_default=has_default,
            default=param.default if has_default else None,
            keyword_only=param.kind == inspect.Parameter.KEYWORD_ONLY,
        ))
        index += 1
    return params


def get_return_type(target: Callable) -> Optional[type]:
    """Return the declared return class of a factory method, if any."""
    func = getattr(target, '__func__', target)
    try:
        ret = _annotation_of(func, 'return', _owner_of(target), _callable_name(target))
    except DefinitionError:
        return None
    ret, _ = unwrap_optional(ret)
    return ret if isinstance(ret, type) else None


def _hint_source(target: Callable) -> Any:
    if inspect.isclass(target):
        return target.__init__
    return getattr(target, '__func__', target)


def _owner_of(target: Any) -> Any:
    if inspect.isclass(target):
        return target
    bound = getattr(target, '__self__', None)
    if bound is not None:
        return bound if inspect.isclass(bound) else type(bound)
    return target


def _callable_name(target: Any) -> str:
    if inspect.isclass(target):
        return f"{target.__name__}.__init__"
    return getattr(target, '__qualname__', repr(target))


def _resolve_type_hints(obj: Any) -> Dict[str, Any]:
    """Resolve type hints with typing.get_type_hints().

    Returns an empty dict when resolution fails, so that callers fall back
    to manual string-annotation resolution.
    """
    try:
        return typing.get_type_hints(obj)
    except (NameError, RecursionError, TypeError, AttributeError, SyntaxError):
        return {}


def resolve_string_annotation(owner: Any, name: str, annotation: str, where: str) -> Any:
    """Resolve a string annotation against the owner's module namespace.

    This is the fallback when typing.get_type_hints() fails, for example for
    PEP 604 unions of types that do not support the ``|`` operator.

    Args:
        owner: Class or function whose module namespace is searched
        name: Parameter or attribute name (for error messages)
        annotation: The annotation string
        where: Human-readable location (for error messages)

    Returns:
        The resolved type

    Raises:
        DefinitionError: When the annotation cannot be resolved
    """
    module = inspect.getmodule(owner)
    namespace: Dict[str, Any] = {}
    if module is not None and hasattr(module, '__dict__'):
        namespace.update(module.__dict__)
    if inspect.isclass(owner):
        namespace.update(owner.__dict__)
        namespace.setdefault(owner.__name__, owner)
    namespace.setdefault('Union', Union)
    namespace.setdefault('Optional', Optional)

    converted = convert_union_syntax(annotation)
    try:
        return eval(converted, namespace)
    except NameError as e:
        raise DefinitionError(
            f"Cannot resolve forward reference '{annotation}' for '{name}' in {where}. "
            f"The type '{annotation}' was not found in the module's namespace. "
            f"Hint: Ensure '{annotation}' is defined and imported before "
            f"the component is created."
        ) from e
    except SyntaxError as e:
        raise DefinitionError(
            f"Invalid forward reference '{annotation}' for '{name}' in {where}: {e}."
        ) from e
    except Exception as e:
        raise DefinitionError(
            f"Failed to resolve forward reference '{annotation}' for '{name}' in {where}: {e}."
        ) from e


def convert_union_syntax(annotation: str) -> str:
    """Convert PEP 604 union syntax (X | Y) to Union[X, Y].

    Example::

        >>> convert_union_syntax('Repository | None')
        'Union[Repository, None]'
    """
    if '|' not in annotation:
        return annotation

    try:
        tree = ast.parse(annotation, mode='eval')
    except SyntaxError:
        return annotation

    class UnionTransformer(ast.NodeTransformer):
        """Transform BinOp(|) nodes to Subscript(Union[...]) nodes."""

        def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
            if isinstance(node.op, ast.BitOr):
                # X | Y | Z becomes Union[X, Y, Z], not Union[Union[X, Y], Z]
                members = [self.visit(t) for t in _collect_union_members(node)]
                return ast.Subscript(
                    value=ast.Name(id='Union', ctx=ast.Load()),
                    slice=ast.Tuple(elts=members, ctx=ast.Load()),
                    ctx=ast.Load()
                )
            self.generic_visit(node)
            return node

    new_tree = UnionTransformer().visit(tree)
    ast.fix_missing_locations(new_tree)
    return ast.unparse(new_tree.body)


def _collect_union_members(node: ast.BinOp) -> List[ast.AST]:
    members: List[ast.AST] = []

    def collect(n: ast.AST) -> None:
        if isinstance(n, ast.BinOp) and isinstance(n.op, ast.BitOr):
            collect(n.left)
            collect(n.right)
        else:
            members.append(n)

    collect(node)
    return members


# Type analysis

def unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    """Split ``Optional[X]`` into ``(X, True)``; other annotations pass through.

    Unions with several non-None members are returned unchanged (with the
    optional flag set when None is one of them).
    """
    if is_union(annotation):
        args = typing.get_args(annotation)
        non_none = [a for a in args if a is not type(None)]
        optional = len(non_none) != len(args)
        if len(non_none) == 1:
            return non_none[0], optional
        if optional:
            return Union[tuple(non_none)], True
    return annotation, False


def is_union(annotation: Any) -> bool:
    if typing.get_origin(annotation) is Union:
        return True
    union_type = getattr(types, 'UnionType', None)
    return union_type is not None and isinstance(annotation, union_type)


def collection_info(annotation: Any) -> Optional[Tuple[type, Any]]:
    """Describe a collection-typed injection point.

    Returns:
        ``(container_kind, element_type)`` where container_kind is ``list``,
        ``tuple``, ``set``, ``frozenset`` or ``dict``, or None when the
        annotation is not a supported collection type
    """
    origin = typing.get_origin(annotation)
    if origin is None:
        return None
    args = typing.get_args(annotation)
    if origin in _MAPPING_ORIGINS:
        if len(args) == 2 and args[0] is str:
            return dict, args[1]
        return None
    if origin in _SEQUENCE_ORIGINS:
        if not args:
            return None
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple, args[0]
            return None
        if origin in (set, collections.abc.Set, collections.abc.MutableSet):
            return set, args[0]
        if origin is frozenset:
            return frozenset, args[0]
        return list, args[0]
    return None


def is_simple_type(annotation: Any) -> bool:
    """Whether a type is "simple" (never autowired by name or type).

    Simple types are scalar value types and collections or optionals of them.
    """
    if annotation is None:
        return False
    inner, _ = unwrap_optional(annotation)
    if is_union(inner):
        return all(is_simple_type(a) for a in typing.get_args(inner) if a is not type(None))
    origin = typing.get_origin(inner)
    if origin is type:
        return True
    info = collection_info(inner)
    if info is not None:
        return is_simple_type(info[1])
    if origin is not None:
        return False
    if not inspect.isclass(inner):
        return False
    try:
        return issubclass(inner, SIMPLE_TYPES)
    except TypeError:
        return False


def is_assignable(target: Any, candidate_type: Any) -> bool:
    """Whether instances of ``candidate_type`` may be injected into ``target``.

    Unknown targets (None or Any) accept everything.
    """
    if target is None or target is Any or target is object:
        return True
    if candidate_type is None:
        return False
    if is_union(target):
        return any(is_assignable(a, candidate_type) for a in typing.get_args(target))
    origin = typing.get_origin(target)
    if origin is not None:
        target = origin
    if not inspect.isclass(target) or not inspect.isclass(candidate_type):
        return False
    try:
        return issubclass(candidate_type, target)
    except TypeError:
        return False


def is_instance_of(value: Any, target: Any) -> bool:
    """isinstance() that tolerates typing constructs."""
    if target is None or target is Any or target is object:
        return True
    if is_union(target):
        return any(is_instance_of(value, a) for a in typing.get_args(target))
    if target is type(None):
        return value is None
    origin = typing.get_origin(target)
    if origin is not None:
        target = origin
    if not inspect.isclass(target):
        return False
    try:
        return isinstance(value, target)
    except TypeError:
        return False


def type_distance(value: Any, target: Any) -> int:
    """Number of inheritance steps from the value's class to ``target``.

    Used as the type-difference weight when several constructors or factory
    methods match: a lower total weight means a more specific match.
    """
    if target is None or target is Any or not inspect.isclass(target):
        return UNTYPED_WEIGHT
    mro = type(value).__mro__
    try:
        return mro.index(target)
    except ValueError:
        # Abstract base classes and protocols are not part of the MRO
        return len(mro)


UNTYPED_WEIGHT = 1024


# Candidate discovery

def is_non_public(cls: type) -> bool:
    return cls.__name__.startswith('_')


def constructor_candidates(cls: type) -> List[Callable]:
    """Return the class itself plus its ``@constructor`` methods."""
    candidates: List[Callable] = [cls]
    for attr_name, raw in _iter_class_attributes(cls):
        func = raw.__func__ if isinstance(raw, (classmethod, staticmethod)) else None
        if func is not None and getattr(func, _CONSTRUCTOR_ATTR, False):
            candidates.append(getattr(cls, attr_name))
    return candidates


def factory_method_candidates(owner: Any, method_name: str, static_only: bool) -> List[Callable]:
    """Return the callables that may act as the factory method ``method_name``.

    Args:
        owner: The component class (static factories) or the factory
            component instance (instance factories)
        method_name: The declared factory method name
        static_only: True for static factories on the component's own class

    Returns:
        Bound callables, the named attribute first, then tagged overloads
    """
    cls = owner if inspect.isclass(owner) else type(owner)
    candidates: List[Callable] = []
    for attr_name, raw in _iter_class_attributes(cls):
        is_static = isinstance(raw, (classmethod, staticmethod))
        func = raw.__func__ if is_static else raw
        if not callable(func) or inspect.isclass(func):
            continue
        if attr_name != method_name and getattr(func, _FACTORY_METHOD_ATTR, None) != method_name:
            continue
        if static_only and not is_static:
            continue
        if not static_only and is_static:
            continue
        bound = getattr(owner, attr_name)
        if attr_name == method_name:
            candidates.insert(0, bound)
        else:
            candidates.append(bound)
    return candidates


def underlying_function(target: Callable) -> Any:
    """Identity of a candidate independent of the object it is bound to."""
    return getattr(target, '__func__', target)


def _iter_class_attributes(cls: type):
    seen = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        for attr_name, raw in vars(klass).items():
            if attr_name in seen:
                continue
            seen.add(attr_name)
            yield attr_name, raw


# Property slots

class PropertySlot:
    """A writable named slot of a class.

    Attributes:
        name: Attribute name
        declared_type: Declared (annotated) type, or None
        declaring_class: Class in the MRO that declares the slot
        is_property: True for ``property`` setters, False for annotated attributes
        has_default: True for annotated attributes with a class-level default
    """

    __slots__ = ('name', 'declared_type', 'declaring_class', 'is_property', 'has_default')

    def __init__(self, name: str, declared_type: Any, declaring_class: type, is_property: bool,
                 has_default: bool = False):
        self.name = name
        self.declared_type = declared_type
        self.declaring_class = declaring_class
        self.is_property = is_property
        self.has_default = has_default

    def write(self, instance: Any, value: Any) -> None:
        setattr(instance, self.name, value)

    def read(self, instance: Any) -> Any:
        return getattr(instance, self.name, None)

    def __repr__(self) -> str:
        return f"PropertySlot({self.name!r}, {self.declared_type!r})"


class PropertyIntrospector:
    """Discovers and caches the writable property slots of classes.

    Slots are properties with a setter plus public, annotated, non-ClassVar
    class attributes, collected across the MRO. Results are cached per
    class with double-checked locking.
    """

    def __init__(self):
        self._cache: Dict[type, Dict[str, PropertySlot]] = {}
        self._lock = threading.Lock()

    def get_slots(self, cls: type) -> Dict[str, PropertySlot]:
        slots = self._cache.get(cls)
        if slots is None:
            with self._lock:
                slots = self._cache.get(cls)
                if slots is None:
                    slots = self._discover(cls)
                    self._cache[cls] = slots
        return slots

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def _discover(self, cls: type) -> Dict[str, PropertySlot]:
        slots: Dict[str, PropertySlot] = {}
        class_hints = _resolve_type_hints(cls)

        # Walk from the most derived class so that overrides win
        for klass in cls.__mro__:
            if klass is object:
                continue
            for attr_name, raw in vars(klass).items():
                if attr_name in slots or attr_name.startswith('_'):
                    continue
                if isinstance(raw, property):
                    if raw.fset is None:
                        continue
                    slots[attr_name] = PropertySlot(
                        attr_name, _property_type(raw, klass, attr_name), klass, True
                    )
            for attr_name, annotation in vars(klass).get('__annotations__', {}).items():
                if attr_name in slots or attr_name.startswith('_'):
                    continue
                if isinstance(vars(klass).get(attr_name), property):
                    continue
                resolved = class_hints.get(attr_name, annotation)
                if isinstance(resolved, str):
                    resolved = resolve_string_annotation(
                        klass, attr_name, resolved, f"{klass.__name__}.{attr_name}"
                    )
                if resolved is ClassVar or typing.get_origin(resolved) is ClassVar:
                    continue
                has_default = any(attr_name in vars(k) for k in cls.__mro__)
                slots[attr_name] = PropertySlot(attr_name, resolved, klass, False, has_default)
        return slots


def _property_type(prop: property, owner: type, name: str) -> Any:
    # Setter parameter annotation first, getter return annotation second
    if prop.fset is not None:
        params = list(inspect.signature(prop.fset).parameters)
        if len(params) >= 2:
            hint = _annotation_of(prop.fset, params[1], owner, name)
            if hint is not None:
                return hint
    if prop.fget is not None:
        return _annotation_of(prop.fget, 'return', owner, name)
    return None


def _annotation_of(func: Callable, key: str, owner: Any, name: str) -> Any:
    hint = _resolve_type_hints(func).get(key)
    if hint is None:
        hint = getattr(func, '__annotations__', {}).get(key)
        if isinstance(hint, str):
            where = f"{owner.__name__}.{name}" if inspect.isclass(owner) else name
            hint = resolve_string_annotation(owner, name, hint, where)
    return hint


class TypeLoader:
    """Loads component classes from dotted import paths.

    Both ``"package.module.ClassName"`` and ``"package.module:ClassName"``
    are accepted; nested classes are reached through further dots.
    """

    def load(self, path: str) -> type:
        """Import and return the class named by ``path``.

        Raises:
            ImportError: When no importable module prefix exists
            AttributeError: When the attribute chain cannot be followed
        """
        if ':' in path:
            module_name, _, qualname = path.partition(':')
            obj: Any = importlib.import_module(module_name)
            for part in qualname.split('.'):
                obj = getattr(obj, part)
            return obj

        parts = path.split('.')
        for split in range(len(parts) - 1, 0, -1):
            module_name = '.'.join(parts[:split])
            try:
                obj = importlib.import_module(module_name)
            except ModuleNotFoundError:
                continue
            for part in parts[split:]:
                obj = getattr(obj, part)
            return obj
        raise ImportError(f"No module found for '{path}'")
