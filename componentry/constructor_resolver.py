"""
ConstructorResolver

Selects and invokes the construction strategy of a component:

1. Factory method: a static/class method of the component class, or an
   instance method of another component (``factory_component_name``)
2. Cached decision: the constructor or factory method chosen for an
   earlier instance of the same definition
3. Constructor autowiring: when a post-processor supplies candidate
   constructors, the definition asks for it, or arguments are given
4. Default construction: calling the class without arguments

Candidates are tried most-parameters-first. The first parameter count for
which a candidate can be satisfied wins; among candidates with that count
the one with the lowest type-difference weight wins, and a tie is an
ambiguity error.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from .definition import AutowireMode, ComponentDefinition
from .dependency import DependencyDescriptor
from .exceptions import (
    AmbiguousResolutionError,
    ComponentCreationError,
    DefinitionError,
    TypeConversionError,
    UnsatisfiedDependencyError,
)
from .introspection import (
    ParameterInfo,
    constructor_candidates,
    factory_method_candidates,
    get_parameters,
    is_instance_of,
    is_non_public,
    type_distance,
    underlying_function,
    unwrap_optional,
)
from .value_resolver import ValueResolver
from .wrapper import InstanceWrapper

if TYPE_CHECKING:
    from .container import ComponentContainer

logger = logging.getLogger(__name__)


class ArgumentsHolder:
    """Arguments prepared for one candidate.

    Parameters that keep their default value are left out; every parameter
    after the first omitted one is passed by keyword.
    """

    def __init__(self):
        self.args: List[Any] = []
        self.kwargs: Dict[str, Any] = {}
        self.autowired_names: List[str] = []
        self._matched: List[Tuple[ParameterInfo, Any]] = []
        self._by_keyword = False

    def add(self, param: ParameterInfo, value: Any) -> None:
        if param.keyword_only or self._by_keyword:
            self.kwargs[param.name] = value
        else:
            self.args.append(value)
        self._matched.append((param, value))

    def use_default(self, param: ParameterInfo) -> None:
        self._by_keyword = True

    @property
    def count(self) -> int:
        return len(self._matched)

    def type_difference_weight(self) -> int:
        return sum(
            type_distance(value, unwrap_optional(param.annotation)[0])
            for param, value in self._matched
        )


class ConstructorResolver:
    """Creates raw instances for a container."""

    def __init__(self, container: 'ComponentContainer'):
        self._container = container

    def create_instance(self, name: str, definition: ComponentDefinition,
                        explicit_args: Optional[Sequence[Any]] = None) -> InstanceWrapper:
        """Instantiate the component and wrap the raw instance.

        Args:
            name: Component name
            definition: Merged definition with a resolved type
            explicit_args: Arguments passed to ``get(name, *args)``; they
                bypass the cached constructor decision

        Raises:
            ComponentCreationError: Non-public class, no matching constructor
                or factory method, or the invocation raised
            AmbiguousResolutionError: Several equally specific candidates
            DefinitionError: Invalid factory configuration
        """
        cls = definition.resolved_type
        if cls is not None and is_non_public(cls) and not definition.non_public_access_allowed:
            raise ComponentCreationError(
                name,
                f"Component class isn't public, and non-public access not allowed: {cls.__qualname__}",
                phase="instantiation",
            )

        if definition.factory_method_name:
            return self.instantiate_using_factory_method(name, definition, explicit_args)

        resolved = False
        if not explicit_args:
            with definition.constructor_argument_lock:
                resolved = definition.resolved_constructor_or_factory_method is not None
        if resolved:
            return self.autowire_constructor(name, definition, None, None)

        chosen = self._container.pipeline.determine_candidate_constructors(cls, name)
        if (chosen or definition.autowire_mode is AutowireMode.CONSTRUCTOR
                or definition.has_constructor_arguments() or explicit_args):
            return self.autowire_constructor(name, definition, chosen, explicit_args)

        return self.instantiate(name, definition)

    def instantiate(self, name: str, definition: ComponentDefinition) -> InstanceWrapper:
        """Instantiate through the no-argument constructor."""
        cls = definition.resolved_type
        required = [p.name for p in get_parameters(cls) if not p.has_default]
        if required:
            raise ComponentCreationError(
                name,
                f"No default constructor found: {cls.__name__}.__init__ requires "
                f"{', '.join(required)}. Hint: use constructor autowiring or declare "
                f"constructor arguments",
                phase="instantiation",
            )
        with definition.constructor_argument_lock:
            if definition.resolved_constructor_or_factory_method is None:
                definition.resolved_constructor_or_factory_method = cls
                definition.constructor_arguments_resolved = False
        return self._wrap(self._invoke(name, cls, (), {}, "constructor"))

    def autowire_constructor(self, name: str, definition: ComponentDefinition,
                             chosen: Optional[List[Callable]],
                             explicit_args: Optional[Sequence[Any]]) -> InstanceWrapper:
        """Select a constructor and resolve its arguments."""
        cls = definition.resolved_type

        if explicit_args is None:
            cached = self._cached_candidate(definition, chosen or constructor_candidates(cls))
            if cached is None and not chosen and definition.resolved_constructor_or_factory_method:
                # The cached decision came from post-processor supplied candidates
                chosen = self._container.pipeline.determine_candidate_constructors(cls, name)
                if chosen:
                    cached = self._cached_candidate(definition, chosen)
            if cached is not None:
                holder = self.create_argument_array(
                    name, definition, cached, get_parameters(cached),
                    autowiring=definition.constructor_arguments_resolved,
                )
                self._register_autowired(name, definition, holder)
                return self._wrap(self._invoke(name, cached, holder.args, holder.kwargs, "constructor"))

        candidates = chosen or constructor_candidates(cls)
        autowiring = bool(chosen) or definition.autowire_mode is AutowireMode.CONSTRUCTOR
        target, holder = self._select_candidate(
            name, definition, candidates, explicit_args, autowiring, "constructor"
        )
        if explicit_args is None:
            self._cache(definition, target, autowiring)
        self._register_autowired(name, definition, holder)
        return self._wrap(self._invoke(name, target, holder.args, holder.kwargs, "constructor"))

    def instantiate_using_factory_method(self, name: str, definition: ComponentDefinition,
                                         explicit_args: Optional[Sequence[Any]]) -> InstanceWrapper:
        """Instantiate through a static or instance factory method."""
        factory_name = definition.factory_component_name
        if factory_name:
            if factory_name == name:
                raise DefinitionError(
                    "factory-component reference points back to the same component definition",
                    component_name=name,
                )
            owner = self._container.get(factory_name)
            self._container.register_dependent(factory_name, name)
            static_only = False
        else:
            owner = definition.resolved_type
            if owner is None:
                raise DefinitionError(
                    "component definition declares neither a component type "
                    "nor a factory component",
                    component_name=name,
                )
            static_only = True

        method_name = definition.factory_method_name
        candidates = factory_method_candidates(owner, method_name, static_only)
        if not candidates:
            owner_desc = f"factory component '{factory_name}'" if factory_name else \
                f"class {owner.__name__}"
            raise ComponentCreationError(
                name,
                f"No matching factory method found on {owner_desc}: factory method "
                f"'{method_name}()'. Check that a method with the specified name exists "
                f"and that it is {'non-static' if factory_name else 'a static or class method'}",
                phase="instantiation",
            )

        if explicit_args is None:
            cached = self._cached_candidate(definition, candidates)
            if cached is not None:
                holder = self.create_argument_array(
                    name, definition, cached, get_parameters(cached),
                    autowiring=definition.constructor_arguments_resolved,
                )
                self._register_autowired(name, definition, holder)
                return self._wrap_factory_result(
                    name, self._invoke(name, cached, holder.args, holder.kwargs, "factory method")
                )

        autowiring = definition.autowire_mode is AutowireMode.CONSTRUCTOR
        target, holder = self._select_candidate(
            name, definition, candidates, explicit_args, autowiring, "factory method"
        )
        if explicit_args is None:
            self._cache(definition, target, autowiring)
        self._register_autowired(name, definition, holder)
        return self._wrap_factory_result(
            name, self._invoke(name, target, holder.args, holder.kwargs, "factory method")
        )

    def _select_candidate(self, name: str, definition: ComponentDefinition,
                          candidates: List[Callable], explicit_args: Optional[Sequence[Any]],
                          autowiring: bool, kind: str) -> Tuple[Callable, ArgumentsHolder]:
        cargs = definition.constructor_arguments
        min_nr_args = len(explicit_args) if explicit_args is not None else max(
            (max(cargs.indexed) + 1) if cargs.indexed else 0,
            cargs.argument_count(),
        )

        with_params = sorted(
            ((c, get_parameters(c)) for c in candidates),
            key=lambda item: len(item[1]),
            reverse=True,
        )

        target: Optional[Callable] = None
        holder: Optional[ArgumentsHolder] = None
        target_params = 0
        min_weight = math.inf
        ambiguous: Optional[List[Callable]] = None
        causes: List[UnsatisfiedDependencyError] = []

        for candidate, params in with_params:
            if target is not None and target_params > len(params):
                # Already found a satisfiable candidate with more parameters
                break
            if len(params) < min_nr_args:
                continue

            if explicit_args is not None:
                candidate_holder = self._explicit_argument_array(params, explicit_args)
                if candidate_holder is None:
                    continue
            else:
                try:
                    candidate_holder = self.create_argument_array(
                        name, definition, candidate, params, autowiring
                    )
                except UnsatisfiedDependencyError as e:
                    logger.debug(f"Ignoring {kind} {_describe(candidate)} of component '{name}': {e}")
                    causes.append(e)
                    continue

            weight = candidate_holder.type_difference_weight()
            if weight < min_weight:
                target, holder, target_params = candidate, candidate_holder, len(params)
                min_weight = weight
                ambiguous = None
            elif target is not None and weight == min_weight:
                if ambiguous is None:
                    ambiguous = [target]
                ambiguous.append(candidate)

        if target is None:
            if causes:
                raise causes[-1]
            raise ComponentCreationError(
                name,
                f"Could not resolve matching {kind} (hint: specify index/type/name "
                f"arguments for simple parameters to avoid type ambiguities)",
                phase="instantiation",
            )
        if ambiguous:
            described = [_describe(c) for c in ambiguous]
            raise AmbiguousResolutionError(
                name, None, described,
                f"Ambiguous {kind} matches found: {', '.join(described)}",
                phase="instantiation",
            )
        return target, holder

    def create_argument_array(self, name: str, definition: ComponentDefinition,
                              candidate: Callable, params: List[ParameterInfo],
                              autowiring: bool) -> ArgumentsHolder:
        """Resolve each parameter from declared arguments or by autowiring.

        Raises:
            UnsatisfiedDependencyError: A parameter cannot be satisfied
        """
        cargs = definition.constructor_arguments
        converter = self._container.type_converter
        value_resolver = ValueResolver(self._container, name, definition)
        holder = ArgumentsHolder()
        used = set()

        for param in params:
            value_holder = cargs.get_argument_value(param.index, param.annotation, param.name, used)
            if value_holder is not None:
                if value_holder in cargs.generic:
                    used.add(id(value_holder))
                resolved = value_resolver.resolve(param.name, value_holder.value)
                try:
                    converted = converter.convert(resolved, param.annotation, param.name)
                except TypeConversionError as e:
                    raise UnsatisfiedDependencyError(
                        name, param.name,
                        f"Could not convert argument value of type [{type(resolved).__name__}] "
                        f"to required type [{_type_name(param.annotation)}]: {e}",
                        cause=e, phase="instantiation",
                    ) from e
                holder.add(param, converted)
                continue

            if not autowiring:
                if param.has_default:
                    holder.use_default(param)
                    continue
                raise UnsatisfiedDependencyError(
                    name, param.name,
                    "Ambiguous argument values for parameter of type "
                    f"[{_type_name(param.annotation)}] - did you specify the correct "
                    f"component references as arguments?",
                    phase="instantiation",
                )

            value = self._resolve_autowired_argument(name, param, holder)
            if value is None and param.has_default:
                holder.use_default(param)
            else:
                holder.add(param, value)
        return holder

    def _resolve_autowired_argument(self, name: str, param: ParameterInfo,
                                    holder: ArgumentsHolder) -> Any:
        descriptor = DependencyDescriptor(
            param.annotation, param.name, kind="parameter",
            required=not param.has_default, match_by_name=True,
        )
        try:
            return self._container.dependency_resolver.resolve(
                descriptor, name, holder.autowired_names, self._container.type_converter
            )
        except UnsatisfiedDependencyError as e:
            if e.component_name == name:
                e.phase = e.phase or "instantiation"
                raise
            raise UnsatisfiedDependencyError(
                name, param.name, f"Error creating component '{e.component_name}'",
                cause=e, phase="instantiation",
            ) from e
        except ComponentCreationError as e:
            raise UnsatisfiedDependencyError(
                name, param.name, f"Error creating component '{e.component_name}'",
                cause=e, phase="instantiation",
            ) from e

    def _explicit_argument_array(self, params: List[ParameterInfo],
                                 explicit_args: Sequence[Any]) -> Optional[ArgumentsHolder]:
        required = sum(1 for p in params if not p.has_default)
        if not required <= len(explicit_args) <= len(params):
            return None
        converter = self._container.type_converter
        holder = ArgumentsHolder()
        for param, value in zip(params, explicit_args):
            if param.annotation is not None and not is_instance_of(value, param.annotation):
                try:
                    value = converter.convert(value, param.annotation, param.name)
                except TypeConversionError:
                    return None
            holder.add(param, value)
        return holder

    def _cached_candidate(self, definition: ComponentDefinition,
                          candidates: List[Callable]) -> Optional[Callable]:
        with definition.constructor_argument_lock:
            cached = definition.resolved_constructor_or_factory_method
        if cached is None:
            return None
        for candidate in candidates:
            if underlying_function(candidate) is cached:
                return candidate
        return None

    @staticmethod
    def _cache(definition: ComponentDefinition, target: Callable, autowiring: bool) -> None:
        with definition.constructor_argument_lock:
            definition.resolved_constructor_or_factory_method = underlying_function(target)
            definition.constructor_arguments_resolved = autowiring

    def _register_autowired(self, name: str, definition: ComponentDefinition,
                            holder: ArgumentsHolder) -> None:
        if not definition.track_dependencies:
            return
        for autowired_name in holder.autowired_names:
            self._container.register_dependent(autowired_name, name)
            logger.debug(
                f"Autowiring by type from component name '{name}' via constructor "
                f"to component named '{autowired_name}'"
            )

    def _invoke(self, name: str, target: Callable, args: Sequence[Any],
                kwargs: Dict[str, Any], kind: str) -> Any:
        try:
            return target(*args, **kwargs)
        except Exception as e:
            if isinstance(e, ComponentCreationError) and e.component_name == name:
                raise
            raise ComponentCreationError(
                name, f"Instantiation via {kind} {_describe(target)} failed",
                phase="instantiation", cause=e,
            ) from e

    def _wrap(self, instance: Any) -> InstanceWrapper:
        return InstanceWrapper(instance, self._container.introspector, self._container.type_converter)

    def _wrap_factory_result(self, name: str, instance: Any) -> InstanceWrapper:
        if instance is None:
            raise ComponentCreationError(name, "Factory method returned None", phase="instantiation")
        return self._wrap(instance)


def _describe(target: Callable) -> str:
    params = ", ".join(p.name for p in get_parameters(target))
    if isinstance(target, type):
        return f"{target.__name__}({params})"
    return f"{getattr(target, '__qualname__', repr(target))}({params})"


def _type_name(t: Any) -> str:
    if t is None:
        return "<untyped>"
    return getattr(t, '__name__', None) or str(t)
