"""
Dependency Resolution

Resolves one injection point (a property or a constructor/factory-method
parameter) to a component of the required type, searching the container
and its ancestors.

Single-valued injection points need exactly one candidate. When several
candidates match, they are disambiguated by, in this order:

1. A single ``primary`` definition
2. The highest ``@priority`` (lowest value)
3. The injection point name, for constructor and factory-method
   parameters only

Collection-typed injection points (``List[X]``, ``Dict[str, X]``, ...)
receive every candidate, in registration order unless the candidates
carry an ordering trait.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from .exceptions import (
    AmbiguousResolutionError,
    ComponentNotOfRequiredTypeError,
    UnsatisfiedDependencyError,
)
from .introspection import collection_info, is_instance_of, unwrap_optional
from .ordering import get_order, get_priority, sort_by_order

if TYPE_CHECKING:
    from .container import ComponentContainer

logger = logging.getLogger(__name__)


class DependencyDescriptor:
    """One injection point to be satisfied.

    Attributes:
        declared_type: The annotation as written (may be Optional[...])
        dependency_type: The annotation with Optional unwrapped
        injection_point: Property or parameter name (diagnostics, name matching)
        kind: ``"property"`` or ``"parameter"``
        required: False for Optional annotations and parameters with defaults
        eager: Whether candidates of unknown type may be instantiated to
            determine their type
        match_by_name: Whether the injection point name may break ties

    Example::

        descriptor = DependencyDescriptor(Repository, "repo", kind="property")
        repo = resolver.resolve(descriptor, "service", autowired_names)
    """

    def __init__(
        self,
        declared_type: Any,
        injection_point: Optional[str],
        kind: str = "property",
        required: bool = True,
        eager: bool = True,
        match_by_name: bool = False,
    ):
        self.declared_type = declared_type
        self.dependency_type, optional = unwrap_optional(declared_type)
        self.injection_point = injection_point
        self.kind = kind
        self.required = required and not optional
        self.eager = eager
        self.match_by_name = match_by_name

    @property
    def collection(self):
        return collection_info(self.dependency_type)

    def __repr__(self) -> str:
        return (
            f"DependencyDescriptor({self.kind} '{self.injection_point}', "
            f"type={self.declared_type!r}, required={self.required})"
        )


class DependencyResolver:
    """Finds and instantiates the candidates for injection points."""

    def __init__(self, container: 'ComponentContainer'):
        self._container = container

    def resolve(
        self,
        descriptor: DependencyDescriptor,
        requesting_name: Optional[str],
        autowired_names: Optional[List[str]] = None,
        converter=None,
    ) -> Any:
        """Resolve the injection point to a value.

        Args:
            descriptor: The injection point
            requesting_name: Component being wired (excluded from candidates)
            autowired_names: Receives the names of every component used
            converter: Unused by the default resolution; reserved for
                subclasses that convert resolved values

        Returns:
            The resolved value, or None for unsatisfiable optional points

        Raises:
            UnsatisfiedDependencyError: No candidate for a required point
            AmbiguousResolutionError: Several candidates and no tie-breaker
        """
        if autowired_names is None:
            autowired_names = []
        dep_type = descriptor.dependency_type

        if dep_type is None:
            if descriptor.required:
                raise UnsatisfiedDependencyError(
                    requesting_name, descriptor.injection_point,
                    "No type information available; add a type annotation"
                )
            return None

        resolvable = self._container.resolvable_dependency(dep_type)
        if resolvable is not None:
            return resolvable

        info = descriptor.collection
        if info is not None:
            result = self._resolve_multiple(descriptor, requesting_name, info[0], info[1],
                                            autowired_names)
            if result is not None:
                return result
            if descriptor.required:
                raise self._no_candidate(descriptor, requesting_name, info[1])
            return None

        candidates = self.find_candidates(requesting_name, dep_type, descriptor)
        if not candidates:
            if descriptor.required:
                raise self._no_candidate(descriptor, requesting_name, dep_type)
            return None

        if len(candidates) > 1:
            chosen = self.determine_autowire_candidate(candidates, descriptor, requesting_name)
            if chosen is None:
                if descriptor.required:
                    raise AmbiguousResolutionError(
                        requesting_name, descriptor.injection_point, candidates
                    )
                return None
        else:
            chosen = candidates[0]

        logger.debug(
            f"Autowiring {descriptor.kind} '{descriptor.injection_point}' of component "
            f"'{requesting_name}' with component '{chosen}'"
        )
        autowired_names.append(chosen)
        instance = self._container.get(chosen)
        if not is_instance_of(instance, dep_type):
            raise ComponentNotOfRequiredTypeError(chosen, dep_type, type(instance))
        return instance

    def find_candidates(self, requesting_name: Optional[str], required_type: Any,
                        descriptor: DependencyDescriptor) -> List[str]:
        """Names of the autowire candidates matching the required type."""
        names = self._container.names_for_type(
            required_type,
            include_non_singletons=True,
            allow_eager_init=descriptor.eager,
        )
        return [
            name for name in names
            if name != requesting_name and self._container.is_autowire_candidate(name)
        ]

    def determine_autowire_candidate(self, candidates: List[str],
                                     descriptor: DependencyDescriptor,
                                     requesting_name: Optional[str]) -> Optional[str]:
        primary = self._determine_primary(candidates, descriptor, requesting_name)
        if primary is not None:
            return primary
        highest = self._determine_highest_priority(candidates, descriptor, requesting_name)
        if highest is not None:
            return highest
        if descriptor.match_by_name and descriptor.injection_point:
            for name in candidates:
                if name == descriptor.injection_point:
                    return name
        return None

    def _determine_primary(self, candidates: List[str], descriptor: DependencyDescriptor,
                           requesting_name: Optional[str]) -> Optional[str]:
        primaries = [name for name in candidates if self._container.is_primary(name)]
        if len(primaries) > 1:
            # Local definitions shadow primaries declared in ancestors
            local = [name for name in primaries if self._container.contains_definition(name)]
            if len(local) == 1:
                return local[0]
            raise AmbiguousResolutionError(
                requesting_name, descriptor.injection_point, primaries,
                f"more than one 'primary' component found among candidates: {', '.join(primaries)}"
            )
        return primaries[0] if primaries else None

    def _determine_highest_priority(self, candidates: List[str], descriptor: DependencyDescriptor,
                                    requesting_name: Optional[str]) -> Optional[str]:
        best_name = None
        best_priority = None
        for name in candidates:
            priority = get_priority(self._container.get_type(name))
            if priority is None:
                continue
            if best_priority is not None and priority == best_priority:
                raise AmbiguousResolutionError(
                    requesting_name, descriptor.injection_point, [best_name, name],
                    f"multiple components found with the same priority ({priority}) "
                    f"among candidates: {best_name}, {name}"
                )
            if best_priority is None or priority < best_priority:
                best_name = name
                best_priority = priority
        return best_name

    def _resolve_multiple(self, descriptor: DependencyDescriptor, requesting_name: Optional[str],
                          kind: type, element_type: Any,
                          autowired_names: List[str]) -> Optional[Any]:
        candidates = self.find_candidates(requesting_name, element_type, descriptor)
        if not candidates:
            return None

        matched: Dict[str, Any] = {}
        for name in candidates:
            instance = self._container.get(name)
            if is_instance_of(instance, element_type):
                matched[name] = instance
        if not matched:
            return None

        autowired_names.extend(matched)
        logger.debug(
            f"Autowiring {descriptor.kind} '{descriptor.injection_point}' of component "
            f"'{requesting_name}' with components {list(matched)}"
        )

        if kind is dict:
            return matched
        items = list(matched.values())
        if any(get_order(item) is not None for item in items):
            items = sort_by_order(items)
        return kind(items)

    @staticmethod
    def _no_candidate(descriptor: DependencyDescriptor, requesting_name: Optional[str],
                      required_type: Any) -> UnsatisfiedDependencyError:
        type_name = getattr(required_type, '__name__', None) or str(required_type)
        return UnsatisfiedDependencyError(
            requesting_name, descriptor.injection_point,
            f"No qualifying component of type '{type_name}' available: expected at least "
            f"1 component which qualifies as autowire candidate"
        )
