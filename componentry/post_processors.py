"""
Post-Processors

Extension points through which collaborating subsystems (proxy creators,
field injectors, validators) observe and rewrite components while the
container builds them.

Each capability is its own small interface; a post-processor implements
only the capabilities it needs:

- MergedDefinitionPostProcessor: rewrite the merged definition, once
- InstantiationPostProcessor: short-circuit instantiation, or veto population
- PropertiesPostProcessor: rewrite or reject the resolved property values
- ConstructorCandidatesPostProcessor: supply the candidate constructors
- TypePredictingPostProcessor: predict the final type without instantiating
- EarlyReferencePostProcessor: substitute the early reference (e.g. a proxy)
- InitializationPostProcessor: wrap before/after the init methods
- DestructionPostProcessor: observe destruction of singletons

Registered post-processors run in a total order: PriorityOrdered first,
then Ordered, then the rest in registration order.

Example::

    class TimingProxyCreator(InitializationPostProcessor):
        def after_initialization(self, instance, name):
            if isinstance(instance, Service):
                return TimingProxy(instance)
            return instance

    container.add_post_processor(TimingProxyCreator())
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TYPE_CHECKING

from .ordering import sort_by_order

if TYPE_CHECKING:
    from .definition import ComponentDefinition, PropertyValues

logger = logging.getLogger(__name__)


class PostProcessor(ABC):
    """Marker base for all post-processor capabilities."""

    pass


class MergedDefinitionPostProcessor(PostProcessor):
    """Runs once per merged definition, before the first instance is populated."""

    @abstractmethod
    def post_process_merged_definition(
        self,
        definition: 'ComponentDefinition',
        component_type: type,
        name: str,
    ) -> None:
        pass


class InstantiationPostProcessor(PostProcessor):
    """Hooks around raw instantiation."""

    def before_instantiation(self, component_type: type, name: str) -> Optional[Any]:
        """Return a finished object to skip construction, population and init methods.

        Only the after-initialization stage is applied to a returned object.
        """
        return None

    def after_instantiation(self, instance: Any, name: str) -> bool:
        """Return False to skip property population for this instance."""
        return True


class PropertiesPostProcessor(PostProcessor):
    """Rewrites the resolved property values before they are applied."""

    @abstractmethod
    def post_process_properties(
        self,
        property_values: 'PropertyValues',
        instance: Any,
        name: str,
    ) -> Optional['PropertyValues']:
        """Return the values to apply, or None to skip applying values."""
        pass


class ConstructorCandidatesPostProcessor(PostProcessor):

    @abstractmethod
    def determine_candidate_constructors(
        self,
        component_type: type,
        name: str,
    ) -> Optional[List[Callable]]:
        """Return the constructors to autowire, or None to defer."""
        pass


class TypePredictingPostProcessor(PostProcessor):

    @abstractmethod
    def predict_type(self, component_type: type, name: str) -> Optional[type]:
        """Return the type the component will finally have, or None if unknown."""
        pass


class EarlyReferencePostProcessor(PostProcessor):
    """Substitutes the object exposed to components that pull an early reference.

    Called with the raw instance at most once per creation attempt.
    Implementations that wrap here usually remember the name and return the
    instance unchanged from ``after_initialization``, so that the early
    reference and the final instance stay the same object.
    """

    @abstractmethod
    def get_early_reference(self, instance: Any, name: str) -> Any:
        pass


class InitializationPostProcessor(PostProcessor):
    """Wraps the init methods. Returning None stops the stage."""

    def before_initialization(self, instance: Any, name: str) -> Optional[Any]:
        return instance

    def after_initialization(self, instance: Any, name: str) -> Optional[Any]:
        return instance


class DestructionPostProcessor(PostProcessor):
    """Called before a singleton's own destroy methods run."""

    @abstractmethod
    def before_destruction(self, instance: Any, name: str) -> None:
        pass

    def requires_destruction(self, instance: Any) -> bool:
        return True


_CAPABILITIES: Tuple[type, ...] = (
    MergedDefinitionPostProcessor,
    InstantiationPostProcessor,
    PropertiesPostProcessor,
    ConstructorCandidatesPostProcessor,
    TypePredictingPostProcessor,
    EarlyReferencePostProcessor,
    InitializationPostProcessor,
    DestructionPostProcessor,
)


class PostProcessorPipeline:
    """Ordered, copy-on-write list of post-processors.

    Registration rebuilds immutable per-capability snapshots under a lock;
    each stage iterates one snapshot, so registration never interferes with
    a running stage.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._registered: List[PostProcessor] = []
        self._ordered: Tuple[PostProcessor, ...] = ()
        self._by_capability: Dict[type, Tuple[PostProcessor, ...]] = {}

    def add(self, processor: PostProcessor) -> None:
        if not isinstance(processor, PostProcessor):
            raise TypeError(f"{type(processor).__name__} is not a PostProcessor")
        with self._lock:
            if processor in self._registered:
                self._registered.remove(processor)
            self._registered.append(processor)
            self._rebuild()
        logger.debug(f"Registered post-processor {type(processor).__name__}")

    def remove(self, processor: PostProcessor) -> None:
        with self._lock:
            if processor in self._registered:
                self._registered.remove(processor)
                self._rebuild()

    def _rebuild(self) -> None:
        ordered = tuple(sort_by_order(self._registered))
        self._by_capability = {
            capability: tuple(p for p in ordered if isinstance(p, capability))
            for capability in _CAPABILITIES
        }
        self._ordered = ordered

    def of(self, capability: Type) -> Tuple[PostProcessor, ...]:
        return self._by_capability.get(capability, ())

    def has(self, capability: Type) -> bool:
        return bool(self.of(capability))

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self):
        return iter(self._ordered)

    # Stages

    def apply_merged_definition(self, definition: 'ComponentDefinition',
                                component_type: type, name: str) -> None:
        for processor in self.of(MergedDefinitionPostProcessor):
            processor.post_process_merged_definition(definition, component_type, name)

    def apply_before_instantiation(self, component_type: type, name: str) -> Optional[Any]:
        for processor in self.of(InstantiationPostProcessor):
            result = processor.before_instantiation(component_type, name)
            if result is not None:
                return result
        return None

    def apply_after_instantiation(self, instance: Any, name: str) -> bool:
        for processor in self.of(InstantiationPostProcessor):
            if not processor.after_instantiation(instance, name):
                return False
        return True

    def apply_properties(self, property_values: 'PropertyValues', instance: Any,
                         name: str) -> Optional['PropertyValues']:
        for processor in self.of(PropertiesPostProcessor):
            property_values = processor.post_process_properties(property_values, instance, name)
            if property_values is None:
                return None
        return property_values

    def determine_candidate_constructors(self, component_type: type,
                                         name: str) -> Optional[List[Callable]]:
        for processor in self.of(ConstructorCandidatesPostProcessor):
            candidates = processor.determine_candidate_constructors(component_type, name)
            if candidates:
                return list(candidates)
        return None

    def predict_type(self, component_type: type, name: str) -> Optional[type]:
        for processor in self.of(TypePredictingPostProcessor):
            predicted = processor.predict_type(component_type, name)
            if predicted is not None:
                return predicted
        return None

    def get_early_reference(self, instance: Any, name: str) -> Any:
        exposed = instance
        for processor in self.of(EarlyReferencePostProcessor):
            result = processor.get_early_reference(exposed, name)
            if result is None:
                return exposed
            exposed = result
        return exposed

    def apply_before_initialization(self, instance: Any, name: str) -> Any:
        result = instance
        for processor in self.of(InitializationPostProcessor):
            current = processor.before_initialization(result, name)
            if current is None:
                return result
            result = current
        return result

    def apply_after_initialization(self, instance: Any, name: str) -> Any:
        result = instance
        for processor in self.of(InitializationPostProcessor):
            current = processor.after_initialization(result, name)
            if current is None:
                return result
            result = current
        return result

    def destruction_processors_for(self, instance: Any) -> List[DestructionPostProcessor]:
        return [p for p in self.of(DestructionPostProcessor) if p.requires_destruction(instance)]
