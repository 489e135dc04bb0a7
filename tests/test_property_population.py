"""
Property Population Tests

Tests for filling properties of constructed components:
- Declared literal values, typed strings, references and inner components
- Autowiring by name and by type
- Dependency checks
- Population failures
- Converted-value caching across prototype instances
"""

import unittest
from typing import Tuple

from componentry import (
    SCOPE_PROTOTYPE,
    AutowireMode,
    ComponentContainer,
    ComponentCreationError,
    ComponentDefinition,
    ComponentReference,
    ConstructorArgumentValues,
    DependencyCheck,
    NameAware,
    PropertyValues,
    TypeConversionError,
    TypeConverter,
    TypedStringValue,
    UnsatisfiedDependencyError,
)
from conftest import ContainerTestCase
from fixtures import Controller, InMemoryRepository, Pool, Settings, UserService


class Timeouts:
    connect: int
    read: float = 1.5


class Endpoint:
    port: int = 80
    secure: bool = False


class Labels:
    items: list
    codes: Tuple[str, ...]


class NamedComponent(NameAware):
    def __init__(self):
        self._component_name = None

    @property
    def component_name(self) -> str:
        return self._component_name

    @component_name.setter
    def component_name(self, value: str):
        self._component_name = value

    def set_component_name(self, name: str) -> None:
        self._component_name = name


class CountingConverter(TypeConverter):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def convert(self, value, target_type, context=None):
        self.calls += 1
        return super().convert(value, target_type, context)


class TestDeclaredValues(ContainerTestCase):
    """Tests for declared property values"""

    def test_literals_are_converted_to_declared_types(self):
        self.define("settings", Settings, property_values=PropertyValues({
            "port": "9090",
            "debug": "yes",
            "tags": "a, b",
        }))

        settings = self.container.get("settings")

        self.assertEqual(settings.host, "localhost")
        self.assertEqual(settings.port, 9090)
        self.assertIs(settings.debug, True)
        self.assertEqual(settings.tags, ["a", "b"])

    def test_typed_string_value(self):
        self.define("pool", Pool, property_values=PropertyValues({
            "size": TypedStringValue("16", int),
        }))

        self.assertEqual(self.container.get("pool").size, 16)

    def test_component_reference(self):
        self.define("repository", InMemoryRepository)
        self.define("service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        self.define("controller", Controller, property_values=PropertyValues({
            "service": ComponentReference("service"),
        }))

        controller = self.container.get("controller")

        self.assertIs(controller.service, self.container.get("service"))
        self.assertIn("controller", self.container.get_dependents("service"))

    def test_reference_to_parent(self):
        child = ComponentContainer(self.container)
        self.addCleanup(child.close)
        self.define("repository", InMemoryRepository)
        child.register_definition("repository", ComponentDefinition(InMemoryRepository))
        child.register_definition("service", ComponentDefinition(
            UserService,
            constructor_arguments=ConstructorArgumentValues().add_generic(
                ComponentReference("repository", to_parent=True)
            ),
        ))

        service = child.get("service")

        self.assertIs(service.repository, self.container.get("repository"))
        self.assertIsNot(service.repository, child.get("repository"))

    def test_missing_reference(self):
        self.define("controller", Controller, property_values=PropertyValues({
            "service": ComponentReference("missing"),
        }))

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("controller")

        self.assertEqual(ctx.exception.component_name, "controller")
        self.assertIn("Cannot resolve reference to component 'missing'", str(ctx.exception))

    def test_inner_component(self):
        self.define("repository", InMemoryRepository)
        self.define("controller", Controller, property_values=PropertyValues({
            "service": ComponentDefinition(UserService, autowire_mode=AutowireMode.CONSTRUCTOR),
        }))

        controller = self.container.get("controller")

        self.assertIsInstance(controller.service, UserService)
        self.assertIs(controller.service.repository, self.container.get("repository"))
        self.assertEqual(self.container.definition_names(), ["repository", "controller"])
        inner = [n for n in self.container.get_dependencies("controller") if "#inner#" in n]
        self.assertEqual(len(inner), 1)
        self.assertTrue(inner[0].startswith("controller#inner#"))

    def test_list_of_references(self):
        class Holder:
            repositories: list

        self.define("first", InMemoryRepository)
        self.define("second", InMemoryRepository)
        self.define("holder", Holder, property_values=PropertyValues({
            "repositories": [ComponentReference("first"), ComponentReference("second")],
        }))

        holder = self.container.get("holder")

        self.assertEqual(holder.repositories, [self.container.get("first"), self.container.get("second")])


class TestPopulationFailures(ContainerTestCase):
    """Tests for failures while applying values"""

    def test_unknown_property(self):
        self.define("pool", Pool, property_values=PropertyValues({"missing": 1}))

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("pool")

        self.assertEqual(ctx.exception.phase, "population")
        self.assertIsInstance(ctx.exception.cause, AttributeError)

    def test_setter_error(self):
        self.define("pool", Pool, property_values=PropertyValues({"size": 0}))

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("pool")

        self.assertIsInstance(ctx.exception.cause, ValueError)
        self.assertFalse(self.container.contains_singleton("pool"))

    def test_conversion_error(self):
        self.define("settings", Settings, property_values=PropertyValues({"port": "abc"}))

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("settings")

        self.assertIsInstance(ctx.exception.cause, TypeConversionError)
        self.assertIn("Error converting property 'port'", str(ctx.exception))


class TestAutowiring(ContainerTestCase):
    """Tests for autowiring properties by name and by type"""

    def test_by_name(self):
        self.define("repository", InMemoryRepository)
        self.define("service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        self.define("controller", Controller, autowire_mode=AutowireMode.BY_NAME)

        controller = self.container.get("controller")

        self.assertIs(controller.service, self.container.get("service"))
        self.assertIn("controller", self.container.get_dependents("service"))

    def test_by_name_without_match(self):
        self.define("controller", Controller, autowire_mode=AutowireMode.BY_NAME)

        controller = self.container.get("controller")

        self.assertFalse(hasattr(controller, "service"))

    def test_by_type(self):
        self.define("repository", InMemoryRepository)
        self.define("user_service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        self.define("controller", Controller, autowire_mode=AutowireMode.BY_TYPE)

        controller = self.container.get("controller")

        self.assertIs(controller.service, self.container.get("user_service"))
        self.assertEqual(self.container.get_dependencies("controller"), ["user_service"])

    def test_by_type_without_candidate(self):
        self.define("controller", Controller, autowire_mode=AutowireMode.BY_TYPE)

        with self.assertRaises(UnsatisfiedDependencyError) as ctx:
            self.container.get("controller")

        self.assertEqual(ctx.exception.injection_point, "service")
        self.assertEqual(ctx.exception.phase, "population")

    def test_by_type_skips_simple_properties(self):
        self.container.register_singleton("greeting", "hello")
        self.define("settings", Settings, autowire_mode=AutowireMode.BY_TYPE)

        self.assertEqual(self.container.get("settings").host, "localhost")

    def test_declared_value_wins_over_autowiring(self):
        self.define("repository", InMemoryRepository)
        self.define("user_service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        self.define("other_service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        self.define("controller", Controller, autowire_mode=AutowireMode.BY_TYPE,
                    property_values=PropertyValues({"service": ComponentReference("other_service")}))

        controller = self.container.get("controller")

        self.assertIs(controller.service, self.container.get("other_service"))

    def test_ignored_dependency_type(self):
        self.container.ignore_dependency_type(UserService)
        self.define("controller", Controller, autowire_mode=AutowireMode.BY_TYPE)

        self.assertFalse(hasattr(self.container.get("controller"), "service"))

    def test_autowire_existing_instance(self):
        self.define("repository", InMemoryRepository)
        self.define("service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        controller = Controller()

        self.container.autowire_properties(controller, AutowireMode.BY_TYPE)

        self.assertIs(controller.service, self.container.get("service"))
        self.assertEqual(self.container.get_dependents("service"), [])

    def test_autowire_existing_instance_rejects_constructor_mode(self):
        with self.assertRaises(ValueError):
            self.container.autowire_properties(Controller(), AutowireMode.CONSTRUCTOR)


class TestDependencyCheck(ContainerTestCase):
    """Tests for dependency checks after autowiring"""

    def test_objects_check_fails_for_unset_reference(self):
        self.define("controller", Controller, dependency_check=DependencyCheck.OBJECTS)

        with self.assertRaises(UnsatisfiedDependencyError) as ctx:
            self.container.get("controller")

        self.assertEqual(ctx.exception.injection_point, "service")

    def test_simple_check_fails_for_unset_simple_property(self):
        self.define("timeouts", Timeouts, dependency_check=DependencyCheck.SIMPLE)

        with self.assertRaises(UnsatisfiedDependencyError) as ctx:
            self.container.get("timeouts")

        self.assertEqual(ctx.exception.injection_point, "connect")

    def test_simple_check_ignores_references(self):
        self.define("controller", Controller, dependency_check=DependencyCheck.SIMPLE)

        self.assertIsInstance(self.container.get("controller"), Controller)

    def test_class_defaults_satisfy_check(self):
        self.define("settings", Settings, dependency_check=DependencyCheck.ALL)
        self.define("timeouts", Timeouts, dependency_check=DependencyCheck.ALL,
                    property_values=PropertyValues({"connect": "3"}))

        self.assertEqual(self.container.get("timeouts").connect, 3)
        self.assertIsInstance(self.container.get("settings"), Settings)

    def test_aware_properties_are_excluded(self):
        self.define("named", NamedComponent, dependency_check=DependencyCheck.ALL)

        self.assertEqual(self.container.get("named").component_name, "named")

    def test_ignored_type_is_not_checked(self):
        self.container.ignore_dependency_type(UserService)
        self.define("controller", Controller, dependency_check=DependencyCheck.OBJECTS)

        self.assertIsInstance(self.container.get("controller"), Controller)


class TestConvertedValueCache(unittest.TestCase):
    """Tests for reusing converted values across prototype instances"""

    def setUp(self):
        self.converter = CountingConverter()
        self.container = ComponentContainer(type_converter=self.converter)

    def tearDown(self):
        self.container.close()

    def test_literal_values_converted_once(self):
        self.container.register_definition("endpoint", ComponentDefinition(
            Endpoint, scope=SCOPE_PROTOTYPE,
            property_values=PropertyValues({"port": "8443", "secure": "true"}),
        ))

        first = self.container.get("endpoint")
        self.assertEqual(self.converter.calls, 2)

        second = self.container.get("endpoint")
        self.assertEqual(self.converter.calls, 2)

        self.assertIsNot(first, second)
        self.assertEqual(second.port, 8443)
        self.assertIs(second.secure, True)
        self.assertTrue(self.container.get_merged_definition("endpoint").property_values.converted)

    def test_registered_definition_keeps_no_cache(self):
        definition = ComponentDefinition(
            Endpoint, scope=SCOPE_PROTOTYPE, property_values=PropertyValues({"port": "8443"}),
        )
        self.container.register_definition("endpoint", definition)

        self.container.get("endpoint")

        self.assertFalse(definition.property_values.converted)
        self.assertFalse(definition.property_values.get("port").converted)

    def test_references_are_resolved_every_time(self):
        self.container.register_definition("repository", ComponentDefinition(
            InMemoryRepository, scope=SCOPE_PROTOTYPE,
        ))
        self.container.register_definition("service", ComponentDefinition(
            UserService, scope=SCOPE_PROTOTYPE, autowire_mode=AutowireMode.CONSTRUCTOR,
        ))
        self.container.register_definition("controller", ComponentDefinition(
            Controller, scope=SCOPE_PROTOTYPE,
            property_values=PropertyValues({"service": ComponentReference("service")}),
        ))

        first = self.container.get("controller")
        second = self.container.get("controller")

        self.assertIsNot(first.service, second.service)
        self.assertFalse(self.container.get_merged_definition("controller").property_values.converted)

    def test_collection_values_not_shared(self):
        declared = ["a", "b"]
        self.container.register_definition("settings", ComponentDefinition(
            Settings, scope=SCOPE_PROTOTYPE, property_values=PropertyValues({"tags": declared}),
        ))

        first = self.container.get("settings")
        first.tags.append("changed")
        second = self.container.get("settings")

        self.assertIsNot(first.tags, second.tags)
        self.assertEqual(second.tags, ["a", "b"])
        self.assertEqual(declared, ["a", "b"])
        self.assertFalse(self.container.get_merged_definition("settings").property_values.converted)

    def test_untyped_collection_values_not_shared(self):
        self.container.register_definition("labels", ComponentDefinition(
            Labels, scope=SCOPE_PROTOTYPE, property_values=PropertyValues({"items": [1, 2]}),
        ))

        first = self.container.get("labels")
        first.items.append(3)
        second = self.container.get("labels")

        self.assertIsNot(first.items, second.items)
        self.assertEqual(second.items, [1, 2])

    def test_tuple_of_literals_is_cached(self):
        self.container.register_definition("labels", ComponentDefinition(
            Labels, scope=SCOPE_PROTOTYPE, property_values=PropertyValues({"codes": ("x", "y")}),
        ))

        first = self.container.get("labels")
        second = self.container.get("labels")

        self.assertEqual(second.codes, ("x", "y"))
        self.assertTrue(self.container.get_merged_definition("labels").property_values.converted)


class TestRepeatedDependencyCheck(ContainerTestCase):
    """Tests for identical dependency-check outcomes across prototype instances"""

    def test_passing_check_on_every_instance(self):
        self.define(
            "timeouts", Timeouts, scope=SCOPE_PROTOTYPE,
            dependency_check=DependencyCheck.SIMPLE,
            property_values=PropertyValues({"connect": "5"}),
        )

        first = self.container.get("timeouts")
        self.assertTrue(self.container.get_merged_definition("timeouts").property_values.converted)
        second = self.container.get("timeouts")

        self.assertIsNot(first, second)
        self.assertEqual((first.connect, first.read), (5, 1.5))
        self.assertEqual((second.connect, second.read), (5, 1.5))

    def test_failing_check_on_every_instance(self):
        self.define(
            "timeouts", Timeouts, scope=SCOPE_PROTOTYPE,
            dependency_check=DependencyCheck.SIMPLE,
        )

        errors = []
        for _ in range(2):
            with self.assertRaises(UnsatisfiedDependencyError) as ctx:
                self.container.get("timeouts")
            errors.append(ctx.exception)

        self.assertEqual(errors[0].injection_point, "connect")
        self.assertEqual(errors[1].injection_point, "connect")
        self.assertEqual(str(errors[0]), str(errors[1]))


if __name__ == '__main__':
    unittest.main()
