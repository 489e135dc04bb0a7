"""
Container API Tests

Tests for the lookup conveniences of ComponentContainer:
- Subscript getters
- Type matching without instantiation
- Ignored dependency interfaces
- Autowiring existing instances through post-processors
"""

from componentry import AutowireMode, PropertiesPostProcessor, SCOPE_PROTOTYPE
from conftest import ContainerTestCase
from fixtures import CacheService, Database, InMemoryRepository, LifecycleRecorder, UserService


class ServiceHolder:
    """Interface declaring a service setter"""

    @property
    def service(self):
        return self._service

    @service.setter
    def service(self, value: UserService):
        self._service = value


class Consumer(ServiceHolder):
    cache: CacheService


class LabelSetter(PropertiesPostProcessor):
    def post_process_properties(self, property_values, instance, name):
        return property_values.copy().add("label", "configured")


class TestSubscriptAccess(ContainerTestCase):
    """Tests for container[key]() getters"""

    def test_by_name(self):
        self.define("db", Database)

        self.assertIs(self.container["db"](), self.container.get("db"))

    def test_by_type(self):
        self.define("db", Database)

        self.assertIs(self.container[Database](), self.container.get("db"))

    def test_explicit_arguments(self):
        self.define("repository", InMemoryRepository)
        self.define("service", UserService, scope=SCOPE_PROTOTYPE)
        repository = InMemoryRepository()

        service = self.container["service"](repository)

        self.assertIs(service.repository, repository)


class TestTypeMatching(ContainerTestCase):
    """Tests for is_type_match()"""

    def test_predicted_before_creation(self):
        self.define("db", Database)

        self.assertTrue(self.container.is_type_match("db", Database))
        self.assertFalse(self.container.is_type_match("db", CacheService))
        self.assertFalse(self.container.contains_singleton("db"))

    def test_matches_created_singleton(self):
        self.define("db", Database)
        self.container.get("db")

        self.assertTrue(self.container.is_type_match("db", Database))
        self.assertTrue(self.container.is_type_match("db", object))


class TestIgnoredInterfaces(ContainerTestCase):
    """Tests for ignore_dependency_interface()"""

    def setUp(self):
        super().setUp()
        self.define("repository", InMemoryRepository)
        self.define("service", UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        self.define("cache", CacheService)
        self.define("consumer", Consumer, autowire_mode=AutowireMode.BY_TYPE)

    def test_interface_properties_autowired_by_default(self):
        consumer = self.container.get("consumer")

        self.assertIs(consumer.service, self.container.get("service"))
        self.assertIs(consumer.cache, self.container.get("cache"))

    def test_ignored_interface_properties_skipped(self):
        self.container.ignore_dependency_interface(ServiceHolder)

        consumer = self.container.get("consumer")

        self.assertNotIn("_service", vars(consumer))
        self.assertIs(consumer.cache, self.container.get("cache"))


class TestAutowireExisting(ContainerTestCase):
    """Tests for autowire_component()"""

    def test_properties_from_post_processor(self):
        self.container.add_post_processor(LabelSetter())
        recorder = LifecycleRecorder()

        self.container.autowire_component(recorder)

        self.assertEqual(recorder.label, "configured")
        self.assertEqual(recorder.events, [])
