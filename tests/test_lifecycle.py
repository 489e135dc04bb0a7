"""
Lifecycle Tests

Tests for initialization and destruction:
- Aware callbacks
- InitializingComponent and custom init methods
- DisposableComponent, custom and inferred destroy methods
- Destruction order (dependents first)
- Container close and context manager
"""

import unittest
from typing import List

from componentry import (
    INFER_METHOD,
    SCOPE_PROTOTYPE,
    AutowireMode,
    ComponentContainer,
    ComponentCreationError,
    ComponentModule,
    ComponentReference,
    ContainerAware,
    ContainerClosedError,
    DefinitionError,
    DisposableComponent,
    NameAware,
    PropertyValues,
    TypeLoader,
    TypeLoaderAware,
)
from conftest import ContainerTestCase, create_simple_module
from fixtures import Database, LifecycleRecorder

events: List[str] = []


class AwareComponent(NameAware, TypeLoaderAware, ContainerAware):
    def __init__(self):
        self.calls = []

    def set_component_name(self, name: str) -> None:
        self.calls.append(("name", name))

    def set_type_loader(self, type_loader: TypeLoader) -> None:
        self.calls.append(("type_loader", type_loader))

    def set_container(self, container: ComponentContainer) -> None:
        self.calls.append(("container", container))


class Connection:
    def __init__(self):
        self.closed = False
        self.shut_down = False

    def close(self):
        self.closed = True

    def shutdown(self):
        self.shut_down = True


class Executor:
    def __init__(self):
        self.shut_down = False

    def shutdown(self):
        self.shut_down = True


class NeedsArgument:
    def start(self, when):
        pass


class Tracked(DisposableComponent):
    label: str = ""
    dependency: object = None

    def destroy(self) -> None:
        events.append(f"destroy:{self.label}")


class FailingDisposable(DisposableComponent):
    def destroy(self) -> None:
        raise RuntimeError("cannot release")


class FailingInit:
    def start(self):
        raise RuntimeError("cannot start")


class TestAwareCallbacks(ContainerTestCase):
    """Tests for aware callbacks"""

    def test_callbacks_in_order(self):
        self.define("aware", AwareComponent)

        aware = self.container.get("aware")

        self.assertEqual(aware.calls, [
            ("name", "aware"),
            ("type_loader", self.container.type_loader),
            ("container", self.container),
        ])


class TestInitialization(ContainerTestCase):
    """Tests for init callbacks"""

    def test_after_properties_set_then_init_method(self):
        self.define("recorder", LifecycleRecorder, init_method_name="setup",
                    property_values=PropertyValues({"label": "main"}))

        recorder = self.container.get("recorder")

        self.assertEqual(recorder.events, ["after_properties_set:main", "setup"])

    def test_init_method_named_after_properties_set_runs_once(self):
        self.define("recorder", LifecycleRecorder, init_method_name="after_properties_set")

        self.assertEqual(self.container.get("recorder").events, ["after_properties_set:recorder"])

    def test_externally_managed_init_method_is_skipped(self):
        self.define("recorder", LifecycleRecorder, init_method_name="setup")
        self.container.get_merged_definition("recorder").register_externally_managed_init_method("setup")

        self.assertEqual(self.container.get("recorder").events, ["after_properties_set:recorder"])

    def test_missing_init_method(self):
        self.define("db", Database, init_method_name="open")

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("db")

        self.assertEqual(ctx.exception.phase, "initialization")
        self.assertIsInstance(ctx.exception.cause, DefinitionError)

    def test_missing_init_method_not_enforced(self):
        self.define("db", Database, init_method_name="open", enforce_init_method=False)

        self.assertIsInstance(self.container.get("db"), Database)

    def test_init_method_with_required_argument(self):
        self.define("needs", NeedsArgument, init_method_name="start")

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("needs")

        self.assertIn("must not require arguments", str(ctx.exception))

    def test_init_method_failure(self):
        self.define("failing", FailingInit, init_method_name="start")

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("failing")

        self.assertEqual(ctx.exception.phase, "initialization")
        self.assertIsInstance(ctx.exception.cause, RuntimeError)
        self.assertFalse(self.container.contains_singleton("failing"))

    def test_custom_init_method_on_database(self):
        self.define("db", Database, init_method_name="connect")

        self.assertTrue(self.container.get("db").connected)


class TestDestruction(ContainerTestCase):
    """Tests for destroy callbacks"""

    def setUp(self):
        super().setUp()
        events.clear()

    def test_destroy_then_custom_destroy_method(self):
        self.define("recorder", LifecycleRecorder, destroy_method_name="teardown")
        recorder = self.container.get("recorder")

        self.container.close()

        self.assertEqual(recorder.events[-2:], ["destroy", "teardown"])

    def test_custom_destroy_method(self):
        self.define("db", Database, destroy_method_name="close")
        db = self.container.get("db")

        self.container.destroy_singletons()

        self.assertTrue(db.closed)
        self.assertFalse(self.container.contains_singleton("db"))

    def test_missing_destroy_method_fails_creation(self):
        self.define("db", Database, destroy_method_name="release")

        with self.assertRaises(ComponentCreationError) as ctx:
            self.container.get("db")

        self.assertIn("Invalid destruction signature", str(ctx.exception))

    def test_inferred_destroy_method_prefers_close(self):
        self.define("connection", Connection, destroy_method_name=INFER_METHOD)
        connection = self.container.get("connection")

        self.container.close()

        self.assertTrue(connection.closed)
        self.assertFalse(connection.shut_down)

    def test_inferred_destroy_method_falls_back_to_shutdown(self):
        self.define("executor", Executor, destroy_method_name=INFER_METHOD)
        executor = self.container.get("executor")

        self.container.close()

        self.assertTrue(executor.shut_down)

    def test_prototypes_are_not_destroyed(self):
        self.define("recorder", LifecycleRecorder, scope=SCOPE_PROTOTYPE)
        recorder = self.container.get("recorder")

        self.container.close()

        self.assertNotIn("destroy", recorder.events)

    def test_destroy_component_for_prototype(self):
        self.define("recorder", LifecycleRecorder, scope=SCOPE_PROTOTYPE)
        recorder = self.container.get("recorder")

        self.container.destroy_component(recorder, "recorder")

        self.assertEqual(recorder.events[-1], "destroy")

    def test_dependents_destroyed_first(self):
        self.define("db", Tracked, property_values=PropertyValues({"label": "db"}))
        self.define("repo", Tracked, property_values=PropertyValues({
            "label": "repo", "dependency": ComponentReference("db"),
        }))
        self.define("service", Tracked, property_values=PropertyValues({
            "label": "service", "dependency": ComponentReference("repo"),
        }))
        self.container.get("service")

        self.container.close()

        self.assertEqual(events, ["destroy:service", "destroy:repo", "destroy:db"])

    def test_remove_definition_destroys_dependents(self):
        self.define("db", Tracked, property_values=PropertyValues({"label": "db"}))
        self.define("repo", Tracked, property_values=PropertyValues({
            "label": "repo", "dependency": ComponentReference("db"),
        }))
        self.define("other", Tracked, property_values=PropertyValues({"label": "other"}))
        self.container.preinstantiate_singletons()

        self.container.remove_definition("db")

        self.assertEqual(events, ["destroy:repo", "destroy:db"])
        self.assertFalse(self.container.contains_singleton("repo"))
        self.assertTrue(self.container.contains_singleton("other"))

    def test_destroy_failure_is_logged_and_skipped(self):
        self.define("failing", FailingDisposable)
        self.define("db", Database, destroy_method_name="close")
        self.container.get("failing")
        db = self.container.get("db")

        with self.assertLogs("componentry", level="WARNING") as logs:
            self.container.close()

        self.assertTrue(db.closed)
        self.assertIn("cannot release", "\n".join(logs.output))


class TestContainerClose(unittest.TestCase):
    """Tests for closing the container"""

    def test_context_manager_closes(self):
        module = ComponentModule()
        module.singleton("db", Database, destroy_method_name="close")

        with ComponentContainer() as container:
            container.load_modules([module])
            db = container.get("db")

        self.assertTrue(container.is_closed)
        self.assertTrue(db.closed)

    def test_closed_container_rejects_use(self):
        container = ComponentContainer()
        container.close()

        with self.assertRaises(ContainerClosedError) as ctx:
            container.get("anything")

        self.assertIn("Create a new ComponentContainer", str(ctx.exception))

    def test_close_is_idempotent(self):
        container = ComponentContainer()
        container.close()
        container.close()

        self.assertTrue(container.is_closed)

    def test_preinstantiate_skips_lazy_and_prototypes(self):
        container = ComponentContainer()
        module = create_simple_module(db=Database)
        with module:
            module.singleton("lazy", LifecycleRecorder, lazy_init=True)
            module.prototype("proto", LifecycleRecorder)
        container.load_modules([module])

        container.preinstantiate_singletons()

        self.assertTrue(container.contains_singleton("db"))
        self.assertFalse(container.contains_singleton("lazy"))
        self.assertFalse(container.contains_singleton("proto"))
        container.close()


class TestExternalInstances(ContainerTestCase):
    """Tests for lifecycle of instances the container does not manage"""

    def test_create_component(self):
        recorder = self.container.create_component(LifecycleRecorder)

        self.assertEqual(recorder.events, ["after_properties_set:recorder"])
        self.assertFalse(self.container.contains("recorder"))

    def test_configure_component(self):
        self.define("recorder", LifecycleRecorder, init_method_name="setup",
                    property_values=PropertyValues({"label": "configured"}))
        existing = LifecycleRecorder()

        result = self.container.configure_component(existing, "recorder")

        self.assertIs(result, existing)
        self.assertEqual(existing.events, ["after_properties_set:configured", "setup"])
        self.assertFalse(self.container.contains_singleton("recorder"))

    def test_initialize_component(self):
        aware = AwareComponent()

        self.container.initialize_component(aware, "external")

        self.assertEqual(aware.calls[0], ("name", "external"))

    def test_create_component_with_autowiring(self):
        self.define("db", Database)

        class NeedsDatabase:
            def __init__(self, db: Database):
                self.db = db

        created = self.container.create_component(NeedsDatabase, AutowireMode.CONSTRUCTOR)

        self.assertIs(created.db, self.container.get("db"))
        self.assertEqual(self.container.get_dependents("db"), [])


if __name__ == '__main__':
    unittest.main()
