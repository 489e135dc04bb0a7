"""
Error Messages Tests

Tests for error message quality and exception hierarchy.
Verifies that error messages are helpful and contain sufficient context.
"""

import unittest

from componentry import AutowireMode, ComponentContainer, ComponentDefinition, ComponentModule
from componentry.exceptions import (
    AmbiguousResolutionError,
    CircularWiringError,
    ComponentCreationError,
    ComponentNotOfRequiredTypeError,
    ComponentryError,
    ContainerClosedError,
    DefinitionError,
    DefinitionNotFoundError,
    DuplicateDefinitionError,
    ScopeNotActiveError,
    TypeConversionError,
    UnsatisfiedDependencyError,
)
from fixtures import Controller, Database, ServiceWithoutHint, UserService


class TestExceptionHierarchy(unittest.TestCase):
    """Test that all exceptions inherit from ComponentryError."""

    def test_all_errors_inherit_from_base(self):
        for error in (
            DefinitionError("test"),
            DefinitionNotFoundError("test"),
            DuplicateDefinitionError("test"),
            ContainerClosedError("test"),
            ScopeNotActiveError("test"),
            TypeConversionError("test"),
            ComponentNotOfRequiredTypeError("db", int, str),
            ComponentCreationError("db", "test"),
        ):
            self.assertIsInstance(error, ComponentryError)

    def test_creation_error_family(self):
        """Unsatisfied, ambiguous and circular errors are creation errors."""
        self.assertIsInstance(UnsatisfiedDependencyError("db", "x", "test"), ComponentCreationError)
        self.assertIsInstance(AmbiguousResolutionError("db", "x", ["a", "b"]), UnsatisfiedDependencyError)
        self.assertIsInstance(CircularWiringError("db", "test"), ComponentCreationError)

    def test_catch_all_componentry_errors(self):
        """ComponentryError catches every container failure."""
        container = ComponentContainer()
        caught = False
        try:
            container.get("missing")
        except ComponentryError:
            caught = True
        self.assertTrue(caught)


class TestComponentCreationErrorFormat(unittest.TestCase):
    """Test the rendering of creation errors."""

    def test_name_phase_and_detail(self):
        error = ComponentCreationError("repo", "Constructor threw exception", phase="instantiation")

        self.assertEqual(
            str(error),
            "Error creating component with name 'repo' during instantiation: "
            "Constructor threw exception",
        )

    def test_nested_exception(self):
        cause = RuntimeError("boom")
        error = ComponentCreationError("repo", "Constructor threw exception", cause=cause)

        self.assertEqual(
            str(error),
            "Error creating component with name 'repo': Constructor threw exception; "
            "nested exception is RuntimeError: boom",
        )
        self.assertIs(error.cause, cause)

    def test_without_component_name(self):
        error = ComponentCreationError(None, "Lookup failed")

        self.assertEqual(str(error), "Lookup failed")

    def test_unsatisfied_mentions_injection_point(self):
        error = UnsatisfiedDependencyError("service", "repository", "No candidate")

        self.assertEqual(error.injection_point, "repository")
        self.assertIn("Unsatisfied dependency expressed through 'repository': No candidate", str(error))

    def test_ambiguous_lists_candidates(self):
        error = AmbiguousResolutionError("service", "repository", ["memory", "sql"])

        self.assertEqual(error.candidates, ["memory", "sql"])
        self.assertIn("expected single matching candidate but found 2: memory, sql", str(error))

    def test_not_of_required_type(self):
        error = ComponentNotOfRequiredTypeError("db", Database, str)

        self.assertEqual(
            str(error),
            "Component 'db' is expected to be of type Database but was actually of type str",
        )


class TestDefinitionNotFoundMessage(unittest.TestCase):
    """Test DefinitionNotFoundError message quality."""

    def setUp(self):
        self.container = ComponentContainer()
        self.container.register_definition("db", ComponentDefinition(Database))

    def tearDown(self):
        self.container.close()

    def test_message_includes_name(self):
        with self.assertRaises(DefinitionNotFoundError) as ctx:
            self.container.get("cache")

        self.assertIn("No component named 'cache' is registered", str(ctx.exception))

    def test_message_lists_registered_names(self):
        with self.assertRaises(DefinitionNotFoundError) as ctx:
            self.container.get("cache")

        self.assertIn("Registered names: db", str(ctx.exception))

    def test_message_includes_hint(self):
        with self.assertRaises(DefinitionNotFoundError) as ctx:
            self.container.get("cache")

        self.assertIn('module.define("cache", SomeClass)', str(ctx.exception))


class TestDuplicateDefinitionMessage(unittest.TestCase):
    """Test DuplicateDefinitionError message quality."""

    def test_message_includes_name(self):
        module = ComponentModule()
        with module:
            module.singleton("db", Database)
        container = ComponentContainer()
        container.load_modules([module])

        with self.assertRaises(DuplicateDefinitionError) as ctx:
            container.load_modules([module])

        self.assertIn("Cannot register component definition for 'db'", str(ctx.exception))
        container.close()


class TestClosedContainerMessage(unittest.TestCase):
    """Test ContainerClosedError message quality."""

    def test_message_indicates_closed_state(self):
        container = ComponentContainer()
        container.close()

        with self.assertRaises(ContainerClosedError) as ctx:
            container.register_definition("db", ComponentDefinition(Database))

        self.assertIn("Container has been closed", str(ctx.exception))


class TestCreationFailureMessages(unittest.TestCase):
    """Test messages of failures deep inside a dependency graph."""

    def setUp(self):
        self.container = ComponentContainer()

    def tearDown(self):
        self.container.close()

    def test_missing_type_hint_message_includes_parameter_name(self):
        self.container.register_definition(
            "svc", ComponentDefinition(ServiceWithoutHint, autowire_mode=AutowireMode.CONSTRUCTOR)
        )

        with self.assertRaises(UnsatisfiedDependencyError) as ctx:
            self.container.get("svc")

        message = str(ctx.exception)
        self.assertIn("Error creating component with name 'svc'", message)
        self.assertIn("'dependency'", message)
        self.assertIn("add a type annotation", message)

    def test_message_shows_dependency_chain(self):
        """The outermost error names the requested component, the nested one the failing one."""
        self.container.register_definition(
            "service", ComponentDefinition(UserService, autowire_mode=AutowireMode.CONSTRUCTOR)
        )
        self.container.register_definition(
            "controller", ComponentDefinition(Controller, autowire_mode=AutowireMode.BY_TYPE)
        )

        with self.assertRaises(UnsatisfiedDependencyError) as ctx:
            self.container.get("controller")

        error = ctx.exception
        self.assertEqual(error.component_name, "controller")
        self.assertEqual(error.injection_point, "service")
        self.assertEqual(error.phase, "population")
        self.assertEqual(error.cause.component_name, "service")
        self.assertIn("nested exception is UnsatisfiedDependencyError", str(error))
        self.assertIn("No qualifying component of type 'Repository'", str(error))

    def test_unresolvable_component_type(self):
        self.container.register_definition(
            "svc", ComponentDefinition("fixtures.DoesNotExist")
        )

        with self.assertRaises(DefinitionError) as ctx:
            self.container.get("svc")

        self.assertEqual(ctx.exception.component_name, "svc")
        self.assertIn("Cannot resolve component type 'fixtures.DoesNotExist'", str(ctx.exception))

    def test_required_type_mismatch(self):
        self.container.register_definition("db", ComponentDefinition(Database))

        with self.assertRaises(ComponentNotOfRequiredTypeError) as ctx:
            self.container.get("db", required_type=UserService)

        self.assertEqual(ctx.exception.actual_type, Database)


if __name__ == '__main__':
    unittest.main()
