"""
Test Configuration and Utilities

Common base classes and helper functions for componentry tests
"""

import unittest
from typing import Any, Type

from componentry import ComponentContainer, ComponentDefinition, ComponentModule


class ContainerTestCase(unittest.TestCase):
    """
    Base test case class for container tests.

    Creates a fresh container before each test and closes it afterwards,
    so destroy callbacks of singletons created by a test always run.
    """

    container_options: dict = {}

    def setUp(self):
        """Create a fresh container before each test"""
        self.container = ComponentContainer(**self.container_options)

    def tearDown(self):
        """Close the container after each test"""
        self.container.close()

    def define(self, name: str, component_type: Any = None, **attributes: Any) -> ComponentDefinition:
        """Register a single definition on the test container."""
        definition = ComponentDefinition(component_type=component_type, **attributes)
        self.container.register_definition(name, definition)
        return definition


def create_simple_module(**components: Type) -> ComponentModule:
    """
    Create a module with a singleton definition per keyword argument.

    Classes must be constructible without arguments.

    Example:
        >>> module = create_simple_module(database=Database, cache=CacheService)
        >>> container.load_modules([module])
    """
    module = ComponentModule()
    with module:
        for name, cls in components.items():
            module.singleton(name, cls)
    return module
