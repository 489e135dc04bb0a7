"""
Test Fixtures

Common test classes used across test modules
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from componentry import DisposableComponent, InitializingComponent, priority


class Database:
    """Test database class"""

    def __init__(self):
        self.name = "TestDB"
        self.connected = False
        self.closed = False

    def connect(self):
        self.connected = True

    def close(self):
        self.closed = True


class CacheService:
    """Test cache service"""

    def __init__(self):
        self.cache = {}


class UserRepository:
    """Test repository with constructor dependencies"""

    def __init__(self, db: Database, cache: CacheService):
        self.db = db
        self.cache = cache


class CounterService:
    """Service with mutable state for testing singleton behavior"""

    def __init__(self):
        self.counter = 0

    def increment(self):
        self.counter += 1
        return self.counter


class ServiceWithoutHint:
    """Service with missing type hint - for error testing"""

    def __init__(self, dependency):  # No type hint!
        self.dependency = dependency


class Repository(ABC):
    """Abstract repository"""

    @abstractmethod
    def find(self, key: str) -> Optional[str]:
        pass


class InMemoryRepository(Repository):
    def __init__(self):
        self.items = {}

    def find(self, key: str) -> Optional[str]:
        return self.items.get(key)


class SqlRepository(Repository):
    def find(self, key: str) -> Optional[str]:
        return None


@priority(1)
class PreferredRepository(Repository):
    def find(self, key: str) -> Optional[str]:
        return "preferred"


@priority(5)
class FallbackRepository(Repository):
    def find(self, key: str) -> Optional[str]:
        return "fallback"


class UserService:
    """Service with a constructor dependency on an abstract type"""

    def __init__(self, repository: Repository):
        self.repository = repository


class Controller:
    """Component wired through an annotated property"""

    service: UserService


class Settings:
    """Component with simple-typed properties"""

    host: str = "localhost"
    port: int = 8080
    debug: bool = False
    tags: List[str] = []


class Pool:
    """Component with a property setter"""

    def __init__(self):
        self._size = 1

    @property
    def size(self) -> int:
        return self._size

    @size.setter
    def size(self, value: int):
        if value < 1:
            raise ValueError("size must be positive")
        self._size = value


class ServiceA:
    """Property-injected half of a circular reference"""

    b: "ServiceB"


class ServiceB:
    """Property-injected half of a circular reference"""

    a: ServiceA


class CtorA:
    """Constructor-injected half of an unresolvable cycle"""

    def __init__(self, b: "CtorB"):
        self.b = b


class CtorB:
    """Constructor-injected half of an unresolvable cycle"""

    def __init__(self, a: CtorA):
        self.a = a


class LifecycleRecorder(InitializingComponent, DisposableComponent):
    """Records lifecycle callbacks in the order they run"""

    label: str = "recorder"

    def __init__(self):
        self.events: List[str] = []

    def after_properties_set(self):
        self.events.append(f"after_properties_set:{self.label}")

    def setup(self):
        self.events.append("setup")

    def destroy(self):
        self.events.append("destroy")

    def teardown(self):
        self.events.append("teardown")
