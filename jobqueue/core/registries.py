from collections.abc import Awaitable, Callable
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

from jobqueue.core.exceptions import HandlerNotFoundError, NotFoundError

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name, replacing any previous one."""
        self._implementations[name] = implementation

    def unregister(self, name: str) -> bool:
        """Remove an implementation. Returns False if nothing was registered."""
        return self._implementations.pop(name, None) is not None

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise NotFoundError(
                f"No {self.name.lower()} implementation registered with name: {name}",
                {"name": name},
            )
        return self._implementations[name]

    def find(self, name: str) -> T | None:
        """Get an implementation by name, or None."""
        return self._implementations.get(name)

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._implementations


# Job Registry - background processing handlers
class JobHandler(Protocol):
    """Protocol for class-based job handlers."""

    async def handle(self, job: Any) -> Any:
        """
        Handle a background job.

        Args:
            job: Read-only JobView snapshot of the job being processed

        Returns:
            Optional result stored on the completed job
        """
        ...


HandlerFunc = Callable[[Any], Awaitable[Any] | Any]
Handler = JobHandler | HandlerFunc


class JobRegistry(Registry[Handler]):
    """Registry for background job handlers, keyed by job type."""

    def __init__(self):
        super().__init__("Job")

    def get(self, name: str) -> Handler:
        if name not in self._implementations:
            raise HandlerNotFoundError(name)
        return self._implementations[name]


class PayloadModelRegistry(Registry[type[BaseModel]]):
    """Registry binding a job type to the pydantic model of its payload."""

    def __init__(self):
        super().__init__("Payload")
