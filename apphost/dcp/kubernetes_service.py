"""Client interface for the developer control plane API."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from typing import BinaryIO, TypeVar

from .model import CustomResource, WatchEventType

T = TypeVar("T", bound=CustomResource)


class KubernetesService(ABC):
    """Abstract base class for a client of the control plane API server."""

    @abstractmethod
    async def get(self, cls: type[T], name: str, namespace: str | None = None) -> T:
        """Return the object of the given type with the given name.

        Raises:
            ObjectNotFoundError: If there is no such object.
        """

    @abstractmethod
    async def create(self, obj: T) -> T:
        """Create the object and return the object as stored by the server."""

    @abstractmethod
    async def delete(self, cls: type[T], name: str, namespace: str | None = None) -> T:
        """Delete the object of the given type and return it."""

    @abstractmethod
    async def list(self, cls: type[T], namespace: str | None = None) -> list[T]:
        """List all objects of the given type in the namespace."""

    @abstractmethod
    def watch(
        self, cls: type[T], namespace: str | None = None
    ) -> AsyncGenerator[tuple[WatchEventType, T], None]:
        """
        Watch for changes to objects of the given type.

        This is an asynchronous iterator that first yields every existing object
        of the type as an ADDED event, then yields changes as they happen. It
        never completes on its own: the caller stops it by cancelling the task
        consuming it or by closing the generator, and is expected to apply its
        own timeouts.

        Args:
            cls: The type of resource to watch (e.g. Service, Executable).
            namespace: The namespace to watch.

        Yields:
            A tuple of the event type and the changed object.
        """

    @abstractmethod
    async def get_log_stream(
        self,
        obj: CustomResource,
        log_stream_type: str,
        follow: bool = True,
        timestamps: bool = False,
    ) -> BinaryIO:
        """Return a stream with the logs of a Container or Executable."""
