"""Module for an in memory control plane client used in tests."""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
import io
import itertools
import logging
import threading
from typing import BinaryIO, TypeVar

from mashumaro.exceptions import InvalidFieldValue, MissingField

from apphost.config import InMemoryKubernetesConfig
from apphost.exceptions import (
    MalformedResourceError,
    ObjectNotFoundError,
    UnsupportedOperationError,
)

from .kubernetes_service import KubernetesService
from .model import CustomResource, Service, ServiceStatus, WatchEventType

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=CustomResource)

SERVICE_READY_STATE = "Ready"


@dataclass(eq=False)
class _Subscription:
    """A single watcher and the queue of events it has not consumed yet."""

    cls: type[CustomResource]
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue[tuple[WatchEventType, CustomResource]] = field(
        default_factory=asyncio.Queue
    )

    def accepts(self, obj: CustomResource) -> bool:
        return isinstance(obj, self.cls)

    def publish(self, event_type: WatchEventType, obj: CustomResource) -> bool:
        """Queue an event without ever blocking the publisher.

        Returns False when the event loop of the watcher has been closed.
        """
        if self.loop.is_closed():
            return False
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None
        if running_loop is self.loop:
            self.queue.put_nowait((event_type, obj))
            return True
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, (event_type, obj))
        except RuntimeError:
            # Loop closed after the check above
            return False
        return True


def _clone(obj: T) -> T:
    """Return a deep copy of the object by round tripping the wire format."""
    try:
        clone = type(obj).from_json(obj.to_json())
    except (
        TypeError, ValueError, LookupError, MissingField, InvalidFieldValue
    ) as err:
        raise MalformedResourceError(
            f"Resource {obj.resource_id} could not be serialized: {err}"
        ) from err
    # Values of the wrong type are coerced on the way through
    if clone != obj:
        raise MalformedResourceError(
            f"Resource {obj.resource_id} does not survive serialization unchanged"
        )
    return clone


def _matches_namespace(obj: CustomResource, namespace: str | None) -> bool:
    return obj.namespace == (namespace or "")


class InMemoryKubernetesService(KubernetesService):
    """In-memory implementation of the KubernetesService interface.

    Every created object is kept in creation order and broadcast to active
    watchers. Services are assigned an address and port the way the real
    control plane would. Deleting objects is not supported.
    """

    def __init__(self, config: InMemoryKubernetesConfig | None = None) -> None:
        """Initialize the InMemoryKubernetesService."""
        self._config = config or InMemoryKubernetesConfig()
        self._created: list[CustomResource] = []
        self._subscriptions: list[_Subscription] = []
        self._lock = threading.Lock()
        self._ports = itertools.count(self._config.start_of_auto_port_range + 1)

    @property
    def created_resources(self) -> list[CustomResource]:
        """Return all objects created so far, in creation order."""
        return list(self._created)

    async def get(self, cls: type[T], name: str, namespace: str | None = None) -> T:
        """Return the object of the given type with the given name."""
        for obj in list(self._created):
            if (
                isinstance(obj, cls)
                and obj.name == name
                and _matches_namespace(obj, namespace)
            ):
                return obj
        raise ObjectNotFoundError(f"Resource '{namespace or ''}/{name}' not found")

    async def create(self, obj: T) -> T:
        """Store a copy of the object and notify watchers."""
        res = _clone(obj)

        # "Allocate" port for a service.
        if isinstance(res, Service):
            if res.status is None:
                res.status = ServiceStatus()
            res.status.effective_address = (
                res.spec.address
                if res.spec.address is not None
                else self._config.default_address
            )
            res.status.effective_port = (
                res.spec.port if res.spec.port is not None else next(self._ports)
            )
            res.status.state = SERVICE_READY_STATE

        _LOGGER.debug("Creating object %s", res.resource_id)
        with self._lock:
            self._created.append(res)
            for subscription in list(self._subscriptions):
                if not subscription.accepts(res):
                    continue
                if not subscription.publish(WatchEventType.ADDED, res):
                    _LOGGER.debug(
                        "Dropping watch for kind %s with a closed event loop",
                        subscription.cls.kind,
                    )
                    self._subscriptions.remove(subscription)

        return res

    async def delete(self, cls: type[T], name: str, namespace: str | None = None) -> T:
        """Deleting objects is not supported."""
        raise UnsupportedOperationError(
            f"Deleting {cls.kind} '{namespace or ''}/{name}' is not supported"
        )

    async def list(self, cls: type[T], namespace: str | None = None) -> list[T]:
        """List all objects of the given type in the namespace."""
        return [
            obj
            for obj in list(self._created)
            if isinstance(obj, cls) and _matches_namespace(obj, namespace)
        ]

    async def watch(
        self, cls: type[T], namespace: str | None = None
    ) -> AsyncGenerator[tuple[WatchEventType, T], None]:
        """
        Watch for objects of the given type being created.

        Existing objects are replayed as ADDED events first. The namespace is
        not applied to the live stream, so every new object of the type is
        delivered regardless of its namespace.
        """
        subscription = _Subscription(cls, asyncio.get_running_loop())
        with self._lock:
            self._subscriptions.append(subscription)
            for obj in self._created:
                if subscription.accepts(obj):
                    subscription.queue.put_nowait((WatchEventType.ADDED, obj))
        _LOGGER.debug("Started watch for kind %s (namespace: %s)", cls.kind, namespace)

        try:
            while True:
                event_type, obj = await subscription.queue.get()
                yield event_type, obj  # type: ignore[misc]
        except asyncio.CancelledError:
            _LOGGER.debug("Watch for kind %s cancelled", cls.kind)
            raise
        finally:
            _LOGGER.debug("Cleaning up subscription for watch (kind: %s)", cls.kind)
            with self._lock:
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

    async def get_log_stream(
        self,
        obj: CustomResource,
        log_stream_type: str,
        follow: bool = True,
        timestamps: bool = False,
    ) -> BinaryIO:
        """Return a fixed log line naming the object and stream."""
        return io.BytesIO(f"Logs for {obj.name} ({log_stream_type})".encode())

    def num_subscriptions(self) -> int:
        """Return the number of active watches."""
        with self._lock:
            return len(self._subscriptions)
