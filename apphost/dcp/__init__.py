"""
The dcp module models the objects of the developer control plane, a
Kubernetes style API server that runs the Containers, Executables and
Services of an application on the local machine.

- `model` holds the typed control plane objects and their JSON wire format.
- `KubernetesService` is the client interface for the control plane API.
- `InMemoryKubernetesService` is an in-memory fake of the client for tests.
"""

from .kubernetes_service import KubernetesService
from .in_memory import InMemoryKubernetesService
from .model import (
    Container,
    CustomResource,
    Endpoint,
    Executable,
    LogStreamType,
    NamedResource,
    ObjectMetadata,
    Service,
    ServiceSpec,
    ServiceStatus,
    WatchEventType,
)

__all__ = [
    "KubernetesService",
    "InMemoryKubernetesService",
    "Container",
    "CustomResource",
    "Endpoint",
    "Executable",
    "LogStreamType",
    "NamedResource",
    "ObjectMetadata",
    "Service",
    "ServiceSpec",
    "ServiceStatus",
    "WatchEventType",
]
