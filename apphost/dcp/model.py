"""Representation of the objects managed by the developer control plane.

The control plane speaks a Kubernetes style API, so every object has a kind,
an apiVersion and metadata with a name and optional namespace. Objects are
exchanged as JSON using the Kubernetes camelCase field names.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import json
import logging
from typing import Any, ClassVar, TypeVar

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin

from apphost.exceptions import InputException

__all__ = [
    "API_VERSION",
    "NamedResource",
    "ObjectMetadata",
    "CustomResource",
    "Service",
    "ServiceSpec",
    "ServiceStatus",
    "Container",
    "ContainerSpec",
    "ContainerStatus",
    "ContainerPort",
    "EnvVar",
    "Executable",
    "ExecutableSpec",
    "ExecutableStatus",
    "Endpoint",
    "EndpointSpec",
    "WatchEventType",
    "LogStreamType",
    "parse_raw_obj",
]

_LOGGER = logging.getLogger(__name__)

API_VERSION = "usvc-dev.developer.microsoft.com/v1"

SERVICE_KIND = "Service"
CONTAINER_KIND = "Container"
EXECUTABLE_KIND = "Executable"
ENDPOINT_KIND = "Endpoint"

# Fields added by the wire format rather than held on the dataclass
_TYPE_FIELDS = ("apiVersion", "kind")


class WatchEventType(StrEnum):
    """The type of change delivered by a watch."""

    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"


class LogStreamType(StrEnum):
    """Log streams that may be requested for a Container or Executable."""

    STDOUT = "stdout"
    STDERR = "stderr"
    STARTUP_STDOUT = "startup_stdout"
    STARTUP_STDERR = "startup_stderr"


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a control plane resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class WireModel(DataClassJSONMixin):
    """Base class for objects serialized with the control plane field names."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass
class ObjectMetadata(WireModel):
    """Standard object metadata."""

    name: str
    """The name of the object, unique for the kind within a namespace."""

    namespace: str | None = None
    """The namespace of the object, unset for the default namespace."""

    labels: dict[str, str] | None = None

    annotations: dict[str, str] | None = None


@dataclass
class CustomResource(WireModel):
    """Base class for all control plane objects."""

    kind: ClassVar[str] = ""
    """The kind of the object."""

    api_version: ClassVar[str] = API_VERSION
    """The apiVersion of the object."""

    metadata: ObjectMetadata
    """Name and namespace of the object."""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        """Return the namespace, with the default namespace as an empty string."""
        return self.metadata.namespace or ""

    @property
    def resource_id(self) -> NamedResource:
        return NamedResource(self.kind, self.metadata.namespace, self.metadata.name)

    def __post_serialize__(self, d: dict[Any, Any]) -> dict[Any, Any]:
        return {"apiVersion": self.api_version, "kind": self.kind, **d}

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        if (kind := d.get("kind")) is not None and kind != cls.kind:
            raise InputException(f"Invalid {cls.__name__} object with kind '{kind}'")
        return {k: v for k, v in d.items() if k not in _TYPE_FIELDS}


@dataclass
class ServiceSpec(WireModel):
    """The desired state of a Service."""

    address: str | None = None
    """The desired address for the service, or None to let the control plane pick."""

    port: int | None = None
    """The desired port for the service, or None to allocate one."""

    protocol: str = "TCP"

    address_allocation_mode: str | None = field(
        default=None, metadata=field_options(alias="addressAllocationMode")
    )


@dataclass
class ServiceStatus(WireModel):
    """The observed state of a Service."""

    effective_address: str | None = field(
        default=None, metadata=field_options(alias="effectiveAddress")
    )
    """The address the service is actually bound to."""

    effective_port: int | None = field(
        default=None, metadata=field_options(alias="effectivePort")
    )
    """The port the service is actually bound to."""

    state: str | None = None


@dataclass
class Service(CustomResource):
    """A network service that Containers and Executables can be reached through."""

    kind: ClassVar[str] = SERVICE_KIND

    spec: ServiceSpec = field(default_factory=ServiceSpec)

    status: ServiceStatus | None = None


@dataclass
class EnvVar(WireModel):
    """A single environment variable."""

    name: str
    value: str | None = None


@dataclass
class ContainerPort(WireModel):
    """A port exposed by a Container."""

    container_port: int = field(metadata=field_options(alias="containerPort"))
    host_port: int | None = field(default=None, metadata=field_options(alias="hostPort"))
    protocol: str = "TCP"


@dataclass
class ContainerSpec(WireModel):
    """The desired state of a Container."""

    image: str
    env: list[EnvVar] | None = None
    args: list[str] | None = None
    ports: list[ContainerPort] | None = None


@dataclass
class ContainerStatus(WireModel):
    """The observed state of a Container."""

    state: str | None = None
    container_id: str | None = field(
        default=None, metadata=field_options(alias="containerId")
    )
    exit_code: int | None = field(default=None, metadata=field_options(alias="exitCode"))


@dataclass
class Container(CustomResource):
    """A container run by the control plane."""

    kind: ClassVar[str] = CONTAINER_KIND

    spec: ContainerSpec = field(default_factory=lambda: ContainerSpec(image=""))

    status: ContainerStatus | None = None


@dataclass
class ExecutableSpec(WireModel):
    """The desired state of an Executable."""

    executable_path: str = field(metadata=field_options(alias="executablePath"))
    working_directory: str | None = field(
        default=None, metadata=field_options(alias="workingDirectory")
    )
    args: list[str] | None = None
    env: list[EnvVar] | None = None
    execution_type: str | None = field(
        default=None, metadata=field_options(alias="executionType")
    )


@dataclass
class ExecutableStatus(WireModel):
    """The observed state of an Executable."""

    state: str | None = None
    pid: int | None = None
    exit_code: int | None = field(default=None, metadata=field_options(alias="exitCode"))
    stdout_file: str | None = field(
        default=None, metadata=field_options(alias="stdOutFile")
    )
    stderr_file: str | None = field(
        default=None, metadata=field_options(alias="stdErrFile")
    )


@dataclass
class Executable(CustomResource):
    """A process run by the control plane."""

    kind: ClassVar[str] = EXECUTABLE_KIND

    spec: ExecutableSpec = field(
        default_factory=lambda: ExecutableSpec(executable_path="")
    )

    status: ExecutableStatus | None = None


@dataclass
class EndpointSpec(WireModel):
    """Where a Service is served from."""

    service_namespace: str | None = field(
        default=None, metadata=field_options(alias="serviceNamespace")
    )
    service_name: str | None = field(
        default=None, metadata=field_options(alias="serviceName")
    )
    address: str | None = None
    port: int | None = None


@dataclass
class Endpoint(CustomResource):
    """A concrete address and port implementing a Service."""

    kind: ClassVar[str] = ENDPOINT_KIND

    spec: EndpointSpec = field(default_factory=EndpointSpec)


T = TypeVar("T", bound=CustomResource)

RESOURCE_KINDS: dict[str, type[CustomResource]] = {
    cls.kind: cls for cls in (Service, Container, Executable, Endpoint)
}


def parse_raw_obj(doc: dict[str, Any]) -> CustomResource:
    """Parse a raw control plane object into its CustomResource type."""
    if not (kind := doc.get("kind")):
        raise InputException(f"Invalid object missing kind: {doc}")
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if api_version != API_VERSION:
        raise InputException(f"Invalid object expected '{API_VERSION}': {doc}")
    if not (cls := RESOURCE_KINDS.get(kind)):
        raise InputException(f"Unsupported object kind '{kind}': {doc}")
    return cls.from_dict(doc)


def parse_json(content: str) -> CustomResource:
    """Parse a serialized control plane object."""
    return parse_raw_obj(json.loads(content))
