"""Application composition model.

An application is a set of named resources added to a
`DistributedApplicationBuilder`. Each resource carries annotations that
describe how it participates in the application, for example how it is
written to the deployment manifest.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import re
from typing import Any, Generic, TypeVar, TYPE_CHECKING

from .exceptions import DistributedApplicationException, ObjectNotFoundError

if TYPE_CHECKING:
    from .manifest import ManifestPublishingContext

__all__ = [
    "Resource",
    "ResourceWithParameters",
    "ResourceAnnotation",
    "ManifestPublishingCallbackAnnotation",
    "ReferenceExpression",
    "ResourceBuilder",
    "DistributedApplicationBuilder",
    "validate_resource_name",
]

_LOGGER = logging.getLogger(__name__)

MAX_RESOURCE_NAME_LENGTH = 64

# ASCII letters, digits and single hyphens, starting with a letter and not
# ending with a hyphen.
_RESOURCE_NAME_RE = re.compile(r"^[A-Za-z](?:-?[A-Za-z0-9])*$")

ManifestPublishingCallback = Callable[["ManifestPublishingContext"], Awaitable[None]]


@dataclass
class ResourceAnnotation:
    """Base class for metadata attached to a resource."""


@dataclass
class ManifestPublishingCallbackAnnotation(ResourceAnnotation):
    """Writes the manifest entry of a resource.

    A callback of None means the resource is left out of the manifest.
    """

    callback: ManifestPublishingCallback | None


class Resource:
    """A named component of the application."""

    def __init__(self, name: str) -> None:
        """Initialize Resource."""
        self.name = name
        self.annotations: list[ResourceAnnotation] = []

    def annotations_of_type(self, cls: type[ResourceAnnotation]) -> list[Any]:
        """Return the annotations of the given type in the order they were added."""
        return [a for a in self.annotations if isinstance(a, cls)]

    @property
    def manifest_publishing_callback(self) -> ManifestPublishingCallbackAnnotation | None:
        """Return the annotation used to write this resource to the manifest."""
        if annotations := self.annotations_of_type(ManifestPublishingCallbackAnnotation):
            return annotations[-1]
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class ResourceWithParameters(Resource):
    """A resource that takes input parameters when it is deployed."""

    def __init__(self, name: str) -> None:
        """Initialize ResourceWithParameters."""
        super().__init__(name)
        self.parameters: dict[str, Any] = {}


@dataclass
class ReferenceExpression:
    """A string built from values that are only known at deployment time.

    The format string uses `{}` placeholders filled in by the value expression
    of each value, e.g. `{signalr.outputs.hostName}`.
    """

    format_string: str
    values: list[Any] = field(default_factory=list)

    @property
    def value_expression(self) -> str:
        """Return the expression written to the manifest."""
        return self.format_string.format(
            *[getattr(v, "value_expression", v) for v in self.values]
        )

    def __str__(self) -> str:
        return self.value_expression


R = TypeVar("R", bound=Resource)


class ResourceBuilder(Generic[R]):
    """Configures a resource that has been added to the application."""

    def __init__(self, app_builder: "DistributedApplicationBuilder", resource: R) -> None:
        """Initialize ResourceBuilder."""
        self.application_builder = app_builder
        self.resource = resource

    def with_annotation(self, annotation: ResourceAnnotation) -> "ResourceBuilder[R]":
        """Attach an annotation to the resource."""
        self.resource.annotations.append(annotation)
        return self

    def with_parameter(self, name: str, value: Any = None) -> "ResourceBuilder[R]":
        """Declare an input parameter of the resource.

        A value of None means the parameter is supplied at deployment time.
        """
        if not isinstance(self.resource, ResourceWithParameters):
            raise DistributedApplicationException(
                f"Resource '{self.resource.name}' does not accept parameters"
            )
        self.resource.parameters[name] = value
        return self

    def with_manifest_publishing_callback(
        self, callback: ManifestPublishingCallback | None
    ) -> "ResourceBuilder[R]":
        """Replace the callback used to write the resource to the manifest."""
        self.resource.annotations = [
            a
            for a in self.resource.annotations
            if not isinstance(a, ManifestPublishingCallbackAnnotation)
        ]
        return self.with_annotation(ManifestPublishingCallbackAnnotation(callback))


def validate_resource_name(name: str) -> None:
    """Raise an exception if the name can't be used for a resource."""
    if not name:
        raise DistributedApplicationException("Resource name must not be empty")
    if len(name) > MAX_RESOURCE_NAME_LENGTH:
        raise DistributedApplicationException(
            f"Resource name '{name}' is longer than {MAX_RESOURCE_NAME_LENGTH} characters"
        )
    if not _RESOURCE_NAME_RE.match(name):
        raise DistributedApplicationException(
            f"Resource name '{name}' is invalid: names must start with an ASCII letter "
            "and contain only ASCII letters, digits and single hyphens, "
            "and must not end with a hyphen"
        )


class DistributedApplicationBuilder:
    """Holds the resources that make up an application."""

    def __init__(self, name: str = "app") -> None:
        """Initialize DistributedApplicationBuilder."""
        self.name = name
        self._resources: dict[str, Resource] = {}
        self.services: dict[type, Any] = {}
        """Singleton services registered by extensions, keyed by type."""

    @property
    def resources(self) -> list[Resource]:
        """Return the resources in the order they were added."""
        return list(self._resources.values())

    def add_resource(self, resource: R) -> ResourceBuilder[R]:
        """Add a resource to the application."""
        validate_resource_name(resource.name)
        key = resource.name.lower()
        if key in self._resources:
            raise DistributedApplicationException(
                f"Cannot add resource of type '{type(resource).__name__}' with name "
                f"'{resource.name}' because resource of type "
                f"'{type(self._resources[key]).__name__}' with that name already exists"
            )
        _LOGGER.debug("Adding resource %s", resource)
        self._resources[key] = resource
        return self.create_resource_builder(resource)

    def create_resource_builder(self, resource: R) -> ResourceBuilder[R]:
        """Return a builder for a resource without adding it to the application."""
        return ResourceBuilder(self, resource)

    def get_resource(self, name: str) -> Resource:
        """Return the resource with the given name."""
        if (resource := self._resources.get(name.lower())) is None:
            raise ObjectNotFoundError(f"Resource '{name}' not found")
        return resource
