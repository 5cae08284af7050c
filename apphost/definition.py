"""Application definition files.

An application definition is a YAML file listing the resources of an
application, for example:

```yaml
name: chat
resources:
  - name: signalr
    type: azure.signalr
```

It is loaded into a `DistributedApplicationBuilder` by calling the extension
method registered for each resource type.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, cast

import aiofiles
from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import ExtraKeysError, InvalidFieldValue, MissingField

from .application import DistributedApplicationBuilder, ResourceBuilder
from .azure.signalr import add_azure_signalr
from .exceptions import InputException

__all__ = [
    "AppDefinition",
    "ResourceDefinition",
    "RESOURCE_TYPES",
    "read_app_definition",
    "build_application",
]

_LOGGER = logging.getLogger(__name__)

AZURE_SIGNALR_TYPE = "azure.signalr"

RESOURCE_TYPES: dict[str, Callable[[DistributedApplicationBuilder, str], ResourceBuilder[Any]]] = {
    AZURE_SIGNALR_TYPE: add_azure_signalr,
}


@dataclass
class ResourceDefinition(DataClassDictMixin):
    """A resource declared in an application definition."""

    name: str
    """The name of the resource."""

    type: str
    """The type of the resource, e.g. `azure.signalr`."""

    class Config(BaseConfig):
        forbid_extra_keys = True


@dataclass
class AppDefinition(DataClassDictMixin):
    """The contents of an application definition file."""

    name: str = "app"
    """The name of the application."""

    resources: list[ResourceDefinition] = field(default_factory=list)
    """The resources of the application, in the order they are added."""

    @classmethod
    def parse_yaml(cls, content: str) -> "AppDefinition":
        """Parse a serialized application definition."""
        if not content.strip():
            raise InputException("Application definition is empty")
        try:
            definition = yaml_decode(content, cls)
        except (
            MissingField,
            ExtraKeysError,
            InvalidFieldValue,
            ValueError,
            TypeError,
        ) as err:
            raise InputException(f"Invalid application definition: {err}") from err
        return cast(AppDefinition, definition)


async def read_app_definition(path: Path) -> AppDefinition:
    """Return the contents of an application definition file."""
    if not path.exists():
        raise InputException(f"Application definition {path} does not exist")
    async with aiofiles.open(str(path)) as definition_file:
        content = await definition_file.read()
    return AppDefinition.parse_yaml(content)


def build_application(definition: AppDefinition) -> DistributedApplicationBuilder:
    """Return an application builder with every resource of the definition added."""
    builder = DistributedApplicationBuilder(definition.name)
    for resource in definition.resources:
        if (add_resource := RESOURCE_TYPES.get(resource.type)) is None:
            raise InputException(
                f"Resource '{resource.name}' has unsupported type '{resource.type}'; "
                f"expected one of {sorted(RESOURCE_TYPES)}"
            )
        _LOGGER.debug("Adding %s resource %s", resource.type, resource.name)
        add_resource(builder, resource.name)
    return builder
