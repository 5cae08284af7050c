"""Azure provisioning constructs rendered as Bicep modules.

A `ResourceModuleConstruct` collects the parameters, resources, role
assignments and outputs of a single Bicep module. Azure resources in the
application model build their construct on demand and write the rendered
module next to the deployment manifest.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any, ClassVar

import aiofiles

from apphost.application import (
    DistributedApplicationBuilder,
    ReferenceExpression,
    ResourceWithParameters,
)
from apphost.exceptions import DistributedApplicationException
from apphost.manifest import ManifestPublishingContext

__all__ = [
    "BicepExpression",
    "BicepOutputReference",
    "BuiltInRole",
    "ProvisioningParameter",
    "ProvisioningOutput",
    "ProvisioningResource",
    "RoleAssignment",
    "ResourceModuleConstruct",
    "AzureBicepResource",
    "AzureProvisioningResource",
    "AzureProvisioner",
    "add_azure_provisioning",
    "to_bicep_value",
]

_LOGGER = logging.getLogger(__name__)

BICEP_RESOURCE_TYPE = "azure.bicep.v0"
BICEP_INDENT = "  "
ROLE_ASSIGNMENT_TYPE = "Microsoft.Authorization/roleAssignments@2022-04-01"
ASPIRE_RESOURCE_NAME_TAG = "aspire-resource-name"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_BICEP_TYPES: dict[type, str] = {
    str: "string",
    int: "int",
    bool: "bool",
    dict: "object",
    list: "array",
}


@dataclass(frozen=True)
class BicepExpression:
    """Raw Bicep text that is written without quoting."""

    text: str

    def __str__(self) -> str:
        return self.text


def bicep_identifier(name: str) -> str:
    """Return a valid Bicep identifier for a resource name."""
    return re.sub(r"[^A-Za-z0-9_]", "_", name)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'").replace("${", "\\${")


def _key(key: str) -> str:
    if _IDENTIFIER_RE.match(key):
        return key
    return f"'{_escape(key)}'"


def to_bicep_value(value: Any, depth: int = 0) -> str:
    """Render a Python value as a Bicep literal."""
    pad = BICEP_INDENT * depth
    inner = BICEP_INDENT * (depth + 1)
    if isinstance(value, BicepExpression):
        return value.text
    if isinstance(value, ProvisioningParameter):
        return value.name
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return f"'{_escape(value)}'"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [f"{inner}{to_bicep_value(v, depth + 1)}" for v in value]
        return "[\n" + "\n".join(items) + f"\n{pad}]"
    if isinstance(value, dict):
        lines = [
            f"{inner}{_key(str(k))}: {to_bicep_value(v, depth + 1)}"
            for k, v in value.items()
            if v is not None
        ]
        if not lines:
            return "{}"
        return "{\n" + "\n".join(lines) + f"\n{pad}}}"
    raise TypeError(f"Value of type {type(value).__name__} can't be rendered as Bicep")


@dataclass
class ProvisioningParameter:
    """An input parameter of a Bicep module."""

    name: str
    type: type = str
    default: Any = None
    description: str | None = None

    def to_bicep(self) -> str:
        lines = []
        if self.description:
            lines.append(f"@description({to_bicep_value(self.description)})")
        decl = f"param {self.name} {_BICEP_TYPES[self.type]}"
        if self.default is not None:
            decl += f" = {to_bicep_value(self.default)}"
        lines.append(decl)
        return "\n".join(lines)


@dataclass
class ProvisioningOutput:
    """An output value of a Bicep module."""

    name: str
    type: type = str
    value: Any = None

    def to_bicep(self) -> str:
        return f"output {self.name} {_BICEP_TYPES[self.type]} = {to_bicep_value(self.value)}"


@dataclass(frozen=True)
class BuiltInRole:
    """An Azure built-in role definition."""

    name: str
    role_definition_id: str

    @property
    def role_definition_expression(self) -> BicepExpression:
        return BicepExpression(
            "subscriptionResourceId('Microsoft.Authorization/roleDefinitions', "
            f"'{self.role_definition_id}')"
        )


@dataclass
class ProvisioningResource:
    """Base class for Azure resources declared in a Bicep module."""

    resource_type: ClassVar[str] = ""
    """The Azure resource type including its API version."""

    identifier: str
    """The name of the resource within the module."""

    @property
    def bicep_identifier(self) -> str:
        return bicep_identifier(self.identifier)

    @property
    def id(self) -> BicepExpression:
        return BicepExpression(f"{self.bicep_identifier}.id")

    def properties(self) -> dict[str, Any]:
        """Return the body of the resource declaration."""
        return {}

    def to_bicep(self) -> str:
        return (
            f"resource {self.bicep_identifier} '{self.resource_type}' = "
            f"{to_bicep_value(self.properties())}"
        )

    def create_role_assignment(
        self,
        role: BuiltInRole,
        principal_type: ProvisioningParameter,
        principal_id: ProvisioningParameter,
    ) -> "RoleAssignment":
        """Grant the principal the role scoped to this resource."""
        return RoleAssignment(
            identifier=f"{self.bicep_identifier}_{role.name}",
            scope=self,
            role=role,
            principal_type=principal_type,
            principal_id=principal_id,
        )


@dataclass
class RoleAssignment(ProvisioningResource):
    """Grants a principal a role on a resource."""

    resource_type: ClassVar[str] = ROLE_ASSIGNMENT_TYPE

    scope: ProvisioningResource | None = None
    role: BuiltInRole | None = None
    principal_type: ProvisioningParameter | None = None
    principal_id: ProvisioningParameter | None = None

    def properties(self) -> dict[str, Any]:
        if self.scope is None or self.role is None:
            raise ValueError(f"Role assignment {self.identifier} requires a scope and role")
        role_definition = self.role.role_definition_expression
        return {
            "name": BicepExpression(
                f"guid({self.scope.id}, {to_bicep_value(self.principal_id)}, "
                f"{role_definition})"
            ),
            "properties": {
                "principalId": self.principal_id,
                "roleDefinitionId": role_definition,
                "principalType": self.principal_type,
            },
            "scope": BicepExpression(self.scope.bicep_identifier),
        }


class ResourceModuleConstruct:
    """The contents of the Bicep module for a single application resource."""

    def __init__(self, resource: "AzureBicepResource") -> None:
        """Initialize ResourceModuleConstruct."""
        self.resource = resource
        self.location = ProvisioningParameter(
            "location",
            default=BicepExpression("resourceGroup().location"),
            description="The location for the resource(s) to be deployed.",
        )
        self._parameters: dict[str, ProvisioningParameter] = {"location": self.location}
        self._resources: list[ProvisioningResource] = []
        self._outputs: list[ProvisioningOutput] = []

    def _parameter(self, name: str) -> ProvisioningParameter:
        if (param := self._parameters.get(name)) is None:
            param = ProvisioningParameter(name)
            self._parameters[name] = param
        return param

    @property
    def principal_id_parameter(self) -> ProvisioningParameter:
        return self._parameter(AzureBicepResource.KnownParameters.PRINCIPAL_ID)

    @property
    def principal_type_parameter(self) -> ProvisioningParameter:
        return self._parameter(AzureBicepResource.KnownParameters.PRINCIPAL_TYPE)

    def add(
        self, construct: ProvisioningResource | ProvisioningParameter | ProvisioningOutput
    ) -> None:
        """Add a resource, parameter or output to the module."""
        if isinstance(construct, ProvisioningParameter):
            self._parameters[construct.name] = construct
        elif isinstance(construct, ProvisioningOutput):
            self._outputs.append(construct)
        else:
            self._resources.append(construct)

    @property
    def parameters(self) -> list[ProvisioningParameter]:
        return list(self._parameters.values())

    @property
    def provisioning_resources(self) -> list[ProvisioningResource]:
        return list(self._resources)

    @property
    def outputs(self) -> list[ProvisioningOutput]:
        return list(self._outputs)

    def to_bicep(self) -> str:
        """Render the module as Bicep source."""
        declared = set(self._parameters)
        for resource in self._resources:
            if resource.bicep_identifier in declared:
                raise DistributedApplicationException(
                    f"Bicep module for '{self.resource.name}' declares "
                    f"'{resource.bicep_identifier}' more than once"
                )
            declared.add(resource.bicep_identifier)
        sections = [p.to_bicep() for p in self._parameters.values()]
        sections.extend(r.to_bicep() for r in self._resources)
        sections.extend(o.to_bicep() for o in self._outputs)
        return "\n\n".join(sections) + "\n"


@dataclass(frozen=True)
class BicepOutputReference:
    """Reference to an output of the Bicep module of a resource."""

    name: str
    resource: "AzureBicepResource"

    @property
    def value_expression(self) -> str:
        return f"{{{self.resource.name}.outputs.{self.name}}}"


class AzureBicepResource(ResourceWithParameters):
    """An application resource deployed with a Bicep module."""

    class KnownParameters:
        """Parameters with values supplied by the deployment tool."""

        PRINCIPAL_ID = "principalId"
        PRINCIPAL_TYPE = "principalType"
        PRINCIPAL_NAME = "principalName"
        KEY_VAULT_NAME = "keyVaultName"
        LOCATION = "location"
        LOG_ANALYTICS_WORKSPACE_ID = "logAnalyticsWorkspaceId"

        @classmethod
        def names(cls) -> set[str]:
            return {v for k, v in vars(cls).items() if k.isupper()}

    def __init__(self, name: str, template_string: str | None = None) -> None:
        """Initialize AzureBicepResource."""
        if bicep_identifier(name) in self.KnownParameters.names():
            raise DistributedApplicationException(
                f"Resource name '{name}' is reserved for a Bicep module parameter"
            )
        super().__init__(name)
        self._template_string = template_string
        self.outputs: dict[str, Any] = {}
        """Output values filled in once the module has been deployed."""

    @property
    def module_file_name(self) -> str:
        return f"{self.name}.module.bicep"

    @property
    def connection_string_expression(self) -> ReferenceExpression | None:
        """Return the connection string of the resource, if it has one."""
        return None

    def get_output(self, name: str) -> BicepOutputReference:
        return BicepOutputReference(name, self)

    def get_bicep_template_string(self) -> str:
        if self._template_string is None:
            raise ValueError(f"Resource {self.name} has no Bicep template")
        return self._template_string

    async def write_to_manifest(self, context: ManifestPublishingContext) -> None:
        """Write the Bicep module and the manifest entry that references it."""
        if (path := context.file_path(self.module_file_name)) is not None:
            _LOGGER.debug("Writing Bicep module for %s to %s", self.name, path)
            async with aiofiles.open(str(path), mode="w") as bicep_file:
                await bicep_file.write(self.get_bicep_template_string())

        entry = context.current
        entry["type"] = BICEP_RESOURCE_TYPE
        if (connection_string := self.connection_string_expression) is not None:
            entry["connectionString"] = connection_string.value_expression
        entry["path"] = self.module_file_name
        if self.parameters:
            entry["params"] = {
                name: ("" if value is None else getattr(value, "value_expression", value))
                for name, value in self.parameters.items()
            }


class AzureProvisioningResource(AzureBicepResource):
    """An Azure resource whose Bicep module is built from provisioning constructs."""

    def __init__(
        self,
        name: str,
        configure_construct: Callable[[ResourceModuleConstruct], None],
    ) -> None:
        """Initialize AzureProvisioningResource."""
        super().__init__(name)
        self.configure_construct = configure_construct

    def build_construct(self) -> ResourceModuleConstruct:
        """Return a new construct configured for this resource."""
        construct = ResourceModuleConstruct(self)
        self.configure_construct(construct)
        return construct

    def get_bicep_template_string(self) -> str:
        return self.build_construct().to_bicep()


class AzureProvisioner:
    """Tracks the Azure resources of an application that need provisioning."""

    def __init__(self, builder: DistributedApplicationBuilder) -> None:
        """Initialize AzureProvisioner."""
        self._builder = builder

    @property
    def resources(self) -> list[AzureBicepResource]:
        return [r for r in self._builder.resources if isinstance(r, AzureBicepResource)]


def add_azure_provisioning(builder: DistributedApplicationBuilder) -> AzureProvisioner:
    """Register Azure provisioning support with the application, once."""
    if (provisioner := builder.services.get(AzureProvisioner)) is None:
        _LOGGER.debug("Adding Azure provisioning to %s", builder.name)
        provisioner = AzureProvisioner(builder)
        builder.services[AzureProvisioner] = provisioner
    return provisioner
