"""Azure SignalR resources for the application model."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Any, ClassVar

from apphost.application import (
    DistributedApplicationBuilder,
    ReferenceExpression,
    ResourceBuilder,
)

from .provisioning import (
    ASPIRE_RESOURCE_NAME_TAG,
    AzureBicepResource,
    AzureProvisioningResource,
    BicepExpression,
    BuiltInRole,
    ProvisioningOutput,
    ProvisioningResource,
    ResourceModuleConstruct,
    add_azure_provisioning,
)

__all__ = [
    "SignalRService",
    "SignalRServiceKind",
    "SignalRResourceSku",
    "SignalRFeature",
    "SignalRFeatureFlag",
    "SignalRBuiltInRole",
    "AzureSignalRResource",
    "add_azure_signalr",
]

_LOGGER = logging.getLogger(__name__)

HOST_NAME_OUTPUT = "hostName"
DEFAULT_SKU = "Free_F1"
MAX_NAME_LENGTH = 63


class SignalRServiceKind(StrEnum):
    """The flavor of the SignalR service."""

    SIGNALR = "SignalR"
    RAW_WEBSOCKETS = "RawWebSockets"


class SignalRFeatureFlag(StrEnum):
    """Features that can be configured on a SignalR service."""

    SERVICE_MODE = "ServiceMode"
    ENABLE_CONNECTIVITY_LOGS = "EnableConnectivityLogs"
    ENABLE_MESSAGING_LOGS = "EnableMessagingLogs"
    ENABLE_LIVE_TRACE = "EnableLiveTrace"


class SignalRBuiltInRole:
    """Built-in roles that can be assigned on a SignalR service."""

    SIGNALR_APP_SERVER = BuiltInRole(
        "SignalRAppServer", "420fcaa2-552c-430f-98ca-3264be4806c7"
    )
    SIGNALR_CONTRIBUTOR = BuiltInRole(
        "SignalRContributor", "8cf5e20a-e4b2-4e9d-b3a1-5ceb692c2761"
    )
    SIGNALR_REST_API_OWNER = BuiltInRole(
        "SignalRRestApiOwner", "fd53cd77-2268-407a-8f46-7e7863d0f521"
    )
    SIGNALR_REST_API_READER = BuiltInRole(
        "SignalRRestApiReader", "ddde6b66-c0df-4114-a159-3618637b3035"
    )


@dataclass
class SignalRResourceSku:
    """Pricing tier and unit count of the service."""

    name: str
    capacity: int | None = None


@dataclass
class SignalRFeature:
    """A single feature setting."""

    flag: SignalRFeatureFlag
    value: str


@dataclass
class SignalRService(ProvisioningResource):
    """An Azure SignalR service declared in a Bicep module."""

    resource_type: ClassVar[str] = "Microsoft.SignalRService/signalR@2022-02-01"

    kind: SignalRServiceKind | None = None
    sku: SignalRResourceSku | None = None
    features: list[SignalRFeature] = field(default_factory=list)
    cors_allowed_origins: list[str] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    location: Any = BicepExpression("location")

    @property
    def host_name(self) -> BicepExpression:
        return BicepExpression(f"{self.bicep_identifier}.properties.hostName")

    def properties(self) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        if self.cors_allowed_origins:
            properties["cors"] = {"allowedOrigins": self.cors_allowed_origins}
        if self.features:
            properties["features"] = [
                {"flag": f.flag, "value": f.value} for f in self.features
            ]
        return {
            "name": BicepExpression(
                f"take('{self.identifier}-${{uniqueString(resourceGroup().id)}}', "
                f"{MAX_NAME_LENGTH})"
            ),
            "kind": self.kind,
            "location": self.location,
            "properties": properties or None,
            "sku": (
                {"name": self.sku.name, "capacity": self.sku.capacity}
                if self.sku
                else None
            ),
            "tags": self.tags or None,
        }


class AzureSignalRResource(AzureProvisioningResource):
    """An Azure SignalR service in the application."""

    @property
    def host_name(self) -> Any:
        """Return a reference to the host name output of the deployed service."""
        return self.get_output(HOST_NAME_OUTPUT)

    @property
    def connection_string_expression(self) -> ReferenceExpression:
        return ReferenceExpression(
            "Endpoint=https://{};AuthType=azure", [self.host_name]
        )


ConfigureSignalR = Callable[
    [ResourceBuilder[AzureSignalRResource], ResourceModuleConstruct, SignalRService],
    None,
]


def add_azure_signalr(
    builder: DistributedApplicationBuilder,
    name: str,
    configure_resource: ConfigureSignalR | None = None,
) -> ResourceBuilder[AzureSignalRResource]:
    """Adds an Azure SignalR resource to the application model.

    Args:
        builder: The application builder.
        name: The name of the resource. This name will be used as the connection
            string name when referenced in a dependency.
        configure_resource: Optional callback to further configure the SignalR
            service declared in the Bicep module.

    Returns:
        A builder for the added resource.
    """
    add_azure_provisioning(builder)

    def configure_construct(construct: ResourceModuleConstruct) -> None:
        service = SignalRService(
            name,
            kind=SignalRServiceKind.SIGNALR,
            sku=SignalRResourceSku(name=DEFAULT_SKU, capacity=1),
            features=[
                SignalRFeature(flag=SignalRFeatureFlag.SERVICE_MODE, value="Default")
            ],
            cors_allowed_origins=["*"],
            tags={ASPIRE_RESOURCE_NAME_TAG: construct.resource.name},
            location=construct.location,
        )
        construct.add(service)

        construct.add(ProvisioningOutput(HOST_NAME_OUTPUT, str, value=service.host_name))

        construct.add(
            service.create_role_assignment(
                SignalRBuiltInRole.SIGNALR_APP_SERVER,
                construct.principal_type_parameter,
                construct.principal_id_parameter,
            )
        )

        resource = construct.resource
        if not isinstance(resource, AzureSignalRResource):
            raise TypeError(f"Expected an AzureSignalRResource, got {resource!r}")
        if configure_resource is not None:
            configure_resource(builder.create_resource_builder(resource), construct, service)

    resource = AzureSignalRResource(name, configure_construct)
    _LOGGER.debug("Adding Azure SignalR resource %s", name)
    return (
        builder.add_resource(resource)
        .with_parameter(AzureBicepResource.KnownParameters.PRINCIPAL_ID)
        .with_parameter(AzureBicepResource.KnownParameters.PRINCIPAL_TYPE)
        .with_manifest_publishing_callback(resource.write_to_manifest)
    )
