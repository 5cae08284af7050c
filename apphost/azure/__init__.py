"""Azure resources for the application model."""

from .provisioning import (
    AzureBicepResource,
    AzureProvisioningResource,
    ResourceModuleConstruct,
    add_azure_provisioning,
)
from .signalr import AzureSignalRResource, add_azure_signalr

__all__ = [
    "AzureBicepResource",
    "AzureProvisioningResource",
    "AzureSignalRResource",
    "ResourceModuleConstruct",
    "add_azure_provisioning",
    "add_azure_signalr",
]
