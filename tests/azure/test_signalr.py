"""Tests for the Azure SignalR resource."""

from pathlib import Path

import pytest

from apphost.application import DistributedApplicationBuilder, ResourceBuilder
from apphost.azure import AzureSignalRResource, ResourceModuleConstruct, add_azure_signalr
from apphost.azure.provisioning import AzureProvisioner, RoleAssignment
from apphost.azure.signalr import (
    SignalRBuiltInRole,
    SignalRFeature,
    SignalRFeatureFlag,
    SignalRResourceSku,
    SignalRService,
)
from apphost.exceptions import DistributedApplicationException
from apphost.manifest import build_manifest

EXPECTED_BICEP = """\
@description('The location for the resource(s) to be deployed.')
param location string = resourceGroup().location

param principalType string

param principalId string

resource signalr 'Microsoft.SignalRService/signalR@2022-02-01' = {
  name: take('signalr-${uniqueString(resourceGroup().id)}', 63)
  kind: 'SignalR'
  location: location
  properties: {
    cors: {
      allowedOrigins: [
        '*'
      ]
    }
    features: [
      {
        flag: 'ServiceMode'
        value: 'Default'
      }
    ]
  }
  sku: {
    name: 'Free_F1'
    capacity: 1
  }
  tags: {
    'aspire-resource-name': 'signalr'
  }
}

resource signalr_SignalRAppServer 'Microsoft.Authorization/roleAssignments@2022-04-01' = {
  name: guid(signalr.id, principalId, subscriptionResourceId('Microsoft.Authorization/roleDefinitions', '420fcaa2-552c-430f-98ca-3264be4806c7'))
  properties: {
    principalId: principalId
    roleDefinitionId: subscriptionResourceId('Microsoft.Authorization/roleDefinitions', '420fcaa2-552c-430f-98ca-3264be4806c7')
    principalType: principalType
  }
  scope: signalr
}

output hostName string = signalr.properties.hostName
"""


@pytest.fixture
def builder() -> DistributedApplicationBuilder:
    return DistributedApplicationBuilder("chat")


def test_add_azure_signalr(builder: DistributedApplicationBuilder) -> None:
    """Test the resource is added with its parameters."""
    signalr = add_azure_signalr(builder, "signalr")
    assert isinstance(signalr.resource, AzureSignalRResource)
    assert builder.resources == [signalr.resource]
    assert signalr.resource.parameters == {"principalId": None, "principalType": None}
    assert signalr.resource.manifest_publishing_callback is not None
    assert isinstance(builder.services[AzureProvisioner], AzureProvisioner)


def test_connection_string(builder: DistributedApplicationBuilder) -> None:
    """Test the connection string references the host name output."""
    signalr = add_azure_signalr(builder, "signalr")
    assert (
        signalr.resource.connection_string_expression.value_expression
        == "Endpoint=https://{signalr.outputs.hostName};AuthType=azure"
    )


def test_bicep_template(builder: DistributedApplicationBuilder) -> None:
    """Test the rendered Bicep module."""
    signalr = add_azure_signalr(builder, "signalr")
    assert signalr.resource.get_bicep_template_string() == EXPECTED_BICEP


def test_construct_contents(builder: DistributedApplicationBuilder) -> None:
    """Test the constructs declared for the resource."""
    signalr = add_azure_signalr(builder, "signalr")
    construct = signalr.resource.build_construct()

    assert [p.name for p in construct.parameters] == [
        "location",
        "principalType",
        "principalId",
    ]
    service, role_assignment = construct.provisioning_resources
    assert isinstance(service, SignalRService)
    assert service.sku == SignalRResourceSku(name="Free_F1", capacity=1)
    assert service.features == [
        SignalRFeature(flag=SignalRFeatureFlag.SERVICE_MODE, value="Default")
    ]
    assert service.cors_allowed_origins == ["*"]
    assert service.tags == {"aspire-resource-name": "signalr"}
    assert isinstance(role_assignment, RoleAssignment)
    assert role_assignment.role == SignalRBuiltInRole.SIGNALR_APP_SERVER
    assert role_assignment.scope is service
    assert [o.name for o in construct.outputs] == ["hostName"]


def test_configure_resource(builder: DistributedApplicationBuilder) -> None:
    """Test the callback that customizes the SignalR service."""
    calls: list[ResourceBuilder[AzureSignalRResource]] = []

    def configure(
        resource_builder: ResourceBuilder[AzureSignalRResource],
        construct: ResourceModuleConstruct,
        service: SignalRService,
    ) -> None:
        calls.append(resource_builder)
        service.sku = SignalRResourceSku(name="Standard_S1", capacity=2)
        service.features.append(
            SignalRFeature(flag=SignalRFeatureFlag.ENABLE_CONNECTIVITY_LOGS, value="True")
        )
        construct.add(
            service.create_role_assignment(
                SignalRBuiltInRole.SIGNALR_CONTRIBUTOR,
                construct.principal_type_parameter,
                construct.principal_id_parameter,
            )
        )

    signalr = add_azure_signalr(builder, "signalr", configure)
    # The construct is only built when the template is rendered
    assert not calls

    bicep = signalr.resource.get_bicep_template_string()
    assert len(calls) == 1
    assert calls[0].resource is signalr.resource
    assert calls[0].application_builder is builder
    assert "name: 'Standard_S1'\n    capacity: 2" in bicep
    assert "flag: 'EnableConnectivityLogs'" in bicep
    assert "resource signalr_SignalRContributor" in bicep
    assert "'8cf5e20a-e4b2-4e9d-b3a1-5ceb692c2761'" in bicep


def test_resource_name_used_in_module(builder: DistributedApplicationBuilder) -> None:
    """Test resource names that are not Bicep identifiers."""
    signalr = add_azure_signalr(builder, "chat-hub")
    bicep = signalr.resource.get_bicep_template_string()
    assert "resource chat_hub 'Microsoft.SignalRService/signalR@2022-02-01'" in bicep
    assert "name: take('chat-hub-${uniqueString(resourceGroup().id)}', 63)" in bicep
    assert "'aspire-resource-name': 'chat-hub'" in bicep
    assert "output hostName string = chat_hub.properties.hostName" in bicep


def test_duplicate_name(builder: DistributedApplicationBuilder) -> None:
    """Test adding two resources with the same name."""
    add_azure_signalr(builder, "signalr")
    with pytest.raises(DistributedApplicationException, match="already exists"):
        add_azure_signalr(builder, "SignalR")
    assert len(builder.resources) == 1


def test_invalid_name(builder: DistributedApplicationBuilder) -> None:
    """Test adding a resource with an invalid name."""
    with pytest.raises(DistributedApplicationException):
        add_azure_signalr(builder, "1signalr")


async def test_manifest(builder: DistributedApplicationBuilder) -> None:
    """Test the manifest entry written for the resource."""
    add_azure_signalr(builder, "signalr")
    manifest = await build_manifest(builder)
    assert manifest["resources"] == {
        "signalr": {
            "type": "azure.bicep.v0",
            "connectionString": "Endpoint=https://{signalr.outputs.hostName};AuthType=azure",
            "path": "signalr.module.bicep",
            "params": {"principalId": "", "principalType": ""},
        }
    }


async def test_manifest_writes_module(
    builder: DistributedApplicationBuilder, tmp_path: Path
) -> None:
    """Test publishing the manifest writes the Bicep module."""
    add_azure_signalr(builder, "signalr")
    await build_manifest(builder, tmp_path)
    assert (tmp_path / "signalr.module.bicep").read_text() == EXPECTED_BICEP


def test_reserved_name(builder: DistributedApplicationBuilder) -> None:
    """Test a name that clashes with a module parameter."""
    with pytest.raises(DistributedApplicationException, match="reserved"):
        add_azure_signalr(builder, "location")
    assert builder.resources == []
