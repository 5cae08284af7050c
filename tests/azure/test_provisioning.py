"""Tests for Azure provisioning constructs."""

from enum import Enum

import pytest

from apphost.application import DistributedApplicationBuilder, Resource
from apphost.azure.provisioning import (
    AzureBicepResource,
    AzureProvisioner,
    AzureProvisioningResource,
    BicepExpression,
    BuiltInRole,
    ProvisioningOutput,
    ProvisioningParameter,
    ProvisioningResource,
    ResourceModuleConstruct,
    add_azure_provisioning,
    bicep_identifier,
    to_bicep_value,
)
from apphost.exceptions import DistributedApplicationException


class Tier(Enum):
    BASIC = "Basic"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "null"),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        ("text", "'text'"),
        ("it's", "'it\\'s'"),
        ("${x}", "'\\${x}'"),
        (Tier.BASIC, "'Basic'"),
        (BicepExpression("resourceGroup().id"), "resourceGroup().id"),
        (ProvisioningParameter("principalId"), "principalId"),
        ([], "[]"),
        ({}, "{}"),
        ({"a": None}, "{}"),
    ],
)
def test_to_bicep_value(value: object, expected: str) -> None:
    """Test rendering scalar values."""
    assert to_bicep_value(value) == expected


def test_to_bicep_value_nested() -> None:
    """Test rendering nested objects and arrays."""
    assert to_bicep_value(
        {"sku": {"name": "F1"}, "zones": ["1", 2], "my-tag": "x", "skip": None}
    ) == "\n".join(
        [
            "{",
            "  sku: {",
            "    name: 'F1'",
            "  }",
            "  zones: [",
            "    '1'",
            "    2",
            "  ]",
            "  'my-tag': 'x'",
            "}",
        ]
    )


def test_to_bicep_value_unsupported() -> None:
    """Test rendering a value with no Bicep representation."""
    with pytest.raises(TypeError, match="can't be rendered as Bicep"):
        to_bicep_value(object())


def test_bicep_identifier() -> None:
    """Test resource names are converted to identifiers."""
    assert bicep_identifier("signalr") == "signalr"
    assert bicep_identifier("chat-hub") == "chat_hub"


def test_parameter_to_bicep() -> None:
    """Test rendering parameter declarations."""
    assert ProvisioningParameter("principalId").to_bicep() == "param principalId string"
    assert (
        ProvisioningParameter("count", int, default=2, description="How many").to_bicep()
        == "@description('How many')\nparam count int = 2"
    )


def test_output_to_bicep() -> None:
    """Test rendering output declarations."""
    output = ProvisioningOutput("hostName", value=BicepExpression("svc.properties.hostName"))
    assert output.to_bicep() == "output hostName string = svc.properties.hostName"


def test_role_assignment() -> None:
    """Test a role assignment scoped to a resource."""
    resource = ProvisioningResource("my-store")
    role = BuiltInRole("Reader", "0000")
    assignment = resource.create_role_assignment(
        role, ProvisioningParameter("principalType"), ProvisioningParameter("principalId")
    )
    assert assignment.identifier == "my_store_Reader"
    assert assignment.to_bicep() == "\n".join(
        [
            "resource my_store_Reader 'Microsoft.Authorization/roleAssignments@2022-04-01' = {",
            "  name: guid(my_store.id, principalId, "
            "subscriptionResourceId('Microsoft.Authorization/roleDefinitions', '0000'))",
            "  properties: {",
            "    principalId: principalId",
            "    roleDefinitionId: "
            "subscriptionResourceId('Microsoft.Authorization/roleDefinitions', '0000')",
            "    principalType: principalType",
            "  }",
            "  scope: my_store",
            "}",
        ]
    )


def test_construct_to_bicep() -> None:
    """Test the module lists parameters, then resources, then outputs."""
    construct = ResourceModuleConstruct(AzureBicepResource("store"))
    construct.add(ProvisioningOutput("id", value=BicepExpression("store.id")))
    construct.add(ProvisioningResource("store"))
    construct.add(ProvisioningParameter("sku", default="F1"))
    assert construct.principal_id_parameter is construct.principal_id_parameter

    assert construct.to_bicep() == "\n".join(
        [
            "@description('The location for the resource(s) to be deployed.')",
            "param location string = resourceGroup().location",
            "",
            "param sku string = 'F1'",
            "",
            "param principalId string",
            "",
            "resource store '' = {}",
            "",
            "output id string = store.id",
            "",
        ]
    )


def test_provisioning_resource_builds_construct() -> None:
    """Test each template render builds a new construct."""
    constructs: list[ResourceModuleConstruct] = []

    def configure(construct: ResourceModuleConstruct) -> None:
        constructs.append(construct)

    resource = AzureProvisioningResource("store", configure)
    resource.get_bicep_template_string()
    resource.get_bicep_template_string()
    assert len(constructs) == 2
    assert constructs[0] is not constructs[1]
    assert constructs[0].resource is resource


def test_bicep_resource_template() -> None:
    """Test a resource with a fixed template."""
    assert AzureBicepResource("a", "param x string\n").get_bicep_template_string() == (
        "param x string\n"
    )
    with pytest.raises(ValueError, match="has no Bicep template"):
        AzureBicepResource("b").get_bicep_template_string()


def test_get_output() -> None:
    """Test references to module outputs."""
    resource = AzureBicepResource("store")
    assert resource.get_output("id").value_expression == "{store.outputs.id}"
    assert resource.module_file_name == "store.module.bicep"
    assert resource.connection_string_expression is None


def test_add_azure_provisioning() -> None:
    """Test the provisioner is registered once and lists Azure resources."""
    builder = DistributedApplicationBuilder()
    provisioner = add_azure_provisioning(builder)
    assert isinstance(provisioner, AzureProvisioner)
    assert add_azure_provisioning(builder) is provisioner

    builder.add_resource(Resource("plain"))
    store = AzureBicepResource("store", "")
    builder.add_resource(store)
    assert provisioner.resources == [store]


@pytest.mark.parametrize("name", ["location", "principalId", "principalType"])
def test_reserved_resource_name(name: str) -> None:
    """Test resources can't share a name with a module parameter."""
    with pytest.raises(DistributedApplicationException, match="reserved"):
        AzureBicepResource(name)


def test_construct_duplicate_identifier() -> None:
    """Test a resource identifier that clashes with a parameter."""
    construct = ResourceModuleConstruct(AzureBicepResource("store"))
    construct.add(ProvisioningParameter("sku"))
    construct.add(ProvisioningResource("sku"))
    with pytest.raises(DistributedApplicationException, match="'sku' more than once"):
        construct.to_bicep()
