"""Tests for the deployment manifest."""

import json
from pathlib import Path

import pytest

from apphost.application import DistributedApplicationBuilder, Resource
from apphost.exceptions import InputException
from apphost.manifest import (
    SCHEMA,
    ManifestPublishingContext,
    build_manifest,
    read_manifest,
    write_manifest,
)


async def write_project(context: ManifestPublishingContext) -> None:
    context.current["type"] = "project.v0"
    context.current["path"] = "web.csproj"


@pytest.fixture
def builder() -> DistributedApplicationBuilder:
    builder = DistributedApplicationBuilder()
    builder.add_resource(Resource("web")).with_manifest_publishing_callback(write_project)
    return builder


async def test_build_manifest(builder: DistributedApplicationBuilder) -> None:
    """Test each resource writes its own entry."""
    builder.add_resource(Resource("unknown"))
    builder.add_resource(Resource("hidden")).with_manifest_publishing_callback(None)

    manifest = await build_manifest(builder)
    assert manifest == {
        "$schema": SCHEMA,
        "resources": {
            "web": {"type": "project.v0", "path": "web.csproj"},
            "unknown": {"type": "unsupported.v0"},
        },
    }


async def test_build_manifest_empty() -> None:
    """Test the manifest of an application with no resources."""
    manifest = await build_manifest(DistributedApplicationBuilder())
    assert manifest == {"$schema": SCHEMA, "resources": {}}


def test_current_outside_write() -> None:
    """Test the current entry is only available while writing a resource."""
    context = ManifestPublishingContext()
    with pytest.raises(InputException, match="No resource is currently being written"):
        context.current  # pylint: disable=pointless-statement


async def test_callback_error_resets_current() -> None:
    """Test a failing callback leaves no entry behind."""

    async def fail(context: ManifestPublishingContext) -> None:
        context.current["type"] = "partial"
        raise InputException("broken")

    builder = DistributedApplicationBuilder()
    resource = builder.add_resource(Resource("web")).with_manifest_publishing_callback(fail)
    context = ManifestPublishingContext()
    with pytest.raises(InputException, match="broken"):
        await context.write_resource(resource.resource)
    assert context.to_dict()["resources"] == {}
    with pytest.raises(InputException):
        context.current  # pylint: disable=pointless-statement


def test_file_path(tmp_path: Path) -> None:
    """Test paths of files referenced by the manifest."""
    assert ManifestPublishingContext().file_path("a.bicep") is None
    assert ManifestPublishingContext(tmp_path).file_path("a.bicep") == tmp_path / "a.bicep"


async def test_write_read_manifest(
    builder: DistributedApplicationBuilder, tmp_path: Path
) -> None:
    """Test writing the manifest to disk and reading it back."""
    output_path = tmp_path / "out"
    manifest = await build_manifest(builder, output_path)
    assert output_path.is_dir()

    manifest_path = output_path / "manifest.json"
    await write_manifest(manifest_path, manifest)
    assert json.loads(manifest_path.read_text()) == manifest
    assert await read_manifest(manifest_path) == manifest


async def test_read_manifest_empty(tmp_path: Path) -> None:
    """Test reading an empty manifest file."""
    manifest_path = tmp_path / "manifest.json"
    manifest_path.write_text("")
    with pytest.raises(InputException, match="validation error"):
        await read_manifest(manifest_path)


async def test_read_manifest_invalid(tmp_path: Path) -> None:
    """Test reading a manifest file that is not JSON."""
    manifest_path = tmp_path / "manifest.json"
    manifest_path.write_text("{resources")
    with pytest.raises(InputException, match="Invalid manifest file"):
        await read_manifest(manifest_path)
