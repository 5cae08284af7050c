"""Deployment manifest for an application.

The manifest is a JSON document describing every resource in the
application so that a deployment tool can provision it. Each resource writes
its own entry through its manifest publishing callback.
"""

import json
import logging
from pathlib import Path
from typing import Any

import aiofiles

from .application import DistributedApplicationBuilder, Resource
from .exceptions import InputException

__all__ = [
    "ManifestPublishingContext",
    "build_manifest",
    "read_manifest",
    "write_manifest",
]

_LOGGER = logging.getLogger(__name__)

SCHEMA = "https://json.schemastore.org/aspire-8.0.json"
UNSUPPORTED_TYPE = "unsupported.v0"


class ManifestPublishingContext:
    """Collects the manifest entries written by each resource."""

    def __init__(self, output_path: Path | None = None) -> None:
        """Initialize ManifestPublishingContext.

        Args:
            output_path: Directory that files referenced by the manifest are
                written to, or None to only build the manifest in memory.
        """
        self.output_path = output_path
        self._resources: dict[str, dict[str, Any]] = {}
        self._current: dict[str, Any] | None = None

    @property
    def current(self) -> dict[str, Any]:
        """Return the entry for the resource currently being written."""
        if self._current is None:
            raise InputException("No resource is currently being written")
        return self._current

    async def write_resource(self, resource: Resource) -> None:
        """Write the manifest entry for a single resource."""
        annotation = resource.manifest_publishing_callback
        if annotation is not None and annotation.callback is None:
            _LOGGER.debug("Resource %s excluded from manifest", resource.name)
            return
        self._current = {}
        try:
            if annotation is None:
                _LOGGER.warning(
                    "Resource %s has no manifest publishing callback", resource.name
                )
                self._current["type"] = UNSUPPORTED_TYPE
            else:
                await annotation.callback(self)
            self._resources[resource.name] = self._current
        finally:
            self._current = None

    def file_path(self, file_name: str) -> Path | None:
        """Return where a file referenced by the manifest should be written."""
        if self.output_path is None:
            return None
        return self.output_path / file_name

    def to_dict(self) -> dict[str, Any]:
        return {"$schema": SCHEMA, "resources": dict(self._resources)}


async def build_manifest(
    builder: DistributedApplicationBuilder, output_path: Path | None = None
) -> dict[str, Any]:
    """Return the manifest for every resource in the application."""
    if output_path is not None:
        output_path.mkdir(parents=True, exist_ok=True)
    context = ManifestPublishingContext(output_path)
    for resource in builder.resources:
        await context.write_resource(resource)
    return context.to_dict()


async def read_manifest(manifest_path: Path) -> dict[str, Any]:
    """Return the contents of a serialized manifest file."""
    async with aiofiles.open(str(manifest_path)) as manifest_file:
        content = await manifest_file.read()
    if not content:
        raise InputException(f"validation error for Manifest file {manifest_path}")
    try:
        return json.loads(content)
    except ValueError as err:
        raise InputException(f"Invalid manifest file {manifest_path}: {err}") from err


async def write_manifest(manifest_path: Path, manifest: dict[str, Any]) -> None:
    """Write the specified manifest content to disk."""
    content = json.dumps(manifest, indent=2)
    async with aiofiles.open(str(manifest_path), mode="w") as manifest_file:
        await manifest_file.write(content)
