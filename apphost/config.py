"""Configuration objects for apphost."""

from dataclasses import dataclass
import pathlib

# In user port range, but otherwise no particular reason to start with this value.
# Tests can select ports below it without clashing with auto-assigned ones.
START_OF_AUTO_PORT_RANGE = 52000

DEFAULT_MANIFEST_NAME = "aspire-manifest.json"


@dataclass
class InMemoryKubernetesConfig:
    """Configuration for the InMemoryKubernetesService."""

    start_of_auto_port_range: int = START_OF_AUTO_PORT_RANGE
    """Ports are allocated starting just above this value."""

    default_address: str = "localhost"
    """Address assigned to a Service that does not request one."""


@dataclass
class PublishConfig:
    """Configuration for publishing an application manifest."""

    output_path: pathlib.Path

    manifest_name: str = DEFAULT_MANIFEST_NAME

    @property
    def manifest_path(self) -> pathlib.Path:
        return self.output_path / self.manifest_name
