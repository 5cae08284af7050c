"""Common flags for selecting the application to operate on."""

from argparse import ArgumentParser
import pathlib

from apphost.application import DistributedApplicationBuilder
from apphost.definition import build_application, read_app_definition

DEFAULT_APP_FILE = "apphost.yaml"


def add_app_flags(args: ArgumentParser) -> None:
    """Add flags for locating the application definition."""
    args.add_argument(
        "--app",
        "-a",
        type=pathlib.Path,
        default=pathlib.Path(DEFAULT_APP_FILE),
        help=f"Path to the application definition file (default: {DEFAULT_APP_FILE})",
    )


async def load_application(app: pathlib.Path) -> DistributedApplicationBuilder:
    """Load the application described by the definition file."""
    return build_application(await read_app_definition(app))
