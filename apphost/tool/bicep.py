"""Apphost bicep action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from apphost.azure.provisioning import add_azure_provisioning
from apphost.exceptions import ObjectNotFoundError

from . import selector

_LOGGER = logging.getLogger(__name__)


class BicepAction:
    """Print the Bicep module of an Azure resource."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "bicep",
                help="Print the Bicep module of Azure resources",
                description="Print the rendered Bicep module for Azure resources in the application",
            ),
        )
        selector.add_app_flags(args)
        args.add_argument(
            "--resource",
            "-r",
            type=str,
            default=None,
            help="Name of the resource to print, or all Azure resources when unset",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        app: pathlib.Path,
        resource: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        builder = await selector.load_application(app)
        resources = add_azure_provisioning(builder).resources
        if resource is not None:
            resources = [r for r in resources if r.name.lower() == resource.lower()]
            if not resources:
                raise ObjectNotFoundError(f"Azure resource '{resource}' not found")
        for azure_resource in resources:
            print(f"// {azure_resource.module_file_name}")
            print(azure_resource.get_bicep_template_string(), end="")
