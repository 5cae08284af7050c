"""Apphost get action."""

import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast, Any
import pathlib

from apphost.azure.provisioning import AzureBicepResource
from apphost.manifest import build_manifest

from .format import FORMATTERS, PrintFormatter
from . import selector


_LOGGER = logging.getLogger(__name__)


class GetResourcesAction:
    """Get details about the resources of the application."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "resources",
                aliases=["res", "resource"],
                help="Get application resources",
                description="Print information about the resources of the application",
            ),
        )
        selector.add_app_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=["wide", *FORMATTERS],
            default=None,
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        app: pathlib.Path,
        output: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        builder = await selector.load_application(app)

        results: list[dict[str, Any]] = []
        cols = ["name", "type"]
        if output == "wide":
            cols.extend(["parameters", "connection_string"])
        for resource in builder.resources:
            value: dict[str, Any] = {
                "name": resource.name,
                "type": type(resource).__name__,
            }
            if isinstance(resource, AzureBicepResource):
                value["parameters"] = ",".join(resource.parameters)
                if (expr := resource.connection_string_expression) is not None:
                    value["connection_string"] = expr.value_expression
            results.append(value)

        if not results:
            print(f"No resources found in application '{builder.name}'")
            return

        if output in FORMATTERS:
            FORMATTERS[output]().print(results)
            return
        PrintFormatter(cols).print(results)


class GetManifestAction:
    """Print the deployment manifest of the application."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "manifest",
                help="Get the application manifest",
                description="Print the deployment manifest without writing any files",
            ),
        )
        selector.add_app_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=list(FORMATTERS),
            default="json",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        app: pathlib.Path,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        builder = await selector.load_application(app)
        manifest = await build_manifest(builder)
        FORMATTERS[output]().print(manifest)


class GetAction:
    """Apphost get action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "get",
                help="Print information about the application",
                description="Print information about the application and its resources",
            ),
        )
        subcmds = args.add_subparsers(
            title="Available commands",
            required=True,
        )
        GetResourcesAction.register(subcmds)
        GetManifestAction.register(subcmds)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        # No-op given subcommands are always the dispatch target
