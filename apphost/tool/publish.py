"""Apphost publish action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from apphost.config import DEFAULT_MANIFEST_NAME, PublishConfig
from apphost.manifest import build_manifest, write_manifest

from . import selector

_LOGGER = logging.getLogger(__name__)


class PublishAction:
    """Write the deployment manifest and the files it references."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "publish",
                help="Publish the application manifest",
                description="""Write the deployment manifest of the application and
                    the Bicep modules of its Azure resources to a directory.""",
            ),
        )
        selector.add_app_flags(args)
        args.add_argument(
            "--output-path",
            type=pathlib.Path,
            required=True,
            help="Directory to write the manifest and Bicep modules to",
        )
        args.add_argument(
            "--manifest-name",
            type=str,
            default=DEFAULT_MANIFEST_NAME,
            help="File name of the manifest within the output path",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        app: pathlib.Path,
        output_path: pathlib.Path,
        manifest_name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = PublishConfig(output_path=output_path, manifest_name=manifest_name)
        builder = await selector.load_application(app)
        manifest = await build_manifest(builder, config.output_path)
        await write_manifest(config.manifest_path, manifest)
        _LOGGER.info(
            "Published %d resources to %s",
            len(manifest["resources"]),
            config.manifest_path,
        )
        print(config.manifest_path)
