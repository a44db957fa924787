import json
import logging
from pathlib import Path

import click

import pyimage.oci
from pyimage.oci import (
    DirectoryBlobStore,
    ManifestError,
    ManifestSchema2,
    ManifestUpdateOptions,
    NamedReference,
)
from pyimage.oci.media_types import MEDIA_TYPE

MANIFEST_PATH = click.Path(
    exists=True, dir_okay=False, file_okay=True, path_type=Path
)
BLOBS_PATH = click.Path(file_okay=False, dir_okay=True, path_type=Path)


@click.group()
@click.option("-d", "--debug", help="Debug output", is_flag=True)
def cli(debug: bool):
    if debug:
        logging.basicConfig(level=logging.DEBUG)


@cli.command()
@click.argument("manifest", type=MANIFEST_PATH)
@click.option("-b", "--blobs", help="Blob directory", required=True, type=BLOBS_PATH)
def inspect(manifest: Path, blobs: Path):
    """Show the metadata of an image."""
    data = manifest.read_bytes()
    store = DirectoryBlobStore(blobs)
    try:
        image = pyimage.oci.manifest_from_blob(
            data, pyimage.oci.guess_mime_type(data), src=store
        )
        info = image.image_inspect_info()
    except ManifestError as e:
        raise click.ClickException(str(e)) from e

    output = info.model_dump(mode="json", exclude={"layers"})
    output["mediaType"] = image.manifest_mime_type()
    output["layerInfos"] = [
        layer.model_dump(mode="json", exclude_none=True)
        for layer in image.layer_infos()
    ]
    click.echo(json.dumps(output, indent=2))


@cli.command()
@click.argument("manifest", type=MANIFEST_PATH)
@click.option("-b", "--blobs", help="Blob directory", required=True, type=BLOBS_PATH)
@click.option("-n", "--name", help="Repository of the converted image", required=True)
@click.option("-t", "--tag", help="Tag of the converted image", default="latest")
@click.option(
    "--signed/--unsigned",
    help="Produce the signed or the unsigned schema 1 media type",
    default=True,
)
@click.option(
    "-o",
    "--output",
    help="Output file",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
)
def convert(
    manifest: Path,
    blobs: Path,
    name: str,
    tag: str,
    signed: bool,
    output: Path | None,
):
    """Convert a schema 2 manifest to schema 1.

    The empty layer the schema 1 manifest refers to is added to the blob directory.
    """
    store = DirectoryBlobStore(blobs, reference=NamedReference(name, tag))
    mime_type = MEDIA_TYPE.MANIFEST_V1_SIGNED if signed else MEDIA_TYPE.MANIFEST_V1
    try:
        image = ManifestSchema2.from_bytes(manifest.read_bytes(), src=store)
        converted = image.updated_image(
            ManifestUpdateOptions(manifest_mime_type=mime_type, destination=store)
        )
    except ManifestError as e:
        raise click.ClickException(str(e)) from e

    data = converted.serialize()
    if output is None:
        click.echo(data.decode("utf-8"))
    else:
        output.write_bytes(data)
        click.echo(f"Done converting: {output}")


if __name__ == "__main__":
    cli()
