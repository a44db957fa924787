"""Image manifest library for Python

This module provides a Python API to parse, inspect and convert
docker image manifests.
"""
import json
import logging

from .config import ImageConfig, InspectionInfo
from .convert import Schema2ToSchema1Converter
from .descriptor import BlobInfo, Descriptor
from .errors import (
    BlobStoreError,
    DigestMismatchError,
    FetchFailedError,
    InvalidConfigError,
    InvalidDigestError,
    InvalidFormatError,
    LayerCountMismatchError,
    ManifestError,
    NoDestinationError,
    NoSourceError,
    ReadFailedError,
    UnsupportedConversionError,
)
from .generic import GenericManifest
from .layer import GZIPPED_EMPTY_LAYER, GZIPPED_EMPTY_LAYER_DIGEST, EmptyLayer
from .manifest import ManifestSchema2
from .media_types import MEDIA_TYPE, SCHEMA1_MEDIA_TYPES
from .schema1 import ManifestSchema1
from .store import DirectoryBlobStore
from .types import (
    BlobDestination,
    BlobSource,
    ImageReference,
    ManifestUpdateOptions,
    NamedReference,
)

logger = logging.getLogger(__name__)


def guess_mime_type(data: bytes) -> str:
    """Guess the media type of a manifest from its content

    Returns an empty string when the content is not a recognizable manifest.
    """
    try:
        meta = json.loads(data)
    except ValueError:
        return ""
    if not isinstance(meta, dict):
        return ""
    if meta.get("mediaType"):
        return meta["mediaType"]
    schema_version = meta.get("schemaVersion")
    if schema_version == 1:
        if "signatures" in meta:
            return MEDIA_TYPE.MANIFEST_V1_SIGNED
        return MEDIA_TYPE.MANIFEST_V1
    if schema_version == 2 and "config" in meta:
        return MEDIA_TYPE.MANIFEST_V2
    return ""


def manifest_from_blob(
    data: bytes, mime_type: str, src: BlobSource | None = None
) -> GenericManifest:
    """Parse manifest bytes of the given media type

    :param data: The manifest content.
    :param mime_type: The media type, e.g. from `guess_mime_type`.
    :param src: Where blobs referenced by the manifest are fetched from.

    """
    if mime_type == MEDIA_TYPE.MANIFEST_V2:
        return ManifestSchema2.from_bytes(data, src=src)
    if mime_type in SCHEMA1_MEDIA_TYPES:
        return ManifestSchema1.from_bytes(data, mime_type=mime_type)
    logger.debug("Unsupported manifest type %r", mime_type)
    raise InvalidFormatError(f"Unsupported manifest type {mime_type!r}")
