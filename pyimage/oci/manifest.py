import logging
from contextlib import closing
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from .config import ImageConfig, InspectionInfo, decode_image_config
from .convert import Schema2ToSchema1Converter
from .descriptor import BlobInfo, Descriptor
from .digest import verify_digest
from .errors import (
    DigestMismatchError,
    FetchFailedError,
    InvalidFormatError,
    LayerCountMismatchError,
    NoDestinationError,
    NoSourceError,
    ReadFailedError,
    UnsupportedConversionError,
)
from .generic import GenericManifest
from .media_types import MEDIA_TYPE, SCHEMA1_MEDIA_TYPES
from .types import BlobSource, ManifestUpdateOptions

logger = logging.getLogger(__name__)


class Schema2Document(BaseModel):
    """
    ref: https://github.com/docker/distribution/blob/master/docs/spec/manifest-v2-2.md
    """

    model_config = ConfigDict(frozen=True)

    schemaVersion: Literal[2] = 2
    mediaType: str = MEDIA_TYPE.MANIFEST_V2
    config: Descriptor
    layers: tuple[Descriptor, ...] = ()


class ManifestSchema2(GenericManifest):
    """A docker schema 2 image manifest

    The config blob is fetched from `src` on first use, verified against
    the config descriptor and kept for the lifetime of the instance.
    """

    def __init__(
        self,
        document: Schema2Document,
        src: BlobSource | None = None,
        config_blob: bytes | None = None,
        trusted_config_blob: bool = False,
    ):
        self._document = document
        self._src = src
        self._config_blob = config_blob
        self._trusted_config_blob = trusted_config_blob

    @classmethod
    def from_bytes(cls, data: bytes, src: BlobSource | None = None) -> "ManifestSchema2":
        try:
            document = Schema2Document.model_validate_json(data)
        except ValidationError as e:
            raise InvalidFormatError(f"Invalid schema 2 manifest: {e}") from e
        return cls(document, src=src)

    @classmethod
    def from_components(
        cls,
        config: Descriptor,
        config_blob: bytes | None,
        layers: list[Descriptor],
    ) -> "ManifestSchema2":
        """Build a manifest from parts the caller already trusts

        `config_blob` is returned by `config_blob()` as is, it is not
        checked against `config`.
        """
        document = Schema2Document(config=config, layers=tuple(layers))
        return cls(document, config_blob=config_blob, trusted_config_blob=True)

    def __eq__(self, other):
        if not isinstance(other, ManifestSchema2):
            return NotImplemented
        return (
            self._document == other._document
            and self._src is other._src
            and self._config_blob == other._config_blob
            and self._trusted_config_blob == other._trusted_config_blob
        )

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(config={self._document.config.digest!r}, "
            f"layers={len(self._document.layers)})"
        )

    def _copy(self, document: Schema2Document) -> "ManifestSchema2":
        return ManifestSchema2(
            document,
            src=self._src,
            config_blob=self._config_blob,
            trusted_config_blob=self._trusted_config_blob,
        )

    def manifest_mime_type(self) -> str:
        return MEDIA_TYPE.MANIFEST_V2

    def serialize(self) -> bytes:
        return self._document.model_dump_json(exclude_none=True).encode("utf-8")

    def config_info(self) -> BlobInfo:
        config = self._document.config
        return BlobInfo(digest=config.digest, size=config.size)

    def config_blob(self) -> bytes | None:
        if self._trusted_config_blob or self._config_blob is not None:
            return self._config_blob
        if self._src is None:
            raise NoSourceError("No blob source to fetch the config blob from")

        config = self._document.config
        logger.debug("Fetching config blob %s", config.digest)
        try:
            stream, _ = self._src.get_blob(config.digest)
        except Exception as e:
            raise FetchFailedError(f"Error fetching config blob {config.digest}") from e
        with closing(stream):
            try:
                blob = stream.read()
            except Exception as e:
                raise ReadFailedError(
                    f"Error reading config blob {config.digest}"
                ) from e

        verify_digest(blob, config.digest)
        if len(blob) != config.size:
            raise DigestMismatchError(
                expected=config.digest,
                actual=config.digest,
                message=(
                    f"Config blob {config.digest} has size {len(blob)}, "
                    f"descriptor says {config.size}"
                ),
            )
        self._config_blob = blob
        return blob

    def layer_infos(self) -> list[BlobInfo]:
        return [layer.blob_info() for layer in self._document.layers]

    @property
    def layers(self) -> tuple[Descriptor, ...]:
        return self._document.layers

    def image_config(self) -> ImageConfig:
        """The decoded config blob"""
        return decode_image_config(self.config_blob())

    def image_inspect_info(self) -> InspectionInfo:
        return InspectionInfo.from_config(self.image_config())

    def updated_image(self, options: ManifestUpdateOptions) -> GenericManifest:
        document = self._document
        if options.layer_infos is not None:
            if len(options.layer_infos) != len(document.layers):
                raise LayerCountMismatchError(
                    f"Error preparing updated manifest: layer count changed "
                    f"from {len(document.layers)} to {len(options.layer_infos)}"
                )
            try:
                layers = tuple(
                    layer.updated(info)
                    for layer, info in zip(document.layers, options.layer_infos)
                )
            except ValidationError as e:
                # Schema 2 descriptors need a known size
                raise InvalidFormatError(f"Invalid replacement layer: {e}") from e
            document = document.model_copy(update={"layers": layers})
        updated = self._copy(document)

        mime_type = options.manifest_mime_type
        if not mime_type:
            return updated
        if mime_type in SCHEMA1_MEDIA_TYPES:
            if options.destination is None:
                raise NoDestinationError(
                    f"Conversion to {mime_type} needs a destination"
                )
            converter = Schema2ToSchema1Converter(
                updated,
                options.destination,
                signed=mime_type == MEDIA_TYPE.MANIFEST_V1_SIGNED,
            )
            return converter.convert()
        # Asking for schema 2 again is a confused caller, not a no-op
        raise UnsupportedConversionError(
            f"Conversion of image manifest from {self.manifest_mime_type()} "
            f"to {mime_type} is not implemented"
        )
