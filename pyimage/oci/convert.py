import logging
from collections import namedtuple
from hashlib import sha256
from typing import TYPE_CHECKING

from .config import History, decode_image_config
from .digest import digest_hex
from .errors import BlobStoreError, InvalidConfigError
from .layer import EmptyLayer, empty_layer_stream
from .schema1 import (
    ManifestSchema1,
    compact_raw_json,
    json_dumps_compact,
    raw_json_members,
)
from .types import BlobDestination

if TYPE_CHECKING:
    from .manifest import ManifestSchema2

logger = logging.getLogger(__name__)

FS_Layer = namedtuple("FS_Layer", "blob_sum history")

# What Go's encoding/json writes for a zero time.Time
ZERO_TIME = "0001-01-01T00:00:00Z"


class Schema2ToSchema1Converter:
    """
    Converter from schema 2 to schema 1.

    Initialize it with a schema 2 manifest and the destination of the
    converted image, and call convert() to obtain the schema 1 manifest.
    The destination receives the empty layer blob when the image has
    history entries without filesystem changes, its reference provides
    the name and tag of the result.
    """

    def __init__(
        self,
        manifest: "ManifestSchema2",
        destination: BlobDestination,
        signed: bool = True,
    ):
        self.manifest = manifest
        self.destination = destination
        self.signed = signed
        self.fs_layers = []
        self.history = []
        self._config_blob = b""
        self._have_empty_layer = False

    def convert(self) -> ManifestSchema1:
        """
        Convert manifest from schema 2 to schema 1
        """
        self._config_blob = self.manifest.config_blob()
        config = decode_image_config(self._config_blob)
        self._validate(config.history, config.rootfs)
        self.compute_layers(config.history)

        reference = self.destination.reference
        logger.info(
            "Converted %s to schema 1 as %s", self.manifest.config_info().digest, reference
        )
        return ManifestSchema1.from_components(
            name=reference.name,
            tag=reference.tag,
            fs_layers=self.fs_layers,
            history=self.history,
            architecture=config.architecture,
            signed=self.signed,
        )

    def _validate(self, history, rootfs):
        layer_count = len(self.manifest.layers)
        if not history:
            raise InvalidConfigError(
                "Cannot convert an image with 0 history entries to schema 1"
            )
        non_empty = sum(1 for entry in history if not entry.empty_layer)
        if non_empty != layer_count:
            raise InvalidConfigError(
                f"Invalid image configuration, {non_empty} history entries "
                f"with layers for {layer_count} distributed layers"
            )
        if rootfs is not None and rootfs.diff_ids is not None:
            if len(rootfs.diff_ids) != layer_count:
                raise InvalidConfigError(
                    f"Invalid image configuration, {len(rootfs.diff_ids)} diff IDs "
                    f"for {layer_count} distributed layers"
                )

    def compute_layers(self, history: list[History]):
        """
        Compute layers to be present in the converted image.
        Empty (throwaway) layers are added for history entries
        that did not change the filesystem.
        """
        # Layers in schema 1 are in reverse order from schema 2
        fs_layers = self._compute_fs_layers(history)
        self.fs_layers = [dict(blobSum=layer.blob_sum) for layer in fs_layers]

        # Parent links run from the base layer up
        parent = ""
        history_entries = []
        for fs_layer in reversed(fs_layers[1:]):
            layer_id = self._compute_layer_id(fs_layer.blob_sum, parent)
            config = self._compute_v1_compatibility_config(
                layer_id, parent, fs_layer.history
            )
            history_entries.append(dict(v1Compatibility=json_dumps_compact(config)))
            parent = layer_id

        # The top layer carries the whole image configuration
        top = fs_layers[0]
        layer_id = self._compute_layer_id(
            top.blob_sum, parent, self._config_blob.decode("utf-8")
        )
        history_entries.append(
            dict(
                v1Compatibility=self._compute_top_v1_compatibility(
                    layer_id, parent, top.history.empty_layer
                )
            )
        )
        history_entries.reverse()
        self.history = history_entries

    def _compute_fs_layers(self, history: list[History]) -> list[FS_Layer]:
        """Return one FS_Layer per history entry, the top layer first"""
        layers = reversed(self.manifest.layers)
        fs_layers = []
        for entry in reversed(history):
            if entry.empty_layer:
                self._store_empty_layer()
                blob_sum = EmptyLayer.digest
            else:
                blob_sum = next(layers).digest
            fs_layers.append(FS_Layer(blob_sum, entry))
        return fs_layers

    def _store_empty_layer(self):
        if self._have_empty_layer:
            return
        logger.debug("Uploading empty layer during conversion to schema 1")
        try:
            info = self.destination.put_blob(
                empty_layer_stream(), EmptyLayer.blob_info()
            )
        except Exception as e:
            raise BlobStoreError("Error uploading empty layer") from e
        if info.digest != EmptyLayer.digest:
            raise BlobStoreError(
                f"Uploaded empty layer has digest {info.digest!r} "
                f"instead of {EmptyLayer.digest}"
            )
        self._have_empty_layer = True

    @staticmethod
    def _compute_v1_compatibility_config(
        layer_id: str, parent: str, history: History
    ) -> dict:
        """Build the v1Compatibility fields of a layer below the top one"""
        config = dict(id=layer_id)
        if parent:
            config["parent"] = parent
        if history.comment:
            config["comment"] = history.comment
        config["created"] = history.created or ZERO_TIME
        config["container_config"] = dict(Cmd=[history.created_by])
        if history.author:
            config["author"] = history.author
        if history.empty_layer:
            config["throwaway"] = True
        return config

    def _compute_top_v1_compatibility(
        self, layer_id: str, parent: str, throwaway: bool
    ) -> str:
        """
        The whole config blob becomes the v1Compatibility of the top layer,
        minus history and rootfs.

        Values are copied as written in the config blob, only whitespace
        is dropped, so numbers keep their original text.
        """
        try:
            members = raw_json_members(self._config_blob.decode("utf-8"))
        except ValueError as e:
            raise InvalidConfigError(f"Invalid image configuration: {e}") from e
        members.pop("history", None)
        members.pop("rootfs", None)
        members["id"] = json_dumps_compact(layer_id)
        if parent:
            members["parent"] = json_dumps_compact(parent)
        if throwaway:
            members["throwaway"] = "true"
        # Only the top level keys are sorted, nested objects keep their order
        fields = (
            f"{json_dumps_compact(key)}:{compact_raw_json(value)}"
            for key, value in sorted(members.items())
        )
        return "{" + ",".join(fields) + "}"

    @staticmethod
    def _compute_layer_id(blob_sum: str, *components: str) -> str:
        """
        Make up an image ID for a layer, the way docker does:
        the hash of the layer digest, the parent ID and, for the top layer,
        the image configuration, joined by spaces.
        """
        parts = [digest_hex(blob_sum), *components]
        return sha256(" ".join(parts).encode("utf-8")).hexdigest()
