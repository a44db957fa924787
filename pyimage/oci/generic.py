from abc import ABC, abstractmethod

from .config import InspectionInfo
from .descriptor import BlobInfo
from .types import ManifestUpdateOptions


class GenericManifest(ABC):
    """The operations every manifest format supports

    Callers should only depend on these, never on a concrete format.
    Instances are never modified, `updated_image` returns a new manifest.
    """

    @abstractmethod
    def manifest_mime_type(self) -> str:
        """Media type of the serialized manifest"""

    @abstractmethod
    def serialize(self) -> bytes:
        """Encode the manifest in its own format"""

    @abstractmethod
    def config_info(self) -> BlobInfo | None:
        """Digest and size of the config blob, None if the format has none"""

    @abstractmethod
    def config_blob(self) -> bytes | None:
        """Content of the config blob, None if the format has none

        The content is verified against `config_info()` unless the manifest
        was built from already trusted components.
        """

    @abstractmethod
    def layer_infos(self) -> list[BlobInfo]:
        """Layer blobs in application order, the base layer first"""

    @abstractmethod
    def image_inspect_info(self) -> InspectionInfo:
        """Image metadata, as shown by `inspect`"""

    @abstractmethod
    def updated_image(self, options: ManifestUpdateOptions) -> "GenericManifest":
        """Return a manifest with `options` applied

        The receiver is not modified, on error no manifest is produced.
        """

    def updated_image_needs_layer_diff_ids(
        self, options: ManifestUpdateOptions
    ) -> bool:
        """Whether `updated_image(options)` needs the uncompressed layer digests"""
        return False
