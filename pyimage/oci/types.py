"""Interfaces of the collaborators the manifest code depends on

Transports, blob stores and reference parsing live outside this package,
anything implementing these protocols can be plugged in.
"""
from dataclasses import dataclass
from typing import BinaryIO, Protocol

from .descriptor import BlobInfo


class ImageReference(Protocol):
    """A resolved image name"""

    @property
    def name(self) -> str:
        """Repository path, e.g. `library/httpd`"""

    @property
    def tag(self) -> str:
        """Tag, empty when the reference has none"""


@dataclass(slots=True, frozen=True)
class NamedReference:
    """A repository name and tag, e.g. `library/httpd` and `latest`"""

    name: str
    tag: str = ""

    def __str__(self):
        return f"{self.name}:{self.tag}" if self.tag else self.name


class BlobSource(Protocol):
    def get_blob(self, digest: str) -> tuple[BinaryIO, int]:
        """Open the blob `digest`

        Returns the stream and its size, -1 if unknown.
        The caller reads the stream to the end and closes it.
        """


class BlobDestination(Protocol):
    @property
    def reference(self) -> ImageReference:
        """The name the image is stored under"""

    def put_blob(self, stream: BinaryIO, info: BlobInfo) -> BlobInfo:
        """Store the content of `stream` as blob `info.digest`

        Storing a digest that already exists must not fail
        nor change the stored content.
        """


@dataclass(slots=True)
class ManifestUpdateOptions:
    """Changes requested from `GenericManifest.updated_image`

    :param layer_infos: replacement layers, same count as the current ones.
    :param manifest_mime_type: the manifest type to convert to.
    :param destination: where blobs created by a conversion are stored,
        its reference names the converted image.
    """

    layer_infos: list[BlobInfo] | None = None
    manifest_mime_type: str | None = None
    destination: BlobDestination | None = None
