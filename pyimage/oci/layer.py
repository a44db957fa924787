import io
from typing import BinaryIO, Final

from .descriptor import Descriptor
from .media_types import MEDIA_TYPE

# A gzip compressed empty tar archive, as produced by the docker daemon.
# The bytes are fixed, registries deduplicate against this exact digest.
GZIPPED_EMPTY_LAYER: Final[bytes] = bytes(
    [
        31, 139, 8, 0, 0, 9, 110, 136, 0, 255, 98, 24, 5, 163, 96, 20, 140, 88,
        0, 8, 0, 0, 255, 255, 46, 175, 181, 239, 0, 4, 0, 0,
    ]
)  # fmt: skip
GZIPPED_EMPTY_LAYER_DIGEST: Final[str] = (
    "sha256:a3ed95caeb02ffe68cdd9fd84406680ae93d633cb16422d00e8a7c22955b46d4"
)

EmptyLayer: Final[Descriptor] = Descriptor(
    mediaType=MEDIA_TYPE.REGULAR_BLOB,
    digest=GZIPPED_EMPTY_LAYER_DIGEST,
    size=len(GZIPPED_EMPTY_LAYER),
)


def empty_layer_stream() -> BinaryIO:
    """Return a fresh stream over the empty layer content"""
    return io.BytesIO(GZIPPED_EMPTY_LAYER)
