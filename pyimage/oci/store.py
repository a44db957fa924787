import logging
from pathlib import Path
from typing import BinaryIO

from .descriptor import BlobInfo
from .digest import parse_digest, verify_digest
from .errors import DigestMismatchError
from .types import ImageReference

logger = logging.getLogger(__name__)


class DirectoryBlobStore:
    """Blobs kept as files, `<root>/blobs/<algorithm>/<hex>`

    Serves as the blob source of a manifest and as the destination
    of a conversion.
    """

    def __init__(self, root: Path, reference: ImageReference | None = None):
        self.root = Path(root)
        self._reference = reference

    def __repr__(self):
        return f"{self.__class__.__name__}({str(self.root)!r})"

    @property
    def reference(self) -> ImageReference:
        if self._reference is None:
            raise ValueError(f"{self!r} has no image reference")
        return self._reference

    def blob_path(self, digest: str) -> Path:
        algorithm, encoded = parse_digest(digest)
        return self.root / "blobs" / algorithm / encoded

    def has_blob(self, digest: str) -> bool:
        return self.blob_path(digest).is_file()

    def get_blob(self, digest: str) -> tuple[BinaryIO, int]:
        path = self.blob_path(digest)
        logger.debug("Reading blob %s from %s", digest, path)
        size = path.stat().st_size
        return path.open("rb"), size

    def put_blob(self, stream: BinaryIO, info: BlobInfo) -> BlobInfo:
        """Store a blob, verifying its content against `info`"""
        data = stream.read()
        verify_digest(data, info.digest)
        if info.size >= 0 and info.size != len(data):
            raise DigestMismatchError(
                expected=info.digest,
                actual=info.digest,
                message=f"Blob {info.digest} has size {len(data)}, expected {info.size}",
            )

        path = self.blob_path(info.digest)
        if path.is_file():
            logger.info("Blob already exists: %s", info.digest)
            return BlobInfo(digest=info.digest, size=len(data))

        path.parent.mkdir(parents=True, exist_ok=True)
        # Write aside and rename, readers never see a partial blob
        partial = path.with_name(f".{path.name}.partial")
        partial.write_bytes(data)
        partial.replace(path)
        logger.debug("Stored blob %s", info.digest)
        return BlobInfo(digest=info.digest, size=len(data))
