class ManifestError(Exception):
    """Base class for all manifest handling errors."""


class InvalidFormatError(ManifestError, ValueError):
    """Raised when manifest bytes cannot be decoded."""


class InvalidDigestError(ManifestError, ValueError):
    """Raised when a digest is not of the form `algorithm:hex`."""


class NoSourceError(ManifestError):
    """Raised when a blob is needed but no blob source was provided."""


class NoDestinationError(ManifestError):
    """Raised when a conversion needs a destination and none was provided."""


class FetchFailedError(ManifestError):
    """Raised when the blob source fails to open a blob."""


class ReadFailedError(ManifestError):
    """Raised when reading an opened blob stream fails."""


class DigestMismatchError(ManifestError):
    """Raised when blob content does not match its descriptor."""

    def __init__(self, expected: str, actual: str, message: str | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message or f"Blob digest mismatch: expected {expected}, got {actual}"
        )


class LayerCountMismatchError(ManifestError):
    """Raised when an update replaces the layers with a list of another length."""


class UnsupportedConversionError(ManifestError):
    """Raised when the requested manifest type can not be produced."""


class InvalidConfigError(ManifestError):
    """Raised when the image configuration does not have the expected shape."""


class BlobStoreError(ManifestError):
    """Raised when a blob could not be stored at the destination."""
