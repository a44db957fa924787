"""Content digests

A digest identifies a blob by content: `algorithm:hex`, e.g.
`sha256:a3ed95caeb02ffe68cdd9fd84406680ae93d633cb16422d00e8a7c22955b46d4`.

ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md#digests
"""
import hashlib
import re

from .errors import DigestMismatchError, InvalidDigestError

# Supported algorithms and the length of their hex encoding
ALGORITHMS = {"sha256": 64, "sha384": 96, "sha512": 128}
DEFAULT_ALGORITHM = "sha256"

DIGEST_RE = re.compile(r"(?P<algorithm>[a-z0-9]+(?:[.+_-][a-z0-9]+)*):(?P<hex>[a-f0-9]+)")


def parse_digest(digest: str) -> tuple[str, str]:
    """Split a digest into its algorithm and hex encoded hash

    :raises InvalidDigestError: when the digest is malformed or uses an
        unsupported algorithm.
    """
    match = DIGEST_RE.fullmatch(digest or "")
    if not match:
        raise InvalidDigestError(f"Invalid digest: {digest!r}")
    algorithm, encoded = match["algorithm"], match["hex"]
    if algorithm not in ALGORITHMS:
        raise InvalidDigestError(f"Unsupported digest algorithm: {algorithm}")
    if len(encoded) != ALGORITHMS[algorithm]:
        raise InvalidDigestError(f"Invalid {algorithm} digest length: {digest!r}")
    return algorithm, encoded


def digest_hex(digest: str) -> str:
    """Return the hex encoded hash of a digest"""
    return parse_digest(digest)[1]


def compute_digest(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    if algorithm not in ALGORITHMS:
        raise InvalidDigestError(f"Unsupported digest algorithm: {algorithm}")
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


def verify_digest(data: bytes, digest: str) -> None:
    """Check that `data` hashes to `digest`

    The content is re-hashed with the algorithm named by `digest`,
    the hex encodings are compared case-sensitively.
    """
    algorithm, _ = parse_digest(digest)
    actual = compute_digest(data, algorithm)
    if actual != digest:
        raise DigestMismatchError(expected=digest, actual=actual)
