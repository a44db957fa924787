import io
from pathlib import Path

import pytest

from pyimage.oci import BlobInfo, Descriptor, ManifestSchema2, NamedReference

TEST_DATA = Path(__file__).parent / "testdata"

CONFIG_DIGEST = "sha256:f26abc965e256c28a42b8adfdfc1dacd32e83a45fcc751fa746f6669ec493355"
CONFIG_SIZE = 5374
LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar.gzip"
LAYERS = [
    ("sha256:6a5a5368e0c2d3e5909184fa28ddfd56072e7ff3ee9a945876f7eee5896ef5bb", 51354364),
    ("sha256:1bbf5d58d24c47512e234a5623474acf65ae00d4d1414272a893204f44cc680c", 150),
    ("sha256:8f5dc8a4b12c307ac84de90cdd9a7f3915d1be04c9388868ca118831099c67a9", 11739507),
    ("sha256:bbd6b22eb11afce63cc76f6bc41042d99f10d6024c96b655dafba930b8d25909", 8841833),
    ("sha256:960e52ecf8200cbd84e70eb2ad8678f4367e50d14357021872c10fa3fc5935fa", 291),
]


class UnusedImageSource:
    """Blob source for tests which must not touch it"""

    @property
    def reference(self):
        pytest.fail("Unexpected call to a mock function")

    def close(self):
        pytest.fail("Unexpected call to a mock function")

    def get_manifest(self):
        pytest.fail("Unexpected call to a mock function")

    def get_blob(self, digest):
        pytest.fail("Unexpected call to a mock function")


class ConfigBlobImageSource:
    """Serves the config blob through `func`, anything else fails"""

    def __init__(self, func, reference=None):
        self._unused = UnusedImageSource()
        self.func = func
        self.calls = 0
        self._reference = reference

    def __getattr__(self, name):
        return getattr(self._unused, name)

    @property
    def reference(self):
        if self._reference is None:
            return self._unused.reference
        return self._reference

    def get_blob(self, digest):
        if digest != CONFIG_DIGEST:
            pytest.fail("Unexpected digest in get_blob")
        self.calls += 1
        return self.func(digest)


class MemoryImageDest:
    """Destination keeping stored blobs in `stored_blobs`"""

    def __init__(self, reference):
        self._reference = reference
        self.stored_blobs = {}
        self.put_calls = 0

    @property
    def reference(self):
        return self._reference

    def put_blob(self, stream, info):
        if not info.digest:
            pytest.fail("info.digest unexpectedly empty")
        self.put_calls += 1
        contents = stream.read()
        self.stored_blobs[info.digest] = contents
        return BlobInfo(digest=info.digest, size=len(contents))

    def put_manifest(self, manifest):
        pytest.fail("Unexpected call to a mock function")

    def commit(self):
        pytest.fail("Unexpected call to a mock function")


@pytest.fixture
def testdata() -> Path:
    """Return the testdata dir for this module"""
    return TEST_DATA


@pytest.fixture
def schema2_json(testdata) -> bytes:
    return (testdata / "schema2.json").read_bytes()


@pytest.fixture
def config_json(testdata) -> bytes:
    return (testdata / "schema2-config.json").read_bytes()


@pytest.fixture
def schema1_json(testdata) -> bytes:
    """The schema 1 conversion of schema2.json, unsigned

    The lower history entries are what `docker push` produced for
    library/httpd. The config was rewritten afterwards, so the top
    layer id and v1Compatibility were recomputed with docker's algorithm.
    """
    return (testdata / "schema2-to-schema1.json").read_bytes()


@pytest.fixture
def unused_source():
    return UnusedImageSource()


@pytest.fixture
def config_source(config_json):
    """A source serving the real config blob, named library/httpd:latest"""
    return ConfigBlobImageSource(
        lambda digest: (io.BytesIO(config_json), len(config_json)),
        reference=NamedReference("library/httpd", "latest"),
    )


@pytest.fixture
def memory_dest():
    return MemoryImageDest(NamedReference("library/httpd-copy", "latest"))


@pytest.fixture
def from_fixture(schema2_json):
    """Parse the schema 2 fixture with the given blob source"""

    def factory(src):
        return ManifestSchema2.from_bytes(schema2_json, src=src)

    return factory


@pytest.fixture
def from_components():
    """Build a manifest equivalent to the schema 2 fixture from its parts"""

    def factory(config_blob):
        return ManifestSchema2.from_components(
            Descriptor(
                mediaType="application/octet-stream",
                size=CONFIG_SIZE,
                digest=CONFIG_DIGEST,
            ),
            config_blob,
            [
                Descriptor(mediaType=LAYER_MEDIA_TYPE, digest=digest, size=size)
                for digest, size in LAYERS
            ],
        )

    return factory


@pytest.fixture
def expected_config_info() -> BlobInfo:
    return BlobInfo(digest=CONFIG_DIGEST, size=CONFIG_SIZE)


@pytest.fixture
def expected_layer_infos() -> list[BlobInfo]:
    return [BlobInfo(digest=digest, size=size) for digest, size in LAYERS]


@pytest.fixture
def blob_source():
    """Build a config blob source around a `get_blob` implementation"""
    return ConfigBlobImageSource
