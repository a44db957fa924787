import json

import pytest

import pyimage.oci
from pyimage.oci import InvalidFormatError, ManifestSchema1, ManifestSchema2
from pyimage.oci.media_types import MEDIA_TYPE


@pytest.mark.parametrize(
    "manifest,expected",
    [
        ({"mediaType": MEDIA_TYPE.MANIFEST_LIST, "manifests": []}, MEDIA_TYPE.MANIFEST_LIST),
        ({"schemaVersion": 2, "config": {}, "layers": []}, MEDIA_TYPE.MANIFEST_V2),
        ({"schemaVersion": 1, "signatures": []}, MEDIA_TYPE.MANIFEST_V1_SIGNED),
        ({"schemaVersion": 1}, MEDIA_TYPE.MANIFEST_V1),
        ({"schemaVersion": 2}, ""),
        ([], ""),
    ],
)
def test_guess_mime_type(manifest, expected):
    assert pyimage.oci.guess_mime_type(json.dumps(manifest).encode()) == expected


def test_guess_mime_type_invalid():
    assert pyimage.oci.guess_mime_type(b"invalid JSON") == ""


def test_guess_mime_type_fixtures(schema2_json, schema1_json):
    assert pyimage.oci.guess_mime_type(schema2_json) == MEDIA_TYPE.MANIFEST_V2
    assert pyimage.oci.guess_mime_type(schema1_json) == MEDIA_TYPE.MANIFEST_V1


def test_manifest_from_blob(schema2_json, schema1_json, unused_source):
    m = pyimage.oci.manifest_from_blob(
        schema2_json, MEDIA_TYPE.MANIFEST_V2, src=unused_source
    )
    assert isinstance(m, ManifestSchema2)

    m = pyimage.oci.manifest_from_blob(schema1_json, MEDIA_TYPE.MANIFEST_V1)
    assert isinstance(m, ManifestSchema1)
    assert m.manifest_mime_type() == MEDIA_TYPE.MANIFEST_V1

    with pytest.raises(InvalidFormatError):
        pyimage.oci.manifest_from_blob(schema2_json, MEDIA_TYPE.MANIFEST_LIST)
