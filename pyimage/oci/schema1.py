import json
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .config import InspectionInfo, decode_image_config
from .descriptor import BlobInfo, Digest
from .errors import (
    InvalidConfigError,
    InvalidFormatError,
    LayerCountMismatchError,
    UnsupportedConversionError,
)
from .generic import GenericManifest
from .media_types import MEDIA_TYPE, SCHEMA1_MEDIA_TYPES
from .types import ManifestUpdateOptions

# Go's encoding/json escapes these, the schema 1 payload must match byte for byte
_ESCAPES = {
    "&": "\\u0026",
    "<": "\\u003c",
    ">": "\\u003e",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_ESCAPE_RE = re.compile("[&<>\u2028\u2029]")


def _escape(text: str) -> str:
    return _ESCAPE_RE.sub(lambda match: _ESCAPES[match.group()], text)


def json_dumps(data: Any) -> str:
    """Indented JSON, the layout docker uses for schema 1 manifests"""
    return _escape(json.dumps(data, indent=3, ensure_ascii=False))


def json_dumps_compact(data: Any) -> str:
    return _escape(json.dumps(data, separators=(",", ":"), ensure_ascii=False))


_RAW_TOKEN_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\s+')
_WHITESPACE_RE = re.compile(r"\s*")


def compact_raw_json(text: str) -> str:
    """Drop the whitespace of a JSON text, leaving every value as written"""
    return _RAW_TOKEN_RE.sub(
        lambda match: _escape(match.group()) if match.group()[0] == '"' else "",
        text,
    )


def raw_json_members(text: str) -> dict[str, str]:
    """Split a JSON object into its members, keeping the text of each value

    A later duplicate key replaces an earlier one.

    :raises ValueError: when `text` is not a JSON object.
    """
    decoder = json.JSONDecoder()

    def skip(idx):
        return _WHITESPACE_RE.match(text, idx).end()

    idx = skip(0)
    if text[idx : idx + 1] != "{":
        raise ValueError("Expected a JSON object")
    members = {}
    idx = skip(idx + 1)
    if text[idx : idx + 1] == "}":
        return members
    while True:
        key, idx = decoder.raw_decode(text, idx)
        if not isinstance(key, str):
            raise ValueError(f"Expected an object key at {idx}")
        idx = skip(idx)
        if text[idx : idx + 1] != ":":
            raise ValueError(f"Expected ':' at {idx}")
        start = skip(idx + 1)
        _, end = decoder.raw_decode(text, start)
        members[key] = text[start:end]
        idx = skip(end)
        if text[idx : idx + 1] == "}":
            return members
        if text[idx : idx + 1] != ",":
            raise ValueError(f"Expected ',' or '}}' at {idx}")
        idx = skip(idx + 1)


class FSLayer(BaseModel):
    model_config = ConfigDict(frozen=True)

    blobSum: Digest


class V1History(BaseModel):
    model_config = ConfigDict(frozen=True)

    v1Compatibility: str


class Schema1Document(BaseModel):
    """
    ref: https://github.com/docker/distribution/blob/master/docs/spec/manifest-v2-1.md
    """

    model_config = ConfigDict(frozen=True)

    schemaVersion: Literal[1] = 1
    name: str = ""
    tag: str = ""
    architecture: str = ""
    fsLayers: tuple[FSLayer, ...]
    history: tuple[V1History, ...]
    signatures: list[dict[str, Any]] | None = None

    @model_validator(mode="after")
    def check_layers(self) -> "Schema1Document":
        if not self.fsLayers:
            raise ValueError("a schema 1 manifest needs at least one layer")
        if len(self.fsLayers) != len(self.history):
            raise ValueError(
                f"length of history ({len(self.history)}) does not match "
                f"number of layers ({len(self.fsLayers)})"
            )
        return self


class ManifestSchema1(GenericManifest):
    """A docker schema 1 image manifest

    Layers are listed top layer first, `history[0]` holds the image
    configuration. Signing is left to the caller: `serialize()` returns
    the unsigned payload unless the manifest was read from bytes.
    """

    def __init__(
        self,
        document: Schema1Document,
        mime_type: str = MEDIA_TYPE.MANIFEST_V1_SIGNED,
        raw: bytes | None = None,
    ):
        self._document = document
        self._mime_type = mime_type
        self._raw = raw

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "ManifestSchema1":
        try:
            document = Schema1Document.model_validate_json(data)
        except ValidationError as e:
            raise InvalidFormatError(f"Invalid schema 1 manifest: {e}") from e
        if mime_type is None:
            mime_type = (
                MEDIA_TYPE.MANIFEST_V1_SIGNED
                if document.signatures
                else MEDIA_TYPE.MANIFEST_V1
            )
        return cls(document, mime_type=mime_type, raw=data)

    @classmethod
    def from_components(
        cls,
        name: str,
        tag: str,
        fs_layers: list[dict],
        history: list[dict],
        architecture: str,
        signed: bool = True,
    ) -> "ManifestSchema1":
        try:
            document = Schema1Document(
                name=name,
                tag=tag,
                architecture=architecture,
                fsLayers=fs_layers,
                history=history,
            )
        except ValidationError as e:
            raise InvalidFormatError(f"Invalid schema 1 manifest: {e}") from e
        mime_type = MEDIA_TYPE.MANIFEST_V1_SIGNED if signed else MEDIA_TYPE.MANIFEST_V1
        return cls(document, mime_type=mime_type)

    def __eq__(self, other):
        if not isinstance(other, ManifestSchema1):
            return NotImplemented
        return (self._document, self._mime_type, self._raw) == (
            other._document,
            other._mime_type,
            other._raw,
        )

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(name={self.name!r}, tag={self.tag!r}, "
            f"layers={len(self._document.fsLayers)})"
        )

    @property
    def name(self) -> str:
        return self._document.name

    @property
    def tag(self) -> str:
        return self._document.tag

    @property
    def fs_layers(self) -> list[str]:
        """Layer digests, the top layer first"""
        return [layer.blobSum for layer in self._document.fsLayers]

    @property
    def history(self) -> list[str]:
        """v1Compatibility documents, the top layer first"""
        return [entry.v1Compatibility for entry in self._document.history]

    def manifest_mime_type(self) -> str:
        return self._mime_type

    def serialize(self) -> bytes:
        if self._raw is not None:
            return self._raw
        payload = self._document.model_dump(mode="json", exclude={"signatures"})
        return json_dumps(payload).encode("utf-8")

    def config_info(self) -> None:
        return None

    def config_blob(self) -> None:
        return None

    def layer_infos(self) -> list[BlobInfo]:
        return [
            BlobInfo(digest=layer.blobSum) for layer in reversed(self._document.fsLayers)
        ]

    def image_inspect_info(self) -> InspectionInfo:
        v1 = self._document.history[0].v1Compatibility
        try:
            config = decode_image_config(v1.encode("utf-8"))
        except InvalidConfigError as e:
            raise InvalidConfigError(f"Invalid v1Compatibility of the top layer: {e}") from e
        return InspectionInfo.from_config(config, tag=self.tag)

    def updated_image(self, options: ManifestUpdateOptions) -> GenericManifest:
        document = self._document
        if options.layer_infos is not None:
            if len(options.layer_infos) != len(document.fsLayers):
                raise LayerCountMismatchError(
                    f"Error preparing updated manifest: layer count changed "
                    f"from {len(document.fsLayers)} to {len(options.layer_infos)}"
                )
            fs_layers = tuple(
                FSLayer(blobSum=info.digest) for info in reversed(options.layer_infos)
            )
            document = document.model_copy(
                update={"fsLayers": fs_layers, "signatures": None}
            )

        mime_type = options.manifest_mime_type or self._mime_type
        if mime_type not in SCHEMA1_MEDIA_TYPES:
            raise UnsupportedConversionError(
                f"Conversion of image manifest from {self._mime_type} "
                f"to {mime_type} is not implemented"
            )
        if document is self._document and mime_type == self._mime_type:
            return ManifestSchema1(document, mime_type=mime_type, raw=self._raw)
        return ManifestSchema1(document, mime_type=mime_type)
