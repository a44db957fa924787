import re
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from .errors import InvalidConfigError

# Docker writes nanosecond timestamps, datetime only holds microseconds.
_SUBMICRO_RE = re.compile(r"(\.\d{6})\d+")


def _truncate_fraction(value):
    if isinstance(value, str):
        return _SUBMICRO_RE.sub(r"\1", value, count=1)
    return value


Timestamp = Annotated[datetime, BeforeValidator(_truncate_fraction)]


class ContainerConfig(BaseModel):
    """The runtime configuration part of an image configuration"""

    model_config = ConfigDict(extra="allow")

    Labels: dict[str, str] | None = None


class History(BaseModel):
    """
    ref: https://github.com/moby/moby/blob/master/image/spec/v1.2.md#image-json-field-descriptions
    """

    # Kept as written, it is copied into the schema 1 history.
    created: str | None = None
    created_by: str = ""
    author: str = ""
    comment: str = ""
    empty_layer: bool = False


class RootFS(BaseModel):
    type: str = ""
    diff_ids: list[str] | None = None


class ImageConfig(BaseModel):
    """
    ref: https://github.com/moby/moby/blob/master/image/spec/v1.2.md
    """

    model_config = ConfigDict(extra="allow")

    created: Timestamp | None = None
    author: str = ""
    architecture: str = ""
    os: str = ""
    docker_version: str = ""
    config: ContainerConfig | None = None
    rootfs: RootFS | None = None
    history: list[History] = []


class InspectionInfo(BaseModel):
    """Normalized image metadata, as shown by `inspect`

    `layers` is never filled in from a manifest: the manifest only knows
    the compressed layer digests, not the diff IDs.
    """

    tag: str = ""
    created: datetime | None = None
    docker_version: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    architecture: str = ""
    os: str = ""
    layers: list[str] | None = None

    @classmethod
    def from_config(cls, config: ImageConfig, tag: str = "") -> "InspectionInfo":
        labels = config.config.Labels if config.config is not None else None
        return cls(
            tag=tag,
            created=config.created,
            docker_version=config.docker_version,
            labels=labels or {},
            architecture=config.architecture,
            os=config.os,
        )


def decode_image_config(blob: bytes | None) -> ImageConfig:
    """Decode an image configuration blob

    :raises InvalidConfigError: when the blob is missing or is not a valid
        image configuration.
    """
    if blob is None:
        raise InvalidConfigError("Missing image configuration")
    try:
        return ImageConfig.model_validate_json(blob)
    except ValidationError as e:
        raise InvalidConfigError(f"Invalid image configuration: {e}") from e
