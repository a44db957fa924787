from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .digest import parse_digest


def _validate_digest(value: str) -> str:
    parse_digest(value)
    return value


Digest = Annotated[str, AfterValidator(_validate_digest)]


class BlobInfo(BaseModel):
    """Digest and size of a blob, as exchanged with blob sources and destinations

    `size` is -1 when unknown.
    `mediaType` and `urls` are only set when a caller wants to override
    the values of an existing descriptor.
    """

    model_config = ConfigDict(frozen=True)

    digest: Digest
    size: int = -1
    mediaType: str | None = None
    urls: list[str] | None = None


class Descriptor(BaseModel):
    """
    ref: https://github.com/docker/distribution/blob/master/docs/spec/manifest-v2-2.md
    """

    model_config = ConfigDict(frozen=True)

    mediaType: str
    size: int = Field(ge=0)
    digest: Digest
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None

    def blob_info(self) -> BlobInfo:
        return BlobInfo(digest=self.digest, size=self.size, urls=self.urls)

    def updated(self, info: BlobInfo) -> "Descriptor":
        """Return a copy pointing at the blob described by `info`"""
        update = {"digest": info.digest, "size": info.size, "urls": info.urls}
        if info.mediaType is not None:
            update["mediaType"] = info.mediaType
        return Descriptor.model_validate(self.model_dump() | update)
