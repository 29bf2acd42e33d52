# storage/dto.py
from pydantic import BaseModel, ConfigDict, Field


class FileRef(BaseModel):
    """
    A standardized Data Transfer Object for a file listed in a folder,
    abstracting away the provider-specific file representation.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    mime_type: str = Field("", alias="mimeType")


class FileMetadata(FileRef):
    """Metadata of a single file, as returned by a direct lookup."""


class ThumbnailEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    thumbnail_url: str = Field(alias="thumbnailUrl")


class EncodedPayload(BaseModel):
    """
    The complete content of one file, base64-encoded, paired with its MIME type.
    Only ever built from a fully drained content stream.
    """

    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str
    size: int


class TranscriptionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
