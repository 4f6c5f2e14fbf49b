"""Models for uploaded slideshow images."""

from typing import Literal

from pydantic import BaseModel

ImageKind = Literal["face", "faceless", "product"]

IMAGE_KINDS: tuple[ImageKind, ...] = ("face", "faceless", "product")


class UploadedFile(BaseModel):
    """Image stored in object storage and registered with the LLM file API."""

    kind: ImageKind
    local_url: str
    file_id: str
    file_uri: str | None = None
    mime: str
    original_name: str | None = None


class StoredImage(BaseModel):
    """Image already present in object storage, awaiting registration."""

    kind: ImageKind
    url: str
    mime: str
    original_name: str | None = None


class RegisteredFile(BaseModel):
    """Handle returned by the LLM file API."""

    name: str
    uri: str | None = None
    mime_type: str | None = None
