"""Upload collection: object storage plus LLM file registration."""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol
from uuid import uuid4

from slideshow_generator.domain.uploads import (
    IMAGE_KINDS,
    ImageKind,
    RegisteredFile,
    StoredImage,
    UploadedFile,
)

_logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
        "image/bmp",
    }
)


class ObjectStorage(Protocol):
    """Interface for public object storage."""

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store bytes under a path and return their public URL."""


class FileRegistry(Protocol):
    """Interface for the LLM provider's file API."""

    async def register(
        self, content: bytes, mime_type: str, display_name: str | None
    ) -> RegisteredFile:
        """Upload bytes to the file API and return the handle."""

    async def delete(self, name: str) -> None:
        """Delete a registered file."""


class ImageDownloader(Protocol):
    """Interface for fetching stored images over HTTP."""

    async def download(self, url: str) -> bytes:
        """Return the bytes behind a URL."""


class InvalidUploadError(ValueError):
    """Raised when an upload request is missing files or has bad types."""


class UploadProcessingError(RuntimeError):
    """Raised when none of the submitted images could be registered."""


@dataclass(frozen=True)
class IncomingImage:
    """Image received in a multipart upload."""

    filename: str
    content: bytes
    content_type: str | None = None
    kind: ImageKind | None = None


@dataclass
class UploadService:
    """Service that stores images and registers them with the file API."""

    storage: ObjectStorage
    registry: FileRegistry
    downloader: ImageDownloader

    async def upload(self, images: list[IncomingImage]) -> list[UploadedFile]:
        """Store and register every image, failing on the first bad file."""
        if not images:
            raise InvalidUploadError("No files uploaded")
        kinds = assign_kinds(images)
        mimes = [resolve_mime(image) for image in images]
        for image, mime in zip(images, mimes, strict=True):
            if mime not in ALLOWED_IMAGE_TYPES:
                raise InvalidUploadError(
                    f"Only image files are allowed: {image.filename}"
                )

        uploaded: list[UploadedFile] = []
        for image, kind, mime in zip(images, kinds, mimes, strict=True):
            suffix = PurePosixPath(image.filename).suffix.lower()
            path = f"{kind}/{kind}_{uuid4()}{suffix}"
            local_url = self.storage.upload(path, image.content, mime)
            display_name = PurePosixPath(image.filename).name
            registered = await self.registry.register(image.content, mime, display_name)
            _logger.info(
                "Registered upload %s as %s (%s)", display_name, registered.name, kind
            )
            uploaded.append(
                UploadedFile(
                    kind=kind,
                    local_url=local_url,
                    file_id=registered.name,
                    file_uri=registered.uri,
                    mime=mime,
                    original_name=display_name,
                )
            )
        return uploaded

    async def register_stored(self, images: list[StoredImage]) -> list[UploadedFile]:
        """Register images already in storage, skipping ones that fail."""
        if not images:
            raise InvalidUploadError("No uploaded files provided")
        processed: list[UploadedFile] = []
        for image in images:
            try:
                content = await self.downloader.download(image.url)
                registered = await self.registry.register(
                    content, image.mime, image.original_name
                )
            except Exception:
                _logger.exception("Failed to register stored image %s", image.url)
                continue
            processed.append(
                UploadedFile(
                    kind=image.kind,
                    local_url=image.url,
                    file_id=registered.name,
                    file_uri=registered.uri,
                    mime=image.mime,
                    original_name=image.original_name,
                )
            )
        if not processed:
            raise UploadProcessingError("Failed to process any of the uploaded files")
        return processed


def infer_kind(filename: str) -> ImageKind | None:
    """Infer the image kind from the leading folder of a relative path."""
    parts = PurePosixPath(filename.replace("\\", "/")).parts
    if len(parts) < 2:
        return None
    folder = parts[0].lower()
    if "faceless" in folder:
        return "faceless"
    if "face" in folder:
        return "face"
    if "product" in folder:
        return "product"
    return None


def assign_kinds(images: list[IncomingImage]) -> list[ImageKind]:
    """Resolve a kind per image, balancing counts for unrecognized folders."""
    resolved: list[ImageKind | None] = [
        image.kind or infer_kind(image.filename) for image in images
    ]
    counts = dict.fromkeys(IMAGE_KINDS, 0)
    for kind in resolved:
        if kind is not None:
            counts[kind] += 1
    kinds: list[ImageKind] = []
    for kind in resolved:
        if kind is None:
            kind = min(IMAGE_KINDS, key=lambda candidate: counts[candidate])
            counts[kind] += 1
        kinds.append(kind)
    return kinds


def resolve_mime(image: IncomingImage) -> str:
    """Return the declared content type or one guessed from the filename."""
    if image.content_type and image.content_type != "application/octet-stream":
        return image.content_type
    guessed, _ = mimetypes.guess_type(image.filename)
    return guessed or "application/octet-stream"
