"""Gemini File API client."""

import io
from dataclasses import dataclass

from google import genai
from google.genai import types

from slideshow_generator.domain.uploads import RegisteredFile
from slideshow_generator.services.uploads import FileRegistry


@dataclass
class GeminiFileClient(FileRegistry):
    """File registry backed by the Gemini File API."""

    client: genai.Client

    async def register(
        self, content: bytes, mime_type: str, display_name: str | None
    ) -> RegisteredFile:
        """Upload bytes to the File API."""
        uploaded = await self.client.aio.files.upload(
            file=io.BytesIO(content),
            config=types.UploadFileConfig(
                mime_type=mime_type, display_name=display_name
            ),
        )
        if not uploaded.name:
            raise RuntimeError("Gemini file upload returned no file name")
        return RegisteredFile(
            name=uploaded.name, uri=uploaded.uri, mime_type=uploaded.mime_type
        )

    async def delete(self, name: str) -> None:
        """Delete a file by name or gs:// URI."""
        if name.startswith("gs://"):
            name = name.rsplit("/", 1)[-1]
        await self.client.aio.files.delete(name=name)
