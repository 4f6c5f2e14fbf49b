"""HTTP downloader for images already in object storage."""

from dataclasses import dataclass

import httpx

from slideshow_generator.services.uploads import ImageDownloader


@dataclass
class HttpxImageDownloader(ImageDownloader):
    """Image downloader using httpx."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxImageDownloader":
        """Create a downloader with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(follow_redirects=True))

    async def download(self, url: str) -> bytes:
        """Download the bytes behind a URL."""
        response = await self.http_client.get(url, timeout=20)
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
