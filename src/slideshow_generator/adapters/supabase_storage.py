"""Supabase Storage adapter for uploaded images."""

from dataclasses import dataclass

from supabase import Client

from slideshow_generator.services.uploads import ObjectStorage


@dataclass
class SupabaseObjectStorage(ObjectStorage):
    """Public bucket in Supabase Storage."""

    client: Client
    bucket: str

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Upload bytes and return the public URL."""
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path,
            content,
            {
                "content-type": content_type,
                "cache-control": "31536000",
                "upsert": "false",
            },
        )
        return bucket.get_public_url(path)
