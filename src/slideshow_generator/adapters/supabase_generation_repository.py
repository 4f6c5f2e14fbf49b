"""Supabase repository for slideshow generations."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from slideshow_generator.domain.generations import (
    GenerationSettings,
    GenerationSummary,
    SlideshowGeneration,
)
from slideshow_generator.domain.slideshows import Slideshow
from slideshow_generator.services.history import GenerationRepository


@dataclass
class SupabaseGenerationRepository(GenerationRepository):
    """Supabase implementation for generation persistence."""

    client: Client

    def create_generation(
        self, settings: GenerationSettings, slideshows: list[Slideshow]
    ) -> UUID:
        """Insert a generation row and return its id."""
        response = (
            self.client.table("slideshow_generations")
            .insert(
                {
                    "settings": settings.model_dump(),
                    "slideshows": [slideshow.model_dump() for slideshow in slideshows],
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save generation")
        return UUID(response.data[0]["id"])

    def get_generation(self, generation_id: UUID) -> SlideshowGeneration | None:
        """Return a generation row by id."""
        response = (
            self.client.table("slideshow_generations")
            .select("id, created_at, settings, slideshows")
            .eq("id", str(generation_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return SlideshowGeneration.model_validate(response.data[0])

    def list_generations(self, limit: int) -> list[GenerationSummary]:
        """Return newest generations first."""
        response = (
            self.client.table("slideshow_generations")
            .select("id, created_at, themes:settings->themes, slideshow_count")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_summary(row) for row in response.data or []]


def _parse_summary(row: dict[str, object]) -> GenerationSummary:
    themes = row.get("themes")
    count = row.get("slideshow_count")
    return GenerationSummary(
        id=UUID(str(row["id"])),
        created_at=row["created_at"],
        themes=[str(theme) for theme in themes] if isinstance(themes, list) else None,
        slideshow_count=count if isinstance(count, int) else 0,
    )
