"""Generation history persistence."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from slideshow_generator.domain.generations import (
    GenerationSettings,
    GenerationSummary,
    SlideshowGeneration,
)
from slideshow_generator.domain.slideshows import Slideshow


class GenerationRepository(Protocol):
    """Persistence interface for completed batch runs."""

    def create_generation(
        self, settings: GenerationSettings, slideshows: list[Slideshow]
    ) -> UUID:
        """Insert a generation row and return its id."""

    def get_generation(self, generation_id: UUID) -> SlideshowGeneration | None:
        """Return a generation by id, if present."""

    def list_generations(self, limit: int) -> list[GenerationSummary]:
        """Return the newest generations first."""


@dataclass
class HistoryService:
    """Service for saving and browsing generations."""

    repository: GenerationRepository
    limit: int = 50

    def save(self, settings: GenerationSettings, slideshows: list[Slideshow]) -> UUID:
        """Persist one generation."""
        return self.repository.create_generation(settings, slideshows)

    def list_recent(self) -> list[GenerationSummary]:
        """Return recent generation summaries."""
        return self.repository.list_generations(self.limit)

    def get(self, generation_id: UUID) -> SlideshowGeneration | None:
        """Return a full generation."""
        return self.repository.get_generation(generation_id)
