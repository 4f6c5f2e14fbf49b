"""Models for persisted generation runs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from slideshow_generator.domain.slideshows import Slideshow


class GenerationSettings(BaseModel):
    """Settings a batch run was executed with."""

    system_prompt: str | None = None
    caption_prompt: str | None = None
    research_markdown: str | None = None
    themes: list[str]
    slideshows_per_theme: int
    frames_per_slideshow: int


class SlideshowGeneration(BaseModel):
    """One completed batch run."""

    id: UUID
    created_at: datetime
    settings: GenerationSettings | None = None
    slideshows: list[Slideshow]


class GenerationSummary(BaseModel):
    """Listing row for the generation history."""

    id: UUID
    created_at: datetime
    themes: list[str] | None = None
    slideshow_count: int
