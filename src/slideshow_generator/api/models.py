"""Pydantic models for API request payloads."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from slideshow_generator.domain.generations import GenerationSettings
from slideshow_generator.domain.uploads import UploadedFile
from slideshow_generator.prompts import (
    DEFAULT_CAPTION_PROMPT,
    DEFAULT_FRAMES_PER_SLIDESHOW,
    DEFAULT_SLIDESHOWS_PER_THEME,
    DEFAULT_THEMES,
)


class _RequestModel(BaseModel):
    """Accepts both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderRequest(_RequestModel):
    """Ordering request payload."""

    system_prompt: str = ""
    files: list[UploadedFile] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=lambda: list(DEFAULT_THEMES))
    slideshows_per_theme: int = DEFAULT_SLIDESHOWS_PER_THEME
    frames_per_slideshow: int = DEFAULT_FRAMES_PER_SLIDESHOW


class CaptionSlide(_RequestModel):
    """Slideshow to caption."""

    theme: str
    images: list[str]


class CaptionRequest(_RequestModel):
    """Caption request payload."""

    slide: CaptionSlide
    research: str = ""
    system_prompt: str = DEFAULT_CAPTION_PROMPT


class BatchRequest(OrderRequest):
    """Batch request payload."""

    research_markdown: str = ""
    caption_prompt: str = DEFAULT_CAPTION_PROMPT

    def to_settings(self) -> GenerationSettings:
        """Return the settings persisted with the generation."""
        return GenerationSettings(
            system_prompt=self.system_prompt,
            caption_prompt=self.caption_prompt,
            research_markdown=self.research_markdown,
            themes=self.themes,
            slideshows_per_theme=self.slideshows_per_theme,
            frames_per_slideshow=self.frames_per_slideshow,
        )
