"""Models for ordered and captioned slideshows."""

from pydantic import BaseModel, Field


class OrderedSlideshow(BaseModel):
    """Themed image sequence produced by the ordering call."""

    theme: str
    images: list[str]


class OrderResult(BaseModel):
    """Ordering output plus markers for any substituted data."""

    slideshows: list[OrderedSlideshow]
    fallback: bool = False
    placeholder_count: int = 0
    warnings: list[str] = Field(default_factory=list)


class Slideshow(BaseModel):
    """Slideshow with one caption per frame."""

    theme: str
    images: list[str]
    captions: list[str]


class CaptionReply(BaseModel):
    """Structured caption response from the caption model."""

    captions: list[str]
