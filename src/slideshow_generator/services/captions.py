"""Caption fan-out across ordered slideshows."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from slideshow_generator.domain.slideshows import (
    CaptionReply,
    OrderedSlideshow,
    Slideshow,
)
from slideshow_generator.prompts import (
    CAPTION_RETRY_SUFFIX,
    CAPTIONS_SCHEMA,
    caption_prompt,
)

_logger = logging.getLogger(__name__)


class RateLimitedError(RuntimeError):
    """Raised by caption clients when the provider answers HTTP 429."""


class CaptionParseError(ValueError):
    """Raised when a caption reply is not usable captions JSON."""


class CaptionClient(Protocol):
    """Interface for the LLM that writes frame captions."""

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_urls: list[str],
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        """Return the structured caption reply."""


@dataclass
class CaptionService:
    """Service that captions slideshows with bounded concurrency and retries."""

    client: CaptionClient
    model: str
    reasoning_effort: str | None
    store: bool
    concurrency: int = 3
    max_retries: int = 3
    retry_base_delay: float = 1.0
    submit_delay: float = 0.2
    public_base_url: str | None = None

    async def caption(
        self,
        images: list[str],
        research: str,
        system_prompt: str,
        base_url: str | None = None,
    ) -> list[str]:
        """Return one caption per image, substituting placeholders on failure."""
        image_urls = [
            absolute_url(url, self.public_base_url or base_url) for url in images
        ]
        prompt = caption_prompt(system_prompt, research)
        try:
            try:
                return await self._request(image_urls, prompt, len(images))
            except CaptionParseError as exc:
                _logger.warning("Caption reply unusable, retrying once: %s", exc)
            return await self._request(
                image_urls, prompt + CAPTION_RETRY_SUFFIX, len(images)
            )
        except CaptionParseError as exc:
            _logger.warning("Caption reply unusable, using placeholders: %s", exc)
        except RateLimitedError:
            _logger.warning(
                "Caption rate limit persisted after %s retries, using placeholders",
                self.max_retries,
            )
        return placeholder_captions(len(images))

    async def caption_all(
        self,
        slideshows: list[OrderedSlideshow],
        research: str,
        system_prompt: str,
        *,
        base_url: str | None = None,
        on_start: Callable[[int, int], None] | None = None,
    ) -> list[Slideshow]:
        """Caption every slideshow, keeping the input order.

        The first error stops the fan-out: queued slideshows are skipped, the
        ones in flight are cancelled and the error is re-raised.
        """
        semaphore = asyncio.Semaphore(max(self.concurrency, 1))
        total = len(slideshows)
        results: list[Slideshow | None] = [None] * total
        failed: list[int] = []

        async def run(index: int, slide: OrderedSlideshow) -> None:
            async with semaphore:
                if failed:
                    return
                if on_start is not None:
                    on_start(index, total)
                if index > 0 and self.submit_delay > 0:
                    await asyncio.sleep(self.submit_delay)
                try:
                    captions = await self.caption(
                        slide.images, research, system_prompt, base_url
                    )
                except Exception:
                    failed.append(index)
                    raise
                results[index] = Slideshow(
                    theme=slide.theme, images=slide.images, captions=captions
                )

        tasks = [
            asyncio.create_task(run(index, slide))
            for index, slide in enumerate(slideshows)
        ]
        try:
            await asyncio.gather(*tasks)
        except Exception:
            pending = [task for task in tasks if not task.done()]
            _logger.warning(
                "Caption fan-out failed; cancelling %s pending slideshows",
                len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise
        return [slideshow for slideshow in results if slideshow is not None]

    async def _request(
        self, image_urls: list[str], prompt: str, expected: int
    ) -> list[str]:
        attempt = 0
        while True:
            try:
                raw = await self.client.generate(
                    model=self.model,
                    reasoning_effort=self.reasoning_effort,
                    store=self.store,
                    image_urls=image_urls,
                    prompt=prompt,
                    schema=CAPTIONS_SCHEMA,
                )
                break
            except RateLimitedError:
                if attempt >= self.max_retries:
                    raise
                delay = self.retry_base_delay * (2**attempt)
                attempt += 1
                _logger.warning(
                    "Caption call rate limited (retry %s/%s in %.1fs)",
                    attempt,
                    self.max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
        return parse_captions(raw, expected)


def parse_captions(raw: object, expected: int) -> list[str]:
    """Validate a caption reply and its caption count."""
    try:
        reply = CaptionReply.model_validate(raw)
    except ValidationError as exc:
        raise CaptionParseError(f"Invalid caption payload: {exc}") from exc
    if len(reply.captions) != expected:
        raise CaptionParseError(
            f"Expected {expected} captions, got {len(reply.captions)}"
        )
    return reply.captions


def placeholder_captions(count: int) -> list[str]:
    """Return deterministic stand-in captions."""
    return [f"Caption unavailable (frame {index + 1})" for index in range(count)]


def absolute_url(url: str, base_url: str | None) -> str:
    """Resolve a relative image URL against the public base URL."""
    if url.startswith(("http://", "https://")) or not base_url:
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"
