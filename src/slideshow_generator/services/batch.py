"""Batch pipeline: ordering, caption fan-out, cleanup and persistence."""

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from slideshow_generator.domain.generations import GenerationSettings
from slideshow_generator.domain.slideshows import OrderResult, Slideshow
from slideshow_generator.domain.uploads import UploadedFile
from slideshow_generator.services.captions import CaptionService
from slideshow_generator.services.history import HistoryService
from slideshow_generator.services.ordering import (
    InvalidOrderRequestError,
    OrderingService,
)
from slideshow_generator.services.progress import ProgressStream
from slideshow_generator.services.uploads import FileRegistry

_logger = logging.getLogger(__name__)


@dataclass
class BatchService:
    """Runs one batch and reports progress on a stream."""

    ordering_service: OrderingService
    caption_service: CaptionService
    file_registry: FileRegistry
    history_service: HistoryService
    cleanup_concurrency: int = 5

    async def run(
        self,
        *,
        files: list[UploadedFile],
        settings: GenerationSettings,
        stream: ProgressStream,
        base_url: str | None = None,
    ) -> None:
        """Execute the pipeline, ending the stream with complete or error."""
        _logger.info(
            "Batch started: files=%s themes=%s per_theme=%s frames=%s",
            len(files),
            len(settings.themes),
            settings.slideshows_per_theme,
            settings.frames_per_slideshow,
        )
        try:
            stream.status("Starting batch processing", 0)
            stream.status("Ordering slideshows", 10)
            order = await self.ordering_service.order(
                system_prompt=settings.system_prompt or "",
                files=files,
                themes=settings.themes,
                slideshows_per_theme=settings.slideshows_per_theme,
                frames_per_slideshow=settings.frames_per_slideshow,
            )
            stream.status(_ordering_message(order), 30)

            stream.status("Generating captions", 40)
            slideshows = await self.caption_service.caption_all(
                order.slideshows,
                settings.research_markdown or "",
                settings.caption_prompt or "",
                base_url=base_url,
                on_start=lambda index, total: stream.status(
                    f"Generating captions for slideshow {index + 1}/{total}",
                    40 + (index * 50) // total,
                ),
            )

            stream.status("Cleaning up temporary files", 95)
            await self._cleanup(files)

            stream.status("Saving generation to database", 95)
            generation_id = self._save(settings, slideshows)

            stream.status("Batch processing complete", 100)
            stream.complete(
                {
                    "slideshows": [slideshow.model_dump() for slideshow in slideshows],
                    "id": str(generation_id) if generation_id else None,
                    "fallback": order.fallback,
                    "placeholder_count": order.placeholder_count,
                    "warnings": order.warnings,
                }
            )
            _logger.info("Batch complete: %s slideshows", len(slideshows))
        except InvalidOrderRequestError as exc:
            _logger.warning("Batch rejected: %s", exc)
            stream.error(str(exc))
        except Exception as exc:  # noqa: BLE001
            _logger.exception("Batch processing failed")
            stream.error(f"Error: {exc}")

    async def _cleanup(self, files: list[UploadedFile]) -> None:
        semaphore = asyncio.Semaphore(max(self.cleanup_concurrency, 1))

        async def delete(file: UploadedFile) -> None:
            async with semaphore:
                try:
                    await self.file_registry.delete(file.file_id)
                except Exception as exc:  # noqa: BLE001
                    _logger.warning(
                        "Failed to delete file %s; it will expire upstream: %s",
                        file.file_id,
                        exc,
                    )

        await asyncio.gather(*(delete(file) for file in files))

    def _save(
        self, settings: GenerationSettings, slideshows: list[Slideshow]
    ) -> UUID | None:
        try:
            generation_id = self.history_service.save(settings, slideshows)
        except Exception:
            _logger.exception("Failed to save generation")
            return None
        _logger.info("Saved generation %s", generation_id)
        return generation_id


def _ordering_message(order: OrderResult) -> str:
    if order.fallback:
        return (
            "Ordering model failed; continuing with a placeholder plan. "
            + " ".join(order.warnings)
        )
    if order.placeholder_count:
        return (
            f"Ordered slideshows; {order.placeholder_count} filled with placeholders"
        )
    return "Successfully ordered slideshows"
