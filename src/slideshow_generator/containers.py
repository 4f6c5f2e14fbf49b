"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from google import genai
from supabase import create_client

from slideshow_generator.adapters.gemini_file_client import GeminiFileClient
from slideshow_generator.adapters.gemini_ordering_client import GeminiOrderingClient
from slideshow_generator.adapters.image_downloader import HttpxImageDownloader
from slideshow_generator.adapters.openai_caption_client import OpenAICaptionClient
from slideshow_generator.adapters.supabase_generation_repository import (
    SupabaseGenerationRepository,
)
from slideshow_generator.adapters.supabase_storage import SupabaseObjectStorage
from slideshow_generator.config import Settings
from slideshow_generator.services.batch import BatchService
from slideshow_generator.services.captions import CaptionService
from slideshow_generator.services.history import HistoryService
from slideshow_generator.services.ordering import OrderingService
from slideshow_generator.services.uploads import UploadService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    upload_service: UploadService
    ordering_service: OrderingService
    caption_service: CaptionService
    history_service: HistoryService
    batch_service: BatchService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    gemini_client = genai.Client(api_key=resolved_settings.gemini_api_key)
    file_client = GeminiFileClient(client=gemini_client)
    downloader = HttpxImageDownloader.create()
    caption_client = OpenAICaptionClient.create(resolved_settings.openai_api_key)

    upload_service = UploadService(
        storage=SupabaseObjectStorage(
            client=supabase_client, bucket=resolved_settings.storage_bucket
        ),
        registry=file_client,
        downloader=downloader,
    )
    ordering_service = OrderingService(
        client=GeminiOrderingClient(client=gemini_client),
        model=resolved_settings.gemini_model,
    )
    caption_service = CaptionService(
        client=caption_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        concurrency=resolved_settings.caption_concurrency,
        max_retries=resolved_settings.caption_max_retries,
        retry_base_delay=resolved_settings.caption_retry_base_delay,
        submit_delay=resolved_settings.caption_submit_delay,
        public_base_url=resolved_settings.public_base_url,
    )
    history_service = HistoryService(
        SupabaseGenerationRepository(supabase_client),
        limit=resolved_settings.history_limit,
    )
    batch_service = BatchService(
        ordering_service=ordering_service,
        caption_service=caption_service,
        file_registry=file_client,
        history_service=history_service,
        cleanup_concurrency=resolved_settings.cleanup_concurrency,
    )

    async def close_resources() -> None:
        await downloader.close()
        await caption_client.close()

    return AppContainer(
        settings=resolved_settings,
        upload_service=upload_service,
        ordering_service=ordering_service,
        caption_service=caption_service,
        history_service=history_service,
        batch_service=batch_service,
        close_resources=close_resources,
    )
