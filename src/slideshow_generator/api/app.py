"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from slideshow_generator.api.history import router as history_router
from slideshow_generator.api.models import BatchRequest, CaptionRequest, OrderRequest
from slideshow_generator.app_logging import configure_logging
from slideshow_generator.containers import AppContainer
from slideshow_generator.domain.slideshows import OrderResult
from slideshow_generator.domain.uploads import ImageKind, StoredImage, UploadedFile
from slideshow_generator.prompts import defaults_payload
from slideshow_generator.services.ordering import InvalidOrderRequestError
from slideshow_generator.services.progress import (
    SSE_HEADERS,
    SSE_MEDIA_TYPE,
    ProgressStream,
)
from slideshow_generator.services.uploads import (
    IncomingImage,
    InvalidUploadError,
    UploadProcessingError,
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(history_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/defaults")
    async def defaults() -> dict[str, object]:
        """Return default prompts, themes and counts."""
        return defaults_payload()

    @app.post("/api/upload")
    async def upload(
        request: Request,
        face: list[UploadFile] | None = File(default=None),
        faceless: list[UploadFile] | None = File(default=None),
        product: list[UploadFile] | None = File(default=None),
        files: list[UploadFile] | None = File(default=None),
    ) -> list[UploadedFile]:
        """Store images and register them with the file API."""
        state_container: AppContainer = request.app.state.container
        images: list[IncomingImage] = []
        groups: list[tuple[ImageKind | None, list[UploadFile] | None]] = [
            ("face", face),
            ("faceless", faceless),
            ("product", product),
            (None, files),
        ]
        for kind, group in groups:
            for item in group or []:
                images.append(
                    IncomingImage(
                        filename=item.filename or "upload",
                        content=await item.read(),
                        content_type=item.content_type,
                        kind=kind,
                    )
                )
        try:
            return await state_container.upload_service.upload(images)
        except InvalidUploadError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc

    @app.post("/api/process-uploads")
    async def process_uploads(
        stored: list[StoredImage], request: Request
    ) -> list[UploadedFile]:
        """Register images that are already in object storage."""
        state_container: AppContainer = request.app.state.container
        try:
            return await state_container.upload_service.register_stored(stored)
        except InvalidUploadError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except UploadProcessingError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
            ) from exc

    @app.post("/api/order")
    async def order(payload: OrderRequest, request: Request) -> OrderResult:
        """Plan themed slideshows from the uploaded files."""
        state_container: AppContainer = request.app.state.container
        try:
            return await state_container.ordering_service.order(
                system_prompt=payload.system_prompt,
                files=payload.files,
                themes=payload.themes,
                slideshows_per_theme=payload.slideshows_per_theme,
                frames_per_slideshow=payload.frames_per_slideshow,
            )
        except InvalidOrderRequestError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc

    @app.post("/api/caption")
    async def caption(payload: CaptionRequest, request: Request) -> dict[str, object]:
        """Write one caption per frame of a slideshow."""
        state_container: AppContainer = request.app.state.container
        if not payload.slide.images:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid slide data. Must provide at least one image.",
            )
        captions = await state_container.caption_service.caption(
            payload.slide.images,
            payload.research,
            payload.system_prompt,
            base_url=_base_url(request),
        )
        return {"captions": captions}

    @app.post("/api/batch")
    async def batch(payload: BatchRequest, request: Request) -> StreamingResponse:
        """Run the whole pipeline, streaming progress as Server-Sent Events."""
        state_container: AppContainer = request.app.state.container
        logger.info(
            "Batch request: files=%s themes=%s", len(payload.files), payload.themes
        )
        stream = ProgressStream()
        task = asyncio.create_task(
            state_container.batch_service.run(
                files=payload.files,
                settings=payload.to_settings(),
                stream=stream,
                base_url=_base_url(request),
            )
        )
        return StreamingResponse(
            _relay(stream, task), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS
        )

    return app


async def _relay(stream: ProgressStream, task: asyncio.Task[None]) -> AsyncIterator[str]:
    """Forward stream frames; the pipeline task outlives a disconnected client."""
    async for frame in stream.events():
        yield frame
    await task


def _base_url(request: Request) -> str:
    container: AppContainer = request.app.state.container
    if container.settings.public_base_url:
        return container.settings.public_base_url
    return str(request.base_url).rstrip("/")
