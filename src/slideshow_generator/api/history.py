"""Generation history endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, HTTPException, Request, status

if TYPE_CHECKING:
    from slideshow_generator.containers import AppContainer

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("")
async def list_history(request: Request) -> list[dict[str, object]]:
    """Return the most recent generations."""
    container: AppContainer = request.app.state.container
    return [
        summary.model_dump(mode="json")
        for summary in container.history_service.list_recent()
    ]


@router.get("/{generation_id}")
async def history_detail(generation_id: UUID, request: Request) -> dict[str, object]:
    """Return one generation with its slideshows."""
    container: AppContainer = request.app.state.container
    generation = container.history_service.get(generation_id)
    if generation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Generation not found"
        )
    return generation.model_dump(mode="json")
