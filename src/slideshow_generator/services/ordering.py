"""Ordering call that arranges uploaded images into themed slideshows."""

import logging
from dataclasses import dataclass
from typing import Protocol

from slideshow_generator.domain.slideshows import OrderedSlideshow, OrderResult
from slideshow_generator.domain.uploads import IMAGE_KINDS, ImageKind, UploadedFile
from slideshow_generator.prompts import ordering_instructions, plan_tool_schema

_logger = logging.getLogger(__name__)

_KIND_HEADINGS: dict[ImageKind, str] = {
    "face": "Face images",
    "faceless": "Faceless images",
    "product": "Product images",
}


@dataclass(frozen=True)
class PromptPart:
    """Provider-neutral piece of a multimodal prompt."""

    text: str | None = None
    file_uri: str | None = None
    mime_type: str | None = None


class OrderingClient(Protocol):
    """Interface for the LLM that plans slideshow sequences."""

    async def create_plan(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        tool: dict[str, object],
    ) -> dict[str, object]:
        """Invoke the model with a forced tool call and return the arguments."""


class InvalidOrderRequestError(ValueError):
    """Raised when an ordering request lacks required input."""


class OrderingError(RuntimeError):
    """Raised when the ordering model output holds no usable plan."""


@dataclass
class OrderingService:
    """Service that plans slideshows and reconciles the model's answer."""

    client: OrderingClient
    model: str

    async def order(
        self,
        *,
        system_prompt: str,
        files: list[UploadedFile],
        themes: list[str],
        slideshows_per_theme: int,
        frames_per_slideshow: int,
    ) -> OrderResult:
        """Return exactly len(themes) * slideshows_per_theme slideshows.

        Model failures never fail the call. The affected slots are filled with
        a deterministic placeholder plan built from the caller's own files and
        the result is flagged through ``fallback``, ``placeholder_count`` and
        ``warnings``.
        """
        themes = validate_order_request(
            files, themes, slideshows_per_theme, frames_per_slideshow
        )
        parts = build_prompt_parts(
            system_prompt, files, themes, slideshows_per_theme, frames_per_slideshow
        )
        tool = plan_tool_schema(themes, frames_per_slideshow)
        try:
            raw = await self.client.create_plan(
                model=self.model, parts=parts, tool=tool
            )
            candidates = extract_slideshows(raw)
        except Exception as exc:  # noqa: BLE001
            _logger.warning(
                "Ordering call failed, using placeholder plan: %s", exc, exc_info=True
            )
            plan = placeholder_plan(
                files, themes, slideshows_per_theme, frames_per_slideshow
            )
            return OrderResult(
                slideshows=plan,
                fallback=True,
                placeholder_count=len(plan),
                warnings=[f"Ordering model failed ({exc}); using a placeholder plan"],
            )

        valid, warnings = map_slideshows(
            candidates, files, themes, frames_per_slideshow
        )
        slideshows, placeholder_count = reconcile(
            valid, files, themes, slideshows_per_theme, frames_per_slideshow
        )
        if placeholder_count:
            warnings.append(
                f"{placeholder_count} of {len(slideshows)} slideshows were filled "
                "with placeholders"
            )
            _logger.warning(
                "Ordering plan incomplete: %s placeholders", placeholder_count
            )
        _logger.info(
            "Ordering produced %s slideshows (%s from model)",
            len(slideshows),
            len(slideshows) - placeholder_count,
        )
        return OrderResult(
            slideshows=slideshows,
            fallback=placeholder_count == len(slideshows),
            placeholder_count=placeholder_count,
            warnings=warnings,
        )


def validate_order_request(
    files: list[UploadedFile],
    themes: list[str],
    slideshows_per_theme: int,
    frames_per_slideshow: int,
) -> list[str]:
    """Validate ordering input and return the cleaned theme list."""
    if not files:
        raise InvalidOrderRequestError("No files provided")
    present = {file.kind for file in files}
    if any(kind not in present for kind in IMAGE_KINDS):
        raise InvalidOrderRequestError(
            "Need at least one image of each type (face, faceless, product)"
        )
    cleaned: list[str] = []
    seen: set[str] = set()
    for theme in themes:
        value = theme.strip()
        if value and value.casefold() not in seen:
            seen.add(value.casefold())
            cleaned.append(value)
    if not cleaned:
        raise InvalidOrderRequestError("At least one theme is required")
    if slideshows_per_theme < 1 or frames_per_slideshow < 1:
        raise InvalidOrderRequestError(
            "slideshows_per_theme and frames_per_slideshow must be positive"
        )
    return cleaned


def build_prompt_parts(
    system_prompt: str,
    files: list[UploadedFile],
    themes: list[str],
    slideshows_per_theme: int,
    frames_per_slideshow: int,
) -> list[PromptPart]:
    """Build the multimodal ordering prompt."""
    parts = [
        PromptPart(text=system_prompt),
        PromptPart(
            text=(
                "\n\nI have uploaded images that I want to organize into TikTok "
                "slideshows. For each image below, I am providing its unique File "
                "API Identifier and its kind. You MUST use these File API "
                "Identifiers when specifying images in your JSON output.\n"
            )
        ),
    ]
    for kind in IMAGE_KINDS:
        group = [file for file in files if file.kind == kind]
        parts.append(PromptPart(text=f"\n{_KIND_HEADINGS[kind]} ({len(group)}):\n"))
        for file in group:
            if file.file_uri and file.file_uri.startswith(("https://", "gs://")):
                parts.append(PromptPart(file_uri=file.file_uri, mime_type=file.mime))
            else:
                parts.append(PromptPart(text="[Image visual not available]"))
            parts.append(
                PromptPart(
                    text=f"File API Identifier: {file.file_id}, Kind: {file.kind}\n"
                )
            )
    parts.append(
        PromptPart(
            text=ordering_instructions(
                themes, slideshows_per_theme, frames_per_slideshow
            )
        )
    )
    return parts


def extract_slideshows(raw: object) -> list[dict[str, object]]:
    """Pull slideshow candidates out of either supported response shape."""
    if not isinstance(raw, dict):
        raise OrderingError("Ordering response is not a JSON object")
    slideshows = raw.get("slideshows")
    if isinstance(slideshows, list):
        candidates = [item for item in slideshows if isinstance(item, dict)]
    elif isinstance(raw.get("themed_slideshows"), list):
        candidates = []
        for group in raw["themed_slideshows"]:
            if not isinstance(group, dict) or not isinstance(
                group.get("slideshows"), list
            ):
                continue
            theme = group.get("theme_name") or group.get("theme")
            for slide in group["slideshows"]:
                if isinstance(slide, dict):
                    images = slide.get("image_ids") or slide.get("images") or []
                    candidates.append({"theme": theme, "images": images})
    else:
        raise OrderingError("Ordering response has no slideshows structure")
    if not candidates:
        raise OrderingError("No slideshows found in ordering response")
    return candidates


def map_slideshows(
    candidates: list[dict[str, object]],
    files: list[UploadedFile],
    themes: list[str],
    frames_per_slideshow: int,
) -> tuple[list[OrderedSlideshow], list[str]]:
    """Map model identifiers to local URLs and drop malformed slideshows."""
    identifier_to_url = {file.file_id: file.local_url for file in files}
    known_urls = {file.local_url for file in files}
    canonical_themes = {theme.casefold(): theme for theme in themes}
    valid: list[OrderedSlideshow] = []
    warnings: list[str] = []
    for index, candidate in enumerate(candidates):
        theme = canonical_themes.get(str(candidate.get("theme") or "").casefold())
        images = candidate.get("images")
        if theme is None:
            warnings.append(
                f"Slideshow {index + 1} dropped: unknown theme "
                f"{candidate.get('theme')!r}"
            )
            continue
        if not isinstance(images, list) or len(images) != frames_per_slideshow:
            warnings.append(
                f"Slideshow {index + 1} dropped: expected "
                f"{frames_per_slideshow} images"
            )
            continue
        mapped: list[str] = []
        for identifier in images:
            if not isinstance(identifier, str):
                break
            if identifier in identifier_to_url:
                mapped.append(identifier_to_url[identifier])
            elif identifier in known_urls:
                mapped.append(identifier)
            else:
                break
        if len(mapped) != frames_per_slideshow:
            warnings.append(
                f"Slideshow {index + 1} dropped: unknown image identifier"
            )
            continue
        valid.append(OrderedSlideshow(theme=theme, images=mapped))
    for warning in warnings:
        _logger.warning("Ordering: %s", warning)
    return valid, warnings


def reconcile(
    valid: list[OrderedSlideshow],
    files: list[UploadedFile],
    themes: list[str],
    slideshows_per_theme: int,
    frames_per_slideshow: int,
) -> tuple[list[OrderedSlideshow], int]:
    """Return slideshows grouped by theme with exactly the requested counts."""
    pools = _pools_by_kind(files)
    result: list[OrderedSlideshow] = []
    placeholder_count = 0
    for theme_index, theme in enumerate(themes):
        chosen = [slide for slide in valid if slide.theme == theme]
        chosen = chosen[:slideshows_per_theme]
        for slot in range(len(chosen), slideshows_per_theme):
            chosen.append(
                _placeholder_slideshow(
                    theme,
                    theme_index * slideshows_per_theme + slot,
                    pools,
                    frames_per_slideshow,
                )
            )
            placeholder_count += 1
        result.extend(chosen)
    return result, placeholder_count


def placeholder_plan(
    files: list[UploadedFile],
    themes: list[str],
    slideshows_per_theme: int,
    frames_per_slideshow: int,
) -> list[OrderedSlideshow]:
    """Return the deterministic plan used when the ordering call fails."""
    plan, _ = reconcile([], files, themes, slideshows_per_theme, frames_per_slideshow)
    return plan


def frame_kinds(frames_per_slideshow: int) -> list[ImageKind]:
    """Return the kind expected at each frame: face, faceless..., product."""
    if frames_per_slideshow == 1:
        return ["face"]
    return ["face", *["faceless"] * (frames_per_slideshow - 2), "product"]


def _pools_by_kind(files: list[UploadedFile]) -> dict[ImageKind, list[str]]:
    return {
        kind: [file.local_url for file in files if file.kind == kind]
        for kind in IMAGE_KINDS
    }


def _placeholder_slideshow(
    theme: str,
    slot: int,
    pools: dict[ImageKind, list[str]],
    frames_per_slideshow: int,
) -> OrderedSlideshow:
    kinds = frame_kinds(frames_per_slideshow)
    per_slot = {kind: kinds.count(kind) for kind in IMAGE_KINDS}
    seen: dict[ImageKind, int] = dict.fromkeys(IMAGE_KINDS, 0)
    images: list[str] = []
    for kind in kinds:
        pool = pools[kind]
        images.append(pool[(slot * per_slot[kind] + seen[kind]) % len(pool)])
        seen[kind] += 1
    return OrderedSlideshow(theme=theme, images=images)
