"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from slideshow_generator.config import Settings
from slideshow_generator.containers import AppContainer
from slideshow_generator.domain.generations import (
    GenerationSettings,
    GenerationSummary,
    SlideshowGeneration,
)
from slideshow_generator.domain.slideshows import Slideshow
from slideshow_generator.domain.uploads import RegisteredFile, UploadedFile
from slideshow_generator.services.batch import BatchService
from slideshow_generator.services.captions import CaptionClient, CaptionService
from slideshow_generator.services.history import GenerationRepository, HistoryService
from slideshow_generator.services.ordering import (
    OrderingClient,
    OrderingService,
    PromptPart,
)
from slideshow_generator.services.uploads import (
    FileRegistry,
    ImageDownloader,
    ObjectStorage,
    UploadService,
)

TEST_SUPABASE_KEY = (
    "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
    "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
    "c2lnbmF0dXJl"
)


def parse_frames(body: str) -> list[tuple[str, dict[str, object]]]:
    """Split an SSE body into (event, data) pairs."""
    events = []
    for frame in body.split("\n\n"):
        if not frame.strip():
            continue
        fields = dict(line.split(": ", 1) for line in frame.splitlines())
        events.append((fields["event"], json.loads(fields["data"])))
    return events


def make_files(face: int = 2, faceless: int = 3, product: int = 2) -> list[UploadedFile]:
    """Build uploaded files with predictable ids and URLs."""
    files: list[UploadedFile] = []
    for kind, count in (("face", face), ("faceless", faceless), ("product", product)):
        for index in range(count):
            files.append(
                UploadedFile(
                    kind=kind,
                    local_url=f"https://cdn.test/{kind}/{kind}_{index}.jpg",
                    file_id=f"files/{kind}{index}",
                    file_uri=f"https://generativelanguage.test/files/{kind}{index}",
                    mime="image/jpeg",
                    original_name=f"{kind}_{index}.jpg",
                )
            )
    return files


def plan_payload(
    themes: list[str], per_theme: int, frames: int = 4
) -> dict[str, object]:
    """Build a well-formed plan tool payload for make_files() ids."""
    middle = ["files/faceless0", "files/faceless1", "files/faceless2"]
    slideshows = []
    for theme in themes:
        for _ in range(per_theme):
            images = ["files/face0", *middle[: max(frames - 2, 0)], "files/product0"]
            slideshows.append({"theme": theme, "images": images[:frames]})
    return {"slideshows": slideshows}


@dataclass
class FakeOrderingClient(OrderingClient):
    """Fake ordering client returning a payload or raising an error."""

    payload: dict[str, object] | None = None
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def create_plan(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        tool: dict[str, object],
    ) -> dict[str, object]:
        self.calls.append({"model": model, "parts": parts, "tool": tool})
        if self.error is not None:
            raise self.error
        return self.payload or {}


@dataclass
class FakeCaptionClient(CaptionClient):
    """Fake caption client replaying scripted replies, then echoing frames."""

    replies: list[object] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    image_urls: list[list[str]] = field(default_factory=list)

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
        self.prompts.append(prompt)
        self.image_urls.append(image_urls)
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply  # type: ignore[return-value]
        return {"captions": [f"caption {index}" for index in range(len(image_urls))]}


@dataclass
class FakeFileRegistry(FileRegistry):
    """Fake file API that numbers registrations."""

    registered: list[tuple[str, str | None]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    fail_delete: bool = False

    async def register(
        self, content: bytes, mime_type: str, display_name: str | None
    ) -> RegisteredFile:
        self.registered.append((mime_type, display_name))
        name = f"files/test{len(self.registered)}"
        return RegisteredFile(
            name=name, uri=f"https://generativelanguage.test/{name}", mime_type=mime_type
        )

    async def delete(self, name: str) -> None:
        if self.fail_delete:
            raise RuntimeError("delete failed")
        self.deleted.append(name)


@dataclass
class FakeObjectStorage(ObjectStorage):
    """Fake storage keeping uploads in memory."""

    objects: dict[str, tuple[bytes, str]] = field(default_factory=dict)

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        self.objects[path] = (content, content_type)
        return f"https://cdn.test/{path}"


@dataclass
class FakeImageDownloader(ImageDownloader):
    """Fake downloader serving fixed bytes, failing for listed URLs."""

    failing: set[str] = field(default_factory=set)

    async def download(self, url: str) -> bytes:
        if url in self.failing:
            raise RuntimeError(f"download failed: {url}")
        return b"image-bytes"


@dataclass
class InMemoryGenerationRepository(GenerationRepository):
    """In-memory generation repository for tests."""

    rows: dict[UUID, SlideshowGeneration] = field(default_factory=dict)
    fail: bool = False

    def create_generation(
        self, settings: GenerationSettings, slideshows: list[Slideshow]
    ) -> UUID:
        if self.fail:
            raise RuntimeError("database unavailable")
        generation_id = uuid4()
        self.rows[generation_id] = SlideshowGeneration(
            id=generation_id,
            created_at=datetime.now(tz=UTC),
            settings=settings,
            slideshows=slideshows,
        )
        return generation_id

    def get_generation(self, generation_id: UUID) -> SlideshowGeneration | None:
        return self.rows.get(generation_id)

    def list_generations(self, limit: int) -> list[GenerationSummary]:
        rows = sorted(self.rows.values(), key=lambda row: row.created_at, reverse=True)
        return [
            GenerationSummary(
                id=row.id,
                created_at=row.created_at,
                themes=row.settings.themes if row.settings else None,
                slideshow_count=len(row.slideshows),
            )
            for row in rows[:limit]
        ]


def make_caption_service(client: CaptionClient, **overrides: object) -> CaptionService:
    """Build a caption service without real delays."""
    options: dict[str, object] = {
        "model": "gpt-5.2",
        "reasoning_effort": None,
        "store": False,
        "retry_base_delay": 0.0,
        "submit_delay": 0.0,
    }
    options.update(overrides)
    return CaptionService(client=client, **options)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="gemini-key",
        openai_api_key="openai-key",
        supabase_url="https://example.supabase.co",
        supabase_service_key=TEST_SUPABASE_KEY,
    )


@pytest.fixture
def files() -> list[UploadedFile]:
    return make_files()


@pytest.fixture
def ordering_client() -> FakeOrderingClient:
    return FakeOrderingClient(payload=plan_payload(["PMS", "Insomnia", "Anxiety"], 10))


@pytest.fixture
def caption_client() -> FakeCaptionClient:
    return FakeCaptionClient()


@pytest.fixture
def file_registry() -> FakeFileRegistry:
    return FakeFileRegistry()


@pytest.fixture
def object_storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def generation_repository() -> InMemoryGenerationRepository:
    return InMemoryGenerationRepository()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    ordering_client: FakeOrderingClient,
    caption_client: FakeCaptionClient,
    file_registry: FakeFileRegistry,
    object_storage: FakeObjectStorage,
    generation_repository: InMemoryGenerationRepository,
) -> AppContainer:
    upload_service = UploadService(
        storage=object_storage,
        registry=file_registry,
        downloader=FakeImageDownloader(),
    )
    ordering_service = OrderingService(
        client=ordering_client, model=settings.gemini_model
    )
    caption_service = make_caption_service(caption_client)
    history_service = HistoryService(generation_repository)
    batch_service = BatchService(
        ordering_service=ordering_service,
        caption_service=caption_service,
        file_registry=file_registry,
        history_service=history_service,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        upload_service=upload_service,
        ordering_service=ordering_service,
        caption_service=caption_service,
        history_service=history_service,
        batch_service=batch_service,
        close_resources=close_resources,
    )
