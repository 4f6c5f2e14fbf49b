"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import openai
import pytest
from google.genai import types

from slideshow_generator.adapters.gemini_file_client import GeminiFileClient
from slideshow_generator.adapters.gemini_ordering_client import GeminiOrderingClient
from slideshow_generator.adapters.image_downloader import HttpxImageDownloader
from slideshow_generator.adapters.openai_caption_client import OpenAICaptionClient
from slideshow_generator.prompts import CAPTIONS_SCHEMA, plan_tool_schema
from slideshow_generator.services.captions import (
    CaptionParseError,
    RateLimitedError,
    placeholder_captions,
)
from slideshow_generator.services.ordering import PromptPart
from tests.conftest import make_caption_service


class _FakeResponses:
    def __init__(self, output_text: str = "", error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, responses: _FakeResponses) -> None:
        self.responses = responses


def _generate(client: OpenAICaptionClient) -> dict[str, object]:
    return asyncio.run(
        client.generate(
            model="gpt-5.2",
            reasoning_effort="low",
            store=False,
            image_urls=["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"],
            prompt="Write captions",
            schema=CAPTIONS_SCHEMA,
        )
    )


def test_openai_caption_client_parses_output() -> None:
    responses = _FakeResponses(output_text=json.dumps({"captions": ["a", "b"]}))
    client = OpenAICaptionClient(client=_FakeOpenAI(responses))

    result = _generate(client)

    assert result == {"captions": ["a", "b"]}
    payload = responses.last_payload
    assert payload is not None
    content = payload["input"][0]["content"]
    assert [part["type"] for part in content] == [
        "input_image",
        "input_image",
        "input_text",
    ]
    assert payload["text"]["format"]["name"] == "slideshow_captions"
    assert payload["reasoning"] == {"effort": "low"}


def test_openai_caption_client_maps_rate_limits() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    error = openai.RateLimitError(
        "Too many requests",
        response=httpx.Response(429, request=request),
        body=None,
    )
    client = OpenAICaptionClient(client=_FakeOpenAI(_FakeResponses(error=error)))

    with pytest.raises(RateLimitedError):
        _generate(client)


def test_openai_caption_client_leaves_rate_limit_retries_to_service() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            429,
            json={"error": {"message": "Rate limit reached", "type": "requests"}},
        )

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = OpenAICaptionClient.create("openai-key", http_client=http_client)
    service = make_caption_service(client, max_retries=2)

    captions = asyncio.run(service.caption(["https://cdn.test/a.jpg"], "", "prompt"))

    assert captions == placeholder_captions(1)
    assert len(requests) == 3


def test_openai_caption_client_rejects_invalid_json() -> None:
    client = OpenAICaptionClient(
        client=_FakeOpenAI(_FakeResponses(output_text="Sure! Here you go"))
    )

    with pytest.raises(CaptionParseError):
        _generate(client)


def test_image_downloader_fetches_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/missing.jpg"):
            return httpx.Response(404)
        return httpx.Response(200, content=b"image-bytes")

    transport = httpx.MockTransport(handler)
    downloader = HttpxImageDownloader(http_client=httpx.AsyncClient(transport=transport))

    data = asyncio.run(downloader.download("https://cdn.test/a.jpg"))

    assert data == b"image-bytes"
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(downloader.download("https://cdn.test/missing.jpg"))


class _FakeModels:
    def __init__(self, response: types.GenerateContentResponse) -> None:
        self.response = response
        self.last_kwargs: dict[str, object] | None = None

    async def generate_content(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_kwargs = kwargs
        return self.response


class _FakeFiles:
    def __init__(self) -> None:
        self.uploaded: list[types.UploadFileConfig] = []
        self.deleted: list[str] = []

    async def upload(self, *, file, config):  # type: ignore[no-untyped-def]
        self.uploaded.append(config)
        return types.File(
            name="files/abc123",
            uri="https://generativelanguage.test/files/abc123",
            mime_type=config.mime_type,
        )

    async def delete(self, *, name: str) -> None:
        self.deleted.append(name)


class _FakeAio:
    def __init__(
        self, response: types.GenerateContentResponse | None = None
    ) -> None:
        self.models = _FakeModels(response or types.GenerateContentResponse())
        self.files = _FakeFiles()


class _FakeGenai:
    def __init__(
        self, response: types.GenerateContentResponse | None = None
    ) -> None:
        self.aio = _FakeAio(response)


def _response(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=list(parts)),
                finish_reason=types.FinishReason.STOP,
            )
        ]
    )


def _plan(client: GeminiOrderingClient) -> dict[str, object]:
    return asyncio.run(
        client.create_plan(
            model="gemini-2.5-flash",
            parts=[
                PromptPart(text="Order these"),
                PromptPart(
                    file_uri="https://generativelanguage.test/files/a",
                    mime_type="image/jpeg",
                ),
            ],
            tool=plan_tool_schema(["PMS"], 4),
        )
    )


def test_gemini_ordering_client_returns_tool_arguments() -> None:
    args = {"slideshows": [{"theme": "PMS", "images": ["files/a"] * 4}]}
    fake = _FakeGenai(
        _response(
            types.Part(
                function_call=types.FunctionCall(
                    name="create_slideshow_plan", args=args
                )
            )
        )
    )
    client = GeminiOrderingClient(client=fake)  # type: ignore[arg-type]

    result = _plan(client)

    assert result == args
    kwargs = fake.aio.models.last_kwargs
    assert kwargs is not None
    config = kwargs["config"]
    assert config.tool_config.function_calling_config.allowed_function_names == [
        "create_slideshow_plan"
    ]
    parts = kwargs["contents"][0].parts
    assert parts[0].text == "Order these"
    assert parts[1].file_data.file_uri == "https://generativelanguage.test/files/a"


def test_gemini_ordering_client_accepts_json_text() -> None:
    fake = _FakeGenai(_response(types.Part(text='{"slideshows": []}')))
    client = GeminiOrderingClient(client=fake)  # type: ignore[arg-type]

    assert _plan(client) == {"slideshows": []}


def test_gemini_ordering_client_rejects_empty_response() -> None:
    client = GeminiOrderingClient(client=_FakeGenai())  # type: ignore[arg-type]

    with pytest.raises(RuntimeError, match="No candidates"):
        _plan(client)


def test_gemini_file_client_register_and_delete() -> None:
    fake = _FakeGenai()
    client = GeminiFileClient(client=fake)  # type: ignore[arg-type]

    registered = asyncio.run(client.register(b"bytes", "image/png", "a.png"))
    asyncio.run(client.delete("files/abc123"))

    assert registered.name == "files/abc123"
    assert registered.uri == "https://generativelanguage.test/files/abc123"
    assert fake.aio.files.uploaded[0].display_name == "a.png"
    assert fake.aio.files.deleted == ["files/abc123"]
