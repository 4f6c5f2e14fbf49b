"""OpenAI Responses API client for frame captions."""

import json
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI, RateLimitError

from slideshow_generator.services.captions import (
    CaptionClient,
    CaptionParseError,
    RateLimitedError,
)


@dataclass
class OpenAICaptionClient(CaptionClient):
    """Caption client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, http_client: httpx.AsyncClient | None = None
    ) -> "OpenAICaptionClient":
        """Create an OpenAI caption client.

        SDK retries are disabled; `CaptionService` owns the 429 backoff.
        """
        return cls(
            client=AsyncOpenAI(api_key=api_key, max_retries=0, http_client=http_client)
        )

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
        """Call OpenAI Responses API with structured outputs."""
        content: list[dict[str, object]] = [
            {"type": "input_image", "image_url": url} for url in image_urls
        ]
        content.append({"type": "input_text", "text": prompt})
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "slideshow_captions",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except RateLimitError as exc:
            raise RateLimitedError(str(exc)) from exc
        output_text = response.output_text
        if not output_text:
            raise CaptionParseError("OpenAI returned an empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise CaptionParseError(f"OpenAI returned invalid JSON: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
