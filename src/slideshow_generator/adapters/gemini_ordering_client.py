"""Gemini client for the slideshow ordering call."""

import json
import logging
from dataclasses import dataclass

from google import genai
from google.genai import types

from slideshow_generator.services.ordering import OrderingClient, PromptPart

_logger = logging.getLogger(__name__)


@dataclass
class GeminiOrderingClient(OrderingClient):
    """Ordering client backed by Gemini function calling."""

    client: genai.Client

    async def create_plan(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        tool: dict[str, object],
    ) -> dict[str, object]:
        """Force a call of the plan tool and return its arguments.

        A plain-text answer is accepted when it parses as JSON.
        """
        tool_name = str(tool["name"])
        config = types.GenerateContentConfig(
            tools=[
                types.Tool(
                    function_declarations=[types.FunctionDeclaration.model_validate(tool)]
                )
            ],
            tool_config=types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode=types.FunctionCallingConfigMode.ANY,
                    allowed_function_names=[tool_name],
                )
            ),
        )
        contents = [
            types.Content(role="user", parts=[_to_part(part) for part in parts])
        ]
        _logger.info(
            "Calling %s with %s prompt parts (tool=%s)", model, len(parts), tool_name
        )
        response = await self.client.aio.models.generate_content(
            model=model, contents=contents, config=config
        )

        candidate = response.candidates[0] if response.candidates else None
        if candidate is None:
            raise RuntimeError("No candidates found in Gemini response")
        if candidate.finish_reason == types.FinishReason.SAFETY:
            raise RuntimeError("Gemini content generation blocked by safety policies")

        for call in response.function_calls or []:
            if call.name == tool_name and call.args:
                return dict(call.args)

        text = response.text
        if not text:
            raise RuntimeError("Gemini returned neither a function call nor text")
        _logger.warning("Gemini returned text instead of a function call")
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise RuntimeError("Gemini text response is not a JSON object")
        return parsed


def _to_part(part: PromptPart) -> types.Part:
    if part.file_uri:
        return types.Part.from_uri(file_uri=part.file_uri, mime_type=part.mime_type)
    return types.Part.from_text(text=part.text or "")
