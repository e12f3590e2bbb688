"""OpenAI text-generation and screen-reading integration."""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ivee_voice.config import OpenAIConfig
from ivee_voice.errors import CaptureError, InferenceError
from ivee_voice.types import CapturedScreen, ChatMessage

SCREEN_TEXT_INSTRUCTIONS = (
    "Transcribe all readable text in this screenshot, top to bottom. "
    "Return only the text, with no commentary."
)


def build_openai_client(api_key: str, timeout_seconds: float) -> Any:
    """Create an OpenAI client, failing clearly when the package is missing."""
    try:
        from openai import OpenAI
    except ImportError as error:
        raise RuntimeError("openai package is required for this feature.") from error

    return OpenAI(api_key=api_key, timeout=timeout_seconds)


def extract_response_text(response: Any) -> str:
    """Extract plain text from an OpenAI response object."""
    output_text: str | None = getattr(response, "output_text", None)
    if output_text and output_text.strip():
        return output_text.strip()

    output: list[Any] = getattr(response, "output", None) or []
    chunks: list[str] = []
    for item in output:
        content_items: list[Any] = getattr(item, "content", None) or []
        for content in content_items:
            text: str | None = getattr(content, "text", None)
            if text and text.strip():
                chunks.append(text.strip())
    return " ".join(chunks)


def build_data_url(screen: CapturedScreen) -> str:
    """Encode screenshot bytes as a data URL for OpenAI image input."""
    encoded: str = base64.b64encode(screen.png_bytes).decode("ascii")
    return f"data:{screen.mime_type};base64,{encoded}"


@dataclass(slots=True)
class OpenAILanguageModel:
    """Generates replies with the OpenAI Responses API."""

    config: OpenAIConfig
    _client: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._client = build_openai_client(self.config.api_key, self.config.timeout_seconds)

    async def complete(
        self,
        *,
        messages: Sequence[ChatMessage],
        model: str,
        max_tokens: int,
    ) -> str:
        """Generate text for role-tagged messages."""
        return await asyncio.to_thread(self._complete, list(messages), model, max_tokens)

    def _complete(self, messages: list[ChatMessage], model: str, max_tokens: int) -> str:
        try:
            response: Any = self._client.responses.create(
                model=model,
                temperature=self.config.temperature,
                max_output_tokens=max_tokens,
                input=[{"role": message.role, "content": message.content} for message in messages],
            )
        except Exception as error:
            raise InferenceError(f"OpenAI request failed: {error}") from error

        text: str = extract_response_text(response)
        if not text:
            raise InferenceError("OpenAI response did not contain text output.")
        return text


@dataclass(slots=True)
class OpenAIScreenTextExtractor:
    """Reads the text visible in a screenshot with an OpenAI vision model."""

    config: OpenAIConfig
    _client: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._client = build_openai_client(self.config.api_key, self.config.timeout_seconds)

    def extract_text(self, screen: CapturedScreen) -> str:
        """Return the transcribed screen text; blank screens yield an empty string."""
        if not screen.png_bytes:
            return ""
        try:
            response: Any = self._client.responses.create(
                model=self.config.ocr_model,
                temperature=0,
                input=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "input_text", "text": SCREEN_TEXT_INSTRUCTIONS},
                            {"type": "input_image", "image_url": build_data_url(screen)},
                        ],
                    },
                ],
            )
        except Exception as error:
            raise CaptureError(f"Screen text extraction failed: {error}") from error
        return extract_response_text(response)
