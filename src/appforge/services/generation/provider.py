"""Generative-text provider capability.

The pipelines depend only on ``GenerativeService``; ``AnthropicGenerativeService``
is the production implementation.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import anthropic

from appforge.config import settings
from appforge.errors.exceptions import GenerationServiceError

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]


@dataclass(frozen=True)
class GenerationResult:
    text: str
    truncated: bool
    stop_reason: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None


class GenerativeService(Protocol):
    async def generate(
        self,
        system_prompt: str,
        user_content: str,
        *,
        max_tokens: int | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> GenerationResult: ...


class AnthropicGenerativeService:
    """Streams a single message from the Anthropic Messages API.

    The stream is consumed only to report progress through ``on_chunk``; the
    result is returned once the final message is complete.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ):
        self._client = client or anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key or None)
        self._model = model or settings.generation_model
        self._max_tokens = max_tokens or settings.generation_max_tokens

    async def generate(
        self,
        system_prompt: str,
        user_content: str,
        *,
        max_tokens: int | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> GenerationResult:
        limit = max_tokens or self._max_tokens
        logger.info("Sending streaming request (model: %s, max_tokens: %d)", self._model, limit)
        started = time.monotonic()

        try:
            async with self._client.messages.stream(
                model=self._model,
                max_tokens=limit,
                system=system_prompt,
                messages=[{"role": "user", "content": user_content}],
            ) as stream:
                async for text in stream.text_stream:
                    if on_chunk is not None:
                        on_chunk(text)
                message = await stream.get_final_message()
        except anthropic.APIError as exc:
            logger.error("Generative service request failed: %s", exc)
            raise GenerationServiceError(f"Generative service request failed: {exc}") from exc

        text_blocks = [block.text for block in message.content if block.type == "text"]
        if not text_blocks:
            kinds = ", ".join(block.type for block in message.content) or "none"
            raise GenerationServiceError(f"Unexpected response content from generative service: {kinds}")

        truncated = message.stop_reason == "max_tokens"
        logger.info(
            "Response in %.1fs, stop reason %s, usage input=%d output=%d",
            time.monotonic() - started,
            message.stop_reason,
            message.usage.input_tokens,
            message.usage.output_tokens,
        )
        if truncated:
            logger.warning("Response was truncated at max_tokens")

        return GenerationResult(
            text="".join(text_blocks),
            truncated=truncated,
            stop_reason=message.stop_reason,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )
