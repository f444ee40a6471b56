"""Anthropic SDK wrapper with async streaming and cancel support."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from simple_prompt.config import Settings

if TYPE_CHECKING:
    from anthropic import AsyncAnthropic, AsyncMessageStream

log = logging.getLogger(__name__)

MAX_TOKENS = 4096


def create_client(api_key: str) -> AsyncAnthropic:
    """Build an async Anthropic client for the given key."""
    from anthropic import AsyncAnthropic

    return AsyncAnthropic(api_key=api_key)


class InferenceManager:
    """Sends composed prompts to the Anthropic API."""

    def __init__(self, client: AsyncAnthropic, settings: Settings) -> None:
        self.client = client
        self.settings = settings
        self._active_stream: AsyncMessageStream | None = None

    def _request(self, prompt: str) -> dict:
        return {
            "model": self.settings.model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Start streaming inference. Yields text deltas."""
        log.debug("Streaming request to %s (%d chars)", self.settings.model, len(prompt))
        manager = self.client.messages.stream(**self._request(prompt))
        async with manager as stream:
            self._active_stream = stream
            try:
                async for text in stream.text_stream:
                    yield text
            finally:
                self._active_stream = None

    async def complete(self, prompt: str) -> str:
        """Send the prompt and return the whole reply."""
        log.debug("Request to %s (%d chars)", self.settings.model, len(prompt))
        message = await self.client.messages.create(**self._request(prompt))
        return "".join(block.text for block in message.content if block.type == "text")

    async def cancel(self) -> None:
        """Cancel active stream."""
        if self._active_stream is not None:
            await self._active_stream.close()
            self._active_stream = None
