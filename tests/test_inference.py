"""Tests for the inference manager."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from simple_prompt.config import Settings
from simple_prompt.inference import MAX_TOKENS, InferenceManager, create_client


@pytest.fixture
def settings():
    return Settings(model="claude-haiku-4-5")


@pytest.fixture
def mock_client():
    return MagicMock()


def test_create_client_uses_key():
    client = create_client("sk-ant-test")
    assert client.api_key == "sk-ant-test"


@pytest.mark.asyncio
async def test_cancel_awaits_close(settings, mock_client):
    """cancel() should await close() on the active stream."""
    manager = InferenceManager(mock_client, settings)
    mock_stream = AsyncMock()
    manager._active_stream = mock_stream

    await manager.cancel()

    mock_stream.close.assert_awaited_once()
    assert manager._active_stream is None


@pytest.mark.asyncio
async def test_cancel_noop_when_no_stream(settings, mock_client):
    """cancel() should be safe to call with no active stream."""
    manager = InferenceManager(mock_client, settings)
    await manager.cancel()  # should not raise


@pytest.mark.asyncio
async def test_stream_yields_text_deltas(settings, mock_client):
    """stream() should yield text deltas from the API."""
    mock_text_stream = AsyncIteratorMock(["# Shopping", " list", "\n- Eggs"])
    mock_stream_ctx = AsyncMock()
    mock_stream_ctx.__aenter__ = AsyncMock(return_value=mock_stream_ctx)
    mock_stream_ctx.__aexit__ = AsyncMock(return_value=False)
    mock_stream_ctx.text_stream = mock_text_stream

    mock_client.messages.stream.return_value = mock_stream_ctx

    manager = InferenceManager(mock_client, settings)
    collected = [text async for text in manager.stream("make a list")]

    assert collected == ["# Shopping", " list", "\n- Eggs"]
    assert manager._active_stream is None
    call_kwargs = mock_client.messages.stream.call_args.kwargs
    assert call_kwargs["model"] == "claude-haiku-4-5"
    assert call_kwargs["max_tokens"] == MAX_TOKENS
    assert call_kwargs["messages"] == [{"role": "user", "content": "make a list"}]


@pytest.mark.asyncio
async def test_stream_follows_model_changes(settings, mock_client):
    """The model is read from settings at request time."""
    mock_stream_ctx = AsyncMock()
    mock_stream_ctx.__aenter__ = AsyncMock(return_value=mock_stream_ctx)
    mock_stream_ctx.__aexit__ = AsyncMock(return_value=False)
    mock_stream_ctx.text_stream = AsyncIteratorMock([])
    mock_client.messages.stream.return_value = mock_stream_ctx

    manager = InferenceManager(mock_client, settings)
    settings.model = "claude-opus-4-6"
    _ = [text async for text in manager.stream("hi")]

    assert mock_client.messages.stream.call_args.kwargs["model"] == "claude-opus-4-6"


@pytest.mark.asyncio
async def test_complete_joins_text_blocks(settings, mock_client):
    message = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Knock, knock."),
            SimpleNamespace(type="thinking", thinking="..."),
            SimpleNamespace(type="text", text=" Who's there?"),
        ]
    )
    mock_client.messages.create = AsyncMock(return_value=message)

    manager = InferenceManager(mock_client, settings)
    reply = await manager.complete("tell a joke")

    assert reply == "Knock, knock. Who's there?"
    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["messages"] == [{"role": "user", "content": "tell a joke"}]


@pytest.mark.asyncio
async def test_complete_propagates_api_errors(settings, mock_client):
    mock_client.messages.create = AsyncMock(side_effect=RuntimeError("rate limited"))
    manager = InferenceManager(mock_client, settings)
    with pytest.raises(RuntimeError, match="rate limited"):
        await manager.complete("hi")


class AsyncIteratorMock:
    """Helper to create an async iterator from a list."""

    def __init__(self, items: list):
        self._items = iter(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._items)
        except StopIteration:
            raise StopAsyncIteration from None
