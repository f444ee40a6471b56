"""Command orchestration: template lookup, composition, bookkeeping, and the LLM call."""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from simple_prompt.storage import SettingsPersistenceError
from simple_prompt.templates import COMMAND_NAMES, CommandType, build_prompt

if TYPE_CHECKING:
    from simple_prompt.settings import SettingsManager

log = logging.getLogger(__name__)

NO_API_KEY_MESSAGE = "No API key configured. Set one in Settings or export ANTHROPIC_API_KEY."


@runtime_checkable
class InferenceLike(Protocol):
    """Protocol for inference backends (production and test doubles)."""

    def stream(self, prompt: str) -> AsyncIterator[str]: ...

    async def complete(self, prompt: str) -> str: ...

    async def cancel(self) -> None: ...


async def _maybe_await(result: object) -> None:
    """Await the result if it's a coroutine, otherwise no-op."""
    if inspect.isawaitable(result):
        await result


class CommandRunner:
    """Runs one of the prompt commands against an inference backend."""

    def __init__(self, manager: SettingsManager, inference: InferenceLike | None) -> None:
        self.manager = manager
        self.inference = inference

    def prompt_for(self, command_type: CommandType | str, text: str, request: str) -> str:
        """Compose the prompt a command would send, without sending it."""
        template = self.manager.templates.get(command_type)
        return build_prompt(template, command_type, text, request)

    async def run(
        self,
        command_type: CommandType | str,
        text: str,
        request: str,
        on_text: Callable,
        on_error: Callable,
        on_done: Callable,
    ) -> None:
        """Send a command and deliver the reply through callbacks.

        Callbacks may be sync or async — async results are awaited.
        The request is recorded in recent prompts before anything is sent.
        A failure to persist that record is logged and the request still goes out.
        Empty replies never reach on_text.
        """
        command_type = CommandType(command_type)
        try:
            self.manager.recents.add(request)
        except SettingsPersistenceError as exc:
            log.error("Could not record recent prompt: %s", exc)
        prompt = self.prompt_for(command_type, text, request)
        log.info("%s: %d-char prompt", COMMAND_NAMES[command_type], len(prompt))

        if self.inference is None:
            await _maybe_await(on_error(NO_API_KEY_MESSAGE))
            return

        accumulated = ""
        try:
            if self.manager.settings.streaming:
                async for delta in self.inference.stream(prompt):
                    if not delta:
                        continue
                    accumulated += delta
                    await _maybe_await(on_text(delta))
            else:
                accumulated = await self.inference.complete(prompt)
                if accumulated:
                    await _maybe_await(on_text(accumulated))
        except Exception as exc:
            log.warning("Request failed: %s", exc)
            await _maybe_await(on_error(f"Request failed: {exc}"))
            return

        log.debug("done: %d chars", len(accumulated))
        await _maybe_await(on_done(accumulated))

    async def cancel(self) -> None:
        """Abandon the in-flight request, if any."""
        if self.inference is not None:
            await self.inference.cancel()
