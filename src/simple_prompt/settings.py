"""Settings manager with its template store and recent prompts ring."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from simple_prompt.config import MODELS, RECENTS_MAX, RECENTS_MIN, Settings
from simple_prompt.storage import SettingsPersistenceError, SettingsRepository
from simple_prompt.templates import DEFAULT_TEMPLATES, CommandType

log = logging.getLogger(__name__)


class TemplateStore:
    """Per-command prompt templates held in the manager's settings."""

    def __init__(self, manager: SettingsManager) -> None:
        self._manager = manager

    def get(self, command_type: CommandType | str) -> str:
        return self._manager.settings.prompt_templates.get(CommandType(command_type), "")

    def set(self, command_type: CommandType | str, value: str) -> None:
        """Replace a template. Placeholders are not required."""
        self._manager.settings.prompt_templates[CommandType(command_type)] = value
        self._manager.save()

    def reset(self, command_type: CommandType | str) -> str:
        """Restore the built-in template and return it."""
        default = self.defaults(command_type)
        self._manager.settings.prompt_templates[CommandType(command_type)] = default
        self._manager.save()
        return default

    @staticmethod
    def defaults(command_type: CommandType | str) -> str:
        return DEFAULT_TEMPLATES[CommandType(command_type)]


class RecentPrompts:
    """Bounded history of user requests, newest first."""

    def __init__(self, manager: SettingsManager) -> None:
        self._manager = manager

    @property
    def _items(self) -> list[str]:
        return self._manager.settings.recent_prompts

    @property
    def limit(self) -> int:
        return self._manager.settings.recents_limit

    def items(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self.items())

    def add(self, text: str) -> None:
        """Record text as the most recent prompt, dropping the oldest past the limit."""
        items = self._items
        items.insert(0, text)
        del items[self.limit :]
        self._manager.save()

    def set_limit(self, limit: int) -> None:
        """Change the capacity, keeping the most recent entries."""
        if not RECENTS_MIN <= limit <= RECENTS_MAX:
            raise ValueError(f"Recents limit must be between {RECENTS_MIN} and {RECENTS_MAX}")
        self._manager.settings.recents_limit = limit
        del self._items[limit:]
        self._manager.save()

    def clear(self) -> None:
        self._items.clear()
        self._manager.save()


class SettingsManager:
    """Owns the live Settings object and persists every change.

    Lifecycle: load() once, mutate through the methods below (each one
    saves), then close(). Also usable as a context manager.
    """

    def __init__(self, repository: SettingsRepository) -> None:
        self.repository = repository
        self.settings = Settings()
        self.templates = TemplateStore(self)
        self.recents = RecentPrompts(self)
        self._closed = False

    def __enter__(self) -> SettingsManager:
        self.load()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load(self) -> Settings:
        """Load stored settings merged over defaults.

        Missing, unreadable, or invalid data yields the defaults.
        """
        try:
            stored = self.repository.load()
        except SettingsPersistenceError as exc:
            log.warning("Failed to load settings, using defaults: %s", exc)
            stored = None

        self.settings = _merge(stored) if isinstance(stored, dict) else Settings()
        log.debug("Loaded settings (model=%s)", self.settings.model)
        return self.settings

    def save(self) -> None:
        """Write the full settings through the repository."""
        if self._closed:
            raise RuntimeError("Settings manager is closed")
        data = self.settings.model_dump(mode="json", by_alias=True)
        try:
            self.repository.save(data)
        except SettingsPersistenceError:
            log.error("Failed to save settings", exc_info=True)
            raise

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @staticmethod
    def list_models() -> dict[str, str]:
        return dict(MODELS)

    def set_api_key(self, api_key: str | None) -> None:
        self.settings.api_key = api_key.strip() if api_key and api_key.strip() else None
        self.save()

    def set_model(self, model_id: str) -> None:
        if model_id not in MODELS:
            raise ValueError(f"Unknown model {model_id!r}")
        self.settings.model = model_id
        self.save()

    def set_streaming(self, enabled: bool) -> None:
        self.settings.streaming = bool(enabled)
        self.save()

    def set_recents_limit(self, limit: int) -> None:
        self.recents.set_limit(limit)


def _merge(stored: dict[str, Any]) -> Settings:
    """Overlay stored data on defaults, merging templates per command."""
    data = dict(stored)
    for key in ("promptTemplates", "prompTemplates", "prompt_templates"):
        if key in data:
            templates = data.pop(key)
            if isinstance(templates, dict):
                merged = {k.value: v for k, v in DEFAULT_TEMPLATES.items()}
                merged.update({k: v for k, v in templates.items() if k in merged})
                data["promptTemplates"] = merged
            break
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        log.warning("Invalid settings data, using defaults: %s", exc)
        return Settings()
