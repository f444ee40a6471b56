"""Settings, model catalogue, and defaults."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from simple_prompt.templates import DEFAULT_TEMPLATES, CommandType

log = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"

MODELS: dict[str, str] = {
    "claude-haiku-4-5": "Claude Haiku 4.5",
    "claude-sonnet-4-5": "Claude Sonnet 4.5",
    "claude-opus-4-6": "Claude Opus 4.6",
}

RECENTS_MIN = 1
RECENTS_MAX = 10
DEFAULT_RECENTS_LIMIT = 5

SETTINGS_FILENAME = "settings.json"


def default_templates() -> dict[CommandType, str]:
    """Return a fresh copy of the built-in templates."""
    return dict(DEFAULT_TEMPLATES)


class Settings(BaseModel):
    """Persisted state of the plugin.

    Field aliases are the keys used on disk. Unknown keys are kept so
    that a save never drops data written by a newer version.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_key: str | None = Field(default=None, alias="apiKey")
    model: str = DEFAULT_MODEL
    streaming: bool = False
    recent_prompts: list[str] = Field(default_factory=list, alias="recentPrompts")
    recents_limit: int = Field(default=DEFAULT_RECENTS_LIMIT, alias="recentsLimit")
    prompt_templates: dict[CommandType, str] = Field(
        default_factory=default_templates,
        alias="promptTemplates",
        validation_alias=AliasChoices("promptTemplates", "prompTemplates", "prompt_templates"),
    )

    @field_validator("model")
    @classmethod
    def _known_model(cls, value: str) -> str:
        if value not in MODELS:
            log.warning("Unknown model %r in settings, using %s", value, DEFAULT_MODEL)
            return DEFAULT_MODEL
        return value

    @field_validator("recents_limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return max(RECENTS_MIN, min(RECENTS_MAX, value))

    @model_validator(mode="after")
    def _trim_recents(self) -> Settings:
        del self.recent_prompts[self.recents_limit :]
        return self


def resolve_home() -> Path:
    """Resolve the settings directory: SIMPLE_PROMPT_HOME > ~/.simple-prompt."""
    env_home = os.environ.get("SIMPLE_PROMPT_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path("~/.simple-prompt").expanduser().resolve()


def settings_path(home: Path | None = None) -> Path:
    """Return the path to the settings file."""
    if home is None:
        home = resolve_home()
    return home / SETTINGS_FILENAME


def resolve_api_key(settings: Settings) -> str | None:
    """API key from settings, falling back to ANTHROPIC_API_KEY."""
    return settings.api_key or os.environ.get("ANTHROPIC_API_KEY") or None
