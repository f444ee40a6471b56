"""Settings persistence backends."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)


class SettingsPersistenceError(Exception):
    """Settings could not be read from or written to storage."""


def atomic_write(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Write content via a temp file in the same directory and os.replace.

    The target is either the old or the new version, never a partial one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


@runtime_checkable
class SettingsRepository(Protocol):
    """Capability for loading and saving raw settings data."""

    def load(self) -> dict[str, Any] | None:
        """Return stored data, or None when nothing has been saved yet."""
        ...

    def save(self, data: dict[str, Any]) -> None: ...


class MemoryRepository:
    """In-process repository, used by tests and headless runs."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data = data
        self.save_count = 0

    def load(self) -> dict[str, Any] | None:
        return json.loads(json.dumps(self.data)) if self.data is not None else None

    def save(self, data: dict[str, Any]) -> None:
        self.data = json.loads(json.dumps(data))
        self.save_count += 1


class JsonFileRepository:
    """Stores settings as a JSON document on disk, written atomically."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SettingsPersistenceError(f"Cannot read {self.path}: {exc}") from exc
        if not raw.strip():
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SettingsPersistenceError(f"Corrupt settings file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SettingsPersistenceError(f"Settings file {self.path} does not hold an object")
        return data

    def save(self, data: dict[str, Any]) -> None:
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        try:
            atomic_write(self.path, content)
        except OSError as exc:
            raise SettingsPersistenceError(f"Cannot write {self.path}: {exc}") from exc
        log.debug("Saved settings to %s", self.path)
