"""Textual editor app — wires the command palette, settings, and inference into a note."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import ClassVar

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.widgets import Footer, Header, TextArea

from simple_prompt.commands import CommandRunner
from simple_prompt.config import resolve_api_key
from simple_prompt.inference import InferenceManager, create_client
from simple_prompt.settings import SettingsManager
from simple_prompt.storage import atomic_write
from simple_prompt.templates import COMMAND_NAMES, CommandType
from simple_prompt.widgets import PromptModal, SettingsScreen, StatusBar

log = logging.getLogger(__name__)

Location = tuple[int, int]

COMMAND_HELP: dict[CommandType, str] = {
    CommandType.SELECTION: "Replace the selected text with the model's answer",
    CommandType.CURSOR: "Insert the model's answer at the cursor",
    CommandType.DOCUMENT: "Replace the whole note with the model's rewrite",
}


class PromptCommands(Provider):
    """Command palette entries for the prompt commands and settings."""

    def _commands(self) -> list[tuple[str, object, str]]:
        app = self.app
        assert isinstance(app, SimplePromptApp)
        entries = [
            (COMMAND_NAMES[ct], partial(app.action_prompt, ct.value), COMMAND_HELP[ct])
            for ct in CommandType
        ]
        entries.append(("Settings", app.action_settings, "Model, streaming, recents, templates"))
        return entries

    async def discover(self) -> Hits:
        for name, callback, help_text in self._commands():
            yield DiscoveryHit(name, callback, help=help_text)

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for name, callback, help_text in self._commands():
            score = matcher.match(name)
            if score > 0:
                yield Hit(score, matcher.highlight(name), callback, help=help_text)


class SimplePromptApp(App):
    """Markdown note editor with LLM prompt commands."""

    TITLE = "Simple Prompt"

    COMMANDS = App.COMMANDS | {PromptCommands}

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("ctrl+s", "save_note", "Save"),
        Binding("f5", "prompt('selection')", "Rewrite selection"),
        Binding("f6", "prompt('cursor')", "Generate"),
        Binding("f7", "prompt('document')", "Rewrite document"),
        Binding("f2", "settings", "Settings"),
        Binding("escape", "cancel_request", "Cancel"),
    ]

    CSS = """
    #editor {
        height: 1fr;
    }
    """

    def __init__(self, path: Path, manager: SettingsManager) -> None:
        super().__init__()
        self.path = Path(path)
        self.manager = manager
        self._client = None
        self._client_key: str | None = None
        self._inferring = False

    def compose(self) -> ComposeResult:
        yield Header()
        text = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
        yield TextArea(text, id="editor")
        yield StatusBar(id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = str(self.path)
        self.query_one("#editor", TextArea).focus()
        self._refresh_status()

    def on_unmount(self) -> None:
        self.manager.close()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if event.text_area.id == "editor":
            self.query_one("#status", StatusBar).dirty = True

    def _refresh_status(self) -> None:
        status = self.query_one("#status", StatusBar)
        status.path = self.path.name
        status.model = self.manager.settings.model
        status.streaming = self.manager.settings.streaming

    def _runner(self) -> CommandRunner:
        """Build a runner, reusing the API client while the key is unchanged."""
        api_key = resolve_api_key(self.manager.settings)
        if api_key is None:
            return CommandRunner(self.manager, None)
        if self._client is None or api_key != self._client_key:
            self._client = create_client(api_key)
            self._client_key = api_key
        return CommandRunner(self.manager, InferenceManager(self._client, self.manager.settings))

    def action_prompt(self, command_type: str) -> None:
        """Capture the target range, then ask for the request."""
        command_type = CommandType(command_type)
        editor = self.query_one("#editor", TextArea)
        match command_type:
            case CommandType.SELECTION:
                if not editor.selected_text:
                    self.notify("Select some text first", severity="warning")
                    return
                start, end = sorted((editor.selection.start, editor.selection.end))
                text = editor.selected_text
            case CommandType.CURSOR:
                start = end = editor.cursor_location
                text = ""
            case CommandType.DOCUMENT:
                start, end = (0, 0), editor.document.end
                text = editor.text

        def submitted(request: str | None) -> None:
            if request:
                self._run_command(command_type, text, request, start, end)

        self.push_screen(PromptModal(command_type, self.manager.recents.items()), submitted)

    @work(exclusive=True)
    async def _run_command(
        self,
        command_type: CommandType,
        text: str,
        request: str,
        start: Location,
        end: Location,
    ) -> None:
        """Background worker: send the prompt and write the reply into the note."""
        editor = self.query_one("#editor", TextArea)
        status = self.query_one("#status", StatusBar)
        target: dict[str, Location | None] = {"start": start, "end": end}

        def on_text(chunk: str) -> None:
            if not chunk:
                return
            if target["end"] is not None:
                result = editor.replace(chunk, target["start"], target["end"])
                target["end"] = None
            else:
                result = editor.insert(chunk, target["start"])
            target["start"] = result.end_location

        def on_error(msg: str) -> None:
            self.notify(msg, title="Simple Prompt", severity="error")

        def on_done(reply: str) -> None:
            if not reply:
                self.notify("The model returned an empty answer", severity="warning")

        self._inferring = True
        status.busy = True
        editor.read_only = True
        self.refresh_bindings()
        try:
            await self._runner().run(command_type, text, request, on_text, on_error, on_done)
        finally:
            self._inferring = False
            status.busy = False
            editor.read_only = False
            self.refresh_bindings()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Show Esc binding only during a request."""
        if action == "cancel_request":
            return self._inferring
        return True

    def action_cancel_request(self) -> None:
        """Cancel the running request worker."""
        self.workers.cancel_group(self, "default")
        self.notify("Request cancelled")

    def action_settings(self) -> None:
        self.push_screen(SettingsScreen(self.manager), lambda _: self._refresh_status())

    def action_save_note(self) -> None:
        editor = self.query_one("#editor", TextArea)
        try:
            atomic_write(self.path, editor.text)
        except OSError as exc:
            self.notify(f"Could not save {self.path}: {exc}", severity="error")
            return
        self.query_one("#status", StatusBar).dirty = False
        log.info("Saved %s", self.path)
        self.notify(f"Saved {self.path.name}")
