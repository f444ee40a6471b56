"""Custom Textual widgets and modal screens for the editor."""

from __future__ import annotations

from typing import ClassVar

from rich.text import Text
from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, OptionList, Select, Static, Switch, TextArea

from simple_prompt.config import RECENTS_MAX, RECENTS_MIN
from simple_prompt.settings import SettingsManager
from simple_prompt.storage import SettingsPersistenceError
from simple_prompt.templates import COMMAND_NAMES, CommandType

MODAL_CSS = """
{name} {{
    align: center middle;
}}
{name} > Vertical {{
    width: 80;
    height: auto;
    max-height: 90%;
    border: thick $accent;
    background: $surface;
    padding: 1 2;
}}
"""


class StatusBar(Static):
    """Bottom bar showing file, model, streaming flag, and request state."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 2;
    }
    """

    path: reactive[str] = reactive("")
    model: reactive[str] = reactive("")
    streaming: reactive[bool] = reactive(False)
    busy: reactive[bool] = reactive(False)
    dirty: reactive[bool] = reactive(False)

    def render(self) -> str:
        parts = [f"{self.path}{' *' if self.dirty else ''}"]
        parts.append(f"model: {self.model}")
        if self.streaming:
            parts.append("streaming")
        if self.busy:
            parts.append("waiting for reply… (esc to cancel)")
        return " │ ".join(parts)


class PromptModal(ModalScreen[str | None]):
    """Asks for the request text, offering recent prompts."""

    DEFAULT_CSS = MODAL_CSS.format(name="PromptModal")

    BINDINGS: ClassVar[list[Binding]] = [Binding("escape", "dismiss_none", "Cancel")]

    def __init__(self, command_type: CommandType, recents: list[str]) -> None:
        super().__init__()
        self.command_type = command_type
        # newest occurrence wins; stored history keeps every repeat
        self.recents = list(dict.fromkeys(recents))

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(f"[b]{COMMAND_NAMES[self.command_type]}[/b]")
            yield Input(placeholder="What should the assistant do?", id="request")
            if self.recents:
                yield Label("Recent prompts")
                yield OptionList(*(Text(prompt) for prompt in self.recents), id="recents")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        if text:
            self.dismiss(text)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(self.recents[event.option_index])

    def action_dismiss_none(self) -> None:
        self.dismiss(None)


class ApiKeyModal(ModalScreen[str | None]):
    """Masked input for the API key. An empty value clears the stored key."""

    DEFAULT_CSS = MODAL_CSS.format(name="ApiKeyModal")

    BINDINGS: ClassVar[list[Binding]] = [Binding("escape", "dismiss_none", "Cancel")]

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("[b]API key[/b]")
            yield Input(placeholder="sk-ant-...", password=True, id="api-key")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_dismiss_none(self) -> None:
        self.dismiss(None)


class TemplateModal(ModalScreen[str | None]):
    """Edits one prompt template. Ctrl+S keeps the edit, Esc discards it."""

    DEFAULT_CSS = (
        MODAL_CSS.format(name="TemplateModal")
        + """
    TemplateModal TextArea {
        height: 24;
    }
    """
    )

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("escape", "dismiss_none", "Cancel"),
    ]

    def __init__(self, command_type: CommandType, template: str) -> None:
        super().__init__()
        self.command_type = command_type
        self.template = template

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(f"[b]Template: {COMMAND_NAMES[self.command_type]}[/b]")
            yield TextArea(self.template, id="template")
            yield Label("ctrl+s save · esc cancel", classes="hint")

    def action_save(self) -> None:
        self.dismiss(self.query_one("#template", TextArea).text)

    def action_dismiss_none(self) -> None:
        self.dismiss(None)


class SettingsScreen(ModalScreen[None]):
    """Settings panel. Every change goes through the SettingsManager."""

    DEFAULT_CSS = (
        MODAL_CSS.format(name="SettingsScreen")
        + """
    SettingsScreen Horizontal {
        height: auto;
        margin: 0 0 1 0;
    }
    SettingsScreen Label.name {
        width: 20;
        padding: 1 0;
    }
    SettingsScreen Label.heading {
        text-style: bold;
        margin: 1 0 0 0;
    }
    """
    )

    BINDINGS: ClassVar[list[Binding]] = [Binding("escape", "close", "Close")]

    def __init__(self, manager: SettingsManager) -> None:
        super().__init__()
        self.manager = manager
        self.current_template = CommandType.SELECTION

    def compose(self) -> ComposeResult:
        settings = self.manager.settings
        models = [(label, model_id) for model_id, label in self.manager.list_models().items()]
        limits = [(str(n), n) for n in range(RECENTS_MIN, RECENTS_MAX + 1)]
        templates = [(name, command_type) for command_type, name in COMMAND_NAMES.items()]
        with Vertical():
            yield Label("LLM Settings", classes="heading")
            with Horizontal():
                yield Label("API key", classes="name")
                yield Button("Set API key", id="set-api-key")
            with Horizontal():
                yield Label("Model", classes="name")
                yield Select(models, value=settings.model, allow_blank=False, id="model")
            with Horizontal():
                yield Label("Streaming", classes="name")
                yield Switch(value=settings.streaming, id="streaming")
            yield Label("Recent Prompts", classes="heading")
            with Horizontal():
                yield Label("Limit", classes="name")
                yield Select(limits, value=settings.recents_limit, allow_blank=False, id="limit")
            yield Label("Prompt Templates", classes="heading")
            with Horizontal():
                yield Select(
                    templates, value=self.current_template, allow_blank=False, id="template"
                )
                yield Button("Reset", id="reset-template")
                yield Button("Edit", id="edit-template", variant="primary")

    def _persist(self, change, *args) -> bool:
        """Apply a manager mutation, notifying the user if saving fails."""
        try:
            change(*args)
        except SettingsPersistenceError as exc:
            self.notify(f"Could not save settings: {exc}", severity="error")
            return False
        return True

    @on(Select.Changed, "#model")
    def _model_changed(self, event: Select.Changed) -> None:
        if event.value != self.manager.settings.model:
            self._persist(self.manager.set_model, event.value)

    @on(Select.Changed, "#limit")
    def _limit_changed(self, event: Select.Changed) -> None:
        if event.value != self.manager.settings.recents_limit:
            self._persist(self.manager.set_recents_limit, event.value)

    @on(Select.Changed, "#template")
    def _template_picked(self, event: Select.Changed) -> None:
        self.current_template = CommandType(event.value)

    @on(Switch.Changed, "#streaming")
    def _streaming_changed(self, event: Switch.Changed) -> None:
        if event.value != self.manager.settings.streaming:
            self._persist(self.manager.set_streaming, event.value)

    @on(Button.Pressed, "#set-api-key")
    def _ask_api_key(self) -> None:
        def done(value: str | None) -> None:
            if value is not None and self._persist(self.manager.set_api_key, value):
                self.notify("API key saved" if value.strip() else "API key cleared")

        self.app.push_screen(ApiKeyModal(), done)

    @on(Button.Pressed, "#reset-template")
    def _reset_template(self) -> None:
        if self._persist(self.manager.templates.reset, self.current_template):
            self.notify("Template successfully reset!")

    @on(Button.Pressed, "#edit-template")
    def _edit_template(self) -> None:
        command_type = self.current_template

        def done(value: str | None) -> None:
            if value is not None and self._persist(self.manager.templates.set, command_type, value):
                self.notify("Template saved")

        self.app.push_screen(
            TemplateModal(command_type, self.manager.templates.get(command_type)), done
        )

    def action_close(self) -> None:
        self.dismiss(None)
