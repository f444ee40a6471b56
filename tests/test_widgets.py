"""Tests for the modal screens, driven through the running app."""

from __future__ import annotations

import pytest
from textual.widgets import Button, Input, OptionList, Select, Switch, TextArea
from textual.widgets.text_area import Selection

from simple_prompt.app import SimplePromptApp
from simple_prompt.commands import CommandRunner
from simple_prompt.settings import SettingsManager
from simple_prompt.storage import MemoryRepository
from simple_prompt.templates import DEFAULT_TEMPLATES, CommandType
from simple_prompt.widgets import PromptModal, SettingsScreen, TemplateModal

SIZE = (120, 50)


class FakeInference:
    """Replies with a fixed answer and records prompts."""

    def __init__(self, reply: str = "ok") -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def stream(self, prompt):
        self.prompts.append(prompt)
        yield self.reply

    async def complete(self, prompt):
        self.prompts.append(prompt)
        return self.reply

    async def cancel(self):
        pass


@pytest.fixture
def repo():
    return MemoryRepository()


@pytest.fixture
def manager(repo):
    manager = SettingsManager(repo)
    manager.load()
    return manager


@pytest.fixture
def fake():
    return FakeInference()


@pytest.fixture
def app(tmp_path, manager, fake):
    path = tmp_path / "note.md"
    path.write_text("rough draft here", encoding="utf-8")
    app = SimplePromptApp(path, manager)
    app._runner = lambda: CommandRunner(manager, fake)
    app.notes = []
    return app


def capture_notifications(app) -> None:
    app.notify = lambda message, **kwargs: app.notes.append(message)


async def open_settings(app, pilot) -> SettingsScreen:
    await pilot.press("f2")
    await pilot.pause()
    assert isinstance(app.screen, SettingsScreen)
    return app.screen


# --- Settings screen ---


@pytest.mark.asyncio
async def test_settings_controls_persist_through_manager(app, manager, repo):
    async with app.run_test(size=SIZE) as pilot:
        screen = await open_settings(app, pilot)
        saves = repo.save_count

        screen.query_one("#model", Select).value = "claude-haiku-4-5"
        await pilot.pause()
        screen.query_one("#streaming", Switch).value = True
        await pilot.pause()
        screen.query_one("#limit", Select).value = 3
        await pilot.pause()

        assert repo.save_count == saves + 3
        assert repo.data["model"] == "claude-haiku-4-5"
        assert repo.data["streaming"] is True
        assert repo.data["recentsLimit"] == 3
        assert manager.settings.model == "claude-haiku-4-5"

        await pilot.press("escape")
        await pilot.pause()
        assert app.query_one("#status").model == "claude-haiku-4-5"


@pytest.mark.asyncio
async def test_limit_change_trims_recent_prompts(app, manager, repo):
    for prompt in ["a", "b", "c", "d"]:
        manager.recents.add(prompt)
    async with app.run_test(size=SIZE) as pilot:
        screen = await open_settings(app, pilot)
        screen.query_one("#limit", Select).value = 2
        await pilot.pause()
    assert repo.data["recentPrompts"] == ["d", "c"]


@pytest.mark.asyncio
async def test_reset_restores_picked_template(app, manager, repo):
    manager.templates.set(CommandType.CURSOR, "Q=<QUERY>")
    async with app.run_test(size=SIZE) as pilot:
        screen = await open_settings(app, pilot)
        capture_notifications(app)
        screen.query_one("#template", Select).value = CommandType.CURSOR
        await pilot.pause()
        screen.query_one("#reset-template", Button).press()
        await pilot.pause()

    assert manager.templates.get(CommandType.CURSOR) == DEFAULT_TEMPLATES[CommandType.CURSOR]
    assert repo.data["promptTemplates"]["cursor"] == DEFAULT_TEMPLATES[CommandType.CURSOR]
    assert app.notes == ["Template successfully reset!"]


@pytest.mark.asyncio
async def test_edit_saves_template(app, manager, repo):
    async with app.run_test(size=SIZE) as pilot:
        screen = await open_settings(app, pilot)
        screen.query_one("#template", Select).value = CommandType.DOCUMENT
        await pilot.pause()
        screen.query_one("#edit-template", Button).press()
        await pilot.pause()

        modal = app.screen
        assert isinstance(modal, TemplateModal)
        assert modal.command_type == CommandType.DOCUMENT
        editor = modal.query_one("#template", TextArea)
        assert editor.text == DEFAULT_TEMPLATES[CommandType.DOCUMENT]
        editor.text = "Doc: <DOCUMENT>\nAsk: <REQUEST>"
        modal.action_save()
        await pilot.pause()
        assert app.screen is screen

    assert manager.templates.get(CommandType.DOCUMENT) == "Doc: <DOCUMENT>\nAsk: <REQUEST>"
    assert repo.data["promptTemplates"]["document"] == "Doc: <DOCUMENT>\nAsk: <REQUEST>"
    assert manager.templates.get(CommandType.SELECTION) == DEFAULT_TEMPLATES[CommandType.SELECTION]


@pytest.mark.asyncio
async def test_cancelled_edit_keeps_template(app, manager, repo):
    async with app.run_test(size=SIZE) as pilot:
        screen = await open_settings(app, pilot)
        saves = repo.save_count
        screen.query_one("#edit-template", Button).press()
        await pilot.pause()
        modal = app.screen
        modal.query_one("#template", TextArea).text = "discard me"
        modal.action_dismiss_none()
        await pilot.pause()
    assert repo.save_count == saves
    assert manager.templates.get(CommandType.SELECTION) == DEFAULT_TEMPLATES[CommandType.SELECTION]


# --- Prompt modal ---


@pytest.mark.asyncio
async def test_rewrite_selection_needs_a_selection(app, manager, fake):
    async with app.run_test(size=SIZE) as pilot:
        capture_notifications(app)
        await pilot.press("f5")
        await pilot.pause()
        assert not isinstance(app.screen, PromptModal)
        assert app.notes == ["Select some text first"]
    assert fake.prompts == []
    assert manager.recents.items() == []


@pytest.mark.asyncio
async def test_rewrite_selection_replaces_selected_text(app, manager, fake):
    fake.reply = "final"
    async with app.run_test(size=SIZE) as pilot:
        editor = app.query_one("#editor", TextArea)
        editor.selection = Selection((0, 0), (0, 5))
        await pilot.press("f5")
        await pilot.pause()
        assert isinstance(app.screen, PromptModal)

        request = app.screen.query_one("#request", Input)
        request.value = "make it final"
        request.focus()
        await pilot.pause()
        await pilot.press("enter")
        await pilot.pause()
        await app.workers.wait_for_complete()
        await pilot.pause()

        assert editor.text == "final draft here"
    assert "rough" in fake.prompts[0]
    assert manager.recents.items() == ["make it final"]


@pytest.mark.asyncio
async def test_recent_prompts_listed_once_and_verbatim(app, manager, fake):
    for prompt in ["plain", "[b]odd[/i] markup", "plain"]:
        manager.recents.add(prompt)
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("f6")
        await pilot.pause()
        modal = app.screen
        assert isinstance(modal, PromptModal)
        assert modal.recents == ["plain", "[b]odd[/i] markup"]

        options = modal.query_one("#recents", OptionList)
        assert options.option_count == 2
        options.highlighted = 1
        options.action_select()
        await pilot.pause()
        await app.workers.wait_for_complete()
        await pilot.pause()

    assert fake.prompts[0].rstrip().endswith("[b]odd[/i] markup\n==================\nAnswer:")
    assert manager.recents.items()[:2] == ["[b]odd[/i] markup", "plain"]
