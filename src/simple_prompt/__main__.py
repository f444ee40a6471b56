"""Entry point for `python -m simple_prompt` and the `simple-prompt` CLI command."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer

from simple_prompt.commands import CommandRunner
from simple_prompt.config import resolve_api_key, settings_path
from simple_prompt.settings import SettingsManager
from simple_prompt.storage import JsonFileRepository
from simple_prompt.templates import CommandType

app = typer.Typer(add_completion=False, help="Markdown notes with LLM prompt commands.")

DEBUG_LOG = "simple_prompt_debug.log"

SettingsOption = typer.Option(
    None, "--settings", help="Settings file (default: ~/.simple-prompt/settings.json)"
)


def _configure_logging(debug: bool) -> None:
    """Send DEBUG records to a trace file when debugging, warnings to stderr otherwise."""
    if debug:
        logging.basicConfig(
            filename=DEBUG_LOG,
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")


def _manager(settings: Path | None) -> SettingsManager:
    manager = SettingsManager(JsonFileRepository(settings or settings_path()))
    manager.load()
    return manager


def _read_text(path: Path) -> str:
    if not path.exists():
        raise typer.BadParameter(f"{path} does not exist", param_hint="FILE")
    return path.read_text(encoding="utf-8")


@app.command()
def edit(
    path: Path = typer.Argument(..., help="Markdown note to open (created on save)"),
    settings: Path | None = SettingsOption,
    debug: bool = typer.Option(False, help=f"Write a debug trace to {DEBUG_LOG}"),
) -> None:
    """Open a note in the editor."""
    from simple_prompt.app import SimplePromptApp

    if debug:
        _configure_logging(True)
    else:
        # stderr output would corrupt the terminal UI
        logging.getLogger().addHandler(logging.NullHandler())
    tui = SimplePromptApp(path, _manager(settings))
    tui.run()


@app.command()
def compose(
    command: CommandType = typer.Argument(..., help="Which template to use"),
    request: str = typer.Option(..., "--request", "-r", help="What the model should do"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Note supplying the text"),
    settings: Path | None = SettingsOption,
) -> None:
    """Print the prompt a command would send, without sending it."""
    _configure_logging(False)
    text = _read_text(file) if file else ""
    runner = CommandRunner(_manager(settings), None)
    typer.echo(runner.prompt_for(command, text, request))


@app.command()
def run(
    command: CommandType = typer.Argument(..., help="Which template to use"),
    request: str = typer.Option(..., "--request", "-r", help="What the model should do"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Note supplying the text"),
    settings: Path | None = SettingsOption,
    debug: bool = typer.Option(False, help=f"Write a debug trace to {DEBUG_LOG}"),
) -> None:
    """Send a command to the model and print the reply."""
    from simple_prompt.inference import InferenceManager, create_client

    _configure_logging(debug)
    text = _read_text(file) if file else ""
    manager = _manager(settings)
    api_key = resolve_api_key(manager.settings)
    inference = InferenceManager(create_client(api_key), manager.settings) if api_key else None
    runner = CommandRunner(manager, inference)
    errors: list[str] = []

    def on_text(chunk: str) -> None:
        typer.echo(chunk, nl=False)

    def on_done(reply: str) -> None:
        typer.echo()

    asyncio.run(runner.run(command, text, request, on_text, errors.append, on_done))
    manager.close()
    if errors:
        typer.echo(f"Error: {errors[0]}", err=True)
        raise typer.Exit(code=1)


@app.command()
def models(settings: Path | None = SettingsOption) -> None:
    """List the available models, marking the configured one."""
    manager = _manager(settings)
    for model_id, label in manager.list_models().items():
        marker = "*" if model_id == manager.settings.model else " "
        typer.echo(f"{marker} {model_id:<20} {label}")


if __name__ == "__main__":
    app()
