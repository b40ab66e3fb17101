"""CLI entry point for the conversational client."""

import asyncio
import json
import os
from pathlib import Path
from typing import Optional, Set, Tuple

import click
import structlog

from ..config.settings import settings
from ..core.session_controller import SessionController, TurnStatus
from ..core.speech_worker import SpeechWorker
from ..providers import registry
from ..providers.ai.base import CompletionError, CompletionProvider
from ..state.history import HistoryStore, Snapshot
from ..state.persistence import ConversationStore, DeleteError, LoadError
from ..utils.logging import setup_logging


logger = structlog.get_logger()


CLEAR_COMMANDS = ("/clear",)
QUIT_COMMANDS = ("/quit", "/exit")


class TerminalView:
    """Renders session events as terminal output."""

    def __init__(self):
        self._seen: Set[str] = set()

    def show_history(self, snapshot: Snapshot) -> None:
        if not snapshot:
            if self._seen:
                click.echo(click.style("(history cleared)", dim=True))
            self._seen.clear()
            return

        for message in snapshot:
            if message.id in self._seen:
                continue
            if message.is_user:
                click.echo(click.style("You: ", fg="blue", bold=True) + message.text)
            else:
                click.echo(click.style("AI:  ", fg="green", bold=True) + message.text)

        # Only the retained window needs remembering
        self._seen = {message.id for message in snapshot}

    def show_loading(self, is_loading: bool) -> None:
        if is_loading:
            click.echo(click.style("…", dim=True))

    def show_failure(self, error: CompletionError) -> None:
        click.echo(click.style(f"Request failed: {error}", fg="red"), err=True)


def _configure(config: Optional[str], debug: bool) -> None:
    if config:
        settings.config_file = Path(config)
        settings.load_from_file()
        settings.load_from_env()

    setup_logging(
        debug=debug,
        log_file=settings.logging.file_enabled,
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        file_rotation_mb=settings.logging.file_rotation_mb,
        file_backup_count=settings.logging.file_backup_count,
    )

    issues = settings.validate()
    if issues:
        raise click.UsageError("Invalid settings: " + "; ".join(issues))


def _create_completion_provider(mock: bool) -> CompletionProvider:
    name = "mock" if mock else settings.completion_provider
    if name == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise click.UsageError("OPENAI_API_KEY is not set")
        return registry.get_completion_provider(name, api_key=api_key)
    return registry.get_completion_provider(name)


def _create_speech_worker(mock: bool) -> Optional[SpeechWorker]:
    name = "mock" if mock else settings.tts_provider
    if name == "elevenlabs":
        provider = registry.get_tts_provider(name, api_key=os.getenv("ELEVENLABS_API_KEY"))
    else:
        provider = registry.get_tts_provider(name)

    worker = SpeechWorker(provider)
    try:
        worker.start()
    except Exception as e:
        logger.warning("Speech output unavailable", provider=name, error=str(e))
        click.echo(click.style(f"Speech disabled: {e}", fg="yellow"), err=True)
        return None
    return worker


def _build_session(
    mock: bool, speech: bool
) -> Tuple[SessionController, Optional[SpeechWorker]]:
    """Wire store, history, completion provider and speech into a session."""
    completion = _create_completion_provider(mock)
    history = HistoryStore(
        ConversationStore(settings.history.storage_path),
        retention_limit=settings.history.retention_limit,
    )
    controller = SessionController(history, completion, model=settings.completion.model)

    worker = None
    if speech and settings.speech.enabled:
        worker = _create_speech_worker(mock)
        if worker:
            controller.on_speech_requested(worker.speak)

    return controller, worker


def _shutdown(
    runner: asyncio.Runner, controller: SessionController, worker: Optional[SpeechWorker]
) -> None:
    if worker:
        worker.stop()
    runner.run(controller.completion.aclose())


@click.command()
@click.option("--mock", is_flag=True, help="Use offline providers (no API calls)")
@click.option("--no-speech", is_flag=True, help="Do not speak replies")
def chat(mock: bool, no_speech: bool):
    """
    Start an interactive conversation.

    Type a message and press Enter. /clear forgets the conversation,
    /quit (or Ctrl+D) exits.
    """
    controller, worker = _build_session(mock, speech=not no_speech)

    view = TerminalView()
    view.show_history(controller.snapshot())
    controller.on_history_changed(view.show_history)
    controller.on_loading_changed(view.show_loading)
    controller.on_turn_failed(view.show_failure)

    click.echo(click.style("Conversation started. /clear to reset, /quit to exit.", fg="green"))

    with asyncio.Runner() as runner:
        try:
            while True:
                try:
                    text = click.prompt("", prompt_suffix="> ", default="", show_default=False)
                except click.Abort:
                    click.echo()
                    break

                command = text.strip().lower()
                if command in QUIT_COMMANDS:
                    break
                if command in CLEAR_COMMANDS:
                    if worker:
                        worker.interrupt()
                    controller.clear_history()
                    continue
                if not command:
                    continue

                try:
                    result = runner.run(controller.submit_user_text(text))
                except KeyboardInterrupt:
                    click.echo(click.style("\n(request cancelled)", dim=True))
                    continue

                if result.status is TurnStatus.REJECTED_BUSY:
                    click.echo(click.style("Still waiting for the previous reply.", fg="yellow"))
        finally:
            _shutdown(runner, controller, worker)

    click.echo("Goodbye!")


@click.command()
@click.argument("text")
@click.option("--mock", is_flag=True, help="Use offline providers (no API calls)")
@click.option("--no-speech", is_flag=True, help="Do not speak the reply")
@click.option("--json", "json_output", is_flag=True, help="Output the result as JSON")
def ask(text: str, mock: bool, no_speech: bool, json_output: bool):
    """Send a single message and print the reply."""
    controller, worker = _build_session(mock, speech=not no_speech)

    with asyncio.Runner() as runner:
        try:
            result = runner.run(controller.submit_user_text(text))
            if worker and result.status is TurnStatus.REPLIED:
                worker.wait_until_idle(timeout=settings.completion.timeout)
        finally:
            _shutdown(runner, controller, worker)

    if json_output:
        output = {
            "status": result.status.value,
            "reply": result.reply,
            "error": str(result.error) if result.error else None,
            "history": [message.to_dict() for message in controller.snapshot()],
        }
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
    elif result.status is TurnStatus.REPLIED:
        click.echo(result.reply)
    elif result.status is TurnStatus.REJECTED_EMPTY:
        raise click.UsageError("Message is empty")
    else:
        click.echo(click.style(f"Request failed: {result.error}", fg="red"), err=True)

    if result.status is not TurnStatus.REPLIED:
        raise SystemExit(1)


@click.command()
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def history(json_output: bool):
    """Show the stored conversation."""
    store = ConversationStore(settings.history.storage_path)
    try:
        messages = store.load()
    except LoadError as e:
        raise click.ClickException(str(e))

    messages = messages or []
    if json_output:
        click.echo(json.dumps([m.to_dict() for m in messages], indent=2, ensure_ascii=False))
        return

    if not messages:
        click.echo("No conversation stored.")
        return

    click.echo(f"📝 Conversation ({store.path}):")
    click.echo("-" * 60)
    for message in messages:
        speaker = "You" if message.is_user else "AI"
        click.echo(f"{speaker}: {message.text}")


@click.command()
def clear():
    """Delete the stored conversation."""
    store = ConversationStore(settings.history.storage_path)
    try:
        store.delete()
    except DeleteError as e:
        raise click.ClickException(str(e))
    click.echo("Conversation cleared.")


@click.command()
def providers():
    """List available providers."""
    click.echo("🔌 Available Providers")
    click.echo("-" * 50)

    completion_providers = registry.list_completion_providers()
    click.echo(f"\n🤖 Completion Providers ({len(completion_providers)})")
    for provider in completion_providers:
        click.echo(f"  - {provider}")

    tts_providers = registry.list_tts_providers()
    click.echo(f"\n🔊 TTS Providers ({len(tts_providers)})")
    for provider in tts_providers:
        click.echo(f"  - {provider}")


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to configuration file",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(config: Optional[str], debug: bool):
    """Talk to a chat-completion service and hear the replies."""
    _configure(config, debug)


cli.add_command(chat)
cli.add_command(ask)
cli.add_command(history)
cli.add_command(clear)
cli.add_command(providers)


if __name__ == "__main__":
    cli()
