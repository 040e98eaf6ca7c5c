"""Typer CLI entry point for transcript-chat."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from transcript_chat import __version__
from transcript_chat.config import Settings, format_validation_error
from transcript_chat.engine import ChatEngine
from transcript_chat.exceptions import TranscriptStoreError
from transcript_chat.logging import configure_logging, generate_session_id
from transcript_chat.models import MessageRole, StreamPhase, TranscriptRecord
from transcript_chat.store import JsonFileTranscriptStore
from transcript_chat.transport import LiteLLMTransport

if TYPE_CHECKING:
    from transcript_chat.models import CombinedContext, SubmitResult
    from transcript_chat.transport import ChunkCallback, StreamTransport


console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="transcript-chat",
    help="Ask questions about up to three stored video transcripts at once.",
    no_args_is_help=True,
)

_REJECTION_HINTS = {
    "EMPTY_QUESTION": "Type a question first.",
    "NO_SELECTION": "None of the selected videos has a stored transcript.",
    "SESSION_ACTIVE": "Still answering the previous question.",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_settings(
    config_path: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Load settings with error handling and user-friendly messages."""
    from pydantic import ValidationError

    try:
        return Settings.load(config_path=config_path, **overrides)
    except ValidationError as exc:
        err_console.print(
            Panel(
                format_validation_error(exc),
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc


def _setup(config: Path | None, verbose: bool) -> Settings:
    overrides: dict[str, Any] = {}
    if verbose:
        overrides["logging"] = {"level": "DEBUG"}
    settings = _load_settings(config, **overrides)
    configure_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        log_file=settings.logging.file,
        session_id=generate_session_id(),
    )
    return settings


def _store_error(exc: TranscriptStoreError) -> typer.Exit:
    err_console.print(Panel(str(exc), title="Transcript Store Error", border_style="red"))
    return typer.Exit(code=1)


class _EchoTransport:
    """Print chunks to the console as they are forwarded to the engine."""

    def __init__(self, inner: StreamTransport) -> None:
        self._inner = inner

    async def start_stream(
        self,
        context: CombinedContext,
        question: str,
        on_chunk: ChunkCallback,
    ) -> None:
        def _echo(chunk: str) -> None:
            console.print(chunk, end="", markup=False, highlight=False, soft_wrap=True)
            on_chunk(chunk)

        await self._inner.start_stream(context, question, _echo)


def _select_videos(engine: ChatEngine, video_ids: list[str]) -> None:
    for video_id in video_ids:
        before = engine.get_selection()
        # Toggling an id twice would deselect it.
        if video_id in before.selected_ids:
            continue
        after = engine.toggle_selection(video_id)
        if after == before:
            console.print(
                f"[yellow]Ignoring {video_id}: at most "
                f"{after.max} videos can be selected.[/yellow]"
            )


def _ask(engine: ChatEngine, question: str) -> SubmitResult:
    """Stream one answer and report how it ended."""
    result = asyncio.run(engine.submit(question))
    if not result.accepted:
        reason = str(result.reason)
        console.print(f"[yellow]{_REJECTION_HINTS.get(reason, reason)}[/yellow]")
        return result

    console.print()
    index = result.message_index if result.message_index is not None else -1
    reply = engine.messages[index]
    if result.phase == StreamPhase.FAILED:
        err_console.print(f"[red]{reply.content}[/red]")
    elif reply.errored:
        err_console.print("[red]The model reported a credential problem.[/red]")
    if engine.credential_error:
        err_console.print(
            Panel(
                "The model API key is either missing or invalid.\n"
                "Set TRANSCRIPT_CHAT_LLM__API_KEY or the provider's key "
                "variable in your .env file.",
                title="API Key Issue",
                border_style="red",
            )
        )
    return result


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]transcript-chat[/bold] {__version__}")
        raise typer.Exit


@app.callback()
def common(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """transcript-chat global options."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command(name="list")
def list_cmd(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
) -> None:
    """List stored transcripts."""
    settings = _setup(config, verbose=False)
    try:
        records = JsonFileTranscriptStore(settings.store.path).list()
    except TranscriptStoreError as exc:
        raise _store_error(exc) from exc

    if not records:
        console.print(
            "[yellow]No video transcripts available. "
            "Add one with [bold]transcript-chat add[/bold].[/yellow]"
        )
        return

    table = Table(title="Stored Transcripts")
    table.add_column("#", style="dim", width=4)
    table.add_column("Video ID", style="cyan")
    table.add_column("Title")
    table.add_column("Fetched", style="dim")
    table.add_column("Chars", justify="right")
    for index, record in enumerate(records, start=1):
        table.add_row(
            str(index),
            record.video_id,
            record.display_title,
            record.fetched_at.date().isoformat(),
            str(len(record.transcript)),
        )
    console.print(table)


@app.command()
def add(
    video_id: Annotated[str, typer.Argument(help="Video identifier.")],
    transcript_file: Annotated[
        Path,
        typer.Argument(help="Plain-text transcript file.", exists=True, dir_okay=False),
    ],
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Display title for the video."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
) -> None:
    """Store (or replace) the transcript for a video."""
    settings = _setup(config, verbose=False)
    record = TranscriptRecord(
        video_id=video_id,
        transcript=transcript_file.read_text(encoding="utf-8"),
        fetched_at=datetime.now(tz=UTC),
        title=title,
    )
    try:
        JsonFileTranscriptStore(settings.store.path).save(record)
    except TranscriptStoreError as exc:
        raise _store_error(exc) from exc
    console.print(f"[green]Stored transcript:[/green] {record.display_title}")


@app.command()
def remove(
    video_id: Annotated[str, typer.Argument(help="Video identifier.")],
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
) -> None:
    """Delete a stored transcript."""
    settings = _setup(config, verbose=False)
    try:
        removed = JsonFileTranscriptStore(settings.store.path).remove(video_id)
    except TranscriptStoreError as exc:
        raise _store_error(exc) from exc
    if not removed:
        err_console.print(f"[red]No transcript stored for {video_id}.[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed:[/green] {video_id}")


@app.command()
def ask(
    question: Annotated[str, typer.Argument(help="Question about the videos.")],
    videos: Annotated[
        list[str],
        typer.Option("--video", "-i", help="Video id to include (repeatable)."),
    ],
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Ask one question about the selected videos and stream the answer."""
    settings = _setup(config, verbose)
    engine = ChatEngine.from_settings(
        settings, transport=_EchoTransport(LiteLLMTransport(settings.llm))
    )
    _select_videos(engine, videos)

    try:
        context = engine.build_context()
    except TranscriptStoreError as exc:
        raise _store_error(exc) from exc
    if context.composite_title:
        console.print(f"[dim]Analyzing: {context.composite_title}[/dim]")

    result = _ask(engine, question)
    if not result.accepted or result.phase == StreamPhase.FAILED:
        raise typer.Exit(code=1)
    index = result.message_index
    if index is not None and engine.messages[index].errored:
        raise typer.Exit(code=1)


@app.command()
def chat(
    videos: Annotated[
        list[str],
        typer.Option("--video", "-i", help="Video id to include (repeatable)."),
    ],
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Interactive multi-video chat. Type /clear to reset, /quit to leave."""
    settings = _setup(config, verbose)
    engine = ChatEngine.from_settings(
        settings, transport=_EchoTransport(LiteLLMTransport(settings.llm))
    )
    _select_videos(engine, videos)
    console.print(Panel(engine.messages[0].content, title="Multi-Video Analysis"))

    while True:
        try:
            question = typer.prompt("You", prompt_suffix="> ")
        except typer.Abort:
            break
        command = question.strip().lower()
        if command in {"/quit", "/exit"}:
            break
        if command == "/clear":
            engine.clear()
            console.print(f"[dim]{engine.messages[0].content}[/dim]")
            continue
        try:
            _ask(engine, question)
        except TranscriptStoreError as exc:
            raise _store_error(exc) from exc

    turns = sum(1 for m in engine.messages if m.role == MessageRole.USER)
    console.print(f"[dim]{turns} question(s) this session.[/dim]")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
