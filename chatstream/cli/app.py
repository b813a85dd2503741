"""
Main CLI application for chatstream.

Usage:
    chatstream chat PROMPT [--model NAME] [--no-stream] [--system TEXT] [--profile NAME]
                         [--set SECTION.KEY=VALUE ...]
    chatstream replay FILE [--provider gemini|openai] [--chunk-size N]
    chatstream config show [--set SECTION.KEY=VALUE ...]
    chatstream config validate
    chatstream version
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from chatstream import __version__
from chatstream.config import ChatstreamConfig, LoggingConfig, find_config_path, load_config

app = typer.Typer(name="chatstream", help="Chatstream - streaming LLM chat client")
config_app = typer.Typer(help="Configuration management")

app.add_typer(config_app, name="config")

console = Console()

LOG_FORMAT = "%(asctime)s:%(name)s:%(levelname)s:%(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _configure_logging(cfg: LoggingConfig) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if cfg.file:
        log_path = Path(cfg.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, cfg.level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=handlers,
    )


def _load(
    profile: str | None = None,
    overrides: dict | None = None,
    settings: list[str] | None = None,
) -> ChatstreamConfig:
    cfg = load_config(find_config_path(), profile=profile, cli_overrides=overrides)
    for assignment in settings or []:
        try:
            cfg.set_override_text(assignment)
        except ValueError as e:
            console.print(f"[red]Invalid --set:[/red] {e}")
            raise typer.Exit(2)
    _configure_logging(cfg.logging)
    return cfg


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    prompt: str = typer.Argument(..., help="Message to send"),
    model: Optional[str] = typer.Option(None, help="Model name (gpt-* selects OpenAI)"),
    stream: Optional[bool] = typer.Option(None, "--stream/--no-stream", help="Stream the answer"),
    system: Optional[str] = typer.Option(None, "--system", help="System prompt"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    settings: Optional[List[str]] = typer.Option(None, "--set", help="Session override, section.key=value"),
):
    """Send one prompt and print the answer."""
    from chatstream.chat import ChatService
    from chatstream.errors import ChatStreamError
    from chatstream.llm.router import ProviderRouter

    overrides: dict = {}
    if model:
        overrides["chat.default_model"] = model
    if stream is not None:
        overrides["chat.streaming"] = stream
    if system is not None:
        overrides["chat.system_prompt"] = system
    cfg = _load(profile, overrides, settings)

    router = ProviderRouter.from_config(cfg)
    service = ChatService(
        router,
        default_model=cfg.chat.default_model,
        system_prompt=cfg.chat.system_prompt,
    )
    service.set_conversation()
    service.add_user(prompt)

    printed = 0

    def _print_update(messages) -> None:
        nonlocal printed
        text = messages[-1].text_content if messages else ""
        if len(text) > printed:
            console.print(text[printed:], end="", markup=False, highlight=False)
            printed = len(text)

    try:
        result = asyncio.run(service.run(streaming=cfg.chat.streaming, on_update=_print_update))
    except ChatStreamError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print()
    for call in result.tool_calls:
        console.print(f"[cyan]Tool call:[/cyan] {call.name} {call.arguments}")
    if result.error is not None:
        console.print(f"[red]Request failed:[/red] {result.error}")
        raise typer.Exit(1)
    console.print(f"[dim]finish_reason={result.finish_reason or 'none'}[/dim]")


@app.command()
def replay(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Recorded raw response body"),
    provider: str = typer.Option("gemini", "--provider", "-p", help="gemini or openai"),
    chunk_size: int = typer.Option(0, "--chunk-size", min=0, help="Re-cut into N-byte reads (0 = one read)"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Feed a recorded stream through a session and show the events."""
    from chatstream.cli.output import OutputFormatter
    from chatstream.llm.session import StreamSession
    from chatstream.llm.types import ModelProvider

    try:
        tag = ModelProvider(provider.lower())
    except ValueError:
        console.print(f"[red]Unknown provider:[/red] {provider}")
        raise typer.Exit(2)

    cfg = _load(profile)
    data = file.read_bytes()
    if chunk_size:
        chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]
    else:
        chunks = [data]

    session = StreamSession(
        tag,
        max_carry_over=cfg.stream.max_carry_over_chars or None,
        log_payload_chars=cfg.stream.log_payload_chars,
    )
    formatter = OutputFormatter(console)
    index = 0
    for chunk in chunks:
        for event in session.feed(chunk):
            formatter.format_event(index, event)
            index += 1
    for event in session.flush():
        formatter.format_event(index, event)
        index += 1
    session.finish()

    console.print(f"[dim]{len(chunks)} reads, {index} events[/dim]")
    formatter.format_snapshot(session.snapshot())


@config_app.command("show")
def config_show(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    settings: Optional[List[str]] = typer.Option(None, "--set", help="Session override, section.key=value"),
):
    """Show effective config."""
    from chatstream.cli.output import OutputFormatter

    cfg = _load(profile, settings=settings)
    formatter = OutputFormatter(console)
    formatter.format_config(cfg.to_dict())
    for assignment in settings or []:
        dotpath = assignment.partition("=")[0].strip()
        console.print(f"[dim]override {dotpath} = {cfg.get_override(dotpath)!r}[/dim]")


@config_app.command("validate")
def config_validate():
    """Validate config and report missing credentials."""
    config_path = find_config_path()
    try:
        cfg = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  Default model: {cfg.chat.default_model}")
    for section in (cfg.gemini, cfg.openai):
        key_state = "[green]set[/green]" if section.api_key else f"[yellow]missing[/yellow] ({section.api_key_env})"
        console.print(f"  {section.name}: {section.model} key {key_state}")


@app.command()
def version():
    """Show version."""
    console.print(f"chatstream-core v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
