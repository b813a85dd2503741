"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax

from chatstream.llm.types import EventKind, StreamEvent, StreamSnapshot, StreamState

STATE_COLORS = {
    StreamState.IDLE: "dim",
    StreamState.STREAMING: "yellow",
    StreamState.COMPLETED: "green",
    StreamState.FAILED: "red",
}

EVENT_COLORS = {
    EventKind.TEXT_DELTA: "white",
    EventKind.TOOL_CALL: "cyan",
    EventKind.FINISH_SIGNAL: "magenta",
    EventKind.EMPTY: "dim",
}


class OutputFormatter:
    """Rich-based output formatting for the chatstream CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_event(self, index: int, event: StreamEvent) -> None:
        color = EVENT_COLORS.get(event.kind, "white")
        if event.kind is EventKind.TEXT_DELTA:
            detail = repr(event.text)
        elif event.kind is EventKind.TOOL_CALL and event.tool_call is not None:
            call = event.tool_call
            detail = f"{call.name}({json.dumps(call.arguments)[:80]}) id={call.id}"
        elif event.kind is EventKind.FINISH_SIGNAL:
            detail = str(event.finish_reason)
        else:
            detail = ""
        self.console.print(f"  [{color}]{index:>4d} {event.kind.value:>14s}[/{color}]  {escape(detail)}")

    def format_snapshot(self, snapshot: StreamSnapshot) -> None:
        color = STATE_COLORS.get(snapshot.state, "white")
        self.console.print(Panel(
            f"[dim]Provider:[/dim] {snapshot.provider.value}\n"
            f"[dim]State:[/dim] [{color}]{snapshot.state.value}[/{color}]\n"
            f"[dim]Finish reason:[/dim] {snapshot.finish_reason or 'none'}\n\n"
            f"{escape(snapshot.accumulated_text)}",
            title="Stream",
        ))

    def format_config(self, config: dict) -> None:
        json_str = json.dumps(config, indent=2, default=str)
        self.console.print(Syntax(json_str, "json", theme="monokai"))
