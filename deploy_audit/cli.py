from __future__ import annotations

import json
import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import AuditSettings, load_settings
from .listener import AuditDependencies, start, stop
from .memory import InMemoryEventSource, load_fixture

app = typer.Typer(add_completion=False, help="Deployment audit trail publisher", no_args_is_help=True)

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _load_settings(config: Optional[Path]) -> AuditSettings:
    try:
        return load_settings(config)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid settings file {config}: {exc}[/red]")
        raise typer.Exit(code=2)


class ConsoleBusClient:
    """Bus client printing payloads instead of sending them to Kafka."""

    def __init__(self, out: Console) -> None:
        self.out = out
        self.sent: List[str] = []

    def send(self, topic: str, key: Optional[str], value: str) -> None:
        self.sent.append(value)
        self.out.print(f"[cyan]{escape(topic)}[/cyan] {escape(value)}", highlight=False, soft_wrap=True)

    def close(self) -> None:
        self.out.print(f"[dim]{len(self.sent)} record(s) published[/dim]")


@app.command("config")
def show_config(
    config: Optional[Path] = typer.Option(None, "--config", help="JSON settings file", exists=True, dir_okay=False),
):
    """Show the effective settings."""
    settings = _load_settings(config)
    table = Table(title="deploy-audit settings")
    table.add_column("setting")
    table.add_column("value")
    for f in fields(AuditSettings):
        value = getattr(settings, f.name)
        table.add_row(f.name, "-" if value is None else str(value))
    console.print(table)
    if settings.configured:
        console.print(Panel.fit("Audit logger enabled", border_style="green"))
    else:
        console.print(Panel.fit("Audit logger disabled: bootstrap servers, site and topic are required", border_style="yellow"))


@app.command("replay")
def replay(
    fixture: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON fixture with deployments, topologies and events"),
    config: Optional[Path] = typer.Option(None, "--config", help="JSON settings file", exists=True, dir_okay=False),
    dry_run: bool = typer.Option(True, "--dry-run/--no-dry-run", help="Print records instead of sending them to Kafka"),
):
    """Replay recorded lifecycle events through the audit logger."""
    settings = _load_settings(config)
    _configure_logging(settings.log_level)
    try:
        data = load_fixture(fixture)
    except (ValueError, KeyError) as exc:
        console.print(f"[red]Invalid fixture {fixture}: {exc}[/red]")
        raise typer.Exit(code=2)

    bus_client = None
    if dry_run:
        settings = replace(
            settings,
            bootstrap_servers=settings.bootstrap_servers or "dry-run",
            site=settings.site or "local",
            topic=settings.topic or "audit",
        )
        bus_client = ConsoleBusClient(console)

    source = InMemoryEventSource()
    deps = AuditDependencies(
        event_source=source,
        deployments=data.deployments,
        topologies=data.topologies,
        types=data.types,
        meta_properties=data.meta_properties,
        bus_client=bus_client,
    )
    handle = start(settings, deps)
    if handle is None:
        console.print("[yellow]Audit logger is not configured, nothing replayed.[/yellow]")
        raise typer.Exit(code=1)
    try:
        for event in data.events:
            source.dispatch(event)
    finally:
        stop(handle)
    console.print(json.dumps({"events": len(data.events)}))

