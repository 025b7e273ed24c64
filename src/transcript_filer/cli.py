"""Command-line interface for transcript-filer.

Uses Typer for a type-hinted CLI and Rich for output.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

# Load environment variables from .env files
# Priority: local .env > ~/.transcript-filer/.env
_user_env = Path.home() / ".transcript-filer" / ".env"
if _user_env.exists():
    load_dotenv(_user_env)
load_dotenv()
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from transcript_filer import __version__
from transcript_filer.config import FilerSettings, load_routing_config, load_settings, save_routing_config
from transcript_filer.errors import ResourceError, TranscriptFilerError, format_error_for_display
from transcript_filer.logging import LogLevel, enable_file_logging, set_verbosity
from transcript_filer.models.mapping import Tier2Mapping
from transcript_filer.models.routing import RoutingContext
from transcript_filer.pipeline import TranscriptProcessor
from transcript_filer.routing.engine import RoutingEngine
from transcript_filer.vocabulary.database import MappingDatabase

app = typer.Typer(
    name="transcript-filer",
    help="Correct and file voice-memo transcripts by project.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

SettingsOption = Annotated[
    Optional[Path],
    typer.Option("--settings", "-s", help="Settings file (JSON or YAML)"),
]
ContextOption = Annotated[
    Optional[list[Path]],
    typer.Option("--context", "-c", help="Knowledge store directory (repeatable)"),
]
RoutingOption = Annotated[
    Optional[Path],
    typer.Option("--routing", "-r", help="Routing config file (JSON or YAML)"),
]
DateOption = Annotated[
    Optional[datetime],
    typer.Option("--date", "-d", help="Recording date (defaults to the file's modified time)"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"transcript-filer version {__version__}")
        raise typer.Exit()


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(format_error_for_display(error))}")
    raise typer.Exit(1)


def _build_settings(
    settings_path: Path | None,
    context_dirs: list[Path] | None,
    routing_path: Path | None = None,
) -> FilerSettings:
    """Settings from file (or defaults) with command-line overrides applied."""
    settings = load_settings(settings_path) if settings_path else FilerSettings()

    if context_dirs:
        database = settings.database.model_copy(
            update={"context_paths": [str(p) for p in context_dirs]}
        )
        settings = settings.model_copy(update={"database": database})
    if routing_path:
        settings = settings.model_copy(update={"routing_config_path": str(routing_path)})
    return settings


def _read_context(transcript: Path, date: datetime | None) -> RoutingContext:
    if not transcript.exists():
        console.print(f"[red]Error:[/red] Transcript not found: {transcript}")
        raise typer.Exit(1)

    try:
        text = transcript.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        _fail(
            ResourceError(f"Could not read transcript {transcript.name}", context={"reason": str(e)})
        )
    if date is None:
        date = datetime.fromtimestamp(transcript.stat().st_mtime)
    return RoutingContext(transcript_text=text, audio_date=date, source_file=transcript.name)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log loads and summaries")] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Log per-mapping decisions")] = False,
    log_file: Annotated[
        Optional[Path], typer.Option("--log-file", help="Also write log records to this file")
    ] = None,
) -> None:
    """Transcript Filer - project-aware transcript correction and routing.

    [bold]process[/bold]: route a transcript, apply sounds-like corrections, and
    show where it would be filed.

    [bold]mappings[/bold] / [bold]collisions[/bold]: inspect the tiered mapping
    database built from the knowledge store.

    [bold]check-routing[/bold]: validate a routing config file.
    """
    if debug:
        set_verbosity(LogLevel.DEBUG)
    elif verbose:
        set_verbosity(LogLevel.VERBOSE)
    if log_file:
        enable_file_logging(log_file)


@app.command()
def process(
    transcript: Annotated[Path, typer.Argument(help="Transcript text file")],
    settings_path: SettingsOption = None,
    context_dirs: ContextOption = None,
    routing_path: RoutingOption = None,
    date: DateOption = None,
    write: Annotated[
        bool, typer.Option("--write", "-w", help="Write the corrected transcript to its routed path")
    ] = False,
    stats_file: Annotated[
        Optional[Path], typer.Option("--stats", help="Save correction stats as JSON")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Route and correct a transcript."""
    context = _read_context(transcript, date)

    try:
        settings = _build_settings(settings_path, context_dirs, routing_path)
        processor = TranscriptProcessor.from_settings(settings)
        processed = processor.process(context)
    except TranscriptFilerError as e:
        _fail(e)

    if stats_file:
        processed.correction.stats.save(stats_file)

    if write:
        output = Path(processed.output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(processed.text, encoding="utf-8")

    if as_json:
        payload = processed.to_dict()
        payload["text"] = processed.text
        console.print_json(json.dumps(payload))
        return

    stats = processed.correction.stats
    decision = processed.decision
    console.print(
        Panel(
            f"[bold]Project:[/bold] {decision.project_id or '(default)'}\n"
            f"[bold]Confidence:[/bold] {decision.confidence:.2f}\n"
            f"[bold]Reasoning:[/bold] {escape(decision.reasoning)}\n"
            f"[bold]Output:[/bold] {processed.output_path}\n"
            f"[bold]Replacements:[/bold] {stats.total_replacements} "
            f"(tier 1: {stats.tier1_replacements}, tier 2: {stats.tier2_replacements}, "
            f"tier 3: {stats.tier3_replacements})",
            title=transcript.name,
        )
    )
    if write:
        console.print(f"[green]Wrote:[/green] {processed.output_path}")
    else:
        console.print(escape(processed.text))


@app.command()
def route(
    transcript: Annotated[Path, typer.Argument(help="Transcript text file")],
    settings_path: SettingsOption = None,
    context_dirs: ContextOption = None,
    routing_path: RoutingOption = None,
    date: DateOption = None,
) -> None:
    """Show where a transcript would be filed, without correcting it."""
    context = _read_context(transcript, date)

    try:
        settings = _build_settings(settings_path, context_dirs, routing_path)
        processor = TranscriptProcessor.from_settings(settings)
    except TranscriptFilerError as e:
        _fail(e)

    decision = processor.routing.route(context)
    console.print(f"[bold]Project:[/bold] {decision.project_id or '(default)'}")
    console.print(f"[bold]Confidence:[/bold] {decision.confidence:.2f}")
    console.print(f"[bold]Reasoning:[/bold] {escape(decision.reasoning)}")
    if decision.auto_tags:
        console.print(f"[bold]Tags:[/bold] {', '.join(decision.auto_tags)}")
    for alternate in decision.alternate_matches:
        console.print(f"[dim]  also matched {alternate.project_id} ({alternate.confidence:.2f})[/dim]")
    console.print(f"[bold]Output:[/bold] {processor.routing.build_output_path(decision, context)}")


@app.command()
def mappings(
    settings_path: SettingsOption = None,
    context_dirs: ContextOption = None,
    tier: Annotated[
        Optional[int], typer.Option("--tier", "-t", min=1, max=3, help="Only show this tier")
    ] = None,
    project: Annotated[
        Optional[str], typer.Option("--project", "-p", help="Tier 2 mappings visible to this project")
    ] = None,
) -> None:
    """List sounds-like mappings by tier."""
    try:
        settings = _build_settings(settings_path, context_dirs)
        database = MappingDatabase(settings.database)
        database.load()
    except TranscriptFilerError as e:
        _fail(e)

    if project is not None:
        rows = database.get_tier2_mappings_for_project(project)
    else:
        rows = database.mappings
    if tier is not None:
        rows = [m for m in rows if m.tier == tier]

    if not rows:
        console.print("[yellow]No mappings found.[/yellow]")
        return

    table = Table(title=f"Sounds-like Mappings ({len(rows)})")
    table.add_column("Sounds like", style="cyan")
    table.add_column("Correct text")
    table.add_column("Tier", justify="right")
    table.add_column("Risk")
    table.add_column("Entity", style="dim")
    table.add_column("Scope")

    for mapping in rows:
        scope = ""
        if isinstance(mapping, Tier2Mapping):
            scope = ", ".join(mapping.scoped_to_projects) if mapping.scoped_to_projects else "generic"
        table.add_row(
            mapping.sounds_like,
            mapping.correct_text,
            str(mapping.tier),
            mapping.collision_risk.value,
            f"{mapping.entity_type.value}:{mapping.entity_id}",
            scope,
        )

    console.print(table)


@app.command()
def collisions(
    settings_path: SettingsOption = None,
    context_dirs: ContextOption = None,
) -> None:
    """List sounds-like keys shared by more than one mapping."""
    try:
        settings = _build_settings(settings_path, context_dirs)
        database = MappingDatabase(settings.database)
        found = database.get_all_collisions()
    except TranscriptFilerError as e:
        _fail(e)

    if not found:
        console.print("[green]No collisions detected.[/green]")
        return

    table = Table(title=f"Collisions ({len(found)})")
    table.add_column("Sounds like", style="cyan")
    table.add_column("Mappings", justify="right")
    table.add_column("Candidates")

    for collision in found:
        candidates = ", ".join(
            f"{m.correct_text} ({m.entity_type.value}:{m.entity_id}, tier {m.tier})"
            for m in collision.mappings
        )
        table.add_row(collision.sounds_like, str(collision.count), candidates)

    console.print(table)


@app.command("check-routing")
def check_routing(
    routing_path: Annotated[Path, typer.Argument(help="Routing config file (JSON or YAML)")],
    default_path: Annotated[
        Optional[str], typer.Option("--default-path", help="Replace the default destination path")
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Save the validated config as JSON")
    ] = None,
) -> None:
    """Validate a routing config and optionally save it normalized."""
    try:
        engine = RoutingEngine(load_routing_config(routing_path))
        if default_path is not None:
            current = engine.get_config().default
            engine.update_default_route(current.model_copy(update={"path": default_path}))
    except TranscriptFilerError as e:
        _fail(e)

    config = engine.get_config()
    table = Table(title=f"Routing ({config.conflict_resolution.value})")
    table.add_column("Project", style="cyan")
    table.add_column("Destination")
    table.add_column("Structure")
    table.add_column("Active")

    table.add_row("(default)", config.default.path, config.default.structure.value, "yes")
    for project in config.projects:
        table.add_row(
            project.project_id,
            project.destination.path,
            project.destination.structure.value,
            "yes" if project.active else "no",
        )
    console.print(table)

    if output:
        saved = save_routing_config(config, output)
        console.print(f"[green]Saved:[/green] {saved}")


if __name__ == "__main__":
    app()
