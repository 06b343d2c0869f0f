"""Command-line interface for sessionscore."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
import yaml
from rich.console import Console
from rich.markup import escape

from sessionscore import __version__
from sessionscore.config import load_settings

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="sessionscore",
    help="Session performance aggregation and classification for therapy programs.",
    no_args_is_help=True,
)
console = Console(width=min(80, Console().width))

# Rich styles per status tone
_TONE_STYLES = {
    "positive": "green",
    "moderate": "yellow",
    "attention": "red",
    "negative": "red",
    "muted": "dim",
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sessionscore {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Session performance aggregation and classification for therapy programs."""


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)
    raise typer.Exit(1)


def _read_session_file(path: Path) -> Any:
    """Parse a session export; ``.yaml``/``.yml`` as YAML, anything else as JSON."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


# ---------------------------------------------------------------------------
# summarize
# ---------------------------------------------------------------------------


@app.command()
def summarize(
    session_file: Annotated[
        Path,
        typer.Argument(
            exists=True, dir_okay=False, readable=True,
            help="Session export (JSON or YAML) with trials and planned stimuli.",
        ),
    ],
    variant: Annotated[
        str | None,
        typer.Option("--variant", "-t", help="Taxonomy id or alias (aba, to, fisio, musi)."),
    ] = None,
    sort: Annotated[
        str | None,
        typer.Option("--sort", "-s", help="Stimulus order: severity, alphabetical, order, performance."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the summary as JSON instead of text."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Summarise one session: totals, status and ranked stimuli."""
    from sessionscore.analysis import SortMode, rank, summarize_session
    from sessionscore.models import SessionInput
    from sessionscore.taxonomy import resolve_taxonomy

    try:
        settings = load_settings()
    except ValueError as exc:  # covers ValidationError and ConfigurationMismatch
        _fail(f"Invalid settings: {exc}")

    from sessionscore.logging import setup_logging

    setup_logging(settings, verbose=verbose)

    try:
        raw = _read_session_file(session_file)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        _fail(f"Could not read {session_file.name}: {exc}")

    try:
        session = SessionInput.model_validate(raw or {})
        taxonomy = resolve_taxonomy(
            variant or session.variant or settings.default_variant,
            settings.taxonomy_dirs,
        )
        summary = summarize_session(
            session.trials,
            session.planned_stimulus_ids,
            taxonomy,
            labels=session.stimulus_labels,
            order=session.stimulus_order,
        )
    except ValueError as exc:
        _fail(str(exc))

    try:
        mode = SortMode(sort or settings.default_sort)
    except ValueError:
        _fail(f"unknown sort mode '{sort or settings.default_sort}'"
              f" (expected one of {[m.value for m in SortMode]})")

    indices = rank(summary.stimuli, mode, taxonomy)
    logger.info(
        "Summarised %s: %d trials under %s, sorted by %s",
        session_file.name, summary.total, taxonomy.id, mode.value,
    )

    if as_json:
        typer.echo(json.dumps(_summary_payload(summary, indices, taxonomy, mode), ensure_ascii=False, indent=2))
        return
    _print_summary(summary, indices, taxonomy, session_id=session.session_id)


def _summary_payload(summary, indices: list[int], taxonomy, mode) -> dict[str, Any]:
    from sessionscore.analysis import describe

    def status_block(key: str) -> dict[str, Any]:
        d = describe(key, taxonomy)
        return {"key": d.key, "label": d.label, "severity": d.severity, "tone": d.tone}

    stimuli = []
    for i in indices:
        item = summary.stimuli[i]
        stimuli.append({
            "stimulus_id": item.stimulus_id,
            "label": item.label,
            "counts": dict(item.counts),
            "total": item.total,
            "independence_rate": item.independence_rate,
            "status": status_block(item.status),
            "duration_minutes": item.duration_minutes,
            "scores": item.scores,
            "goal_reached": item.goal_reached,
        })

    return {
        "taxonomy": taxonomy.id,
        "sort": mode.value,
        "counts": dict(summary.counts),
        "total": summary.total,
        "independence_rate": summary.independence_rate,
        "status": status_block(summary.status),
        "planned_count": summary.planned_count,
        "worked_count": summary.worked_count,
        "score_means": summary.score_means,
        "total_duration_minutes": summary.total_duration_minutes,
        "stimuli": stimuli,
    }


def _styled_status(key: str, taxonomy) -> str:
    definition = taxonomy.status(key)
    style = _TONE_STYLES.get(definition.tone, "")
    return f"[{style}]{escape(definition.label)}[/{style}]" if style else escape(definition.label)


def _print_summary(summary, indices: list[int], taxonomy, *, session_id: str = "") -> None:
    """Print a formatted session summary to the console."""
    heading = f"Session {session_id}" if session_id else "Session"
    console.print(f"\n  [bold]{escape(heading)}[/bold]")
    console.print(f"  [dim]{escape(taxonomy.title)}[/dim]\n")

    counts = "  ".join(
        f"{escape(o.label)} {summary.counts[o.key]}" for o in taxonomy.outcomes
    )
    console.print(f"  {counts}  [dim](total {summary.total})[/dim]")
    console.print(
        f"  Independence {summary.independence_rate}%  "
        f"{_styled_status(summary.status, taxonomy)}"
    )
    console.print(f"  Stimuli worked {summary.worked_count} of {summary.planned_count}")
    if summary.total_duration_minutes is not None:
        console.print(f"  Duration {summary.total_duration_minutes:g} min")
    for scale in taxonomy.scales:
        mean = summary.score_means.get(scale.key)
        value = "—" if mean is None else f"{mean:.1f}"
        console.print(
            f"  {escape(scale.label)} {value}  [dim]{escape(scale.level_label(mean))}[/dim]"
        )

    if not indices:
        console.print("\n  [dim]No trials recorded.[/dim]\n")
        return

    console.print()
    for i in indices:
        item = summary.stimuli[i]
        label = escape(item.label).ljust(28)
        goal = "  [green]✓[/green]" if item.goal_reached else ""
        console.print(
            f"  {label} {item.total:>3}  {item.independence_rate:>3}%  "
            f"{_styled_status(item.status, taxonomy)}{goal}"
        )
    console.print()


# ---------------------------------------------------------------------------
# taxonomies
# ---------------------------------------------------------------------------


@app.command()
def taxonomies() -> None:
    """List the available outcome taxonomies."""
    from sessionscore.taxonomy import load_all_taxonomies

    try:
        settings = load_settings()
    except ValueError as exc:  # covers ValidationError and ConfigurationMismatch
        _fail(f"Invalid settings: {exc}")

    try:
        found = load_all_taxonomies(settings.taxonomy_dirs)
    except ValueError as exc:
        _fail(str(exc))

    console.print()
    for taxonomy in found:
        marker = " [dim](default)[/dim]" if taxonomy.id == settings.default_variant else ""
        console.print(f"  [bold]{taxonomy.id.ljust(22)}[/bold]{escape(taxonomy.title)}{marker}")
        outcomes = ", ".join(o.label for o in taxonomy.outcomes)
        console.print(f"  {''.ljust(22)}[dim]{escape(taxonomy.strategy)}: {escape(outcomes)}[/dim]")
        if taxonomy.aliases:
            console.print(f"  {''.ljust(22)}[dim]aliases: {', '.join(taxonomy.aliases)}[/dim]")
    console.print()
