"""ctxfile CLI - project context files for AI coding assistants.

Usage:
    ctxfile init [TARGET] [options]
    ctxfile scan .
    ctxfile score ./my-project --type cli
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .analyzer import DEFAULT_MAX_DEPTH, DEFAULT_MAX_FILES, ScanResult, scan_project
from .generator import ContextResult, GenerateOptions, generate_context
from .logging import configure_logging
from .model import PROVIDERS, provider_status
from .output import DEFAULT_OUTPUT_NAME, build_document, render_yaml
from .scoring import HUMAN_SLOTS, SLOT_CATEGORIES, TECHNICAL_SLOTS, applicable_categories, is_filled

console = Console()

AI_CHOICES = ("auto", "off", *PROVIDERS)

TIER_STYLES = {
    "Trophy": "bold magenta",
    "Gold": "bold yellow",
    "Silver": "bold white",
    "Bronze": "bold red",
    "Green": "green",
    "Yellow": "yellow",
    "Red": "red",
    "White": "dim",
}


def _run_generation(target: str, options: GenerateOptions) -> ContextResult:
    try:
        return generate_context(target, options)
    except ValueError as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__)
def cli():
    """ctxfile - project context files for AI coding assistants.

    Scans a local project for languages, README intent, tooling and
    quality signals, then writes a YAML context file with a type-aware
    completeness score.
    """
    pass


@cli.command()
@click.argument("target", default=".")
@click.option("--output", "-o", default=None, help=f"Output file (default: TARGET/{DEFAULT_OUTPUT_NAME})")
@click.option("--force", is_flag=True, help="Overwrite an existing context file")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print YAML to stdout instead of writing a file")
@click.option("--type", "project_type", default=None, help="Project type hint, e.g. cli, library, python-api")
@click.option("--name", default=None, help="Project name (overrides detection)")
@click.option("--goal", default=None, help="One-line project goal (overrides detection)")
@click.option("--language", default=None, help="Main language (overrides detection)")
@click.option("--framework", default=None, help="Framework (overrides detection)")
@click.option("--ai", type=click.Choice(AI_CHOICES), default="auto", help="README summarizer provider")
@click.option("--model", "-m", default=None, help="Model name for the selected provider")
@click.option("--max-depth", default=DEFAULT_MAX_DEPTH, show_default=True, help="Directory depth limit")
@click.option("--max-files", default=DEFAULT_MAX_FILES, show_default=True, help="File count limit")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr")
def init(
    target: str,
    output: str | None,
    force: bool,
    to_stdout: bool,
    project_type: str | None,
    name: str | None,
    goal: str | None,
    language: str | None,
    framework: str | None,
    ai: str,
    model: str | None,
    max_depth: int,
    max_files: int,
    verbose: bool,
):
    """Scan a project and write its context file.

    Examples:

        ctxfile init

        ctxfile init ./my-project --ai off

        ctxfile init . --type cli --goal "Fast log search" --force
    """
    configure_logging(verbose=verbose)

    out_path = Path(output) if output else Path(target) / DEFAULT_OUTPUT_NAME
    if not to_stdout and out_path.exists() and not force:
        raise click.ClickException(f"{out_path} already exists. Use --force to overwrite.")

    options = GenerateOptions(
        project_type=project_type,
        name=name,
        goal=goal,
        language=language,
        framework=framework,
        ai=ai,
        model=model,
        max_depth=max_depth,
        max_files=max_files,
    )
    result = _run_generation(target, options)
    content = render_yaml(build_document(result, datetime.now(timezone.utc)))

    if to_stdout:
        click.echo(content, nl=False)
        return

    out_path.write_text(content, encoding="utf-8")
    _print_context_summary(result)
    console.print(f"\n[green]Context written to {out_path}[/]")


@cli.command()
@click.argument("target", default=".")
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON to stdout (for piping)")
@click.option("--max-depth", default=DEFAULT_MAX_DEPTH, show_default=True, help="Directory depth limit")
@click.option("--max-files", default=DEFAULT_MAX_FILES, show_default=True, help="File count limit")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr")
def scan(target: str, as_json: bool, max_depth: int, max_files: int, verbose: bool):
    """Run the local scan only: languages, signals and quality tier."""
    configure_logging(verbose=verbose)
    try:
        result = scan_project(target, max_depth=max_depth, max_files=max_files)
    except ValueError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    _print_scan_summary(result)


@cli.command()
@click.argument("target", default=".")
@click.option("--type", "project_type", default=None, help="Project type hint, e.g. cli, library, python-api")
@click.option("--ai", type=click.Choice(AI_CHOICES), default="off", help="README summarizer provider")
@click.option("--model", "-m", default=None, help="Model name for the selected provider")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging to stderr")
def score(target: str, project_type: str | None, ai: str, model: str | None, verbose: bool):
    """Show the per-slot completeness breakdown for a project."""
    configure_logging(verbose=verbose)
    result = _run_generation(target, GenerateOptions(project_type=project_type, ai=ai, model=model))
    _print_slot_table(result)
    _print_score_panel(result)


@cli.command()
def providers():
    """List AI README summarizer providers and their configuration."""
    table = Table(title="AI Providers", show_header=True)
    table.add_column("Provider", style="bold")
    table.add_column("Configured", justify="center")
    table.add_column("Credential / Host")
    table.add_column("Default model")

    for status in provider_status():
        configured = "[green]yes[/]" if status["configured"] else "[yellow]no[/]"
        table.add_row(status["name"], configured, status["credential"], status["model"])

    console.print(table)
    console.print()
    console.print("With [bold]--ai auto[/], Anthropic is used first, then OpenRouter.")
    console.print("Ollama runs only when selected: [bold]ctxfile init --ai ollama[/]")


@cli.command()
def version():
    """Show version information."""
    console.print(f"ctxfile v{__version__}")
    console.print("Project context files for AI coding assistants")


def _print_scan_summary(result: ScanResult) -> None:
    table = Table(title="Local Scan", show_header=False, border_style="dim")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Path", result.path)
    table.add_row("Files", f"{result.total_files:,} ({result.total_bytes:,} bytes)")
    table.add_row("Primary language", result.primary_language)
    if result.language_strings:
        table.add_row("Languages", ", ".join(result.language_strings[:6]))
    if result.readme.name:
        table.add_row("README title", result.readme.name)
    if result.readme.description:
        table.add_row("Description", result.readme.description[:80])
    table.add_row("License", result.license_name or "Not found")
    table.add_row("CI/CD", result.cicd_platform or "None")
    table.add_row("Tests", "detected" if result.has_tests else "none")
    table.add_row("Docker", "detected" if result.has_docker else "none")

    console.print(table)
    style = TIER_STYLES.get(result.quality_tier, "")
    console.print(Panel.fit(
        f"[{style}]{result.quality_tier}[/] - quality {result.quality_score}/100",
        border_style="cyan",
        title="Local Quality",
    ))


def _print_context_summary(result: ContextResult) -> None:
    table = Table(title="Project Context", show_header=False, border_style="dim")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Name", result.project_name)
    table.add_row("Type", result.project_type)
    if result.slots.get("project_goal"):
        table.add_row("Goal", str(result.slots["project_goal"])[:80])
    if result.scan.language_strings:
        table.add_row("Languages", ", ".join(result.scan.language_strings[:5]))
    if result.slots.get("framework"):
        table.add_row("Framework", result.slots["framework"])
    if result.ai_summary:
        table.add_row("AI summary", result.ai_summary.source)
    table.add_row("Quality tier", f"{result.scan.quality_tier} ({result.scan.quality_score})")

    console.print(table)
    _print_score_panel(result)


def _print_slot_table(result: ContextResult) -> None:
    categories = applicable_categories(result.project_type)
    table = Table(title=f"Context Slots ({result.project_type})", show_header=True)
    table.add_column("Slot", style="bold")
    table.add_column("Category")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    for slot in (*TECHNICAL_SLOTS, *HUMAN_SLOTS):
        category = SLOT_CATEGORIES[slot]
        value = result.slots.get(slot)
        if category not in categories:
            table.add_row(slot, category, "[dim]N/A[/]", "", style="dim")
        elif is_filled(value):
            table.add_row(slot, category, str(value)[:60], result.slot_sources.get(slot, ""))
        else:
            table.add_row(slot, category, "[red]missing[/]", "")

    console.print(table)


def _print_score_panel(result: ContextResult) -> None:
    scoring = result.scoring
    console.print(Panel.fit(
        f"[bold green]Score {scoring.final_score}%[/]\n"
        f"Slots: {scoring.filled_slots}/{scoring.applicable_slots} filled "
        f"({scoring.slot_based_percentage}%) | N/A: {scoring.na_slots} | "
        f"Bonus: +{scoring.bonus_points}",
        border_style="green",
        title=f"Results for {result.project_name}",
    ))


if __name__ == "__main__":
    cli()
