"""
CLI interface for AI Cost Lens.

Provides command-line access to estimation, provider calls and history.
"""

import base64
import logging
import mimetypes
import sys
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from ai_cost_lens.config.loader import get_catalog
from ai_cost_lens.core.estimate import CostEstimate, estimate_cost
from ai_cost_lens.core.pricing import OutputUnit
from ai_cost_lens.core.thinking import (
    NoThinking,
    ThinkingBudget,
    ThinkingDirective,
    ThinkingLevel,
    ThinkingLevelDirective,
    resolve_thinking_budget,
    supports_thinking,
)
from ai_cost_lens.core.token_counter import GeneratedMedia, MediaKind, UsageReport
from ai_cost_lens.sdk.client import CostLensClient
from ai_cost_lens.storage.models import FileAttachment
from ai_cost_lens.storage.repository import HistoryRepository, LoadMode, default_export_name

app = typer.Typer()
history_app = typer.Typer(help="Inspect, combine and replay saved history files.")
app.add_typer(history_app, name="history")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

_UNIT_LABELS = {
    OutputUnit.TOKENS: "/1M tokens",
    OutputUnit.SECONDS: "/second",
    OutputUnit.COUNT: "/item",
}


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    pricing: Optional[str] = typer.Option(
        None,
        "--pricing",
        help="YAML pricing catalog merged over the built-in one"
    ),
):
    """AI Cost Lens CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if pricing:
        try:
            get_catalog(pricing)
        except Exception as e:
            console.print(f"[red]Error loading pricing catalog:[/] {str(e)}")
            sys.exit(EXIT_CODE_FAIL)
    if ctx.invoked_subcommand is None:
        console.print("AI Cost Lens - Use --help to see available commands")


@app.command()
def models():
    """List models in the pricing catalog."""
    table = Table(title="Pricing Catalog")
    table.add_column("Model")
    table.add_column("Label")
    table.add_column("Provider")
    table.add_column("Text In", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Breakpoint", justify="right")

    for model, entry in get_catalog().items():
        rates = entry.standard
        table.add_row(
            model,
            entry.label,
            entry.provider.value,
            f"${rates.input_rate('TEXT')}/1M",
            f"${rates.output}{_UNIT_LABELS[rates.output_unit]}",
            f"{entry.breakpoint:,}" if entry.breakpoint is not None else "-",
        )
    console.print(table)


@app.command()
def estimate(
    model: str = typer.Argument(..., help="Model identifier"),
    usage_file: Optional[str] = typer.Option(
        None,
        "--usage",
        "-u",
        help="JSON or YAML usage report"
    ),
    input_tokens: Optional[int] = typer.Option(None, "--input-tokens", "-i", help="Aggregate input tokens"),
    output_tokens: Optional[int] = typer.Option(None, "--output-tokens", "-o", help="Text output tokens"),
    thinking_tokens: Optional[int] = typer.Option(None, "--thinking-tokens", "-t", help="Thinking output tokens"),
    audio_output_tokens: Optional[int] = typer.Option(None, "--audio-output-tokens", help="Audio output tokens"),
    images: int = typer.Option(0, "--images", help="Generated images"),
    videos: int = typer.Option(0, "--videos", help="Generated videos"),
    duration: Optional[float] = typer.Option(None, "--duration", help="Generated video seconds"),
):
    """
    Estimate the cost of a call from its usage, without calling the model.

    Usage comes from a report file or from the count options.
    """
    try:
        if usage_file:
            report = _load_usage_report(usage_file)
        else:
            media = tuple(
                [GeneratedMedia(kind=MediaKind.IMAGE, mime_type="image/png")] * images
                + [GeneratedMedia(kind=MediaKind.VIDEO, mime_type="video/mp4")] * videos
            )
            report = UsageReport(
                input_units=input_tokens,
                text_output_units=output_tokens,
                thinking_output_units=thinking_tokens,
                audio_output_units=audio_output_tokens,
                output_duration_seconds=Decimal(str(duration)) if duration is not None else None,
                generated_media=media,
            )
        result = estimate_cost(model, report, get_catalog())
        _display_estimate(model, result)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def run(
    model: str = typer.Argument(..., help="Model identifier"),
    prompt: str = typer.Argument("", help="Prompt text"),
    attach: Optional[List[str]] = typer.Option(None, "--attach", "-a", help="File to send with the prompt"),
    thinking_budget: Optional[int] = typer.Option(None, "--thinking-budget", help="Thinking token ceiling"),
    thinking_level: Optional[str] = typer.Option(None, "--thinking-level", help="LOW, MEDIUM or HIGH"),
    title: Optional[str] = typer.Option(None, "--title", help="Label for the history entry"),
    history_file: Optional[str] = typer.Option(
        None,
        "--history",
        "-H",
        help="History file to record the call in (default: ai-cost-history-<date>.json)"
    ),
):
    """Call a model and show the cost of the call."""
    try:
        thinking = _thinking_directive(thinking_budget, thinking_level)
        attachments = [_read_attachment(path) for path in attach or []]
        history_file = history_file or default_export_name()
        history = _open_history(history_file)

        _call_and_record(CostLensClient(history=history), history_file, model, prompt, attachments, thinking, title)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@history_app.command("rerun")
def history_rerun(
    path: str = typer.Argument(..., help="History file"),
    entry_id: str = typer.Argument(..., help="Id of the entry to repeat"),
):
    """Repeat a recorded call with its original settings."""
    try:
        history = _open_history(path)
        previous = history.get(entry_id)
        if previous is None:
            raise ValueError(f"History entry not found: {entry_id}")

        console.print(f"[dim]Previous total: {_format_cost(previous.result.estimate.total_cost)}[/]")
        _call_and_record(
            CostLensClient(history=history),
            path,
            previous.model,
            previous.prompt,
            previous.attachments,
            previous.thinking,
            previous.title,
        )
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@history_app.command("show")
def history_show(path: str = typer.Argument(..., help="History file")):
    """List entries of a history file."""
    try:
        history = HistoryRepository()
        history.load(path, LoadMode.REPLACE)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not len(history):
        console.print("\n[dim]No history yet.[/]")
        return

    table = Table(title=f"History ({len(history)})")
    table.add_column("When")
    table.add_column("Model")
    table.add_column("Title / Prompt")
    table.add_column("Tier")
    table.add_column("Total", justify="right")
    for entry in history.entries():
        label = entry.title or entry.prompt
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            entry.model,
            label[:40] + ("…" if len(label) > 40 else ""),
            "High" if entry.result.estimate.is_high_tier else "Standard",
            _format_cost(entry.result.estimate.total_cost),
        )
    console.print(table)


@history_app.command("merge")
def history_merge(
    source: str = typer.Argument(..., help="History file to import"),
    target: str = typer.Argument(..., help="History file to update"),
    replace: bool = typer.Option(False, "--replace", help="Replace the target instead of appending"),
):
    """Import one history file into another."""
    try:
        history = _open_history(target)
        count = history.load(source, LoadMode.REPLACE if replace else LoadMode.APPEND)
        history.save(target)
        console.print(f"[green]✓[/] Imported {count} entries into {target} ({len(history)} total)")
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _open_history(path: str) -> HistoryRepository:
    history = HistoryRepository()
    if Path(path).exists():
        history.load(path, LoadMode.REPLACE)
    return history


def _call_and_record(client, history_file, model, prompt, attachments, thinking, title) -> None:
    """Run one call, print the response and its cost, and save the history."""
    budget = resolve_thinking_budget(thinking, model)
    if budget is not None and supports_thinking(model):
        console.print(f"[dim]Thinking budget: {budget:,} tokens[/]")

    entry = client.run(model, prompt, attachments, thinking, title)

    if entry.result.text:
        console.print(f"\n{entry.result.text}\n")
    for media in entry.result.media:
        console.print(f"[dim]Generated {media.kind.value}: {media.name} ({media.mime_type})[/]")
    _display_estimate(model, entry.result.estimate)

    client.history.save(history_file)
    console.print(f"[green]✓[/] Saved {entry.id} to {history_file} ({len(client.history)} entries)")


def _thinking_directive(budget: Optional[int], level: Optional[str]) -> ThinkingDirective:
    if budget is not None and level is not None:
        raise ValueError("Use either --thinking-budget or --thinking-level, not both")
    if budget is not None:
        return ThinkingBudget(budget)
    if level is not None:
        try:
            return ThinkingLevelDirective(ThinkingLevel(level.upper()))
        except ValueError:
            valid = [lvl.value for lvl in ThinkingLevel]
            raise ValueError(f"--thinking-level must be one of: {valid}")
    return NoThinking()


def _read_attachment(path: str) -> FileAttachment:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Attachment not found: {path}")
    mime_type, _ = mimetypes.guess_type(file_path.name)
    return FileAttachment(
        name=file_path.name,
        mime_type=mime_type or "application/octet-stream",
        data=base64.b64encode(file_path.read_bytes()).decode("ascii"),
    )


def _load_usage_report(path: str) -> UsageReport:
    usage_path = Path(path)
    if not usage_path.exists():
        raise FileNotFoundError(f"Usage file not found: {path}")
    with open(usage_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Usage report must be a dictionary")
    return UsageReport.from_dict(data)


def _format_cost(amount: Decimal) -> str:
    """Format a cost with enough precision for sub-cent calls."""
    return f"${amount:,.6f}"


def _format_units(units, unit: OutputUnit) -> str:
    if unit == OutputUnit.SECONDS:
        return f"{units:,}s"
    if unit == OutputUnit.COUNT:
        return f"{units:,} items"
    return f"{units:,}"


def _display_estimate(model: str, result: CostEstimate):
    """Display an estimate in a clean, financial format."""
    tier = "[red]High Tier[/]" if result.is_high_tier else "[green]Standard Tier[/]"
    console.print(f"\n[bold]Cost & Token Analysis[/bold] - {model} {tier}")
    console.print("-" * 40)

    table = Table()
    table.add_column("Line")
    table.add_column("Units", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Cost", justify="right")

    for item in result.input_breakdown:
        table.add_row(
            f"{item.modality} Input",
            f"{item.units:,}",
            f"${item.unit_rate}/1M",
            _format_cost(item.cost),
        )

    rate = f"${result.output_rate}{_UNIT_LABELS[result.output_unit]}"
    if result.output_unit == OutputUnit.TOKENS:
        table.add_row("Text Output", f"{result.text_units:,}", rate, _format_cost(result.text_output_cost))
        table.add_row(
            "Thinking Output", f"{result.thinking_units:,}", rate, _format_cost(result.thinking_output_cost)
        )
    table.add_row(
        "Output Total",
        _format_units(result.output_units, result.output_unit),
        rate,
        _format_cost(result.output_cost),
    )
    console.print(table)

    console.print(f"Total estimated cost: [bold]{_format_cost(result.total_cost)}[/bold]")
    for note in result.approximations:
        console.print(f"[yellow]Approximate:[/] {note}")


if __name__ == "__main__":
    app()
