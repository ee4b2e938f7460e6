"""CLI Runner for the FreeSWITCH Call Flow Analyzer.

Usage:
    fs-callflow analyze freeswitch.log [--format table|json|mermaid] [--output out.json]
    fs-callflow analyze freeswitch.log --weak-anchor-merge --workers 8
    fs-callflow events freeswitch.log [--type DTMF] [--limit 50]
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from fs_callflow import __version__

console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def read_lines(path: str) -> list[str]:
    """Read a log file as UTF-8 lines, replacing undecodable bytes."""
    with open(path, encoding="utf-8", errors="replace") as fh:
        return fh.read().splitlines()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """FreeSWITCH Call Flow Analyzer.

    Reconstruct per-call flows and diagnoses from switch logs.
    """
    from fs_callflow.config import get_settings

    level = "DEBUG" if verbose else get_settings().log_level
    configure_logging(level.value if hasattr(level, "value") else level)


@cli.command("analyze")
@click.argument("logfile", type=click.Path(dir_okay=False))
@click.option("--format", "-f", "output_format", default="table",
              type=click.Choice(["table", "json", "mermaid"]))
@click.option("--output", "-o", default=None, help="Write the JSON report to this path")
@click.option("--weak-anchor-merge", is_flag=True, default=False,
              help="Also merge calls sharing a caller number (may merge unrelated calls)")
@click.option("--workers", type=int, default=None, help="Graph-building worker threads")
def analyze_log(logfile: str, output_format: str, output: Optional[str],
                weak_anchor_merge: bool, workers: Optional[int]):
    """Analyze a log file and show one flow per call."""
    from fs_callflow.config import get_settings
    from fs_callflow.services.pipeline import CallFlowAnalyzer

    options = get_settings().to_options()
    if weak_anchor_merge:
        options.weak_anchor_merge_enabled = True
    if workers:
        options.max_workers = workers
    options.render_diagrams = options.render_diagrams or output_format == "mermaid"

    try:
        lines = read_lines(logfile)
    except OSError as e:
        console.print(f"[red]Error:[/red] cannot read {logfile}: {e}")
        sys.exit(1)

    report = CallFlowAnalyzer(options).run(lines)

    if output:
        report.save_to_file(output)
        console.print(f"[green]Report saved to:[/green] {output}")

    if output_format == "json":
        if not output:
            click.echo(report.to_json())
        return

    if not report.results:
        console.print("No calls found.")
        return

    if output_format == "mermaid":
        for result in report.results:
            click.echo(result.diagram)
        return

    _print_calls_table(report)
    _print_diagnoses(report)


def _print_calls_table(report) -> None:
    from fs_callflow.utils import format_duration

    table = Table(title=f"Calls ({len(report.results)})")
    table.add_column("Call", style="cyan", overflow="fold")
    table.add_column("Start")
    table.add_column("Caller")
    table.add_column("Callee")
    table.add_column("Agent")
    table.add_column("Dir")
    table.add_column("Queue")
    table.add_column("DTMF")
    table.add_column("Duration")
    table.add_column("Answered")

    for result in report.results:
        g = result.graph
        s = g.summary
        answered_style = "green" if s.answered else "yellow"
        table.add_row(
            g.id,
            s.start_time or "-",
            s.caller or "-",
            s.callee or "-",
            s.agent_id or "-",
            s.direction,
            s.queue_name or ("yes" if s.queued else "-"),
            s.dtmf_sequence or "-",
            format_duration(s.duration_ms),
            f"[{answered_style}]{'yes' if s.answered else 'no'}[/{answered_style}]",
        )

    console.print(table)
    stats = report.stats
    console.print(
        f"  Lines: {stats.lines_read}  Events: {stats.events}  "
        f"Noise dropped: {stats.noise_events} event(s) in {stats.noise_groups} group(s)"
    )


def _print_diagnoses(report) -> None:
    colors = {"INFO": "blue", "WARNING": "yellow", "ERROR": "red"}
    for result in report.results:
        if not result.graph.diagnoses:
            continue
        console.print(f"\n[bold]{result.graph.id}[/bold]")
        for d in result.graph.diagnoses:
            color = colors.get(d.severity, "white")
            console.print(f"  [{color}]{d.severity}[/{color}] {d.title}")
            if d.detail:
                console.print(f"    {d.detail}")
            for hint in d.hints:
                console.print(f"    - {hint}")


@cli.command("events")
@click.argument("logfile", type=click.Path(dir_okay=False))
@click.option("--type", "-t", "event_type", default=None,
              help="Only show events of this type (e.g. DTMF, HANGUP)")
@click.option("--limit", default=100, help="Maximum events to show")
def list_events(logfile: str, event_type: Optional[str], limit: int):
    """Show classified events, for checking classification rules."""
    from fs_callflow.services.pipeline import CallFlowAnalyzer

    try:
        lines = read_lines(logfile)
    except OSError as e:
        console.print(f"[red]Error:[/red] cannot read {logfile}: {e}")
        sys.exit(1)

    events = CallFlowAnalyzer().parse_events(lines)
    if event_type:
        events = [e for e in events if e.type == event_type.upper()]

    if not events:
        console.print("No events found.")
        return

    table = Table(title=f"Events ({min(len(events), limit)} of {len(events)})")
    table.add_column("Time")
    table.add_column("Channel", style="cyan", overflow="fold")
    table.add_column("Type")
    table.add_column("Display ID", overflow="fold")
    table.add_column("Attributes", overflow="fold")

    shown_keys = ("callerNumber", "calleeNumber", "agentId", "queueName", "digit", "sipCallId")
    for e in events[:limit]:
        attrs = ", ".join(f"{k}={e.attributes[k]}" for k in shown_keys if k in e.attributes)
        table.add_row(
            e.timestamp.isoformat(sep=" ") if e.timestamp else "-",
            e.source_channel_id or "-",
            e.type,
            e.business_call_id,
            attrs or "-",
        )

    console.print(table)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
