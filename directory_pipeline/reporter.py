from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from directory_pipeline.domain.models import Record
from directory_pipeline.domain.results import (
    Cancelled,
    Completed,
    ExportOutcome,
    Failed,
    InsertOutcome,
    NothingToExport,
)
from directory_pipeline.generation.analysis import GenerationStats
from directory_pipeline.pipeline.governor import PeakStats, format_bytes
from directory_pipeline.utils.resources import get_container_resources


def _title(base: str) -> str:
    """Append container resource constraints to a table title when known."""
    resources = get_container_resources()
    resource_parts = []
    if resources["cpus"]:
        resource_parts.append(f"CPU: {resources['cpus']} cores")
    if resources["memory"]:
        resource_parts.append(f"Memory: {resources['memory']}")
    if not resource_parts:
        return base
    return f"{base}\n[dim]Container Resources: {' │ '.join(resource_parts)}[/dim]"


def _peak_cells(peak: Optional[PeakStats]) -> List[str]:
    if peak is None:
        return ["N/A", "N/A"]
    mem_str = format_bytes(peak.peak_rss_bytes) if peak.peak_rss_bytes else "N/A"
    cpu_str = f"{peak.cpu_percent:.1f}" if peak.cpu_percent is not None else "N/A"
    return [mem_str, cpu_str]


def print_insert_outcome(
    outcome: InsertOutcome,
    peak: Optional[PeakStats] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render an insertion outcome as a rich table.

    Partial counts are shown for cancelled and failed runs as well.
    """
    console = console or Console()

    if isinstance(outcome, Completed):
        status, style, aggregate = "Completed", "bold green", outcome.result
    elif isinstance(outcome, Cancelled):
        status, style, aggregate = "Cancelled", "bold yellow", outcome.partial
    else:
        status, style, aggregate = "Failed", "bold red", outcome.partial

    table = Table(title=_title("Employee Insert Results"), box=box.ROUNDED)
    table.add_column("Status", style=style, no_wrap=True)
    table.add_column("Inserted", justify="right", style="magenta")
    table.add_column("Skipped", justify="right", style="blue")
    table.add_column("Batches", justify="right", style="cyan")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Throughput (rows/s)", justify="right", style="bold green")
    table.add_column("Memory Breaches", justify="right", style="red")
    table.add_column("Peak RSS", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="red")

    table.add_row(
        status,
        f"{aggregate.total_inserted:,}",
        f"{aggregate.total_skipped:,}",
        f"{aggregate.batches_processed:,}",
        f"{aggregate.total_duration_seconds:.1f}",
        f"{aggregate.throughput_rows_per_sec:,.2f}",
        str(aggregate.memory_breaches),
        *_peak_cells(peak),
    )
    console.print(table)

    if isinstance(outcome, Failed):
        console.print(f"[red]Error:[/red] {outcome.error}")


def print_export_outcome(
    outcome: ExportOutcome,
    peak: Optional[PeakStats] = None,
    console: Optional[Console] = None,
) -> None:
    """Render an export outcome, or a notice when there was nothing to export."""
    console = console or Console()

    if isinstance(outcome, NothingToExport):
        console.print(f"[yellow]{outcome.reason}[/yellow]")
        return

    table = Table(title=_title("Employee Export Results"), box=box.ROUNDED)
    table.add_column("Status", no_wrap=True, style="bold yellow" if outcome.cancelled else "bold green")
    table.add_column("Records", justify="right", style="magenta")
    table.add_column("Pages", justify="right", style="cyan")
    table.add_column("Duration (ms)", justify="right", style="green")
    table.add_column("File Size", justify="right", style="blue")
    table.add_column("Peak RSS", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="red")

    table.add_row(
        "Cancelled" if outcome.cancelled else "Completed",
        f"{outcome.records_written:,}",
        f"{outcome.pages:,}",
        f"{outcome.duration_ms:,.2f}",
        format_bytes(outcome.sink_size_bytes),
        *_peak_cells(peak),
    )
    caption = f"Written to {outcome.artifact}" if outcome.artifact else None
    if caption:
        table.caption = caption
    console.print(table)


def print_generation_stats(stats: GenerationStats, console: Optional[Console] = None) -> None:
    console = console or Console()

    summary = Table(title="Generated Records", box=box.ROUNDED)
    summary.add_column("Total", justify="right", style="magenta")
    summary.add_column("Male", justify="right", style="cyan")
    summary.add_column("Female", justify="right", style="cyan")
    summary.add_column("Duplicate Keys", justify="right", style="red")
    summary.add_row(
        f"{stats.total:,}",
        f"{stats.male_count:,}",
        f"{stats.female_count:,}",
        f"{stats.duplicate_keys:,}",
    )
    console.print(summary)

    distribution = Table(title="Distribution", box=box.SIMPLE)
    distribution.add_column("Surname Initial", style="cyan")
    distribution.add_column("Count", justify="right", style="magenta")
    for initial, count in stats.surname_initials.items():
        distribution.add_row(initial, f"{count:,}")
    console.print(distribution)

    ages = Table(title="Age Groups", box=box.SIMPLE)
    ages.add_column("Age", style="cyan")
    ages.add_column("Count", justify="right", style="magenta")
    for group, count in stats.age_groups.items():
        ages.add_row(group, f"{count:,}")
    console.print(ages)


def print_query_results(
    records: Sequence[Record],
    elapsed_ms: float,
    description: str,
    console: Optional[Console] = None,
) -> None:
    """Render filtered query rows with the measured execution time."""
    console = console or Console()

    if not records:
        console.print(f"[yellow]No employees match {description}.[/yellow] ({elapsed_ms:.2f}ms)")
        return

    today = date.today()
    table = Table(title=f"Employees: {description}", box=box.ROUNDED)
    table.add_column("ID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Full Name", style="magenta")
    table.add_column("Birth Date", style="green")
    table.add_column("Gender")
    table.add_column("Age", justify="right")
    for record in records:
        table.add_row(
            str(record.id),
            record.full_name,
            record.birth_date.isoformat(),
            record.gender.value,
            str(record.age(today)),
        )
    table.caption = f"{len(records):,} records in {elapsed_ms:.2f}ms"
    console.print(table)


def print_table_stats(stats: Dict[str, Any], console: Optional[Console] = None) -> None:
    console = console or Console()

    table = Table(title=_title("Employees Table"), box=box.ROUNDED)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="magenta")

    labels = {
        "total_records": "Total Records",
        "unique_names": "Unique Names",
        "male_count": "Male",
        "female_count": "Female",
        "oldest_birth_date": "Oldest Birth Date",
        "youngest_birth_date": "Youngest Birth Date",
        "table_size": "Table Size",
    }
    for key, label in labels.items():
        value = stats.get(key)
        if isinstance(value, int):
            rendered = f"{value:,}"
        else:
            rendered = "N/A" if value is None else str(value)
        table.add_row(label, rendered)
    console.print(table)


def print_index_results(results: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    console = console or Console()

    if not results:
        console.print("[yellow]No indexes created.[/yellow]")
        return

    table = Table(title="Optimization Indexes", box=box.ROUNDED)
    table.add_column("Index", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Time (ms)", justify="right", style="green")
    for res in results:
        table.add_row(res.get("name", "Unknown"), res.get("description", ""), f"{res.get('execution_ms', 0.0):.2f}")
    console.print(table)


__all__ = [
    "print_export_outcome",
    "print_generation_stats",
    "print_index_results",
    "print_insert_outcome",
    "print_query_results",
    "print_table_stats",
]
