from __future__ import annotations

import signal
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Generator, Optional

import psycopg
import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from directory_pipeline.config import get_settings
from directory_pipeline.domain.models import Gender, Record
from directory_pipeline.domain.results import Cancelled, ExportResult, Failed
from directory_pipeline.errors import PipelineError, ValidationError
from directory_pipeline.export import CursorExporter, FileSink
from directory_pipeline.generation import RecordGenerator, analyze_records
from directory_pipeline.infrastructure.db_factory import check_connection
from directory_pipeline.pipeline import BatchInserter, MemoryGovernor, clamp_batch_size, track_peak
from directory_pipeline.progress import ProgressEvent, ProgressReporter
from directory_pipeline.reporter import (
    print_export_outcome,
    print_generation_stats,
    print_index_results,
    print_insert_outcome,
    print_query_results,
    print_table_stats,
)
from directory_pipeline.storage import PostgresRecordStore, RecordFilter
from directory_pipeline.utils.logging import configure_logging

app = typer.Typer(help="Employee directory bulk-data pipeline CLI.")
console = Console()

# Streams larger than this skip duplicate tracking in --dry-run analysis.
DRY_RUN_DUPLICATE_LIMIT = 1_000_000


def _configure() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _parse_gender(value: Optional[str]) -> Optional[Gender]:
    if not value:
        return None
    try:
        return Gender(value.capitalize())
    except ValueError:
        raise typer.BadParameter('Gender must be either "Male" or "Female"', param_hint="--gender") from None


@contextmanager
def _progress_bar(description: str, total: int) -> Generator[Callable[[ProgressEvent], None], None, None]:
    """Rich progress bar; yields a callback suitable for ProgressReporter."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as bar:
        task = bar.add_task(description, total=max(total, 1))

        def _update(event: ProgressEvent) -> None:
            bar.update(task, completed=event.current, total=max(event.total, 1))

        yield _update


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Generator[threading.Event, None, None]:
    """
    First Ctrl-C requests a clean stop; a second one interrupts immediately.
    """

    def _handler(signum, frame) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        console.print("[yellow]Stopping after the current batch... (Ctrl-C again to abort)[/yellow]")
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


@app.command()
def info() -> None:
    """
    Show effective configuration values and database reachability.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"env={settings.app_env} constrained={settings.constrained_profile} "
        f"batch_ceiling={settings.batch_ceiling} memory_limit={settings.memory_limit_mb}MB"
    )
    try:
        status = check_connection()
    except psycopg.Error as exc:
        typer.echo(f"Database unreachable: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Connected | server_time={status['server_time']} | {status['version']}")


@app.command()
def generate(
    base: Optional[int] = typer.Option(
        None, "--base", "-b", help="Ordinary records to generate (default from settings)."
    ),
    special: Optional[int] = typer.Option(
        None, "--special", "-s", help="Special records (male, surname starting with the special letter)."
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", help="Records per insert batch; reduced to the environment ceiling."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="RNG seed for reproducible datasets."),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Generate and analyse records without touching the database."
    ),
) -> None:
    """
    Generate synthetic employees and insert them in batches.
    """
    settings = get_settings()
    _configure()

    generator = RecordGenerator(
        base_count=settings.generation_base_count if base is None else base,
        special_count=settings.generation_special_count if special is None else special,
        batch_size=clamp_batch_size(batch_size, settings),
        special_letter=settings.special_surname_letter,
        seed=settings.generation_seed if seed is None else seed,
    )
    typer.echo(
        f"Generating {generator.total:,} records ({generator.special_count:,} special) "
        f"in batches of {generator.batch_size}."
    )

    if dry_run:
        stats = analyze_records(generator, track_duplicates=generator.total <= DRY_RUN_DUPLICATE_LIMIT)
        print_generation_stats(stats, console=console)
        return

    governor = MemoryGovernor.from_settings(settings)
    inserter = BatchInserter(
        PostgresRecordStore(),
        governor=governor,
        batch_size=generator.batch_size,
        settings=settings,
    )
    cancel = threading.Event()
    with _cancel_on_interrupt(cancel), track_peak("generate") as peak:
        with _progress_bar("Inserting employees", generator.total) as callback, ProgressReporter(
            callback
        ) as reporter:
            outcome = inserter.insert_stream(
                generator, progress=reporter, total=generator.total, cancel=cancel
            )
    governor.log_usage("generate")

    print_insert_outcome(outcome, peak=peak, console=console)
    if isinstance(outcome, Failed):
        raise typer.Exit(code=1)
    if isinstance(outcome, Cancelled):
        raise typer.Exit(code=130)


@app.command()
def export(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Report path (default: EXPORT_DIR/employees_list_<timestamp>.txt)."
    ),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", "-p", help="Rows per keyset page (default from settings)."
    ),
    sort_by: str = typer.Option("full_name", "--sort-by", help="full_name or id."),
) -> None:
    """
    Export every employee to a fixed-width text report.
    """
    settings = get_settings()
    _configure()

    path = output or Path(settings.export_dir) / f"employees_list_{datetime.now():%Y%m%d_%H%M%S}.txt"
    store = PostgresRecordStore()
    governor = MemoryGovernor.from_settings(settings)
    exporter = CursorExporter(
        store,
        governor=governor,
        settings=settings,
        sort_by=sort_by,
    )
    total = store.count()

    cancel = threading.Event()
    with _cancel_on_interrupt(cancel), track_peak("export") as peak:
        with _progress_bar("Exporting employees", total) as callback, ProgressReporter(callback) as reporter:
            outcome = exporter.export(
                FileSink(path),
                page_size=page_size,
                total_expected=total,
                progress=reporter,
                cancel=cancel,
            )
    governor.log_usage("export")

    print_export_outcome(outcome, peak=peak, console=console)
    if isinstance(outcome, ExportResult) and outcome.cancelled:
        raise typer.Exit(code=130)


@app.command()
def count(
    gender: Optional[str] = typer.Option(None, "--gender", "-g", help="Male or Female."),
    starts_with: Optional[str] = typer.Option(
        None, "--starts-with", help="Case-insensitive full name prefix (the surname comes first)."
    ),
) -> None:
    """
    Count employees, optionally filtered by gender and name prefix.
    """
    _configure()
    record_filter = RecordFilter(gender=_parse_gender(gender), name_starts_with=starts_with)
    total = PostgresRecordStore().count(record_filter)
    typer.echo(f"{total:,} employees match")


@app.command()
def query(
    gender: Optional[str] = typer.Option(
        Gender.MALE.value, "--gender", "-g", help="Male or Female (default: Male)."
    ),
    starts_with: Optional[str] = typer.Option(
        None, "--starts-with", help="Full name prefix (default: the special surname letter)."
    ),
    limit: int = typer.Option(100, "--limit", "-n", help="Maximum rows to show."),
) -> None:
    """
    List matching employees with the measured query time.

    Defaults to the special records: males whose surname starts with the
    special letter.
    """
    settings = get_settings()
    _configure()
    if limit <= 0:
        raise typer.BadParameter("Limit must be positive", param_hint="--limit")

    gender_value = _parse_gender(gender)
    prefix = settings.special_surname_letter if starts_with is None else starts_with
    record_filter = RecordFilter(gender=gender_value, name_starts_with=prefix or None)

    start = time.perf_counter()
    records = PostgresRecordStore().find(record_filter, limit=limit)
    elapsed_ms = (time.perf_counter() - start) * 1000

    parts = [gender_value.value if gender_value else "any gender"]
    if prefix:
        parts.append(f"name starting with '{prefix}'")
    print_query_results(records, elapsed_ms, ", ".join(parts), console=console)


@app.command()
def add(
    full_name: str = typer.Argument(..., help='Full name, surname first: "Ivanov Petr Sergeevich".'),
    birth_date: str = typer.Argument(..., help="Birth date as YYYY-MM-DD."),
    gender: str = typer.Argument(..., help="Male or Female."),
) -> None:
    """
    Validate and insert a single employee.
    """
    settings = get_settings()
    _configure()

    candidate = Record.model_construct(full_name=full_name, birth_date=birth_date, gender=gender.capitalize())
    inserter = BatchInserter(PostgresRecordStore(), settings=settings)
    try:
        saved = inserter.insert_one(candidate)
    except ValidationError as exc:
        typer.echo("; ".join(", ".join(f.reasons) for f in exc.failures), err=True)
        raise typer.Exit(code=1)

    if saved is None:
        typer.echo(f'Employee "{full_name.strip()}" born {birth_date} already exists', err=True)
        raise typer.Exit(code=1)
    typer.echo(
        f"Saved employee #{saved.id}: {saved.full_name} | {saved.birth_date.isoformat()} | "
        f"{saved.gender.value} | age {saved.age()}"
    )


@app.command()
def optimize() -> None:
    """
    Create the pagination and query optimization indexes.
    """
    settings = get_settings()
    _configure()
    results = PostgresRecordStore().create_optimization_indexes(settings.special_surname_letter)
    print_index_results(results, console=console)


@app.command()
def stats() -> None:
    """
    Show totals, gender split, birth date range and size of the employees table.
    """
    _configure()
    print_table_stats(PostgresRecordStore().table_stats(), console=console)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
    except PipelineError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
