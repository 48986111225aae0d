"""CLI for the holder ledger."""

import csv
import json
import logging
from contextlib import ExitStack
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install

from holder_ledger.core.context import ExtractionContext
from holder_ledger.core.emitter import format_amount
from holder_ledger.core.errors import HolderLedgerError
from holder_ledger.core.models import AuthorityTag, OutputRecord, ReconciliationResult, SourceTag
from holder_ledger.core.pipeline import SnapshotRun
from holder_ledger.core.registry import SourceRegistry
from holder_ledger.data import AddressRegistry, load_registry
from holder_ledger.metadata import MetadataClient
from holder_ledger.snapshot import SnapshotStore

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="holder-ledger",
    help="Reconstruct per-owner holdings of a token from a Solana ledger snapshot",
    add_completion=False,
)

console = Console(stderr=True)
logger = logging.getLogger("holder_ledger")


class AuthorityKind(StrEnum):
    """Authority sub-extraction options."""

    VEMNDE = "vemnde"
    NATIVE_STAKE = "native_stake"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )


def _load_registry(path: Path | None) -> AddressRegistry:
    try:
        return load_registry(path)
    except HolderLedgerError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e


def _resolve_slot(snapshot: SnapshotStore, slot: int | None) -> int | None:
    if slot is not None:
        return slot
    recorded = snapshot.snapshot_slot()
    if recorded is not None:
        logger.info("Using slot %d recorded in the snapshot", recorded)
    return recorded


@app.command()
def parse(
    sqlite: Path = typer.Argument(..., exists=True, dir_okay=False, help="SQLite snapshot file"),
    slot: int | None = typer.Option(None, "--slot", "-s", help="Snapshot slot (defaults to the one recorded)"),
    timestamp: int | None = typer.Option(None, "--timestamp", help="Unix time of the slot (skips the RPC lookup)"),
    csv_output: Path | None = typer.Option(None, "--csv-output", "-o", help="Write records to a CSV file"),
    json_lines: bool = typer.Option(False, "--json", help="Print records as JSON lines on stdout"),
    strict: bool = typer.Option(False, "--strict", help="Fail on reconciliation mismatch"),
    source: list[SourceTag] | None = typer.Option(None, "--source", help="Only run these sources"),
    registry_file: Path | None = typer.Option(None, "--registry", help="Address registry YAML"),
    rpc_url: str | None = typer.Option(None, "--rpc-url", envvar="SOLANA_RPC_URL", help="Solana JSON-RPC endpoint"),
    offline: bool = typer.Option(False, "--offline", help="Never call live metadata; sources needing it fail"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
) -> None:
    """
    Parse a snapshot into per-owner, per-source holding records.

    Examples:

        # Summary table only
        holder-ledger parse snapshot.sqlite --slot 250000000

        # Records to CSV
        holder-ledger parse snapshot.sqlite --slot 250000000 --csv-output holders.csv
    """
    _configure_logging(debug)
    registry = _load_registry(registry_file)

    with ExitStack() as stack:
        snapshot = stack.enter_context(SnapshotStore(sqlite))
        metadata = None
        if not offline:
            metadata = stack.enter_context(MetadataClient(rpc_url=rpc_url, endpoints=registry.endpoints))
        context = ExtractionContext(
            registry=registry,
            snapshot=snapshot,
            metadata=metadata,
            slot=_resolve_slot(snapshot, slot),
            timestamp=timestamp,
        )
        run = SnapshotRun(context, strict=strict, sources=source or None)
        try:
            result = run.run()
            records = list(run.records())
        except HolderLedgerError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1) from e

    if csv_output:
        _write_csv(csv_output, records)
        console.print(f"[green]Wrote {len(records)} records to {csv_output}[/green]")
    if json_lines:
        for record in records:
            typer.echo(record.model_dump_json())
    _output_summary(run, result)


@app.command()
def authorities(
    sqlite: Path = typer.Argument(..., exists=True, dir_okay=False, help="SQLite snapshot file"),
    kind: AuthorityKind = typer.Option(..., "--kind", "-k", help="Authority sub-extraction"),
    registry_file: Path | None = typer.Option(None, "--registry", help="Address registry YAML"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
) -> None:
    """Print veMNDE or native stake amounts per authority as JSON lines."""
    _configure_logging(debug)
    registry = _load_registry(registry_file)
    tag = AuthorityTag.VEMNDE if kind == AuthorityKind.VEMNDE else AuthorityTag.NATIVE_STAKE

    with SnapshotStore(sqlite) as snapshot:
        run = SnapshotRun(ExtractionContext(registry=registry, snapshot=snapshot))
        for record in run.authority_records(tag):
            typer.echo(record.model_dump_json())


@app.command()
def filters(
    json_output: Path | None = typer.Option(None, "--json-output", "-o", help="Write the descriptor to a file"),
    registry_file: Path | None = typer.Option(None, "--registry", help="Address registry YAML"),
    rpc_url: str | None = typer.Option(None, "--rpc-url", envvar="SOLANA_RPC_URL", help="Solana JSON-RPC endpoint"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
) -> None:
    """Build the filter descriptor the collector uses for the next snapshot."""
    _configure_logging(debug)
    registry = _load_registry(registry_file)

    with MetadataClient(rpc_url=rpc_url, endpoints=registry.endpoints) as metadata:
        try:
            descriptor = SnapshotRun(ExtractionContext(registry=registry, metadata=metadata)).filters()
        except HolderLedgerError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1) from e

    payload = json.dumps(descriptor.to_collector_json(), indent=2)
    if json_output:
        json_output.write_text(payload + "\n", encoding="utf-8")
        console.print(f"[green]Wrote filters to {json_output}[/green]")
    else:
        typer.echo(payload)


@app.command()
def list_sources() -> None:
    """List all registered sources in enumeration order."""
    table = Table(title="Registered Sources", show_header=True, header_style="bold magenta")
    table.add_column("Order", style="dim", justify="right")
    table.add_column("Source", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Proportional", style="yellow")

    for extractor_class in SourceRegistry.get_all_extractors():
        table.add_row(
            str(extractor_class.order),
            str(extractor_class.tag),
            str(extractor_class.kind),
            "yes" if extractor_class.proportional else "",
        )

    Console().print(table)


def _write_csv(path: Path, records: list[OutputRecord]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["owner", "amount", "source", "is_vault"])
        for record in records:
            writer.writerow([record.owner, record.amount, record.source, str(record.is_vault).lower()])


def _output_summary(run: SnapshotRun, result: ReconciliationResult) -> None:
    """Display per-source totals and the reconciliation as rich tables."""
    decimals = run.context.registry.reference_asset.decimals
    symbol = run.context.registry.reference_asset.symbol

    table = Table(title=f"{symbol} holdings by source", show_header=True, header_style="bold magenta")
    table.add_column("Source", style="cyan")
    table.add_column("Owners", justify="right")
    table.add_column(symbol, style="bold green", justify="right")
    for tag in run.ledger.sources:
        owners = sum(1 for contribution in run.ledger.contributions() if contribution.source == tag)
        table.add_row(str(tag), str(owners), format_amount(run.ledger.source_total(tag), decimals))
    console.print(table)

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green", justify="right")
    summary_table.add_row("Parsed", format_amount(result.total_parsed, decimals))
    summary_table.add_row("Vaults", format_amount(result.total_vault, decimals))
    summary_table.add_row("Supply", format_amount(result.total_supply, decimals))
    summary_table.add_row("Delta", ("-" if result.delta < 0 else "") + format_amount(abs(result.delta), decimals))
    summary_table.add_row("Owners", str(len(run.ledger)))
    if result.mismatch:
        summary_table.add_row("[bold red]Mismatch[/bold red]", f"[red]{result.mismatch}[/red]")
    console.print(summary_table)


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
