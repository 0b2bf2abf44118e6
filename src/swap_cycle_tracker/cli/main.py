"""CLI for swap cycle tracker."""

import json
import logging
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.traceback import install

from swap_cycle_tracker.core import EngineConfig, TradeCycleEngine, WalletReport
from swap_cycle_tracker.core.models import Leg
from swap_cycle_tracker.data import load_engine_config, load_transactions
from swap_cycle_tracker.exceptions import SwapCycleTrackerError
from swap_cycle_tracker.pricing import CachedPriceOracle, JupiterPricing, PriceCache

# Install rich traceback handler
install(show_locals=False)

CONFIG_ENVVAR = "SWAP_CYCLE_TRACKER_CONFIG"

app = typer.Typer(
    name="swap-cycle-tracker",
    help="Turn a wallet's swaps into labeled trade legs and ownership cycles with realized P&L",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _setup_logging(debug: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_path: Path | None) -> EngineConfig:
    try:
        return load_engine_config(config_path)
    except SwapCycleTrackerError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e


def _build_engine(config: EngineConfig, offline: bool) -> tuple[TradeCycleEngine, JupiterPricing | None]:
    """
    Create the engine with a cached Jupiter oracle unless offline.

    Returns
    -------
    tuple[TradeCycleEngine, JupiterPricing | None]
        Engine and the pricing client to close afterwards

    """
    if offline:
        return TradeCycleEngine(config), None

    pricing = JupiterPricing(
        base_url=config.price_api_url,
        timeout=config.price_timeout,
        batch_size=config.price_batch_size,
    )
    oracle = CachedPriceOracle(pricing, PriceCache(default_ttl=config.price_cache_ttl))
    return TradeCycleEngine(config, price_oracle=oracle), pricing


@app.command()
def analyze(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON or YAML file of transactions"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Wallet address the transactions belong to"),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", envvar=CONFIG_ENVVAR, help="Engine configuration YAML"
    ),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    offline: bool = typer.Option(False, "--offline", help="Do not query the price API"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Compute trade cycles and realized P&L for a wallet.

    Examples:

        # Table output
        swap-cycle-tracker analyze swaps.json --wallet 7xKX...

        # JSON output without live prices
        swap-cycle-tracker analyze swaps.json --wallet 7xKX... --offline --format json
    """
    _setup_logging(debug)
    config = _load_config(config_path)
    engine, pricing = _build_engine(config, offline)

    try:
        report = engine.run(load_transactions(path), wallet)
    except SwapCycleTrackerError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    finally:
        if pricing is not None:
            pricing.close()

    if format == OutputFormat.JSON:
        _output_json(report.model_dump(mode="json"))
    else:
        _output_report(report)


@app.command()
def legs(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON or YAML file of transactions"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Wallet address the transactions belong to"),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", envvar=CONFIG_ENVVAR, help="Engine configuration YAML"
    ),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    offline: bool = typer.Option(False, "--offline", help="Do not query the price API"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """List the labeled trade legs of a wallet, most recent first."""
    _setup_logging(debug)
    config = _load_config(config_path)
    engine, pricing = _build_engine(config, offline)

    try:
        leg_list = engine.build_legs(load_transactions(path), wallet)
    except SwapCycleTrackerError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    finally:
        if pricing is not None:
            pricing.close()

    if format == OutputFormat.JSON:
        _output_json([leg.model_dump(mode="json") for leg in leg_list])
    else:
        _output_legs(leg_list)


@app.command()
def list_bases(
    config_path: Path | None = typer.Option(
        None, "--config", "-c", envvar=CONFIG_ENVVAR, help="Engine configuration YAML"
    ),
) -> None:
    """List configured base currencies and DEX venues."""
    config = _load_config(config_path)

    table = Table(title="Base Currencies", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan")
    table.add_column("Mint", style="green")
    table.add_column("Role", style="yellow")

    table.add_row(config.settlement_asset.symbol, config.settlement_asset.mint or "-", "settlement")
    for asset in config.stablecoins:
        table.add_row(asset.symbol, asset.mint or "-", "stablecoin")

    console.print(table)

    venues = Table(title="DEX Venues", show_header=True, header_style="bold magenta")
    venues.add_column("Venue", style="cyan")
    venues.add_column("Program", style="green")
    for program_id, venue in config.dex_programs.items():
        venues.add_row(venue, program_id)

    console.print(venues)


def _output_report(report: WalletReport) -> None:
    """Output wallet report as rich tables."""
    if not report.cycles:
        console.print("\n[yellow]No swaps found[/yellow]")
        return

    table = Table(
        title=f"Trade cycles for {report.wallet[:8]}...{report.wallet[-6:]}",
        show_header=True,
        header_style="bold magenta",
    )

    table.add_column("#", style="dim", justify="right")
    table.add_column("Token", style="cyan")
    table.add_column("Status", style="yellow")
    table.add_column("Bought", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Sold", justify="right")
    table.add_column("Proceeds", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("Realized P&L", style="bold", justify="right")

    for ranked in report.cycles:
        cycle = ranked.cycle
        pnl_style = "green" if cycle.realized_pnl >= 0 else "red"
        status = "closed" if cycle.complete else "open"
        if cycle.unknown_value_legs:
            status += f" ({cycle.unknown_value_legs} unpriced)"

        table.add_row(
            str(ranked.global_sequence_number),
            f"{cycle.token_symbol} #{cycle.sequence_number}",
            status,
            f"{cycle.total_buy_amount:,.4f}",
            f"${cycle.total_buy_value_usd:,.2f}",
            f"{cycle.total_sell_amount:,.4f}",
            f"${cycle.total_sell_value_usd:,.2f}",
            f"{cycle.end_balance:,.4f}",
            f"[{pnl_style}]${cycle.realized_pnl:,.2f}[/{pnl_style}]",
        )

    console.print("\n")
    console.print(table)

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green")

    summary_table.add_row("Realized P&L:", f"${report.total_realized_pnl:,.2f}")
    summary_table.add_row("Trade legs:", str(len(report.legs)))
    summary_table.add_row("Tokens:", str(len(report.series)))

    summary_table.add_row("", "")
    summary_table.add_row("[bold]Open balances:[/bold]", "")
    for series in report.series:
        if series.running_balance != 0:
            summary_table.add_row(f"  {series.token_symbol}", f"{series.running_balance:,.4f}")

    console.print("\n")
    console.print(summary_table)

    if report.anomalies:
        console.print("\n[bold yellow]Anomalies:[/bold yellow]")
        for anomaly in report.anomalies:
            console.print(f"  [yellow]{anomaly.kind.value}[/yellow] {anomaly.signature[:12]}... {anomaly.detail}")

    console.print("\n")


def _output_legs(leg_list: list[Leg]) -> None:
    """Output legs as rich table."""
    if not leg_list:
        console.print("\n[yellow]No swaps found[/yellow]")
        return

    table = Table(title="Trade legs", show_header=True, header_style="bold magenta")
    table.add_column("Signature", style="dim")
    table.add_column("Time", justify="right")
    table.add_column("Type", style="yellow")
    table.add_column("Token", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("USD Value", style="bold green", justify="right")
    table.add_column("Venue", style="blue")

    for leg in leg_list:
        usd_str = f"${leg.usd_value:,.2f}" if leg.usd_value_known else "unknown"
        table.add_row(
            f"{leg.signature[:12]}...",
            str(leg.timestamp),
            leg.transaction_type.value if leg.transaction_type else leg.direction.value,
            leg.token_symbol,
            f"{leg.amount:,.4f}",
            usd_str,
            leg.venue or "-",
        )

    console.print("\n")
    console.print(table)
    console.print("\n")


def _output_json(data: object) -> None:
    """Output data as JSON."""
    console.print_json(json.dumps(data))


if __name__ == "__main__":
    app()
