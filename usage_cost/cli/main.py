"""
CLI interface for Usage Cost.

Provides command-line access to the usage cost report.
"""

import logging
import sys
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from usage_cost.config.loader import Settings, load_price_table, load_settings, load_user_map
from usage_cost.core.aggregation import aggregate
from usage_cost.core.pricing import DEFAULT_PRICE_TABLE, PriceTable, UnknownPricingKey
from usage_cost.log import configure_logging
from usage_cost.reporting import build_summary_table, render_report, write_report
from usage_cost.storage.usage_export import UsageExportError, read_usage_export

app = typer.Typer()
console = Console(stderr=True)
logger = logging.getLogger(__name__)

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {escape(message)}")
    sys.exit(EXIT_CODE_FAIL)


def _resolve_price_table(prices: Optional[str], settings: Settings) -> PriceTable:
    """Use the given price file, then USAGE_COST_PRICES, then the built-in table."""
    path = prices or settings.prices_path
    if path is None:
        return DEFAULT_PRICE_TABLE
    logger.info("Loading price table from %s", path)
    return load_price_table(path)


def _setup(log_level: Optional[str]) -> Settings:
    settings = load_settings()
    if log_level is not None:
        settings = Settings(log_level=log_level.upper(), prices_path=settings.prices_path)
    configure_logging(settings.log_level)
    return settings


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Usage Cost CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Usage Cost - Use --help to see available commands")


@app.command()
def cost(
    usage_file: str = typer.Argument(
        ...,
        help="The path to the usage CSV file, as exported from the OpenAI usage page."
    ),
    user_map: Optional[str] = typer.Option(
        None,
        "--user-map",
        "-u",
        help="The path to the user map JSON file, which maps user IDs to names."
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="The path to the output JSON file. Prints to stdout when omitted."
    ),
    prices: Optional[str] = typer.Option(
        None,
        "--prices",
        "-p",
        help="The path to a YAML price table. Defaults to the built-in table."
    ),
    summary: bool = typer.Option(
        False,
        "--summary",
        "-s",
        help="Also print a per-user cost table."
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (overrides USAGE_COST_LOG_LEVEL)."
    ),
):
    """
    Calculate the cost of each user in an organization.

    Fails without writing anything if a record uses a model or usage
    type that the price table doesn't cover.
    """
    try:
        settings = _setup(log_level)
        price_table = _resolve_price_table(prices, settings)
        name_map = load_user_map(user_map) if user_map else None
        records = read_usage_export(usage_file)
        usages = aggregate(records, name_map, price_table)
    except UnknownPricingKey as e:
        logger.error("Missing %s in price table: %s", e.missing_key.value, e)
        _fail(f"{e}. Add it to the price table or fix the usage export.")
    except (UsageExportError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(str(e))

    if output:
        try:
            write_report(usages, output)
        except OSError as e:
            _fail(f"Cannot write report to {output}: {e.strerror or e}")
        console.print(f"[green]✓[/] Wrote usage for {len(usages)} users to {escape(output)}")
    else:
        typer.echo(render_report(usages))

    if summary:
        console.print(build_summary_table(usages))

    sys.exit(EXIT_CODE_PASS)


@app.command("prices")
def show_prices(
    prices: Optional[str] = typer.Option(
        None,
        "--prices",
        "-p",
        help="The path to a YAML price table. Defaults to the built-in table."
    ),
):
    """List the effective price table."""
    try:
        price_table = _resolve_price_table(prices, load_settings())
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(str(e))

    table = Table(title="Price Table")
    table.add_column("Model")
    table.add_column("Usage type")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")

    for model in price_table.models:
        for usage_type, pricing in sorted(price_table.prices[model].items()):
            table.add_row(
                model,
                usage_type,
                f"${pricing.input.cost_per_batch:g} / {pricing.input.tokens_per_batch:,}",
                f"${pricing.output.cost_per_batch:g} / {pricing.output.tokens_per_batch:,}",
            )

    Console().print(table)


if __name__ == "__main__":
    app()
