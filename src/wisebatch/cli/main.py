import asyncio
import json
import logging
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Annotated

import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from wisebatch.api import passivetotal_lookup
from wisebatch.cli.callbacks import keys_callback, policy_callback
from wisebatch.cli.completions import complete_policy
from wisebatch.codec import LookupResult
from wisebatch.core import LookupFacade
from wisebatch.exceptions import MissingCredentialsError, describe_error
from wisebatch.logging import setup_logging
from wisebatch.transport import search_url

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Log batching activity to stderr"),
    ] = False,
):
    """Coalesce PassiveTotal tag lookups into bulk enrichment queries"""
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING)


async def _run_lookups(
    facade: LookupFacade, keys: list[str]
) -> dict[str, LookupResult | BaseException]:
    async with facade:
        return await facade.lookup_many(keys)


def print_outcomes(outcomes: dict[str, LookupResult | BaseException]):
    table = Table("Key", "Tags", title="PassiveTotal")
    for key, outcome in outcomes.items():
        if isinstance(outcome, BaseException):
            table.add_row(escape(key), f"[red]{escape(describe_error(error=outcome))}[/red]")
        elif outcome.is_empty:
            table.add_row(escape(key), "[dim]no tags[/dim]")
        else:
            tags = ", ".join(escape(tag) for tag in outcome.tags)
            table.add_row(escape(key), f"[green]{tags}[/green]")
    console = Console()
    console.print(table)


def dump_outcomes(outcomes: dict[str, LookupResult | BaseException]) -> str:
    payload = {
        key: (
            {"error": describe_error(error=outcome)}
            if isinstance(outcome, BaseException)
            else {"tags": outcome.tags}
        )
        for key, outcome in outcomes.items()
    }
    return json.dumps(payload, indent=2)


@app.command(name="lookup")
def lookup_keys(
    keys: Annotated[
        list[str],
        typer.Argument(help="IP addresses or domains to enrich", callback=keys_callback),
    ],
    dry_run: Annotated[
        bool,
        typer.Option(help="Resolve every key as empty without contacting the API"),
    ] = False,
    batch_size: Annotated[
        int | None,
        typer.Option("-b", "--batch-size", min=1, help="Flush once this many keys are pending"),
    ] = None,
    interval: Annotated[
        float | None,
        typer.Option("-i", "--interval", min=0.001, help="Flush tick period in seconds"),
    ] = None,
    on_transport_error: Annotated[
        str | None,
        typer.Option(
            help="How a failed bulk query is reported: error or empty",
            callback=policy_callback,
            autocompletion=complete_policy,
        ),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print results as JSON")] = False,
):
    """Look up PassiveTotal tags for one or more keys"""
    overrides = {
        name: value
        for name, value in {
            "batch_size": batch_size,
            "flush_interval_seconds": interval,
            "transport_error_policy": on_transport_error,
        }.items()
        if value is not None
    }
    try:
        facade = passivetotal_lookup(dry_run=dry_run, **overrides)
    except MissingCredentialsError as error:
        print(f"[red]{error}[/red]")
        raise typer.Exit(2)

    if as_json:
        outcomes = asyncio.run(_run_lookups(facade=facade, keys=keys))
        typer.echo(dump_outcomes(outcomes=outcomes))
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description=f"Looking up {len(keys)} key(s)...", total=None)
            outcomes = asyncio.run(_run_lookups(facade=facade, keys=keys))
        print_outcomes(outcomes=outcomes)

    if any(isinstance(outcome, BaseException) for outcome in outcomes.values()):
        raise typer.Exit(1)


@app.command(name="search-url")
def show_search_url(
    keys: Annotated[
        list[str],
        typer.Argument(help="IP addresses or domains", callback=keys_callback),
    ],
):
    """Print the PassiveTotal community search link of each key"""
    for key in keys:
        typer.echo(search_url(key))


@app.command()
def version():
    """Get the version of the package"""
    try:
        typer.echo(package_version("wisebatch"))
    except PackageNotFoundError:
        typer.echo("unknown")
    raise typer.Exit()
