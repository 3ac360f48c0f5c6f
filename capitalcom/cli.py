"""capitalcom command line: one login, one command, one logout per run.

The API key and environment come from CAPITALCOM_* variables (or
``.env.capitalcom``); login credentials from CAPITALCOM_IDENTIFIER and
CAPITALCOM_PASSWORD.
"""
from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import functools
import logging
import os
import pathlib
import sys
from collections.abc import Iterator
from typing import Any, Final

import click
import pandas as pd
import prettyprinter as pp  # type: ignore
from loguru import logger

from capitalcom.client import Client
from capitalcom.engine.analysis import summarizeCloses
from capitalcom.engine.config import Configuration, credentialsFromEnv
from capitalcom.engine.errors import CapitalComError, ErrorKind
from capitalcom.engine.models import OHLCBar, Quote
from capitalcom.helpers import mask

pp.install_extras(["dataclasses"], warn_on_error=False)

HINTS: Final = {
    ErrorKind.AUTHENTICATION: "Check your API key and login credentials.",
    ErrorKind.RATE_LIMIT: "Too many requests. Wait a moment before retrying.",
    ErrorKind.VALIDATION: "Check the parameters sent with the request.",
}


def setupLogging(level: str = "INFO") -> None:
    """Console logging at 'level'; full TRACE logs on disk if CAPITALCOM_LOGDIR is set."""
    logger.remove()
    logger.add(sys.stderr, colorize=True, level=level)

    if not (logdir := os.getenv("CAPITALCOM_LOGDIR")):
        return

    now = pd.Timestamp("now")
    LOGDIR = pathlib.Path(logdir) / f"{now.year}" / f"{now.month:02}"
    LOGDIR.mkdir(exist_ok=True, parents=True)
    LOG_FILE_TEMPLATE = str(LOGDIR / f"capitalcom-{now:%Y%m%d-%H%M%S}")

    # httpx and websockets log through stdlib logging
    logging.basicConfig(
        level=logging.INFO,
        filename=LOG_FILE_TEMPLATE + "-http.log",
        format="%(asctime)s %(message)s",
    )

    logger.add(sink=LOG_FILE_TEMPLATE + "-capitalcom.log", level="TRACE", colorize=False)
    logger.info("Logging session with prefix: {}", LOG_FILE_TEMPLATE)


def reportError(e: CapitalComError) -> None:
    click.secho(f"Error: {e.fullMessage()}", fg="red", err=True)

    if hint := HINTS.get(e.kind):
        click.echo(hint, err=True)


def handled(fn):
    """Report client errors as one readable message and exit with status 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except CapitalComError as e:
            reportError(e)
            sys.exit(1)
        except ValueError as e:
            # configuration problems (missing key or credentials)
            raise click.ClickException(str(e)) from e

    return wrapper


@contextlib.contextmanager
def loggedIn(ctx: click.Context) -> Iterator[Client]:
    config = Configuration.fromEnv()
    if ctx.obj["demo"] is not None:
        config = dataclasses.replace(config, demo=ctx.obj["demo"])

    identifier, password = credentialsFromEnv()

    with Client(config) as client:
        client.login(identifier, password)
        yield client


def show(data: Any) -> None:
    pp.cpprint(data)


def table(rows: list[dict[str, Any]], columns: list[str] | None = None) -> None:
    if not rows:
        click.echo("(none)")
        return

    df = pd.DataFrame(rows)
    if columns:
        df = df[[c for c in columns if c in df.columns]]

    click.echo(df.to_string(index=False))


@click.group()
@click.option(
    "--demo/--live",
    default=None,
    help="Override CAPITALCOM_DEMO for this run.",
)
@click.option(
    "--loglevel",
    default="WARNING",
    show_default=True,
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
@click.pass_context
def cli(ctx: click.Context, demo: bool | None, loglevel: str) -> None:
    """Capital.com trading API client."""
    setupLogging(loglevel.upper())
    ctx.obj = dict(demo=demo)


@cli.command()
@click.pass_context
@handled
def session(ctx):
    """Log in and show session details."""
    with loggedIn(ctx) as client:
        details = client.getSession()
        click.echo(f"Environment:    {client.environment}")
        click.echo(f"Account:        {client.session.accountId}")
        click.echo(f"CST:            {mask(client.cstToken)}")
        click.echo(f"Security token: {mask(client.securityToken)}")
        click.echo(f"Expires in:     {client.session.expiresIn():.0f}s")
        show(details)


@cli.command()
@click.pass_context
@handled
def time(ctx):
    """Show server time (no login needed)."""
    config = Configuration.fromEnv()
    if ctx.obj["demo"] is not None:
        config = dataclasses.replace(config, demo=ctx.obj["demo"])

    with Client(config) as client:
        show(client.market.getTime())


@cli.command()
@click.argument("term")
@click.pass_context
@handled
def search(ctx, term):
    """Search markets by name."""
    with loggedIn(ctx) as client:
        markets = client.market.markets(term)
        table(
            [m.toDict() for m in markets],
            ["epic", "instrumentName", "marketStatus", "bid", "offer", "percentageChange"],
        )


@cli.command()
@click.argument("epic")
@click.pass_context
@handled
def market(ctx, epic):
    """Show one market snapshot."""
    with loggedIn(ctx) as client:
        m = client.market.market(epic)
        show(m)
        click.echo(f"Spread: {m.spread:,.5f}  Mid: {m.midPrice:,.5f}")


@cli.command()
@click.argument("epic")
@click.option("--resolution", default="DAY", show_default=True)
@click.option("--max", "maxBars", default=10, show_default=True, type=int)
@click.pass_context
@handled
def prices(ctx, epic, resolution, maxBars):
    """Show historical bars."""
    with loggedIn(ctx) as client:
        df = client.market.pricesFrame(epic, resolution, maxBars)
        click.echo(df.to_string() if not df.empty else "(none)")


@cli.command()
@click.argument("epic")
@click.option("--resolution", default="HOUR", show_default=True)
@click.option("--max", "maxBars", default=100, show_default=True, type=int)
@click.pass_context
@handled
def analyze(ctx, epic, resolution, maxBars):
    """Summarize recent closes and their trend."""
    with loggedIn(ctx) as client:
        bars = client.market.prices(epic, resolution, maxBars)
        if not bars:
            click.echo(f"No price data for {epic}")
            return

        summary = summarizeCloses([bar.closeBid for bar in bars])
        click.echo(f"{epic} over {len(bars)} {resolution} bars")
        for name, value in dataclasses.asdict(summary).items():
            click.echo(f"  {name:>8}: {value:,.5f}" if isinstance(value, float) else f"  {name:>8}: {value}")


@cli.command()
@click.pass_context
@handled
def accounts(ctx):
    """List accounts."""
    with loggedIn(ctx) as client:
        found = client.account.getAccounts().get("accounts") or []
        table(found, ["accountId", "accountName", "accountType", "currency", "preferred"])


@cli.command()
@click.pass_context
@handled
def positions(ctx):
    """List open positions."""
    with loggedIn(ctx) as client:
        found = client.trading.positions()
        table(
            [p.toDict() for p in found],
            ["dealId", "epic", "direction", "size", "level", "stopLevel", "limitLevel", "profit"],
        )


@cli.command()
@click.pass_context
@handled
def orders(ctx):
    """List working orders."""
    with loggedIn(ctx) as client:
        found = client.trading.workingOrders()
        table(
            [o.toDict() for o in found],
            ["dealId", "epic", "direction", "type", "size", "level", "timeInForce"],
        )


@cli.command()
@click.pass_context
@handled
def watchlists(ctx):
    """List watchlists."""
    with loggedIn(ctx) as client:
        found = client.watchlist.getWatchlists().get("watchlists") or []
        table(found, ["id", "name", "editable", "deleteable"])


@cli.command()
@click.option("--period", default="86400", show_default=True, help="Lookback (seconds).")
@click.pass_context
@handled
def history(ctx, period):
    """Show recent account activity."""
    with loggedIn(ctx) as client:
        found = client.trading.getActivityHistory(lastPeriod=period).get("activities") or []
        table(found, ["date", "epic", "dealId", "type", "status", "source"])


@cli.command()
@click.argument("dealref")
@click.pass_context
@handled
def confirm(ctx, dealref):
    """Resolve a deal reference into its confirmation."""
    with loggedIn(ctx) as client:
        show(client.trading.confirmation(dealref))


@cli.command(name="open")
@click.argument("epic")
@click.argument("direction", type=click.Choice(["BUY", "SELL"], case_sensitive=False))
@click.argument("size", type=float)
@click.option("--stop", "stopLevel", type=float, default=None)
@click.option("--limit", "limitLevel", type=float, default=None)
@click.pass_context
@handled
def openPosition(ctx, epic, direction, size, stopLevel, limitLevel):
    """Open a market position."""
    with loggedIn(ctx) as client:
        placed = client.trading.openPosition(
            epic, direction, size, stopLevel=stopLevel, limitLevel=limitLevel
        )

        dealReference = placed.get("dealReference")
        click.echo(f"Deal reference: {dealReference}")

        if dealReference:
            confirmed = client.trading.confirmation(dealReference)
            click.echo(f"Status: {confirmed.dealStatus} {confirmed.reason}".rstrip())
            show(confirmed)


@cli.command(name="close")
@click.argument("dealid")
@click.argument("direction", type=click.Choice(["BUY", "SELL"], case_sensitive=False))
@click.option("--size", type=float, default=None, help="Partial close size.")
@click.pass_context
@handled
def closePosition(ctx, dealid, direction, size):
    """Close a position; DIRECTION is the closing side."""
    with loggedIn(ctx) as client:
        show(client.trading.closePosition(dealid, direction, size))


@cli.command()
@click.argument("epics", nargs=-1, required=True)
@click.option("--seconds", default=60, show_default=True, type=float)
@click.option("--ohlc", "resolution", default=None, help="Also stream candles, e.g. MINUTE.")
@click.pass_context
@handled
def stream(ctx, epics, seconds, resolution):
    """Stream live quotes for one or more epics."""

    def onQuote(q: Quote) -> None:
        click.echo(
            f"{q.when} {q.epic:<12} bid {q.bid:<12} ofr {q.ofr:<12} spread {q.spread:.5f}"
        )

    def onBar(b: OHLCBar) -> None:
        click.echo(
            f"{b.when} {b.epic:<12} {b.resolution} O {b.o} H {b.h} L {b.l} C {b.c}"
        )

    with loggedIn(ctx) as client:
        qs = client.stream(onQuote=onQuote, onBar=onBar)

        async def go():
            await qs.subscribeMarketData(epics)
            if resolution:
                await qs.subscribeOHLC(epics, [resolution.upper()])

            await qs.run(duration=seconds)

        asyncio.run(go())


if __name__ == "__main__":
    cli()
