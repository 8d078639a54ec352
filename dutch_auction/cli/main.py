"""
Dutch Auction CLI - Command Line Interface for the auction engine

Main entry point for all CLI commands.
"""

import json
import click
from typing import Optional

from dutch_auction.utils.logger import setup_logging, get_logger

logger = get_logger("cli")

# Fixed origin for simulated timelines
SIMULATION_START = 1_700_000_000


def format_wad(value: int, places: int = 6) -> str:
    """Render a WAD value as a decimal string, truncated to `places`."""
    from dutch_auction.core.math import WAD

    whole, frac = divmod(value, WAD)
    return f"{whole}.{frac:018d}"[: len(str(whole)) + 1 + places]


def _load_config(ctx):
    from dutch_auction.core.config import load_config
    from dutch_auction.core.errors import InvalidConfiguration

    try:
        return load_config(
            config_path=ctx.obj["config_path"],
            env_file=ctx.obj["env_file"],
            **ctx.obj["overrides"],
        )
    except InvalidConfiguration as e:
        raise click.ClickException(f"Invalid configuration: {e}")


def _starting_unit_price(starting_price: int, lot: int, decimals: int) -> int:
    from dutch_auction.core.auction import initial_unit_price
    from dutch_auction.core.math import scaler_for, to_wad

    return initial_unit_price(starting_price, to_wad(lot * 10**decimals, scaler_for(decimals)))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=".env", help=".env file with DUTCH_AUCTION_* settings")
@click.option("--config", "config_path", default=None, help="JSON configuration file")
@click.option("--starting-price", type=int, default=None, help="Lot value in whole settlement tokens")
@click.option("--auction-length", type=int, default=None, help="Auction window in seconds")
@click.option("--auction-cooldown", type=int, default=None, help="Seconds between kicks")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, env_file, config_path, starting_price, auction_length, auction_cooldown):
    """Dutch auction settlement engine"""
    import logging

    level = logging.DEBUG if debug else logging.WARNING
    setup_logging(level=level)

    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "starting_price": starting_price,
        "auction_length": auction_length,
        "auction_cooldown": auction_cooldown,
    }


# =============================================================================
# Config Commands
# =============================================================================


@cli.group()
def config():
    """Configuration commands"""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@click.pass_context
def config_show(ctx, as_json):
    """Show the effective configuration"""
    cfg = _load_config(ctx)
    if as_json:
        click.echo(json.dumps(cfg.model_dump(), indent=2))
        return

    click.echo("Auction Configuration")
    click.echo("-" * 40)
    for name, value in cfg.model_dump().items():
        click.echo(f"  {name}: {value}")


# =============================================================================
# Curve Commands
# =============================================================================


@cli.command("curve")
@click.option("--lot", default=1000, type=int, help="Lot size in whole sell tokens")
@click.option("--decimals", default=18, type=int, help="Sell token decimals")
@click.option("--step", default=3600, type=int, help="Sampling step in seconds")
@click.pass_context
def curve(ctx, lot, decimals, step):
    """Print the unit price decay table"""
    from dutch_auction.core.auction import PriceDecayCurve
    from dutch_auction.core.errors import AuctionError

    cfg = _load_config(ctx)
    try:
        start = _starting_unit_price(cfg.starting_price, lot, decimals)
        points = PriceDecayCurve(cfg.auction_length).schedule(start, step=step)
    except (AuctionError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Lot: {lot} @ {cfg.starting_price} settlement tokens, window {cfg.auction_length}s")
    click.echo(f"{'elapsed':>10}  {'unit price':>24}  {'lot value':>24}")
    for elapsed, price in points:
        click.echo(f"{elapsed:>10}  {format_wad(price):>24}  {format_wad(price * lot):>24}")


@cli.command("price")
@click.option("--elapsed", required=True, type=int, help="Seconds since kick")
@click.option("--lot", default=1000, type=int, help="Lot size in whole sell tokens")
@click.option("--decimals", default=18, type=int, help="Sell token decimals")
@click.option("--amount", default=None, type=int, help="Raw amount to price")
@click.option("--want-decimals", default=18, type=int, help="Settlement token decimals")
@click.pass_context
def price(ctx, elapsed, lot, decimals, amount, want_decimals):
    """Evaluate the unit price at one point of the window"""
    from dutch_auction.core.auction import PriceDecayCurve
    from dutch_auction.core.errors import AuctionError
    from dutch_auction.core.math import from_wad, scaler_for, to_wad, wad_mul

    cfg = _load_config(ctx)
    try:
        start = _starting_unit_price(cfg.starting_price, lot, decimals)
        unit_price = PriceDecayCurve(cfg.auction_length).price(SIMULATION_START, start, SIMULATION_START + elapsed)
        click.echo(f"Unit price: {unit_price} ({format_wad(unit_price)})")
        if amount is not None:
            needed = from_wad(wad_mul(to_wad(amount, scaler_for(decimals)), unit_price), scaler_for(want_decimals))
            click.echo(f"Amount needed for {amount}: {needed}")
    except (AuctionError, ValueError) as e:
        raise click.ClickException(str(e))


# =============================================================================
# Simulation Command
# =============================================================================


@cli.command("simulate")
@click.option("--lot", default=1000, type=int, help="Lot size in whole sell tokens")
@click.option("--sell-decimals", default=18, type=int, help="Sell token decimals")
@click.option("--want-decimals", default=18, type=int, help="Settlement token decimals")
@click.option("--at", "at_", default=3600, type=int, help="Seconds after kick of every take")
@click.option("--take", "takes", multiple=True, type=int, help="Whole tokens per take (repeatable)")
@click.option("--empty-take-noop", is_flag=True, help="Sold-out takes return 0 instead of failing")
@click.pass_context
def simulate(ctx, lot, sell_decimals, want_decimals, at_, takes, empty_take_noop):
    """Run enable -> kick -> take on an in-memory ledger"""
    from dutch_auction.core.auction import AuctionRegistry
    from dutch_auction.core.errors import AuctionError
    from dutch_auction.core.state import TokenLedger
    from dutch_auction.crypto import address_from_label

    cfg = _load_config(ctx)
    if empty_take_noop:
        cfg = cfg.updated(empty_take_noop=True)
    takes = takes or (lot,)

    try:
        ledger = TokenLedger()
        want = ledger.create_token("WANT", want_decimals)
        sell = ledger.create_token("SELL", sell_decimals)
        receiver = address_from_label("receiver")
        taker = address_from_label("taker")

        registry = AuctionRegistry(want, receiver, cfg, ledger=ledger, clock=lambda: SIMULATION_START)
        registry.enable(sell)
        sell.mint(registry.address, lot * 10**sell_decimals)
        want.mint(taker, cfg.starting_price * 10**want_decimals)
        want.approve(taker, registry.address)

        available = registry.kick(sell)
    except AuctionError as e:
        raise click.ClickException(str(e))

    click.echo(f"Kicked {available} SELL at t0, start unit price {format_wad(registry.price(sell))}")
    now = SIMULATION_START + at_
    click.echo(f"t0+{at_}s unit price {format_wad(registry.price(sell, now=now))}")

    for whole in takes:
        try:
            taken = registry.take(sell, whole * 10**sell_decimals, caller=taker, now=now)
        except AuctionError as e:
            click.echo(f"  take({whole}) failed: {type(e).__name__}: {e}")
            continue
        event = registry.events.last()
        needed = event.amount_needed if taken else 0
        click.echo(f"  take({whole}) -> taken {taken}, paid {needed}, left {registry.available(sell, now=now)}")

    click.echo()
    click.echo("Final balances:")
    click.echo(f"  receiver WANT: {want.balance_of(receiver)}")
    click.echo(f"  taker SELL:    {sell.balance_of(taker)}")
    click.echo(f"  taker WANT:    {want.balance_of(taker)}")
    click.echo(f"  registry SELL: {sell.balance_of(registry.address)}")


# =============================================================================
# Stats Command
# =============================================================================


@cli.command("stats")
@click.argument("db_path", required=False)
@click.pass_context
def stats(ctx, db_path: Optional[str]):
    """Show statistics of a persisted registry"""
    from pathlib import Path
    from dutch_auction.core.storage import StorageManager

    if db_path is None:
        cfg = _load_config(ctx)
        click.echo("Auction Engine Statistics")
        click.echo("-" * 40)
        click.echo(f"  Window: {cfg.auction_length}s, cooldown: {cfg.auction_cooldown}s")
        click.echo(f"  Starting price: {cfg.starting_price}")
        return

    path = Path(db_path)
    if not path.exists():
        raise click.ClickException(f"No database at {path}")
    storage = StorageManager(path.parent, path.name)
    try:
        saved = storage.load_registry()
        if saved is None:
            raise click.ClickException(f"No registry saved in {path}")
        records = storage.load_records()
        click.echo(f"Registry {saved['address']}")
        click.echo(f"  Settlement token: {saved['want']}")
        click.echo(f"  Auctions: {len(records)}")
        for data in records:
            takes = storage.get_takes(data["auction_id"])
            click.echo(
                f"    {data['auction_id'][:10]}... from {data['from_token']['address'][:10]}... "
                f"kicked_at={data['kicked_at']} left={data['current_available']} takes={len(takes)}"
            )
    finally:
        storage.close()


if __name__ == "__main__":
    cli()
