#!/usr/bin/env python3
"""
Command line entry point for the Ride Duel backend.

Builds reports from the terminal, shows slot status, assigns player slots
and runs the HTTP server.
"""

import asyncio
import json
import sys
from datetime import datetime

import click
from dotenv import load_dotenv

from .api.models import DuelReport
from .utils.config import Config, LoggingConfig, LOG_LEVELS
from .utils.logging_config import setup_logging, get_logger
from .utils.error_handling import RideDuelError
from .utils.security import SecurityValidator, mask_secret
from .database.credential_store import CredentialStore
from .report_builder import DuelReportBuilder
from .web_server import RideDuelServer


@click.group()
@click.option('--log-level', default=None,
              type=click.Choice(LOG_LEVELS),
              help='Set logging level (defaults to LOG_LEVEL or INFO)')
@click.pass_context
def cli(ctx, log_level):
    """Ride Duel - yearly cycling distance duel between two Strava athletes"""
    load_dotenv()
    logger = get_logger(__name__)

    try:
        setup_logging(LoggingConfig.from_env(level=log_level))
        config = Config.from_env()
        logger.info("Configuration loaded and validated successfully")
    except RideDuelError as e:
        logger.error(f"Initialization failed: {e}")
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['store'] = CredentialStore(config.database)


@cli.command()
@click.option('--year', type=int, default=lambda: datetime.now().year, help='Year to report on')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw report payload')
@click.pass_context
def report(ctx, year, as_json):
    """Build the duel report for a year"""
    builder = DuelReportBuilder(ctx.obj['config'].strava, ctx.obj['store'])

    try:
        result = asyncio.run(builder.build(year))
    except Exception as e:
        get_logger(__name__).error(f"Report command failed: {e}")
        click.echo(f"❌ Report failed: {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not isinstance(result, DuelReport):
        click.echo(f"⏳ Waiting for players: {result.connected_count}/2 connected")
        return

    click.echo(f"🚴 Ride Duel {result.year}")
    click.echo("=" * 40)
    leader = max(result.players, key=lambda player: player.total_km)
    for player in result.players:
        marker = "🏆" if player is leader and player.total_km > 0 else "  "
        click.echo(f"{marker} {player.name or player.athlete_id}: {player.total_km:.2f} km "
                   f"({len(player.activities)} rides)")
        for month in player.monthly:
            click.echo(f"     {month.month}: {month.total_km:.2f} km")


@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration and player slots"""
    config = ctx.obj['config']
    store = ctx.obj['store']

    click.echo("🚀 Ride Duel Status")
    click.echo("=" * 40)
    click.echo(f"  Strava client: {mask_secret(config.strava.client_id)}")
    click.echo(f"  Database: {config.database.host}:{config.database.port}/{config.database.database}")

    if not store.test_connection():
        click.echo("  Database Connection: ❌ Failed")
        sys.exit(1)
    click.echo("  Database Connection: ✅ Connected")

    try:
        players = store.get_slot_statuses()
    except RideDuelError as e:
        click.echo(f"  Players: ❌ Error - {e}")
        sys.exit(1)

    click.echo(f"  Players connected: {len(players)}/2")
    for player in players:
        click.echo(f"    • Slot {player.slot}: {player.name}")


@cli.command('claim-slot')
@click.argument('athlete_id')
@click.pass_context
def claim_slot(ctx, athlete_id):
    """Assign a stored athlete to the first open player slot"""
    athlete_id = SecurityValidator.sanitize_string(athlete_id, max_length=32)
    if not SecurityValidator.validate_athlete_id(athlete_id):
        click.echo(f"❌ Invalid athlete ID: {athlete_id}")
        sys.exit(1)

    store = ctx.obj['store']
    try:
        if store.get(athlete_id) is None:
            click.echo(f"❌ Athlete {athlete_id} has not authorized the app yet")
            sys.exit(1)

        slot = store.claim_slot(athlete_id)
    except RideDuelError as e:
        click.echo(f"❌ Slot assignment failed: {e}")
        sys.exit(1)

    if slot is None:
        click.echo("❌ Both player slots are already taken")
        sys.exit(1)
    click.echo(f"✅ Athlete {athlete_id} is player {slot}")


@cli.command()
@click.option('--host', default='0.0.0.0', help='Host to bind to')
@click.option('--port', type=int, default=5000, help='Port to bind to')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def serve(ctx, host, port, debug):
    """Run the HTTP API"""
    server = RideDuelServer(ctx.obj['config'], store=ctx.obj['store'])
    server.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    cli()
