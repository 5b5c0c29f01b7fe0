#!/usr/bin/env python3
"""
F1 Pick'em Management CLI

This script provides command-line management functionality for the F1 Pick'em application.
"""

import json
import logging
import os
import time
from functools import wraps

# The CLI runs jobs on demand; only `scheduler run` starts the background scheduler
os.environ.setdefault("SCHEDULER_ENABLED", "False")

import click  # noqa: E402
from sqlalchemy.exc import IntegrityError, SQLAlchemyError  # noqa: E402

from app import create_app, db  # noqa: E402
from app.models import Season  # noqa: E402
from app.services.reconciliation import run_reconciliation  # noqa: E402
from app.services.results_service import (  # noqa: E402
    get_leaderboard,
    recalculate_season_stats,
    submit_manual_results,
)
from app.utils.timezone_utils import parse_iso_datetime  # noqa: E402


def with_app(f):
    """Run the command inside the application context"""

    @wraps(f)
    @click.pass_context
    def wrapper(ctx, *args, **kwargs):
        app = ctx.find_root().obj
        with app.app_context():
            return f(*args, **kwargs)

    return wrapper


@click.group()
@click.pass_context
def cli(ctx):
    """F1 Pick'em Management CLI"""
    if ctx.obj is None:
        ctx.obj = create_app()


# Season Management Commands
@cli.group()
def season():
    """Season management commands"""
    pass


@season.command()
@click.argument("year", type=int)
@click.option("--name", help="Display name (default: '<year> F1 Season')")
@click.option("--activate", is_flag=True, help="Activate this season")
@with_app
def create(year, name, activate):
    """Create a new season"""
    if Season.get_by_year(year):
        click.echo(f"Season {year} already exists!")
        return

    try:
        new_season = Season.create_season(year, name)
        db.session.flush()
        if activate:
            new_season.activate()
        db.session.commit()
        click.echo(f"✅ Created season {year}")

        if activate:
            click.echo(f"✅ Activated season {year}")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Season {year} already exists!")
        logging.error(f"Season creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating season: {str(e)}")
        logging.error(f"Season creation failed - SQL error: {e}")


@season.command()
@click.argument("year", type=int)
@with_app
def activate(year):
    """Activate a season"""
    target = Season.get_by_year(year)
    if not target:
        click.echo(f"❌ Season {year} not found!")
        return

    try:
        target.activate()
        db.session.commit()
        click.echo(f"✅ Activated season {year}")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error activating season: {str(e)}")
        logging.error(f"Season activation failed - SQL error: {e}")


@season.command("list")
@with_app
def list_seasons():
    """List all seasons"""
    seasons = Season.query.order_by(Season.year.desc()).all()

    if not seasons:
        click.echo("No seasons found.")
        return

    click.echo("Seasons:")
    for s in seasons:
        status = "🟢 ACTIVE" if s.is_active else "⚪ Inactive"
        click.echo(f"  {s.year}: {status} - {s.races.count()} races")


# Race Commands
@cli.group()
def race():
    """Race commands"""
    pass


@race.command("list")
@with_app
def list_races():
    """List races of the active season with their status"""
    current = Season.get_current_season()
    if not current:
        click.echo("❌ No active season")
        return

    for r in current.get_races():
        flags = []
        if r.has_sprint:
            flags.append("sprint")
        if r.is_wild_card:
            flags.append("wild card")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"  R{r.round:02d} [{r.status}] {r.name}{suffix}")


# Data Sync Commands
@cli.group()
def sync():
    """Data synchronization commands"""
    pass


@sync.command()
@click.option("--now", "now_value", help="Reference instant (ISO-8601, default: now)")
@with_app
def results(now_value):
    """Run one race lifecycle and results reconciliation pass"""
    now = parse_iso_datetime(now_value) if now_value else None
    summary = run_reconciliation(now=now)

    click.echo(f"Races started: {summary.started}")
    click.echo(f"Races synced: {summary.synced or 'none'}")
    click.echo(f"Races failed: {summary.failed or 'none'}")


# Results Commands
@cli.group("results")
def results_group():
    """Manual results commands"""
    pass


@results_group.command("submit")
@click.argument("race_id", type=int)
@click.argument("results_file", type=click.File("r"))
@with_app
def submit_results(race_id, results_file):
    """Submit results for a race from a JSON file (admin override)"""
    try:
        payload = json.load(results_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}")

    entries = payload.get("results", []) if isinstance(payload, dict) else payload
    value, error = submit_manual_results(race_id, entries)
    if error:
        raise click.ClickException(str(error))

    click.echo(
        f"✅ Saved {len(value['results'])} results, race status {value['race_status']}"
    )


# Stats Commands
@cli.group()
def stats():
    """Stats commands"""
    pass


@stats.command()
@with_app
def recompute():
    """Rebuild all user season stats for the active season"""
    current = Season.get_current_season()
    if not current:
        click.echo("❌ No active season")
        return

    count = recalculate_season_stats(current.id)
    click.echo(f"✅ Recomputed stats for {count} users")


@cli.command()
@with_app
def leaderboard():
    """Show the active season leaderboard"""
    value, error = get_leaderboard()
    if error:
        raise click.ClickException(str(error))

    click.echo(f"{value['season']['name']}")
    for entry in value["standings"]:
        click.echo(
            f"  {entry['rank']:>3}. {entry['user_name']:<24} "
            f"{entry['total_points']:>4} pts  ({entry['races_completed']} races)"
        )


# Scheduler Commands
@cli.group()
def scheduler():
    """Background scheduler commands"""
    pass


@scheduler.command()
@click.pass_context
def run(ctx):
    """Run the reconciliation scheduler in the foreground"""
    from app.services.scheduler_service import scheduler_service

    app = ctx.find_root().obj
    scheduler_service.init_app(app)
    scheduler_service.start()
    click.echo("Scheduler running, press Ctrl+C to stop")

    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        scheduler_service.shutdown()
        click.echo("Scheduler stopped")


@scheduler.command()
@click.pass_context
def status(ctx):
    """Show scheduler jobs and run statistics"""
    from app.services.scheduler_service import scheduler_service

    if scheduler_service.app is None:
        scheduler_service.init_app(ctx.find_root().obj)

    info = scheduler_service.get_status()
    click.echo(f"Running: {info['is_running']}")
    for job in info["jobs"]:
        click.echo(f"  {job['id']}: next run {job['next_run']}")
    for key, value in info["stats"].items():
        click.echo(f"  {key}: {value}")


@scheduler.command("sync")
@click.pass_context
def force_sync(ctx):
    """Run one reconciliation pass through the scheduler service"""
    from app.services.scheduler_service import scheduler_service

    if scheduler_service.app is None:
        scheduler_service.init_app(ctx.find_root().obj)

    success, message = scheduler_service.force_sync()
    if not success:
        raise click.ClickException(message)
    click.echo(f"✅ {message}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_app
def init_db():
    """Initialize database tables"""
    db.create_all()
    click.echo("✅ Database tables created successfully!")


@db_cmd.command()
@with_app
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    db.drop_all()
    db.create_all()
    click.echo("✅ Database reset successfully!")


if __name__ == "__main__":
    cli()
