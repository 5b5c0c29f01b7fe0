"""
Race lifecycle and results reconciliation

One invocation makes two passes over the active season's races:

1. Status advancement: every upcoming race whose earliest session has
   started moves to in_progress.
2. Results reconciliation: every race not yet completed whose race start
   is at least RESULTS_SYNC_DELAY_HOURS in the past is fetched from the
   results source, mapped onto the season's drivers by car number, scored,
   stored, completed, and its pickers' stats rebuilt.

Each race in pass 2 is its own unit of work. A failed race is rolled back,
recorded, and retried on the next invocation.
"""

import logging

from flask import current_app

from app import db
from app.models import Driver, Race, RaceStatus, Season
from app.services.results_service import apply_race_results
from app.utils.logging_config import ContextualLogger
from app.utils.openf1_client import OpenF1Client
from app.utils.timezone_utils import ensure_utc, get_utc_time

logger = logging.getLogger(__name__)

DEFAULT_SYNC_DELAY_HOURS = 5


class ReconciliationSummary:
    """Outcome of one reconciliation invocation"""

    def __init__(self, started=0, synced=None, failed=None):
        self.started = started
        self.synced = synced if synced is not None else []
        self.failed = failed if failed is not None else []

    def to_dict(self):
        return {
            "races_started": self.started,
            "races_synced": list(self.synced),
            "races_failed": list(self.failed),
        }


class RaceSyncFailed(Exception):
    """A race's fetched results cannot be applied"""


def advance_started_races(races, now):
    """Pass 1: upcoming -> in_progress once the first session has begun"""
    started = 0
    for race in races:
        if race.lifecycle is not RaceStatus.UPCOMING:
            continue

        start_time = race.earliest_session_time()
        if start_time is not None and now >= start_time:
            race.advance_status(RaceStatus.IN_PROGRESS)
            started += 1
            logger.info(f"Race {race.id} ({race.name}) is now in progress")

    if started:
        db.session.commit()
    return started


def map_source_results(race, source_results, roster):
    """Translate source entries into result entries keyed by driver id.

    Raises RaceSyncFailed if any car number is not on the season roster, or
    if a non-sprint race carries sprint positions. Nothing is applied in
    either case.
    """
    unknown_numbers = sorted(
        {entry.car_number for entry in source_results if entry.car_number not in roster}
    )
    if unknown_numbers:
        raise RaceSyncFailed(f"Unknown car numbers: {unknown_numbers}")

    entries = [
        {
            "driver_id": roster[entry.car_number],
            "race_position": entry.race_position,
            "sprint_position": entry.sprint_position,
        }
        for entry in source_results
    ]

    if not entries:
        raise RaceSyncFailed("No results to apply")

    if not race.has_sprint and any(e["sprint_position"] is not None for e in entries):
        raise RaceSyncFailed("Sprint positions reported for a non-sprint race")

    return entries


def sync_race(race, season, results_source, roster):
    """Fetch, map, and apply results for one race. Raises RaceSyncFailed."""
    ok, payload = results_source.fetch_results(
        season.year, race.name, race.country_code
    )
    if not ok:
        raise RaceSyncFailed(payload or "Results source failure")
    if not payload:
        raise RaceSyncFailed("Results source returned no results")

    entries = map_source_results(race, payload, roster)
    return apply_race_results(race, entries)


def run_reconciliation(now=None, results_source=None):
    """Run both passes against the active season. Returns a ReconciliationSummary."""
    summary = ReconciliationSummary()

    season = Season.get_current_season()
    if not season:
        logger.info("Reconciliation skipped: no active season")
        return summary

    now = ensure_utc(now) if now is not None else get_utc_time()
    if results_source is None:
        results_source = OpenF1Client.from_config(current_app.config)
    delay_hours = current_app.config.get(
        "RESULTS_SYNC_DELAY_HOURS", DEFAULT_SYNC_DELAY_HOURS
    )

    races = Race.get_for_season(season.id)
    roster = Driver.get_roster_by_number(season.id)

    summary.started = advance_started_races(races, now)

    for race in races:
        if race.is_completed:
            continue

        race_log = ContextualLogger(
            __name__, {"race_id": race.id, "round": race.round, "season": season.year}
        )

        eligible_at = race.sync_eligible_at(delay_hours)
        if eligible_at is None:
            race_log.warning("Race has no start time, cannot sync")
            summary.failed.append(race.id)
            continue
        if now < eligible_at:
            continue

        try:
            saved = sync_race(race, season, results_source, roster)
            db.session.commit()
        except RaceSyncFailed as e:
            db.session.rollback()
            race_log.warning(f"Results sync failed for {race.name}: {e}")
            summary.failed.append(race.id)
            continue
        except Exception as e:
            db.session.rollback()
            race_log.exception(f"Unexpected error syncing {race.name}: {e}")
            summary.failed.append(race.id)
            continue

        race_log.info(f"Synced {len(saved)} results for {race.name}")
        summary.synced.append(race.id)

    logger.info(
        f"Reconciliation complete: {summary.started} started, "
        f"{len(summary.synced)} synced, {len(summary.failed)} failed"
    )
    return summary
