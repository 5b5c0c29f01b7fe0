"""
Results, scoring and stats for F1 Pick'em

apply_race_results is the single write path for results: both the scheduled
reconciliation and a manual admin submission go through it. Stats are
always rebuilt from scratch for every affected user.
"""

import logging

from app import db
from app.models import (
    Driver,
    Pick,
    Race,
    RaceResult,
    RaceStatus,
    Season,
    User,
    UserSeasonStats,
)
from app.services.errors import Conflict, NotFound, ValidationError, is_positive_int
from app.utils.scoring import get_race_points, get_sprint_points

logger = logging.getLogger(__name__)

MIN_POSITION = 1


def apply_race_results(race, entries):
    """Upsert scored results for a race, complete it, and rebuild stats.

    entries: iterable of dicts with driver_id, race_position, sprint_position.
    Does not commit; the caller owns the transaction.
    """
    saved = []
    for entry in entries:
        race_position = entry.get("race_position")
        sprint_position = entry.get("sprint_position")
        saved.append(
            RaceResult.upsert(
                race.id,
                entry["driver_id"],
                race_position,
                sprint_position,
                get_race_points(race_position),
                get_sprint_points(sprint_position),
            )
        )

    race.advance_status(RaceStatus.COMPLETED)
    db.session.flush()

    users_updated = recalculate_stats_for_race(race)
    logger.info(
        f"Applied {len(saved)} results to race {race.id} ({race.name}); "
        f"stats rebuilt for {users_updated} users"
    )
    return saved


def recalculate_stats_for_race(race):
    """Rebuild season stats for every user who picked in this race"""
    user_ids = sorted({pick.user_id for pick in Pick.get_for_race(race.id)})
    for user_id in user_ids:
        UserSeasonStats.recalculate(user_id, race.season_id)
    return len(user_ids)


def recalculate_season_stats(season_id):
    """Rebuild stats for every user with a pick in the season"""
    user_ids = [
        user_id
        for (user_id,) in db.session.query(Pick.user_id)
        .join(Race, Pick.race_id == Race.id)
        .filter(Race.season_id == season_id)
        .distinct()
        .all()
    ]
    for user_id in user_ids:
        UserSeasonStats.recalculate(user_id, season_id)
    db.session.commit()
    return len(user_ids)


def _validate_position(value, field):
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        return ValidationError("Position must be an integer or null", field)
    if value < MIN_POSITION:
        return ValidationError(f"Position must be at least {MIN_POSITION}", field)
    return None


def submit_manual_results(race_id, results):
    """Admin override: store results for a race without the external fetch.

    Returns ({"results": [...], "race_status": "completed"}, None) or
    (None, error). Nothing is written unless every entry is valid.
    """
    if not is_positive_int(race_id):
        return None, ValidationError("Invalid race ID", "race_id")

    race = db.session.get(Race, race_id)
    if not race:
        return None, NotFound("Race", race_id)

    season = Season.get_current_season()
    if not season or race.season_id != season.id:
        return None, ValidationError("Race not in active season", "race_id")

    if not isinstance(results, list):
        return None, ValidationError("Results must be a list", "results")

    valid_driver_ids = {driver.id for driver in Driver.get_all_for_season(season.id)}

    entries = []
    seen = set()
    for result in results:
        if not isinstance(result, dict):
            return None, ValidationError("Each result must be an object", "results")

        driver_id = result.get("driver_id")
        if not is_positive_int(driver_id) or driver_id not in valid_driver_ids:
            return None, ValidationError(f"Invalid driver ID: {driver_id}", "driver_id")
        if driver_id in seen:
            return None, Conflict(f"Driver {driver_id} appears more than once")
        seen.add(driver_id)

        race_position = result.get("race_position")
        sprint_position = result.get("sprint_position")
        error = _validate_position(race_position, "race_position") or _validate_position(
            sprint_position, "sprint_position"
        )
        if error:
            return None, error

        entries.append(
            {
                "driver_id": driver_id,
                "race_position": race_position,
                "sprint_position": sprint_position,
            }
        )

    if not race.has_sprint and any(e["sprint_position"] is not None for e in entries):
        return None, ValidationError(
            "Sprint results provided for non-sprint race", "sprint_position"
        )

    try:
        saved = apply_race_results(race, entries)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.error(f"Manual results for race {race_id} failed", exc_info=True)
        raise

    logger.info(f"Manual results submitted for race {race.id} ({len(saved)} entries)")
    return {
        "results": [result.to_dict() for result in saved],
        "race_status": RaceStatus.COMPLETED.value,
    }, None


def get_race_results(race_id):
    """Results of a race with drivers, plus every pick and its points"""
    if not is_positive_int(race_id):
        return None, ValidationError("Invalid race ID", "race_id")

    race = db.session.get(Race, race_id)
    if not race:
        return None, NotFound("Race", race_id)

    results = RaceResult.get_for_race(race.id)
    results_by_driver = {result.driver_id: result for result in results}

    enriched_results = []
    for result in results:
        data = result.to_dict()
        data["driver"] = result.driver.to_dict() if result.driver else None
        enriched_results.append(data)

    enriched_picks = []
    for pick in Pick.get_for_race(race.id):
        result = results_by_driver.get(pick.driver_id)
        data = pick.to_dict()
        data["user_name"] = pick.user.name if pick.user else None
        data["driver"] = pick.driver.to_dict() if pick.driver else None
        data["points"] = result.total_points if result else 0
        enriched_picks.append(data)

    return {
        "race": race.to_dict(),
        "results": enriched_results,
        "picks": enriched_picks,
    }, None


def get_leaderboard():
    """Ranked standings for the active season"""
    season = Season.get_current_season()
    if not season:
        return None, NotFound("Season")

    standings = []
    for rank, stats in enumerate(UserSeasonStats.get_leaderboard(season.id), start=1):
        user = stats.user or db.session.get(User, stats.user_id)
        entry = stats.to_dict()
        entry["rank"] = rank
        entry["user_name"] = user.name if user else None
        standings.append(entry)

    return {"season": season.to_dict(), "standings": standings}, None
