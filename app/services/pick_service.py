"""
Pick workflow for F1 Pick'em

submit_pick validates everything before touching the picks table and then
performs at most one write: an update of the user's existing pick for the
race, or a new pick.
"""

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app import db
from app.models import Driver, Pick, Race, RaceResult, Season
from app.services.availability import get_used_driver_ids
from app.services.errors import (
    Conflict,
    DriverUnavailable,
    NotFound,
    PickWindowClosed,
    ValidationError,
    is_positive_int,
)
from app.utils.pick_window import PICK_DEADLINE_MINUTES, compute_pick_window_for_race
from app.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


def _deadline_minutes():
    return current_app.config.get("PICK_DEADLINE_MINUTES", PICK_DEADLINE_MINUTES)


def compute_pick_window(race, now=None):
    """Pick window for a race at `now` (defaults to the current time)"""
    return compute_pick_window_for_race(
        race, now or get_utc_time(), deadline_minutes=_deadline_minutes()
    )


def submit_pick(user_id, race_id, driver_id, now=None):
    """Create or change the user's pick for a race.

    Returns ({"pick", "driver", "race"}, None) on success or (None, error).
    """
    if not is_positive_int(race_id):
        return None, ValidationError("Invalid race ID", "race_id")
    if not is_positive_int(driver_id):
        return None, ValidationError("Invalid driver ID", "driver_id")

    season = Season.get_current_season()
    if not season:
        return None, NotFound("Season")

    race = db.session.get(Race, race_id)
    if not race:
        return None, NotFound("Race", race_id)
    if race.season_id != season.id:
        return None, ValidationError(
            "Race does not belong to current season", "race_id"
        )

    window = compute_pick_window(race, now)
    if not window.is_open:
        return None, PickWindowClosed(window.reason, window.opens_at)

    driver = db.session.get(Driver, driver_id)
    if not driver:
        return None, NotFound("Driver", driver_id)
    if driver.season_id != season.id:
        return None, ValidationError(
            "Driver does not belong to current season", "driver_id"
        )

    existing_pick = Pick.get_for_user_and_race(user_id, race.id)

    if not race.is_wild_card:
        used = set(get_used_driver_ids(user_id, season.id))
        # The user's own pick for this race never blocks re-confirming or changing it
        if existing_pick:
            used.discard(existing_pick.driver_id)

        if driver.id in used:
            logger.info(
                f"Rejected pick: user {user_id} already used driver {driver.id} "
                f"in season {season.year}"
            )
            return None, DriverUnavailable(driver.id)

    if existing_pick:
        if existing_pick.driver_id != driver.id:
            logger.info(
                f"User {user_id} changed pick for race {race.id}: "
                f"driver {existing_pick.driver_id} -> {driver.id}"
            )
            existing_pick.driver_id = driver.id
        pick = existing_pick
    else:
        pick = Pick.create_pick(user_id, race.id, driver.id)
        logger.info(f"User {user_id} picked driver {driver.id} for race {race.id}")

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent submission created the row first; last write wins
        db.session.rollback()
        pick = Pick.get_for_user_and_race(user_id, race_id)
        if pick is None:
            logger.error(f"Pick for user {user_id} race {race_id} failed to save")
            return None, Conflict("Pick could not be saved, please retry")
        pick.driver_id = driver_id
        db.session.commit()

    return {"pick": pick, "driver": driver, "race": race}, None


def get_user_picks(user_id):
    """The user's picks in the active season, in round order, with points"""
    season = Season.get_current_season()
    if not season:
        return None, NotFound("Season")

    enriched = []
    for pick in Pick.get_user_season_picks(user_id, season.id):
        result = RaceResult.query.filter_by(
            race_id=pick.race_id, driver_id=pick.driver_id
        ).first()

        data = pick.to_dict()
        data["driver"] = pick.driver.to_dict() if pick.driver else None
        data["race"] = pick.race.to_dict() if pick.race else None
        data["points"] = result.total_points if result else None
        enriched.append(data)

    return {"picks": enriched}, None


def get_current_race():
    """Next race still to run or finish, else the season's last race"""
    season = Season.get_current_season()
    if not season:
        return None, NotFound("Season")

    race = Race.get_current_race(season.id)
    if not race:
        return None, NotFound("Race")

    return race, None


def get_races():
    """All races of the active season in round order"""
    season = Season.get_current_season()
    if not season:
        return None, NotFound("Season")

    return {"races": season.get_races()}, None


def get_race(race_id):
    if not is_positive_int(race_id):
        return None, ValidationError("Invalid race ID", "race_id")

    race = db.session.get(Race, race_id)
    if not race:
        return None, NotFound("Race", race_id)

    return {"race": race}, None
