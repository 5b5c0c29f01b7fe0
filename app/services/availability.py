"""
Driver availability

A driver is used once a user has picked them in any non-wild-card race of
the season. Wild-card picks never mark a driver as used. Computed fresh on
every call.
"""

from app import db
from app.models import Driver, Pick, Race, Season
from app.services.errors import NotFound


def get_used_driver_ids(user_id, season_id):
    """Driver ids used by the user in non-wild-card races of the season"""
    query = (
        db.session.query(Pick.driver_id)
        .join(Race, Pick.race_id == Race.id)
        .filter(
            Pick.user_id == user_id,
            Race.season_id == season_id,
            Race.is_wild_card.is_(False),
        )
    )
    return sorted({driver_id for (driver_id,) in query.distinct().all()})


def get_available_drivers(user_id):
    """Season roster flagged with availability for the user.

    Returns ({"drivers": [...], "used_driver_ids": [...]}, None) or
    (None, NotFound("Season")).
    """
    season = Season.get_current_season()
    if not season:
        return None, NotFound("Season")

    drivers = Driver.get_all_for_season(season.id)
    used_driver_ids = get_used_driver_ids(user_id, season.id)
    used = set(used_driver_ids)

    drivers_with_availability = []
    for driver in drivers:
        data = driver.to_dict()
        data["is_available"] = driver.id not in used
        drivers_with_availability.append(data)

    return {
        "drivers": drivers_with_availability,
        "used_driver_ids": used_driver_ids,
    }, None
