from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app import create_app, db
from app.models import Driver, Race, Season, User
from app.utils.openf1_client import DriverResult

# Round 1 qualifying; every later round is one week on
FIRST_QUALI = datetime(2026, 3, 7, 15, 0, tzinfo=timezone.utc)
SPRINT_ROUND = 3
WILD_CARD_ROUNDS = (23, 24)

DRIVERS = [
    ("VER", "Max Verstappen", 1, "Red Bull Racing"),
    ("NOR", "Lando Norris", 4, "McLaren"),
    ("LEC", "Charles Leclerc", 16, "Ferrari"),
    ("HAM", "Lewis Hamilton", 44, "Ferrari"),
]


class FakeResultsSource:
    """Stands in for OpenF1Client; answers per race name"""

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default if default is not None else (False, "no data")
        self.calls = []

    def fetch_results(self, season_year, race_name, country_code):
        self.calls.append((season_year, race_name, country_code))
        response = self.responses.get(race_name, self.default)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


def _make_race(season, round_number):
    quali = FIRST_QUALI + timedelta(weeks=round_number - 1)
    race = Race(
        season_id=season.id,
        round=round_number,
        name=f"Round {round_number} Grand Prix",
        country_code="GBR",
        quali_time=quali,
        race_time=quali + timedelta(hours=23),
        has_sprint=round_number == SPRINT_ROUND,
        is_wild_card=round_number in WILD_CARD_ROUNDS,
    )
    if race.has_sprint:
        race.sprint_quali_time = quali - timedelta(days=1, minutes=-30)
        race.sprint_time = quali - timedelta(hours=4)
    db.session.add(race)
    return race


@pytest.fixture()
def seed(app):
    """Active 2026 season: 24 weekly rounds, round 3 sprint, 23/24 wild cards"""
    season = Season.create_season(2026)
    db.session.flush()
    season.activate()

    races = {n: _make_race(season, n) for n in range(1, 25)}
    drivers = {}
    for code, name, number, team in DRIVERS:
        driver = Driver(code=code, name=name, number=number, team=team, season_id=season.id)
        db.session.add(driver)
        drivers[code] = driver

    alice = User(email="alice@example.com", name="Alice")
    bob = User(email="bob@example.com", name="Bob")
    db.session.add_all([alice, bob])
    db.session.commit()

    return SimpleNamespace(
        season=season,
        races=races,
        drivers=drivers,
        alice=alice,
        bob=bob,
    )


def in_window(race):
    """An instant inside the race's pick window"""
    return FIRST_QUALI.replace(hour=0) + timedelta(weeks=race.round - 1) - timedelta(days=1)


def after_race(race, hours=6):
    return race.race_time.replace(tzinfo=timezone.utc) + timedelta(hours=hours)


def source_results(*rows):
    """rows: (car_number, race_position, sprint_position)"""
    return [DriverResult(*row) for row in rows]
