from app import db
from app.models import Pick, RaceResult, RaceStatus, UserSeasonStats
from app.services.errors import Conflict, NotFound, ValidationError
from app.services.results_service import (
    get_leaderboard,
    get_race_results,
    recalculate_season_stats,
    submit_manual_results,
)


def _pick(user, race, driver):
    db.session.add(Pick(user_id=user.id, race_id=race.id, driver_id=driver.id))
    db.session.commit()


def _entry(driver, race_position=None, sprint_position=None):
    return {
        "driver_id": driver.id,
        "race_position": race_position,
        "sprint_position": sprint_position,
    }


def test_manual_results_score_complete_and_rebuild_stats(seed):
    race = seed.races[1]
    d = seed.drivers
    _pick(seed.alice, race, d["VER"])
    _pick(seed.bob, race, d["HAM"])

    value, error = submit_manual_results(
        race.id,
        [_entry(d["VER"], 1), _entry(d["NOR"], 10), _entry(d["LEC"], 11), _entry(d["HAM"])],
    )

    assert error is None
    assert value["race_status"] == "completed"
    points = {r["driver_id"]: r["race_points"] for r in value["results"]}
    assert points == {d["VER"].id: 25, d["NOR"].id: 1, d["LEC"].id: 0, d["HAM"].id: 0}
    assert race.lifecycle is RaceStatus.COMPLETED

    alice = UserSeasonStats.get_for_user(seed.alice.id, seed.season.id)
    bob = UserSeasonStats.get_for_user(seed.bob.id, seed.season.id)
    assert (alice.total_points, alice.races_completed) == (25, 1)
    # A DNF still counts as a completed race
    assert (bob.total_points, bob.races_completed) == (0, 1)


def test_sprint_points_on_sprint_weekend(seed):
    race = seed.races[3]
    d = seed.drivers
    _pick(seed.alice, race, d["NOR"])

    value, error = submit_manual_results(
        race.id, [_entry(d["NOR"], 2, 1), _entry(d["VER"], 1, 8), _entry(d["LEC"], 3, 9)]
    )

    assert error is None
    sprint = {r["driver_id"]: r["sprint_points"] for r in value["results"]}
    assert sprint == {d["NOR"].id: 8, d["VER"].id: 1, d["LEC"].id: 0}
    stats = UserSeasonStats.get_for_user(seed.alice.id, seed.season.id)
    assert stats.total_points == 18 + 8


def test_resubmission_overwrites_and_recomputes(seed):
    race = seed.races[1]
    d = seed.drivers
    _pick(seed.alice, race, d["VER"])

    submit_manual_results(race.id, [_entry(d["VER"], 1)])
    value, error = submit_manual_results(race.id, [_entry(d["VER"], 3)])

    assert error is None
    assert RaceResult.query.filter_by(race_id=race.id).count() == 1
    stats = UserSeasonStats.get_for_user(seed.alice.id, seed.season.id)
    assert (stats.total_points, stats.races_completed) == (15, 1)


def test_sprint_positions_rejected_for_non_sprint_race(seed):
    race = seed.races[1]

    value, error = submit_manual_results(race.id, [_entry(seed.drivers["VER"], 1, 1)])

    assert isinstance(error, ValidationError)
    assert error.field == "sprint_position"
    assert RaceResult.query.count() == 0
    assert race.lifecycle is RaceStatus.UPCOMING


def test_positions_beyond_points_range_score_zero(seed):
    d = seed.drivers

    value, error = submit_manual_results(
        seed.races[1].id, [_entry(d["VER"], 1), _entry(d["HAM"], 21), _entry(d["NOR"], 22)]
    )

    assert error is None
    stored = {r.driver_id: (r.race_position, r.race_points) for r in RaceResult.query.all()}
    assert stored[d["HAM"].id] == (21, 0)
    assert stored[d["NOR"].id] == (22, 0)


def test_position_below_one_rejected(seed):
    value, error = submit_manual_results(
        seed.races[1].id, [_entry(seed.drivers["VER"], 0)]
    )

    assert isinstance(error, ValidationError)
    assert error.field == "race_position"
    assert RaceResult.query.count() == 0


def test_results_must_be_a_list(seed):
    value, error = submit_manual_results(seed.races[1].id, None)

    assert value is None
    assert isinstance(error, ValidationError)
    assert error.field == "results"


def test_result_entries_must_be_objects(seed):
    value, error = submit_manual_results(seed.races[1].id, [[1, 1, None]])

    assert value is None
    assert isinstance(error, ValidationError)
    assert error.field == "results"
    assert RaceResult.query.count() == 0


def test_non_integer_driver_id_rejected(seed):
    value, error = submit_manual_results(
        seed.races[1].id, [{"driver_id": [1], "race_position": 1}]
    )

    assert isinstance(error, ValidationError)
    assert error.field == "driver_id"


def test_unknown_driver_rejected_without_writes(seed):
    value, error = submit_manual_results(
        seed.races[1].id,
        [_entry(seed.drivers["VER"], 1), {"driver_id": 9999, "race_position": 2}],
    )

    assert isinstance(error, ValidationError)
    assert error.field == "driver_id"
    assert RaceResult.query.count() == 0


def test_duplicate_driver_is_conflict(seed):
    ver = seed.drivers["VER"]

    value, error = submit_manual_results(seed.races[1].id, [_entry(ver, 1), _entry(ver, 2)])

    assert isinstance(error, Conflict)
    assert error.http_status == 409


def test_unknown_race(seed):
    value, error = submit_manual_results(9999, [])

    assert isinstance(error, NotFound)


def test_get_race_results_includes_picks_and_points(seed):
    race = seed.races[1]
    d = seed.drivers
    _pick(seed.alice, race, d["VER"])
    _pick(seed.bob, race, d["LEC"])
    submit_manual_results(race.id, [_entry(d["VER"]), _entry(d["NOR"], 1)])

    value, error = get_race_results(race.id)

    assert error is None
    # Classified finishers first, DNFs last
    assert [r["driver"]["code"] for r in value["results"]] == ["NOR", "VER"]
    picks = {p["user_name"]: p["points"] for p in value["picks"]}
    assert picks == {"Alice": 0, "Bob": 0}


def test_leaderboard_orders_by_points(seed):
    d = seed.drivers
    _pick(seed.alice, seed.races[1], d["NOR"])
    _pick(seed.bob, seed.races[1], d["VER"])
    submit_manual_results(seed.races[1].id, [_entry(d["VER"], 1), _entry(d["NOR"], 2)])

    value, error = get_leaderboard()

    assert error is None
    assert [(e["rank"], e["user_name"], e["total_points"]) for e in value["standings"]] == [
        (1, "Bob", 25),
        (2, "Alice", 18),
    ]


def test_recalculate_season_stats_repairs_drift(seed):
    d = seed.drivers
    _pick(seed.alice, seed.races[1], d["VER"])
    submit_manual_results(seed.races[1].id, [_entry(d["VER"], 1)])

    stats = UserSeasonStats.get_for_user(seed.alice.id, seed.season.id)
    stats.total_points = 999
    db.session.commit()

    assert recalculate_season_stats(seed.season.id) == 1
    assert UserSeasonStats.get_for_user(seed.alice.id, seed.season.id).total_points == 25
