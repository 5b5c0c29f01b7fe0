from datetime import datetime, timezone

from app.utils.pick_window import (
    LOCKED,
    OPEN,
    QUALIFYING,
    SPRINT_QUALIFYING,
    TOO_EARLY,
    compute_pick_window,
    get_week_start_monday,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


QUALI = utc(2026, 3, 21, 15, 0)  # Saturday


def test_week_start_is_monday_midnight_utc():
    assert get_week_start_monday(QUALI) == utc(2026, 3, 16)
    assert get_week_start_monday(utc(2026, 3, 16, 0, 0)) == utc(2026, 3, 16)
    assert get_week_start_monday(utc(2026, 3, 22, 23, 59)) == utc(2026, 3, 16)


def test_naive_datetimes_are_treated_as_utc():
    assert get_week_start_monday(datetime(2026, 3, 21, 15, 0)) == utc(2026, 3, 16)


def test_window_open_midweek():
    window = compute_pick_window(QUALI, None, False, utc(2026, 3, 18, 12, 0))
    assert window.status == OPEN
    assert window.is_open
    assert window.reason is None
    assert window.opens_at == utc(2026, 3, 16)
    assert window.closes_at == utc(2026, 3, 21, 14, 50)
    assert window.deadline_session == QUALIFYING


def test_window_too_early_before_monday():
    window = compute_pick_window(QUALI, None, False, utc(2026, 3, 15, 23, 59))
    assert window.status == TOO_EARLY
    assert window.reason == "too_early"


def test_window_opens_exactly_at_monday_midnight():
    window = compute_pick_window(QUALI, None, False, utc(2026, 3, 16))
    assert window.status == OPEN


def test_window_locks_at_deadline_instant():
    window = compute_pick_window(QUALI, None, False, utc(2026, 3, 21, 14, 50))
    assert window.status == LOCKED
    assert window.reason == "too_late"

    just_before = compute_pick_window(QUALI, None, False, utc(2026, 3, 21, 14, 49, 59))
    assert just_before.status == OPEN


def test_sprint_weekend_uses_sprint_qualifying():
    sprint_quali = utc(2026, 3, 20, 15, 30)
    window = compute_pick_window(QUALI, sprint_quali, True, utc(2026, 3, 20, 15, 25))
    assert window.deadline_session == SPRINT_QUALIFYING
    assert window.closes_at == utc(2026, 3, 20, 15, 20)
    assert window.status == LOCKED


def test_sprint_weekend_without_sprint_quali_falls_back_to_qualifying():
    window = compute_pick_window(QUALI, None, True, utc(2026, 3, 20, 15, 25))
    assert window.deadline_session == QUALIFYING
    assert window.status == OPEN


def test_sprint_quali_ignored_when_not_a_sprint_weekend():
    window = compute_pick_window(QUALI, utc(2026, 3, 20, 15, 30), False, utc(2026, 3, 20, 16))
    assert window.deadline_session == QUALIFYING
    assert window.status == OPEN


def test_custom_deadline_minutes():
    window = compute_pick_window(
        QUALI, None, False, utc(2026, 3, 21, 14, 0), deadline_minutes=60
    )
    assert window.closes_at == utc(2026, 3, 21, 14, 0)
    assert window.status == LOCKED


def test_window_to_dict():
    data = compute_pick_window(QUALI, None, False, utc(2026, 3, 18)).to_dict()
    assert data["status"] == OPEN
    assert data["deadline_session"] == QUALIFYING
    assert data["opens_at"].startswith("2026-03-16T00:00:00")
