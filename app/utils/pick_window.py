"""
Pick window calculation

A pick window opens at Monday 00:00 UTC of the week containing qualifying
and closes a few minutes before the deadline session: sprint qualifying on
sprint weekends that have one, qualifying otherwise.
"""

from datetime import timedelta

from app.utils.timezone_utils import ensure_utc

PICK_DEADLINE_MINUTES = 10

TOO_EARLY = "too_early"
OPEN = "open"
LOCKED = "locked"

QUALIFYING = "qualifying"
SPRINT_QUALIFYING = "sprint_qualifying"


class PickWindow:
    """Pick window state of a race at a given instant"""

    def __init__(self, status, opens_at, closes_at, deadline_session):
        self.status = status
        self.opens_at = opens_at
        self.closes_at = closes_at
        self.deadline_session = deadline_session

    def __repr__(self):
        return f"<PickWindow {self.status} {self.opens_at} - {self.closes_at}>"

    @property
    def is_open(self):
        return self.status == OPEN

    @property
    def reason(self):
        """Why the window is shut, in the terms the pick workflow reports"""
        if self.status == TOO_EARLY:
            return "too_early"
        if self.status == LOCKED:
            return "too_late"
        return None

    def to_dict(self):
        return {
            "status": self.status,
            "opens_at": self.opens_at.isoformat(),
            "closes_at": self.closes_at.isoformat(),
            "deadline_session": self.deadline_session,
        }


def get_week_start_monday(dt):
    """Monday 00:00 UTC of the Mon-Sun week containing dt"""
    dt = ensure_utc(dt)
    monday = dt - timedelta(days=dt.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def get_deadline_session(quali_time, sprint_quali_time, has_sprint):
    """Return (session_name, session_start) that anchors the window close"""
    if has_sprint and sprint_quali_time is not None:
        return SPRINT_QUALIFYING, ensure_utc(sprint_quali_time)
    return QUALIFYING, ensure_utc(quali_time)


def compute_pick_window(
    quali_time,
    sprint_quali_time,
    has_sprint,
    now,
    deadline_minutes=PICK_DEADLINE_MINUTES,
):
    opens_at = get_week_start_monday(quali_time)
    deadline_session, session_start = get_deadline_session(
        quali_time, sprint_quali_time, has_sprint
    )
    closes_at = session_start - timedelta(minutes=deadline_minutes)

    now = ensure_utc(now)
    if now < opens_at:
        status = TOO_EARLY
    elif now >= closes_at:
        status = LOCKED
    else:
        status = OPEN

    return PickWindow(
        status=status,
        opens_at=opens_at,
        closes_at=closes_at,
        deadline_session=deadline_session,
    )


def compute_pick_window_for_race(race, now, deadline_minutes=PICK_DEADLINE_MINUTES):
    """Pick window for a Race model (or any object with the same fields)"""
    return compute_pick_window(
        race.quali_time,
        race.sprint_quali_time,
        race.has_sprint,
        now,
        deadline_minutes=deadline_minutes,
    )
