import enum
from datetime import datetime, timedelta, timezone

from app import db
from app.utils.timezone_utils import ensure_utc, format_utc


class RaceStatus(str, enum.Enum):
    """Race lifecycle. Transitions only move forward."""

    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self):
        return _STATUS_ORDER.index(self)

    def can_advance_to(self, target):
        return RaceStatus(target).rank >= self.rank


_STATUS_ORDER = [RaceStatus.UPCOMING, RaceStatus.IN_PROGRESS, RaceStatus.COMPLETED]


class Race(db.Model):
    __tablename__ = "races"

    id = db.Column(db.Integer, primary_key=True)

    # Race identification
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    round = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(100), nullable=False)  # e.g., "Australian Grand Prix"
    location = db.Column(db.String(100))
    circuit = db.Column(db.String(100))
    country_code = db.Column(db.String(3))  # Matched against results source

    # Session timing (UTC)
    quali_time = db.Column(db.DateTime(timezone=True), nullable=False)
    sprint_quali_time = db.Column(db.DateTime(timezone=True))
    race_time = db.Column(db.DateTime(timezone=True), nullable=False)
    sprint_time = db.Column(db.DateTime(timezone=True))

    # Format
    has_sprint = db.Column(db.Boolean, default=False, nullable=False)
    is_wild_card = db.Column(db.Boolean, default=False, nullable=False)

    # Lifecycle, see RaceStatus
    status = db.Column(
        db.String(20), default=RaceStatus.UPCOMING.value, nullable=False
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="race", lazy="dynamic", cascade="all, delete-orphan"
    )
    results = db.relationship(
        "RaceResult", backref="race", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("season_id", "round", name="unique_season_round"),
        db.Index("idx_race_season_status", "season_id", "status"),
    )

    def __repr__(self):
        return f"<Race {self.round}: {self.name} ({self.status})>"

    @property
    def lifecycle(self):
        return RaceStatus(self.status)

    @property
    def is_completed(self):
        return self.lifecycle is RaceStatus.COMPLETED

    def advance_status(self, target):
        """Move the race forward to `target`.

        Returns True if the status changed, False if it already was `target`.
        Raises ValueError on any backward transition.
        """
        target = RaceStatus(target)
        current = self.lifecycle
        if not current.can_advance_to(target):
            raise ValueError(
                f"Race {self.id} cannot move from {current.value} back to {target.value}"
            )
        if target is current:
            return False
        self.status = target.value
        return True

    def session_times(self):
        """All present session start times as aware UTC datetimes"""
        values = [self.sprint_quali_time, self.quali_time, self.sprint_time, self.race_time]
        return [ensure_utc(value) for value in values if value is not None]

    def earliest_session_time(self):
        times = self.session_times()
        return min(times) if times else None

    def sync_eligible_at(self, delay_hours=5):
        """Earliest instant results are considered stable enough to fetch"""
        if self.race_time is None:
            return None
        return ensure_utc(self.race_time) + timedelta(hours=delay_hours)

    @staticmethod
    def get_for_season(season_id):
        return Race.query.filter_by(season_id=season_id).order_by(Race.round).all()

    @staticmethod
    def get_current_race(season_id):
        """Next race still to finish, else the season's last race"""
        race = (
            Race.query.filter(
                Race.season_id == season_id,
                Race.status.in_(
                    [RaceStatus.UPCOMING.value, RaceStatus.IN_PROGRESS.value]
                ),
            )
            .order_by(Race.round)
            .first()
        )
        if race:
            return race

        return (
            Race.query.filter_by(season_id=season_id)
            .order_by(Race.round.desc())
            .first()
        )

    def to_dict(self):
        """Convert race to dictionary for API responses"""
        return {
            "id": self.id,
            "season_id": self.season_id,
            "round": self.round,
            "name": self.name,
            "location": self.location,
            "circuit": self.circuit,
            "country_code": self.country_code,
            "has_sprint": bool(self.has_sprint),
            "is_wild_card": bool(self.is_wild_card),
            "quali_time": format_utc(self.quali_time),
            "sprint_quali_time": format_utc(self.sprint_quali_time),
            "race_time": format_utc(self.race_time),
            "sprint_time": format_utc(self.sprint_time),
            "status": self.status,
        }
