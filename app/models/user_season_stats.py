from datetime import datetime, timezone

from sqlalchemy import and_, func

from app import db


class UserSeasonStats(db.Model):
    """Derived per-user season totals.

    Always rebuilt from picks x results by recalculate(), never patched
    incrementally.
    """

    __tablename__ = "user_season_stats"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)

    total_points = db.Column(db.Integer, default=0, nullable=False)
    races_completed = db.Column(db.Integer, default=0, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        db.UniqueConstraint("user_id", "season_id", name="unique_user_season_stats"),
        db.Index("idx_stats_season_points", "season_id", "total_points"),
    )

    def __repr__(self):
        return f"<UserSeasonStats user_id={self.user_id} season_id={self.season_id} points={self.total_points}>"

    @staticmethod
    def get_for_user(user_id, season_id):
        return UserSeasonStats.query.filter_by(
            user_id=user_id, season_id=season_id
        ).first()

    @staticmethod
    def calculate_user_points(user_id, season_id):
        """Sum points of the user's picks in completed races of the season.

        A completed race counts towards races_completed even when the picked
        driver has no result row (DNF/DNS).
        """
        from .pick import Pick
        from .race import Race, RaceStatus
        from .race_result import RaceResult

        total_points, races_completed = (
            db.session.query(
                func.coalesce(
                    func.sum(RaceResult.race_points + RaceResult.sprint_points), 0
                ),
                func.count(func.distinct(Race.id)),
            )
            .select_from(Pick)
            .join(Race, Pick.race_id == Race.id)
            .outerjoin(
                RaceResult,
                and_(
                    RaceResult.race_id == Race.id,
                    RaceResult.driver_id == Pick.driver_id,
                ),
            )
            .filter(
                Pick.user_id == user_id,
                Race.season_id == season_id,
                Race.status == RaceStatus.COMPLETED.value,
            )
            .one()
        )

        return int(total_points or 0), int(races_completed or 0)

    @staticmethod
    def upsert(user_id, season_id, total_points, races_completed):
        stats = UserSeasonStats.get_for_user(user_id, season_id)
        if stats is None:
            stats = UserSeasonStats(user_id=user_id, season_id=season_id)
            db.session.add(stats)

        stats.total_points = total_points
        stats.races_completed = races_completed
        return stats

    @staticmethod
    def recalculate(user_id, season_id):
        """Full recomputation of one user's season stats"""
        total_points, races_completed = UserSeasonStats.calculate_user_points(
            user_id, season_id
        )
        return UserSeasonStats.upsert(user_id, season_id, total_points, races_completed)

    @staticmethod
    def get_leaderboard(season_id):
        """Stats rows for a season, best first"""
        return (
            UserSeasonStats.query.filter_by(season_id=season_id)
            .order_by(
                UserSeasonStats.total_points.desc(),
                UserSeasonStats.races_completed.desc(),
                UserSeasonStats.user_id,
            )
            .all()
        )

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "season_id": self.season_id,
            "total_points": self.total_points,
            "races_completed": self.races_completed,
        }
