from datetime import datetime, timezone

from app import db


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=False)

    # Pick details
    driver_id = db.Column(db.Integer, db.ForeignKey("drivers.id"), nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    driver = db.relationship("Driver", foreign_keys=[driver_id])

    # One pick per user per race; changing driver updates this row
    __table_args__ = (
        db.UniqueConstraint("user_id", "race_id", name="unique_user_race_pick"),
        db.Index("idx_pick_race", "race_id"),
        db.Index("idx_pick_user", "user_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} race_id={self.race_id} driver_id={self.driver_id}>"

    @staticmethod
    def get_for_user_and_race(user_id, race_id):
        return Pick.query.filter_by(user_id=user_id, race_id=race_id).first()

    @staticmethod
    def get_for_race(race_id):
        return Pick.query.filter_by(race_id=race_id).all()

    @staticmethod
    def get_user_season_picks(user_id, season_id):
        """Get all picks by a user for a season, in round order"""
        from .race import Race

        return (
            Pick.query.join(Race)
            .filter(Pick.user_id == user_id, Race.season_id == season_id)
            .order_by(Race.round)
            .all()
        )

    @staticmethod
    def create_pick(user_id, race_id, driver_id):
        pick = Pick(user_id=user_id, race_id=race_id, driver_id=driver_id)
        db.session.add(pick)
        return pick

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "race_id": self.race_id,
            "driver_id": self.driver_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
