from datetime import datetime, timezone

from app import db


class RaceResult(db.Model):
    __tablename__ = "race_results"

    id = db.Column(db.Integer, primary_key=True)

    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey("drivers.id"), nullable=False)

    # Finishing positions; None means did not finish / did not start
    race_position = db.Column(db.Integer)
    sprint_position = db.Column(db.Integer)

    # Points, derived from positions via the scoring table
    race_points = db.Column(db.Integer, default=0, nullable=False)
    sprint_points = db.Column(db.Integer, default=0, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    driver = db.relationship("Driver", foreign_keys=[driver_id])

    __table_args__ = (
        db.UniqueConstraint("race_id", "driver_id", name="unique_race_driver_result"),
    )

    def __repr__(self):
        return f"<RaceResult race_id={self.race_id} driver_id={self.driver_id} P{self.race_position}>"

    @property
    def total_points(self):
        return (self.race_points or 0) + (self.sprint_points or 0)

    @staticmethod
    def get_for_race(race_id):
        return (
            RaceResult.query.filter_by(race_id=race_id)
            .order_by(RaceResult.race_position.is_(None), RaceResult.race_position)
            .all()
        )

    @staticmethod
    def upsert(race_id, driver_id, race_position, sprint_position, race_points, sprint_points):
        """Insert the (race, driver) row or overwrite the existing one"""
        result = RaceResult.query.filter_by(race_id=race_id, driver_id=driver_id).first()
        if result is None:
            result = RaceResult(race_id=race_id, driver_id=driver_id)
            db.session.add(result)

        result.race_position = race_position
        result.sprint_position = sprint_position
        result.race_points = race_points
        result.sprint_points = sprint_points
        return result

    def to_dict(self):
        return {
            "id": self.id,
            "race_id": self.race_id,
            "driver_id": self.driver_id,
            "race_position": self.race_position,
            "sprint_position": self.sprint_position,
            "race_points": self.race_points,
            "sprint_points": self.sprint_points,
        }
