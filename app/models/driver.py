from datetime import datetime, timezone

from app import db


class Driver(db.Model):
    __tablename__ = "drivers"

    id = db.Column(db.Integer, primary_key=True)

    # Driver identification
    code = db.Column(db.String(3), nullable=False)  # e.g., "VER"
    name = db.Column(db.String(100), nullable=False)

    # Car number, the stable key used to match results source data
    number = db.Column(db.Integer, nullable=False)

    # Team details
    team = db.Column(db.String(100))
    team_color = db.Column(db.String(7))  # Hex color

    # Season context
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("season_id", "number", name="unique_driver_season_number"),
        db.Index("idx_driver_season", "season_id"),
    )

    def __repr__(self):
        return f"<Driver #{self.number} {self.code}>"

    @staticmethod
    def get_all_for_season(season_id):
        """Get all drivers for a specific season"""
        return (
            Driver.query.filter_by(season_id=season_id)
            .order_by(Driver.team, Driver.name)
            .all()
        )

    @staticmethod
    def get_roster_by_number(season_id):
        """Map car number -> driver id for a season"""
        return {
            driver.number: driver.id
            for driver in Driver.query.filter_by(season_id=season_id).all()
        }

    def to_dict(self):
        """Convert driver to dictionary for API responses"""
        return {
            "id": self.id,
            "season_id": self.season_id,
            "code": self.code,
            "name": self.name,
            "number": self.number,
            "team": self.team,
            "team_color": self.team_color,
        }
