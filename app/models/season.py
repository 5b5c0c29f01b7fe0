from datetime import datetime, timezone

from app import db


class Season(db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False, unique=True, index=True)
    name = db.Column(db.String(50), nullable=False)  # e.g., "2026 F1 Season"

    # Status
    is_active = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    races = db.relationship(
        "Race", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )
    drivers = db.relationship(
        "Driver", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_season_active", "is_active"),)

    def __repr__(self):
        return f"<Season {self.year}>"

    @staticmethod
    def get_current_season():
        """Get the currently active season"""
        return Season.query.filter_by(is_active=True).first()

    @staticmethod
    def get_by_year(year):
        return Season.query.filter_by(year=year).first()

    @staticmethod
    def create_season(year, name=None):
        """Create a new season"""
        season = Season(year=year, name=name or f"{year} F1 Season")
        db.session.add(season)
        return season

    def activate(self):
        """Activate this season (deactivates all others)"""
        Season.query.filter(Season.id != self.id).update({"is_active": False})
        self.is_active = True

    def get_races(self):
        """All races of this season in round order"""
        from .race import Race

        return self.races.order_by(Race.round).all()

    def to_dict(self):
        """Convert season to dictionary for API responses"""
        return {
            "id": self.id,
            "year": self.year,
            "name": self.name,
            "is_active": self.is_active,
        }
