from datetime import datetime, timezone

from app import db


class User(db.Model):
    """Pick owner.

    Accounts, sessions, and passwords are managed outside this package; only
    the identity and display fields used by picks and the leaderboard live here.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    is_admin = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User {self.email}>"

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "is_admin": bool(self.is_admin),
        }
