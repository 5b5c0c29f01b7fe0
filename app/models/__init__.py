from app import db  # noqa: F401 - imported for model imports

from .driver import Driver
from .pick import Pick
from .race import Race, RaceStatus
from .race_result import RaceResult
from .season import Season
from .user import User
from .user_season_stats import UserSeasonStats

__all__ = [
    "User",
    "Season",
    "Race",
    "RaceStatus",
    "Driver",
    "Pick",
    "RaceResult",
    "UserSeasonStats",
]
