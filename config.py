import os

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


class Config:
    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "f1_pickem_db"
            db_user = os.environ.get("DB_USER") or "f1_user"
            db_password = os.environ.get("DB_PASSWORD") or "f1_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "app.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Results source (OpenF1)
    OPENF1_API_BASE_URL = (
        os.environ.get("OPENF1_API_BASE_URL") or "https://api.openf1.org/v1"
    )
    OPENF1_REQUEST_TIMEOUT = float(os.environ.get("OPENF1_REQUEST_TIMEOUT") or 30)

    # Race lifecycle
    RESULTS_SYNC_DELAY_HOURS = float(os.environ.get("RESULTS_SYNC_DELAY_HOURS") or 5)
    PICK_DEADLINE_MINUTES = int(os.environ.get("PICK_DEADLINE_MINUTES") or 10)

    # Scheduler configuration
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "True").lower() == "true"
    RECONCILIATION_INTERVAL_MINUTES = int(
        os.environ.get("RECONCILIATION_INTERVAL_MINUTES") or 15
    )

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"


class ProductionConfig(Config):
    """Production configuration"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if self.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            import warnings

            warnings.warn(
                "PRODUCTION WARNING: using SQLite. Set DATABASE_URL or DB_TYPE=postgresql.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
