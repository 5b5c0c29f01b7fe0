import logging
import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)

    # Setup logging
    from app.utils.logging_config import setup_logging

    setup_logging(app)

    # Show configuration warnings
    show_config_warnings(app, config_name)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Initialize and start background scheduler
    if not app.config.get("TESTING", False):
        from app.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def show_config_warnings(app, config_name):
    """Log configuration status"""
    logger.info(f"F1 Pick'em starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        if "memory" in db_url:
            logger.info("Using SQLite database (in-memory)")
        else:
            logger.info("Using SQLite database (app.db file)")
    elif "postgresql" in db_url:
        # Hide credentials, show host and database only
        host_part = db_url.rsplit("@", 1)[-1]
        logger.info(f"Using PostgreSQL database at {host_part}")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )

    logger.info(
        f"Results source: {app.config.get('OPENF1_API_BASE_URL')} "
        f"(sync delay {app.config.get('RESULTS_SYNC_DELAY_HOURS')}h)"
    )


from app import models  # noqa: F401, E402 - imported for model registration
