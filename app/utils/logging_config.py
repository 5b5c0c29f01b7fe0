"""
Logging configuration for F1 Pick'em application
Provides console and rotating file logging with a dedicated scheduler log
"""

import copy
import logging
import logging.handlers
import os


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset_color = self.COLORS["RESET"]

        # Other handlers share the record, so color a copy
        record = copy.copy(record)
        record.levelname = f"{log_color}{record.levelname}{reset_color}"

        return super().format(record)


def setup_logging(app):
    """
    Setup logging for the Flask application

    Args:
        app: Flask application instance
    """

    # Determine log level from config
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear handlers installed by a previous setup_logging call
    for handler in root_logger.handlers[:]:
        if getattr(handler, "_pickem_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    # Console handler with colors (for development)
    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        if app.debug:
            console_formatter = ColoredFormatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s "
                "[%(filename)s:%(lineno)d]",
                datefmt="%H:%M:%S",
            )
        else:
            console_formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        console_handler.setFormatter(console_formatter)
        _attach(root_logger, console_handler)

    if app.config.get("LOG_TO_FILE", True):
        # Create logs directory if it doesn't exist
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        # File handler for application logs
        app_log_file = os.path.join(log_dir, "f1_pickem.log")
        file_handler = logging.handlers.RotatingFileHandler(
            app_log_file, maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        _attach(root_logger, file_handler)

        # Error log file for errors and above
        error_log_file = os.path.join(log_dir, "errors.log")
        error_handler = logging.handlers.RotatingFileHandler(
            error_log_file, maxBytes=5 * 1024 * 1024, backupCount=3  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s "
                "[%(pathname)s:%(lineno)d]",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        _attach(root_logger, error_handler)

        # Scheduler log file for background tasks
        scheduler_log_file = os.path.join(log_dir, "scheduler.log")
        scheduler_handler = logging.handlers.RotatingFileHandler(
            scheduler_log_file, maxBytes=5 * 1024 * 1024, backupCount=3  # 5MB
        )
        scheduler_handler.setLevel(logging.INFO)
        scheduler_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

        # Add scheduler handler only to background job loggers
        for name in ("app.services.scheduler_service", "app.services.reconciliation"):
            job_logger = logging.getLogger(name)
            for handler in job_logger.handlers[:]:
                if getattr(handler, "_pickem_handler", False):
                    job_logger.removeHandler(handler)
                    handler.close()
            _attach(job_logger, scheduler_handler)

    # Configure third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    # Set APScheduler logging to WARNING to reduce verbosity (change to INFO for debugging)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")


def _attach(target_logger, handler):
    # Marked so a repeated setup_logging call can find and replace it
    handler._pickem_handler = True
    target_logger.addHandler(handler)


def get_logger(name):
    """
    Get a logger instance with the specified name

    Args:
        name: Logger name (usually __name__)

    Returns:
        logging.Logger: Configured logger instance
    """
    return logging.getLogger(name)


class ContextualLogger:
    """Logger that includes contextual information"""

    def __init__(self, name, context=None):
        self.logger = get_logger(name)
        self.context = context or {}

    def _format_message(self, message):
        if self.context:
            context_str = " ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{message} [{context_str}]"
        return message

    def debug(self, message, **kwargs):
        self.logger.debug(self._format_message(message), **kwargs)

    def info(self, message, **kwargs):
        self.logger.info(self._format_message(message), **kwargs)

    def warning(self, message, **kwargs):
        self.logger.warning(self._format_message(message), **kwargs)

    def error(self, message, **kwargs):
        self.logger.error(self._format_message(message), **kwargs)

    def exception(self, message, **kwargs):
        self.logger.exception(self._format_message(message), **kwargs)
