"""
Logging setup - one coloured console handler on the "student_collab" logger.

Usage:
    from app.core.logging import get_logger
    logger = get_logger(__name__)
"""
import logging

ROOT_LOGGER_NAME = "student_collab"


class CustomFormatter(logging.Formatter):
    """
    Formats records with an ANSI colour per log level.

    Usage:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter())
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format_str = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"

    FORMATS = {
        logging.DEBUG: dark_grey + format_str + reset,
        logging.INFO: grey + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.format_str)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach the console handler once and set the level."""
    log = logging.getLogger(ROOT_LOGGER_NAME)
    log.setLevel(level.upper())

    if not log.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(CustomFormatter())
        log.addHandler(ch)
        log.propagate = False

    return log


def get_logger(name: str) -> logging.Logger:
    """Child logger under the application logger (e.g. student_collab.app.services.post_service)."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
