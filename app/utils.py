"""
Shared helpers: logging setup.
"""
import logging
import sys


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Route all application logs to stdout.

    Existing root handlers are replaced so uvicorn reloads don't duplicate lines.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Get a module logger. Usage: `log = get_logger(__name__)`."""
    return logging.getLogger(name)
