"""Structured logging configuration."""
import logging
import sys
from pythonjsonlogger import jsonlogger

# Chatty client libraries that log every provider request
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO") -> None:
    level = (level or "INFO").upper()
    logger = logging.getLogger()
    logger.setLevel(level)
    if logger.handlers:
        logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
