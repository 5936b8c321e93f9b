import logging
import sys


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_LEVEL = logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.
    Each logger gets its own handler and no propagation to avoid duplicates.
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        logger.setLevel(LOG_LEVEL)
        logger.addHandler(handler)
        logger.propagate = False

    return logger


def set_level(level: str) -> None:
    """Apply a level to every logger created through get_logger."""
    global LOG_LEVEL
    LOG_LEVEL = logging.getLevelName(level.upper())
    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and not logger.propagate:
            logger.setLevel(LOG_LEVEL)


def configure_logging(level: str = "INFO"):
    """
    Configure application-wide logging to prevent duplicates.
    """
    set_level(level)

    # Request lines are logged by LoggingMiddleware
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.disabled = True

    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.setLevel(logging.WARNING)

    fastapi_logger = logging.getLogger("fastapi")
    fastapi_logger.setLevel(logging.WARNING)

    # pika is chatty at INFO on every connection event
    logging.getLogger("pika").setLevel(logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
