import logging
import sys

LOGGER_NAME = "repboard"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"name": "%(name)s", "message": "%(message)s"}'
)

# httpx logs every request at INFO; a refresh issues hundreds of eth_calls
NOISY_LOGGERS = ("httpx", "httpcore")


def _normalize_level(level: int | str) -> int | str:
    if isinstance(level, str):
        return level.strip().upper()
    return level


def configure_logging(level: int | str = logging.INFO, json_format: bool = False) -> logging.Logger:
    """
    Configure the repboard logger.

    Args:
        level: Logging level (e.g., logging.INFO, "debug"); names are case-insensitive
        json_format: Whether to emit one JSON object per log line

    Returns:
        The configured logger instance.
    """
    level = _normalize_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(logging.Formatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    # uvicorn installs its own root handlers
    logger.propagate = False

    if logger.getEffectiveLevel() > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a child logger of repboard, e.g. get_logger("chain.reader")."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
