"""Logging setup and npm-style level names."""

import logging
from pathlib import Path

# Level names accepted by the log_level setting, ordered quietest-last.
LEVELS = {
    "silly": 5,
    "verbose": logging.DEBUG,
    "info": logging.INFO,
    "http": 25,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "silent": logging.CRITICAL + 10,
}


def to_logging_level(name: str) -> int:
    try:
        return LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log level {name!r}; expected one of {', '.join(LEVELS)}") from None


def setup_logging(level: str = "warn", log_file: str | Path | None = None):
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    # Only set our loggers to the requested level, not third-party libraries
    logging.getLogger("downcache").setLevel(to_logging_level(level))
