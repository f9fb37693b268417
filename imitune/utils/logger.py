"""Logging setup for ImiTune.

Handlers are attached once, to the ``imitune`` package logger. Module loggers
are its children and propagate to it.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from imitune.config.config_loader import config

ROOT_LOGGER = "imitune"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


class EmojiFormatter(logging.Formatter):
    """Prefixes console lines with a level indicator."""

    EMOJI_MAP = {
        logging.DEBUG: "🐛",
        logging.INFO: "🟢",
        logging.WARNING: "🟡",
        logging.ERROR: "🛑",
        logging.CRITICAL: "🛑",
    }

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        emoji = self.EMOJI_MAP.get(record.levelno)
        return f"{emoji} {line}" if emoji else line


def _daily_log_file(log_dir: Path) -> Path:
    return log_dir / f"imitune-{datetime.now():%Y-%m-%d}.log"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    level_name = str(config.get("logging.level", "INFO")).upper()
    log_format = config.get("logging.format", DEFAULT_FORMAT)
    log_dir = Path(config.get("logging.directory", "logs"))

    root.setLevel(getattr(logging, level_name, logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(EmojiFormatter(log_format))
    root.addHandler(console_handler)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(_daily_log_file(log_dir), mode="a")
    except OSError as e:
        root.warning(f"File logging disabled ({log_dir}): {e}")
    else:
        file_handler.setFormatter(logging.Formatter(log_format))
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def setup_logger(name: str) -> logging.Logger:
    """Get a logger in the ``imitune`` hierarchy, configuring it on first use.

    Args:
        name: Logger name, typically ``__name__``. Names outside the package
            (``__main__`` for instance) are nested under it.

    Returns:
        Logger that writes to the console and the daily log file.
    """
    _configure_root()
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
