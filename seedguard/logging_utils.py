from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = "/var/log/seedguard.log"
FALLBACK_LOG_NAME = "seedguard.log"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(value: Union[str, int]) -> int:
    """Accept a level name from settings (``debug``, ``info``...) or a number."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _LEVELS:
        return _LEVELS[value.strip().lower()]
    raise ConfigurationError(
        f"unknown log level {value!r}",
        hint="expected one of: " + ", ".join(_LEVELS),
    )


def _open_log_file(log_path: str) -> logging.FileHandler:
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path)
    except OSError:
        # /var/log can still be read-only this early in first boot
        return logging.FileHandler(Path.cwd() / FALLBACK_LOG_NAME)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    *,
    level: Union[str, int] = logging.INFO,
    console: bool = True,
) -> str:
    """Send seedguard's decisions to ``log_path`` (and stderr if ``console``).

    Handlers go on the ``seedguard`` logger only. A second call just changes
    the level and keeps the file picked the first time.

    Returns the log file actually written to.
    """

    pkg = logging.getLogger(__package__)
    pkg.setLevel(parse_level(level))

    for h in pkg.handlers:
        if isinstance(h, logging.FileHandler):
            return h.baseFilename

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    file_handler = _open_log_file(log_path)
    file_handler.setFormatter(fmt)
    pkg.addHandler(file_handler)

    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        pkg.addHandler(stream)

    logger.info("Logging to %s (requested %s)", file_handler.baseFilename, log_path)
    return file_handler.baseFilename
