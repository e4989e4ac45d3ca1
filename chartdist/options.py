"""Settings shared by the chart helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

DEFAULT_ANNOTATIONS_KEY = "images"
DEFAULT_MAX_RETRIES = 3
DEFAULT_VALUES_FILE = "values.yaml"


def _silent_logger() -> logging.Logger:
    logger = logging.getLogger("chartdist.silent")
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


@dataclass
class Auth:
    """Registry credentials."""

    username: str = ""
    password: str = ""


@dataclass
class Configuration:
    """Options used when reading, annotating and moving charts."""

    annotations_key: str = DEFAULT_ANNOTATIONS_KEY
    log: logging.Logger = field(default_factory=_silent_logger)
    artifacts_dir: str = ""
    fetch_artifacts: bool = False
    max_retries: int = DEFAULT_MAX_RETRIES
    insecure_mode: bool = False
    auth: Auth = field(default_factory=Auth)
    values_files: list[str] = field(default_factory=lambda: [DEFAULT_VALUES_FILE])

    def has_credentials(self) -> bool:
        """Return True when both a username and a password are set."""
        return bool(self.auth.username and self.auth.password)