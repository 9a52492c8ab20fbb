"""Environment variable validation and simulation settings."""

import os
import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5050/api"
DEFAULT_COURSE_PATH = "data/sample_course.json"
DEFAULT_WEEKS = 12


class ConfigurationError(ValueError):
    """Raised when a simulation is configured with invalid or missing inputs."""
    pass


@dataclass(frozen=True)
class SimulationSettings:
    api_url: str
    course_path: str
    verbs_path: Optional[str]
    weeks: int
    seed: Optional[int]
    submit: bool


def validate_environment() -> None:
    """Validate simulator environment variables.

    Raises ConfigurationError if validation fails.
    """
    defaults = {
        "LEARNSIM_API_URL": os.getenv("LEARNSIM_API_URL") or DEFAULT_API_URL,
        "LEARNSIM_COURSE_PATH": os.getenv("LEARNSIM_COURSE_PATH") or DEFAULT_COURSE_PATH,
        "LEARNSIM_WEEKS": os.getenv("LEARNSIM_WEEKS") or str(DEFAULT_WEEKS),
    }

    # Apply defaults before validation so dependent modules see consistent values.
    for var, value in defaults.items():
        if not os.getenv(var):
            os.environ[var] = value
            logger.info("Environment variable %s not set; using default '%s'", var, value)

    optional_vars = {
        "LEARNSIM_VERBS_PATH": "Path to a verb list or xAPI profile JSON",
        "LEARNSIM_SEED": "Random seed for reproducible runs",
    }

    url = os.getenv("LEARNSIM_API_URL", "")
    if not (url.startswith("http://") or url.startswith("https://")):
        raise ConfigurationError(f"Invalid URL format for LEARNSIM_API_URL: {url}")

    weeks = get_env_int("LEARNSIM_WEEKS", DEFAULT_WEEKS)
    if weeks <= 0:
        raise ConfigurationError("LEARNSIM_WEEKS must be a positive integer")
    get_env_int("LEARNSIM_SEED", None)

    for var, description in optional_vars.items():
        if not os.getenv(var):
            logger.debug("Optional environment variable not set: %s (%s)", var, description)


def get_env_bool(name: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on", "enabled"}


def get_env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Get integer value from environment variable."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'") from exc


def load_settings(overrides: Optional[Dict[str, object]] = None) -> SimulationSettings:
    """Build :class:`SimulationSettings` from the environment."""
    validate_environment()
    settings = {
        "api_url": os.environ["LEARNSIM_API_URL"].rstrip("/"),
        "course_path": os.environ["LEARNSIM_COURSE_PATH"],
        "verbs_path": os.getenv("LEARNSIM_VERBS_PATH") or None,
        "weeks": get_env_int("LEARNSIM_WEEKS", DEFAULT_WEEKS),
        "seed": get_env_int("LEARNSIM_SEED", None),
        "submit": get_env_bool("LEARNSIM_SUBMIT"),
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            settings[key] = value
    return SimulationSettings(**settings)
