from dataclasses import dataclass
from os import getenv
from socket import gethostname
from typing import Optional

from .utils import parse_duration

DEFAULT_DOCKER_HOST = "unix://var/run/docker.sock"
DEFAULT_MANAGER_LABEL = "tourelle.manager"
DEFAULT_TAG_LABEL = "tourelle.tag"
DEFAULT_POLL_INTERVAL = 300
DEFAULT_STOP_TIMEOUT = 10.0
DEFAULT_PUSHOVER_API = "https://api.pushover.net/1/messages.json"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_NOTIFICATIONS_LEVEL = "INFO"
DEFAULT_TZ = "UTC"
ALL_NOTIFICATION_TYPES = frozenset({"pushover", "webhook"})


class ConfigError(ValueError):
    """Raised for configuration that must stop the process before it starts."""


@dataclass(frozen=True)
class Settings:
    docker_host: str
    tls_verify: bool
    tag: str
    schedule_spec: str
    cleanup: bool
    no_restart: bool
    no_pull: bool
    stop_timeout: float
    timezone: str
    log_level: str
    notifications: frozenset[str]
    notifications_level: str
    pushover_token: Optional[str]
    pushover_user: Optional[str]
    pushover_api: str
    webhook_url: Optional[str]
    manager_label: str
    tag_label: str
    hostname: str


def resolve_schedule(schedule: Optional[str], interval: Optional[int]) -> str:
    """Pick the cron expression or synthesize one from the poll interval.

    The two are mutually exclusive; ``interval`` falls back to five minutes.
    """
    if schedule is not None and interval is not None:
        raise ConfigError("Only schedule or interval can be defined, not both.")
    if schedule is not None:
        cleaned = schedule.strip()
        if not cleaned:
            raise ConfigError("Schedule must not be empty.")
        return cleaned
    seconds = DEFAULT_POLL_INTERVAL if interval is None else interval
    if seconds <= 0:
        raise ConfigError(f"Poll interval must be a positive number of seconds, got {seconds}.")
    return f"@every {seconds}s"


def load_settings() -> Settings:
    tag = (getenv("TOURELLE_TAG") or "").strip()
    if not tag:
        raise ConfigError("Please specify a tag to check for on other containers (TOURELLE_TAG).")

    schedule_spec = resolve_schedule(getenv("TOURELLE_SCHEDULE"), _env_interval("TOURELLE_POLL_INTERVAL"))

    stop_timeout = _env_seconds("TOURELLE_TIMEOUT", DEFAULT_STOP_TIMEOUT)
    if stop_timeout < 0:
        raise ConfigError("Please specify a positive value for timeout value.")

    log_level = getenv("TOURELLE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if _env_bool("TOURELLE_DEBUG", False):
        log_level = "DEBUG"

    return Settings(
        docker_host=getenv("DOCKER_HOST", DEFAULT_DOCKER_HOST),
        tls_verify=_env_bool("DOCKER_TLS_VERIFY", False),
        tag=tag,
        schedule_spec=schedule_spec,
        cleanup=_env_bool("TOURELLE_CLEANUP", False),
        no_restart=_env_bool("TOURELLE_NO_RESTART", False),
        no_pull=_env_bool("TOURELLE_NO_PULL", False),
        stop_timeout=stop_timeout,
        timezone=getenv("TOURELLE_TZ", DEFAULT_TZ),
        log_level=log_level,
        notifications=_env_csv_set("TOURELLE_NOTIFICATIONS", ""),
        notifications_level=getenv("TOURELLE_NOTIFICATIONS_LEVEL", DEFAULT_NOTIFICATIONS_LEVEL).upper(),
        pushover_token=getenv("TOURELLE_PUSHOVER_TOKEN"),
        pushover_user=getenv("TOURELLE_PUSHOVER_USER"),
        pushover_api=getenv("TOURELLE_PUSHOVER_API", DEFAULT_PUSHOVER_API),
        webhook_url=getenv("TOURELLE_WEBHOOK_URL"),
        manager_label=getenv("TOURELLE_MANAGER_LABEL", DEFAULT_MANAGER_LABEL),
        tag_label=getenv("TOURELLE_TAG_LABEL", DEFAULT_TAG_LABEL),
        hostname=getenv("TOURELLE_HOSTNAME") or gethostname(),
    )


def _env_bool(name: str, default: bool) -> bool:
    value = getenv(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    return lowered in {"1", "true", "yes", "on"}


def _env_interval(name: str) -> Optional[int]:
    # Presence matters here: a set interval conflicts with a set schedule.
    value = getenv(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as error:
        raise ConfigError(f"Invalid {name} {value!r}; expected whole seconds") from error


def _env_seconds(name: str, default: float) -> float:
    value = getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return parse_duration(value).total_seconds()
    except (ValueError, OverflowError) as error:
        raise ConfigError(f"Invalid {name} {value!r}: {error}") from error


def _env_csv_set(name: str, default: str) -> frozenset[str]:
    raw = getenv(name, default)
    items = {item.strip().lower() for item in raw.replace(" ", ",").split(",") if item.strip()}
    if "all" in items:
        return ALL_NOTIFICATION_TYPES
    unknown = items - ALL_NOTIFICATION_TYPES
    if unknown:
        raise ConfigError(f"Unknown notification types: {', '.join(sorted(unknown))}")
    return frozenset(items)
