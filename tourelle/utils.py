import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from logging import basicConfig, getLogger
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
LOG = getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}
_CREATED_FRACTION = re.compile(r"\.(\d+)")


def configure_logging(level: str) -> None:
    basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, level=level)


def now_tz(tz_name: str) -> datetime:
    try:
        return datetime.now(ZoneInfo(tz_name))
    except Exception as error:
        LOG.warning("Falling back to UTC; invalid timezone %s: %s", tz_name, error)
        return datetime.now(timezone.utc)


def parse_duration(value: str) -> timedelta:
    """Parse ``300``, ``10s``, ``5m`` or ``1h30m`` style durations.

    A bare number is taken as seconds. Raises ``ValueError`` on anything else.
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    try:
        return timedelta(seconds=sign * float(text))
    except ValueError:
        pass
    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return timedelta(seconds=sign * total)


def parse_created(value: Optional[str]) -> datetime:
    # Docker reports nanoseconds, e.g. 2025-01-01T00:00:00.123456789Z
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    sanitized = _CREATED_FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), value.strip())
    if sanitized.endswith("Z"):
        sanitized = sanitized[:-1] + "+00:00"
    try:
        created = datetime.fromisoformat(sanitized)
    except ValueError:
        LOG.debug("Unparseable creation time %s", value)
        return datetime.min.replace(tzinfo=timezone.utc)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created
