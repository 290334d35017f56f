import re
from datetime import datetime, timedelta
from logging import getLogger
from threading import Event, Lock, Thread
from typing import Callable, Optional

from croniter import croniter

from .config import ConfigError
from .utils import now_tz, parse_duration

LOG = getLogger(__name__)
_EVERY = re.compile(r"^@every\s+(\S+)$")


class IntervalSchedule:
    def __init__(self, interval: timedelta):
        # Sub-second intervals are rounded up to one second.
        self.interval = max(interval, timedelta(seconds=1))

    def next_after(self, reference: datetime) -> datetime:
        return reference.replace(microsecond=0) + self.interval

    def __repr__(self) -> str:
        return f"IntervalSchedule({self.interval.total_seconds():.0f}s)"


class CronSchedule:
    def __init__(self, expression: str):
        self.expression = expression

    def next_after(self, reference: datetime) -> datetime:
        return croniter(self.expression, reference, ret_type=datetime).get_next(datetime)

    def __repr__(self) -> str:
        return f"CronSchedule({self.expression!r})"


def _to_croniter(expression: str) -> str:
    # Fields lead with seconds and day-of-week may be omitted;
    # croniter wants seconds last and day-of-week present.
    fields = expression.split()
    if len(fields) == 5:
        fields = fields + ["*"]
    if len(fields) == 6:
        return " ".join(fields[1:] + fields[:1])
    return expression


def parse_schedule(spec: str):
    """Turn ``@every 5m``, ``@daily`` or a seconds-first cron expression into a schedule.

    Cron expressions take ``sec min hour dom month [dow]``, so ``0 */5 * * *``
    fires every five minutes.
    """
    text = spec.strip()
    every = _EVERY.match(text)
    if every is not None:
        try:
            interval = parse_duration(every.group(1))
        except (ValueError, OverflowError) as error:
            raise ConfigError(f"Invalid schedule {spec!r}: {error}") from error
        if interval <= timedelta(0):
            raise ConfigError(f"Invalid schedule {spec!r}: interval must be positive")
        return IntervalSchedule(interval)
    expression = _to_croniter(text)
    if not croniter.is_valid(expression):
        raise ConfigError(f"Invalid schedule {spec!r}")
    return CronSchedule(expression)


class Scheduler:
    """Fires ``callback`` on its own thread each time the schedule comes due.

    Ticks never wait for earlier callbacks to finish; callers that must not
    overlap have to guard themselves.
    """

    def __init__(self, spec: str, callback: Callable[[], object], timezone: str = "UTC"):
        self.spec = spec
        self.schedule = parse_schedule(spec)
        self.callback = callback
        self.timezone = timezone
        self._stop = Event()
        self._lock = Lock()
        self._thread: Optional[Thread] = None
        self._next_run: Optional[datetime] = None

    def next_run(self) -> Optional[datetime]:
        with self._lock:
            if self._next_run is None and self._thread is None:
                return self.schedule.next_after(now_tz(self.timezone))
            return self._next_run

    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            self._stop.clear()
            self._next_run = self.schedule.next_after(now_tz(self.timezone))
            self._thread = Thread(target=self._run, name="tourelle-scheduler", daemon=True)
            self._thread.start()
        LOG.debug("Scheduler started with %r", self.schedule)

    def stop(self) -> None:
        self._stop.set()
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join()
        with self._lock:
            self._thread = None
            self._next_run = None

    def _run(self) -> None:
        while True:
            with self._lock:
                next_run = self._next_run
            delay = (next_run - now_tz(self.timezone)).total_seconds()
            if self._stop.wait(timeout=max(0.0, delay)):
                return
            current = now_tz(self.timezone)
            if current < next_run:
                continue
            with self._lock:
                self._next_run = self.schedule.next_after(current)
            Thread(target=self._fire, name="tourelle-tick", daemon=True).start()

    def _fire(self) -> None:
        try:
            self.callback()
        except Exception as error:
            LOG.error("Scheduled run failed: %s", error)
