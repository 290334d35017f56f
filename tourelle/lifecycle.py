from logging import getLogger
from threading import Event
from typing import Callable, Optional

from .actions import update as default_update
from .client import Client
from .config import Settings
from .container import Filter, build_tag_filter
from .gate import SingleFlightGate
from .notifier import Notifier
from .scheduler import Scheduler

LOG = getLogger(__name__)

UpdateOperation = Callable[[Client, Filter, bool, bool, float], None]


class Controller:
    """Runs update cycles on schedule, one at a time, and shuts down between them."""

    def __init__(
        self,
        client: Client,
        settings: Settings,
        notifier: Notifier,
        update: UpdateOperation = default_update,
        gate: Optional[SingleFlightGate] = None,
    ):
        self.client = client
        self.settings = settings
        self.notifier = notifier
        self.update = update
        self.gate = gate or SingleFlightGate()
        self.tag_filter = build_tag_filter(settings.tag)
        self.scheduler = Scheduler(settings.schedule_spec, self.run_cycle, timezone=settings.timezone)

    def run_cycle(self) -> bool:
        if not self.gate.try_acquire():
            LOG.debug("Skipped another update already running.")
            return False
        try:
            self.notifier.start_notification()
            try:
                self.update(
                    self.client,
                    self.tag_filter,
                    self.settings.cleanup,
                    self.settings.no_restart,
                    self.settings.stop_timeout,
                )
            except Exception as error:
                LOG.error("Update cycle failed: %s", error)
            self.notifier.send_notification()
        finally:
            self.gate.release()
        next_run = self.scheduler.next_run()
        if next_run is not None:
            LOG.debug("Scheduled next run: %s", next_run.isoformat())
        return True

    def start(self) -> None:
        LOG.info("Watching container tag: %s", self.settings.tag)
        self.scheduler.start()
        first_run = self.scheduler.next_run()
        LOG.info("First run: %s", first_run.isoformat() if first_run else "unscheduled")
        if self.notifier.enabled() and first_run is not None:
            self.notifier.send(f"Watching tag {self.settings.tag}; first run at {first_run.isoformat()}")

    def shutdown(self) -> None:
        self.scheduler.stop()
        LOG.info("Waiting for running update to be finished...")
        self.gate.wait_idle()
        LOG.info("No update running; shutting down")

    def run(self, stop_event: Event) -> None:
        self.start()
        while not stop_event.wait(timeout=1):
            pass
        self.shutdown()
