from threading import Lock


class SingleFlightGate:
    """One permit: acquire without waiting, release unconditionally.

    Overlapping callers are turned away instead of queued. ``wait_idle`` is the
    only blocking call and is meant for shutdown: it returns once the running
    cycle (if any) is done and keeps the permit so nothing else can start.
    """

    def __init__(self) -> None:
        self._lock = Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    def busy(self) -> bool:
        return self._lock.locked()

    def wait_idle(self) -> None:
        self._lock.acquire()
