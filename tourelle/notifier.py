from http.client import HTTPConnection, HTTPSConnection
from json import dumps
from logging import Formatter, Handler, LogRecord, getLevelName, getLogger
from threading import Lock
from urllib.parse import urlencode, urlsplit

from .config import Settings

LOG = getLogger(__name__)
PACKAGE_LOGGER = "tourelle"
ENTRY_FORMAT = "%(levelname)s %(message)s"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


def _connect(url: str) -> tuple[HTTPConnection, str]:
    endpoint = urlsplit(url)
    factory = HTTPSConnection if endpoint.scheme == "https" else HTTPConnection
    path = endpoint.path or "/"
    if endpoint.query:
        path = f"{path}?{endpoint.query}"
    return factory(endpoint.netloc), path


def _post(service: str, url: str, body: bytes, content_type: str) -> None:
    connection, path = _connect(url)
    try:
        connection.request("POST", path, body=body, headers={"Content-Type": content_type})
        response = connection.getresponse()
        if response.status >= 300:
            LOG.warning("%s returned %s: %s", service, response.status, response.reason)
    except OSError as error:
        LOG.warning("Failed to send %s notification: %s", service, error)
    finally:
        connection.close()


def notify_pushover(settings: Settings, title: str, message: str) -> None:
    if settings.pushover_token is None or settings.pushover_user is None:
        LOG.debug("Pushover disabled; missing token or user")
        return
    form = {
        "token": settings.pushover_token,
        "user": settings.pushover_user,
        "title": title,
        "message": message,
    }
    _post("Pushover", settings.pushover_api, urlencode(form).encode("ascii"), FORM_CONTENT_TYPE)


def notify_webhook(settings: Settings, title: str, message: str) -> None:
    if settings.webhook_url is None:
        LOG.debug("Webhook disabled; missing URL")
        return
    payload = dumps({"title": title, "message": message}).encode("utf-8")
    _post("webhook", settings.webhook_url, payload, JSON_CONTENT_TYPE)


_TRANSPORTS = {
    "pushover": notify_pushover,
    "webhook": notify_webhook,
}


class _EntryCollector(Handler):
    def __init__(self, level: int):
        super().__init__(level)
        self.setFormatter(Formatter(ENTRY_FORMAT))
        self._entries: list[str] = []
        self._collecting = False
        self._entries_lock = Lock()

    def emit(self, record: LogRecord) -> None:
        with self._entries_lock:
            if not self._collecting:
                return
        try:
            entry = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._entries_lock:
            if self._collecting:
                self._entries.append(entry)

    def begin(self) -> None:
        with self._entries_lock:
            self._entries = []
            self._collecting = True

    def drain(self) -> list[str]:
        with self._entries_lock:
            entries = self._entries
            self._entries = []
            self._collecting = False
        return entries


class Notifier:
    """Batches the log records of one update cycle into a single message.

    Records emitted under the ``tourelle`` logger between ``start_notification``
    and ``send_notification`` at or above ``notifications_level`` are sent to
    every enabled transport. Delivery problems are logged, never raised.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.title = f"Tourelle on {settings.hostname}"
        level = getLevelName(settings.notifications_level)
        if not isinstance(level, int):
            LOG.warning("Unknown notifications level %s; using INFO", settings.notifications_level)
            level = getLevelName("INFO")
        self._collector = _EntryCollector(level)
        if self.enabled():
            getLogger(PACKAGE_LOGGER).addHandler(self._collector)

    def enabled(self) -> bool:
        return bool(self.settings.notifications)

    def close(self) -> None:
        getLogger(PACKAGE_LOGGER).removeHandler(self._collector)

    def start_notification(self) -> None:
        if self.enabled():
            self._collector.begin()

    def send_notification(self) -> None:
        entries = self._collector.drain()
        if not entries:
            return
        self.send("\n".join(entries))

    def send(self, message: str) -> None:
        for name in sorted(self.settings.notifications):
            _TRANSPORTS[name](self.settings, self.title, message)
