from logging import getLogger
from os import environ
from signal import SIGINT, SIGTERM, signal
from threading import Event

from docker import DockerClient
from docker.errors import DockerException
from requests.exceptions import RequestException

from .actions import check_prereqs
from .client import Client
from .config import ConfigError, Settings, load_settings
from .lifecycle import Controller
from .notifier import Notifier
from .utils import configure_logging

LOG = getLogger(__name__)
EXIT_INTERRUPTED = 1


def build_client(settings: Settings) -> DockerClient:
    try:
        if settings.tls_verify:
            environment = {**environ, "DOCKER_HOST": settings.docker_host, "DOCKER_TLS_VERIFY": "1"}
            return DockerClient.from_env(environment=environment)
        return DockerClient(base_url=settings.docker_host)
    except DockerException as error:
        raise SystemExit(f"Unable to connect to Docker: {error}") from error


def install_signal_handlers(stop_event: Event) -> None:
    def _handle(signum, _frame) -> None:
        LOG.info("Received signal %s; stopping", signum)
        stop_event.set()

    signal(SIGINT, _handle)
    signal(SIGTERM, _handle)


def main() -> None:
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        docker = build_client(settings)
        client = Client(docker, settings, pull=not settings.no_pull)
        controller = Controller(client, settings, Notifier(settings))
    except ConfigError as error:
        raise SystemExit(f"Invalid configuration: {error}") from error

    try:
        check_prereqs(client, settings.tag, settings.cleanup)
    except (DockerException, RequestException) as error:
        raise SystemExit(f"Unable to list manager instances: {error}") from error

    stop_event = Event()
    install_signal_handlers(stop_event)
    controller.run(stop_event)
    raise SystemExit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
