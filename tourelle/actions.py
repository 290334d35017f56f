from logging import getLogger

from docker.errors import DockerException
from requests.exceptions import RequestException

from .client import Client
from .container import Filter, build_manager_filter, by_created

LOG = getLogger(__name__)
DUPLICATE_STOP_TIMEOUT = 60


def check_prereqs(client: Client, tag: str, cleanup: bool) -> None:
    """Make sure only one manager instance is running for ``tag``.

    When several are found, every one but the most recently created is stopped
    (and its image removed when ``cleanup`` is set). Listing errors propagate;
    stop and removal errors are logged and the next duplicate is tried.
    """
    containers = client.list_containers(build_manager_filter(tag))
    if len(containers) <= 1:
        return

    ordered = by_created(containers)
    survivor = ordered[-1]
    LOG.info(
        "Found %d manager instances for tag %s; keeping %s",
        len(ordered),
        tag,
        survivor.name,
    )
    for container in ordered[:-1]:
        try:
            client.stop_container(container, DUPLICATE_STOP_TIMEOUT)
        except (DockerException, RequestException) as error:
            LOG.warning("Could not stop duplicate instance %s: %s", container.name, error)
        if not cleanup:
            continue
        try:
            client.remove_image(container)
        except (DockerException, RequestException) as error:
            LOG.warning("Could not remove image of duplicate instance %s: %s", container.name, error)


def update(client: Client, container_filter: Filter, cleanup: bool, no_restart: bool, timeout: float) -> None:
    LOG.debug(
        "Checking for updated images (cleanup=%s, no_restart=%s, stop_timeout=%ss)",
        cleanup,
        no_restart,
        timeout,
    )
    containers = client.list_containers(container_filter)
    stale = 0
    for container in containers:
        if container.is_manager:
            LOG.debug("Skipping manager instance %s", container.name)
            continue
        if container.image_ref is None:
            LOG.warning("Skipping %s; missing image reference", container.name)
            continue
        latest_id = client.latest_image_id(container.image_ref)
        if latest_id is None:
            continue
        if latest_id == container.image_id:
            LOG.debug("%s is up-to-date", container.name)
            continue
        stale += 1
        LOG.info("Found new %s image (%s) for %s", container.image_ref, _short_id(latest_id), container.name)
    LOG.debug("Checked %d containers; %d stale", len(containers), stale)


def _short_id(identifier: str) -> str:
    return identifier.split(":")[-1][:12]
