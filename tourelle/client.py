from logging import getLogger
from typing import Optional

from docker import DockerClient
from docker.errors import DockerException, ImageNotFound

from .config import Settings
from .container import ContainerView, Filter, from_docker

LOG = getLogger(__name__)


class Client:
    """The handful of engine calls the scheduler and reconciler rely on."""

    def __init__(self, docker: DockerClient, settings: Settings, pull: bool = True):
        self.docker = docker
        self.settings = settings
        self.pull = pull

    def list_containers(self, container_filter: Optional[Filter] = None) -> list[ContainerView]:
        views = [from_docker(container, self.settings) for container in self.docker.containers.list()]
        if container_filter is None:
            return views
        return [view for view in views if container_filter(view)]

    def stop_container(self, container: ContainerView, timeout: float) -> None:
        LOG.info("Stopping %s (%s) with %ss grace period", container.name, container.id[:12], timeout)
        self.docker.api.stop(container.id, timeout=int(timeout))

    def remove_image(self, container: ContainerView) -> None:
        if container.image_id is None:
            LOG.debug("No image recorded for %s; nothing to remove", container.name)
            return
        LOG.info("Removing image %s of %s", container.image_id, container.name)
        self.docker.images.remove(image=container.image_id, force=True)

    def pull_image(self, image_ref: str) -> Optional[str]:
        try:
            return self.docker.images.pull(image_ref).id
        except DockerException as error:
            LOG.error("Failed to pull image %s: %s", image_ref, error)
            return None

    def local_image_id(self, image_ref: str) -> Optional[str]:
        try:
            return self.docker.images.get(image_ref).id
        except ImageNotFound:
            LOG.debug("Image %s not present locally", image_ref)
            return None

    def latest_image_id(self, image_ref: str) -> Optional[str]:
        if self.pull:
            return self.pull_image(image_ref)
        return self.local_image_id(image_ref)
