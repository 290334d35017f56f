from datetime import datetime
from types import SimpleNamespace
from typing import Callable, Iterable, Optional

import pytest
from docker.errors import DockerException

from tourelle.config import Settings
from tourelle.container import ContainerView


class DummyContainer:
    def __init__(
        self,
        name: str,
        labels: Optional[dict] = None,
        created: str = "2025-01-01T10:00:00.000000000Z",
        image_id: str = "sha256:old",
        image_ref: str = "repo:tag",
    ):
        self.name = name
        self.id = f"{name}-id"
        self.labels = labels or {}
        self.attrs = {
            "Created": created,
            "Image": image_id,
            "Config": {"Image": image_ref, "Labels": self.labels},
        }


class DummyAPI:
    def __init__(self):
        self.calls: list = []

    def stop(self, cid, timeout=None):
        self.calls.append(("stop", cid, timeout))


class DummyImages:
    def __init__(self, latest: Optional[dict] = None):
        self.calls: list = []
        self.latest = latest or {}

    def remove(self, image, force=False):
        self.calls.append(("remove", image, force))

    def pull(self, ref):
        self.calls.append(("pull", ref))
        return SimpleNamespace(id=self.latest.get(ref, "sha256:old"))

    def get(self, ref):
        self.calls.append(("get", ref))
        return SimpleNamespace(id=self.latest.get(ref, "sha256:old"))


class DummyDocker:
    def __init__(self, containers_list: Optional[Iterable] = None, latest: Optional[dict] = None):
        self.api = DummyAPI()
        self.images = DummyImages(latest)
        self.containers = SimpleNamespace(list=lambda: list(containers_list or []))


class FakeClient:
    """Stands in for tourelle.client.Client and records every call."""

    def __init__(
        self,
        containers: Optional[list[ContainerView]] = None,
        list_error: Optional[Exception] = None,
        stop_errors: Optional[set[str]] = None,
        remove_errors: Optional[set[str]] = None,
    ):
        self.containers = containers or []
        self.list_error = list_error
        self.stop_errors = stop_errors or set()
        self.remove_errors = remove_errors or set()
        self.calls: list = []

    def list_containers(self, container_filter=None):
        self.calls.append(("list",))
        if self.list_error is not None:
            raise self.list_error
        if container_filter is None:
            return list(self.containers)
        return [container for container in self.containers if container_filter(container)]

    def stop_container(self, container, timeout):
        self.calls.append(("stop", container.name, timeout))
        if container.name in self.stop_errors:
            raise DockerException("stop failed")

    def remove_image(self, container):
        self.calls.append(("remove_image", container.name))
        if container.name in self.remove_errors:
            raise DockerException("remove failed")

    def latest_image_id(self, image_ref):
        self.calls.append(("latest", image_ref))
        return "sha256:new"


def make_view(
    name: str,
    created_at: datetime,
    is_manager: bool = True,
    managed_tag: Optional[str] = "prod",
    image_id: str = "sha256:old",
) -> ContainerView:
    return ContainerView(
        name=name,
        created_at=created_at,
        is_manager=is_manager,
        managed_tag=managed_tag,
        id=f"{name}-id",
        image_id=image_id,
        image_ref="repo:tag",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        docker_host="unix://test",
        tls_verify=False,
        tag="prod",
        schedule_spec="@every 3600s",
        cleanup=False,
        no_restart=False,
        no_pull=False,
        stop_timeout=10.0,
        timezone="UTC",
        log_level="INFO",
        notifications=frozenset(),
        notifications_level="INFO",
        pushover_token=None,
        pushover_user=None,
        pushover_api="https://example",
        webhook_url=None,
        manager_label="tourelle.manager",
        tag_label="tourelle.tag",
        hostname="testhost",
    )


@pytest.fixture
def notifier_settings(settings: Settings) -> Settings:
    data = settings.__dict__ | {
        "notifications": frozenset({"pushover", "webhook"}),
        "pushover_token": "token",
        "pushover_user": "user",
        "webhook_url": "https://hook.example/hit",
    }
    return Settings(**data)


@pytest.fixture
def view() -> Callable[..., ContainerView]:
    return make_view


@pytest.fixture
def fake_client() -> Callable[..., FakeClient]:
    def _make(*args, **kwargs):
        return FakeClient(*args, **kwargs)
    return _make


@pytest.fixture
def dummy_docker() -> Callable[..., DummyDocker]:
    def _make(containers_list: Optional[Iterable] = None, latest: Optional[dict] = None):
        return DummyDocker(containers_list=containers_list, latest=latest)
    return _make


@pytest.fixture
def dummy_container() -> Callable[..., DummyContainer]:
    def _make(name: str, **kwargs):
        return DummyContainer(name, **kwargs)
    return _make
