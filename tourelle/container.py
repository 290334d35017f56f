from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key
from typing import Callable, Iterable, Optional

from docker.models.containers import Container

from .config import Settings
from .utils import parse_created

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ContainerView:
    """Read-only projection of a running container."""

    name: str
    created_at: datetime
    is_manager: bool
    managed_tag: Optional[str]
    id: str = ""
    image_id: Optional[str] = None
    image_ref: Optional[str] = None


Filter = Callable[[ContainerView], bool]


def build_manager_filter(tag: str) -> Filter:
    def _filter(container: ContainerView) -> bool:
        return container.is_manager and container.managed_tag == tag

    return _filter


def build_tag_filter(tag: str) -> Filter:
    def _filter(container: ContainerView) -> bool:
        return container.managed_tag == tag

    return _filter


def created_before(first: ContainerView, second: ContainerView) -> bool:
    return first.created_at < second.created_at


def _compare_created(first: ContainerView, second: ContainerView) -> int:
    if created_before(first, second):
        return -1
    if created_before(second, first):
        return 1
    return 0


def by_created(containers: Iterable[ContainerView]) -> list[ContainerView]:
    """Oldest first; equal timestamps keep their input order."""
    return sorted(containers, key=cmp_to_key(_compare_created))


def from_docker(container: Container, settings: Settings) -> ContainerView:
    labels = container.labels or {}
    manager_value = labels.get(settings.manager_label)
    config = container.attrs.get("Config") or {}
    return ContainerView(
        name=(container.name or "").lstrip("/"),
        created_at=parse_created(container.attrs.get("Created")),
        is_manager=manager_value is not None and manager_value.strip().lower() in _TRUTHY,
        managed_tag=labels.get(settings.tag_label),
        id=container.id,
        image_id=container.attrs.get("Image"),
        image_ref=config.get("Image"),
    )
