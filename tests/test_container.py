from datetime import datetime, timezone
from itertools import permutations

import pytest

from tourelle.config import Settings
from tourelle.container import (
    ContainerView,
    build_manager_filter,
    build_tag_filter,
    by_created,
    created_before,
    from_docker,
)


def _view(is_manager: bool, managed_tag):
    return ContainerView(
        name="c",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        is_manager=is_manager,
        managed_tag=managed_tag,
    )


@pytest.mark.parametrize("is_manager,managed_tag,expected", [
    (False, "notfoo", False),
    (False, "foo", False),
    (True, "notfoo", False),
    (True, "foo", True),
    (True, None, False),
    (False, None, False),
])
def test_manager_filter_truth_table(is_manager, managed_tag, expected):
    assert build_manager_filter("foo")(_view(is_manager, managed_tag)) is expected


@pytest.mark.parametrize("is_manager,managed_tag,expected", [
    (False, "notfoo", False),
    (True, "notfoo", False),
    (False, None, False),
    (False, "foo", True),
    (True, "foo", True),
])
def test_tag_filter_ignores_manager_flag(is_manager, managed_tag, expected):
    assert build_tag_filter("foo")(_view(is_manager, managed_tag)) is expected


def test_filter_closes_over_tag_by_value():
    tag = "foo"
    container_filter = build_tag_filter(tag)
    tag = "bar"
    assert container_filter(_view(False, "foo")) is True
    assert container_filter(_view(False, tag)) is False


def test_created_before(view):
    older = view("a", datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc))
    newer = view("b", datetime(2025, 1, 1, 10, 5, tzinfo=timezone.utc))
    assert created_before(older, newer) is True
    assert created_before(newer, older) is False
    assert created_before(older, older) is False


def test_by_created_survivor_independent_of_input_order(view):
    t1 = view("t1", datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc))
    t2 = view("t2", datetime(2025, 1, 1, 10, 5, tzinfo=timezone.utc))
    t3 = view("t3", datetime(2025, 1, 1, 10, 10, tzinfo=timezone.utc))
    for ordering in permutations([t1, t2, t3]):
        ordered = by_created(ordering)
        assert [c.name for c in ordered] == ["t1", "t2", "t3"]


def test_by_created_is_stable_for_ties(view):
    same = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
    first = view("first", same)
    second = view("second", same)
    assert [c.name for c in by_created([first, second])] == ["first", "second"]
    assert [c.name for c in by_created([second, first])] == ["second", "first"]


def test_from_docker_projects_labels(settings: Settings, dummy_container):
    container = dummy_container(
        "/tourelle",
        labels={settings.manager_label: "true", settings.tag_label: "prod"},
        created="2025-01-01T10:05:00.123456789Z",
        image_id="sha256:abc",
        image_ref="example/tourelle:latest",
    )
    projected = from_docker(container, settings)
    assert projected.name == "tourelle"
    assert projected.is_manager is True
    assert projected.managed_tag == "prod"
    assert projected.created_at == datetime(2025, 1, 1, 10, 5, 0, 123456, tzinfo=timezone.utc)
    assert projected.image_id == "sha256:abc"
    assert projected.image_ref == "example/tourelle:latest"


@pytest.mark.parametrize("value,expected", [
    ("true", True),
    ("TRUE", True),
    ("1", True),
    ("false", False),
    (None, False),
])
def test_from_docker_manager_flag(settings: Settings, dummy_container, value, expected):
    labels = {settings.manager_label: value} if value is not None else {}
    assert from_docker(dummy_container("app", labels=labels), settings).is_manager is expected
