"""Shared fakes for the tracking contracts: hand-built mutation records and sessions."""

from typing import Any, Dict, Iterable, List, Optional

import pytest

from change_audit.audit.tracking import TrackedProperty
from change_audit.domain.models.audit import EntityState


class FakeMutation:
    """In-memory MutationRecord. Primary key resolution can be made to fail."""

    def __init__(
        self,
        state: EntityState,
        props: Iterable[TrackedProperty],
        entity: Any = None,
        entity_name: str = "Widget",
        entity_type: str = "shop.models.Widget",
        primary_key_names: Iterable[str] = ("id",),
        key: Optional[Dict[str, Any]] = None,
        key_error: Optional[Exception] = None,
    ) -> None:
        self.state = state
        self.entity = entity if entity is not None else object()
        self.entity_name = entity_name
        self.entity_type = entity_type
        self.primary_key_names = tuple(primary_key_names)
        self._props = list(props)
        self._key = key
        self._key_error = key_error

    def properties(self) -> List[TrackedProperty]:
        return list(self._props)

    def primary_key_values(self) -> Dict[str, Any]:
        if self._key_error is not None:
            raise self._key_error
        return dict(self._key or {})

    def mark_modified(self) -> None:
        if self.state == EntityState.DELETED:
            self.state = EntityState.MODIFIED


class FakeTrackingSession:
    """In-memory MutationTrackingSession counting detect_changes() calls."""

    def __init__(self, entries: Iterable[FakeMutation]) -> None:
        self._entries = list(entries)
        self.detect_calls = 0

    def detect_changes(self) -> None:
        self.detect_calls += 1

    def entries(self) -> List[FakeMutation]:
        return list(self._entries)


def prop(
    name: str,
    current: Any = None,
    original: Any = None,
    modified: bool = False,
    temporary: bool = False,
) -> TrackedProperty:
    return TrackedProperty(
        name=name,
        is_temporary=temporary,
        is_modified=modified,
        original_value=original,
        current_value=current,
    )


@pytest.fixture
def make_prop():
    return prop


@pytest.fixture
def make_mutation():
    return FakeMutation


@pytest.fixture
def make_session():
    return FakeTrackingSession
