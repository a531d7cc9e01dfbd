"""Mutation-tracking contracts. Capture depends on these; persistence adapters implement them."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Protocol, Sequence, runtime_checkable

from change_audit.domain.exceptions import TrackingContractError
from change_audit.domain.models.audit import EntityState


@dataclass(frozen=True)
class TrackedProperty:
    """Field-level view of one tracked entity property."""

    name: str
    is_temporary: bool
    is_modified: bool
    original_value: Any
    current_value: Any


@runtime_checkable
class MutationRecord(Protocol):
    """
    Live handle into the persistence layer for one tracked entity.
    Borrowed, not owned: valid until the owning commit scope ends.
    """

    state: EntityState
    entity: Any
    entity_name: str
    entity_type: str
    primary_key_names: Sequence[str]

    def properties(self) -> Iterable[TrackedProperty]:
        """Non-relationship fields of the entity, in mapping order."""
        ...

    def primary_key_values(self) -> Dict[str, Any]:
        """Current primary key. Trustworthy only after commit; raises PrimaryKeyResolutionError."""
        ...


@runtime_checkable
class RevertibleMutation(Protocol):
    """Mutation record whose pending delete can be turned back into an update."""

    def mark_modified(self) -> None:
        ...


@runtime_checkable
class MutationTrackingSession(Protocol):
    """Observes staged changes before they are committed."""

    def detect_changes(self) -> None:
        """Resolve the change set so that entries() reflects every staged mutation."""
        ...

    def entries(self) -> Sequence[MutationRecord]:
        """Tracked entities in tracking order."""
        ...


def require_tracking_session(session: Any) -> MutationTrackingSession:
    """Return session unchanged if it honours the tracking contract. Raises TrackingContractError if not."""
    if not isinstance(session, MutationTrackingSession):
        raise TrackingContractError(
            f"{type(session).__name__} does not implement detect_changes() and entries()"
        )
    return session
