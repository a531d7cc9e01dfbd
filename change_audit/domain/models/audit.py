"""Audit record model. Immutable, serialization-ready, no ORM or infrastructure."""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel


class EntityState(str, Enum):
    """Classification of a tracked entity. Values are the stable wire strings."""

    DETACHED = "Detached"
    UNCHANGED = "Unchanged"
    DELETED = "Deleted"
    MODIFIED = "Modified"
    ADDED = "Added"


# Only these classifications produce audit entries.
AUDITED_STATES = frozenset({EntityState.ADDED, EntityState.MODIFIED, EntityState.DELETED})


def payload_to_jsonable(payload: Any) -> Any:
    """Plain representation of a domain event payload for JSON encoding."""
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    return payload


@dataclass(frozen=True)
class FieldDiff:
    """Before/after value pair of one field."""

    old: Any = None
    new: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"old": self.old, "new": self.new}


@dataclass(frozen=True)
class DomainEventEnvelope:
    """A pending domain event wrapped with identity and type metadata."""

    event_id: str
    event_type: str
    event_name: str
    payload: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "event_name": self.event_name,
            "payload": payload_to_jsonable(self.payload),
        }


@dataclass(frozen=True)
class GenericAuditRecord:
    """
    Finalized audit record: one entity change inside one correlation group.
    The only audit shape intended for storage or transmission. Immutable:
    primary_key and changes are exposed as read-only mappings.
    """

    correlation_id: str
    sequence: int
    timestamp: datetime
    user_id: Optional[str]
    entity_name: str
    entity_type: str
    state: str
    primary_key: Mapping[str, Any]
    changes: Mapping[str, FieldDiff]
    domain_events: Optional[Tuple[DomainEventEnvelope, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "primary_key", MappingProxyType(dict(self.primary_key)))
        object.__setattr__(self, "changes", MappingProxyType(dict(self.changes)))
        if self.domain_events is not None:
            object.__setattr__(self, "domain_events", tuple(self.domain_events))

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON storage or logging."""
        return {
            "correlation_id": self.correlation_id,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "entity_name": self.entity_name,
            "entity_type": self.entity_type,
            "state": self.state,
            "primary_key": dict(self.primary_key),
            "changes": {name: diff.to_dict() for name, diff in self.changes.items()},
            "domain_events": (
                [envelope.to_dict() for envelope in self.domain_events]
                if self.domain_events is not None
                else None
            ),
        }
