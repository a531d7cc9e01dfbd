"""Snapshot of an entity's pending domain events, wrapped in envelopes."""

import uuid
from typing import Any, Optional, Tuple

from change_audit.domain.capabilities import GeneratesDomainEvents
from change_audit.domain.models.audit import DomainEventEnvelope


def event_type_name(event: Any) -> str:
    """Fully-qualified type name of an event object."""
    event_cls = type(event)
    return f"{event_cls.__module__}.{event_cls.__qualname__}"


def collect_domain_events(entity: Any) -> Optional[Tuple[DomainEventEnvelope, ...]]:
    """
    Envelope every pending event of entity, in queue order.
    Returns None (not an empty tuple) when the entity raises no events or has none
    pending. The queue itself is left untouched; clearing belongs to dispatch.
    """
    if not isinstance(entity, GeneratesDomainEvents):
        return None

    events = list(entity.domain_events)
    if not events:
        return None

    return tuple(
        DomainEventEnvelope(
            event_id=str(uuid.uuid4()),
            event_type=event_type_name(event),
            event_name=type(event).__name__,
            payload=event,
        )
        for event in events
    )
