"""Domain event dispatch and publish over a tracking session. Run after commit.

Entities are processed one at a time in tracking order. Each entity's queue is
snapshotted and cleared before its events go out, and every event is awaited
before the next. The first failure propagates and stops the run: events already
sent stay sent, and later entities keep their queues untouched. Delivery is
at most once; callers needing more must keep an outbox of their own.
"""

import json
import logging
from typing import Any, List, Protocol

from change_audit.audit.domain_events import event_type_name
from change_audit.audit.tracking import require_tracking_session
from change_audit.domain.capabilities import GeneratesDomainEvents
from change_audit.domain.models.audit import payload_to_jsonable

logger = logging.getLogger(__name__)


class DomainEventDispatcher(Protocol):
    """In-process handler fan-out for domain events."""

    async def dispatch(self, event: Any) -> None:
        ...


class EventPublisher(Protocol):
    """Message bus publisher. Topic is the event's short type name; payload is JSON text."""

    async def publish(self, topic: str, payload: str) -> None:
        ...


def serialize_event(event: Any) -> str:
    """JSON text of a domain event payload."""
    return json.dumps(payload_to_jsonable(event), default=str)


def _entities_with_events(session: Any) -> List[Any]:
    tracking = require_tracking_session(session)
    tracking.detect_changes()
    return [
        mutation.entity
        for mutation in tracking.entries()
        if isinstance(mutation.entity, GeneratesDomainEvents) and mutation.entity.domain_events
    ]


def _drain(entity: Any) -> List[Any]:
    events = list(entity.domain_events)
    entity.domain_events.clear()
    return events


async def dispatch_domain_events(session: Any, dispatcher: DomainEventDispatcher) -> int:
    """Dispatch every pending domain event in session. Returns the number dispatched."""
    dispatched = 0
    for entity in _entities_with_events(session):
        for event in _drain(entity):
            await dispatcher.dispatch(event)
            dispatched += 1
            logger.debug(
                "domain_event_dispatched",
                extra={"event_type": event_type_name(event)},
            )

    logger.info("domain_events_dispatched", extra={"event_count": dispatched})
    return dispatched


async def publish_domain_events(session: Any, publisher: EventPublisher) -> int:
    """Publish every pending domain event in session as JSON. Returns the number published."""
    published = 0
    for entity in _entities_with_events(session):
        for event in _drain(entity):
            await publisher.publish(type(event).__name__, serialize_event(event))
            published += 1
            logger.debug(
                "domain_event_published",
                extra={"event_type": event_type_name(event)},
            )

    logger.info("domain_events_published", extra={"event_count": published})
    return published
