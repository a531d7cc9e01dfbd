# Application layer: stamping, domain event delivery and the audited unit of work.

from change_audit.application.audit_repository import AuditRecordSink
from change_audit.application.event_dispatch import (
    DomainEventDispatcher,
    EventPublisher,
    dispatch_domain_events,
    publish_domain_events,
    serialize_event,
)
from change_audit.application.exceptions import (
    ApplicationError,
    AuditPersistenceError,
    StampingError,
)
from change_audit.application.stamping import (
    apply_audit_values,
    apply_soft_deletion,
    apply_tenant_values,
)
from change_audit.application.unit_of_work import AuditedUnitOfWork

__all__ = [
    "ApplicationError",
    "AuditPersistenceError",
    "AuditRecordSink",
    "AuditedUnitOfWork",
    "DomainEventDispatcher",
    "EventPublisher",
    "StampingError",
    "apply_audit_values",
    "apply_soft_deletion",
    "apply_tenant_values",
    "dispatch_domain_events",
    "publish_domain_events",
    "serialize_event",
]
