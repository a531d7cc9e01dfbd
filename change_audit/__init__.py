"""Change audit engine for SQLAlchemy sessions.

Capture field-level diffs of staged inserts, updates and deletes before commit,
finalize them into immutable audit records after commit, and replay records to
reconstruct an entity's state at any point in its history.
"""

from change_audit.audit import (
    PendingAuditEntry,
    build_diff,
    capture_pending_audit_entries,
    collect_domain_events,
    finalize_audit_entries,
    group_records_by_entity,
    reconstruct_entities,
    reconstruct_state,
)
from change_audit.domain import (
    AuditError,
    AuditRecordSchema,
    DomainEventEnvelope,
    EntityState,
    FieldDiff,
    GenericAuditRecord,
    HasDomainEvents,
    PrimaryKeyResolutionError,
    TrackingContractError,
)

__version__ = "0.1.0"

__all__ = [
    "AuditError",
    "AuditRecordSchema",
    "DomainEventEnvelope",
    "EntityState",
    "FieldDiff",
    "GenericAuditRecord",
    "HasDomainEvents",
    "PendingAuditEntry",
    "PrimaryKeyResolutionError",
    "TrackingContractError",
    "build_diff",
    "capture_pending_audit_entries",
    "collect_domain_events",
    "finalize_audit_entries",
    "group_records_by_entity",
    "reconstruct_entities",
    "reconstruct_state",
]
