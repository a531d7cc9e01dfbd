"""Domain models. Audit record shapes."""

from change_audit.domain.models.audit import (
    AUDITED_STATES,
    DomainEventEnvelope,
    EntityState,
    FieldDiff,
    GenericAuditRecord,
    payload_to_jsonable,
)

__all__ = [
    "AUDITED_STATES",
    "DomainEventEnvelope",
    "EntityState",
    "FieldDiff",
    "GenericAuditRecord",
    "payload_to_jsonable",
]
