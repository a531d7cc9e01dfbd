"""Domain layer: audit record models, wire schemas, entity capabilities, exceptions."""

from change_audit.domain.capabilities import GeneratesDomainEvents, HasDomainEvents
from change_audit.domain.exceptions import (
    AuditError,
    PrimaryKeyResolutionError,
    TrackingContractError,
)
from change_audit.domain.models import (
    DomainEventEnvelope,
    EntityState,
    FieldDiff,
    GenericAuditRecord,
)
from change_audit.domain.schemas import AuditRecordSchema

__all__ = [
    "AuditError",
    "AuditRecordSchema",
    "DomainEventEnvelope",
    "EntityState",
    "FieldDiff",
    "GeneratesDomainEvents",
    "GenericAuditRecord",
    "HasDomainEvents",
    "PrimaryKeyResolutionError",
    "TrackingContractError",
]
