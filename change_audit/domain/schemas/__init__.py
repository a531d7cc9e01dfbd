"""Pydantic schemas. Wire contract only."""

from change_audit.domain.schemas.audit import (
    AuditRecordSchema,
    DomainEventEnvelopeSchema,
    FieldDiffSchema,
)

__all__ = [
    "AuditRecordSchema",
    "DomainEventEnvelopeSchema",
    "FieldDiffSchema",
]
