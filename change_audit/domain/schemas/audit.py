"""Pydantic schemas for the audit record wire format. Strict validation, no DB or infrastructure."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from change_audit.domain.models.audit import (
    DomainEventEnvelope,
    EntityState,
    FieldDiff,
    GenericAuditRecord,
    payload_to_jsonable,
)


class FieldDiffSchema(BaseModel):
    """Before/after pair as stored."""

    old: Any = None
    new: Any = None


class DomainEventEnvelopeSchema(BaseModel):
    """Domain event envelope as stored. Payload is the JSON form of the event."""

    event_id: str = Field(..., min_length=1)
    event_type: str = Field(..., min_length=1)
    event_name: str = Field(..., min_length=1)
    payload: Any = None


class AuditRecordSchema(BaseModel):
    """Wire contract of GenericAuditRecord. Field names and state strings must stay stable."""

    correlation_id: str = Field(..., min_length=1)
    sequence: int = Field(..., ge=1, description="1-based position inside the correlation group")
    timestamp: datetime
    user_id: Optional[str] = None
    entity_name: str
    entity_type: str
    state: str
    primary_key: Dict[str, Any]
    changes: Dict[str, FieldDiffSchema]
    domain_events: Optional[List[DomainEventEnvelopeSchema]] = None

    @field_validator("state")
    @classmethod
    def state_must_be_audited_classification(cls, v: str) -> str:
        """Only Added, Modified and Deleted are ever recorded."""
        allowed = (EntityState.ADDED.value, EntityState.MODIFIED.value, EntityState.DELETED.value)
        if v not in allowed:
            raise ValueError(f"state must be one of {allowed}, got {v!r}")
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_record(cls, record: GenericAuditRecord) -> "AuditRecordSchema":
        return cls(
            correlation_id=record.correlation_id,
            sequence=record.sequence,
            timestamp=record.timestamp,
            user_id=record.user_id,
            entity_name=record.entity_name,
            entity_type=record.entity_type,
            state=record.state,
            primary_key=dict(record.primary_key),
            changes={
                name: FieldDiffSchema(old=diff.old, new=diff.new)
                for name, diff in record.changes.items()
            },
            domain_events=(
                [
                    DomainEventEnvelopeSchema(
                        event_id=envelope.event_id,
                        event_type=envelope.event_type,
                        event_name=envelope.event_name,
                        payload=payload_to_jsonable(envelope.payload),
                    )
                    for envelope in record.domain_events
                ]
                if record.domain_events is not None
                else None
            ),
        )

    def to_record(self) -> GenericAuditRecord:
        """Rebuild the immutable record. Event payloads stay in their JSON form."""
        return GenericAuditRecord(
            correlation_id=self.correlation_id,
            sequence=self.sequence,
            timestamp=self.timestamp,
            user_id=self.user_id,
            entity_name=self.entity_name,
            entity_type=self.entity_type,
            state=self.state,
            primary_key=dict(self.primary_key),
            changes={
                name: FieldDiff(old=diff.old, new=diff.new)
                for name, diff in self.changes.items()
            },
            domain_events=(
                tuple(
                    DomainEventEnvelope(
                        event_id=envelope.event_id,
                        event_type=envelope.event_type,
                        event_name=envelope.event_name,
                        payload=envelope.payload,
                    )
                    for envelope in self.domain_events
                )
                if self.domain_events is not None
                else None
            ),
        )
