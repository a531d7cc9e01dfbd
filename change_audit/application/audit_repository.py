"""Audit record sink protocol. Application layer depends on this; storage adapters implement it."""

from typing import Protocol, Sequence

from change_audit.domain.models.audit import GenericAuditRecord


class AuditRecordSink(Protocol):
    """Protocol for persisting or shipping finalized, immutable audit records."""

    async def save_many(self, records: Sequence[GenericAuditRecord]) -> None:
        """Persist a finalized correlation group. Must not mutate the records."""
        ...
