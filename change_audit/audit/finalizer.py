"""Post-commit finalization: pending entries become immutable, serialization-ready records."""

import logging
from typing import Iterable, List

from change_audit.audit.capture import PendingAuditEntry
from change_audit.domain.exceptions import PrimaryKeyResolutionError
from change_audit.domain.models.audit import GenericAuditRecord

logger = logging.getLogger(__name__)


def _resolve_primary_key(entry: PendingAuditEntry) -> dict:
    try:
        return dict(entry.mutation.primary_key_values())
    except PrimaryKeyResolutionError:
        raise
    except Exception as e:
        raise PrimaryKeyResolutionError(
            entry.entity_name,
            entry.last_known_key,
            str(e) or type(e).__name__,
        ) from e


def finalize_audit_entries(pending: Iterable[PendingAuditEntry]) -> List[GenericAuditRecord]:
    """
    Convert pending entries into GenericAuditRecords, one for one and in order.

    Must run after the owning commit has completed: primary keys are read from
    the borrowed mutation records now, so database-generated keys are filled in.
    Raises PrimaryKeyResolutionError naming the entity when a record can no
    longer yield its key (detached entity, disposed session, rolled-back insert).
    """
    records: List[GenericAuditRecord] = []

    for entry in pending:
        records.append(
            GenericAuditRecord(
                correlation_id=entry.correlation_id,
                sequence=entry.sequence,
                timestamp=entry.timestamp,
                user_id=entry.user_id,
                entity_name=entry.entity_name,
                entity_type=entry.entity_type,
                state=entry.state.value,
                primary_key=_resolve_primary_key(entry),
                changes=entry.changes,
                domain_events=entry.domain_events,
            )
        )

    if records:
        logger.info(
            "audit_batch_finalized",
            extra={
                "correlation_id": records[0].correlation_id,
                "record_count": len(records),
            },
        )
    return records
