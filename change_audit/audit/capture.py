"""Pre-commit capture: turns a tracking session's change set into pending audit entries."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from change_audit.audit.diff_builder import build_diff
from change_audit.audit.domain_events import collect_domain_events
from change_audit.audit.tracking import MutationRecord, require_tracking_session
from change_audit.domain.models.audit import (
    AUDITED_STATES,
    DomainEventEnvelope,
    EntityState,
    FieldDiff,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAuditEntry:
    """
    Transient audit entry produced before commit.

    ``mutation`` is borrowed from the tracking session and is only valid until
    the owning commit scope ends; hold the entry across the commit and hand it
    to finalize_audit_entries() afterwards. Never persist this object.
    ``last_known_key`` is the primary key as seen at capture time (None for
    keys the database has yet to generate) and is only used in error reports.
    """

    correlation_id: str
    sequence: int
    timestamp: datetime
    user_id: Optional[str]
    mutation: MutationRecord
    entity_name: str
    entity_type: str
    state: EntityState
    changes: Mapping[str, FieldDiff]
    domain_events: Optional[Tuple[DomainEventEnvelope, ...]] = None
    last_known_key: Optional[Dict[str, Any]] = None


def _last_known_key(mutation: MutationRecord) -> Dict[str, Any]:
    key_names = set(mutation.primary_key_names)
    return {
        prop.name: prop.current_value
        for prop in mutation.properties()
        if prop.name in key_names
    }


def capture_pending_audit_entries(
    session: Any,
    user_id: Optional[str] = None,
) -> List[PendingAuditEntry]:
    """
    Capture every Added, Modified and Deleted entity of session as a pending entry.

    Forces change detection first. All entries share one correlation id and one
    UTC timestamp; sequence numbers run 1..k over the emitted entries in tracking
    order. Entities whose diff is empty are dropped without consuming a sequence
    number. Reads the session only.
    """
    tracking = require_tracking_session(session)
    tracking.detect_changes()

    correlation_id = str(uuid.uuid4())
    timestamp = datetime.now(timezone.utc)
    sequence = 0
    audits: List[PendingAuditEntry] = []

    for mutation in tracking.entries():
        if mutation.state not in AUDITED_STATES:
            continue

        changes = build_diff(mutation)
        if not changes:
            logger.debug(
                "audit_entry_skipped",
                extra={
                    "correlation_id": correlation_id,
                    "entity_name": mutation.entity_name,
                    "entity_state": mutation.state.value,
                },
            )
            continue

        sequence += 1
        audits.append(
            PendingAuditEntry(
                correlation_id=correlation_id,
                sequence=sequence,
                timestamp=timestamp,
                user_id=user_id,
                mutation=mutation,
                entity_name=mutation.entity_name,
                entity_type=mutation.entity_type,
                state=mutation.state,
                changes=changes,
                domain_events=collect_domain_events(mutation.entity),
                last_known_key=_last_known_key(mutation),
            )
        )

    logger.info(
        "audit_batch_captured",
        extra={
            "correlation_id": correlation_id,
            "entry_count": len(audits),
            "audit_user_id": user_id,
        },
    )
    return audits
