"""Change audit engine: capture before commit, finalize after commit, reconstruct any time."""

from change_audit.audit.capture import PendingAuditEntry, capture_pending_audit_entries
from change_audit.audit.diff_builder import build_diff
from change_audit.audit.domain_events import collect_domain_events
from change_audit.audit.finalizer import finalize_audit_entries
from change_audit.audit.reconstructor import (
    entity_key,
    group_records_by_entity,
    reconstruct_entities,
    reconstruct_state,
)
from change_audit.audit.tracking import (
    MutationRecord,
    MutationTrackingSession,
    RevertibleMutation,
    TrackedProperty,
    require_tracking_session,
)

__all__ = [
    "MutationRecord",
    "MutationTrackingSession",
    "PendingAuditEntry",
    "RevertibleMutation",
    "TrackedProperty",
    "build_diff",
    "capture_pending_audit_entries",
    "collect_domain_events",
    "entity_key",
    "finalize_audit_entries",
    "group_records_by_entity",
    "reconstruct_entities",
    "reconstruct_state",
    "require_tracking_session",
]
