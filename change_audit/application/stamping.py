"""Audit, tenant and soft-delete stamping over a tracking session. Run before capture.

Capabilities are resolved once per entity through the protocols in
change_audit.domain.capabilities. A setter that fails (read-only property,
validator rejecting the value) is logged as ``stamp_property_failed`` and the
save goes on; with strict=True it raises StampingError instead.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from change_audit.application.exceptions import StampingError
from change_audit.audit.tracking import RevertibleMutation, require_tracking_session
from change_audit.domain.capabilities import (
    CreationAudited,
    DeletionAudited,
    HasCreationTime,
    HasDeletionTime,
    HasModificationTime,
    HasTenant,
    ModificationAudited,
    SoftDelete,
)
from change_audit.domain.exceptions import TrackingContractError
from change_audit.domain.models.audit import EntityState

logger = logging.getLogger(__name__)


def _try_set(entity: Any, name: str, value: Any, strict: bool) -> bool:
    try:
        setattr(entity, name, value)
    except Exception as e:
        logger.warning(
            "stamp_property_failed",
            extra={
                "entity_name": type(entity).__name__,
                "property": name,
                "error": str(e),
            },
        )
        if strict:
            raise StampingError(
                f"Cannot set {type(entity).__name__}.{name}: {e}"
            ) from e
        return False
    return True


def apply_soft_deletion(session: Any, user_id: Optional[str], strict: bool = False) -> int:
    """
    Turn deletes of SoftDelete entities into updates that set is_deleted.
    Deletion time and deleting user are stamped where the entity carries them.
    Returns the number of entities whose is_deleted flag was set. Raises
    TrackingContractError when a delete can no longer be reverted.
    """
    tracking = require_tracking_session(session)
    tracking.detect_changes()
    timestamp = datetime.now(timezone.utc)
    count = 0

    for mutation in tracking.entries():
        entity = mutation.entity
        if mutation.state != EntityState.DELETED or not isinstance(entity, SoftDelete):
            continue
        if not isinstance(mutation, RevertibleMutation):
            raise TrackingContractError(
                f"{type(mutation).__name__} cannot revert a pending delete"
            )

        mutation.mark_modified()
        flagged = _try_set(entity, "is_deleted", True, strict)

        if isinstance(entity, HasDeletionTime):
            _try_set(entity, "deleted_at", timestamp, strict)

        if isinstance(entity, DeletionAudited):
            _try_set(entity, "deleted_by", user_id, strict)

        if flagged:
            count += 1

    return count


def apply_audit_values(session: Any, user_id: Optional[str], strict: bool = False) -> int:
    """
    Stamp creation fields on Added entities and modification fields on Added and
    Modified entities. One UTC timestamp is shared across the call.
    Returns the number of entities with at least one field stamped.
    """
    tracking = require_tracking_session(session)
    tracking.detect_changes()
    timestamp = datetime.now(timezone.utc)
    count = 0

    for mutation in tracking.entries():
        entity = mutation.entity
        if mutation.state not in (EntityState.ADDED, EntityState.MODIFIED):
            continue

        stamped = []
        if mutation.state == EntityState.ADDED:
            if isinstance(entity, HasCreationTime):
                stamped.append(_try_set(entity, "created_at", timestamp, strict))
            if isinstance(entity, CreationAudited):
                stamped.append(_try_set(entity, "created_by", user_id, strict))

        if isinstance(entity, HasModificationTime):
            stamped.append(_try_set(entity, "updated_at", timestamp, strict))
        if isinstance(entity, ModificationAudited):
            stamped.append(_try_set(entity, "updated_by", user_id, strict))

        if any(stamped):
            count += 1

    return count


def apply_tenant_values(session: Any, tenant_id: Optional[str], strict: bool = False) -> int:
    """Stamp tenant_id on Added tenant-scoped entities and return how many were stamped. No-op when tenant_id is None."""
    if tenant_id is None:
        return 0

    tracking = require_tracking_session(session)
    tracking.detect_changes()
    count = 0

    for mutation in tracking.entries():
        entity = mutation.entity
        if mutation.state == EntityState.ADDED and isinstance(entity, HasTenant):
            if _try_set(entity, "tenant_id", tenant_id, strict):
                count += 1

    return count
