"""Entity state reconstruction by replaying finalized audit records.

Records are applied in (timestamp, correlation_id, sequence) order: inside one
correlation group the timestamp is shared, so this is plain sequence order, and
separate groups follow their capture time. Two groups captured on the same
clock tick are ordered by correlation id, which is deterministic but says
nothing about which transaction committed first. Each change overwrites the
running value of its field with the recorded ``new`` value (last write wins).
A field whose last change recorded ``new = None`` is present with value None;
a field no record touched is absent.

All functions are pure and never raise on malformed input.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from change_audit.domain.models.audit import FieldDiff, GenericAuditRecord

EntityKey = Tuple[str, Tuple[Tuple[str, Hashable], ...]]

_MISSING = object()


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _order_key(record: GenericAuditRecord) -> Tuple[datetime, str, int]:
    # Batches captured on the same clock tick fall back to correlation id order.
    return (_as_utc(record.timestamp), str(getattr(record, "correlation_id", "")), record.sequence)


def _is_replayable(record: Any) -> bool:
    return (
        isinstance(getattr(record, "timestamp", None), datetime)
        and isinstance(getattr(record, "sequence", None), int)
        and isinstance(getattr(record, "changes", None), Mapping)
    )


def _new_value(change: Any) -> Any:
    if isinstance(change, FieldDiff):
        return change.new
    if isinstance(change, Mapping) and "new" in change:
        return change["new"]
    return _MISSING


def reconstruct_state(
    records: Optional[Iterable[GenericAuditRecord]],
    as_of: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Replay records for one logical entity and return its latest field values.

    Input order does not matter. Records later than as_of are ignored when it is
    given. Callers must pre-filter to a single entity (see group_records_by_entity);
    mixing entities yields a deterministic but meaningless merge.
    """
    if not records:
        return {}

    replayable = [r for r in records if _is_replayable(r)]
    if as_of is not None:
        cutoff = _as_utc(as_of)
        replayable = [r for r in replayable if _as_utc(r.timestamp) <= cutoff]

    state: Dict[str, Any] = {}
    for record in sorted(replayable, key=_order_key):
        for field_name, change in record.changes.items():
            value = _new_value(change)
            if value is not _MISSING:
                state[field_name] = value

    return state


def _freeze(value: Any) -> Hashable:
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def entity_key(record: GenericAuditRecord) -> EntityKey:
    """Identity of the logical entity a record belongs to: type plus sorted primary key."""
    primary_key = record.primary_key if isinstance(record.primary_key, Mapping) else {}
    return (
        record.entity_type,
        tuple(sorted((name, _freeze(value)) for name, value in primary_key.items())),
    )


def group_records_by_entity(
    records: Optional[Iterable[GenericAuditRecord]],
) -> Dict[EntityKey, List[GenericAuditRecord]]:
    """Split records per logical entity, keeping input order inside each group."""
    groups: Dict[EntityKey, List[GenericAuditRecord]] = {}
    for record in records or ():
        if not _is_replayable(record):
            continue
        groups.setdefault(entity_key(record), []).append(record)
    return groups


def reconstruct_entities(
    records: Optional[Iterable[GenericAuditRecord]],
    as_of: Optional[datetime] = None,
) -> Dict[EntityKey, Dict[str, Any]]:
    """Reconstruct every entity found in records. Groups with nothing to replay are left out."""
    result: Dict[EntityKey, Dict[str, Any]] = {}
    for key, group in group_records_by_entity(records).items():
        state = reconstruct_state(group, as_of=as_of)
        if state:
            result[key] = state
    return result
