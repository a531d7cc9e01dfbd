"""Reconstructor: last write wins in (timestamp, correlation id, sequence) order, pure and forgiving."""

import random
from datetime import datetime, timedelta, timezone

from change_audit.audit.reconstructor import (
    entity_key,
    group_records_by_entity,
    reconstruct_entities,
    reconstruct_state,
)
from change_audit.domain.models.audit import FieldDiff, GenericAuditRecord

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _record(
    sequence,
    changes,
    timestamp=T0,
    state="Modified",
    key=None,
    entity_type="shop.models.Widget",
    correlation_id="corr-1",
):
    return GenericAuditRecord(
        correlation_id=correlation_id,
        sequence=sequence,
        timestamp=timestamp,
        user_id=None,
        entity_name=entity_type.rsplit(".", 1)[-1],
        entity_type=entity_type,
        state=state,
        primary_key=key if key is not None else {"id": 7},
        changes={name: FieldDiff(old=old, new=new) for name, (old, new) in changes.items()},
    )


def test_last_write_wins_across_sequence():
    records = [
        _record(1, {"name": ("A", "B")}),
        _record(2, {"price": (1, 2)}),
        _record(3, {"name": ("B", "C")}),
    ]

    assert reconstruct_state(records) == {"name": "C", "price": 2}


def test_input_order_does_not_matter():
    records = [
        _record(1, {"name": (None, "a"), "size": (None, 1)}),
        _record(2, {"name": ("a", "b")}),
        _record(3, {"size": (1, 2)}),
        _record(4, {"name": ("b", "c")}),
    ]
    expected = reconstruct_state(records)

    shuffled = list(records)
    random.Random(42).shuffle(shuffled)

    assert reconstruct_state(shuffled) == expected
    assert reconstruct_state(list(reversed(records))) == expected == {"name": "c", "size": 2}


def test_groups_are_ordered_by_timestamp_before_sequence():
    """Every batch restarts at sequence 1; capture time orders the batches."""
    created = _record(1, {"id": (None, 7), "name": (None, "x")}, state="Added", correlation_id="c1")
    renamed = _record(
        1, {"name": ("x", "y")}, timestamp=T0 + timedelta(seconds=5), correlation_id="c2"
    )

    assert reconstruct_state([renamed, created]) == {"id": 7, "name": "y"}


def test_batches_on_the_same_tick_replay_in_correlation_order():
    first = _record(1, {"name": ("x", "from-a")}, correlation_id="corr-a")
    second = _record(1, {"name": ("x", "from-b")}, correlation_id="corr-b")

    assert reconstruct_state([first, second]) == {"name": "from-b"}
    assert reconstruct_state([second, first]) == {"name": "from-b"}


def test_explicit_null_is_distinguished_from_never_seen():
    records = [
        _record(1, {"id": (None, 7), "name": (None, "y")}, state="Added"),
        _record(1, {"id": (7, None), "name": ("y", None)}, timestamp=T0 + timedelta(seconds=1), state="Deleted"),
    ]

    state = reconstruct_state(records)

    assert state == {"id": None, "name": None}
    assert "price" not in state


def test_reconstruct_is_idempotent():
    records = [_record(1, {"name": ("A", "B")}), _record(2, {"name": ("B", "C")})]

    assert reconstruct_state(records) == reconstruct_state(records)


def test_as_of_replays_only_records_up_to_the_cutoff():
    records = [
        _record(1, {"name": (None, "v1")}, timestamp=T0),
        _record(1, {"name": ("v1", "v2")}, timestamp=T0 + timedelta(hours=1)),
        _record(1, {"name": ("v2", "v3")}, timestamp=T0 + timedelta(hours=2)),
    ]

    assert reconstruct_state(records, as_of=T0 + timedelta(minutes=90)) == {"name": "v2"}
    assert reconstruct_state(records, as_of=T0 - timedelta(seconds=1)) == {}
    # Naive cutoff is read as UTC.
    assert reconstruct_state(records, as_of=datetime(2024, 5, 1, 12, 0)) == {"name": "v1"}


def test_empty_and_missing_input_yield_empty_state():
    assert reconstruct_state([]) == {}
    assert reconstruct_state(None) == {}


def test_malformed_records_and_changes_are_skipped():
    good = _record(1, {"name": (None, "ok")})

    class Broken:
        sequence = 2
        timestamp = T0
        changes = ["not", "a", "mapping"]

    mapping_change = _record(3, {})
    object.__setattr__(mapping_change, "changes", {"size": {"old": 1, "new": 2}, "junk": 5})

    assert reconstruct_state([good, Broken(), object(), mapping_change]) == {"name": "ok", "size": 2}


def test_group_records_by_entity_splits_on_type_and_key():
    a1 = _record(1, {"name": (None, "a")}, key={"id": 1})
    b1 = _record(2, {"name": (None, "b")}, key={"id": 2})
    a2 = _record(3, {"name": ("a", "a2")}, key={"id": 1})
    other = _record(4, {"title": (None, "t")}, key={"id": 1}, entity_type="shop.models.Order")

    groups = group_records_by_entity([a1, b1, a2, other])

    assert groups[entity_key(a1)] == [a1, a2]
    assert groups[entity_key(b1)] == [b1]
    assert groups[entity_key(other)] == [other]
    assert entity_key(a1) == ("shop.models.Widget", (("id", 1),))


def test_reconstruct_entities_builds_one_state_per_entity():
    records = [
        _record(1, {"name": (None, "a")}, key={"id": 1}),
        _record(2, {"name": (None, "b")}, key={"id": 2}),
        _record(3, {"name": ("a", "a2")}, key={"id": 1}),
    ]

    states = reconstruct_entities(records)

    assert states == {
        ("shop.models.Widget", (("id", 1),)): {"name": "a2"},
        ("shop.models.Widget", (("id", 2),)): {"name": "b"},
    }
