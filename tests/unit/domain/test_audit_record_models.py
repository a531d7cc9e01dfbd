"""Audit record wire shape: to_dict, pydantic schema load/dump, state validation."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
from pydantic import BaseModel, ValidationError

from change_audit.domain.models.audit import (
    DomainEventEnvelope,
    EntityState,
    FieldDiff,
    GenericAuditRecord,
    payload_to_jsonable,
)
from change_audit.domain.schemas.audit import AuditRecordSchema

TS = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class PriceChanged:
    sku: str
    price: int


class StockLow(BaseModel):
    sku: str
    on_hand: int


def _record(**overrides):
    values = dict(
        correlation_id="corr-1",
        sequence=1,
        timestamp=TS,
        user_id="u-1",
        entity_name="Widget",
        entity_type="shop.models.Widget",
        state=EntityState.MODIFIED.value,
        primary_key={"id": 7},
        changes={"price": FieldDiff(old=10, new=12)},
        domain_events=(
            DomainEventEnvelope(
                event_id="evt-1",
                event_type="shop.events.PriceChanged",
                event_name="PriceChanged",
                payload=PriceChanged(sku="w-1", price=12),
            ),
        ),
    )
    values.update(overrides)
    return GenericAuditRecord(**values)


def test_state_values_are_stable_wire_strings():
    assert [s.value for s in (EntityState.ADDED, EntityState.MODIFIED, EntityState.DELETED)] == [
        "Added",
        "Modified",
        "Deleted",
    ]


def test_to_dict_is_json_serializable_snake_case_shape():
    d = _record().to_dict()

    assert d == {
        "correlation_id": "corr-1",
        "sequence": 1,
        "timestamp": "2024-05-01T12:00:00+00:00",
        "user_id": "u-1",
        "entity_name": "Widget",
        "entity_type": "shop.models.Widget",
        "state": "Modified",
        "primary_key": {"id": 7},
        "changes": {"price": {"old": 10, "new": 12}},
        "domain_events": [
            {
                "event_id": "evt-1",
                "event_type": "shop.events.PriceChanged",
                "event_name": "PriceChanged",
                "payload": {"sku": "w-1", "price": 12},
            }
        ],
    }
    json.dumps(d)


def test_to_dict_keeps_absent_domain_events_as_null():
    assert _record(domain_events=None).to_dict()["domain_events"] is None


def test_record_copies_its_input_mappings():
    changes = {"price": FieldDiff(old=10, new=12)}
    record = _record(changes=changes)

    changes["price"] = FieldDiff(old=0, new=0)

    assert record.changes["price"] == FieldDiff(old=10, new=12)


def test_schema_loads_stored_json_back_into_a_record():
    stored = AuditRecordSchema.from_record(_record()).model_dump_json()

    loaded = AuditRecordSchema.model_validate_json(stored).to_record()

    assert loaded.correlation_id == "corr-1"
    assert loaded.timestamp == TS
    assert loaded.state == "Modified"
    assert dict(loaded.primary_key) == {"id": 7}
    assert loaded.changes["price"] == FieldDiff(old=10, new=12)
    assert loaded.domain_events[0].payload == {"sku": "w-1", "price": 12}


def test_schema_rejects_unaudited_state():
    payload = AuditRecordSchema.from_record(_record()).model_dump()
    payload["state"] = "Unchanged"

    with pytest.raises(ValidationError):
        AuditRecordSchema.model_validate(payload)


def test_schema_reads_naive_timestamp_as_utc():
    payload = AuditRecordSchema.from_record(_record()).model_dump()
    payload["timestamp"] = "2024-05-01T12:00:00"

    assert AuditRecordSchema.model_validate(payload).timestamp == TS


def test_payload_to_jsonable_handles_models_and_dataclasses():
    assert payload_to_jsonable(StockLow(sku="w-1", on_hand=2)) == {"sku": "w-1", "on_hand": 2}
    assert payload_to_jsonable(PriceChanged(sku="w-1", price=3)) == {"sku": "w-1", "price": 3}
    assert payload_to_jsonable({"raw": True}) == {"raw": True}
