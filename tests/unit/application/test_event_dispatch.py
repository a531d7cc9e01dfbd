"""Domain event dispatch/publish: per-entity drain, in order, first failure stops the run."""

import json
from dataclasses import dataclass
from unittest.mock import AsyncMock, call

import pytest

from change_audit.application.event_dispatch import (
    dispatch_domain_events,
    publish_domain_events,
    serialize_event,
)
from change_audit.domain.capabilities import HasDomainEvents
from change_audit.domain.models.audit import EntityState


@dataclass
class CartCheckedOut:
    cart_id: int
    total: int


@dataclass
class CartAbandoned:
    cart_id: int


class Cart(HasDomainEvents):
    pass


def _session_for(make_session, make_mutation, *entities):
    return make_session([make_mutation(EntityState.UNCHANGED, [], entity=e) for e in entities])


@pytest.fixture
def carts():
    first, second = Cart(), Cart()
    first.raise_event(CartCheckedOut(cart_id=1, total=30))
    first.raise_event(CartAbandoned(cart_id=1))
    second.raise_event(CartCheckedOut(cart_id=2, total=5))
    return first, second


async def test_dispatch_sends_every_event_in_order_and_clears_queues(
    carts, make_session, make_mutation
):
    first, second = carts
    session = _session_for(make_session, make_mutation, first, object(), second)
    dispatcher = AsyncMock()

    count = await dispatch_domain_events(session, dispatcher)

    assert count == 3
    assert dispatcher.dispatch.await_args_list == [
        call(CartCheckedOut(cart_id=1, total=30)),
        call(CartAbandoned(cart_id=1)),
        call(CartCheckedOut(cart_id=2, total=5)),
    ]
    assert first.domain_events == []
    assert second.domain_events == []
    assert session.detect_calls == 1


async def test_dispatch_failure_stops_and_leaves_later_entities_queued(
    carts, make_session, make_mutation
):
    first, second = carts
    session = _session_for(make_session, make_mutation, first, second)
    dispatcher = AsyncMock()
    dispatcher.dispatch.side_effect = [None, Exception("handler down")]

    with pytest.raises(Exception) as exc_info:
        await dispatch_domain_events(session, dispatcher)

    assert "handler down" in str(exc_info.value)
    assert dispatcher.dispatch.await_count == 2
    # The failing entity was already drained; nothing is re-queued.
    assert first.domain_events == []
    assert second.domain_events == [CartCheckedOut(cart_id=2, total=5)]


async def test_publish_uses_short_type_name_and_json_payload(
    carts, make_session, make_mutation
):
    first, second = carts
    session = _session_for(make_session, make_mutation, first, second)
    publisher = AsyncMock()

    count = await publish_domain_events(session, publisher)

    assert count == 3
    topics = [c.args[0] for c in publisher.publish.await_args_list]
    payloads = [json.loads(c.args[1]) for c in publisher.publish.await_args_list]
    assert topics == ["CartCheckedOut", "CartAbandoned", "CartCheckedOut"]
    assert payloads[0] == {"cart_id": 1, "total": 30}
    assert payloads[2] == {"cart_id": 2, "total": 5}


async def test_nothing_pending_sends_nothing(make_session, make_mutation):
    session = _session_for(make_session, make_mutation, Cart())
    publisher = AsyncMock()

    assert await publish_domain_events(session, publisher) == 0
    publisher.publish.assert_not_awaited()


def test_serialize_event_falls_back_to_str_for_unknown_values():
    from datetime import date

    assert json.loads(serialize_event({"on": date(2024, 1, 2)})) == {"on": "2024-01-02"}
