"""Tests for the in-memory event bus and the emergency dialer."""

import pytest

from symcheck.exceptions import DialerError
from symcheck.services.dialer import TelLinkDialer, tel_uri
from symcheck.services.event_bus import ASSESSMENTS_TOPIC, NOTICES_TOPIC, EventBus


async def test_topic_subscriber_only_sees_its_topic():
    bus = EventBus()
    queue = bus.subscribe(ASSESSMENTS_TOPIC)

    await bus.publish(NOTICES_TOPIC, {"type": "notice"})
    await bus.publish(ASSESSMENTS_TOPIC, {"type": "assessment_saved"})

    assert queue.qsize() == 1
    event = queue.get_nowait()
    assert event["type"] == "assessment_saved"
    assert event["topic"] == ASSESSMENTS_TOPIC


async def test_global_subscriber_sees_everything():
    bus = EventBus()
    queue = bus.subscribe_all()

    await bus.publish(NOTICES_TOPIC, {"type": "notice"})
    await bus.publish(ASSESSMENTS_TOPIC, {"type": "assessment_saved"})

    assert [queue.get_nowait()["topic"] for _ in range(2)] == [NOTICES_TOPIC, ASSESSMENTS_TOPIC]


async def test_unsubscribe_stops_delivery():
    bus = EventBus()
    topic_queue = bus.subscribe(ASSESSMENTS_TOPIC)
    global_queue = bus.subscribe_all()
    assert bus.subscriber_count(ASSESSMENTS_TOPIC) == 2

    bus.unsubscribe(ASSESSMENTS_TOPIC, topic_queue)
    bus.unsubscribe_all(global_queue)
    await bus.publish(ASSESSMENTS_TOPIC, {"type": "assessment_saved"})

    assert bus.subscriber_count(ASSESSMENTS_TOPIC) == 0
    assert topic_queue.empty()
    assert global_queue.empty()


async def test_each_subscriber_gets_its_own_copy():
    bus = EventBus()
    first = bus.subscribe(ASSESSMENTS_TOPIC)
    second = bus.subscribe_all()
    event = {"type": "assessment_saved", "record_id": "r1"}

    assert await bus.publish(ASSESSMENTS_TOPIC, event) == 2

    assert event == {"type": "assessment_saved", "record_id": "r1"}
    a, b = first.get_nowait(), second.get_nowait()
    assert a == b == {**event, "topic": ASSESSMENTS_TOPIC}
    a["record_id"] = "changed"
    assert b["record_id"] == "r1"


async def test_full_subscriber_drops_events_without_blocking_others():
    bus = EventBus(maxsize=1)
    stalled = bus.subscribe(NOTICES_TOPIC)
    await bus.publish(NOTICES_TOPIC, {"type": "notice", "message": "first"})

    draining = bus.subscribe(NOTICES_TOPIC)
    assert await bus.publish(NOTICES_TOPIC, {"type": "notice", "message": "second"}) == 1

    assert stalled.qsize() == 1
    assert stalled.get_nowait()["message"] == "first"
    assert draining.get_nowait()["message"] == "second"


def test_tel_uri_strips_formatting():
    assert tel_uri("911") == "tel:911"
    assert tel_uri("+44 (0) 20-7946") == "tel:+440207946"


@pytest.mark.parametrize("number", ["", "   ", "+", "call me"])
def test_tel_uri_rejects_undialable(number):
    with pytest.raises(DialerError):
        tel_uri(number)


async def test_tel_link_dialer_records_calls():
    dialer = TelLinkDialer()
    assert await dialer.dial("1 0 8") == "tel:108"
    assert dialer.calls == ["tel:108"]
