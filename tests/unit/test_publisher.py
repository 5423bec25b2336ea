from __future__ import annotations

import logging
import threading
import time

import pytest

from parkscrape.common.errors import PublisherClosedError
from parkscrape.common.models import ParkRecord, ScrapedEvent
from parkscrape.common.time_utils import utc_now
from parkscrape.pipeline.publisher import EventPublisher


def _event(name: str, source_code: str = "A") -> ScrapedEvent:
    return ScrapedEvent(
        record=ParkRecord(name=name, source_code=source_code, latitude=1.0, longitude=2.0),
        source_code=source_code,
        url=f"https://parks.example.gov/{name}",
        duration=0.1,
        timestamp=utc_now(),
    )


class RecordingSubscriber:
    def __init__(self, label: str = "sub", log: list | None = None):
        self.label = label
        self.log = log if log is not None else []
        self.events: list[ScrapedEvent] = []

    def on_record_scraped(self, event: ScrapedEvent) -> None:
        self.events.append(event)
        self.log.append((event.record.name, self.label))


class FailingSubscriber:
    def __init__(self):
        self.calls = 0

    def on_record_scraped(self, event: ScrapedEvent) -> None:
        self.calls += 1
        raise RuntimeError("sink exploded")


def test_close_delivers_every_published_event_exactly_once():
    first, second = RecordingSubscriber("first"), RecordingSubscriber("second")
    publisher = EventPublisher(maxsize=5)
    publisher.subscribe(first)
    publisher.subscribe(second)

    names = [f"park-{i}" for i in range(25)]
    for name in names:
        publisher.publish(_event(name))
    publisher.close()

    assert [event.record.name for event in first.events] == names
    assert [event.record.name for event in second.events] == names


def test_each_event_reaches_subscribers_in_registration_order():
    log: list = []
    publisher = EventPublisher()
    publisher.subscribe(RecordingSubscriber("first", log))
    publisher.subscribe(RecordingSubscriber("second", log))

    publisher.publish(_event("oak"))
    publisher.publish(_event("pine"))
    publisher.close()

    assert log == [("oak", "first"), ("oak", "second"), ("pine", "first"), ("pine", "second")]


def test_failing_subscriber_does_not_block_others(caplog):
    caplog.set_level(logging.ERROR, logger="parkscrape")
    failing, healthy = FailingSubscriber(), RecordingSubscriber()
    publisher = EventPublisher()
    publisher.subscribe(failing)
    publisher.subscribe(healthy)

    publisher.publish(_event("oak"))
    publisher.publish(_event("pine"))
    publisher.close()

    assert failing.calls == 2
    assert [event.record.name for event in healthy.events] == ["oak", "pine"]
    assert sum(getattr(record, "event", None) == "SUBSCRIBER_FAIL" for record in caplog.records) == 2


def test_publish_after_close_raises():
    publisher = EventPublisher()
    publisher.close()
    publisher.close()

    assert publisher.closed
    with pytest.raises(PublisherClosedError):
        publisher.publish(_event("oak"))


def test_wait_for_idle_drains_the_queue():
    subscriber = RecordingSubscriber()
    with EventPublisher() as publisher:
        publisher.subscribe(subscriber)
        for i in range(10):
            publisher.publish(_event(f"park-{i}"))
        publisher.wait_for_idle()

        assert publisher.pending() == 0
        assert len(subscriber.events) == 10
    assert publisher.closed


def test_publish_blocks_while_the_queue_is_full():
    entered = threading.Event()
    release = threading.Event()
    delivered: list[str] = []

    class SlowSubscriber:
        def on_record_scraped(self, event: ScrapedEvent) -> None:
            entered.set()
            release.wait(timeout=5)
            delivered.append(event.record.name)

    publisher = EventPublisher(maxsize=1)
    publisher.subscribe(SlowSubscriber())

    publisher.publish(_event("first"))
    assert entered.wait(timeout=5)
    publisher.publish(_event("second"))

    producer = threading.Thread(target=publisher.publish, args=(_event("third"),))
    producer.start()
    time.sleep(0.05)
    assert producer.is_alive()

    release.set()
    producer.join(timeout=5)
    assert not producer.is_alive()

    publisher.close()
    assert delivered == ["first", "second", "third"]
