"""Bounded, asynchronous fan-out of scraped records to subscribers."""

from __future__ import annotations

import logging
import queue
import threading
import time
from types import TracebackType
from typing import Protocol

from parkscrape.common.constants import DEFAULT_QUEUE_SIZE
from parkscrape.common.errors import PublisherClosedError
from parkscrape.common.logging import log_event
from parkscrape.common.models import ScrapedEvent

logger = logging.getLogger(__name__)

_STOP = object()


class RecordSubscriber(Protocol):
    def on_record_scraped(self, event: ScrapedEvent) -> None:
        ...


class EventPublisher:
    """Owns a bounded queue and the single thread that dispatches it.

    Events are delivered in arrival order; every subscriber sees each event, in
    registration order, before the next event is dequeued. ``publish`` blocks
    while the queue is full.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._subscribers: list[RecordSubscriber] = []
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._dispatch_loop, name="parkscrape-publisher", daemon=True)
        self._thread.start()

    def __enter__(self) -> "EventPublisher":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, subscriber: RecordSubscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def publish(self, event: ScrapedEvent) -> None:
        with self._publish_lock:
            if self._closed:
                raise PublisherClosedError("Cannot publish to a closed publisher")
            self._queue.put(event)

    def pending(self) -> int:
        return self._queue.unfinished_tasks

    def wait_for_idle(self, poll_interval: float = 0.01) -> None:
        while self.pending():
            time.sleep(poll_interval)

    def close(self) -> None:
        """Stop accepting events, dispatch everything already queued, then stop the thread."""
        with self._publish_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._thread.join()

    def _dispatch_loop(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._dispatch(event)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: ScrapedEvent) -> None:
        with self._lock:
            subscribers = tuple(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber.on_record_scraped(event)
            except Exception as exc:
                log_event(
                    logger,
                    f"subscriber {type(subscriber).__name__} failed for {event.record.name!r}: {exc}",
                    level=logging.ERROR,
                    stage="publish",
                    source=event.source_code,
                    url=event.url,
                    event="SUBSCRIBER_FAIL",
                    status="error",
                    error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                )
