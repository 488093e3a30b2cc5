"""
Streaming topic subscriptions.

Each subscription runs two daemon threads joined by a queue: a reader
that owns the network stream (including reconnects) and a delivery worker
that hands messages to the caller's handler one at a time. The reader
drops anything at or before the last timestamp it queued, which keeps
delivery in consensus order without duplicates across reconnects.
"""

from __future__ import annotations

import logging
import queue
import threading
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

from hcsclient.client.domain.entities import EntityId, Timestamp, TopicMessage
from hcsclient.common import Configurable
from hcsclient.common.config import Config
from hcsclient.common.exceptions import ConfigurationError, NotFoundError

if TYPE_CHECKING:
    from hcsclient.common.interfaces import IMessageStream, IMessageStreamSource

logger = logging.getLogger(__name__)

MessageHandler = Callable[[TopicMessage], None]
ErrorHandler = Callable[[Exception], None]

_STOP = object()


def _as_timestamp(value: Timestamp | datetime | None) -> Timestamp | None:
    if value is None or isinstance(value, Timestamp):
        return value
    return Timestamp.from_datetime(value)


class Subscription(Configurable):
    """A live subscription to one topic."""

    def __init__(
        self,
        source: IMessageStreamSource,
        topic_id: EntityId,
        handler: MessageHandler,
        start_time: Timestamp,
        end_time: Timestamp | None = None,
        limit: int | None = None,
        error_handler: ErrorHandler | None = None,
        config: Config | None = None,
        **overrides: Any,
    ):
        self.source = source
        self.topic_id = topic_id
        self.start_time = start_time
        self.end_time = end_time
        self.limit = limit
        self._handler = handler
        self._error_handler = error_handler
        self.apply_overrides(
            overrides,
            config or Config(),
            ["reconnect_initial_backoff", "reconnect_max_backoff", "max_reconnect_attempts"],
        )

        self._queue: queue.Queue[Any] = queue.Queue()
        self._cancelled = threading.Event()
        self._finished = threading.Event()
        self._delivery_lock = threading.RLock()
        self._stream_lock = threading.Lock()
        self._stream: IMessageStream | None = None
        self._last_queued: Timestamp | None = None
        self._received = 0
        self._past_end = False
        self.delivered_count = 0

        self._reader = threading.Thread(
            target=self._read_loop, daemon=True, name=f"topic-{topic_id}-reader"
        )
        self._worker = threading.Thread(
            target=self._deliver_loop, daemon=True, name=f"topic-{topic_id}-delivery"
        )

    def start(self) -> Subscription:
        self._worker.start()
        self._reader.start()
        logger.info("Subscribed to topic %s from %s", self.topic_id, self.start_time)
        return self

    @property
    def is_active(self) -> bool:
        return not self._cancelled.is_set() and not self._finished.is_set()

    @property
    def last_timestamp(self) -> Timestamp | None:
        return self._last_queued

    def cancel(self) -> None:
        """Stop delivery; no handler call begins after this returns.

        Waits for a handler call already in progress on another thread.
        Calling it again, or from inside the handler, is safe.
        """
        with self._delivery_lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
        self._queue.put(_STOP)
        self._close_stream()
        logger.info("Subscription to topic %s cancelled", self.topic_id)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the delivery worker to finish; True if it did."""
        return self._finished.wait(timeout)

    # Reader side

    def _close_stream(self) -> None:
        with self._stream_lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.close()
            except Exception:  # noqa: BLE001
                logger.debug("Error closing stream for %s", self.topic_id, exc_info=True)

    def _resume_point(self) -> Timestamp:
        if self._last_queued is None:
            return self.start_time
        return self._last_queued.plus_nanos(1)

    def _remaining(self) -> int | None:
        if self.limit is None:
            return None
        return self.limit - self._received

    def _read_loop(self) -> None:
        backoff = self.reconnect_initial_backoff
        attempts = 0
        while not self._cancelled.is_set():
            try:
                stream = self.source.open_message_stream(
                    self.topic_id, self._resume_point(), self.end_time, self._remaining()
                )
                with self._stream_lock:
                    if self._cancelled.is_set():
                        stream.close()
                        return
                    self._stream = stream
                for frame in stream:
                    message = TopicMessage.from_frame(frame)
                    if self._accept(message):
                        backoff = self.reconnect_initial_backoff
                        attempts = 0
                    if self._done():
                        self._queue.put(_STOP)
                        return
                if self._cancelled.is_set():
                    return
                if self.end_time is not None and Timestamp.now() > self.end_time:
                    self._queue.put(_STOP)
                    return
                logger.info("Stream for topic %s ended, reconnecting", self.topic_id)
            except (NotFoundError, ConfigurationError) as err:
                if not self._cancelled.is_set():
                    self._queue.put(err)
                return
            except Exception as err:  # noqa: BLE001
                if self._cancelled.is_set():
                    return
                logger.warning("Stream for topic %s dropped: %s", self.topic_id, err)
            finally:
                self._close_stream()

            attempts += 1
            if self.max_reconnect_attempts is not None and attempts > self.max_reconnect_attempts:
                msg = f"Gave up on topic {self.topic_id} after {attempts - 1} reconnects"
                self._queue.put(ConnectionError(msg))
                return
            if self._cancelled.wait(backoff):
                return
            backoff = min(backoff * 2, self.reconnect_max_backoff)

    def _accept(self, message: TopicMessage) -> bool:
        ts = message.consensus_timestamp
        if self._last_queued is not None and ts <= self._last_queued:
            return False
        if self.end_time is not None and ts > self.end_time:
            self._past_end = True
            return False
        self._last_queued = ts
        self._received += 1
        self._queue.put(message)
        return True

    def _done(self) -> bool:
        if self._past_end:
            return True
        return self.limit is not None and self._received >= self.limit

    # Delivery side

    def _deliver_loop(self) -> None:
        try:
            while True:
                item = self._queue.get()
                if item is _STOP:
                    return
                with self._delivery_lock:
                    if self._cancelled.is_set():
                        return
                    if isinstance(item, Exception):
                        self._report(item)
                        return
                    try:
                        self._handler(item)
                    except Exception:
                        logger.exception(
                            "Handler failed on topic %s message %s",
                            self.topic_id,
                            item.sequence_number,
                        )
                    self.delivered_count += 1
        finally:
            self._finished.set()
            logger.debug("Delivery for topic %s finished", self.topic_id)

    def _report(self, error: Exception) -> None:
        if self._error_handler is None:
            logger.error("Subscription to topic %s failed: %s", self.topic_id, error)
            return
        try:
            self._error_handler(error)
        except Exception:
            logger.exception("Error handler failed for topic %s", self.topic_id)


class MessageSubscriber:
    """Opens subscriptions against a client."""

    def __init__(self, client: IMessageStreamSource, config: Config | None = None):
        self.client = client
        client_config = getattr(client, "config", None)
        if config is None:
            config = client_config if isinstance(client_config, Config) else Config()
        self.config = config
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        topic_id: EntityId | str,
        handler: MessageHandler,
        start_time: Timestamp | datetime | None = None,
        end_time: Timestamp | datetime | None = None,
        limit: int | None = None,
        error_handler: ErrorHandler | None = None,
        **overrides: Any,
    ) -> Subscription:
        """Deliver topic messages to handler in consensus order.

        Without start_time only messages reaching consensus after this call
        are guaranteed; pass a start_time to replay history.
        """
        subscription = Subscription(
            self.client,
            EntityId.parse(topic_id),
            handler,
            start_time=_as_timestamp(start_time) or Timestamp.now(),
            end_time=_as_timestamp(end_time),
            limit=limit,
            error_handler=error_handler,
            config=self.config,
            **overrides,
        )
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s.is_active]
            self._subscriptions.append(subscription)
        return subscription.start()

    def cancel(self, subscription: Subscription) -> None:
        subscription.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()
