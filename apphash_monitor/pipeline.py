"""
Ingestion Pipelines

One producer thread (log source) feeding one consumer thread (engine or
relay) through a small bounded queue. A full queue blocks the producer,
which in turn stops reading from the transport.

Records are handled in receipt order. All pipelines of a process share one
stop event; setting it winds every pipeline down.
"""

import logging
import queue
import threading
from typing import Any, Callable, Iterator, Optional

from apphash_monitor.exceptions import RootDivergenceError
from apphash_monitor.models import LogRecord

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.5

_END_OF_STREAM = object()

# A source turns a stop token into a stream of raw records
LogSource = Callable[[threading.Event], Iterator[LogRecord]]


class Pipeline:
    """
    Producer/consumer pair for one monitored concern.

    Args:
        name: Label used in logs and thread names
        source: Callable yielding LogRecords until the stream ends
        handler: Called once per record, in order
        stop_event: Shared cancellation token
        queue_size: Bound of the hand-off queue
    """

    def __init__(
        self,
        name: str,
        source: LogSource,
        handler: Callable[[LogRecord], Any],
        stop_event: threading.Event,
        queue_size: int = 64,
    ):
        self.name = name
        self.source = source
        self.handler = handler
        self.stop_event = stop_event
        self.queue: "queue.Queue[Any]" = queue.Queue(maxsize=queue_size)

        self.received = 0
        self.processed = 0
        self.failure: Optional[BaseException] = None

        self._consumer_done = threading.Event()
        self._producer = threading.Thread(
            target=self._produce, name=f"{name}-producer", daemon=True
        )
        self._consumer = threading.Thread(
            target=self._consume, name=f"{name}-consumer", daemon=True
        )

    @property
    def diverged(self) -> bool:
        return isinstance(self.failure, RootDivergenceError)

    def start(self) -> None:
        logger.info(f"started {self.name} pipeline")
        self._consumer.start()
        self._producer.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the consumer to finish (the producer is a daemon)."""
        self._consumer.join(timeout)

    def is_alive(self) -> bool:
        return self._consumer.is_alive()

    def _should_stop(self) -> bool:
        return self.stop_event.is_set() or self._consumer_done.is_set()

    def _put(self, item: Any) -> bool:
        while not self._should_stop():
            try:
                self.queue.put(item, timeout=POLL_INTERVAL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _produce(self) -> None:
        try:
            for record in self.source(self.stop_event):
                self.received += 1
                if not self._put(record):
                    break
        except Exception as e:
            logger.error(f"{self.name} stream error: {e}")
        finally:
            self._put(_END_OF_STREAM)
            logger.info(f"{self.name} producer exiting")

    def _consume(self) -> None:
        try:
            while not self.stop_event.is_set():
                try:
                    item = self.queue.get(timeout=POLL_INTERVAL_SECONDS)
                except queue.Empty:
                    continue
                if item is _END_OF_STREAM:
                    break
                self.handler(item)
                self.processed += 1
        except RootDivergenceError as e:
            self.failure = e
            logger.critical(f"{self.name} pipeline halted: {e}")
            self.stop_event.set()
        except Exception as e:
            self.failure = e
            logger.exception(f"{self.name} consumer failed: {e}")
        finally:
            self._consumer_done.set()
            logger.info(f"{self.name} worker exiting")
