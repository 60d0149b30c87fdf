"""
Error Relay

Forwards error-severity log records from the fleet to the notifier as
`"{pod}: {payload}"`. Stateless; records without a pod name are dropped.
"""

import logging
from typing import Iterable

from apphash_monitor import messages
from apphash_monitor.extractor import DEFAULT_SOURCE_LABEL, source_id_from_labels
from apphash_monitor.exceptions import MissingSourceIdError
from apphash_monitor.models import LogRecord
from apphash_monitor.notifier import Notifier

logger = logging.getLogger(__name__)


class ErrorRelay:
    """Relay of error logs to a human-facing channel."""

    def __init__(self, notifier: Notifier, source_label: str = DEFAULT_SOURCE_LABEL):
        self.notifier = notifier
        self.source_label = source_label
        self.forwarded = 0
        self.dropped = 0

    def forward(self, record: LogRecord) -> bool:
        """
        Forward one record.

        Returns:
            True if the record was handed to the notifier, False if it was
            dropped for lack of a source id
        """
        try:
            source_id = source_id_from_labels(record.labels, self.source_label)
        except MissingSourceIdError:
            self.dropped += 1
            logger.warning("pod name not found!")
            return False

        try:
            self.notifier.notify(messages.error_notice(source_id, record.payload))
        except Exception as e:
            logger.error(f"Notifier raised, error log from {source_id} dropped: {e}")
        self.forwarded += 1
        return True

    def run(self, records: Iterable[LogRecord]) -> int:
        """Forward records until the input ends. Returns the number forwarded."""
        logger.info("started error relay")
        for record in records:
            self.forward(record)
        logger.info(f"error relay exiting ({self.forwarded} forwarded, {self.dropped} dropped)")
        return self.forwarded
