"""
ROOT RECONCILIATION ENGINE
==========================

Consumes per-node commit events and enforces a single application root per
block height across the observed fleet.

CRITICAL RULE:
    Every report for a height must carry the same root.
    First differing root -> ALERT + HALT. No recovery within a process.

Events may arrive out of height order and may be duplicated (several pods
stream independently, and the log transport does not deduplicate). Each
event is compared against every report already held for its height, not
just the first one.

Known gap: a chain restart that reuses heights looks exactly like a
divergence. There is no restart detection; the engine halts either way.

The engine is owned by a single consumer thread and is not locked.
"""

import logging
import types
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from apphash_monitor import messages
from apphash_monitor.extractor import (
    DEFAULT_SOURCE_LABEL,
    source_id_from_labels,
    try_parse_commit_line,
)
from apphash_monitor.exceptions import (
    EngineHaltedError,
    MissingSourceIdError,
    RootDivergenceError,
)
from apphash_monitor.models import (
    CommitEvent,
    EngineState,
    HeightRecord,
    LogRecord,
    RootHashRecord,
)
from apphash_monitor.notifier import Notifier

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 1000
DEFAULT_OPERATOR_MENTION = "@erwanor"


class RootReconciliationEngine:
    """
    Per-height root agreement cache with fail-stop divergence handling.

    Args:
        notifier: Destination of progress notices and the divergence alert
        progress_interval: Send a progress notice for heights divisible by this
        operator_mention: Prefix of the divergence alert
        cache_window: If set, retain only heights within the last K of the
            highest height seen; older heights are reported unverifiable and
            skipped. Default None keeps every height for the process lifetime.
        dedupe_by_source: If True, an identical repeat report from the same
            source is not appended again. Default False appends every report.
        source_label: Resource label carrying the node identifier
    """

    def __init__(
        self,
        notifier: Notifier,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        operator_mention: str = DEFAULT_OPERATOR_MENTION,
        cache_window: Optional[int] = None,
        dedupe_by_source: bool = False,
        source_label: str = DEFAULT_SOURCE_LABEL,
    ):
        if progress_interval <= 0:
            raise ValueError("progress_interval must be positive")
        if cache_window is not None and cache_window <= 0:
            raise ValueError("cache_window must be positive")

        self.notifier = notifier
        self.progress_interval = progress_interval
        self.operator_mention = operator_mention
        self.cache_window = cache_window
        self.dedupe_by_source = dedupe_by_source
        self.source_label = source_label

        self._cache: Dict[int, HeightRecord] = {}
        self._state = EngineState.RUNNING
        self._divergence: Optional[RootDivergenceError] = None
        self._max_height: Optional[int] = None

        self.accepted = 0
        self.skipped = 0
        self.unverifiable = 0

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_halted(self) -> bool:
        return self._state is EngineState.HALTED

    @property
    def divergence(self) -> Optional[RootDivergenceError]:
        """The divergence that halted the engine, if any."""
        return self._divergence

    @property
    def cache(self) -> Mapping[int, HeightRecord]:
        return types.MappingProxyType(self._cache)

    def heights(self) -> List[int]:
        return sorted(self._cache)

    def reports_at(self, height: int) -> List[Tuple[str, str]]:
        record = self._cache.get(height)
        return record.pairs() if record else []

    def snapshot(self) -> Dict[int, List[Tuple[str, str]]]:
        """Plain copy of the cache: height -> [(source_id, root), ...]."""
        return {height: record.pairs() for height, record in self._cache.items()}

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    def process(self, event: CommitEvent) -> Optional[HeightRecord]:
        """
        Reconcile one commit event against the cache.

        Returns:
            The HeightRecord the event was accepted into, or None when the
            height falls outside the retention window

        Raises:
            RootDivergenceError: If the event's root differs from any root
                already held for its height. The engine is HALTED afterwards.
            EngineHaltedError: If the engine has already halted
        """
        if self.is_halted:
            raise EngineHaltedError(
                f"engine halted at height {self._divergence.height}; "
                f"refusing event for height {event.height}"
            )

        if self._outside_window(event.height):
            self.unverifiable += 1
            logger.warning(
                f"{event.source_id} reported height {event.height}, outside the "
                f"retained window below {self._max_height}; not verified"
            )
            return None

        record = RootHashRecord.from_event(event)
        height_record = self._cache.get(event.height)

        if height_record is None:
            height_record = HeightRecord(height=event.height, reports=[record])
            self._cache[event.height] = height_record
            self._advance_window(event.height)
        elif not height_record.agrees_with(record):
            self._halt(event.height, height_record.pairs() + [(record.source_id, record.root)])
        elif self.dedupe_by_source and height_record.has_report(record):
            logger.debug(f"Duplicate report from {record.source_id} at height {event.height}")
        else:
            height_record.reports.append(record)

        self.accepted += 1
        self._emit_status(event)
        return height_record

    def consume(self, events: Iterable[CommitEvent]) -> int:
        """
        Process events in iteration order.

        Returns:
            Number of events accepted

        Raises:
            RootDivergenceError: On the first divergence; remaining events
                are left unconsumed
        """
        count = 0
        for event in events:
            if self.process(event) is not None:
                count += 1
        return count

    def handle_record(self, record: LogRecord) -> Optional[HeightRecord]:
        """
        Commit-pipeline entry point: raw log record in, reconciliation out.

        Records without a source id and lines that are not commit lines are
        skipped silently; most of the consensus log is not commit lines.
        """
        try:
            source_id = source_id_from_labels(record.labels, self.source_label)
        except MissingSourceIdError:
            self.skipped += 1
            return None

        event = try_parse_commit_line(record.payload, source_id)
        if event is None:
            self.skipped += 1
            return None

        return self.process(event)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _emit_status(self, event: CommitEvent) -> None:
        logger.info(messages.commit_status_line(event))
        if event.height % self.progress_interval == 0:
            self._notify(messages.progress_notice(event))

    def _halt(self, height: int, reports: List[Tuple[str, str]]) -> None:
        error = RootDivergenceError(height, reports)
        self._divergence = error
        self._state = EngineState.HALTED

        logger.critical(messages.divergence_summary(height, reports))
        self._notify(messages.divergence_alert(height, reports, self.operator_mention))
        raise error

    def _notify(self, message: str) -> None:
        try:
            self.notifier.notify(message)
        except Exception as e:
            logger.error(f"Notifier raised, message dropped: {e}")

    def _outside_window(self, height: int) -> bool:
        if self.cache_window is None or self._max_height is None:
            return False
        return height <= self._max_height - self.cache_window

    def _advance_window(self, height: int) -> None:
        if self._max_height is not None and height <= self._max_height:
            return
        self._max_height = height
        if self.cache_window is None:
            return
        floor = height - self.cache_window
        for stale in [h for h in self._cache if h <= floor]:
            del self._cache[stale]
