"""
PROCESS SUPERVISOR
==================

Wires the two independent pipelines of the monitor and waits for them:

    commit pipeline:  tm logs  -> RootReconciliationEngine -> notifier
    error pipeline:   pd ERROR -> ErrorRelay               -> notifier

The pipelines share nothing but the notifier and the stop event. A root
divergence sets the stop event, winds both pipelines down, and makes run()
return EXIT_DIVERGENCE.
"""

import logging
import threading
from typing import Callable, List, Optional

from apphash_monitor.config import commit_filter, error_filter
from apphash_monitor.engine import RootReconciliationEngine
from apphash_monitor.health import HealthServer
from apphash_monitor.models import MonitorConfig
from apphash_monitor.notifier import Notifier
from apphash_monitor.pipeline import LogSource, Pipeline
from apphash_monitor.relay import ErrorRelay
from apphash_monitor.transport import CloudLoggingSource

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_DIVERGENCE = 2

JOIN_POLL_SECONDS = 1.0

# (config, filter expression) -> log source
SourceFactory = Callable[[MonitorConfig, str], LogSource]


def cloud_logging_source(config: MonitorConfig, filter_expr: str) -> LogSource:
    return CloudLoggingSource(config.project_id, config.credentials_json, filter_expr)


class Supervisor:
    """
    Owns the engine, the relay, their pipelines and the liveness endpoint.

    Args:
        config: Monitor configuration
        notifier: Shared notification sink
        source_factory: Builds a log source for a filter expression
        health: Liveness server; None disables it
        stop_event: Cancellation token shared by every pipeline
    """

    def __init__(
        self,
        config: MonitorConfig,
        notifier: Notifier,
        source_factory: SourceFactory = cloud_logging_source,
        health: Optional[HealthServer] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.notifier = notifier
        self.health = health
        self.stop_event = stop_event or threading.Event()

        self.engine = RootReconciliationEngine(
            notifier,
            progress_interval=config.progress_interval,
            operator_mention=config.operator_mention,
            cache_window=config.cache_window,
            dedupe_by_source=config.dedupe_by_source,
        )
        self.relay = ErrorRelay(notifier)

        tm_filter = commit_filter(config)
        pd_filter = error_filter(config)
        logger.info(f"tm filter: {tm_filter}")
        logger.info(f"pd filter: {pd_filter}")

        self.commit_pipeline = Pipeline(
            "tm",
            source_factory(config, tm_filter),
            self.engine.handle_record,
            self.stop_event,
            queue_size=config.queue_size,
        )
        self.error_pipeline = Pipeline(
            "pd",
            source_factory(config, pd_filter),
            self.relay.forward,
            self.stop_event,
            queue_size=config.queue_size,
        )

    @property
    def pipelines(self) -> List[Pipeline]:
        return [self.commit_pipeline, self.error_pipeline]

    def stop(self) -> None:
        """Request shutdown of every pipeline."""
        self.stop_event.set()

    def run(self) -> int:
        """
        Start everything and block until all pipelines have finished.

        Returns:
            EXIT_DIVERGENCE if the engine halted, EXIT_OK otherwise
        """
        logger.info("=" * 60)
        logger.info(f"APPHASH MONITOR STARTING - network: {self.config.network}")
        logger.info(f"Progress notice every {self.config.progress_interval} heights")
        logger.info("=" * 60)

        if self.health is not None:
            self.health.start()

        try:
            for pipeline in self.pipelines:
                pipeline.start()
            for pipeline in self.pipelines:
                while pipeline.is_alive():
                    pipeline.join(JOIN_POLL_SECONDS)
        finally:
            if self.health is not None:
                self.health.stop()

        if self.engine.is_halted:
            logger.critical(f"exiting on divergence at height {self.engine.divergence.height}")
            return EXIT_DIVERGENCE

        logger.info("exiting")
        return EXIT_OK
