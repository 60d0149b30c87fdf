"""
Apphash Monitor v1.0

Tails the consensus and error logs of a Penumbra validator fleet, checks that
every node commits the same application root at every height, and alerts an
operator on Discord when they diverge.
"""

from apphash_monitor.models import (
    LogRecord,
    CommitEvent,
    RootHashRecord,
    HeightRecord,
    EngineState,
    MonitorConfig,
)

from apphash_monitor.extractor import (
    parse_commit_line,
    try_parse_commit_line,
    source_id_from_labels,
)

from apphash_monitor.engine import RootReconciliationEngine
from apphash_monitor.relay import ErrorRelay
from apphash_monitor.notifier import DiscordNotifier, Notifier

from apphash_monitor.config import (
    load_config,
    commit_filter,
    error_filter,
)

from apphash_monitor.exceptions import (
    ApphashMonitorException,
    ConfigurationError,
    ParseFailure,
    CommitParseError,
    MissingSourceIdError,
    TransportError,
    RootDivergenceError,
    EngineHaltedError,
)

__version__ = "1.0.0"

__all__ = [
    # Models
    "LogRecord",
    "CommitEvent",
    "RootHashRecord",
    "HeightRecord",
    "EngineState",
    "MonitorConfig",
    # Extraction
    "parse_commit_line",
    "try_parse_commit_line",
    "source_id_from_labels",
    # Engine and relay
    "RootReconciliationEngine",
    "ErrorRelay",
    # Notification
    "DiscordNotifier",
    "Notifier",
    # Configuration
    "load_config",
    "commit_filter",
    "error_filter",
    # Exceptions
    "ApphashMonitorException",
    "ConfigurationError",
    "ParseFailure",
    "CommitParseError",
    "MissingSourceIdError",
    "TransportError",
    "RootDivergenceError",
    "EngineHaltedError",
]
