"""
Apphash Monitor Data Models

Pydantic v2 models for raw log records, commit events, per-height root
reports and monitor configuration.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, ConfigDict, field_validator

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


# ============================================================================
# INGESTION RECORDS
# ============================================================================

class LogRecord(BaseModel):
    """
    A raw log entry as delivered by the log transport.

    Captures:
    - The free-text payload of the entry
    - The resource labels (pod_name, container_name, ...) it was tagged with
    """
    model_config = ConfigDict(frozen=True)

    payload: str = Field(
        default="",
        description="Text payload of the log entry"
    )
    labels: Dict[str, str] = Field(
        default_factory=dict,
        description="Resource labels attached to the entry"
    )


class CommitEvent(BaseModel):
    """
    One node's report of a committed block.

    Only the extractor builds these, from a fully matched commit line.
    """
    model_config = ConfigDict(frozen=True)

    height: int = Field(
        ...,
        ge=0,
        description="Block height"
    )
    block_hash: str = Field(
        default="",
        description="Block hash (diagnostics only)"
    )
    root: str = Field(
        ...,
        description="Hex-encoded application state root"
    )
    tx_count: int = Field(
        default=0,
        ge=0,
        description="Number of transactions in the block"
    )
    source_id: str = Field(
        ...,
        description="Reporting node (pod name)"
    )


# ============================================================================
# RECONCILIATION STATE
# ============================================================================

class RootHashRecord(BaseModel):
    """A (source, root) pair as remembered for one height."""
    model_config = ConfigDict(frozen=True)

    source_id: str
    root: str

    @classmethod
    def from_event(cls, event: CommitEvent) -> "RootHashRecord":
        return cls(source_id=event.source_id, root=event.root)


class HeightRecord(BaseModel):
    """
    Every report accepted for a given height, in arrival order.

    All roots in `reports` are identical; the engine refuses any insertion
    that would break this.
    """

    height: int = Field(..., ge=0)
    reports: List[RootHashRecord] = Field(default_factory=list)

    @property
    def root(self) -> Optional[str]:
        """The agreed root, or None for an empty record."""
        return self.reports[0].root if self.reports else None

    @property
    def sources(self) -> List[str]:
        return [r.source_id for r in self.reports]

    def agrees_with(self, record: RootHashRecord) -> bool:
        """True when `record.root` matches every report already held."""
        for existing in self.reports:
            if existing.root != record.root:
                return False
        return True

    def has_report(self, record: RootHashRecord) -> bool:
        return record in self.reports

    def pairs(self) -> List[Tuple[str, str]]:
        return [(r.source_id, r.root) for r in self.reports]


class EngineState(Enum):
    """Lifecycle of the reconciliation engine. HALTED is terminal."""
    RUNNING = "RUNNING"
    HALTED = "HALTED"


# ============================================================================
# CONFIGURATION
# ============================================================================

class MonitorConfig(BaseModel):
    """Process configuration, assembled from the environment by config.load_config."""
    model_config = ConfigDict(frozen=True)

    # Required
    project_id: str = Field(..., min_length=1, description="GCP project holding the logs")
    webhook_url: str = Field(..., min_length=1, description="Discord webhook URL")
    credentials_path: str = Field(
        ...,
        min_length=1,
        description="GOOGLE_APPLICATION_CREDENTIALS path"
    )
    credentials_json: str = Field(
        ...,
        min_length=1,
        description="Service account key material (JSON)"
    )
    network: str = Field(..., min_length=1, description="Penumbra network name")

    # Optional
    cluster_name: str = Field(default="testnet", min_length=1)
    progress_interval: int = Field(
        default=1000,
        gt=0,
        description="Send a progress notice every N heights"
    )
    operator_mention: str = Field(
        default="@erwanor",
        description="Prefix of the fatal divergence notice"
    )
    health_host: str = Field(default="0.0.0.0")
    health_port: int = Field(default=8080, ge=0, le=65535)
    notify_timeout: float = Field(
        default=10.0,
        gt=0.0,
        description="Webhook request timeout (seconds)"
    )
    queue_size: int = Field(
        default=64,
        gt=0,
        description="Bound of the producer/consumer queue"
    )
    cache_window: Optional[int] = Field(
        default=None,
        gt=0,
        description="Retain only the last K heights (None = unbounded)"
    )
    dedupe_by_source: bool = Field(
        default=False,
        description="Ignore repeated identical reports from the same source"
    )
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def pod_prefix(self) -> str:
        return f"penumbra-{self.network}"
