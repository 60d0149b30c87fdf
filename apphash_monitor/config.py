"""
Monitor Configuration

Reads the process configuration from the environment (optionally seeded
from a .env file) and builds the Cloud Logging filter expressions.

Required:
    GCP_PROJECT_ID                  project holding the fleet's logs
    DISCORD_WEBHOOK_URL             operator notification channel
    GOOGLE_APPLICATION_CREDENTIALS  credentials file path
    GCP_CREDENTIALS                 service account key JSON
    PENUMBRA_NETWORK                network name, selects pods penumbra-<network>

Optional:
    CLUSTER_NAME (testnet), PROGRESS_INTERVAL (1000), OPERATOR_MENTION (@erwanor),
    HEALTH_HOST (0.0.0.0), HEALTH_PORT (8080), NOTIFY_TIMEOUT_SECONDS (10),
    QUEUE_SIZE (64), CACHE_WINDOW (unbounded), DEDUPE_BY_SOURCE (0), LOG_LEVEL (INFO)
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import ValidationError

from apphash_monitor.exceptions import ConfigurationError
from apphash_monitor.models import MonitorConfig

# Checked in this order; the first missing one is reported
REQUIRED_ENV = [
    ("GCP_PROJECT_ID", "project_id"),
    ("DISCORD_WEBHOOK_URL", "webhook_url"),
    ("GOOGLE_APPLICATION_CREDENTIALS", "credentials_path"),
    ("GCP_CREDENTIALS", "credentials_json"),
    ("PENUMBRA_NETWORK", "network"),
]

OPTIONAL_ENV = {
    "CLUSTER_NAME": "cluster_name",
    "PROGRESS_INTERVAL": "progress_interval",
    "OPERATOR_MENTION": "operator_mention",
    "HEALTH_HOST": "health_host",
    "HEALTH_PORT": "health_port",
    "NOTIFY_TIMEOUT_SECONDS": "notify_timeout",
    "QUEUE_SIZE": "queue_size",
    "CACHE_WINDOW": "cache_window",
    "DEDUPE_BY_SOURCE": "dedupe_by_source",
    "LOG_LEVEL": "log_level",
}

COMMIT_CONTAINER = "tm"
ERROR_CONTAINER = "pd"


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[Union[str, Path]] = None,
) -> MonitorConfig:
    """
    Build the monitor configuration.

    Args:
        environ: Mapping to read from. Defaults to os.environ, after loading
            `env_file` (or a .env found from the working directory) into it
            without overriding variables already set.
        env_file: Explicit .env path

    Returns:
        Validated MonitorConfig

    Raises:
        ConfigurationError: If a required variable is unset or empty, or an
            optional one does not validate
    """
    if environ is None:
        load_dotenv(env_file)
        environ = os.environ

    values: Dict[str, Any] = {}
    for env_name, field in REQUIRED_ENV:
        value = environ.get(env_name, "")
        if not value:
            raise ConfigurationError(f"{env_name} is unset or empty")
        values[field] = value

    for env_name, field in OPTIONAL_ENV.items():
        value = environ.get(env_name, "")
        if value != "":
            values[field] = value

    try:
        return MonitorConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{_env_name_for(err['loc'][0])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from e


def _env_name_for(field: Any) -> str:
    for env_name, name in REQUIRED_ENV:
        if name == field:
            return env_name
    for env_name, name in OPTIONAL_ENV.items():
        if name == field:
            return env_name
    return str(field)


def _base_filter(config: MonitorConfig, container: str) -> str:
    return (
        f'resource.labels.container_name="{container}"'
        f' AND resource.labels.cluster_name="{config.cluster_name}"'
        f' AND resource.labels.pod_name:"{config.pod_prefix}"'
    )


def commit_filter(config: MonitorConfig) -> str:
    """Filter selecting the consensus (tm) container logs of the network's pods."""
    return _base_filter(config, COMMIT_CONTAINER)


def error_filter(config: MonitorConfig) -> str:
    """Filter selecting ERROR-or-worse logs of the network's pd containers."""
    return _base_filter(config, ERROR_CONTAINER) + " AND severity>=ERROR"
