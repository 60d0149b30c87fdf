"""Pytest fixtures for apphash monitor tests."""
import pytest

from apphash_monitor.engine import RootReconciliationEngine
from apphash_monitor.models import CommitEvent, LogRecord, MonitorConfig


class RecordingNotifier:
    """Notifier double that keeps every message."""

    def __init__(self):
        self.messages = []

    def notify(self, message):
        self.messages.append(message)
        return True


class ExplodingNotifier:
    """Notifier double whose delivery always raises."""

    def __init__(self):
        self.calls = 0

    def notify(self, message):
        self.calls += 1
        raise RuntimeError("webhook unreachable")


def commit_line(height, root, block_hash="deadbeef", num_txs=0):
    return (
        "2024-03-01T10:00:00Z  INFO finalizing commit of block "
        f"module=consensus height={height} hash={block_hash} root={root} num_txs={num_txs}"
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(notifier):
    return RootReconciliationEngine(notifier, progress_interval=1000)


@pytest.fixture
def make_event():
    def _make(height, root, source_id="penumbra-testnet-val-0", tx_count=0):
        return CommitEvent(height=height, root=root, tx_count=tx_count, source_id=source_id)
    return _make


@pytest.fixture
def make_record():
    def _make(payload, pod_name="penumbra-testnet-val-0", **labels):
        if pod_name is not None:
            labels["pod_name"] = pod_name
        return LogRecord(payload=payload, labels=labels)
    return _make


@pytest.fixture
def base_env():
    return {
        "GCP_PROJECT_ID": "penumbra-sl-testnet",
        "DISCORD_WEBHOOK_URL": "https://discord.com/api/webhooks/1/abc",
        "GOOGLE_APPLICATION_CREDENTIALS": "/secrets/gcp.json",
        "GCP_CREDENTIALS": '{"type": "service_account"}',
        "PENUMBRA_NETWORK": "testnet",
    }


@pytest.fixture
def config(base_env):
    return MonitorConfig(
        project_id=base_env["GCP_PROJECT_ID"],
        webhook_url=base_env["DISCORD_WEBHOOK_URL"],
        credentials_path=base_env["GOOGLE_APPLICATION_CREDENTIALS"],
        credentials_json=base_env["GCP_CREDENTIALS"],
        network=base_env["PENUMBRA_NETWORK"],
        health_port=0,
        queue_size=4,
    )


@pytest.fixture(name="commit_line")
def commit_line_fixture():
    return commit_line


@pytest.fixture
def exploding_notifier():
    return ExplodingNotifier()
