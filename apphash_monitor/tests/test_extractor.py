"""
Commit Line Extraction Tests
"""

import pytest

from apphash_monitor.extractor import (
    parse_commit_line,
    try_parse_commit_line,
    source_id_from_labels,
)
from apphash_monitor.exceptions import (
    CommitParseError,
    MissingSourceIdError,
    ParseFailure,
)


class TestParseCommitLine:
    """Test the commit line grammar."""

    def test_reference_line(self):
        """The canonical example yields height, root and tx count."""
        line = "finalizing commit of block module=consensus height=42 hash=deadbeef root=cafebabe num_txs=3"

        event = parse_commit_line(line, "penumbra-testnet-val-1")

        assert event.height == 42
        assert event.root == "cafebabe"
        assert event.tx_count == 3
        assert event.block_hash == "deadbeef"
        assert event.source_id == "penumbra-testnet-val-1"

    def test_line_with_prefix(self, commit_line):
        """The marker may appear anywhere in the payload."""
        line = commit_line(1001, "ABCDEF0123", block_hash="FFEE", num_txs=17)

        event = parse_commit_line(line, "node")

        assert event.height == 1001
        assert event.root == "ABCDEF0123"
        assert event.tx_count == 17

    def test_whitespace_after_marker(self):
        """Any whitespace run separates the marker from the module label."""
        line = "finalizing commit of block \t  module=consensus height=7 hash=aa root=bb num_txs=0"

        assert parse_commit_line(line, "node").height == 7

    def test_missing_marker(self):
        """Test that a bare field list does not match."""
        with pytest.raises(CommitParseError) as exc_info:
            parse_commit_line("height=42 root=cafebabe", "node")

        assert exc_info.value.reason is ParseFailure.NO_MATCH

    @pytest.mark.parametrize("line", [
        "",
        "finalizing commit of block module=consensus height=42 hash=deadbeef num_txs=3",
        "finalizing commit of block module=consensus height=42 root=cafebabe hash=deadbeef num_txs=3",
        "finalizing commit of block module=mempool height=42 hash=deadbeef root=cafebabe num_txs=3",
        "finalizing commit of block module=consensus height=42 hash=deadbeef root=xyz num_txs=3",
        "committed state module=state height=42 num_txs=3 app_hash=CAFE",
    ])
    def test_non_matching_lines(self, line):
        """Missing, reordered or malformed fields are NO_MATCH."""
        with pytest.raises(CommitParseError) as exc_info:
            parse_commit_line(line, "node")

        assert exc_info.value.reason is ParseFailure.NO_MATCH

    @pytest.mark.parametrize("line", [
        "finalizing commit of block module=consensus height=4x2 hash=aa root=bb num_txs=3",
        "finalizing commit of block module=consensus height=-1 hash=aa root=bb num_txs=3",
        "finalizing commit of block module=consensus height=42 hash=aa root=bb num_txs=three",
    ])
    def test_invalid_integer(self, line):
        """A present but non-decimal number is INVALID_INTEGER."""
        with pytest.raises(CommitParseError) as exc_info:
            parse_commit_line(line, "node")

        assert exc_info.value.reason is ParseFailure.INVALID_INTEGER

    @pytest.mark.parametrize("suffix", ["\x1b[0m", ",", ")"])
    def test_num_txs_with_trailing_text(self, suffix):
        """Trailing text glued to num_txs does not hide the count."""
        line = (
            "finalizing commit of block module=consensus "
            f"height=42 hash=deadbeef root=cafebabe num_txs=3{suffix}"
        )

        event = parse_commit_line(line, "node")

        assert event.tx_count == 3
        assert event.root == "cafebabe"

    def test_try_parse_returns_none(self):
        assert try_parse_commit_line("executed block module=state height=3", "node") is None

    def test_try_parse_returns_event(self, commit_line):
        event = try_parse_commit_line(commit_line(5, "aa"), "node")

        assert event is not None
        assert event.height == 5


class TestSourceId:
    """Test source id lookup in resource labels."""

    def test_pod_name(self):
        labels = {"pod_name": "penumbra-testnet-fn-0", "container_name": "tm"}

        assert source_id_from_labels(labels) == "penumbra-testnet-fn-0"

    def test_missing_pod_name(self):
        with pytest.raises(MissingSourceIdError):
            source_id_from_labels({"container_name": "tm"})

    def test_empty_pod_name(self):
        """An empty label is treated the same as a missing one."""
        with pytest.raises(MissingSourceIdError):
            source_id_from_labels({"pod_name": ""})

    def test_custom_label(self):
        assert source_id_from_labels({"instance_id": "i-123"}, label="instance_id") == "i-123"
