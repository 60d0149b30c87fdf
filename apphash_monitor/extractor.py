"""
Commit Line Extraction

Pure functions turning a raw consensus log line into a CommitEvent.

The matched line looks like:

    finalizing commit of block module=consensus height=42 hash=DEADBEEF root=CAFEBABE num_txs=3

The two numeric fields are captured loosely so that a line carrying every
label but a garbled number is reported as INVALID_INTEGER instead of
NO_MATCH. Leading digits of num_txs win over trailing text (e.g. a color
reset code), as they would for a plain decimal match.
"""

import re
from typing import Mapping, Optional

from apphash_monitor.models import CommitEvent
from apphash_monitor.exceptions import (
    CommitParseError,
    MissingSourceIdError,
    ParseFailure,
)

COMMIT_MARKER = "finalizing commit of block"

COMMIT_LINE_RE = re.compile(
    re.escape(COMMIT_MARKER)
    + r"\s+module=consensus"
    + r" height=(?P<height>\S+)"
    + r" hash=(?P<hash>[0-9a-fA-F]+)"
    + r" root=(?P<root>[0-9a-fA-F]+)"
    + r" num_txs=(?P<num_txs>\d+|\S+)"
)

DEFAULT_SOURCE_LABEL = "pod_name"


def _parse_uint(name: str, text: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise CommitParseError(ParseFailure.INVALID_INTEGER, f"{name}={text!r}")
    return int(text)


def parse_commit_line(line: str, source_id: str) -> CommitEvent:
    """
    Extract a commit event from a single log payload.

    Args:
        line: Log payload, already isolated from multiplexed output
        source_id: Identifier of the node that emitted the line

    Returns:
        CommitEvent with height, root, tx count and source

    Raises:
        CommitParseError: NO_MATCH if the marker or any field is missing,
            INVALID_INTEGER if height or num_txs is not a decimal integer
    """
    match = COMMIT_LINE_RE.search(line)
    if match is None:
        raise CommitParseError(ParseFailure.NO_MATCH)

    height = _parse_uint("height", match.group("height"))
    tx_count = _parse_uint("num_txs", match.group("num_txs"))

    return CommitEvent(
        height=height,
        block_hash=match.group("hash"),
        root=match.group("root"),
        tx_count=tx_count,
        source_id=source_id,
    )


def try_parse_commit_line(line: str, source_id: str) -> Optional[CommitEvent]:
    """Like parse_commit_line, but returns None for lines that do not parse."""
    try:
        return parse_commit_line(line, source_id)
    except CommitParseError:
        return None


def source_id_from_labels(
    labels: Mapping[str, str],
    label: str = DEFAULT_SOURCE_LABEL,
) -> str:
    """
    Look up the reporting node's identifier in a record's resource labels.

    Raises:
        MissingSourceIdError: If the label is absent or empty
    """
    source_id = labels.get(label)
    if not source_id:
        raise MissingSourceIdError(f"{label} not found in resource labels")
    return source_id
