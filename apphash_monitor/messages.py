"""Notification message formats (Discord markdown)."""

from typing import Iterable, Tuple

from apphash_monitor.models import CommitEvent


def commit_status_line(event: CommitEvent) -> str:
    return f"{event.source_id}, at height {event.height}, has apphash {event.root}"


def progress_notice(event: CommitEvent) -> str:
    return f"**{event.source_id}**, at height **{event.height}**, has apphash _{event.root}_"


def known_root_hashes(reports: Iterable[Tuple[str, str]]) -> str:
    """One `source: root` line per report, each newline-terminated."""
    return "".join(f"{source_id}: {root}\n" for source_id, root in reports)


def divergence_summary(height: int, reports: Iterable[Tuple[str, str]]) -> str:
    return f"ROOT MISMATCH DETECTED AT BLOCK {height}\n{known_root_hashes(reports)}"


def divergence_alert(height: int, reports: Iterable[Tuple[str, str]], mention: str) -> str:
    summary = divergence_summary(height, reports)
    if not mention:
        return summary
    return f"{mention} : {summary}"


def error_notice(source_id: str, payload: str) -> str:
    return f"{source_id}: {payload}"
