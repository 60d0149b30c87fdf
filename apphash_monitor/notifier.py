"""
Discord Notifier
================

Fire-and-forget delivery of operator messages to a Discord webhook.

Delivery is best effort: every request carries a timeout, and failures are
logged and swallowed so that a slow or unreachable webhook can never stall
or crash the reconciliation pipeline.
"""

import logging
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)

# Discord rejects message content above this many characters
DISCORD_MAX_CONTENT = 2000
TRUNCATION_MARKER = "\n…(truncated)"


class Notifier(Protocol):
    """Anything that can deliver a text message to a human-facing channel."""

    def notify(self, message: str) -> bool:
        ...


class DiscordNotifier:
    """
    Posts messages to a Discord webhook.

    Args:
        webhook_url: Discord webhook URL; an empty URL disables delivery
        timeout: Per-request timeout in seconds
        session: Optional requests session (shared connection pool)
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.enabled = bool(webhook_url)
        self.sent = 0
        self.failed = 0

        if not self.enabled:
            logger.warning("Discord notifier disabled - missing webhook URL")

    @staticmethod
    def _fit(message: str) -> str:
        if len(message) <= DISCORD_MAX_CONTENT:
            return message
        keep = DISCORD_MAX_CONTENT - len(TRUNCATION_MARKER)
        return message[:keep] + TRUNCATION_MARKER

    def notify(self, message: str) -> bool:
        """Send message to Discord. Returns True on a 2xx response."""
        if not self.enabled:
            logger.warning(f"Discord disabled, would send: {message[:100]}...")
            return False

        try:
            response = self.session.post(
                self.webhook_url,
                json={"content": self._fit(message)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.failed += 1
            logger.error(f"Discord send exception: {e}")
            return False

        if response.ok:
            self.sent += 1
            logger.debug("Discord notification sent")
            return True

        self.failed += 1
        logger.error(f"Discord send failed ({response.status_code}): {response.text[:200]}")
        return False
