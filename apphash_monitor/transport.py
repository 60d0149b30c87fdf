"""
Cloud Logging Transport

Tails Google Cloud Logging with a server-side filter and yields every entry
as a LogRecord. One source per monitored concern.

No reconnection: when the stream ends or errors, the iterator ends and the
owning pipeline terminates.
"""

import json
import logging
import threading
from typing import Any, Callable, Iterator

from google.api_core import exceptions as google_exceptions
from google.cloud.logging_v2.services.logging_service_v2 import LoggingServiceV2Client
from google.cloud.logging_v2.types import TailLogEntriesRequest
from google.oauth2 import service_account

from apphash_monitor.exceptions import TransportError
from apphash_monitor.models import LogRecord

logger = logging.getLogger(__name__)


def credentials_from_json(credentials_json: str) -> service_account.Credentials:
    """Service account credentials from raw key JSON."""
    try:
        info = json.loads(credentials_json)
        return service_account.Credentials.from_service_account_info(info)
    except (ValueError, KeyError) as e:
        raise TransportError(f"invalid service account credentials: {e}") from e


class CloudLoggingSource:
    """
    Live tail of one Cloud Logging filter.

    Args:
        project_id: Project whose logs are tailed
        credentials_json: Service account key JSON
        filter_expr: Cloud Logging filter expression
        client_factory: Builds the logging client from credentials
        credentials_loader: Turns the key JSON into credentials
    """

    def __init__(
        self,
        project_id: str,
        credentials_json: str,
        filter_expr: str,
        client_factory: Callable[..., LoggingServiceV2Client] = LoggingServiceV2Client,
        credentials_loader: Callable[[str], Any] = credentials_from_json,
    ):
        self.project_id = project_id
        self.credentials_json = credentials_json
        self.filter_expr = filter_expr
        self.client_factory = client_factory
        self.credentials_loader = credentials_loader

    def _requests(self, stop_event: threading.Event) -> Iterator[TailLogEntriesRequest]:
        yield TailLogEntriesRequest(
            resource_names=[f"projects/{self.project_id}"],
            filter=self.filter_expr,
        )
        # Keep the request side open until shutdown; closing it ends the tail.
        stop_event.wait()

    def __call__(self, stop_event: threading.Event) -> Iterator[LogRecord]:
        credentials = self.credentials_loader(self.credentials_json)
        client = self.client_factory(credentials=credentials)
        logger.info("connected to GCP")

        try:
            # No deadline and no retry: the tail is meant to run indefinitely.
            responses = client.tail_log_entries(
                requests=self._requests(stop_event),
                retry=None,
                timeout=None,
            )
            logger.info("established stream")
            for response in responses:
                for entry in response.entries:
                    yield LogRecord(
                        payload=entry.text_payload,
                        labels=dict(entry.resource.labels),
                    )
                if stop_event.is_set():
                    break
            else:
                logger.info("stream EOF")
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"stream.Recv error: {e}")
        finally:
            transport = getattr(client, "transport", None)
            if transport is not None:
                transport.close()
            logger.info("terminating stream")
