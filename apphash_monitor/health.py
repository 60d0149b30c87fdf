"""
Liveness endpoint.

/health answers 200 "OK" to any method while the process is up; HEAD gets
the headers only. It does not reflect the reconciliation engine's state: a
halted engine still reports OK until the process exits.
"""

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"


class _HealthHandler(BaseHTTPRequestHandler):

    def _respond(self, include_body=True):
        if self.path.split("?", 1)[0] != HEALTH_PATH:
            self.send_error(404)
            return
        body = b"OK"
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def _discard_request_body(self):
        length = int(self.headers.get("Content-Length") or 0)
        if length > 0:
            self.rfile.read(length)

    def do_GET(self):
        self._respond()

    def do_HEAD(self):
        self._respond(include_body=False)

    def do_POST(self):
        self._discard_request_body()
        self._respond()

    do_PUT = do_POST
    do_PATCH = do_POST
    do_DELETE = do_POST
    do_OPTIONS = do_POST

    def log_message(self, format, *args):
        logger.debug("health: " + format % args)


class HealthServer:
    """Serves the liveness endpoint from a daemon thread."""

    def __init__(self, host: str = "0.0.0.0", port: int = 8080):
        self.host = host
        self.port = port
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the port is resolved when 0 was requested."""
        if self._server is None:
            return (self.host, self.port)
        return self._server.server_address[:2]

    def start(self) -> None:
        self._server = ThreadingHTTPServer((self.host, self.port), _HealthHandler)
        self._server.daemon_threads = True
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="health", daemon=True
        )
        self._thread.start()
        host, port = self.address
        logger.info(f"health endpoint listening on http://{host}:{port}{HEALTH_PATH}")

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
