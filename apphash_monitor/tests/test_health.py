"""
Liveness Endpoint Tests
"""

import pytest
import requests

from apphash_monitor.health import HealthServer


@pytest.fixture
def health_server():
    server = HealthServer("127.0.0.1", 0)
    server.start()
    yield server
    server.stop()


def _request(server, method, path, **kwargs):
    session = requests.Session()
    session.trust_env = False
    return session.request(method, _url(server, path), timeout=5, **kwargs)


def _get(server, path):
    return _request(server, "GET", path)


def _url(server, path):
    host, port = server.address
    return f"http://{host}:{port}{path}"


class TestHealthServer:
    """Test /health."""

    def test_health_ok(self, health_server):
        response = _get(health_server, "/health")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_query_string_ignored(self, health_server):
        response = _get(health_server, "/health?source=k8s")

        assert response.status_code == 200

    def test_head_returns_headers_only(self, health_server):
        response = _request(health_server, "HEAD", "/health")

        assert response.status_code == 200
        assert response.headers["Content-Length"] == "2"
        assert response.content == b""

    def test_post_answers_ok(self, health_server):
        response = _request(health_server, "POST", "/health", data=b"ping")

        assert response.status_code == 200
        assert response.text == "OK"

    @pytest.mark.parametrize("method", ["PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_other_methods_answer_ok(self, health_server, method):
        response = _request(health_server, method, "/health")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_post_unknown_path(self, health_server):
        response = _request(health_server, "POST", "/metrics")

        assert response.status_code == 404

    def test_unknown_path(self, health_server):
        response = _get(health_server, "/metrics")

        assert response.status_code == 404

    def test_port_resolved(self, health_server):
        assert health_server.address[1] != 0

    def test_stop_is_idempotent(self):
        server = HealthServer("127.0.0.1", 0)
        server.start()
        server.stop()
        server.stop()
