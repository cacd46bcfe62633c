"""Tests for the background test server helper."""

from pathlib import Path

import requests

from specmock.client import MockApiClient
from specmock.testing import TestServer


class TestTestServer:
    """Tests for TestServer class, over real HTTP."""

    def test_serves_on_random_port(self, openapi_dir: Path):
        """Should serve synthesized routes on a local port."""
        with TestServer.start_with_openapi_dir(openapi_dir) as server:
            assert server.uri().startswith("http://127.0.0.1:")

            client = MockApiClient(base_url=server.url)
            response = client.get("/widgets")

        assert response.status_code == 200
        assert response.json() == {"items": ["a", "b"]}

    def test_stateful_round_trip(self, openapi_dir: Path):
        """Should keep state between requests."""
        with TestServer.start_with_openapi_dir(openapi_dir) as server:
            client = MockApiClient(base_url=server.url)
            client.post("/oss/v2/buckets", json={"bucketKey": "round-trip"})
            items = client.get("/oss/v2/buckets").json()["items"]

        assert [i["bucketKey"] for i in items] == ["round-trip"]

    def test_unauthenticated_request(self, openapi_dir: Path):
        with TestServer.start_with_openapi_dir(openapi_dir) as server:
            response = requests.get(f"{server.url}/project/v1/hubs", timeout=5)

        assert response.status_code == 401
        assert response.json()["errorCode"] == "AUTH-001"

    def test_stateless(self, openapi_dir: Path):
        with TestServer.start_stateless(openapi_dir) as server:
            assert server.server.state is None
            response = MockApiClient(base_url=server.url).get("/project/v1/hubs")

        assert response.json()["data"] == []

    def test_stop_is_idempotent(self, temp_dir: Path):
        server = TestServer.start_with_openapi_dir(temp_dir)

        server.stop()
        server.stop()

        assert not server._thread.is_alive()
