"""Shared test fixtures and configuration."""

import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import responses
import yaml
from flask import Flask
from flask.testing import FlaskClient

from specmock.client import MockApiClient
from specmock.config import MockMode, MockServerConfig
from specmock.server import MockServer
from specmock.stores import StateManager

WIDGETS_SPEC: dict[str, Any] = {
    "openapi": "3.0.0",
    "info": {"title": "Widgets API", "version": "1.0.0"},
    "paths": {
        "/widgets": {
            "get": {
                "operationId": "listWidgets",
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {"application/json": {"example": {"items": ["a", "b"]}}},
                    }
                },
            }
        },
        "/widgets/{widgetId}": {
            "delete": {
                "operationId": "deleteWidget",
                "responses": {"204": {"description": "Deleted"}},
            },
            "put": {
                "operationId": "replaceWidget",
                "responses": {"400": {"description": "Bad request"}},
            },
        },
        "/widgets/{widgetId}/ping": {
            "get": {
                "operationId": "pingWidget",
                "responses": {"200": {"description": "OK"}},
            }
        },
    },
}


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Temporary directory for file operations."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_spec(temp_dir: Path) -> Callable[..., Path]:
    """Write an OpenAPI document below the temporary directory."""

    def _write(relative: str, document: Any) -> Path:
        path = temp_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def openapi_dir(write_spec: Callable[..., Path], temp_dir: Path) -> Path:
    """Directory holding one sample OpenAPI document."""
    write_spec("widgets/widgets.yaml", WIDGETS_SPEC)
    return temp_dir


@pytest.fixture
def state() -> StateManager:
    """Fresh resource stores."""
    return StateManager()


@pytest.fixture
def stateful_server(openapi_dir: Path) -> MockServer:
    """Stateful mock server over the sample document."""
    return MockServer(MockServerConfig(mode=MockMode.STATEFUL, openapi_dir=openapi_dir))


@pytest.fixture
def stateless_server(openapi_dir: Path) -> MockServer:
    """Stateless mock server over the sample document."""
    return MockServer(MockServerConfig(mode=MockMode.STATELESS, openapi_dir=openapi_dir))


@pytest.fixture
def app(stateful_server: MockServer) -> Flask:
    return stateful_server.app


@pytest.fixture
def http(app: Flask) -> FlaskClient:
    """Flask test client for the stateful app."""
    return app.test_client()


@pytest.fixture
def auth_headers(http: FlaskClient) -> dict[str, str]:
    """Authorization header carrying a freshly issued token."""
    response = http.post("/authentication/v2/token", json={"client_id": "test-client"})
    token = response.get_json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def base_url() -> str:
    """Mock server base URL for client tests."""
    return "http://localhost:3000"


@pytest.fixture
def api_client(base_url: str) -> MockApiClient:
    """Mock API client."""
    return MockApiClient(base_url=base_url)


@pytest.fixture
def mock_responses() -> Iterator[responses.RequestsMock]:
    """Mock HTTP responses."""
    with responses.RequestsMock() as rsps:
        yield rsps
