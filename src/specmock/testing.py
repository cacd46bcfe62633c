"""Helpers for using specmock from test suites.

:class:`TestServer` runs a mock server on a random local port in a
background thread::

    with TestServer.start_with_openapi_dir(Path("openapi")) as server:
        client = MockApiClient(base_url=server.url)
        client.get("/oss/v2/buckets")
"""

import logging
import threading
from pathlib import Path
from typing import Any

from werkzeug.serving import BaseWSGIServer, make_server

from .config import MockMode, MockServerConfig
from .server import MockServer

logger = logging.getLogger(__name__)


class TestServer:
    """A mock server running in a background thread until stopped."""

    # Not a test class, despite the name
    __test__ = False

    def __init__(self, server: MockServer, host: str = "127.0.0.1"):
        """Bind the server to a random port and start serving.

        Args:
            server: The mock server to run
            host: Interface to bind
        """
        self.server = server
        self._http: BaseWSGIServer = make_server(host, 0, server.app, threaded=True)
        self.url = f"http://{host}:{self._http.server_port}"
        self._thread = threading.Thread(target=self._http.serve_forever, daemon=True)
        self._thread.start()
        logger.debug(f"Test server listening on {self.url}")

    @classmethod
    def start(cls, config: MockServerConfig) -> "TestServer":
        """Start a test server with the given configuration."""
        return cls(MockServer(config))

    @classmethod
    def start_default(cls) -> "TestServer":
        """Start a stateful test server with the default OpenAPI directory."""
        return cls.start(MockServerConfig())

    @classmethod
    def start_with_openapi_dir(cls, openapi_dir: Path) -> "TestServer":
        """Start a stateful test server loading documents from a directory."""
        return cls.start(MockServerConfig(mode=MockMode.STATEFUL, openapi_dir=openapi_dir))

    @classmethod
    def start_stateless(cls, openapi_dir: Path | None = None) -> "TestServer":
        """Start a test server serving fixed examples only."""
        config = MockServerConfig(mode=MockMode.STATELESS)
        if openapi_dir is not None:
            config.openapi_dir = openapi_dir
        return cls.start(config)

    def uri(self) -> str:
        return self.url

    def stop(self) -> None:
        """Shut the server down and wait for its thread."""
        if not self._thread.is_alive():
            return
        self._http.shutdown()
        self._thread.join()
        self._http.server_close()

    def __enter__(self) -> "TestServer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()
