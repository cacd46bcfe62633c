"""specmock: OpenAPI-driven mock HTTP API server.

Loads a directory tree of OpenAPI 3.0 documents, synthesizes a route for
every operation and serves example responses from the documents. In
stateful mode a set of built-in endpoints keeps tokens, buckets, objects,
projects, translation jobs, issues and webhooks in memory.
"""

__version__ = "0.1.0"

from .auth import AuthDecision, authorize
from .client import MockApiClient
from .config import MockMode, MockServerConfig
from .loader import parse_directory, parse_file
from .models import HttpMethod, OpenApiSpec, RouteDefinition, SpecParseError
from .resolver import ExampleResponse, NoExample, resolve_response
from .routes import convert_path_to_pattern, extract_routes
from .server import MockServer, build_app
from .stores import StateManager
from .testing import TestServer

__all__ = [
    "AuthDecision",
    "authorize",
    "MockApiClient",
    "MockMode",
    "MockServerConfig",
    "parse_directory",
    "parse_file",
    "HttpMethod",
    "OpenApiSpec",
    "RouteDefinition",
    "SpecParseError",
    "ExampleResponse",
    "NoExample",
    "resolve_response",
    "convert_path_to_pattern",
    "extract_routes",
    "MockServer",
    "build_app",
    "StateManager",
    "TestServer",
]
