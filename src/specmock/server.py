"""Mock server assembly.

Builds a Flask app from synthesized OpenAPI routes plus the hand-declared
stateful endpoints:

1. Synthesized routes are registered first, in extraction order.
2. Stateful endpoints are registered next.
3. A (method, pattern) pair already registered is skipped, so a route
   from a document always wins over the built-in endpoint.

Authentication and CORS headers apply uniformly to every route.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.serving import run_simple

from .auth import install_auth
from .config import MockServerConfig
from .handlers import EXTENSION_KEY, STATEFUL_ENDPOINTS, MockContext
from .loader import parse_directory
from .models import HttpMethod, RouteDefinition
from .resolver import NoExample, resolve_response
from .routes import convert_path_to_pattern, extract_all_routes
from .stores import StateManager

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


def make_generic_view(route: RouteDefinition) -> Callable[..., Any]:
    """Create the view serving a synthesized route from its examples."""

    def view(**_path_params: str) -> Any:
        logger.info(f"Serving example for {route.method.value} {route.path}")
        result = resolve_response(route)

        if isinstance(result, NoExample):
            return jsonify(result.to_dict()), 501
        if result.has_body:
            return jsonify(result.body), result.status
        return Response(status=result.status)

    return view


class RouteRegistrar:
    """Registers views on an app, skipping repeated (method, pattern) pairs."""

    def __init__(self, app: Flask, context: MockContext):
        self.app = app
        self.context = context
        self._seen: set[tuple[str, str]] = set()

    def add(self, method: HttpMethod, pattern: str, view: Callable[..., Any], source: str) -> bool:
        """Register a view. Returns False if the pair was already taken."""
        key = (method.value, pattern)
        if key in self._seen:
            logger.debug(f"Skipping duplicate {source} route: {method.value} {pattern}")
            self.context.skipped.append(key)
            return False

        self._seen.add(key)
        self.context.registered.append(key)
        # Patterns may contain dots, which endpoint names must not
        endpoint = f"{source}_{len(self.context.registered)}"
        self.app.add_url_rule(pattern, endpoint=endpoint, view_func=view, methods=[method.value])
        return True


def build_app(
    routes: Iterable[RouteDefinition],
    state: StateManager | None,
    config: MockServerConfig | None = None,
) -> Flask:
    """Build the Flask app serving the given routes.

    Args:
        routes: Synthesized routes, registered before built-in endpoints
        state: Resource stores for stateful mode, or None
        config: Server configuration (defaults are used if omitted)

    Returns:
        The configured Flask app. Its :class:`MockContext` is available as
        ``app.extensions["specmock"]``.
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    context = MockContext(state=state, config=config or MockServerConfig())
    app.extensions[EXTENSION_KEY] = context
    registrar = RouteRegistrar(app, context)

    for route in routes:
        registrar.add(route.method, route.pattern, make_generic_view(route), "openapi")

    for endpoint in STATEFUL_ENDPOINTS:
        registrar.add(
            endpoint.method, convert_path_to_pattern(endpoint.path), endpoint.view, "builtin"
        )

    install_auth(app, state.auth if state is not None else None)
    install_cors(app)
    install_error_handlers(app)

    logger.debug(
        f"Registered {len(context.registered)} routes, skipped {len(context.skipped)} duplicates"
    )
    return app


def install_cors(app: Flask) -> None:
    """Allow any origin, method and header on every response."""

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def install_error_handlers(app: Flask) -> None:
    """Answer HTTP errors (unknown route, wrong method) with JSON bodies."""

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        body = {
            "message": f"{error.name}: {request.method} {request.path}",
            "status": error.code,
        }
        return jsonify(body), error.code


class MockServer:
    """OpenAPI-driven mock server.

    Example:
        >>> config = MockServerConfig(openapi_dir=Path("openapi"))
        >>> server = MockServer(config)
        >>> server.run()  # Blocks until Ctrl+C
    """

    def __init__(self, config: MockServerConfig):
        """Load OpenAPI documents and build the app.

        Args:
            config: Server configuration
        """
        self.config = config

        specs = parse_directory(config.openapi_dir)
        logger.info(f"Parsed {len(specs)} OpenAPI documents")
        self.routes = extract_all_routes(specs)

        self.state: StateManager | None = None
        if config.stateful:
            self.state = StateManager()
            if config.state_file is not None:
                logger.warning(
                    f"State persistence is not supported, ignoring state file {config.state_file}"
                )

        self.app = build_app(self.routes, self.state, config)

    @property
    def context(self) -> MockContext:
        return self.app.extensions[EXTENSION_KEY]

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve requests until interrupted."""
        host = host or self.config.host
        port = self.config.port if port is None else port
        logger.info(f"Server listening on {host}:{port}")
        run_simple(host, port, self.app, threaded=True)
