"""Route synthesis from parsed OpenAPI documents.

Converts OpenAPI path templates (``/buckets/{bucketKey}``) into Flask rules
(``/buckets/<bucket_key>``) and emits one :class:`RouteDefinition` per
operation.
"""

import logging
import re
from collections.abc import Iterable

from .models import HttpMethod, OpenApiSpec, RouteDefinition

logger = logging.getLogger(__name__)

# OpenAPI path parameter: {name}
PATH_PARAM_PATTERN = re.compile(r"\{([^}]+)\}")

# camelCase boundary: lowercase letter followed by uppercase letter
CAMEL_CASE_PATTERN = re.compile(r"([a-z])([A-Z])")

# Characters not allowed in a werkzeug rule variable name
INVALID_VARIABLE_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def normalize_param_name(name: str) -> str:
    """Normalize a path parameter name to snake_case.

    ``hubId``, ``HubId`` and ``hub_id`` all become ``hub_id``, so the same
    logical segment always gets the same rule variable.
    """
    snake = CAMEL_CASE_PATTERN.sub(r"\1_\2", name).lower()
    snake = INVALID_VARIABLE_CHARS.sub("_", snake)
    if not snake or snake[0].isdigit():
        snake = f"_{snake}"
    return snake


def convert_path_to_pattern(path: str) -> str:
    """Convert an OpenAPI path template to a Flask rule.

    Examples:
        >>> convert_path_to_pattern("/buckets/{bucketKey}/objects")
        '/buckets/<bucket_key>/objects'
        >>> convert_path_to_pattern("/hubs/{HubId}")
        '/hubs/<hub_id>'
    """
    return PATH_PARAM_PATTERN.sub(lambda m: f"<{normalize_param_name(m.group(1))}>", path)


def extract_routes(spec: OpenApiSpec) -> list[RouteDefinition]:
    """Extract one route per operation of a document.

    Paths keep document order; methods within a path follow
    GET, POST, PUT, DELETE, PATCH.
    """
    routes = []
    for path, path_item in spec.paths.items():
        pattern = convert_path_to_pattern(path)
        for method in HttpMethod:
            operation = path_item.get(method)
            if operation is None:
                continue
            routes.append(
                RouteDefinition(
                    method=method,
                    path=path,
                    pattern=pattern,
                    operation=operation,
                    spec=spec,
                )
            )
    return routes


def extract_all_routes(specs: Iterable[tuple[str, OpenApiSpec]]) -> list[RouteDefinition]:
    """Flatten routes from several named documents, keeping their order."""
    all_routes: list[RouteDefinition] = []
    for name, spec in specs:
        routes = extract_routes(spec)
        logger.debug(f"Extracted {len(routes)} routes from {name}")
        all_routes.extend(routes)
    return all_routes
