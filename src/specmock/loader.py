"""OpenAPI document discovery and parsing.

Walks a directory tree for ``.yaml``, ``.yml`` and ``.json`` files and
parses each into an :class:`~specmock.models.OpenApiSpec`. Individual
files that fail to parse are logged and skipped so one broken document
never prevents the rest from loading.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .models import (
    ApiKeyScheme,
    Components,
    Example,
    HttpMethod,
    HttpScheme,
    Info,
    MediaType,
    OAuth2Flow,
    OAuth2Scheme,
    OpenApiSpec,
    Operation,
    Parameter,
    ParameterDefinition,
    PathItem,
    Reference,
    RequestBody,
    Response,
    ResponseDefinition,
    Schema,
    SchemaDefinition,
    SecurityScheme,
    Server,
    SpecParseError,
)

logger = logging.getLogger(__name__)

SPEC_EXTENSIONS = {".yaml", ".yml", ".json"}

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class SpecLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted dates and timestamps as strings.

    Example values are served back as JSON exactly as written, so
    ``2024-01-15`` must stay a string rather than become a ``date``.
    """


SpecLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def parse_directory(root: Path) -> list[tuple[str, OpenApiSpec]]:
    """Parse every OpenAPI document below a directory.

    Args:
        root: Directory to walk recursively

    Returns:
        List of (logical name, spec) pairs in sorted path order. The logical
        name is the path relative to ``root`` with ``/`` separators and the
        extension stripped. A missing directory yields an empty list.
    """
    root = Path(root)
    specs: list[tuple[str, OpenApiSpec]] = []

    if not root.exists():
        logger.warning(f"OpenAPI directory does not exist: {root}")
        return specs

    # Listing the root itself is allowed to fail loudly
    entries = sorted(root.iterdir())
    _walk(root, entries, specs)
    return specs


def _walk(root: Path, entries: list[Path], specs: list[tuple[str, OpenApiSpec]]) -> None:
    for path in entries:
        if path.is_dir():
            try:
                children = sorted(path.iterdir())
            except OSError as e:
                logger.warning(f"Cannot read directory {path}: {e}")
                continue
            _walk(root, children, specs)
        elif path.suffix.lower() in SPEC_EXTENSIONS:
            try:
                spec = parse_file(path)
            except (SpecParseError, yaml.YAMLError, ValueError, OSError) as e:
                logger.warning(f"Failed to parse {path}: {e}")
                continue
            specs.append((logical_name(root, path), spec))


def logical_name(root: Path, path: Path) -> str:
    """Diagnostic name for a spec file: relative path without extension."""
    try:
        relative = path.relative_to(root)
    except ValueError:
        relative = path
    return relative.with_suffix("").as_posix()


def parse_file(path: Path) -> OpenApiSpec:
    """Parse a single OpenAPI document.

    Raises:
        SpecParseError: If the document root is not a valid OpenAPI object
        yaml.YAMLError: If a YAML file is malformed
        json.JSONDecodeError: If a JSON file is malformed
        OSError: If the file cannot be read
    """
    content = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() == ".json":
        data = json.loads(content)
    else:
        data = yaml.load(content, Loader=SpecLoader)
    return parse_spec(data)


def parse_spec(data: Any) -> OpenApiSpec:
    """Build an :class:`OpenApiSpec` from a decoded document."""
    if not isinstance(data, dict):
        raise SpecParseError("Document root must be a mapping")

    version = data.get("openapi")
    if not isinstance(version, str):
        raise SpecParseError("Missing or invalid 'openapi' version")

    info = data.get("info")
    if not isinstance(info, dict) or "title" not in info or "version" not in info:
        raise SpecParseError("Missing or invalid 'info' (title and version are required)")

    paths = data.get("paths")
    if not isinstance(paths, dict):
        raise SpecParseError("Missing or invalid 'paths'")

    components = data.get("components")
    return OpenApiSpec(
        openapi=version,
        info=Info(
            title=str(info["title"]),
            version=str(info["version"]),
            description=info.get("description"),
        ),
        servers=[
            Server(url=str(s.get("url", "")), description=s.get("description"))
            for s in _list(data.get("servers"))
            if isinstance(s, dict)
        ],
        paths={
            str(template): _parse_path_item(item)
            for template, item in paths.items()
            if isinstance(item, dict)
        },
        components=_parse_components(components) if isinstance(components, dict) else None,
    )


def _mapping(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        return {}
    # Unquoted YAML keys such as 200 load as integers
    return {str(k): v for k, v in value.items()}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _reference(data: Any) -> Reference | None:
    if isinstance(data, dict) and isinstance(data.get("$ref"), str):
        return Reference(ref=data["$ref"])
    return None


def _parse_path_item(data: dict[str, Any]) -> PathItem:
    operations = {}
    for method in HttpMethod:
        op = data.get(method.key)
        if isinstance(op, dict):
            operations[method] = _parse_operation(op)
    return PathItem(operations=operations)


def _parse_operation(data: dict[str, Any]) -> Operation:
    request_body = data.get("requestBody")
    security = data.get("security")
    return Operation(
        operation_id=data.get("operationId"),
        summary=data.get("summary"),
        description=data.get("description"),
        parameters=[_parse_parameter(p) for p in _list(data.get("parameters")) if isinstance(p, dict)],
        request_body=_parse_request_body(request_body) if isinstance(request_body, dict) else None,
        responses={
            code: _parse_response(resp)
            for code, resp in _mapping(data.get("responses")).items()
            if isinstance(resp, dict)
        },
        tags=[str(t) for t in _list(data.get("tags"))],
        security=[
            {name: list(scopes or []) for name, scopes in req.items()}
            for req in _list(security)
            if isinstance(req, dict)
        ]
        if security is not None
        else None,
    )


def _parse_parameter(data: dict[str, Any]) -> Parameter:
    ref = _reference(data)
    if ref is not None:
        return ref
    schema = data.get("schema")
    return ParameterDefinition(
        name=str(data.get("name", "")),
        location=str(data.get("in", "")),
        required=bool(data.get("required", False)),
        description=data.get("description"),
        schema=_parse_schema(schema) if isinstance(schema, dict) else None,
    )


def _parse_request_body(data: dict[str, Any]) -> RequestBody:
    return RequestBody(
        content=_parse_content(data.get("content")),
        required=bool(data.get("required", False)),
        description=data.get("description"),
    )


def _parse_content(data: Any) -> dict[str, MediaType]:
    return {
        media_type: _parse_media_type(value)
        for media_type, value in _mapping(data).items()
        if isinstance(value, dict)
    }


def _parse_media_type(data: dict[str, Any]) -> MediaType:
    schema = data.get("schema")
    return MediaType(
        schema=_parse_schema(schema) if isinstance(schema, dict) else None,
        example=data.get("example"),
        examples={
            name: Example(
                summary=ex.get("summary"),
                description=ex.get("description"),
                value=ex.get("value"),
            )
            for name, ex in _mapping(data.get("examples")).items()
            if isinstance(ex, dict)
        },
    )


def _parse_response(data: dict[str, Any]) -> Response:
    ref = _reference(data)
    if ref is not None:
        return ref
    content = data.get("content")
    return ResponseDefinition(
        description=str(data.get("description", "")),
        content=_parse_content(content) if isinstance(content, dict) else None,
    )


def _parse_schema(data: dict[str, Any]) -> Schema:
    ref = _reference(data)
    if ref is not None:
        return ref
    items = data.get("items")
    enum = data.get("enum")
    return SchemaDefinition(
        type_name=data.get("type"),
        format=data.get("format"),
        items=_parse_schema(items) if isinstance(items, dict) else None,
        properties={
            name: _parse_schema(prop)
            for name, prop in _mapping(data.get("properties")).items()
            if isinstance(prop, dict)
        },
        required=[str(r) for r in _list(data.get("required"))],
        enum=enum if isinstance(enum, list) else None,
        example=data.get("example"),
    )


def _parse_security_scheme(data: dict[str, Any]) -> SecurityScheme | None:
    scheme_type = data.get("type")
    description = data.get("description")
    if scheme_type == "oauth2":
        return OAuth2Scheme(
            flows={
                name: OAuth2Flow(
                    scopes={str(k): str(v) for k, v in _mapping(flow.get("scopes")).items()},
                    authorization_url=flow.get("authorizationUrl"),
                    token_url=flow.get("tokenUrl"),
                )
                for name, flow in _mapping(data.get("flows")).items()
                if isinstance(flow, dict)
            },
            description=description,
        )
    if scheme_type == "apiKey":
        return ApiKeyScheme(
            name=str(data.get("name", "")),
            location=str(data.get("in", "")),
            description=description,
        )
    if scheme_type == "http":
        return HttpScheme(
            scheme=str(data.get("scheme", "")),
            bearer_format=data.get("bearerFormat"),
            description=description,
        )
    return None


def _parse_components(data: dict[str, Any]) -> Components:
    security_schemes: dict[str, SecurityScheme] = {}
    for name, scheme in _mapping(data.get("securitySchemes")).items():
        parsed = _parse_security_scheme(scheme) if isinstance(scheme, dict) else None
        if parsed is None:
            logger.debug(f"Skipping unsupported security scheme: {name}")
            continue
        security_schemes[name] = parsed

    return Components(
        schemas={
            name: _parse_schema(schema)
            for name, schema in _mapping(data.get("schemas")).items()
            if isinstance(schema, dict)
        },
        responses={
            name: _parse_response(resp)
            for name, resp in _mapping(data.get("responses")).items()
            if isinstance(resp, dict)
        },
        security_schemes=security_schemes,
    )
