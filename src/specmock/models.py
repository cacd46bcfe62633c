"""Type model for OpenAPI 3.0 documents and synthesized routes.

Only the subset of OpenAPI needed to serve mock responses is modeled:
paths, operations, responses, media types, schemas and components.

Several OpenAPI objects may be written either inline or as a ``$ref``.
Those are modeled as ``Reference | <Definition>`` unions. The parser tries
the reference shape first (presence of a ``$ref`` key) and falls back to
the full definition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SpecParseError(ValueError):
    """Raised when a document is not a structurally valid OpenAPI spec."""


class HttpMethod(Enum):
    """HTTP methods that can carry an operation."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @property
    def key(self) -> str:
        """Lowercase key used for the method in a path item."""
        return self.value.lower()


@dataclass(frozen=True)
class Reference:
    """A ``$ref`` pointer into the same document's components section."""

    ref: str

    @property
    def name(self) -> str:
        """Component name (last segment of the pointer)."""
        return self.ref.rsplit("/", 1)[-1]


@dataclass
class Info:
    title: str
    version: str
    description: str | None = None


@dataclass
class Server:
    url: str
    description: str | None = None


@dataclass
class SchemaDefinition:
    """An inline schema. Only fields used for example extraction are typed."""

    type_name: str | None = None
    format: str | None = None
    items: Schema | None = None
    properties: dict[str, Schema] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    enum: list[Any] | None = None
    example: Any = None


Schema = Reference | SchemaDefinition


@dataclass
class Example:
    summary: str | None = None
    description: str | None = None
    value: Any = None


@dataclass
class MediaType:
    schema: Schema | None = None
    example: Any = None
    examples: dict[str, Example] = field(default_factory=dict)


@dataclass
class ResponseDefinition:
    description: str = ""
    content: dict[str, MediaType] | None = None


Response = Reference | ResponseDefinition


@dataclass
class ParameterDefinition:
    name: str
    location: str
    required: bool = False
    description: str | None = None
    schema: Schema | None = None


Parameter = Reference | ParameterDefinition


@dataclass
class RequestBody:
    content: dict[str, MediaType] = field(default_factory=dict)
    required: bool = False
    description: str | None = None


@dataclass
class OAuth2Flow:
    scopes: dict[str, str] = field(default_factory=dict)
    authorization_url: str | None = None
    token_url: str | None = None


@dataclass
class OAuth2Scheme:
    flows: dict[str, OAuth2Flow] = field(default_factory=dict)
    description: str | None = None


@dataclass
class ApiKeyScheme:
    name: str
    location: str
    description: str | None = None


@dataclass
class HttpScheme:
    scheme: str
    bearer_format: str | None = None
    description: str | None = None


SecurityScheme = OAuth2Scheme | ApiKeyScheme | HttpScheme


@dataclass
class Operation:
    responses: dict[str, Response] = field(default_factory=dict)
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    parameters: list[Parameter] = field(default_factory=list)
    request_body: RequestBody | None = None
    tags: list[str] = field(default_factory=list)
    # Each requirement maps a scheme name to its required scopes
    security: list[dict[str, list[str]]] | None = None


@dataclass
class PathItem:
    operations: dict[HttpMethod, Operation] = field(default_factory=dict)

    def get(self, method: HttpMethod) -> Operation | None:
        return self.operations.get(method)


@dataclass
class Components:
    schemas: dict[str, Schema] = field(default_factory=dict)
    responses: dict[str, Response] = field(default_factory=dict)
    security_schemes: dict[str, SecurityScheme] = field(default_factory=dict)


@dataclass
class OpenApiSpec:
    """One parsed OpenAPI document. Never mutated after parsing."""

    openapi: str
    info: Info
    paths: dict[str, PathItem] = field(default_factory=dict)
    servers: list[Server] = field(default_factory=list)
    components: Components | None = None


@dataclass(frozen=True)
class RouteDefinition:
    """Dispatch-ready form of one operation.

    Attributes:
        method: HTTP method of the operation
        path: Original path template (e.g. ``/buckets/{bucketKey}``)
        pattern: Normalized Flask rule (e.g. ``/buckets/<bucket_key>``)
        operation: The operation served by this route
        spec: The owning document, shared by every route derived from it
    """

    method: HttpMethod
    path: str
    pattern: str
    operation: Operation = field(compare=False)
    spec: OpenApiSpec = field(compare=False, repr=False)

    @property
    def components(self) -> Components | None:
        return self.spec.components

    @property
    def key(self) -> tuple[str, str]:
        """Duplicate-detection key: (method, normalized pattern)."""
        return (self.method.value, self.pattern)
