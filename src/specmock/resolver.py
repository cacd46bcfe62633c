"""Example response selection for synthesized routes.

Given a :class:`RouteDefinition`, pick one representative payload from the
operation's declared responses. This is a pure function of the route and
its owning document: no I/O, no state.

Selection order:
1. Status codes ``200, 201, 202, 204, default``; a reference that does not
   resolve moves on to the next code.
2. Media types ``application/json`` then ``application/vnd.api+json``.
3. Inline ``example``, then the first ``examples`` entry with a value,
   then the ``example`` of the (resolved) schema.
"""

from dataclasses import dataclass
from typing import Any

from .models import (
    Components,
    MediaType,
    Response,
    ResponseDefinition,
    RouteDefinition,
    Schema,
    SchemaDefinition,
)

SUCCESS_CODES = ("200", "201", "202", "204", "default")

MEDIA_TYPES = ("application/json", "application/vnd.api+json")

# Upper bound on $ref hops, guards against reference cycles
MAX_REF_DEPTH = 32


@dataclass(frozen=True)
class ExampleResponse:
    """A resolved mock response. ``body`` is None for an empty body."""

    status: int
    body: Any = None

    @property
    def has_body(self) -> bool:
        return self.body is not None


@dataclass(frozen=True)
class NoExample:
    """No success response could be resolved for the operation."""

    operation_id: str | None
    method: str
    path: str

    @property
    def message(self) -> str:
        return f"No example response available for {self.method} {self.path}"

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "operation_id": self.operation_id}


def resolve_response(route: RouteDefinition) -> ExampleResponse | NoExample:
    """Select the mock response for a route.

    Args:
        route: The route to resolve

    Returns:
        An :class:`ExampleResponse`, or :class:`NoExample` if none of the
        success codes has a resolvable response.
    """
    responses = route.operation.responses

    for code in SUCCESS_CODES:
        declared = responses.get(code)
        if declared is None:
            continue

        response = resolve_response_ref(declared, route.components)
        if response is None:
            continue

        for media_type in MEDIA_TYPES:
            content = (response.content or {}).get(media_type)
            if content is None:
                continue
            example = extract_example(content, route.components)
            if example is not None:
                return ExampleResponse(status=200, body=example)

        if code == "204":
            return ExampleResponse(status=204)
        return ExampleResponse(status=200)

    return NoExample(
        operation_id=route.operation.operation_id,
        method=route.method.value,
        path=route.path,
    )


def resolve_response_ref(
    response: Response, components: Components | None
) -> ResponseDefinition | None:
    """Follow ``$ref`` links through ``components.responses``.

    Returns None if any link in the chain is missing.
    """
    current = response
    for _ in range(MAX_REF_DEPTH):
        if isinstance(current, ResponseDefinition):
            return current
        if components is None:
            return None
        target = components.responses.get(current.name)
        if target is None:
            return None
        current = target
    return None


def resolve_schema_ref(schema: Schema, components: Components | None) -> SchemaDefinition | None:
    """Follow ``$ref`` links through ``components.schemas``."""
    current = schema
    for _ in range(MAX_REF_DEPTH):
        if isinstance(current, SchemaDefinition):
            return current
        if components is None:
            return None
        target = components.schemas.get(current.name)
        if target is None:
            return None
        current = target
    return None


def extract_example(media_type: MediaType, components: Components | None) -> Any:
    """Extract an example value from a media type object.

    Returns None when the media type carries no example.
    """
    if media_type.example is not None:
        return media_type.example

    for example in media_type.examples.values():
        if example.value is not None:
            return example.value

    if media_type.schema is not None:
        schema = resolve_schema_ref(media_type.schema, components)
        if schema is not None and schema.example is not None:
            return schema.example

    return None

