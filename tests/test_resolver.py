"""Tests for example response selection."""

from typing import Any

from specmock.loader import parse_spec
from specmock.models import Components, MediaType, Reference, SchemaDefinition
from specmock.resolver import (
    MAX_REF_DEPTH,
    ExampleResponse,
    NoExample,
    extract_example,
    resolve_response,
    resolve_schema_ref,
)
from specmock.routes import extract_routes


def make_route(responses: dict[str, Any], components: dict[str, Any] | None = None):
    """Build the single GET route of a one-operation document."""
    document: dict[str, Any] = {
        "openapi": "3.0.0",
        "info": {"title": "Resolver", "version": "1"},
        "paths": {"/things": {"get": {"operationId": "getThings", "responses": responses}}},
    }
    if components is not None:
        document["components"] = components
    return extract_routes(parse_spec(document))[0]


def json_response(media: dict[str, Any], media_type: str = "application/json") -> dict[str, Any]:
    return {"description": "OK", "content": {media_type: media}}


class TestResolveResponse:
    """Tests for resolve_response function."""

    def test_inline_example(self):
        """Should serve the inline example with status 200."""
        route = make_route({"200": json_response({"example": {"ok": True}})})

        assert resolve_response(route) == ExampleResponse(status=200, body={"ok": True})

    def test_success_code_priority(self):
        """Should prefer 200 over 201 and later codes."""
        route = make_route(
            {
                "201": json_response({"example": "created"}),
                "200": json_response({"example": "ok"}),
                "default": json_response({"example": "fallback"}),
            }
        )

        assert resolve_response(route).body == "ok"

    def test_example_from_201_is_served_as_200(self):
        """Should always report 200 when an example is found."""
        route = make_route({"201": json_response({"example": {"id": 1}})})

        result = resolve_response(route)

        assert result.status == 200
        assert result.body == {"id": 1}

    def test_default_response_used_last(self):
        """Should fall back to the default response."""
        route = make_route(
            {"404": json_response({"example": "missing"}), "default": json_response({"example": "d"})}
        )

        assert resolve_response(route).body == "d"

    def test_vnd_api_json_media_type(self):
        """Should accept JSON:API media types when application/json is absent."""
        route = make_route(
            {"200": json_response({"example": {"data": []}}, "application/vnd.api+json")}
        )

        assert resolve_response(route).body == {"data": []}

    def test_other_media_types_ignored(self):
        """Should not serve examples of non-JSON media types."""
        route = make_route({"200": json_response({"example": "<xml/>"}, "application/xml")})

        assert resolve_response(route) == ExampleResponse(status=200)

    def test_named_examples(self):
        """Should take the first named example carrying a value."""
        route = make_route(
            {
                "200": json_response(
                    {
                        "examples": {
                            "empty": {"summary": "no value"},
                            "first": {"value": {"n": 1}},
                            "second": {"value": {"n": 2}},
                        }
                    }
                )
            }
        )

        assert resolve_response(route).body == {"n": 1}

    def test_schema_example_through_ref(self):
        """Should follow schema references to their example."""
        route = make_route(
            {"200": json_response({"schema": {"$ref": "#/components/schemas/Alias"}})},
            components={
                "schemas": {
                    "Alias": {"$ref": "#/components/schemas/Bucket"},
                    "Bucket": {"type": "object", "example": {"bucketKey": "b"}},
                }
            },
        )

        assert resolve_response(route).body == {"bucketKey": "b"}

    def test_response_ref(self):
        """Should follow response references through components."""
        route = make_route(
            {"200": {"$ref": "#/components/responses/Ok"}},
            components={"responses": {"Ok": json_response({"example": [1, 2]})}},
        )

        assert resolve_response(route).body == [1, 2]

    def test_unresolved_ref_moves_to_next_code(self):
        """Should skip a success code whose reference does not resolve."""
        route = make_route(
            {
                "200": {"$ref": "#/components/responses/Missing"},
                "201": json_response({"example": "next"}),
            },
            components={"responses": {}},
        )

        assert resolve_response(route).body == "next"

    def test_ok_without_content(self):
        """Should answer 200 with an empty body when 200 has no content."""
        route = make_route({"200": {"description": "OK"}})

        result = resolve_response(route)

        assert result == ExampleResponse(status=200)
        assert not result.has_body

    def test_no_content_response(self):
        """Should answer 204 with an empty body for a bare 204."""
        route = make_route({"204": {"description": "Deleted"}})

        assert resolve_response(route) == ExampleResponse(status=204)

    def test_no_success_response(self):
        """Should report NoExample when no success code is declared."""
        route = make_route({"400": json_response({"example": "bad"})})

        result = resolve_response(route)

        assert isinstance(result, NoExample)
        assert result.operation_id == "getThings"
        assert result.to_dict() == {
            "message": "No example response available for GET /things",
            "operation_id": "getThings",
        }

    def test_resolution_is_idempotent(self):
        """Should return the same result on every call."""
        route = make_route({"200": json_response({"example": {"ok": True}})})

        assert resolve_response(route) == resolve_response(route)


class TestRefHelpers:
    """Tests for reference-following helpers."""

    def test_schema_ref_cycle_terminates(self):
        """Should give up on reference cycles instead of looping."""
        components = Components(
            schemas={
                "A": Reference(ref="#/components/schemas/B"),
                "B": Reference(ref="#/components/schemas/A"),
            }
        )

        assert resolve_schema_ref(Reference(ref="#/components/schemas/A"), components) is None
        assert MAX_REF_DEPTH > 1

    def test_schema_ref_without_components(self):
        """Should treat references as unresolved when there are no components."""
        assert resolve_schema_ref(Reference(ref="#/components/schemas/A"), None) is None

    def test_extract_example_none(self):
        """Should return None for a media type without examples."""
        media = MediaType(schema=SchemaDefinition(type_name="string"))

        assert extract_example(media, None) is None

    def test_extract_example_falsy_inline(self):
        """Should serve falsy inline examples such as 0 or empty lists."""
        assert extract_example(MediaType(example=0), None) == 0
        assert extract_example(MediaType(example=[]), None) == []
