"""Tests for OpenAPI document discovery and parsing."""

import json
import logging
from pathlib import Path

import pytest

from specmock.loader import logical_name, parse_directory, parse_file, parse_spec
from specmock.models import (
    ApiKeyScheme,
    HttpMethod,
    HttpScheme,
    OAuth2Scheme,
    ParameterDefinition,
    Reference,
    ResponseDefinition,
    SchemaDefinition,
    SpecParseError,
)

MINIMAL = {
    "openapi": "3.0.0",
    "info": {"title": "Minimal", "version": "1.0"},
    "paths": {},
}


class TestParseSpec:
    """Tests for parse_spec function."""

    def test_parses_minimal_document(self):
        """Should accept a document with only the required fields."""
        spec = parse_spec(MINIMAL)

        assert spec.openapi == "3.0.0"
        assert spec.info.title == "Minimal"
        assert spec.paths == {}
        assert spec.components is None

    @pytest.mark.parametrize(
        "document",
        [
            [],
            "openapi: 3.0.0",
            {"info": {"title": "t", "version": "1"}, "paths": {}},
            {"openapi": "3.0.0", "paths": {}},
            {"openapi": "3.0.0", "info": {"title": "t"}, "paths": {}},
            {"openapi": "3.0.0", "info": {"title": "t", "version": "1"}},
        ],
    )
    def test_rejects_invalid_root(self, document):
        """Should raise SpecParseError when required structure is missing."""
        with pytest.raises(SpecParseError):
            parse_spec(document)

    def test_parses_operations_in_method_order(self):
        """Should parse each supported method of a path item."""
        document = {
            **MINIMAL,
            "paths": {
                "/items": {
                    "post": {"operationId": "createItem", "responses": {}},
                    "get": {"operationId": "listItems", "responses": {}},
                    "head": {"operationId": "ignored", "responses": {}},
                }
            },
        }

        spec = parse_spec(document)
        item = spec.paths["/items"]

        assert set(item.operations) == {HttpMethod.GET, HttpMethod.POST}
        assert item.get(HttpMethod.GET).operation_id == "listItems"
        assert item.get(HttpMethod.DELETE) is None

    def test_integer_status_codes_become_strings(self):
        """Should normalize unquoted YAML status codes to strings."""
        document = {
            **MINIMAL,
            "paths": {"/a": {"get": {"responses": {200: {"description": "OK"}}}}},
        }

        spec = parse_spec(document)

        assert "200" in spec.paths["/a"].get(HttpMethod.GET).responses

    def test_reference_takes_precedence(self):
        """Should parse any object carrying $ref as a Reference."""
        document = {
            **MINIMAL,
            "paths": {
                "/a": {
                    "get": {
                        "parameters": [
                            {"$ref": "#/components/parameters/Limit"},
                            {"name": "id", "in": "path", "required": True},
                        ],
                        "responses": {
                            "200": {"$ref": "#/components/responses/Ok", "description": "x"}
                        },
                    }
                }
            },
        }

        operation = parse_spec(document).paths["/a"].get(HttpMethod.GET)

        assert operation.parameters[0] == Reference(ref="#/components/parameters/Limit")
        assert isinstance(operation.parameters[1], ParameterDefinition)
        assert operation.parameters[1].location == "path"
        assert operation.responses["200"].name == "Ok"

    def test_parses_media_type_examples(self):
        """Should keep inline example, named examples and schema."""
        document = {
            **MINIMAL,
            "paths": {
                "/a": {
                    "get": {
                        "responses": {
                            "200": {
                                "description": "OK",
                                "content": {
                                    "application/json": {
                                        "schema": {"type": "object", "example": {"s": 1}},
                                        "example": {"inline": True},
                                        "examples": {"first": {"value": {"named": 1}}},
                                    }
                                },
                            }
                        }
                    }
                }
            },
        }

        response = parse_spec(document).paths["/a"].get(HttpMethod.GET).responses["200"]

        assert isinstance(response, ResponseDefinition)
        media = response.content["application/json"]
        assert media.example == {"inline": True}
        assert media.examples["first"].value == {"named": 1}
        assert isinstance(media.schema, SchemaDefinition)
        assert media.schema.example == {"s": 1}

    def test_parses_components(self):
        """Should parse schemas, responses and supported security schemes."""
        document = {
            **MINIMAL,
            "components": {
                "schemas": {
                    "Bucket": {
                        "type": "object",
                        "required": ["bucketKey"],
                        "properties": {"bucketKey": {"type": "string"}},
                    },
                    "Alias": {"$ref": "#/components/schemas/Bucket"},
                },
                "responses": {"Ok": {"description": "OK"}},
                "securitySchemes": {
                    "oauth": {
                        "type": "oauth2",
                        "flows": {
                            "clientCredentials": {
                                "tokenUrl": "/authentication/v2/token",
                                "scopes": {"data:read": "Read data"},
                            }
                        },
                    },
                    "key": {"type": "apiKey", "name": "X-Key", "in": "header"},
                    "bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
                    "oidc": {"type": "openIdConnect"},
                },
            },
        }

        components = parse_spec(document).components

        bucket = components.schemas["Bucket"]
        assert bucket.type_name == "object"
        assert bucket.required == ["bucketKey"]
        assert isinstance(components.schemas["Alias"], Reference)
        assert components.responses["Ok"].description == "OK"

        schemes = components.security_schemes
        assert isinstance(schemes["oauth"], OAuth2Scheme)
        assert schemes["oauth"].flows["clientCredentials"].scopes == {"data:read": "Read data"}
        assert isinstance(schemes["key"], ApiKeyScheme)
        assert isinstance(schemes["bearer"], HttpScheme)
        assert "oidc" not in schemes


class TestParseFile:
    """Tests for parse_file function."""

    def test_parses_yaml(self, write_spec):
        """Should parse YAML documents."""
        path = write_spec("a.yaml", MINIMAL)

        assert parse_file(path).info.title == "Minimal"

    def test_parses_json(self, temp_dir: Path):
        """Should parse JSON documents."""
        path = temp_dir / "a.json"
        path.write_text(json.dumps(MINIMAL), encoding="utf-8")

        assert parse_file(path).info.version == "1.0"


class TestParseDirectory:
    """Tests for parse_directory function."""

    def test_missing_directory_returns_empty(self, temp_dir: Path):
        """Should return no specs for a directory that does not exist."""
        assert parse_directory(temp_dir / "missing") == []

    def test_empty_directory_returns_empty(self, temp_dir: Path):
        """Should return no specs for an empty directory."""
        assert parse_directory(temp_dir) == []

    def test_walks_recursively_in_sorted_order(self, write_spec, temp_dir: Path):
        """Should find documents in nested directories with logical names."""
        write_spec("oss/buckets.yaml", MINIMAL)
        write_spec("auth.yml", MINIMAL)
        write_spec("dm/v1/hubs.json", json.dumps(MINIMAL))
        write_spec("notes.txt", "not a spec")

        names = [name for name, _ in parse_directory(temp_dir)]

        assert names == ["auth", "dm/v1/hubs", "oss/buckets"]

    def test_skips_broken_files(self, write_spec, temp_dir: Path, caplog):
        """Should log and skip files that fail to parse."""
        write_spec("good.yaml", MINIMAL)
        write_spec("bad.yaml", "openapi: [unclosed")
        write_spec("invalid.yaml", {"openapi": "3.0.0"})
        write_spec("broken.json", "{not json")

        with caplog.at_level(logging.WARNING):
            specs = parse_directory(temp_dir)

        assert [name for name, _ in specs] == ["good"]
        assert "bad.yaml" in caplog.text
        assert "invalid.yaml" in caplog.text
        assert "broken.json" in caplog.text


class TestLogicalName:
    """Tests for logical_name function."""

    def test_strips_only_extension(self, temp_dir: Path):
        """Should keep dots inside names and directories."""
        path = temp_dir / "v1.2" / "data.management.yaml"

        assert logical_name(temp_dir, path) == "v1.2/data.management"


class TestTimestampExamples:
    """Tests for unquoted dates inside YAML documents."""

    DOCUMENT = """\
openapi: 3.0.0
info:
  title: Dates
  version: 2024-01-15
paths:
  /things:
    get:
      responses:
        '200':
          description: OK
          content:
            application/json:
              example:
                createdAt: 2024-01-15T10:30:00Z
                day: 2024-01-15
"""

    def test_timestamps_stay_strings(self, write_spec):
        """Should keep unquoted timestamps exactly as written."""
        spec = parse_file(write_spec("dates.yaml", self.DOCUMENT))

        media = spec.paths["/things"].get(HttpMethod.GET).responses["200"].content[
            "application/json"
        ]
        assert media.example == {"createdAt": "2024-01-15T10:30:00Z", "day": "2024-01-15"}
        assert spec.info.version == "2024-01-15"
