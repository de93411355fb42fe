from __future__ import annotations

import copy
import logging
import re
from typing import Any, Optional

from webapp.domain.models import ContentType, HTTPMethod, PathParameter, RouteMetadata
from webapp.domain.types import Primitive, StatusMap, TypeSpec
from webapp.openapi.schema_builder import Schema, SchemaBuilder
from webapp.routing.api import CompiledRoute

logger = logging.getLogger(__name__)

JSON_MIME = ContentType.JSON.value

STANDARD_HTTP_DESCRIPTIONS: dict[str, str] = {
    "200": "Success",
    "201": "Created",
    "202": "Accepted",
    "204": "No Content",
    "400": "Bad Request",
    "401": "Unauthorized",
    "403": "Forbidden",
    "404": "Not Found",
    "405": "Method Not Allowed",
    "409": "Conflict",
    "422": "Unprocessable Entity",
    "429": "Too Many Requests",
    "500": "Internal Server Error",
    "502": "Bad Gateway",
    "503": "Service Unavailable",
    "504": "Gateway Timeout",
}

_BODY_METHODS = ("POST", "PUT", "PATCH")
_CREATE_METHODS = ("POST", "PUT")

_NON_ID_CHARS = re.compile(r"[^a-zA-Z0-9/]")


def standard_http_description(code: str) -> str:
    return STANDARD_HTTP_DESCRIPTIONS.get(str(code), "Response")


def is_error_code(code: str) -> bool:
    try:
        value = int(code)
    except (TypeError, ValueError):
        return False
    return 400 <= value < 600


def standard_error_schema() -> Schema:
    """Shape of every error payload: ``{error, messages: [{field, message}]}``."""
    return {
        "type": "object",
        "properties": {
            "error": {"type": "string", "description": "Error message"},
            "messages": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "field": {"type": "string", "description": "Name of the invalid field"},
                        "message": {"type": "string", "description": "Error message for this field"},
                    },
                },
                "description": "Validation errors, one per field",
            },
        },
    }


def content_type_to_mime(content_type: Optional[ContentType]) -> str:
    if content_type is None or content_type == ContentType.AUTO:
        return JSON_MIME
    return ContentType(content_type).value


def generate_operation_id(pattern: str, method: str) -> str:
    """``GET`` + ``/users/(\\d+)`` -> ``get_users___d``."""
    clean = _NON_ID_CHARS.sub("_", pattern)
    clean = clean.strip("/_")
    clean = clean.replace("/", "_")
    return f"{method.lower()}_{clean}"


def _method_name(method: HTTPMethod | str) -> str:
    return method.value if isinstance(method, HTTPMethod) else str(method).upper()


def _response(code: str, mime: str, schema: Schema) -> dict[str, Any]:
    return {
        "description": standard_http_description(code),
        "content": {mime: {"schema": schema}},
    }


def _is_generic_object(spec: TypeSpec | None) -> bool:
    return spec is None or (isinstance(spec, Primitive) and spec.name == "object")


class OperationBuilder:
    """Assembles one OpenAPI operation object per (route, method)."""

    def __init__(self, schema_builder: SchemaBuilder | None = None):
        self.schema_builder = schema_builder or SchemaBuilder()

    def build(
        self,
        method: HTTPMethod | str,
        route: CompiledRoute,
        parameters: list[PathParameter],
        metadata: RouteMetadata,
    ) -> dict[str, Any]:
        name = _method_name(method)

        operation: dict[str, Any] = {
            "summary": metadata.summary or f"{name.capitalize()} operation",
            "description": metadata.description or "",
            "operationId": metadata.operation_id or generate_operation_id(route.regex, name),
            "responses": copy.deepcopy(metadata.responses)
            if metadata.responses
            else self.get_default_responses(name, metadata.content_type, metadata.return_type),
        }

        if metadata.tags:
            operation["tags"] = list(metadata.tags)
        if metadata.deprecated:
            operation["deprecated"] = True
        if parameters:
            operation["parameters"] = [p.to_openapi() for p in parameters]
        if name in _BODY_METHODS:
            operation["requestBody"] = self.build_request_body()

        logger.debug("built operation %s for %s %s", operation["operationId"], name, route.regex)
        return operation

    def get_default_responses(
        self,
        method: HTTPMethod | str,
        content_type: Optional[ContentType] = None,
        return_type: TypeSpec | None = None,
    ) -> dict[str, Any]:
        """
        Responses when none are given verbatim.

        A StatusMap return type yields one entry per declared code (plus 500).
        Anything else yields 200 / 404 / 500, and 201 for POST and PUT.
        """
        mime = content_type_to_mime(content_type)

        if isinstance(return_type, StatusMap):
            return self.build_responses_from_mapping(return_type, mime)

        schema = self._schema_for_content_type(content_type, return_type)
        error_schema = standard_error_schema()

        responses: dict[str, Any] = {
            "200": _response("200", mime, schema),
            "404": _response("404", JSON_MIME, error_schema),
            "500": _response("500", JSON_MIME, copy.deepcopy(error_schema)),
        }
        if _method_name(method) in _CREATE_METHODS:
            responses["201"] = _response("201", mime, copy.deepcopy(schema))
        return responses

    def build_responses_from_mapping(self, mapping: StatusMap, mime: str = JSON_MIME) -> dict[str, Any]:
        responses: dict[str, Any] = {}
        for code, spec in mapping.items():
            code = str(code)
            if is_error_code(code) and _is_generic_object(spec):
                schema = standard_error_schema()
            else:
                schema = self.schema_builder.build_from_spec(spec)
            responses[code] = _response(code, mime, schema)

        # always documented, even if the mapping forgot it
        if "500" not in responses:
            responses["500"] = _response("500", mime, standard_error_schema())
        return responses

    def build_request_body(self) -> dict[str, Any]:
        return {
            "required": True,
            "content": {JSON_MIME: {"schema": {"type": "object"}}},
        }

    def _schema_for_content_type(self, content_type: Optional[ContentType], return_type: TypeSpec | None) -> Schema:
        if content_type in (None, ContentType.AUTO, ContentType.JSON):
            if return_type is not None:
                return self.schema_builder.build_from_spec(return_type)
            return {"type": "object"}
        return {"type": "string"}
