import re

from webapp.domain.models import ContentType, ParamSchema, PathParameter, RouteMetadata
from webapp.domain.types import ArrayOf, EntityRef, Primitive, StatusMap
from webapp.entities.mappable import Mappable
from webapp.openapi.operation_builder import (
    OperationBuilder,
    generate_operation_id,
    is_error_code,
    standard_error_schema,
    standard_http_description,
)
from webapp.routing.api import CompiledRoute
from webapp.routing.handlers import FunctionHandler


class OpUserEntity(Mappable):
    id: int
    email: str


def _noop(request, matches):
    return None


def route(regex: str) -> CompiledRoute:
    return CompiledRoute(pattern=f"^{regex}$", handler=FunctionHandler(_noop), regex=regex, compiled=re.compile(regex))


def test_generate_operation_id():
    assert generate_operation_id("/users", "GET") == "get_users"
    assert generate_operation_id(r"/users/(\d+)", "DELETE") == "delete_users___d"
    assert generate_operation_id("/api/v1/items-list", "post") == "post_api_v1_items_list"


def test_standard_descriptions_and_error_codes():
    assert standard_http_description("200") == "Success"
    assert standard_http_description("422") == "Unprocessable Entity"
    assert standard_http_description("418") == "Response"
    assert is_error_code("400")
    assert is_error_code("599")
    assert not is_error_code("302")
    assert not is_error_code("default")


def test_minimal_get_operation():
    op = OperationBuilder().build("GET", route("/users"), [], RouteMetadata())
    assert op["summary"] == "Get operation"
    assert op["description"] == ""
    assert op["operationId"] == "get_users"
    assert "tags" not in op
    assert "deprecated" not in op
    assert "parameters" not in op
    assert "requestBody" not in op
    assert set(op["responses"]) == {"200", "404", "500"}
    assert op["responses"]["200"]["content"]["application/json"]["schema"] == {"type": "object"}
    assert op["responses"]["404"]["content"]["application/json"]["schema"] == standard_error_schema()


def test_post_has_request_body_and_created_response():
    b = OperationBuilder()
    meta = RouteMetadata(summary="Create", return_type=EntityRef("OpUserEntity"))
    op = b.build("POST", route("/users"), [], meta)

    assert op["summary"] == "Create"
    assert op["requestBody"] == {
        "required": True,
        "content": {"application/json": {"schema": {"type": "object"}}},
    }
    ref = {"$ref": "#/components/schemas/OpUserEntity"}
    assert op["responses"]["200"]["content"]["application/json"]["schema"] == ref
    assert op["responses"]["201"]["content"]["application/json"]["schema"] == ref
    assert op["responses"]["201"]["description"] == "Created"
    assert "OpUserEntity" in b.schema_builder.get_component_schemas()


def test_patch_has_body_but_no_created_response():
    op = OperationBuilder().build("PATCH", route("/users"), [], RouteMetadata())
    assert "requestBody" in op
    assert "201" not in op["responses"]


def test_parameters_tags_and_deprecated():
    params = [PathParameter(name="id", schema=ParamSchema(type="integer"))]
    meta = RouteMetadata(tags=["users"], deprecated=True, operation_id="showUser")
    op = OperationBuilder().build("GET", route(r"/users/(\d+)"), params, meta)
    assert op["operationId"] == "showUser"
    assert op["tags"] == ["users"]
    assert op["deprecated"] is True
    assert op["parameters"] == [
        {"name": "id", "in": "path", "required": True, "description": "Path parameter", "schema": {"type": "integer"}}
    ]


def test_default_responses_by_method():
    b = OperationBuilder()
    get = b.get_default_responses("GET", None, ArrayOf(Primitive("int")))
    assert set(get) == {"200", "404", "500"}
    assert get["200"]["content"]["application/json"]["schema"] == {"type": "array", "items": {"type": "integer"}}

    post = b.get_default_responses("POST", None, ArrayOf(Primitive("int")))
    assert set(post) == {"200", "201", "404", "500"}
    assert post["201"]["content"] == post["200"]["content"]


def test_non_json_content_type_uses_string_schema():
    b = OperationBuilder()
    responses = b.get_default_responses("GET", ContentType.HTML, EntityRef("OpUserEntity"))
    assert responses["200"]["content"] == {"text/html": {"schema": {"type": "string"}}}
    # errors stay JSON
    assert "application/json" in responses["404"]["content"]
    assert b.schema_builder.get_component_schemas() == {}


def test_status_map_responses():
    b = OperationBuilder()
    status_map = StatusMap((("200", EntityRef("OpUserEntity")), ("404", Primitive("object"))))
    responses = b.get_default_responses("GET", None, status_map)

    assert set(responses) == {"200", "404", "500"}
    assert responses["200"]["description"] == "Success"
    assert responses["200"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/OpUserEntity"
    }
    assert responses["404"]["description"] == "Not Found"
    assert responses["404"]["content"]["application/json"]["schema"] == standard_error_schema()
    assert responses["500"]["content"]["application/json"]["schema"] == standard_error_schema()


def test_status_map_keeps_declared_500_and_typed_errors():
    b = OperationBuilder()
    status_map = StatusMap((("201", None), ("409", EntityRef("OpUserEntity")), ("500", Primitive("string"))))
    responses = b.get_default_responses("POST", None, status_map)
    assert set(responses) == {"201", "409", "500"}
    assert responses["201"]["content"]["application/json"]["schema"] == {"type": "object"}
    assert responses["409"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/OpUserEntity"
    }
    assert responses["500"]["content"]["application/json"]["schema"] == {"type": "string"}


def test_explicit_responses_are_used_verbatim():
    custom = {"204": {"description": "Gone"}}
    op = OperationBuilder().build("DELETE", route("/x"), [], RouteMetadata(responses=custom))
    assert op["responses"] == custom
