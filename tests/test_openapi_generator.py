from sample_app import api

from webapp.domain.models import GeneratorOptions, ServerSpec
from webapp.openapi.generator import OpenAPIGenerator
from webapp.routing.api import API
from webapp.http.response import HTTPResponse
from webapp.routing.attribute import route_attribute


def test_document_skeleton_and_defaults():
    spec = API().generate_openapi_spec()
    assert spec == {
        "openapi": "3.0.3",
        "info": {"title": "API Documentation", "version": "1.0.0", "description": ""},
        "servers": [],
        "paths": {},
    }


def test_options_from_model_or_dict():
    opts = GeneratorOptions(title="Shop", version="2.1.0", servers=[ServerSpec(url="https://api.example.org")])
    spec = API().generate_openapi_spec(opts)
    assert spec["info"]["title"] == "Shop"
    assert spec["servers"] == [{"url": "https://api.example.org", "description": ""}]

    spec = API().generate_openapi_spec({"title": "Dict", "description": "From a dict"})
    assert spec["info"] == {"title": "Dict", "version": "1.0.0", "description": "From a dict"}


def test_sample_app_paths_grouped_by_template():
    spec = api.generate_openapi_spec()
    paths = spec["paths"]

    assert set(paths) == {"/users", "/users/{id}", "/health"}
    assert set(paths["/users"]) == {"get", "post"}
    assert set(paths["/users/{id}"]) == {"get", "delete"}

    show = paths["/users/{id}"]["get"]
    assert show["summary"] == "Show user"
    assert show["tags"] == ["users"]
    assert show["parameters"][0]["name"] == "id"
    assert show["parameters"][0]["schema"] == {"type": "integer"}
    assert show["responses"]["200"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/SampleUser"
    }


def test_sample_app_metadata_sources():
    paths = api.generate_openapi_spec()["paths"]

    listing = paths["/users"]["get"]
    assert listing["summary"] == "List users."
    assert listing["description"] == "List users. Paginated in a later version."
    assert listing["operationId"] == "get_users"
    assert listing["responses"]["200"]["content"]["application/json"]["schema"] == {
        "type": "array",
        "items": {"$ref": "#/components/schemas/SampleUser"},
    }

    # inline lambda: body type found by scanning its source
    create = paths["/users"]["post"]
    assert create["summary"] == "Post operation"
    assert create["responses"]["201"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/SampleUser"
    }
    assert create["requestBody"]["required"] is True

    delete = paths["/users/{id}"]["delete"]
    assert delete["deprecated"] is True
    assert set(delete["responses"]) == {"204", "404", "500"}
    assert delete["responses"]["204"]["description"] == "No Content"

    health = paths["/health"]["get"]
    assert health["responses"]["200"]["content"] == {"text/html": {"schema": {"type": "string"}}}


def test_components_hold_referenced_entities_only():
    spec = api.generate_openapi_spec()
    schemas = spec["components"]["schemas"]
    assert list(schemas) == ["SampleUser"]

    user = schemas["SampleUser"]
    assert user["description"] == "A registered user."
    assert user["required"] == ["id", "email"]
    assert user["properties"]["id"] == {"type": "integer", "description": "Identifier"}
    assert user["properties"]["email"] == {"type": "string", "description": "Contact address."}
    assert user["properties"]["nickname"] == {"type": "string", "nullable": True}


def test_no_components_key_without_entities():
    plain = API()
    plain.get("/ping", lambda request, matches: HTTPResponse(200, {"pong": True}))
    spec = plain.generate_openapi_spec()
    assert "components" not in spec
    assert spec["paths"]["/ping"]["get"]["responses"]["200"]["content"]["application/json"]["schema"] == {
        "type": "object"
    }


def test_each_generation_is_fresh():
    first = api.generate_openapi_spec()
    second = api.generate_openapi_spec()
    assert first == second

    gen = OpenAPIGenerator.create()
    gen.generate(api.routes_by_method)
    assert "SampleUser" in gen.schema_builder.get_component_schemas()
    assert OpenAPIGenerator.create().schema_builder.get_component_schemas() == {}


def test_declared_responses_are_used_verbatim():
    @route_attribute(name="Remove", responses={204: {"description": "Removed"}})
    def remove(request, matches):
        return HTTPResponse(204)

    table = API().delete(r"/things/(\d+)", remove)
    op = table.generate_openapi_spec()["paths"]["/things/{id}"]["delete"]
    assert op["summary"] == "Remove"
    assert op["responses"] == {"204": {"description": "Removed"}}
