import json

import pytest

from webapp.domain.models import ContentType, HTTPMethod, Message, MessageType
from webapp.http.request import Request
from webapp.http.response import HTTPResponse
from webapp.routing.api import API, RouteMenu
from webapp.routing.handlers import FunctionHandler, MethodHandler, RouteClassHandler, as_handler


class Echo:
    def trigger(self, request, matches):
        return HTTPResponse(200, {"matches": matches})


class Tools:
    @staticmethod
    def version(request, matches):
        return HTTPResponse(200, {"version": "1"})


def test_execute_dispatches_to_first_match():
    api = API()
    api.get(r"/echo/(\w+)/(\d+)", Echo)
    api.get(r"/echo/(.*)", lambda request, matches: HTTPResponse(500))

    response = api.execute(Request(method=HTTPMethod.GET, path="/echo/abc/42"))
    assert response.code == 200
    assert response.body == {"matches": ["abc", "42"]}


def test_execute_unknown_route_is_404():
    api = API().post("/items", Echo)
    response = api.execute(Request(method=HTTPMethod.GET, path="/items"))
    assert response.code == 404
    assert response.messages == [Message(text="Route not found GET:/items", type=MessageType.ERROR)]


def test_base_path_and_method_pairs():
    api = API(base_path="/v1")
    api.set_routes([RouteMenu("/version", (Tools, "version"))])

    route = api.routes_by_method["GET"][0]
    assert route.pattern == "^/v1/version$"
    assert route.regex == "/version"
    assert isinstance(route.handler, MethodHandler)

    assert api.execute(Request(path="/v1/version")).body == {"version": "1"}
    assert api.execute(Request(path="/version")).code == 404


def test_invalid_regex_is_kept_for_documentation():
    api = API().get("/broken/([a-z", Echo)
    assert api.execute(Request(path="/broken/a")).code == 404
    assert "/broken/{id}" not in api.generate_openapi_spec()["paths"]
    assert len(api.generate_openapi_spec()["paths"]) == 1


def test_as_handler_variants():
    assert isinstance(as_handler(Echo), RouteClassHandler)
    assert isinstance(as_handler(lambda r, m: None), FunctionHandler)
    assert isinstance(as_handler((Tools, "version")), MethodHandler)
    with pytest.raises(TypeError):
        as_handler(Message)
    with pytest.raises(TypeError):
        as_handler((Tools, "missing"))
    with pytest.raises(TypeError):
        as_handler(42)


def test_request_from_headers():
    req = Request.from_headers(
        "post",
        "/items",
        {"Authorization": "Bearer abc.def", "Accept": "text/csv, */*"},
        body={"a": 1},
    )
    assert req.method == HTTPMethod.POST
    assert req.bearer_token == "abc.def"
    assert req.accept == ContentType.CSV
    assert req.body == {"a": 1}

    fallback = Request.from_headers("OPTIONS", "", {})
    assert fallback.method == HTTPMethod.GET
    assert fallback.path == "/"
    assert fallback.accept == ContentType.JSON


def test_response_render():
    status, headers, data = HTTPResponse(201, Message(text="hi")).render()
    assert status == 201
    assert headers == {"Content-Type": "application/json"}
    assert json.loads(data) == {"text": "hi", "type": "info"}

    status, headers, data = HTTPResponse(200, "<p>x</p>", content_type=ContentType.HTML).render()
    assert headers == {"Content-Type": "text/html"}
    assert data == b"<p>x</p>"

    assert HTTPResponse(204, content_type=ContentType.TEXT).render()[2] == b""
