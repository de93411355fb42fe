from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from webapp.domain.models import GeneratorOptions, HTTPMethod, Message, MessageType
from webapp.http.request import Request
from webapp.http.response import HTTPResponse
from webapp.routing.handlers import HandlerRef, as_handler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMenu:
    """A route declaration: regex pattern, handler and HTTP method."""

    pattern: str
    handler: Any
    method: HTTPMethod = HTTPMethod.GET


@dataclass(frozen=True)
class CompiledRoute:
    pattern: str          # anchored regex including the base path
    handler: HandlerRef
    regex: str            # raw route pattern, used for documentation
    compiled: Optional[re.Pattern[str]] = field(default=None, repr=False, compare=False)

    def match(self, path: str) -> re.Match[str] | None:
        if self.compiled is None:
            return None
        return self.compiled.match(path)


class API:
    """Route table plus a minimal dispatch loop."""

    def __init__(self, base_path: str = ""):
        self.base_path = base_path
        self.routes_by_method: dict[str, list[CompiledRoute]] = {}

    # ----------------------------
    # Registration
    # ----------------------------

    def add(self, method: HTTPMethod | str, pattern: str, handler: Any) -> "API":
        m = HTTPMethod(method.upper()) if isinstance(method, str) else method
        full = f"^{self.base_path}{pattern}$"
        try:
            compiled = re.compile(full)
        except re.error as e:
            # still registered: documentation works from the raw pattern
            logger.warning("route pattern does not compile (%s): %s", e, pattern)
            compiled = None
        route = CompiledRoute(pattern=full, handler=as_handler(handler), regex=pattern, compiled=compiled)
        self.routes_by_method.setdefault(m.value, []).append(route)
        return self

    def set_routes(self, routes: Iterable[RouteMenu]) -> "API":
        for r in routes:
            self.add(r.method, r.pattern, r.handler)
        return self

    def get(self, pattern: str, handler: Any) -> "API":
        return self.add(HTTPMethod.GET, pattern, handler)

    def post(self, pattern: str, handler: Any) -> "API":
        return self.add(HTTPMethod.POST, pattern, handler)

    def put(self, pattern: str, handler: Any) -> "API":
        return self.add(HTTPMethod.PUT, pattern, handler)

    def patch(self, pattern: str, handler: Any) -> "API":
        return self.add(HTTPMethod.PATCH, pattern, handler)

    def delete(self, pattern: str, handler: Any) -> "API":
        return self.add(HTTPMethod.DELETE, pattern, handler)

    # ----------------------------
    # Dispatch
    # ----------------------------

    def execute(self, request: Request) -> HTTPResponse:
        for route in self.routes_by_method.get(request.method.value, []):
            m = route.match(request.path)
            if m is None:
                continue
            logger.debug("%s %s -> %s", request.method.value, request.path, route.handler.name)
            return route.handler.invoke(request, list(m.groups()))

        return HTTPResponse(
            code=404,
            messages=[
                Message(
                    text=f"Route not found {request.method.value}:{request.path}",
                    type=MessageType.ERROR,
                )
            ],
        )

    # ----------------------------
    # Documentation
    # ----------------------------

    def generate_openapi_spec(self, options: GeneratorOptions | Mapping[str, Any] | None = None) -> dict[str, Any]:
        """OpenAPI 3.0.3 document for the registered routes (fresh generator per call)."""
        from webapp.openapi.generator import OpenAPIGenerator

        return OpenAPIGenerator.create().generate(self.routes_by_method, options)
