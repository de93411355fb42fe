from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from webapp.domain.types import TypeSpec


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ContentType(str, Enum):
    AUTO = "<auto>"
    JSON = "application/json"
    XML = "application/xml"
    CSV = "text/csv"
    HTML = "text/html"
    TEXT = "text/plain"


class MessageType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"
    INFO = "info"
    DEBUG = "debug"


class Message(BaseModel):
    """A user-facing message attached to an HTTP response."""

    text: str
    type: MessageType = MessageType.INFO


class ParamSchema(BaseModel):
    type: str = "string"


class PathParameter(BaseModel):
    name: str
    location: Literal["path"] = Field(default="path", alias="in")
    required: bool = True
    description: str = "Path parameter"
    schema_: ParamSchema = Field(default_factory=ParamSchema, alias="schema")

    model_config = {"populate_by_name": True}

    def to_openapi(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class RouteMetadata:
    """Documentation metadata resolved for one route handler."""

    summary: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    deprecated: bool = False
    operation_id: str = ""
    return_type: Optional[TypeSpec] = None
    content_type: Optional[ContentType] = ContentType.JSON
    responses: dict[str, Any] = field(default_factory=dict)  # verbatim OpenAPI responses map


class ServerSpec(BaseModel):
    url: str
    description: str = ""


class GeneratorOptions(BaseModel):
    title: str = "API Documentation"
    version: str = "1.0.0"
    description: str = ""
    servers: list[ServerSpec] = Field(default_factory=list)
