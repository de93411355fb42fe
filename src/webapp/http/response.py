from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from webapp.domain.models import ContentType, Message


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


@dataclass(frozen=True)
class HTTPResponse:
    code: int = 200
    body: Any = None
    messages: list[Message] = field(default_factory=list)
    content_type: ContentType = ContentType.JSON

    def payload(self) -> Any:
        return _jsonable(self.body)

    def render(self) -> tuple[int, dict[str, str], bytes]:
        """Return (status, headers, body bytes) ready to hand to a server."""
        mime = ContentType.JSON.value if self.content_type is ContentType.AUTO else self.content_type.value
        headers = {"Content-Type": mime}

        if self.content_type in (ContentType.JSON, ContentType.AUTO):
            data = json.dumps(self.payload(), default=str).encode("utf-8")
        elif self.body is None:
            data = b""
        elif isinstance(self.body, bytes):
            data = self.body
        else:
            data = str(self.body).encode("utf-8")

        return self.code, headers, data
