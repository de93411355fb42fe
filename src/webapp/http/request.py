from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from webapp.domain.models import ContentType, HTTPMethod


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Request:
    method: HTTPMethod = HTTPMethod.GET
    path: str = "/"
    body: Any = None
    bearer_token: str = ""
    accept: ContentType = ContentType.JSON
    request_time: datetime = field(default_factory=_now)

    @classmethod
    def from_headers(
        cls,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> "Request":
        """Build a request from raw WSGI-ish values (method, path, header map)."""
        lowered = {k.lower(): v for k, v in headers.items()}
        auth = lowered.get("authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""

        accept_header = lowered.get("accept", "").split(",")[0].strip()
        try:
            accept = ContentType(accept_header)
        except ValueError:
            accept = ContentType.JSON

        try:
            http_method = HTTPMethod(method.upper())
        except ValueError:
            http_method = HTTPMethod.GET

        return cls(method=http_method, path=path or "/", body=body, bearer_token=token, accept=accept)
