from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from webapp.domain.models import ParamSchema, PathParameter

logger = logging.getLogger(__name__)

DEFAULT_PARAM_NAMES = ("id", "param1", "param2", "param3", "slug", "query")

_CAPTURE = re.compile(r"\(([^)]+)\)")
_INTEGER_PATTERNS = (
    re.compile(r"^\\d(?:\+|\*|\{\d+(?:,\d*)?\})$"),
    re.compile(r"^\[0-9\](?:\+|\*|\{\d+(?:,\d*)?\})$"),
)
_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
_RESTORE = re.compile(r"\x00(\d+)\x00")
_REGEX_META = re.compile(r"[*+?^$()|\[\]\\]")


@dataclass(frozen=True)
class ConvertedPath:
    path: str
    parameters: list[PathParameter] = field(default_factory=list)


def infer_openapi_type(inner: str) -> str:
    """'integer' for digit-only capture patterns, 'string' for anything else."""
    if any(rx.match(inner) for rx in _INTEGER_PATTERNS):
        return "integer"
    return "string"


def _param_name(index: int) -> str:
    if index < len(DEFAULT_PARAM_NAMES):
        return DEFAULT_PARAM_NAMES[index]
    return f"param{index}"


def clean_path(path: str) -> str:
    """Drop regex metacharacters (dots stay), keeping {name} placeholders intact."""
    kept: list[str] = []

    def protect(m: re.Match[str]) -> str:
        kept.append(m.group(0))
        return f"\x00{len(kept) - 1}\x00"

    path = _PLACEHOLDER.sub(protect, path)
    path = _REGEX_META.sub("", path)
    path = _RESTORE.sub(lambda m: kept[int(m.group(1))], path)

    if not path.startswith("/"):
        path = "/" + path
    return path


class PathConverter:
    """Regex route pattern -> OpenAPI path template + path parameters."""

    def convert(self, pattern: str) -> ConvertedPath:
        captures = list(_CAPTURE.finditer(pattern))
        if not captures:
            return ConvertedPath(path=clean_path(pattern), parameters=[])

        parameters: list[PathParameter] = []
        names: list[str] = []
        for index, m in enumerate(captures):
            name = _param_name(index)
            names.append(name)
            parameters.append(
                PathParameter(name=name, schema=ParamSchema(type=infer_openapi_type(m.group(1))))
            )

        # right to left so earlier offsets stay valid
        out = pattern
        for m, name in reversed(list(zip(captures, names))):
            out = out[: m.start()] + "{" + name + "}" + out[m.end():]

        path = clean_path(out)
        logger.debug("converted %s -> %s (%d params)", pattern, path, len(parameters))
        return ConvertedPath(path=path, parameters=parameters)
