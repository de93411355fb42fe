from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from webapp.domain.models import ContentType, RouteMetadata
from webapp.domain.types import StatusMap, TypeSpec, parse_type_name, type_spec_from_annotation
from webapp.entities.mappable import EntityReflector
from webapp.openapi.source_scan import RESPONSE_WRAPPER, scan_handler_return_type
from webapp.routing.attribute import RouteAttribute, attribute_of
from webapp.routing.handlers import FunctionHandler, HandlerRef, as_handler

logger = logging.getLogger(__name__)

# @return hints that say nothing about the response body
IGNORED_RETURN_TYPES = frozenset({"void", "null", "None", "self", "static", "mixed", RESPONSE_WRAPPER})

_RETURN_TAG = re.compile(r"^(?:@return|:rtype:)[ \t]+(\S+)", re.MULTILINE)
_WRAPPED = re.compile(rf"^{RESPONSE_WRAPPER}(?:<(.+)>|\[(.+)\])$")


def _is_tag_line(line: str) -> bool:
    return line.startswith("@") or line.startswith(":")


def summary_from_doc(doc: str) -> str:
    """First non-empty, non-tag line."""
    for line in (doc or "").splitlines():
        line = line.strip()
        if line and not _is_tag_line(line):
            return line
    return ""


def description_from_doc(doc: str) -> str:
    """Every non-empty line up to the first tag line, joined by spaces."""
    lines: list[str] = []
    for line in (doc or "").splitlines():
        line = line.strip()
        if _is_tag_line(line):
            break
        if line:
            lines.append(line)
    return " ".join(lines)


def return_type_from_doc(doc: str) -> Optional[str]:
    """
    Return-type hint from ``@return T`` / ``:rtype: T``.

    ``HTTPResponse<User>`` and ``HTTPResponse[User]`` unwrap to ``User``;
    non-informative names (void, None, HTTPResponse, ...) give None.
    """
    if not doc:
        return None
    m = _RETURN_TAG.search("\n".join(line.strip() for line in doc.splitlines()))
    if m is None:
        return None
    hint = m.group(1).rstrip(".,;")

    wrapped = _WRAPPED.match(hint)
    if wrapped:
        return wrapped.group(1) or wrapped.group(2)

    if hint in IGNORED_RETURN_TYPES:
        return None
    return hint


def _declared_spec(decl: Any) -> TypeSpec:
    # strings are type names, anything else is an annotation
    if isinstance(decl, str):
        return parse_type_name(decl)
    return type_spec_from_annotation(decl)


def return_type_spec(decl: Any) -> TypeSpec | None:
    """RouteAttribute.return_type -> TypeSpec (status maps become StatusMap)."""
    if decl is None or decl == "":
        return None
    if isinstance(decl, Mapping):
        codes = tuple(
            (str(code), None if t is None else _declared_spec(t))
            for code, t in decl.items()
        )
        return StatusMap(codes)
    return _declared_spec(decl)


def _dedupe(tags: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for t in tags:
        if t in seen:
            continue
        seen.add(t)
        out.append(t)
    return out


def merge_attributes(class_attr: RouteAttribute | None, method_attr: RouteAttribute | None) -> RouteAttribute | None:
    """Method values override class values field by field; tags are unioned."""
    if class_attr is None and method_attr is None:
        return None
    c = class_attr or RouteAttribute()
    m = method_attr or RouteAttribute()

    def pick(name: str) -> Any:
        value = getattr(m, name)
        return value if value is not None else getattr(c, name)

    return RouteAttribute(
        name=pick("name"),
        description=pick("description"),
        content_type=pick("content_type"),
        tags=tuple(_dedupe(list(c.tags) + list(m.tags))),
        deprecated=pick("deprecated"),
        operation_id=pick("operation_id"),
        return_type=m.return_type if m.return_type else c.return_type,
        responses=pick("responses"),
    )


class MetadataExtractor:
    """
    Resolves RouteMetadata for a handler. Sources, first success wins:
      1. route_attribute on the handler's class and/or function (merged)
      2. docstring (summary, description, @return / :rtype:)
      3. source scan of inline function handlers (return type only)
    """

    def __init__(self, reflector: EntityReflector | None = None, scan_source: bool = True):
        self.reflector = reflector or EntityReflector()
        self.scan_source = scan_source

    def extract(self, handler: Any) -> RouteMetadata:
        ref = as_handler(handler)
        doc = ref.docstring()

        attr = self._attribute_for(ref)
        if attr is not None:
            meta = RouteMetadata(
                summary=attr.name or "",
                description=attr.description or "",
                tags=list(attr.tags),
                deprecated=bool(attr.deprecated),
                operation_id=attr.operation_id or "",
                return_type=return_type_spec(attr.return_type),
                content_type=attr.content_type or ContentType.JSON,
                responses=dict(attr.responses or {}),
            )
            source = "attribute"
        else:
            meta = RouteMetadata(
                summary=summary_from_doc(doc),
                description=description_from_doc(doc),
                content_type=None,
            )
            source = "docstring"

        if meta.return_type is None:
            hint = return_type_from_doc(doc)
            if hint is None:
                hint = self._scan(ref)
            if hint is not None:
                meta.return_type = parse_type_name(hint)

        logger.debug("metadata for %s from %s (return type: %s)", ref.name, source, meta.return_type)
        return meta

    def _attribute_for(self, ref: HandlerRef) -> RouteAttribute | None:
        return merge_attributes(attribute_of(ref.owner()), attribute_of(ref.target()))

    def _scan(self, ref: HandlerRef) -> Optional[str]:
        if not self.scan_source or not isinstance(ref, FunctionHandler):
            return None
        return scan_handler_return_type(ref.func, self.reflector)
